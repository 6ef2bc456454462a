import json
from urllib.parse import parse_qs, urlsplit

import pytest

from meshprobe import prometheus
from meshprobe.prometheus import (
    DEFAULT_CUSTOM_PROMETHEUS,
    DEFAULT_PROMETHEUS,
    DEFAULT_THANOS,
    Prometheus,
    PrometheusResponse,
    api_command,
    parse_response,
)

SAMPLE = {
    "status": "success",
    "data": {
        "resultType": "vector",
        "result": [
            {"metric": {"__name__": "up", "job": "prometheus"}, "value": [1700000000.5, "1"]},
        ],
    },
}


class FakeExecutor:
    def __init__(self, output):
        self.output = output
        self.calls = []

    def __call__(self, selector, namespace, container, command):
        self.calls.append((selector, namespace, container, command))
        return self.output


def _url_of(command):
    return command.split("'")[1]


@pytest.mark.parametrize(
    "server, selector, container",
    [
        (DEFAULT_PROMETHEUS, "app=prometheus", "prometheus"),
        (DEFAULT_CUSTOM_PROMETHEUS, "prometheus=prometheus", "prometheus"),
        (DEFAULT_THANOS, "app.kubernetes.io/instance=thanos-querier", "thanos-query"),
    ],
)
def test_default_instances(server, selector, container):
    executor = FakeExecutor("targets")
    assert server.targets(executor, "mesh") == "targets"
    assert executor.calls[0][:3] == (selector, "mesh", container)


def test_with_methods_return_copies():
    base = Prometheus("a=b", "c")
    changed = base.with_selector("x=y").with_container_name("z")
    assert base == Prometheus("a=b", "c")
    assert changed == Prometheus("x=y", "z")


def test_api_command_targets():
    assert api_command("targets?state=active") == "wget -qO- 'http://localhost:9090/api/v1/targets?state=active'"


def test_api_command_escapes_single_quotes():
    assert api_command("x'y") == "wget -qO- 'http://localhost:9090/api/v1/x'\\\\''y'"


def test_query_runs_in_pod_and_parses():
    executor = FakeExecutor(json.dumps(SAMPLE))
    promql = 'istio_requests_total{destination_workload="ratings-v1"}'
    response = DEFAULT_PROMETHEUS.query(executor, "istio-system", promql)

    ((selector, namespace, container, command),) = executor.calls
    assert (selector, namespace, container) == ("app=prometheus", "istio-system", "prometheus")
    url = urlsplit(_url_of(command))
    assert url.path.endswith("/api/v1/query")
    assert parse_qs(url.query) == {"query": [promql]}

    assert response.status == SAMPLE["status"]
    assert response.data.result_type == SAMPLE["data"]["resultType"]
    assert response.data.result[0].metric == SAMPLE["data"]["result"][0]["metric"]
    assert response.data.result[0].value == SAMPLE["data"]["result"][0]["value"]


def test_targets_returns_raw_output():
    executor = FakeExecutor('{"status":"success"}')
    assert DEFAULT_PROMETHEUS.targets(executor, "mesh") == '{"status":"success"}'
    assert executor.calls[0][3] == api_command("targets?state=active")


def test_module_functions_use_expected_servers():
    executor = FakeExecutor(json.dumps(SAMPLE))
    prometheus.thanos_query(executor, "openshift-monitoring", "up")
    prometheus.thanos_targets(executor, "openshift-monitoring")
    prometheus.custom_prometheus_query(executor, "ns", "up")
    prometheus.custom_prometheus_targets(executor, "ns")
    prometheus.query(executor, "ns", "up")
    selectors = [(call[0], call[2]) for call in executor.calls]
    assert selectors == [
        (DEFAULT_THANOS.selector, DEFAULT_THANOS.container_name),
        (DEFAULT_THANOS.selector, DEFAULT_THANOS.container_name),
        (DEFAULT_CUSTOM_PROMETHEUS.selector, DEFAULT_CUSTOM_PROMETHEUS.container_name),
        (DEFAULT_CUSTOM_PROMETHEUS.selector, DEFAULT_CUSTOM_PROMETHEUS.container_name),
        (DEFAULT_PROMETHEUS.selector, DEFAULT_PROMETHEUS.container_name),
    ]


def test_parse_response_invalid_json():
    with pytest.raises(ValueError) as info:
        parse_response("not json")
    assert "could not parse Prometheus response as JSON" in str(info.value)


def test_parse_response_wrong_shape():
    with pytest.raises(ValueError):
        parse_response('{"status": "success", "data": []}')
    with pytest.raises(ValueError):
        parse_response('{"data": {"result": [{"metric": {"job": 5}}]}}')


def test_parse_response_null_and_missing_fields_are_empty():
    assert parse_response("null") == PrometheusResponse()
    response = parse_response('{"status": "success"}')
    assert response.status == "success"
    assert response.data.result == []


def test_query_raises_on_unparsable_output():
    with pytest.raises(ValueError):
        DEFAULT_THANOS.query(FakeExecutor("wget: error"), "ns", "up")