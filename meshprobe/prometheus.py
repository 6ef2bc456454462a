"""Querying Prometheus and Thanos from inside their pods."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

__all__ = [
    "PrometheusResult",
    "PrometheusResultData",
    "PrometheusResponse",
    "Prometheus",
    "PodExecutor",
    "parse_response",
    "api_command",
    "query",
    "custom_prometheus_query",
    "custom_prometheus_targets",
    "thanos_query",
    "thanos_targets",
    "DEFAULT_PROMETHEUS",
    "DEFAULT_CUSTOM_PROMETHEUS",
    "DEFAULT_THANOS",
]

PodExecutor = Callable[[str, str, str, str], str]
"""Called as ``executor(selector, namespace, container, command)``; runs the command
in the first pod matching the selector and returns its output."""


@dataclass(frozen=True)
class PrometheusResult:
    metric: dict[str, str] = field(default_factory=dict)
    value: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class PrometheusResultData:
    result_type: str = ""
    result: list[PrometheusResult] = field(default_factory=list)


@dataclass(frozen=True)
class PrometheusResponse:
    status: str = ""
    data: PrometheusResultData = field(default_factory=PrometheusResultData)


def _object(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{what} must be an object, not {type(value).__name__}")
    return value


def _string(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{what} must be a string, not {type(value).__name__}")
    return value


def _list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{what} must be an array, not {type(value).__name__}")
    return value


def _result(raw: Any) -> PrometheusResult:
    obj = _object(raw, "result")
    metric = {
        key: _string(value, f"metric {key}")
        for key, value in _object(obj.get("metric"), "metric").items()
    }
    return PrometheusResult(metric=metric, value=list(_list(obj.get("value"), "value")))


def parse_response(text: str) -> PrometheusResponse:
    """Parse the JSON body of a Prometheus query response.

    Raises :class:`ValueError` when it is not valid JSON of the expected shape.
    """
    try:
        raw = json.loads(text)
        top = _object(raw, "response")
        data = _object(top.get("data"), "data")
        return PrometheusResponse(
            status=_string(top.get("status"), "status"),
            data=PrometheusResultData(
                result_type=_string(data.get("resultType"), "resultType"),
                result=[_result(item) for item in _list(data.get("result"), "result")],
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"could not parse Prometheus response as JSON: {exc}") from exc


def api_command(endpoint: str) -> str:
    """Return the shell command that fetches ``endpoint`` of the local Prometheus API."""
    url = f"http://localhost:9090/api/v1/{endpoint}"
    escaped = url.replace("'", "'\\\\''")
    # the community image has no curl, so wget is used
    return f"wget -qO- '{escaped}'"


@dataclass(frozen=True)
class Prometheus:
    """A Prometheus-compatible server, found by pod selector and container name."""

    selector: str
    container_name: str

    def with_selector(self, selector: str) -> Prometheus:
        return dataclasses.replace(self, selector=selector)

    def with_container_name(self, container_name: str) -> Prometheus:
        return dataclasses.replace(self, container_name=container_name)

    def _api(self, executor: PodExecutor, namespace: str, endpoint: str) -> str:
        return executor(self.selector, namespace, self.container_name, api_command(endpoint))

    def query(self, executor: PodExecutor, namespace: str, query: str) -> PrometheusResponse:
        """Run a PromQL query and return the parsed response."""
        output = self._api(executor, namespace, f"query?{urlencode({'query': query})}")
        return parse_response(output)

    def targets(self, executor: PodExecutor, namespace: str) -> str:
        """Return the raw JSON listing the active scrape targets."""
        return self._api(executor, namespace, "targets?state=active")


DEFAULT_PROMETHEUS = Prometheus("app=prometheus", "prometheus")
DEFAULT_CUSTOM_PROMETHEUS = DEFAULT_PROMETHEUS.with_selector("prometheus=prometheus")
DEFAULT_THANOS = DEFAULT_PROMETHEUS.with_selector(
    "app.kubernetes.io/instance=thanos-querier"
).with_container_name("thanos-query")


def query(executor: PodExecutor, namespace: str, query: str) -> PrometheusResponse:
    return DEFAULT_PROMETHEUS.query(executor, namespace, query)


def custom_prometheus_query(executor: PodExecutor, namespace: str, query: str) -> PrometheusResponse:
    return DEFAULT_CUSTOM_PROMETHEUS.query(executor, namespace, query)


def custom_prometheus_targets(executor: PodExecutor, namespace: str) -> str:
    return DEFAULT_CUSTOM_PROMETHEUS.targets(executor, namespace)


def thanos_query(executor: PodExecutor, namespace: str, query: str) -> PrometheusResponse:
    return DEFAULT_THANOS.query(executor, namespace, query)


def thanos_targets(executor: PodExecutor, namespace: str) -> str:
    return DEFAULT_THANOS.targets(executor, namespace)