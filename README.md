# meshprobe

Building blocks for end-to-end tests that check a service mesh running on a
Kubernetes or OpenShift cluster.

## Installation

```
pip install meshprobe
pip install "meshprobe[test]"   # adds pytest, for running the test suite
```

## Modules

- `meshprobe.version`: `parse_version` reads strings such as `"v2.5"`,
  `"2.5"` or `"4.12.0"` and returns a `Version` with `major` and `minor`. It
  ignores the patch level. A malformed string raises `ValueError`. Versions
  compare with the usual operators and print as `v<major>.<minor>`. The module
  also defines known versions as constants, for example `OCP_4_12`,
  `OPERATOR_2_6_0` and `SMCP_2_5`.
- `meshprobe.ratios`: `is_within_percentage(count, total, rate, tolerance)`
  checks whether an observed count matches an expected rate within a
  tolerance. Both bounds are truncated to whole numbers.
  `generate_strings(prefix, count)` returns `prefix0`, `prefix1` and so on.
- `meshprobe.retry`: `until_success(func, options, logger,
  log_failed_attempts)` calls `func` with an `AttemptHelper` until an attempt
  succeeds, and returns what `func` returned.
  - An attempt fails when `func` calls `helper.fail(message)` or raises.
  - `options()` gives the defaults: 60 attempts, one second apart, with
    attempts logged. `RetryOptions.with_max_attempts`, `with_delay` and
    `with_log_attempts` return changed copies.
  - When the last attempt fails, `RetryFailed` is raised. Its `attempts`
    holds the number of attempts and its `error` holds the last failure.
  - Messages go to `logger` or, by default, to the `logging` module.
  - With `log_failed_attempts=False`, only the messages of the successful or
    last attempt are shown.
  - A warning is logged when success took more than 75 % or 90 % of the
    allowed attempts.
  - `attempt(func)` runs `func` once and returns the `AttemptHelper`, with its
    `failed`, `error`, `result` and buffered `messages`.
    `flush_log_buffer(sink)` passes the buffered messages on.
- `meshprobe.template`: `run(template, values, images, arch)` renders a Jinja2
  template.
  - `values` is a mapping, a dataclass or an object whose public attributes
    are used.
  - Templates can call `toYaml` (also `to_yaml`), `indent(spaces, text)`,
    `until(n)` and `image(name)`.
  - `image` looks the name up for `arch` in an `ImageCatalog`, which
    `ImageCatalog.load(path)` reads from a YAML file of
    `image -> architecture -> container image`.
  - Parse and render errors, and missing images, raise `TemplateError`. For a
    syntax error, the message includes the template with line numbers from
    `add_line_numbers`.
- `meshprobe.request`: options for the `requests` library. Each is a
  `RequestOption` with `apply_to_request(request)` (anything with `headers`)
  and `apply_to_session(session)`.
  - `with_header(name, value)` sets a header.
  - `with_host(host)` sets the `Host` header.
  - `options(*opts)` combines several options in order.
  - `with_tls(ca_cert_file, host, ingress_host, secure_ingress_port)` makes
    the session trust the given CA. It opens connections for
    `host:secure_ingress_port` to `ingress_host` instead, and still checks
    the certificate against `host`.
    `TLSRequestOption.with_client_certificate(cert, key)` adds a client
    certificate.
- `meshprobe.prometheus`: queries Prometheus or Thanos from inside their pods.
  - `Prometheus(selector, container_name)` describes a server.
    `with_selector` and `with_container_name` return changed copies.
  - `query` parses the JSON answer into a `PrometheusResponse`.
  - `targets` returns the raw JSON of the active targets.
  - `DEFAULT_PROMETHEUS`, `DEFAULT_CUSTOM_PROMETHEUS` and `DEFAULT_THANOS`
    are used by the module-level `query`, `custom_prometheus_query`,
    `custom_prometheus_targets`, `thanos_query` and `thanos_targets`.
  - `parse_response` raises `ValueError` on malformed JSON.
  - `api_command(endpoint)` builds the `wget` command that runs in the pod.

## Example

```python
import subprocess

from meshprobe.prometheus import query
from meshprobe.retry import options, until_success


def executor(selector, namespace, container, command):
    pod = subprocess.run(
        ["oc", "get", "pods", "-n", namespace, "-l", selector,
         "-o", "jsonpath={.items[0].metadata.name}"],
        capture_output=True, text=True, check=True,
    ).stdout
    return subprocess.run(
        ["oc", "exec", "-n", namespace, pod, "-c", container, "--", "sh", "-c", command],
        capture_output=True, text=True, check=True,
    ).stdout


def check(t):
    response = query(executor, "istio-system", "istio_requests_total")
    if not response.data.result:
        t.fail("no metrics yet")
    return response


response = until_success(check, options().with_max_attempts(30).with_delay(5))
```

## What the package does not do

The package has no cluster client and does not run commands itself. Prometheus
queries need an executor that you provide, as in the example. It has no test
runner or command-line tool of its own; its pieces are meant to be called from
your own tests.

## Running the tests

```
pytest
```