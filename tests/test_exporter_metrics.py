import json

from prometheus_client import CollectorRegistry

from api_usage.api.observability.metrics import ExporterMetrics, header_label_name
from api_usage.core.gateway.log_record import parse_log


def _value(metrics, name, labels):
    return metrics.registry.get_sample_value(name, labels)


def test_header_label_name():
    assert header_label_name("X-Consumer-Username") == "x_consumer_username"


def test_observe_labels_by_template(spec, record):
    metrics = ExporterMetrics(CollectorRegistry(), headers=["X-Consumer-Username"])
    log = parse_log(json.dumps(record("GET", "/api/v1/users/42", status=200, latency_ms=250, headers={"x-consumer-username": "bob"})))
    metrics.observe(log, spec.match_path(log.request.method, log.request.uri))
    labels = {"method": "GET", "path": "/api/v1/users/{userId}", "status": "200", "x_consumer_username": "bob"}
    assert _value(metrics, "http_requests_api_total", labels) == 1.0
    assert _value(
        metrics, "http_request_api_duration_seconds_sum", {"method": "GET", "path": "/api/v1/users/{userId}"}
    ) == 0.25


def test_unmatched_counter(record):
    metrics = ExporterMetrics()
    metrics.observe_unmatched(parse_log(json.dumps(record("get", "/wp-login.php"))))
    assert _value(metrics, "http_requests_api_unmatched_total", {"method": "GET"}) == 1.0


def test_unmatched_unknown_methods_share_one_label(record):
    metrics = ExporterMetrics()
    for method in ("PROPFIND", "XYZZY", "trace", "G\u0117T"):
        metrics.observe_unmatched(parse_log(json.dumps(record(method, "/"))))
    assert _value(metrics, "http_requests_api_unmatched_total", {"method": "OTHER"}) == 4.0
    assert _value(metrics, "http_requests_api_unmatched_total", {"method": "PROPFIND"}) is None


def test_spec_info_tracks_latest_publish(spec, make_spec):
    metrics = ExporterMetrics()
    metrics.spec_published(spec)
    assert _value(metrics, "openapi_spec_info", {"title": "Users API", "version": "1.2.0", "base_path": "/api/v1"}) == 1.0
    assert _value(metrics, "openapi_spec_endpoints", {}) == 13

    metrics.spec_published(make_spec({"/x": {"get": {}}}, title="Next"))
    assert _value(metrics, "openapi_spec_info", {"title": "Users API", "version": "1.2.0", "base_path": "/api/v1"}) is None
    assert _value(metrics, "openapi_spec_info", {"title": "Next", "version": "1", "base_path": ""}) == 1.0
    assert _value(metrics, "openapi_spec_endpoints", {}) == 1


def test_reload_results():
    metrics = ExporterMetrics()
    metrics.reload_result(True)
    metrics.reload_result(False)
    metrics.reload_result(False)
    assert _value(metrics, "openapi_spec_reloads_total", {"result": "success"}) == 1.0
    assert _value(metrics, "openapi_spec_reloads_total", {"result": "failure"}) == 2.0


def test_instances_do_not_share_a_registry():
    a, b = ExporterMetrics(), ExporterMetrics()
    a.reload_result(True)
    assert b.registry.get_sample_value("openapi_spec_reloads_total", {"result": "success"}) is None


def test_render():
    body, content_type = ExporterMetrics().render()
    assert b"http_requests_api_total" in body
    assert content_type.startswith("text/plain")
