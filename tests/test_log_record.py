import json

import pytest

from api_usage.core.errors import InvalidLogRecord
from api_usage.core.gateway.log_record import parse_log


def test_parse_kong_record(record):
    raw = record("GET", "/api/v1/users/1?x=1", status=404, latency_ms=35, headers={"X-Consumer-Username": "alice"})
    raw["upstream_uri"] = "/users/1"
    log = parse_log(json.dumps(raw).encode())
    assert log.request.method == "GET"
    assert log.request.uri == "/api/v1/users/1?x=1"
    assert log.response.status == 404
    assert log.latencies.request == 35
    assert log.header("x-consumer-username") == "alice"
    assert log.header("X-Consumer-Username") == "alice"


def test_missing_header_is_empty(record):
    log = parse_log(json.dumps(record("GET", "/")))
    assert log.header("x-anything") == ""


def test_repeated_headers_are_joined(record):
    log = parse_log(json.dumps(record("GET", "/", headers={"accept": ["a/b", "c/d"]})))
    assert log.header("accept") == "a/b,c/d"


def test_latencies_are_optional():
    log = parse_log(b'{"request": {"method": "GET", "uri": "/"}, "response": {"status": 200}}')
    assert log.latencies.request == 0


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"",
        b"[]",
        b'{"request": {"method": "GET"}, "response": {"status": 200}}',
        b'{"request": {"method": "GET", "uri": "/"}, "response": {"status": "teapot"}}',
    ],
)
def test_malformed_records(body):
    with pytest.raises(InvalidLogRecord):
        parse_log(body)


def test_error_names_the_field():
    with pytest.raises(InvalidLogRecord, match="request.uri"):
        parse_log(b'{"request": {"method": "GET"}, "response": {"status": 200}}')
