import json
import logging
import sys

import pytest

from api_usage.core.logging_setup import JsonFormatter, configure_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
    root.setLevel(level)


def test_json_formatter_emits_one_object_per_line():
    record = logging.LogRecord("api_usage.spec", logging.WARNING, __file__, 1, "reload failed: %s", ("boom",), None)
    line = JsonFormatter().format(record)
    payload = json.loads(line)
    assert payload["level"] == "warning"
    assert payload["logger"] == "api_usage.spec"
    assert payload["msg"] == "reload failed: boom"
    assert payload["ts"].endswith("Z")
    assert "\n" not in line


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    payload = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad" in payload["error"]


def test_configure_logging_sets_level_and_formatter(restore_root_logger):
    configure_logging("debug", "json")
    root = logging.getLogger()
    ours = [h for h in root.handlers if h.get_name() == "api_usage.stream"]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JsonFormatter)
    assert root.level == logging.DEBUG


def test_reconfiguring_replaces_our_handler_only(restore_root_logger):
    root = logging.getLogger()
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    configure_logging("info", "text")
    configure_logging("warning", "text")
    ours = [h for h in root.handlers if h.get_name() == "api_usage.stream"]
    assert len(ours) == 1
    assert foreign in root.handlers
    assert root.level == logging.WARNING
