import logging

import pytest

from api_usage import cli


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
    root.setLevel(level)


def test_routes_lists_templates(spec_path, capsys):
    assert cli.main(["routes", "--file", str(spec_path)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Users API 1.2.0 (base path: /api/v1, endpoints: 13)"
    assert "GET     /api/v1/users/{userId}" in out
    assert "POST    /api/v1/users" in out
    assert "OPTIONS /api/v1/users/{userId}" in out
    assert len(out) == 14


def test_match_prints_template(spec_path, capsys):
    assert cli.main(["match", "--file", str(spec_path), "get", "/api/v1/users/42/posts/abc"]) == 0
    assert capsys.readouterr().out.strip() == "GET /api/v1/users/{userId}/posts/{postId} (getUserPost)"


def test_match_no_match(spec_path, capsys):
    assert cli.main(["match", "--file", str(spec_path), "GET", "/api/v1/users/42/nope"]) == 1
    assert capsys.readouterr().out.strip() == "no match"


def test_load_error(tmp_path, capsys):
    assert cli.main(["routes", "--file", str(tmp_path / "missing.yaml")]) == 1
    assert capsys.readouterr().err.startswith("error: ")


def test_source_is_required():
    with pytest.raises(SystemExit):
        cli.main(["routes"])


def test_serve_invalid_config(tmp_path, capsys):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("log: {level: info}\n", encoding="utf-8")
    assert cli.main(["serve", "--config", str(cfg)]) == 2
    assert "invalid configuration" in capsys.readouterr().err


def test_serve_runs_server(tmp_path, spec_path, monkeypatch):
    import api_usage.main

    seen = {}

    def fake_run_server(config):
        seen["config"] = config
        return 0

    monkeypatch.setattr(api_usage.main, "run_server", fake_run_server)
    cfg = tmp_path / "config.yaml"
    cfg.write_text(f"openapi:\n  file: {spec_path}\nprometheus:\n  port: 9100\n", encoding="utf-8")

    assert cli.main(["serve", "--config", str(cfg)]) == 0
    assert seen["config"].prometheus.port == 9100
    assert seen["config"].openapi.file == str(spec_path)


def test_run_server_fails_without_specification(tmp_path):
    from api_usage.core.config import ExporterConfig, OpenAPISettings
    from api_usage.main import run_server

    config = ExporterConfig(openapi=OpenAPISettings(file=str(tmp_path / "missing.yaml")))
    assert run_server(config) == 1


def test_unparsable_date_is_a_clean_error(tmp_path, capsys):
    f = tmp_path / "spec.yaml"
    f.write_text("openapi: 3.0.0\ninfo: {title: t, version: 2024-13-45}\npaths: {}\n", encoding="utf-8")
    assert cli.main(["match", "--file", str(f), "GET", "/x"]) == 1
    assert capsys.readouterr().err.startswith("error: ")
