import os
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from api_usage.api.main import create_app
from api_usage.api.observability.metrics import ExporterMetrics
from api_usage.core.config import ExporterConfig, MetricsSettings, OpenAPISettings
from api_usage.core.openapi.loader import load_file
from api_usage.core.openapi.model import OpenAPIDocument
from api_usage.core.routing.specification import Specification
from api_usage.core.spec_store import SpecificationStore

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # Config tests read the environment; never inherit the developer's shell
    for key in list(os.environ):
        if key.startswith("API_USAGE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session")
def spec_path() -> Path:
    return FIXTURES / "spec.yaml"


@pytest.fixture(scope="session")
def spec(spec_path) -> Specification:
    return load_file(spec_path)


def _path_param(name: str, type_: Any = None) -> Dict[str, Any]:
    param: Dict[str, Any] = {"name": name, "in": "path", "required": True}
    if type_ is not None:
        param["schema"] = {"type": type_}
    return param


@pytest.fixture(scope="session")
def path_param():
    return _path_param


@pytest.fixture(scope="session")
def make_spec():
    """Build a Specification from a bare ``paths`` mapping."""

    def _make(paths: Dict[str, Any], server: Optional[str] = None, title: str = "t") -> Specification:
        raw: Dict[str, Any] = {"openapi": "3.1.0", "info": {"title": title, "version": "1"}, "paths": paths}
        if server is not None:
            raw["servers"] = [{"url": server}]
        return Specification.from_document(OpenAPIDocument.model_validate(raw))

    return _make


@pytest.fixture()
def config(spec_path) -> ExporterConfig:
    return ExporterConfig(
        openapi=OpenAPISettings(file=str(spec_path)),
        metrics=MetricsSettings(headers=["x-consumer-username"]),
    )


@pytest.fixture()
def store(spec) -> SpecificationStore:
    return SpecificationStore(spec)


@pytest.fixture()
def metrics(config) -> ExporterMetrics:
    return ExporterMetrics(headers=config.metrics.headers)


@pytest.fixture()
def client(config, store, metrics):
    app = create_app(config, store, metrics)
    with TestClient(app) as c:
        yield c


def gateway_record(method: str, uri: str, status: int = 200, latency_ms: int = 12, headers=None) -> Dict[str, Any]:
    return {
        "request": {"method": method, "uri": uri, "headers": headers or {}},
        "response": {"status": status},
        "latencies": {"request": latency_ms, "kong": 1, "proxy": latency_ms - 1},
    }


@pytest.fixture(scope="session")
def record():
    return gateway_record
