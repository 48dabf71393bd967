from __future__ import annotations

import logging

import uvicorn

from api_usage.api.main import create_app
from api_usage.api.observability.metrics import ExporterMetrics
from api_usage.core.config import ExporterConfig
from api_usage.core.errors import ExporterError
from api_usage.core.spec_store import SpecificationSource, SpecificationStore, load_specification

log = logging.getLogger("api_usage.server")


def run_server(config: ExporterConfig) -> int:
    """Initial load, then serve /log and the metrics endpoint until stopped."""
    store = SpecificationStore()
    metrics = ExporterMetrics(headers=config.metrics.headers)
    source = SpecificationSource.from_settings(config.openapi)

    log.info("Loading OpenAPI specification source=%s", source.describe())
    try:
        load_specification(store, source)
    except ExporterError as e:
        log.error("Failed to load OpenAPI specification: %s", e)
        return 1

    app = create_app(config, store, metrics)

    log.info(
        "Starting prometheus server host=%s port=%s path=%s",
        config.prometheus.host,
        config.prometheus.port,
        config.prometheus.path,
    )
    # log_config=None keeps uvicorn on the handlers configured by configure_logging
    uvicorn.run(app, host=config.prometheus.host, port=config.prometheus.port, log_config=None)
    return 0
