from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from api_usage import __version__
from api_usage.api.endpoints import health, log_ingest
from api_usage.api.endpoints.metrics_export import prometheus_metrics
from api_usage.api.middleware.error_shaping import SafeErrorMiddleware
from api_usage.api.observability.metrics import ExporterMetrics
from api_usage.core.config import ExporterConfig
from api_usage.core.spec_store import SpecificationReloader, SpecificationSource, SpecificationStore


def create_app(
    config: ExporterConfig,
    store: SpecificationStore,
    metrics: Optional[ExporterMetrics] = None,
    reloader: Optional[SpecificationReloader] = None,
) -> FastAPI:
    metrics = metrics or ExporterMetrics(headers=config.metrics.headers)
    store.subscribe(metrics.spec_published)

    if reloader is None and config.openapi.reload:
        reloader = SpecificationReloader(
            store,
            SpecificationSource.from_settings(config.openapi),
            config.openapi.reload,
            on_result=metrics.reload_result,
        )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if reloader is not None:
            reloader.start()
        try:
            yield
        finally:
            if reloader is not None:
                reloader.stop()

    app = FastAPI(
        title="API usage exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.metrics = metrics
    app.state.reloader = reloader

    app.add_middleware(SafeErrorMiddleware)

    app.include_router(log_ingest.router)
    app.include_router(health.router)
    app.add_api_route(
        config.prometheus.path,
        prometheus_metrics,
        methods=["GET"],
        include_in_schema=False,
    )
    return app
