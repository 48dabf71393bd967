from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from api_usage.core.config import REQUEST_LABELS, header_label_name
from api_usage.core.gateway.log_record import GatewayLog
from api_usage.core.openapi.model import SUPPORTED_METHODS
from api_usage.core.routing.specification import RouteMatch, Specification

OTHER_METHOD = "OTHER"

# Gateway latencies are whole milliseconds
LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30)


class ExporterMetrics:
    """
    Request metrics labelled by declared route template.

    Collectors live on their own registry so the exposition only carries what
    the exporter derives from gateway logs.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, headers: Iterable[str] = ()):
        self.registry = registry or CollectorRegistry()
        self.headers: List[str] = [h.strip().lower() for h in headers if h.strip()]
        self.header_labels: Tuple[str, ...] = tuple(header_label_name(h) for h in self.headers)

        self.requests_total = Counter(
            "http_requests_api_total",
            "Total number of requests to the API",
            list(REQUEST_LABELS) + list(self.header_labels),
            registry=self.registry,
        )
        self.request_duration_seconds = Histogram(
            "http_request_api_duration_seconds",
            "Request latency reported by the gateway, in seconds",
            ["method", "path"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.unmatched_total = Counter(
            "http_requests_api_unmatched_total",
            "Gateway requests that matched no declared route",
            ["method"],
            registry=self.registry,
        )
        self.spec_info = Gauge(
            "openapi_spec_info",
            "Currently published OpenAPI specification",
            ["title", "version", "base_path"],
            registry=self.registry,
        )
        self.spec_endpoints = Gauge(
            "openapi_spec_endpoints",
            "Declared (method, path) pairs in the published specification",
            registry=self.registry,
        )
        self.spec_reloads_total = Counter(
            "openapi_spec_reloads_total",
            "OpenAPI specification reload attempts",
            ["result"],
            registry=self.registry,
        )

    def observe(self, record: GatewayLog, match: RouteMatch) -> None:
        labels = {
            "method": match.method,
            "path": match.path,
            "status": str(record.response.status),
        }
        for header, label in zip(self.headers, self.header_labels):
            labels[label] = record.header(header)
        self.requests_total.labels(**labels).inc()
        self.request_duration_seconds.labels(method=match.method, path=match.path).observe(
            max(0, record.latencies.request) / 1000.0
        )

    def observe_unmatched(self, record: GatewayLog) -> None:
        # Scanners send arbitrary methods; keep the label set bounded
        method = record.request.method.upper()
        if method not in SUPPORTED_METHODS:
            method = OTHER_METHOD
        self.unmatched_total.labels(method=method).inc()

    def spec_published(self, spec: Specification) -> None:
        self.spec_info.clear()
        self.spec_info.labels(
            title=spec.meta.title, version=spec.meta.version, base_path=spec.meta.base_path
        ).set(1)
        self.spec_endpoints.set(spec.meta.endpoint_count)

    def reload_result(self, ok: bool) -> None:
        self.spec_reloads_total.labels(result="success" if ok else "failure").inc()

    def render(self) -> Tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
