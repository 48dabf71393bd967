"""Prometheus metrics scrape endpoint.

Exposes the exporter's own registry. The route path comes from
configuration, so the handler is registered by ``create_app``.
"""

from fastapi import Request, Response


def prometheus_metrics(request: Request) -> Response:
    body, content_type = request.app.state.metrics.render()
    return Response(body, media_type=content_type)
