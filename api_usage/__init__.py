"""Prometheus exporter that labels gateway traffic by OpenAPI route template."""

__version__ = "0.1.0"
