"""
Exporter configuration.

Read from a YAML file, then overridden by environment variables:

    API_USAGE_CONFIG            path of the YAML file (default ./config.yaml)
    API_USAGE_LOG_LEVEL         critical|error|warning|info|debug
    API_USAGE_LOG_FORMAT        text|json
    API_USAGE_OPENAPI_URL       URL of the OpenAPI document
    API_USAGE_OPENAPI_FILE      local path of the OpenAPI document
    API_USAGE_OPENAPI_RELOAD    reload interval, e.g. 300, 30s, 5m, 1h30m
    API_USAGE_PROMETHEUS_HOST / _PORT / _PATH
    API_USAGE_METRICS_HEADERS   comma separated request headers to label by

A missing file is fine as long as the environment supplies the OpenAPI
source. Any invalid value raises ConfigError.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from api_usage.core.errors import ConfigError

_log = logging.getLogger("api_usage.config")

DEFAULT_CONFIG_PATH = Path("config.yaml")

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

# Labels every request sample carries; header labels must not shadow them
REQUEST_LABELS = ("method", "path", "status")

_LABEL_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "API_USAGE_LOG_LEVEL": ("log", "level"),
    "API_USAGE_LOG_FORMAT": ("log", "format"),
    "API_USAGE_OPENAPI_URL": ("openapi", "url"),
    "API_USAGE_OPENAPI_FILE": ("openapi", "file"),
    "API_USAGE_OPENAPI_RELOAD": ("openapi", "reload"),
    "API_USAGE_PROMETHEUS_HOST": ("prometheus", "host"),
    "API_USAGE_PROMETHEUS_PORT": ("prometheus", "port"),
    "API_USAGE_PROMETHEUS_PATH": ("prometheus", "path"),
    "API_USAGE_METRICS_HEADERS": ("metrics", "headers"),
}


def header_label_name(header: str) -> str:
    """x-consumer-username -> x_consumer_username"""
    return header.strip().lower().replace("-", "_")


def parse_duration(value: Union[str, int, float]) -> float:
    """Seconds from a number or a duration string such as ``5m`` or ``1h30m``."""
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(n + u for n, u in parts) != text:
                raise ValueError(f"invalid duration {value!r}") from None
            seconds = sum(float(n) * _DURATION_UNITS[u] for n, u in parts)
    if seconds <= 0:
        raise ValueError(f"duration must be positive, got {value!r}")
    return seconds


class LogSettings(BaseModel):
    level: str = "info"
    format: str = "text"

    @field_validator("level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        v = v.strip().lower()
        if v == "warn":
            v = "warning"
        if v not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return v

    @field_validator("format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("text", "json"):
            raise ValueError("must be text or json")
        return v


class OpenAPISettings(BaseModel):
    url: Optional[str] = None
    file: Optional[str] = None
    reload: Optional[float] = Field(default=None, description="Reload interval in seconds.")
    timeout: float = Field(default=10.0, gt=0)

    @field_validator("reload", mode="before")
    @classmethod
    def _parse_reload(cls, v: Any) -> Optional[float]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return parse_duration(v)

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v

    @model_validator(mode="after")
    def _one_source(self) -> "OpenAPISettings":
        if bool(self.url) == bool(self.file):
            raise ValueError("exactly one of url or file is required")
        return self


class PrometheusSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    path: str = "/metrics"

    @field_validator("path")
    @classmethod
    def _check_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("must start with '/'")
        return v


class MetricsSettings(BaseModel):
    headers: List[str] = Field(default_factory=list)

    @field_validator("headers", mode="before")
    @classmethod
    def _split_headers(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            seen: List[str] = []
            for h in v:
                h = str(h).strip().lower()
                if h and h not in seen:
                    seen.append(h)
            return seen
        return v

    @field_validator("headers")
    @classmethod
    def _check_labels(cls, v: List[str]) -> List[str]:
        owners: Dict[str, str] = {}
        for h in v:
            label = header_label_name(h)
            if not _LABEL_NAME.match(label) or label.startswith("__"):
                raise ValueError(f"header {h!r} does not give a valid metric label name ({label!r})")
            if label in REQUEST_LABELS:
                raise ValueError(f"header {h!r} clashes with the {label!r} request label")
            if label in owners:
                raise ValueError(f"headers {owners[label]!r} and {h!r} both map to label {label!r}")
            owners[label] = h
        return v


class ExporterConfig(BaseModel):
    log: LogSettings = Field(default_factory=LogSettings)
    openapi: OpenAPISettings
    prometheus: PrometheusSettings = Field(default_factory=PrometheusSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)


def _resolve_path(path: Optional[Union[str, Path]]) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.getenv("API_USAGE_CONFIG", "").strip()
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must be a mapping, got {type(data).__name__}")
    _log.info("Using config file %s", path)
    return data


def _apply_env(raw: Dict[str, Any]) -> Dict[str, Any]:
    out = {k: (dict(v) if isinstance(v, dict) else v) for k, v in raw.items()}
    for env_key, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_key)
        if value is None or not value.strip():
            continue
        block = out.get(section)
        if not isinstance(block, dict):
            block = {}
            out[section] = block
        block[key] = value.strip()
        # An OpenAPI source from the environment replaces the file's source
        if section == "openapi" and key in ("url", "file"):
            other = "file" if key == "url" else "url"
            if not (os.getenv(f"API_USAGE_OPENAPI_{other.upper()}") or "").strip():
                block.pop(other, None)
    return out


def load_config(path: Optional[Union[str, Path]] = None) -> ExporterConfig:
    resolved = _resolve_path(path)
    raw = _apply_env(_read_yaml(resolved))
    try:
        return ExporterConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
