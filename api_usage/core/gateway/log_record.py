"""
Gateway (Kong http-log plugin) access-log records.

Only the fields the exporter labels by are modelled; everything else in the
record is ignored.
"""
from __future__ import annotations

from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from api_usage.core.errors import InvalidLogRecord


class _LogModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LogRequest(_LogModel):
    uri: str
    method: str
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("headers", mode="before")
    @classmethod
    def _flatten_headers(cls, v: object) -> object:
        # Repeated headers arrive as lists
        if not isinstance(v, dict):
            return v
        out: Dict[str, str] = {}
        for name, value in v.items():
            if isinstance(value, list):
                value = ",".join(str(x) for x in value)
            out[str(name).lower()] = str(value)
        return out


class LogResponse(_LogModel):
    status: int


class LogLatencies(_LogModel):
    request: int = 0


class GatewayLog(_LogModel):
    request: LogRequest
    response: LogResponse
    latencies: LogLatencies = Field(default_factory=LogLatencies)

    def header(self, name: str) -> str:
        return self.request.headers.get(name.lower(), "")


def parse_log(body: Union[bytes, str]) -> GatewayLog:
    try:
        return GatewayLog.model_validate_json(body)
    except ValidationError as e:
        raise InvalidLogRecord(_describe(e)) from e


def _describe(e: ValidationError) -> str:
    problems: List[str] = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        problems.append(f"{loc}: {err.get('msg')}")
    return "; ".join(problems)
