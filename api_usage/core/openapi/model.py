"""Subset of the OpenAPI v3 object model read by the route engine.

Only the parts needed to build route trees are modelled: document info, the
server list, path items with their operations, and path parameters with
their schema types. Everything else in the document is ignored.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")


class _OpenAPIModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _scalar_text(v: Any) -> Any:
    # Unquoted YAML scalars such as `version: 1.0` or `2024-01-01` load as
    # numbers or dates
    if v is None or isinstance(v, (dict, list)):
        return v
    if isinstance(v, bool):
        return "true" if v else "false"
    return v if isinstance(v, str) else str(v)


class Schema(_OpenAPIModel):
    type: Union[str, List[str], None] = None

    @property
    def types(self) -> List[str]:
        """Declared primitive types; OpenAPI 3.1 allows a list."""
        if self.type is None:
            return []
        if isinstance(self.type, str):
            return [self.type]
        return list(self.type)


class Parameter(_OpenAPIModel):
    name: str
    location: str = Field(alias="in")
    schema_: Optional[Schema] = Field(default=None, alias="schema")

    @property
    def types(self) -> List[str]:
        return self.schema_.types if self.schema_ is not None else []


class Operation(_OpenAPIModel):
    operation_id: Optional[str] = Field(default=None, alias="operationId")
    summary: Optional[str] = None
    parameters: List[Parameter] = Field(default_factory=list)


class PathItem(_OpenAPIModel):
    get: Optional[Operation] = None
    put: Optional[Operation] = None
    post: Optional[Operation] = None
    delete: Optional[Operation] = None
    options: Optional[Operation] = None
    head: Optional[Operation] = None
    patch: Optional[Operation] = None
    trace: Optional[Operation] = None
    parameters: List[Parameter] = Field(default_factory=list)

    def operation(self, method: str) -> Optional[Operation]:
        if method.upper() not in SUPPORTED_METHODS:
            return None
        return getattr(self, method.lower())


class Info(_OpenAPIModel):
    title: str = ""
    version: str = ""

    @field_validator("title", "version", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> Any:
        return "" if v is None else _scalar_text(v)


class ServerVariable(_OpenAPIModel):
    default: str = ""

    @field_validator("default", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> Any:
        return _scalar_text(v)


class Server(_OpenAPIModel):
    url: str
    variables: Dict[str, ServerVariable] = Field(default_factory=dict)

    def expanded_url(self) -> str:
        """The url with every ``{variable}`` replaced by its default."""
        url = self.url
        for name, var in self.variables.items():
            url = url.replace("{" + name + "}", var.default)
        return url


class OpenAPIDocument(_OpenAPIModel):
    openapi: str = "3.0.0"
    info: Info = Field(default_factory=Info)
    servers: List[Server] = Field(default_factory=list)
    paths: Dict[str, PathItem] = Field(default_factory=dict)

    @field_validator("openapi", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> Any:
        return _scalar_text(v)
