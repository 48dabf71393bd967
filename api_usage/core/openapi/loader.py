"""
Load an OpenAPI v3 document from a file or URL and build a Specification.

Documents may be JSON or YAML. Local ``$ref`` pointers on path items,
parameters and parameter schemas are inlined before validation, which is
all the route engine needs; other references are left alone.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests
import yaml
from pydantic import ValidationError

from api_usage.core.errors import SpecificationLoadError
from api_usage.core.openapi.model import OpenAPIDocument
from api_usage.core.routing.specification import Specification

_log = logging.getLogger("api_usage.openapi")

_MAX_REF_DEPTH = 32

DEFAULT_TIMEOUT_SECONDS = 10.0


def _lookup_pointer(root: Dict[str, Any], ref: str) -> Any:
    if not ref.startswith("#/"):
        raise ValueError(f"only local references are supported, got {ref!r}")
    node: Any = root
    for token in ref[2:].split("/"):
        token = token.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or token not in node:
            raise ValueError(f"unresolvable reference {ref!r}")
        node = node[token]
    return node


def _deref(root: Dict[str, Any], node: Any) -> Any:
    depth = 0
    while isinstance(node, dict) and "$ref" in node:
        depth += 1
        if depth > _MAX_REF_DEPTH:
            raise ValueError(f"reference cycle at {node['$ref']!r}")
        node = _lookup_pointer(root, str(node["$ref"]))
    return node


def _inline_parameters(root: Dict[str, Any], params: Any) -> Any:
    if not isinstance(params, list):
        return params
    out = []
    for p in params:
        p = _deref(root, p)
        if isinstance(p, dict) and "schema" in p:
            p = {**p, "schema": _deref(root, p["schema"])}
        out.append(p)
    return out


def _inline_refs(raw: Dict[str, Any]) -> Dict[str, Any]:
    paths = raw.get("paths") or {}
    if not isinstance(paths, dict):
        raise ValueError("'paths' must be a mapping")

    inlined: Dict[str, Any] = {}
    for template, item in paths.items():
        item = _deref(raw, item)
        if not isinstance(item, dict):
            inlined[template] = item
            continue
        item = dict(item)
        item["parameters"] = _inline_parameters(raw, item.get("parameters") or [])
        for key, value in list(item.items()):
            if key != "parameters" and isinstance(value, dict) and "parameters" in value:
                item[key] = {**value, "parameters": _inline_parameters(raw, value["parameters"] or [])}
        inlined[str(template)] = item
    return {**raw, "paths": inlined}


def parse_document(text: str, source: str = "<string>") -> OpenAPIDocument:
    """Parse JSON or YAML text into the OpenAPI object model."""
    try:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            raw = yaml.safe_load(text)
    except (yaml.YAMLError, ValueError) as e:
        # SafeLoader raises a bare ValueError for out-of-range timestamps
        raise SpecificationLoadError(source, f"not valid JSON or YAML: {e}") from e

    if not isinstance(raw, dict):
        raise SpecificationLoadError(source, f"document must be a mapping, got {type(raw).__name__}")

    try:
        return OpenAPIDocument.model_validate(_inline_refs(raw))
    except ValidationError as e:
        raise SpecificationLoadError(source, f"invalid document: {e}") from e
    except ValueError as e:
        raise SpecificationLoadError(source, str(e)) from e


def read_file(path: Union[str, Path]) -> str:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecificationLoadError(str(p), str(e)) from e


def fetch_url(url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None) -> str:
    http = session or requests
    try:
        resp = http.get(url, timeout=timeout or DEFAULT_TIMEOUT_SECONDS)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise SpecificationLoadError(url, str(e)) from e
    return resp.text


def load_file(path: Union[str, Path]) -> Specification:
    _log.debug("Reading OpenAPI specification from file %s", path)
    document = parse_document(read_file(path), source=str(path))
    return Specification.from_document(document)


def load_url(url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None) -> Specification:
    _log.debug("Fetching OpenAPI specification from %s", url)
    document = parse_document(fetch_url(url, timeout=timeout, session=session), source=url)
    return Specification.from_document(document)
