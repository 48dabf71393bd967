"""Segment recognizers for path parameters.

A recognizer decides whether a concrete request segment can stand for a
``{name}`` placeholder, based on the schema type(s) declared for the
parameter::

    string            -> any non-empty text
    integer, number   -> one or more ASCII digits
    boolean           -> exactly "true" or "false"

Several declared types are OR-combined. An untyped parameter, or one with a
type we do not know, accepts anything.
"""
from __future__ import annotations

import re
from typing import Dict, FrozenSet, Iterable, Optional

from api_usage.core.errors import MissingParameterDeclaration
from api_usage.core.openapi.model import Operation, Parameter, PathItem

MATCH_ANYTHING = r".+"

TYPE_PATTERNS: Dict[str, str] = {
    "string": MATCH_ANYTHING,
    "number": r"[0-9]+",
    "integer": r"[0-9]+",
    "boolean": r"true|false",
}


def recognizer_alternatives(types: Iterable[str]) -> FrozenSet[str]:
    """Map declared schema types to the set of per-type sub-patterns."""
    alternatives = set()
    for t in types:
        pattern = TYPE_PATTERNS.get(t)
        if pattern is None:
            return frozenset({MATCH_ANYTHING})
        alternatives.add(pattern)
    if not alternatives:
        return frozenset({MATCH_ANYTHING})
    return frozenset(alternatives)


def compile_recognizer(alternatives: Iterable[str]) -> "re.Pattern[str]":
    """OR-combine sub-patterns into one pattern meant for ``fullmatch``."""
    alts = sorted(set(alternatives))
    if not alts or MATCH_ANYTHING in alts:
        return re.compile(MATCH_ANYTHING)
    return re.compile("|".join(f"(?:{a})" for a in alts))


def is_placeholder(segment: str) -> bool:
    return len(segment) > 2 and segment.startswith("{") and segment.endswith("}")


def declared_path_parameters(
    operation: Optional[Operation], path_item: PathItem
) -> Dict[str, Parameter]:
    """Path parameters visible to an operation, operation level winning."""
    params: Dict[str, Parameter] = {}
    for p in path_item.parameters:
        if p.location == "path":
            params[p.name] = p
    if operation is not None:
        for p in operation.parameters:
            if p.location == "path":
                params[p.name] = p
    return params


def recognizer_for_segment(
    segment: str, path: str, parameters: Dict[str, Parameter]
) -> FrozenSet[str]:
    name = segment[1:-1]
    param = parameters.get(name)
    if param is None:
        raise MissingParameterDeclaration(segment, path)
    return recognizer_alternatives(param.types)
