"""Per-method route trees built from the OpenAPI path items.

Each tree is keyed on path segments. Literal segments and ``{name}``
placeholders both become children keyed by their text; placeholder nodes
carry a recognizer that decides which concrete segments they accept.

Nodes are mutable only while a ``TreeBuilder`` populates them. ``build()``
compiles the recognizers and turns every ``children`` mapping read-only, so
a finished ``RouteTree`` can be shared by any number of concurrent readers.
"""
from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from api_usage.core.openapi.model import SUPPORTED_METHODS, OpenAPIDocument, Operation, PathItem
from api_usage.core.routing.recognizer import (
    compile_recognizer,
    declared_path_parameters,
    is_placeholder,
    recognizer_for_segment,
)

log = logging.getLogger("api_usage.routing")


def split_path(path: str) -> List[str]:
    """Split a template or request path into its non-empty segments.

    Examples::

        "/users/{id}"  -> ["users", "{id}"]
        "users/{id}/"  -> ["users", "{id}"]
        "/"            -> []
    """
    return [part for part in path.split("/") if part]


class RouteNode:
    """One segment position in a route tree."""

    __slots__ = (
        "_alternatives",
        "can_be_leaf",
        "canonical_path",
        "children",
        "is_parameter",
        "operation_id",
        "param_children",
        "recognizer",
    )

    def __init__(self) -> None:
        self.children: Mapping[str, RouteNode] = {}
        self.is_parameter = False
        self.recognizer: Optional[re.Pattern[str]] = None
        self.can_be_leaf = False
        self.canonical_path: Optional[str] = None
        self.operation_id: Optional[str] = None
        # Placeholder children in a stable order, filled in by build()
        self.param_children: Tuple[Tuple[str, RouteNode], ...] = ()
        self._alternatives: FrozenSet[str] = frozenset()

    def __repr__(self) -> str:
        kind = "param" if self.is_parameter else "literal"
        return f"<RouteNode {kind} leaf={self.canonical_path!r} children={sorted(self.children)}>"


class RouteTree:
    """Frozen route tree for a single HTTP method."""

    __slots__ = ("method", "root")

    def __init__(self, method: str, root: RouteNode) -> None:
        self.method = method
        self.root = root

    def templates(self) -> List[str]:
        """Every declared template reachable in this tree, sorted."""
        found: List[str] = []
        pending = [self.root]
        while pending:
            node = pending.pop()
            if node.can_be_leaf and node.canonical_path is not None:
                found.append(node.canonical_path)
            pending.extend(node.children.values())
        return sorted(found)

    def __len__(self) -> int:
        return len(self.templates())


class TreeBuilder:
    """Populate the route tree of one method, then freeze it.

    Usage::

        builder = TreeBuilder("GET")
        builder.insert("/users/{id}", path_item, path_item.get)
        tree = builder.build()
    """

    def __init__(self, method: str) -> None:
        self.method = method.upper()
        self._root = RouteNode()
        self._built = False

    def insert(self, template: str, path_item: PathItem, operation: Optional[Operation] = None) -> None:
        if self._built:
            msg = "Cannot add routes after the tree is built."
            raise RuntimeError(msg)

        parameters = None
        node = self._root
        for segment in split_path(template):
            child = node.children.get(segment)
            if child is None:
                child = RouteNode()
                node.children[segment] = child  # type: ignore[index]

            if is_placeholder(segment):
                if parameters is None:
                    parameters = declared_path_parameters(operation, path_item)
                child.is_parameter = True
                # Templates sharing this position widen what it accepts
                child._alternatives = child._alternatives | recognizer_for_segment(
                    segment, template, parameters
                )
            node = child

        # Identical segment sequences collapse: the last template wins
        node.can_be_leaf = True
        node.canonical_path = template
        node.operation_id = operation.operation_id if operation is not None else None

    def build(self) -> RouteTree:
        self._built = True
        pending = [self._root]
        while pending:
            node = pending.pop()
            if node.is_parameter:
                node.recognizer = compile_recognizer(node._alternatives)
            node.param_children = tuple(
                (key, child) for key, child in sorted(node.children.items()) if child.is_parameter
            )
            pending.extend(node.children.values())
            node.children = MappingProxyType(dict(node.children))
        return RouteTree(self.method, self._root)


def build_route_trees(document: OpenAPIDocument) -> Dict[str, RouteTree]:
    """Build one frozen tree per supported method.

    Raises ``MissingParameterDeclaration`` if any template uses a placeholder
    its operation does not declare; no partial result is returned.
    """
    trees: Dict[str, RouteTree] = {}
    for method in SUPPORTED_METHODS:
        builder = TreeBuilder(method)
        for template, path_item in document.paths.items():
            operation = path_item.operation(method)
            if operation is None:
                continue
            builder.insert(template, path_item, operation)
        trees[method] = builder.build()
        log.debug("Built route tree method=%s endpoints=%d", method, len(trees[method]))
    return trees
