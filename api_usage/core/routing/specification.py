"""The specification aggregate: base path, metadata and route trees.

A ``Specification`` is built in one go from a parsed OpenAPI document and is
never modified afterwards. Reloading builds a new instance and swaps it in
(see ``api_usage.core.spec_store``).

Known limitation: when the document itself is ambiguous, e.g. ``/items/{id}``
with an integer id next to ``/items/{slug}`` with a string slug, a request
such as ``/items/42`` resolves to one of the candidate templates, but which
one is not a documented priority. Only "literal beats placeholder at the
same position" is guaranteed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from api_usage.core.errors import InvalidServerURL
from api_usage.core.openapi.model import SUPPORTED_METHODS, OpenAPIDocument, Server
from api_usage.core.routing.resolver import resolve
from api_usage.core.routing.tree import RouteTree, build_route_trees, split_path


@dataclass(frozen=True)
class SpecificationMeta:
    title: str
    version: str
    base_path: str
    endpoint_count: int


@dataclass(frozen=True)
class RouteMatch:
    method: str
    path: str
    template: str
    operation_id: Optional[str] = None


def derive_base_path(servers: List[Server]) -> str:
    """Path component of the first server url, without a trailing slash."""
    if not servers:
        return ""
    url = servers[0].expanded_url()
    try:
        path = urlsplit(url).path
    except ValueError as e:
        raise InvalidServerURL(url, str(e)) from e
    return path.rstrip("/")


def join_base_path(base_path: str, template: str) -> str:
    if not base_path:
        return template
    tail = template.strip("/")
    return f"{base_path}/{tail}" if tail else base_path


class Specification:
    __slots__ = ("document", "meta", "trees")

    def __init__(self, document: OpenAPIDocument, meta: SpecificationMeta, trees: Dict[str, RouteTree]):
        self.document = document
        self.meta = meta
        self.trees = trees

    @classmethod
    def from_document(cls, document: OpenAPIDocument) -> "Specification":
        base_path = derive_base_path(document.servers)
        trees = build_route_trees(document)
        meta = SpecificationMeta(
            title=document.info.title,
            version=document.info.version,
            base_path=base_path,
            endpoint_count=sum(len(t) for t in trees.values()),
        )
        return cls(document, meta, trees)

    def strip_base_path(self, uri: str) -> Optional[str]:
        base = self.meta.base_path
        if not base:
            return uri
        if uri == base:
            return ""
        if uri.startswith(base + "/"):
            return uri[len(base):]
        return None

    def match_path(self, method: str, uri: str) -> Optional[RouteMatch]:
        """Resolve a request to its declared template, ``None`` if none fits."""
        tree = self.trees.get(method.upper())
        if tree is None:
            return None

        # Gateways log the raw uri, query string included
        path = uri.partition("?")[0].partition("#")[0]
        remainder = self.strip_base_path(path)
        if remainder is None:
            return None

        node = resolve(tree, split_path(remainder))
        if node is None or node.canonical_path is None:
            return None

        return RouteMatch(
            method=tree.method,
            path=join_base_path(self.meta.base_path, node.canonical_path),
            template=node.canonical_path,
            operation_id=node.operation_id,
        )

    def routes(self) -> Dict[str, List[str]]:
        """Declared templates per method, prefixed with the base path."""
        return {
            method: [join_base_path(self.meta.base_path, t) for t in self.trees[method].templates()]
            for method in SUPPORTED_METHODS
        }
