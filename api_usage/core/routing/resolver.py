"""Backtracking search of a request path over a frozen route tree."""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from api_usage.core.routing.tree import RouteNode, RouteTree


def resolve(tree: RouteTree, segments: Sequence[str]) -> Optional[RouteNode]:
    """Return the leaf node the segments lead to, or ``None``.

    A literal child and several placeholder children can all accept the same
    segment, so a greedy descent is not enough: every candidate branch is
    pushed onto a work list and explored depth first. The literal branch is
    pushed last so it is tried first; the first branch that consumes every
    segment on a leaf wins.

    A placeholder child is never matched by its own key: a request that
    spells ``{userId}`` literally is not a value for ``{userId}``.
    """
    total = len(segments)
    pending: List[Tuple[RouteNode, int]] = [(tree.root, 0)]

    while pending:
        node, index = pending.pop()
        if index == total:
            if node.can_be_leaf:
                return node
            continue

        segment = segments[index]
        for key, child in reversed(node.param_children):
            if key == segment or child.recognizer is None:
                continue
            if child.recognizer.fullmatch(segment):
                pending.append((child, index + 1))

        literal = node.children.get(segment)
        if literal is not None and not literal.is_parameter:
            pending.append((literal, index + 1))

    return None
