"""TypeScript-like rendering of IR nodes for messages."""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson

from ir.nodes import (
    ArrayOf,
    EnumOf,
    IntersectionOf,
    LiteralType,
    ObjectShape,
    Primitive,
    RecursiveRef,
    Reference,
    TupleOf,
    UnionOf,
    Unknown,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ir.nodes import NodeId, TypeNode

MAX_RENDER_DEPTH = 6


def _literal(node: LiteralType) -> str:
    if node.literal_kind == "string":
        return orjson.dumps(node.value).decode("utf-8")
    if node.literal_kind == "boolean":
        return "true" if node.value else "false"
    if node.literal_kind == "bigint":
        return f"{node.value}n"
    return str(node.value)


def render_node(
    nodes: Mapping[NodeId, TypeNode], node_id: NodeId, *, depth: int = 0
) -> str:
    """Render ``node_id`` as TypeScript-like source, e.g. ``{ x: number }``.

    References render as the symbol they name; nesting deeper than
    ``MAX_RENDER_DEPTH`` is elided as ``...``.
    """
    node = nodes.get(node_id)
    if node is None:
        return "unknown"
    if depth > MAX_RENDER_DEPTH:
        return "..."

    def sub(child: NodeId) -> str:
        return render_node(nodes, child, depth=depth + 1)

    if isinstance(node, Primitive):
        return node.name
    if isinstance(node, LiteralType):
        return _literal(node)
    if isinstance(node, ArrayOf):
        element = sub(node.element)
        if isinstance(nodes.get(node.element), (UnionOf, IntersectionOf)):
            element = f"({element})"
        return f"{element}[]"
    if isinstance(node, TupleOf):
        return "[" + ", ".join(sub(e) for e in node.elements) + "]"
    if isinstance(node, ObjectShape):
        if not node.fields:
            return "{}"
        parts = []
        for f in node.fields:
            prefix = "readonly " if f.readonly else ""
            marker = "?" if f.optional else ""
            parts.append(f"{prefix}{f.name}{marker}: {sub(f.type)}")
        return "{ " + "; ".join(parts) + " }"
    if isinstance(node, UnionOf):
        return " | ".join(sub(m) for m in node.members)
    if isinstance(node, IntersectionOf):
        return " & ".join(sub(m) for m in node.members)
    if isinstance(node, EnumOf):
        members = ", ".join(
            f"{m.name} = {orjson.dumps(m.value).decode('utf-8')}" for m in node.members
        )
        return f"enum {{ {members} }}"
    if isinstance(node, (Reference, RecursiveRef)):
        return node.symbol
    if isinstance(node, Unknown):
        return "unknown"
    return node.kind


__all__ = ["MAX_RENDER_DEPTH", "render_node"]
