"""Canonical structural hashing of IR graphs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from canonical.encode import (
    DEFAULT_ALGORITHM,
    SUPPORTED_ALGORITHMS,
    field_payload,
    leaf_payload,
    node_digest,
    structural_payload,
    union_payload,
)
from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import DiagnosticLocation
from diagnostics.result import DiagnosticSink, Result
from ir.nodes import (
    ArrayOf,
    IntersectionOf,
    ObjectShape,
    RecursiveRef,
    Reference,
    TupleOf,
    UnionOf,
    Unknown,
)
from logger import get_logger

if TYPE_CHECKING:
    from ir.nodes import NodeId, TypeGraph

logger = get_logger(__name__)


class _GraphHasher:
    def __init__(self, graph: TypeGraph, algorithm: str) -> None:
        self.graph = graph
        self.algorithm = algorithm
        self.sink = DiagnosticSink()
        self.binders = {
            node.target
            for node in graph.nodes.values()
            if isinstance(node, RecursiveRef)
        }
        self._closed: dict[NodeId, str] = {}
        self._path: set[NodeId] = set()

    def unstable(self, detail: str, node_id: NodeId) -> None:
        node = self.graph.nodes.get(node_id)
        location = node.location if node is not None else None
        self.sink.emit(
            make_diagnostic(
                DiagnosticKey.HASH_UNSTABLE_INPUT,
                (detail,),
                location=DiagnosticLocation(
                    file_path=location.file if location else self.graph.file_path,
                    line=location.line if location else None,
                    column=location.column if location else None,
                    symbol=self.graph.symbol,
                ),
            )
        )

    def digest(
        self, node_id: NodeId, stack: tuple[NodeId, ...]
    ) -> tuple[str, frozenset[int]]:
        """Return ``(digest, free binder heights)`` for one node."""
        if node_id in self._closed:
            return self._closed[node_id], frozenset()

        node = self.graph.nodes.get(node_id)
        if node is None or node_id in self._path:
            reason = "missing node" if node is None else "cycle without recursive_ref"
            self.unstable(f"{reason} {node_id}", node_id)
            return node_digest("unknown", {"cause": "recursion"}, (), self.algorithm), frozenset()

        is_binder = node_id in self.binders
        height = len(stack)
        inner = (*stack, node_id) if is_binder else stack

        self._path.add(node_id)
        try:
            payload, children, free = self._parts(node, inner)
        finally:
            self._path.discard(node_id)

        if is_binder:
            free = free - {height}
        digest = node_digest(
            node.kind,
            structural_payload(payload, tags=node.tags, binder=is_binder),
            children,
            self.algorithm,
        )
        if not free:
            self._closed[node_id] = digest
        return digest, free

    def _parts(
        self, node: Any, stack: tuple[NodeId, ...]
    ) -> tuple[dict[str, Any], list[str], frozenset[int]]:
        free: frozenset[int] = frozenset()

        def visit(child: NodeId) -> str:
            nonlocal free
            digest, child_free = self.digest(child, stack)
            free = free | child_free
            return digest

        if isinstance(node, RecursiveRef):
            heights = [i for i, binder in enumerate(stack) if binder == node.target]
            if not heights:
                self.unstable(f"dangling recursive reference to {node.symbol}", node.node_id)
                return {"depth": None}, [], free
            height = heights[-1]
            return {"depth": len(stack) - 1 - height}, [], frozenset({height})

        if isinstance(node, Unknown):
            if node.cause == "recursion":
                self.unstable(f"unresolved recursion ({node.reason})", node.node_id)
            return leaf_payload(node), [], free

        if isinstance(node, ArrayOf):
            return {}, [visit(node.element)], free

        if isinstance(node, TupleOf):
            return {}, [visit(e) for e in node.elements], free

        if isinstance(node, ObjectShape):
            ordered = sorted(node.fields, key=lambda f: f.name)
            payload = {
                "fields": [
                    field_payload(f.name, f.optional, f.readonly, f.tags) for f in ordered
                ]
            }
            return payload, [visit(f.type) for f in ordered], free

        if isinstance(node, UnionOf):
            members = sorted(visit(m) for m in node.members)
            return union_payload(node.discriminant), members, free

        if isinstance(node, IntersectionOf):
            return {}, sorted(visit(m) for m in node.members), free

        if isinstance(node, Reference):
            return {}, [visit(node.target)], free

        return leaf_payload(node), [], free


def hash_ir(ir: TypeGraph, algorithm: str | None = None) -> Result[str]:
    """Compute the structural content hash of a canonical graph.

    The digest is order-independent for object fields and union or
    intersection members and never covers NodeIds, symbol names or file
    paths. Inputs that cannot hash stably (unresolved recursion, dangling
    recursive references) fail with ``HASH_UNSTABLE_INPUT`` and no digest.
    """
    algorithm = algorithm or getattr(ir, "algorithm", DEFAULT_ALGORITHM)
    if algorithm not in SUPPORTED_ALGORITHMS:
        msg = f"Unsupported hash algorithm: {algorithm!r}"
        raise ValueError(msg)

    hasher = _GraphHasher(ir, algorithm)
    digest, _ = hasher.digest(ir.root, ())
    if hasher.sink.has_errors:
        logger.debug("Refusing to hash %s: unstable input", ir.symbol)
        return hasher.sink.result(None)
    return hasher.sink.result(digest)


__all__ = ["hash_ir"]
