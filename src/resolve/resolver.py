"""Resolution of oracle type descriptions into a raw type graph.

A named symbol used outside the current ancestor chain is wrapped in a
``Reference`` to its declaration body. Each body is resolved once per
``resolve`` call and shared by every later reference, unless it holds a
``RecursiveRef`` to an enclosing declaration; such open bodies depend on
their chain and are resolved again at each use.
A symbol already on the chain becomes a ``RecursiveRef`` to its
pre-assigned body id, which is what keeps resolution finite.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field as dataclass_field
from typing import TYPE_CHECKING, Any

from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import DiagnosticContext, DiagnosticLocation
from diagnostics.result import DiagnosticSink, Result
from ir.nodes import (
    PRIMITIVE_NAMES,
    ArrayOf,
    EnumMember,
    EnumOf,
    IntersectionOf,
    LiteralType,
    ObjectField,
    ObjectShape,
    Primitive,
    RawGraph,
    RecursiveRef,
    Reference,
    SourceLocation,
    TupleOf,
    UnionOf,
    Unknown,
)
from logger import get_logger
from resolve.support import SUPPORT_MATRIX, describe_unsupported
from tags.parse import parse_tags
from tags.vocabulary import DEFAULT_VOCABULARY

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ir.nodes import NodeId, TypeNode, UnknownCause
    from oracle.base import Declaration, TypeOracle
    from pipeline.deadline import Deadline
    from tags.models import Tag
    from tags.vocabulary import TagVocabulary

logger = get_logger(__name__)

DEFAULT_MAX_NODES = 10_000

_DeclKey = tuple[str, str]


def _number(value: float) -> int | float:
    """Fold integral floats to ``int`` so ``1`` and ``1.0`` encode alike."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class _Frame:
    file_path: str
    name: str
    body_id: NodeId
    # body ids of enclosing frames this body points back at
    outer: set[NodeId] = dataclass_field(default_factory=set, compare=False)
    # declarations resolved beneath this frame, itself included
    names: set[_DeclKey] = dataclass_field(default_factory=set, compare=False)


class _Walk:
    """Mutable state for one ``resolve`` call."""

    def __init__(
        self,
        oracle: TypeOracle,
        vocabulary: TagVocabulary,
        deadline: Deadline | None,
        max_nodes: int,
        root_symbol: str,
    ) -> None:
        self.oracle = oracle
        self.vocabulary = vocabulary
        self.deadline = deadline
        self.max_nodes = max_nodes
        self.root_symbol = root_symbol
        self.sink = DiagnosticSink()
        self.nodes: dict[NodeId, TypeNode] = {}
        self.chain: list[_Frame] = []
        self.bodies: dict[_DeclKey, tuple[NodeId, frozenset[_DeclKey]]] = {}
        self.active: set[int] = set()
        self.dependencies: set[str] = set()
        self._counter = 0
        self._limit_id: NodeId | None = None

    # -- ids and nodes -----------------------------------------------------

    def new_id(self) -> NodeId:
        self._counter += 1
        return f"r{self._counter}"

    def add(self, node: TypeNode) -> NodeId:
        self.nodes[node.node_id] = node
        return node.node_id

    # -- diagnostics -------------------------------------------------------

    def _where(self, desc: Mapping[str, Any] | None) -> DiagnosticLocation:
        file_path = self.chain[-1].file_path if self.chain else None
        loc = (desc or {}).get("location") or {}
        return DiagnosticLocation(
            file_path=file_path,
            line=loc.get("line"),
            column=loc.get("column"),
            symbol=self.root_symbol,
        )

    def _context(self, field: str | None) -> DiagnosticContext:
        entity = self.chain[-1].name if self.chain else self.root_symbol
        return DiagnosticContext(entity=entity, field=field)

    def report(
        self,
        key: DiagnosticKey,
        args: tuple[object, ...],
        desc: Mapping[str, Any] | None,
        field: str | None,
    ) -> None:
        self.sink.emit(
            make_diagnostic(
                key,
                args,
                location=self._where(desc),
                context=self._context(field),
            )
        )

    def source_location(self, desc: Mapping[str, Any] | None) -> SourceLocation | None:
        loc = (desc or {}).get("location")
        if not loc or not self.chain:
            return None
        return SourceLocation(
            file=self.chain[-1].file_path,
            line=loc.get("line"),
            column=loc.get("column"),
        )

    def unknown(
        self,
        reason: str,
        cause: UnknownCause,
        node_id: NodeId | None = None,
        desc: Mapping[str, Any] | None = None,
    ) -> NodeId:
        return self.add(
            Unknown(
                node_id=node_id or self.new_id(),
                reason=reason,
                cause=cause,
                location=self.source_location(desc),
            )
        )

    def unsupported(
        self,
        construct: str,
        desc: Mapping[str, Any],
        field: str | None,
        node_id: NodeId | None,
        detail: str | None = None,
    ) -> NodeId:
        text = describe_unsupported(construct, detail)
        self.report(DiagnosticKey.TYPE_UNSUPPORTED, (text,), desc, field)
        return self.unknown(text, "unsupported", node_id, desc)

    # -- traversal ---------------------------------------------------------

    def declaration(self, decl: Declaration) -> NodeId:
        body_id = self.new_id()
        key = (decl.file_path, decl.name)
        frame = _Frame(decl.file_path, decl.name, body_id, names={key})
        self.chain.append(frame)
        try:
            location = (
                {"line": decl.line, "column": decl.column}
                if decl.line is not None
                else None
            )
            tags = self.tags(decl.comment, field=None, desc={"location": location})
            self.descend(decl.type, node_id=body_id, tags=tags, field=None)
        finally:
            self.chain.pop()
        if self.chain:
            self.chain[-1].names.update(frame.names)
        if not frame.outer:
            self.bodies[key] = (body_id, frozenset(frame.names))
        return body_id

    def shared_body(self, key: _DeclKey) -> NodeId | None:
        """Return the memoized body for ``key`` when reusing it is safe here.

        A body that contains a declaration now on the chain would resolve
        differently afresh, so it is not reused.
        """
        memo = self.bodies.get(key)
        if memo is None:
            return None
        body_id, names = memo
        if any((f.file_path, f.name) in names for f in self.chain):
            return None
        self.chain[-1].names.update(names)
        return body_id

    def tags(
        self,
        comment: str | None,
        *,
        field: str | None,
        desc: Mapping[str, Any] | None,
    ) -> tuple[Tag, ...]:
        if not comment:
            return ()
        parsed = parse_tags(
            comment,
            self.vocabulary,
            entity=self.chain[-1].name if self.chain else None,
            field=field,
            location=self._where(desc),
        )
        return self.sink.absorb(parsed) or ()

    def _budget_exceeded(self, node_id: NodeId | None) -> NodeId | None:
        if len(self.nodes) < self.max_nodes:
            return None
        if self._limit_id is None:
            self.sink.emit(
                make_diagnostic(
                    DiagnosticKey.RESOLUTION_LIMIT,
                    (self.max_nodes, self.root_symbol),
                    location=DiagnosticLocation(
                        file_path=self.chain[0].file_path if self.chain else None,
                        symbol=self.root_symbol,
                    ),
                )
            )
            self._limit_id = self.unknown("node budget exceeded", "unsupported")
        if node_id is not None:
            return self.unknown("node budget exceeded", "unsupported", node_id)
        return self._limit_id

    def descend(
        self,
        desc: Mapping[str, Any],
        *,
        node_id: NodeId | None = None,
        tags: tuple[Tag, ...] = (),
        field: str | None = None,
    ) -> NodeId:
        if self.deadline is not None:
            self.deadline.check()

        limited = self._budget_exceeded(node_id)
        if limited is not None:
            return limited

        key = id(desc)
        if key in self.active:
            return self.back_edge(desc, node_id, field)

        self.active.add(key)
        try:
            return self.build(desc, node_id or self.new_id(), tags, field)
        finally:
            self.active.discard(key)

    def back_edge(
        self, desc: Mapping[str, Any], node_id: NodeId | None, field: str | None
    ) -> NodeId:
        name = desc.get("name")
        frame = self.frame_named(name) if isinstance(name, str) else None
        if frame is not None:
            return self.recursive_ref(frame, node_id or self.new_id(), desc, ())
        path = ".".join(
            part for part in (self.chain[-1].name if self.chain else None, field) if part
        )
        self.report(DiagnosticKey.RECURSION_CYCLE, (path or "<anonymous>",), desc, field)
        return self.unknown("anonymous recursive shape", "recursion", node_id, desc)

    def recursive_ref(
        self,
        frame: _Frame,
        node_id: NodeId,
        desc: Mapping[str, Any],
        tags: tuple[Tag, ...],
    ) -> NodeId:
        depth = next(i for i, f in enumerate(self.chain) if f is frame)
        for inner in self.chain[depth + 1 :]:
            inner.outer.add(frame.body_id)
        return self.add(
            RecursiveRef(
                node_id=node_id,
                target=frame.body_id,
                symbol=frame.name,
                location=self.source_location(desc),
                tags=tags,
            )
        )

    def frame_named(self, name: str, file_path: str | None = None) -> _Frame | None:
        for frame in reversed(self.chain):
            if frame.name == name and (file_path is None or frame.file_path == file_path):
                return frame
        return None

    def build(
        self,
        desc: Mapping[str, Any],
        node_id: NodeId,
        tags: tuple[Tag, ...],
        field: str | None,
    ) -> NodeId:
        kind = desc.get("kind")
        location = self.source_location(desc)
        common: dict[str, Any] = {"node_id": node_id, "location": location, "tags": tags}

        if kind == "primitive":
            name = desc.get("name")
            if name in PRIMITIVE_NAMES:
                return self.add(Primitive(name=name, **common))
            return self.unsupported(str(name), desc, field, node_id)

        if kind == "literal":
            return self.literal(desc, common, field)

        if kind == "template_literal":
            return self.add(Primitive(name="string", **common))

        if kind == "array":
            element = self.descend(desc["element"], field=field)
            return self.add(ArrayOf(element=element, **common))

        if kind == "tuple":
            elements = tuple(self.descend(e, field=field) for e in desc.get("elements", ()))
            return self.add(TupleOf(elements=elements, **common))

        if kind == "object":
            fields = tuple(self.object_field(f) for f in desc.get("fields", ()))
            return self.add(ObjectShape(fields=fields, **common))

        if kind in ("union", "intersection"):
            members = tuple(self.descend(m, field=field) for m in desc.get("members", ()))
            model = UnionOf if kind == "union" else IntersectionOf
            return self.add(model(members=members, **common))

        if kind == "enum":
            return self.enum(desc, common, field)

        if kind == "ref":
            return self.reference(desc, node_id, tags, field)

        if kind == "unsupported":
            construct = str(desc.get("construct") or "unknown construct")
            return self.unsupported(construct, desc, field, node_id, desc.get("text"))

        if isinstance(kind, str) and kind in SUPPORT_MATRIX:
            return self.unsupported(kind, desc, field, node_id, desc.get("text"))

        return self.unsupported(
            f"unrecognized description kind {kind!r}", desc, field, node_id
        )

    def literal(
        self, desc: Mapping[str, Any], common: dict[str, Any], field: str | None
    ) -> NodeId:
        value = desc.get("value")
        literal_kind = desc.get("literal_kind")
        if literal_kind == "bigint":
            return self.add(LiteralType(literal_kind="bigint", value=str(value), **common))
        if isinstance(value, bool):
            return self.add(LiteralType(literal_kind="boolean", value=value, **common))
        if isinstance(value, (int, float)):
            if isinstance(value, float) and not math.isfinite(value):
                return self.unsupported(
                    "literal", desc, field, common["node_id"], f"non-finite {value}"
                )
            return self.add(
                LiteralType(literal_kind="number", value=_number(value), **common)
            )
        if isinstance(value, str):
            return self.add(LiteralType(literal_kind="string", value=value, **common))
        if value is None:
            return self.add(Primitive(name="null", **common))
        return self.unsupported("literal", desc, field, common["node_id"], repr(value))

    def enum(
        self, desc: Mapping[str, Any], common: dict[str, Any], field: str | None
    ) -> NodeId:
        members: list[EnumMember] = []
        for member in desc.get("members", ()):
            value = member.get("value")
            if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                return self.unsupported(
                    "enum", desc, field, common["node_id"], f"member {member.get('name')}"
                )
            if isinstance(value, float) and not math.isfinite(value):
                return self.unsupported(
                    "enum", desc, field, common["node_id"], f"non-finite {value}"
                )
            if not isinstance(value, str):
                value = _number(value)
            members.append(EnumMember(name=str(member["name"]), value=value))
        return self.add(EnumOf(members=tuple(members), **common))

    def object_field(self, raw: Mapping[str, Any]) -> ObjectField:
        name = str(raw["name"])
        field_tags = self.tags(raw.get("comment"), field=name, desc=raw)
        type_desc = raw.get("type")
        if type_desc is None:
            type_id = self.unsupported("missing field type", raw, name, None)
        else:
            type_id = self.descend(type_desc, field=name)
        return ObjectField(
            name=name,
            type=type_id,
            optional=bool(raw.get("optional", False)),
            readonly=bool(raw.get("readonly", False)),
            tags=field_tags,
            location=self.source_location(raw),
        )

    def reference(
        self,
        desc: Mapping[str, Any],
        node_id: NodeId,
        tags: tuple[Tag, ...],
        field: str | None,
    ) -> NodeId:
        name = str(desc.get("name"))
        if desc.get("type_arguments"):
            return self.unsupported("generic", desc, field, node_id, name)

        file_path = desc.get("file") or self.chain[-1].file_path
        if len(self.chain) == 1:
            self.dependencies.add(name)

        frame = self.frame_named(name, file_path)
        if frame is not None:
            return self.recursive_ref(frame, node_id, desc, tags)

        decl = self.oracle.lookup(file_path, name)
        if decl is None:
            self.report(DiagnosticKey.TYPE_UNRESOLVED, (name,), desc, field)
            return self.unknown(f"unresolved {name}", "unresolved", node_id, desc)

        body_id = self.shared_body((decl.file_path, decl.name))
        if body_id is None:
            logger.debug("Resolving %s referenced from %s", name, self.chain[-1].name)
            body_id = self.declaration(decl)
        return self.add(
            Reference(
                node_id=node_id,
                target=body_id,
                symbol=name,
                location=self.source_location(desc),
                tags=tags,
            )
        )


class Resolver:
    """Resolve declarations from an oracle into raw type graphs."""

    def __init__(
        self,
        oracle: TypeOracle,
        *,
        vocabulary: TagVocabulary | None = None,
        deadline: Deadline | None = None,
        max_nodes: int = DEFAULT_MAX_NODES,
    ) -> None:
        self.oracle = oracle
        self.vocabulary = vocabulary or DEFAULT_VOCABULARY
        self.deadline = deadline
        self.max_nodes = max_nodes

    def resolve(self, file_path: str, symbol_name: str) -> Result[RawGraph]:
        """Resolve one symbol into a raw graph plus diagnostics.

        Never raises for bad input: unsupported or unresolvable parts become
        ``Unknown`` nodes with a matching diagnostic. Raises
        ``ExtractionTimeout`` when the deadline expires.
        """
        walk = _Walk(
            self.oracle, self.vocabulary, self.deadline, self.max_nodes, symbol_name
        )
        decl = self.oracle.lookup(file_path, symbol_name)
        if decl is None:
            walk.sink.emit(
                make_diagnostic(
                    DiagnosticKey.TYPE_UNRESOLVED,
                    (symbol_name,),
                    location=DiagnosticLocation(file_path=file_path, symbol=symbol_name),
                )
            )
            root = walk.unknown(f"unresolved {symbol_name}", "unresolved")
        else:
            root = walk.declaration(decl)

        graph = RawGraph(
            root=root,
            nodes=walk.nodes,
            symbol=symbol_name,
            file_path=file_path,
            dependencies=tuple(sorted(walk.dependencies)),
        )
        logger.debug(
            "Resolved %s:%s into %d raw nodes", file_path, symbol_name, len(walk.nodes)
        )
        return walk.sink.result(graph)


__all__ = ["DEFAULT_MAX_NODES", "Resolver"]
