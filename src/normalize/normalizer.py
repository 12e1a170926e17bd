"""Normalization of raw type graphs into canonical IR.

The input graph is folded bottom-up into structural terms. Each term
carries its digest and the set of enclosing recursive binders it refers
to. Binders are the nodes some ``RecursiveRef`` points at; a recursive
reference digests as its relative depth on the binder stack, so terms
are comparable wherever they occur. The canonical arena is then emitted
top-down with content-derived NodeIds.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Literal

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
from diagnostics.models import DiagnosticContext, DiagnosticLocation
from diagnostics.result import DiagnosticSink, Result
from ir.nodes import (
    ArrayOf,
    CanonicalIR,
    Discriminant,
    EnumMember,
    EnumOf,
    IntersectionOf,
    LiteralType,
    ObjectField,
    ObjectShape,
    Primitive,
    RecursiveRef,
    Reference,
    TupleOf,
    UnionOf,
    Unknown,
)
from ir.render import render_node
from logger import get_logger
from tags.compat import accepts

if TYPE_CHECKING:
    from ir.nodes import NodeId, SourceLocation, TypeGraph, TypeNode
    from pipeline.deadline import Deadline
    from tags.models import Tag

logger = get_logger(__name__)

Category = Literal["object", "value", "neutral"]

HETEROGENEOUS_REASON = "heterogeneous union members dropped"
_NEUTRAL_PRIMITIVES = frozenset(("null", "undefined"))


@dataclass(frozen=True)
class _FieldTerm:
    name: str
    type: _Term
    optional: bool
    readonly: bool
    tags: tuple[Tag, ...]
    location: SourceLocation | None
    raw_type: NodeId


@dataclass(frozen=True, eq=False)
class _Term:
    kind: str
    digest: str
    raw_id: NodeId
    payload: dict[str, Any]
    children: tuple[_Term, ...] = ()
    fields: tuple[_FieldTerm, ...] = ()
    tags: tuple[Tag, ...] = ()
    location: SourceLocation | None = None
    attrs: dict[str, Any] = field(default_factory=dict)
    free: frozenset[int] = frozenset()
    binder: bool = False
    height: int | None = None
    category: Category = "neutral"


def _category(kind: str, attrs: dict[str, Any], children: tuple[_Term, ...]) -> Category:
    if kind == "primitive":
        return "neutral" if attrs["name"] in _NEUTRAL_PRIMITIVES else "value"
    if kind in ("literal", "enum", "array", "tuple"):
        return "value"
    if kind in ("object", "intersection"):
        return "object"
    if kind == "reference":
        return children[0].category
    if kind == "union":
        for child in children:
            if child.category != "neutral":
                return child.category
    return "neutral"


class _Normalizer:
    def __init__(
        self, graph: TypeGraph, algorithm: str, deadline: Deadline | None
    ) -> None:
        self.graph = graph
        self.nodes = graph.nodes
        self.algorithm = algorithm
        self.deadline = deadline
        self.sink = DiagnosticSink()
        self.binders = {
            node.target for node in self.nodes.values() if isinstance(node, RecursiveRef)
        }
        self.dead: set[NodeId] = set()
        self.closed: dict[NodeId, _Term] = {}
        self._closed_log: list[NodeId] = []
        self.path: set[NodeId] = set()
        self.arena: dict[NodeId, TypeNode] = {}

    # -- diagnostics -------------------------------------------------------

    def report(
        self,
        key: DiagnosticKey,
        args: tuple[object, ...],
        node_id: NodeId,
        field_name: str | None,
    ) -> None:
        node = self.nodes.get(node_id)
        location = node.location if node is not None else None
        self.sink.emit(
            make_diagnostic(
                key,
                args,
                location=DiagnosticLocation(
                    file_path=location.file if location else self.graph.file_path,
                    line=location.line if location else None,
                    column=location.column if location else None,
                    symbol=self.graph.symbol,
                ),
                context=DiagnosticContext(entity=self.graph.symbol, field=field_name),
            )
        )

    def render(self, node_id: NodeId) -> str:
        return render_node(self.nodes, node_id)

    # -- terms -------------------------------------------------------------

    def seal(
        self,
        kind: str,
        raw_id: NodeId,
        payload: dict[str, Any],
        *,
        children: tuple[_Term, ...] = (),
        fields: tuple[_FieldTerm, ...] = (),
        tags: tuple[Tag, ...] = (),
        location: SourceLocation | None = None,
        attrs: dict[str, Any] | None = None,
        free: frozenset[int] | None = None,
        height: int | None = None,
        binder: bool = False,
    ) -> _Term:
        attrs = attrs or {}
        if kind == "object":
            payload = {
                **payload,
                "fields": [
                    field_payload(f.name, f.optional, f.readonly, f.tags) for f in fields
                ],
            }
            child_digests = [f.type.digest for f in fields]
        else:
            child_digests = [child.digest for child in children]
        if free is None:
            free = frozenset().union(
                *(c.free for c in children), *(f.type.free for f in fields)
            )
        digest = node_digest(
            kind,
            structural_payload(payload, tags=tags, binder=binder),
            child_digests,
            self.algorithm,
        )
        return _Term(
            kind=kind,
            digest=digest,
            raw_id=raw_id,
            payload=payload,
            children=children,
            fields=fields,
            tags=tags,
            location=location,
            attrs=attrs,
            free=free,
            binder=binder,
            height=height,
            category=_category(kind, attrs, children),
        )

    def as_binder(self, term: _Term, height: int) -> _Term:
        digest = node_digest(
            term.kind,
            structural_payload(term.payload, tags=term.tags, binder=True),
            [f.type.digest for f in term.fields] or [c.digest for c in term.children],
            self.algorithm,
        )
        return replace(term, digest=digest, binder=True, free=term.free - {height})

    def unknown_term(
        self, raw_id: NodeId, reason: str, cause: str, location: SourceLocation | None = None
    ) -> _Term:
        attrs = {"reason": reason, "cause": cause}
        return self.seal("unknown", raw_id, dict(attrs), attrs=attrs, location=location)

    # -- folding -----------------------------------------------------------

    def build(
        self, node_id: NodeId, stack: tuple[NodeId, ...], field_name: str | None
    ) -> _Term:
        if self.deadline is not None:
            self.deadline.check()

        cached = self.closed.get(node_id)
        if cached is not None:
            return cached

        node = self.nodes.get(node_id)
        if node is None:
            return self.unknown_term(node_id, f"missing node {node_id}", "unresolved")
        if node_id in self.path:
            self.report(DiagnosticKey.RECURSION_CYCLE, (node_id,), node_id, field_name)
            return self.unknown_term(node_id, "cycle without recursive_ref", "recursion")

        self.path.add(node_id)
        try:
            if node_id in self.binders and node_id not in self.dead:
                height = len(stack)
                mark = self.sink.mark()
                memo_mark = len(self._closed_log)
                term = self.build_node(node, (*stack, node_id), field_name, binder=True)
                if height in term.free:
                    term = self.as_binder(term, height)
                else:
                    # Every reference to this binder was dropped; fold it again
                    # as a plain node so inner depths stay consistent.
                    self.sink.rollback(mark)
                    for stale in self._closed_log[memo_mark:]:
                        self.closed.pop(stale, None)
                    del self._closed_log[memo_mark:]
                    self.dead.add(node_id)
                    term = self.build_node(node, stack, field_name, binder=False)
            else:
                term = self.build_node(node, stack, field_name, binder=False)
        finally:
            self.path.discard(node_id)

        if node.tags:
            self.check_tags(node.tags, term, node_id, None, entity=True)
        if not term.free:
            self.closed[node_id] = term
            self._closed_log.append(node_id)
        return term

    def build_node(
        self,
        node: TypeNode,
        stack: tuple[NodeId, ...],
        field_name: str | None,
        *,
        binder: bool,
    ) -> _Term:
        common: dict[str, Any] = {"tags": node.tags, "location": node.location}

        if isinstance(node, Primitive):
            return self.seal(
                "primitive", node.node_id, leaf_payload(node), attrs={"name": node.name}, **common
            )
        if isinstance(node, LiteralType):
            attrs = {"literal_kind": node.literal_kind, "value": node.value}
            return self.seal("literal", node.node_id, leaf_payload(node), attrs=attrs, **common)
        if isinstance(node, EnumOf):
            members = tuple(sorted(node.members, key=lambda m: m.name))
            return self.seal(
                "enum", node.node_id, leaf_payload(node), attrs={"members": members}, **common
            )
        if isinstance(node, Unknown):
            attrs = {"reason": node.reason, "cause": node.cause}
            return self.seal("unknown", node.node_id, leaf_payload(node), attrs=attrs, **common)
        if isinstance(node, RecursiveRef):
            return self.recursive_ref(node, stack, common)
        if isinstance(node, ArrayOf):
            element = self.build(node.element, stack, field_name)
            return self.seal("array", node.node_id, {}, children=(element,), **common)
        if isinstance(node, TupleOf):
            elements = tuple(self.build(e, stack, field_name) for e in node.elements)
            return self.seal("tuple", node.node_id, {}, children=elements, **common)
        if isinstance(node, ObjectShape):
            fields = [
                _FieldTerm(
                    name=f.name,
                    type=self.build(f.type, stack, f.name),
                    optional=f.optional,
                    readonly=f.readonly,
                    tags=f.tags,
                    location=f.location,
                    raw_type=f.type,
                )
                for f in node.fields
            ]
            merged = self.merge_fields(fields, node.node_id)
            for f in merged:
                if f.tags:
                    self.check_tags(f.tags, f.type, node.node_id, f.name, entity=False)
            return self.seal("object", node.node_id, {}, fields=merged, **common)
        if isinstance(node, UnionOf):
            return self.union(node, stack, field_name, binder=binder)
        if isinstance(node, IntersectionOf):
            return self.intersection(node, stack, field_name, binder=binder)
        if isinstance(node, Reference):
            target = self.build(node.target, stack, field_name)
            return self.seal(
                "reference",
                node.node_id,
                {},
                children=(target,),
                attrs={"symbol": node.symbol},
                **common,
            )
        msg = f"Unhandled node kind: {node.kind}"
        raise TypeError(msg)

    def recursive_ref(
        self, node: RecursiveRef, stack: tuple[NodeId, ...], common: dict[str, Any]
    ) -> _Term:
        heights = [i for i, binder in enumerate(stack) if binder == node.target]
        attrs = {"symbol": node.symbol, "target": node.target}
        if not heights:
            # Dangling; the hasher refuses it.
            return self.seal(
                "recursive_ref", node.node_id, {"depth": None}, attrs=attrs, **common
            )
        height = heights[-1]
        return self.seal(
            "recursive_ref",
            node.node_id,
            {"depth": len(stack) - 1 - height},
            attrs=attrs,
            free=frozenset({height}),
            height=height,
            **common,
        )

    def flatten(self, member_ids: tuple[NodeId, ...], model: type) -> list[NodeId]:
        flat: list[NodeId] = []
        pending = list(reversed(member_ids))
        seen: set[NodeId] = set()
        while pending:
            member_id = pending.pop()
            member = self.nodes.get(member_id)
            nested = (
                isinstance(member, model)
                and not member.tags
                and member_id not in self.binders
                and member_id not in seen
            )
            if nested:
                seen.add(member_id)
                pending.extend(reversed(member.members))
            else:
                flat.append(member_id)
        return flat

    def members(
        self,
        kind: str,
        member_ids: tuple[NodeId, ...],
        model: type,
        stack: tuple[NodeId, ...],
        field_name: str | None,
    ) -> list[tuple[NodeId, _Term]]:
        """Build flattened members, splicing same-kind terms left by a collapse."""
        pairs: list[tuple[NodeId, _Term]] = []
        for member_id in self.flatten(member_ids, model):
            term = self.build(member_id, stack, field_name)
            if term.kind == kind and not term.tags and not term.binder:
                pairs.extend((child.raw_id, child) for child in term.children)
            else:
                pairs.append((member_id, term))
        return pairs

    def merge_fields(
        self, fields: list[_FieldTerm], owner: NodeId
    ) -> tuple[_FieldTerm, ...]:
        """Merge same-named fields; the first declaration wins a conflict."""
        merged: dict[str, _FieldTerm] = {}
        for candidate in fields:
            previous = merged.get(candidate.name)
            if previous is None:
                merged[candidate.name] = candidate
                continue
            if previous.type.digest != candidate.type.digest:
                detail = (
                    f"{candidate.name} ({self.render(previous.raw_type)} "
                    f"vs {self.render(candidate.raw_type)})"
                )
                self.report(
                    DiagnosticKey.INTERSECTION_CONFLICT, (detail,), owner, candidate.name
                )
                continue
            if previous.optional and not candidate.optional:
                merged[candidate.name] = replace(previous, optional=False)
        return tuple(sorted(merged.values(), key=lambda f: f.name))

    def _dedup_sorted(self, terms: list[_Term]) -> tuple[_Term, ...]:
        unique: dict[str, _Term] = {}
        for term in terms:
            unique.setdefault(term.digest, term)
        return tuple(sorted(unique.values(), key=lambda t: t.digest))

    def _composite(
        self,
        kind: str,
        node: UnionOf | IntersectionOf,
        members: tuple[_Term, ...],
        field_name: str | None,
        *,
        binder: bool,
    ) -> _Term:
        if len(members) == 1 and not node.tags and not binder:
            only = members[0]
            self.report(
                DiagnosticKey.COMPOSITE_COLLAPSED,
                (kind, self.render(only.raw_id)),
                node.node_id,
                field_name,
            )
            return only
        discriminant = self.discriminant(members) if kind == "union" else None
        return self.seal(
            kind,
            node.node_id,
            union_payload(discriminant),
            children=members,
            tags=node.tags,
            location=node.location,
            attrs={"discriminant": discriminant},
        )

    def discriminant(self, members: tuple[_Term, ...]) -> Discriminant | None:
        """Find a required field whose literal type differs across every member.

        Only unions of object members qualify; field names are tried in
        sorted order and the first match wins.
        """
        bodies = [self._object_body(term) for term in members]
        if len(bodies) < 2 or any(body is None for body in bodies):
            return None
        tables = [
            {f.name: f for f in body.fields} for body in bodies if body is not None
        ]
        common = set(tables[0]).intersection(*tables[1:])
        for name in sorted(common):
            literals = [self._literal(table[name]) for table in tables]
            if any(literal is None for literal in literals):
                continue
            keys = {(lit["literal_kind"], lit["value"]) for lit in literals if lit}
            if len(keys) == len(literals):
                values = tuple(lit["value"] for lit in literals if lit)
                return Discriminant(property_name=name, values=values)
        return None

    def _literal(self, entry: _FieldTerm) -> dict[str, Any] | None:
        term = entry.type
        while term.kind == "reference" and not term.binder:
            term = term.children[0]
        if entry.optional or term.kind != "literal":
            return None
        return term.attrs

    def union(
        self,
        node: UnionOf,
        stack: tuple[NodeId, ...],
        field_name: str | None,
        *,
        binder: bool,
    ) -> _Term:
        expected: Category | None = None
        offending: NodeId | None = None
        kept: list[_Term] = []
        for member_id, term in self.members(
            "union", node.members, UnionOf, stack, field_name
        ):
            if term.category == "neutral":
                kept.append(term)
                continue
            if expected is None:
                expected = term.category
            if term.category == expected:
                kept.append(term)
            elif offending is None:
                offending = member_id

        if offending is not None:
            self.report(
                DiagnosticKey.UNION_HETEROGENEOUS,
                (self.render(offending),),
                node.node_id,
                field_name,
            )
            kept.append(
                self.unknown_term(node.node_id, HETEROGENEOUS_REASON, "heterogeneous")
            )

        return self._composite(
            "union", node, self._dedup_sorted(kept), field_name, binder=binder
        )

    def _object_body(self, term: _Term) -> _Term | None:
        while term.kind == "reference" and not term.binder:
            term = term.children[0]
        if term.kind == "object" and not term.binder:
            return term
        return None

    def intersection(
        self,
        node: IntersectionOf,
        stack: tuple[NodeId, ...],
        field_name: str | None,
        *,
        binder: bool,
    ) -> _Term:
        terms = [
            term
            for _, term in self.members(
                "intersection", node.members, IntersectionOf, stack, field_name
            )
        ]
        bodies = [self._object_body(term) for term in terms]
        if terms and all(body is not None for body in bodies):
            fields = [f for body in bodies if body is not None for f in body.fields]
            merged = self.merge_fields(fields, node.node_id)
            return self.seal(
                "object",
                node.node_id,
                {},
                fields=merged,
                tags=node.tags,
                location=node.location,
            )
        return self._composite(
            "intersection", node, self._dedup_sorted(terms), field_name, binder=binder
        )

    # -- tag checks --------------------------------------------------------

    def type_kinds(self, term: _Term) -> frozenset[str] | None:
        """Kinds a term can take, or ``None`` when it cannot be classified."""
        while term.kind == "reference":
            term = term.children[0]
        if term.kind == "primitive":
            name = term.attrs["name"]
            return frozenset(("null" if name in _NEUTRAL_PRIMITIVES else name,))
        if term.kind == "literal":
            return frozenset((term.attrs["literal_kind"],))
        if term.kind == "enum":
            return frozenset(
                "string" if isinstance(m.value, str) else "number"
                for m in term.attrs["members"]
            )
        if term.kind in ("array", "tuple", "object"):
            return frozenset((term.kind,))
        if term.kind == "union":
            kinds: set[str] = set()
            for child in term.children:
                child_kinds = self.type_kinds(child)
                if child_kinds is None:
                    return None
                kinds |= child_kinds
            if len(kinds) > 1:
                kinds.discard("null")
            return frozenset(kinds)
        return None

    def check_tags(
        self,
        tags: tuple[Tag, ...],
        term: _Term,
        node_id: NodeId,
        field_name: str | None,
        *,
        entity: bool,
    ) -> None:
        """Report tags that cannot annotate the type they are attached to."""
        kinds = self.type_kinds(term)
        for tag in tags:
            if tag.parsed is None:
                continue
            if tag.name == "index":
                if entity:
                    self.check_index(tag, term, kinds, node_id)
                continue
            if kinds is not None and not accepts(tag.name, kinds):
                self.report(
                    DiagnosticKey.TAG_INCOMPATIBLE_TYPE,
                    (f"@{tag.name}", self.render(term.raw_id)),
                    node_id,
                    field_name,
                )

    def check_index(
        self, tag: Tag, term: _Term, kinds: frozenset[str] | None, node_id: NodeId
    ) -> None:
        body = term
        while body.kind == "reference":
            body = body.children[0]
        if body.kind != "object":
            if kinds is not None:
                self.report(
                    DiagnosticKey.TAG_INCOMPATIBLE_TYPE,
                    ("@index", self.render(term.raw_id)),
                    node_id,
                    None,
                )
            return
        names = {f.name for f in body.fields}
        for name in (tag.parsed or {}).get("fields", ()):
            if name not in names:
                self.report(
                    DiagnosticKey.TAG_FIELD_NOT_FOUND, (name, "@index"), node_id, None
                )

    # -- emission ----------------------------------------------------------

    def emit(self, term: _Term, binder_ids: tuple[NodeId, ...]) -> NodeId:
        if term.free:
            ident = node_digest(
                "open",
                {"binders": [binder_ids[h] for h in sorted(term.free)]},
                [term.digest],
                self.algorithm,
            )
        else:
            ident = term.digest
        if ident in self.arena:
            return ident

        inner = (*binder_ids, ident) if term.binder else binder_ids
        common: dict[str, Any] = {
            "node_id": ident,
            "tags": term.tags,
            "location": term.location,
        }
        attrs = term.attrs
        node: TypeNode
        if term.kind == "primitive":
            node = Primitive(name=attrs["name"], **common)
        elif term.kind == "literal":
            node = LiteralType(
                literal_kind=attrs["literal_kind"], value=attrs["value"], **common
            )
        elif term.kind == "enum":
            members: tuple[EnumMember, ...] = attrs["members"]
            node = EnumOf(members=members, **common)
        elif term.kind == "unknown":
            node = Unknown(reason=attrs["reason"], cause=attrs["cause"], **common)
        elif term.kind == "recursive_ref":
            target = (
                inner[term.height] if term.height is not None else attrs["target"]
            )
            node = RecursiveRef(target=target, symbol=attrs["symbol"], **common)
        elif term.kind == "array":
            node = ArrayOf(element=self.emit(term.children[0], inner), **common)
        elif term.kind == "tuple":
            node = TupleOf(
                elements=tuple(self.emit(c, inner) for c in term.children), **common
            )
        elif term.kind == "object":
            node = ObjectShape(
                fields=tuple(
                    ObjectField(
                        name=f.name,
                        type=self.emit(f.type, inner),
                        optional=f.optional,
                        readonly=f.readonly,
                        tags=f.tags,
                        location=f.location,
                    )
                    for f in term.fields
                ),
                **common,
            )
        elif term.kind in ("union", "intersection"):
            member_ids = tuple(self.emit(c, inner) for c in term.children)
            if term.kind == "union":
                node = UnionOf(
                    members=member_ids,
                    discriminant=attrs.get("discriminant"),
                    **common,
                )
            else:
                node = IntersectionOf(members=member_ids, **common)
        elif term.kind == "reference":
            node = Reference(
                target=self.emit(term.children[0], inner),
                symbol=attrs["symbol"],
                **common,
            )
        else:
            msg = f"Unhandled term kind: {term.kind}"
            raise TypeError(msg)

        self.arena.setdefault(ident, node)
        return ident


def normalize(
    graph: TypeGraph,
    *,
    algorithm: str | None = None,
    deadline: Deadline | None = None,
) -> Result[CanonicalIR]:
    """Normalize a raw (or already canonical) graph into canonical IR.

    Structurally equal subtrees collapse into one node, unions are checked
    for homogeneity, object intersections are merged and every unordered
    collection is sorted. ``normalize`` is idempotent on its own output.
    Raises ``ExtractionTimeout`` when the deadline expires.
    """
    algorithm = algorithm or getattr(graph, "algorithm", DEFAULT_ALGORITHM)
    if algorithm not in SUPPORTED_ALGORITHMS:
        msg = f"Unsupported hash algorithm: {algorithm!r}"
        raise ValueError(msg)

    normalizer = _Normalizer(graph, algorithm, deadline)
    root_term = normalizer.build(graph.root, (), None)
    root = normalizer.emit(root_term, ())
    canonical = CanonicalIR(
        root=root,
        nodes=normalizer.arena,
        symbol=graph.symbol,
        file_path=graph.file_path,
        dependencies=graph.dependencies,
        algorithm=algorithm,
    )
    logger.debug(
        "Normalized %s: %d raw nodes -> %d canonical nodes",
        graph.symbol,
        len(graph.nodes),
        len(normalizer.arena),
    )
    return normalizer.sink.result(canonical)


__all__ = ["HETEROGENEOUS_REASON", "normalize"]
