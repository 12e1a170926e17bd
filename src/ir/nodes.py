"""IR node models.

A type graph is an ID-addressed arena: composite nodes refer to their
children by ``NodeId`` and cycles only ever appear as explicit
``RecursiveRef`` nodes, never as object back-pointers.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from tags.models import Tag

NodeId = str

PrimitiveName = Literal["string", "number", "boolean", "bigint", "null", "undefined"]
LiteralKind = Literal["string", "number", "boolean", "bigint"]
UnknownCause = Literal["unsupported", "unresolved", "recursion", "heterogeneous"]

PRIMITIVE_NAMES: frozenset[str] = frozenset(
    ("string", "number", "boolean", "bigint", "null", "undefined")
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SourceLocation(_Frozen):
    file: str
    line: int | None = None
    column: int | None = None


class _Node(_Frozen):
    node_id: NodeId
    location: SourceLocation | None = None
    tags: tuple[Tag, ...] = ()


class Primitive(_Node):
    kind: Literal["primitive"] = "primitive"
    name: PrimitiveName


class LiteralType(_Node):
    kind: Literal["literal"] = "literal"
    literal_kind: LiteralKind
    value: bool | int | float | str = Field(
        description="Literal value; bigint literals are kept as decimal strings"
    )


class ArrayOf(_Node):
    kind: Literal["array"] = "array"
    element: NodeId


class TupleOf(_Node):
    kind: Literal["tuple"] = "tuple"
    elements: tuple[NodeId, ...] = ()


class ObjectField(_Frozen):
    name: str
    type: NodeId
    optional: bool = False
    readonly: bool = False
    tags: tuple[Tag, ...] = ()
    location: SourceLocation | None = None


class ObjectShape(_Node):
    kind: Literal["object"] = "object"
    fields: tuple[ObjectField, ...] = ()


class Discriminant(_Frozen):
    """Field whose literal type tells the object members of a union apart.

    ``values`` follow the order of the union's members.
    """

    property_name: str
    values: tuple[bool | int | float | str, ...]


class UnionOf(_Node):
    kind: Literal["union"] = "union"
    members: tuple[NodeId, ...] = ()
    discriminant: Discriminant | None = None


class IntersectionOf(_Node):
    kind: Literal["intersection"] = "intersection"
    members: tuple[NodeId, ...] = ()


class EnumMember(_Frozen):
    name: str
    value: int | float | str


class EnumOf(_Node):
    kind: Literal["enum"] = "enum"
    members: tuple[EnumMember, ...] = ()


class Reference(_Node):
    kind: Literal["reference"] = "reference"
    target: NodeId
    symbol: str


class RecursiveRef(_Node):
    kind: Literal["recursive_ref"] = "recursive_ref"
    target: NodeId
    symbol: str


class Unknown(_Node):
    kind: Literal["unknown"] = "unknown"
    reason: str
    cause: UnknownCause = "unsupported"


TypeNode = Annotated[
    Union[
        Primitive,
        LiteralType,
        ArrayOf,
        TupleOf,
        ObjectShape,
        UnionOf,
        IntersectionOf,
        EnumOf,
        Reference,
        RecursiveRef,
        Unknown,
    ],
    Field(discriminator="kind"),
]


class TypeGraph(_Frozen):
    """Arena of nodes reachable from ``root`` for one extracted symbol."""

    root: NodeId
    nodes: dict[NodeId, TypeNode]
    symbol: str
    file_path: str
    dependencies: tuple[str, ...] = Field(
        default=(), description="Symbols the root declaration references directly"
    )

    def node(self, node_id: NodeId) -> TypeNode:
        return self.nodes[node_id]

    @property
    def root_node(self) -> TypeNode:
        return self.nodes[self.root]


RawGraph = TypeGraph


class CanonicalIR(TypeGraph):
    """Normalized graph: sorted collections and content-derived NodeIds."""

    algorithm: str = "sha256"


__all__ = [
    "PRIMITIVE_NAMES",
    "ArrayOf",
    "CanonicalIR",
    "Discriminant",
    "EnumMember",
    "EnumOf",
    "IntersectionOf",
    "LiteralKind",
    "LiteralType",
    "NodeId",
    "ObjectField",
    "ObjectShape",
    "Primitive",
    "PrimitiveName",
    "RawGraph",
    "RecursiveRef",
    "Reference",
    "SourceLocation",
    "TupleOf",
    "TypeGraph",
    "TypeNode",
    "UnionOf",
    "Unknown",
    "UnknownCause",
]
