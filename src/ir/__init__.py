"""IR node models, graphs and rendering."""

from ir.nodes import (
    ArrayOf,
    CanonicalIR,
    Discriminant,
    EnumMember,
    EnumOf,
    IntersectionOf,
    LiteralType,
    NodeId,
    ObjectField,
    ObjectShape,
    Primitive,
    RawGraph,
    RecursiveRef,
    Reference,
    SourceLocation,
    TupleOf,
    TypeGraph,
    TypeNode,
    UnionOf,
    Unknown,
)
from ir.render import render_node

__all__ = [
    "ArrayOf",
    "CanonicalIR",
    "Discriminant",
    "EnumMember",
    "EnumOf",
    "IntersectionOf",
    "LiteralType",
    "NodeId",
    "ObjectField",
    "ObjectShape",
    "Primitive",
    "RawGraph",
    "RecursiveRef",
    "Reference",
    "SourceLocation",
    "TupleOf",
    "TypeGraph",
    "TypeNode",
    "UnionOf",
    "Unknown",
    "render_node",
]
