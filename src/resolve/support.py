"""Support matrix for TypeScript type constructs."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

SupportStatus = Literal["supported", "partial", "unsupported"]


@dataclass(frozen=True)
class ConstructSupport:
    status: SupportStatus
    notes: str | None = None


SUPPORT_MATRIX: MappingProxyType[str, ConstructSupport] = MappingProxyType(
    {
        "primitive": ConstructSupport("supported"),
        "literal": ConstructSupport("supported"),
        "enum": ConstructSupport("supported"),
        "array": ConstructSupport("supported"),
        "tuple": ConstructSupport("supported"),
        "object": ConstructSupport("supported", "Interfaces and type literals"),
        "union": ConstructSupport(
            "supported", "Members must share one kind category"
        ),
        "intersection": ConstructSupport(
            "supported", "Object members are merged; conflicts are reported"
        ),
        "recursive": ConstructSupport("supported", "Via recursive_ref nodes"),
        "generic": ConstructSupport(
            "partial", "Only when fully instantiated with concrete types"
        ),
        "conditional": ConstructSupport(
            "partial", "Only if already reduced to a concrete form"
        ),
        "mapped": ConstructSupport(
            "partial", "Only if already reduced to a concrete object shape"
        ),
        "template_literal": ConstructSupport("partial", "Resolved to string"),
        "index_signature": ConstructSupport(
            "unsupported", "No IR variant for index signatures"
        ),
        "function": ConstructSupport("unsupported"),
        "call_signature": ConstructSupport("unsupported"),
        "constructor": ConstructSupport("unsupported"),
        "indexed_access": ConstructSupport(
            "unsupported", "Must be resolved before extraction"
        ),
        "infer": ConstructSupport("unsupported"),
        "this": ConstructSupport("unsupported"),
        "symbol": ConstructSupport("unsupported"),
        "never": ConstructSupport(
            "unsupported", "Cannot be represented in a structural schema"
        ),
        "void": ConstructSupport("unsupported", "Use undefined instead"),
        "any": ConstructSupport("unsupported", "Violates deterministic extraction"),
        "unknown": ConstructSupport(
            "unsupported", "Too broad for structural extraction"
        ),
    }
)


def get_support(construct: str) -> ConstructSupport | None:
    return SUPPORT_MATRIX.get(construct)


def is_supported(construct: str) -> bool:
    entry = SUPPORT_MATRIX.get(construct)
    return entry is not None and entry.status == "supported"


def describe_unsupported(construct: str, detail: str | None = None) -> str:
    """Build the argument text for an unsupported-construct diagnostic."""
    entry = SUPPORT_MATRIX.get(construct)
    text = construct if detail is None else f"{construct} ({detail})"
    if entry is not None and entry.notes:
        text = f"{text}; {entry.notes}"
    return text


__all__ = [
    "SUPPORT_MATRIX",
    "ConstructSupport",
    "SupportStatus",
    "describe_unsupported",
    "get_support",
    "is_supported",
]
