"""Canonical byte encoding and structural digests.

Digests cover ``[kind, payload, children]`` where ``children`` are child
digests. NodeIds, symbol names and source locations never enter a digest.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any, Literal

import orjson

from ir.nodes import EnumOf, LiteralType, Primitive, Unknown

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ir.nodes import Discriminant, TypeNode
    from tags.models import Tag

HashAlgorithm = Literal["sha256", "sha512", "blake2b", "sha3_256"]
SUPPORTED_ALGORITHMS: tuple[str, ...] = ("sha256", "sha512", "blake2b", "sha3_256")
DEFAULT_ALGORITHM: HashAlgorithm = "sha256"


def canonical_bytes(value: object) -> bytes:
    """Encode a JSON-compatible value with sorted keys and no whitespace."""
    return orjson.dumps(value, option=orjson.OPT_SORT_KEYS)


def digest_bytes(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    if algorithm not in SUPPORTED_ALGORITHMS:
        msg = f"Unsupported hash algorithm: {algorithm!r}"
        raise ValueError(msg)
    return hashlib.new(algorithm, data).hexdigest()


def digest_value(value: object, algorithm: str = DEFAULT_ALGORITHM) -> str:
    return digest_bytes(canonical_bytes(value), algorithm)


def node_digest(
    kind: str,
    payload: dict[str, Any],
    children: Sequence[str] = (),
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    return digest_value([kind, payload, list(children)], algorithm)


def tags_payload(tags: Iterable[Tag]) -> list[list[object]]:
    return [[tag.name, tag.raw_arguments, tag.parsed] for tag in tags]


def structural_payload(
    payload: dict[str, Any],
    *,
    tags: Sequence[Tag] = (),
    binder: bool = False,
) -> dict[str, Any]:
    """Add the per-node parts every kind shares."""
    full = dict(payload)
    if tags:
        full["tags"] = tags_payload(tags)
    if binder:
        full["binder"] = True
    return full


def field_payload(
    name: str, optional: bool, readonly: bool, tags: Sequence[Tag]
) -> dict[str, Any]:
    entry: dict[str, Any] = {"name": name, "optional": optional, "readonly": readonly}
    if tags:
        entry["tags"] = tags_payload(tags)
    return entry


def enum_payload(members: Iterable[tuple[str, object]]) -> dict[str, Any]:
    ordered = sorted(members, key=lambda member: member[0])
    return {"members": [[name, value] for name, value in ordered]}


def union_payload(discriminant: Discriminant | None) -> dict[str, Any]:
    """Digest payload of a union; member order never matters."""
    if discriminant is None:
        return {}
    values = sorted(discriminant.values, key=lambda value: (type(value).__name__, value))
    return {"discriminant": {"property": discriminant.property_name, "values": values}}


def leaf_payload(node: TypeNode) -> dict[str, Any]:
    """Digest payload for nodes without children, tags excluded."""
    if isinstance(node, Primitive):
        return {"name": node.name}
    if isinstance(node, LiteralType):
        return {"literal_kind": node.literal_kind, "value": node.value}
    if isinstance(node, EnumOf):
        return enum_payload((m.name, m.value) for m in node.members)
    if isinstance(node, Unknown):
        return {"cause": node.cause, "reason": node.reason}
    msg = f"Not a leaf node kind: {node.kind}"
    raise ValueError(msg)


__all__ = [
    "DEFAULT_ALGORITHM",
    "SUPPORTED_ALGORITHMS",
    "HashAlgorithm",
    "canonical_bytes",
    "digest_bytes",
    "digest_value",
    "enum_payload",
    "field_payload",
    "leaf_payload",
    "node_digest",
    "structural_payload",
    "tags_payload",
    "union_payload",
]
