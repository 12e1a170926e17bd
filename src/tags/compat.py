"""Which kinds of type each core tag may annotate.

A type is summarized as the set of its scalar kinds: ``string``,
``number``, ``boolean``, ``bigint``, ``null``, ``array``, ``tuple`` or
``object``. Tags missing from the table annotate anything.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

_SCALAR = frozenset(("string", "number", "boolean", "bigint"))
_NUMERIC = frozenset(("number", "bigint"))
_TEXT = frozenset(("string", "array"))

TAG_TARGETS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "pk": _SCALAR,
        "unique": _SCALAR,
        "default": _SCALAR,
        "sqlType": _SCALAR,
        "decimal": _SCALAR,
        "fk": _SCALAR,
        "min": _NUMERIC,
        "max": _NUMERIC,
        "int": _NUMERIC,
        "minLength": _TEXT,
        "maxLength": _TEXT,
        "pattern": _TEXT,
        "regex": _TEXT,
        "format": _TEXT,
        "email": _TEXT,
        "uuid": _TEXT,
        "url": _TEXT,
        "index": frozenset(("object",)),
    }
)


def accepts(tag_name: str, kinds: frozenset[str]) -> bool:
    """Return whether ``tag_name`` may annotate a type made of ``kinds``."""
    allowed = TAG_TARGETS.get(tag_name)
    return allowed is None or kinds <= allowed


__all__ = ["TAG_TARGETS", "accepts"]
