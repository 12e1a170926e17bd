"""Closed catalog of IR diagnostic codes.

Codes are grouped into stable numeric namespaces:

- 1xxx extraction / resolution
- 2xxx normalization / structure
- 3xxx annotation / tag
- 4xxx determinism / hashing

The catalog is fixed at import time and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Literal

DIAGNOSTIC_PREFIX = "ADTK"
ERROR_NAMESPACE_IR = f"{DIAGNOSTIC_PREFIX}-IR"
DOCS_BASE_URL = "https://afterdark.dev/errors"

DiagnosticCategory = Literal["error", "warning", "info"]

# Ordered by severity so sorting and filtering are deterministic downstream.
CATEGORY_ORDER: MappingProxyType[str, int] = MappingProxyType(
    {"error": 0, "warning": 1, "info": 2}
)


@dataclass(frozen=True)
class CodeMeta:
    """Metadata bound to a single diagnostic code."""

    code: str
    category: DiagnosticCategory
    template: str
    docs_slug: str

    @property
    def help_url(self) -> str:
        return code_url(self)


def _ir(number: int, category: DiagnosticCategory, template: str) -> CodeMeta:
    code = f"{ERROR_NAMESPACE_IR}-{number:04d}"
    return CodeMeta(code=code, category=category, template=template, docs_slug=code)


class DiagnosticKey(Enum):
    """Every diagnostic the core can emit."""

    TYPE_UNSUPPORTED = _ir(1001, "error", "Unsupported TypeScript construct: %s")
    TYPE_UNRESOLVED = _ir(1002, "error", "Unable to resolve type: %s")
    IO_FAILURE = _ir(1003, "error", "I/O failure for %s: %s")
    RESOLUTION_TIMEOUT = _ir(1004, "error", "Extraction timed out after %s seconds: %s")
    RESOLUTION_LIMIT = _ir(1005, "error", "Type graph exceeds node budget of %s: %s")

    UNION_HETEROGENEOUS = _ir(
        2001, "error", "Union must be homogeneous; offending member: %s"
    )
    INTERSECTION_CONFLICT = _ir(
        2002, "error", "Conflicting property in intersection: %s"
    )
    RECURSION_CYCLE = _ir(
        2003, "error", "Recursive type detected without resolvable $ref at: %s"
    )
    COMPOSITE_COLLAPSED = _ir(
        2004, "info", "Single-member %s collapsed to its member: %s"
    )

    TAG_UNKNOWN = _ir(3001, "warning", "Unknown JSDoc tag: %s")
    TAG_MALFORMED = _ir(3002, "error", "Malformed or invalid JSDoc tag: %s")
    TAG_DUPLICATE = _ir(3003, "warning", "Duplicate JSDoc tag ignored: %s")
    TAG_INCOMPATIBLE_TYPE = _ir(
        3005, "error", "JSDoc tag %s cannot be applied to type %s"
    )
    TAG_FIELD_NOT_FOUND = _ir(3006, "error", "Field %s named by %s does not exist")

    HASH_UNSTABLE_INPUT = _ir(
        4001, "error", "Non-deterministic input detected during hashing: %s"
    )
    CACHE_CORRUPTED = _ir(4002, "warning", "Cache entry is corrupted and was ignored: %s")

    @property
    def meta(self) -> CodeMeta:
        return self.value

    @property
    def code(self) -> str:
        return self.value.code


IR_ERROR_CODES: MappingProxyType[str, str] = MappingProxyType(
    {key.name: key.code for key in DiagnosticKey}
)


def code_url(meta: CodeMeta, base_url: str = DOCS_BASE_URL) -> str:
    """Return the documentation URL for a code."""
    return f"{base_url.rstrip('/')}/{meta.docs_slug}"


def get_code_meta(key: DiagnosticKey | str) -> CodeMeta:
    """Look up code metadata by key or key name."""
    if isinstance(key, str):
        try:
            key = DiagnosticKey[key]
        except KeyError as exc:
            msg = f"Unknown diagnostic key: {key!r}"
            raise ValueError(msg) from exc
    return key.meta


def namespace_of(code: str) -> str:
    """Return the namespace group for a code (``resolution``, ``structure``...)."""
    number = code.rsplit("-", 1)[-1]
    return {
        "1": "resolution",
        "2": "structure",
        "3": "annotation",
        "4": "determinism",
    }.get(number[:1], "unknown")


__all__ = [
    "CATEGORY_ORDER",
    "DIAGNOSTIC_PREFIX",
    "DOCS_BASE_URL",
    "ERROR_NAMESPACE_IR",
    "IR_ERROR_CODES",
    "CodeMeta",
    "DiagnosticCategory",
    "DiagnosticKey",
    "code_url",
    "get_code_meta",
    "namespace_of",
]
