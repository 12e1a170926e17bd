"""Deterministic rendering of diagnostic lists."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import orjson

from diagnostics.codes import CATEGORY_ORDER

if TYPE_CHECKING:
    from collections.abc import Iterable

    from diagnostics.models import Diagnostic

ReportMode = Literal["pretty", "json"]

_JSON_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2


def _sort_key(diag: Diagnostic) -> tuple[int, str, str, bytes]:
    # The full canonical record breaks ties so output never depends on
    # insertion order.
    return (
        CATEGORY_ORDER.get(diag.category, len(CATEGORY_ORDER)),
        diag.code,
        diag.message,
        orjson.dumps(diag.to_dict(), option=orjson.OPT_SORT_KEYS),
    )


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    return sorted(diagnostics, key=_sort_key)


def _format_block(diag: Diagnostic) -> str:
    lines = [f"{diag.category} {diag.code} {diag.message}"]

    where = diag.location.render() if diag.location is not None else ""
    context = diag.context.render() if diag.context is not None else ""
    detail = " ".join(part for part in (where, context) if part)
    if detail:
        lines.append(f"  {detail}")

    if diag.help_url:
        lines.append(f"help: {diag.help_url}")
    return "\n".join(lines)


def format_pretty(diagnostics: Iterable[Diagnostic]) -> str:
    return "\n\n".join(_format_block(diag) for diag in sort_diagnostics(diagnostics))


def format_json(diagnostics: Iterable[Diagnostic]) -> str:
    payload = [diag.to_dict() for diag in sort_diagnostics(diagnostics)]
    return orjson.dumps(payload, option=_JSON_OPTIONS).decode("utf-8")


def format_diagnostics(
    diagnostics: Iterable[Diagnostic], mode: ReportMode = "pretty"
) -> str:
    """Render diagnostics as human-readable blocks or a canonical JSON array.

    Both renderings are byte-stable for a given set of diagnostics: the list
    is sorted by (category severity, code, message) before output, so any
    permutation of the input produces identical text.
    """
    if mode == "pretty":
        return format_pretty(diagnostics)
    if mode == "json":
        return format_json(diagnostics)
    msg = f"Unknown report mode: {mode!r}"
    raise ValueError(msg)


__all__ = [
    "ReportMode",
    "format_diagnostics",
    "format_json",
    "format_pretty",
    "sort_diagnostics",
]
