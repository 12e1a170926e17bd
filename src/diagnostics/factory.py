"""Diagnostic construction from catalog keys."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from diagnostics.codes import DiagnosticKey, code_url, get_code_meta
from diagnostics.models import Diagnostic, DiagnosticContext, DiagnosticLocation

if TYPE_CHECKING:
    from collections.abc import Sequence

_PLACEHOLDER = re.compile(r"%s")
MISSING_ARGUMENT = "<missing>"


def format_message(template: str, args: Sequence[object]) -> str:
    """Substitute positional ``%s`` placeholders; absent args render as ``<missing>``."""
    remaining = iter(args)

    def _next(_: re.Match[str]) -> str:
        value = next(remaining, None)
        return MISSING_ARGUMENT if value is None else str(value)

    return _PLACEHOLDER.sub(_next, template)


def make_diagnostic(
    key: DiagnosticKey | str,
    args: Sequence[object] = (),
    *,
    location: DiagnosticLocation | None = None,
    context: DiagnosticContext | None = None,
) -> Diagnostic:
    meta = get_code_meta(key)
    return Diagnostic(
        code=meta.code,
        category=meta.category,
        message=format_message(meta.template, args),
        help_url=code_url(meta),
        location=location,
        context=context,
    )


__all__ = ["MISSING_ARGUMENT", "format_message", "make_diagnostic"]
