"""Diagnostics engine: code catalog, records, results and reporting."""

from diagnostics.codes import (
    CATEGORY_ORDER,
    DOCS_BASE_URL,
    ERROR_NAMESPACE_IR,
    IR_ERROR_CODES,
    CodeMeta,
    DiagnosticKey,
    get_code_meta,
)
from diagnostics.factory import make_diagnostic
from diagnostics.models import Diagnostic, DiagnosticContext, DiagnosticLocation
from diagnostics.reporter import format_diagnostics, sort_diagnostics
from diagnostics.result import DiagnosticSink, Result

__all__ = [
    "CATEGORY_ORDER",
    "DOCS_BASE_URL",
    "ERROR_NAMESPACE_IR",
    "IR_ERROR_CODES",
    "CodeMeta",
    "Diagnostic",
    "DiagnosticContext",
    "DiagnosticKey",
    "DiagnosticLocation",
    "DiagnosticSink",
    "Result",
    "format_diagnostics",
    "get_code_meta",
    "make_diagnostic",
    "sort_diagnostics",
]
