from __future__ import annotations

import orjson
import pytest

from diagnostics.codes import (
    IR_ERROR_CODES,
    DiagnosticKey,
    get_code_meta,
    namespace_of,
)
from diagnostics.factory import MISSING_ARGUMENT, format_message, make_diagnostic
from diagnostics.models import Diagnostic, DiagnosticContext, DiagnosticLocation
from diagnostics.reporter import ReportMode, format_diagnostics, sort_diagnostics
from diagnostics.result import DiagnosticSink, Result, err, ok


def _sample() -> list[Diagnostic]:
    return [
        make_diagnostic(DiagnosticKey.TAG_UNKNOWN, ("@fancyTag",)),
        make_diagnostic(
            DiagnosticKey.TYPE_UNSUPPORTED,
            ("function",),
            location=DiagnosticLocation(file_path="src/a.ts", line=3, column=5),
            context=DiagnosticContext(entity="Handler", field="onEvent"),
        ),
        make_diagnostic(DiagnosticKey.COMPOSITE_COLLAPSED, ("union", "string")),
        make_diagnostic(DiagnosticKey.TYPE_UNRESOLVED, ("Missing",)),
    ]


# Catalog


def test_codes_are_unique_and_namespaced() -> None:
    codes = list(IR_ERROR_CODES.values())
    assert len(codes) == len(set(codes))
    assert all(code.startswith("ADTK-IR-") for code in codes)
    assert all(len(code.rsplit("-", 1)[-1]) == 4 for code in codes)


def test_catalog_categories() -> None:
    assert DiagnosticKey.TYPE_UNSUPPORTED.meta.category == "error"
    assert DiagnosticKey.COMPOSITE_COLLAPSED.meta.category == "info"
    assert DiagnosticKey.TAG_UNKNOWN.meta.category == "warning"
    assert DiagnosticKey.TAG_DUPLICATE.meta.category == "warning"
    assert DiagnosticKey.TAG_INCOMPATIBLE_TYPE.meta.category == "error"
    assert DiagnosticKey.TAG_FIELD_NOT_FOUND.meta.category == "error"
    assert DiagnosticKey.CACHE_CORRUPTED.meta.category == "warning"
    assert DiagnosticKey.HASH_UNSTABLE_INPUT.meta.category == "error"


def test_get_code_meta_by_name() -> None:
    meta = get_code_meta("UNION_HETEROGENEOUS")
    assert meta.code == "ADTK-IR-2001"
    assert meta.help_url == "https://afterdark.dev/errors/ADTK-IR-2001"


def test_get_code_meta_unknown_name() -> None:
    with pytest.raises(ValueError, match="Unknown diagnostic key"):
        get_code_meta("NOT_A_KEY")


@pytest.mark.parametrize(
    ("code", "namespace"),
    [
        ("ADTK-IR-1004", "resolution"),
        ("ADTK-IR-2003", "structure"),
        ("ADTK-IR-3002", "annotation"),
        ("ADTK-IR-3006", "annotation"),
        ("ADTK-IR-4001", "determinism"),
    ],
)
def test_namespace_of(code: str, namespace: str) -> None:
    assert namespace_of(code) == namespace


def test_factory_public_names() -> None:
    import diagnostics.factory as factory

    assert sorted(factory.__all__) == ["MISSING_ARGUMENT", "format_message", "make_diagnostic"]
    assert not hasattr(factory, "diag_error")


# Construction


def test_format_message_fills_missing_arguments() -> None:
    assert format_message("a %s b %s", ("x",)) == f"a x b {MISSING_ARGUMENT}"
    assert format_message("no placeholders", ("ignored",)) == "no placeholders"


def test_make_diagnostic_fields() -> None:
    diag = make_diagnostic(DiagnosticKey.TYPE_UNSUPPORTED, ("function",))

    assert diag.code == "ADTK-IR-1001"
    assert diag.category == "error"
    assert diag.is_error
    assert diag.message == "Unsupported TypeScript construct: function"
    assert diag.help_url is not None
    assert diag.help_url.endswith("ADTK-IR-1001")


def test_to_dict_omits_absent_parts() -> None:
    diag = make_diagnostic(
        DiagnosticKey.TYPE_UNRESOLVED,
        ("Missing",),
        location=DiagnosticLocation(file_path="src/a.ts"),
    )

    payload = diag.to_dict()

    assert payload["location"] == {"filePath": "src/a.ts"}
    assert "context" not in payload
    assert Diagnostic.from_dict(payload) == diag


def test_location_render() -> None:
    assert DiagnosticLocation().render() == ""
    assert DiagnosticLocation(file_path="a.ts").render() == "a.ts"
    assert DiagnosticLocation(file_path="a.ts", line=2, column=7).render() == "a.ts:2:7"


# Results


def test_result_fails_only_on_errors() -> None:
    warning = make_diagnostic(DiagnosticKey.TAG_UNKNOWN, ("@x",))
    error = make_diagnostic(DiagnosticKey.TYPE_UNRESOLVED, ("X",))

    assert ok(1, [warning]).ok
    assert not Result(value=1, diagnostics=(warning, error)).ok
    assert Result(value=1, diagnostics=(warning, error)).errors == (error,)


def test_err_requires_a_diagnostic() -> None:
    with pytest.raises(ValueError, match="at least one diagnostic"):
        err(())


def test_sink_rollback_discards_later_diagnostics() -> None:
    sink = DiagnosticSink()
    sink.emit(make_diagnostic(DiagnosticKey.TAG_UNKNOWN, ("@a",)))
    mark = sink.mark()
    sink.emit(make_diagnostic(DiagnosticKey.TYPE_UNRESOLVED, ("A",)))
    assert sink.has_errors

    sink.rollback(mark)

    assert len(sink) == 1
    assert not sink.has_errors


def test_sink_absorb_returns_value() -> None:
    sink = DiagnosticSink()
    warning = make_diagnostic(DiagnosticKey.TAG_UNKNOWN, ("@a",))

    assert sink.absorb(ok("value", [warning])) == "value"
    assert sink.snapshot() == (warning,)


# Reporting


def test_sort_orders_by_severity_then_code() -> None:
    ordered = sort_diagnostics(_sample())
    assert [d.code for d in ordered] == [
        "ADTK-IR-1001",
        "ADTK-IR-1002",
        "ADTK-IR-3001",
        "ADTK-IR-2004",
    ]


def test_json_report_payload() -> None:
    payload = orjson.loads(format_diagnostics(_sample(), "json"))

    assert payload[0]["code"] == "ADTK-IR-1001"
    assert payload[0]["helpUrl"].endswith("ADTK-IR-1001")


@pytest.mark.parametrize("mode", ["json", "pretty"])
def test_report_is_permutation_stable(mode: ReportMode) -> None:
    diagnostics = _sample()
    rotated = diagnostics[2:] + diagnostics[:2]

    forward = format_diagnostics(diagnostics, mode)

    assert format_diagnostics(list(reversed(diagnostics)), mode) == forward
    assert format_diagnostics(rotated, mode) == forward


def test_pretty_report_blocks() -> None:
    text = format_diagnostics(_sample(), "pretty")

    first_block = text.split("\n\n")[0].splitlines()
    assert first_block[0] == (
        "error ADTK-IR-1001 Unsupported TypeScript construct: function"
    )
    assert first_block[1] == "  src/a.ts:3:5 entity: Handler field: onEvent"
    assert first_block[2] == "help: https://afterdark.dev/errors/ADTK-IR-1001"


def test_unknown_report_mode() -> None:
    with pytest.raises(ValueError, match="Unknown report mode"):
        format_diagnostics(_sample(), "xml")  # type: ignore[arg-type]
