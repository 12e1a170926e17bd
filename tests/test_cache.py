from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
import pytest

from cache.fingerprint import compute_fingerprint, file_fingerprint
from cache.layout import (
    atomic_write,
    dump_json,
    ensure_cache_layout,
    read_envelope,
    write_envelope,
)
from cache.models import CacheEntry, SymbolSummary, SymbolTable
from cache.store import ContentCache
from contract.artifacts import CACHE_DIRS
from oracle.memory import InMemoryOracle
from pipeline.extract import extract_symbol
from tags.vocabulary import TagVocabulary

if TYPE_CHECKING:
    from pathlib import Path

FILE = "src/point.ts"
POINT = {
    "kind": "object",
    "fields": [
        {"name": "x", "type": {"kind": "primitive", "name": "number"}},
        {"name": "y", "type": {"kind": "primitive", "name": "number"}},
    ],
}


def _entry() -> CacheEntry:
    oracle = InMemoryOracle()
    oracle.add(FILE, "Point", POINT)
    result = extract_symbol(FILE, "Point", oracle=oracle)
    assert result.value is not None
    assert result.value.fingerprint is not None
    return CacheEntry(
        symbol="Point",
        file_path=FILE,
        hash=result.value.fingerprint,
        ir=result.value.ir,
    )


# Layout and envelopes


def test_ensure_cache_layout_creates_every_directory(tmp_path: Path) -> None:
    assert ensure_cache_layout(tmp_path / "cache").ok

    for kind in CACHE_DIRS:
        assert (tmp_path / "cache" / kind).is_dir()


def test_dump_json_is_key_sorted() -> None:
    assert dump_json({"b": 1, "a": 2}) == b'{\n  "a": 2,\n  "b": 1\n}'


def test_atomic_write_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.json"

    assert atomic_write(target, b"first").ok
    assert atomic_write(target, b"second").ok

    assert target.read_bytes() == b"second"
    assert [p.name for p in target.parent.iterdir()] == ["out.json"]


def test_atomic_write_reports_io_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    result = atomic_write(blocker / "out.json", b"data")

    assert result.codes() == ["ADTK-IR-1003"]


def test_envelope_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "entry.json"
    assert write_envelope(path, {"answer": 42}).ok

    envelope = orjson.loads(path.read_bytes())
    assert sorted(envelope) == ["algo", "checksum", "payload", "v"]
    assert read_envelope(path).value == {"answer": 42}


def test_missing_envelope_is_a_plain_miss(tmp_path: Path) -> None:
    result = read_envelope(tmp_path / "absent.json")

    assert result.value is None
    assert result.diagnostics == ()


@pytest.mark.parametrize(
    ("raw", "detail"),
    [
        (b"not json", "malformed envelope"),
        (b'{"v": 1}', "malformed envelope"),
        (
            b'{"v": 1, "algo": "sha256", "checksum": "00", "payload": {}}',
            "checksum mismatch",
        ),
        (
            b'{"v": 7, "algo": "sha256", "checksum": "00", "payload": {}}',
            "envelope version 7",
        ),
    ],
)
def test_damaged_envelope_is_one_corruption_warning(
    tmp_path: Path, raw: bytes, detail: str
) -> None:
    path = tmp_path / "entry.json"
    path.write_bytes(raw)

    result = read_envelope(path)

    assert result.value is None
    assert result.ok
    assert result.codes() == ["ADTK-IR-4002"]
    assert detail in result.diagnostics[0].message


def test_envelope_algorithm_must_match(tmp_path: Path) -> None:
    path = tmp_path / "entry.json"
    assert write_envelope(path, {"a": 1}, "sha512").ok

    assert read_envelope(path, "sha512").value == {"a": 1}
    assert read_envelope(path, "sha256").codes() == ["ADTK-IR-4002"]


# Fingerprints


def test_fingerprint_depends_on_content_algorithm_and_vocabulary() -> None:
    base = compute_fingerprint(b"type A = string;")

    assert base == compute_fingerprint(b"type A = string;")
    assert base != compute_fingerprint(b"type A = number;")
    assert base != compute_fingerprint(b"type A = string;", algorithm="blake2b")
    assert base != compute_fingerprint(
        b"type A = string;", vocabulary=TagVocabulary(extra=["owner"])
    )


def test_file_fingerprint(tmp_path: Path) -> None:
    path = tmp_path / "a.ts"
    path.write_bytes(b"type A = string;")

    assert file_fingerprint(path).value == compute_fingerprint(b"type A = string;")
    assert file_fingerprint(tmp_path / "missing.ts").codes() == ["ADTK-IR-1003"]


# Content store


def test_store_then_lookup(tmp_path: Path) -> None:
    cache = ContentCache(tmp_path / "cache")
    entry = _entry()

    assert cache.lookup("fp", FILE, "Point").value is None
    assert cache.store("fp", entry).ok

    hit = cache.lookup("fp", FILE, "Point")
    assert hit.diagnostics == ()
    assert hit.value == entry


def test_entry_key_covers_fingerprint_file_and_symbol(tmp_path: Path) -> None:
    cache = ContentCache(tmp_path)
    keys = {
        cache.entry_key("fp", FILE, "Point"),
        cache.entry_key("fp2", FILE, "Point"),
        cache.entry_key("fp", "src/other.ts", "Point"),
        cache.entry_key("fp", FILE, "Other"),
    }

    assert len(keys) == 4


def test_lookup_rejects_entry_for_another_symbol(tmp_path: Path) -> None:
    cache = ContentCache(tmp_path / "cache")
    entry = _entry()
    misplaced = cache.entry_path("fp", FILE, "Other")
    assert write_envelope(misplaced, entry.model_dump(mode="json")).ok

    result = cache.lookup("fp", FILE, "Other")

    assert result.value is None
    assert result.codes() == ["ADTK-IR-4002"]
    assert "another symbol" in result.diagnostics[0].message


def test_lookup_rejects_invalid_entry(tmp_path: Path) -> None:
    cache = ContentCache(tmp_path / "cache")
    assert write_envelope(cache.entry_path("fp", FILE, "Point"), {"symbol": 1}).ok

    result = cache.lookup("fp", FILE, "Point")

    assert result.value is None
    assert "invalid entry" in result.diagnostics[0].message


def test_symbol_tables_round_trip(tmp_path: Path) -> None:
    cache = ContentCache(tmp_path / "cache", "blake2b")
    table = SymbolTable(
        file_path=FILE,
        file_fingerprint="fp",
        symbols=[SymbolSummary(name="Point", hash="abc", ok=True)],
    )

    assert cache.load_symbols(FILE).value is None
    assert cache.store_symbols(table).ok
    assert cache.load_symbols(FILE).value == table
