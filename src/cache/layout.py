"""Cache directory layout, atomic writes and checksummed envelopes.

Layout under the cache root::

    ir/{key}.json          enveloped CacheEntry per (fingerprint, symbol)
    symbols/{key}.json     enveloped SymbolTable per source file
    index/index.json       RepositoryIndex
    manifests/manifest.json

Every file is key-sorted, indented JSON so identical inputs produce
identical bytes.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import ValidationError

from cache.models import CacheEnvelope
from canonical.encode import DEFAULT_ALGORITHM, SUPPORTED_ALGORITHMS, digest_value
from contract.artifacts import CACHE_DIRS, CACHE_SCHEMA_VERSION, entry_filename
from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import DiagnosticLocation
from diagnostics.result import Result, err, ok
from logger import get_logger

if TYPE_CHECKING:
    from contract.artifacts import CacheKind
    from diagnostics.models import Diagnostic

logger = get_logger(__name__)

JSON_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2


def dump_json(obj: object) -> bytes:
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(mode="json")
    return orjson.dumps(obj, option=JSON_OPTIONS)


def cache_dir_for(root: Path, kind: CacheKind) -> Path:
    return root / kind


def cache_file_for(root: Path, kind: CacheKind, key: str) -> Path:
    return cache_dir_for(root, kind) / entry_filename(key)


def _io_failure(path: Path, exc: OSError) -> Diagnostic:
    return make_diagnostic(
        DiagnosticKey.IO_FAILURE,
        (str(path), exc.strerror or exc.__class__.__name__),
        location=DiagnosticLocation(file_path=str(path)),
    )


def _corrupted(path: Path, detail: str) -> Diagnostic:
    return make_diagnostic(
        DiagnosticKey.CACHE_CORRUPTED,
        (f"{path} ({detail})",),
        location=DiagnosticLocation(file_path=str(path)),
    )


def ensure_cache_layout(root: Path) -> Result[None]:
    try:
        for kind in CACHE_DIRS:
            cache_dir_for(root, kind).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return err((_io_failure(root, exc),))
    return ok(None)


def atomic_write(path: Path, data: bytes) -> Result[None]:
    """Write ``data`` to a temp file beside ``path`` and rename it into place."""
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as handle:
            tmp_name = handle.name
            handle.write(data)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        return err((_io_failure(path, exc),))
    return ok(None)


def write_json(path: Path, obj: object) -> Result[None]:
    return atomic_write(path, dump_json(obj))


def write_envelope(
    path: Path, payload: Any, algorithm: str = DEFAULT_ALGORITHM
) -> Result[None]:
    envelope = CacheEnvelope(
        v=CACHE_SCHEMA_VERSION,
        algo=algorithm,
        checksum=digest_value(payload, algorithm),
        payload=payload,
    )
    return write_json(path, envelope)


def read_envelope(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> Result[Any]:
    """Read and verify an envelope.

    A missing file is a plain miss (no value, no diagnostics). Anything
    unreadable, malformed or failing its checksum yields a single
    ``CACHE_CORRUPTED`` warning and no value.
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return ok(None)
    except OSError as exc:
        return Result(diagnostics=(_corrupted(path, f"unreadable: {exc}"),))

    try:
        envelope = CacheEnvelope.model_validate(orjson.loads(raw))
    except (orjson.JSONDecodeError, ValidationError) as exc:
        logger.debug("Malformed cache envelope %s: %s", path, exc)
        return Result(diagnostics=(_corrupted(path, "malformed envelope"),))

    if envelope.v != CACHE_SCHEMA_VERSION:
        return Result(diagnostics=(_corrupted(path, f"envelope version {envelope.v}"),))
    if envelope.algo != algorithm or envelope.algo not in SUPPORTED_ALGORITHMS:
        return Result(diagnostics=(_corrupted(path, f"algorithm {envelope.algo}"),))
    if digest_value(envelope.payload, envelope.algo) != envelope.checksum:
        return Result(diagnostics=(_corrupted(path, "checksum mismatch"),))
    return ok(envelope.payload)


__all__ = [
    "JSON_OPTIONS",
    "atomic_write",
    "cache_dir_for",
    "cache_file_for",
    "dump_json",
    "ensure_cache_layout",
    "read_envelope",
    "write_envelope",
    "write_json",
]
