"""Content-addressed store for extracted symbols."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from cache.layout import (
    cache_file_for,
    ensure_cache_layout,
    read_envelope,
    write_envelope,
)
from cache.models import CacheEntry, SymbolTable
from canonical.encode import DEFAULT_ALGORITHM, digest_value
from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import DiagnosticLocation
from diagnostics.result import Result, ok
from logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)


class ContentCache:
    """Cache of ``CacheEntry`` records keyed by file fingerprint and symbol.

    Reads never fail a pass: a damaged entry is reported as a
    ``CACHE_CORRUPTED`` warning and treated as a miss. Writes go through
    temp file plus rename, so readers only ever see complete entries.
    """

    def __init__(self, root: Path, algorithm: str = DEFAULT_ALGORITHM) -> None:
        self.root = root
        self.algorithm = algorithm

    def entry_key(self, fingerprint: str, file_path: str, symbol: str) -> str:
        return digest_value(["ir", fingerprint, file_path, symbol], self.algorithm)

    def entry_path(self, fingerprint: str, file_path: str, symbol: str) -> Path:
        return cache_file_for(
            self.root, "ir", self.entry_key(fingerprint, file_path, symbol)
        )

    def symbols_path(self, file_path: str) -> Path:
        return cache_file_for(
            self.root, "symbols", digest_value(["symbols", file_path], self.algorithm)
        )

    def _corrupted(self, path: Path, detail: str) -> Result[None]:
        diagnostic = make_diagnostic(
            DiagnosticKey.CACHE_CORRUPTED,
            (f"{path} ({detail})",),
            location=DiagnosticLocation(file_path=str(path)),
        )
        return Result(diagnostics=(diagnostic,))

    def lookup(
        self, fingerprint: str, file_path: str, symbol: str
    ) -> Result[CacheEntry]:
        path = self.entry_path(fingerprint, file_path, symbol)
        read = read_envelope(path, self.algorithm)
        if read.value is None:
            logger.debug("Cache miss for %s:%s", file_path, symbol)
            return read.with_value(None)

        try:
            entry = CacheEntry.model_validate(read.value)
        except ValidationError as exc:
            logger.debug("Invalid cache entry %s: %s", path, exc)
            return self._corrupted(path, "invalid entry")

        if entry.symbol != symbol or entry.file_path != file_path:
            return self._corrupted(path, "entry belongs to another symbol")
        return ok(entry)

    def store(self, fingerprint: str, entry: CacheEntry) -> Result[None]:
        layout = ensure_cache_layout(self.root)
        if not layout.ok:
            return layout
        path = self.entry_path(fingerprint, entry.file_path, entry.symbol)
        logger.debug("Caching %s:%s at %s", entry.file_path, entry.symbol, path.name)
        return write_envelope(path, entry.model_dump(mode="json"), self.algorithm)

    def load_symbols(self, file_path: str) -> Result[SymbolTable]:
        path = self.symbols_path(file_path)
        read = read_envelope(path, self.algorithm)
        if read.value is None:
            return read.with_value(None)
        try:
            return ok(SymbolTable.model_validate(read.value))
        except ValidationError:
            return self._corrupted(path, "invalid symbol table")

    def store_symbols(self, table: SymbolTable) -> Result[None]:
        layout = ensure_cache_layout(self.root)
        if not layout.ok:
            return layout
        return write_envelope(
            self.symbols_path(table.file_path),
            table.model_dump(mode="json"),
            self.algorithm,
        )


__all__ = ["ContentCache"]
