"""Pydantic records persisted in the content cache."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from contract.artifacts import CACHE_SCHEMA_VERSION
from ir.nodes import CanonicalIR


class CacheEnvelope(BaseModel):
    """Checksummed wrapper around every content-addressed cache file."""

    model_config = ConfigDict(extra="forbid")

    v: int = Field(description="Envelope schema version")
    algo: str = Field(description="Digest algorithm of the checksum")
    checksum: str = Field(description="Digest of the canonical payload bytes")
    payload: Any


class CacheEntry(BaseModel):
    """One extracted symbol: canonical IR, its hash and replayable diagnostics."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = CACHE_SCHEMA_VERSION
    symbol: str
    file_path: str
    hash: str
    ir: CanonicalIR
    sources: dict[str, str] = Field(
        default_factory=dict,
        description="Content digest of every source file the IR was built from",
    )
    diagnostics: list[dict[str, Any]] = Field(default_factory=list)


class SymbolSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    hash: str | None
    ok: bool
    dependencies: list[str] = Field(default_factory=list)
    codes: list[str] = Field(default_factory=list)


class SymbolTable(BaseModel):
    """Per-file table of extracted symbols."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = CACHE_SCHEMA_VERSION
    file_path: str
    file_fingerprint: str
    symbols: list[SymbolSummary] = Field(default_factory=list)


class IndexedFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file_fingerprint: str
    symbols: dict[str, str | None] = Field(default_factory=dict)


class RepositoryIndex(BaseModel):
    """Maps every indexed file to its fingerprint and symbol hashes."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = CACHE_SCHEMA_VERSION
    tool_version: str
    algorithm: str
    files: dict[str, IndexedFile] = Field(default_factory=dict)


class Manifest(BaseModel):
    """Summary of one indexing run."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = CACHE_SCHEMA_VERSION
    tool_version: str
    algorithm: str
    file_count: int = 0
    symbol_count: int = 0
    failed_symbols: list[str] = Field(default_factory=list)
    diagnostics: dict[str, int] = Field(default_factory=dict)
    recursive_groups: list[list[str]] = Field(default_factory=list)


__all__ = [
    "CacheEntry",
    "CacheEnvelope",
    "IndexedFile",
    "Manifest",
    "RepositoryIndex",
    "SymbolSummary",
    "SymbolTable",
]
