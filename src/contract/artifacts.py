"""Cache artifact contract definitions.

This module defines the stable on-disk naming contract for the content
cache. Consumers locate cached IR, symbol tables and the repository index
only through these constants.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

# Schema version for cache envelopes and index/manifest records.
CACHE_SCHEMA_VERSION = 1

# Bumping the tool version invalidates every cached entry.
TOOL_VERSION = "0.1.0"

DEFAULT_CACHE_DIR = ".typeir/cache"

CacheKind = Literal["ir", "symbols", "index", "manifests"]
CACHE_DIRS: tuple[CacheKind, ...] = ("ir", "symbols", "index", "manifests")

CACHE_FILE_EXTENSION = ".json"
INDEX_JSON = "index/index.json"
MANIFEST_JSON = "manifests/manifest.json"

_ENTRY_NAME = re.compile(r"^[0-9a-f]{16,128}\.json$")


@dataclass(frozen=True)
class CacheArtifactSpec:
    """Specification for one cache artifact family."""

    kind: CacheKind
    pattern: str
    enveloped: bool
    required_fields_note: str


def entry_filename(key: str) -> str:
    """File name of a content-addressed entry: ``{hex key}.json``."""
    return f"{key}{CACHE_FILE_EXTENSION}"


def is_entry_filename(name: str) -> bool:
    return _ENTRY_NAME.match(name) is not None


CACHE_ARTIFACT_SPECS: dict[str, CacheArtifactSpec] = {
    "ir": CacheArtifactSpec(
        kind="ir",
        pattern="ir/{key}.json",
        enveloped=True,
        required_fields_note="CacheEntry: symbol, file_path, hash, ir, sources.",
    ),
    "symbols": CacheArtifactSpec(
        kind="symbols",
        pattern="symbols/{key}.json",
        enveloped=True,
        required_fields_note="SymbolTable: file_path, file_fingerprint, symbols.",
    ),
    "index": CacheArtifactSpec(
        kind="index",
        pattern=INDEX_JSON,
        enveloped=False,
        required_fields_note="RepositoryIndex: schema_version, algorithm, files.",
    ),
    "manifests": CacheArtifactSpec(
        kind="manifests",
        pattern=MANIFEST_JSON,
        enveloped=False,
        required_fields_note="Manifest: counts, diagnostics, recursive_groups.",
    ),
}


__all__ = [
    "CACHE_ARTIFACT_SPECS",
    "CACHE_DIRS",
    "CACHE_FILE_EXTENSION",
    "CACHE_SCHEMA_VERSION",
    "DEFAULT_CACHE_DIR",
    "INDEX_JSON",
    "MANIFEST_JSON",
    "TOOL_VERSION",
    "CacheArtifactSpec",
    "CacheKind",
    "entry_filename",
    "is_entry_filename",
]
