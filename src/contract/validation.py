"""Validation helpers for the content cache contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import orjson
from pydantic import ValidationError

from cache.layout import cache_dir_for, read_envelope
from cache.models import CacheEntry, Manifest, RepositoryIndex, SymbolTable
from canonical.encode import DEFAULT_ALGORITHM
from canonical.hash import hash_ir
from contract.artifacts import (
    CACHE_DIRS,
    CACHE_SCHEMA_VERSION,
    INDEX_JSON,
    MANIFEST_JSON,
    is_entry_filename,
)

if TYPE_CHECKING:
    from pathlib import Path


class _SchemaModel(Protocol):
    schema_version: int

    @classmethod
    def model_validate(cls, obj: Any) -> _SchemaModel: ...


@dataclass(frozen=True)
class ValidationMessage:
    artifact: str
    path: Path
    message: str

    def location(self) -> str:
        return str(self.path)

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": self.artifact,
            "path": str(self.path),
            "message": self.message,
        }


@dataclass
class ValidationResult:
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error(self, artifact: str, path: Path, message: str) -> None:
        self.errors.append(
            ValidationMessage(artifact=artifact, path=path, message=message)
        )

    def warn(self, artifact: str, path: Path, message: str) -> None:
        self.warnings.append(
            ValidationMessage(artifact=artifact, path=path, message=message)
        )


def validate_cache(cache_dir: Path) -> ValidationResult:
    """Check a cache directory against the on-disk contract.

    Verifies the directory layout, every envelope checksum, every record
    schema and that each cached IR still hashes to its recorded hash.
    """
    result = ValidationResult()

    if not cache_dir.exists():
        result.error("cache_dir", cache_dir, "Cache directory does not exist.")
        return result
    if not cache_dir.is_dir():
        result.error("cache_dir", cache_dir, "Cache path is not a directory.")
        return result

    for kind in CACHE_DIRS:
        if not cache_dir_for(cache_dir, kind).is_dir():
            result.error(
                kind, cache_dir_for(cache_dir, kind), "Required directory is missing."
            )

    index = _validate_json(cache_dir / INDEX_JSON, "index", RepositoryIndex, result)
    _validate_json(cache_dir / MANIFEST_JSON, "manifests", Manifest, result)
    algorithm = DEFAULT_ALGORITHM
    if isinstance(index, RepositoryIndex):
        algorithm = index.algorithm

    for path in _entries(cache_dir_for(cache_dir, "ir"), "ir", result):
        entry = _validate_envelope(path, "ir", CacheEntry, algorithm, result)
        if isinstance(entry, CacheEntry):
            rehashed = hash_ir(entry.ir, algorithm)
            if rehashed.value != entry.hash:
                result.error(
                    "ir", path, "Cached IR does not hash to its recorded hash."
                )

    for path in _entries(cache_dir_for(cache_dir, "symbols"), "symbols", result):
        _validate_envelope(path, "symbols", SymbolTable, algorithm, result)

    return result


def _entries(directory: Path, artifact: str, result: ValidationResult) -> list[Path]:
    if not directory.is_dir():
        return []
    paths: list[Path] = []
    for path in sorted(directory.iterdir()):
        if path.is_file() and is_entry_filename(path.name):
            paths.append(path)
        else:
            result.warn(artifact, path, "Unexpected file in cache directory.")
    return paths


def _check_schema_version(
    artifact: str, path: Path, record: _SchemaModel, result: ValidationResult
) -> None:
    if record.schema_version != CACHE_SCHEMA_VERSION:
        result.error(
            artifact,
            path,
            "Schema version mismatch: "
            f"expected {CACHE_SCHEMA_VERSION}, got {record.schema_version}.",
        )


def _validate_json(
    path: Path, artifact: str, model: type[_SchemaModel], result: ValidationResult
) -> _SchemaModel | None:
    if not path.is_file():
        result.error(artifact, path, "Required artifact file is missing.")
        return None
    try:
        record = model.model_validate(orjson.loads(path.read_bytes()))
    except (OSError, orjson.JSONDecodeError) as exc:
        result.error(artifact, path, f"Invalid JSON: {exc}.")
        return None
    except ValidationError as exc:
        result.error(artifact, path, f"Schema validation failed: {exc}.")
        return None
    _check_schema_version(artifact, path, record, result)
    return record


def _validate_envelope(
    path: Path,
    artifact: str,
    model: type[_SchemaModel],
    algorithm: str,
    result: ValidationResult,
) -> _SchemaModel | None:
    read = read_envelope(path, algorithm)
    if read.value is None:
        for diagnostic in read.diagnostics:
            result.error(artifact, path, diagnostic.message)
        return None
    try:
        record = model.model_validate(read.value)
    except ValidationError as exc:
        result.error(artifact, path, f"Schema validation failed: {exc}.")
        return None
    _check_schema_version(artifact, path, record, result)
    return record


__all__ = [
    "ValidationMessage",
    "ValidationResult",
    "validate_cache",
]
