from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from canonical.encode import DEFAULT_ALGORITHM, SUPPORTED_ALGORITHMS
from contract.artifacts import DEFAULT_CACHE_DIR
from resolve.resolver import DEFAULT_MAX_NODES
from tags.vocabulary import CORE_TAGS, TagVocabulary

CONFIG_FILENAME = "typeir.toml"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class TagsConfig(BaseModel):
    """Annotation vocabulary accepted by the tag parser."""

    model_config = ConfigDict(extra="forbid")

    enabled: list[str] | None = Field(
        default=None,
        description="Core tags to recognize (unset = all core tags)",
    )
    extra: list[str] = Field(
        default_factory=list,
        description="Additional free-form tags passed through without a grammar",
    )

    @field_validator("enabled")
    @classmethod
    def validate_enabled(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        unknown = sorted(set(v) - set(CORE_TAGS))
        if unknown:
            msg = (
                f"Unknown core tags: {', '.join(unknown)}. "
                f"Valid tags: {', '.join(sorted(CORE_TAGS))}"
            )
            raise ValueError(msg)
        return v

    @field_validator("extra")
    @classmethod
    def validate_extra(cls, v: list[str]) -> list[str]:
        clashes = sorted(set(v) & set(CORE_TAGS))
        if clashes:
            msg = f"Extra tags shadow core tags: {', '.join(clashes)}"
            raise ValueError(msg)
        return v

    def vocabulary(self) -> TagVocabulary:
        return TagVocabulary(enabled=self.enabled, extra=tuple(self.extra))


class TypeIRConfig(BaseModel):
    """Configuration for extraction, indexing and the content cache."""

    model_config = ConfigDict(extra="forbid")

    cache_dir: str = Field(
        default=DEFAULT_CACHE_DIR,
        description="Cache directory, relative to the repository root",
    )
    hash_algorithm: str = Field(
        default=DEFAULT_ALGORITHM,
        description="Digest used for canonical hashes and fingerprints",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-symbol extraction deadline (unset = no deadline)",
    )
    max_nodes: int = Field(
        default=DEFAULT_MAX_NODES,
        gt=0,
        description="Raw node budget per extracted symbol",
    )
    log_level: LogLevel = Field(default="WARNING", description="Root log level")
    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all TypeScript files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    nested_gitignore: bool = Field(
        default=False,
        description="Compose nested .gitignore files (default: root only)",
    )
    tags: TagsConfig = Field(default_factory=TagsConfig)

    @field_validator("hash_algorithm")
    @classmethod
    def validate_hash_algorithm(cls, v: str) -> str:
        if v not in SUPPORTED_ALGORITHMS:
            msg = (
                f"Unsupported hash algorithm '{v}'. "
                f"Valid algorithms: {', '.join(SUPPORTED_ALGORITHMS)}"
            )
            raise ValueError(msg)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ConfigError(Exception):
    """Raised when a config file exists but cannot be parsed."""


def resolve_cache_dir(root: Path, cache_dir: str) -> Path:
    """Resolve a config-provided cache_dir safely within the repo root.

    Absolute paths, home-relative paths and paths that escape the root
    after resolution are rejected.
    """
    if not cache_dir:
        msg = "cache_dir must be a non-empty relative path"
        raise ConfigError(msg)

    if cache_dir.startswith("~") or Path(cache_dir).is_absolute():
        msg = "cache_dir must be a relative path within the repo root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved = (resolved_root / cache_dir).resolve()
    except OSError as exc:
        msg = f"Failed to resolve cache_dir '{cache_dir}': {exc}"
        raise ConfigError(msg) from exc

    if resolved == resolved_root:
        msg = "cache_dir must not be the repository root itself"
        raise ConfigError(msg)

    try:
        resolved.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"cache_dir '{cache_dir}' escapes the repository root"
        raise ConfigError(msg) from exc

    return resolved


def load_config(root: Path) -> TypeIRConfig:
    """Load configuration from typeir.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return TypeIRConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return TypeIRConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "LogLevel",
    "TagsConfig",
    "TypeIRConfig",
    "load_config",
    "resolve_cache_dir",
]
