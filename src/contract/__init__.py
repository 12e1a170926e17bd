"""Stable on-disk contract of the content cache.

Consumers of the cache should depend on these exports only.
"""

from contract.artifacts import (
    CACHE_ARTIFACT_SPECS,
    CACHE_DIRS,
    CACHE_SCHEMA_VERSION,
    DEFAULT_CACHE_DIR,
    INDEX_JSON,
    MANIFEST_JSON,
    TOOL_VERSION,
    CacheArtifactSpec,
)


def __getattr__(name: str) -> object:
    if name in {"ValidationMessage", "ValidationResult", "validate_cache"}:
        from contract.validation import (
            ValidationMessage,
            ValidationResult,
            validate_cache,
        )

        return {
            "ValidationMessage": ValidationMessage,
            "ValidationResult": ValidationResult,
            "validate_cache": validate_cache,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "CACHE_ARTIFACT_SPECS",
    "CACHE_DIRS",
    "CACHE_SCHEMA_VERSION",
    "DEFAULT_CACHE_DIR",
    "INDEX_JSON",
    "MANIFEST_JSON",
    "TOOL_VERSION",
    "CacheArtifactSpec",
    "ValidationMessage",
    "ValidationResult",
    "validate_cache",
]
