"""Canonical encoding and content hashing."""

from canonical.encode import (
    DEFAULT_ALGORITHM,
    SUPPORTED_ALGORITHMS,
    canonical_bytes,
    digest_value,
    node_digest,
)
from canonical.hash import hash_ir

__all__ = [
    "DEFAULT_ALGORITHM",
    "SUPPORTED_ALGORITHMS",
    "canonical_bytes",
    "digest_value",
    "hash_ir",
    "node_digest",
]
