"""On-disk content cache for canonical IR."""

from cache.fingerprint import compute_fingerprint, file_fingerprint
from cache.layout import atomic_write, ensure_cache_layout, read_envelope, write_envelope
from cache.models import CacheEntry, Manifest, RepositoryIndex, SymbolTable
from cache.store import ContentCache

__all__ = [
    "CacheEntry",
    "ContentCache",
    "Manifest",
    "RepositoryIndex",
    "SymbolTable",
    "atomic_write",
    "compute_fingerprint",
    "ensure_cache_layout",
    "file_fingerprint",
    "read_envelope",
    "write_envelope",
]
