"""File fingerprints used as content-cache keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from canonical.encode import DEFAULT_ALGORITHM, digest_bytes, digest_value
from contract.artifacts import CACHE_SCHEMA_VERSION, TOOL_VERSION
from tags.vocabulary import DEFAULT_VOCABULARY
from utils import read_file

if TYPE_CHECKING:
    from pathlib import Path

    from diagnostics.result import Result
    from tags.vocabulary import TagVocabulary


@dataclass(frozen=True)
class FingerprintParts:
    content: str
    tool_version: str
    algorithm: str
    vocabulary: str

    def to_dict(self) -> dict[str, object]:
        return {
            "v": CACHE_SCHEMA_VERSION,
            "content": self.content,
            "tool": self.tool_version,
            "algo": self.algorithm,
            "tags": self.vocabulary,
        }


def fingerprint_parts(
    content: bytes,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    vocabulary: TagVocabulary = DEFAULT_VOCABULARY,
) -> FingerprintParts:
    return FingerprintParts(
        content=digest_bytes(content, algorithm),
        tool_version=TOOL_VERSION,
        algorithm=algorithm,
        vocabulary=vocabulary.signature(),
    )


def compute_fingerprint(
    content: bytes,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    vocabulary: TagVocabulary = DEFAULT_VOCABULARY,
) -> str:
    """Digest of the file bytes, tool version, algorithm and tag vocabulary.

    Changing any of them changes the fingerprint, so a cache entry is only
    reused by a run that would have produced the same output.
    """
    parts = fingerprint_parts(content, algorithm=algorithm, vocabulary=vocabulary)
    return digest_value(parts.to_dict(), algorithm)


def file_fingerprint(
    path: Path | str,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    vocabulary: TagVocabulary = DEFAULT_VOCABULARY,
) -> Result[str]:
    read = read_file(path)
    if read.value is None:
        return read.with_value(None)
    return read.with_value(
        compute_fingerprint(read.value, algorithm=algorithm, vocabulary=vocabulary)
    )


__all__ = [
    "FingerprintParts",
    "compute_fingerprint",
    "file_fingerprint",
    "fingerprint_parts",
]
