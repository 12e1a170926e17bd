"""Determinism verification for the content cache."""

from __future__ import annotations

import filecmp
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from logger import get_logger
from pipeline.index import index_repository

if TYPE_CHECKING:
    from settings.config import TypeIRConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _relative_files(root: Path) -> set[str]:
    return {
        path.relative_to(root).as_posix() for path in root.rglob("*") if path.is_file()
    }


def verify_determinism(
    *, root: Path, cache_dir: Path, config: TypeIRConfig | None = None
) -> DeterminismResult:
    """Verify that an existing cache is exactly what a fresh run produces.

    Re-indexes ``root`` into a temporary directory with an empty cache and
    compares every file byte-for-byte against ``cache_dir``, by path
    relative to each cache root.

    Raises:
        FileNotFoundError: If cache_dir does not exist.
        NotADirectoryError: If cache_dir is not a directory.
    """
    if not cache_dir.exists():
        msg = f"Cache directory does not exist: {cache_dir}"
        raise FileNotFoundError(msg)
    if not cache_dir.is_dir():
        msg = f"Cache path is not a directory: {cache_dir}"
        raise NotADirectoryError(msg)

    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        index_repository(root=root, out_dir=temp_path, config=config)

        original = _relative_files(cache_dir)
        regenerated = _relative_files(temp_path)
        missing = sorted(original - regenerated)
        extra = sorted(regenerated - original)
        mismatches = sorted(
            rel
            for rel in original & regenerated
            if not filecmp.cmp(cache_dir / rel, temp_path / rel, shallow=False)
        )

    ok = not missing and not extra and not mismatches
    if not ok:
        logger.info(
            "Cache differs from a fresh run: %d mismatched, %d missing, %d extra",
            len(mismatches),
            len(missing),
            len(extra),
        )
    return DeterminismResult(
        ok=ok,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
    )


__all__ = ["DeterminismResult", "verify_determinism"]
