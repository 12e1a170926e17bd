"""File access helpers shared by the pipeline and the CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import DiagnosticLocation
from diagnostics.result import Result, err, ok


@dataclass(frozen=True)
class FileStat:
    path: str
    size: int
    mtime_ns: int


def normalize_path(file_path: str | Path, base: str | Path | None = None) -> str:
    """Return an absolute POSIX path with ``.`` and ``..`` segments folded.

    Relative paths are anchored at ``base`` (default: the working
    directory). Symlinks are not resolved.

    Examples:
        >>> normalize_path("b/../c.ts", "/repo")
        '/repo/c.ts'
    """
    raw = str(file_path).replace("\\", "/")
    path = Path(raw)
    if not path.is_absolute():
        anchor = Path(base).absolute() if base is not None else Path.cwd()
        path = anchor / path
    return Path(os.path.normpath(path)).as_posix()


def _io_failure(file_path: str, exc: OSError) -> Result[Any]:
    reason = exc.strerror or exc.__class__.__name__
    diagnostic = make_diagnostic(
        DiagnosticKey.IO_FAILURE,
        (file_path, reason),
        location=DiagnosticLocation(file_path=file_path),
    )
    return err((diagnostic,))


def read_file(file_path: str | Path) -> Result[bytes]:
    """Read a file; an OS error becomes a single ``IO_FAILURE`` diagnostic."""
    try:
        return ok(Path(file_path).read_bytes())
    except OSError as exc:
        return _io_failure(str(file_path), exc)


def stat_file(file_path: str | Path) -> Result[FileStat]:
    try:
        info = Path(file_path).stat()
    except OSError as exc:
        return _io_failure(str(file_path), exc)
    return ok(
        FileStat(path=str(file_path), size=info.st_size, mtime_ns=info.st_mtime_ns)
    )


__all__ = ["FileStat", "normalize_path", "read_file", "stat_file"]
