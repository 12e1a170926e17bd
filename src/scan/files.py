"""Discovery of TypeScript source files."""

from __future__ import annotations

from fnmatch import fnmatch
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

TYPESCRIPT_SUFFIXES: tuple[str, ...] = (".ts", ".tsx")
SKIPPED_DIRS = frozenset(("node_modules", ".git"))


def _is_within_root(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def _is_candidate(
    path: Path,
    directory: Path,
    skip_dir: str,
    gitignore_matches: Callable[[str], bool] | None,
    include_patterns: list[str] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    if not path.name.endswith(TYPESCRIPT_SUFFIXES):
        return False
    # Symlinks are skipped outright so nothing outside the root is indexed.
    if not path.is_file() or path.is_symlink() or not _is_within_root(path, directory):
        return False

    rel = path.relative_to(directory)
    if any(part in SKIPPED_DIRS for part in rel.parts[:-1]):
        return False
    if skip_dir and rel.parts and rel.parts[0] == skip_dir:
        return False
    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    rel_str = rel.as_posix()
    if include_patterns and not any(fnmatch(rel_str, pat) for pat in include_patterns):
        return False
    return not (exclude_patterns and any(fnmatch(rel_str, pat) for pat in exclude_patterns))


def _gitignore_matcher(
    root: Path, *, nested_gitignore: bool
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    paths = sorted(
        {p for p in root.rglob(".gitignore") if p.is_file()},
        key=lambda p: p.relative_to(root).as_posix(),
    )
    if not paths:
        return None
    matchers = [parse_gitignore(path) for path in paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                # Path outside this .gitignore's base directory.
                continue
        return False

    return matches


def find_typescript_files(
    directory: Path,
    *,
    skip_dir: str = ".typeir",
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Find TypeScript files under ``directory``, respecting .gitignore.

    Args:
        directory: Repository root to search
        skip_dir: Top-level directory name never scanned (the cache home)
        include_patterns: Optional fnmatch patterns; files must match one
        exclude_patterns: Optional fnmatch patterns; matching files are dropped
        nested_gitignore: Compose every nested .gitignore, not only the root one

    Yields:
        Paths sorted by their POSIX path relative to ``directory``.
    """
    gitignore_matches = _gitignore_matcher(directory, nested_gitignore=nested_gitignore)
    found = [
        path
        for path in directory.rglob("*")
        if _is_candidate(
            path,
            directory,
            skip_dir,
            gitignore_matches,
            include_patterns,
            exclude_patterns,
        )
    ]
    found.sort(key=lambda p: p.relative_to(directory).as_posix())
    yield from found


__all__ = ["TYPESCRIPT_SUFFIXES", "find_typescript_files"]
