from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from scan.files import _gitignore_matcher, find_typescript_files

if TYPE_CHECKING:
    from pathlib import Path


def _write(root: Path, rel_path: str, content: str = "export type T = string;\n") -> None:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _found(root: Path, **kwargs: object) -> list[str]:
    return [
        path.relative_to(root).as_posix()
        for path in find_typescript_files(root, **kwargs)  # type: ignore[arg-type]
    ]


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_find_typescript_files_skips_symlinked_dirs(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write(repo_root, "src/module.ts")

    external_root = tmp_path / "external"
    _write(external_root, "leak.ts")

    symlink_dir = repo_root / "linked"
    symlink_dir.symlink_to(external_root, target_is_directory=True)

    results = _found(repo_root)

    assert "src/module.ts" in results
    assert "linked/leak.ts" not in results


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_find_typescript_files_skips_symlinked_files(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write(repo_root, "src/module.ts")
    (repo_root / "src" / "alias.ts").symlink_to(repo_root / "src" / "module.ts")

    assert _found(repo_root) == ["src/module.ts"]


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_nested_gitignore_skips_symlinked_gitignore(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write(repo_root, "src/module.ts")
    (repo_root / ".gitignore").write_text("*.d.ts\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "outside.gitignore").write_text(
        "src/module.ts\n", encoding="utf-8"
    )

    symlink_gitignore = repo_root / "linked.gitignore"
    symlink_gitignore.symlink_to(external_root / "outside.gitignore")

    matcher = _gitignore_matcher(repo_root, nested_gitignore=True)
    assert matcher is not None
    assert matcher(str(repo_root / "src" / "module.ts")) is False


def test_results_are_sorted_and_filtered_by_suffix(tmp_path: Path) -> None:
    _write(tmp_path, "b.ts")
    _write(tmp_path, "a/view.tsx")
    _write(tmp_path, "a/readme.md", "# docs\n")
    _write(tmp_path, "script.js", "export {};\n")

    assert _found(tmp_path) == ["a/view.tsx", "b.ts"]


def test_skipped_directories_are_never_scanned(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "node_modules/lib/index.ts")
    _write(tmp_path, ".git/hooks/x.ts")
    _write(tmp_path, ".typeir/cache/stale.ts")

    assert _found(tmp_path) == ["src/a.ts"]
    assert _found(tmp_path, skip_dir="") == [".typeir/cache/stale.ts", "src/a.ts"]


def test_root_gitignore_is_respected(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "dist/a.ts")
    (tmp_path / ".gitignore").write_text("dist/\n", encoding="utf-8")

    assert _found(tmp_path) == ["src/a.ts"]


def test_nested_gitignore_only_applies_when_enabled(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "src/generated.ts")
    (tmp_path / "src" / ".gitignore").write_text("generated.ts\n", encoding="utf-8")

    assert _found(tmp_path) == ["src/a.ts", "src/generated.ts"]
    assert _found(tmp_path, nested_gitignore=True) == ["src/a.ts"]


def test_include_and_exclude_patterns(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "src/a.test.ts")
    _write(tmp_path, "scripts/b.ts")

    assert _found(tmp_path, include_patterns=["src/*"]) == ["src/a.test.ts", "src/a.ts"]
    assert _found(tmp_path, exclude_patterns=["*.test.ts"]) == [
        "scripts/b.ts",
        "src/a.ts",
    ]
