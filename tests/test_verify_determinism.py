from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from pipeline.index import index_repository
from verify.verify import DeterminismResult, verify_determinism

FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "mini_repo"


def _write_minimal_repo(root: Path) -> None:
    (root / "src").mkdir(parents=True, exist_ok=True)
    (root / "src" / "point.ts").write_text(
        "export interface Point { x: number; y: number }\n",
        encoding="utf-8",
    )


def test_verify_determinism_requires_cache_dir(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    _write_minimal_repo(repo_root)

    missing_dir = tmp_path / "missing"
    with pytest.raises(FileNotFoundError, match="Cache directory does not exist"):
        verify_determinism(root=repo_root, cache_dir=missing_dir)


def test_verify_determinism_rejects_file_as_cache_dir(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    not_a_dir = tmp_path / "cache"
    not_a_dir.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryError):
        verify_determinism(root=repo_root, cache_dir=not_a_dir)


def test_verify_determinism_relative_paths_and_sorted_mismatches(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    _write_minimal_repo(repo_root)

    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()

    for rel_path, content in (
        ("b.txt", "b-original"),
        ("a.txt", "a-original"),
        ("c.txt", "c-original"),
    ):
        path = cache_dir / rel_path
        path.write_text(content, encoding="utf-8")

    def _fake_index_repository(*, root: Path, out_dir: Path, config: object) -> None:
        (out_dir / "a.txt").write_text("a-original", encoding="utf-8")
        (out_dir / "b.txt").write_text("b-regenerated", encoding="utf-8")
        (out_dir / "d.txt").write_text("d-new", encoding="utf-8")

    monkeypatch.setattr(
        "verify.verify.index_repository",
        _fake_index_repository,
    )

    result = verify_determinism(root=repo_root, cache_dir=cache_dir)

    assert result == DeterminismResult(
        ok=False,
        mismatches=("b.txt",),
        missing=("c.txt",),
        extra=("d.txt",),
    )


def test_verify_determinism_accepts_fresh_cache(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    shutil.copytree(FIXTURE_ROOT, repo_root)
    cache_dir = tmp_path / "cache"
    index_repository(root=repo_root, out_dir=cache_dir)

    result = verify_determinism(root=repo_root, cache_dir=cache_dir)

    assert result == DeterminismResult(ok=True)


def test_verify_determinism_detects_stale_cache(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    _write_minimal_repo(repo_root)
    cache_dir = tmp_path / "cache"
    index_repository(root=repo_root, out_dir=cache_dir)

    (repo_root / "src" / "point.ts").write_text(
        "export interface Point { x: number; y: string }\n",
        encoding="utf-8",
    )
    result = verify_determinism(root=repo_root, cache_dir=cache_dir)

    assert not result.ok
    assert "index/index.json" in result.mismatches
