from __future__ import annotations

import shutil
from pathlib import Path

import orjson

from cache.layout import read_envelope
from cache.models import Manifest, RepositoryIndex
from cache.store import ContentCache
from contract.artifacts import INDEX_JSON, MANIFEST_JSON
from contract.validation import validate_cache
from pipeline.index import index_repository

FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "mini_repo"


def _copy_mini_repo_fixture(root: Path) -> None:
    shutil.copytree(FIXTURE_ROOT, root)


def _index(repo_root: Path, out_dir: Path) -> Manifest:
    result = index_repository(root=repo_root, out_dir=out_dir)
    assert result.value is not None
    return result.value


def test_index_writes_manifest_and_index(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_mini_repo_fixture(repo_root)
    out_dir = repo_root / ".typeir" / "cache"

    manifest = _index(repo_root, out_dir)

    assert manifest.file_count == 2
    assert manifest.symbol_count == 5
    assert manifest.failed_symbols == ["src/models.ts#Handler"]
    assert manifest.diagnostics == {"ADTK-IR-1001": 1}
    assert manifest.recursive_groups == [["src/models.ts#Tree"]]

    index = RepositoryIndex.model_validate(orjson.loads((out_dir / INDEX_JSON).read_bytes()))
    assert sorted(index.files) == ["src/address.ts", "src/models.ts"]
    symbols = index.files["src/models.ts"].symbols
    assert symbols["Handler"] is None
    assert symbols["User"] is not None
    assert Manifest.model_validate(
        orjson.loads((out_dir / MANIFEST_JSON).read_bytes())
    ) == manifest


def test_index_skips_gitignored_files(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_mini_repo_fixture(repo_root)

    manifest = _index(repo_root, tmp_path / "cache")

    assert not any("ignored/" in name for name in manifest.failed_symbols)
    assert manifest.file_count == 2


def test_index_output_is_valid_cache(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_mini_repo_fixture(repo_root)
    out_dir = tmp_path / "cache"
    _index(repo_root, out_dir)

    result = validate_cache(out_dir)

    assert result.ok, [m.to_dict() for m in result.errors]
    assert result.warnings == []


def test_symbol_tables_record_dependencies(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_mini_repo_fixture(repo_root)
    out_dir = tmp_path / "cache"
    _index(repo_root, out_dir)

    table = ContentCache(out_dir).load_symbols("src/models.ts").value

    assert table is not None
    summaries = {s.name: s for s in table.symbols}
    assert summaries["User"].dependencies == ["Address", "Role"]
    assert summaries["Handler"].ok is False
    assert summaries["Handler"].codes == ["ADTK-IR-1001"]


def test_reindex_is_byte_identical_and_prunes_stale_entries(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_mini_repo_fixture(repo_root)
    out_dir = tmp_path / "cache"
    _index(repo_root, out_dir)
    before = {p.name: p.read_bytes() for p in (out_dir / "ir").iterdir()}

    _index(repo_root, out_dir)
    after = {p.name: p.read_bytes() for p in (out_dir / "ir").iterdir()}
    assert after == before

    (repo_root / "src" / "address.ts").write_text(
        "export interface Address { street: string }\n", encoding="utf-8"
    )
    _index(repo_root, out_dir)
    changed = {p.name for p in (out_dir / "ir").iterdir()}

    assert len(changed) == len(before)
    assert changed != set(before)
    for path in (out_dir / "ir").iterdir():
        assert read_envelope(path).value is not None
