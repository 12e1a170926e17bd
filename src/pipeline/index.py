"""Sequential indexing of every declaration in a repository."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from cache.fingerprint import compute_fingerprint
from cache.layout import cache_dir_for, ensure_cache_layout, write_json
from cache.models import (
    IndexedFile,
    Manifest,
    RepositoryIndex,
    SymbolSummary,
    SymbolTable,
)
from cache.store import ContentCache
from contract.artifacts import INDEX_JSON, MANIFEST_JSON, TOOL_VERSION
from diagnostics.result import DiagnosticSink, Result
from graph.algos import build_reference_graph, find_cycles, symbol_key
from logger import get_logger
from oracle.treesitter import TreeSitterOracle
from pipeline.extract import extract_symbol
from scan.files import find_typescript_files
from settings.config import load_config, resolve_cache_dir
from utils import read_file

if TYPE_CHECKING:
    from pathlib import Path

    from oracle.base import TypeOracle
    from settings.config import TypeIRConfig

logger = get_logger(__name__)


def _prune(directory: Path, live: set[Path]) -> None:
    """Drop entries this run neither read nor wrote."""
    if not directory.is_dir():
        return
    for path in directory.glob("*.json"):
        if path not in live:
            logger.debug("Pruning stale cache entry %s", path.name)
            path.unlink(missing_ok=True)


def index_repository(
    *,
    root: Path,
    out_dir: Path | None = None,
    config: TypeIRConfig | None = None,
    oracle: TypeOracle | None = None,
) -> Result[Manifest]:
    """Extract every declaration under ``root`` into the content cache.

    Files are processed one at a time in sorted order. Besides the per-symbol
    IR entries this writes a symbol table per file, ``index/index.json`` and
    ``manifests/manifest.json``; entries left over from earlier runs are
    pruned so the cache reflects exactly the current sources.

    Args:
        root: Repository root to index
        out_dir: Cache directory (default: ``cache_dir`` from typeir.toml)
        config: Optional configuration, loaded from ``root`` when omitted
        oracle: Type oracle (default: a tree-sitter oracle rooted at ``root``)

    Returns:
        The run manifest together with every diagnostic of every symbol.
    """
    if config is None:
        config = load_config(root)
    if out_dir is None:
        out_dir = resolve_cache_dir(root, config.cache_dir)
    if oracle is None:
        oracle = TreeSitterOracle(root)

    sink = DiagnosticSink()
    sink.absorb(ensure_cache_layout(out_dir))
    if sink.has_errors:
        return sink.result(None)

    algorithm = config.hash_algorithm
    vocabulary = config.tags.vocabulary()
    cache = ContentCache(out_dir, algorithm)

    skip_dir = ""
    if out_dir.resolve().is_relative_to(root.resolve()):
        rel = out_dir.resolve().relative_to(root.resolve())
        skip_dir = rel.parts[0] if rel.parts else ""

    index = RepositoryIndex(tool_version=TOOL_VERSION, algorithm=algorithm)
    references: dict[str, set[str]] = {}
    codes: Counter[str] = Counter()
    failed: list[str] = []
    live_entries: set[Path] = set()
    live_tables: set[Path] = set()
    symbol_count = 0

    for path in find_typescript_files(
        root,
        skip_dir=skip_dir,
        include_patterns=config.include or None,
        exclude_patterns=config.exclude or None,
        nested_gitignore=config.nested_gitignore,
    ):
        file_path = path.relative_to(root).as_posix()
        source = sink.absorb(read_file(path))
        if source is None:
            failed.append(file_path)
            continue

        fingerprint = compute_fingerprint(
            source, algorithm=algorithm, vocabulary=vocabulary
        )
        table = SymbolTable(file_path=file_path, file_fingerprint=fingerprint)
        indexed = IndexedFile(file_fingerprint=fingerprint)

        for name in oracle.declarations(file_path):
            declaration = oracle.lookup(file_path, name)
            if declaration is None or declaration.file_path != file_path:
                continue
            symbol_count += 1
            result = extract_symbol(
                file_path,
                name,
                oracle=oracle,
                root=root,
                cache=cache,
                vocabulary=vocabulary,
                algorithm=algorithm,
                timeout_seconds=config.timeout_seconds,
                max_nodes=config.max_nodes,
            )
            sink.extend(result.diagnostics)
            codes.update(result.codes())
            extraction = result.value
            node = symbol_key(file_path, name)
            if not result.ok:
                failed.append(node)
            if result.ok and extraction is not None:
                live_entries.add(cache.entry_path(fingerprint, file_path, name))

            dependencies = sorted(extraction.ir.dependencies) if extraction else []
            targets: set[str] = set()
            for dep in dependencies:
                target = oracle.lookup(file_path, dep)
                if target is not None:
                    targets.add(symbol_key(target.file_path, target.name))
            references[node] = targets

            digest = extraction.fingerprint if extraction and result.ok else None
            table.symbols.append(
                SymbolSummary(
                    name=name,
                    hash=digest,
                    ok=result.ok,
                    dependencies=dependencies,
                    codes=sorted(set(result.codes())),
                )
            )
            indexed.symbols[name] = digest

        sink.absorb(cache.store_symbols(table))
        live_tables.add(cache.symbols_path(file_path))
        index.files[file_path] = indexed
        logger.info("Indexed %s (%d symbols)", file_path, len(table.symbols))

    _prune(cache_dir_for(out_dir, "ir"), live_entries)
    _prune(cache_dir_for(out_dir, "symbols"), live_tables)

    manifest = Manifest(
        tool_version=TOOL_VERSION,
        algorithm=algorithm,
        file_count=len(index.files),
        symbol_count=symbol_count,
        failed_symbols=sorted(failed),
        diagnostics=dict(sorted(codes.items())),
        recursive_groups=find_cycles(build_reference_graph(references)),
    )
    sink.absorb(write_json(out_dir / INDEX_JSON, index))
    sink.absorb(write_json(out_dir / MANIFEST_JSON, manifest))
    logger.info(
        "Indexed %d symbols in %d files (%d failed)",
        symbol_count,
        manifest.file_count,
        len(failed),
    )
    return sink.result(manifest)


__all__ = ["index_repository"]
