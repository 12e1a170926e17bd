"""Per-symbol extraction: resolve, normalize, hash, cache."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from cache.fingerprint import compute_fingerprint
from cache.models import CacheEntry
from canonical.encode import DEFAULT_ALGORITHM, digest_bytes
from canonical.hash import hash_ir
from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import Diagnostic, DiagnosticLocation
from diagnostics.result import DiagnosticSink, Result, err
from ir.nodes import CanonicalIR
from logger import get_logger
from normalize.normalizer import normalize
from pipeline.deadline import Deadline, ExtractionTimeout
from resolve.resolver import DEFAULT_MAX_NODES, Resolver
from tags.vocabulary import DEFAULT_VOCABULARY
from utils import read_file

if TYPE_CHECKING:
    from collections.abc import Callable

    from cache.store import ContentCache
    from ir.nodes import RawGraph
    from oracle.base import TypeOracle
    from tags.vocabulary import TagVocabulary

logger = get_logger(__name__)


class Extraction(BaseModel):
    """Outcome of extracting one symbol.

    ``fingerprint`` is the canonical content hash of ``ir``; it is ``None``
    whenever the hasher refused the IR.
    """

    model_config = ConfigDict(frozen=True)

    file_path: str
    symbol: str
    ir: CanonicalIR
    fingerprint: str | None
    cached: bool = False


def _source_digests(
    graph: RawGraph, root: Path | None, algorithm: str
) -> dict[str, str] | None:
    files = {graph.file_path}
    files.update(
        node.location.file for node in graph.nodes.values() if node.location is not None
    )
    digests: dict[str, str] = {}
    for file_path in sorted(files):
        read = read_file(_on_disk(file_path, root))
        if read.value is None:
            return None
        digests[file_path] = digest_bytes(read.value, algorithm)
    return digests


def _on_disk(file_path: str, root: Path | None) -> Path:
    path = Path(file_path)
    return root / path if root is not None and not path.is_absolute() else path


def _sources_fresh(entry: CacheEntry, root: Path | None, algorithm: str) -> bool:
    for file_path, expected in entry.sources.items():
        read = read_file(_on_disk(file_path, root))
        if read.value is None or digest_bytes(read.value, algorithm) != expected:
            return False
    return True


def extract_symbol(
    file_path: str,
    symbol: str,
    *,
    oracle: TypeOracle,
    root: Path | None = None,
    cache: ContentCache | None = None,
    vocabulary: TagVocabulary | None = None,
    algorithm: str | None = None,
    timeout_seconds: float | None = None,
    max_nodes: int = DEFAULT_MAX_NODES,
    clock: Callable[[], float] = time.monotonic,
) -> Result[Extraction]:
    """Extract one symbol into canonical IR plus its content hash.

    With a ``cache`` the source file is fingerprinted first and a fresh
    entry short-circuits the pass (its recorded diagnostics are replayed).
    Only an error-free pass is written back.

    On timeout the result holds no value and exactly one
    ``RESOLUTION_TIMEOUT`` error; partial diagnostics are discarded.
    """
    algorithm = algorithm or (cache.algorithm if cache is not None else DEFAULT_ALGORITHM)
    vocabulary = vocabulary or DEFAULT_VOCABULARY
    sink = DiagnosticSink()

    file_key: str | None = None
    if cache is not None:
        source = read_file(_on_disk(file_path, root))
        if source.value is None:
            return source.with_value(None)
        file_key = compute_fingerprint(
            source.value, algorithm=algorithm, vocabulary=vocabulary
        )
        hit = cache.lookup(file_key, file_path, symbol)
        sink.extend(hit.diagnostics)
        entry = hit.value
        if entry is not None and _sources_fresh(entry, root, algorithm):
            logger.info("Cache hit for %s:%s", file_path, symbol)
            sink.extend(Diagnostic.from_dict(d) for d in entry.diagnostics)
            return sink.result(
                Extraction(
                    file_path=file_path,
                    symbol=symbol,
                    ir=entry.ir,
                    fingerprint=entry.hash,
                    cached=True,
                )
            )

    deadline = Deadline(timeout_seconds, clock) if timeout_seconds is not None else None
    mark = sink.mark()
    try:
        raw = Resolver(
            oracle, vocabulary=vocabulary, deadline=deadline, max_nodes=max_nodes
        ).resolve(file_path, symbol)
        graph = sink.absorb(raw)
        canonical = sink.absorb(normalize(graph, algorithm=algorithm, deadline=deadline))
    except ExtractionTimeout as exc:
        logger.info("Extraction of %s:%s timed out", file_path, symbol)
        return err(
            (
                make_diagnostic(
                    DiagnosticKey.RESOLUTION_TIMEOUT,
                    (exc.seconds, f"{file_path}:{symbol}"),
                    location=DiagnosticLocation(file_path=file_path, symbol=symbol),
                ),
            )
        )

    fingerprint = sink.absorb(hash_ir(canonical, algorithm))
    extraction = Extraction(
        file_path=file_path,
        symbol=symbol,
        ir=canonical,
        fingerprint=fingerprint,
    )

    if cache is not None and file_key is not None and not sink.has_errors:
        sources = _source_digests(graph, root, algorithm)
        if sources is not None:
            stored = cache.store(
                file_key,
                CacheEntry(
                    symbol=symbol,
                    file_path=file_path,
                    hash=fingerprint,
                    ir=canonical,
                    sources=sources,
                    diagnostics=[d.to_dict() for d in sink.snapshot()[mark:]],
                ),
            )
            sink.absorb(stored)

    logger.debug(
        "Extracted %s:%s (%d diagnostics)", file_path, symbol, len(sink)
    )
    return sink.result(extraction)


__all__ = ["Extraction", "extract_symbol"]
