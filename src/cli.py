"""Command-line interface for typeir-core."""

from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import orjson

from cache.store import ContentCache
from contract.validation import validate_cache
from diagnostics.reporter import format_diagnostics
from logger import configure_root_logger, push_run_id, reset_run_id
from oracle.treesitter import TreeSitterOracle
from pipeline.extract import extract_symbol
from pipeline.index import index_repository
from settings.config import ConfigError, load_config, resolve_cache_dir
from verify.verify import verify_determinism

if TYPE_CHECKING:
    from collections.abc import Sequence

    from diagnostics.models import Diagnostic
    from settings.config import TypeIRConfig


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Repository root (default: .)",
    )
    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Cache directory (default: config cache_dir)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="typeir")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: config log_level)",
    )
    parser.add_argument(
        "--format",
        dest="report_format",
        default="pretty",
        choices=["pretty", "json"],
        help="Diagnostic output format (default: pretty)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract", help="Extract one symbol and print its canonical IR"
    )
    extract_parser.add_argument("file", help="Source file, relative to --root")
    extract_parser.add_argument("symbol", help="Declared type name")
    extract_parser.add_argument(
        "--root", default=".", help="Repository root (default: .)"
    )
    extract_parser.add_argument(
        "--no-cache", action="store_true", help="Neither read nor write the cache"
    )
    extract_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Extraction deadline in seconds (default: config timeout_seconds)",
    )

    index_parser = subparsers.add_parser("index", help="Index every declaration")
    _add_common_paths(index_parser)

    validate_parser = subparsers.add_parser("validate", help="Validate the cache")
    _add_common_paths(validate_parser)

    verify_parser = subparsers.add_parser(
        "verify", help="Verify determinism of the cache"
    )
    _add_common_paths(verify_parser)

    return parser


def _resolve_cache_dir(root: Path, config: TypeIRConfig, cache_dir: str | None) -> Path:
    if cache_dir is None:
        return resolve_cache_dir(root, config.cache_dir)
    return Path(cache_dir).expanduser().resolve()


def _report(diagnostics: Sequence[Diagnostic], mode: str) -> None:
    if diagnostics:
        sys.stderr.write(format_diagnostics(diagnostics, mode) + "\n")


def _handle_extract(
    args: argparse.Namespace, root: Path, config: TypeIRConfig
) -> int:
    cache = None
    if not args.no_cache:
        cache = ContentCache(
            resolve_cache_dir(root, config.cache_dir), config.hash_algorithm
        )
    result = extract_symbol(
        Path(args.file).as_posix(),
        args.symbol,
        oracle=TreeSitterOracle(root),
        root=root,
        cache=cache,
        vocabulary=config.tags.vocabulary(),
        algorithm=config.hash_algorithm,
        timeout_seconds=args.timeout or config.timeout_seconds,
        max_nodes=config.max_nodes,
    )
    _report(result.diagnostics, args.report_format)
    if result.value is not None:
        payload = result.value.model_dump(mode="json")
        opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
        sys.stdout.write(orjson.dumps(payload, option=opts).decode() + "\n")
    return 0 if result.ok else 1


def _handle_index(root: Path, config: TypeIRConfig, args: argparse.Namespace) -> int:
    cache_dir = _resolve_cache_dir(root, config, args.cache_dir)
    result = index_repository(root=root, out_dir=cache_dir, config=config)
    _report(result.diagnostics, args.report_format)
    manifest = result.value
    if manifest is not None:
        sys.stdout.write(
            f"{manifest.symbol_count} symbols in {manifest.file_count} files, "
            f"{len(manifest.failed_symbols)} failed\n"
        )
    return 0 if result.ok else 1


def _handle_validate(root: Path, config: TypeIRConfig, cache_dir: str | None) -> int:
    result = validate_cache(_resolve_cache_dir(root, config, cache_dir))
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning.location()}: {warning.message}\n")
    if result.errors:
        for error in result.errors:
            sys.stderr.write(f"{error.location()}: {error.message}\n")
        return 1
    return 0


def _handle_verify(root: Path, config: TypeIRConfig, cache_dir: str | None) -> int:
    resolved_cache_dir = _resolve_cache_dir(root, config, cache_dir)
    try:
        result = verify_determinism(
            root=root, cache_dir=resolved_cache_dir, config=config
        )
    except (FileNotFoundError, NotADirectoryError) as exc:
        sys.stderr.write(f"cache-dir: {resolved_cache_dir}\n")
        sys.stderr.write(f"error: {exc}\n")
        return 2
    if not result.ok:
        for label, paths in (
            ("missing", result.missing),
            ("extra", result.extra),
            ("mismatches", result.mismatches),
        ):
            for path in paths:
                sys.stderr.write(f"{label}: {path}\n")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    root = Path(args.root).expanduser().resolve()
    try:
        config = load_config(root)
    except ConfigError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2

    configure_root_logger(args.log_level or config.log_level)
    token = push_run_id(uuid.uuid4().hex[:8])
    try:
        if args.command == "extract":
            return _handle_extract(args, root, config)

        if args.command == "index":
            return _handle_index(root, config, args)

        if args.command == "validate":
            return _handle_validate(root, config, args.cache_dir)

        if args.command == "verify":
            return _handle_verify(root, config, args.cache_dir)
    except ConfigError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2
    finally:
        reset_run_id(token)

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
