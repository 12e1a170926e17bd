"""Logging setup shared by every typeir module."""

from __future__ import annotations

import contextvars
import logging
import sys

ROOT_LOGGER_NAME = "typeir"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | run=%(run_id)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Current run id, carried across the call chain for one CLI invocation.
_RUN_ID: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")


class _InvocationFilter(logging.Filter):
    """Inject the current run id into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID.get()
        return True


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)


def _level(level: str) -> int:
    return getattr(logging, level.upper(), logging.WARNING)


def configure_root_logger(level: str = "WARNING") -> None:
    """Attach one stderr handler and set the ``typeir`` logger level.

    Safe to call repeatedly: the handler from an earlier call is replaced by
    one bound to the current ``sys.stderr``.
    """
    root = logging.getLogger()
    typeir_logger = logging.getLogger(ROOT_LOGGER_NAME)
    typeir_logger.setLevel(_level(level))

    for existing in list(root.handlers):
        if any(isinstance(f, _InvocationFilter) for f in existing.filters):
            root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_build_formatter())
    handler.addFilter(_InvocationFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``typeir`` namespace.

    Handlers are left to :func:`configure_root_logger`, so library use stays
    silent unless the caller opts in.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def push_run_id(run_id: str | None) -> contextvars.Token[str] | None:
    if not run_id:
        return None
    return _RUN_ID.set(run_id)


def reset_run_id(token: contextvars.Token[str] | None) -> None:
    if token is not None:
        _RUN_ID.reset(token)


__all__ = [
    "LOG_FORMAT",
    "ROOT_LOGGER_NAME",
    "configure_root_logger",
    "get_logger",
    "push_run_id",
    "reset_run_id",
]
