"""Success/failure values that carry accumulated diagnostics.

A pass never raises for a bad declaration. Each stage returns a ``Result``
holding its (possibly best-effort) value together with every diagnostic it
produced; the pass failed iff one of those diagnostics is an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from diagnostics.models import Diagnostic

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not any(diag.is_error for diag in self.diagnostics)

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(diag for diag in self.diagnostics if diag.is_error)

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(diag for diag in self.diagnostics if diag.category == "warning")

    def codes(self) -> list[str]:
        return [diag.code for diag in self.diagnostics]

    def with_value(self, value: U | None) -> Result[U]:
        return Result(value=value, diagnostics=self.diagnostics)

    def prepend(self, diagnostics: Iterable[Diagnostic]) -> Result[T]:
        return Result(
            value=self.value,
            diagnostics=(*diagnostics, *self.diagnostics),
        )


def ok(value: T, diagnostics: Iterable[Diagnostic] = ()) -> Result[T]:
    return Result(value=value, diagnostics=tuple(diagnostics))


def err(diagnostics: Iterable[Diagnostic], value: T | None = None) -> Result[T]:
    diags = tuple(diagnostics)
    if not diags:
        msg = "err() requires at least one diagnostic"
        raise ValueError(msg)
    return Result(value=value, diagnostics=diags)


class DiagnosticSink:
    """Ordered collector threaded through one pass."""

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def emit(self, diagnostic: Diagnostic) -> Diagnostic:
        self._items.append(diagnostic)
        return diagnostic

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    def absorb(self, result: Result[T]) -> T | None:
        """Record a sub-result's diagnostics and hand back its value."""
        self._items.extend(result.diagnostics)
        return result.value

    def mark(self) -> int:
        return len(self._items)

    def rollback(self, mark: int) -> None:
        """Discard everything emitted since ``mark``."""
        del self._items[mark:]

    @property
    def has_errors(self) -> bool:
        return any(diag.is_error for diag in self._items)

    def snapshot(self) -> tuple[Diagnostic, ...]:
        return tuple(self._items)

    def result(self, value: T | None) -> Result[T]:
        return Result(value=value, diagnostics=self.snapshot())


__all__ = ["DiagnosticSink", "Result", "err", "ok"]
