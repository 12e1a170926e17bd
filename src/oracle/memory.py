"""Dict-backed oracle for tests and embedding callers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from oracle.base import Declaration

if TYPE_CHECKING:
    from collections.abc import Mapping

    from oracle.base import DeclarationKind


class InMemoryOracle:
    def __init__(self) -> None:
        self._files: dict[str, dict[str, Declaration]] = {}

    def add(
        self,
        file_path: str,
        name: str,
        type_description: Mapping[str, Any],
        *,
        comment: str | None = None,
        line: int | None = None,
        column: int | None = None,
        kind: DeclarationKind = "type_alias",
    ) -> Declaration:
        declaration = Declaration(
            name=name,
            file_path=file_path,
            type=type_description,
            comment=comment,
            line=line,
            column=column,
            kind=kind,
        )
        self._files.setdefault(file_path, {})[name] = declaration
        return declaration

    def lookup(self, file_path: str, symbol_name: str) -> Declaration | None:
        return self._files.get(file_path, {}).get(symbol_name)

    def declarations(self, file_path: str) -> list[str]:
        return sorted(self._files.get(file_path, {}))


__all__ = ["InMemoryOracle"]
