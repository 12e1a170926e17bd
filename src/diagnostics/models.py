"""Immutable diagnostic records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from diagnostics.codes import DiagnosticCategory


@dataclass(frozen=True)
class DiagnosticLocation:
    file_path: str | None = None
    line: int | None = None
    column: int | None = None
    symbol: str | None = None

    def render(self) -> str:
        if self.file_path is None:
            return ""
        where = self.file_path
        if self.line:
            where += f":{self.line}"
            if self.column:
                where += f":{self.column}"
        return where

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "filePath": self.file_path,
            "line": self.line,
            "column": self.column,
            "symbol": self.symbol,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiagnosticLocation:
        return cls(
            file_path=data.get("filePath"),
            line=data.get("line"),
            column=data.get("column"),
            symbol=data.get("symbol"),
        )


@dataclass(frozen=True)
class DiagnosticContext:
    entity: str | None = None
    field: str | None = None
    hint: str | None = None

    def render(self) -> str:
        parts = []
        if self.entity:
            parts.append(f"entity: {self.entity}")
        if self.field:
            parts.append(f"field: {self.field}")
        if self.hint:
            parts.append(self.hint)
        return " ".join(parts)

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "entity": self.entity,
            "field": self.field,
            "hint": self.hint,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiagnosticContext:
        return cls(
            entity=data.get("entity"), field=data.get("field"), hint=data.get("hint")
        )


@dataclass(frozen=True)
class Diagnostic:
    code: str
    category: DiagnosticCategory
    message: str
    help_url: str | None = None
    location: DiagnosticLocation | None = None
    context: DiagnosticContext | None = None

    @property
    def is_error(self) -> bool:
        return self.category == "error"

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "code": self.code,
            "category": self.category,
            "message": self.message,
        }
        if self.help_url is not None:
            data["helpUrl"] = self.help_url
        if self.location is not None:
            data["location"] = self.location.to_dict()
        if self.context is not None:
            data["context"] = self.context.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Diagnostic:
        """Rebuild a diagnostic serialized with ``to_dict``."""
        location = data.get("location")
        context = data.get("context")
        return cls(
            code=data["code"],
            category=data["category"],
            message=data["message"],
            help_url=data.get("helpUrl"),
            location=DiagnosticLocation.from_dict(location) if location else None,
            context=DiagnosticContext.from_dict(context) if context else None,
        )


__all__ = ["Diagnostic", "DiagnosticContext", "DiagnosticLocation"]
