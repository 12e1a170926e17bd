"""Closed tag vocabulary and per-tag payload grammars."""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

Arity = Literal["none", "optional", "required"]

FK_ACTIONS = MappingProxyType(
    {
        "cascade": "cascade",
        "restrict": "restrict",
        "setnull": "set null",
        "set null": "set null",
        "noaction": "no action",
        "no action": "no action",
    }
)


def _number(text: str) -> int | float:
    return float(text) if "." in text else int(text)


def _fk_action(text: str | None) -> str | None:
    if not text:
        return None
    return FK_ACTIONS.get(text.strip().lower(), "no action")


def _parse_index(payload: str) -> dict[str, object]:
    fields_part, _, unique_part = payload.partition(":")
    fields = [name.strip() for name in fields_part.split(",") if name.strip()]
    return {"fields": fields, "unique": unique_part.strip() == "unique"}


def _parse_fk(payload: str) -> dict[str, object] | None:
    target_field, _, actions = payload.partition(" ")
    target, _, field = target_field.partition(".")
    if not target or not field:
        return None
    on_delete, _, on_update = actions.strip().partition(":")
    parsed: dict[str, object] = {"target": target, "field": field}
    if (action := _fk_action(on_delete)) is not None:
        parsed["onDelete"] = action
    if (action := _fk_action(on_update)) is not None:
        parsed["onUpdate"] = action
    return parsed


def _parse_rename_from(payload: str) -> dict[str, object]:
    old_name, _, version = payload.partition("@")
    parsed: dict[str, object] = {"oldName": old_name}
    if version:
        parsed["version"] = version.strip()
    return parsed


def _parse_decimal(payload: str) -> dict[str, object]:
    precision, _, scale = payload.partition(",")
    return {"precision": int(precision), "scale": int(scale)}


def _key(name: str) -> Callable[[str], dict[str, object]]:
    return lambda payload: {name: payload}


def _numeric(name: str) -> Callable[[str], dict[str, object]]:
    return lambda payload: {name: _number(payload)}


def _flag(_: str) -> dict[str, object]:
    return {}


def _entity(payload: str) -> dict[str, object]:
    return {"name": payload} if payload else {}


@dataclass(frozen=True)
class TagGrammar:
    name: str
    arity: Arity
    description: str
    pattern: re.Pattern[str] | None = None
    parse: Callable[[str], dict[str, object] | None] = _flag

    def accepts(self, payload: str) -> bool:
        return self.pattern is None or self.pattern.fullmatch(payload) is not None


def _grammar(
    name: str,
    arity: Arity,
    description: str,
    pattern: str | None = None,
    parse: Callable[[str], dict[str, object] | None] = _flag,
) -> TagGrammar:
    compiled = re.compile(pattern) if pattern is not None else None
    return TagGrammar(
        name=name, arity=arity, description=description, pattern=compiled, parse=parse
    )


_NUMBER = r"-?\d+(?:\.\d+)?"
_INTEGER = r"\d+"
_IDENT = r"\w+"

CORE_TAGS: Mapping[str, TagGrammar] = MappingProxyType(
    {
        grammar.name: grammar
        for grammar in (
            # Entity and schema
            _grammar("entity", "optional", "Marks a declaration as an entity", parse=_entity),
            _grammar("pk", "none", "Marks a field as primary key"),
            _grammar("unique", "none", "Marks a field as unique"),
            _grammar(
                "index",
                "required",
                "Index definition: fields[:unique]",
                r"[\w,]+(?::unique)?",
                _parse_index,
            ),
            _grammar(
                "fk",
                "required",
                "Foreign key: target.field [onDelete:onUpdate]",
                r"[\w.]+(?:\s+\w+:\w+)?",
                _parse_fk,
            ),
            _grammar("default", "required", "Default value", parse=_key("value")),
            _grammar(
                "renameFrom",
                "required",
                "Rename hint: oldName[@version]",
                r"\w+(?:@[\d.]+)?",
                _parse_rename_from,
            ),
            _grammar("sqlType", "required", "SQL type override", parse=_key("type")),
            _grammar(
                "decimal",
                "required",
                "Decimal precision: precision,scale",
                r"\d+,\d+",
                _parse_decimal,
            ),
            _grammar("check", "required", "Check expression", parse=_key("expression")),
            _grammar(
                "version",
                "required",
                "Schema version (semver)",
                r"\d+\.\d+\.\d+(?:-[\w.]+)?",
                _key("semver"),
            ),
            # Validation constraints
            _grammar("min", "required", "Minimum value", _NUMBER, _numeric("value")),
            _grammar("max", "required", "Maximum value", _NUMBER, _numeric("value")),
            _grammar("int", "none", "Integer-only constraint"),
            _grammar("minLength", "required", "Minimum length", _INTEGER, _numeric("value")),
            _grammar("maxLength", "required", "Maximum length", _INTEGER, _numeric("value")),
            _grammar("pattern", "required", "Regex pattern", parse=_key("pattern")),
            _grammar("regex", "required", "Alias of pattern", parse=_key("pattern")),
            _grammar("format", "required", "String format", r"[\w-]+", _key("format")),
            _grammar("email", "none", "Email format constraint"),
            _grammar("uuid", "none", "UUID format constraint"),
            _grammar("url", "none", "URL format constraint"),
            _grammar("description", "required", "Documentation", parse=_key("text")),
            _grammar("validator", "required", "Validator name", _IDENT, _key("name")),
            _grammar("transform", "required", "Transformer name", _IDENT, _key("name")),
        )
    }
)


def _free_form(name: str) -> TagGrammar:
    return TagGrammar(
        name=name,
        arity="optional",
        description="Configured free-form tag",
        parse=lambda payload: {"text": payload} if payload else {},
    )


class TagVocabulary:
    """The closed set of tag names a parse accepts.

    Built from the core grammars, optionally restricted to ``enabled`` names,
    plus ``extra`` free-form tags that accept any (or no) payload.
    """

    def __init__(
        self,
        enabled: Iterable[str] | None = None,
        extra: Iterable[str] = (),
    ) -> None:
        if enabled is None:
            grammars = dict(CORE_TAGS)
        else:
            wanted = set(enabled)
            unknown = sorted(wanted - set(CORE_TAGS))
            if unknown:
                msg = f"Unknown core tags enabled: {', '.join(unknown)}"
                raise ValueError(msg)
            grammars = {name: g for name, g in CORE_TAGS.items() if name in wanted}
        for name in extra:
            grammars.setdefault(name, _free_form(name))
        self._grammars: Mapping[str, TagGrammar] = MappingProxyType(grammars)

    def __contains__(self, name: object) -> bool:
        return name in self._grammars

    def get(self, name: str) -> TagGrammar | None:
        return self._grammars.get(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._grammars))

    def signature(self) -> str:
        """Stable text identifying this vocabulary, used in cache fingerprints."""
        return ",".join(
            f"{name}:{self._grammars[name].arity}" for name in self.names
        )


DEFAULT_VOCABULARY = TagVocabulary()

__all__ = [
    "CORE_TAGS",
    "DEFAULT_VOCABULARY",
    "FK_ACTIONS",
    "Arity",
    "TagGrammar",
    "TagVocabulary",
]
