"""Parsing of JSDoc-style annotation comments into ordered tags."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diagnostics.codes import DiagnosticKey
from diagnostics.factory import make_diagnostic
from diagnostics.models import DiagnosticContext
from diagnostics.result import DiagnosticSink, Result
from tags.models import Tag
from tags.vocabulary import DEFAULT_VOCABULARY

if TYPE_CHECKING:
    from diagnostics.models import DiagnosticLocation
    from tags.vocabulary import TagGrammar, TagVocabulary

_TAG_LINE = re.compile(r"^@([A-Za-z_][\w-]*)(?:\s+(.*))?$")
_COMMENT_OPEN = re.compile(r"^\s*/\*\*?")
_COMMENT_CLOSE = re.compile(r"\*/\s*$")
_LEADING_STAR = re.compile(r"^\s*\*(?!/)\s?")


@dataclass(frozen=True)
class RawTag:
    name: str
    payload: str


def _comment_lines(comment_text: str) -> list[str]:
    text = _COMMENT_CLOSE.sub("", _COMMENT_OPEN.sub("", comment_text, count=1))
    return [_LEADING_STAR.sub("", line, count=1).strip() for line in text.splitlines()]


def split_tags(comment_text: str) -> list[RawTag]:
    """Split comment text into raw ``@name payload`` pairs.

    A tag starts with ``@`` at the beginning of a line; its payload runs
    until the next tag, with continuation lines joined by single spaces.
    Free text before the first tag is ignored.
    """
    raw: list[tuple[str, list[str]]] = []
    for line in _comment_lines(comment_text):
        match = _TAG_LINE.match(line)
        if match is not None:
            raw.append((match.group(1), [match.group(2) or ""]))
        elif raw and line:
            raw[-1][1].append(line)
    return [
        RawTag(name=name, payload=" ".join(part for part in parts if part).strip())
        for name, parts in raw
    ]


def _render(raw: RawTag) -> str:
    return f"@{raw.name} {raw.payload}" if raw.payload else f"@{raw.name}"


def _check(grammar: TagGrammar, raw: RawTag) -> Tag | None:
    payload = raw.payload
    if grammar.arity == "required" and not payload:
        return None
    if grammar.arity == "none" and payload:
        return None
    if payload and not grammar.accepts(payload):
        return None
    parsed = grammar.parse(payload)
    if parsed is None:
        return None
    return Tag(name=raw.name, raw_arguments=payload, parsed=parsed)


def parse_tags(
    comment_text: str | None,
    vocabulary: TagVocabulary | None = None,
    *,
    entity: str | None = None,
    field: str | None = None,
    location: DiagnosticLocation | None = None,
) -> Result[tuple[Tag, ...]]:
    """Parse the tags of one comment against a closed vocabulary.

    Unknown tags are kept unparsed with a warning; malformed recognized tags
    are dropped with an error; repeats of a recognized tag are dropped with a
    warning. The returned tags follow textual order.
    """
    vocabulary = vocabulary or DEFAULT_VOCABULARY
    sink = DiagnosticSink()
    if not comment_text:
        return sink.result(())

    context = (
        DiagnosticContext(entity=entity, field=field)
        if entity is not None or field is not None
        else None
    )
    tags: list[Tag] = []
    seen: set[str] = set()

    for raw in split_tags(comment_text):
        grammar = vocabulary.get(raw.name)
        if grammar is None:
            sink.emit(
                make_diagnostic(
                    DiagnosticKey.TAG_UNKNOWN,
                    (f"@{raw.name}",),
                    location=location,
                    context=context,
                )
            )
            tags.append(Tag(name=raw.name, raw_arguments=raw.payload, parsed=None))
            continue

        if raw.name in seen:
            sink.emit(
                make_diagnostic(
                    DiagnosticKey.TAG_DUPLICATE,
                    (f"@{raw.name}",),
                    location=location,
                    context=context,
                )
            )
            continue

        tag = _check(grammar, raw)
        if tag is None:
            sink.emit(
                make_diagnostic(
                    DiagnosticKey.TAG_MALFORMED,
                    (_render(raw),),
                    location=location,
                    context=context,
                )
            )
            continue
        seen.add(raw.name)
        tags.append(tag)

    return sink.result(tuple(tags))


__all__ = ["RawTag", "parse_tags", "split_tags"]
