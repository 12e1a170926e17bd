"""Type resolution oracle protocol.

An oracle turns ``(file_path, symbol_name)`` into a raw type description:
plain dicts keyed by ``kind``.

==================  =========================================================
kind                payload keys
==================  =========================================================
primitive           ``name`` (string, number, boolean, bigint, null, undefined)
literal             ``value``, optional ``literal_kind`` (``bigint``)
array               ``element``
tuple               ``elements``
object              ``fields``: ``name``, ``type``, ``optional``, ``readonly``,
                    ``comment``, ``location``
union/intersection  ``members``
enum                ``members``: ``name``, ``value``
ref                 ``name``, optional ``file`` and ``type_arguments``
template_literal    (none)
unsupported         ``construct``, optional ``text``
==================  =========================================================

Any description may carry ``location`` (``line``/``column``) and a ``name``
identifying an anonymous shape. Support-matrix construct names (``function``,
``conditional``...) are also accepted as kinds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

DeclarationKind = Literal["interface", "type_alias", "enum"]


@dataclass(frozen=True)
class Declaration:
    name: str
    file_path: str
    type: Mapping[str, Any]
    comment: str | None = None
    line: int | None = None
    column: int | None = None
    kind: DeclarationKind = "type_alias"


class TypeOracle(Protocol):
    def lookup(self, file_path: str, symbol_name: str) -> Declaration | None: ...

    def declarations(self, file_path: str) -> list[str]: ...


__all__ = ["Declaration", "DeclarationKind", "TypeOracle"]
