"""Tree-sitter backed oracle for TypeScript declaration files.

Only syntax is consulted: declarations are read from the parse tree of each
file, named imports are followed to sibling modules, and every type node is
mapped onto the description format of ``oracle.base``. Nothing is
type-checked or evaluated, so computed types (conditional, mapped, indexed
access...) surface as their construct names for the resolver to report.
"""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tree_sitter import Language, Node, Parser
from tree_sitter_typescript import language_typescript

from logger import get_logger
from oracle.base import Declaration

if TYPE_CHECKING:
    from oracle.base import DeclarationKind

logger = get_logger(__name__)

_PARSER: Parser | None = None

MODULE_SUFFIXES: tuple[str, ...] = (".ts", ".d.ts", ".tsx", "/index.ts", "/index.d.ts")

_PRIMITIVE_KEYWORDS = frozenset(("string", "number", "boolean", "bigint"))
_CONSTRUCT_KEYWORDS = frozenset(("any", "unknown", "void", "never", "symbol"))

_CONSTRUCT_NODES: dict[str, str] = {
    "function_type": "function",
    "constructor_type": "constructor",
    "conditional_type": "conditional",
    "lookup_type": "indexed_access",
    "infer_type": "infer",
    "this_type": "this",
    "index_type_query": "keyof",
    "type_query": "typeof",
    "type_predicate": "type_predicate",
    "asserts": "type_predicate",
    "optional_type": "optional_element",
    "rest_type": "rest_element",
}

_MEMBER_CONSTRUCTS: dict[str, tuple[str, str]] = {
    "index_signature": ("index_signature", "[index]"),
    "call_signature": ("call_signature", "()"),
    "construct_signature": ("constructor", "new()"),
}


def _get_parser() -> Parser:
    """Initialize and return the Tree-sitter parser with TypeScript language."""
    global _PARSER
    if _PARSER is None:
        lang = Language(language_typescript())
        _PARSER = Parser(lang)

    return _PARSER


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf8")


def _location(node: Node) -> dict[str, int]:
    row, column = node.start_point
    return {"line": row + 1, "column": column + 1}


def _jsdoc_before(node: Node) -> str | None:
    """Return the ``/** */`` comment directly preceding ``node``, if any."""
    previous = node.prev_sibling
    if previous is None or previous.type != "comment":
        return None
    text = _text(previous)
    if not text.startswith("/**"):
        return None
    if previous.end_point[0] + 1 < node.start_point[0]:
        return None
    return text


def _string_value(node: Node) -> str:
    text = _text(node)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


def _number_value(text: str) -> int | float:
    cleaned = text.replace("_", "")
    try:
        return int(cleaned, 0)
    except ValueError:
        return float(cleaned)


def _type_child(node: Node | None) -> Node | None:
    """Unwrap a ``type_annotation`` (``: T``) into its type node."""
    if node is None:
        return None
    if node.type == "type_annotation":
        return node.named_children[0] if node.named_children else None
    return node


def _composite_members(node: Node) -> list[Node]:
    members: list[Node] = []
    for child in node.named_children:
        if child.type == node.type:
            members.extend(_composite_members(child))
        elif child.type != "comment":
            members.append(child)
    return members


class _FileTable:
    """Declarations and imported names of one parsed source file."""

    def __init__(self, file_path: str, source: bytes) -> None:
        self.file_path = file_path
        self.source = source
        self.declarations: dict[str, tuple[Node, DeclarationKind, str | None]] = {}
        self.imports: dict[str, tuple[str, str]] = {}
        tree = _get_parser().parse(source)
        self._tree = tree
        for statement in tree.root_node.named_children:
            self._index(statement)

    def _index(self, statement: Node) -> None:
        comment = _jsdoc_before(statement)
        target = statement
        if statement.type == "export_statement":
            inner = statement.child_by_field_name("declaration")
            if inner is None:
                return
            target = inner
        elif statement.type == "import_statement":
            self._index_import(statement)
            return

        kinds: dict[str, DeclarationKind] = {
            "interface_declaration": "interface",
            "type_alias_declaration": "type_alias",
            "enum_declaration": "enum",
        }
        kind = kinds.get(target.type)
        if kind is None:
            return
        name = _text(target.child_by_field_name("name"))
        if name and name not in self.declarations:
            self.declarations[name] = (target, kind, comment)

    def _index_import(self, statement: Node) -> None:
        source = statement.child_by_field_name("source")
        specifier = _string_value(source) if source is not None else ""
        if not specifier.startswith("."):
            return
        for clause in statement.named_children:
            if clause.type != "import_clause":
                continue
            for named in clause.named_children:
                if named.type != "named_imports":
                    continue
                for spec in named.named_children:
                    if spec.type != "import_specifier":
                        continue
                    original = _text(spec.child_by_field_name("name"))
                    alias = _text(spec.child_by_field_name("alias")) or original
                    if original:
                        self.imports[alias] = (specifier, original)


class TreeSitterOracle:
    """Oracle reading TypeScript declarations straight from source files.

    ``file_path`` arguments are resolved against ``root`` and keep their
    given spelling in every description, so imported references carry a
    path in the same style as the one the caller used.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root) if root is not None else None
        self._tables: dict[str, _FileTable | None] = {}

    def _path(self, file_path: str) -> Path:
        path = Path(file_path)
        if self.root is not None and not path.is_absolute():
            return self.root / path
        return path

    def _table(self, file_path: str) -> _FileTable | None:
        if file_path not in self._tables:
            path = self._path(file_path)
            try:
                source = path.read_bytes()
            except OSError as exc:
                logger.debug("Cannot read %s: %s", path, exc)
                self._tables[file_path] = None
            else:
                self._tables[file_path] = _FileTable(file_path, source)
        return self._tables[file_path]

    def resolve_module(self, file_path: str, specifier: str) -> str | None:
        """Map a relative import specifier onto an existing source file."""
        base = posixpath.normpath(
            posixpath.join(posixpath.dirname(file_path.replace("\\", "/")), specifier)
        )
        for suffix in ("", *MODULE_SUFFIXES):
            candidate = base + suffix
            if candidate.endswith((".ts", ".tsx")) and self._path(candidate).is_file():
                return candidate
        return None

    def declarations(self, file_path: str) -> list[str]:
        table = self._table(file_path)
        return sorted(table.declarations) if table is not None else []

    def lookup(self, file_path: str, symbol_name: str) -> Declaration | None:
        seen: set[tuple[str, str]] = set()
        while (file_path, symbol_name) not in seen:
            seen.add((file_path, symbol_name))
            table = self._table(file_path)
            if table is None:
                return None
            entry = table.declarations.get(symbol_name)
            if entry is not None:
                return self._declaration(table, symbol_name, entry)
            imported = table.imports.get(symbol_name)
            if imported is None:
                return None
            module = self.resolve_module(file_path, imported[0])
            if module is None:
                return None
            file_path, symbol_name = module, imported[1]

        logger.debug("Import cycle while looking up %s in %s", symbol_name, file_path)
        return None

    def _declaration(
        self,
        table: _FileTable,
        symbol_name: str,
        entry: tuple[Node, DeclarationKind, str | None],
    ) -> Declaration:
        node, kind, comment = entry
        row, column = node.start_point
        return Declaration(
            name=symbol_name,
            file_path=table.file_path,
            type=_Describer(self, table).declaration(node, kind),
            comment=comment,
            line=row + 1,
            column=column + 1,
            kind=kind,
        )


class _Describer:
    def __init__(self, oracle: TreeSitterOracle, table: _FileTable) -> None:
        self.oracle = oracle
        self.table = table

    def declaration(self, node: Node, kind: DeclarationKind) -> dict[str, Any]:
        name = _text(node.child_by_field_name("name"))
        if node.child_by_field_name("type_parameters") is not None:
            return {
                "kind": "generic",
                "text": f"{name} declares type parameters",
                "location": _location(node),
            }
        if kind == "enum":
            return self.enum(node)
        if kind == "interface":
            body = self.object(node.child_by_field_name("body"))
            bases = [
                self.describe(child)
                for clause in node.named_children
                if clause.type == "extends_type_clause"
                for child in clause.named_children
            ]
            if bases:
                return {
                    "kind": "intersection",
                    "members": [*bases, body],
                    "location": _location(node),
                }
            return body
        value = node.child_by_field_name("value")
        if value is None:
            return {"kind": "unsupported", "construct": "empty type alias", "text": name}
        return self.describe(value)

    def enum(self, node: Node) -> dict[str, Any]:
        members: list[dict[str, Any]] = []
        next_value: int | float | None = 0
        body = node.child_by_field_name("body")
        for entry in body.named_children if body is not None else ():
            if entry.type == "enum_assignment":
                name_node = entry.child_by_field_name("name")
                value_node = entry.child_by_field_name("value")
                value = self.enum_value(value_node)
            elif entry.type in ("property_identifier", "string"):
                name_node = entry
                value = next_value
            else:
                continue
            name = _string_value(name_node) if name_node is not None else ""
            members.append({"name": name, "value": value})
            is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
            next_value = value + 1 if is_number else None
        return {"kind": "enum", "members": members, "location": _location(node)}

    def enum_value(self, node: Node | None) -> int | float | str | None:
        """Constant member initializers only; anything computed yields ``None``."""
        if node is None:
            return None
        if node.type == "string":
            return _string_value(node)
        if node.type in ("number", "unary_expression"):
            try:
                return _number_value(_text(node).replace(" ", ""))
            except ValueError:
                return None
        return None

    def reference(self, node: Node, name: str) -> dict[str, Any]:
        desc: dict[str, Any] = {"kind": "ref", "name": name, "location": _location(node)}
        imported = self.table.imports.get(name)
        if imported is not None:
            module = self.oracle.resolve_module(self.table.file_path, imported[0])
            if module is not None:
                desc["file"] = module
                desc["name"] = imported[1]
        return desc

    def describe(self, node: Node) -> dict[str, Any]:
        kind = node.type
        location = _location(node)

        if kind == "parenthesized_type":
            inner = node.named_children
            return self.describe(inner[0]) if inner else self.unsupported(node, kind)

        if kind == "readonly_type":
            inner = node.named_children
            return self.describe(inner[0]) if inner else self.unsupported(node, kind)

        if kind == "predefined_type":
            keyword = _text(node)
            if keyword in _PRIMITIVE_KEYWORDS:
                return {"kind": "primitive", "name": keyword, "location": location}
            if keyword in _CONSTRUCT_KEYWORDS:
                return {"kind": keyword, "text": keyword, "location": location}
            return self.unsupported(node, f"{keyword} keyword")

        if kind == "literal_type":
            return self.literal(node)

        if kind in ("type_identifier", "nested_type_identifier", "identifier"):
            return self.reference(node, _text(node))

        if kind == "generic_type":
            name = _text(node.child_by_field_name("name"))
            arguments = node.child_by_field_name("type_arguments")
            children = arguments.named_children if arguments is not None else ()
            args = [a for a in children if a.type != "comment"]
            if name in ("Array", "ReadonlyArray") and len(args) == 1:
                element = self.describe(args[0])
                return {"kind": "array", "element": element, "location": location}
            desc = self.reference(node, name)
            desc["type_arguments"] = [_text(a) for a in args]
            return desc

        if kind == "array_type":
            element = self.describe(node.named_children[0])
            return {"kind": "array", "element": element, "location": location}

        if kind == "tuple_type":
            elements = [c for c in node.named_children if c.type != "comment"]
            return {
                "kind": "tuple",
                "elements": [self.describe(e) for e in elements],
                "location": location,
            }

        if kind in ("union_type", "intersection_type"):
            return {
                "kind": "union" if kind == "union_type" else "intersection",
                "members": [self.describe(m) for m in _composite_members(node)],
                "location": location,
            }

        if kind == "object_type":
            return self.object(node)

        if kind == "template_literal_type":
            return {"kind": "template_literal", "location": location}

        construct = _CONSTRUCT_NODES.get(kind)
        return self.unsupported(node, construct or kind)

    def unsupported(self, node: Node, construct: str) -> dict[str, Any]:
        return {
            "kind": "unsupported",
            "construct": construct,
            "text": _text(node),
            "location": _location(node),
        }

    def literal(self, node: Node) -> dict[str, Any]:
        location = _location(node)
        value_node = node.named_children[0] if node.named_children else node
        value_kind = value_node.type
        text = _text(value_node)
        if value_kind == "string":
            value = _string_value(value_node)
            return {"kind": "literal", "value": value, "location": location}
        if value_kind in ("true", "false"):
            flag = value_kind == "true"
            return {"kind": "literal", "value": flag, "location": location}
        if value_kind in ("null", "undefined"):
            return {"kind": "primitive", "name": value_kind, "location": location}
        if value_kind in ("number", "unary_expression"):
            if text.endswith("n"):
                return {
                    "kind": "literal",
                    "literal_kind": "bigint",
                    "value": text[:-1].replace(" ", ""),
                    "location": location,
                }
            try:
                value = _number_value(text.replace(" ", ""))
            except ValueError:
                return self.unsupported(node, "literal")
            return {"kind": "literal", "value": value, "location": location}
        return self.unsupported(node, "literal")

    def object(self, node: Node | None) -> dict[str, Any]:
        if node is None:
            return {"kind": "object", "fields": []}
        fields: list[dict[str, Any]] = []
        for member in node.named_children:
            if member.type == "comment":
                continue
            if member.type == "index_signature" and any(
                c.type == "mapped_type_clause" for c in member.named_children
            ):
                return self.unsupported(node, "mapped")
            fields.append(self.member(member))
        return {"kind": "object", "fields": fields, "location": _location(node)}

    def member(self, member: Node) -> dict[str, Any]:
        location = _location(member)
        comment = _jsdoc_before(member)
        if member.type in ("property_signature", "method_signature"):
            name_node = member.child_by_field_name("name")
            name = _text(name_node)
            if name_node is not None and name_node.type == "string":
                name = _string_value(name_node)
            tokens = {child.type for child in member.children if not child.is_named}
            if member.type == "method_signature":
                type_desc: dict[str, Any] = {
                    "kind": "unsupported",
                    "construct": "function",
                    "text": _text(member),
                    "location": location,
                }
            else:
                type_node = _type_child(member.child_by_field_name("type"))
                type_desc = (
                    self.describe(type_node)
                    if type_node is not None
                    else {"kind": "unsupported", "construct": "implicit any", "text": name}
                )
            return {
                "name": name,
                "type": type_desc,
                "optional": "?" in tokens,
                "readonly": "readonly" in tokens,
                "comment": comment,
                "location": location,
            }

        construct, name = _MEMBER_CONSTRUCTS.get(member.type, (member.type, member.type))
        return {
            "name": name,
            "type": {
                "kind": "unsupported",
                "construct": construct,
                "text": _text(member),
                "location": location,
            },
            "comment": comment,
            "location": location,
        }


__all__ = ["MODULE_SUFFIXES", "TreeSitterOracle"]
