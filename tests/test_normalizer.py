from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from canonical.hash import hash_ir
from ir.nodes import LiteralType, ObjectShape, Primitive, RecursiveRef, UnionOf, Unknown
from normalize.normalizer import HETEROGENEOUS_REASON, normalize
from oracle.memory import InMemoryOracle
from resolve.resolver import Resolver

if TYPE_CHECKING:
    from diagnostics.result import Result
    from ir.nodes import CanonicalIR

FILE = "src/models.ts"


def _prim(name: str) -> dict[str, Any]:
    return {"kind": "primitive", "name": name}


def _ref(name: str) -> dict[str, Any]:
    return {"kind": "ref", "name": name}


def _union(*members: dict[str, Any]) -> dict[str, Any]:
    return {"kind": "union", "members": list(members)}


def _obj(*fields: tuple[str, dict[str, Any]]) -> dict[str, Any]:
    return {
        "kind": "object",
        "fields": [{"name": name, "type": desc} for name, desc in fields],
    }


def _normalize(description: dict[str, Any], **others: dict[str, Any]) -> Result[CanonicalIR]:
    oracle = InMemoryOracle()
    oracle.add(FILE, "Subject", description)
    for name, other in others.items():
        oracle.add(FILE, name, other)
    raw = Resolver(oracle).resolve(FILE, "Subject")
    assert raw.value is not None
    return normalize(raw.value)


def _canonical(description: dict[str, Any], **others: dict[str, Any]) -> CanonicalIR:
    result = _normalize(description, **others)
    assert result.value is not None
    return result.value


def test_fields_are_sorted_and_shared() -> None:
    ir = _canonical(_obj(("b", _prim("string")), ("a", _prim("string"))))

    root = ir.root_node
    assert isinstance(root, ObjectShape)
    assert [f.name for f in root.fields] == ["a", "b"]
    assert root.fields[0].type == root.fields[1].type
    assert len(ir.nodes) == 2


def test_field_permutation_invariance() -> None:
    first = _canonical(_obj(("x", _prim("number")), ("y", _prim("string"))))
    second = _canonical(_obj(("y", _prim("string")), ("x", _prim("number"))))

    assert first.root == second.root
    assert first.nodes == second.nodes


def test_union_members_deduplicated_and_flattened() -> None:
    ir = _canonical(
        _union(_prim("string"), _union(_prim("number"), _prim("string")), _prim("null"))
    )

    root = ir.root_node
    assert isinstance(root, UnionOf)
    names = sorted(ir.node(m).name for m in root.members)  # type: ignore[union-attr]
    assert names == ["null", "number", "string"]
    assert list(root.members) == sorted(root.members)


def test_member_order_invariance() -> None:
    first = _canonical(_union(_prim("string"), _prim("number")))
    second = _canonical(_union(_prim("number"), _prim("string")))

    assert first.root == second.root


def test_heterogeneous_union_reported_once() -> None:
    result = _normalize(_union(_prim("string"), _obj(("x", _prim("number")))))

    assert not result.ok
    assert result.codes() == ["ADTK-IR-2001"]
    assert "{ x: number }" in result.diagnostics[0].message

    ir = result.value
    assert ir is not None
    root = ir.root_node
    assert isinstance(root, UnionOf)
    members = [ir.node(m) for m in root.members]
    assert any(isinstance(m, Primitive) and m.name == "string" for m in members)
    unknowns = [m for m in members if isinstance(m, Unknown)]
    assert [(u.cause, u.reason) for u in unknowns] == [
        ("heterogeneous", HETEROGENEOUS_REASON)
    ]


def test_nullable_object_union_is_homogeneous() -> None:
    result = _normalize(_union(_obj(("x", _prim("number"))), _prim("null"), _prim("undefined")))

    assert result.ok
    assert result.diagnostics == ()


def test_intersection_of_objects_merges_fields() -> None:
    result = _normalize(
        {
            "kind": "intersection",
            "members": [
                _obj(("b", _prim("string"))),
                _ref("Base"),
            ],
        },
        Base=_obj(("a", _prim("number"))),
    )

    assert result.ok
    ir = result.value
    assert ir is not None
    root = ir.root_node
    assert isinstance(root, ObjectShape)
    assert [f.name for f in root.fields] == ["a", "b"]


def test_intersection_conflict() -> None:
    result = _normalize(
        {
            "kind": "intersection",
            "members": [_obj(("a", _prim("string"))), _obj(("a", _prim("number")))],
        }
    )

    assert result.codes() == ["ADTK-IR-2002"]
    assert "a (string vs number)" in result.diagnostics[0].message
    ir = result.value
    assert ir is not None
    root = ir.root_node
    assert isinstance(root, ObjectShape)
    assert len(root.fields) == 1
    field_type = ir.node(root.fields[0].type)
    assert isinstance(field_type, Primitive)
    assert field_type.name == "string"


def test_single_member_union_collapses() -> None:
    result = _normalize(_union(_prim("string")))

    assert result.ok
    assert result.codes() == ["ADTK-IR-2004"]
    assert result.diagnostics[0].category == "info"
    ir = result.value
    assert ir is not None
    assert isinstance(ir.root_node, Primitive)


def test_collapsed_member_is_spliced_into_parent() -> None:
    wrapped = {
        "kind": "intersection",
        "members": [_union(_prim("string"), _prim("number"))],
    }
    collapsed = _normalize(_union(_prim("boolean"), wrapped))
    flat = _canonical(_union(_prim("boolean"), _prim("string"), _prim("number")))

    assert collapsed.codes() == ["ADTK-IR-2004"]
    assert collapsed.value is not None
    assert collapsed.value.root == flat.root
    assert normalize(collapsed.value).value == collapsed.value


def test_recursive_type_keeps_recursive_ref() -> None:
    ir = _canonical(_obj(("value", _prim("number")), ("next", _union(_ref("Subject"), _prim("null")))))

    refs = [n for n in ir.nodes.values() if isinstance(n, RecursiveRef)]
    assert len(refs) == 1
    assert refs[0].target == ir.root
    assert hash_ir(ir).ok


def test_dropped_recursion_is_rebuilt_without_binder() -> None:
    result = _normalize(_union(_prim("number"), _obj(("next", _ref("Subject")))))

    assert result.codes() == ["ADTK-IR-2001"]
    ir = result.value
    assert ir is not None
    assert not any(isinstance(n, RecursiveRef) for n in ir.nodes.values())
    assert hash_ir(ir).ok


def test_normalize_is_idempotent() -> None:
    ir = _canonical(
        _obj(
            ("name", _union(_prim("string"), _prim("null"))),
            ("tags", {"kind": "array", "element": _prim("string")}),
            ("pair", {"kind": "tuple", "elements": [_prim("number"), _prim("string")]}),
            ("parent", _union(_ref("Subject"), _prim("undefined"))),
            ("owner", _ref("Owner")),
        ),
        Owner=_obj(("id", _prim("number"))),
    )

    again = normalize(ir)

    assert again.diagnostics == ()
    assert again.value is not None
    assert again.value.root == ir.root
    assert again.value.nodes == ir.nodes


def test_tags_distinguish_structurally_equal_fields() -> None:
    tagged = {
        "kind": "object",
        "fields": [
            {"name": "a", "type": _prim("string"), "comment": "/** @maxLength 5 */"},
        ],
    }
    plain = _obj(("a", _prim("string")))

    assert _canonical(tagged).root != _canonical(plain).root


def _lit(value: object) -> dict[str, Any]:
    return {"kind": "literal", "value": value}


def _shape(kind: str, size_field: str) -> dict[str, Any]:
    return _obj(("kind", _lit(kind)), (size_field, _prim("number")))


def test_object_union_records_discriminant() -> None:
    ir = _canonical(_union(_shape("circle", "radius"), _shape("square", "side")))

    root = ir.root_node
    assert isinstance(root, UnionOf)
    assert root.discriminant is not None
    assert root.discriminant.property_name == "kind"
    assert sorted(root.discriminant.values) == ["circle", "square"]
    for member_id, value in zip(root.members, root.discriminant.values):
        member = ir.node(member_id)
        assert isinstance(member, ObjectShape)
        kind_field = next(f for f in member.fields if f.name == "kind")
        assert ir.node(kind_field.type) == LiteralType(
            node_id=kind_field.type, literal_kind="string", value=value
        )
    assert hash_ir(ir).value == ir.root


def test_discriminant_sees_through_references() -> None:
    first = _canonical(
        _union(_ref("Circle"), _ref("Square")),
        Circle=_shape("circle", "radius"),
        Square=_shape("square", "side"),
    )
    second = _canonical(
        _union(_ref("Square"), _ref("Circle")),
        Circle=_shape("circle", "radius"),
        Square=_shape("square", "side"),
    )

    root = first.root_node
    assert isinstance(root, UnionOf)
    assert root.discriminant is not None
    assert root.discriminant.property_name == "kind"
    assert first.root == second.root
    assert first.nodes == second.nodes


def test_first_sorted_field_wins_as_discriminant() -> None:
    ir = _canonical(
        _union(
            _obj(("type", _lit("a")), ("code", _lit(1))),
            _obj(("type", _lit("b")), ("code", _lit(2))),
        )
    )

    root = ir.root_node
    assert isinstance(root, UnionOf)
    assert root.discriminant is not None
    assert root.discriminant.property_name == "code"
    assert sorted(root.discriminant.values) == [1, 2]


def test_union_without_discriminant() -> None:
    repeated = _canonical(
        _union(
            _obj(("kind", _lit("a")), ("x", _prim("number"))),
            _obj(("kind", _lit("a")), ("y", _prim("number"))),
        )
    )
    non_literal = _canonical(
        _union(_obj(("kind", _prim("string"))), _obj(("kind", _lit("a")), ("z", _prim("number"))))
    )
    optional = _canonical(
        _union(
            _obj(("kind", _lit("a"))),
            {
                "kind": "object",
                "fields": [{"name": "kind", "type": _lit("b"), "optional": True}],
            },
        )
    )
    nullable = _canonical(_union(_shape("circle", "radius"), _prim("null")))

    for ir in (repeated, non_literal, optional, nullable):
        root = ir.root_node
        assert isinstance(root, UnionOf)
        assert root.discriminant is None


def test_normalize_is_idempotent_on_heterogeneous_union() -> None:
    first = _normalize(_union(_prim("string"), _obj(("x", _prim("number")))))
    assert first.codes() == ["ADTK-IR-2001"]
    assert first.value is not None

    again = normalize(first.value)

    assert again.diagnostics == ()
    assert again.value == first.value


def test_normalize_is_idempotent_on_intersection_conflict() -> None:
    first = _normalize(
        {
            "kind": "intersection",
            "members": [_obj(("a", _prim("string"))), _obj(("a", _prim("number")))],
        }
    )
    assert first.codes() == ["ADTK-IR-2002"]
    assert first.value is not None

    again = normalize(first.value)

    assert again.diagnostics == ()
    assert again.value == first.value


def test_normalize_is_idempotent_on_collapsed_union() -> None:
    first = _normalize(_obj(("only", _union(_prim("string")))))
    assert first.codes() == ["ADTK-IR-2004"]
    assert first.value is not None

    again = normalize(first.value)

    assert again.diagnostics == ()
    assert again.value == first.value


def test_normalize_is_idempotent_with_discriminant() -> None:
    ir = _canonical(_union(_shape("circle", "radius"), _shape("square", "side")))

    again = normalize(ir)

    assert again.diagnostics == ()
    assert again.value == ir


def _tagged(name: str, desc: dict[str, Any], comment: str) -> dict[str, Any]:
    return {"name": name, "type": desc, "comment": comment}


def _normalize_entity(
    fields: list[dict[str, Any]], comment: str | None = None
) -> Result[CanonicalIR]:
    oracle = InMemoryOracle()
    oracle.add(FILE, "Subject", {"kind": "object", "fields": fields}, comment=comment)
    oracle.add(FILE, "Slug", _prim("string"))
    raw = Resolver(oracle).resolve(FILE, "Subject")
    assert raw.value is not None
    return normalize(raw.value)


@pytest.mark.parametrize(
    ("tag", "desc", "rendered"),
    [
        ("@min 1", _prim("string"), "string"),
        ("@maxLength 5", _prim("number"), "number"),
        ("@pattern ^a", _union(_prim("number"), _prim("null")), "number | null"),
        ("@pk", {"kind": "array", "element": _prim("number")}, "number[]"),
        ("@int", _lit("x"), '"x"'),
    ],
)
def test_tag_incompatible_with_field_type(
    tag: str, desc: dict[str, Any], rendered: str
) -> None:
    result = _normalize_entity([_tagged("value", desc, f"/** {tag} */")])

    assert result.codes() == ["ADTK-IR-3005"]
    diag = result.diagnostics[0]
    assert diag.message == (
        f"JSDoc tag {tag.split()[0]} cannot be applied to type {rendered}"
    )
    assert diag.context is not None
    assert (diag.context.entity, diag.context.field) == ("Subject", "value")
    assert result.value is not None


def test_tags_compatible_with_field_types() -> None:
    result = _normalize_entity(
        [
            _tagged("age", _union(_prim("number"), _prim("null")), "/** @min 0\n * @int */"),
            _tagged("names", {"kind": "array", "element": _prim("string")}, "/** @maxLength 3 */"),
            _tagged("slug", _ref("Slug"), "/** @pk\n * @pattern ^[a-z]+$ */"),
            _tagged(
                "role",
                {"kind": "enum", "members": [{"name": "Admin", "value": "admin"}]},
                "/** @default admin */",
            ),
            _tagged("mode", _union(_lit("a"), _lit("b")), "/** @unique\n * @format slug */"),
            _tagged("anything", _prim("string"), "/** @description free text */"),
        ],
        comment="/** @entity subjects\n * @index age,slug:unique */",
    )

    assert result.ok
    assert result.diagnostics == ()


def test_index_names_missing_field() -> None:
    result = _normalize_entity(
        [{"name": "email", "type": _prim("string")}],
        comment="/** @index email,missing,other */",
    )

    assert result.codes() == ["ADTK-IR-3006", "ADTK-IR-3006"]
    messages = [d.message for d in result.diagnostics]
    assert messages == [
        "Field missing named by @index does not exist",
        "Field other named by @index does not exist",
    ]


def test_index_on_non_object_declaration() -> None:
    oracle = InMemoryOracle()
    oracle.add(FILE, "Subject", _union(_lit("a"), _lit("b")), comment="/** @index a */")
    raw = Resolver(oracle).resolve(FILE, "Subject")
    assert raw.value is not None

    result = normalize(raw.value)

    assert result.codes() == ["ADTK-IR-3005"]
    assert "@index" in result.diagnostics[0].message


def test_index_on_intersection_sees_merged_fields() -> None:
    oracle = InMemoryOracle()
    oracle.add(
        FILE,
        "Subject",
        {"kind": "intersection", "members": [_ref("Base"), _obj(("name", _prim("string")))]},
        comment="/** @index id,name */",
    )
    oracle.add(FILE, "Base", _obj(("id", _prim("number"))))
    raw = Resolver(oracle).resolve(FILE, "Subject")
    assert raw.value is not None

    result = normalize(raw.value)

    assert result.ok
    assert result.diagnostics == ()


def test_ir_package_exports_only_models() -> None:
    import ir
    import ir.nodes

    assert "Discriminant" in ir.__all__
    assert all(hasattr(ir, name) for name in ir.__all__)
    assert not hasattr(ir.nodes, "child_ids")
