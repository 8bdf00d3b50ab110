import pytest

from pkgspecgen.augment import (
    AugmentBaseType,
    AugmentConfig,
    AugmentExtraField,
    AugmentType,
    apply_augmentations,
    apply_base_types,
    load_augmentations,
    parse_type_ref,
    update_type_ref,
)
from pkgspecgen.model import GoEnumVal, GoField, GoType, GoTypeKind, GoTypeRef


@pytest.mark.parametrize(
    "text, want",
    [
        ("any", "any"),
        ("string", "string"),
        ("int", "int"),
        ("bool", "bool"),
        ("*bool", "*bool"),
        ("[]string", "[]string"),
        ("map[string]any", "map[string]any"),
        ("map[string][]string", "map[string][]string"),
        ("*MyType", "*MyType"),
        ("[]MyType", "[]MyType"),
    ],
)
def test_parse_type_ref(text, want):
    assert str(parse_type_ref(text)) == want


def test_parse_type_ref_qualified_pointer():
    ref = parse_type_ref("*time.Time")
    assert ref.pointer
    assert ref.package == "time"
    assert ref.qual_name == "Time"
    assert str(ref) == "*time.Time"


def test_parse_type_ref_unclosed_map_and_empty():
    assert parse_type_ref("map[string").is_any()
    assert parse_type_ref("").is_any()
    assert parse_type_ref("  int64  ").builtin == "int64"


AUGMENT_YML = """types:
  MyType:
    doc: "Updated doc."
    fields:
      name:
        doc: "The name field."
      value:
        type: any
  OldName:
    name: NewName
"""


def test_load_and_apply_augmentations(tmp_path):
    path = tmp_path / "augment.yml"
    path.write_text(AUGMENT_YML)
    config = load_augmentations(path)

    types = {
        "MyType": GoType(
            name="MyType",
            doc="Original doc.",
            kind=GoTypeKind.STRUCT,
            fields=[
                GoField(name="Name", json_name="name", type=GoTypeRef(builtin="string")),
                GoField(name="Value", json_name="value", type=GoTypeRef(builtin="string")),
            ],
        ),
        "OldName": GoType(name="OldName", kind=GoTypeKind.STRUCT),
        "Referrer": GoType(
            name="Referrer",
            kind=GoTypeKind.STRUCT,
            fields=[GoField(name="Ref", json_name="ref", type=GoTypeRef(named="OldName"))],
        ),
    }

    apply_augmentations(types, config)

    assert types["MyType"].doc == "Updated doc."
    assert types["MyType"].fields[0].doc == "The name field."
    assert types["MyType"].fields[1].type.builtin == "any"
    assert "OldName" not in types
    assert "NewName" in types
    assert types["NewName"].name == "NewName"
    assert types["Referrer"].fields[0].type.named == "NewName"


def test_chained_renames_follow_sorted_order():
    types = {
        "RoutingRule": GoType(name="RoutingRule"),
        "RoutingRule2": GoType(name="RoutingRule2"),
        "Referrer": GoType(
            name="Referrer",
            fields=[
                GoField(name="Set", type=GoTypeRef(slice=True, element=GoTypeRef(named="RoutingRule"))),
                GoField(name="Rule", type=GoTypeRef(named="RoutingRule2")),
            ],
        ),
    }
    config = AugmentConfig(
        types={
            "RoutingRule": AugmentType(name="RoutingRuleSet"),
            "RoutingRule2": AugmentType(name="RoutingRule"),
        }
    )
    apply_augmentations(types, config)

    assert set(types) == {"RoutingRuleSet", "RoutingRule", "Referrer"}
    assert types["Referrer"].fields[0].type.element.named == "RoutingRuleSet"
    assert types["Referrer"].fields[1].type.named == "RoutingRule"


def test_rename_enum_updates_const_prefix():
    types = {
        "Color": GoType(
            name="Color",
            kind=GoTypeKind.ENUM,
            enum_values=[GoEnumVal("ColorRed", "red"), GoEnumVal("Other", "x")],
        )
    }
    apply_augmentations(types, AugmentConfig(types={"Color": AugmentType(name="Hue")}))
    values = types["Hue"].enum_values
    assert values[0].go_name == "HueRed"
    assert values[1].go_name == "Other"


def test_extra_fields_and_embed_meta():
    types = {"Thing": GoType(name="Thing")}
    config = AugmentConfig(
        types={
            "Thing": AugmentType(
                embed_meta=True,
                extra_fields=[
                    AugmentExtraField(
                        name="Date", type="*time.Time", doc="When.", json="date,omitempty", yaml="date"
                    )
                ],
            )
        }
    )
    apply_augmentations(types, config)
    thing = types["Thing"]
    assert thing.embed_meta
    extra = thing.fields[-1]
    assert extra.name == "Date"
    assert str(extra.type) == "*time.Time"
    assert extra.json_tag == "date,omitempty"
    assert extra.json_name == "date,omitempty"
    assert extra.yaml_tag == "date"


def test_apply_with_no_config_changes_nothing():
    types = {"A": GoType(name="A", doc="doc")}
    apply_augmentations(types, None)
    apply_base_types(types, None)
    assert list(types) == ["A"]
    assert types["A"].doc == "doc"


def test_unknown_type_is_ignored():
    types = {"A": GoType(name="A")}
    apply_augmentations(types, AugmentConfig(types={"B": AugmentType(name="C")}))
    assert list(types) == ["A"]


def _source(name):
    return GoType(
        name=name,
        embed_meta=True,
        fields=[
            GoField(name="A", json_name="a", type=GoTypeRef(builtin="string")),
            GoField(name="B", json_name="b", type=GoTypeRef(builtin="int")),
            GoField(name="C", json_name="c", type=GoTypeRef(builtin="bool")),
        ],
    )


def test_apply_base_types():
    types = {"One": _source("One"), "Two": _source("Two")}
    config = AugmentConfig(
        base_types={
            "Base": AugmentBaseType(
                doc="Shared.",
                embed_meta=True,
                output_file="base.go",
                sources=["One", "Two", "Missing"],
                fields=["a", "b"],
            )
        }
    )
    apply_base_types(types, config)

    base = types["Base"]
    assert [f.name for f in base.fields] == ["FileMetadata", "A", "B"]
    assert base.fields[0].embed and base.fields[0].json_tag == "-"
    assert base.output_file == "base.go"
    assert base.doc == "Shared."
    assert not base.embed_meta

    for name in ("One", "Two"):
        src = types[name]
        assert [f.name for f in src.fields] == ["Base", "C"]
        assert src.fields[0].embed
        assert src.fields[0].type.named == "Base"
        assert not src.embed_meta
        assert src.needs_unmarshal_yaml


def test_base_type_skipped_without_fields_or_first_source():
    types = {"One": _source("One")}
    config = AugmentConfig(
        base_types={
            "Empty": AugmentBaseType(sources=["One"], fields=[]),
            "Orphan": AugmentBaseType(sources=["Missing", "One"], fields=["a"]),
        }
    )
    apply_base_types(types, config)
    assert set(types) == {"One"}
    assert len(types["One"].fields) == 3


def test_update_type_ref_nested():
    ref = GoTypeRef(
        map=True,
        map_key=GoTypeRef(builtin="string"),
        map_value=GoTypeRef(slice=True, element=GoTypeRef(named="Old")),
    )
    update_type_ref(ref, "Old", "New")
    assert str(ref) == "map[string][]New"


def test_load_augmentations_rejects_bad_yaml(tmp_path):
    path = tmp_path / "augment.yml"
    path.write_text("types: [unclosed\n")
    with pytest.raises(ValueError):
        load_augmentations(path)


def test_load_augmentations_rejects_wrong_shape(tmp_path):
    path = tmp_path / "augment.yml"
    path.write_text("types:\n  - a\n")
    with pytest.raises(ValueError):
        load_augmentations(path)


def test_load_augmentations_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_augmentations(tmp_path / "absent.yml")


def test_load_augmentations_base_types(tmp_path):
    path = tmp_path / "augment.yml"
    path.write_text(
        "base_types:\n  Base:\n    doc: Shared.\n    embed_meta: true\n"
        "    output_file: base.go\n    sources: [One, Two]\n    fields: [a]\n"
    )
    config = load_augmentations(path)
    base = config.base_types["Base"]
    assert base.sources == ["One", "Two"]
    assert base.fields == ["a"]
    assert base.embed_meta is True
    assert base.output_file == "base.go"