import json

import pytest

from pkgspecgen.loader import (
    AdditionalProperties,
    Schema,
    SchemaError,
    SchemaRegistry,
    SchemaType,
    parse_additional_properties,
    parse_schema,
    parse_schema_type,
    split_ref,
    unescape_json_pointer,
    walk_json_pointer,
)

SIMPLE = """{
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer"}
    },
    "required": ["name"]
}"""

WITH_DEFS = """{
    "type": "object",
    "properties": {
        "person": {"$ref": "#/definitions/person"}
    },
    "definitions": {
        "person": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "color": {
                    "type": "string",
                    "enum": ["red", "green", "blue"]
                }
            }
        }
    }
}"""

NESTED = """{
    "type": "object",
    "definitions": {
        "item": {
            "type": "object",
            "properties": {
                "value": {"type": "string"}
            }
        }
    }
}"""


@pytest.fixture
def schema_dir(tmp_path):
    (tmp_path / "simple.json").write_text(SIMPLE)
    (tmp_path / "with_defs.json").write_text(WITH_DEFS)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "nested.json").write_text(NESTED)
    return tmp_path


@pytest.fixture
def registry(schema_dir):
    return SchemaRegistry(schema_dir)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('"string"', ("string",)),
        ('["string","null"]', ("string", "null")),
        ('"object"', ("object",)),
    ],
)
def test_parse_schema_type(raw, expected):
    assert parse_schema_type(json.loads(raw)).values == expected


def test_parse_schema_type_rejects_number():
    with pytest.raises(SchemaError, match="cannot read type"):
        parse_schema_type(5)


def test_schema_type_queries():
    st = SchemaType(("string", "null"))
    assert st.single() == ""
    assert st.contains("null")
    assert not st.contains("object")
    assert not st.is_empty()
    assert SchemaType().is_empty()
    assert SchemaType(("object",)).single() == "object"


def test_schema_type_to_json():
    assert SchemaType(("string",)).to_json() == "string"
    assert SchemaType(("string", "null")).to_json() == ["string", "null"]
    assert SchemaType().to_json() is None


def test_additional_properties_false():
    ap = parse_additional_properties(json.loads("false"))
    assert ap.is_false() is True


def test_additional_properties_true():
    ap = parse_additional_properties(json.loads("true"))
    assert ap.is_false() is False


def test_additional_properties_schema():
    ap = parse_additional_properties(json.loads('{"type":"string"}'))
    assert ap.schema is not None
    assert ap.schema.type.single() == "string"
    assert ap.is_false() is False


def test_additional_properties_invalid():
    with pytest.raises(SchemaError, match="additionalProperties"):
        parse_additional_properties(3)


def test_additional_properties_to_json():
    assert AdditionalProperties(allowed=False).to_json() is False
    ap = parse_additional_properties({"type": "string"})
    assert ap.to_json() == {"type": "string"}


def test_load_schema(registry):
    s = registry.load_schema("simple.json")
    assert s.type.single() == "object"
    assert len(s.properties) == 2
    assert s.required == ["name"]

    assert registry.load_schema("simple.json") is s
    assert registry.load_schema("./simple.json") is s


def test_load_schema_missing_file(registry):
    with pytest.raises(SchemaError, match="loading schema missing.json"):
        registry.load_schema("missing.json")


def test_load_schema_invalid_json(tmp_path):
    (tmp_path / "bad.json").write_text("{not json")
    with pytest.raises(SchemaError, match="parsing schema bad.json"):
        SchemaRegistry(tmp_path).load_schema("bad.json")


def test_load_schema_wrong_keyword_type(tmp_path):
    (tmp_path / "bad.json").write_text('{"title": 5}')
    with pytest.raises(SchemaError, match="parsing schema"):
        SchemaRegistry(tmp_path).load_schema("bad.json")


def test_resolve_ref_same_file_definition(registry):
    s, file = registry.resolve_ref("#/definitions/person", "with_defs.json")
    assert file == "with_defs.json"
    assert s.type.single() == "object"
    assert "name" in s.properties


def test_resolve_ref_self_reference(registry):
    s, file = registry.resolve_ref("#", "simple.json")
    assert file == "simple.json"
    assert s.type.single() == "object"


def test_resolve_ref_cross_file(registry):
    s, file = registry.resolve_ref("./with_defs.json#/definitions/person", "simple.json")
    assert file == "with_defs.json"
    assert "name" in s.properties


def test_resolve_ref_cross_file_nested(registry):
    s, file = registry.resolve_ref("../sub/nested.json#/definitions/item", "sub/nested.json")
    assert file == "sub/nested.json"
    assert s.type.single() == "object"


def test_resolve_ref_deep_path(registry):
    s, _ = registry.resolve_ref("#/definitions/person/properties/name", "with_defs.json")
    assert s.type.single() == "string"


def test_resolve_ref_whole_other_file(registry):
    s, file = registry.resolve_ref("sub/nested.json", "simple.json")
    assert file == "sub/nested.json"
    assert "item" in s.definitions


def test_resolve_ref_missing_definition(registry):
    with pytest.raises(SchemaError, match='definition "nobody" not found'):
        registry.resolve_ref("#/definitions/nobody", "with_defs.json")


def test_resolve_ref_missing_file(registry):
    with pytest.raises(SchemaError, match=r'resolving \$ref "\./gone\.json"'):
        registry.resolve_ref("./gone.json", "simple.json")


def test_enum_strings(registry):
    s = registry.load_schema("with_defs.json")
    color = s.definitions["person"].properties["color"]
    assert color.enum_strings() == ["red", "green", "blue"]


def test_enum_strings_non_string_values():
    s = parse_schema({"enum": ["a", 1, True, None, {"k": 2}]})
    assert s.enum_strings() == ["a", "1", "true", "", '{"k":2}']


@pytest.mark.parametrize(
    ("ref", "file_part", "fragment"),
    [
        ("#/definitions/foo", "", "/definitions/foo"),
        ("./other.json#/definitions/x", "./other.json", "/definitions/x"),
        ("#", "", ""),
        ("./other.json", "./other.json", ""),
        ("../../foo.json#/definitions/bar", "../../foo.json", "/definitions/bar"),
    ],
)
def test_split_ref(ref, file_part, fragment):
    assert split_ref(ref) == (file_part, fragment)


@pytest.mark.parametrize(
    ("text", "expected"),
    [("a~1b~0c", "a/b~c"), ("~01", "~1"), ("plain", "plain")],
)
def test_unescape_json_pointer(text, expected):
    assert unescape_json_pointer(text) == expected


@pytest.fixture
def composite():
    return parse_schema(
        {
            "allOf": [{"title": "first"}, {"title": "second"}],
            "then": {"title": "then-branch"},
            "items": {"title": "item"},
            "additionalProperties": {"title": "extra"},
            "properties": {"a/b": {"title": "slash"}, "plain": {"title": "p"}},
            "$defs": {"d": {"title": "def"}},
        }
    )


@pytest.mark.parametrize(
    ("pointer", "title"),
    [
        ("/allOf/1", "second"),
        ("/then", "then-branch"),
        ("/items", "item"),
        ("/additionalProperties", "extra"),
        ("/properties/a~1b", "slash"),
        ("/plain", "p"),
        ("/d", "def"),
        ("/$defs/d", "def"),
    ],
)
def test_walk_json_pointer(composite, pointer, title):
    assert walk_json_pointer(composite, pointer).title == title


def test_walk_json_pointer_root(composite):
    assert walk_json_pointer(composite, "") is composite
    assert walk_json_pointer(composite, "/") is composite


@pytest.mark.parametrize(
    ("pointer", "message"),
    [
        ("/allOf/5", r"index 5 out of range for /allOf \(len=2\)"),
        ("/allOf/x", 'invalid array index "x" in /allOf'),
        ("/allOf", "missing index after /allOf"),
        ("/definitions", "missing definition name after /definitions"),
        ("/$defs", "missing def name after /\\$defs"),
        ("/properties/none", 'property "none" not found'),
        ("/else", "else is not set"),
        ("/unknown", 'cannot resolve pointer segment "unknown"'),
    ],
)
def test_walk_json_pointer_errors(composite, pointer, message):
    with pytest.raises(SchemaError, match=message):
        walk_json_pointer(composite, pointer)


def test_walk_json_pointer_additional_properties_not_schema():
    s = parse_schema({"additionalProperties": False})
    with pytest.raises(SchemaError, match="additionalProperties is not a schema"):
        walk_json_pointer(s, "/additionalProperties")


def test_boolean_schema():
    s = parse_schema(True)
    assert s.is_boolean_schema()
    assert s.boolean_schema is True
    assert not parse_schema({}).is_boolean_schema()


def test_parse_schema_rejects_list():
    with pytest.raises(SchemaError):
        parse_schema([1, 2])


def test_all_definitions_prefers_defs():
    s = parse_schema(
        {
            "definitions": {"a": {"title": "old"}, "b": {"title": "b"}},
            "$defs": {"a": {"title": "new"}},
        }
    )
    merged = s.all_definitions()
    assert sorted(merged) == ["a", "b"]
    assert merged["a"].title == "new"


def test_is_required_and_has_properties():
    s = parse_schema({"properties": {"x": {}}, "required": ["x"]})
    assert s.is_required("x")
    assert not s.is_required("y")
    assert s.has_properties()
    assert not Schema().has_properties()


def test_composition_lists_absent_versus_empty():
    assert parse_schema({}).all_of is None
    assert parse_schema({"anyOf": []}).any_of == []