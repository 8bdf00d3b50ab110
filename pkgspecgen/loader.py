"""JSON Schema documents, their parsing, and ``$ref`` resolution."""

from __future__ import annotations

import json
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator


class SchemaError(Exception):
    """Raised when a schema cannot be loaded, parsed or resolved."""


@dataclass(frozen=True)
class SchemaType:
    """The JSON Schema ``type`` keyword: a single name or a list of names."""

    values: tuple[str, ...] = ()

    def single(self) -> str:
        """Return the only type name, or an empty string if there is not exactly one."""
        return self.values[0] if len(self.values) == 1 else ""

    def is_empty(self) -> bool:
        return not self.values

    def contains(self, typ: str) -> bool:
        return typ in self.values

    def to_json(self) -> Any:
        """Return the keyword as a JSON value: a string, a list, or None when unset."""
        if len(self.values) == 1:
            return self.values[0]
        return list(self.values) if self.values else None


@dataclass(eq=False)
class AdditionalProperties:
    """The ``additionalProperties`` keyword, either a boolean or a schema."""

    allowed: bool | None = None
    schema: Schema | None = None

    def is_false(self) -> bool:
        """True when additional properties are explicitly forbidden."""
        return self.allowed is False

    def to_json(self) -> Any:
        if self.allowed is not None:
            return self.allowed
        return _schema_to_json(self.schema)


@dataclass(eq=False)
class Schema:
    """A JSON Schema document, limited to the keywords code generation needs.

    When ``boolean_schema`` is set the schema was a bare ``true`` or ``false``
    and every other field is meaningless.
    """

    boolean_schema: bool | None = None

    ref: str = ""
    defs: dict[str, Schema | None] = field(default_factory=dict)
    definitions: dict[str, Schema | None] = field(default_factory=dict)

    id: str = ""
    schema_uri: str = ""
    title: str = ""
    description: str = ""

    type: SchemaType = field(default_factory=SchemaType)
    const: Any = None
    enum: list[Any] = field(default_factory=list)

    properties: dict[str, Schema | None] = field(default_factory=dict)
    pattern_properties: dict[str, Schema | None] = field(default_factory=dict)
    additional_properties: AdditionalProperties | None = None
    required: list[str] = field(default_factory=list)

    items: Schema | None = None
    min_items: int | None = None
    max_items: int | None = None

    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None
    multiple_of: float | None = None

    pattern: str = ""
    format: str = ""
    min_length: int | None = None
    max_length: int | None = None

    all_of: list[Schema | None] | None = None
    any_of: list[Schema | None] | None = None
    one_of: list[Schema | None] | None = None
    not_: Schema | None = None

    if_: Schema | None = None
    then: Schema | None = None
    else_: Schema | None = None

    default: Any = None
    examples: list[Any] = field(default_factory=list)
    deprecated: bool = False

    def is_boolean_schema(self) -> bool:
        return self.boolean_schema is not None

    def all_definitions(self) -> dict[str, Schema | None]:
        """Merge ``definitions`` and ``$defs``; ``$defs`` wins on a clash."""
        return {**self.definitions, **self.defs}

    def is_required(self, prop: str) -> bool:
        return prop in self.required

    def has_properties(self) -> bool:
        return bool(self.properties)

    def enum_strings(self) -> list[str]:
        """Return enum values as strings; other values in their JSON form."""
        result = []
        for value in self.enum:
            if isinstance(value, str):
                result.append(value)
            elif value is None:
                result.append("")
            else:
                result.append(json.dumps(value, separators=(",", ":")))
        return result


# ----------------------------------------------------------------------------
# Parsing


def _describe(value: Any) -> str:
    return json.dumps(value) if _is_json(value) else repr(value)


def _is_json(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def _string(obj: dict, key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SchemaError(f'"{key}" must be a string, got {_describe(value)}')
    return value


def _boolean(obj: dict, key: str) -> bool:
    value = obj.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise SchemaError(f'"{key}" must be a boolean, got {_describe(value)}')
    return value


def _integer(obj: dict, key: str) -> int | None:
    value = obj.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaError(f'"{key}" must be an integer, got {_describe(value)}')
    return value


def _number(obj: dict, key: str) -> float | None:
    value = obj.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f'"{key}" must be a number, got {_describe(value)}')
    return value


def _string_list(obj: dict, key: str) -> list[str]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SchemaError(f'"{key}" must be a list of strings, got {_describe(value)}')
    return list(value)


def _raw_list(obj: dict, key: str) -> list[Any]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaError(f'"{key}" must be a list, got {_describe(value)}')
    return list(value)


def _sub_schema(obj: dict, key: str) -> Schema | None:
    value = obj.get(key)
    return None if value is None else parse_schema(value)


def _schema_map(obj: dict, key: str) -> dict[str, Schema | None]:
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SchemaError(f'"{key}" must be an object, got {_describe(value)}')
    return {k: None if v is None else parse_schema(v) for k, v in value.items()}


def _schema_list(obj: dict, key: str) -> list[Schema | None] | None:
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise SchemaError(f'"{key}" must be a list, got {_describe(value)}')
    return [None if v is None else parse_schema(v) for v in value]


def parse_schema(value: Any) -> Schema:
    """Build a :class:`Schema` from a decoded JSON value (object or boolean)."""
    if value is None:
        return Schema(boolean_schema=False)
    if isinstance(value, bool):
        return Schema(boolean_schema=value)
    if not isinstance(value, dict):
        raise SchemaError(f"cannot read schema from {_describe(value)}")

    additional = value.get("additionalProperties")
    return Schema(
        ref=_string(value, "$ref"),
        defs=_schema_map(value, "$defs"),
        definitions=_schema_map(value, "definitions"),
        id=_string(value, "$id"),
        schema_uri=_string(value, "$schema"),
        title=_string(value, "title"),
        description=_string(value, "description"),
        type=parse_schema_type(value.get("type")),
        const=value.get("const"),
        enum=_raw_list(value, "enum"),
        properties=_schema_map(value, "properties"),
        pattern_properties=_schema_map(value, "patternProperties"),
        additional_properties=(
            None if additional is None else parse_additional_properties(additional)
        ),
        required=_string_list(value, "required"),
        items=_sub_schema(value, "items"),
        min_items=_integer(value, "minItems"),
        max_items=_integer(value, "maxItems"),
        minimum=_number(value, "minimum"),
        maximum=_number(value, "maximum"),
        exclusive_minimum=_number(value, "exclusiveMinimum"),
        exclusive_maximum=_number(value, "exclusiveMaximum"),
        multiple_of=_number(value, "multipleOf"),
        pattern=_string(value, "pattern"),
        format=_string(value, "format"),
        min_length=_integer(value, "minLength"),
        max_length=_integer(value, "maxLength"),
        all_of=_schema_list(value, "allOf"),
        any_of=_schema_list(value, "anyOf"),
        one_of=_schema_list(value, "oneOf"),
        not_=_sub_schema(value, "not"),
        if_=_sub_schema(value, "if"),
        then=_sub_schema(value, "then"),
        else_=_sub_schema(value, "else"),
        default=value.get("default"),
        examples=_raw_list(value, "examples"),
        deprecated=_boolean(value, "deprecated"),
    )


def parse_schema_type(value: Any) -> SchemaType:
    """Read the ``type`` keyword, given as a string or a list of strings."""
    if value is None:
        return SchemaType()
    if isinstance(value, str):
        return SchemaType((value,))
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return SchemaType(tuple(value))
    raise SchemaError(f"cannot read type: {_describe(value)}")


def parse_additional_properties(value: Any) -> AdditionalProperties:
    """Read the ``additionalProperties`` keyword, a boolean or a schema."""
    if value is None or isinstance(value, bool):
        return AdditionalProperties(allowed=bool(value))
    try:
        return AdditionalProperties(schema=parse_schema(value))
    except SchemaError as exc:
        raise SchemaError(
            f"cannot read additionalProperties: {_describe(value)}"
        ) from exc


# ----------------------------------------------------------------------------
# Serialisation


def _schema_map_json(schemas: dict[str, Schema | None]) -> dict[str, Any]:
    return {name: _schema_to_json(schemas[name]) for name in sorted(schemas)}


def _schema_list_json(schemas: list[Schema | None] | None) -> list[Any]:
    return [_schema_to_json(s) for s in schemas or []]


def _schema_to_json(schema: Schema | None) -> Any:
    if schema is None:
        return None
    ap = schema.additional_properties
    entries = [
        ("$ref", schema.ref, bool(schema.ref)),
        ("$defs", _schema_map_json(schema.defs), bool(schema.defs)),
        ("definitions", _schema_map_json(schema.definitions), bool(schema.definitions)),
        ("$id", schema.id, bool(schema.id)),
        ("$schema", schema.schema_uri, bool(schema.schema_uri)),
        ("title", schema.title, bool(schema.title)),
        ("description", schema.description, bool(schema.description)),
        ("type", schema.type.to_json(), True),
        ("const", schema.const, schema.const is not None),
        ("enum", schema.enum, bool(schema.enum)),
        ("properties", _schema_map_json(schema.properties), bool(schema.properties)),
        (
            "patternProperties",
            _schema_map_json(schema.pattern_properties),
            bool(schema.pattern_properties),
        ),
        ("additionalProperties", ap.to_json() if ap else None, ap is not None),
        ("required", schema.required, bool(schema.required)),
        ("items", _schema_to_json(schema.items), schema.items is not None),
        ("minItems", schema.min_items, schema.min_items is not None),
        ("maxItems", schema.max_items, schema.max_items is not None),
        ("minimum", schema.minimum, schema.minimum is not None),
        ("maximum", schema.maximum, schema.maximum is not None),
        ("exclusiveMinimum", schema.exclusive_minimum, schema.exclusive_minimum is not None),
        ("exclusiveMaximum", schema.exclusive_maximum, schema.exclusive_maximum is not None),
        ("multipleOf", schema.multiple_of, schema.multiple_of is not None),
        ("pattern", schema.pattern, bool(schema.pattern)),
        ("format", schema.format, bool(schema.format)),
        ("minLength", schema.min_length, schema.min_length is not None),
        ("maxLength", schema.max_length, schema.max_length is not None),
        ("allOf", _schema_list_json(schema.all_of), bool(schema.all_of)),
        ("anyOf", _schema_list_json(schema.any_of), bool(schema.any_of)),
        ("oneOf", _schema_list_json(schema.one_of), bool(schema.one_of)),
        ("not", _schema_to_json(schema.not_), schema.not_ is not None),
        ("if", _schema_to_json(schema.if_), schema.if_ is not None),
        ("then", _schema_to_json(schema.then), schema.then is not None),
        ("else", _schema_to_json(schema.else_), schema.else_ is not None),
        ("default", schema.default, schema.default is not None),
        ("examples", schema.examples, bool(schema.examples)),
        ("deprecated", schema.deprecated, schema.deprecated),
    ]
    return {key: value for key, value, present in entries if present}


# ----------------------------------------------------------------------------
# Registry and reference resolution


class SchemaRegistry:
    """Loads and caches schema files below a base directory and resolves ``$ref``."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self.schemas: dict[str, Schema] = {}

    def load_schema(self, rel_path: str) -> Schema:
        """Load the schema at ``rel_path`` below the base directory, cached by path."""
        rel_path = posixpath.normpath(rel_path)
        cached = self.schemas.get(rel_path)
        if cached is not None:
            return cached

        try:
            data = (self.base_dir / rel_path).read_bytes()
        except OSError as exc:
            raise SchemaError(f"loading schema {rel_path}: {exc}") from exc

        try:
            schema = parse_schema(json.loads(data))
        except (ValueError, SchemaError) as exc:
            raise SchemaError(f"parsing schema {rel_path}: {exc}") from exc

        self.schemas[rel_path] = schema
        return schema

    def resolve_ref(self, ref: str, context_file: str) -> tuple[Schema | None, str]:
        """Resolve ``ref`` as seen from ``context_file``.

        Returns the target schema and the relative path of the file it lives in.
        """
        file_part, fragment = split_ref(ref)

        target_file = context_file
        if file_part:
            directory = posixpath.dirname(context_file) or "."
            target_file = posixpath.normpath(f"{directory}/{file_part}")

        try:
            schema = self.load_schema(target_file)
            if not fragment:
                return schema, target_file
            return walk_json_pointer(schema, fragment), target_file
        except SchemaError as exc:
            raise SchemaError(f'resolving $ref "{ref}" from {context_file}: {exc}') from exc


def split_ref(ref: str) -> tuple[str, str]:
    """Split a ``$ref`` into its file part and its fragment (without the ``#``)."""
    file_part, _, fragment = ref.partition("#")
    return file_part, fragment


def unescape_json_pointer(s: str) -> str:
    """Undo JSON Pointer escaping: ``~1`` becomes ``/`` and ``~0`` becomes ``~``."""
    return s.replace("~1", "/").replace("~0", "~")


_NAMED_MAPS = {
    "definitions": ("definitions", "definition", "definition name"),
    "$defs": ("defs", "$def", "def name"),
    "properties": ("properties", "property", "property name"),
}

_SCHEMA_LISTS = {"allOf": "all_of", "anyOf": "any_of", "oneOf": "one_of"}

_SUB_SCHEMAS = {"items": "items", "then": "then", "else": "else_", "if": "if_", "not": "not_"}

_INDEX_RE = re.compile(r"[+-]?\d+")


def _take(parts: Iterator[str], message: str) -> str:
    part = next(parts, None)
    if part is None:
        raise SchemaError(message)
    return part


def _walk_segment(current: Schema, segment: str, parts: Iterator[str]) -> Schema | None:
    if segment in _NAMED_MAPS:
        attr, label, missing = _NAMED_MAPS[segment]
        name = unescape_json_pointer(
            _take(parts, f"incomplete pointer: missing {missing} after /{segment}")
        )
        children = getattr(current, attr)
        if name not in children:
            raise SchemaError(f'{label} "{name}" not found')
        return children[name]

    if segment in _SCHEMA_LISTS:
        raw_index = _take(parts, f"incomplete pointer: missing index after /{segment}")
        if not _INDEX_RE.fullmatch(raw_index):
            raise SchemaError(f'invalid array index "{raw_index}" in /{segment}')
        index = int(raw_index)
        schemas = getattr(current, _SCHEMA_LISTS[segment]) or []
        if not 0 <= index < len(schemas):
            raise SchemaError(
                f"index {index} out of range for /{segment} (len={len(schemas)})"
            )
        return schemas[index]

    if segment in _SUB_SCHEMAS:
        child = getattr(current, _SUB_SCHEMAS[segment])
        if child is None:
            raise SchemaError(f"{segment} is not set")
        return child

    if segment == "additionalProperties":
        ap = current.additional_properties
        if ap is None or ap.schema is None:
            raise SchemaError("additionalProperties is not a schema")
        return ap.schema

    for children in (current.properties, current.definitions, current.defs):
        if segment in children:
            return children[segment]
    raise SchemaError(f'cannot resolve pointer segment "{segment}"')


def walk_json_pointer(schema: Schema, pointer: str) -> Schema | None:
    """Follow a JSON Pointer such as ``/definitions/foo/properties/bar``."""
    if pointer in ("", "/"):
        return schema

    parts = iter(pointer.removeprefix("/").split("/"))
    current: Schema | None = schema
    for raw in parts:
        segment = unescape_json_pointer(raw)
        if current is None:
            raise SchemaError(f'cannot resolve pointer segment "{segment}" of a null schema')
        current = _walk_segment(current, segment, parts)
    return current