"""Mapping of JSON Schema documents onto Go types."""

from __future__ import annotations

import dataclasses
from typing import NamedTuple

from .loader import Schema, SchemaError, SchemaRegistry, SchemaType, split_ref
from .model import GoEnumVal, GoField, GoType, GoTypeKind, GoTypeRef
from .naming import to_go_name

_NAMELESS_SEGMENTS = frozenset({"definitions", "$defs", "properties", "items"})


class _PropInfo(NamedTuple):
    schema: Schema | None
    context_file: str


def _any() -> GoTypeRef:
    return GoTypeRef(builtin="any")


def _string_map(value: GoTypeRef) -> GoTypeRef:
    return GoTypeRef(map=True, map_key=GoTypeRef(builtin="string"), map_value=value)


class TypeMapper:
    """Converts a set of JSON Schema files into Go types."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry
        self._types: dict[str, GoType] = {}
        self._seen: dict[str, str] = {}
        self._entry_points: dict[str, str] = {}

    def types(self) -> list[GoType]:
        """Return all generated types sorted by name."""
        return sorted(self._types.values(), key=lambda t: t.name)

    def types_by_name(self) -> dict[str, GoType]:
        """Return the live mapping of type name to type."""
        return self._types

    def register_entry_point(self, schema_rel_path: str, go_type_name: str) -> None:
        """Name the root type of an entry-point schema."""
        self._entry_points[schema_rel_path] = go_type_name

    def process_entry_point(self, schema_rel_path: str) -> None:
        """Create types for a schema file's root and everything it references."""
        schema = self.registry.load_schema(schema_rel_path)
        root_name = self._entry_points.get(schema_rel_path, "")
        self._process_schema(schema, schema_rel_path, "", root_name, True)

    # ------------------------------------------------------------------

    def _process_schema(
        self,
        schema: Schema | None,
        context_file: str,
        json_pointer: str,
        suggested_name: str,
        is_entry_point: bool,
    ) -> GoTypeRef:
        if schema is None or schema.is_boolean_schema():
            return _any()

        if schema.ref:
            return self._process_ref(schema.ref, context_file, schema.description)

        if json_pointer:
            name = self._seen.get(f"{context_file}#{json_pointer}")
            if name is not None:
                return GoTypeRef(named=name)

        typ = schema.type.single()
        type_names = schema.type.values

        if len(type_names) > 1:
            return self._handle_multi_type(
                type_names, schema, context_file, json_pointer, suggested_name
            )

        if schema.enum and typ == "string" and suggested_name:
            return self._create_enum_type(schema, context_file, json_pointer, suggested_name)

        if not typ and schema.any_of is not None and not schema.has_properties():
            return self._process_any_of(schema, context_file, json_pointer, suggested_name)
        if not typ and schema.one_of is not None and not schema.has_properties():
            return _any()

        if typ == "object":
            return self._process_object(
                schema, context_file, json_pointer, suggested_name, is_entry_point
            )
        if typ == "array":
            return self._process_array(
                schema, context_file, json_pointer, suggested_name, is_entry_point
            )
        builtin = {
            "string": "string",
            "integer": "int",
            "number": "float64",
            "boolean": "bool",
            "null": "any",
        }.get(typ)
        if builtin is not None:
            return GoTypeRef(builtin=builtin)

        if schema.has_properties() or schema.all_of is not None:
            return self._process_object(
                schema, context_file, json_pointer, suggested_name, is_entry_point
            )

        return _any()

    def _process_ref(self, ref: str, context_file: str, desc_override: str) -> GoTypeRef:
        resolved, target_file = self.registry.resolve_ref(ref, context_file)

        if ref == "#" and resolved is not None:
            if resolved.type.single() == "array" and resolved.items is not None:
                return self._process_schema(resolved, target_file, "", "", False)

        _, fragment = split_ref(ref)

        name = self._seen.get(f"{target_file}#{fragment}")
        if name is not None:
            return GoTypeRef(named=name)

        def_name = ""
        if fragment:
            segments = fragment.removeprefix("/").split("/")
            def_name = next(
                (seg for seg in reversed(segments) if seg not in _NAMELESS_SEGMENTS), ""
            )

        if resolved is not None and desc_override and not resolved.description:
            resolved = dataclasses.replace(resolved, description=desc_override)

        return self._process_schema(
            resolved, target_file, fragment, to_go_name(def_name), False
        )

    def _process_object(
        self,
        schema: Schema,
        context_file: str,
        json_pointer: str,
        suggested_name: str,
        is_entry_point: bool,
    ) -> GoTypeRef:
        ap = schema.additional_properties
        if not schema.has_properties() and ap is not None and ap.schema is not None:
            return self._process_map_type(schema, context_file, json_pointer, suggested_name)
        if not schema.has_properties() and schema.all_of is None:
            if ap is None or ap.allowed is True:
                return _string_map(_any())

        name = self._unique_name(suggested_name or "Object")
        if json_pointer:
            self._seen[f"{context_file}#{json_pointer}"] = name

        go_type = GoType(
            name=name,
            doc=clean_doc(schema.description),
            schema_file=context_file,
            schema_path=json_pointer,
            kind=GoTypeKind.STRUCT,
            embed_meta=is_entry_point,
        )
        # Registered before the fields so nested names cannot collide with it.
        self._types[name] = go_type

        props, required = self._collect_properties(schema, context_file)

        for prop_name in sorted(props):
            info = props[prop_name]
            field_name = to_go_name(prop_name)
            try:
                field_ref = self._process_schema(
                    info.schema,
                    info.context_file,
                    f"{json_pointer}/properties/{prop_name}",
                    name + field_name,
                    False,
                )
            except SchemaError as exc:
                raise SchemaError(f"processing field {name}.{prop_name}: {exc}") from exc

            is_required = prop_name in required
            if not is_required and field_ref.builtin == "bool":
                field_ref.pointer = True

            go_type.fields.append(
                GoField(
                    name=field_name,
                    json_name=prop_name,
                    doc=clean_doc(info.schema.description if info.schema else ""),
                    type=field_ref,
                    required=is_required,
                )
            )

        if go_type.fields and allows_additional_properties(schema):
            value_ref = _any()
            if ap is not None and ap.schema is not None:
                try:
                    value_ref = self._process_schema(
                        ap.schema,
                        context_file,
                        f"{json_pointer}/additionalProperties",
                        f"{name}AdditionalPropertiesValue",
                        False,
                    )
                except SchemaError as exc:
                    raise SchemaError(
                        f"processing additionalProperties for {name}: {exc}"
                    ) from exc
            go_type.fields.append(
                GoField(
                    name="AdditionalProperties",
                    json_name="-",
                    type=_string_map(value_ref),
                    json_tag="-",
                    yaml_tag=",inline",
                )
            )
            go_type.has_additional_properties = True

        return GoTypeRef(named=name)

    def _collect_properties(
        self, schema: Schema, context_file: str
    ) -> tuple[dict[str, _PropInfo], set[str]]:
        props = {k: _PropInfo(v, context_file) for k, v in schema.properties.items()}
        required = set(schema.required)

        for sub in schema.all_of or []:
            self._merge_conditional_props(sub, context_file, props)
        self._merge_conditional_props(schema, context_file, props)

        return props, required

    def _merge_conditional_props(
        self, schema: Schema | None, context_file: str, props: dict[str, _PropInfo]
    ) -> None:
        if schema is None:
            return

        sources = [schema, schema.then, schema.else_, *(schema.one_of or [])]
        for source in sources:
            if source is None:
                continue
            for key, value in source.properties.items():
                props.setdefault(key, _PropInfo(value, context_file))

        for sub in schema.all_of or []:
            self._merge_conditional_props(sub, context_file, props)

    def _process_array(
        self,
        schema: Schema,
        context_file: str,
        json_pointer: str,
        suggested_name: str,
        is_entry_point: bool,
    ) -> GoTypeRef:
        items = schema.items
        if items is None:
            return GoTypeRef(slice=True, element=_any())

        if items.ref == "#":
            root = self.registry.load_schema(context_file)
            if root.items is not None and root.items is not items:
                element = self._process_schema(
                    root.items, context_file, "/items", suggested_name, False
                )
                return GoTypeRef(slice=True, element=element)
            if suggested_name:
                return GoTypeRef(slice=True, element=GoTypeRef(named=suggested_name))

        element_name = singularize(suggested_name) if suggested_name else ""
        element = self._process_schema(
            items, context_file, f"{json_pointer}/items", element_name, False
        )

        if is_entry_point and element.named:
            element_type = self._types.get(element.named)
            if element_type is not None:
                element_type.embed_meta = True

        return GoTypeRef(slice=True, element=element)

    def _process_map_type(
        self, schema: Schema, context_file: str, json_pointer: str, suggested_name: str
    ) -> GoTypeRef:
        value = self._process_schema(
            schema.additional_properties.schema,
            context_file,
            f"{json_pointer}/additionalProperties",
            f"{suggested_name}Value",
            False,
        )
        return _string_map(value)

    def _process_any_of(
        self, schema: Schema, context_file: str, json_pointer: str, suggested_name: str
    ) -> GoTypeRef:
        alternatives = schema.any_of or []
        all_simple = all(
            alt is None or (not alt.has_properties() and alt.items is None)
            for alt in alternatives
        )
        if all_simple:
            return _any()
        for alt in alternatives:
            if alt is not None and alt.type.single() != "null":
                return self._process_schema(
                    alt, context_file, json_pointer, suggested_name, False
                )
        return _any()

    def _handle_multi_type(
        self,
        type_names: tuple[str, ...],
        schema: Schema,
        context_file: str,
        json_pointer: str,
        suggested_name: str,
    ) -> GoTypeRef:
        non_null = [t for t in type_names if t != "null"]
        if len(non_null) != 1:
            return _any()

        narrowed = Schema(type=SchemaType((non_null[0],)), properties=schema.properties)
        ref = self._process_schema(
            narrowed, context_file, json_pointer, suggested_name, False
        )
        if len(non_null) < len(type_names):
            ref.pointer = True
        return ref

    def _create_enum_type(
        self, schema: Schema, context_file: str, json_pointer: str, suggested_name: str
    ) -> GoTypeRef:
        name = self._unique_name(suggested_name)
        if json_pointer:
            self._seen[f"{context_file}#{json_pointer}"] = name

        self._types[name] = GoType(
            name=name,
            doc=clean_doc(schema.description),
            schema_file=context_file,
            schema_path=json_pointer,
            kind=GoTypeKind.ENUM,
            enum_values=[
                GoEnumVal(go_name=enum_const_name(name, value), value=value)
                for value in schema.enum_strings()
            ],
        )
        return GoTypeRef(named=name)

    def _unique_name(self, name: str) -> str:
        name = name or "Type"
        if name not in self._types:
            return name
        suffix = 2
        while f"{name}{suffix}" in self._types:
            suffix += 1
        return f"{name}{suffix}"


def allows_additional_properties(schema: Schema) -> bool:
    """True when the schema permits properties beyond its declared ones.

    ``additionalProperties`` defaults to true; an ``allOf`` member may forbid them.
    """
    if schema.additional_properties is not None and schema.additional_properties.is_false():
        return False
    return not any(
        sub is not None
        and sub.additional_properties is not None
        and sub.additional_properties.is_false()
        for sub in schema.all_of or []
    )


def clean_doc(s: str) -> str:
    """Tidy a schema description for use as a doc comment."""
    return s.strip()


def _clean_enum_char(char: str) -> str:
    if char.isascii() and (char.isalnum() or char in "_-."):
        return char
    if char == "*":
        return ""
    return "_"


def enum_const_name(type_name: str, value: str) -> str:
    """Build a Go constant name for one enum value of ``type_name``."""
    cleaned = "".join(_clean_enum_char(c) for c in value)
    if not cleaned:
        return type_name + "Any"
    return type_name + to_go_name(cleaned)


def singularize(s: str) -> str:
    """Make a rough singular form of a plural name."""
    if s.endswith("ies") and len(s) > 3:
        return s[:-3] + "y"
    if s.endswith("ses"):
        return s[:-2]
    if s.endswith("s") and not s.endswith("ss") and not s.endswith("us"):
        return s[:-1]
    return s