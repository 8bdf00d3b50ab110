"""Type and field overrides read from an augment file and applied to the model."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .model import GoField, GoType, GoTypeKind, GoTypeRef

_BUILTINS = frozenset({"any", "string", "int", "bool", "float64", "int64"})


@dataclass
class AugmentField:
    """Overrides for a single field."""

    name: str = ""
    doc: str = ""
    type: str = ""


@dataclass
class AugmentExtraField:
    """A field to add that the JSON schema does not declare."""

    name: str = ""
    type: str = ""
    doc: str = ""
    json: str = ""
    yaml: str = ""


@dataclass
class AugmentType:
    """Overrides for a single Go type."""

    name: str = ""
    doc: str = ""
    embed_meta: bool = False
    fields: dict[str, AugmentField] = field(default_factory=dict)
    extra_fields: list[AugmentExtraField] = field(default_factory=list)


@dataclass
class AugmentBaseType:
    """A base type extracted from the common fields of several source types."""

    doc: str = ""
    embed_meta: bool = False
    output_file: str = ""
    sources: list[str] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)


@dataclass
class AugmentConfig:
    """All overrides loaded from an augment file."""

    types: dict[str, AugmentType] = field(default_factory=dict)
    base_types: dict[str, AugmentBaseType] = field(default_factory=dict)


# ----------------------------------------------------------------------------
# Reading


def _mapping(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping, got {value!r}")
    return value


def _sequence(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list, got {value!r}")
    return value


def _text(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"{what} must be a scalar, got {value!r}")
    return str(value)


def _flag(value: Any, what: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{what} must be a boolean, got {value!r}")
    return value


def _read_field(data: Any) -> AugmentField:
    data = _mapping(data, "field override")
    return AugmentField(
        name=_text(data.get("name"), "name"),
        doc=_text(data.get("doc"), "doc"),
        type=_text(data.get("type"), "type"),
    )


def _read_extra_field(data: Any) -> AugmentExtraField:
    data = _mapping(data, "extra field")
    return AugmentExtraField(
        name=_text(data.get("name"), "name"),
        type=_text(data.get("type"), "type"),
        doc=_text(data.get("doc"), "doc"),
        json=_text(data.get("json"), "json"),
        yaml=_text(data.get("yaml"), "yaml"),
    )


def _read_type(data: Any) -> AugmentType:
    data = _mapping(data, "type override")
    return AugmentType(
        name=_text(data.get("name"), "name"),
        doc=_text(data.get("doc"), "doc"),
        embed_meta=_flag(data.get("embed_meta"), "embed_meta"),
        fields={
            str(key): _read_field(value)
            for key, value in _mapping(data.get("fields"), "fields").items()
        },
        extra_fields=[
            _read_extra_field(item)
            for item in _sequence(data.get("extra_fields"), "extra_fields")
        ],
    )


def _read_base_type(data: Any) -> AugmentBaseType:
    data = _mapping(data, "base type")
    return AugmentBaseType(
        doc=_text(data.get("doc"), "doc"),
        embed_meta=_flag(data.get("embed_meta"), "embed_meta"),
        output_file=_text(data.get("output_file"), "output_file"),
        sources=[_text(s, "source") for s in _sequence(data.get("sources"), "sources")],
        fields=[_text(f, "field") for f in _sequence(data.get("fields"), "fields")],
    )


def load_augmentations(path: str | Path) -> AugmentConfig:
    """Read an augment file; raises ``OSError`` or ``ValueError``."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = _mapping(yaml.safe_load(text), "augment config")
        return AugmentConfig(
            types={
                str(name): _read_type(value)
                for name, value in _mapping(data.get("types"), "types").items()
            },
            base_types={
                str(name): _read_base_type(value)
                for name, value in _mapping(data.get("base_types"), "base_types").items()
            },
        )
    except (yaml.YAMLError, ValueError) as exc:
        raise ValueError(f"parsing augment config: {exc}") from exc


# ----------------------------------------------------------------------------
# Applying


def apply_augmentations(types: dict[str, GoType], config: AugmentConfig | None) -> None:
    """Apply type renames, docs, field overrides and extra fields in place."""
    if config is None:
        return

    # Sorted, since chained renames depend on the order they are applied in.
    for type_name in sorted(config.types):
        aug = config.types[type_name]
        go_type = types.get(type_name)
        if go_type is None:
            continue

        if aug.name and aug.name != type_name:
            del types[type_name]
            old_name = go_type.name
            go_type.name = aug.name
            types[aug.name] = go_type

            for other in types.values():
                for go_field in other.fields:
                    update_type_ref(go_field.type, old_name, aug.name)

            if go_type.kind is GoTypeKind.ENUM:
                for value in go_type.enum_values:
                    if value.go_name.startswith(old_name):
                        value.go_name = aug.name + value.go_name[len(old_name):]

        if aug.doc:
            go_type.doc = aug.doc
        if aug.embed_meta:
            go_type.embed_meta = True

        for json_name, field_aug in aug.fields.items():
            target = next((f for f in go_type.fields if f.json_name == json_name), None)
            if target is None:
                continue
            if field_aug.name:
                target.name = field_aug.name
            if field_aug.doc:
                target.doc = field_aug.doc
            if field_aug.type:
                target.type = parse_type_ref(field_aug.type)

        go_type.fields.extend(
            GoField(
                name=extra.name,
                json_name=extra.json,
                doc=extra.doc,
                type=parse_type_ref(extra.type),
                json_tag=extra.json,
                yaml_tag=extra.yaml,
            )
            for extra in aug.extra_fields
        )


def apply_base_types(types: dict[str, GoType], config: AugmentConfig | None) -> None:
    """Extract shared fields into base types and embed them in their sources."""
    if config is None:
        return

    for base_name in sorted(config.base_types):
        base_cfg = config.base_types[base_name]
        if not base_cfg.sources or not base_cfg.fields:
            continue

        first_source = types.get(base_cfg.sources[0])
        if first_source is None:
            continue

        extract = set(base_cfg.fields)
        base_type = GoType(
            name=base_name,
            doc=base_cfg.doc,
            kind=GoTypeKind.STRUCT,
            output_file=base_cfg.output_file,
            fields=[copy.deepcopy(f) for f in first_source.fields if f.json_name in extract],
        )

        # The metadata is embedded as a plain field rather than through
        # embed_meta, so the base type gets no YAML decoder of its own.
        if base_cfg.embed_meta:
            base_type.fields.insert(
                0, GoField(name="FileMetadata", embed=True, json_tag="-", yaml_tag="-")
            )
        types[base_name] = base_type

        for source_name in base_cfg.sources:
            source = types.get(source_name)
            if source is None:
                continue

            source.fields = [f for f in source.fields if f.json_name not in extract]

            if source.embed_meta:
                source.embed_meta = False
                source.needs_unmarshal_yaml = True

            source.fields.insert(
                0, GoField(name=base_name, type=GoTypeRef(named=base_name), embed=True)
            )


def update_type_ref(ref: GoTypeRef, old_name: str, new_name: str) -> None:
    """Replace references to ``old_name`` with ``new_name``, in place."""
    if ref.named == old_name:
        ref.named = new_name
    if ref.element is not None:
        update_type_ref(ref.element, old_name, new_name)
    if ref.map_value is not None:
        update_type_ref(ref.map_value, old_name, new_name)


def _closing_bracket(s: str) -> int:
    depth = 0
    for index, char in enumerate(s[3:], start=3):
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return index
    return -1


def parse_type_ref(s: str) -> GoTypeRef:
    """Parse a type string such as ``*bool``, ``[]string`` or ``map[string]any``."""
    s = s.strip()

    if s.startswith("*"):
        inner = parse_type_ref(s[1:])
        inner.pointer = True
        return inner

    if s.startswith("[]"):
        return GoTypeRef(slice=True, element=parse_type_ref(s[2:]))

    if s.startswith("map["):
        close = _closing_bracket(s)
        if close < 0:
            return GoTypeRef(builtin="any")
        return GoTypeRef(
            map=True,
            map_key=parse_type_ref(s[4:close]),
            map_value=parse_type_ref(s[close + 1:]),
        )

    if s in _BUILTINS:
        return GoTypeRef(builtin=s)

    dot = s.rfind(".")
    if dot > 0 and s[dot + 1:]:
        return GoTypeRef(package=s[:dot], qual_name=s[dot + 1:])

    if s:
        return GoTypeRef(named=s)

    return GoTypeRef(builtin="any")