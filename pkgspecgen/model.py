"""The Go type model that schemas are mapped onto and code is emitted from."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class GoTypeKind(enum.Enum):
    """Classifies a generated Go type."""

    STRUCT = enum.auto()
    ENUM = enum.auto()
    ALIAS = enum.auto()
    MAP = enum.auto()


@dataclass
class GoTypeRef:
    """A reference to a Go type together with its modifiers.

    Exactly one of ``builtin``, ``named`` or ``qual_name`` names the base type,
    unless the reference is a slice or a map.
    """

    builtin: str = ""
    named: str = ""
    package: str = ""
    qual_name: str = ""
    pointer: bool = False
    slice: bool = False
    map: bool = False
    element: GoTypeRef | None = None
    map_key: GoTypeRef | None = None
    map_value: GoTypeRef | None = None

    def is_any(self) -> bool:
        """True when the reference stands for ``any``."""
        return self.builtin == "any"

    def __str__(self) -> str:
        if self.map:
            key = str(self.map_key) if self.map_key is not None else "string"
            value = str(self.map_value) if self.map_value is not None else "any"
            text = f"map[{key}]{value}"
        elif self.slice:
            element = str(self.element) if self.element is not None else "any"
            text = f"[]{element}"
        elif self.builtin:
            text = self.builtin
        elif self.qual_name:
            text = f"{self.package}.{self.qual_name}" if self.package else self.qual_name
        elif self.named:
            text = self.named
        else:
            text = "any"
        return f"*{text}" if self.pointer else text


@dataclass
class GoField:
    """A field of a generated Go struct."""

    name: str
    json_name: str = ""
    doc: str = ""
    type: GoTypeRef = field(default_factory=GoTypeRef)
    required: bool = False
    embed: bool = False
    json_tag: str = ""
    yaml_tag: str = ""


@dataclass
class GoEnumVal:
    """One constant of a generated enum type."""

    go_name: str
    value: str


@dataclass
class GoType:
    """A Go type to be generated."""

    name: str
    doc: str = ""
    schema_file: str = ""
    schema_path: str = ""
    kind: GoTypeKind = GoTypeKind.STRUCT
    fields: list[GoField] = field(default_factory=list)
    enum_values: list[GoEnumVal] = field(default_factory=list)
    alias_of: GoTypeRef = field(default_factory=GoTypeRef)
    output_file: str = ""
    embed_meta: bool = False
    needs_unmarshal_yaml: bool = False
    has_additional_properties: bool = False