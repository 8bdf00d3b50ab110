"""Rendering of Go source files from the Go type model."""

from __future__ import annotations

import json
import re
from pathlib import Path

from .docfmt import format_doc_comment, format_field_doc_comment, wrap_comment
from .filemap import DEFAULT_FILE, EXCLUDE_FILE
from .model import GoField, GoType, GoTypeKind, GoTypeRef

JSON_PKG = "encoding/json"
YAML_PKG = "gopkg.in/yaml.v3"

HEADER_COMMENT = "// Code generated by cmd/generate; DO NOT EDIT."

_COMMENT_WIDTH = 100

_BUILTIN_EXPRS = {
    "any": "any",
    "string": "string",
    "int": "int",
    "int64": "int64",
    "float64": "float64",
    "bool": "bool",
}

_VERSION_SUFFIX_RE = re.compile(r"\.v\d+$")
_NON_IDENT_RE = re.compile(r"[^A-Za-z0-9_]")


def _import_name(path: str) -> str:
    """Guess the package name an import path declares."""
    last = path.rsplit("/", 1)[-1]
    last = _VERSION_SUFFIX_RE.sub("", last)
    last = last.removeprefix("go-")
    return _NON_IDENT_RE.sub("", last).lower()


def _go_quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _tabify(text: str) -> str:
    """Replace leading groups of four spaces with tabs on every line."""
    lines = []
    for line in text.split("\n"):
        stripped = line.lstrip(" ")
        depth = (len(line) - len(stripped)) // 4
        lines.append("\t" * depth + stripped)
    return "\n".join(lines)


def _comment_lines(lines: list[str], indent: str = "") -> list[str]:
    return [f"{indent}// {line}" if line else f"{indent}//" for line in lines]


def _align(rows: list[list[str]], indent: str) -> list[str]:
    """Lay out rows of cells in aligned columns, one space between columns."""
    widths: dict[int, int] = {}
    for cells in rows:
        for column, cell in enumerate(cells[:-1]):
            widths[column] = max(widths.get(column, 0), len(cell))
    lines = []
    for cells in rows:
        padded = [cell.ljust(widths[column]) for column, cell in enumerate(cells[:-1])]
        lines.append(indent + " ".join([*padded, cells[-1]]))
    return lines


def _render_block(entries: list[str | list[str]], indent: str = "\t") -> list[str]:
    """Render comment strings and cell rows; comments break column alignment."""
    lines: list[str] = []
    pending: list[list[str]] = []
    for entry in entries:
        if isinstance(entry, str):
            lines.extend(_align(pending, indent))
            pending = []
            lines.append(entry)
        else:
            pending.append(entry)
    lines.extend(_align(pending, indent))
    return lines


def _tag(tags: dict[str, str]) -> str:
    return "`" + " ".join(f'{key}:"{tags[key]}"' for key in sorted(tags)) + "`"


class _GoFile:
    """Collects declarations and imports for one Go source file."""

    def __init__(self, package: str) -> None:
        self.package = package
        self.imports: set[str] = set()
        self.decls: list[str] = []

    def qual(self, path: str, name: str) -> str:
        self.imports.add(path)
        return f"{_import_name(path)}.{name}"

    def add(self, decl: str) -> None:
        self.decls.append(decl.rstrip("\n"))

    def _import_spec(self, path: str) -> str:
        name = _import_name(path)
        if name == path.rsplit("/", 1)[-1]:
            return _go_quote(path)
        return f"{name} {_go_quote(path)}"

    def render(self) -> str:
        parts = [HEADER_COMMENT, f"package {self.package}"]
        paths = sorted(self.imports)
        if len(paths) == 1:
            parts.append(f"import {self._import_spec(paths[0])}")
        elif paths:
            specs = "\n".join(f"\t{self._import_spec(p)}" for p in paths)
            parts.append(f"import (\n{specs}\n)")
        parts.extend(self.decls)
        return "\n\n".join(parts) + "\n"


class Emitter:
    """Writes Go source files for a set of generated types."""

    def __init__(self, pkg_name: str, output_dir: str | Path, spec_version: str) -> None:
        self.pkg_name = pkg_name
        self.output_dir = Path(output_dir)
        self.spec_version = spec_version

    def emit(self, types: list[GoType]) -> None:
        """Write every type's file plus ``metadata.go`` and ``version.go``."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        by_file: dict[str, list[GoType]] = {}
        for go_type in types:
            file_name = go_type.output_file or DEFAULT_FILE
            if file_name == EXCLUDE_FILE:
                continue
            by_file.setdefault(file_name, []).append(go_type)

        for file_name, file_types in by_file.items():
            file_types.sort(key=lambda t: t.name)
            self._write(file_name, self.render_file(file_types))

        self._write("metadata.go", self.render_metadata())
        self._write("version.go", self.render_version())

    def _write(self, file_name: str, text: str) -> None:
        (self.output_dir / file_name).write_text(text, encoding="utf-8")

    def render_file(self, types: list[GoType]) -> str:
        """Return the source of one file holding the given types, in order."""
        go_file = _GoFile(self.pkg_name)
        for go_type in types:
            if go_type.kind is GoTypeKind.STRUCT:
                self._emit_struct(go_file, go_type)
            elif go_type.kind is GoTypeKind.ENUM:
                self._emit_enum(go_file, go_type)
        return go_file.render()

    def type_expr(self, ref: GoTypeRef | None) -> str:
        """Return the Go type expression for ``ref``."""
        return self._type_expr(ref, _GoFile(self.pkg_name))

    def _type_expr(self, ref: GoTypeRef | None, go_file: _GoFile) -> str:
        if ref is None:
            return "interface{}"
        if ref.pointer:
            return "*" + self._type_expr(_without_pointer(ref), go_file)
        if ref.slice:
            if ref.element is not None:
                return "[]" + self._type_expr(ref.element, go_file)
            return "[]interface{}"
        if ref.map:
            key = self._type_expr(ref.map_key, go_file)
            value = self._type_expr(ref.map_value, go_file)
            return f"map[{key}]{value}"
        if ref.builtin:
            return _BUILTIN_EXPRS.get(ref.builtin, ref.builtin)
        if ref.qual_name:
            if ref.package:
                return go_file.qual(ref.package, ref.qual_name)
            return ref.qual_name
        if ref.named:
            return ref.named
        return "any"

    # ------------------------------------------------------------------

    def _emit_struct(self, go_file: _GoFile, go_type: GoType) -> None:
        lines: list[str] = []
        if go_type.doc:
            dc = format_doc_comment(go_type.name, go_type.doc)
            lines.extend(_comment_lines(wrap_comment(dc, _COMMENT_WIDTH)))

        entries: list[str | list[str]] = []
        if go_type.embed_meta:
            entries.append(["FileMetadata", _tag({"json": "-", "yaml": "-"})])
        for go_field in go_type.fields:
            if go_field.doc:
                dc = format_field_doc_comment(go_field.doc)
                entries.extend(_comment_lines(wrap_comment(dc, _COMMENT_WIDTH), "\t"))
            entries.append(self._field_cells(go_field, go_file))

        if entries:
            lines.append(f"type {go_type.name} struct {{")
            lines.extend(_render_block(entries))
            lines.append("}")
        else:
            lines.append(f"type {go_type.name} struct{{}}")
        go_file.add("\n".join(lines))

        if go_type.embed_meta or go_type.needs_unmarshal_yaml:
            self._emit_unmarshal_yaml(go_file, go_type)
        if go_type.has_additional_properties:
            self._emit_marshal_json(go_file, go_type)

    def _field_cells(self, go_field: GoField, go_file: _GoFile) -> list[str]:
        if go_field.embed:
            tags = {}
            if go_field.json_tag:
                tags["json"] = go_field.json_tag
            if go_field.yaml_tag:
                tags["yaml"] = go_field.yaml_tag
            return [go_field.name, _tag(tags)] if tags else [go_field.name]

        # Required fields leave out omitempty: they are expected to be present.
        json_tag = yaml_tag = go_field.json_name
        if not go_field.required:
            json_tag += ",omitempty"
            yaml_tag += ",omitempty"
        if go_field.json_name == "-":
            json_tag = yaml_tag = "-"
        if go_field.json_tag:
            json_tag = go_field.json_tag
        if go_field.yaml_tag:
            yaml_tag = go_field.yaml_tag

        return [
            go_field.name,
            self._type_expr(go_field.type, go_file),
            _tag({"json": json_tag, "yaml": yaml_tag}),
        ]

    def _emit_unmarshal_yaml(self, go_file: _GoFile, go_type: GoType) -> None:
        name = go_type.name
        alias = "plain" + name
        node_type = go_file.qual(YAML_PKG, "Node")

        body = [
            f"    type {alias} {name}",
            f"    x := (*{alias})(v)",
            "    if err := node.Decode(x); err != nil {",
            "        return err",
            "    }",
        ]
        # Promoted fields of embedded structs are not filled by the alias decode.
        for go_field in go_type.fields:
            if go_field.embed and go_field.type.named and go_field.name != "FileMetadata":
                body += [
                    f"    if err := node.Decode(&v.{go_field.name}); err != nil {{",
                    "        return err",
                    "    }",
                ]
        body += [
            "    v.FileMetadata.line = node.Line",
            "    v.FileMetadata.column = node.Column",
            "    return nil",
        ]

        text = "\n".join(
            [
                f"// UnmarshalYAML implements yaml.Unmarshaler for {name}.",
                "// It captures the YAML node position for FileMetadata.",
                f"func (v *{name}) UnmarshalYAML(node *{node_type}) error {{",
                *body,
                "}",
            ]
        )
        go_file.add(_tabify(text))

    def _emit_marshal_json(self, go_file: _GoFile, go_type: GoType) -> None:
        name = go_type.name
        alias = "plain" + name
        marshal = go_file.qual(JSON_PKG, "Marshal")
        unmarshal = go_file.qual(JSON_PKG, "Unmarshal")

        text = "\n".join(
            [
                f"// MarshalJSON implements json.Marshaler for {name}.",
                "// It merges AdditionalProperties into the flat JSON output.",
                f"func (v {name}) MarshalJSON() ([]byte, error) {{",
                f"    type {alias} {name}",
                f"    data, err := {marshal}({alias}(v))",
                "    if err != nil {",
                "        return nil, err",
                "    }",
                "    if len(v.AdditionalProperties) == 0 {",
                "        return data, nil",
                "    }",
                "    var m map[string]any",
                f"    if err := {unmarshal}(data, &m); err != nil {{",
                "        return nil, err",
                "    }",
                "    for k, val := range v.AdditionalProperties {",
                "        if _, exists := m[k]; !exists {",
                "            m[k] = val",
                "        }",
                "    }",
                f"    return {marshal}(m)",
                "}",
            ]
        )
        go_file.add(_tabify(text))

    def _emit_enum(self, go_file: _GoFile, go_type: GoType) -> None:
        lines: list[str] = []
        if go_type.doc:
            dc = format_doc_comment(go_type.name, go_type.doc)
            lines.extend(_comment_lines(wrap_comment(dc, _COMMENT_WIDTH)))
        lines.append(f"type {go_type.name} string")
        go_file.add("\n".join(lines))

        if go_type.enum_values:
            rows: list[str | list[str]] = [
                [value.go_name, go_type.name, f"= {_go_quote(value.value)}"]
                for value in go_type.enum_values
            ]
            const_lines = [
                f"// Enum values for {go_type.name}.",
                "const (",
                *_render_block(rows),
                ")",
            ]
            go_file.add("\n".join(const_lines))

    # ------------------------------------------------------------------

    def render_metadata(self) -> str:
        """Return the source of ``metadata.go``: FileMetadata and its annotator."""
        go_file = _GoFile(self.pkg_name)
        value_of = go_file.qual("reflect", "ValueOf")

        go_file.add(
            _tabify(
                "\n".join(
                    [
                        "// FileMetadata records the source file location from which"
                        " a value was loaded.",
                        "type FileMetadata struct {",
                        "    file   string // file from which value was read.",
                        "    line   int    // line from which value was read.",
                        "    column int    // column from which value was read.",
                        "}",
                    ]
                )
            )
        )
        accessors = [
            ("FilePath returns the file path from which the value was loaded.",
             "FilePath", "string", "file"),
            ("Line returns the line number in the source file.", "Line", "int", "line"),
            ("Column returns the column number in the source file.",
             "Column", "int", "column"),
        ]
        for doc, method, result, attr in accessors:
            go_file.add(
                _tabify(
                    f"// {doc}\n"
                    f"func (m FileMetadata) {method}() {result} {{\n"
                    f"    return m.{attr}\n"
                    "}"
                )
            )

        go_file.add(
            _tabify(
                "// annotateFileMetadata sets the file name on any types that contain"
                " FileMetadata.\n"
                "func annotateFileMetadata(file string, v any) {\n"
                f"    fileAnnotator{{name: file}}.annotate({value_of}(v))\n"
                "}"
            )
        )
        go_file.add(_tabify("type fileAnnotator struct {\n    name string\n}"))

        go_file.add(
            _tabify(
                "\n".join(
                    [
                        "func (a fileAnnotator) annotate(val reflect.Value) {",
                        "    if val.CanAddr() && val.CanSet() {",
                        "        if m, ok := val.Addr().Interface().(*FileMetadata); ok {",
                        "            m.file = a.name",
                        "            return",
                        "        }",
                        "    }",
                        "",
                        "    switch val.Kind() {",
                        "    case reflect.Pointer:",
                        "        if !val.IsNil() {",
                        "            a.annotate(val.Elem())",
                        "        }",
                        "    case reflect.Struct:",
                        "        for i := 0; i < val.NumField(); i++ {",
                        "            a.annotate(val.Field(i))",
                        "        }",
                        "    case reflect.Slice:",
                        "        for i := 0; i < val.Len(); i++ {",
                        "            a.annotate(val.Index(i))",
                        "        }",
                        "    case reflect.Map:",
                        "        itr := val.MapRange()",
                        "        for itr.Next() {",
                        "            a.annotate(itr.Value())",
                        "        }",
                        "    }",
                        "}",
                    ]
                )
            )
        )
        return go_file.render()

    def render_version(self) -> str:
        """Return the source of ``version.go`` holding the SpecVersion constant."""
        go_file = _GoFile(self.pkg_name)
        go_file.add(
            "// SpecVersion is the package-spec schema version used to generate"
            " this package.\n"
            f"const SpecVersion = {_go_quote(self.spec_version)}"
        )
        return go_file.render()


def _without_pointer(ref: GoTypeRef) -> GoTypeRef:
    return GoTypeRef(
        builtin=ref.builtin,
        named=ref.named,
        package=ref.package,
        qual_name=ref.qual_name,
        slice=ref.slice,
        map=ref.map,
        element=ref.element,
        map_key=ref.map_key,
        map_value=ref.map_value,
    )