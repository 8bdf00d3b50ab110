# pkgspecgen

`pkgspecgen` reads a directory of package-spec JSON Schema files and writes
Go source files holding the matching data model types:

- a struct for every object schema, with `json` and `yaml` tags
  (required fields leave out `,omitempty`), an `AdditionalProperties`
  catch-all map and a `MarshalJSON` method where the schema allows extra
  properties, and an `UnmarshalYAML` method on types that record their
  position in the source file;
- a string type with a `const` block for every string enum;
- `metadata.go`, holding `FileMetadata` (file, line and column) and the
  `annotateFileMetadata` helper;
- `version.go`, holding the `SpecVersion` constant.

Schema descriptions become wrapped Go doc comments, with Markdown links
turned into doc-link references.

## Installation

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Command line

```
pkgspecgen --schema-dir path/to/jsonschema --output pkgspec
```

Options (each may also be written with a single dash, e.g. `-schema-dir`):

- `--schema-dir` – path to the `jsonschema/` directory
  (default `../package-spec-schema/3.5.7/jsonschema`)
- `--augment` – optional YAML file with type and field overrides
- `--filemap` – optional YAML file assigning types to output files
- `--output` – directory for the generated Go files (default `pkgspec`)
- `--package` – Go package name for the generated files (default `pkgspec`)
- `--spec-version` – spec version override; otherwise it is taken from the
  first entry-point schema whose `$id` has the form
  `.../package-spec/{VERSION}/...`

The schema directory must hold every entry-point schema listed by
`pkgspecgen.generator.default_entry_points()` (the integration, input and
content manifests, data stream manifest and fields, changelog, validation,
transform, tags, lifecycle, pipeline, routing rules, build and test
configuration schemas). Each root type is named after its entry point,
for example `IntegrationManifest` or `DataStreamManifest`.

On failure the command prints `error: ...` to standard error and exits
with status 1. The run also fails if two enum types would declare the same
constant name.

## Augment file

```yaml
types:
  OldName:
    name: NewName          # rename; references and enum constants follow
    doc: "Replacement doc."
    embed_meta: true       # embed FileMetadata and add UnmarshalYAML
    fields:
      value:               # keyed by JSON property name
        name: Value
        doc: "Field doc."
        type: any          # e.g. any, *bool, []string, map[string]any
    extra_fields:
      - name: Modified
        type: "*time.Time"
        doc: "Time of last change."
        json: "modified,omitempty"
        yaml: "modified,omitempty"
base_types:
  CommonBase:
    doc: "Shared fields."
    embed_meta: true
    output_file: base.go
    sources: [TypeA, TypeB]
    fields: [name, title]  # JSON property names moved into the base type
```

Type overrides are applied in sorted order of type name. A base type takes
its field definitions from the first source; each source loses those fields
and embeds the base type instead.

## File map

```yaml
files:
  manifest.go: [IntegrationManifest, Owner]
exclude:
  - UnusedType
```

Types not listed go to `types.go`; excluded types are not written.

## Library use

```python
from pkgspecgen.generator import Config, GeneratorError, run

try:
    run(Config(schema_dir="jsonschema", output_dir="out", spec_version="3.5.7"))
except GeneratorError as exc:
    print(exc)
```

The pieces can also be used on their own:

- `pkgspecgen.loader` – `SchemaRegistry` loads and caches schema files and
  resolves `$ref`s (`load_schema`, `resolve_ref`); `parse_schema`,
  `split_ref` and `walk_json_pointer` work on single documents. Errors are
  raised as `SchemaError`.
- `pkgspecgen.typemap` – `TypeMapper` turns schemas into `GoType` models
  (`register_entry_point`, `process_entry_point`, `types`,
  `types_by_name`).
- `pkgspecgen.model` – `GoType`, `GoField`, `GoEnumVal`, `GoTypeRef` and
  `GoTypeKind`.
- `pkgspecgen.augment` – `load_augmentations`, `apply_augmentations`,
  `apply_base_types` and `parse_type_ref`.
- `pkgspecgen.filemap` – `FileMap` and `load_file_map`.
- `pkgspecgen.docfmt` – doc comment formatting and word wrapping.
- `pkgspecgen.emitter` – `Emitter` writes the files (`emit`) or returns
  their text (`render_file`, `render_metadata`, `render_version`).
- `pkgspecgen.naming` – `to_go_name`, `to_type_name` and `split_words`.

## Limits

The package only writes Go source text. It does not format it with Go's
own tools, compile it, or check package files against the schemas.