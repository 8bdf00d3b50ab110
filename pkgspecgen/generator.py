"""The generation pipeline: schemas in, Go source files out."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

from .augment import AugmentConfig, apply_augmentations, apply_base_types, load_augmentations
from .emitter import Emitter
from .filemap import DEFAULT_FILE, FileMap, load_file_map
from .loader import SchemaError, SchemaRegistry
from .model import GoType, GoTypeKind
from .typemap import TypeMapper

DEFAULT_PACKAGE = "pkgspec"
_SPEC_PREFIX = "package-spec/"


class GeneratorError(Exception):
    """Raised when a generator run cannot complete."""


@dataclass
class Config:
    """Settings for one generator run."""

    schema_dir: str = ""
    augment_file: str = ""
    file_map_file: str = ""
    output_dir: str = ""
    package_name: str = ""
    spec_version: str = ""


class EntryPoint(NamedTuple):
    """A schema file and the Go type name given to its root."""

    schema_path: str
    go_type_name: str


def default_entry_points() -> list[EntryPoint]:
    """Return the standard entry-point schemas in processing order."""
    return [
        EntryPoint("integration/manifest.jsonschema.json", "IntegrationManifest"),
        EntryPoint("input/manifest.jsonschema.json", "InputManifest"),
        EntryPoint("content/manifest.jsonschema.json", "ContentManifest"),
        EntryPoint("integration/data_stream/manifest.jsonschema.json", "DataStreamManifest"),
        EntryPoint("integration/data_stream/fields/fields.jsonschema.json", "Fields"),
        EntryPoint("integration/changelog.jsonschema.json", "Changelog"),
        EntryPoint("integration/validation.jsonschema.json", "Validation"),
        EntryPoint(
            "integration/elasticsearch/transform/manifest.jsonschema.json", "TransformManifest"
        ),
        EntryPoint("integration/elasticsearch/transform/transform.jsonschema.json", "Transform"),
        EntryPoint("integration/kibana/tags.jsonschema.json", "Tags"),
        EntryPoint("integration/data_stream/lifecycle.jsonschema.json", "Lifecycle"),
        EntryPoint("integration/elasticsearch/pipeline.jsonschema.json", "IngestPipeline"),
        EntryPoint("integration/data_stream/routing_rules.jsonschema.json", "RoutingRules"),
        EntryPoint("integration/_dev/build/build.jsonschema.json", "BuildManifest"),
        EntryPoint("integration/_dev/test/config.jsonschema.json", "TestConfig"),
        EntryPoint("input/_dev/test/config.jsonschema.json", "InputTestConfig"),
        EntryPoint(
            "integration/data_stream/_dev/test/pipeline/common_config.jsonschema.json",
            "PipelineTestCommonConfig",
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/pipeline/config_json.jsonschema.json",
            "PipelineTestJSONConfig",
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/pipeline/config_raw.jsonschema.json",
            "PipelineTestRawConfig",
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/pipeline/event.jsonschema.json",
            "PipelineTestEvent",
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/pipeline/expected.jsonschema.json",
            "PipelineTestExpected",
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/policy/config.jsonschema.json", "PolicyTestConfig"
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/static/config.jsonschema.json", "StaticTestConfig"
        ),
        EntryPoint(
            "integration/data_stream/_dev/test/system/config.jsonschema.json", "SystemTestConfig"
        ),
    ]


def extract_spec_version(id_: str) -> str:
    """Return the version in a ``.../package-spec/{VERSION}/...`` schema id, or ``""``."""
    _, found, rest = id_.partition(_SPEC_PREFIX)
    if not found:
        return ""
    end = rest.find("/")
    return rest[:end] if end > 0 else rest


def validate(types: dict[str, GoType]) -> None:
    """Raise ``GeneratorError`` if two enum types declare the same constant name."""
    owners: dict[str, str] = {}
    for go_type in types.values():
        if go_type.kind is not GoTypeKind.ENUM:
            continue
        for value in go_type.enum_values:
            existing = owners.get(value.go_name)
            if existing is not None:
                raise GeneratorError(
                    f"enum value {value.go_name!r} conflicts between "
                    f"{existing} and {go_type.name}"
                )
            owners[value.go_name] = go_type.name


def _detect_spec_version(schema_dir: str, entry_points: list[EntryPoint]) -> str:
    for entry in entry_points:
        path = Path(schema_dir) / entry.schema_path
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        if isinstance(document, dict):
            version = extract_spec_version(str(document.get("$id", "")))
            if version:
                return version
    return ""


def run(cfg: Config) -> None:
    """Run the whole pipeline; raises ``GeneratorError`` on failure."""
    aug_config: AugmentConfig | None = None
    if cfg.augment_file:
        try:
            aug_config = load_augmentations(cfg.augment_file)
        except (OSError, ValueError) as exc:
            raise GeneratorError(f"loading augmentations: {exc}") from exc

    file_map: FileMap | None = None
    if cfg.file_map_file:
        try:
            file_map = load_file_map(cfg.file_map_file)
        except (OSError, ValueError) as exc:
            raise GeneratorError(f"loading file map: {exc}") from exc

    registry = SchemaRegistry(cfg.schema_dir)
    mapper = TypeMapper(registry)

    entry_points = default_entry_points()
    for entry in entry_points:
        mapper.register_entry_point(entry.schema_path, entry.go_type_name)
    for entry in entry_points:
        try:
            mapper.process_entry_point(entry.schema_path)
        except (SchemaError, OSError, ValueError) as exc:
            raise GeneratorError(f"processing {entry.schema_path}: {exc}") from exc

    spec_version = cfg.spec_version or _detect_spec_version(cfg.schema_dir, entry_points)
    if not spec_version:
        raise GeneratorError(
            "could not determine spec version: use -spec-version flag or ensure "
            "schemas contain a $id with a version"
        )

    types = mapper.types_by_name()
    apply_augmentations(types, aug_config)
    apply_base_types(types, aug_config)

    if file_map is not None:
        file_map.assign_output_files(types)
    else:
        for go_type in types.values():
            go_type.output_file = DEFAULT_FILE

    validate(types)

    emitter = Emitter(cfg.package_name or DEFAULT_PACKAGE, cfg.output_dir, spec_version)
    try:
        emitter.emit(mapper.types())
    except OSError as exc:
        raise GeneratorError(f"emitting files: {exc}") from exc


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgspecgen",
        description="Generate Go data model types from package-spec JSON schemas.",
    )
    parser.add_argument(
        "-schema-dir", "--schema-dir", dest="schema_dir",
        default="../package-spec-schema/3.5.7/jsonschema",
        help="Path to jsonschema/ directory",
    )
    parser.add_argument(
        "-augment", "--augment", dest="augment_file", default="",
        help="Path to augment.yml (optional)",
    )
    parser.add_argument(
        "-filemap", "--filemap", dest="file_map_file", default="",
        help="Path to filemap.yml (optional)",
    )
    parser.add_argument(
        "-output", "--output", dest="output_dir", default="pkgspec",
        help="Output directory for generated Go files",
    )
    parser.add_argument(
        "-package", "--package", dest="package_name", default="pkgspec",
        help="Go package name for generated files",
    )
    parser.add_argument(
        "-spec-version", "--spec-version", dest="spec_version", default="",
        help="Package-spec version override (auto-detected from schema $id if omitted)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point; returns the exit status."""
    args = _parser().parse_args(argv)
    cfg = Config(
        schema_dir=args.schema_dir,
        augment_file=args.augment_file,
        file_map_file=args.file_map_file,
        output_dir=args.output_dir,
        package_name=args.package_name,
        spec_version=args.spec_version,
    )
    try:
        run(cfg)
    except GeneratorError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())