"""Assignment of generated types to output files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .model import GoType

EXCLUDE_FILE = "_"
"""Output file name marking a type that is not generated at all."""

DEFAULT_FILE = "types.go"


@dataclass
class FileMap:
    """Maps output file names to the type names they hold."""

    files: dict[str, list[str]] = field(default_factory=dict)
    exclude: list[str] = field(default_factory=list)
    _lookup: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._lookup = {
            type_name: file_name
            for file_name, type_names in self.files.items()
            for type_name in type_names
        }
        self._lookup.update((type_name, EXCLUDE_FILE) for type_name in self.exclude)

    def output_file_for(self, type_name: str, default_file: str) -> str:
        """Return the file a type belongs in, or ``default_file`` if unmapped."""
        return self._lookup.get(type_name, default_file)

    def assign_output_files(self, types: dict[str, GoType]) -> None:
        """Set ``output_file`` on every type; unmapped types go to ``types.go``."""
        for go_type in types.values():
            go_type.output_file = self.output_file_for(go_type.name, DEFAULT_FILE)


def _names(value: Any, what: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or isinstance(value, str):
        raise ValueError(f"{what} must be a list of type names, got {value!r}")
    return [str(v) for v in value]


def load_file_map(path: str | Path) -> FileMap:
    """Read a file map; raises ``OSError`` or ``ValueError``."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"file map must be a mapping, got {data!r}")
        files = data.get("files") or {}
        if not isinstance(files, dict):
            raise ValueError(f"files must be a mapping, got {files!r}")
        return FileMap(
            files={str(name): _names(types, str(name)) for name, types in files.items()},
            exclude=_names(data.get("exclude"), "exclude"),
        )
    except (yaml.YAMLError, ValueError) as exc:
        raise ValueError(f"parsing filemap: {exc}") from exc