"""Conversion of JSON property and schema names into Go identifiers."""

from __future__ import annotations

# Upper-case spellings that Go convention keeps for common initialisms.
_INITIALISMS = (
    "ID IDs URL URLs URI CPU ILM IP PID API SSL TLS HTTP HTTPS ECS UI SVG "
    "JSON YAML XML CSV HTML CSS SQL TCP UDP DNS SSH VM OS CA TTL HBS"
).split()

KNOWN_ABBREVIATIONS: dict[str, str] = {word.lower(): word for word in _INITIALISMS}

_SEPARATORS = frozenset("_-.")


def to_go_name(json_name: str) -> str:
    """Turn a JSON property name such as ``format_version`` into ``FormatVersion``.

    Known abbreviations are written in upper case, as Go convention asks.
    """
    return "".join(
        KNOWN_ABBREVIATIONS.get(word.lower()) or capitalize(word)
        for word in split_words(json_name)
    )


def to_type_name(schema_file: str, def_name: str, parent_type: str) -> str:
    """Derive a Go type name from a definition name or, failing that, a schema file."""
    if def_name:
        return to_go_name(def_name)

    stem = schema_file.rpartition("/")[2]
    stem = stem.removesuffix(".jsonschema.json").removesuffix(".json")
    return parent_type + to_go_name(stem)


def _begins_new_word(s: str, index: int, current: str) -> bool:
    """Tell whether the upper-case character at ``index`` opens a new word."""
    follows_lower = s[index - 1].islower()
    ends_upper_run = (
        len(current) > 1 and index + 1 < len(s) and s[index + 1].islower()
    )
    return follows_lower or ends_upper_run


def split_words(s: str) -> list[str]:
    """Split an identifier at snake, kebab, dot and camel-case boundaries."""
    words: list[str] = []
    current = ""
    for index, char in enumerate(s):
        if char in _SEPARATORS:
            if current:
                words.append(current)
            current = ""
            continue
        if char.isupper() and current and _begins_new_word(s, index, current):
            words.append(current)
            current = ""
        current += char
    if current:
        words.append(current)
    return words


def capitalize(s: str) -> str:
    """Return ``s`` with its first character upper case and the rest lower case."""
    if not s:
        return s
    return s[0].upper() + s[1:].lower()