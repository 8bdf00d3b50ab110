"""Generate Go data model types from package-spec JSON Schema definitions."""

__version__ = "0.1.0"