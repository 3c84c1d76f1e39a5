"""Canonical schema configuration.

Includes:
- Column types and list layout policies
- Per-record-type canonical schemas
- Registry lookup and JSON schema files
- Built-in football schemas
"""

from .registry import (
    CanonicalSchema,
    ColumnType,
    ListPolicy,
    SchemaRegistry,
    load_schema_file,
)
from .defaults import default_registry

__all__ = [
    "CanonicalSchema",
    "ColumnType",
    "ListPolicy",
    "SchemaRegistry",
    "load_schema_file",
    "default_registry",
]
