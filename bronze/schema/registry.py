"""Canonical schemas: the column/type contract for each record type."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from bronze.errors import SchemaMissingError

logger = logging.getLogger(__name__)


class ColumnType(str, Enum):
    """Scalar types a canonical column may declare."""

    INTEGER = "integer"
    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    NESTED = "nested"


class ListPolicy(str, Enum):
    """How lists of scalars are laid out in a flat row.

    SERIALIZE keeps the list as one opaque JSON text field.
    INDEX spreads it into indexed columns (location_0, location_1, ...).
    """

    SERIALIZE = "serialize"
    INDEX = "index"


@dataclass(frozen=True)
class CanonicalSchema:
    """Authoritative column contract for one record type.

    Attributes:
        record_type: Record type name (e.g. 'events')
        columns: Ordered mapping of canonical column name to ColumnType
        row_path: Dotted path of the list expanded to one row per element.
            When unset, a top-level list yields one row per element and a
            top-level object yields a single row.
        aliases: Canonical source name -> canonical target column name
        preserve_extra: Keep columns not declared in the schema (as text)
        list_policy: Layout for lists of scalars
        require_rows: Treat a unit that yields no rows as unreadable
        file_pattern: Glob used to enumerate input units
        directory: Directory under the source root holding the units
            (defaults to the record type name)
        unit_id_column: Column filled from the unit identity when the
            source does not carry it (e.g. match_id taken from the file name)
    """

    record_type: str
    columns: Mapping[str, ColumnType]
    row_path: Optional[str] = None
    aliases: Mapping[str, str] = field(default_factory=dict)
    preserve_extra: bool = False
    list_policy: ListPolicy = ListPolicy.SERIALIZE
    require_rows: bool = False
    file_pattern: str = "*.json"
    directory: Optional[str] = None
    unit_id_column: Optional[str] = None

    def __post_init__(self):
        from bronze.transform.normalize import canonicalize_name

        if not self.columns:
            raise ValueError(f"Schema '{self.record_type}' declares no columns")

        columns = {}
        for name, column_type in dict(self.columns).items():
            if canonicalize_name(name) != name:
                raise ValueError(
                    f"Schema '{self.record_type}' column '{name}' is not canonical "
                    f"(expected '{canonicalize_name(name)}')"
                )
            columns[name] = ColumnType(column_type)

        aliases = {
            canonicalize_name(source): canonicalize_name(target)
            for source, target in dict(self.aliases).items()
        }

        if self.unit_id_column is not None and self.unit_id_column not in columns:
            raise ValueError(
                f"Schema '{self.record_type}' unit_id_column '{self.unit_id_column}' "
                "is not a declared column"
            )

        object.__setattr__(self, "columns", MappingProxyType(columns))
        object.__setattr__(self, "aliases", MappingProxyType(aliases))
        object.__setattr__(self, "list_policy", ListPolicy(self.list_policy))

    @property
    def column_names(self) -> tuple:
        return tuple(self.columns)

    @property
    def source_directory(self) -> str:
        return self.directory or self.record_type

    def type_of(self, column: str) -> ColumnType:
        return self.columns[column]

    @classmethod
    def from_dict(cls, record_type: str, config: Mapping[str, Any]) -> "CanonicalSchema":
        """Build a schema from its configuration mapping.

        Example:
            >>> CanonicalSchema.from_dict("events", {
            ...     "row_path": "events",
            ...     "columns": {"match_id": "integer", "x": "numeric"},
            ... })
        """
        known = {
            "columns",
            "row_path",
            "aliases",
            "preserve_extra",
            "list_policy",
            "require_rows",
            "file_pattern",
            "directory",
            "unit_id_column",
        }
        unknown = set(config) - known
        if unknown:
            raise ValueError(
                f"Unknown keys in schema '{record_type}': {sorted(unknown)}"
            )
        if "columns" not in config:
            raise ValueError(f"Schema '{record_type}' is missing 'columns'")

        return cls(
            record_type=record_type,
            columns=config["columns"],
            row_path=config.get("row_path"),
            aliases=config.get("aliases", {}),
            preserve_extra=bool(config.get("preserve_extra", False)),
            list_policy=config.get("list_policy", ListPolicy.SERIALIZE),
            require_rows=bool(config.get("require_rows", False)),
            file_pattern=config.get("file_pattern", "*.json"),
            directory=config.get("directory"),
            unit_id_column=config.get("unit_id_column"),
        )


class SchemaRegistry:
    """Read-only lookup of canonical schemas and the record types each source carries."""

    def __init__(
        self,
        schemas: Iterable[CanonicalSchema],
        sources: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        self._schemas = {}
        for schema in schemas:
            if schema.record_type in self._schemas:
                raise ValueError(f"Duplicate schema for record type '{schema.record_type}'")
            self._schemas[schema.record_type] = schema

        self._sources = {
            name: tuple(record_types) for name, record_types in (sources or {}).items()
        }

    def __contains__(self, record_type: str) -> bool:
        return record_type in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    @property
    def record_types(self) -> list[str]:
        return list(self._schemas)

    @property
    def sources(self) -> list[str]:
        return list(self._sources)

    def record_types_for(self, source: str) -> tuple:
        """Record types configured for a data source."""
        if source not in self._sources:
            raise KeyError(f"Unknown data source: {source}")
        return self._sources[source]

    def get(self, record_type: str) -> CanonicalSchema:
        """Look up the schema for a record type.

        Raises:
            SchemaMissingError: If no schema is registered
        """
        try:
            return self._schemas[record_type]
        except KeyError:
            raise SchemaMissingError(record_type) from None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SchemaRegistry":
        """Build a registry from a {"sources": ..., "record_types": ...} mapping."""
        record_types = config.get("record_types")
        if not isinstance(record_types, Mapping) or not record_types:
            raise ValueError("Schema config requires a non-empty 'record_types' mapping")

        schemas = [
            CanonicalSchema.from_dict(name, values) for name, values in record_types.items()
        ]
        sources = config.get("sources")
        if sources is None:
            # Without an explicit layout every record type is its own source.
            sources = {name: [name] for name in record_types}

        return cls(schemas, sources)


def load_schema_file(path: Union[str, Path]) -> SchemaRegistry:
    """Load a schema registry from a JSON configuration file.

    Args:
        path: Path to the JSON file

    Returns:
        SchemaRegistry built from the file
    """
    path = Path(path)
    try:
        config = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not load schema file {path}: {e}") from e

    registry = SchemaRegistry.from_config(config)
    logger.info(
        f"Loaded {len(registry)} schemas from {path}",
        extra={"schema_file": str(path), "record_types": registry.record_types},
    )
    return registry
