"""Schema reconciliation: conform a flat table to its canonical schema."""

import logging
from dataclasses import dataclass, field
from typing import Any

from bronze.errors import TypeCoercionWarning
from bronze.schema.registry import CanonicalSchema, ColumnType
from bronze.transform.flatten import FlatTable, to_text
from bronze.transform.normalize import coerce_value

logger = logging.getLogger(__name__)


@dataclass
class ReconciledTable:
    """Rows conformed to a canonical schema.

    Every row carries exactly `columns`, in order, with values of the
    declared `types`.
    """

    record_type: str
    columns: list[str]
    types: dict[str, ColumnType]
    rows: list[dict[str, Any]] = field(default_factory=list)
    extras: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    warnings: list[TypeCoercionWarning] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column(self, name: str) -> list:
        """Values of one column across all rows."""
        if name not in self.types:
            raise KeyError(name)
        return [row[name] for row in self.rows]


def reconcile(table: FlatTable, schema: CanonicalSchema) -> ReconciledTable:
    """Conform a canonicalized flat table to a canonical schema.

    - Schema columns missing from the table are added as null.
    - Columns not in the schema are dropped, or with `preserve_extra`
      appended after the schema columns in discovery order, as text.
    - Schema columns are coerced to their declared type. A value that
      cannot be coerced becomes null and is recorded as a
      TypeCoercionWarning on the result.

    Args:
        table: FlatTable with canonical column names
        schema: Canonical schema for the record type

    Returns:
        ReconciledTable
    """
    present = set(table.columns)
    missing = [name for name in schema.column_names if name not in present]
    unexpected = [name for name in table.columns if name not in schema.columns]

    extras = unexpected if schema.preserve_extra else []
    dropped = [] if schema.preserve_extra else unexpected

    types = dict(schema.columns)
    for name in extras:
        types[name] = ColumnType.TEXT
    columns = list(schema.column_names) + extras

    rows = []
    warnings = []
    for index, row in enumerate(table.rows):
        conformed = {}
        for name in schema.column_names:
            value = row.get(name)
            try:
                conformed[name] = coerce_value(value, schema.columns[name])
            except (TypeError, ValueError, OverflowError):
                warnings.append(
                    TypeCoercionWarning(name, value, schema.columns[name].value, index)
                )
                conformed[name] = None
        for name in extras:
            conformed[name] = to_text(row.get(name))
        rows.append(conformed)

    if warnings:
        logger.warning(
            f"{len(warnings)} values could not be coerced for {schema.record_type}",
            extra={
                "record_type": schema.record_type,
                "warning_count": len(warnings),
                "columns": sorted({w.column for w in warnings}),
            },
        )
        for warning in warnings:
            logger.debug(str(warning), extra=warning.to_dict())

    if missing or dropped:
        logger.debug(
            f"Reconciled {schema.record_type}: {len(missing)} columns null-filled, "
            f"{len(dropped)} dropped",
            extra={
                "record_type": schema.record_type,
                "missing_columns": missing,
                "dropped_columns": dropped,
            },
        )

    return ReconciledTable(
        record_type=schema.record_type,
        columns=columns,
        types=types,
        rows=rows,
        extras=extras,
        missing=missing,
        dropped=dropped,
        warnings=warnings,
    )
