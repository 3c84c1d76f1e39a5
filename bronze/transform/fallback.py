"""Two-path ingestion: strict flattening with a permissive fallback."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from bronze.errors import SourceUnreadableError, StructuralParseError
from bronze.schema.registry import CanonicalSchema
from bronze.transform.flatten import FlatTable, flatten_record
from bronze.transform.normalize import canonicalize_table
from bronze.transform.reconcile import ReconciledTable, reconcile
from bronze.utils.file_io import RawRecord, read_record

logger = logging.getLogger(__name__)


class ProcessingPath(str, Enum):
    STRICT = "strict"
    PERMISSIVE = "permissive"


@dataclass
class ControllerResult:
    """Result of running one unit through the controller."""

    table: Optional[ReconciledTable] = None
    path: Optional[ProcessingPath] = None
    attempted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    source_sha256: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.table is not None

    @property
    def recovered(self) -> bool:
        """True when only the permissive path produced a table."""
        return self.path is ProcessingPath.PERMISSIVE

    @property
    def reason(self) -> Optional[str]:
        return "; ".join(self.errors) if self.errors else None


class FallbackController:
    """Run the strict path, falling back to the permissive path on failure.

    strict:     strict read -> strict flatten -> canonicalize -> reconcile
    permissive: lenient read -> text-only flatten -> canonicalize -> reconcile

    Only StructuralParseError moves a unit to the permissive path. A
    SourceUnreadableError (corrupt encoding, truncated or invalid content)
    fails the unit on whichever path raises it. If no path produces a
    table the result carries no table and the reasons for each failure.
    """

    RECOVERABLE_ERRORS = (StructuralParseError,)

    def __init__(self, reader: Callable[..., RawRecord] = read_record):
        self.reader = reader

    def process(
        self,
        source_path: Union[str, Path],
        schema: CanonicalSchema,
        unit_id: Optional[str] = None,
    ) -> ControllerResult:
        """Read, flatten and reconcile one input unit.

        Args:
            source_path: Raw input file
            schema: Canonical schema for the unit's record type
            unit_id: Unit identity, used to fill `schema.unit_id_column`

        Returns:
            ControllerResult
        """
        result = ControllerResult()

        for path in (ProcessingPath.STRICT, ProcessingPath.PERMISSIVE):
            result.attempted.append(path.value)
            try:
                table, digest = self._run_path(source_path, schema, unit_id, path)
            except self.RECOVERABLE_ERRORS as e:
                self._record_failure(result, source_path, schema, path, e)
                continue
            except SourceUnreadableError as e:
                self._record_failure(result, source_path, schema, path, e)
                return result

            result.table = table
            result.path = path
            result.source_sha256 = digest
            return result

        return result

    def _record_failure(
        self,
        result: ControllerResult,
        source_path: Union[str, Path],
        schema: CanonicalSchema,
        path: ProcessingPath,
        error: Exception,
    ) -> None:
        result.errors.append(f"{path.value}: {type(error).__name__}: {error}")
        logger.warning(
            f"{path.value} path failed for {source_path}: {error}",
            extra={
                "source_path": str(source_path),
                "record_type": schema.record_type,
                "processing_path": path.value,
                "error_kind": type(error).__name__,
            },
        )

    def _run_path(
        self,
        source_path: Union[str, Path],
        schema: CanonicalSchema,
        unit_id: Optional[str],
        path: ProcessingPath,
    ) -> tuple:
        strict = path is ProcessingPath.STRICT
        raw = self.reader(source_path, lenient=not strict)

        flat = flatten_record(raw.value, schema, strict=strict)
        if schema.require_rows and not flat.rows:
            raise SourceUnreadableError(source_path, "no rows for a record type that requires rows")

        flat = canonicalize_table(flat, schema.aliases)
        if schema.unit_id_column and unit_id is not None:
            flat = _fill_unit_id(flat, schema.unit_id_column, unit_id)

        return reconcile(flat, schema), raw.sha256


def _fill_unit_id(table: FlatTable, column: str, unit_id: str) -> FlatTable:
    """Fill a column from the unit identity where the source leaves it empty."""
    for row in table.rows:
        if row.get(column) is None:
            row[column] = unit_id
    if table.rows and column not in table.columns:
        table.columns.append(column)
    return table
