"""Parquet writer for reconciled tables."""

import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

import pyarrow as pa
import pyarrow.parquet as pq

from bronze.schema.registry import ColumnType

if TYPE_CHECKING:
    from bronze.transform.reconcile import ReconciledTable

logger = logging.getLogger(__name__)

ARROW_TYPES = {
    ColumnType.INTEGER: pa.int64(),
    ColumnType.NUMERIC: pa.float64(),
    ColumnType.TEXT: pa.string(),
    ColumnType.BOOLEAN: pa.bool_(),
    ColumnType.TEMPORAL: pa.timestamp("us", tz="UTC"),
    ColumnType.NESTED: pa.string(),
}

METADATA_PREFIX = "bronze."
SOURCE_SHA256_KEY = METADATA_PREFIX + "source_sha256"


def arrow_schema(table: "ReconciledTable") -> pa.Schema:
    """Arrow schema for a reconciled table, in column order."""
    return pa.schema(
        [pa.field(name, ARROW_TYPES[table.types[name]]) for name in table.columns]
    )


class ParquetWriter:
    """Write reconciled tables as compressed Parquet files.

    Files are written to a temporary file next to the destination and
    renamed into place, so the final path only ever holds a complete file.
    """

    def __init__(self, compression: str = "snappy"):
        """Initialize Parquet writer.

        Args:
            compression: Parquet codec (snappy, zstd, gzip, brotli, lz4, none)
        """
        self.compression = compression

    def _build_table(
        self,
        table: "ReconciledTable",
        metadata: Optional[dict] = None,
    ) -> pa.Table:
        arrow_table = pa.Table.from_pylist(table.rows, schema=arrow_schema(table))
        kv_metadata = {
            f"{METADATA_PREFIX}record_type": table.record_type,
        }
        for key, value in (metadata or {}).items():
            if value is not None:
                kv_metadata[f"{METADATA_PREFIX}{key}"] = str(value)
        return arrow_table.replace_schema_metadata(kv_metadata)

    def _write_atomic(self, arrow_table: pa.Table, output_path: Path) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.",
            suffix=".tmp",
            dir=output_path.parent,
        )
        os.close(fd)
        tmp_path = Path(tmp_name)

        try:
            pq.write_table(arrow_table, tmp_path, compression=self.compression)
            os.replace(tmp_path, output_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def write(
        self,
        table: "ReconciledTable",
        output_path: Union[str, Path],
        metadata: Optional[dict] = None,
    ) -> dict:
        """Write a reconciled table to one Parquet file.

        Zero-row tables are written too, so every processed unit has a
        file carrying its schema.

        Args:
            table: Reconciled table to persist
            output_path: Final file path
            metadata: Extra key-value metadata stored as 'bronze.<key>'

        Returns:
            Metadata dict with file info
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        arrow_table = self._build_table(table, metadata)
        self._write_atomic(arrow_table, output_path)

        result = {
            "output_path": str(output_path),
            "record_type": table.record_type,
            "row_count": table.row_count,
            "column_count": len(table.columns),
            "file_size_bytes": output_path.stat().st_size,
            "compression": self.compression,
        }

        logger.info(
            f"Wrote {table.row_count} rows to Parquet at {output_path}",
            extra=result,
        )
        return result


def read_output_metadata(path: Union[str, Path]) -> dict:
    """Key-value metadata of a written Parquet file, as strings."""
    schema = pq.read_schema(path)
    raw = schema.metadata or {}
    return {key.decode("utf-8"): value.decode("utf-8") for key, value in raw.items()}
