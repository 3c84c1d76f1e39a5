"""Utility modules for the pipeline.

Includes:
- Logging configuration
- Structured pipeline logging
- Raw record reading
- Parquet writing
- Output path conventions
- Change detection
"""

from .logging_config import JsonFormatter, setup_logging
from .file_io import RawRecord, read_record, write_run_report
from .parquet_writer import ParquetWriter, read_output_metadata
from .staging import get_output_path, unit_id_for
from .change_detection import (
    ChangeDetectionGate,
    ContentHashGate,
    MtimeGate,
    build_gate,
)
from .pipeline_logger import OutcomeObserver, PipelineLogger, timed_operation

__all__ = [
    "setup_logging",
    "JsonFormatter",
    "RawRecord",
    "read_record",
    "write_run_report",
    "ParquetWriter",
    "read_output_metadata",
    "get_output_path",
    "unit_id_for",
    "ChangeDetectionGate",
    "ContentHashGate",
    "MtimeGate",
    "build_gate",
    "OutcomeObserver",
    "PipelineLogger",
    "timed_operation",
]
