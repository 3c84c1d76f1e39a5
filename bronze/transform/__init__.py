"""Data transformation modules.

Handles:
- Record flattening (strict and permissive)
- Column name canonicalization
- Type coercion
- Schema reconciliation
- Strict/permissive fallback control
"""

from .flatten import FlatTable, RecordFlattener, flatten_record, to_text
from .normalize import (
    canonicalize_name,
    canonicalize_table,
    coerce_value,
    normalize_timestamp,
)
from .reconcile import ReconciledTable, reconcile
from .fallback import ControllerResult, FallbackController, ProcessingPath

__all__ = [
    # Flattening
    "FlatTable",
    "RecordFlattener",
    "flatten_record",
    "to_text",
    # Normalization
    "canonicalize_name",
    "canonicalize_table",
    "coerce_value",
    "normalize_timestamp",
    # Reconciliation
    "ReconciledTable",
    "reconcile",
    # Fallback
    "ControllerResult",
    "FallbackController",
    "ProcessingPath",
]
