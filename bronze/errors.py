"""Exception taxonomy for the ingestion engine."""

from typing import Any, Optional


class BronzeError(Exception):
    """Base class for ingestion errors."""


class StructuralParseError(BronzeError):
    """Raised when a record's nesting shape cannot be resolved into one column set.

    Recovered by the permissive fallback path.
    """

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Inconsistent structure at '{path}': {detail}")


class SourceUnreadableError(BronzeError):
    """Raised when a raw input cannot be parsed as structured data at all."""

    def __init__(self, source_path: Any, reason: str):
        self.source_path = str(source_path)
        self.reason = reason
        super().__init__(f"Cannot read {self.source_path}: {reason}")


class SchemaMissingError(BronzeError):
    """Raised when no canonical schema is registered for a record type.

    This is a configuration error and stops the whole run.
    """

    def __init__(self, record_type: str):
        self.record_type = record_type
        super().__init__(f"No canonical schema registered for record type '{record_type}'")


class TypeCoercionWarning(UserWarning):
    """A single value could not be coerced to its declared column type.

    Collected on the reconciled table; the value is replaced with null.
    """

    def __init__(
        self,
        column: str,
        value: Any,
        target_type: str,
        row_index: Optional[int] = None,
    ):
        self.column = column
        self.value = value
        self.target_type = target_type
        self.row_index = row_index
        super().__init__(
            f"Could not coerce {value!r} to {target_type} in column '{column}'"
            + (f" (row {row_index})" if row_index is not None else "")
        )

    def to_dict(self) -> dict:
        return {
            "column": self.column,
            "value": repr(self.value),
            "target_type": self.target_type,
            "row_index": self.row_index,
        }
