"""Column name canonicalization and value coercion utilities."""

import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from bronze.schema.registry import ColumnType
from bronze.transform.flatten import FlatTable, to_text

logger = logging.getLogger(__name__)

# Common timestamp formats to try parsing
TIMESTAMP_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y",
]

# Epoch values above this are taken as milliseconds (year 3000 in seconds)
EPOCH_MILLIS_THRESHOLD = 32503680000

# Integer columns are stored as 64-bit signed integers
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
FALSE_STRINGS = {"false", "f", "no", "n", "0"}

_SEPARATORS = re.compile(r"[.\-/\s]+")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_REPEATED_UNDERSCORES = re.compile(r"_+")


# ============================================
# Column names
# ============================================

def canonicalize_name(name: Any) -> str:
    """Rewrite a compound column name into the canonical convention.

    Path separators become underscores, camelCase becomes snake_case and
    everything is lowercased. Applying it twice is a no-op.

    Example:
        >>> canonicalize_name("home_team.name")
        'home_team_name'
        >>> canonicalize_name("possessionTeam.ID")
        'possession_team_id'
    """
    key = _SEPARATORS.sub("_", str(name))
    key = _ACRONYM_BOUNDARY.sub(r"\1_\2", key)
    key = _CAMEL_BOUNDARY.sub(r"\1_\2", key)
    key = _INVALID_CHARS.sub("", key)
    key = _REPEATED_UNDERSCORES.sub("_", key.lower())
    return key.strip("_") or "unnamed"


def canonicalize_table(
    table: FlatTable,
    aliases: Optional[Mapping[str, str]] = None,
) -> FlatTable:
    """Canonicalize every column of a flat table, then apply aliases.

    Columns that collapse onto the same canonical name are coalesced:
    the first non-null value in discovery order wins.

    Args:
        table: Flat table from either flattening path
        aliases: Canonical source name -> canonical target name

    Returns:
        New FlatTable with canonical column names
    """
    aliases = aliases or {}
    mapping = {}
    for column in table.columns:
        name = canonicalize_name(column)
        mapping[column] = aliases.get(name, name)

    columns = list(dict.fromkeys(mapping.values()))
    if len(columns) < len(mapping):
        logger.debug(
            f"Coalesced {len(mapping) - len(columns)} columns during canonicalization",
            extra={"column_count": len(columns)},
        )

    rows = []
    for row in table.rows:
        canonical_row = {}
        for key, value in row.items():
            target = mapping[key]
            if canonical_row.get(target) is None:
                canonical_row[target] = value
        rows.append(canonical_row)

    return FlatTable(rows=rows, columns=columns, separator="_")


# ============================================
# Values
# ============================================

def normalize_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp into a timezone-aware UTC datetime.

    Args:
        value: Timestamp value (string, epoch int/float, or datetime)

    Returns:
        UTC datetime or None if parsing fails
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        # Check if milliseconds (> year 3000 in seconds)
        if value > EPOCH_MILLIS_THRESHOLD:
            value = value / 1000
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        for fmt in TIMESTAMP_FORMATS:
            try:
                dt = datetime.strptime(text, fmt)
            except ValueError:
                continue
            if dt.tzinfo is None:
                return dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)

        try:
            return normalize_timestamp(float(text))
        except ValueError:
            pass

        logger.debug(f"Could not parse timestamp: {value}")
        return None

    return None


def coerce_value(value: Any, column_type: ColumnType) -> Any:
    """Coerce one value to a declared column type.

    Empty strings are null for every type except text.

    Raises:
        ValueError: If the value cannot be represented as the type
    """
    if value is None:
        return None

    if column_type is ColumnType.TEXT:
        return to_text(value)

    if isinstance(value, str) and not value.strip():
        return None

    if column_type is ColumnType.NESTED:
        return to_text(value)

    if column_type is ColumnType.INTEGER:
        return _coerce_integer(value)

    if column_type is ColumnType.NUMERIC:
        if isinstance(value, bool):
            raise ValueError("boolean is not numeric")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return float(value.strip())
        raise ValueError(f"{type(value).__name__} is not numeric")

    if column_type is ColumnType.BOOLEAN:
        return _coerce_boolean(value)

    if column_type is ColumnType.TEMPORAL:
        parsed = normalize_timestamp(value)
        if parsed is None:
            raise ValueError("unrecognised timestamp")
        return parsed

    raise ValueError(f"Unknown column type: {column_type}")


def _coerce_integer(value: Any) -> int:
    result = _parse_integer(value)
    if not INT64_MIN <= result <= INT64_MAX:
        raise ValueError(f"{result} is outside the 64-bit integer range")
    return result


def _parse_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        raise ValueError("float has a fractional part")
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return _parse_integer(float(text))
    raise ValueError(f"{type(value).__name__} is not an integer")


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise ValueError(f"{value!r} is not a boolean")
