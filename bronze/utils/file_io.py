"""File I/O utilities: raw record reading and run reports."""

import csv
import hashlib
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from bronze.errors import SourceUnreadableError, StructuralParseError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {
    ".json": "json",
    ".jsonl": "jsonl",
    ".ndjson": "jsonl",
    ".csv": "csv",
    ".tsv": "tsv",
}


@dataclass(frozen=True)
class RawRecord:
    """One unprocessed input unit.

    Attributes:
        value: Parsed tree (dict or list of nested dicts/lists/scalars)
        source_path: File the unit was read from
        sha256: Digest of the raw file bytes
    """

    value: Any
    source_path: str
    sha256: str


def read_record(path: Union[str, Path], lenient: bool = False) -> RawRecord:
    """Read one raw input unit into a structured value tree.

    Both modes require valid UTF-8 (a leading byte order mark is dropped)
    and well-formed JSON; corrupt or truncated content is never repaired.
    Lenient reading only tolerates ragged delimited rows, which strict
    reading reports as a structural error.

    Args:
        path: Input file (.json, .jsonl/.ndjson, .csv, .tsv)
        lenient: Use the permissive parse

    Returns:
        RawRecord

    Raises:
        SourceUnreadableError: If the file cannot be parsed as structured data
        StructuralParseError: Strict mode, delimited row with the wrong field count
    """
    path = Path(path)
    file_format = SUPPORTED_FORMATS.get(path.suffix.lower())
    if file_format is None:
        raise SourceUnreadableError(path, f"unsupported file type '{path.suffix}'")

    try:
        data = path.read_bytes()
    except OSError as e:
        raise SourceUnreadableError(path, str(e)) from e

    digest = hashlib.sha256(data).hexdigest()
    text = _decode(data, path)

    if file_format == "json":
        value = _parse_json(text, path)
    elif file_format == "jsonl":
        value = _parse_jsonl(text, path)
    else:
        delimiter = "\t" if file_format == "tsv" else ","
        value = _parse_delimited(text, path, delimiter, lenient)

    if not isinstance(value, (dict, list)):
        raise SourceUnreadableError(
            path, f"top-level {type(value).__name__} is not an object or array"
        )

    logger.debug(
        f"Read {path}",
        extra={"source_path": str(path), "lenient": lenient, "file_size_bytes": len(data)},
    )
    return RawRecord(value=value, source_path=str(path), sha256=digest)


def _decode(data: bytes, path: Path) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SourceUnreadableError(path, f"invalid UTF-8: {e}") from e


def _parse_json(text: str, path: Path) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SourceUnreadableError(path, f"invalid JSON: {e}") from e


def _parse_jsonl(text: str, path: Path) -> list:
    records = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise SourceUnreadableError(path, f"invalid JSON on line {line_number}: {e}") from e

    return records


def _parse_delimited(text: str, path: Path, delimiter: str, lenient: bool) -> list:
    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows = []

    try:
        for row in reader:
            overflow = row.pop(None, None)
            ragged = overflow is not None or any(value is None for value in row.values())
            if ragged:
                if not lenient:
                    raise StructuralParseError(
                        f"line {reader.line_num}",
                        f"expected {len(reader.fieldnames)} fields",
                    )
                logger.debug(
                    f"Ragged row on line {reader.line_num} in {path}",
                    extra={"source_path": str(path), "line_number": reader.line_num},
                )
            # Empty cells are absent values.
            rows.append({key: (value if value != "" else None) for key, value in row.items()})
    except csv.Error as e:
        raise SourceUnreadableError(path, f"invalid delimited data: {e}") from e

    return rows


def write_run_report(report: dict, output_path: Union[str, Path]) -> dict:
    """Write a run summary to a JSON file.

    Args:
        report: Summary dict (RunSummary.to_dict())
        output_path: Output file path

    Returns:
        Metadata dict with file info
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, default=str)

    metadata = {
        "file_path": str(output_path),
        "file_size_bytes": output_path.stat().st_size,
    }
    logger.info(f"Wrote run report to {output_path}", extra=metadata)
    return metadata
