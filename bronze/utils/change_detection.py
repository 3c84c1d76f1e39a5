"""Skip-if-unchanged gates deciding whether a unit needs reprocessing."""

import hashlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import pyarrow as pa

from bronze.utils.parquet_writer import SOURCE_SHA256_KEY, read_output_metadata

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ChangeDetectionGate(ABC):
    """Decide Process vs Skip for a source file and its output file."""

    name: str = ""

    @abstractmethod
    def should_process(self, source_path: PathLike, output_path: PathLike) -> bool:
        """Return True when the source must be (re)processed."""


class MtimeGate(ChangeDetectionGate):
    """Skip when the output exists and is not older than the source.

    A cheap freshness check, not a content comparison: a source rewritten
    with an unchanged modification time is skipped, and clock skew between
    source and output storage is assumed negligible.
    """

    name = "mtime"

    def should_process(self, source_path: PathLike, output_path: PathLike) -> bool:
        output_path = Path(output_path)
        if not output_path.exists():
            return True
        source_mtime = Path(source_path).stat().st_mtime_ns
        output_mtime = output_path.stat().st_mtime_ns
        return output_mtime < source_mtime


class ContentHashGate(ChangeDetectionGate):
    """Skip when the output records the SHA-256 of the current source bytes."""

    name = "hash"

    def should_process(self, source_path: PathLike, output_path: PathLike) -> bool:
        output_path = Path(output_path)
        if not output_path.exists():
            return True

        try:
            recorded = read_output_metadata(output_path).get(SOURCE_SHA256_KEY)
        except (OSError, pa.ArrowException) as e:
            logger.warning(
                f"Unreadable output {output_path}, reprocessing: {e}",
                extra={"output_path": str(output_path)},
            )
            return True

        if recorded is None:
            return True
        return recorded != file_sha256(source_path)


def file_sha256(path: PathLike, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


GATES = {
    MtimeGate.name: MtimeGate,
    ContentHashGate.name: ContentHashGate,
}


def build_gate(strategy: str = "mtime") -> ChangeDetectionGate:
    """Create the gate for a strategy name ('mtime' or 'hash')."""
    try:
        return GATES[strategy]()
    except KeyError:
        raise ValueError(
            f"Unknown change detection strategy '{strategy}', expected one of {sorted(GATES)}"
        ) from None
