"""Input units, per-unit outcomes and the run summary."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional


class OutcomeStatus(str, Enum):
    """What happened to one input unit."""

    WRITTEN = "written"
    SKIPPED_UNCHANGED = "skipped_unchanged"
    FAILED_RECOVERABLE = "failed_recoverable"
    FAILED_FATAL = "failed_fatal"


@dataclass(frozen=True)
class InputUnit:
    """One raw input file of one record type from one data source."""

    source: str
    record_type: str
    source_path: Path
    unit_id: str

    @property
    def key(self) -> str:
        return f"{self.source}/{self.record_type}/{self.unit_id}"


@dataclass
class ProcessingOutcome:
    """Result of processing one input unit."""

    unit: InputUnit
    status: OutcomeStatus
    output_path: Optional[Path] = None
    row_count: int = 0
    reason: Optional[str] = None
    attempted_paths: list[str] = field(default_factory=list)
    coercion_warnings: int = 0
    duration_ms: float = 0.0

    @property
    def is_failure(self) -> bool:
        return self.status in (OutcomeStatus.FAILED_RECOVERABLE, OutcomeStatus.FAILED_FATAL)

    def to_dict(self) -> dict:
        return {
            "source": self.unit.source,
            "record_type": self.unit.record_type,
            "unit_id": self.unit.unit_id,
            "source_path": str(self.unit.source_path),
            "status": self.status.value,
            "output_path": str(self.output_path) if self.output_path else None,
            "row_count": self.row_count,
            "reason": self.reason,
            "attempted_paths": list(self.attempted_paths),
            "coercion_warnings": self.coercion_warnings,
            "duration_ms": round(self.duration_ms, 2),
        }


class RunSummary:
    """Thread-safe accumulator of outcomes for one run.

    Counts are kept per (source, record_type) and status; recoverable and
    fatal failures are also listed with their reasons.
    """

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        self.started_at = datetime.now(timezone.utc)
        self.completed_at: Optional[datetime] = None
        self.cancelled = False
        self.not_started = 0
        self._lock = threading.Lock()
        self._counts: dict[tuple, dict[str, int]] = {}
        self._outcomes: list[ProcessingOutcome] = []

    def record(self, outcome: ProcessingOutcome) -> None:
        key = (outcome.unit.source, outcome.unit.record_type)
        with self._lock:
            counts = self._counts.setdefault(key, {status.value: 0 for status in OutcomeStatus})
            counts[outcome.status.value] += 1
            self._outcomes.append(outcome)

    def finish(self) -> None:
        self.completed_at = datetime.now(timezone.utc)

    @property
    def outcomes(self) -> list[ProcessingOutcome]:
        with self._lock:
            return sorted(self._outcomes, key=lambda o: o.unit.key)

    @property
    def total(self) -> int:
        with self._lock:
            return len(self._outcomes)

    @property
    def failures(self) -> list[dict]:
        return [
            {
                "unit": outcome.unit.key,
                "status": outcome.status.value,
                "reason": outcome.reason,
            }
            for outcome in self.outcomes
            if outcome.is_failure
        ]

    def count(
        self,
        status: OutcomeStatus,
        source: Optional[str] = None,
        record_type: Optional[str] = None,
    ) -> int:
        with self._lock:
            return sum(
                counts[status.value]
                for (counts_source, counts_type), counts in self._counts.items()
                if (source is None or counts_source == source)
                and (record_type is None or counts_type == record_type)
            )

    def to_dict(self) -> dict:
        with self._lock:
            counts = {
                f"{source}/{record_type}": dict(values)
                for (source, record_type), values in sorted(self._counts.items())
            }
        totals = {status.value: self.count(status) for status in OutcomeStatus}
        duration = None
        if self.completed_at:
            duration = (self.completed_at - self.started_at).total_seconds()

        return {
            "batch_id": self.batch_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": duration,
            "cancelled": self.cancelled,
            "not_started": self.not_started,
            "total_units": self.total,
            "totals": totals,
            "counts": counts,
            "failures": self.failures,
        }
