"""Structured logging utilities for pipeline observability.

Provides consistent logging format with required fields:
- source
- batch_id
- record_type
- unit_id
- row_count
- output_path
- duration_ms
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from bronze.models import OutcomeStatus, ProcessingOutcome, RunSummary

logger = logging.getLogger(__name__)


class OutcomeObserver(Protocol):
    """Receives per-unit outcomes and the final run summary.

    Called from worker threads; implementations must be thread-safe.
    """

    def on_outcome(self, outcome: ProcessingOutcome) -> None:
        ...

    def on_run_complete(self, summary: RunSummary) -> None:
        ...


@dataclass
class PipelineLogContext:
    """Context for pipeline logging with required fields."""

    source: str
    batch_id: str
    step: str = ""
    record_type: Optional[str] = None
    unit_id: Optional[str] = None
    row_count: int = 0
    output_path: Optional[str] = None
    duration_ms: Optional[float] = None
    status: str = "started"
    error: Optional[str] = None
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        data = asdict(self)
        data["timestamp"] = datetime.now(timezone.utc).isoformat()
        # Remove None values
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class PipelineLogger:
    """Structured logger for a batch run; the default outcome observer."""

    def __init__(self, batch_id: str, source: str = "bronze"):
        """Initialize pipeline logger.

        Args:
            batch_id: Unique batch identifier
            source: Name used for the logger and default context
        """
        self.source = source
        self.batch_id = batch_id
        self.logger = logging.getLogger(f"pipeline.{source}")

    def _log(self, level: int, step: str, source: Optional[str] = None, **kwargs) -> None:
        """Internal logging method with structured context."""
        ctx = PipelineLogContext(
            source=source or self.source,
            batch_id=self.batch_id,
            step=step,
            **kwargs
        )
        self.logger.log(level, ctx.to_json(), extra=ctx.to_dict())

    def on_outcome(self, outcome: ProcessingOutcome) -> None:
        """Log one unit's outcome."""
        if outcome.status is OutcomeStatus.FAILED_FATAL:
            level = logging.ERROR
        elif outcome.status is OutcomeStatus.FAILED_RECOVERABLE:
            level = logging.WARNING
        elif outcome.status is OutcomeStatus.SKIPPED_UNCHANGED:
            level = logging.DEBUG
        else:
            level = logging.INFO

        self._log(
            level,
            step="unit",
            source=outcome.unit.source,
            record_type=outcome.unit.record_type,
            unit_id=outcome.unit.unit_id,
            row_count=outcome.row_count,
            output_path=str(outcome.output_path) if outcome.output_path else None,
            duration_ms=round(outcome.duration_ms, 2),
            status=outcome.status.value,
            error=outcome.reason,
            extra={
                "source_path": str(outcome.unit.source_path),
                "attempted_paths": outcome.attempted_paths,
                "coercion_warnings": outcome.coercion_warnings,
            },
        )

    def on_run_complete(self, summary: RunSummary) -> None:
        """Log the run summary."""
        report = summary.to_dict()
        self._log(
            logging.INFO,
            step="run",
            row_count=0,
            status="cancelled" if summary.cancelled else "complete",
            extra={
                "totals": report["totals"],
                "counts": report["counts"],
                "failure_count": len(report["failures"]),
                "duration_seconds": report["duration_seconds"],
            },
        )


@contextmanager
def timed_operation(name: str, logger: logging.Logger = None):
    """Context manager to time an operation.

    Usage:
        with timed_operation("flatten") as timer:
            result = flatten()
        print(f"Took {timer.duration_ms}ms")

    Args:
        name: Operation name for logging
        logger: Optional logger instance

    Yields:
        Timer object with duration_ms attribute
    """
    class Timer:
        def __init__(self):
            self.start_time = time.perf_counter()
            self.end_time = None
            self.duration_ms = 0

    timer = Timer()

    try:
        yield timer
    finally:
        timer.end_time = time.perf_counter()
        timer.duration_ms = (timer.end_time - timer.start_time) * 1000

        if logger:
            logger.debug(
                f"Operation '{name}' completed",
                extra={"operation": name, "duration_ms": timer.duration_ms},
            )
