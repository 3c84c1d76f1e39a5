"""Tests for run bookkeeping and structured logging."""

import json
import logging
from pathlib import Path

from bronze.models import InputUnit, OutcomeStatus, ProcessingOutcome, RunSummary
from bronze.utils.logging_config import JsonFormatter
from bronze.utils.pipeline_logger import PipelineLogContext, PipelineLogger, timed_operation


def _outcome(unit_id, status, record_type="events", reason=None):
    unit = InputUnit(
        source="statsbomb",
        record_type=record_type,
        source_path=Path(f"raw/statsbomb/{record_type}/{unit_id}.json"),
        unit_id=unit_id,
    )
    return ProcessingOutcome(unit=unit, status=status, reason=reason)


class TestRunSummary:
    """Tests for RunSummary."""

    def test_counts_per_source_and_record_type(self):
        summary = RunSummary("b1")
        summary.record(_outcome("1", OutcomeStatus.WRITTEN))
        summary.record(_outcome("2", OutcomeStatus.FAILED_FATAL, reason="bad"))
        summary.record(_outcome("1", OutcomeStatus.WRITTEN, record_type="lineups"))
        summary.finish()

        assert summary.total == 3
        assert summary.count(OutcomeStatus.WRITTEN) == 2
        assert summary.count(OutcomeStatus.WRITTEN, record_type="events") == 1
        assert summary.count(OutcomeStatus.FAILED_FATAL, source="skillcorner") == 0
        assert summary.failures == [
            {"unit": "statsbomb/events/2", "status": "failed_fatal", "reason": "bad"}
        ]

        report = summary.to_dict()
        assert report["counts"]["statsbomb/lineups"]["written"] == 1
        assert report["totals"]["failed_fatal"] == 1
        assert report["completed_at"] is not None

    def test_outcomes_sorted_by_unit(self):
        summary = RunSummary("b1")
        for unit_id in ("3", "1", "2"):
            summary.record(_outcome(unit_id, OutcomeStatus.WRITTEN))

        assert [o.unit.unit_id for o in summary.outcomes] == ["1", "2", "3"]


class TestPipelineLogger:
    """Tests for PipelineLogger."""

    def test_log_context_to_dict(self):
        """Test context conversion to dict."""
        ctx = PipelineLogContext(
            source="statsbomb",
            batch_id="b1",
            step="unit",
            row_count=100,
        )
        result = ctx.to_dict()

        assert result["source"] == "statsbomb"
        assert result["row_count"] == 100
        assert "timestamp" in result
        assert "error" not in result

    def test_outcome_levels(self, caplog):
        """Fatal failures log as errors, recoverable ones as warnings."""
        pipeline_logger = PipelineLogger("b1")

        with caplog.at_level(logging.DEBUG, logger="pipeline.bronze"):
            pipeline_logger.on_outcome(_outcome("1", OutcomeStatus.WRITTEN))
            pipeline_logger.on_outcome(_outcome("2", OutcomeStatus.FAILED_RECOVERABLE))
            pipeline_logger.on_outcome(_outcome("3", OutcomeStatus.FAILED_FATAL, reason="x"))

        assert [r.levelno for r in caplog.records] == [
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
        ]
        payload = json.loads(caplog.records[2].getMessage())
        assert payload["unit_id"] == "3"
        assert payload["status"] == "failed_fatal"
        assert payload["error"] == "x"

    def test_run_complete(self, caplog):
        summary = RunSummary("b1")
        summary.finish()

        with caplog.at_level(logging.INFO, logger="pipeline.bronze"):
            PipelineLogger("b1").on_run_complete(summary)

        assert json.loads(caplog.records[0].getMessage())["status"] == "complete"


class TestTimedOperation:
    """Tests for timed_operation."""

    def test_measures_duration(self):
        with timed_operation("flatten") as timer:
            sum(range(1000))

        assert timer.duration_ms >= 0
        assert timer.end_time is not None


class TestJsonFormatter:
    """Tests for JSON log output."""

    def test_includes_extra_fields(self):
        record = logging.LogRecord("bronze", logging.INFO, __file__, 1, "wrote %s", ("x",), None)
        record.row_count = 5

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "wrote x"
        assert payload["level"] == "INFO"
        assert payload["row_count"] == 5
        assert "lineno" not in payload
