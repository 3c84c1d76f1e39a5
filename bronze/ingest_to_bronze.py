"""Main ingestion entrypoint: raw football files -> Bronze Parquet.

Usage:
    python -m bronze.ingest_to_bronze
    python -m bronze.ingest_to_bronze --source statsbomb
    python -m bronze.ingest_to_bronze --source skillcorner --record-type tracking --workers 8
"""

import argparse
import logging
import sys
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional, Union

from bronze.config import Settings, get_settings, load_registry
from bronze.errors import SchemaMissingError
from bronze.models import InputUnit, OutcomeStatus, ProcessingOutcome, RunSummary
from bronze.schema import CanonicalSchema, SchemaRegistry
from bronze.transform import FallbackController
from bronze.utils import (
    ChangeDetectionGate,
    MtimeGate,
    OutcomeObserver,
    ParquetWriter,
    PipelineLogger,
    build_gate,
    get_output_path,
    setup_logging,
    timed_operation,
    unit_id_for,
    write_run_report,
)

logger = logging.getLogger(__name__)


class BatchDriver:
    """Run every input unit of the selected sources through the engine.

    Per unit: change-detection gate -> fallback controller -> writer.
    Units are independent and run on a bounded thread pool; a failed
    unit never stops the batch.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        raw_root: Union[str, Path],
        output_root: Union[str, Path],
        sources: Optional[Iterable[str]] = None,
        record_types: Optional[Iterable[str]] = None,
        writer: Optional[ParquetWriter] = None,
        gate: Optional[ChangeDetectionGate] = None,
        controller: Optional[FallbackController] = None,
        observers: Optional[list[OutcomeObserver]] = None,
        max_workers: Optional[int] = None,
        force: bool = False,
        batch_id: Optional[str] = None,
    ):
        """Initialize the batch driver.

        Args:
            registry: Canonical schemas and source layout
            raw_root: Root directory holding one directory per data source
            output_root: Root directory for Bronze output
            sources: Sources to process (default: all in the registry)
            record_types: Restrict to these record types
            writer: ParquetWriter instance
            gate: Change-detection gate (default: MtimeGate)
            controller: FallbackController instance
            observers: Outcome observers (default: a PipelineLogger)
            max_workers: Worker threads (default: CPU count)
            force: Process units even when the gate would skip them
            batch_id: Run identifier (auto-generated if not provided)
        """
        self.registry = registry
        self.raw_root = Path(raw_root)
        self.output_root = Path(output_root)
        self.sources = list(sources) if sources else None
        self.record_types = set(record_types) if record_types else None
        self.writer = writer or ParquetWriter()
        self.gate = gate or MtimeGate()
        self.controller = controller or FallbackController()
        self.batch_id = batch_id or uuid.uuid4().hex[:12]
        self.observers = (
            observers if observers is not None else [PipelineLogger(self.batch_id)]
        )
        self.max_workers = max_workers
        self.force = force

    def plan(self) -> list[tuple[str, CanonicalSchema]]:
        """Resolve (source, schema) pairs for the run.

        Raises:
            SchemaMissingError: If any selected record type has no schema
        """
        sources = self.sources or self.registry.sources
        plan = []

        for source in sources:
            try:
                record_types = self.registry.record_types_for(source)
            except KeyError:
                raise ValueError(f"Unknown data source: {source}") from None

            for record_type in record_types:
                if self.record_types and record_type not in self.record_types:
                    continue
                plan.append((source, self.registry.get(record_type)))

        return plan

    def discover_units(
        self,
        plan: Optional[list[tuple[str, CanonicalSchema]]] = None,
    ) -> list[InputUnit]:
        """Enumerate input units for each (source, record type), in sorted order."""
        if plan is None:
            plan = self.plan()

        units = []
        for source, schema in plan:
            base_dir = self.raw_root / source / schema.source_directory
            if not base_dir.is_dir():
                logger.warning(
                    f"No input directory for {source}/{schema.record_type}",
                    extra={"input_dir": str(base_dir)},
                )
                continue

            paths = sorted(p for p in base_dir.rglob(schema.file_pattern) if p.is_file())
            for path in paths:
                units.append(
                    InputUnit(
                        source=source,
                        record_type=schema.record_type,
                        source_path=path,
                        unit_id=unit_id_for(path, base_dir),
                    )
                )

            logger.info(
                f"Found {len(paths)} units for {source}/{schema.record_type}",
                extra={"source": source, "record_type": schema.record_type, "unit_count": len(paths)},
            )

        return units

    def process_unit(self, unit: InputUnit) -> ProcessingOutcome:
        """Gate, transform and write one input unit."""
        with timed_operation(unit.key, logger) as timer:
            outcome = self._process(unit)
        outcome.duration_ms = timer.duration_ms
        return outcome

    def _process(self, unit: InputUnit) -> ProcessingOutcome:
        schema = self.registry.get(unit.record_type)
        output_path = get_output_path(
            self.output_root, unit.source, unit.record_type, unit.unit_id
        )

        try:
            if not self.force and not self.gate.should_process(unit.source_path, output_path):
                return ProcessingOutcome(
                    unit=unit,
                    status=OutcomeStatus.SKIPPED_UNCHANGED,
                    output_path=output_path,
                )

            result = self.controller.process(unit.source_path, schema, unit_id=unit.unit_id)
            if not result.succeeded:
                return ProcessingOutcome(
                    unit=unit,
                    status=OutcomeStatus.FAILED_FATAL,
                    reason=result.reason,
                    attempted_paths=result.attempted,
                )

            fidelity = "reduced" if result.recovered else "full"
            self.writer.write(
                result.table,
                output_path,
                metadata={
                    "source": unit.source,
                    "unit_id": unit.unit_id,
                    "fidelity": fidelity,
                    "processing_path": result.path.value,
                    "source_sha256": result.source_sha256,
                },
            )

        except Exception as e:
            logger.error(
                f"Failed to process {unit.key}: {e}",
                exc_info=True,
                extra={"unit": unit.key, "source_path": str(unit.source_path)},
            )
            return ProcessingOutcome(
                unit=unit,
                status=OutcomeStatus.FAILED_FATAL,
                reason=f"{type(e).__name__}: {e}",
            )

        return ProcessingOutcome(
            unit=unit,
            status=(
                OutcomeStatus.FAILED_RECOVERABLE if result.recovered else OutcomeStatus.WRITTEN
            ),
            output_path=output_path,
            row_count=result.table.row_count,
            reason=result.reason if result.recovered else None,
            attempted_paths=result.attempted,
            coercion_warnings=len(result.table.warnings),
        )

    def _run_unit(
        self,
        unit: InputUnit,
        summary: RunSummary,
        cancel_event: threading.Event,
    ) -> Optional[ProcessingOutcome]:
        if cancel_event.is_set():
            return None

        outcome = self.process_unit(unit)
        summary.record(outcome)
        self._notify("on_outcome", outcome)
        return outcome

    def _notify(self, callback: str, payload) -> None:
        """Call one observer callback on every observer.

        An observer that raises is logged and skipped; it never fails the
        unit or the run.
        """
        for observer in self.observers:
            try:
                getattr(observer, callback)(payload)
            except Exception as e:
                logger.error(
                    f"Observer {type(observer).__name__}.{callback} failed: {e}",
                    exc_info=True,
                    extra={"observer": type(observer).__name__, "callback": callback},
                )

    def run(self, cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """Process every unit and return the run summary.

        Setting `cancel_event` stops new units from starting; units already
        running finish and their outputs are complete.

        Raises:
            SchemaMissingError: Before any unit is processed
        """
        cancel_event = cancel_event or threading.Event()
        plan = self.plan()
        units = self.discover_units(plan)
        summary = RunSummary(self.batch_id)

        logger.info(
            "Starting ingestion run",
            extra={
                "batch_id": self.batch_id,
                "unit_count": len(units),
                "max_workers": self.max_workers,
                "gate": self.gate.name,
                "force": self.force,
            },
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self._run_unit, unit, summary, cancel_event)
                for unit in units
            ]
            try:
                results = [future.result() for future in futures]
            except KeyboardInterrupt:
                logger.warning("Interrupted, finishing units already in progress")
                cancel_event.set()
                results = [future.result() for future in futures]

        summary.not_started = sum(1 for result in results if result is None)
        summary.cancelled = cancel_event.is_set() and summary.not_started > 0
        summary.finish()

        self._notify("on_run_complete", summary)

        return summary


def run_ingestion(
    settings: Optional[Settings] = None,
    sources: Optional[list[str]] = None,
    record_types: Optional[list[str]] = None,
    force: bool = False,
    max_workers: Optional[int] = None,
    batch_id: Optional[str] = None,
    report_path: Optional[str] = None,
) -> dict:
    """Run ingestion for the specified sources.

    Args:
        settings: Runtime settings (default: from environment)
        sources: Sources to ingest (default: all)
        record_types: Restrict to these record types
        force: Reprocess units the gate would skip
        max_workers: Worker threads (default: settings)
        batch_id: Optional batch ID (auto-generated if not provided)
        report_path: Optional JSON file for the run summary

    Returns:
        Run summary dict
    """
    settings = settings or get_settings()
    registry = load_registry(settings)

    driver = BatchDriver(
        registry,
        raw_root=settings.raw_data_dir,
        output_root=settings.bronze_data_dir,
        sources=sources,
        record_types=record_types,
        writer=ParquetWriter(compression=settings.parquet_compression),
        gate=build_gate(settings.change_detection),
        max_workers=max_workers or settings.max_workers,
        force=force,
        batch_id=batch_id,
    )
    summary = driver.run().to_dict()

    if report_path:
        write_run_report(summary, report_path)

    logger.info(
        f"Ingestion run complete: {summary['total_units']} units in "
        f"{summary['duration_seconds']:.2f}s",
        extra={"batch_id": summary["batch_id"], "totals": summary["totals"]},
    )
    return summary


def main():
    """CLI entrypoint."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Convert raw football datasets to Bronze Parquet files"
    )
    parser.add_argument(
        "--source",
        action="append",
        default=None,
        help="Source to ingest; repeatable (default: all)",
    )
    parser.add_argument(
        "--record-type",
        action="append",
        default=None,
        help="Record type to ingest; repeatable (default: all)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Worker threads (default: {settings.max_workers})",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Reprocess units even if their output is up to date",
    )
    parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Write the run summary to this JSON file",
    )
    parser.add_argument(
        "--batch-id",
        type=str,
        default=None,
        help="Batch ID (auto-generated if not provided)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level.upper(),
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    setup_logging(level=args.log_level, json_format=settings.log_json)

    try:
        run_ingestion(
            settings=settings,
            sources=args.source,
            record_types=args.record_type,
            force=args.force,
            max_workers=args.workers,
            batch_id=args.batch_id,
            report_path=args.report,
        )
    except SchemaMissingError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(2)
    except ValueError as e:
        logger.error(f"Invalid run configuration: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
