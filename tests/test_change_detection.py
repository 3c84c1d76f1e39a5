"""Tests for skip-if-unchanged gates."""

import os

import pytest

from bronze.schema import ColumnType
from bronze.transform.reconcile import ReconciledTable
from bronze.utils.change_detection import (
    ContentHashGate,
    MtimeGate,
    build_gate,
    file_sha256,
)
from bronze.utils.parquet_writer import ParquetWriter


def _set_mtime(path, seconds):
    os.utime(path, ns=(seconds * 1_000_000_000, seconds * 1_000_000_000))


def _write_output(path, source_sha256=None):
    table = ReconciledTable(
        record_type="events",
        columns=["match_id"],
        types={"match_id": ColumnType.INTEGER},
        rows=[{"match_id": 7}],
    )
    metadata = {"source_sha256": source_sha256} if source_sha256 else None
    ParquetWriter().write(table, path, metadata=metadata)


class TestMtimeGate:
    """Tests for modification-time change detection."""

    def test_missing_output_processes(self, tmp_path):
        source = tmp_path / "7.json"
        source.write_text("{}", encoding="utf-8")

        assert MtimeGate().should_process(source, tmp_path / "7.parquet")

    def test_fresh_output_skips(self, tmp_path):
        """Output at least as new as the source is skipped."""
        source = tmp_path / "7.json"
        source.write_text("{}", encoding="utf-8")
        output = tmp_path / "7.parquet"
        _write_output(output)
        _set_mtime(source, 1_700_000_000)
        _set_mtime(output, 1_700_000_000)

        assert not MtimeGate().should_process(source, output)

    def test_stale_output_processes(self, tmp_path):
        """A source touched after its output is reprocessed."""
        source = tmp_path / "7.json"
        source.write_text("{}", encoding="utf-8")
        output = tmp_path / "7.parquet"
        _write_output(output)
        _set_mtime(output, 1_700_000_000)
        _set_mtime(source, 1_700_000_060)

        assert MtimeGate().should_process(source, output)


class TestContentHashGate:
    """Tests for content-hash change detection."""

    def test_matching_digest_skips(self, tmp_path):
        """Output recording the current source digest is skipped, whatever the mtimes."""
        source = tmp_path / "7.json"
        source.write_text('{"match_id": 7}', encoding="utf-8")
        output = tmp_path / "7.parquet"
        _write_output(output, source_sha256=file_sha256(source))
        _set_mtime(output, 1_700_000_000)
        _set_mtime(source, 1_700_000_060)

        assert not ContentHashGate().should_process(source, output)

    def test_changed_content_processes(self, tmp_path):
        source = tmp_path / "7.json"
        source.write_text('{"match_id": 7}', encoding="utf-8")
        output = tmp_path / "7.parquet"
        _write_output(output, source_sha256=file_sha256(source))
        source.write_text('{"match_id": 8}', encoding="utf-8")

        assert ContentHashGate().should_process(source, output)

    def test_output_without_digest_processes(self, tmp_path):
        source = tmp_path / "7.json"
        source.write_text("{}", encoding="utf-8")
        output = tmp_path / "7.parquet"
        _write_output(output)

        assert ContentHashGate().should_process(source, output)

    def test_corrupt_output_processes(self, tmp_path):
        """An unreadable output file is treated as absent."""
        source = tmp_path / "7.json"
        source.write_text("{}", encoding="utf-8")
        output = tmp_path / "7.parquet"
        output.write_bytes(b"not parquet")

        assert ContentHashGate().should_process(source, output)


class TestBuildGate:
    """Tests for gate selection by name."""

    def test_known_strategies(self):
        assert isinstance(build_gate(), MtimeGate)
        assert isinstance(build_gate("mtime"), MtimeGate)
        assert isinstance(build_gate("hash"), ContentHashGate)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            build_gate("etag")
