"""Pytest configuration and fixtures."""

import json

import pytest

from bronze.schema import CanonicalSchema, SchemaRegistry


@pytest.fixture
def match_record():
    """One match with nested team info and an events collection."""
    return {
        "match_id": 7,
        "home_team": {"name": "A"},
        "events": [
            {"type": "pass", "x": 1},
            {"type": "shot", "x": 2},
        ],
    }


@pytest.fixture
def inconsistent_match_record():
    """Same key is an object in one event and a scalar in the next."""
    return {
        "match_id": 7,
        "home_team": {"name": "A"},
        "events": [
            {"type": {"name": "pass"}, "x": 1},
            {"type": "shot", "x": 2},
        ],
    }


@pytest.fixture
def events_schema():
    """Schema for per-event rows of a match record."""
    return CanonicalSchema(
        record_type="events",
        columns={
            "match_id": "integer",
            "event_type": "text",
            "x": "numeric",
            "home_team_name": "text",
        },
        row_path="events",
        aliases={"type": "event_type"},
    )


@pytest.fixture
def registry(events_schema):
    """Registry with a single source carrying the events record type."""
    return SchemaRegistry([events_schema], sources={"vendor": ["events"]})


@pytest.fixture
def write_json():
    """Write a JSON document to a path, creating parent directories."""
    def _write(path, payload):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def raw_root(tmp_path, write_json, match_record):
    """Raw input tree with three healthy match units."""
    root = tmp_path / "raw"
    for match_id in (1, 2, 3):
        record = dict(match_record, match_id=match_id)
        write_json(root / "vendor" / "events" / f"{match_id}.json", record)
    return root
