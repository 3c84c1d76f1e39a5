"""Tests for name canonicalization and value coercion."""

from datetime import datetime, timezone

import pytest

from bronze.schema import ColumnType
from bronze.transform.flatten import FlatTable, RecordFlattener
from bronze.transform.normalize import (
    canonicalize_name,
    canonicalize_table,
    coerce_value,
    normalize_timestamp,
)


class TestCanonicalizeName:
    """Tests for column name canonicalization."""

    def test_path_separators(self):
        """Dots, hyphens, slashes and spaces become underscores."""
        assert canonicalize_name("home_team.name") == "home_team_name"
        assert canonicalize_name("key-name") == "key_name"
        assert canonicalize_name("key name") == "key_name"
        assert canonicalize_name("a/b") == "a_b"

    def test_camel_case_to_snake(self):
        """camelCase and acronyms become snake_case."""
        assert canonicalize_name("camelCase") == "camel_case"
        assert canonicalize_name("someAPIKey") == "some_api_key"
        assert canonicalize_name("possessionTeam.ID") == "possession_team_id"

    def test_strips_special_chars_and_edges(self):
        """Punctuation is removed and no leading/trailing separator remains."""
        assert canonicalize_name("key@name!") == "keyname"
        assert canonicalize_name("_private.") == "private"
        assert canonicalize_name("a__b") == "a_b"

    def test_empty_name(self):
        """Names with nothing usable get a placeholder."""
        assert canonicalize_name("..") == "unnamed"

    @pytest.mark.parametrize(
        "name",
        ["home_team.name", "someAPIKey", "x", "tactics.lineup.0.player.id", "Shot-XG"],
    )
    def test_idempotent(self, name):
        """Re-canonicalizing a canonical name is a no-op."""
        once = canonicalize_name(name)
        assert canonicalize_name(once) == once

    def test_strict_and_permissive_paths_agree(self):
        """Both flattening conventions land on the same canonical names."""
        record = {
            "homeTeam": {"name": "A"},
            "tactics": {"lineup": [{"player": {"id": 1}}]},
            "location": [1, 2],
        }
        strict = RecordFlattener(strict=True).flatten(record)
        permissive = RecordFlattener(strict=False).flatten(record)

        assert [canonicalize_name(c) for c in strict.columns] == [
            canonicalize_name(c) for c in permissive.columns
        ]


class TestCanonicalizeTable:
    """Tests for table-level canonicalization."""

    def test_renames_columns_and_rows(self):
        """Every column and row key is canonicalized."""
        table = FlatTable(rows=[{"home.teamName": "A"}], columns=["home.teamName"])
        result = canonicalize_table(table)

        assert result.columns == ["home_team_name"]
        assert result.rows == [{"home_team_name": "A"}]

    def test_applies_aliases(self):
        """Aliases map canonical names onto schema names."""
        table = FlatTable(rows=[{"type": "pass"}], columns=["type"])
        result = canonicalize_table(table, aliases={"type": "event_type"})

        assert result.rows == [{"event_type": "pass"}]

    def test_collisions_coalesce_first_non_null(self):
        """Columns collapsing to one name keep the first non-null value."""
        table = FlatTable(
            rows=[
                {"teamName": None, "team_name": "B"},
                {"teamName": "A", "team_name": "B"},
            ],
            columns=["teamName", "team_name"],
        )
        result = canonicalize_table(table)

        assert result.columns == ["team_name"]
        assert [row["team_name"] for row in result.rows] == ["B", "A"]


class TestCoerceValue:
    """Tests for per-type value coercion."""

    def test_integer(self):
        assert coerce_value("7", ColumnType.INTEGER) == 7
        assert coerce_value(7.0, ColumnType.INTEGER) == 7
        assert coerce_value("7.0", ColumnType.INTEGER) == 7
        with pytest.raises(ValueError):
            coerce_value(7.5, ColumnType.INTEGER)
        with pytest.raises(ValueError):
            coerce_value(True, ColumnType.INTEGER)
        with pytest.raises(ValueError):
            coerce_value("seven", ColumnType.INTEGER)

    def test_integer_range(self):
        """Integers must fit a signed 64-bit column."""
        assert coerce_value(2 ** 63 - 1, ColumnType.INTEGER) == 2 ** 63 - 1
        assert coerce_value(str(-(2 ** 63)), ColumnType.INTEGER) == -(2 ** 63)
        with pytest.raises(ValueError):
            coerce_value(2 ** 63, ColumnType.INTEGER)
        with pytest.raises(ValueError):
            coerce_value("18446744073709551615", ColumnType.INTEGER)

    def test_numeric(self):
        assert coerce_value("2.5", ColumnType.NUMERIC) == 2.5
        assert coerce_value(3, ColumnType.NUMERIC) == 3.0
        with pytest.raises(ValueError):
            coerce_value({"x": 1}, ColumnType.NUMERIC)

    def test_text(self):
        assert coerce_value(7, ColumnType.TEXT) == "7"
        assert coerce_value(False, ColumnType.TEXT) == "false"
        assert coerce_value("", ColumnType.TEXT) == ""

    def test_boolean(self):
        assert coerce_value("true", ColumnType.BOOLEAN) is True
        assert coerce_value("No", ColumnType.BOOLEAN) is False
        assert coerce_value(1, ColumnType.BOOLEAN) is True
        with pytest.raises(ValueError):
            coerce_value("maybe", ColumnType.BOOLEAN)

    def test_temporal(self):
        result = coerce_value("2024-01-15T10:30:00Z", ColumnType.TEMPORAL)
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            coerce_value("00:01:02.345", ColumnType.TEMPORAL)

    def test_nested(self):
        assert coerce_value([1, 2], ColumnType.NESTED) == "[1, 2]"
        assert coerce_value("[1, 2]", ColumnType.NESTED) == "[1, 2]"

    def test_empty_string_is_null_for_non_text(self):
        """Blank strings are absent values, not coercion failures."""
        for column_type in (ColumnType.INTEGER, ColumnType.NUMERIC, ColumnType.BOOLEAN):
            assert coerce_value("  ", column_type) is None

    def test_none_passes_through(self):
        for column_type in ColumnType:
            assert coerce_value(None, column_type) is None


class TestNormalizeTimestamp:
    """Tests for timestamp parsing."""

    def test_iso_format(self):
        result = normalize_timestamp("2024-01-15T10:30:00Z")
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_naive_iso_with_fraction(self):
        result = normalize_timestamp("2023-02-06T15:35:58.372")
        assert result.tzinfo is not None
        assert result.microsecond == 372000

    def test_unix_seconds_and_milliseconds(self):
        assert normalize_timestamp(1705315800) == normalize_timestamp(1705315800000)

    def test_date_only(self):
        assert normalize_timestamp("2018-06-14").day == 14

    def test_invalid(self):
        assert normalize_timestamp("not a timestamp") is None
        assert normalize_timestamp(None) is None
        assert normalize_timestamp(True) is None
