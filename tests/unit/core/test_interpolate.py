"""Unit tests for inlining arguments into queries for logging (sprintf/sprint)."""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sqbind.core.interpolate import sprint, sprintf
from sqbind.core.protocol import NamedArg, named
from sqbind.core.valuers import JSONValue
from sqbind.core.writer import to_sql
from sqbind.errors import InterpolationError
from sqbind.expressions import expr


@pytest.mark.unit
class TestSprintf:
    def test_postgres_skips_markers_inside_literals(self):
        assert sprintf("postgres", "SELECT $1, '$1'", ["a"]) == "SELECT 'a', '$1'"

    def test_mysql_question_marks_consumed_in_order(self):
        assert sprintf("mysql", "x = ? AND y = ?", [1, None]) == "x = 1 AND y = NULL"

    def test_sqlserver_numbered_markers(self):
        assert sprintf("sqlserver", "a = @p1 AND b = @p2", [True, b"\x01"]) == "a = 1 AND b = 0x01"

    def test_sqlserver_named_marker(self):
        assert sprintf("sqlserver", "name = @name", [NamedArg("name", "bob")]) == "name = 'bob'"

    def test_sqlserver_bracket_identifiers_skipped(self):
        assert sprintf("sqlserver", "SELECT [@p1] FROM t WHERE a = @p1", [5]) == (
            "SELECT [@p1] FROM t WHERE a = 5"
        )

    def test_mysql_backtick_identifiers_skipped(self):
        assert sprintf("mysql", "SELECT `?` FROM t WHERE a = ?", [1]) == "SELECT `?` FROM t WHERE a = 1"

    def test_sqlite_ordinal_and_named_markers(self):
        query = "SELECT * FROM t WHERE a = $1 AND b = $name"
        args = [7, NamedArg("name", "x")]

        assert sprintf("sqlite", query, args) == "SELECT * FROM t WHERE a = 7 AND b = 'x'"

    def test_doubled_quote_stays_inside_literal(self):
        """'' inside a literal does not end it, so the $1 after it is still text."""
        assert sprintf("postgres", "SELECT 'it''s $1', $1", ["x"]) == "SELECT 'it''s $1', 'x'"

    def test_postgres_question_mark_is_an_operator(self):
        assert sprintf("postgres", "SELECT data ? 'key' WHERE id = $1", [1]) == (
            "SELECT data ? 'key' WHERE id = 1"
        )

    def test_marker_followed_by_punctuation(self):
        assert sprintf("postgres", "f($1,$2)", [1, 2]) == "f(1,2)"

    def test_no_args_returns_query_unchanged(self):
        assert sprintf("postgres", "SELECT $1", []) == "SELECT $1"

    def test_too_few_args(self):
        with pytest.raises(InterpolationError, match="too few args"):
            sprintf("mysql", "? ?", [1])

    def test_ordinal_out_of_bounds(self):
        with pytest.raises(InterpolationError, match="out of bounds"):
            sprintf("postgres", "$1 $3", [1])

    def test_unclosed_literal(self):
        with pytest.raises(InterpolationError, match="unclosed"):
            sprintf("postgres", "SELECT 'abc", [1])

    def test_postgres_rejects_named_markers(self):
        with pytest.raises(InterpolationError, match="does not support"):
            sprintf("postgres", "SELECT $name", [NamedArg("name", 1)])

    @pytest.mark.parametrize("dialect", ["", "sqlite", "postgres", "mysql", "sqlserver"])
    def test_rendered_query_interpolates_back(self, dialect):
        """Markers inside literals survive; expanded and repeated named values are inlined."""
        query = expr(
            "SELECT '?$1@p1' WHERE x IN ({}) AND w = {n} AND v = {n}", [1, 2], named("n", 7)
        )

        assert sprintf(dialect, *to_sql(dialect, query)) == (
            "SELECT '?$1@p1' WHERE x IN (1, 2) AND w = 7 AND v = 7"
        )


@pytest.mark.unit
class TestSprint:
    """SQL literal for a single value."""

    def test_null(self):
        assert sprint("postgres", None) == "NULL"

    @pytest.mark.parametrize(
        "dialect, value, expected",
        [
            ("postgres", True, "TRUE"),
            ("mysql", False, "FALSE"),
            ("sqlserver", True, "1"),
            ("sqlserver", False, "0"),
        ],
    )
    def test_booleans(self, dialect, value, expected):
        assert sprint(dialect, value) == expected

    @pytest.mark.parametrize(
        "dialect, expected",
        [("postgres", "'\\x01ff'"), ("sqlserver", "0x01ff"), ("sqlite", "x'01ff'"), ("mysql", "x'01ff'")],
    )
    def test_bytes(self, dialect, expected):
        assert sprint(dialect, b"\x01\xff") == expected

    def test_string_quotes_doubled(self):
        assert sprint("sqlite", "it's") == "'it''s'"

    @pytest.mark.parametrize(
        "dialect, expected",
        [
            ("postgres", "'a' || chr(10) || 'b'"),
            ("sqlite", "'a' || char(10) || 'b'"),
            ("mysql", "CONCAT('a', CHAR(10), 'b')"),
            ("sqlserver", "CONCAT('a', CHAR(10), 'b')"),
        ],
    )
    def test_newlines_split_out(self, dialect, expected):
        assert sprint(dialect, "a\nb") == expected

    def test_carriage_return_and_leading_newline(self):
        assert sprint("postgres", "\r\nx") == "chr(13) || chr(10) || 'x'"

    def test_naive_datetime_treated_as_utc(self):
        value = datetime(2024, 1, 2, 3, 4, 5)

        assert sprint("postgres", value) == "'2024-01-02 03:04:05+00:00'"
        assert sprint("mysql", value) == "'2024-01-02 03:04:05'"

    def test_datetime_fraction_trimmed(self):
        value = datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc)

        assert sprint("sqlserver", value) == "'2024-01-02 03:04:05.5+00:00'"

    def test_aware_datetime(self):
        value = datetime(2024, 1, 2, 8, 0, 0, tzinfo=timezone(timedelta(hours=8)))

        assert sprint("postgres", value) == "'2024-01-02 08:00:00+08:00'"
        assert sprint("sqlite", value) == "'2024-01-02 00:00:00'"

    def test_date(self):
        assert sprint("mysql", date(2024, 1, 2)) == "'2024-01-02'"

    def test_numbers(self):
        assert sprint("postgres", 42) == "42"
        assert sprint("postgres", 1.5) == "1.5"
        assert sprint("postgres", Decimal("1.50")) == "1.50"

    @pytest.mark.parametrize(
        "value", [float("nan"), float("inf"), float("-inf"), Decimal("NaN"), Decimal("Infinity")]
    )
    def test_non_finite_numbers_rejected(self, value):
        with pytest.raises(InterpolationError, match="has no SQL literal"):
            sprint("postgres", value)

    def test_uuid(self):
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")

        assert sprint("postgres", value) == "'12345678-1234-5678-1234-567812345678'"

    def test_named_arg_and_valuer_unwrapped(self):
        assert sprint("sqlite", NamedArg("x", 3)) == "3"
        assert sprint("sqlite", JSONValue([1, 2])) == "'[1,2]'"

    def test_unsupported_value(self):
        with pytest.raises(InterpolationError, match="has no SQL representation"):
            sprint("postgres", object())
