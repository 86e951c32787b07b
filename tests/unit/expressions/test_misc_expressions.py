"""Unit tests for values, literals, CASE expressions, aggregates and table literals."""

import pytest

from sqbind.core.protocol import Field, Predicate
from sqbind.core.writer import to_sql
from sqbind.errors import InterpolationError, SQLBuildError
from sqbind.expressions import (
    CaseExpression,
    NumberField,
    SelectValues,
    StringField,
    TableStruct,
    TableValues,
    avg,
    case,
    case_when,
    count,
    count_star,
    dialect_expr,
    dialect_value,
    expr,
    literal,
    max_,
    min_,
    sum_,
    value,
)
from sqbind.operations import select


class Film(TableStruct):
    film_id = NumberField()
    rating = StringField()
    length = NumberField()


@pytest.mark.unit
class TestValues:
    def test_value_is_bound(self):
        assert to_sql("postgres", select(value(1).as_("one"))) == ("SELECT $1 AS one", [1])

    def test_value_comparison_binds_raw_value(self):
        assert to_sql("postgres", value(5).eq(5)) == ("$1 = $2", [5, 5])

    def test_literal_is_inlined(self):
        assert to_sql("postgres", literal("it's")) == ("'it''s'", [])
        assert to_sql("sqlserver", literal(True)) == ("1", [])

    def test_dialect_value_picks_case(self):
        expression = dialect_value(1).dialect_value("mysql", 2)

        assert to_sql("postgres", expression) == ("$1", [1])
        assert to_sql("mysql", expression) == ("?", [2])

    def test_dialect_expr_picks_case(self):
        expression = dialect_expr("NOW()").dialect_expr("sqlite", "datetime('now')")

        assert to_sql("sqlite", expression) == ("datetime('now')", [])
        assert to_sql("postgres", expression) == ("NOW()", [])

    @pytest.mark.parametrize(
        "wrapper",
        [value(True), literal(True), dialect_value(True), dialect_expr("TRUE")],
    )
    def test_wrappers_are_fields_and_predicates(self, wrapper):
        """Value wrappers work both as selected fields and as WHERE conditions."""
        f = Film("f")

        assert isinstance(wrapper, Predicate)
        assert isinstance(wrapper, Field)
        query, _ = to_sql("postgres", select(f.film_id).from_(f).where(wrapper))
        assert query.startswith("SELECT f.film_id FROM film AS f WHERE ")

    def test_non_finite_literal_rejected(self):
        with pytest.raises(InterpolationError, match="has no SQL literal"):
            to_sql("postgres", literal(float("nan")))


@pytest.mark.unit
class TestCase:
    def test_searched_case(self):
        f = Film("f")
        expression = (
            case_when(f.length.gt(120), "long")
            .when(f.length.gt(60), "medium")
            .else_("short")
        )

        query, args = to_sql("postgres", expression)

        assert query == "CASE WHEN f.length > $1 THEN $2 WHEN f.length > $3 THEN $4 ELSE $5 END"
        assert args == [120, "long", 60, "medium", "short"]

    def test_simple_case(self):
        f = Film("f")

        query, args = to_sql("mysql", case(f.rating).when("G", 1).when("PG", 2).else_(0))

        assert query == "CASE f.rating WHEN ? THEN ? WHEN ? THEN ? ELSE ? END"
        assert args == ["G", 1, "PG", 2, 0]

    def test_case_without_else(self):
        f = Film("f")

        assert to_sql("postgres", case(f.rating).when("G", 1)) == ("CASE f.rating WHEN $1 THEN $2 END", ["G", 1])

    def test_case_alias(self):
        f = Film("f")

        query, _ = to_sql("postgres", select(case(f.rating).when("G", 1).as_("is_g")).from_(f))

        assert query == "SELECT CASE f.rating WHEN $1 THEN $2 END AS is_g FROM film AS f"

    def test_empty_case(self):
        with pytest.raises(SQLBuildError, match="CaseExpression empty"):
            to_sql("postgres", CaseExpression())

    def test_failing_branch_wrapped(self):
        f = Film("f")

        with pytest.raises(SQLBuildError, match="^CASE #1 THEN: "):
            to_sql("postgres", case_when(f.length.gt(1), expr("{}")))


@pytest.mark.unit
def test_aggregates():
    f = Film("f")

    assert to_sql("postgres", count(f.film_id))[0] == "COUNT(f.film_id)"
    assert to_sql("postgres", count_star())[0] == "COUNT(*)"
    assert to_sql("postgres", sum_(f.length))[0] == "SUM(f.length)"
    assert to_sql("postgres", avg(f.length))[0] == "AVG(f.length)"
    assert to_sql("postgres", min_(f.length))[0] == "MIN(f.length)"
    assert to_sql("postgres", max_(f.length))[0] == "MAX(f.length)"


@pytest.mark.unit
class TestTableLiterals:
    def test_select_values(self):
        values = SelectValues("tbl", ["a", "b"], [[1, 2], [3, 4]])

        assert to_sql("postgres", values) == ("SELECT $1 AS a, $2 AS b UNION ALL SELECT $3, $4", [1, 2, 3, 4])

    def test_table_values(self):
        values = TableValues("tbl", ["a", "b"], [[1, 2], [3, 4]])

        assert to_sql("postgres", values) == ("VALUES ($1, $2), ($3, $4)", [1, 2, 3, 4])

    def test_table_values_use_row_on_mysql(self):
        values = TableValues("tbl", ["a"], [[1], [2]])

        assert to_sql("mysql", values) == ("VALUES ROW(?), ROW(?)", [1, 2])

    def test_row_length_checked(self):
        with pytest.raises(SQLBuildError, match=r"rowvalue #1: got 1 values, want 2 values \(a, b\)"):
            to_sql("postgres", TableValues("tbl", ["a", "b"], [[1]]))

    def test_field_qualified_by_alias(self):
        values = TableValues("tbl", ["a"], [[1]])

        assert to_sql("postgres", values.field("a")) == ("tbl.a", [])
        assert [to_sql("postgres", f)[0] for f in values.get_fetchable_fields()] == ["tbl.a"]

    def test_table_values_in_from(self):
        values = TableValues("t", ["a"], [[1], [2]])

        query, args = to_sql("postgres", select(values.field("a")).from_(values))

        assert query == "SELECT t.a FROM (VALUES ($1), ($2)) AS t (a)"
        assert args == [1, 2]
