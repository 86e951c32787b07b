"""Tests for fetching and executing queries against an in-memory SQLite database."""

import sqlite3

import pytest

from sqbind.core.protocol import NamedArg, param
from sqbind.dialects import SQLite
from sqbind.errors import MapperError, NoRowsError, ParameterError, SQLBuildError
from sqbind.execution import (
    LoggerConfig,
    QueryLogger,
    compile_exec,
    compile_fetch,
    exec_query,
    fetch_all,
    fetch_exists,
    fetch_one,
)
from sqbind.execution.fetch_exec import (
    FORBIDDEN_CALLS,
    MIXED_CALLS,
    NO_FIELDS_ACCESSED,
    driver_args,
    fetch_cursor,
    render,
)
from sqbind.expressions import NumberField, StringField, TableStruct, expr, union
from sqbind.operations import select


class Actor(TableStruct):
    actor_id = NumberField()
    first_name = StringField()
    last_name = StringField()
    active = NumberField()
    score = NumberField()


@pytest.fixture
def query_logger(recording_log):
    return QueryLogger(LoggerConfig(show_caller=False), log=recording_log)


@pytest.mark.integration
class TestFetch:
    def test_fetch_all_maps_each_row(self, sqlite_conn, query_logger):
        a = Actor("a")
        query = SQLite.from_(a).where(a.actor_id.lt(3)).order_by(a.actor_id)

        names = fetch_all(
            sqlite_conn,
            query,
            lambda row: (row.int_field(a.actor_id), row.string_field(a.first_name)),
            query_logger,
        )

        assert names == [(1, "PENELOPE"), (2, "NICK")]

    def test_fetch_one(self, sqlite_conn, query_logger):
        a = Actor("a")

        name = fetch_one(
            sqlite_conn,
            SQLite.from_(a).where(a.actor_id.eq(3)),
            lambda row: row.string_field(a.last_name),
            query_logger,
        )

        assert name == "CHASE"

    def test_fetch_one_no_rows(self, sqlite_conn, query_logger):
        a = Actor("a")

        with pytest.raises(NoRowsError, match="no rows in result set"):
            fetch_one(
                sqlite_conn,
                SQLite.from_(a).where(a.actor_id.eq(99)),
                lambda row: row.string_field(a.first_name),
                query_logger,
            )

    def test_null_read_as_none(self, sqlite_conn, query_logger):
        a = Actor("a")

        score = fetch_one(
            sqlite_conn,
            SQLite.from_(a).where(a.actor_id.eq(2)),
            lambda row: row.float_field(a.score),
            query_logger,
        )

        assert score is None

    def test_typed_conversions(self, sqlite_conn, query_logger):
        a = Actor("a")

        active, score = fetch_one(
            sqlite_conn,
            SQLite.from_(a).where(a.actor_id.eq(1)),
            lambda row: (row.bool_field(a.active), row.float_field(a.score)),
            query_logger,
        )

        assert active is True
        assert score == 7.5

    def test_conversion_failure_is_mapper_error(self, sqlite_conn, query_logger):
        a = Actor("a")

        with pytest.raises(MapperError, match="cannot be read as int"):
            fetch_one(
                sqlite_conn,
                SQLite.from_(a).where(a.actor_id.eq(1)),
                lambda row: row.int_field(a.first_name),
                query_logger,
            )

    def test_template_accessors(self, sqlite_conn, query_logger):
        a = Actor("a")

        total = fetch_one(
            sqlite_conn,
            SQLite.from_(a),
            lambda row: row.int_("COUNT(*)"),
            query_logger,
        )

        assert total == 3

    def test_cursor(self, sqlite_conn, query_logger):
        a = Actor("a")

        with fetch_cursor(
            sqlite_conn, SQLite.from_(a).order_by(a.actor_id), lambda row: row.int_field(a.actor_id), query_logger
        ) as cursor:
            ids = list(cursor)

        assert ids == [1, 2, 3]
        assert cursor.row_count == 3

    def test_fetch_exists(self, sqlite_conn, query_logger):
        a = Actor("a")

        assert fetch_exists(sqlite_conn, SQLite.select_one().from_(a).where(a.actor_id.eq(2)), query_logger) is True
        assert fetch_exists(sqlite_conn, SQLite.select_one().from_(a).where(a.actor_id.eq(99)), query_logger) is False


@pytest.mark.integration
class TestRawQueries:
    def test_raw_row_access(self, sqlite_conn, query_logger):
        query = SQLite.queryf("SELECT actor_id, first_name FROM actor WHERE actor_id = {}", 1)

        result = fetch_one(
            sqlite_conn,
            query,
            lambda row: (row.columns(), row.get("first_name"), row.values()),
            query_logger,
        )

        assert result == (["actor_id", "first_name"], "PENELOPE", [1, "PENELOPE"])

    def test_unknown_column(self, sqlite_conn, query_logger):
        query = SQLite.queryf("SELECT actor_id FROM actor")

        with pytest.raises(MapperError, match="column 'nope' not found"):
            fetch_one(sqlite_conn, query, lambda row: row.get("nope"), query_logger)

    def test_fields_spliced_into_marker(self, sqlite_conn, query_logger):
        a = Actor("a")
        query = SQLite.queryf("SELECT {*} FROM actor AS a WHERE a.actor_id = {}", 3)

        assert fetch_one(sqlite_conn, query, lambda row: row.string_field(a.first_name), query_logger) == "ED"


@pytest.mark.integration
class TestRowmapperRules:
    def test_mixed_calls(self, sqlite_conn, query_logger):
        a = Actor("a")

        with pytest.raises(MapperError) as exc_info:
            fetch_all(
                sqlite_conn,
                SQLite.from_(a),
                lambda row: (row.values(), row.int_field(a.actor_id)),
                query_logger,
            )
        assert str(exc_info.value) == MIXED_CALLS

    def test_no_fields_accessed(self, sqlite_conn, query_logger):
        with pytest.raises(MapperError) as exc_info:
            fetch_all(sqlite_conn, SQLite.from_(Actor("a")), lambda row: 1, query_logger)
        assert str(exc_info.value) == NO_FIELDS_ACCESSED

    def test_fields_on_static_query(self, sqlite_conn, query_logger):
        a = Actor("a")

        with pytest.raises(MapperError) as exc_info:
            fetch_all(sqlite_conn, SQLite.queryf("SELECT 1"), lambda row: row.int_field(a.actor_id), query_logger)
        assert str(exc_info.value) == FORBIDDEN_CALLS

    def test_missing_inputs(self, sqlite_conn):
        with pytest.raises(SQLBuildError, match="db is nil"):
            fetch_all(None, SQLite.queryf("SELECT 1"), lambda row: row.values())
        with pytest.raises(SQLBuildError, match="rowmapper is nil"):
            fetch_all(sqlite_conn, SQLite.queryf("SELECT 1"), None)


@pytest.mark.integration
class TestExec:
    def test_insert_reports_last_insert_id(self, sqlite_conn, query_logger):
        actor = Actor()
        query = (
            SQLite.insert_into(actor)
            .columns(actor.actor_id, actor.first_name, actor.last_name)
            .values(10, "GRACE", "MOSTEL")
        )

        result = exec_query(sqlite_conn, query, query_logger)

        assert result.rows_affected == 1
        assert result.last_insert_id == 10
        assert sqlite_conn.execute("SELECT first_name FROM actor WHERE actor_id = 10").fetchone() == ("GRACE",)

    def test_driver_error_propagates(self, sqlite_conn, query_logger, recording_log):
        with pytest.raises(sqlite3.OperationalError):
            exec_query(sqlite_conn, SQLite.queryf("DELETE FROM missing_table"), query_logger)

        level, event, fields = recording_log.calls[-1]
        assert (level, event) == ("error", "query_failed")
        assert fields["error_type"] == "OperationalError"


@pytest.mark.integration
class TestCompiled:
    def test_compile_fetch_rebinds_named_params(self, sqlite_conn, query_logger):
        a = Actor("a")
        compiled = compile_fetch(
            SQLite.from_(a).where(a.actor_id.eq(param("id", 0))),
            lambda row: row.string_field(a.first_name),
        )

        dialect, query, args, params = compiled.get_sql()

        assert dialect == "sqlite"
        assert query == "SELECT a.first_name FROM actor AS a WHERE a.actor_id = $id"
        assert args == [NamedArg("id", 0)]
        assert params == {"id": [0]}
        assert compiled.fetch_one(sqlite_conn, {"id": 3}, query_logger) == "ED"
        assert compiled.fetch_all(sqlite_conn, {"id": 1}, query_logger) == ["PENELOPE"]

    def test_compile_fetch_requires_every_param(self, sqlite_conn, query_logger):
        a = Actor("a")
        compiled = compile_fetch(
            SQLite.from_(a).where(a.actor_id.eq(param("id", 0))),
            lambda row: row.string_field(a.first_name),
        )

        with pytest.raises(ParameterError, match="param 'id' not provided"):
            compiled.fetch_one(sqlite_conn, {}, query_logger)

    def test_compile_exec(self, sqlite_conn, query_logger):
        actor = Actor()
        compiled = compile_exec(
            SQLite.update(actor)
            .set(actor.first_name.set(param("name", "")))
            .where(actor.actor_id.eq(param("id", 0)))
        )

        result = compiled.exec(sqlite_conn, {"name": "EDWARD", "id": 3}, query_logger)

        assert result.rows_affected == 1
        assert sqlite_conn.execute("SELECT first_name FROM actor WHERE actor_id = 3").fetchone() == ("EDWARD",)


@pytest.mark.unit
class TestHelpers:
    def test_driver_args(self):
        assert driver_args("sqlite", [5, NamedArg("name", "bob")]) == {"1": 5, "name": "bob"}
        assert driver_args("postgres", [5, NamedArg("name", "bob")]) == [5, "bob"]

    def test_render_compound_query_at_top_level(self):
        query, args, params = render("sqlite", union(select(expr("1")), select(expr("2"))))

        assert (query, args, params) == ("SELECT 1 UNION SELECT 2", [], {})


@pytest.mark.integration
class TestQueryLogging:
    def test_one_event_per_query(self, sqlite_conn, query_logger, recording_log):
        a = Actor("a")

        fetch_all(
            sqlite_conn,
            SQLite.from_(a).where(a.actor_id.lt(3)),
            lambda row: row.int_field(a.actor_id),
            query_logger,
        )

        assert len(recording_log.calls) == 1
        level, event, fields = recording_log.calls[0]
        assert (level, event) == ("info", "query_executed")
        assert fields["query"] == "SELECT a.actor_id FROM actor AS a WHERE a.actor_id < 3"
        assert fields["row_count"] == 2
        assert "time_taken_ms" in fields

    def test_results_included(self, sqlite_conn, recording_log):
        a = Actor("a")
        query_logger = QueryLogger(LoggerConfig(show_caller=False, show_results=1), log=recording_log)

        fetch_all(
            sqlite_conn,
            SQLite.from_(a).order_by(a.actor_id),
            lambda row: row.string_field(a.first_name),
            query_logger,
        )

        assert recording_log.calls[0][2]["results"] == [{"first_name": "'PENELOPE'"}]

    def test_caller_recorded(self, sqlite_conn, recording_log):
        a = Actor("a")
        query_logger = QueryLogger(LoggerConfig(show_caller=True), log=recording_log)

        fetch_all(sqlite_conn, SQLite.from_(a), lambda row: row.int_field(a.actor_id), query_logger)

        assert "test_fetch_exec.py" in recording_log.calls[0][2]["caller"]
