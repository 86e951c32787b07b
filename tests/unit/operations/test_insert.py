"""Unit tests for the INSERT builder and upserts."""

import pytest

from sqbind.core.writer import to_sql
from sqbind.dialects import MySQL, Postgres, SQLite, SQLServer
from sqbind.errors import DialectNotSupportedError, MapperError, SQLBuildError
from sqbind.expressions import CTE, NumberField, StringField, TableStruct
from sqbind.operations import insert_into, select


class Actor(TableStruct):
    actor_id = NumberField()
    first_name = StringField()


@pytest.mark.unit
class TestValues:
    def test_multiple_rows(self):
        a = Actor("a")
        query = Postgres.insert_into(a).columns(a.actor_id, a.first_name).values(1, "x").values(2, "y")

        assert to_sql("", query) == (
            "INSERT INTO actor AS a (actor_id, first_name) VALUES ($1, $2), ($3, $4)",
            [1, "x", 2, "y"],
        )

    def test_mysql_rejects_table_alias(self):
        with pytest.raises(SQLBuildError, match="mysql does not allow an alias for the INSERT table"):
            to_sql("", MySQL.insert_into(Actor("a")).values(1))

    def test_mysql_without_alias(self):
        actor = Actor()
        query = MySQL.insert_into(actor).columns(actor.actor_id, actor.first_name).values(1, "x")

        assert to_sql("", query) == ("INSERT INTO actor (actor_id, first_name) VALUES (?, ?)", [1, "x"])

    def test_insert_select(self):
        actor, a = Actor(), Actor("a")
        query = Postgres.insert_into(actor).columns(actor.actor_id).select(Postgres.select(a.actor_id).from_(a))

        assert to_sql("", query)[0] == "INSERT INTO actor (actor_id) SELECT a.actor_id FROM actor AS a"

    def test_values_or_select_required(self):
        with pytest.raises(SQLBuildError, match="InsertQuery missing RowValues and SelectQuery"):
            to_sql("postgres", insert_into(Actor()))

    def test_no_table(self):
        with pytest.raises(SQLBuildError, match="no table provided to INSERT"):
            to_sql("postgres", insert_into(None).values(1))

    def test_mysql_rejects_ctes(self):
        query = MySQL.with_(CTE("x", query=select())).insert_into(Actor()).values(1)

        with pytest.raises(SQLBuildError, match="mysql does not support CTEs with INSERT"):
            to_sql("", query)


@pytest.mark.unit
class TestColumnMapper:
    def test_each_repeat_of_first_field_starts_a_row(self):
        actor = Actor()

        def mapper(col):
            for actor_id, name in [(1, "PENELOPE"), (2, "NICK")]:
                col.set(actor.actor_id, actor_id)
                col.set(actor.first_name, name)

        query, args = to_sql("", Postgres.insert_into(actor).column_values(mapper))

        assert query == "INSERT INTO actor (actor_id, first_name) VALUES ($1, $2), ($3, $4)"
        assert args == [1, "PENELOPE", 2, "NICK"]

    def test_mapper_failure_becomes_mapper_error(self):
        def mapper(col):
            raise SQLBuildError("bad row")

        with pytest.raises(MapperError, match="bad row"):
            to_sql("postgres", insert_into(Actor()).column_values(mapper))


@pytest.mark.unit
class TestConflict:
    def test_do_nothing(self):
        actor = Actor()
        query = (
            SQLite.insert_into(actor)
            .columns(actor.actor_id, actor.first_name)
            .values(1, "x")
            .on_conflict(actor.actor_id)
            .do_nothing()
        )

        assert to_sql("", query)[0] == (
            "INSERT INTO actor (actor_id, first_name) VALUES ($1, $2) ON CONFLICT (actor_id) DO NOTHING"
        )

    def test_do_update_set_with_excluded(self):
        actor = Actor()
        query = (
            Postgres.insert_into(actor)
            .columns(actor.actor_id, actor.first_name)
            .values(1, "x")
            .on_conflict(actor.actor_id)
            .do_update_set(actor.first_name.setf("EXCLUDED.first_name"))
            .where(actor.actor_id.gt(0))
        )

        assert to_sql("", query) == (
            "INSERT INTO actor (actor_id, first_name) VALUES ($1, $2) "
            "ON CONFLICT (actor_id) DO UPDATE SET first_name = EXCLUDED.first_name WHERE actor.actor_id > $3",
            [1, "x", 0],
        )

    def test_conflict_target_predicate(self):
        actor = Actor()
        query = (
            Postgres.insert_into(actor)
            .columns(actor.actor_id)
            .values(1)
            .on_conflict(actor.actor_id)
            .where(actor.first_name.is_not_null())
            .do_nothing()
        )

        assert to_sql("", query)[0] == (
            "INSERT INTO actor (actor_id) VALUES ($1) ON CONFLICT (actor_id) WHERE actor.first_name IS NOT NULL DO NOTHING"
        )

    def test_on_constraint(self):
        actor = Actor()
        query = Postgres.insert_into(actor).values(1, "x").on_conflict_on_constraint("actor_pkey").do_nothing()

        assert to_sql("", query)[0] == "INSERT INTO actor VALUES ($1, $2) ON CONFLICT ON CONSTRAINT actor_pkey DO NOTHING"

    def test_mysql_on_duplicate_key_update_with_row_alias(self):
        actor = Actor()
        query = (
            MySQL.insert_into(actor)
            .columns(actor.actor_id, actor.first_name)
            .values(1, "x")
            .as_("new")
            .on_duplicate_key_update(actor.first_name.setf("new.first_name"))
        )

        assert to_sql("", query)[0] == (
            "INSERT INTO actor (actor_id, first_name) VALUES (?, ?) AS new "
            "ON DUPLICATE KEY UPDATE actor.first_name = new.first_name"
        )

    def test_row_alias_is_mysql_only(self):
        with pytest.raises(DialectNotSupportedError, match="row aliases"):
            to_sql("", Postgres.insert_into(Actor()).values(1).as_("new"))

    def test_conflict_clause_skipped_on_sqlserver(self):
        actor = Actor()
        query = SQLServer.insert_into(actor).columns(actor.actor_id).values(1).on_conflict(actor.actor_id).do_nothing()

        assert to_sql("", query)[0] == "INSERT INTO actor (actor_id) VALUES (@p1)"

    def test_insert_ignore(self):
        actor = Actor()
        query = MySQL.insert_ignore_into(actor).columns(actor.actor_id).values(1)

        assert to_sql("", query)[0] == "INSERT IGNORE INTO actor (actor_id) VALUES (?)"
        with pytest.raises(DialectNotSupportedError, match="postgres does not support INSERT IGNORE"):
            to_sql("postgres", query)


@pytest.mark.unit
class TestReturning:
    def test_returning(self):
        actor = Actor()
        query = Postgres.insert_into(actor).columns(actor.first_name).values("x").returning(actor.actor_id)

        assert to_sql("", query)[0] == "INSERT INTO actor (first_name) VALUES ($1) RETURNING actor.actor_id"

    def test_sqlserver_output_inserted(self):
        actor = Actor()
        query = SQLServer.insert_into(actor).columns(actor.first_name).values("x").returning(actor.actor_id)

        assert to_sql("", query)[0] == "INSERT INTO actor (first_name) OUTPUT INSERTED.actor_id VALUES (@p1)"

    def test_fetchable_fields_postgres_and_sqlite_only(self):
        actor = Actor()

        query, ok = Postgres.insert_into(actor).values(1, "x").set_fetchable_fields([actor.actor_id])
        assert ok is True
        assert len(query.get_fetchable_fields()) == 1

        _, ok = MySQL.insert_into(actor).values(1, "x").set_fetchable_fields([actor.actor_id])
        assert ok is False
