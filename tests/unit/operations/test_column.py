"""Unit tests for column mappers."""

import pytest

from sqbind.core.writer import to_sql
from sqbind.errors import MapperError, SQLBuildError
from sqbind.expressions import NumberField, StringField, TableStruct
from sqbind.operations import Column, call_mapper


class Actor(TableStruct):
    actor_id = NumberField()
    first_name = StringField()


@pytest.mark.unit
class TestColumn:
    def test_insert_mode_collects_rows(self):
        a = Actor("a")
        col = Column("postgres", is_update=False)

        col.set(a.actor_id, 1)
        col.set(a.first_name, "x")
        col.set(a.actor_id, 2)
        col.set(a.first_name, "y")

        assert len(col.insert_columns) == 2
        assert col.row_values == [[1, "x"], [2, "y"]]
        assert [to_sql("postgres", row) for row in col.rows()] == [("($1, $2)", [1, "x"]), ("($1, $2)", [2, "y"])]

    def test_update_mode_collects_assignments(self):
        a = Actor("a")
        col = Column("postgres", is_update=True)

        col.set(a.first_name, "x")

        assert [to_sql("postgres", item) for item in col.assignments] == [("first_name = $1", ["x"])]
        assert col.row_values == []

    def test_nil_field(self):
        with pytest.raises(MapperError, match="setting a nil field"):
            Column("postgres", is_update=False).set(None, 1)

    def test_typed_setters_wrap_values(self):
        a = Actor("a")
        col = Column("postgres", is_update=True)

        col.set_json(a.first_name, {"k": "v"})

        assert to_sql("postgres", col.assignments[0]) == ("first_name = $1", ['{"k":"v"}'])


@pytest.mark.unit
class TestCallMapper:
    def test_returns_mapper_result(self):
        assert call_mapper(lambda target: target * 2, 21) == 42

    def test_mapper_error_passes_through(self):
        original = MapperError("stop")

        def mapper(target):
            raise original

        with pytest.raises(MapperError) as exc_info:
            call_mapper(mapper, None)
        assert exc_info.value is original

    def test_build_error_becomes_mapper_error(self):
        def mapper(target):
            raise SQLBuildError("bad value")

        with pytest.raises(MapperError, match="bad value") as exc_info:
            call_mapper(mapper, None)
        assert type(exc_info.value.__cause__) is SQLBuildError

    def test_other_exceptions_propagate(self):
        """A bug in the mapper is not a build error."""

        def mapper(target):
            return {}["missing"]

        with pytest.raises(KeyError):
            call_mapper(mapper, None)
