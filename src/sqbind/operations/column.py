"""
Column mapper support for INSERT and UPDATE.

A column mapper is a callable that receives a :class:`Column` and calls
``col.set(field, value)`` for every column it wants to write. In INSERT mode
setting the first field again starts a new row:

    >>> def mapper(col):
    ...     for actor in actors:
    ...         col.set(a.actor_id, actor.id)
    ...         col.set(a.first_name, actor.name)
    >>> q = insert_into(a).column_values(mapper)

In UPDATE mode every ``set`` becomes an assignment.
"""

from typing import Any, Callable, List, Optional, TypeVar

from sqbind.core.protocol import Assignment, Field, with_prefix
from sqbind.core.valuers import ArrayValue, EnumValue, JSONValue, UUIDValue
from sqbind.core.writer import to_sql
from sqbind.errors import MapperError, SQLBuildError
from sqbind.expressions.assignments import set_
from sqbind.expressions.expression import RowValue

T = TypeVar("T")


class Column:
    """Records what value maps to what field in an INSERT or UPDATE."""

    def __init__(self, dialect: str, is_update: bool):
        self.dialect = dialect
        self.is_update = is_update
        self.assignments: List[Assignment] = []
        self.insert_columns: List[Field] = []
        self.row_values: List[List[Any]] = []
        self._first_field: Optional[str] = None
        self._row_ended = False

    def set(self, field: Field, value: Any) -> None:
        """Map ``value`` to ``field``."""
        if field is None:
            raise MapperError("setting a nil field")
        if self.is_update:
            self.assignments.append(set_(field, value))
            return

        name, _ = to_sql(self.dialect, with_prefix(field, ""))
        if not name:
            raise MapperError("field name is empty")
        if self._first_field is None:
            self._first_field = name
            self.insert_columns.append(field)
            self.row_values.append([value])
            return
        if name == self._first_field:
            self._row_ended = True
            self.row_values.append([value])
            return
        if not self._row_ended:
            self.insert_columns.append(field)
        self.row_values[-1].append(value)

    def set_array(self, field: Field, value: Any) -> None:
        self.set(field, ArrayValue(value))

    def set_enum(self, field: Field, value: Any) -> None:
        self.set(field, EnumValue(value))

    def set_json(self, field: Field, value: Any) -> None:
        self.set(field, JSONValue(value))

    def set_uuid(self, field: Field, value: Any) -> None:
        self.set(field, UUIDValue(value))

    def rows(self) -> List[RowValue]:
        return [RowValue(*row) for row in self.row_values]


def call_mapper(mapper: Callable[[Any], T], target: Any) -> T:
    """
    Run a caller-supplied mapper, turning its failure signal into a build error.

    A mapper aborts by raising MapperError (or any SQLBuildError); that is
    re-raised as a MapperError chained to the original. Anything else is a
    defect in the mapper and propagates untouched.
    """
    try:
        return mapper(target)
    except MapperError:
        raise
    except SQLBuildError as exc:
        raise MapperError(str(exc)) from exc
