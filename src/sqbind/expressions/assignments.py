"""Assignments and field lists used by INSERT, UPDATE and SELECT."""

from dataclasses import dataclass
from io import StringIO
from typing import Any, Sequence

from sqbind.core.dialect import MYSQL
from sqbind.core.protocol import Args, Assignment, Field, Params, Query, SQLWriter, with_prefix
from sqbind.core.writer import write_fields, write_value
from sqbind.errors import SQLBuildError, wrap
from sqbind.expressions.expression import expr


@dataclass(frozen=True)
class FieldAssignment(Assignment):
    """``field = value``."""

    field: Field
    value: Any

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        if self.field is None:
            raise SQLBuildError("field is nil")
        # MySQL multi-table updates need the qualified name
        if dialect == MYSQL:
            self.field.write_sql(dialect, buf, args, params)
        else:
            with_prefix(self.field, "").write_sql(dialect, buf, args, params)
        buf.write(" = ")
        is_query = isinstance(self.value, Query)
        if is_query:
            buf.write("(")
        write_value(dialect, buf, args, params, self.value)
        if is_query:
            buf.write(")")


def set_(field: Field, value: Any) -> Assignment:
    """Assign ``value`` to ``field``."""
    return FieldAssignment(field, value)


def setf(field: Field, format: str, *values: Any) -> Assignment:
    """Assign a template expression to ``field``."""
    return FieldAssignment(field, expr(format, *values))


class Assignments(SQLWriter):
    """A list of assignments such as ``x = 1, y = 2``."""

    def __init__(self, assignments: Sequence[Assignment] = ()):
        self.assignments = list(assignments)

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        for i, assignment in enumerate(self.assignments):
            if assignment is None:
                raise SQLBuildError(f"assignment #{i + 1} is nil")
            if i > 0:
                buf.write(", ")
            try:
                assignment.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap(f"assignment #{i + 1}", exc) from exc

    def __len__(self) -> int:
        return len(self.assignments)


class Fields(SQLWriter):
    """A list of fields such as ``tbl.a, tbl.b``; sub-queries are parenthesised."""

    def __init__(self, fields: Sequence[Field] = ()):
        self.fields = list(fields)

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        write_fields(dialect, buf, args, params, self.fields, False)

    def __len__(self) -> int:
        return len(self.fields)
