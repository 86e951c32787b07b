"""
Dialect query builders.

A builder stamps its dialect (and any CTEs given to ``with_``) onto every
query it creates, so the query renders correctly without passing the dialect
to ``to_sql`` again.
"""

from typing import Any, Tuple

from sqbind.core.protocol import Field, Table
from sqbind.expressions.cte import CTE
from sqbind.expressions.expression import CustomQuery, expr
from sqbind.operations.delete import DeleteQuery
from sqbind.operations.insert import InsertQuery
from sqbind.operations.select import SelectQuery
from sqbind.operations.update import UpdateQuery


class QueryBuilder:
    """Base query builder shared by every dialect."""

    name = ""

    def __init__(self, ctes: Tuple[CTE, ...] = ()):
        self.ctes = tuple(ctes)

    def with_(self, *ctes: CTE) -> "QueryBuilder":
        """Return a builder whose queries start with ``WITH ctes``."""
        return type(self)(ctes)

    def queryf(self, format: str, *values: Any) -> CustomQuery:
        return CustomQuery(format, tuple(values), dialect=self.name)

    def select(self, *fields: Field) -> SelectQuery:
        return SelectQuery(dialect=self.name, ctes=self.ctes, select_fields=fields)

    def select_distinct(self, *fields: Field) -> SelectQuery:
        return SelectQuery(dialect=self.name, ctes=self.ctes, select_fields=fields, distinct=True)

    def select_one(self) -> SelectQuery:
        return SelectQuery(dialect=self.name, ctes=self.ctes, select_fields=(expr("1"),))

    def from_(self, table: Table) -> SelectQuery:
        return SelectQuery(dialect=self.name, ctes=self.ctes, from_table=table)

    def insert_into(self, table: Table) -> InsertQuery:
        return InsertQuery(dialect=self.name, ctes=self.ctes, insert_table=table)

    def update(self, table: Table) -> UpdateQuery:
        return UpdateQuery(dialect=self.name, ctes=self.ctes, update_table=table)

    def delete_from(self, table: Table) -> DeleteQuery:
        return DeleteQuery(dialect=self.name, ctes=self.ctes, delete_table=table)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(ctes={len(self.ctes)})"
