"""UPDATE queries."""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqbind.core.dialect import MYSQL, POSTGRES, SQLITE, SQLSERVER
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import Args, Assignment, Field, Params, Predicate, Query, Table, get_alias
from sqbind.core.writer import write_fields, write_fields_with_prefix, write_value
from sqbind.errors import SQLBuildError, wrap
from sqbind.expressions.assignments import Assignments
from sqbind.expressions.cte import CTE, write_ctes
from sqbind.expressions.expression import append_predicates
from sqbind.expressions.joins import (
    JoinTable,
    cross_join,
    custom_join,
    full_join,
    join,
    join_using,
    left_join,
    write_join_tables,
)
from sqbind.operations.clauses import apply_policies, join_policy_tables, write_predicate, write_table
from sqbind.operations.column import Column, call_mapper


@dataclass(frozen=True)
class UpdateQuery(Query):
    """
    An immutable UPDATE builder.

    MySQL writes joins before SET and has no FROM; the other dialects write
    ``UPDATE t SET ... FROM u JOIN v``.
    """

    dialect: str = ""
    column_mapper: Optional[Callable[[Column], Any]] = None
    ctes: Tuple[CTE, ...] = ()
    update_table: Optional[Table] = None
    from_table: Optional[Table] = None
    join_tables: Tuple[JoinTable, ...] = ()
    assignments: Tuple[Assignment, ...] = ()
    where_predicate: Optional[Predicate] = None
    order_by_fields: Tuple[Field, ...] = ()
    limit_rows: Any = None
    returning_fields: Tuple[Field, ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        assignments = self.assignments
        if self.column_mapper is not None:
            col = Column(self.dialect, is_update=True)
            call_mapper(self.column_mapper, col)
            assignments = tuple(col.assignments)

        where = apply_policies(
            dialect,
            self.where_predicate,
            [("UPDATE", self.update_table), ("FROM", self.from_table)]
            + join_policy_tables(self.join_tables),
        )

        # WITH
        if self.ctes:
            try:
                write_ctes(dialect, buf, args, params, self.ctes)
            except SQLBuildError as exc:
                raise wrap("WITH", exc) from exc

        # UPDATE
        buf.write("UPDATE ")
        if self.update_table is None:
            raise SQLBuildError("no table provided to UPDATE")
        try:
            self.update_table.write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap("UPDATE", exc) from exc
        if dialect != SQLSERVER:
            alias = get_alias(self.update_table)
            if alias:
                buf.write(" AS " + quote_identifier(dialect, alias))
        if not assignments:
            raise SQLBuildError("no fields to update")

        # SET (not mysql)
        if dialect != MYSQL:
            buf.write(" SET ")
            self._write_assignments(dialect, buf, args, params, assignments)

        # OUTPUT
        if self.returning_fields and dialect == SQLSERVER:
            buf.write(" OUTPUT ")
            write_fields_with_prefix(dialect, buf, args, params, self.returning_fields, "INSERTED", True)

        # FROM
        if self.from_table is not None:
            if dialect == MYSQL:
                raise SQLBuildError("mysql UPDATE does not support FROM")
            buf.write(" FROM ")
            write_table(dialect, buf, args, params, "FROM", self.from_table)

        # JOIN
        if self.join_tables:
            if self.from_table is None and dialect != MYSQL:
                raise SQLBuildError(f"{dialect} can't JOIN without a FROM table")
            buf.write(" ")
            try:
                write_join_tables(dialect, buf, args, params, self.join_tables)
            except SQLBuildError as exc:
                raise wrap("JOIN", exc) from exc

        # SET (mysql)
        if dialect == MYSQL:
            buf.write(" SET ")
            self._write_assignments(dialect, buf, args, params, assignments)

        # WHERE
        if where is not None:
            buf.write(" WHERE ")
            write_predicate(dialect, buf, args, params, "WHERE", where)

        # ORDER BY
        if self.order_by_fields:
            if dialect != MYSQL:
                raise SQLBuildError(f"{dialect} UPDATE does not support ORDER BY")
            buf.write(" ORDER BY ")
            try:
                write_fields(dialect, buf, args, params, self.order_by_fields, False)
            except SQLBuildError as exc:
                raise wrap("ORDER BY", exc) from exc

        # LIMIT
        if self.limit_rows is not None:
            if dialect != MYSQL:
                raise SQLBuildError(f"{dialect} UPDATE does not support LIMIT")
            buf.write(" LIMIT ")
            try:
                write_value(dialect, buf, args, params, self.limit_rows)
            except SQLBuildError as exc:
                raise wrap("LIMIT", exc) from exc

        # RETURNING
        if self.returning_fields and dialect != SQLSERVER:
            if dialect not in (POSTGRES, SQLITE):
                raise SQLBuildError(f"{dialect} UPDATE does not support RETURNING")
            buf.write(" RETURNING ")
            try:
                write_fields(dialect, buf, args, params, self.returning_fields, True)
            except SQLBuildError as exc:
                raise wrap("RETURNING", exc) from exc

    @staticmethod
    def _write_assignments(
        dialect: str, buf: StringIO, args: Args, params: Params, assignments: Sequence[Assignment]
    ) -> None:
        try:
            Assignments(assignments).write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap("SET", exc) from exc

    def set(self, *assignments: Assignment) -> "UpdateQuery":
        return replace(self, assignments=self.assignments + assignments)

    def set_func(self, mapper: Callable[[Column], Any]) -> "UpdateQuery":
        return replace(self, column_mapper=mapper)

    def from_(self, table: Table) -> "UpdateQuery":
        return replace(self, from_table=table)

    def join(self, table: Table, *predicates: Predicate) -> "UpdateQuery":
        return replace(self, join_tables=self.join_tables + (join(table, *predicates),))

    def left_join(self, table: Table, *predicates: Predicate) -> "UpdateQuery":
        return replace(self, join_tables=self.join_tables + (left_join(table, *predicates),))

    def full_join(self, table: Table, *predicates: Predicate) -> "UpdateQuery":
        return replace(self, join_tables=self.join_tables + (full_join(table, *predicates),))

    def cross_join(self, table: Table) -> "UpdateQuery":
        return replace(self, join_tables=self.join_tables + (cross_join(table),))

    def custom_join(self, join_operator: str, table: Table, *predicates: Predicate) -> "UpdateQuery":
        return replace(self, join_tables=self.join_tables + (custom_join(join_operator, table, *predicates),))

    def join_using(self, table: Table, *fields: Field) -> "UpdateQuery":
        return replace(self, join_tables=self.join_tables + (join_using(table, *fields),))

    def where(self, *predicates: Predicate) -> "UpdateQuery":
        return replace(self, where_predicate=append_predicates(self.where_predicate, predicates))

    def order_by(self, *fields: Field) -> "UpdateQuery":
        """MySQL only."""
        return replace(self, order_by_fields=self.order_by_fields + fields)

    def limit(self, limit: Any) -> "UpdateQuery":
        """MySQL only."""
        return replace(self, limit_rows=limit)

    def returning(self, *fields: Field) -> "UpdateQuery":
        return replace(self, returning_fields=self.returning_fields + fields)

    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple[Query, bool]:
        if self.dialect in (POSTGRES, SQLITE) and not self.returning_fields:
            return replace(self, returning_fields=tuple(fields)), True
        return self, False

    def get_fetchable_fields(self) -> List[Field]:
        if self.dialect in (POSTGRES, SQLITE):
            return list(self.returning_fields)
        return []

    def get_dialect(self) -> str:
        return self.dialect

    def set_dialect(self, dialect: str) -> "UpdateQuery":
        return replace(self, dialect=dialect)


def update(table: Table) -> UpdateQuery:
    return UpdateQuery(update_table=table)
