"""
INSERT queries, including upserts.

ON CONFLICT is written for SQLite and Postgres, ON DUPLICATE KEY UPDATE for
MySQL. SQL Server gets no conflict clause.
"""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqbind.core.dialect import MYSQL, POSTGRES, SQLITE, SQLSERVER
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import Args, Assignment, Field, Params, Predicate, Query, Table, get_alias, with_prefix
from sqbind.core.writer import write_fields, write_fields_with_prefix, write_value
from sqbind.errors import DialectNotSupportedError, SQLBuildError, wrap
from sqbind.expressions.assignments import Assignments
from sqbind.expressions.cte import CTE, write_ctes
from sqbind.expressions.expression import RowValue, RowValues, append_predicates
from sqbind.operations.clauses import write_predicate
from sqbind.operations.column import Column, call_mapper


@dataclass(frozen=True)
class ConflictClause:
    """ON CONFLICT ... DO NOTHING / DO UPDATE, or ON DUPLICATE KEY UPDATE."""

    constraint_name: str = ""
    fields: Tuple[Field, ...] = ()
    predicate: Optional[Predicate] = None
    do_nothing: bool = False
    resolution: Tuple[Assignment, ...] = ()
    resolution_predicate: Optional[Predicate] = None

    def is_empty(self) -> bool:
        return not (self.constraint_name or self.fields or self.resolution or self.do_nothing)

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        if self.is_empty() or dialect not in (SQLITE, POSTGRES, MYSQL):
            return
        if dialect == MYSQL:
            if self.resolution:
                buf.write(" ON DUPLICATE KEY UPDATE ")
                try:
                    Assignments(self.resolution).write_sql(dialect, buf, args, params)
                except SQLBuildError as exc:
                    raise wrap("ON DUPLICATE KEY UPDATE", exc) from exc
            return

        buf.write(" ON CONFLICT")
        if self.constraint_name:
            buf.write(" ON CONSTRAINT " + quote_identifier(dialect, self.constraint_name))
        elif self.fields:
            buf.write(" (")
            try:
                write_fields_with_prefix(dialect, buf, args, params, self.fields, "", False)
            except SQLBuildError as exc:
                raise wrap("ON CONFLICT", exc) from exc
            buf.write(")")
            if self.predicate is not None:
                buf.write(" WHERE ")
                write_predicate(dialect, buf, args, params, "ON CONFLICT ... WHERE", self.predicate)
        if not self.resolution or self.do_nothing:
            buf.write(" DO NOTHING")
            return
        buf.write(" DO UPDATE SET ")
        try:
            Assignments(self.resolution).write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap("DO UPDATE SET", exc) from exc
        if self.resolution_predicate is not None:
            buf.write(" WHERE ")
            write_predicate(
                dialect, buf, args, params, "DO UPDATE SET ... WHERE", self.resolution_predicate
            )


@dataclass(frozen=True)
class InsertQuery(Query):
    """An immutable INSERT builder."""

    dialect: str = ""
    column_mapper: Optional[Callable[[Column], Any]] = None
    ctes: Tuple[CTE, ...] = ()
    insert_ignore: bool = False
    insert_table: Optional[Table] = None
    insert_columns: Tuple[Field, ...] = ()
    row_values: Tuple[RowValue, ...] = ()
    row_alias: str = ""
    select_query: Optional[Query] = None
    conflict: ConflictClause = ConflictClause()
    returning_fields: Tuple[Field, ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        insert_columns = self.insert_columns
        row_values = self.row_values
        if self.column_mapper is not None:
            col = Column(self.dialect, is_update=False)
            call_mapper(self.column_mapper, col)
            insert_columns, row_values = tuple(col.insert_columns), tuple(col.rows())

        # WITH
        if self.ctes:
            if dialect == MYSQL:
                raise SQLBuildError("mysql does not support CTEs with INSERT")
            try:
                write_ctes(dialect, buf, args, params, self.ctes)
            except SQLBuildError as exc:
                raise wrap("WITH", exc) from exc

        # INSERT INTO
        if self.insert_ignore:
            if dialect != MYSQL:
                raise DialectNotSupportedError("INSERT IGNORE", dialect)
            buf.write("INSERT IGNORE INTO ")
        else:
            buf.write("INSERT INTO ")
        if self.insert_table is None:
            raise SQLBuildError("no table provided to INSERT")
        try:
            self.insert_table.write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap("INSERT INTO", exc) from exc
        alias = get_alias(self.insert_table)
        if alias:
            if dialect in (MYSQL, SQLSERVER):
                raise SQLBuildError(f"{dialect} does not allow an alias for the INSERT table")
            buf.write(" AS " + quote_identifier(dialect, alias))

        # Columns
        if insert_columns:
            buf.write(" (")
            try:
                write_fields_with_prefix(dialect, buf, args, params, insert_columns, "", False)
            except SQLBuildError as exc:
                raise wrap("INSERT INTO", exc) from exc
            buf.write(")")

        # OUTPUT
        if self.returning_fields and dialect == SQLSERVER:
            buf.write(" OUTPUT ")
            for i, item in enumerate(self.returning_fields):
                if i > 0:
                    buf.write(", ")
                write_value(dialect, buf, args, params, with_prefix(item, "INSERTED"))
                item_alias = get_alias(item)
                if item_alias:
                    buf.write(" AS " + quote_identifier(dialect, item_alias))

        # VALUES
        if row_values:
            buf.write(" VALUES ")
            try:
                RowValues(*row_values).write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap("VALUES", exc) from exc
            if self.row_alias:
                if dialect != MYSQL:
                    raise DialectNotSupportedError("row aliases", dialect)
                buf.write(" AS " + self.row_alias)
        elif self.select_query is not None:
            buf.write(" ")
            try:
                self.select_query.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap("SELECT", exc) from exc
        else:
            raise SQLBuildError("InsertQuery missing RowValues and SelectQuery (either one is required)")

        # ON CONFLICT
        self.conflict.write_sql(dialect, buf, args, params)

        # RETURNING
        if self.returning_fields and dialect != SQLSERVER:
            if dialect not in (POSTGRES, SQLITE, MYSQL):
                raise SQLBuildError(f"{dialect} INSERT does not support RETURNING")
            buf.write(" RETURNING ")
            try:
                write_fields(dialect, buf, args, params, self.returning_fields, True)
            except SQLBuildError as exc:
                raise wrap("RETURNING", exc) from exc

    def columns(self, *fields: Field) -> "InsertQuery":
        return replace(self, insert_columns=fields)

    def values(self, *values: Any) -> "InsertQuery":
        """Append one row of values."""
        return replace(self, row_values=self.row_values + (RowValue(*values),))

    def column_values(self, mapper: Callable[[Column], Any]) -> "InsertQuery":
        return replace(self, column_mapper=mapper)

    def select(self, query: Query) -> "InsertQuery":
        return replace(self, select_query=query)

    def as_(self, row_alias: str) -> "InsertQuery":
        """MySQL row alias, for use in ON DUPLICATE KEY UPDATE."""
        return replace(self, row_alias=row_alias)

    def on_conflict(self, *fields: Field) -> "InsertConflict":
        return InsertConflict(replace(self, conflict=replace(self.conflict, fields=fields)))

    def on_conflict_on_constraint(self, constraint_name: str) -> "InsertConflict":
        """Postgres only."""
        return InsertConflict(replace(self, conflict=replace(self.conflict, constraint_name=constraint_name)))

    def on_duplicate_key_update(self, *assignments: Assignment) -> "InsertQuery":
        """MySQL only."""
        return replace(self, conflict=replace(self.conflict, resolution=assignments))

    def where(self, *predicates: Predicate) -> "InsertQuery":
        """Add predicates to the DO UPDATE SET ... WHERE clause."""
        predicate = append_predicates(self.conflict.resolution_predicate, predicates)
        return replace(self, conflict=replace(self.conflict, resolution_predicate=predicate))

    def returning(self, *fields: Field) -> "InsertQuery":
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

    def set_dialect(self, dialect: str) -> "InsertQuery":
        return replace(self, dialect=dialect)


class InsertConflict:
    """The ON CONFLICT target of an InsertQuery, waiting for its action."""

    def __init__(self, query: InsertQuery):
        self.query = query

    def where(self, *predicates: Predicate) -> "InsertConflict":
        conflict = self.query.conflict
        conflict = replace(conflict, predicate=append_predicates(conflict.predicate, predicates))
        return InsertConflict(replace(self.query, conflict=conflict))

    def do_nothing(self) -> InsertQuery:
        return replace(self.query, conflict=replace(self.query.conflict, do_nothing=True))

    def do_update_set(self, *assignments: Assignment) -> InsertQuery:
        return replace(self.query, conflict=replace(self.query.conflict, resolution=assignments))


def insert_into(table: Table) -> InsertQuery:
    return InsertQuery(insert_table=table)


def insert_ignore_into(table: Table) -> InsertQuery:
    """MySQL only."""
    return InsertQuery(insert_table=table, insert_ignore=True)
