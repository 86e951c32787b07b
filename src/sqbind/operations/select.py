"""
SELECT queries.

Example:
    >>> a = Actor("a")
    >>> q = select(a.actor_id).from_(a).where(a.first_name.eq("bob")).limit(10)
    >>> to_sql("postgres", q)
    ('SELECT a.actor_id FROM actor AS a WHERE a.first_name = $1 LIMIT $2', ['bob', 10])
"""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, List, Optional, Sequence, Tuple

from sqbind.core.dialect import POSTGRES, SQLSERVER
from sqbind.core.protocol import Args, Field, Params, Predicate, Query, Table
from sqbind.core.writer import write_fields, write_value, writef
from sqbind.errors import DialectNotSupportedError, SQLBuildError, wrap
from sqbind.expressions.cte import CTE, write_ctes
from sqbind.expressions.expression import Comparable, append_predicates, expr
from sqbind.expressions.fields import AnyField, TableStruct
from sqbind.expressions.joins import (
    JoinTable,
    cross_join,
    custom_join,
    full_join,
    join,
    join_using,
    left_join,
    right_join,
    write_join_tables,
)
from sqbind.expressions.window import NamedWindow, NamedWindows
from sqbind.operations.clauses import apply_policies, join_policy_tables, write_predicate, write_table


def write_top(
    dialect: str,
    buf: StringIO,
    args: Args,
    params: Params,
    top: Any,
    top_percent: Any,
    with_ties: bool,
) -> None:
    """Write SQL Server's ``TOP (n) [PERCENT] [WITH TIES]``."""
    if top is not None:
        buf.write("TOP (")
        try:
            write_value(dialect, buf, args, params, top)
        except SQLBuildError as exc:
            raise wrap("TOP", exc) from exc
        buf.write(") ")
    elif top_percent is not None:
        buf.write("TOP (")
        try:
            write_value(dialect, buf, args, params, top_percent)
        except SQLBuildError as exc:
            raise wrap("TOP PERCENT", exc) from exc
        buf.write(") PERCENT ")
    if (top is not None or top_percent is not None) and with_ties:
        buf.write("WITH TIES ")


@dataclass(frozen=True)
class SelectQuery(Comparable, Query):
    """An immutable SELECT builder; every method returns a modified copy."""

    dialect: str = ""
    ctes: Tuple[CTE, ...] = ()
    distinct: bool = False
    select_fields: Tuple[Field, ...] = ()
    distinct_on_fields: Tuple[Field, ...] = ()
    limit_top: Any = None
    limit_top_percent: Any = None
    from_table: Optional[Table] = None
    join_tables: Tuple[JoinTable, ...] = ()
    where_predicate: Optional[Predicate] = None
    group_by_fields: Tuple[Field, ...] = ()
    having_predicate: Optional[Predicate] = None
    named_windows: Tuple[NamedWindow, ...] = ()
    order_by_fields: Tuple[Field, ...] = ()
    limit_rows: Any = None
    offset_rows: Any = None
    fetch_next_rows: Any = None
    fetch_with_ties: bool = False
    lock_clause: str = ""
    lock_values: Tuple[Any, ...] = ()
    alias: str = ""
    columns: Tuple[str, ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        if not self.select_fields:
            raise SQLBuildError("SELECT: no fields provided")
        has_top = self.limit_top is not None or self.limit_top_percent is not None

        where = apply_policies(
            dialect,
            self.where_predicate,
            [("FROM", self.from_table)] + join_policy_tables(self.join_tables),
        )

        # WITH
        if self.ctes:
            try:
                write_ctes(dialect, buf, args, params, self.ctes)
            except SQLBuildError as exc:
                raise wrap("WITH", exc) from exc

        # SELECT
        buf.write("SELECT ")
        if has_top:
            if dialect != SQLSERVER:
                raise DialectNotSupportedError("SELECT TOP n", dialect)
            if not self.order_by_fields:
                raise SQLBuildError("sqlserver does not support TOP without ORDER BY")
            write_top(
                dialect, buf, args, params, self.limit_top, self.limit_top_percent, self.fetch_with_ties
            )
        if self.distinct_on_fields:
            if dialect != POSTGRES:
                raise DialectNotSupportedError("SELECT DISTINCT ON", dialect)
            if self.distinct:
                raise SQLBuildError("postgres SELECT cannot be DISTINCT and DISTINCT ON at the same time")
            buf.write("DISTINCT ON (")
            try:
                write_fields(dialect, buf, args, params, self.distinct_on_fields, False)
            except SQLBuildError as exc:
                raise wrap("DISTINCT ON", exc) from exc
            buf.write(") ")
        elif self.distinct:
            buf.write("DISTINCT ")
        try:
            write_fields(dialect, buf, args, params, self.select_fields, True)
        except SQLBuildError as exc:
            raise wrap("SELECT", exc) from exc

        # FROM
        if self.from_table is not None:
            buf.write(" FROM ")
            write_table(dialect, buf, args, params, "FROM", self.from_table, require_subquery_alias=True)

        # JOIN
        if self.join_tables:
            if self.from_table is None:
                raise SQLBuildError("can't JOIN without a FROM table")
            buf.write(" ")
            try:
                write_join_tables(dialect, buf, args, params, self.join_tables)
            except SQLBuildError as exc:
                raise wrap("JOIN", exc) from exc

        # WHERE
        if where is not None:
            buf.write(" WHERE ")
            write_predicate(dialect, buf, args, params, "WHERE", where)

        # GROUP BY
        if self.group_by_fields:
            buf.write(" GROUP BY ")
            try:
                write_fields(dialect, buf, args, params, self.group_by_fields, False)
            except SQLBuildError as exc:
                raise wrap("GROUP BY", exc) from exc

        # HAVING
        if self.having_predicate is not None:
            buf.write(" HAVING ")
            write_predicate(dialect, buf, args, params, "HAVING", self.having_predicate)

        # WINDOW
        if self.named_windows:
            buf.write(" WINDOW ")
            try:
                NamedWindows(self.named_windows).write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap("WINDOW", exc) from exc

        # ORDER BY
        if self.order_by_fields:
            buf.write(" ORDER BY ")
            try:
                write_fields(dialect, buf, args, params, self.order_by_fields, False)
            except SQLBuildError as exc:
                raise wrap("ORDER BY", exc) from exc

        # LIMIT
        if self.limit_rows is not None:
            if dialect == SQLSERVER:
                raise DialectNotSupportedError("LIMIT", dialect)
            buf.write(" LIMIT ")
            try:
                write_value(dialect, buf, args, params, self.limit_rows)
            except SQLBuildError as exc:
                raise wrap("LIMIT", exc) from exc

        # OFFSET
        if self.offset_rows is not None:
            if dialect == SQLSERVER:
                if not self.order_by_fields:
                    raise SQLBuildError("sqlserver does not support OFFSET without ORDER BY")
                if has_top:
                    raise SQLBuildError("sqlserver does not support OFFSET with TOP")
            buf.write(" OFFSET ")
            try:
                write_value(dialect, buf, args, params, self.offset_rows)
            except SQLBuildError as exc:
                raise wrap("OFFSET", exc) from exc
            if dialect == SQLSERVER:
                buf.write(" ROWS")

        # FETCH NEXT
        if self.fetch_next_rows is not None:
            if dialect == POSTGRES:
                if self.limit_rows is not None:
                    raise SQLBuildError("postgres does not allow FETCH NEXT with LIMIT")
            elif dialect == SQLSERVER:
                if has_top:
                    raise SQLBuildError("sqlserver does not allow FETCH NEXT with TOP")
            else:
                raise DialectNotSupportedError("FETCH NEXT", dialect)
            buf.write(" FETCH NEXT ")
            try:
                write_value(dialect, buf, args, params, self.fetch_next_rows)
            except SQLBuildError as exc:
                raise wrap("FETCH NEXT", exc) from exc
            buf.write(" ROWS ")
            if self.fetch_with_ties:
                if dialect == SQLSERVER:
                    raise SQLBuildError("sqlserver WITH TIES only works with TOP")
                if not self.order_by_fields:
                    raise SQLBuildError(f"{dialect} WITH TIES cannot be used without ORDER BY")
                buf.write("WITH TIES")
            else:
                buf.write("ONLY")

        # FOR UPDATE | FOR SHARE
        if self.lock_clause:
            buf.write(" ")
            writef(dialect, buf, args, params, self.lock_clause, self.lock_values)

    def select(self, *fields: Field) -> "SelectQuery":
        return replace(self, select_fields=self.select_fields + fields)

    def select_distinct(self, *fields: Field) -> "SelectQuery":
        return replace(self, select_fields=fields, distinct=True)

    def select_one(self) -> "SelectQuery":
        return replace(self, select_fields=(expr("1"),))

    def distinct_on(self, *fields: Field) -> "SelectQuery":
        """Postgres only."""
        return replace(self, distinct_on_fields=fields)

    def top(self, limit: Any) -> "SelectQuery":
        """SQL Server only."""
        return replace(self, limit_top=limit)

    def top_percent(self, percent_limit: Any) -> "SelectQuery":
        """SQL Server only."""
        return replace(self, limit_top_percent=percent_limit)

    def from_(self, table: Table) -> "SelectQuery":
        return replace(self, from_table=table)

    def join(self, table: Table, *predicates: Predicate) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (join(table, *predicates),))

    def left_join(self, table: Table, *predicates: Predicate) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (left_join(table, *predicates),))

    def right_join(self, table: Table, *predicates: Predicate) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (right_join(table, *predicates),))

    def full_join(self, table: Table, *predicates: Predicate) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (full_join(table, *predicates),))

    def cross_join(self, table: Table) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (cross_join(table),))

    def custom_join(self, join_operator: str, table: Table, *predicates: Predicate) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (custom_join(join_operator, table, *predicates),))

    def join_using(self, table: Table, *fields: Field) -> "SelectQuery":
        return replace(self, join_tables=self.join_tables + (join_using(table, *fields),))

    def where(self, *predicates: Predicate) -> "SelectQuery":
        return replace(self, where_predicate=append_predicates(self.where_predicate, predicates))

    def group_by(self, *fields: Field) -> "SelectQuery":
        return replace(self, group_by_fields=self.group_by_fields + fields)

    def having(self, *predicates: Predicate) -> "SelectQuery":
        return replace(self, having_predicate=append_predicates(self.having_predicate, predicates))

    def window(self, *windows: NamedWindow) -> "SelectQuery":
        return replace(self, named_windows=self.named_windows + windows)

    def order_by(self, *fields: Field) -> "SelectQuery":
        return replace(self, order_by_fields=self.order_by_fields + fields)

    def limit(self, limit: Any) -> "SelectQuery":
        return replace(self, limit_rows=limit)

    def offset(self, offset: Any) -> "SelectQuery":
        return replace(self, offset_rows=offset)

    def fetch_next(self, n: Any) -> "SelectQuery":
        """Postgres and SQL Server only."""
        return replace(self, fetch_next_rows=n)

    def with_ties(self) -> "SelectQuery":
        return replace(self, fetch_with_ties=True)

    def lock_rows(self, lock_clause: str, *lock_values: Any) -> "SelectQuery":
        """Append a locking clause such as ``FOR UPDATE SKIP LOCKED``."""
        return replace(self, lock_clause=lock_clause, lock_values=lock_values)

    def as_(self, alias: str, *columns: str) -> "SelectQuery":
        return replace(self, alias=alias, columns=columns)

    def field(self, name: str) -> AnyField:
        """Return a column qualified by the query's alias."""
        return AnyField(name=name, table=TableStruct(self.alias))

    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple[Query, bool]:
        if not self.select_fields:
            return replace(self, select_fields=tuple(fields)), True
        return self, False

    def get_fetchable_fields(self) -> List[Field]:
        return list(self.select_fields)

    def get_dialect(self) -> str:
        return self.dialect

    def set_dialect(self, dialect: str) -> "SelectQuery":
        return replace(self, dialect=dialect)

    def get_alias(self) -> str:
        return self.alias

    def get_columns(self) -> List[str]:
        return list(self.columns)


def select(*fields: Field) -> SelectQuery:
    return SelectQuery(select_fields=fields)


def select_distinct(*fields: Field) -> SelectQuery:
    return SelectQuery(select_fields=fields, distinct=True)


def select_one() -> SelectQuery:
    return SelectQuery(select_fields=(expr("1"),))


def from_(table: Table) -> SelectQuery:
    return SelectQuery(from_table=table)
