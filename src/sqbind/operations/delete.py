"""DELETE queries."""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, List, Optional, Sequence, Tuple

from sqbind.core.dialect import MYSQL, POSTGRES, SQLITE, SQLSERVER
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import Args, Field, Params, Predicate, Query, Table, get_alias
from sqbind.core.writer import write_fields, write_fields_with_prefix, write_value
from sqbind.errors import SQLBuildError, wrap
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
from sqbind.operations.clauses import apply_policies, join_policy_tables, write_predicate


@dataclass(frozen=True)
class DeleteQuery(Query):
    """
    An immutable DELETE builder.

    The joined form is ``DELETE FROM t USING u JOIN v`` on Postgres and
    ``DELETE t FROM u JOIN v`` on MySQL and SQL Server.
    """

    dialect: str = ""
    ctes: Tuple[CTE, ...] = ()
    delete_table: Optional[Table] = None
    delete_tables: Tuple[Table, ...] = ()
    using_table: Optional[Table] = None
    join_tables: Tuple[JoinTable, ...] = ()
    where_predicate: Optional[Predicate] = None
    order_by_fields: Tuple[Field, ...] = ()
    limit_rows: Any = None
    returning_fields: Tuple[Field, ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        where = apply_policies(
            dialect,
            self.where_predicate,
            [("DELETE FROM", self.delete_table), ("USING", self.using_table)]
            + join_policy_tables(self.join_tables),
        )

        # WITH
        if self.ctes:
            try:
                write_ctes(dialect, buf, args, params, self.ctes)
            except SQLBuildError as exc:
                raise wrap("WITH", exc) from exc

        # DELETE FROM
        if dialect in (MYSQL, SQLSERVER) and self.delete_tables:
            buf.write("DELETE ")
            if len(self.delete_tables) > 1 and dialect != MYSQL:
                raise SQLBuildError(f"dialect {dialect!r} does not support multi-table DELETE")
            for i, table in enumerate(self.delete_tables):
                if i > 0:
                    buf.write(", ")
                alias = get_alias(table)
                if alias:
                    buf.write(alias)
                    continue
                try:
                    table.write_sql(dialect, buf, args, params)
                except SQLBuildError as exc:
                    raise wrap(f"table #{i + 1}", exc) from exc
        else:
            buf.write("DELETE FROM ")
            if self.delete_table is None:
                raise SQLBuildError("no table provided to DELETE FROM")
            try:
                self.delete_table.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap("DELETE FROM", exc) from exc
            if dialect != SQLSERVER:
                alias = get_alias(self.delete_table)
                if alias:
                    buf.write(" AS " + quote_identifier(dialect, alias))

        if (self.using_table is not None or self.join_tables) and dialect not in (POSTGRES, MYSQL, SQLSERVER):
            raise SQLBuildError(f"{dialect} DELETE does not support JOIN")

        # OUTPUT
        if self.returning_fields and dialect == SQLSERVER:
            buf.write(" OUTPUT ")
            write_fields_with_prefix(dialect, buf, args, params, self.returning_fields, "DELETED", True)

        # USING/FROM
        if self.using_table is not None:
            clause = "USING" if dialect == POSTGRES else "FROM"
            buf.write(f" {clause} ")
            try:
                self.using_table.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap(clause, exc) from exc
            alias = get_alias(self.using_table)
            if alias:
                buf.write(" AS " + quote_identifier(dialect, alias))

        # JOIN
        if self.join_tables:
            if self.using_table is None:
                raise SQLBuildError(f"{dialect} can't JOIN without a USING/FROM table")
            buf.write(" ")
            try:
                write_join_tables(dialect, buf, args, params, self.join_tables)
            except SQLBuildError as exc:
                raise wrap("JOIN", exc) from exc

        # WHERE
        if where is not None:
            buf.write(" WHERE ")
            write_predicate(dialect, buf, args, params, "WHERE", where)

        # ORDER BY
        if self.order_by_fields:
            if dialect != MYSQL:
                raise SQLBuildError(f"{dialect} DELETE does not support ORDER BY")
            buf.write(" ORDER BY ")
            try:
                write_fields(dialect, buf, args, params, self.order_by_fields, False)
            except SQLBuildError as exc:
                raise wrap("ORDER BY", exc) from exc

        # LIMIT
        if self.limit_rows is not None:
            if dialect != MYSQL:
                raise SQLBuildError(f"{dialect} DELETE does not support LIMIT")
            buf.write(" LIMIT ")
            try:
                write_value(dialect, buf, args, params, self.limit_rows)
            except SQLBuildError as exc:
                raise wrap("LIMIT", exc) from exc

        # RETURNING
        if self.returning_fields and dialect != SQLSERVER:
            if dialect not in (POSTGRES, SQLITE, MYSQL):
                raise SQLBuildError(f"{dialect} DELETE does not support RETURNING")
            buf.write(" RETURNING ")
            try:
                write_fields(dialect, buf, args, params, self.returning_fields, True)
            except SQLBuildError as exc:
                raise wrap("RETURNING", exc) from exc

    def using(self, table: Table) -> "DeleteQuery":
        """Postgres only; MySQL and SQL Server use ``from_``."""
        return replace(self, using_table=table)

    def from_(self, table: Table) -> "DeleteQuery":
        """The FROM table of a MySQL or SQL Server ``DELETE t FROM ...``."""
        return replace(self, using_table=table)

    def join(self, table: Table, *predicates: Predicate) -> "DeleteQuery":
        return replace(self, join_tables=self.join_tables + (join(table, *predicates),))

    def left_join(self, table: Table, *predicates: Predicate) -> "DeleteQuery":
        return replace(self, join_tables=self.join_tables + (left_join(table, *predicates),))

    def full_join(self, table: Table, *predicates: Predicate) -> "DeleteQuery":
        return replace(self, join_tables=self.join_tables + (full_join(table, *predicates),))

    def cross_join(self, table: Table) -> "DeleteQuery":
        return replace(self, join_tables=self.join_tables + (cross_join(table),))

    def custom_join(self, join_operator: str, table: Table, *predicates: Predicate) -> "DeleteQuery":
        return replace(self, join_tables=self.join_tables + (custom_join(join_operator, table, *predicates),))

    def join_using(self, table: Table, *fields: Field) -> "DeleteQuery":
        return replace(self, join_tables=self.join_tables + (join_using(table, *fields),))

    def where(self, *predicates: Predicate) -> "DeleteQuery":
        return replace(self, where_predicate=append_predicates(self.where_predicate, predicates))

    def order_by(self, *fields: Field) -> "DeleteQuery":
        """MySQL only."""
        return replace(self, order_by_fields=self.order_by_fields + fields)

    def limit(self, limit: Any) -> "DeleteQuery":
        """MySQL only."""
        return replace(self, limit_rows=limit)

    def returning(self, *fields: Field) -> "DeleteQuery":
        return replace(self, returning_fields=self.returning_fields + fields)

    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple[Query, bool]:
        if self.dialect in (POSTGRES, SQLITE):
            return replace(self, returning_fields=tuple(fields)), True
        return self, False

    def get_fetchable_fields(self) -> List[Field]:
        if self.dialect in (POSTGRES, SQLITE):
            return list(self.returning_fields)
        return []

    def get_dialect(self) -> str:
        return self.dialect

    def set_dialect(self, dialect: str) -> "DeleteQuery":
        return replace(self, dialect=dialect)


def delete_from(table: Table) -> DeleteQuery:
    return DeleteQuery(delete_table=table)


def delete(*tables: Table) -> DeleteQuery:
    """``DELETE t1, t2 FROM ...``. MySQL allows several tables, SQL Server one."""
    return DeleteQuery(delete_tables=tables)
