"""JOIN clauses."""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Optional, Sequence, Tuple

from sqbind.core.dialect import SQLITE
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import Args, Field, Params, Predicate, Query, Table, get_alias
from sqbind.core.writer import write_fields_with_prefix
from sqbind.errors import DialectNotSupportedError, SQLBuildError, wrap
from sqbind.expressions.expression import VariadicPredicate, and_

JOIN_INNER = "JOIN"
JOIN_LEFT = "LEFT JOIN"
JOIN_RIGHT = "RIGHT JOIN"
JOIN_FULL = "FULL JOIN"
JOIN_CROSS = "CROSS JOIN"

_OUTER_OR_INNER = (JOIN_INNER, JOIN_LEFT, JOIN_RIGHT, JOIN_FULL)


def quote_table_columns(dialect: str, table: Table) -> str:
    """Return `` (col1, col2)`` for tables that declare column names."""
    getter = getattr(table, "get_columns", None)
    columns = getter() if getter is not None else None
    if not columns:
        return ""
    return " (" + ", ".join(quote_identifier(dialect, column) for column in columns) + ")"


@dataclass(frozen=True)
class JoinTable:
    """``<operator> table [AS alias] [ON predicate | USING (fields)]``."""

    join_operator: str
    table: Optional[Table]
    on_predicate: Optional[Predicate] = None
    using_fields: Tuple[Field, ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        operator = self.join_operator or JOIN_INNER
        predicate = self.on_predicate
        if isinstance(predicate, VariadicPredicate) and not predicate.predicates:
            predicate = None
        if predicate is None and not self.using_fields and operator in _OUTER_OR_INNER and dialect != SQLITE:
            raise SQLBuildError(f"{operator} requires at least one predicate specified")
        if dialect == SQLITE and operator in (JOIN_RIGHT, JOIN_FULL):
            raise DialectNotSupportedError(operator, dialect)

        buf.write(operator + " ")
        if self.table is None:
            raise SQLBuildError("joining on a nil table")
        is_query = isinstance(self.table, Query)
        if is_query:
            buf.write("(")
        self.table.write_sql(dialect, buf, args, params)
        if is_query:
            buf.write(")")

        alias = get_alias(self.table)
        if alias:
            buf.write(" AS " + quote_identifier(dialect, alias) + quote_table_columns(dialect, self.table))
        elif is_query and dialect != SQLITE:
            raise SQLBuildError(f"{dialect} {operator} subquery must have alias")

        if isinstance(predicate, VariadicPredicate):
            buf.write(" ON ")
            replace(predicate, toplevel=True).write_sql(dialect, buf, args, params)
        elif predicate is not None:
            buf.write(" ON ")
            predicate.write_sql(dialect, buf, args, params)
        elif self.using_fields:
            buf.write(" USING (")
            write_fields_with_prefix(dialect, buf, args, params, self.using_fields, "", False)
            buf.write(")")


def custom_join(join_operator: str, table: Table, *predicates: Predicate) -> JoinTable:
    if not predicates:
        return JoinTable(join_operator, table)
    if len(predicates) == 1:
        return JoinTable(join_operator, table, predicates[0])
    return JoinTable(join_operator, table, and_(*predicates))


def join(table: Table, *predicates: Predicate) -> JoinTable:
    return custom_join(JOIN_INNER, table, *predicates)


def left_join(table: Table, *predicates: Predicate) -> JoinTable:
    return custom_join(JOIN_LEFT, table, *predicates)


def right_join(table: Table, *predicates: Predicate) -> JoinTable:
    return custom_join(JOIN_RIGHT, table, *predicates)


def full_join(table: Table, *predicates: Predicate) -> JoinTable:
    return custom_join(JOIN_FULL, table, *predicates)


def cross_join(table: Table) -> JoinTable:
    return custom_join(JOIN_CROSS, table)


def join_using(table: Table, *fields: Field) -> JoinTable:
    return JoinTable(JOIN_INNER, table, using_fields=fields)


def write_join_tables(
    dialect: str, buf: StringIO, args: Args, params: Params, join_tables: Sequence[JoinTable]
) -> None:
    for i, join_table in enumerate(join_tables):
        if i > 0:
            buf.write(" ")
        try:
            join_table.write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap(f"join #{i + 1}", exc) from exc
