"""
Template expressions, raw queries and boolean combinators.

``expr`` wraps a format template and its values so it can be used as a
field, table, predicate or assignment anywhere in a query. ``queryf`` does
the same for a whole statement and may splice fetchable fields in at
``{*}``.
"""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, List, Optional, Sequence, Tuple

from sqbind.core.protocol import (
    Args,
    Assignment,
    Field,
    Params,
    PolicyTable,
    Predicate,
    Query,
    SQLWriter,
    Table,
)
from sqbind.core.writer import RenderState, write_fields, write_value, writef, writef_part
from sqbind.errors import SQLBuildError, wrap


class Comparable:
    """Comparison helpers shared by fields and expressions."""

    def in_(self, value: Any) -> Predicate:
        return in_(self, value)

    def eq(self, value: Any) -> Predicate:
        return cmp("=", self, value)

    def ne(self, value: Any) -> Predicate:
        return cmp("<>", self, value)

    def lt(self, value: Any) -> Predicate:
        return cmp("<", self, value)

    def le(self, value: Any) -> Predicate:
        return cmp("<=", self, value)

    def gt(self, value: Any) -> Predicate:
        return cmp(">", self, value)

    def ge(self, value: Any) -> Predicate:
        return cmp(">=", self, value)


@dataclass(frozen=True)
class Expression(Comparable, Predicate, Table, Assignment):
    """An SQL expression built from a format template."""

    format: str
    values: Tuple[Any, ...] = ()
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        writef(dialect, buf, args, params, self.format, self.values)

    def as_(self, alias: str) -> "Expression":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias


def expr(format: str, *values: Any) -> Expression:
    """
    Create an Expression using ``writef`` syntax.

    Example:
        >>> to_sql("postgres", expr("name = {} AND age > {}", "bob", 30))
        ('name = $1 AND age > $2', ['bob', 30])
    """
    return Expression(format, tuple(values))


def _find_splice(format: str) -> int:
    """Return the index of the first unescaped ``{*}`` in ``format`` or -1."""
    i = 0
    while True:
        i = format.find("{", i)
        if i < 0:
            return -1
        if format.startswith("{{", i):
            i += 2
            continue
        if format.startswith("{*}", i):
            return i
        i += 1


@dataclass(frozen=True)
class CustomQuery(Query):
    """A user-defined query written with ``writef`` syntax.

    ``{*}`` marks where the fetchable fields are written.
    """

    format: str
    values: Tuple[Any, ...] = ()
    dialect: str = ""
    fields: Tuple[Field, ...] = ()
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        split_at = _find_splice(self.format)
        if split_at < 0:
            writef(dialect, buf, args, params, self.format, self.values)
            return
        state = RenderState()
        writef_part(dialect, buf, args, params, self.format[:split_at], self.values, state)
        write_fields(dialect, buf, args, params, self.fields, True)
        writef_part(dialect, buf, args, params, self.format[split_at + 3:], self.values, state)

    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple[Query, bool]:
        # only a template with a {*} marker has somewhere to put the fields
        if _find_splice(self.format) < 0:
            return self, False
        return replace(self, fields=tuple(fields)), True

    def get_fetchable_fields(self) -> List[Field]:
        return list(self.fields)

    def get_dialect(self) -> str:
        return self.dialect

    def set_dialect(self, dialect: str) -> "CustomQuery":
        return replace(self, dialect=dialect)

    def as_(self, alias: str) -> "CustomQuery":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias


def queryf(format: str, *values: Any) -> CustomQuery:
    """Create a CustomQuery using ``writef`` syntax."""
    return CustomQuery(format, tuple(values))


@dataclass(frozen=True)
class VariadicPredicate(Predicate):
    """
    Predicates joined with AND (the default) or OR.

    A top-level predicate is written without surrounding parentheses.
    """

    predicates: Tuple[Optional[Predicate], ...] = ()
    is_disjunction: bool = False
    toplevel: bool = False
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        if not self.predicates:
            raise SQLBuildError("VariadicPredicate empty")

        if len(self.predicates) == 1:
            first = self.predicates[0]
            if first is None:
                raise SQLBuildError("predicate #1 is nil")
            if isinstance(first, VariadicPredicate):
                first = replace(first, toplevel=self.toplevel)
            first.write_sql(dialect, buf, args, params)
            return

        if not self.toplevel:
            buf.write("(")
        for i, predicate in enumerate(self.predicates):
            if i > 0:
                buf.write(" OR " if self.is_disjunction else " AND ")
            if predicate is None:
                raise SQLBuildError(f"predicate #{i + 1} is nil")
            if isinstance(predicate, VariadicPredicate):
                predicate = replace(predicate, toplevel=False)
            try:
                predicate.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap(f"predicate #{i + 1}", exc) from exc
        if not self.toplevel:
            buf.write(")")

    def as_(self, alias: str) -> "VariadicPredicate":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias


def and_(*predicates: Optional[Predicate]) -> VariadicPredicate:
    """Join predicates with AND."""
    return VariadicPredicate(tuple(predicates), is_disjunction=False)


def or_(*predicates: Optional[Predicate]) -> VariadicPredicate:
    """Join predicates with OR."""
    return VariadicPredicate(tuple(predicates), is_disjunction=True)


def cmp(operator: str, x: Any, y: Any) -> Expression:
    """Return an ``x <operator> y`` predicate, parenthesising sub-queries."""
    left = "({})" if isinstance(x, Query) else "{}"
    right = "({})" if isinstance(y, Query) else "{}"
    return expr(f"{left} {operator} {right}", x, y)


def eq(x: Any, y: Any) -> Expression:
    return cmp("=", x, y)


def ne(x: Any, y: Any) -> Expression:
    return cmp("<>", x, y)


def lt(x: Any, y: Any) -> Expression:
    return cmp("<", x, y)


def le(x: Any, y: Any) -> Expression:
    return cmp("<=", x, y)


def gt(x: Any, y: Any) -> Expression:
    return cmp(">", x, y)


def ge(x: Any, y: Any) -> Expression:
    return cmp(">=", x, y)


def in_(x: Any, y: Any) -> Expression:
    """Return an ``x IN (y)`` predicate.

    Row values already carry their own parentheses.
    """
    left = "({})" if isinstance(x, Query) else "{}"
    right = "{}" if isinstance(y, RowValue) else "({})"
    return expr(f"{left} IN {right}", x, y)


def exists(query: Query) -> Expression:
    return expr("EXISTS ({})", query)


def not_exists(query: Query) -> Expression:
    return expr("NOT EXISTS ({})", query)


def append_policy(dialect: str, policies: List[Predicate], table: Optional[Table]) -> List[Predicate]:
    """Append ``table``'s policy predicate, if it has one, to ``policies``."""
    if not isinstance(table, PolicyTable):
        return policies
    policy = table.policy(dialect)
    if policy is not None:
        policies.append(policy)
    return policies


def append_predicates(predicate: Optional[Predicate], predicates: Sequence[Predicate]) -> VariadicPredicate:
    """AND ``predicates`` onto ``predicate``."""
    if predicate is None:
        return and_(*predicates)
    if isinstance(predicate, VariadicPredicate) and not predicate.is_disjunction:
        return replace(predicate, predicates=predicate.predicates + tuple(predicates))
    return VariadicPredicate((predicate, *predicates))


class RowValue(Comparable, SQLWriter):
    """A row value expression such as ``(x, y, z)``."""

    def __init__(self, *values: Any):
        self.values = values

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write("(")
        for i, value in enumerate(self.values):
            if i > 0:
                buf.write(", ")
            try:
                write_value(dialect, buf, args, params, value)
            except SQLBuildError as exc:
                raise wrap(f"rowvalue #{i + 1}", exc) from exc
        buf.write(")")

    def __repr__(self) -> str:
        return f"RowValue{self.values!r}"


class RowValues(SQLWriter):
    """A list of row values such as ``(x, y, z), (a, b, c)``."""

    def __init__(self, *rows: RowValue):
        self.rows = rows

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        for i, row in enumerate(self.rows):
            if i > 0:
                buf.write(", ")
            if not isinstance(row, RowValue):
                row = RowValue(*row)
            try:
                row.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap(f"rowvalues #{i + 1}", exc) from exc
