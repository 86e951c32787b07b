"""
Value wrappers, CASE expressions, aggregates and table literals.
"""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, List, Sequence, Tuple

from sqbind.core.dialect import MYSQL
from sqbind.core.identifier import quote_identifier
from sqbind.core.interpolate import sprint
from sqbind.core.protocol import Args, Field, Params, Predicate, Query, Table
from sqbind.core.writer import write_value
from sqbind.errors import SQLBuildError, wrap
from sqbind.expressions.expression import Comparable, Expression, cmp, expr, in_
from sqbind.expressions.fields import AnyField, TableStruct


@dataclass(frozen=True)
class ValueExpression(Predicate):
    """A value passed to the query as a bound argument."""

    value: Any
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        write_value(dialect, buf, args, params, self.value)

    def as_(self, alias: str) -> "ValueExpression":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias

    # comparisons bind the raw value, not the wrapper
    def in_(self, value: Any) -> Predicate:
        return in_(self.value, value)

    def eq(self, value: Any) -> Predicate:
        return cmp("=", self.value, value)

    def ne(self, value: Any) -> Predicate:
        return cmp("<>", self.value, value)

    def lt(self, value: Any) -> Predicate:
        return cmp("<", self.value, value)

    def le(self, value: Any) -> Predicate:
        return cmp("<=", self.value, value)

    def gt(self, value: Any) -> Predicate:
        return cmp(">", self.value, value)

    def ge(self, value: Any) -> Predicate:
        return cmp(">=", self.value, value)


def value(v: Any) -> ValueExpression:
    return ValueExpression(v)


@dataclass(frozen=True)
class LiteralValue(Comparable, Predicate):
    """
    A value inlined into the query text as a literal.

    Only use it for trusted values such as constants; the value is not
    bound as an argument.
    """

    value: Any
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write(sprint(dialect, self.value))

    def as_(self, alias: str) -> "LiteralValue":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias


def literal(v: Any) -> LiteralValue:
    return LiteralValue(v)


@dataclass(frozen=True)
class DialectExpression(Table, Predicate):
    """An expression that renders differently depending on the dialect."""

    default: Any
    cases: Tuple[Tuple[str, Any], ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        for case_dialect, result in self.cases:
            if dialect == case_dialect:
                write_value(dialect, buf, args, params, result)
                return
        write_value(dialect, buf, args, params, self.default)

    def dialect_value(self, dialect: str, value: Any) -> "DialectExpression":
        return replace(self, cases=self.cases + ((dialect, value),))

    def dialect_expr(self, dialect: str, format: str, *values: Any) -> "DialectExpression":
        return replace(self, cases=self.cases + ((dialect, expr(format, *values)),))


def dialect_value(v: Any) -> DialectExpression:
    """Return a DialectExpression using ``v`` as the default."""
    return DialectExpression(v)


def dialect_expr(format: str, *values: Any) -> DialectExpression:
    """Return a DialectExpression using the expression as the default."""
    return DialectExpression(expr(format, *values))


def _write_cases(
    dialect: str, buf: StringIO, args: Args, params: Params, cases: Sequence[Tuple[Any, Any]], default: Any
) -> None:
    for i, (when, then) in enumerate(cases):
        buf.write(" WHEN ")
        try:
            write_value(dialect, buf, args, params, when)
        except SQLBuildError as exc:
            raise wrap(f"CASE #{i + 1} WHEN", exc) from exc
        buf.write(" THEN ")
        try:
            write_value(dialect, buf, args, params, then)
        except SQLBuildError as exc:
            raise wrap(f"CASE #{i + 1} THEN", exc) from exc
    if default is not None:
        buf.write(" ELSE ")
        try:
            write_value(dialect, buf, args, params, default)
        except SQLBuildError as exc:
            raise wrap("CASE ELSE", exc) from exc
    buf.write(" END")


@dataclass(frozen=True)
class CaseExpression(Field):
    """``CASE WHEN predicate THEN result ... [ELSE fallback] END``."""

    cases: Tuple[Tuple[Predicate, Any], ...] = ()
    default: Any = None
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write("CASE")
        if not self.cases:
            raise SQLBuildError("CaseExpression empty")
        _write_cases(dialect, buf, args, params, self.cases, self.default)

    def when(self, predicate: Predicate, result: Any) -> "CaseExpression":
        return replace(self, cases=self.cases + ((predicate, result),))

    def else_(self, fallback: Any) -> "CaseExpression":
        return replace(self, default=fallback)

    def as_(self, alias: str) -> "CaseExpression":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias


def case_when(predicate: Predicate, result: Any) -> CaseExpression:
    return CaseExpression(((predicate, result),))


@dataclass(frozen=True)
class SimpleCaseExpression(Field):
    """``CASE expression WHEN value THEN result ... [ELSE fallback] END``."""

    expression: Any
    cases: Tuple[Tuple[Any, Any], ...] = ()
    default: Any = None
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write("CASE ")
        if not self.cases:
            raise SQLBuildError("SimpleCaseExpression empty")
        try:
            write_value(dialect, buf, args, params, self.expression)
        except SQLBuildError as exc:
            raise wrap("CASE", exc) from exc
        _write_cases(dialect, buf, args, params, self.cases, self.default)

    def when(self, value: Any, result: Any) -> "SimpleCaseExpression":
        return replace(self, cases=self.cases + ((value, result),))

    def else_(self, fallback: Any) -> "SimpleCaseExpression":
        return replace(self, default=fallback)

    def as_(self, alias: str) -> "SimpleCaseExpression":
        return replace(self, alias=alias)

    def get_alias(self) -> str:
        return self.alias


def case(expression: Any) -> SimpleCaseExpression:
    return SimpleCaseExpression(expression)


def count(field: Field) -> Expression:
    return expr("COUNT({})", field)


def count_star() -> Expression:
    return expr("COUNT(*)")


def sum_(num: Field) -> Expression:
    return expr("SUM({})", num)


def avg(num: Field) -> Expression:
    return expr("AVG({})", num)


def min_(field: Field) -> Expression:
    return expr("MIN({})", field)


def max_(field: Field) -> Expression:
    return expr("MAX({})", field)


def _check_row(index: int, row: Sequence[Any], columns: Sequence[str]) -> None:
    if columns and len(row) != len(columns):
        raise SQLBuildError(
            f"rowvalue #{index + 1}: got {len(row)} values, "
            f"want {len(columns)} values ({', '.join(columns)})"
        )


class _TableLiteral(Query):
    def __init__(self, alias: str = "", columns: Sequence[str] = (), row_values: Sequence[Sequence[Any]] = ()):
        self.alias = alias
        self.columns = list(columns)
        self.row_values = [list(row) for row in row_values]

    def field(self, name: str) -> AnyField:
        """Return a column qualified by the literal's alias."""
        return AnyField(name=name, table=TableStruct(self.alias))

    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple[Query, bool]:
        return self, False

    def get_fetchable_fields(self) -> List[Field]:
        return [self.field(column) for column in self.columns]

    def get_dialect(self) -> str:
        return ""

    def get_alias(self) -> str:
        return self.alias

    def _write_row_value(
        self, dialect: str, buf: StringIO, args: Args, params: Params, i: int, j: int, item: Any
    ) -> None:
        try:
            write_value(dialect, buf, args, params, item)
        except SQLBuildError as exc:
            raise wrap(f"rowvalue #{i + 1} value #{j + 1}", exc) from exc


class SelectValues(_TableLiteral):
    """
    A table literal made of SELECTs joined with UNION ALL.

    Example:
        >>> vs = SelectValues("tbl", ["a", "b"], [[1, 2], [3, 4]])
        >>> to_sql("postgres", vs)
        ('SELECT $1 AS a, $2 AS b UNION ALL SELECT $3, $4', [1, 2, 3, 4])
    """

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        for i, row in enumerate(self.row_values):
            if i > 0:
                buf.write(" UNION ALL ")
            _check_row(i, row, self.columns)
            buf.write("SELECT ")
            for j, item in enumerate(row):
                if j > 0:
                    buf.write(", ")
                self._write_row_value(dialect, buf, args, params, i, j, item)
                if i == 0 and j < len(self.columns):
                    buf.write(" AS " + quote_identifier(dialect, self.columns[j]))


class TableValues(_TableLiteral):
    """A table literal made by the VALUES clause. MySQL rows use ``ROW(...)``."""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write("VALUES ")
        for i, row in enumerate(self.row_values):
            _check_row(i, row, self.columns)
            if i > 0:
                buf.write(", ")
            buf.write("ROW(" if dialect == MYSQL else "(")
            for j, item in enumerate(row):
                if j > 0:
                    buf.write(", ")
                self._write_row_value(dialect, buf, args, params, i, j, item)
            buf.write(")")

    def get_columns(self) -> List[str]:
        return list(self.columns)
