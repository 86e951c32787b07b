"""Common table expressions and compound (UNION, INTERSECT, EXCEPT) queries."""

from dataclasses import dataclass, replace
from io import StringIO
from typing import List, Optional, Sequence, Tuple

from sqbind.core.dialect import POSTGRES
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import Args, Field, Params, Query, Table
from sqbind.errors import SQLBuildError, wrap
from sqbind.expressions.fields import AnyField, TableStruct


@dataclass(frozen=True)
class CTE(Table):
    """A named sub-query declared in a WITH clause.

    ``materialization`` is only honoured on Postgres; None leaves it unspecified.
    """

    name: str
    columns: Tuple[str, ...] = ()
    query: Optional[Query] = None
    recursive: bool = False
    materialization: Optional[bool] = None
    alias: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write(quote_identifier(dialect, self.name))

    def as_(self, alias: str) -> "CTE":
        return replace(self, alias=alias)

    def materialized(self) -> "CTE":
        return replace(self, materialization=True)

    def not_materialized(self) -> "CTE":
        return replace(self, materialization=False)

    def field(self, name: str) -> AnyField:
        return AnyField(name=name, table=TableStruct(self.alias, name=self.name, schema=""))

    def get_alias(self) -> str:
        return self.alias


def cte(name: str, columns: Sequence[str], query: Query) -> CTE:
    return CTE(name, tuple(columns or ()), query)


def recursive_cte(name: str, columns: Sequence[str], query: Query) -> CTE:
    return CTE(name, tuple(columns or ()), query, recursive=True)


def write_ctes(dialect: str, buf: StringIO, args: Args, params: Params, ctes: Sequence[CTE]) -> None:
    """Write ``WITH [RECURSIVE] name (cols) AS (query), ... `` including the trailing space."""
    if any(item.recursive for item in ctes):
        buf.write("WITH RECURSIVE ")
    else:
        buf.write("WITH ")
    for i, item in enumerate(ctes):
        if i > 0:
            buf.write(", ")
        if not item.name:
            raise SQLBuildError(f"CTE #{i + 1} has no name")
        buf.write(quote_identifier(dialect, item.name))
        if item.columns:
            buf.write(" (" + ", ".join(quote_identifier(dialect, c) for c in item.columns) + ")")
        buf.write(" AS ")
        if dialect == POSTGRES and item.materialization is not None:
            buf.write("MATERIALIZED " if item.materialization else "NOT MATERIALIZED ")
        buf.write("(")
        query = item.query
        if query is None:
            raise SQLBuildError(f"CTE #{i + 1} query is nil")
        if isinstance(query, VariadicQuery):
            query = replace(query, toplevel=True)
        try:
            query.write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap(f"CTE #{i + 1} failed to build query", exc) from exc
        buf.write(")")
    buf.write(" ")


QUERY_UNION = "UNION"
QUERY_UNION_ALL = "UNION ALL"
QUERY_INTERSECT = "INTERSECT"
QUERY_INTERSECT_ALL = "INTERSECT ALL"
QUERY_EXCEPT = "EXCEPT"
QUERY_EXCEPT_ALL = "EXCEPT ALL"


@dataclass(frozen=True)
class VariadicQuery(Query):
    """``q1 UNION q2 UNION ...`` and friends. Parenthesised unless top-level."""

    operator: str = QUERY_UNION
    queries: Tuple[Optional[Query], ...] = ()
    toplevel: bool = False

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        operator = self.operator or QUERY_UNION
        if not self.queries:
            raise SQLBuildError("VariadicQuery empty")

        if len(self.queries) == 1:
            first = self.queries[0]
            if first is None:
                raise SQLBuildError("query #1 is nil")
            if isinstance(first, VariadicQuery):
                first = replace(first, toplevel=self.toplevel)
            first.write_sql(dialect, buf, args, params)
            return

        if not self.toplevel:
            buf.write("(")
        for i, query in enumerate(self.queries):
            if i > 0:
                buf.write(f" {operator} ")
            if query is None:
                raise SQLBuildError(f"query #{i + 1} is nil")
            try:
                query.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap(f"query #{i + 1}", exc) from exc
        if not self.toplevel:
            buf.write(")")

    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple[Query, bool]:
        return self, False

    def get_fetchable_fields(self) -> List[Field]:
        return []

    def get_dialect(self) -> str:
        if not self.queries or self.queries[0] is None:
            return ""
        return self.queries[0].get_dialect()


def union(*queries: Query) -> VariadicQuery:
    return VariadicQuery(QUERY_UNION, queries)


def union_all(*queries: Query) -> VariadicQuery:
    return VariadicQuery(QUERY_UNION_ALL, queries)


def intersect(*queries: Query) -> VariadicQuery:
    return VariadicQuery(QUERY_INTERSECT, queries)


def intersect_all(*queries: Query) -> VariadicQuery:
    return VariadicQuery(QUERY_INTERSECT_ALL, queries)


def except_(*queries: Query) -> VariadicQuery:
    return VariadicQuery(QUERY_EXCEPT, queries)


def except_all(*queries: Query) -> VariadicQuery:
    return VariadicQuery(QUERY_EXCEPT_ALL, queries)
