"""Clause writers shared by the statement builders."""

from dataclasses import replace
from io import StringIO
from typing import List, Optional, Sequence

from sqbind.core.dialect import SQLITE
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import Args, Params, Predicate, Query, Table, get_alias
from sqbind.errors import SQLBuildError, wrap
from sqbind.expressions.expression import VariadicPredicate, and_, append_policy
from sqbind.expressions.joins import JoinTable, quote_table_columns


def describe_table(table: Optional[Table]) -> str:
    """Best effort name of ``table`` for error messages."""
    name = getattr(table, "table_name", "")
    return name or type(table).__name__


def apply_policies(
    dialect: str,
    where: Optional[Predicate],
    tables: Sequence[tuple],
) -> Optional[Predicate]:
    """
    AND the policies of every ``(clause, table)`` pair in front of ``where``.

    Returns ``where`` unchanged when no table carries a policy.
    """
    policies: List[Predicate] = []
    for clause, table in tables:
        try:
            append_policy(dialect, policies, table)
        except SQLBuildError as exc:
            raise wrap(f"{clause} {describe_table(table)} Policy", exc) from exc
    if not policies:
        return where
    if where is not None:
        policies.append(where)
    return and_(*policies)


def join_policy_tables(join_tables: Sequence[JoinTable]) -> List[tuple]:
    return [(join_table.join_operator, join_table.table) for join_table in join_tables]


def write_predicate(
    dialect: str, buf: StringIO, args: Args, params: Params, clause: str, predicate: Predicate
) -> None:
    """Write ``predicate`` without outer parentheses, wrapping errors as ``clause``."""
    if isinstance(predicate, VariadicPredicate):
        predicate = replace(predicate, toplevel=True)
    try:
        predicate.write_sql(dialect, buf, args, params)
    except SQLBuildError as exc:
        raise wrap(clause, exc) from exc


def write_table(
    dialect: str,
    buf: StringIO,
    args: Args,
    params: Params,
    clause: str,
    table: Table,
    require_subquery_alias: bool = False,
) -> None:
    """Write a FROM/USING table, parenthesising sub-queries and adding the alias."""
    is_query = isinstance(table, Query)
    if is_query:
        buf.write("(")
    try:
        table.write_sql(dialect, buf, args, params)
    except SQLBuildError as exc:
        raise wrap(clause, exc) from exc
    if is_query:
        buf.write(")")
    alias = get_alias(table)
    if alias:
        buf.write(" AS " + quote_identifier(dialect, alias) + quote_table_columns(dialect, table))
    elif is_query and require_subquery_alias and dialect != SQLITE:
        raise SQLBuildError(f"{dialect} {clause} subquery must have alias")
