"""PostgreSQL query builder."""

from sqbind.core.dialect import POSTGRES
from sqbind.dialects.base import QueryBuilder


class PostgresQueryBuilder(QueryBuilder):
    """
    Builds queries for PostgreSQL.

    Placeholders are ``$N``; a named parameter used twice reuses its slot.
    DISTINCT ON, FETCH NEXT, ON CONFLICT ON CONSTRAINT, DELETE ... USING and
    MATERIALIZED CTEs are only rendered for this dialect.
    """

    name = POSTGRES


Postgres = PostgresQueryBuilder()
