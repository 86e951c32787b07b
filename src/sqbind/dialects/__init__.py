"""
Per-dialect query builders.

Example:
    >>> from sqbind.dialects import Postgres
    >>> q = Postgres.select(a.actor_id).from_(a)
    >>> q.get_dialect()
    'postgres'
"""

from .base import QueryBuilder
from .mysql import MySQL, MySQLQueryBuilder
from .postgres import Postgres, PostgresQueryBuilder
from .sqlite import SQLite, SQLiteQueryBuilder
from .sqlserver import SQLServer, SQLServerQueryBuilder

BUILDERS = {
    builder.name: builder for builder in (SQLite, Postgres, MySQL, SQLServer)
}


def builder_for(dialect: str) -> QueryBuilder:
    """Return the builder registered for ``dialect``."""
    try:
        return BUILDERS[dialect]
    except KeyError:
        raise ValueError(f"unknown dialect {dialect!r} (known: {', '.join(sorted(BUILDERS))})") from None


__all__ = [
    "QueryBuilder",
    "SQLite",
    "SQLiteQueryBuilder",
    "Postgres",
    "PostgresQueryBuilder",
    "MySQL",
    "MySQLQueryBuilder",
    "SQLServer",
    "SQLServerQueryBuilder",
    "BUILDERS",
    "builder_for",
]
