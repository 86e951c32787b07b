"""SQLite query builder."""

from sqbind.core.dialect import SQLITE
from sqbind.dialects.base import QueryBuilder


class SQLiteQueryBuilder(QueryBuilder):
    """Builds queries for SQLite (``$N`` / ``$name`` placeholders)."""

    name = SQLITE


SQLite = SQLiteQueryBuilder()
