"""
Dialect tags and placeholder syntax.

A dialect is a plain routing key: every dialect-sensitive decision in sqbind
is a comparison against one of these values. ``Dialect`` members compare
equal to their string values, so callers may pass either.
"""

from enum import Enum


class Dialect(str, Enum):
    """Supported SQL dialects."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLSERVER = "sqlserver"

    def __str__(self) -> str:
        return self.value


SQLITE = Dialect.SQLITE.value
POSTGRES = Dialect.POSTGRES.value
MYSQL = Dialect.MYSQL.value
SQLSERVER = Dialect.SQLSERVER.value


def placeholder(dialect: str, index: int) -> str:
    """
    Return the bind marker for a 1-based argument slot.

    Examples:
        >>> placeholder("postgres", 2)
        '$2'
        >>> placeholder("sqlserver", 1)
        '@p1'
        >>> placeholder("mysql", 3)
        '?'
    """
    if dialect in (SQLITE, POSTGRES):
        return f"${index}"
    if dialect == SQLSERVER:
        return f"@p{index}"
    return "?"
