"""
SQL identifier handling utilities.

Identifiers made only of lowercase ASCII letters, digits and underscores
(and not starting with a digit) are written bare; anything else is quoted
with the dialect's identifier quote so capitalisation and special
characters survive.
"""

from typing import Optional

from sqbind.core.dialect import MYSQL, SQLSERVER

# pseudo-tables referenced by upserts, OUTPUT clauses and triggers
_PSEUDO_TABLES = frozenset({"EXCLUDED", "INSERTED", "DELETED", "NEW", "OLD"})


def _needs_quoting(identifier: str) -> bool:
    if identifier == "":
        return True
    if identifier in _PSEUDO_TABLES:
        return False
    if "0" <= identifier[0] <= "9":
        return True
    for char in identifier:
        if char == "_" or "0" <= char <= "9" or "a" <= char <= "z":
            continue
        return True
    return False


def escape_quote(text: str, quote: str) -> str:
    """
    Escape ``quote`` inside ``text`` by doubling it.

    An already-doubled pair followed by more text is treated as one escaped
    quote and written back unchanged; a pair at the very end of the text is
    escaped character by character.

    Examples:
        >>> escape_quote("it's", "'")
        "it''s"
        >>> escape_quote('a"b', '"')
        'a""b'
    """
    i = text.find(quote)
    if i < 0:
        return text
    parts = []
    while i >= 0:
        parts.append(text[:i])
        parts.append(quote + quote)
        rest = text[i:]
        if len(rest) > 2 and rest[0] == quote and rest[1] == quote:
            text = text[i + 2:]
        else:
            text = text[i + 1:]
        i = text.find(quote)
    parts.append(text)
    return "".join(parts)


def quote_identifier(dialect: str, identifier: str) -> str:
    """
    Quote a SQL identifier (table or column name) if necessary.

    Args:
        dialect: Database dialect
        identifier: The identifier to quote

    Returns:
        The identifier, quoted when it is not a plain lowercase name

    Examples:
        >>> quote_identifier("postgres", "user_id")
        'user_id'
        >>> quote_identifier("postgres", "UserID")
        '"UserID"'
        >>> quote_identifier("mysql", "order")
        'order'
        >>> quote_identifier("mysql", "Order")
        '`Order`'
        >>> quote_identifier("sqlserver", "my table")
        '[my table]'
    """
    if not _needs_quoting(identifier):
        return identifier
    if dialect == MYSQL:
        return "`" + escape_quote(identifier, "`") + "`"
    if dialect == SQLSERVER:
        return "[" + escape_quote(identifier, "]") + "]"
    return '"' + escape_quote(identifier, '"') + '"'


def qualify_table(dialect: str, table: str, schema: Optional[str] = None) -> str:
    """
    Create a table name with an optional schema prefix.

    Examples:
        >>> qualify_table("postgres", "users", schema="public")
        'public.users'
        >>> qualify_table("postgres", "Users")
        '"Users"'
    """
    quoted_table = quote_identifier(dialect, table)
    if schema:
        return f"{quote_identifier(dialect, schema)}.{quoted_table}"
    return quoted_table
