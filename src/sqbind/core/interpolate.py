"""
Interpolation of bound arguments into a query string.

The output approximates the final SQL the database sees and is meant for
logs only. It must never be executed: values are inlined as literals.
"""

import math
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from sqbind.core.buffer import bufpool
from sqbind.core.dialect import MYSQL, POSTGRES, SQLITE, SQLSERVER
from sqbind.core.identifier import escape_quote
from sqbind.core.protocol import DialectValuer, NamedArg
from sqbind.errors import InterpolationError


def _is_name_char(char: str) -> bool:
    return char == "_" or char.isalpha() or char.isdigit()


def sprintf(dialect: str, query: str, args: Sequence[Any]) -> str:
    """
    Inline ``args`` into a query containing bind markers.

    String literals and quoted identifiers are skipped so a ``?`` or ``$1``
    inside quotes is never treated as a bind marker.

    Examples:
        >>> sprintf("postgres", "SELECT $1, '$1'", ["a"])
        "SELECT 'a', '$1'"
        >>> sprintf("mysql", "x = ? AND y = ?", [1, None])
        'x = 1 AND y = NULL'

    Raises:
        InterpolationError: on an unclosed literal, too few arguments or a
            value without an SQL literal form
    """
    if not args:
        return query
    named_indices: Dict[str, int] = {}
    for i, arg in enumerate(args):
        if isinstance(arg, NamedArg):
            named_indices[arg.name] = i

    with bufpool.borrow() as buf:
        running_args_index = 0
        must_write_char_at = -1
        inside_literal = False
        opening_quote = ""
        param_name: List[str] = []
        length = len(query)
        for i, char in enumerate(query):
            if must_write_char_at == i:
                buf.write(char)
                continue

            if inside_literal:
                buf.write(char)
                closing_quote = "]" if opening_quote == "[" else opening_quote
                if char == closing_quote:
                    # a doubled quote escapes itself
                    if i + 1 < length and query[i + 1] == closing_quote:
                        must_write_char_at = i + 1
                    else:
                        inside_literal = False
                continue

            if param_name:
                if _is_name_char(char):
                    param_name.append(char)
                    continue
                buf.write(
                    _lookup_param(dialect, args, param_name, named_indices, running_args_index)
                )
                if param_name == ["?"]:
                    running_args_index += 1
                param_name = []
                # the terminating character may itself open a literal or a new parameter
                if _opens_literal(dialect, char):
                    inside_literal = True
                    opening_quote = char
                    buf.write(char)
                    continue
                if _starts_param(dialect, char):
                    param_name.append(char)
                    continue
                buf.write(char)
                continue

            if _opens_literal(dialect, char):
                inside_literal = True
                opening_quote = char
                buf.write(char)
                continue

            if _starts_param(dialect, char):
                param_name.append(char)
                continue

            if char == "?" and dialect != POSTGRES:
                if running_args_index >= len(args):
                    raise InterpolationError(
                        f"too few args provided, expected more than {running_args_index + 1}"
                    )
                buf.write(sprint(dialect, args[running_args_index]))
                running_args_index += 1
                continue

            buf.write(char)

        if param_name:
            buf.write(
                _lookup_param(dialect, args, param_name, named_indices, running_args_index)
            )
        if inside_literal:
            raise InterpolationError("unclosed string or identifier")
        return buf.getvalue()


def _opens_literal(dialect: str, char: str) -> bool:
    return (
        char in ("'", '"')
        or (char == "`" and dialect == MYSQL)
        or (char == "[" and dialect == SQLSERVER)
    )


def _starts_param(dialect: str, char: str) -> bool:
    # sqlite also accepts ?NNN and ?name, so '?' opens a token there
    return (
        (char == "$" and dialect in (SQLITE, POSTGRES))
        or (char == ":" and dialect == SQLITE)
        or (char == "@" and dialect in (SQLITE, SQLSERVER))
        or (char == "?" and dialect == SQLITE)
    )


def _lookup_param(
    dialect: str,
    args: Sequence[Any],
    param_name: List[str],
    named_indices: Dict[str, int],
    running_args_index: int,
) -> str:
    token = "".join(param_name)
    if token[0] == "@" and dialect == SQLSERVER and len(token) >= 2 and token[1] in "pP":
        suffix = token[2:]
    else:
        suffix = token[1:]

    if suffix == "":
        if token[0] != "?":
            raise InterpolationError("parameter name missing")
        if running_args_index >= len(args):
            raise InterpolationError(
                f"too few args provided, expected more than {running_args_index + 1}"
            )
        return sprint(dialect, args[running_args_index])

    if suffix.isascii() and suffix.isdigit():
        ordinal = int(suffix)
        if ordinal < 1 or ordinal > len(args):
            raise InterpolationError(f"args index {ordinal} out of bounds")
        return sprint(dialect, args[ordinal - 1])

    if dialect in (POSTGRES, MYSQL):
        raise InterpolationError(f"{dialect} does not support {token} named parameter")
    index = named_indices.get(token[1:])
    if index is None:
        raise InterpolationError(f"named parameter {token} not provided")
    return sprint(dialect, args[index])


def _sprint_string(dialect: str, value: str) -> str:
    if "\n" not in value and "\r" not in value:
        return "'" + escape_quote(value, "'") + "'"
    if dialect in (MYSQL, SQLSERVER):
        newline_fn = "CHAR"
    elif dialect == POSTGRES:
        newline_fn = "chr"
    else:
        newline_fn = "char"
    parts: List[str] = []
    chunk: List[str] = []
    for char in value:
        if char in ("\n", "\r"):
            if chunk:
                parts.append("'" + escape_quote("".join(chunk), "'") + "'")
                chunk = []
            parts.append(f"{newline_fn}({ord(char)})")
        else:
            chunk.append(char)
    if chunk:
        parts.append("'" + escape_quote("".join(chunk), "'") + "'")
    if dialect in (MYSQL, SQLSERVER):
        return "CONCAT(" + ", ".join(parts) + ")"
    return " || ".join(parts)


def _sprint_datetime(dialect: str, value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if dialect in (POSTGRES, SQLSERVER):
        text = value.strftime("%Y-%m-%d %H:%M:%S")
        if value.microsecond:
            text += f".{value.microsecond:06d}".rstrip("0")
        offset = value.utcoffset()
        total = int(offset.total_seconds()) if offset is not None else 0
        sign = "-" if total < 0 else "+"
        hours, minutes = divmod(abs(total) // 60, 60)
        return f"'{text}{sign}{hours:02d}:{minutes:02d}'"
    return "'" + value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S") + "'"


def sprint(dialect: str, value: Any) -> str:
    """
    Return the SQL literal for a single value.

    Examples:
        >>> sprint("sqlserver", True)
        '1'
        >>> sprint("postgres", b"\\x01\\xff")
        "'\\\\x01ff'"
        >>> sprint("sqlite", "it's")
        "'it''s'"
        >>> sprint("postgres", "a\\nb")
        "'a' || chr(10) || 'b'"
    """
    if value is None:
        return "NULL"
    if isinstance(value, NamedArg):
        return sprint(dialect, value.value)
    if isinstance(value, DialectValuer):
        return sprint(dialect, value.dialect_value(dialect))
    if isinstance(value, bool):
        if dialect == SQLSERVER:
            return "1" if value else "0"
        return "TRUE" if value else "FALSE"
    if isinstance(value, (bytes, bytearray, memoryview)):
        hexed = bytes(value).hex()
        if dialect == POSTGRES:
            return "'\\x" + hexed + "'"
        if dialect == SQLSERVER:
            return "0x" + hexed
        return "x'" + hexed + "'"
    if isinstance(value, str):
        return _sprint_string(dialect, value)
    if isinstance(value, datetime):
        return _sprint_datetime(dialect, value)
    if isinstance(value, date):
        return "'" + value.isoformat() + "'"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InterpolationError(f"float {value!r} has no SQL literal")
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InterpolationError(f"Decimal {value} has no SQL literal")
        return str(value)
    if isinstance(value, uuid.UUID):
        return "'" + str(value) + "'"
    raise InterpolationError(f"{type(value).__name__} has no SQL representation")
