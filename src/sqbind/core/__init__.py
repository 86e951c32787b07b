"""
Core template-substitution and argument-binding engine.

The engine walks a format template, resolves ``{}``, ``{N}`` and ``{name}``
placeholders against a value pool and writes dialect-correct placeholders
and arguments. Everything else in sqbind is built on top of it.
"""

from sqbind.core.buffer import BufferPool, bufpool
from sqbind.core.dialect import Dialect, placeholder
from sqbind.core.identifier import escape_quote, qualify_table, quote_identifier
from sqbind.core.interpolate import sprint, sprintf
from sqbind.core.parameters import DEFAULT_VALUE, substitute_params
from sqbind.core.protocol import DialectValuer, NamedArg, SQLWriter, named
from sqbind.core.writer import RenderState, write_value, writef, writef_part

__all__ = [
    "BufferPool",
    "bufpool",
    "Dialect",
    "placeholder",
    "escape_quote",
    "qualify_table",
    "quote_identifier",
    "sprint",
    "sprintf",
    "DEFAULT_VALUE",
    "substitute_params",
    "DialectValuer",
    "NamedArg",
    "SQLWriter",
    "named",
    "RenderState",
    "write_value",
    "writef",
    "writef_part",
]
