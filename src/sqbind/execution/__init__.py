"""
Running queries and logging them.

Usage:
    >>> from sqbind.execution import fetch_all, exec_query
    >>> results = fetch_all(conn, query, lambda row: row.int_field(actor.actor_id))
"""

from .fetch_exec import (
    CompiledExec,
    CompiledFetch,
    Cursor,
    Result,
    Row,
    compile_exec,
    compile_fetch,
    exec_query,
    fetch_all,
    fetch_cursor,
    fetch_exists,
    fetch_one,
)
from .logger import LoggerConfig, QueryLogger, QueryStats

__all__ = [
    "CompiledExec",
    "CompiledFetch",
    "Cursor",
    "Result",
    "Row",
    "compile_exec",
    "compile_fetch",
    "exec_query",
    "fetch_all",
    "fetch_cursor",
    "fetch_exists",
    "fetch_one",
    "LoggerConfig",
    "QueryLogger",
    "QueryStats",
]
