"""
Running queries against DB-API 2.0 connections.

A rowmapper is a function that takes a :class:`Row` and returns one result.
It is called once before the query runs (the dry pass) to find out which
fields it reads; those fields become the query's SELECT list (or RETURNING
list, or ``{*}`` splice). It is then called once per fetched row, and each
accessor returns the next scanned value in the same order.

Example:
    >>> actor = Actor("a")
    >>> names = fetch_all(
    ...     conn,
    ...     SQLite.from_(actor).where(actor.actor_id.lt(10)),
    ...     lambda row: row.string_field(actor.first_name),
    ... )

Raw queries, whose SELECT list cannot be changed, read the whole row with
``row.values()`` or ``row.get(column)`` instead.
"""

import json
import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union
from uuid import UUID

from sqbind.config import resolve_dialect
from sqbind.core.buffer import bufpool
from sqbind.core.dialect import MYSQL, SQLITE, SQLSERVER
from sqbind.core.interpolate import sprint
from sqbind.core.parameters import substitute_params
from sqbind.core.protocol import Field, NamedArg, Params, Query
from sqbind.errors import InterpolationError, MapperError, NoRowsError, SQLBuildError
from sqbind.execution.logger import LoggerConfig, QueryLogger, QueryStats, find_caller
from sqbind.expressions.cte import VariadicQuery
from sqbind.expressions.expression import expr, queryf
from sqbind.operations.column import call_mapper

T = TypeVar("T")

MIXED_CALLS = (
    "rowmapper cannot mix calls to row.values()/row.columns()/row.column_types()/row.get() "
    "with the other row methods"
)
NO_FIELDS_ACCESSED = (
    "rowmapper did not access any fields, unable to determine fields to insert into query"
)
FORBIDDEN_CALLS = (
    "rowmapper can only contain calls to row.values()/row.columns()/row.column_types()/row.get() "
    "because query's SELECT clause is not dynamic"
)

_default_logger: Optional[QueryLogger] = None


def default_query_logger() -> QueryLogger:
    """Return the process-wide QueryLogger configured from settings."""
    global _default_logger
    if _default_logger is None:
        _default_logger = QueryLogger(LoggerConfig.from_settings())
    return _default_logger


def driver_args(dialect: str, args: Sequence[Any]) -> Union[List[Any], Dict[str, Any]]:
    """
    Convert rendered arguments into what the DB-API driver expects.

    SQLite markers are all named (``$1``, ``$name``), so the arguments are
    bound through a mapping keyed by ordinal or name. Other dialects take a
    positional list with named arguments unwrapped.

    Example:
        >>> driver_args("sqlite", [5, NamedArg("name", "bob")])
        {'1': 5, 'name': 'bob'}
    """
    if dialect == SQLITE:
        mapping: Dict[str, Any] = {}
        for i, arg in enumerate(args):
            if isinstance(arg, NamedArg):
                mapping[arg.name] = arg.value
            else:
                mapping[str(i + 1)] = arg
        return mapping
    return [arg.value if isinstance(arg, NamedArg) else arg for arg in args]


def render(dialect: str, query: Query) -> Tuple[str, List[Any], Params]:
    """Render ``query`` into its text, argument list and parameter map."""
    if isinstance(query, VariadicQuery):
        # a compound statement is not parenthesised at the top level
        query = replace(query, toplevel=True)
    args: List[Any] = []
    params: Params = {}
    with bufpool.borrow() as buf:
        query.write_sql(dialect, buf, args, params)
        return buf.getvalue(), args, params


def _to_str(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def _to_int(value: Any) -> int:
    if isinstance(value, (bytes, bytearray, memoryview, str)):
        return int(_to_str(value))
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value!r} has a fractional part")
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return float(_to_str(value))
    return float(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    text = _to_str(value).strip().lower()
    if text in ("1", "t", "true", "y", "yes", "on"):
        return True
    if text in ("0", "f", "false", "n", "no", "off"):
        return False
    raise ValueError(f"{value!r} is not a boolean")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _to_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, timezone.utc)
    text = _to_str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _to_json(value: Any) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    if isinstance(value, memoryview):
        return json.loads(bytes(value))
    return value


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)) and len(bytes(value)) == 16:
        return UUID(bytes=bytes(value))
    return UUID(_to_str(value))


class Row:
    """
    A database row as seen by a rowmapper.

    During the dry pass every accessor records its field and returns a zero
    value of its type. Afterwards accessors return the scanned values in
    the order they are called, with SQL NULL read as None.
    """

    def __init__(self, dialect: str):
        self.dialect = dialect
        self.fields: List[Field] = []
        self.raw_mode = False
        self.index = 0
        self.scanned: Optional[Sequence[Any]] = None
        self.column_names: List[str] = []
        self.type_codes: List[Any] = []

    def load(self, values: Sequence[Any]) -> None:
        self.scanned = values
        self.index = 0

    def _read(self, field: Field, kind: str, zero: Any, convert: Optional[Callable[[Any], Any]]) -> Any:
        if field is None:
            raise MapperError(f"{kind}: field is nil")
        if self.scanned is None:
            self.fields.append(field)
            return zero
        position = self.index
        if position >= len(self.scanned):
            raise MapperError(
                f"rowmapper read field #{position + 1} but the query fetched "
                f"{len(self.scanned)} columns"
            )
        self.index += 1
        value = self.scanned[position]
        if value is None or convert is None:
            return value
        try:
            return convert(value)
        except (ValueError, TypeError) as exc:
            raise MapperError(
                f"please check if your mapper function is correct: "
                f"field #{position + 1} ({value!r}) cannot be read as {kind}: {exc}"
            ) from exc

    # raw access

    def columns(self) -> List[str]:
        """Return the column names of the result set."""
        self.raw_mode = True
        return list(self.column_names)

    def column_types(self) -> List[Any]:
        """Return the driver's type code for each column."""
        self.raw_mode = True
        return list(self.type_codes)

    def values(self) -> List[Any]:
        """Return every value of the current row."""
        self.raw_mode = True
        if self.scanned is None:
            return []
        return list(self.scanned)

    def get(self, column: str) -> Any:
        """Return the value of ``column`` in the current row."""
        self.raw_mode = True
        if self.scanned is None:
            return None
        try:
            position = self.column_names.index(column)
        except ValueError:
            raise MapperError(
                f"column {column!r} not found (columns: {', '.join(self.column_names)})"
            ) from None
        return self.scanned[position]

    # dynamic access

    def value(self, format: str, *values: Any) -> Any:
        return self._read(expr(format, *values), "value", None, None)

    def value_field(self, field: Field) -> Any:
        return self._read(field, "value", None, None)

    def string(self, format: str, *values: Any) -> Optional[str]:
        return self._read(expr(format, *values), "string", "", _to_str)

    def string_field(self, field: Field) -> Optional[str]:
        return self._read(field, "string", "", _to_str)

    def int_(self, format: str, *values: Any) -> Optional[int]:
        return self._read(expr(format, *values), "int", 0, _to_int)

    def int_field(self, field: Field) -> Optional[int]:
        return self._read(field, "int", 0, _to_int)

    def float_(self, format: str, *values: Any) -> Optional[float]:
        return self._read(expr(format, *values), "float", 0.0, _to_float)

    def float_field(self, field: Field) -> Optional[float]:
        return self._read(field, "float", 0.0, _to_float)

    def bool_(self, format: str, *values: Any) -> Optional[bool]:
        return self._read(expr(format, *values), "bool", False, _to_bool)

    def bool_field(self, field: Field) -> Optional[bool]:
        return self._read(field, "bool", False, _to_bool)

    def bytes_(self, format: str, *values: Any) -> Optional[bytes]:
        return self._read(expr(format, *values), "bytes", b"", _to_bytes)

    def bytes_field(self, field: Field) -> Optional[bytes]:
        return self._read(field, "bytes", b"", _to_bytes)

    def time(self, format: str, *values: Any) -> Optional[datetime]:
        return self._read(expr(format, *values), "time", datetime(1, 1, 1), _to_time)

    def time_field(self, field: Field) -> Optional[datetime]:
        return self._read(field, "time", datetime(1, 1, 1), _to_time)

    def json(self, format: str, *values: Any) -> Any:
        return self._read(expr(format, *values), "json", None, _to_json)

    def json_field(self, field: Field) -> Any:
        return self._read(field, "json", None, _to_json)

    def uuid(self, format: str, *values: Any) -> Optional[UUID]:
        return self._read(expr(format, *values), "uuid", UUID(int=0), _to_uuid)

    def uuid_field(self, field: Field) -> Optional[UUID]:
        return self._read(field, "uuid", UUID(int=0), _to_uuid)


def prepare_rowmapper(dialect: str, query: Query, rowmapper: Callable[[Row], T]) -> Query:
    """
    Dry-run ``rowmapper`` and splice the fields it reads into ``query``.

    Raises:
        MapperError: if the rowmapper mixes raw and field access, reads no
            fields from a dynamic query or reads fields from a static one
    """
    row = Row(dialect)
    call_mapper(rowmapper, row)
    if row.raw_mode and row.fields:
        raise MapperError(MIXED_CALLS)
    query, ok = query.set_fetchable_fields(row.fields)
    if ok and not row.fields and not row.raw_mode:
        raise MapperError(NO_FIELDS_ACCESSED)
    if not ok and row.fields:
        raise MapperError(FORBIDDEN_CALLS)
    return query


def _check_inputs(conn: Any, query: Any) -> None:
    if conn is None:
        raise SQLBuildError("db is nil")
    if query is None:
        raise SQLBuildError("query is nil")


def _new_stats(dialect: str, query: str, args: List[Any], params: Params, config: LoggerConfig) -> QueryStats:
    stats = QueryStats(dialect=dialect, query=query, args=args, params=params)
    if config.show_caller:
        caller = find_caller()
        stats.caller_file = caller.get("caller_file", "")
        stats.caller_line = caller.get("caller_line", 0)
        stats.caller_function = caller.get("caller_function", "")
    return stats


class _Timer:
    def __init__(self, stats: QueryStats, enabled: bool):
        self.stats = stats
        self.enabled = enabled
        self.started = 0.0

    def __enter__(self) -> "_Timer":
        if self.enabled:
            self.stats.started_at = datetime.now(timezone.utc)
            self.started = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.enabled:
            self.stats.time_taken = (time.perf_counter() - self.started) * 1000


class Cursor(Generic[T]):
    """
    Iterator over the mapped results of a running query.

    The query is logged once, when the cursor is closed. Use the cursor as a
    context manager or call :meth:`close`.
    """

    def __init__(
        self,
        conn: Any,
        dialect: str,
        query: str,
        args: List[Any],
        params: Params,
        rowmapper: Callable[[Row], T],
        query_logger: Optional[QueryLogger] = None,
    ):
        self.rowmapper = rowmapper
        self.query_logger = query_logger if query_logger is not None else default_query_logger()
        config = self.query_logger.config
        self.row = Row(dialect)
        self.stats = _new_stats(dialect, query, args, params, config)
        self.stats.row_count = 0
        self._closed = False
        self._db_cursor = conn.cursor()
        with _Timer(self.stats, config.show_time_taken):
            try:
                self._db_cursor.execute(query, driver_args(dialect, args))
            except Exception as exc:
                self.stats.error = exc
                self.close()
                raise
        description = self._db_cursor.description or ()
        self.row.column_names = [column[0] for column in description]
        self.row.type_codes = [column[1] for column in description]

    def __iter__(self) -> "Cursor[T]":
        return self

    def __next__(self) -> T:
        if self._closed:
            raise StopIteration
        values = self._db_cursor.fetchone()
        if values is None:
            self.close()
            raise StopIteration
        self.stats.row_count += 1
        if self.stats.row_count <= self.query_logger.config.show_results:
            self.stats.results.append(self._describe(values))
        self.row.load(values)
        return call_mapper(self.rowmapper, self.row)

    @property
    def row_count(self) -> int:
        return self.stats.row_count or 0

    def _describe(self, values: Sequence[Any]) -> Dict[str, str]:
        described: Dict[str, str] = {}
        for i, value in enumerate(values):
            name = self.row.column_names[i] if i < len(self.row.column_names) else f"#{i + 1}"
            try:
                described[name] = sprint(self.stats.dialect, value)
            except InterpolationError as exc:
                described[name] = f"%!(error={exc})"
        return described

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._db_cursor.close()
        finally:
            self.query_logger.log_query(self.stats)

    def __enter__(self) -> "Cursor[T]":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def fetch_cursor(
    conn: Any, query: Query, rowmapper: Callable[[Row], T], query_logger: Optional[QueryLogger] = None
) -> Cursor[T]:
    """Run ``query`` and return a cursor over its mapped rows."""
    _check_inputs(conn, query)
    if rowmapper is None:
        raise SQLBuildError("rowmapper is nil")
    dialect = resolve_dialect(query.get_dialect())
    query = prepare_rowmapper(dialect, query, rowmapper)
    text, args, params = render(dialect, query)
    return Cursor(conn, dialect, text, args, params, rowmapper, query_logger)


def _first(cursor: Cursor[T]) -> T:
    with cursor:
        for result in cursor:
            return result
    raise NoRowsError("no rows in result set")


def _all(cursor: Cursor[T]) -> List[T]:
    with cursor:
        return list(cursor)


def fetch_one(
    conn: Any, query: Query, rowmapper: Callable[[Row], T], query_logger: Optional[QueryLogger] = None
) -> T:
    """
    Return the first mapped row of ``query``.

    Raises:
        NoRowsError: if the query returns no rows
    """
    return _first(fetch_cursor(conn, query, rowmapper, query_logger))


def fetch_all(
    conn: Any, query: Query, rowmapper: Callable[[Row], T], query_logger: Optional[QueryLogger] = None
) -> List[T]:
    """Return every mapped row of ``query``."""
    return _all(fetch_cursor(conn, query, rowmapper, query_logger))


def fetch_exists(conn: Any, query: Query, query_logger: Optional[QueryLogger] = None) -> bool:
    """Report whether ``query`` returns at least one row."""
    _check_inputs(conn, query)
    query_logger = query_logger if query_logger is not None else default_query_logger()
    dialect = resolve_dialect(query.get_dialect())
    if dialect == SQLSERVER:
        wrapped = queryf("SELECT CASE WHEN EXISTS ({}) THEN 1 ELSE 0 END", query)
    else:
        wrapped = queryf("SELECT EXISTS ({})", query)
    text, args, params = render(dialect, wrapped)
    stats = _new_stats(dialect, text, args, params, query_logger.config)
    db_cursor = conn.cursor()
    try:
        with _Timer(stats, query_logger.config.show_time_taken):
            db_cursor.execute(text, driver_args(dialect, args))
        values = db_cursor.fetchone()
        stats.exists = bool(values[0]) if values else False
        return stats.exists
    except Exception as exc:
        stats.error = exc
        raise
    finally:
        db_cursor.close()
        query_logger.log_query(stats)


@dataclass(frozen=True)
class Result:
    """The outcome of an executed statement."""

    rows_affected: int = 0
    last_insert_id: Optional[int] = None


def _exec(
    conn: Any, dialect: str, text: str, args: List[Any], params: Params, query_logger: Optional[QueryLogger]
) -> Result:
    query_logger = query_logger if query_logger is not None else default_query_logger()
    stats = _new_stats(dialect, text, args, params, query_logger.config)
    db_cursor = conn.cursor()
    try:
        with _Timer(stats, query_logger.config.show_time_taken):
            db_cursor.execute(text, driver_args(dialect, args))
        last_insert_id = None
        if dialect in (SQLITE, MYSQL):
            last_insert_id = db_cursor.lastrowid
        rows_affected = db_cursor.rowcount if db_cursor.rowcount is not None else -1
        stats.rows_affected = rows_affected
        stats.last_insert_id = last_insert_id
        return Result(rows_affected=rows_affected, last_insert_id=last_insert_id)
    except Exception as exc:
        stats.error = exc
        raise
    finally:
        db_cursor.close()
        query_logger.log_query(stats)


def exec_query(conn: Any, query: Query, query_logger: Optional[QueryLogger] = None) -> Result:
    """
    Execute ``query`` and return the rows affected and last insert id.

    The last insert id is only reported for SQLite and MySQL.
    """
    _check_inputs(conn, query)
    dialect = resolve_dialect(query.get_dialect())
    text, args, params = render(dialect, query)
    return _exec(conn, dialect, text, args, params, query_logger)


class CompiledFetch(Generic[T]):
    """
    A fetch query rendered once and run many times.

    Named parameters can be rebound on every run; see
    :func:`sqbind.core.parameters.substitute_params`.

    Example:
        >>> compiled = compile_fetch(
        ...     SQLite.from_(actor).where(actor.actor_id.eq(param("id", None))),
        ...     lambda row: row.string_field(actor.first_name),
        ... )
        >>> compiled.fetch_one(conn, {"id": 1})
        'PENELOPE'
    """

    def __init__(self, dialect: str, query: str, args: List[Any], params: Params, rowmapper: Callable[[Row], T]):
        self.dialect = dialect
        self.query = query
        self.args = args
        self.params = params
        self.rowmapper = rowmapper

    def get_sql(self) -> Tuple[str, str, List[Any], Params]:
        return self.dialect, self.query, list(self.args), {k: list(v) for k, v in self.params.items()}

    def _bound_args(self, values: Optional[Mapping[str, Any]]) -> List[Any]:
        if values is None:
            return list(self.args)
        return substitute_params(self.dialect, self.args, self.params, values)

    def fetch_cursor(
        self, conn: Any, params: Optional[Mapping[str, Any]] = None, query_logger: Optional[QueryLogger] = None
    ) -> Cursor[T]:
        if conn is None:
            raise SQLBuildError("db is nil")
        args = self._bound_args(params)
        return Cursor(conn, self.dialect, self.query, args, self.params, self.rowmapper, query_logger)

    def fetch_one(
        self, conn: Any, params: Optional[Mapping[str, Any]] = None, query_logger: Optional[QueryLogger] = None
    ) -> T:
        return _first(self.fetch_cursor(conn, params, query_logger))

    def fetch_all(
        self, conn: Any, params: Optional[Mapping[str, Any]] = None, query_logger: Optional[QueryLogger] = None
    ) -> List[T]:
        return _all(self.fetch_cursor(conn, params, query_logger))


def compile_fetch(query: Query, rowmapper: Callable[[Row], T]) -> CompiledFetch[T]:
    """Render a fetch query once, after splicing in the rowmapper's fields."""
    if query is None:
        raise SQLBuildError("query is nil")
    if rowmapper is None:
        raise SQLBuildError("rowmapper is nil")
    dialect = resolve_dialect(query.get_dialect())
    query = prepare_rowmapper(dialect, query, rowmapper)
    text, args, params = render(dialect, query)
    return CompiledFetch(dialect, text, args, params, rowmapper)


class CompiledExec:
    """A statement rendered once and executed many times."""

    def __init__(self, dialect: str, query: str, args: List[Any], params: Params):
        self.dialect = dialect
        self.query = query
        self.args = args
        self.params = params

    def get_sql(self) -> Tuple[str, str, List[Any], Params]:
        return self.dialect, self.query, list(self.args), {k: list(v) for k, v in self.params.items()}

    def exec(
        self, conn: Any, params: Optional[Mapping[str, Any]] = None, query_logger: Optional[QueryLogger] = None
    ) -> Result:
        if conn is None:
            raise SQLBuildError("db is nil")
        if params is None:
            args = list(self.args)
        else:
            args = substitute_params(self.dialect, self.args, self.params, params)
        return _exec(conn, self.dialect, self.query, args, self.params, query_logger)


def compile_exec(query: Query) -> CompiledExec:
    """Render a statement once for repeated execution."""
    if query is None:
        raise SQLBuildError("query is nil")
    dialect = resolve_dialect(query.get_dialect())
    text, args, params = render(dialect, query)
    return CompiledExec(dialect, text, args, params)
