"""
Template substitution engine.

``writef`` walks a format template and resolves its placeholders against a
value pool:

- ``{}`` consumes the next value in order (a running cursor),
- ``{N}`` refers to the N-th value (1-based),
- ``{name}`` refers to the named value carrying that name,
- ``{{`` writes a literal ``{``.

Each resolved value is rendered by ``write_value``: named values go through
the slot tracker in ``write_named_arg``, fragments render themselves,
sequences expand into a comma separated list and anything else becomes a
bound argument behind the dialect's placeholder.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqbind.core.buffer import bufpool
from sqbind.core.dialect import POSTGRES, SQLITE, SQLSERVER, Dialect, placeholder
from sqbind.core.identifier import quote_identifier
from sqbind.core.protocol import (
    Args,
    DialectValuer,
    Field,
    NamedArg,
    Params,
    Query,
    SQLWriter,
    get_alias,
    with_prefix,
)
from sqbind.errors import (
    DuplicateParameterError,
    PlaceholderResolutionError,
    SQLBuildError,
    TemplateSyntaxError,
    wrap,
)


@dataclass
class RenderState:
    """Substitution state shared by every sub-pass over one template."""

    running_values_index: int = 0
    # ordinal -> index in args already holding that ordinal's value
    ordinal_index: Dict[int, int] = field(default_factory=dict)


def writef(
    dialect: str, buf: StringIO, args: Args, params: Params, fmt: str, values: Sequence
) -> None:
    """
    Write ``fmt`` into ``buf`` with its placeholders resolved against ``values``.

    Example:
        >>> buf, args = StringIO(), []
        >>> writef("postgres", buf, args, {}, "a = {} AND b = {}", [1, "x"])
        >>> buf.getvalue(), args
        ('a = $1 AND b = $2', [1, 'x'])
    """
    writef_part(dialect, buf, args, params, fmt, values, None)


def writef_part(
    dialect: str,
    buf: StringIO,
    args: Args,
    params: Params,
    fmt: str,
    values: Sequence,
    state: Optional[RenderState],
) -> None:
    """Like ``writef`` but continues from ``state`` when rendering a split template."""
    if "{" not in fmt:
        buf.write(fmt)
        return

    named_index: Dict[str, int] = {}
    for i, value in enumerate(values):
        if isinstance(value, NamedArg):
            if value.name in named_index:
                raise DuplicateParameterError(value.name)
            named_index[value.name] = i

    if state is None:
        state = RenderState()

    while True:
        i = fmt.find("{")
        if i < 0:
            break
        if i + 1 < len(fmt) and fmt[i + 1] == "{":
            buf.write(fmt[:i])
            buf.write("{")
            fmt = fmt[i + 2:]
            continue
        buf.write(fmt[:i])
        fmt = fmt[i:]

        j = fmt.find("}")
        if j < 0:
            raise TemplateSyntaxError("no '}' found")
        name = fmt[1:j]
        fmt = fmt[j + 1:]
        for char in name:
            if char != "_" and not char.isalpha() and not char.isdigit():
                raise TemplateSyntaxError(
                    f"{name!r} is not a valid param name "
                    "(only letters, digits and '_' are allowed)"
                )

        # anonymous: {}
        if name == "":
            if state.running_values_index >= len(values):
                raise PlaceholderResolutionError(
                    "too few values passed in to writef, "
                    f"expected more than {state.running_values_index}"
                )
            position = state.running_values_index
            state.running_values_index += 1
            _render(position + 1, write_value, dialect, buf, args, params, values[position])
            continue

        # ordinal: {1}, {2}, {3}
        if name.isascii() and name.isdigit():
            ordinal = int(name)
            if ordinal < 1 or ordinal > len(values):
                raise PlaceholderResolutionError(
                    f"ordinal parameter {{{ordinal}}} is out of bounds"
                )
            _render(
                ordinal, write_ordinal_value,
                dialect, buf, args, params, values, ordinal, state.ordinal_index,
            )
            continue

        # named: {name}
        if name not in named_index:
            available = ", ".join(sorted(named_index))
            raise PlaceholderResolutionError(
                f"named parameter {{{name}}} not provided (available params: {available})"
            )
        position = named_index[name]
        _render(position + 1, write_value, dialect, buf, args, params, values[position])
    buf.write(fmt)


def _render(position: int, func: Callable[..., None], *func_args: Any) -> None:
    # only build errors get position context; anything else is a bug and propagates
    try:
        func(*func_args)
    except SQLBuildError as exc:
        raise wrap(f"value #{position}", exc) from exc


def is_expandable(value: Any) -> bool:
    """Report whether ``value`` expands into one placeholder per element.

    Text and binary values are always single values.
    """
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        return False
    return isinstance(value, Sequence)


def expand_sequence(dialect: str, buf: StringIO, args: Args, params: Params, values: Sequence) -> None:
    for i, value in enumerate(values):
        if i > 0:
            buf.write(", ")
        if isinstance(value, SQLWriter):
            value.write_sql(dialect, buf, args, params)
            continue
        buf.write(placeholder(dialect, len(args) + 1))
        append_arg(dialect, args, value)


def write_value(dialect: str, buf: StringIO, args: Args, params: Params, value: Any) -> None:
    """Render a single value. This is ``writef`` for one ``{}``."""
    if isinstance(value, NamedArg):
        write_named_arg(dialect, buf, args, params, value)
        return
    if isinstance(value, SQLWriter):
        value.write_sql(dialect, buf, args, params)
        return
    if is_expandable(value):
        expand_sequence(dialect, buf, args, params, value)
        return
    append_arg(dialect, args, value)
    buf.write(placeholder(dialect, len(args)))


def resolve_value(dialect: str, value: Any) -> Any:
    """Resolve a DialectValuer to its concrete value for ``dialect``."""
    if isinstance(value, DialectValuer):
        return value.dialect_value(dialect)
    return value


def append_arg(dialect: str, args: Args, arg: Any) -> None:
    """Append ``arg`` to ``args``, resolving dialect valuers first.

    Named arguments keep their name; only the wrapped value is resolved.
    """
    if isinstance(arg, NamedArg):
        args.append(NamedArg(arg.name, resolve_value(dialect, arg.value)))
        return
    args.append(resolve_value(dialect, arg))


def write_named_arg(
    dialect: str, buf: StringIO, args: Args, params: Params, named_arg: NamedArg
) -> None:
    """
    Bind a named value, reusing its slot when the dialect allows it.

    SQLite and SQL Server bind by name (``$name``, ``@name``), Postgres reuses
    the numbered slot (``$N``). Other dialects have no reusable markers, so
    every occurrence appends a fresh ``?`` and all earlier slots for the name
    are updated to the latest value.
    """
    value = named_arg.value
    if isinstance(value, SQLWriter):
        value.write_sql(dialect, buf, args, params)
        return
    if is_expandable(value):
        expand_sequence(dialect, buf, args, params, value)
        return
    name = named_arg.name
    indices: List[int] = list(params.get(name, ())) if params is not None else []
    if indices:
        index = indices[0]
        if dialect == SQLITE:
            args[index] = NamedArg(name, resolve_value(dialect, value))
            buf.write("$" + name)
            return
        if dialect == POSTGRES:
            args[index] = resolve_value(dialect, value)
            buf.write(f"${index + 1}")
            return
        if dialect == SQLSERVER:
            args[index] = NamedArg(name, resolve_value(dialect, value))
            buf.write("@" + name)
            return
        resolved = resolve_value(dialect, value)
        for index in indices:
            args[index] = resolved

    if dialect == SQLITE:
        append_arg(dialect, args, NamedArg(name, value))
        if params is not None:
            params[name] = [len(args) - 1]
        buf.write("$" + name)
    elif dialect == POSTGRES:
        append_arg(dialect, args, value)
        if params is not None:
            params[name] = [len(args) - 1]
        buf.write(f"${len(args)}")
    elif dialect == SQLSERVER:
        append_arg(dialect, args, NamedArg(name, value))
        if params is not None:
            params[name] = [len(args) - 1]
        buf.write("@" + name)
    else:
        append_arg(dialect, args, value)
        if params is not None:
            params[name] = indices + [len(args) - 1]
        buf.write("?")


def write_ordinal_value(
    dialect: str,
    buf: StringIO,
    args: Args,
    params: Params,
    values: Sequence,
    ordinal: int,
    ordinal_index: Dict[int, int],
) -> None:
    """
    Render ``values[ordinal - 1]``.

    SQLite, Postgres and SQL Server bind a repeated ordinal once and point
    every reference at that slot. Other dialects re-render the value each
    time.
    """
    index = ordinal - 1
    if index < 0 or index >= len(values):
        raise PlaceholderResolutionError(f"ordinal parameter {{{ordinal}}} is out of bounds")
    value = values[index]
    if isinstance(value, NamedArg):
        write_named_arg(dialect, buf, args, params, value)
        return
    if isinstance(value, SQLWriter):
        value.write_sql(dialect, buf, args, params)
        return
    if is_expandable(value):
        expand_sequence(dialect, buf, args, params, value)
        return
    if dialect in (SQLITE, POSTGRES, SQLSERVER):
        slot = ordinal_index.get(ordinal)
        if slot is None:
            append_arg(dialect, args, value)
            slot = len(args) - 1
            ordinal_index[ordinal] = slot
        buf.write(placeholder(dialect, slot + 1))
        return
    write_value(dialect, buf, args, params, value)


def write_fields(
    dialect: str,
    buf: StringIO,
    args: Args,
    params: Params,
    fields: Sequence[Field],
    include_alias: bool,
) -> None:
    """Write a comma separated field list, parenthesising sub-queries."""
    for i, item in enumerate(fields):
        if item is None:
            raise SQLBuildError(f"field #{i + 1} is nil")
        if i > 0:
            buf.write(", ")
        is_query = isinstance(item, Query)
        if is_query:
            buf.write("(")
        try:
            item.write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap(f"field #{i + 1}", exc) from exc
        if is_query:
            buf.write(")")
        if include_alias:
            alias = get_alias(item)
            if alias:
                buf.write(" AS " + quote_identifier(dialect, alias))


def write_fields_with_prefix(
    dialect: str,
    buf: StringIO,
    args: Args,
    params: Params,
    fields: Sequence[Field],
    prefix: str,
    include_alias: bool,
) -> None:
    """Write a field list with every field re-qualified by ``prefix``."""
    for i, item in enumerate(fields):
        if item is None:
            raise SQLBuildError(f"field #{i + 1} is nil")
        if i > 0:
            buf.write(", ")
        try:
            with_prefix(item, prefix).write_sql(dialect, buf, args, params)
        except SQLBuildError as exc:
            raise wrap(f"field #{i + 1}", exc) from exc
        if include_alias:
            alias = get_alias(item)
            if alias:
                buf.write(" AS " + quote_identifier(dialect, alias))


def to_sql(
    dialect: str, w: SQLWriter, params: Params = None
) -> Tuple[str, List[Any]]:
    """
    Render ``w`` into a query string and its argument list.

    When ``dialect`` is empty and ``w`` is a query, the query's own dialect
    is used. ``params`` receives the name to argument-index mapping; a fresh
    mapping is used when None is passed.

    Example:
        >>> from sqbind import expr
        >>> to_sql("postgres", expr("a = {} OR b = {}", 1, 2))
        ('a = $1 OR b = $2', [1, 2])
    """
    if w is None:
        raise SQLBuildError("SQLWriter is nil")
    if isinstance(dialect, Dialect):
        dialect = dialect.value
    if not dialect and isinstance(w, Query):
        dialect = w.get_dialect()
    if params is None:
        params = {}
    args: List[Any] = []
    with bufpool.borrow() as buf:
        w.write_sql(dialect, buf, args, params)
        return buf.getvalue(), args
