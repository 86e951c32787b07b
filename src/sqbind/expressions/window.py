"""Window definitions and window functions."""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, Optional, Sequence, Tuple

from sqbind.core.protocol import Args, Field, Params, SQLWriter, Window
from sqbind.core.writer import write_fields, writef
from sqbind.errors import SQLBuildError, wrap
from sqbind.expressions.expression import Expression, expr


@dataclass(frozen=True)
class WindowDefinition(Window):
    """``(base PARTITION BY ... ORDER BY ... frame)``."""

    base_window_name: str = ""
    partition_by_fields: Tuple[Field, ...] = ()
    order_by_fields: Tuple[Field, ...] = ()
    frame_spec: str = ""
    frame_values: Tuple[Any, ...] = ()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        written = False
        buf.write("(")
        if self.base_window_name:
            buf.write(self.base_window_name + " ")
        if self.partition_by_fields:
            written = True
            buf.write("PARTITION BY ")
            try:
                write_fields(dialect, buf, args, params, self.partition_by_fields, False)
            except SQLBuildError as exc:
                raise wrap("Window PARTITION BY", exc) from exc
        if self.order_by_fields:
            if written:
                buf.write(" ")
            written = True
            buf.write("ORDER BY ")
            try:
                write_fields(dialect, buf, args, params, self.order_by_fields, False)
            except SQLBuildError as exc:
                raise wrap("Window ORDER BY", exc) from exc
        if self.frame_spec:
            if written:
                buf.write(" ")
            try:
                writef(dialect, buf, args, params, self.frame_spec, self.frame_values)
            except SQLBuildError as exc:
                raise wrap("Window FRAME", exc) from exc
        buf.write(")")

    def partition_by(self, *fields: Field) -> "WindowDefinition":
        return replace(self, partition_by_fields=fields)

    def order_by(self, *fields: Field) -> "WindowDefinition":
        return replace(self, order_by_fields=fields)

    def frame(self, frame_spec: str, *frame_values: Any) -> "WindowDefinition":
        return replace(self, frame_spec=frame_spec, frame_values=frame_values)


@dataclass(frozen=True)
class NamedWindow(Window):
    """A window declared in the WINDOW clause and referenced by name."""

    name: str
    definition: WindowDefinition = WindowDefinition()

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write(self.name)


def base_window(window: NamedWindow) -> WindowDefinition:
    return WindowDefinition(base_window_name=window.name)


def partition_by(*fields: Field) -> WindowDefinition:
    return WindowDefinition(partition_by_fields=fields)


def order_by(*fields: Field) -> WindowDefinition:
    return WindowDefinition(order_by_fields=fields)


class NamedWindows(SQLWriter):
    """The body of a WINDOW clause: ``w1 AS (...), w2 AS (...)``."""

    def __init__(self, windows: Sequence[NamedWindow] = ()):
        self.windows = list(windows)

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        for i, window in enumerate(self.windows):
            if i > 0:
                buf.write(", ")
            buf.write(window.name + " AS ")
            try:
                window.definition.write_sql(dialect, buf, args, params)
            except SQLBuildError as exc:
                raise wrap(f"window #{i + 1}", exc) from exc

    def __len__(self) -> int:
        return len(self.windows)


def _over(function: str, window: Optional[Window], *values: Any) -> Expression:
    if window is None:
        return expr(function + " OVER ()", *values)
    return expr(function + " OVER {}", *values, window)


def count_over(field: Field, window: Optional[Window] = None) -> Expression:
    return _over("COUNT({})", window, field)


def count_star_over(window: Optional[Window] = None) -> Expression:
    return _over("COUNT(*)", window)


def sum_over(num: Field, window: Optional[Window] = None) -> Expression:
    return _over("SUM({})", window, num)


def avg_over(num: Field, window: Optional[Window] = None) -> Expression:
    return _over("AVG({})", window, num)


def min_over(field: Field, window: Optional[Window] = None) -> Expression:
    return _over("MIN({})", window, field)


def max_over(field: Field, window: Optional[Window] = None) -> Expression:
    return _over("MAX({})", window, field)


def row_number_over(window: Optional[Window] = None) -> Expression:
    return _over("ROW_NUMBER()", window)


def rank_over(window: Optional[Window] = None) -> Expression:
    return _over("RANK()", window)


def dense_rank_over(window: Optional[Window] = None) -> Expression:
    return _over("DENSE_RANK()", window)


def cume_dist_over(window: Optional[Window] = None) -> Expression:
    return _over("CUME_DIST()", window)


def first_value_over(field: Field, window: Optional[Window] = None) -> Expression:
    return _over("FIRST_VALUE({})", window, field)


def last_value_over(field: Field, window: Optional[Window] = None) -> Expression:
    return _over("LAST_VALUE({})", window, field)
