"""
Composable SQL fragment protocol.

Every renderable value (expressions, predicates, sub-queries, field lists,
assignments) implements :class:`SQLWriter`. The marker subclasses tell the
statement builders where a fragment may appear; the engine itself only cares
about ``write_sql``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Any, Dict, List, Optional, Sequence, Tuple

Args = List[Any]
Params = Optional[Dict[str, List[int]]]


class SQLWriter(ABC):
    """Anything that can write itself as SQL."""

    @abstractmethod
    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        """
        Write the SQL representation into ``buf`` and its arguments into ``args``.

        ``params`` maps parameter names to their indices in ``args`` and is
        used to rebind arguments by name later. It may be None; check before
        writing to it. Failures are raised as SQLBuildError and callers
        prefix them with the failing position. Any other exception is a
        defect in the writer and propagates unchanged.
        """


class Field(SQLWriter):
    """A table column or an SQL expression."""


class Predicate(Field):
    """An SQL expression that evaluates to true or false."""


class Table(SQLWriter):
    """Anything that can be selected from or joined."""


class PolicyTable(Table):
    """A table that contributes a predicate to every query it appears in.

    Works like row level security enforced application-side. Only SELECT,
    UPDATE and DELETE queries are affected.
    """

    @abstractmethod
    def policy(self, dialect: str) -> Optional[Predicate]:
        ...


class Assignment(SQLWriter):
    """An SQL assignment ``field = value``."""


class Window(SQLWriter):
    """A window used by SQL window functions."""


class Query(Table, Field):
    """A SELECT, INSERT, UPDATE or DELETE (or raw) query."""

    @abstractmethod
    def set_fetchable_fields(self, fields: Sequence[Field]) -> Tuple["Query", bool]:
        """Return a copy of the query fetching ``fields``.

        The second element is False when the query cannot fetch fields.
        """

    @abstractmethod
    def get_dialect(self) -> str:
        ...


class DialectValuer(ABC):
    """A value whose bound representation depends on the dialect."""

    @abstractmethod
    def dialect_value(self, dialect: str) -> Any:
        """Return the concrete value to bind for ``dialect``."""


@dataclass(frozen=True)
class NamedArg:
    """A value tagged with a name for ``{name}`` lookup and rebinding."""

    name: str
    value: Any


def named(name: str, value: Any) -> NamedArg:
    """Shortcut for ``NamedArg(name, value)``."""
    return NamedArg(name, value)


@dataclass(frozen=True)
class Parameter(NamedArg, Field):
    """A named argument that can also be used wherever a field is expected."""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        from sqbind.core.writer import write_named_arg

        write_named_arg(dialect, buf, args, params, self)

    def get_alias(self) -> str:
        return ""


class BinaryParameter(Parameter):
    pass


class BooleanParameter(Parameter, Predicate):
    pass


class NumberParameter(Parameter):
    pass


class StringParameter(Parameter):
    pass


class TimeParameter(Parameter):
    pass


def param(name: str, value: Any) -> Parameter:
    return Parameter(name, value)


def bytes_param(name: str, value: bytes) -> BinaryParameter:
    return BinaryParameter(name, value)


def bool_param(name: str, value: bool) -> BooleanParameter:
    return BooleanParameter(name, value)


def int_param(name: str, value: int) -> NumberParameter:
    return NumberParameter(name, value)


def float_param(name: str, value: float) -> NumberParameter:
    return NumberParameter(name, value)


def string_param(name: str, value: str) -> StringParameter:
    return StringParameter(name, value)


def time_param(name: str, value: datetime) -> TimeParameter:
    return TimeParameter(name, value)


def get_alias(w: Any) -> str:
    """Return the alias of ``w`` if it reports one, else an empty string."""
    getter = getattr(w, "get_alias", None)
    if getter is None:
        return ""
    return getter() or ""


def with_prefix(w: SQLWriter, prefix: str) -> SQLWriter:
    """Return ``w`` re-qualified with ``prefix`` if it supports it."""
    method = getattr(w, "with_prefix", None)
    if method is None:
        return w
    return method(prefix)
