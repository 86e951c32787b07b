"""
Tables and typed columns.

Tables are declared as ``TableStruct`` subclasses with column descriptors:

    >>> class Actor(TableStruct):
    ...     __tablename__ = "actor"
    ...     actor_id = NumberField()
    ...     first_name = StringField()
    >>> a = Actor("a")
    >>> to_sql("postgres", a.first_name.eq("bob"))
    ('a.first_name = $1', ['bob'])

Reading a column through a table instance returns the column bound to that
instance, qualified by its alias (or its name when it has no alias).
"""

from dataclasses import dataclass, replace
from io import StringIO
from typing import Any, Dict, Optional, Tuple

from sqbind.core.dialect import POSTGRES
from sqbind.core.identifier import escape_quote, quote_identifier
from sqbind.core.protocol import Args, Assignment, Field, Params, Predicate, Table
from sqbind.core.valuers import ArrayValue, EnumValue, JSONValue, UUIDValue
from sqbind.expressions.assignments import set_, setf
from sqbind.expressions.expression import Comparable, Expression, cmp, expr


class TableStruct(Table):
    """
    A database table.

    Subclasses may set ``__tablename__`` and ``__schema__``; the table name
    defaults to the lowercased class name.
    """

    __tablename__ = ""
    __schema__ = ""

    def __init__(self, alias: str = "", *, name: Optional[str] = None, schema: Optional[str] = None):
        cls = type(self)
        if name is None:
            name = cls.__tablename__ or ("" if cls is TableStruct else cls.__name__.lower())
        self.table_schema = cls.__schema__ if schema is None else schema
        self.table_name = name
        self.table_alias = alias

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        if self.table_schema:
            buf.write(quote_identifier(dialect, self.table_schema) + ".")
        buf.write(quote_identifier(dialect, self.table_name))

    def get_alias(self) -> str:
        return self.table_alias

    @classmethod
    def columns(cls) -> Dict[str, "BaseField"]:
        """Return the declared columns keyed by attribute name."""
        found: Dict[str, BaseField] = {}
        for klass in reversed(cls.__mro__):
            for attr, value in vars(klass).items():
                if isinstance(value, BaseField):
                    found[attr] = value
        return found

    def fields(self) -> Tuple["BaseField", ...]:
        """Return every declared column bound to this table."""
        return tuple(getattr(self, attr) for attr in type(self).columns())

    def _key(self) -> Tuple[str, str, str]:
        return (self.table_schema, self.table_name, self.table_alias)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableStruct):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(schema={self.table_schema!r}, name={self.table_name!r}, alias={self.table_alias!r})"


def new_table_struct(schema: str, name: str, alias: str) -> TableStruct:
    return TableStruct(alias, name=name, schema=schema)


@dataclass(frozen=True)
class Identifier(Field):
    """An identifier, quoted when the dialect requires it."""

    name: str

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        buf.write(quote_identifier(dialect, self.name))


def write_field_identifier(dialect: str, buf: StringIO, table: Optional[TableStruct], name: str) -> None:
    qualifier = ""
    if table is not None:
        # a table-valued function alias such as "t(a, b)" qualifies by "t"
        qualifier = table.table_alias.split("(", 1)[0].rstrip(" ")
        if not qualifier:
            qualifier = table.table_name
    if qualifier:
        buf.write(quote_identifier(dialect, qualifier) + ".")
    buf.write(quote_identifier(dialect, name))


def write_field_order(buf: StringIO, desc: Optional[bool], nulls_first: Optional[bool]) -> None:
    if desc is not None:
        buf.write(" DESC" if desc else " ASC")
    if nulls_first is not None:
        buf.write(" NULLS FIRST" if nulls_first else " NULLS LAST")


@dataclass(frozen=True)
class BaseField(Comparable, Field):
    """A table column."""

    name: str = ""
    table: Optional[TableStruct] = None
    alias: str = ""
    order_desc: Optional[bool] = None
    order_nulls_first: Optional[bool] = None

    def __set_name__(self, owner: type, attr: str) -> None:
        if not self.name:
            object.__setattr__(self, "name", attr)

    def __get__(self, instance: Optional[TableStruct], owner: type) -> Any:
        if instance is None:
            return self
        return replace(self, table=instance)

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        write_field_identifier(dialect, buf, self.table, self.name)
        write_field_order(buf, self.order_desc, self.order_nulls_first)

    def as_(self, alias: str):
        return replace(self, alias=alias)

    def asc(self):
        return replace(self, order_desc=False)

    def desc(self):
        return replace(self, order_desc=True)

    def nulls_first(self):
        return replace(self, order_nulls_first=True)

    def nulls_last(self):
        return replace(self, order_nulls_first=False)

    def with_prefix(self, prefix: str) -> Field:
        """Return the column qualified by ``prefix`` instead of its table."""
        return replace(self, table=TableStruct(name=prefix, schema=""))

    def get_alias(self) -> str:
        return self.alias

    def is_null(self) -> Predicate:
        return expr("{} IS NULL", self)

    def is_not_null(self) -> Predicate:
        return expr("{} IS NOT NULL", self)

    def expr(self, format: str, *values: Any) -> Expression:
        """Return an expression with the column written in front of ``format``."""
        values = values + (self,)
        return expr("{" + str(len(values)) + "} " + format, *values)

    def set(self, value: Any) -> Assignment:
        return set_(self, value)

    def setf(self, format: str, *values: Any) -> Assignment:
        return setf(self, format, *values)


class AnyField(BaseField):
    """A column of any type."""


class ArrayField(BaseField):
    def set_array(self, value: Any) -> Assignment:
        return set_(self, ArrayValue(value))


class BinaryField(BaseField):
    pass


class BooleanField(BaseField, Predicate):
    pass


class EnumField(BaseField):
    def eq_enum(self, value: Any) -> Predicate:
        return cmp("=", self, EnumValue(value))

    def ne_enum(self, value: Any) -> Predicate:
        return cmp("<>", self, EnumValue(value))

    def set_enum(self, value: Any) -> Assignment:
        return set_(self, EnumValue(value))


class JSONField(BaseField):
    def set_json(self, value: Any) -> Assignment:
        return set_(self, JSONValue(value))


class NumberField(BaseField):
    pass


@dataclass(frozen=True)
class StringField(BaseField):
    collation: str = ""

    def write_sql(self, dialect: str, buf: StringIO, args: Args, params: Params) -> None:
        write_field_identifier(dialect, buf, self.table, self.name)
        if self.collation:
            buf.write(" COLLATE ")
            if dialect == POSTGRES:
                buf.write('"' + escape_quote(self.collation, '"') + '"')
            else:
                buf.write(quote_identifier(dialect, self.collation))
        write_field_order(buf, self.order_desc, self.order_nulls_first)

    def collate(self, collation: str) -> "StringField":
        return replace(self, collation=collation)

    def like(self, pattern: Any) -> Predicate:
        return expr("{} LIKE {}", self, pattern)

    def ilike(self, pattern: Any) -> Predicate:
        return expr("{} ILIKE {}", self, pattern)


class TimeField(BaseField):
    pass


class UUIDField(BaseField):
    def eq_uuid(self, value: Any) -> Predicate:
        return cmp("=", self, UUIDValue(value))

    def ne_uuid(self, value: Any) -> Predicate:
        return cmp("<>", self, UUIDValue(value))

    def set_uuid(self, value: Any) -> Assignment:
        return set_(self, UUIDValue(value))
