"""
Dialect-aware value wrappers.

Each wrapper is resolved to a concrete driver value right before it is
appended to the argument list, so the same query renders correctly for
every dialect.
"""

import enum
import json
import uuid
from typing import Any, List, Optional, Sequence

from sqbind.core.dialect import POSTGRES
from sqbind.core.protocol import DialectValuer
from sqbind.errors import SQLBuildError

_ARRAY_TYPES = (str, bool, int, float)


def _format_float(value: float) -> str:
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


def _quote_array_element(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def postgres_array(values: Sequence[Any]) -> str:
    """
    Encode a one-dimensional sequence as a Postgres array literal.

    Examples:
        >>> postgres_array([1, 2, 3])
        '{1,2,3}'
        >>> postgres_array(["a", 'b"c'])
        '{"a","b\\\\"c"}'
        >>> postgres_array([True, False])
        '{t,f}'
    """
    items: List[str] = []
    for value in values:
        if isinstance(value, bool):
            items.append("t" if value else "f")
        elif isinstance(value, int):
            items.append(str(int(value)))
        elif isinstance(value, float):
            items.append(_format_float(value))
        else:
            items.append(_quote_array_element(str(value)))
    return "{" + ",".join(items) + "}"


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SQLBuildError(f"cannot encode {value!r} as JSON: {exc}") from exc


class ArrayValue(DialectValuer):
    """A list of strings, ints, floats or bools.

    Serialized as a Postgres array for Postgres and as a JSON array elsewhere.
    """

    def __init__(self, value: Sequence[Any]):
        self.value = value

    def dialect_value(self, dialect: str) -> Any:
        if isinstance(self.value, (str, bytes)) or not isinstance(self.value, (list, tuple)):
            raise SQLBuildError(
                f"value {self.value!r} is not a list of str, int, float or bool"
            )
        kinds = {type(item) for item in self.value}
        if any(not issubclass(kind, _ARRAY_TYPES) for kind in kinds):
            raise SQLBuildError(
                f"value {self.value!r} is not a list of str, int, float or bool"
            )
        if dialect != POSTGRES:
            return _to_json(list(self.value))
        return postgres_array(self.value)

    def __repr__(self) -> str:
        return f"ArrayValue({self.value!r})"


class JSONValue(DialectValuer):
    """Any JSON-serializable value, bound as its JSON text."""

    def __init__(self, value: Any):
        self.value = value

    def dialect_value(self, dialect: str) -> Any:
        return _to_json(self.value)

    def __repr__(self) -> str:
        return f"JSONValue({self.value!r})"


def enum_text(value: enum.Enum) -> str:
    """Return the stored text of an enum member.

    String-backed enums store their value, every other enum stores its
    member name.
    """
    if isinstance(value.value, str):
        return value.value
    return value.name


class EnumValue(DialectValuer):
    """An ``enum.Enum`` member, bound as its text after validation."""

    def __init__(self, value: Any, enum_type: Optional[type] = None):
        self.value = value
        self.enum_type = enum_type

    def dialect_value(self, dialect: str) -> Any:
        value = self.value
        if isinstance(value, enum.Enum):
            return enum_text(value)
        enum_type = self.enum_type
        if enum_type is None or not issubclass(enum_type, enum.Enum):
            raise SQLBuildError(f"{value!r} is not an enum member")
        for member in enum_type:
            if value == member.value or value == member.name:
                return enum_text(member)
        raise SQLBuildError(f"{value!r} is not a valid {enum_type.__name__}")

    def __repr__(self) -> str:
        return f"EnumValue({self.value!r})"


def to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 16:
            raise SQLBuildError(f"{value!r} is not 16 bytes")
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError as exc:
            raise SQLBuildError(f"{value!r} is not a valid UUID") from exc
    raise SQLBuildError(f"{value!r} ({type(value).__name__}) is not a UUID")


class UUIDValue(DialectValuer):
    """A UUID, bound as canonical text for Postgres and 16 raw bytes elsewhere."""

    def __init__(self, value: Any):
        self.value = value

    def dialect_value(self, dialect: str) -> Any:
        parsed = to_uuid(self.value)
        if dialect == POSTGRES:
            return str(parsed)
        return parsed.bytes

    def __repr__(self) -> str:
        return f"UUIDValue({self.value!r})"


def preprocess_value(dialect: str, value: Any) -> Any:
    """Convert ``value`` into something a DB-API driver accepts for ``dialect``."""
    if isinstance(value, DialectValuer):
        value = value.dialect_value(dialect)
    if isinstance(value, enum.Enum):
        return enum_text(value)
    if isinstance(value, uuid.UUID):
        return UUIDValue(value).dialect_value(dialect)
    return value
