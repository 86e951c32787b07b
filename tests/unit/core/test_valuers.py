"""Unit tests for dialect-aware value wrappers."""

import enum
import uuid

import pytest

from sqbind.core.valuers import (
    ArrayValue,
    EnumValue,
    JSONValue,
    UUIDValue,
    postgres_array,
    preprocess_value,
)
from sqbind.core.writer import to_sql
from sqbind.errors import SQLBuildError
from sqbind.expressions import expr


class Status(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Color(enum.Enum):
    RED = 1
    GREEN = 2


SAMPLE_UUID = uuid.UUID("12345678-1234-5678-1234-567812345678")


@pytest.mark.unit
class TestArrayValue:
    def test_postgres_array_literal(self):
        assert postgres_array([1, 2, 3]) == "{1,2,3}"
        assert postgres_array(["a", 'b"c']) == '{"a","b\\"c"}'
        assert postgres_array([True, False]) == "{t,f}"
        assert postgres_array([1.0, 2.5]) == "{1,2.5}"

    def test_postgres_gets_array_text(self):
        assert ArrayValue([1, 2]).dialect_value("postgres") == "{1,2}"

    def test_other_dialects_get_json(self):
        assert ArrayValue(["a", "b"]).dialect_value("mysql") == '["a","b"]'

    def test_rejects_non_list(self):
        with pytest.raises(SQLBuildError, match="is not a list"):
            ArrayValue("abc").dialect_value("postgres")

    def test_rejects_unsupported_elements(self):
        with pytest.raises(SQLBuildError):
            ArrayValue([object()]).dialect_value("postgres")


@pytest.mark.unit
class TestJSONValue:
    def test_compact_json_text(self):
        assert JSONValue({"a": [1, "x"]}).dialect_value("sqlite") == '{"a":[1,"x"]}'

    def test_unserializable(self):
        with pytest.raises(SQLBuildError, match="cannot encode"):
            JSONValue(object()).dialect_value("sqlite")


@pytest.mark.unit
class TestEnumValue:
    def test_string_backed_member_stores_value(self):
        assert EnumValue(Status.ACTIVE).dialect_value("postgres") == "active"

    def test_other_members_store_name(self):
        assert EnumValue(Color.RED).dialect_value("postgres") == "RED"

    def test_raw_value_validated_against_type(self):
        assert EnumValue("inactive", Status).dialect_value("mysql") == "inactive"
        assert EnumValue(2, Color).dialect_value("mysql") == "GREEN"
        assert EnumValue("RED", Color).dialect_value("mysql") == "RED"

    def test_invalid_member(self):
        with pytest.raises(SQLBuildError, match="is not a valid Status"):
            EnumValue("bogus", Status).dialect_value("postgres")

    def test_raw_value_without_type(self):
        with pytest.raises(SQLBuildError, match="is not an enum member"):
            EnumValue("active").dialect_value("postgres")


@pytest.mark.unit
class TestUUIDValue:
    def test_postgres_gets_text(self):
        assert UUIDValue(SAMPLE_UUID).dialect_value("postgres") == str(SAMPLE_UUID)

    def test_other_dialects_get_bytes(self):
        assert UUIDValue(str(SAMPLE_UUID)).dialect_value("sqlite") == SAMPLE_UUID.bytes

    def test_bytes_accepted(self):
        assert UUIDValue(SAMPLE_UUID.bytes).dialect_value("postgres") == str(SAMPLE_UUID)

    def test_invalid_text(self):
        with pytest.raises(SQLBuildError, match="not a valid UUID"):
            UUIDValue("not-a-uuid").dialect_value("postgres")

    def test_wrong_byte_length(self):
        with pytest.raises(SQLBuildError, match="not 16 bytes"):
            UUIDValue(b"\x00\x01").dialect_value("mysql")

    def test_bound_through_writef(self):
        assert to_sql("postgres", expr("id = {}", UUIDValue(SAMPLE_UUID))) == ("id = $1", [str(SAMPLE_UUID)])


@pytest.mark.unit
def test_preprocess_value():
    assert preprocess_value("postgres", Status.ACTIVE) == "active"
    assert preprocess_value("mysql", SAMPLE_UUID) == SAMPLE_UUID.bytes
    assert preprocess_value("postgres", JSONValue(1)) == "1"
    assert preprocess_value("postgres", 5) == 5
