"""Unit tests for rebinding compiled arguments by parameter name."""

import pytest

from sqbind.core.parameters import DEFAULT_VALUE, _Default, build_param_map, substitute_params
from sqbind.core.protocol import NamedArg, param
from sqbind.core.valuers import JSONValue
from sqbind.core.writer import to_sql
from sqbind.errors import ParameterError
from sqbind.expressions import expr


@pytest.mark.unit
class TestSubstituteParams:
    def test_replaces_recorded_slot(self):
        assert substitute_params("postgres", [1, 2], {"a": [1]}, {"a": 5}) == [1, 5]

    def test_original_args_untouched(self):
        args = [1, 2]

        substitute_params("postgres", args, {"a": [0]}, {"a": 9})

        assert args == [1, 2]

    def test_named_slot_keeps_its_name(self):
        result = substitute_params("sqlite", [NamedArg("a", 1)], {"a": [0]}, {"a": 2})

        assert result == [NamedArg("a", 2)]

    def test_every_slot_of_a_name_is_replaced(self):
        """MySQL records one slot per occurrence."""
        assert substitute_params("mysql", [1, 1, 3], {"a": [0, 1]}, {"a": 9}) == [9, 9, 3]

    def test_default_value_keeps_compiled_value(self):
        result = substitute_params("postgres", [1, 2], {"a": [0], "b": [1]}, {"a": DEFAULT_VALUE, "b": 7})

        assert result == [1, 7]

    def test_dialect_valuer_resolved(self):
        assert substitute_params("mysql", [None], {"a": [0]}, {"a": JSONValue([1])}) == ["[1]"]

    def test_missing_param(self):
        with pytest.raises(ParameterError, match=r"param 'b' not provided \(required: a, b\)"):
            substitute_params("postgres", [1, 2], {"a": [0], "b": [1]}, {"a": 1})

    def test_none_values_means_nothing_supplied(self):
        with pytest.raises(ParameterError):
            substitute_params("postgres", [1], {"a": [0]}, None)

    def test_index_outside_args(self):
        with pytest.raises(ParameterError, match="outside the argument list"):
            substitute_params("postgres", [1], {"a": [3]}, {"a": 1})

    def test_rebinds_rendered_query(self):
        """Round trip through to_sql: rebinding matches the recorded params."""
        params = {}
        _, args = to_sql("postgres", expr("a = {} AND b = {}", 1, param("b", 2)), params)

        assert substitute_params("postgres", args, params, {"b": 20}) == [1, 20]


@pytest.mark.unit
def test_build_param_map():
    args = [NamedArg("a", 1), 2]

    assert build_param_map(args, {"a": [0], "b": [1], "c": []}) == {"a": 1, "b": 2}


@pytest.mark.unit
def test_default_value_is_a_singleton():
    assert _Default() is DEFAULT_VALUE
    assert repr(DEFAULT_VALUE) == "DEFAULT_VALUE"
