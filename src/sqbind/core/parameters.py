"""
Rebinding compiled arguments by parameter name.

A rendered query records, for every named parameter, the argument slots its
value was written to. ``substitute_params`` swaps new values into those
slots so a compiled query can be executed again without re-rendering.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqbind.core.protocol import NamedArg
from sqbind.core.valuers import preprocess_value
from sqbind.errors import ParameterError


class _Default:
    """Sentinel telling ``substitute_params`` to keep the compiled value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DEFAULT_VALUE"


DEFAULT_VALUE = _Default()


def build_param_map(args: Sequence[Any], params: Mapping[str, List[int]]) -> Dict[str, Any]:
    """Return the current value bound under each parameter name."""
    values: Dict[str, Any] = {}
    for name, indices in params.items():
        if not indices:
            continue
        arg = args[indices[0]]
        values[name] = arg.value if isinstance(arg, NamedArg) else arg
    return values


def substitute_params(
    dialect: str,
    args: Sequence[Any],
    params: Mapping[str, List[int]],
    values: Optional[Mapping[str, Any]],
) -> List[Any]:
    """
    Return a copy of ``args`` with named parameter slots rebound to ``values``.

    Every parameter recorded in ``params`` must be supplied; pass
    ``DEFAULT_VALUE`` to keep the compiled value for a name. Slots holding a
    NamedArg keep their name.

    Args:
        dialect: Dialect the arguments were rendered for
        args: Compiled argument list
        params: Parameter name -> argument indices, as recorded while rendering
        values: New values keyed by parameter name

    Raises:
        ParameterError: if a recorded parameter is missing from ``values``

    Example:
        >>> substitute_params("postgres", [1, 2], {"a": [1]}, {"a": 5})
        [1, 5]
    """
    new_args = list(args)
    values = values or {}
    missing = sorted(name for name in params if name not in values)
    if missing:
        required = ", ".join(sorted(params))
        raise ParameterError(
            f"param {missing[0]!r} not provided (required: {required})"
        )
    for name, indices in params.items():
        value = values[name]
        if value is DEFAULT_VALUE:
            continue
        value = preprocess_value(dialect, value)
        for index in indices:
            if index < 0 or index >= len(new_args):
                raise ParameterError(f"param {name!r} points outside the argument list")
            if isinstance(new_args[index], NamedArg):
                new_args[index] = NamedArg(new_args[index].name, value)
            else:
                new_args[index] = value
    return new_args
