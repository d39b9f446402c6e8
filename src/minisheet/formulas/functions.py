"""Function table: upper-case name -> reducer over a flattened argument list.

Every reducer receives the evaluated argument vector.  Range arguments
arrive as lists and are concatenated with the scalar arguments; every
element is coerced to a number first and the first in-band error, left
to right, is the result.
"""

from __future__ import annotations

from typing import Any, Callable

from minisheet.formulas.errors import ErrorValue
from minisheet.formulas.values import checked, coerce_number

_FUNCTIONS: dict[str, Callable[[list], Any]] = {}


def register_function(name: str) -> Callable:
    """Decorator that registers a reducer by name.

    Args:
        name: The lookup name for this function (upper case).

    Returns:
        The original function, unmodified.
    """

    def decorator(fn: Callable) -> Callable:
        _FUNCTIONS[name.upper()] = fn
        return fn

    return decorator


def has_function(name: str) -> bool:
    """Check if *name* (already upper-cased) is in the table."""
    return name in _FUNCTIONS


def get_function(name: str) -> Callable[[list], Any]:
    """Look up a registered reducer.

    Raises:
        KeyError: If no function is registered under *name*.
    """
    if name not in _FUNCTIONS:
        raise KeyError(f"Unknown function: {name!r}")
    return _FUNCTIONS[name]


def function_table() -> dict[str, Callable[[list], Any]]:
    """Snapshot of the registered functions."""
    return dict(_FUNCTIONS)


def flatten_args(args: list) -> list[float] | ErrorValue:
    """Flatten one level of lists and coerce every element.

    Returns the flat list of numbers, or the first in-band error.
    """
    result: list[float] = []
    for arg in args:
        items = arg if isinstance(arg, list) else [arg]
        for item in items:
            number = coerce_number(item)
            if isinstance(number, ErrorValue):
                return number
            result.append(number)
    return result


@register_function("SUM")
def _fn_sum(args: list) -> float | ErrorValue:
    values = flatten_args(args)
    if isinstance(values, ErrorValue):
        return values
    return checked(sum(values, 0.0))


@register_function("MIN")
def _fn_min(args: list) -> float | ErrorValue:
    values = flatten_args(args)
    if isinstance(values, ErrorValue):
        return values
    return min(values) if values else 0.0


@register_function("MAX")
def _fn_max(args: list) -> float | ErrorValue:
    values = flatten_args(args)
    if isinstance(values, ErrorValue):
        return values
    return max(values) if values else 0.0


@register_function("AVERAGE")
def _fn_average(args: list) -> float | ErrorValue:
    values = flatten_args(args)
    if isinstance(values, ErrorValue):
        return values
    if not values:
        return 0.0
    return checked(sum(values, 0.0) / len(values))
