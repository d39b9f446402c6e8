"""Numeric coercion and display formatting for formula values."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Union

from minisheet.formulas.errors import VALUE_ERROR, ErrorValue

# A formula value: a number, a flat list of numbers/errors (range
# arguments only) or an in-band error.
Value = Union[float, list, ErrorValue]

_NUMERIC_RE = re.compile(r"^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")


def coerce_number(value: Any) -> float | ErrorValue:
    """Coerce a cell value to a number.

    Empty text is 0, numeric text and finite numbers convert, in-band
    errors pass through, anything else is ``#VALUE!``.
    """
    if isinstance(value, ErrorValue):
        return value
    if isinstance(value, bool):
        return VALUE_ERROR
    if isinstance(value, (int, float)):
        return checked(float(value))
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if not _NUMERIC_RE.match(text):
            return VALUE_ERROR
        return checked(float(text))
    return VALUE_ERROR


def checked(number: float) -> float | ErrorValue:
    """Return *number*, or ``#VALUE!`` if it is not finite."""
    if math.isfinite(number):
        return number
    return VALUE_ERROR


def format_number(number: float) -> str:
    """Canonical display string for a finite number.

    Integral values below 1e21 print without a decimal point, padded
    with zeros past the shortest round-trip digits; everything else uses
    the shortest round-trip representation.
    """
    if not math.isfinite(number):
        return VALUE_ERROR.code
    if number == int(number) and abs(number) < 1e21:
        return str(int(Decimal(repr(number))))
    return repr(number)
