"""Error types for formula parsing and evaluation.

Two channels exist.  Structural problems (bad characters, bad tokens,
unknown functions, ranges in scalar position) are raised as
:class:`FormulaError` subclasses and surface as ``ERR`` on the cell.
Value problems travel in-band as :class:`ErrorValue` instances and are
displayed by their code.
"""

from __future__ import annotations

from typing import NamedTuple


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaParseError(FormulaError):
    """Syntax error in a formula body.

    Attributes:
        position: Zero-based character position where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        self.message = message
        full = message
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class FormulaFunctionError(FormulaError):
    """Call to a function that is not in the function table.

    Attributes:
        func_name: The upper-cased function name.
    """

    def __init__(self, func_name: str, message: str | None = None) -> None:
        self.func_name = func_name
        super().__init__(message or f"Unknown function {func_name}")


class FormulaRangeError(FormulaError):
    """A range was used where a single number is required."""

    def __init__(self, message: str = "Invalid range in expression") -> None:
        super().__init__(message)


class ErrorValue(NamedTuple):
    """In-band error value, e.g. ``#VALUE!``."""

    code: str

    def __str__(self) -> str:
        return self.code


VALUE_ERROR = ErrorValue("#VALUE!")
CIRC_ERROR = ErrorValue("#CIRC!")

# Exceptions caught at cell scope and turned into ``ERR``.
ENGINE_ERRORS = (FormulaError, RecursionError)
