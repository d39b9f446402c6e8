"""In-memory grid of raw cell strings with memoized formula evaluation.

A cell is a formula when its raw text starts with ``=``.  Formula
results are computed on demand and cached until the next mutation of the
grid.  Cycles are detected with an in-progress set: revisiting a cell
that is still being evaluated yields the in-band ``#CIRC!`` error.
Reference chains too deep for the call stack are evaluated again
dependencies first, so every cell of a long chain still gets its value.

Evaluation failures that are raised (parse errors, unknown functions,
ranges in scalar position) are recorded in a sparse error overlay keyed
by ``(row, col)`` and the cell evaluates to the ``ERR`` sentinel.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterator

from minisheet.formulas.errors import CIRC_ERROR, ENGINE_ERRORS, ErrorValue, FormulaError
from minisheet.formulas.evaluator import evaluate_formula
from minisheet.formulas.parser import parse_formula, referenced_ranges
from minisheet.formulas.values import format_number

ERR = "ERR"

DEFAULT_ROWS = 30
DEFAULT_COLS = 12

_BLANK_FORMULA_RE = re.compile(r"^=\s*$")


def is_blank_formula(text: str) -> bool:
    """True for ``=`` followed only by whitespace."""
    return bool(_BLANK_FORMULA_RE.match(text))


def is_formula(text: str) -> bool:
    """True for text that is evaluated as a formula."""
    return text.startswith("=") and not is_blank_formula(text)


def _empty(rows: int, cols: int) -> list[list[str]]:
    return [["" for _ in range(cols)] for _ in range(rows)]


def _check_size(rows: int, cols: int) -> None:
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid must have at least one row and one column, got {rows}x{cols}")


class Sheet:
    """Rectangular grid of raw strings plus its error overlay.

    Usage::

        sheet = Sheet(3, 3)
        sheet.set_raw(0, 0, "1")
        sheet.set_raw(0, 1, "=A1*2")
        sheet.display_value(0, 1)   # "2"

    Parameters
    ----------
    rows, cols : int
        Initial size; both must be at least 1.
    """

    def __init__(self, rows: int = DEFAULT_ROWS, cols: int = DEFAULT_COLS) -> None:
        _check_size(rows, cols)
        self._data = _empty(rows, cols)
        self._errors: dict[tuple[int, int], str] = {}
        self._cache: dict[tuple[int, int], Any] = {}
        self._in_progress: set[tuple[int, int]] = set()

    # ------------------------------------------------------------------
    # Dimensions and raw access
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return len(self._data)

    @property
    def cols(self) -> int:
        return len(self._data[0])

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get_raw(self, row: int, col: int) -> str:
        """Raw text of a cell; cells outside the grid read as empty."""
        if not self.in_bounds(row, col):
            return ""
        return self._data[row][col]

    def set_raw(self, row: int, col: int, text: str) -> None:
        """Store raw text.  Replacing a formula with a literal clears its error."""
        if not self.in_bounds(row, col):
            raise ValueError(f"Cell ({row}, {col}) is outside the {self.rows}x{self.cols} grid")
        text = "" if text is None else str(text)
        self._data[row][col] = text
        if not is_formula(text):
            self._errors.pop((row, col), None)
        self.invalidate()

    def matrix(self) -> list[list[str]]:
        """Copy of all raw strings, row-major."""
        return [list(r) for r in self._data]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def resolve_cell(self, row: int, col: int) -> Any:
        """CellResolver protocol: the evaluated value of a referenced cell."""
        return self.value_at(row, col)

    def value_at(self, row: int, col: int) -> Any:
        """Evaluate a cell.

        Returns:
            The raw string for literals and blank formulas, a float or an
            :class:`ErrorValue` for formulas, or ``ERR`` when evaluation
            raised (the message is then in the error overlay).
        """
        key = (row, col)
        if key in self._cache:
            return self._cache[key]

        raw = self.get_raw(row, col)
        if not is_formula(raw):
            self._errors.pop(key, None)
            return raw

        if key in self._in_progress:
            return CIRC_ERROR

        outermost = not self._in_progress
        try:
            result = self._evaluate(key, raw)
        except RecursionError:
            # Unwind to the cell that started the chain, then redo it
            # without deep recursion.
            if not outermost:
                raise
            result = self._settle(key)

        self._cache[key] = result
        return result

    def _evaluate(self, key: tuple[int, int], raw: str) -> Any:
        self._in_progress.add(key)
        try:
            result = evaluate_formula(parse_formula(raw[1:]), self)
        except FormulaError as exc:
            self._errors[key] = str(exc)
            return ERR
        finally:
            self._in_progress.discard(key)
        self._errors.pop(key, None)
        return result

    def _settle(self, start: tuple[int, int]) -> Any:
        """Evaluate *start* and its dependencies, dependencies first.

        Used when a reference chain is too deep for the call stack.  An
        explicit depth-first walk caches every dependency before its
        dependents, so each evaluation only looks one level down.  Cells
        on the current walk path stay in the in-progress set, so cycles
        still yield ``#CIRC!``.
        """
        saved = self._in_progress
        path: list[tuple[int, int]] = []
        expanded: set[tuple[int, int]] = set()
        stack: list[tuple[tuple[int, int], bool]] = [(start, False)]
        try:
            while stack:
                key, done = stack.pop()
                if done:
                    path.pop()
                    self._in_progress = set(path)
                    self._cache[key] = self._evaluate_bounded(key)
                    continue
                if key in self._cache or key in expanded:
                    continue
                raw = self.get_raw(*key)
                if not is_formula(raw):
                    continue
                expanded.add(key)
                path.append(key)
                stack.append((key, True))
                for dep in reversed(self._dependencies(raw)):
                    if dep not in self._cache and dep not in expanded:
                        stack.append((dep, False))
        finally:
            self._in_progress = saved
        return self._cache[start]

    def _evaluate_bounded(self, key: tuple[int, int]) -> Any:
        try:
            return self._evaluate(key, self.get_raw(*key))
        except RecursionError:
            # The formula itself nests too deeply.
            self._errors[key] = "Maximum evaluation depth exceeded"
            return ERR

    def _dependencies(self, raw: str) -> list[tuple[int, int]]:
        """In-grid cells read by the formula *raw*, in reading order."""
        try:
            tree = parse_formula(raw[1:])
        except ENGINE_ERRORS:
            return []
        deps: list[tuple[int, int]] = []
        for start, end in referenced_ranges(tree):
            r1, r2 = sorted((start.row, end.row))
            c1, c2 = sorted((start.col, end.col))
            for r in range(r1, min(r2, self.rows - 1) + 1):
                for c in range(c1, min(c2, self.cols - 1) + 1):
                    deps.append((r, c))
        return deps

    def display_value(self, row: int, col: int) -> str:
        """Display string of a cell.

        Blank formulas and literals show their raw text, formulas their
        result: ``ERR`` for raised errors, the code for in-band errors,
        or the canonical number string.
        """
        raw = self.get_raw(row, col)
        if not is_formula(raw):
            return raw
        value = self.value_at(row, col)
        if isinstance(value, ErrorValue):
            return value.code
        if isinstance(value, str):
            return value
        return format_number(value)

    def for_each_display(
        self,
        callback: Callable[[int, int, str], None],
        active: tuple[int, int] | None = None,
    ) -> None:
        """Call ``callback(row, col, text)`` for every cell except *active*, row-major."""
        for r in range(self.rows):
            for c in range(self.cols):
                if (r, c) == active:
                    continue
                callback(r, c, self.display_value(r, c))

    def invalidate(self) -> None:
        """Drop memoized results.  Called on every mutation."""
        self._cache.clear()
        self._in_progress.clear()

    # ------------------------------------------------------------------
    # Error overlay
    # ------------------------------------------------------------------

    def get_error(self, row: int, col: int) -> str | None:
        """Message of the last failed evaluation of a cell, if it failed."""
        return self._errors.get((row, col))

    def errors(self) -> Iterator[tuple[tuple[int, int], str]]:
        """Overlay entries as ``((row, col), message)``, row-major."""
        return iter(sorted(self._errors.items()))

    def _prune_errors(self) -> None:
        self._errors = {k: v for k, v in self._errors.items() if self.in_bounds(*k)}

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def add_row(self) -> None:
        self._data.append(["" for _ in range(self.cols)])
        self.invalidate()

    def add_column(self) -> None:
        for row in self._data:
            row.append("")
        self.invalidate()

    def remove_row(self) -> None:
        """Drop the last row; a one-row grid is left as is."""
        if self.rows > 1:
            self._data.pop()
            self._prune_errors()
            self.invalidate()

    def remove_column(self) -> None:
        """Drop the last column; a one-column grid is left as is."""
        if self.cols > 1:
            for row in self._data:
                row.pop()
            self._prune_errors()
            self.invalidate()

    def resize(self, rows: int, cols: int) -> None:
        """Truncate or pad with empty cells to exactly *rows* x *cols*."""
        _check_size(rows, cols)
        data = [r[:cols] + [""] * (cols - len(r[:cols])) for r in self._data[:rows]]
        while len(data) < rows:
            data.append(["" for _ in range(cols)])
        self._data = data
        self._prune_errors()
        self.invalidate()

    def load_from_matrix(self, matrix: list[list[Any]]) -> None:
        """Replace the grid, padding short rows with empty strings."""
        n_rows = max(1, len(matrix))
        n_cols = max([1] + [len(r) for r in matrix])
        data = _empty(n_rows, n_cols)
        for r, row in enumerate(matrix):
            for c, cell in enumerate(row):
                data[r][c] = "" if cell is None else str(cell)
        self._data = data
        self._errors.clear()
        self.invalidate()

    def reset(self, rows: int = DEFAULT_ROWS, cols: int = DEFAULT_COLS) -> None:
        """Replace the grid with an empty one."""
        _check_size(rows, cols)
        self._data = _empty(rows, cols)
        self._errors.clear()
        self.invalidate()
