"""Shared service layer for the minisheet editor.

This module encapsulates every editor operation so that the FastAPI
server, the CLI and tests drive the same logic.  It owns the sheet, the
debounced recalculation, the display buffer shown in the grid, the cell
being edited and the clipboard origin.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from minisheet.config import DEFAULT_CONFIG, validate_config
from minisheet.formulas import (
    ENGINE_ERRORS,
    function_table,
    make_addr,
    parse_addr,
    parse_formula,
    shift_formula_refs,
    tokenize,
)
from minisheet.formulas.parser import function_names
from minisheet.logging.events import (
    FORMULA_PARSE_ERROR,
    EventType,
    emit_info,
    emit_warning,
)
from minisheet.paste import paste_block
from minisheet.recalc import RecalcController
from minisheet.sheet import Sheet, is_blank_formula

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_on_blur(text: str) -> str:
    """Collapse whitespace runs and trim, leaving blank formulas alone."""
    if is_blank_formula(text):
        return text
    return _WHITESPACE_RE.sub(" ", text).strip()


class EditorService:
    """Stateful editor backing one grid.

    Args:
        config: Merged configuration (see :mod:`minisheet.config`).
            Defaults are used when omitted.
        on_display: Optional ``callback(row, col, text)`` invoked for
            every cell written to the display buffer by a recompute.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        on_display: Callable[[int, int, str], None] | None = None,
    ) -> None:
        self.config = validate_config({**DEFAULT_CONFIG, **(config or {})})
        self.sheet = Sheet(self.config["rows"], self.config["cols"])
        self.recalc = RecalcController(
            self._recompute, delay=self.config["recalc_delay_ms"] / 1000.0
        )
        self._on_display = on_display
        self._display: list[list[str]] = [
            ["" for _ in range(self.sheet.cols)] for _ in range(self.sheet.rows)
        ]
        self._active: tuple[int, int] | None = None
        self._origin: tuple[int, int] | None = None
        self._reported_errors: dict[tuple[int, int], str] = {}

    # ------------------------------------------------------------------
    # Edit lifecycle
    # ------------------------------------------------------------------

    @property
    def active(self) -> tuple[int, int] | None:
        return self._active

    def begin_edit(self, row: int, col: int) -> str:
        """Focus a cell.  Its buffer switches to the raw text, which is returned."""
        self._require_cell(row, col)
        if self._active is not None and self._active != (row, col):
            self.end_edit()
        self._active = (row, col)
        raw = self.sheet.get_raw(row, col)
        self._display[row][col] = raw
        return raw

    def edit(self, row: int, col: int, text: str) -> None:
        """Store typed text and schedule a recompute.

        The edited cell's buffer keeps *text* verbatim while it is active.
        """
        self.sheet.set_raw(row, col, text)
        if (row, col) == self._active:
            self._display[row][col] = self.sheet.get_raw(row, col)
        self.recalc.schedule()

    def end_edit(self) -> str | None:
        """Blur the active cell, normalizing its text.

        Returns:
            The stored text, or None when no cell was active.
        """
        if self._active is None:
            return None
        row, col = self._active
        self._active = None
        if not self.sheet.in_bounds(row, col):
            return None
        raw = self.sheet.get_raw(row, col)
        text = normalize_on_blur(raw)
        if text != raw:
            self.sheet.set_raw(row, col, text)
        self.recalc.schedule()
        return text

    # ------------------------------------------------------------------
    # Clipboard
    # ------------------------------------------------------------------

    def copy(self, row: int, col: int) -> str:
        """Record *(row, col)* as the paste origin and return its raw text."""
        self._require_cell(row, col)
        self._origin = (row, col)
        return self.sheet.get_raw(row, col)

    def cut(self, row: int, col: int) -> str:
        """Like :meth:`copy`, then clear the source cell."""
        text = self.copy(row, col)
        self.sheet.set_raw(row, col, "")
        self.recalc.schedule()
        return text

    def paste(self, row: int, col: int, text: str) -> int:
        """Paste a tab/newline block at *(row, col)*.

        Formulas are translated by the offset from the last copy origin,
        if any.  The origin is cleared afterwards.

        Returns:
            Number of cells written.
        """
        self._require_cell(row, col)
        origin = self._origin
        written = paste_block(self.sheet, text, row, col, origin)
        self._origin = None
        emit_info(
            EventType.paste_applied,
            f"Pasted {written} cell(s) at {make_addr(row, col)}",
            {
                "addr": make_addr(row, col),
                "origin": make_addr(*origin) if origin else None,
                "cells": written,
            },
        )
        self.recalc.schedule()
        return written

    @property
    def origin(self) -> tuple[int, int] | None:
        return self._origin

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def add_row(self) -> None:
        self.sheet.add_row()
        self._structure_changed("add_row")

    def add_column(self) -> None:
        self.sheet.add_column()
        self._structure_changed("add_column")

    def remove_row(self) -> None:
        self.sheet.remove_row()
        self._structure_changed("remove_row")

    def remove_column(self) -> None:
        self.sheet.remove_column()
        self._structure_changed("remove_column")

    def resize(self, rows: int, cols: int) -> None:
        self.sheet.resize(rows, cols)
        self._structure_changed("resize")

    def load_matrix(self, matrix: list[list[Any]]) -> None:
        """Replace the grid with *matrix* (a list of rows)."""
        self.sheet.load_from_matrix(matrix)
        self._active = None
        self._origin = None
        self._reshape_display()
        emit_info(
            EventType.grid_loaded,
            "Grid loaded",
            {"rows": self.sheet.rows, "cols": self.sheet.cols},
        )
        self.recalc.schedule()

    def reset(self) -> None:
        """Replace the grid with an empty one of the configured size."""
        self.sheet.reset(self.config["rows"], self.config["cols"])
        self._active = None
        self._origin = None
        self._reshape_display()
        emit_info(
            EventType.grid_reset,
            "Grid reset",
            {"rows": self.sheet.rows, "cols": self.sheet.cols},
        )
        self.recalc.schedule()

    def _structure_changed(self, op: str) -> None:
        if self._active is not None and not self.sheet.in_bounds(*self._active):
            self._active = None
        if self._origin is not None and not self.sheet.in_bounds(*self._origin):
            self._origin = None
        self._reshape_display()
        emit_info(
            EventType.grid_changed,
            f"Grid {op}",
            {"op": op, "rows": self.sheet.rows, "cols": self.sheet.cols},
        )
        self.recalc.schedule()

    def _reshape_display(self) -> None:
        """Fit the display buffer to the grid until the next recompute fills it."""
        rows, cols = self.sheet.rows, self.sheet.cols
        display = [r[:cols] + [""] * (cols - len(r)) for r in self._display[:rows]]
        while len(display) < rows:
            display.append(["" for _ in range(cols)])
        self._display = display

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def get_view(self) -> dict[str, Any]:
        """Snapshot of the grid as the browser renders it.

        Any pending recompute runs first, so the snapshot is current.
        """
        self.recalc.flush()
        return {
            "rows": self.sheet.rows,
            "cols": self.sheet.cols,
            "cells": [list(r) for r in self._display],
            "errors": [
                {"addr": make_addr(r, c), "row": r, "col": c, "message": msg}
                for (r, c), msg in self.sheet.errors()
            ],
            "active": make_addr(*self._active) if self._active else None,
            "calc_state": self.recalc.state.value,
            "last_error": self.recalc.last_error,
        }

    def display_text(self, row: int, col: int) -> str:
        """Current buffer text of one cell (after flushing)."""
        self.recalc.flush()
        self._require_cell(row, col)
        return self._display[row][col]

    def _recompute(self) -> None:
        """Recompute every displayed value and refresh error decorations."""
        rows, cols = self.sheet.rows, self.sheet.cols
        display = [["" for _ in range(cols)] for _ in range(rows)]
        active = self._active
        if active is not None:
            r, c = active
            display[r][c] = self.sheet.get_raw(r, c)

        def _write(row: int, col: int, text: str) -> None:
            display[row][col] = text
            if self._on_display is not None:
                self._on_display(row, col, text)

        self.sheet.invalidate()
        self.sheet.for_each_display(_write, active)
        self._display = display
        self._refresh_error_decorations()

    def _refresh_error_decorations(self) -> None:
        current = dict(self.sheet.errors())
        for (r, c), message in current.items():
            if self._reported_errors.get((r, c)) == message:
                continue
            emit_warning(
                EventType.formula_error,
                message,
                {"addr": make_addr(r, c), "formula": self.sheet.get_raw(r, c)},
                error_code=FORMULA_PARSE_ERROR,
            )
        self._reported_errors = current

    # ------------------------------------------------------------------
    # Formula tooling
    # ------------------------------------------------------------------

    def validate_formula(self, text: str) -> dict[str, Any]:
        """Check a formula without storing it.

        Args:
            text: Formula with or without the leading ``=``.

        Returns:
            ``{"ok": True, "tokens": [...], "functions": [...]}`` or
            ``{"ok": False, "error": ..., "position": ...}``.
        """
        body = text[1:] if text.startswith("=") else text
        try:
            tokens = tokenize(body)
            tree = parse_formula(body)
        except ENGINE_ERRORS as exc:
            if isinstance(exc, RecursionError):
                return {"ok": False, "error": "Maximum evaluation depth exceeded", "position": None}
            return {
                "ok": False,
                "error": getattr(exc, "message", str(exc)),
                "position": getattr(exc, "position", None),
            }
        return {
            "ok": True,
            "tokens": [
                {"kind": t.kind, "text": t.text, "position": t.position} for t in tokens
            ],
            "functions": function_names(tree),
        }

    @staticmethod
    def shift_formula(text: str, d_row: int, d_col: int) -> str:
        """Shift the references of a formula body or full ``=`` text."""
        if text.startswith("="):
            return "=" + shift_formula_refs(text[1:], d_row, d_col)
        return shift_formula_refs(text, d_row, d_col)

    @staticmethod
    def list_functions() -> list[str]:
        return sorted(function_table())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_cell(self, row: int, col: int) -> None:
        if not self.sheet.in_bounds(row, col):
            raise ValueError(
                f"Cell ({row}, {col}) is outside the {self.sheet.rows}x{self.sheet.cols} grid"
            )

    def cell_at(self, addr: str) -> tuple[int, int]:
        """Resolve an A1 address, raising ValueError when off the grid."""
        row, col = parse_addr(addr)
        self._require_cell(row, col)
        return row, col
