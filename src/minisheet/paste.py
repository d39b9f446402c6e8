"""Pasting tab/newline-delimited blocks with formula translation."""

from __future__ import annotations

from minisheet.formulas.rewrite import translate_formula
from minisheet.sheet import Sheet


def split_clipboard_text(text: str) -> list[list[str]]:
    """Split clipboard text into rows of cells.

    Carriage returns are dropped, rows split on ``\\n`` and cells on tabs.
    A single trailing newline (as spreadsheet apps emit) does not add an
    empty row.
    """
    text = text.replace("\r", "")
    if text.endswith("\n"):
        text = text[:-1]
    return [line.split("\t") for line in text.split("\n")]


def paste_block(
    sheet: Sheet,
    text: str,
    row: int,
    col: int,
    origin: tuple[int, int] | None = None,
) -> int:
    """Write a pasted block with its top-left cell at ``(row, col)``.

    When *origin* (the copied cell) is given, formulas are rewritten by
    the offset from *origin* to ``(row, col)``.  Cells falling outside the
    grid are dropped.

    Returns:
        Number of cells written.
    """
    if not text:
        return 0
    d_row = row - origin[0] if origin is not None else 0
    d_col = col - origin[1] if origin is not None else 0

    written = 0
    for i, cells in enumerate(split_clipboard_text(text)):
        for j, cell_text in enumerate(cells):
            r, c = row + i, col + j
            if not sheet.in_bounds(r, c):
                continue
            if origin is not None:
                cell_text = translate_formula(cell_text, d_row, d_col)
            sheet.set_raw(r, c, cell_text)
            written += 1
    return written
