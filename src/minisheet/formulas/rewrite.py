"""Reference rewriting for formulas pasted at a new origin.

Relative row/column components move by the paste offset; components
marked with ``$`` stay put.  The body is scanned with a regular
expression rather than re-tokenized.  The grammar has no string literals,
so every match is a real reference.
"""

from __future__ import annotations

import re

from minisheet.formulas.refs import CellRef, format_a1, parse_a1

_REF_OR_RANGE_RE = re.compile(r"\$?[A-Za-z]+\$?[0-9]+(?::\$?[A-Za-z]+\$?[0-9]+)?")

# Emitted for a reference shifted off the top or left edge of the grid.
REF_ERROR = "#REF!"


def shift_formula_refs(body: str, d_row: int, d_col: int) -> str:
    """Shift every non-absolute reference component in *body*.

    Args:
        body: Formula text without the leading ``=``.
        d_row: Rows to add to relative row components.
        d_col: Columns to add to relative column components.

    Returns:
        The rewritten body.  Literals that do not parse as references are
        left untouched.
    """

    def _replace(m: re.Match) -> str:
        text = m.group(0)
        if ":" in text:
            start, end = text.split(":")
            return _shift_single(start, d_row, d_col) + ":" + _shift_single(end, d_row, d_col)
        return _shift_single(text, d_row, d_col)

    return _REF_OR_RANGE_RE.sub(_replace, body)


def _shift_single(text: str, d_row: int, d_col: int) -> str:
    ref = parse_a1(text)
    if ref is None:
        return text
    row = ref.row if ref.abs_row else ref.row + d_row
    col = ref.col if ref.abs_col else ref.col + d_col
    if row < 0 or col < 0:
        return REF_ERROR
    return format_a1(CellRef(row, col, ref.abs_row, ref.abs_col))


def translate_formula(text: str, d_row: int, d_col: int) -> str:
    """Rewrite a full cell text if it is a formula; return other text as is."""
    if not text.startswith("="):
        return text
    return "=" + shift_formula_refs(text[1:], d_row, d_col)
