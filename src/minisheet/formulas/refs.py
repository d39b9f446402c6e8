"""A1 reference model.

References are zero-based ``(row, col)`` pairs with independent absolute
flags.  The textual form is ``[$]COL[$]ROW`` with base-26 column letters
and a one-based row number.  ``parse_a1`` and ``format_a1`` never raise.
"""

from __future__ import annotations

import re
from typing import NamedTuple

_A1_RE = re.compile(r"^(\$?)([A-Za-z]+)(\$?)([0-9]+)$")


class CellRef(NamedTuple):
    """A single cell reference."""

    row: int
    col: int
    abs_row: bool = False
    abs_col: bool = False

    @property
    def coord(self) -> tuple[int, int]:
        return self.row, self.col


def col_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters.upper():
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def index_to_col_letter(idx: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = idx
    while True:
        result = chr(65 + n % 26) + result
        n = n // 26 - 1
        if n < 0:
            return result


def parse_a1(text: str) -> CellRef | None:
    """Parse ``A1``, ``$A1``, ``A$1`` or ``$A$1`` (any letter case).

    Returns:
        The reference, or ``None`` when *text* is not a reference.  Row
        number ``0`` is not a reference.
    """
    m = _A1_RE.match(text)
    if not m:
        return None
    row = int(m.group(4)) - 1
    if row < 0:
        return None
    return CellRef(
        row=row,
        col=col_letter_to_index(m.group(2)),
        abs_row=bool(m.group(3)),
        abs_col=bool(m.group(1)),
    )


def format_a1(ref: CellRef) -> str:
    """Inverse of :func:`parse_a1`."""
    return (
        ("$" if ref.abs_col else "")
        + index_to_col_letter(ref.col)
        + ("$" if ref.abs_row else "")
        + str(ref.row + 1)
    )


def parse_addr(addr: str) -> tuple[int, int]:
    """Parse 'A1' -> (row_0based, col_0based).

    Raises ValueError on bad address.
    """
    ref = parse_a1(addr.strip())
    if ref is None:
        raise ValueError(f"Invalid cell address: {addr!r}")
    return ref.row, ref.col


def make_addr(row: int, col: int) -> str:
    """Build cell address from 0-based row/col."""
    return f"{index_to_col_letter(col)}{row + 1}"
