"""Tests for the formula token stream."""

from __future__ import annotations

import pytest

from minisheet.formulas import CellRef, FormulaParseError, tokenize


def kinds(body: str) -> list[str]:
    return [t.kind for t in tokenize(body)]


class TestTokenize:
    def test_arithmetic(self) -> None:
        assert kinds("1 + 2.5*(3-4)/5") == ["num", "+", "num", "*", "(", "num", "-", "num", ")", "/", "num"]

    def test_number_values(self) -> None:
        toks = tokenize("12 3.25")
        assert [t.value for t in toks] == [12.0, 3.25]

    def test_cell_and_range(self) -> None:
        toks = tokenize("$A1+B$2:c3")
        assert toks[0].kind == "cell"
        assert toks[0].value == CellRef(0, 0, False, True)
        assert toks[2].kind == "range"
        assert toks[2].value == (CellRef(1, 1, True, False), CellRef(2, 2, False, False))
        assert toks[2].text == "B$2:c3"

    def test_identifier_upper_cased(self) -> None:
        toks = tokenize("sum(A1:A3)")
        assert toks[0].kind == "id"
        assert toks[0].value == "SUM"
        assert toks[0].text == "sum"

    def test_positions(self) -> None:
        toks = tokenize("  A1 +  7")
        assert [t.position for t in toks] == [2, 5, 8]

    def test_whitespace_only(self) -> None:
        assert tokenize("   ") == []

    def test_unexpected_character(self) -> None:
        with pytest.raises(FormulaParseError) as info:
            tokenize("1 & 2")
        assert info.value.message == "Unexpected character &"
        assert info.value.position == 2

    def test_row_zero_is_not_a_reference(self) -> None:
        with pytest.raises(FormulaParseError, match="Invalid reference A0"):
            tokenize("A0+1")
