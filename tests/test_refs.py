"""Tests for A1 reference parsing and formatting."""

from __future__ import annotations

import pytest

from minisheet.formulas.refs import (
    CellRef,
    col_letter_to_index,
    format_a1,
    index_to_col_letter,
    make_addr,
    parse_a1,
    parse_addr,
)


class TestColumnLetters:
    @pytest.mark.parametrize(
        "idx, letters",
        [(0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
    )
    def test_index_to_letters(self, idx, letters) -> None:
        assert index_to_col_letter(idx) == letters
        assert col_letter_to_index(letters) == idx

    def test_lowercase_letters(self) -> None:
        assert col_letter_to_index("ab") == 27


class TestParseA1:
    def test_plain(self) -> None:
        assert parse_a1("AA10") == CellRef(row=9, col=26, abs_row=False, abs_col=False)

    def test_absolute_flags(self) -> None:
        assert parse_a1("$B$3") == CellRef(2, 1, True, True)
        assert parse_a1("$B3") == CellRef(2, 1, False, True)
        assert parse_a1("B$3") == CellRef(2, 1, True, False)

    def test_case_insensitive(self) -> None:
        assert parse_a1("c7") == parse_a1("C7")

    @pytest.mark.parametrize("text", ["", "A", "1", "A1B", "A0", "$$A1", "A1:B2", " A1", "SUM"])
    def test_not_a_reference(self, text) -> None:
        assert parse_a1(text) is None

    def test_coord(self) -> None:
        assert parse_a1("C4").coord == (3, 2)


class TestFormatA1:
    def test_flags_round_trip(self) -> None:
        for text in ("A1", "$A1", "A$1", "$A$1", "ZZ99"):
            assert format_a1(parse_a1(text)) == text

    def test_lowercase_is_emitted_upper(self) -> None:
        assert format_a1(parse_a1("$ab$12")) == "$AB$12"

    def test_round_trip_sampled(self) -> None:
        for row in range(0, 10_000, 97):
            for col in range(0, 10_000, 89):
                ref = CellRef(row, col, False, False)
                assert parse_a1(format_a1(ref)) == ref

    def test_round_trip_edges(self) -> None:
        for row, col in [(0, 0), (9_999, 9_999), (0, 9_999), (9_999, 0), (0, 25), (0, 26), (0, 701), (0, 702)]:
            ref = CellRef(row, col, False, False)
            assert parse_a1(format_a1(ref)) == ref


class TestAddrHelpers:
    def test_make_addr(self) -> None:
        assert make_addr(0, 0) == "A1"
        assert make_addr(9, 27) == "AB10"

    def test_parse_addr(self) -> None:
        assert parse_addr("AB10") == (9, 27)
        assert parse_addr(" b2 ") == (1, 1)

    def test_parse_addr_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid cell address"):
            parse_addr("A0")
