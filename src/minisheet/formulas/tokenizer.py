"""Flat token stream for a formula body.

Shares the lexer of :mod:`minisheet.formulas.parser`, so the tokens seen
here are exactly the ones the parser consumes.  Useful for editors
(syntax colouring, reference highlighting) and for diagnostics.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from lark import UnexpectedCharacters

from minisheet.formulas.errors import FormulaParseError
from minisheet.formulas.parser import formula_lark
from minisheet.formulas.refs import parse_a1


class Token(NamedTuple):
    """A lexed token.

    ``kind`` is ``num``, ``cell``, ``range``, ``id`` or the punctuation
    character itself.  ``value`` is a float for ``num``, the upper-cased
    name for ``id``, a ``CellRef`` for ``cell`` and a ``(start, end)``
    pair of ``CellRef`` for ``range``.
    """

    kind: str
    text: str
    position: int
    value: Any = None


def tokenize(body: str) -> list[Token]:
    """Lex *body* into tokens, skipping whitespace.

    Raises:
        FormulaParseError: On a character no token can start with.
    """
    tokens: list[Token] = []
    try:
        for tok in formula_lark.lex(body):
            tokens.append(_convert(tok))
    except UnexpectedCharacters as exc:
        raise FormulaParseError(
            f"Unexpected character {exc.char}", position=exc.pos_in_stream
        ) from exc
    return tokens


def _convert(tok) -> Token:
    text = str(tok)
    pos = tok.start_pos
    if tok.type == "NUMBER":
        return Token("num", text, pos, float(text))
    if tok.type == "NAME":
        return Token("id", text, pos, text.upper())
    if tok.type == "CELL":
        return Token("cell", text, pos, _ref(text, pos))
    if tok.type == "RANGE":
        start, end = text.split(":")
        return Token("range", text, pos, (_ref(start, pos), _ref(end, pos)))
    return Token(text, text, pos)


def _ref(text: str, pos: int):
    ref = parse_a1(text)
    if ref is None:
        raise FormulaParseError(f"Invalid reference {text}", position=pos)
    return ref
