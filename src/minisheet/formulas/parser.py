"""Lark-based parser for cell formula bodies (the text after ``=``).

Supports:
- Numbers: ``12``, ``3.5``
- Cell references: ``A1``, ``$A1``, ``A$1``, ``$A$1`` (any letter case)
- Ranges: ``A1:B2`` (only as direct function arguments)
- Function calls: ``SUM(...)``, ``min(...)`` (names are case-insensitive)
- Binary ``+ - * /``, unary ``+ -`` and parentheses
"""

from __future__ import annotations

from functools import lru_cache

from lark import Lark, Token, Tree, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from minisheet.formulas.errors import FormulaFunctionError, FormulaParseError, FormulaRangeError
from minisheet.formulas.functions import has_function
from minisheet.formulas.refs import CellRef, parse_a1

# LALR(1) grammar.
# Operator precedence (lowest to highest):
#   1. Addition/subtraction: + -
#   2. Multiplication/division: * /
#   3. Unary plus/minus: + -
#   4. Atoms: number, range, cell reference, function call, parenthesized expr
#
# Terminal priorities mirror the lexing rules: a range wins over a single
# reference, which wins over a bare identifier.
GRAMMAR = r"""
start: expr

?expr: term
    | expr "+" term  -> add
    | expr "-" term  -> sub

?term: factor
    | term "*" factor  -> mul
    | term "/" factor  -> div

?factor: "+" factor  -> pos
    | "-" factor     -> neg
    | primary

?primary: NUMBER             -> number
    | RANGE                  -> range_ref
    | CELL                   -> cell_ref
    | NAME "(" args ")"      -> func_call
    | "(" expr ")"

args: expr ("," expr)*
    |

RANGE.3: /\$?[A-Za-z]+\$?[0-9]+:\$?[A-Za-z]+\$?[0-9]+/
CELL.2: /\$?[A-Za-z]+\$?[0-9]+/
NAME.1: /[A-Za-z]+/
NUMBER: /[0-9]+(\.[0-9]+)?/

%ignore /[ \t\r\n]+/
"""

formula_lark = Lark(GRAMMAR, parser="lalr", lexer="basic", start="start")


@lru_cache(maxsize=2048)
def parse_formula(body: str) -> Tree:
    """Parse a formula body into a checked Lark tree.

    Args:
        body: The formula text without its leading ``=``,
            e.g. ``"SUM(A1:B2) * 2"``.

    Returns:
        A Lark parse tree rooted at ``start``.

    Raises:
        FormulaParseError: On invalid syntax or an invalid reference.
        FormulaFunctionError: If a called function is not in the table.
        FormulaRangeError: If a range appears outside a function argument.
    """
    try:
        tree = formula_lark.parse(body)
    except UnexpectedCharacters as exc:
        raise FormulaParseError(
            f"Unexpected character {exc.char}", position=exc.pos_in_stream
        ) from exc
    except UnexpectedToken as exc:
        token = exc.token
        if token.type == "$END":
            raise FormulaParseError("Unexpected end", position=len(body)) from exc
        raise FormulaParseError(
            f"Unexpected token {token}", position=token.start_pos
        ) from exc
    except UnexpectedEOF as exc:
        raise FormulaParseError("Unexpected end", position=len(body)) from exc
    except UnexpectedInput as exc:
        raise FormulaParseError(str(exc), position=getattr(exc, "pos_in_stream", None)) from exc

    _check_node(tree, in_args=False)
    return tree


def _check_node(node: Tree | Token, in_args: bool) -> None:
    """Reject unknown functions, bad references and misplaced ranges."""
    if isinstance(node, Token):
        return

    rule = node.data
    if rule == "cell_ref":
        _check_ref(node.children[0], str(node.children[0]))
        return
    if rule == "range_ref":
        token = node.children[0]
        for part in str(token).split(":"):
            _check_ref(token, part)
        if not in_args:
            raise FormulaRangeError()
        return
    if rule == "func_call":
        name = str(node.children[0]).upper()
        if not has_function(name):
            raise FormulaFunctionError(name)
        for arg in node.children[1].children:
            _check_node(arg, in_args=True)
        return

    for child in node.children:
        _check_node(child, in_args=False)


def _check_ref(token: Token, text: str) -> None:
    if parse_a1(text) is None:
        raise FormulaParseError(f"Invalid reference {text}", position=token.start_pos)


def function_names(tree: Tree) -> list[str]:
    """Upper-cased names of every function called in *tree*, in order."""
    return [str(t.children[0]).upper() for t in tree.iter_subtrees_topdown() if t.data == "func_call"]


def referenced_ranges(tree: Tree) -> list[tuple[CellRef, CellRef]]:
    """Every cell or range read by *tree* as ``(start, end)`` pairs.

    A single-cell reference is returned with ``start == end``.
    """
    refs: list[tuple[CellRef, CellRef]] = []
    for t in tree.iter_subtrees_topdown():
        if t.data == "cell_ref":
            ref = parse_a1(str(t.children[0]))
            refs.append((ref, ref))
        elif t.data == "range_ref":
            start, end = str(t.children[0]).split(":")
            refs.append((parse_a1(start), parse_a1(end)))
    return refs
