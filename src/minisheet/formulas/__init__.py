"""Spreadsheet formula parsing, evaluation and reference rewriting.

Public API::

    from minisheet.formulas import parse_formula, evaluate_formula, shift_formula_refs
"""

from minisheet.formulas.errors import (
    CIRC_ERROR,
    ENGINE_ERRORS,
    VALUE_ERROR,
    ErrorValue,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRangeError,
)
from minisheet.formulas.evaluator import CellResolver, evaluate_formula
from minisheet.formulas.functions import function_table, register_function
from minisheet.formulas.parser import parse_formula
from minisheet.formulas.refs import (
    CellRef,
    col_letter_to_index,
    format_a1,
    index_to_col_letter,
    make_addr,
    parse_a1,
    parse_addr,
)
from minisheet.formulas.rewrite import shift_formula_refs, translate_formula
from minisheet.formulas.tokenizer import Token, tokenize
from minisheet.formulas.values import coerce_number, format_number

__all__ = [
    "CIRC_ERROR",
    "CellRef",
    "CellResolver",
    "ENGINE_ERRORS",
    "ErrorValue",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParseError",
    "FormulaRangeError",
    "Token",
    "VALUE_ERROR",
    "coerce_number",
    "col_letter_to_index",
    "evaluate_formula",
    "format_a1",
    "format_number",
    "function_table",
    "index_to_col_letter",
    "make_addr",
    "parse_a1",
    "parse_addr",
    "parse_formula",
    "register_function",
    "shift_formula_refs",
    "tokenize",
    "translate_formula",
]
