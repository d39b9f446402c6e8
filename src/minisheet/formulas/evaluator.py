"""Tree-walking evaluator for parsed formula bodies.

Each node evaluates to a number, a flat list of numbers (range
arguments only) or an in-band :class:`ErrorValue`.  Cell values are
obtained through a :class:`CellResolver` so the evaluator stays free of
grid storage concerns.
"""

from __future__ import annotations

from typing import Any, Protocol

from lark import Token, Tree

from minisheet.formulas.errors import FormulaError, FormulaRangeError, ErrorValue, VALUE_ERROR
from minisheet.formulas.functions import get_function
from minisheet.formulas.refs import parse_a1
from minisheet.formulas.values import Value, checked, coerce_number


class CellResolver(Protocol):
    """Protocol for reading cell values during evaluation."""

    def resolve_cell(self, row: int, col: int) -> Any:
        """Return the evaluated value of a cell (may recurse into its formula)."""
        ...


def evaluate_formula(tree: Tree, resolver: CellResolver) -> float | ErrorValue:
    """Evaluate a parsed formula tree.

    Args:
        tree: Parse tree from ``parse_formula()``.
        resolver: Source of cell values.

    Returns:
        The computed number, or an in-band error.

    Raises:
        FormulaRangeError: If the root expression is a range.
    """
    result = _eval(tree, resolver)
    if isinstance(result, list):
        raise FormulaRangeError()
    return result


def _eval(node: Tree | Token, resolver: CellResolver) -> Value:
    if isinstance(node, Token):
        raise FormulaError(f"Unexpected token {node}")

    rule = node.data

    if rule == "start":
        return _eval(node.children[0], resolver)

    if rule in _BINARY_OPS:
        left = _scalar(_eval(node.children[0], resolver))
        if isinstance(left, ErrorValue):
            return left
        right = _scalar(_eval(node.children[1], resolver))
        if isinstance(right, ErrorValue):
            return right
        return _BINARY_OPS[rule](left, right)

    if rule == "neg":
        operand = _scalar(_eval(node.children[0], resolver))
        if isinstance(operand, ErrorValue):
            return operand
        return -operand
    if rule == "pos":
        return _scalar(_eval(node.children[0], resolver))

    if rule == "number":
        return float(node.children[0])

    if rule == "cell_ref":
        ref = _ref(node.children[0])
        return coerce_number(resolver.resolve_cell(ref.row, ref.col))

    if rule == "range_ref":
        start_text, end_text = str(node.children[0]).split(":")
        start, end = _ref(start_text), _ref(end_text)
        r1, r2 = min(start.row, end.row), max(start.row, end.row)
        c1, c2 = min(start.col, end.col), max(start.col, end.col)
        return [
            coerce_number(resolver.resolve_cell(r, c))
            for r in range(r1, r2 + 1)
            for c in range(c1, c2 + 1)
        ]

    if rule == "func_call":
        name = str(node.children[0]).upper()
        fn = get_function(name)
        args = [_eval(arg, resolver) for arg in node.children[1].children]
        return fn(args)

    raise FormulaError(f"Unknown node type: {rule}")


def _scalar(value: Value) -> float | ErrorValue:
    """Reject lists in arithmetic position."""
    if isinstance(value, list):
        raise FormulaRangeError()
    return value


def _ref(text: Any):
    ref = parse_a1(str(text))
    if ref is None:
        raise FormulaError(f"Invalid reference {text}")
    return ref


def _div(left: float, right: float) -> float | ErrorValue:
    if right == 0:
        return VALUE_ERROR
    return checked(left / right)


_BINARY_OPS = {
    "add": lambda a, b: checked(a + b),
    "sub": lambda a, b: checked(a - b),
    "mul": lambda a, b: checked(a * b),
    "div": _div,
}
