"""Safe evaluation for substituted chart formulas.

Chart formulas reference stats fields, parameters and manual data through
tokens; `analysis.tokens` replaces every token with a literal before this
module runs. What remains is a plain arithmetic expression, evaluated here
safely (no names, no attribute access, no calls, no comprehensions). Every
failure returns the NA sentinel instead of raising.
"""

from __future__ import annotations

import ast
import math

from .dto import NA, NumericValue

_BINARY_OPS = (ast.Add, ast.Sub, ast.Mult, ast.Div)
_UNARY_OPS = (ast.UAdd, ast.USub)


class _Unavailable(Exception):
    """Internal signal used to abort evaluation of one expression."""


def evaluate_expression(expression: str) -> NumericValue:
    """Evaluate a fully substituted arithmetic expression.

    Args:
        expression: Expression made of numeric literals, parentheses, unary
            `+`/`-` and binary `+ - * /` (e.g. "(462) + (850)").

    Returns:
        The computed float value, or NA for division by zero, malformed or
        empty input, unsupported syntax, and non-finite results.
    """

    if not expression or not expression.strip():
        return NA

    try:
        tree = ast.parse(expression.strip(), mode="eval")
        value = _eval_node(tree.body)
    except (SyntaxError, ValueError, RecursionError, OverflowError, _Unavailable):
        return NA

    if not math.isfinite(value):
        return NA
    return value


def is_safe_expression(expression: str) -> bool:
    """Return True when an expression only uses the supported syntax.

    Unlike `evaluate_expression`, division by zero does not make an
    expression unsafe; this is a structural check used at write time.
    """

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except (SyntaxError, ValueError, RecursionError):
        return False

    for node in ast.walk(tree):
        if isinstance(node, (ast.Expression, ast.Load)):
            continue
        if isinstance(node, _BINARY_OPS + _UNARY_OPS):
            continue
        if isinstance(node, ast.Constant) and _is_numeric_constant(node.value):
            continue
        if isinstance(node, ast.UnaryOp) and isinstance(node.op, _UNARY_OPS):
            continue
        if isinstance(node, ast.BinOp) and isinstance(node.op, _BINARY_OPS):
            continue
        return False
    return True


def _is_numeric_constant(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _eval_node(node: ast.AST) -> float:
    """Recursively evaluate an AST node with strict safety rules."""

    if isinstance(node, ast.Constant):
        if _is_numeric_constant(node.value):
            return float(node.value)
        raise _Unavailable

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, _UNARY_OPS):
        operand = _eval_node(node.operand)
        return operand if isinstance(node.op, ast.UAdd) else -operand

    if isinstance(node, ast.BinOp) and isinstance(node.op, _BINARY_OPS):
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Add):
            return left + right
        if isinstance(node.op, ast.Sub):
            return left - right
        if isinstance(node.op, ast.Mult):
            return left * right
        if right == 0:
            raise _Unavailable
        return left / right

    raise _Unavailable
