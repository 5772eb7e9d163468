from __future__ import annotations

import ast
import logging
import operator

from .registry import ParamSpec, ToolSpec

logger = logging.getLogger(__name__)

_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

# Keeps 10**10**10 and (9**999)**999 style inputs from pinning a worker thread
_MAX_EXPONENT = 1000
_MAX_RESULT_BITS = 100_000


def _eval_node(node: ast.AST) -> int | float:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ValueError(f"Unsupported constant: {node.value!r}")
        return node.value
    if isinstance(node, ast.BinOp):
        op = _OPERATORS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator: {type(node.op).__name__}")
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if op is operator.pow and abs(right) > _MAX_EXPONENT:
            raise ValueError(f"Exponent too large: {right}")
        if (
            op is operator.pow
            and isinstance(left, int)
            and isinstance(right, int)
            and left.bit_length() * right > _MAX_RESULT_BITS
        ):
            raise ValueError("Result too large")
        return op(left, right)
    if isinstance(node, ast.UnaryOp):
        op = _OPERATORS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator: {type(node.op).__name__}")
        return op(_eval_node(node.operand))
    raise ValueError(f"Unsupported expression type: {type(node).__name__}")


def calculate(expression: str) -> str:
    """Evaluate an arithmetic expression without ``eval``.

    Supports: +, -, *, /, //, %, ** and parentheses.
    """

    try:
        tree = ast.parse(expression.strip(), mode="eval")
        result = _eval_node(tree.body)
    except ZeroDivisionError:
        return "Error calculating: division by zero"
    except Exception as exc:
        logger.info("[CALCULATOR] Rejected %r: %s", expression, exc)
        return f"Error calculating: {exc}"
    return f"Result: {result}"


calculator_tool = ToolSpec(
    name="calculator",
    description=(
        "Performs basic mathematical calculations. Input should be an arithmetic "
        "expression using + - * / // % ** and parentheses."
    ),
    parameters=(
        ParamSpec(
            name="expression",
            kind="string",
            description="The mathematical expression to evaluate (e.g., '2 + 2', '10 * 5')",
        ),
    ),
    execute=calculate,
)
