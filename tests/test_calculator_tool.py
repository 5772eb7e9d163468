"""Tests for the calculator tool."""

from __future__ import annotations

import pytest

from agent_server.tools.calculator_tool import calculate, calculator_tool


class TestCalculate:
    """Tests for the AST-based arithmetic evaluator."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("2+2", "Result: 4"),
            ("10 * 5", "Result: 50"),
            ("(1 + 2) * 3", "Result: 9"),
            ("7 / 2", "Result: 3.5"),
            ("7 // 2", "Result: 3"),
            ("2 ** 10", "Result: 1024"),
            ("-3 + 5", "Result: 2"),
            ("17 % 5", "Result: 2"),
        ],
    )
    def test_evaluates_arithmetic(self, expression, expected):
        assert calculate(expression) == expected

    def test_strips_surrounding_whitespace(self):
        """Should tolerate padding around the expression."""
        assert calculate("   4 * 4  ") == "Result: 16"

    def test_division_by_zero_is_reported(self):
        assert calculate("1 / 0") == "Error calculating: division by zero"

    def test_rejects_names_and_calls(self):
        """Should never evaluate arbitrary Python."""
        result = calculate("__import__('os').getcwd()")

        assert result.startswith("Error calculating:")

    def test_rejects_huge_exponents(self):
        result = calculate("10 ** 10 ** 10")

        assert result.startswith("Error calculating:")
        assert "Exponent too large" in result

    def test_rejects_huge_nested_powers(self):
        result = calculate("((9 ** 999) ** 999) ** 999")

        assert result == "Error calculating: Result too large"

    def test_allows_large_but_bounded_powers(self):
        assert calculate("2 ** 1000") == f"Result: {2 ** 1000}"

    def test_syntax_error_is_reported(self):
        assert calculate("2 +").startswith("Error calculating:")

    def test_rejects_string_constants(self):
        assert "Unsupported constant" in calculate("'a' * 3")


class TestCalculatorToolSpec:
    """Tests for the calculator tool descriptor."""

    def test_requires_expression(self):
        schema = calculator_tool.parameters_schema()

        assert schema["required"] == ["expression"]
        assert schema["properties"]["expression"]["type"] == "string"
