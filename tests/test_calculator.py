"""Unit tests for the demonstration calculator."""

import pytest

from core.calculator import DIVIDE_BY_ZERO_MESSAGE, add, calculate, format_number


class TestCalculate:
    @pytest.mark.parametrize("operation, a, b, expected", [
        ("add", 2, 3, 5),
        ("subtract", 2, 3, -1),
        ("multiply", 4, 2.5, 10),
        ("divide", 9, 2, 4.5),
    ])
    def test_operations(self, operation, a, b, expected):
        assert calculate(operation, a, b) == expected

    def test_divide_by_zero_returns_message(self):
        """WHAT: divide(5, 0) is an answer, not an exception."""
        assert calculate("divide", 5, 0) == "Error: Cannot divide by zero"
        assert calculate("divide", 5, 0) == DIVIDE_BY_ZERO_MESSAGE

    def test_unknown_operation(self):
        with pytest.raises(ValueError):
            calculate("modulo", 1, 2)

    def test_add(self):
        assert add(1.5, 2) == 3.5


class TestFormatNumber:
    def test_integral_float(self):
        assert format_number(3.0) == "3"

    def test_fraction(self):
        assert format_number(2.5) == "2.5"

    def test_int(self):
        assert format_number(7) == "7"
