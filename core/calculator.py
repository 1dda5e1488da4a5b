# =============================================================================
# core/calculator.py  -  Demonstration arithmetic
# =============================================================================
# Bundled so an MCP client has something trivial to call while checking the
# wiring.  Division by zero is an ordinary answer, not an exception.
# =============================================================================

DIVIDE_BY_ZERO_MESSAGE = "Error: Cannot divide by zero"

OPERATIONS = ("add", "subtract", "multiply", "divide")


def add(a: float, b: float) -> float:
    return a + b


def calculate(operation: str, a: float, b: float) -> float | str:
    """Apply one of the four operations.

    Returns the numeric result, or DIVIDE_BY_ZERO_MESSAGE for ``divide``
    with ``b == 0``.
    """
    if operation == "add":
        return a + b
    if operation == "subtract":
        return a - b
    if operation == "multiply":
        return a * b
    if operation == "divide":
        if b == 0:
            return DIVIDE_BY_ZERO_MESSAGE
        return a / b
    raise ValueError(f"Unsupported operation: {operation!r}")


def format_number(value: float) -> str:
    """Render like a JSON number: 3.0 -> "3", 2.5 -> "2.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
