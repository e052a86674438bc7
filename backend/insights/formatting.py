"""
Display formatting for narrative text.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from core.coercion import safe_float

CURRENCY_SYMBOL = "₹"


def group_indian(digits: str) -> str:
    """Group an integer digit string the Indian way: 12,34,567."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Any, decimals: int = 0) -> str:
    """
    Format an amount as rupees, e.g. ``₹1,00,000``.

    Rounds half-up; non-numeric input formats as zero.
    """
    value = safe_float(amount)
    quantum = Decimal(1).scaleb(-decimals)
    try:
        rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        rounded = Decimal(0).quantize(quantum)

    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):f}"
    whole, _, fraction = text.partition(".")
    result = f"{sign}{CURRENCY_SYMBOL}{group_indian(whole)}"
    if decimals > 0:
        result += f".{fraction}"
    return result


def format_percent(ratio: Any, decimals: int = 1) -> str:
    """Format a ratio (0.25) as a percentage string (25.0%)."""
    return f"{safe_float(ratio) * 100:.{decimals}f}%"


def format_count(value: Any) -> str:
    """Whole counts get digit grouping; fractional quantities keep one decimal."""
    number = safe_float(value)
    if not number.is_integer():
        return f"{number:.1f}"
    sign = "-" if number < 0 else ""
    return f"{sign}{group_indian(str(int(abs(number))))}"
