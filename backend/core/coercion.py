"""
Safe Accessors

Null-tolerant field lookup and numeric coercion shared by the loader
and every aggregation. Nothing here raises on bad input.
"""

import math
from datetime import date, datetime
from typing import Any, Iterable, Optional

_MISSING = object()


def get_path(record: Any, path: str, default: Any = None) -> Any:
    """
    Look up a dotted path in nested dicts.

    ``get_path(order, "customer.email")`` returns ``default`` when any
    segment is missing or the value is None.
    """
    current = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING or current is None:
            return default
    return current


def first_present(record: Any, candidates: Iterable[str], default: Any = None) -> Any:
    """Return the first non-empty value among candidate field paths."""
    for path in candidates:
        value = get_path(record, path)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def safe_float(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float; anything unparsable becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "").lstrip("₹$")
        if not text:
            return default
        try:
            result = float(text)
        except ValueError:
            return default
    else:
        try:
            result = float(value)
        except (TypeError, ValueError):
            return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    """Coerce to an int via :func:`safe_float` (truncating)."""
    return int(safe_float(value, float(default)))


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` for a zero denominator."""
    if not denominator:
        return default
    return numerator / denominator


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from the shapes order sources produce.

    Accepts datetimes, dates, ISO-8601 strings (a trailing ``Z`` included)
    and epoch numbers in seconds or milliseconds. Aware values are
    converted to local naive time so every order compares on one clock.
    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return None
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            parsed = datetime.fromtimestamp(seconds)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
