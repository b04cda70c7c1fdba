"""Number rounding and display formatting."""

import math
from typing import Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def is_number(value) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def usable_price(value: Optional[float]) -> Optional[float]:
    """The price if it is finite and positive, else None."""
    if is_number(value) and value > 0:
        return value
    return None


def format_price(value: Optional[float]) -> str:
    if not is_number(value):
        return "Not set"
    return f"${value:.2f}"


def format_pct(value: Optional[float]) -> str:
    if not is_number(value):
        return "n/a"
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.1f}%"
