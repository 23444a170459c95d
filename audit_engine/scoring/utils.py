"""
Decimal Utilities
audit_engine/scoring/utils.py

Precision-safe decimal math shared by the section and total scorers.
All percentages use a single rounding rule: ROUND_HALF_UP to one decimal.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, Decimal]

PERCENT_PLACES = Decimal("0.1")
POINTS_PLACES = Decimal("0.01")


def to_decimal(value: Number, places: int = 4) -> Decimal:
    """Convert a number to Decimal with explicit precision."""
    return Decimal(str(value)).quantize(
        Decimal(10) ** -places, rounding=ROUND_HALF_UP
    )


def round_percentage(value: Decimal) -> Decimal:
    """Round a percentage to one decimal place."""
    return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def ratio_percentage(earned: Decimal, maximum: Decimal) -> Optional[Decimal]:
    """
    earned / maximum x 100, rounded to one decimal.

    Returns None when maximum is zero (undefined score, never an error).
    """
    if maximum <= 0:
        return None
    return round_percentage(earned * Decimal("100") / maximum)


def to_float(value: Optional[Decimal]) -> Optional[float]:
    """Decimal -> float for JSON payloads, preserving None."""
    return float(value) if value is not None else None
