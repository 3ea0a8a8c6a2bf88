"""
Money rounding helpers.
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round2(value: float | int | Decimal) -> float:
    """Round to 2 decimal places, halves away from zero."""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))
