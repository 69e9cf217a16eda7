"""Money helpers — two-place Decimal, half-up rounding."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """Convert a driver value (Decimal, int, float, str, None) to Decimal without binary noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def round2(value: Any) -> Decimal:
    """Round to cents, half-up. Apply once per line item, never to a sum of rounded items."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
