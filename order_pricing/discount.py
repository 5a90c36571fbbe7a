"""
Money rounding and percentage discounts.

All money values are rounded half-up to two decimals, once, at the end of
a computation.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def to_money(value) -> float:
    """
    Read a price field from a catalog or order document.

    Args:
        value: Number or numeric string; None and "" read as 0

    Returns:
        The value as a float

    Raises:
        ValueError: If the value is not numeric or not finite
        TypeError: If the value is of an unexpected type
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise TypeError("Price cannot be a boolean")
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError(f"Price must be finite, got {value!r}")
    return amount


def round2(value) -> float:
    """Round a money value half-up to 2 decimal places."""
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def effective_discount(discount_percent) -> float:
    """Discount percent actually applied; out-of-range values mean no discount."""
    if discount_percent is None:
        return 0.0
    discount = float(discount_percent)
    if not math.isfinite(discount) or discount <= 0 or discount > 100:
        return 0.0
    return discount


def apply_discount(price, discount_percent) -> float:
    """
    Apply a percentage discount to a price.

    Args:
        price: Base price
        discount_percent: Discount in percent; values <= 0 or > 100 are
            treated as no discount

    Returns:
        Discounted price rounded to 2 decimals, or the price unchanged
    """
    discount = effective_discount(discount_percent)
    if discount == 0:
        return price
    factor = 1 - to_decimal(discount) / HUNDRED
    return round2(to_decimal(price) * factor)
