"""
Size-based price adjustments.

Two schemes coexist and are never combined:
- additive deltas for the display-time size upsell preview
- multipliers used by the price resolver's fallback chain
"""

from typing import Mapping, Optional

from order_pricing.discount import round2, to_decimal

# Added to the base price when the catalog has no size pricing
ADDITIVE_SIZE_DELTAS = {
    "XS": 30.0,
    "S": 50.0,
    "M": 60.0,
    "L": 70.0,
    "XL": 80.0,
}

SIZE_MULTIPLIERS = {
    "XS": 0.95,
    "S": 1.00,
    "M": 1.05,
    "L": 1.10,
    "XL": 1.15,
    "XXL": 1.20,
    "XXXL": 1.25,
}


def _normalize(size: Optional[str]) -> str:
    return str(size).strip().upper() if size else ""


class SizeAdjustmentTable:
    """Size code lookups; unknown or missing sizes are the identity."""

    def __init__(
        self,
        additive: Optional[Mapping[str, float]] = None,
        multipliers: Optional[Mapping[str, float]] = None,
    ):
        self.additive = dict(ADDITIVE_SIZE_DELTAS if additive is None else additive)
        self.multipliers = dict(SIZE_MULTIPLIERS if multipliers is None else multipliers)

    def delta(self, size: Optional[str]) -> float:
        return self.additive.get(_normalize(size), 0.0)

    def multiplier(self, size: Optional[str]) -> float:
        return self.multipliers.get(_normalize(size), 1.0)

    def has_multiplier(self, size: Optional[str]) -> bool:
        return _normalize(size) in self.multipliers

    def apply_multiplier(self, base_price, size: Optional[str]):
        """Unrounded base price times the size multiplier, as a Decimal."""
        return to_decimal(base_price) * to_decimal(self.multiplier(size))

    def upsell_price(
        self,
        base_price: float,
        size: Optional[str],
        size_pricing: Optional[Mapping[str, float]] = None,
    ) -> float:
        """
        Price shown when a shopper picks a size.

        Args:
            base_price: Product base price
            size: Selected size code
            size_pricing: Catalog per-size prices, if the product has them

        Returns:
            The catalog size price when one exists, otherwise base price plus
            the additive size delta
        """
        code = _normalize(size)
        if not code:
            return base_price
        if size_pricing and size_pricing.get(code) is not None:
            return float(size_pricing[code])
        return round2(to_decimal(base_price) + to_decimal(self.delta(code)))
