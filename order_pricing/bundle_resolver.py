"""
Bundle pricing.

A bundle sells at its own price; its original price is only shown when it
is higher than the bundle price.
"""

from decimal import ROUND_HALF_UP, Decimal

from order_pricing.discount import HUNDRED, round2, to_decimal, to_money
from order_pricing.models import LineItem, PriceSource, PricingResult


class BundlePriceResolver:
    """Resolves line items whose kind is BUNDLE."""

    def resolve(self, item: LineItem) -> PricingResult:
        """
        Price a bundle line item.

        Args:
            item: Bundle line item; bundle_ref may be missing

        Returns:
            PricingResult with is_bundle=True; a missing bundle price gives a
            zero result marked as an error

        Raises:
            ValueError: If the bundle price is negative or not numeric
        """
        bundle = item.bundle_ref
        unit_price = to_money(bundle.bundle_price) if bundle else 0.0
        stated_original = to_money(bundle.original_price) if bundle else 0.0
        if unit_price < 0:
            raise ValueError(f"Bundle price cannot be negative: {unit_price}")

        original_price = stated_original if stated_original > unit_price else unit_price
        discount_percent = 0
        if original_price > unit_price and original_price > 0:
            saved = (to_decimal(original_price) - to_decimal(unit_price)) / to_decimal(original_price)
            discount_percent = int((saved * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

        unit_price = round2(unit_price)
        original_price = round2(original_price)
        return PricingResult(
            unit_price=unit_price,
            original_price=original_price,
            discount_percent=discount_percent,
            quantity=item.quantity,
            total_price=round2(to_decimal(unit_price) * item.quantity),
            total_original_price=round2(to_decimal(original_price) * item.quantity),
            is_bundle=True,
            source=PriceSource.BUNDLE,
            error=unit_price == 0,
        )
