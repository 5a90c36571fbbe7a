"""
Order-level totals.

Totals are an explicit fold over resolved line items. The running sums are
re-rounded after every addition so long orders do not drift.
"""

from functools import reduce
from typing import Callable, Iterable, Optional

from order_pricing.config import PricingConfig
from order_pricing.discount import round2, to_decimal
from order_pricing.models import LineItem, OrderTotalsResult, PricingResult
from order_pricing.price_resolver import PriceResolver

Rounding = Callable[[object], float]


def fold_pricing(
    totals: OrderTotalsResult, pricing: PricingResult, rounding: Rounding = round2
) -> OrderTotalsResult:
    """Add one resolved line item to running totals."""
    total_price = rounding(to_decimal(totals.total_price) + to_decimal(pricing.total_price))
    total_original_price = rounding(
        to_decimal(totals.total_original_price) + to_decimal(pricing.total_original_price)
    )
    return OrderTotalsResult(
        total_qty=totals.total_qty + pricing.quantity,
        total_price=total_price,
        total_original_price=total_original_price,
        total_discount=rounding(to_decimal(total_original_price) - to_decimal(total_price)),
    )


class OrderTotals:
    """Aggregates line item pricing for carts and orders."""

    def __init__(
        self,
        resolver: Optional[PriceResolver] = None,
        rounding: Rounding = round2,
        config: Optional[PricingConfig] = None,
    ):
        self.resolver = resolver or PriceResolver()
        self.rounding = rounding
        self.config = config or PricingConfig()

    def aggregate(self, items: Iterable[LineItem]) -> OrderTotalsResult:
        """
        Sum quantity, price, original price and discount over line items.

        Args:
            items: Line items of a cart or order

        Returns:
            OrderTotalsResult; all zero for no items
        """
        return reduce(
            lambda totals, item: fold_pricing(totals, self.resolver.resolve(item), self.rounding),
            items,
            OrderTotalsResult(),
        )

    def delivery_charge(self) -> float:
        # Flat rate, independent of distance and order value
        return self.config.delivery_charge

    def payable_amount(self, items: Iterable[LineItem]) -> float:
        """Order total plus delivery; an empty order costs nothing."""
        totals = self.aggregate(items)
        if totals.total_qty == 0:
            return 0.0
        return round2(to_decimal(totals.total_price) + to_decimal(self.delivery_charge()))
