"""
Line item price resolution.

Orders carry several price signals that can disagree: snapshots stored at
checkout, catalog per-size prices, and the catalog base price with size
multipliers and discounts. The resolver evaluates them in a fixed priority
order and takes the first one that yields a positive price.

Priority:
1. stored size-adjusted price (final)
2. stored unit price (final)
3. stored item total / quantity (final)
4. catalog per-size price (final)
5. base price x size multiplier, then catalog discount
6. base price, then catalog discount
"""

import logging
from decimal import Decimal
from typing import Callable, Optional, Tuple

from order_pricing.bundle_resolver import BundlePriceResolver
from order_pricing.discount import apply_discount, effective_discount, round2, to_decimal, to_money
from order_pricing.models import LineItem, PriceSource, PricingResult
from order_pricing.size_adjustment import SizeAdjustmentTable

logger = logging.getLogger(__name__)

Strategy = Callable[[LineItem], Optional[PricingResult]]


def _priced(
    item: LineItem,
    unit_price,
    original_price,
    discount_percent: float,
    source: PriceSource,
    error: bool = False,
) -> PricingResult:
    # Totals come from the exact unit so stored totals survive a split over quantity
    unit = to_decimal(unit_price)
    original = to_decimal(original_price)
    return PricingResult(
        unit_price=round2(unit),
        original_price=round2(original),
        discount_percent=discount_percent,
        quantity=item.quantity,
        total_price=round2(unit * item.quantity),
        total_original_price=round2(original * item.quantity),
        is_bundle=item.is_bundle,
        source=source,
        error=error,
    )


def _final(item: LineItem, price, source: PriceSource) -> PricingResult:
    return _priced(item, price, price, 0, source)


def _lenient_money(value) -> float:
    try:
        return to_money(value)
    except (TypeError, ValueError):
        return 0.0


class PriceResolver:
    """
    Resolves the authoritative price of a line item.

    Bundles are delegated to a BundlePriceResolver. Any failure while reading
    a malformed reference is caught here and turned into a fallback result
    flagged with error=True.
    """

    def __init__(
        self,
        sizes: Optional[SizeAdjustmentTable] = None,
        bundle_resolver: Optional[BundlePriceResolver] = None,
    ):
        self.sizes = sizes or SizeAdjustmentTable()
        self.bundle_resolver = bundle_resolver or BundlePriceResolver()
        self.strategies: Tuple[Tuple[PriceSource, Strategy], ...] = (
            (PriceSource.STORED_SIZE_ADJUSTED, self._stored_size_adjusted_price),
            (PriceSource.STORED_UNIT, self._stored_unit_price),
            (PriceSource.STORED_ITEM_TOTAL, self._stored_item_total),
            (PriceSource.CATALOG_SIZE_PRICING, self._catalog_size_price),
            (PriceSource.SIZE_MULTIPLIER, self._size_multiplied_price),
            (PriceSource.BASE_PRICE, self._base_price),
        )

    def resolve(self, item: LineItem) -> PricingResult:
        """
        Resolve the price of a line item.

        Args:
            item: Product or bundle line item

        Returns:
            PricingResult; never raises for bad price data. A result with
            error=True is degraded (fallback or no price signal at all).
        """
        try:
            if item.is_bundle:
                return self.bundle_resolver.resolve(item)
            return self._resolve_product(item)
        except Exception as e:
            logger.warning(
                "Pricing failed for item %s, using fallback price: %s", item.item_id, e
            )
            return self.fallback(item)

    def _resolve_product(self, item: LineItem) -> PricingResult:
        for source, strategy in self.strategies:
            result = strategy(item)
            if result is not None:
                logger.debug("Item %s priced from %s", item.item_id, source.value)
                return result

        logger.info("No price signal for item %s", item.item_id)
        return _priced(item, 0.0, 0.0, 0, PriceSource.UNAVAILABLE, error=True)

    def fallback(self, item: LineItem) -> PricingResult:
        """Best-effort price from the item's own stored fields, discount 0."""
        candidates = (
            _lenient_money(item.stored_size_adjusted_price),
            _lenient_money(item.stored_unit_price),
            to_decimal(_lenient_money(item.stored_item_total)) / item.quantity,
            _lenient_money(item.price),
        )
        price = next((c for c in candidates if c > 0), 0.0)
        return _priced(item, price, price, 0, PriceSource.FALLBACK, error=True)

    def _stored_size_adjusted_price(self, item: LineItem) -> Optional[PricingResult]:
        price = to_money(item.stored_size_adjusted_price)
        if price > 0:
            return _final(item, price, PriceSource.STORED_SIZE_ADJUSTED)
        return None

    def _stored_unit_price(self, item: LineItem) -> Optional[PricingResult]:
        price = to_money(item.stored_unit_price)
        if price > 0:
            return _final(item, price, PriceSource.STORED_UNIT)
        return None

    def _stored_item_total(self, item: LineItem) -> Optional[PricingResult]:
        total = to_money(item.stored_item_total)
        if total > 0:
            return _final(item, to_decimal(total) / item.quantity, PriceSource.STORED_ITEM_TOTAL)
        return None

    def _catalog_size_price(self, item: LineItem) -> Optional[PricingResult]:
        product = item.product_ref
        if not item.size or product is None or not product.size_pricing:
            return None
        price = to_money(product.size_pricing.get(item.size))
        if price > 0:
            return _final(item, price, PriceSource.CATALOG_SIZE_PRICING)
        return None

    def _size_multiplied_price(self, item: LineItem) -> Optional[PricingResult]:
        if not item.size or not self.sizes.has_multiplier(item.size):
            return None
        base_price = self._catalog_base_price(item)
        if base_price == 0:
            return None
        original = self.sizes.apply_multiplier(base_price, item.size)
        return self._discounted(item, original, PriceSource.SIZE_MULTIPLIER)

    def _base_price(self, item: LineItem) -> Optional[PricingResult]:
        base_price = self._catalog_base_price(item)
        if base_price == 0:
            return None
        return self._discounted(item, to_decimal(base_price), PriceSource.BASE_PRICE)

    def _catalog_base_price(self, item: LineItem) -> float:
        if item.product_ref is None:
            return 0.0
        base_price = to_money(item.product_ref.price)
        if base_price < 0:
            raise ValueError(f"Catalog price cannot be negative: {base_price}")
        return base_price

    def _discount_for(self, item: LineItem) -> float:
        catalog_discount = item.product_ref.discount if item.product_ref else None
        return to_money(catalog_discount or item.discount or 0)

    def _discounted(self, item: LineItem, original: Decimal, source: PriceSource) -> PricingResult:
        discount = effective_discount(self._discount_for(item))
        unit_price = round2(apply_discount(original, discount))
        return _priced(item, unit_price, round2(original), discount, source)
