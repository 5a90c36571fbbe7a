"""
Cancellation refund calculation for the storefront.

Handles full-order and partial-item cancellations. Only computes amounts;
persisting the request and executing the refund belong to the caller.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from order_pricing.discount import HUNDRED, round2, to_decimal
from order_pricing.models import (
    CancellationContext,
    CancellationResult,
    CancellationType,
    CustomerInfo,
    LineItem,
    Order,
    OrderStatus,
    PricingResult,
    SelectedItem,
)
from order_pricing.price_resolver import PriceResolver
from order_pricing.refund_policy import RefundPolicyEngine

logger = logging.getLogger(__name__)

# Statuses in which a customer may still request a cancellation
CANCELLABLE_STATUSES = (OrderStatus.ORDER_PLACED, OrderStatus.PROCESSING)


class CancellationError(Exception):
    pass


class EmptySelection(CancellationError):
    pass


class InvalidSelection(CancellationError):
    def __init__(self, unknown_ids: Iterable[str]):
        self.unknown_ids = tuple(sorted(unknown_ids))
        super().__init__(f"Items not in order: {', '.join(self.unknown_ids)}")


class CancellationCalculator:
    """
    Computes refunds for cancelled orders and items.

    Business Rules:
    - Item value is the resolved total price of each cancelled line item
    - One refund percentage applies to the whole request
    - refund = value x percent / 100, rounded to cents; the rest is retained
    - Orders can only be cancelled before they go out for delivery
    """

    def __init__(
        self,
        resolver: Optional[PriceResolver] = None,
        policy_engine: Optional[RefundPolicyEngine] = None,
    ):
        self.resolver = resolver or PriceResolver()
        self.policy_engine = policy_engine or RefundPolicyEngine()

    def can_cancel(self, order_status: OrderStatus) -> bool:
        """
        Check if a customer may request cancellation of an order.

        Args:
            order_status: Current status of the order

        Returns:
            True while the order is placed or processing, False otherwise
        """
        return order_status in CANCELLABLE_STATUSES

    def compute_full(
        self,
        order: Order,
        context: CancellationContext,
        override_percent: Optional[float] = None,
        customer: Optional[CustomerInfo] = None,
    ) -> CancellationResult:
        """
        Compute the refund for cancelling every item of an order.

        Raises:
            EmptySelection: If the order has no items
        """
        if not order.items:
            raise EmptySelection(f"Order {order.order_id} has no items to cancel")
        return self._compute(
            order, list(order.items), context, CancellationType.FULL_ORDER, override_percent, customer
        )

    def compute_partial(
        self,
        order: Order,
        selected_item_ids: Iterable[str],
        context: CancellationContext,
        override_percent: Optional[float] = None,
        customer: Optional[CustomerInfo] = None,
    ) -> CancellationResult:
        """
        Compute the refund for cancelling some items of an order.

        Args:
            order: Order the items belong to
            selected_item_ids: Identities of the items to cancel
            context: Cancellation facts, with the captured request time
            override_percent: Admin-chosen refund percentage, if any
            customer: Customer facts for loyalty bonuses, if known

        Returns:
            CancellationResult over the selected items, in order item order

        Raises:
            EmptySelection: If no item ids are given
            InvalidSelection: If any id does not belong to the order
        """
        wanted = {str(item_id) for item_id in selected_item_ids}
        if not wanted:
            raise EmptySelection("No items selected for cancellation")

        known = {item.item_id for item in order.items}
        unknown = wanted - known
        if unknown:
            raise InvalidSelection(unknown)

        selected = [item for item in order.items if item.item_id in wanted]
        return self._compute(
            order, selected, context, CancellationType.PARTIAL_ITEMS, override_percent, customer
        )

    def _compute(
        self,
        order: Order,
        items: List[LineItem],
        context: CancellationContext,
        cancellation_type: CancellationType,
        override_percent: Optional[float],
        customer: Optional[CustomerInfo],
    ) -> CancellationResult:
        priced: List[Tuple[LineItem, PricingResult]] = [(item, self.resolver.resolve(item)) for item in items]

        total_item_value = 0.0
        for _, pricing in priced:
            total_item_value = round2(to_decimal(total_item_value) + to_decimal(pricing.total_price))

        decision = self.policy_engine.compute_percent(order, context, override_percent, customer)
        percent = to_decimal(decision.refund_percent)

        refund_amount = round2(to_decimal(total_item_value) * percent / HUNDRED)
        retained_amount = round2(to_decimal(total_item_value) - to_decimal(refund_amount))

        selected = tuple(
            SelectedItem(
                item_id=item.item_id,
                pricing=pricing,
                refund_amount=round2(to_decimal(pricing.total_price) * percent / HUNDRED),
            )
            for item, pricing in priced
        )

        logger.info(
            "%s cancellation of order %s: %d item(s), value %.2f, refund %.2f at %s%%",
            cancellation_type.value,
            order.order_id,
            len(selected),
            total_item_value,
            refund_amount,
            decision.refund_percent,
        )
        return CancellationResult(
            order_id=order.order_id,
            cancellation_type=cancellation_type,
            selected_item_pricing=selected,
            total_item_value=total_item_value,
            refund_percent=decision.refund_percent,
            refund_amount=refund_amount,
            retained_amount=retained_amount,
            decision=decision,
        )
