"""
Refund policy module for the storefront.

Decides what percentage of an order's value is returned when it is
cancelled.
"""

import logging
import math
from typing import List, Optional

from order_pricing.config import RefundPolicy
from order_pricing.discount import round2
from order_pricing.models import (
    Adjustment,
    CancellationContext,
    CancellationTiming,
    CustomerInfo,
    Order,
    OrderStatus,
    RefundDecision,
)

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600
VIP_TIERS = ("VIP", "PREMIUM")


class RefundPolicyEngine:
    """
    Computes refund percentages for cancellation requests.

    Business Rules:
    - Within 24 hours of ordering: 90% baseline
    - Up to 7 days: 75% baseline
    - After 7 days: 50% baseline
    - Delivered orders: 25 points penalty
    - Admin override percentages replace the time baseline; requests older
      than 7 days then carry a 15 points late penalty
    - VIP customers get 10 points, regular customers 5 points back
    - Result never drops below 25% or exceeds 100%
    """

    def __init__(self, policy: Optional[RefundPolicy] = None):
        self.policy = policy or RefundPolicy()

    def compute_percent(
        self,
        order: Order,
        context: CancellationContext,
        override_percent: Optional[float] = None,
        customer: Optional[CustomerInfo] = None,
    ) -> RefundDecision:
        """
        Compute the refund percentage for a cancellation request.

        Args:
            order: Order being cancelled
            context: Cancellation facts, with the captured request time
            override_percent: Admin-chosen refund percentage, if any
            customer: Customer facts for loyalty bonuses, if known

        Returns:
            RefundDecision with the clamped percentage and every penalty and
            bonus applied

        Raises:
            ValueError: If override_percent is outside 0-100
        """
        if override_percent is not None and not 0 <= override_percent <= 100:
            raise ValueError("Override refund percentage must be between 0 and 100")

        policy = self.policy
        hours_since_order = (
            context.request_date - context.order_date
        ).total_seconds() / SECONDS_PER_HOUR
        days_since_order = math.floor(hours_since_order / 24)
        timing = self._timing(hours_since_order, days_since_order)

        use_tier = override_percent is None and policy.use_time_tiers
        if use_tier:
            base_percent = self._tier_percent(timing)
        elif override_percent is not None:
            base_percent = float(override_percent)
        else:
            base_percent = policy.base_refund_percentage

        penalties = self._penalties(context, days_since_order, late_penalty=not use_tier)
        bonuses = self._bonuses(customer)

        percent = base_percent
        percent -= sum(p.magnitude for p in penalties)
        percent += sum(b.magnitude for b in bonuses)
        percent = max(
            policy.minimum_refund_percentage,
            min(percent, policy.maximum_refund_percentage),
        )

        decision = RefundDecision(
            refund_percent=round2(percent),
            base_percent=base_percent,
            timing=timing,
            hours_since_order=hours_since_order,
            days_since_order=days_since_order,
            applied_penalties=tuple(penalties),
            applied_bonuses=tuple(bonuses),
            override_applied=override_percent is not None,
        )
        logger.info(
            "Refund decision for order %s: %s%% (%s, base %s, penalties %s, bonuses %s)",
            order.order_id,
            decision.refund_percent,
            timing.value,
            base_percent,
            decision.total_penalty,
            decision.total_bonus,
        )
        return decision

    def _timing(self, hours_since_order: float, days_since_order: int) -> CancellationTiming:
        if hours_since_order <= self.policy.early_window_hours:
            return CancellationTiming.EARLY
        elif days_since_order <= self.policy.late_request_days:
            return CancellationTiming.STANDARD
        else:
            return CancellationTiming.LATE

    def _tier_percent(self, timing: CancellationTiming) -> float:
        if timing == CancellationTiming.EARLY:
            return self.policy.early_refund_percentage
        elif timing == CancellationTiming.STANDARD:
            return self.policy.standard_refund_percentage
        else:
            return self.policy.late_refund_percentage

    def _penalties(
        self, context: CancellationContext, days_since_order: int, late_penalty: bool
    ) -> List[Adjustment]:
        policy = self.policy
        penalties = []
        charged_for_delivery = False

        if policy.apply_delivery_window_penalties:
            penalties.extend(self._delivery_window_penalties(context))
            charged_for_delivery = context.actual_delivery_date is not None

        if context.order_status == OrderStatus.DELIVERED and not charged_for_delivery:
            penalties.append(
                Adjustment(
                    "delivered_order",
                    policy.delivered_order_penalty,
                    f"Order already delivered ({policy.delivered_order_penalty:g}% penalty)",
                )
            )

        # The time tier already encodes lateness
        if late_penalty and days_since_order > policy.late_request_days:
            penalties.append(
                Adjustment(
                    "late_request",
                    policy.late_request_penalty,
                    f"Late cancellation request ({policy.late_request_penalty:g}% penalty)",
                )
            )
        return penalties

    def _delivery_window_penalties(self, context: CancellationContext) -> List[Adjustment]:
        policy = self.policy
        penalties = []
        estimated = context.estimated_delivery_date
        if estimated is not None and context.request_date > estimated:
            penalties.append(
                Adjustment(
                    "past_estimated_delivery",
                    policy.past_estimated_date_penalty,
                    "Request made after estimated delivery date "
                    f"({policy.past_estimated_date_penalty:g}% penalty)",
                )
            )

        delivered = context.actual_delivery_date
        if delivered is not None:
            days_since_delivery = (context.request_date - delivered).days
            if days_since_delivery <= 7:
                name, magnitude, window = (
                    "week_after_delivery",
                    policy.week_after_delivery_penalty,
                    "within a week of delivery",
                )
            elif days_since_delivery <= 30:
                name, magnitude, window = (
                    "month_after_delivery",
                    policy.month_after_delivery_penalty,
                    "within a month of delivery",
                )
            else:
                name, magnitude, window = (
                    "extended_after_delivery",
                    policy.delivered_order_penalty,
                    "after extended period post-delivery",
                )
            penalties.append(Adjustment(name, magnitude, f"Request {window} ({magnitude:g}% penalty)"))
        return penalties

    def _bonuses(self, customer: Optional[CustomerInfo]) -> List[Adjustment]:
        if customer is None:
            return []

        policy = self.policy
        bonuses = []
        if customer.is_vip or customer.membership_tier.upper() in VIP_TIERS:
            bonuses.append(
                Adjustment(
                    "vip_customer",
                    policy.vip_customer_bonus,
                    f"VIP customer bonus ({policy.vip_customer_bonus:g}%)",
                )
            )
        if customer.order_count >= policy.regular_customer_min_orders:
            bonuses.append(
                Adjustment(
                    "regular_customer",
                    policy.regular_customer_bonus,
                    f"Regular customer bonus ({policy.regular_customer_bonus:g}%)",
                )
            )
        return bonuses

    def describe(self) -> dict:
        """
        Get the active policy for display.

        Returns:
            Mapping of policy parameter name to value and description
        """
        policy = self.policy
        return {
            "early_refund_percentage": (
                policy.early_refund_percentage,
                f"Cancellation within {policy.early_window_hours:g} hours of ordering",
            ),
            "standard_refund_percentage": (
                policy.standard_refund_percentage,
                f"Cancellation up to {policy.late_request_days} days after ordering",
            ),
            "late_refund_percentage": (
                policy.late_refund_percentage,
                f"Cancellation more than {policy.late_request_days} days after ordering",
            ),
            "base_refund_percentage": (
                policy.base_refund_percentage,
                "Starting percentage when time tiers are disabled",
            ),
            "delivered_order_penalty": (
                policy.delivered_order_penalty,
                "Penalty for orders that have been delivered",
            ),
            "late_request_penalty": (
                policy.late_request_penalty,
                f"Penalty for override requests made more than {policy.late_request_days} "
                "days after ordering",
            ),
            "minimum_refund_percentage": (
                policy.minimum_refund_percentage,
                "Minimum refund regardless of penalties",
            ),
            "maximum_refund_percentage": (
                policy.maximum_refund_percentage,
                "Maximum refund regardless of bonuses",
            ),
        }
