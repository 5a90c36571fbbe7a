"""
Invariant checks on pricing and cancellation results before they are shown
or persisted.
"""

import math
from typing import List, Union

from order_pricing.discount import to_decimal
from order_pricing.models import (
    CancellationResult,
    PolicyViolation,
    PricingResult,
    ValidationReport,
)

# Allowed gap between refund + retained and the item value
SUM_TOLERANCE = 0.01


class PricingValidator:
    """Reports every violated invariant; never stops at the first one."""

    def validate(self, result: Union[PricingResult, CancellationResult]) -> ValidationReport:
        """
        Check a pricing or cancellation result.

        Args:
            result: PricingResult or CancellationResult

        Returns:
            ValidationReport listing all violations

        Raises:
            TypeError: If result is neither supported type
        """
        if isinstance(result, PricingResult):
            violations = self._pricing_violations(result)
        elif isinstance(result, CancellationResult):
            violations = self._cancellation_violations(result)
        else:
            raise TypeError(f"Cannot validate {type(result).__name__}")
        return ValidationReport(violations=tuple(violations))

    def _pricing_violations(self, pricing: PricingResult, prefix: str = "") -> List[PolicyViolation]:
        violations = []
        values = (
            pricing.unit_price,
            pricing.original_price,
            pricing.discount_percent,
            pricing.total_price,
            pricing.total_original_price,
        )
        if not all(math.isfinite(v) for v in values):
            violations.append(PolicyViolation("non_finite", f"{prefix}Prices must be finite numbers"))
            return violations

        if pricing.unit_price < 0:
            violations.append(
                PolicyViolation("negative_unit_price", f"{prefix}Unit price cannot be negative")
            )
        if pricing.total_price < 0:
            violations.append(
                PolicyViolation("negative_total_price", f"{prefix}Total price cannot be negative")
            )
        if pricing.discount_percent < 0 or pricing.discount_percent > 100:
            violations.append(
                PolicyViolation("discount_out_of_range", f"{prefix}Discount must be between 0-100%")
            )
        if not pricing.is_bundle and pricing.total_original_price < pricing.total_price:
            violations.append(
                PolicyViolation(
                    "original_below_final",
                    f"{prefix}Original price cannot be less than final price",
                )
            )
        return violations

    def _cancellation_violations(self, result: CancellationResult) -> List[PolicyViolation]:
        violations = []
        if not result.selected_item_pricing:
            violations.append(PolicyViolation("empty_selection", "No items selected for refund"))

        for entry in result.selected_item_pricing:
            violations.extend(self._pricing_violations(entry.pricing, prefix=f"Item {entry.item_id}: "))

        values = (
            result.total_item_value,
            result.refund_percent,
            result.refund_amount,
            result.retained_amount,
        )
        if not all(math.isfinite(v) for v in values):
            violations.append(PolicyViolation("non_finite", "Refund figures must be finite numbers"))
            return violations

        if result.total_item_value < 0:
            violations.append(
                PolicyViolation("negative_item_value", "Cancelled item value cannot be negative")
            )
        if result.refund_amount < 0:
            violations.append(
                PolicyViolation("negative_refund", "Refund amount cannot be negative")
            )
        if result.refund_percent < 0 or result.refund_percent > 100:
            violations.append(
                PolicyViolation("refund_percent_out_of_range", "Refund percentage must be between 0-100%")
            )
        if result.refund_amount > result.total_item_value:
            violations.append(
                PolicyViolation("refund_exceeds_value", "Refund amount cannot exceed item value")
            )
        gap = abs(
            to_decimal(result.refund_amount)
            + to_decimal(result.retained_amount)
            - to_decimal(result.total_item_value)
        )
        if gap > to_decimal(SUM_TOLERANCE):
            violations.append(
                PolicyViolation(
                    "amounts_do_not_sum",
                    "Refund and retained amounts do not sum to the item value",
                )
            )
        return violations
