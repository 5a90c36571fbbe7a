"""
Configuration for the pricing and refund engine.

Business defaults are module constants; the engine receives them through
the RefundPolicy and PricingConfig structs so alternate policies can be
injected without touching globals. Environment variables override the
defaults (a .env file is loaded by the hosting entry point).
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

# Refund tiers by time since order
EARLY_REFUND_PERCENTAGE = 90.0  # within 24 hours
STANDARD_REFUND_PERCENTAGE = 75.0  # after 24 hours, up to 7 days
LATE_REFUND_PERCENTAGE = 50.0  # after 7 days

# Starting point of the policy-object path
BASE_REFUND_PERCENTAGE = 75.0

# Penalties (percentage points)
DELIVERED_ORDER_PENALTY = 25.0
LATE_REQUEST_PENALTY = 15.0
PAST_ESTIMATED_DATE_PENALTY = 15.0
WEEK_AFTER_DELIVERY_PENALTY = 20.0
MONTH_AFTER_DELIVERY_PENALTY = 30.0

# Loyalty bonuses (percentage points)
VIP_CUSTOMER_BONUS = 10.0
REGULAR_CUSTOMER_BONUS = 5.0
REGULAR_CUSTOMER_MIN_ORDERS = 5

MINIMUM_REFUND_PERCENTAGE = 25.0
MAXIMUM_REFUND_PERCENTAGE = 100.0

LATE_REQUEST_DAYS = 7
EARLY_WINDOW_HOURS = 24

# Fixed delivery charge for every order
DELIVERY_CHARGE = 100.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefundPolicy:
    """
    Refund policy parameters.

    use_time_tiers selects the tiered baseline (90/75/50 by elapsed time).
    With it off, or when an admin override percentage is supplied, the
    calculation starts from base_refund_percentage (or the override) and the
    late-request penalty applies instead.
    """

    base_refund_percentage: float = BASE_REFUND_PERCENTAGE
    early_refund_percentage: float = EARLY_REFUND_PERCENTAGE
    standard_refund_percentage: float = STANDARD_REFUND_PERCENTAGE
    late_refund_percentage: float = LATE_REFUND_PERCENTAGE
    delivered_order_penalty: float = DELIVERED_ORDER_PENALTY
    late_request_penalty: float = LATE_REQUEST_PENALTY
    past_estimated_date_penalty: float = PAST_ESTIMATED_DATE_PENALTY
    week_after_delivery_penalty: float = WEEK_AFTER_DELIVERY_PENALTY
    month_after_delivery_penalty: float = MONTH_AFTER_DELIVERY_PENALTY
    vip_customer_bonus: float = VIP_CUSTOMER_BONUS
    regular_customer_bonus: float = REGULAR_CUSTOMER_BONUS
    regular_customer_min_orders: int = REGULAR_CUSTOMER_MIN_ORDERS
    minimum_refund_percentage: float = MINIMUM_REFUND_PERCENTAGE
    maximum_refund_percentage: float = MAXIMUM_REFUND_PERCENTAGE
    early_window_hours: float = EARLY_WINDOW_HOURS
    late_request_days: int = LATE_REQUEST_DAYS
    use_time_tiers: bool = True
    apply_delivery_window_penalties: bool = False

    def __post_init__(self):
        if not 0 <= self.minimum_refund_percentage <= self.maximum_refund_percentage <= 100:
            raise ValueError(
                "Refund bounds must satisfy 0 <= minimum <= maximum <= 100"
            )
        for name in (
            "delivered_order_penalty",
            "late_request_penalty",
            "past_estimated_date_penalty",
            "week_after_delivery_penalty",
            "month_after_delivery_penalty",
            "vip_customer_bonus",
            "regular_customer_bonus",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")


@dataclass(frozen=True)
class PricingConfig:
    delivery_charge: float = DELIVERY_CHARGE

    def __post_init__(self):
        if self.delivery_charge < 0:
            raise ValueError("Delivery charge cannot be negative")


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def refund_policy_from_env(environ: Optional[Mapping[str, str]] = None) -> RefundPolicy:
    """
    Build a RefundPolicy from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        RefundPolicy with any REFUND_* overrides applied

    Raises:
        ValueError: If a variable is not a number or the bounds are invalid
    """
    env = os.environ if environ is None else environ
    policy = RefundPolicy(
        base_refund_percentage=_env_float(env, "REFUND_BASE_PERCENTAGE", BASE_REFUND_PERCENTAGE),
        early_refund_percentage=_env_float(env, "REFUND_EARLY_PERCENTAGE", EARLY_REFUND_PERCENTAGE),
        standard_refund_percentage=_env_float(
            env, "REFUND_STANDARD_PERCENTAGE", STANDARD_REFUND_PERCENTAGE
        ),
        late_refund_percentage=_env_float(env, "REFUND_LATE_PERCENTAGE", LATE_REFUND_PERCENTAGE),
        delivered_order_penalty=_env_float(env, "REFUND_DELIVERED_PENALTY", DELIVERED_ORDER_PENALTY),
        late_request_penalty=_env_float(env, "REFUND_LATE_REQUEST_PENALTY", LATE_REQUEST_PENALTY),
        minimum_refund_percentage=_env_float(
            env, "REFUND_MINIMUM_PERCENTAGE", MINIMUM_REFUND_PERCENTAGE
        ),
        use_time_tiers=_env_flag(env, "REFUND_USE_TIME_TIERS", True),
        apply_delivery_window_penalties=_env_flag(env, "REFUND_DELIVERY_WINDOW_PENALTIES", False),
    )
    logger.debug("Refund policy loaded: %s", policy)
    return policy


def pricing_config_from_env(environ: Optional[Mapping[str, str]] = None) -> PricingConfig:
    env = os.environ if environ is None else environ
    return PricingConfig(delivery_charge=_env_float(env, "DELIVERY_CHARGE", DELIVERY_CHARGE))


def configure_logging() -> None:
    """
    Set the engine's log level from PRICING_DEBUG.

    With PRICING_DEBUG=true every pricing and refund decision is logged at
    INFO. Otherwise the engine only reports warnings. Loggers outside the
    order_pricing package are left alone.
    """
    engine_logger = logging.getLogger("order_pricing")
    if os.getenv("PRICING_DEBUG", "false").lower() == "true":
        logging.basicConfig(
            level=logging.INFO,
            format="%(levelname)s [pricing] %(message)s",
        )
        engine_logger.setLevel(logging.INFO)
    else:
        engine_logger.setLevel(logging.WARNING)
