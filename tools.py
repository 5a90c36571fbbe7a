"""
LangChain tools for the storefront refund approval workflow.

Exposes the pricing and refund engine over the SQLite order store as
callable tools. Database URL is determined at import time from environment
variables:
- Normal mode: sqlite:///storefront.db
- Test mode (PRICING_TEST_MODE=true): uses TEST_DB_URL env var
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv
from langchain.tools import tool
from sqlalchemy import create_engine, text

from backend_service import (
    create_schema,
    get_db_url,
    load_customer,
    load_order,
    seed_sample_data,
)
from order_pricing.cancellation import CancellationCalculator, CancellationError
from order_pricing.config import configure_logging, pricing_config_from_env, refund_policy_from_env
from order_pricing.models import CancellationContext, CancellationResult, OrderStatus
from order_pricing.order_totals import OrderTotals
from order_pricing.price_resolver import PriceResolver
from order_pricing.refund_policy import RefundPolicyEngine
from order_pricing.size_adjustment import SizeAdjustmentTable
from order_pricing.validator import PricingValidator

load_dotenv()
configure_logging()
logger = logging.getLogger(__name__)

# Initialize SQLite database connection
_db_url = get_db_url()
db_engine = create_engine(_db_url, connect_args={"check_same_thread": False})
create_schema(db_engine)

# Only seed sample data in non-test mode
if os.getenv("PRICING_TEST_MODE") != "true":
    seed_sample_data(db_engine)

size_table = SizeAdjustmentTable()
price_resolver = PriceResolver(sizes=size_table)
policy_engine = RefundPolicyEngine(refund_policy_from_env())
order_totals = OrderTotals(resolver=price_resolver, config=pricing_config_from_env())
cancellation_calculator = CancellationCalculator(price_resolver, policy_engine)
pricing_validator = PricingValidator()


def _money(amount: float) -> str:
    return f"₹{amount:.2f}"


def _format_quote(result: CancellationResult) -> str:
    decision = result.decision
    lines = [
        "Cancellation Quote:",
        f"  Order: {result.order_id}",
        f"  Type: {result.cancellation_type.value}",
        f"  Timing: {decision.timing.value} ({decision.days_since_order} days since order)",
        "  Items:",
    ]
    for entry in result.selected_item_pricing:
        pricing = entry.pricing
        price = (
            "(Price unavailable)"
            if pricing.unit_price == 0
            else f"{pricing.quantity} x {_money(pricing.unit_price)} = {_money(pricing.total_price)}"
        )
        lines.append(f"    - {entry.item_id}: {price}, refund {_money(entry.refund_amount)}")

    lines.append(f"  Base refund: {decision.base_percent:g}%")
    for penalty in decision.applied_penalties:
        lines.append(f"  Penalty: {penalty.reason}")
    for bonus in decision.applied_bonuses:
        lines.append(f"  Bonus: {bonus.reason}")
    lines.extend(
        [
            f"  Item value: {_money(result.total_item_value)}",
            f"  Refund percentage: {result.refund_percent:g}%",
            f"  Refund amount: {_money(result.refund_amount)}",
            f"  Retained amount: {_money(result.retained_amount)}",
        ]
    )
    return "\n".join(lines)


def _quote_cancellation(
    order_id: str,
    item_ids: Optional[List[str]],
    refund_percentage: Optional[float],
) -> str:
    # One timestamp for the whole request keeps tier boundaries consistent
    now = datetime.now(timezone.utc)
    try:
        order = load_order(db_engine, order_id, now)
        if order is None:
            return f"Order {order_id} not found in system."

        customer = load_customer(db_engine, order.customer_id) if order.customer_id else None
        context = CancellationContext.for_order(order, now)
        if item_ids is None:
            result = cancellation_calculator.compute_full(
                order, context, override_percent=refund_percentage, customer=customer
            )
        else:
            result = cancellation_calculator.compute_partial(
                order, item_ids, context, override_percent=refund_percentage, customer=customer
            )
    except CancellationError as e:
        logger.info("Cancellation request for %s rejected: %s", order_id, e)
        return f"Cancellation request rejected: {str(e)}"
    except ValueError as e:
        return f"Error quoting cancellation: {str(e)}"

    report = pricing_validator.validate(result)
    if not report.is_valid:
        logger.warning("Refund quote for %s failed validation: %s", order_id, report.messages)
        problems = "\n".join(f"  - {message}" for message in report.messages)
        return f"Refund submission blocked for order {order_id}:\n{problems}"

    return _format_quote(result)


@tool
def lookup_order(order_id: str) -> str:
    """
    Look up an order with the resolved price of every line item.

    Args:
        order_id: The order ID to look up (e.g., "ORD-001")

    Returns:
        Order details as a formatted string, or error message if not found
    """
    try:
        order = load_order(db_engine, order_id, datetime.now(timezone.utc))
    except ValueError as e:
        return f"Error looking up order: {str(e)}"
    if order is None:
        return f"Order {order_id} not found in system."

    lines = [
        "Order Details:",
        f"ID: {order.order_id}",
        f"Customer: {order.customer_id}",
        f"Status: {order.order_status.value}",
        "Items:",
    ]
    for item in order.items:
        pricing = price_resolver.resolve(item)
        if pricing.unit_price == 0:
            price = "(Price unavailable)"
        elif pricing.has_discount:
            price = (
                f"{pricing.quantity} x {_money(pricing.unit_price)} "
                f"(was {_money(pricing.original_price)}, {pricing.discount_percent:g}% off)"
            )
        else:
            price = f"{pricing.quantity} x {_money(pricing.unit_price)}"
        size = f" [{item.size}]" if item.size else ""
        lines.append(f"- {item.item_id} ({item.item_kind.value}{size}): {price}")
    return "\n".join(lines)


@tool
def get_order_totals(order_id: str) -> str:
    """
    Get quantity, price, discount and payable totals for an order.

    Args:
        order_id: The order ID (e.g., "ORD-001")

    Returns:
        Order totals as a formatted string
    """
    try:
        order = load_order(db_engine, order_id, datetime.now(timezone.utc))
    except ValueError as e:
        return f"Error looking up order: {str(e)}"
    if order is None:
        return f"Order {order_id} not found in system."

    totals = order_totals.aggregate(order.items)
    return (
        f"Totals for order {order_id}:\n"
        f"  Items: {totals.total_qty}\n"
        f"  Original price: {_money(totals.total_original_price)}\n"
        f"  Discount: {_money(totals.total_discount)}\n"
        f"  Item total: {_money(totals.total_price)}\n"
        f"  Delivery: {_money(order_totals.delivery_charge())}\n"
        f"  Payable: {_money(order_totals.payable_amount(order.items))}"
    )


@tool
def lookup_customer(customer_id: str) -> str:
    """
    Look up the loyalty details of a customer.

    Args:
        customer_id: The customer ID to look up (e.g., "CUST-001")

    Returns:
        Customer details as a formatted string, or error message if not found
    """
    with db_engine.connect() as conn:
        row = conn.execute(
            text("SELECT id, name, email FROM customers WHERE id = :customer_id"),
            {"customer_id": customer_id},
        ).fetchone()

    if not row:
        return f"Customer {customer_id} not found in system."

    customer = load_customer(db_engine, customer_id)
    return (
        f"Customer Details:\n"
        f"ID: {row[0]}\n"
        f"Name: {row[1]}\n"
        f"Email: {row[2]}\n"
        f"Tier: {customer.membership_tier.upper()}\n"
        f"VIP: {'yes' if customer.is_vip else 'no'}\n"
        f"Orders: {customer.order_count}"
    )


@tool
def quote_full_cancellation(order_id: str, refund_percentage: Optional[float] = None) -> str:
    """
    Calculate the refund for cancelling a whole order.

    Args:
        order_id: The order ID to cancel (e.g., "ORD-001")
        refund_percentage: Admin-chosen refund percentage replacing the
            time-based tier (optional)

    Returns:
        Refund quote as a formatted string, or why it was rejected or blocked
    """
    return _quote_cancellation(order_id, None, refund_percentage)


@tool
def quote_partial_cancellation(
    order_id: str, item_ids: List[str], refund_percentage: Optional[float] = None
) -> str:
    """
    Calculate the refund for cancelling selected items of an order.

    Args:
        order_id: The order ID (e.g., "ORD-003")
        item_ids: IDs of the line items to cancel (e.g., ["ITEM-301"])
        refund_percentage: Admin-chosen refund percentage replacing the
            time-based tier (optional)

    Returns:
        Refund quote as a formatted string, or why it was rejected or blocked
    """
    return _quote_cancellation(order_id, item_ids, refund_percentage)


@tool
def get_refund_policy() -> str:
    """
    Describe the active refund policy.

    Returns:
        Policy parameters and what they mean, one per line
    """
    lines = ["Refund Policy:"]
    for name, (value, description) in policy_engine.describe().items():
        lines.append(f"  {name}: {value:g}% - {description}")
    return "\n".join(lines)


@tool
def check_can_cancel_order(order_status: str) -> str:
    """
    Check if an order can be cancelled based on its status.

    Args:
        order_status: Current order status (ORDER PLACED, PROCESSING,
            OUT FOR DELIVERY, DELIVERED, or CANCELLED)

    Returns:
        Whether the order can be cancelled as a formatted string
    """
    try:
        status = OrderStatus.parse(order_status)
    except ValueError as e:
        valid = ", ".join(s.value for s in OrderStatus)
        return f"{str(e)}. Valid statuses are: {valid}"

    can_cancel = cancellation_calculator.can_cancel(status)
    return f"Order can be cancelled: {can_cancel}"


@tool
def preview_size_price(product_id: str, size: str) -> str:
    """
    Show the price a shopper sees after picking a size.

    Args:
        product_id: The product ID (e.g., "PROD-001")
        size: Size code (XS, S, M, L, XL)

    Returns:
        Size price as a formatted string
    """
    with db_engine.connect() as conn:
        row = conn.execute(
            text("SELECT name, price, size_pricing FROM products WHERE id = :product_id"),
            {"product_id": product_id},
        ).mappings().fetchone()

    if not row:
        return f"Product {product_id} not found in catalog."

    size_pricing = json.loads(row["size_pricing"]) if row["size_pricing"] else None
    price = size_table.upsell_price(row["price"], size, size_pricing)
    return f"{row['name']} in size {size.upper()}: {_money(price)}"


def get_tools():
    """Return list of all available tools."""
    return [
        lookup_order,
        get_order_totals,
        lookup_customer,
        quote_full_cancellation,
        quote_partial_cancellation,
        get_refund_policy,
        check_can_cancel_order,
        preview_size_price,
    ]
