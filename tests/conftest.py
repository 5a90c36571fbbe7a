import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# The tool layer reads these at import time
os.environ["PRICING_TEST_MODE"] = "true"
os.environ["PRICING_DEBUG"] = "true"
os.environ.setdefault(
    "TEST_DB_URL",
    "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="pricing-"), "test_pricing.db"),
)

from order_pricing.models import (  # noqa: E402
    BundleRef,
    CancellationContext,
    ItemKind,
    LineItem,
    Order,
    OrderStatus,
    ProductRef,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def product_item(item_id="I1", price=100, discount=None, size_pricing=None, **fields):
    return LineItem(
        item_id=item_id,
        product_ref=ProductRef(
            product_id=f"P-{item_id}", price=price, discount=discount, size_pricing=size_pricing
        ),
        **fields,
    )


def bundle_item(item_id="B1", bundle_price=400, original_price=500, quantity=1):
    return LineItem(
        item_id=item_id,
        item_kind=ItemKind.BUNDLE,
        quantity=quantity,
        bundle_ref=BundleRef(
            bundle_id=f"BR-{item_id}", bundle_price=bundle_price, original_price=original_price
        ),
    )


def make_order(hours_ago, status=OrderStatus.ORDER_PLACED, items=(), **fields):
    return Order(
        order_id="ORD-T",
        items=tuple(items),
        order_date=NOW - timedelta(hours=hours_ago),
        order_status=status,
        **fields,
    )


def context_for(order, request_date=NOW):
    return CancellationContext.for_order(order, request_date)


@pytest.fixture
def now():
    return NOW
