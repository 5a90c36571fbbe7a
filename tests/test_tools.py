import pytest
from sqlalchemy import text

import tools
from backend_service import seed_sample_data
from order_pricing.models import PolicyViolation, ValidationReport


@pytest.fixture(autouse=True)
def seeded_db():
    seed_sample_data(tools.db_engine)


def test_lookup_order_shows_resolved_prices():
    result = tools.lookup_order.invoke({"order_id": "ORD-001"})

    assert "ID: ORD-001" in result
    assert "Status: ORDER PLACED" in result
    assert "- ITEM-101 (product): 2 x ₹450.00 (was ₹500.00, 10% off)" in result
    assert "- ITEM-102 (bundle): 1 x ₹400.00 (was ₹500.00, 20% off)" in result


def test_lookup_order_marks_unavailable_prices():
    result = tools.lookup_order.invoke({"order_id": "ORD-004"})

    assert "- ITEM-401 (product [XL]): 1 x ₹1840.00 (was ₹2300.00, 20% off)" in result
    assert "- ITEM-402 (product): (Price unavailable)" in result


def test_lookup_order_not_found():
    assert tools.lookup_order.invoke({"order_id": "ORD-999"}) == "Order ORD-999 not found in system."


def test_get_order_totals():
    result = tools.get_order_totals.invoke({"order_id": "ORD-001"})

    assert "Items: 3" in result
    assert "Original price: ₹1500.00" in result
    assert "Discount: ₹200.00" in result
    assert "Item total: ₹1300.00" in result
    assert "Delivery: ₹100.00" in result
    assert "Payable: ₹1400.00" in result


def test_lookup_customer():
    result = tools.lookup_customer.invoke({"customer_id": "CUST-002"})

    assert "Tier: PREMIUM" in result
    assert "VIP: yes" in result
    assert "Orders: 1" in result
    assert "not found" in tools.lookup_customer.invoke({"customer_id": "CUST-999"})


def test_quote_full_cancellation_early():
    result = tools.quote_full_cancellation.invoke({"order_id": "ORD-001"})

    assert "Type: FULL_ORDER" in result
    assert "Timing: EARLY" in result
    assert "Item value: ₹1300.00" in result
    assert "Refund percentage: 90%" in result
    assert "Refund amount: ₹1170.00" in result
    assert "Retained amount: ₹130.00" in result


def test_quote_full_cancellation_delivered_vip_order():
    result = tools.quote_full_cancellation.invoke({"order_id": "ORD-002"})

    assert "Timing: LATE (10 days since order)" in result
    assert "Penalty: Order already delivered (25% penalty)" in result
    assert "Bonus: VIP customer bonus (10%)" in result
    assert "Item value: ₹1410.00" in result
    assert "Refund percentage: 35%" in result
    assert "Refund amount: ₹493.50" in result
    assert "Retained amount: ₹916.50" in result


def test_quote_partial_cancellation():
    result = tools.quote_partial_cancellation.invoke(
        {"order_id": "ORD-003", "item_ids": ["ITEM-301", "ITEM-302"]}
    )

    assert "Type: PARTIAL_ITEMS" in result
    assert "- ITEM-301: 1 x ₹150.00 = ₹150.00, refund ₹112.50" in result
    assert "Item value: ₹300.00" in result
    assert "Refund percentage: 75%" in result
    assert "Refund amount: ₹225.00" in result
    assert "Retained amount: ₹75.00" in result


def test_quote_with_override_percentage():
    result = tools.quote_full_cancellation.invoke({"order_id": "ORD-003", "refund_percentage": 60})

    assert "Refund percentage: 60%" in result
    assert "Refund amount: ₹780.00" in result


def test_quote_rejections():
    unknown = tools.quote_partial_cancellation.invoke(
        {"order_id": "ORD-003", "item_ids": ["ITEM-999"]}
    )
    empty = tools.quote_partial_cancellation.invoke({"order_id": "ORD-003", "item_ids": []})

    assert unknown == "Cancellation request rejected: Items not in order: ITEM-999"
    assert empty == "Cancellation request rejected: No items selected for cancellation"
    assert "not found" in tools.quote_full_cancellation.invoke({"order_id": "ORD-999"})


def test_quote_with_invalid_override():
    result = tools.quote_full_cancellation.invoke({"order_id": "ORD-001", "refund_percentage": 150})
    assert result == "Error quoting cancellation: Override refund percentage must be between 0 and 100"


def test_quote_blocked_by_validation(monkeypatch):
    class RejectingValidator:
        def validate(self, result):
            return ValidationReport(
                (PolicyViolation("refund_exceeds_value", "Refund amount cannot exceed item value"),)
            )

    monkeypatch.setattr(tools, "pricing_validator", RejectingValidator())
    result = tools.quote_full_cancellation.invoke({"order_id": "ORD-001"})

    assert result == (
        "Refund submission blocked for order ORD-001:\n"
        "  - Refund amount cannot exceed item value"
    )


def test_get_refund_policy():
    result = tools.get_refund_policy.invoke({})

    assert "early_refund_percentage: 90% - Cancellation within 24 hours of ordering" in result
    assert "minimum_refund_percentage: 25%" in result


@pytest.mark.parametrize(
    "status, expected",
    [
        ("ORDER PLACED", "Order can be cancelled: True"),
        ("processing", "Order can be cancelled: True"),
        ("OUT FOR DELIVERY", "Order can be cancelled: False"),
        ("DELIVERED", "Order can be cancelled: False"),
    ],
)
def test_check_can_cancel_order(status, expected):
    assert tools.check_can_cancel_order.invoke({"order_status": status}) == expected


def test_check_can_cancel_unknown_status():
    result = tools.check_can_cancel_order.invoke({"order_status": "lost"})
    assert "Valid statuses are: ORDER PLACED, PROCESSING" in result


def test_preview_size_price():
    assert (
        tools.preview_size_price.invoke({"product_id": "PROD-001", "size": "m"})
        == "Classic Black Tee in size M: ₹560.00"
    )
    assert (
        tools.preview_size_price.invoke({"product_id": "PROD-002", "size": "L"})
        == "Oversized Hoodie in size L: ₹1300.00"
    )
    assert "not found" in tools.preview_size_price.invoke({"product_id": "PROD-999", "size": "M"})


def test_get_tools():
    names = [t.name for t in tools.get_tools()]

    assert names == [
        "lookup_order",
        "get_order_totals",
        "lookup_customer",
        "quote_full_cancellation",
        "quote_partial_cancellation",
        "get_refund_policy",
        "check_can_cancel_order",
        "preview_size_price",
    ]


@pytest.fixture
def corrupt_orders():
    with tools.db_engine.connect() as conn:
        conn.execute(
            text(
                "INSERT OR IGNORE INTO orders (id, customer_id, order_status, placed_hours_ago) "
                "VALUES ('ORD-LOST', 'CUST-404', 'LOST', 5), "
                "('ORD-BIGSIZE', 'CUST-404', 'PROCESSING', 5)"
            )
        )
        conn.execute(
            text(
                "INSERT OR IGNORE INTO order_items (id, order_id, position, item_type, product_id, size) "
                "VALUES ('ITEM-901', 'ORD-BIGSIZE', 1, 'product', 'PROD-001', 'XXXXL')"
            )
        )
        conn.commit()


@pytest.mark.parametrize(
    "order_id, reason",
    [("ORD-LOST", "Unknown order status: 'LOST'"), ("ORD-BIGSIZE", "Unrecognized size code: 'XXXXL'")],
)
def test_bad_stored_order_data_is_reported(corrupt_orders, order_id, reason):
    quote = tools.quote_full_cancellation.invoke({"order_id": order_id})
    partial = tools.quote_partial_cancellation.invoke({"order_id": order_id, "item_ids": ["ITEM-901"]})

    assert quote == f"Error quoting cancellation: {reason}"
    assert partial == f"Error quoting cancellation: {reason}"
    assert tools.lookup_order.invoke({"order_id": order_id}) == f"Error looking up order: {reason}"
    assert tools.get_order_totals.invoke({"order_id": order_id}) == f"Error looking up order: {reason}"
