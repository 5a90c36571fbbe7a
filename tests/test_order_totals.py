import pytest

from conftest import bundle_item, product_item
from order_pricing.config import PricingConfig
from order_pricing.models import OrderTotalsResult, PricingResult
from order_pricing.order_totals import OrderTotals, fold_pricing


@pytest.fixture
def totals():
    return OrderTotals()


@pytest.fixture
def cart():
    return [
        product_item("I1", price=100, discount=10, quantity=2),
        bundle_item("B1", bundle_price=400, original_price=500),
    ]


def test_empty_order_has_zero_totals(totals):
    assert totals.aggregate([]) == OrderTotalsResult()
    assert totals.payable_amount([]) == 0.0


def test_aggregate_mixed_items(totals, cart):
    result = totals.aggregate(cart)

    assert result.total_qty == 3
    assert result.total_price == 580.0
    assert result.total_original_price == 700.0
    assert result.total_discount == 120.0


def test_aggregate_is_deterministic_and_order_independent(totals, cart):
    assert totals.aggregate(cart) == totals.aggregate(cart)
    assert totals.aggregate(reversed(cart)) == totals.aggregate(cart)


def test_many_small_items_do_not_drift(totals):
    items = [product_item(f"I{n}", stored_unit_price=0.35) for n in range(30)]
    result = totals.aggregate(items)

    assert result.total_qty == 30
    assert result.total_price == 10.5


def test_payable_amount_adds_delivery(totals, cart):
    assert totals.delivery_charge() == 100.0
    assert totals.payable_amount(cart) == 680.0


def test_configured_delivery_charge(cart):
    totals = OrderTotals(config=PricingConfig(delivery_charge=49.5))
    assert totals.payable_amount(cart) == 629.5


def test_negative_delivery_charge_rejected():
    with pytest.raises(ValueError):
        PricingConfig(delivery_charge=-1)


def test_injected_rounding_is_used_for_running_sums():
    totals = OrderTotals(rounding=lambda value: float(round(value)))
    items = [
        product_item("I1", stored_unit_price=10.4),
        product_item("I2", stored_unit_price=10.4),
    ]

    assert totals.aggregate(items).total_price == 20.0


def test_fold_pricing():
    pricing = PricingResult(
        unit_price=45.0,
        original_price=50.0,
        discount_percent=10,
        quantity=2,
        total_price=90.0,
        total_original_price=100.0,
    )
    result = fold_pricing(OrderTotalsResult(total_qty=1, total_price=10.0, total_original_price=10.0), pricing)

    assert result == OrderTotalsResult(
        total_qty=3, total_price=100.0, total_original_price=110.0, total_discount=10.0
    )


def test_degraded_items_count_toward_quantity(totals):
    result = totals.aggregate([product_item("I1", price=0, quantity=2), product_item("I2", price=10)])

    assert result.total_qty == 3
    assert result.total_price == 10.0
