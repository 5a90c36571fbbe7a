import pytest

from conftest import context_for, make_order, product_item
from order_pricing.cancellation import CancellationCalculator
from order_pricing.models import (
    CancellationResult,
    CancellationTiming,
    CancellationType,
    PricingResult,
    RefundDecision,
    SelectedItem,
)
from order_pricing.validator import PricingValidator


@pytest.fixture
def validator():
    return PricingValidator()


def pricing(**overrides):
    fields = dict(
        unit_price=90.0,
        original_price=100.0,
        discount_percent=10,
        quantity=1,
        total_price=90.0,
        total_original_price=100.0,
    )
    fields.update(overrides)
    return PricingResult(**fields)


def cancellation(items=(), **overrides):
    decision = RefundDecision(
        refund_percent=overrides.get("refund_percent", 75.0),
        base_percent=75.0,
        timing=CancellationTiming.STANDARD,
        hours_since_order=72.0,
        days_since_order=3,
    )
    fields = dict(
        order_id="ORD-T",
        cancellation_type=CancellationType.FULL_ORDER,
        selected_item_pricing=tuple(items),
        total_item_value=90.0,
        refund_percent=75.0,
        refund_amount=67.5,
        retained_amount=22.5,
        decision=decision,
    )
    fields.update(overrides)
    return CancellationResult(**fields)


def codes(report):
    return [v.code for v in report.violations]


def test_valid_pricing(validator):
    report = validator.validate(pricing())

    assert report.is_valid
    assert report.violations == ()


def test_reports_every_pricing_violation(validator):
    report = validator.validate(
        pricing(unit_price=-1, total_price=-1, discount_percent=150, total_original_price=-2)
    )

    assert not report.is_valid
    assert codes(report) == [
        "negative_unit_price",
        "negative_total_price",
        "discount_out_of_range",
        "original_below_final",
    ]
    assert len(report.messages) == 4


def test_bundle_may_show_original_below_final(validator):
    report = validator.validate(
        pricing(
            unit_price=500,
            original_price=500,
            discount_percent=0,
            total_price=500,
            total_original_price=400,
            is_bundle=True,
        )
    )
    assert report.is_valid


def test_non_finite_pricing(validator):
    assert codes(validator.validate(pricing(unit_price=float("nan")))) == ["non_finite"]


def test_computed_cancellation_is_valid(validator):
    order = make_order(
        72,
        items=[product_item("I1", stored_unit_price=150), product_item("I2", price=33.33, discount=15)],
    )
    result = CancellationCalculator().compute_full(order, context_for(order))
    assert validator.validate(result).is_valid


def test_cancellation_violations(validator):
    entry = SelectedItem("I1", pricing(), 67.5)
    report = validator.validate(
        cancellation(
            [entry],
            refund_percent=120.0,
            refund_amount=108.0,
            retained_amount=0.0,
        )
    )

    assert codes(report) == [
        "refund_percent_out_of_range",
        "refund_exceeds_value",
        "amounts_do_not_sum",
    ]


def test_amounts_sum_within_tolerance(validator):
    entry = SelectedItem("I1", pricing(), 67.5)
    report = validator.validate(cancellation([entry], retained_amount=22.51))
    assert report.is_valid


def test_empty_cancellation_selection(validator):
    report = validator.validate(
        cancellation(total_item_value=0.0, refund_amount=0.0, retained_amount=0.0)
    )
    assert codes(report) == ["empty_selection"]


def test_item_violations_name_the_item(validator):
    entry = SelectedItem("I9", pricing(unit_price=-5), 0.0)
    report = validator.validate(cancellation([entry]))

    assert codes(report) == ["negative_unit_price"]
    assert report.messages[0].startswith("Item I9: ")


def test_unsupported_type(validator):
    with pytest.raises(TypeError):
        validator.validate({"unit_price": 10})
