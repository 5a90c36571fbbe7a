import pytest

from conftest import bundle_item
from order_pricing.bundle_resolver import BundlePriceResolver
from order_pricing.models import ItemKind, LineItem, PriceSource
from order_pricing.price_resolver import PriceResolver


@pytest.fixture
def resolver():
    return BundlePriceResolver()


def test_bundle_with_higher_original_price(resolver):
    result = resolver.resolve(bundle_item(bundle_price=400, original_price=500))

    assert result.unit_price == 400.0
    assert result.original_price == 500.0
    assert result.discount_percent == 20
    assert result.total_price == 400.0
    assert result.total_original_price == 500.0
    assert result.is_bundle
    assert result.source == PriceSource.BUNDLE
    assert not result.error


def test_bundle_quantity_scales_totals(resolver):
    result = resolver.resolve(bundle_item(bundle_price=400, original_price=500, quantity=2))

    assert result.total_price == 800.0
    assert result.total_original_price == 1000.0


@pytest.mark.parametrize("original_price", [300, None, 500])
def test_original_price_never_below_bundle_price(resolver, original_price):
    result = resolver.resolve(bundle_item(bundle_price=500, original_price=original_price))

    assert result.original_price == 500.0
    assert result.discount_percent == 0


@pytest.mark.parametrize(
    "bundle_price, original_price, discount",
    [(999, 1499, 33), (1, 8, 88), (750, 1000, 25)],
)
def test_discount_is_whole_percent_rounded_half_up(resolver, bundle_price, original_price, discount):
    result = resolver.resolve(bundle_item(bundle_price=bundle_price, original_price=original_price))
    assert result.discount_percent == discount


def test_missing_bundle_reference_is_zero_and_flagged(resolver):
    result = resolver.resolve(LineItem(item_id="B1", item_kind=ItemKind.BUNDLE))

    assert result.unit_price == 0
    assert result.total_price == 0
    assert result.error
    assert result.is_bundle


def test_negative_bundle_price_raises(resolver):
    with pytest.raises(ValueError):
        resolver.resolve(bundle_item(bundle_price=-1, original_price=None))


def test_negative_bundle_price_degrades_through_price_resolver():
    result = PriceResolver().resolve(bundle_item(bundle_price=-1, original_price=None))

    assert result.error
    assert result.source == PriceSource.FALLBACK
    assert result.unit_price == 0


def test_bundle_size_is_not_validated():
    item = LineItem(item_id="B1", item_kind=ItemKind.BUNDLE, size="free")
    assert item.size == "FREE"
