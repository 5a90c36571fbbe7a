"""
Records and enums shared by the pricing and refund engine.

Line items, catalog references and orders are supplied by the catalog and
order-store collaborators and are only read here. Pricing, refund and
cancellation results are computed fresh on every call.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional, Tuple


class ItemKind(Enum):
    """Kind of purchasable unit on an order line."""

    PRODUCT = "product"
    BUNDLE = "bundle"


class OrderStatus(Enum):
    """Order lifecycle states as stored by the order store."""

    ORDER_PLACED = "ORDER PLACED"
    PROCESSING = "PROCESSING"
    OUT_FOR_DELIVERY = "OUT FOR DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, text: str) -> "OrderStatus":
        """
        Parse a stored status string.

        Args:
            text: Status as stored, e.g. "ORDER PLACED" or "delivered"

        Returns:
            Matching OrderStatus

        Raises:
            ValueError: If the text is not a known status
        """
        normalized = " ".join(str(text).replace("_", " ").split()).upper()
        for status in cls:
            if status.value == normalized:
                return status
        raise ValueError(f"Unknown order status: {text!r}")


class CancellationTiming(Enum):
    """Time-since-order bracket of a cancellation request."""

    EARLY = "EARLY"  # within 24 hours
    STANDARD = "STANDARD"  # after 24 hours, up to 7 days
    LATE = "LATE"  # more than 7 days


class CancellationType(Enum):
    FULL_ORDER = "FULL_ORDER"
    PARTIAL_ITEMS = "PARTIAL_ITEMS"


class PriceSource(Enum):
    """Signal that produced a line item's unit price."""

    STORED_SIZE_ADJUSTED = "stored_size_adjusted_price"
    STORED_UNIT = "stored_unit_price"
    STORED_ITEM_TOTAL = "stored_item_total"
    CATALOG_SIZE_PRICING = "catalog_size_pricing"
    SIZE_MULTIPLIER = "size_multiplier"
    BASE_PRICE = "base_price"
    BUNDLE = "bundle"
    FALLBACK = "fallback"
    UNAVAILABLE = "unavailable"


# Every size code the storefront sells
RECOGNIZED_SIZES = ("XS", "S", "M", "L", "XL", "XXL", "XXXL")


@dataclass(frozen=True)
class ProductRef:
    """Catalog product as returned by the catalog service."""

    product_id: str
    price: Any = 0
    discount: Any = None
    size_pricing: Optional[Mapping[str, Any]] = None
    name: str = ""


@dataclass(frozen=True)
class BundleRef:
    """Catalog bundle: sold at its own price, independent of its products."""

    bundle_id: str
    bundle_price: Any = 0
    original_price: Any = None
    title: str = ""


@dataclass(frozen=True)
class LineItem:
    """
    One entry of a cart or order.

    The stored_* fields are price snapshots persisted by earlier checkouts;
    they may be stale or absent.
    """

    item_id: str
    item_kind: ItemKind = ItemKind.PRODUCT
    quantity: int = 1
    size: Optional[str] = None
    product_ref: Optional[ProductRef] = None
    bundle_ref: Optional[BundleRef] = None
    stored_unit_price: Any = None
    stored_size_adjusted_price: Any = None
    stored_item_total: Any = None
    discount: Any = None
    price: Any = None

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Quantity must be an integer, got {self.quantity!r}")
        if self.quantity < 1:
            raise ValueError("Quantity must be at least 1")
        if self.size is not None:
            size = str(self.size).strip().upper()
            if not size:
                size = None
            elif self.item_kind == ItemKind.PRODUCT and size not in RECOGNIZED_SIZES:
                raise ValueError(f"Unrecognized size code: {self.size!r}")
            object.__setattr__(self, "size", size)

    @property
    def is_bundle(self) -> bool:
        return self.item_kind == ItemKind.BUNDLE

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "LineItem":
        """
        Build a line item from an order-store document.

        Args:
            doc: Item document using the store's field names (itemType,
                productId, bundleId, unitPrice, sizeAdjustedPrice, itemTotal)

        Returns:
            LineItem with catalog references attached when the document
            embeds them as mappings
        """
        product = doc.get("productId")
        bundle = doc.get("bundleId")
        kind = doc.get("itemType") or ("bundle" if bundle else "product")

        product_ref = None
        if isinstance(product, Mapping):
            product_ref = ProductRef(
                product_id=str(product.get("_id", "")),
                price=product.get("price", 0),
                discount=product.get("discount"),
                size_pricing=product.get("sizePricing"),
                name=product.get("name", ""),
            )

        bundle_ref = None
        if isinstance(bundle, Mapping):
            bundle_ref = BundleRef(
                bundle_id=str(bundle.get("_id", "")),
                bundle_price=bundle.get("bundlePrice", 0),
                original_price=bundle.get("originalPrice"),
                title=bundle.get("title", ""),
            )

        return cls(
            item_id=str(doc.get("_id") or doc.get("itemId")),
            item_kind=ItemKind(kind),
            quantity=doc.get("quantity", 1),
            size=doc.get("size"),
            product_ref=product_ref,
            bundle_ref=bundle_ref,
            stored_unit_price=doc.get("unitPrice"),
            stored_size_adjusted_price=doc.get("sizeAdjustedPrice"),
            stored_item_total=doc.get("itemTotal"),
            discount=doc.get("discount"),
            price=doc.get("price"),
        )


@dataclass(frozen=True)
class PricingResult:
    """Authoritative price of one line item."""

    unit_price: float
    original_price: float
    discount_percent: float
    quantity: int
    total_price: float
    total_original_price: float
    is_bundle: bool = False
    source: PriceSource = PriceSource.BASE_PRICE
    error: bool = False

    @property
    def has_discount(self) -> bool:
        return self.discount_percent > 0


@dataclass(frozen=True)
class Order:
    order_id: str
    items: Tuple[LineItem, ...]
    order_date: datetime
    order_status: OrderStatus = OrderStatus.ORDER_PLACED
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    customer_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class CancellationContext:
    """
    Facts about one cancellation request.

    request_date must be captured once per request and reused for every
    calculation made while serving it.
    """

    request_date: datetime
    order_date: datetime
    order_status: OrderStatus
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None

    def __post_init__(self):
        if self.request_date < self.order_date:
            raise ValueError("Cancellation request cannot precede the order date")

    @classmethod
    def for_order(cls, order: Order, request_date: datetime) -> "CancellationContext":
        return cls(
            request_date=request_date,
            order_date=order.order_date,
            order_status=order.order_status,
            estimated_delivery_date=order.estimated_delivery_date,
            actual_delivery_date=order.actual_delivery_date,
        )


@dataclass(frozen=True)
class CustomerInfo:
    """Customer facts used for loyalty bonuses."""

    customer_id: str
    is_vip: bool = False
    membership_tier: str = "STANDARD"
    order_count: int = 0


@dataclass(frozen=True)
class Adjustment:
    """Named percentage-point change applied to a refund percentage."""

    name: str
    magnitude: float
    reason: str = ""


@dataclass(frozen=True)
class RefundDecision:
    refund_percent: float
    base_percent: float
    timing: CancellationTiming
    hours_since_order: float
    days_since_order: int
    applied_penalties: Tuple[Adjustment, ...] = ()
    applied_bonuses: Tuple[Adjustment, ...] = ()
    override_applied: bool = False

    @property
    def total_penalty(self) -> float:
        return sum(p.magnitude for p in self.applied_penalties)

    @property
    def total_bonus(self) -> float:
        return sum(b.magnitude for b in self.applied_bonuses)


class SelectedItem(NamedTuple):
    item_id: str
    pricing: PricingResult
    refund_amount: float


@dataclass(frozen=True)
class CancellationResult:
    order_id: str
    cancellation_type: CancellationType
    selected_item_pricing: Tuple[SelectedItem, ...]
    total_item_value: float
    refund_percent: float
    refund_amount: float
    retained_amount: float
    decision: RefundDecision

    @property
    def selected_item_ids(self) -> Tuple[str, ...]:
        return tuple(entry.item_id for entry in self.selected_item_pricing)


@dataclass(frozen=True)
class OrderTotalsResult:
    total_qty: int = 0
    total_price: float = 0.0
    total_original_price: float = 0.0
    total_discount: float = 0.0


class PolicyViolation(NamedTuple):
    code: str
    message: str


@dataclass(frozen=True)
class ValidationReport:
    violations: Tuple[PolicyViolation, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> Tuple[str, ...]:
        return tuple(v.message for v in self.violations)
