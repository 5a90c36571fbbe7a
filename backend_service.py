"""
SQLite order and catalog store for the storefront pricing engine.

Provides schema creation, sample data seeding, and read-only loaders that
turn stored rows into engine records. In test mode (PRICING_TEST_MODE=true),
uses a separate test database.

Timestamps are stored as hours before "now" so the sample orders keep the
same age whenever the store is read; loaders take the caller's captured now.
"""

import json
import os
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import text

from order_pricing.models import CustomerInfo, LineItem, Order, OrderStatus


def get_db_url() -> str:
    """Get database URL based on test mode environment variable."""
    if os.getenv("PRICING_TEST_MODE") == "true":
        return os.getenv("TEST_DB_URL", "sqlite:///test_pricing.db")
    return "sqlite:///storefront.db"


def create_schema(engine) -> None:
    """Create database tables if they don't exist."""
    with engine.connect() as conn:
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS customers (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                membership_tier TEXT NOT NULL DEFAULT 'STANDARD',
                is_vip INTEGER NOT NULL DEFAULT 0
            )
        """))
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                price REAL NOT NULL DEFAULT 0,
                discount REAL NOT NULL DEFAULT 0,
                size_pricing TEXT
            )
        """))
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS bundles (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                bundle_price REAL NOT NULL DEFAULT 0,
                original_price REAL
            )
        """))
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                customer_id TEXT NOT NULL,
                order_status TEXT NOT NULL,
                placed_hours_ago REAL NOT NULL,
                estimated_delivery_hours_ago REAL,
                delivered_hours_ago REAL
            )
        """))
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS order_items (
                id TEXT PRIMARY KEY,
                order_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                item_type TEXT NOT NULL,
                product_id TEXT,
                bundle_id TEXT,
                quantity INTEGER NOT NULL DEFAULT 1,
                size TEXT,
                unit_price REAL,
                size_adjusted_price REAL,
                item_total REAL,
                discount REAL,
                price REAL
            )
        """))
        conn.commit()


def _item(item_id, order_id, position, item_type="product", **fields) -> dict:
    row = {
        "id": item_id,
        "order_id": order_id,
        "position": position,
        "item_type": item_type,
        "product_id": None,
        "bundle_id": None,
        "quantity": 1,
        "size": None,
        "unit_price": None,
        "size_adjusted_price": None,
        "item_total": None,
        "discount": None,
        "price": None,
    }
    row.update(fields)
    return row


def seed_sample_data(engine) -> None:
    """Seed database with sample data if tables are empty."""
    with engine.connect() as conn:
        count = conn.execute(text("SELECT COUNT(*) FROM customers")).scalar()
        if count > 0:
            return

        conn.execute(
            text(
                "INSERT INTO customers (id, name, email, membership_tier, is_vip) "
                "VALUES (:id, :name, :email, :membership_tier, :is_vip)"
            ),
            [
                {
                    "id": "CUST-001",
                    "name": "Asha Rao",
                    "email": "asha@example.com",
                    "membership_tier": "STANDARD",
                    "is_vip": 0,
                },
                {
                    "id": "CUST-002",
                    "name": "Vikram Mehta",
                    "email": "vikram@example.com",
                    "membership_tier": "PREMIUM",
                    "is_vip": 1,
                },
                {
                    "id": "CUST-003",
                    "name": "Neha Iyer",
                    "email": "neha@example.com",
                    "membership_tier": "STANDARD",
                    "is_vip": 0,
                },
            ],
        )

        conn.execute(
            text(
                "INSERT INTO products (id, name, price, discount, size_pricing) "
                "VALUES (:id, :name, :price, :discount, :size_pricing)"
            ),
            [
                {
                    "id": "PROD-001",
                    "name": "Classic Black Tee",
                    "price": 500.00,
                    "discount": 10,
                    "size_pricing": None,
                },
                {
                    "id": "PROD-002",
                    "name": "Oversized Hoodie",
                    "price": 1200.00,
                    "discount": 0,
                    "size_pricing": json.dumps({"S": 1150, "M": 1200, "L": 1300, "XL": 1400}),
                },
                {
                    "id": "PROD-003",
                    "name": "Graphic Tee",
                    "price": 100.00,
                    "discount": 0,
                    "size_pricing": None,
                },
                {
                    "id": "PROD-004",
                    "name": "Denim Jacket",
                    "price": 2000.00,
                    "discount": 20,
                    "size_pricing": None,
                },
                {
                    "id": "PROD-005",
                    "name": "Archived Cap",
                    "price": 0,
                    "discount": 0,
                    "size_pricing": None,
                },
            ],
        )

        conn.execute(
            text(
                "INSERT INTO bundles (id, title, bundle_price, original_price) "
                "VALUES (:id, :title, :bundle_price, :original_price)"
            ),
            [
                {
                    "id": "BUN-001",
                    "title": "Summer Essentials",
                    "bundle_price": 400.00,
                    "original_price": 500.00,
                },
                {
                    "id": "BUN-002",
                    "title": "Starter Pack",
                    "bundle_price": 999.00,
                    "original_price": None,
                },
            ],
        )

        conn.execute(
            text(
                "INSERT INTO orders (id, customer_id, order_status, placed_hours_ago, "
                "estimated_delivery_hours_ago, delivered_hours_ago) "
                "VALUES (:id, :customer_id, :order_status, :placed_hours_ago, "
                ":estimated_delivery_hours_ago, :delivered_hours_ago)"
            ),
            [
                {
                    "id": "ORD-001",
                    "customer_id": "CUST-001",
                    "order_status": "ORDER PLACED",
                    "placed_hours_ago": 10,
                    "estimated_delivery_hours_ago": -110,
                    "delivered_hours_ago": None,
                },
                {
                    "id": "ORD-002",
                    "customer_id": "CUST-002",
                    "order_status": "DELIVERED",
                    "placed_hours_ago": 240,
                    "estimated_delivery_hours_ago": 96,
                    "delivered_hours_ago": 72,
                },
                {
                    "id": "ORD-003",
                    "customer_id": "CUST-001",
                    "order_status": "PROCESSING",
                    "placed_hours_ago": 72,
                    "estimated_delivery_hours_ago": -48,
                    "delivered_hours_ago": None,
                },
                {
                    "id": "ORD-004",
                    "customer_id": "CUST-003",
                    "order_status": "OUT FOR DELIVERY",
                    "placed_hours_ago": 30,
                    "estimated_delivery_hours_ago": -6,
                    "delivered_hours_ago": None,
                },
            ],
        )

        conn.execute(
            text(
                "INSERT INTO order_items (id, order_id, position, item_type, product_id, "
                "bundle_id, quantity, size, unit_price, size_adjusted_price, item_total, "
                "discount, price) "
                "VALUES (:id, :order_id, :position, :item_type, :product_id, :bundle_id, "
                ":quantity, :size, :unit_price, :size_adjusted_price, :item_total, "
                ":discount, :price)"
            ),
            [
                _item("ITEM-101", "ORD-001", 1, product_id="PROD-001", quantity=2),
                _item("ITEM-102", "ORD-001", 2, item_type="bundle", bundle_id="BUN-001"),
                _item("ITEM-201", "ORD-002", 1, product_id="PROD-002", size="L"),
                _item("ITEM-202", "ORD-002", 2, product_id="PROD-003", size="L"),
                _item("ITEM-301", "ORD-003", 1, product_id="PROD-003", unit_price=150.00),
                _item("ITEM-302", "ORD-003", 2, product_id="PROD-003", unit_price=150.00),
                _item("ITEM-303", "ORD-003", 3, product_id="PROD-004", unit_price=200.00),
                _item("ITEM-304", "ORD-003", 4, product_id="PROD-004", item_total=500.00, quantity=2),
                _item("ITEM-305", "ORD-003", 5, product_id="PROD-001", size_adjusted_price=300.00),
                _item("ITEM-401", "ORD-004", 1, product_id="PROD-004", size="XL"),
                _item("ITEM-402", "ORD-004", 2, product_id="PROD-005"),
            ],
        )
        conn.commit()


def _hours_before(now: datetime, hours) -> Optional[datetime]:
    if hours is None:
        return None
    return now - timedelta(hours=hours)


def _item_document(row) -> dict:
    """Shape a joined order_items row like an order-store item document."""
    doc = {
        "_id": row["id"],
        "itemType": row["item_type"],
        "quantity": row["quantity"],
        "size": row["size"],
        "unitPrice": row["unit_price"],
        "sizeAdjustedPrice": row["size_adjusted_price"],
        "itemTotal": row["item_total"],
        "discount": row["discount"],
        "price": row["price"],
    }
    # Catalog references are embedded only when the join found them
    if row["product_id"] is not None and row["product_name"] is not None:
        doc["productId"] = {
            "_id": row["product_id"],
            "name": row["product_name"],
            "price": row["product_price"],
            "discount": row["product_discount"],
            "sizePricing": json.loads(row["size_pricing"]) if row["size_pricing"] else None,
        }
    if row["bundle_id"] is not None and row["bundle_title"] is not None:
        doc["bundleId"] = {
            "_id": row["bundle_id"],
            "title": row["bundle_title"],
            "bundlePrice": row["bundle_price"],
            "originalPrice": row["bundle_original_price"],
        }
    return doc


def load_order(engine, order_id: str, now: datetime) -> Optional[Order]:
    """
    Load an order with its line items and catalog references.

    Args:
        engine: SQLAlchemy engine
        order_id: The order ID (e.g., "ORD-001")
        now: Timestamp captured for the current request

    Returns:
        Order record, or None if the order does not exist
    """
    with engine.connect() as conn:
        order_row = conn.execute(
            text(
                "SELECT id, customer_id, order_status, placed_hours_ago, "
                "estimated_delivery_hours_ago, delivered_hours_ago "
                "FROM orders WHERE id = :order_id"
            ),
            {"order_id": order_id},
        ).mappings().fetchone()

        if not order_row:
            return None

        item_rows = conn.execute(
            text(
                "SELECT i.id, i.item_type, i.product_id, i.bundle_id, i.quantity, i.size, "
                "i.unit_price, i.size_adjusted_price, i.item_total, i.discount, i.price, "
                "p.name AS product_name, p.price AS product_price, "
                "p.discount AS product_discount, p.size_pricing, "
                "b.title AS bundle_title, b.bundle_price, "
                "b.original_price AS bundle_original_price "
                "FROM order_items i "
                "LEFT JOIN products p ON i.product_id = p.id "
                "LEFT JOIN bundles b ON i.bundle_id = b.id "
                "WHERE i.order_id = :order_id ORDER BY i.position"
            ),
            {"order_id": order_id},
        ).mappings().fetchall()

    return Order(
        order_id=order_row["id"],
        items=tuple(LineItem.from_document(_item_document(row)) for row in item_rows),
        order_date=_hours_before(now, order_row["placed_hours_ago"]),
        order_status=OrderStatus.parse(order_row["order_status"]),
        estimated_delivery_date=_hours_before(now, order_row["estimated_delivery_hours_ago"]),
        actual_delivery_date=_hours_before(now, order_row["delivered_hours_ago"]),
        customer_id=order_row["customer_id"],
    )


def load_customer(engine, customer_id: str) -> Optional[CustomerInfo]:
    """Load loyalty facts for a customer, or None if unknown."""
    with engine.connect() as conn:
        row = conn.execute(
            text(
                "SELECT c.id, c.membership_tier, c.is_vip, "
                "(SELECT COUNT(*) FROM orders o WHERE o.customer_id = c.id) AS order_count "
                "FROM customers c WHERE c.id = :customer_id"
            ),
            {"customer_id": customer_id},
        ).mappings().fetchone()

    if not row:
        return None

    return CustomerInfo(
        customer_id=row["id"],
        is_vip=bool(row["is_vip"]),
        membership_tier=row["membership_tier"],
        order_count=row["order_count"],
    )
