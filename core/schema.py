# =============================================================================
# core/schema.py - Relational Schema
# =============================================================================
# Table definitions for the storefront, expressed with SQLAlchemy Core so the
# same schema can be created on MySQL (production) and SQLite (tests).
#
# Services never go through these Table objects; they issue parameterized SQL
# via lib.database.Connection. This module only owns DDL.
#
# Usage:
#   from core.schema import create_schema
#   create_schema(db.get_engine())
# =============================================================================

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.engine import Engine

metadata = MetaData()


def _timestamps() -> list[Column]:
    return [
        Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
        Column("updated_at", DateTime, nullable=True),
    ]


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(20)),
    # customer | content_manager | admin
    Column("role", String(20), nullable=False, server_default="customer"),
    Column("is_wholesale", Boolean, nullable=False, server_default="0"),
    Column("company_name", String(255)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("last_login_at", DateTime),
    *_timestamps(),
)


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("description", Text),
    Column("parent_id", Integer, ForeignKey("categories.id", ondelete="SET NULL")),
    Column("image_url", String(500)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    *_timestamps(),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sku", String(100), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("description", Text),
    Column("short_description", String(500)),
    Column("price", Numeric(10, 2), nullable=False),
    Column("sale_price", Numeric(10, 2)),
    # kilograms
    Column("weight", Numeric(8, 3)),
    Column("dimensions", String(100)),
    Column("stock_quantity", Integer, nullable=False, server_default="0"),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("image_url", String(500)),
    Column("is_organic", Boolean, nullable=False, server_default="0"),
    Column("origin", String(100)),
    Column("tags", String(500)),
    Column("meta_title", String(255)),
    Column("meta_description", String(500)),
    Column("is_featured", Boolean, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *_timestamps(),
    CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
)


# -----------------------------------------------------------------------------
# Orders
# -----------------------------------------------------------------------------

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_number", String(20), nullable=False, unique=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("email", String(255), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(20)),
    Column("shipping_address", Text, nullable=False),
    Column("billing_address", Text),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    Column("payment_method", String(20), nullable=False),
    Column("payment_reference", String(255)),
    Column("shipping_method", String(100)),
    Column("subtotal", Numeric(10, 2), nullable=False),
    Column("shipping_cost", Numeric(10, 2), nullable=False, server_default="0"),
    Column("tax_amount", Numeric(10, 2), nullable=False, server_default="0"),
    Column("discount_amount", Numeric(10, 2), nullable=False, server_default="0"),
    Column("total_amount", Numeric(10, 2), nullable=False),
    Column("currency", String(3), nullable=False, server_default="USD"),
    Column("tracking_number", String(100)),
    Column("notes", Text),
    Column("shipped_at", DateTime),
    Column("delivered_at", DateTime),
    *_timestamps(),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    # Snapshots so order history survives product edits
    Column("product_name", String(255), nullable=False),
    Column("product_sku", String(100), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(10, 2), nullable=False),
    Column("total_price", Numeric(10, 2), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
)


# -----------------------------------------------------------------------------
# Content
# -----------------------------------------------------------------------------

blog_categories = Table(
    "blog_categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    *_timestamps(),
)

blog_posts = Table(
    "blog_posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("excerpt", Text),
    Column("content", Text, nullable=False),
    Column("featured_image", String(500)),
    Column("category_id", Integer, ForeignKey("blog_categories.id", ondelete="SET NULL")),
    Column("author_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("tags", String(500)),
    Column("meta_title", String(255)),
    Column("meta_description", String(500)),
    # draft | published
    Column("status", String(20), nullable=False, server_default="draft"),
    Column("published_at", DateTime),
    *_timestamps(),
)

certificates = Table(
    "certificates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("file_url", String(500), nullable=False),
    # image | pdf
    Column("file_type", String(20), nullable=False, server_default="image"),
    Column("thumbnail_url", String(500)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    *_timestamps(),
)

gallery_items = Table(
    "gallery_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("file_url", String(500), nullable=False),
    # image | video
    Column("file_type", String(20), nullable=False, server_default="image"),
    Column("thumbnail_url", String(500)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    *_timestamps(),
)


# -----------------------------------------------------------------------------
# Shipping
# -----------------------------------------------------------------------------

shipping_zones = Table(
    "shipping_zones",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    # JSON array of ISO country codes, e.g. ["US","CA"]
    Column("countries", Text, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    *_timestamps(),
)

shipping_methods = Table(
    "shipping_methods",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("zone_id", Integer, ForeignKey("shipping_zones.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("base_cost", Numeric(10, 2), nullable=False, server_default="0"),
    Column("cost_per_kg", Numeric(10, 2), nullable=False, server_default="0"),
    Column("min_weight", Numeric(8, 3)),
    Column("max_weight", Numeric(8, 3)),
    Column("min_order_amount", Numeric(10, 2)),
    Column("free_shipping_threshold", Numeric(10, 2)),
    Column("estimated_days_min", Integer),
    Column("estimated_days_max", Integer),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    *_timestamps(),
)

shipping_weight_brackets = Table(
    "shipping_weight_brackets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("method_id", Integer, ForeignKey("shipping_methods.id", ondelete="CASCADE"), nullable=False),
    Column("min_weight", Numeric(8, 3), nullable=False),
    # NULL means no upper bound
    Column("max_weight", Numeric(8, 3)),
    Column("cost", Numeric(10, 2), nullable=False),
)


# -----------------------------------------------------------------------------
# Wholesale
# -----------------------------------------------------------------------------

wholesale_inquiries = Table(
    "wholesale_inquiries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_name", String(255), nullable=False),
    Column("contact_name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("phone", String(50)),
    Column("country", String(100)),
    Column("business_type", String(100)),
    Column("estimated_quantity", String(100)),
    Column("products_interested", Text),
    Column("message", Text),
    # pending | contacted | approved | rejected
    Column("status", String(20), nullable=False, server_default="pending"),
    *_timestamps(),
)

wholesale_price_tiers = Table(
    "wholesale_price_tiers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("min_quantity", Integer, nullable=False),
    # NULL means no upper bound
    Column("max_quantity", Integer),
    Column("price", Numeric(10, 2), nullable=False),
    Column("discount_percentage", Numeric(5, 2)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *_timestamps(),
    CheckConstraint("min_quantity >= 1", name="ck_wholesale_tier_min_quantity"),
)


# =============================================================================
# DDL helpers
# =============================================================================

def create_schema(engine: Engine) -> None:
    """Create all tables that don't exist yet."""
    metadata.create_all(engine)


def drop_schema(engine: Engine) -> None:
    """Drop every table (reverse dependency order)."""
    metadata.drop_all(engine)
