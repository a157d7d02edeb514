#!/usr/bin/env python3
# =============================================================================
# scripts/init_db.py - Database Setup & Demo Data
# =============================================================================
# Creates the storefront tables and optionally loads a small demo catalog:
# an admin account, categories, products, a shipping zone with rates and a
# published blog post.
#
# Usage:
#   # Create missing tables
#   python scripts/init_db.py --init
#
#   # Drop everything, recreate and seed
#   python scripts/init_db.py --reset --seed
#
#   # Seed with a chosen admin password
#   python scripts/init_db.py --seed --admin-password 'change-me-now'
#
# Prerequisites:
#   - DATABASE_URL or DB_* variables set (.env file)
# =============================================================================

import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import settings
from core.models import (
    BlogCategoryForm,
    BlogPostForm,
    BracketForm,
    CategoryForm,
    MethodForm,
    PostStatus,
    ProductForm,
    RegisterForm,
    Role,
    ZoneForm,
)
from core.schema import create_schema, drop_schema
from core.services import BlogService, CategoryService, ProductService, ShippingService, UserService
from lib.database import Database

DEMO_CATEGORIES = [
    {"name": "Cinnamon Sticks", "description": "Hand-rolled Ceylon quills graded by thickness."},
    {"name": "Cinnamon Powder", "description": "Freshly ground true cinnamon."},
    {"name": "Cinnamon Oil", "description": "Bark and leaf oils for culinary and aromatic use."},
]

DEMO_PRODUCTS = [
    {
        "sku": "CS-ALBA-100", "name": "Alba Cinnamon Sticks 100g", "category": "Cinnamon Sticks",
        "price": 18.50, "weight": 0.1, "stock_quantity": 120, "is_featured": True, "is_organic": True,
        "short_description": "The thinnest, most delicate grade of Ceylon cinnamon.",
    },
    {
        "sku": "CS-C5-250", "name": "C5 Special Cinnamon Sticks 250g", "category": "Cinnamon Sticks",
        "price": 24.00, "sale_price": 21.00, "weight": 0.25, "stock_quantity": 80, "is_featured": True,
        "short_description": "Everyday quills for cooking and tea.",
    },
    {
        "sku": "CP-ORG-200", "name": "Organic Cinnamon Powder 200g", "category": "Cinnamon Powder",
        "price": 12.75, "weight": 0.2, "stock_quantity": 200, "is_organic": True,
        "short_description": "Stone-ground from certified organic quills.",
    },
    {
        "sku": "CO-BARK-10", "name": "Cinnamon Bark Oil 10ml", "category": "Cinnamon Oil",
        "price": 15.00, "weight": 0.05, "stock_quantity": 8,
        "short_description": "Steam-distilled from inner bark.",
    },
]


def seed(db: Database, admin_email: str, admin_password: str) -> None:
    """Load demo data. Refuses to run if the admin account already exists."""
    with db.connect() as conn, conn.transaction():
        users = UserService(conn)
        if users.find_by_email(admin_email):
            print(f"  Admin {admin_email} already exists, skipping seed")
            return

        users.create_user(
            RegisterForm(
                email=admin_email,
                password=admin_password,
                password_confirmation=admin_password,
                first_name="Store",
                last_name="Admin",
            ),
            role=Role.ADMIN,
        )
        print(f"  Admin account: {admin_email}")

        categories = CategoryService(conn)
        category_ids = {}
        for position, category in enumerate(DEMO_CATEGORIES):
            category_ids[category["name"]] = categories.create(CategoryForm(sort_order=position, **category))
        print(f"  Categories: {len(category_ids)}")

        products = ProductService(conn)
        for product in DEMO_PRODUCTS:
            fields = dict(product)
            fields["category_id"] = category_ids[fields.pop("category")]
            fields["origin"] = "Sri Lanka"
            products.create_product(ProductForm(**fields))
        print(f"  Products: {len(DEMO_PRODUCTS)}")

        shipping = ShippingService(conn)
        local = shipping.create_zone(ZoneForm(name="Sri Lanka", countries=["LK"]))
        international = shipping.create_zone(
            ZoneForm(name="International", countries=["US", "CA", "GB", "DE", "FR", "AU"], sort_order=1)
        )
        shipping.create_method(MethodForm(
            zone_id=local, name="Island-wide Delivery", base_cost=2.50,
            free_shipping_threshold=30, estimated_days_min=1, estimated_days_max=3,
        ))
        express = shipping.create_method(MethodForm(
            zone_id=international, name="Express Courier", base_cost=12.00, cost_per_kg=6.00,
            max_weight=20, estimated_days_min=3, estimated_days_max=7,
        ))
        shipping.add_bracket(express, BracketForm(min_weight=0, max_weight=0.5, cost=14.00))
        shipping.add_bracket(express, BracketForm(min_weight=0.5, max_weight=2, cost=22.00))
        shipping.create_method(MethodForm(
            zone_id=international, name="Standard Airmail", base_cost=6.00, cost_per_kg=4.00,
            free_shipping_threshold=100, estimated_days_min=10, estimated_days_max=21, sort_order=1,
        ))
        print("  Shipping zones: 2")

        blog = BlogService(conn)
        category_id = blog.create_category(BlogCategoryForm(name="Recipes"))
        blog.create_post(
            BlogPostForm(
                title="Telling Ceylon cinnamon from cassia",
                excerpt="Thin layered quills, a sweet aroma and almost no coumarin.",
                content="<p>True Ceylon cinnamon is rolled from many paper-thin layers of inner bark.</p>",
                category_id=category_id,
                status=PostStatus.PUBLISHED,
            ),
            author_id=None,
        )
        print("  Blog posts: 1")


def main():
    parser = argparse.ArgumentParser(description="Create the storefront schema and demo data")
    parser.add_argument("--init", action="store_true", help="create missing tables")
    parser.add_argument("--reset", action="store_true", help="drop and recreate every table")
    parser.add_argument("--seed", action="store_true", help="load demo catalog and admin account")
    parser.add_argument("--admin-email", default=settings.ADMIN_EMAIL)
    parser.add_argument("--admin-password", default="admin12345")
    args = parser.parse_args()

    if not (args.init or args.reset or args.seed):
        parser.print_help()
        return 1

    db = Database(settings.database_url, debug=settings.APP_DEBUG)
    engine = db.get_engine()

    print("=" * 60)
    print(f"{settings.APP_NAME} Database Setup")
    print("=" * 60)

    if args.reset:
        print("Dropping all tables...")
        drop_schema(engine)
    print("Creating tables...")
    create_schema(engine)
    if args.seed:
        print("Seeding demo data...")
        seed(db, args.admin_email, args.admin_password)

    db.close()
    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
