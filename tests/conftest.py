# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up test environment variables before any imports
# - Gives every test its own SQLite database file with the full schema
# - Factory fixtures for users, categories, products and shipping rates
# - A TestClient wired to the per-test database and a mocked payment client
# =============================================================================

import os
import re
import tempfile

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("APP_DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-signing-sessions-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test-unused.db")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "storefront-test-uploads"))
os.environ["SMTP_HOST"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["PAYPAL_CLIENT_ID"] = ""
os.environ["PAYPAL_SECRET"] = ""
os.environ["CORS_ORIGINS"] = ""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import create_app
from core.models import (
    BracketForm,
    CategoryForm,
    MethodForm,
    ProductForm,
    RegisterForm,
    Role,
    ZoneForm,
)
from core.schema import create_schema
from core.services import CategoryService, PaymentService, ProductService, ShippingService, UserService
from lib import security
from lib.database import Database

CSRF_PATTERN = re.compile(r'name="csrf-token" content="([^"]+)"')

DEFAULT_PASSWORD = "cinnamon123"


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def database(tmp_path):
    """A fresh SQLite database with every table created."""
    db = Database(f"sqlite:///{tmp_path / 'storefront.db'}")
    create_schema(db.get_engine())
    yield db
    db.close()


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the minimum bcrypt cost so account-heavy tests stay quick."""
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def conn(database):
    """One open connection to the test database."""
    with database.connect() as connection:
        yield connection


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(conn):
    """Create an account and return its id."""
    def factory(email="amara@example.com", password=DEFAULT_PASSWORD, role=Role.CUSTOMER, **fields):
        form = RegisterForm(
            email=email,
            password=password,
            password_confirmation=password,
            first_name=fields.get("first_name", "Amara"),
            last_name=fields.get("last_name", "Perera"),
            phone=fields.get("phone"),
        )
        return UserService(conn).create_user(form, role=role)
    return factory


@pytest.fixture
def category(conn):
    """A single active category row."""
    categories = CategoryService(conn)
    return categories.get(categories.create(CategoryForm(name="Cinnamon Sticks")))


@pytest.fixture
def make_product(conn, category):
    """Create a product in the default category and return its row."""
    counter = {"n": 0}

    def factory(**fields):
        counter["n"] += 1
        data = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Cinnamon Product {counter['n']}",
            "price": 10.0,
            "stock_quantity": 20,
            "weight": 0.5,
            "category_id": category["id"],
        }
        data.update(fields)
        products = ProductService(conn)
        return products.get(products.create_product(ProductForm(**data)))
    return factory


@pytest.fixture
def shipping_zone(conn):
    """
    A zone covering US and CA with two methods:
    - Standard: 5.00 + 2.00/kg, free over 100
    - Express: weight brackets 0-1kg 15.00, 1-5kg 25.00, max 10kg
    """
    shipping = ShippingService(conn)
    zone_id = shipping.create_zone(ZoneForm(name="North America", countries=["US", "CA"]))
    standard = shipping.create_method(MethodForm(
        zone_id=zone_id, name="Standard", base_cost=5.0, cost_per_kg=2.0,
        free_shipping_threshold=100, estimated_days_min=7, estimated_days_max=14,
    ))
    express = shipping.create_method(MethodForm(
        zone_id=zone_id, name="Express", base_cost=20.0, max_weight=10,
        estimated_days_min=2, estimated_days_max=4, sort_order=1,
    ))
    shipping.add_bracket(express, BracketForm(min_weight=0, max_weight=1, cost=15.0))
    shipping.add_bracket(express, BracketForm(min_weight=1, max_weight=5, cost=25.0))
    return {"zone_id": zone_id, "standard_id": standard, "express_id": express}


# =============================================================================
# Web client
# =============================================================================

@pytest.fixture
def payment_client():
    """Stand-in for the httpx client used to reach Stripe and PayPal."""
    return MagicMock()


@pytest.fixture
def upload_settings(tmp_path):
    """Settings whose uploads land in the test's temporary directory."""
    return settings.model_copy(update={"UPLOAD_DIR": str(tmp_path / "uploads")})


@pytest.fixture
def client(database, payment_client, upload_settings):
    app = create_app(
        config=upload_settings,
        database=database,
        payments=PaymentService(settings, client=payment_client),
    )
    with TestClient(app) as test_client:
        yield test_client


def csrf_token(client, path="/"):
    """Load a page and read the session's CSRF token from its meta tag."""
    response = client.get(path)
    match = CSRF_PATTERN.search(response.text)
    assert match, f"No CSRF token on {path}"
    return match.group(1)


def login(client, email, password=DEFAULT_PASSWORD, admin=False):
    """Log in through the real form. Returns the post-login response."""
    path = "/admin/login" if admin else "/login"
    token = csrf_token(client, path)
    return client.post(
        path,
        data={"email": email, "password": password, "csrf_token": token},
        follow_redirects=False,
    )
