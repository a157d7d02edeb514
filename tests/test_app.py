# =============================================================================
# tests/test_app.py - HTTP Integration Tests
# =============================================================================
# Drives the whole stack through FastAPI's TestClient: routing, guards,
# session cookies, templates and services against a per-test database.
#
# Run with: pytest tests/test_app.py -v
# =============================================================================

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import create_app
from core.models import PriceTierForm, Role
from core.services import ShippingService, WholesaleService
from tests.conftest import csrf_token, login

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF = b"%PDF-1.4\n" + b"\x00" * 64
AJAX = {"X-Requested-With": "XMLHttpRequest"}


def add_to_cart(client, product_id, quantity=1):
    token = csrf_token(client)
    return client.post(
        "/cart/add",
        data={"product_id": product_id, "quantity": quantity, "csrf_token": token},
        follow_redirects=False,
    )


@pytest.fixture
def admin(client, make_user):
    """The test client, logged in to the back-office as an admin."""
    make_user("admin@example.com", role=Role.ADMIN)
    login(client, "admin@example.com", admin=True)
    return client


def checkout_form(token, shipping_method, **overrides):
    data = {
        "email": "guest@example.com",
        "first_name": "Nimali",
        "last_name": "Silva",
        "address": "55 Maple Street",
        "city": "Toronto",
        "postal_code": "M5V 2T6",
        "country": "CA",
        "payment_method": "bank_transfer",
        "shipping_method": str(shipping_method),
        "csrf_token": token,
    }
    data.update(overrides)
    return data


# =============================================================================
# Health & basic pages
# =============================================================================

class TestHealth:
    """Health endpoints bypass the storefront router."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        body = client.get("/health/ready").json()
        assert body["status"] == "ready"
        assert body["checks"] == {"database": "healthy", "translations": "healthy"}

    def test_live(self, client):
        assert client.get("/health/live").json()["status"] == "alive"

    def test_reports_the_app_configuration(self, database):
        staging = settings.model_copy(update={"ENVIRONMENT": "staging"})
        app = create_app(config=staging, database=database)
        with TestClient(app) as staging_client:
            assert staging_client.get("/health").json()["environment"] == "staging"


class TestPages:
    """Server-rendered storefront pages."""

    def test_home(self, client, make_product):
        make_product(name="Alba Quills", is_featured=True)
        response = client.get("/")
        assert response.status_code == 200
        assert 'name="csrf-token"' in response.text

    def test_product_page(self, client, make_product):
        product = make_product(name="Kurundu Oil")
        response = client.get(f"/products/{product['slug']}")
        assert response.status_code == 200
        assert "Kurundu Oil" in response.text

    def test_unknown_product(self, client):
        assert client.get("/products/no-such-thing").status_code == 404

    def test_unknown_path_renders_error_page(self, client):
        response = client.get("/definitely/not/here")
        assert response.status_code == 404
        assert "text/html" in response.headers["content-type"]

    def test_unknown_api_path_is_json(self, client):
        response = client.get("/api/nothing")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_language_switch_persists(self, client):
        response = client.get("/language/si", follow_redirects=False)
        assert response.status_code == 302
        assert '<html lang="si">' in client.get("/").text

    def test_language_query_parameter(self, client):
        assert '<html lang="si">' in client.get("/?lang=si").text
        assert '<html lang="si">' in client.get("/about").text


# =============================================================================
# Cart & checkout
# =============================================================================

class TestCart:
    """Form and JSON cart actions."""

    def test_add_via_form(self, client, make_product):
        product = make_product()

        response = add_to_cart(client, product["id"], 2)

        assert response.status_code == 302
        assert response.headers["location"] == "/cart"
        assert client.get("/cart/count").json()["count"] == 2

    def test_add_without_token_is_rejected(self, client, make_product):
        product = make_product()
        client.get("/")

        response = client.post("/cart/add", data={"product_id": product["id"]}, follow_redirects=False)

        assert response.status_code == 302
        assert client.get("/cart/count").json()["count"] == 0

    def test_ajax_without_token_gets_403(self, client, make_product):
        product = make_product()
        response = client.post(
            "/cart/add",
            data={"product_id": product["id"]},
            headers={"X-Requested-With": "XMLHttpRequest"},
        )
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_api_add_and_read(self, client, make_product):
        product = make_product(price=8.0)

        response = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 3})

        assert response.status_code == 200
        assert response.json()["cart"]["subtotal"] == 24.0
        assert client.get("/api/cart").json()["cart"]["count"] == 3

    def test_api_add_beyond_stock(self, client, make_product):
        product = make_product(stock_quantity=1)
        response = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 5})
        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_api_remove(self, client, make_product):
        product = make_product()
        client.post("/api/cart/add", json={"product_id": product["id"]})

        assert client.delete(f"/api/cart/{product['id']}").json()["cart"]["count"] == 0


class TestCheckout:
    """End-to-end checkout."""

    def test_empty_cart_redirects(self, client):
        response = client.get("/checkout", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/cart"

    def test_bank_transfer_order(self, client, conn, make_product, shipping_zone):
        product = make_product(price=10.0, stock_quantity=5, weight=0.5)
        add_to_cart(client, product["id"], 2)
        token = csrf_token(client, "/checkout")

        response = client.post(
            "/checkout", data=checkout_form(token, shipping_zone["standard_id"]), follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/checkout/success"

        order = conn.fetch_one("SELECT * FROM orders")
        assert order["email"] == "guest@example.com"
        assert order["payment_status"] == "pending"
        assert order["payment_reference"].startswith("BT-")
        assert float(order["shipping_cost"]) == 7.0
        assert float(order["total_amount"]) == 27.0
        assert conn.fetch_value("SELECT stock_quantity FROM products WHERE id = :id", {"id": product["id"]}) == 3

        page = client.get("/checkout/success")
        assert order["order_number"] in page.text
        assert order["payment_reference"] in page.text
        assert client.get("/cart/count").json()["count"] == 0

        # one-shot
        assert client.get("/checkout/success", follow_redirects=False).status_code == 302

    def test_invalid_form_rerenders(self, client, conn, make_product, shipping_zone):
        add_to_cart(client, make_product()["id"])
        token = csrf_token(client, "/checkout")

        response = client.post("/checkout", data=checkout_form(token, shipping_zone["standard_id"], email="nope"))

        assert response.status_code == 422
        assert conn.fetch_value("SELECT COUNT(*) FROM orders") == 0

    def test_method_for_another_country(self, client, conn, make_product, shipping_zone):
        add_to_cart(client, make_product()["id"])
        token = csrf_token(client, "/checkout")

        response = client.post(
            "/checkout", data=checkout_form(token, shipping_zone["standard_id"], country="GB")
        )

        assert response.status_code == 422
        assert conn.fetch_value("SELECT COUNT(*) FROM orders") == 0

    def test_unconfigured_card_payment(self, client, conn, make_product, shipping_zone, payment_client):
        add_to_cart(client, make_product()["id"])
        token = csrf_token(client, "/checkout")

        response = client.post(
            "/checkout",
            data=checkout_form(token, shipping_zone["standard_id"], payment_method="stripe", stripe_token="tok_visa"),
        )

        assert response.status_code == 422
        payment_client.post.assert_not_called()
        assert conn.fetch_value("SELECT COUNT(*) FROM orders") == 0

    def test_shipping_methods_json(self, client, make_product, shipping_zone):
        add_to_cart(client, make_product(weight=1.5)["id"])
        token = csrf_token(client, "/checkout")

        body = client.post("/checkout/shipping-methods", data={"country": "us", "csrf_token": token}).json()

        assert body["success"] is True
        assert [m["method_name"] for m in body["methods"]] == ["Standard", "Express"]


class TestOrderTracking:
    """Guest tracking by number and email."""

    def test_track(self, client, conn, make_product, shipping_zone):
        add_to_cart(client, make_product()["id"])
        token = csrf_token(client, "/checkout")
        client.post("/checkout", data=checkout_form(token, shipping_zone["standard_id"]))
        number = conn.fetch_value("SELECT order_number FROM orders")

        token = csrf_token(client, "/order/track")
        found = client.post("/order/track", data={"order_number": number, "email": "guest@example.com", "csrf_token": token})
        missing = client.post("/order/track", data={"order_number": number, "email": "other@example.com", "csrf_token": token})

        assert found.status_code == 200
        assert number in found.text
        assert missing.status_code == 422


# =============================================================================
# Accounts & back-office
# =============================================================================

class TestAccounts:
    """Customer login and the dashboard guard."""

    def test_dashboard_requires_login(self, client):
        response = client.get("/dashboard", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/login?redirect=%2Fdashboard"

    def test_login_and_logout(self, client, make_user):
        make_user("amara@example.com")

        response = login(client, "amara@example.com")

        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"
        assert client.get("/dashboard").status_code == 200

        client.get("/logout")
        assert client.get("/dashboard", follow_redirects=False).status_code == 302

    def test_bad_password(self, client, make_user):
        make_user("amara@example.com")
        assert login(client, "amara@example.com", "wrong-password").status_code == 422

    def test_register(self, client, conn):
        token = csrf_token(client, "/register")
        response = client.post("/register", data={
            "email": "new@example.com",
            "password": "cinnamon123",
            "password_confirmation": "cinnamon123",
            "first_name": "Kasun",
            "last_name": "Fernando",
            "csrf_token": token,
        }, follow_redirects=False)

        assert response.headers["location"] == "/dashboard"
        assert conn.fetch_value("SELECT role FROM users WHERE email = 'new@example.com'") == "customer"

    def test_cart_survives_login(self, client, make_user, make_product):
        make_user("amara@example.com")
        add_to_cart(client, make_product()["id"], 2)

        login(client, "amara@example.com")

        assert client.get("/cart/count").json()["count"] == 2


class TestAdmin:
    """Back-office login and role guards."""

    def test_customer_cannot_use_admin_login(self, client, make_user):
        make_user("amara@example.com")
        response = login(client, "amara@example.com", admin=True)
        assert response.status_code == 422

    def test_customer_gets_403(self, client, make_user):
        make_user("amara@example.com")
        login(client, "amara@example.com")
        assert client.get("/admin").status_code == 403

    def test_guest_sent_to_admin_login(self, client):
        response = client.get("/admin/orders", follow_redirects=False)
        assert response.headers["location"].startswith("/admin/login")

    def test_content_manager_limits(self, client, make_user):
        make_user("cm@example.com", role=Role.CONTENT_MANAGER)
        assert login(client, "cm@example.com", admin=True).headers["location"] == "/admin"

        assert client.get("/admin").status_code == 200
        assert client.get("/admin/blog").status_code == 200
        assert client.get("/admin/orders").status_code == 403

    def test_admin_updates_order_status(self, client, conn, make_user, make_product, shipping_zone):
        add_to_cart(client, make_product()["id"])
        token = csrf_token(client, "/checkout")
        client.post("/checkout", data=checkout_form(token, shipping_zone["standard_id"]))
        order_id = conn.fetch_value("SELECT id FROM orders")

        make_user("admin@example.com", role=Role.ADMIN)
        login(client, "admin@example.com", admin=True)
        token = csrf_token(client, f"/admin/orders/{order_id}")

        ok = client.post(
            f"/admin/orders/{order_id}/status",
            data={"status": "processing", "payment_status": "paid", "csrf_token": token},
            follow_redirects=False,
        )
        skipped = client.post(
            f"/admin/orders/{order_id}/status",
            data={"status": "delivered", "csrf_token": token},
            headers={"Accept": "application/json"},
        )

        assert ok.status_code == 302
        row = conn.fetch_one("SELECT status, payment_status FROM orders WHERE id = :id", {"id": order_id})
        assert (row["status"], row["payment_status"]) == ("processing", "paid")
        assert skipped.status_code == 409
        assert skipped.json()["success"] is False


# =============================================================================
# JSON API
# =============================================================================

class TestApi:
    """Read-only catalog endpoints."""

    def test_products_listing(self, client, make_product):
        make_product(name="Alba", price=20.0, sale_price=15.0)
        make_product(name="Hidden", is_active=False)

        body = client.get("/api/products").json()

        assert body["success"] is True
        assert [p["name"] for p in body["products"]] == ["Alba"]
        assert body["products"][0]["effective_price"] == 15.0
        assert body["pagination"]["total"] == 1

    def test_product_detail(self, client, make_product):
        product = make_product()
        assert client.get(f"/api/products/{product['id']}").json()["product"]["sku"] == product["sku"]
        assert client.get("/api/products/9999").status_code == 404

    def test_categories(self, client, category):
        names = [c["name"] for c in client.get("/api/categories").json()["categories"]]
        assert names == ["Cinnamon Sticks"]

    def test_shipping_rates(self, client, shipping_zone):
        assert client.get("/api/shipping/rates").status_code == 400
        body = client.get("/api/shipping/rates?country=ca").json()
        assert body["available"] is True
        assert body["zone_name"] == "North America"


# =============================================================================
# Untrusted input
# =============================================================================

class TestRedirectSafety:
    """Redirect targets taken from user input stay on this site."""

    @pytest.mark.parametrize("target", ["/\\evil.example/phish", "//evil.example", "/\t/evil.example"])
    def test_login_ignores_offsite_targets(self, client, make_user, target):
        make_user("amara@example.com")
        token = csrf_token(client, "/login")

        response = client.post(
            "/login",
            data={"email": "amara@example.com", "password": "cinnamon123", "redirect": target, "csrf_token": token},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"

    def test_login_follows_local_target(self, client, make_user):
        make_user("amara@example.com")
        token = csrf_token(client, "/login")

        response = client.post(
            "/login",
            data={"email": "amara@example.com", "password": "cinnamon123", "redirect": "/dashboard/orders", "csrf_token": token},
            follow_redirects=False,
        )

        assert response.headers["location"] == "/dashboard/orders"

    def test_cart_add_ignores_backslash_target(self, client, make_product):
        token = csrf_token(client)
        response = client.post(
            "/cart/add",
            data={"product_id": make_product()["id"], "redirect": "/\\evil.example", "csrf_token": token},
            follow_redirects=False,
        )
        assert response.headers["location"] == "/cart"


class TestOversizedIds:
    """Ids too large for an INTEGER column are treated as unknown."""

    def test_api_product(self, client):
        response = client.get("/api/products/99999999999999999999")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_api_cart_add(self, client):
        response = client.post("/api/cart/add", json={"product_id": 10**20, "quantity": 1})
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_form_cart_add(self, client):
        token = csrf_token(client)
        response = client.post(
            "/cart/add",
            data={"product_id": "99999999999999999999", "csrf_token": token},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert client.get("/cart/count").json()["count"] == 0


# =============================================================================
# Back-office CRUD
# =============================================================================

class TestAdminProducts:
    """Product create, update, delete and CSV import over HTTP."""

    def product_data(self, category, token, **overrides):
        data = {
            "sku": "CIN-100",
            "name": "Alba Sticks",
            "price": "12.50",
            "stock_quantity": "8",
            "category_id": str(category["id"]),
            "csrf_token": token,
        }
        data.update(overrides)
        return data

    def test_create_with_uploaded_image(self, admin, conn, category):
        token = csrf_token(admin, "/admin/products/create")

        response = admin.post(
            "/admin/products",
            data=self.product_data(category, token),
            files={"image": ("Alba Sticks.png", PNG, "image/png")},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/admin/products"
        product = conn.fetch_one("SELECT * FROM products WHERE sku = 'CIN-100'")
        assert product["name"] == "Alba Sticks"
        assert product["image_url"].startswith("/uploads/products/alba_sticks_")
        assert product["image_url"].endswith(".png")

        served = admin.get(product["image_url"])
        assert served.status_code == 200
        assert served.content == PNG

    def test_disguised_script_is_refused(self, admin, conn, category, upload_settings):
        token = csrf_token(admin, "/admin/products/create")

        response = admin.post(
            "/admin/products",
            data=self.product_data(category, token),
            files={"image": ("photo.png", b"<?php system($_GET['c']); ?>", "image/png")},
        )

        assert response.status_code == 422
        assert "Invalid file type: photo.png" in response.text
        assert conn.fetch_value("SELECT COUNT(*) FROM products") == 0
        assert not (upload_settings.upload_path / "products").exists()

    def test_duplicate_sku(self, admin, conn, category, make_product):
        make_product(sku="CIN-100")
        token = csrf_token(admin, "/admin/products/create")

        response = admin.post("/admin/products", data=self.product_data(category, token))

        assert response.status_code == 422
        assert "SKU already exists" in response.text
        assert conn.fetch_value("SELECT COUNT(*) FROM products") == 1

    def test_update(self, admin, conn, category, make_product):
        product = make_product(sku="CIN-100")
        token = csrf_token(admin, f"/admin/products/{product['id']}/edit")

        response = admin.post(
            f"/admin/products/{product['id']}",
            data=self.product_data(category, token, name="Alba Sticks Premium", price="15"),
            follow_redirects=False,
        )

        assert response.status_code == 302
        row = conn.fetch_one("SELECT name, price FROM products WHERE id = :id", {"id": product["id"]})
        assert row["name"] == "Alba Sticks Premium"
        assert float(row["price"]) == 15.0

    def test_form_method_override_deletes(self, admin, conn, make_product):
        product = make_product()
        token = csrf_token(admin, "/admin/products")

        response = admin.post(
            f"/admin/products/{product['id']}",
            data={"_method": "DELETE", "csrf_token": token},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/admin/products"
        assert conn.fetch_value("SELECT COUNT(*) FROM products") == 0

    def test_ajax_delete(self, admin, conn, make_product):
        product = make_product()
        token = csrf_token(admin, "/admin/products")

        response = admin.post(
            f"/admin/products/{product['id']}",
            data={"_method": "DELETE", "csrf_token": token},
            headers=AJAX,
        )
        missing = admin.post("/admin/products/9999", data={"_method": "DELETE", "csrf_token": token}, headers=AJAX)

        assert response.json() == {"success": True, "message": "Product deleted successfully"}
        assert missing.status_code == 404
        assert missing.json() == {"success": False, "error": "Product not found"}

    def test_delete_requires_token(self, admin, conn, make_product):
        product = make_product()

        response = admin.post(f"/admin/products/{product['id']}", data={"_method": "DELETE"}, headers=AJAX)

        assert response.status_code == 403
        assert conn.fetch_value("SELECT COUNT(*) FROM products") == 1

    def test_csv_import_upload(self, admin, conn, category):
        token = csrf_token(admin, "/admin/products/import")
        csv = (
            "sku,name,price,category\n"
            "CIN-200,Cinnamon Powder,9.5,Cinnamon Sticks\n"
            "CIN-201,,3,Cinnamon Sticks\n"
        )

        response = admin.post(
            "/admin/products/import",
            data={"csrf_token": token},
            files={"csv_file": ("products.csv", csv.encode(), "text/csv")},
            headers={"Accept": "application/json"},
        )

        body = response.json()
        assert (body["imported_count"], body["skipped_count"]) == (1, 1)
        assert conn.fetch_value("SELECT name FROM products WHERE sku = 'CIN-200'") == "Cinnamon Powder"

    def test_csv_import_rejects_other_files(self, admin, conn):
        token = csrf_token(admin, "/admin/products/import")

        response = admin.post(
            "/admin/products/import",
            data={"csrf_token": token},
            files={"csv_file": ("products.xlsx", b"PK\x03\x04", "application/octet-stream")},
            follow_redirects=False,
        )

        assert response.headers["location"] == "/admin/products/import"
        assert "Please upload a CSV file." in admin.get("/admin/products/import").text


class TestAdminCategories:
    """Category deletion answers AJAX callers with a JSON body."""

    def delete(self, client, category_id):
        token = csrf_token(client, "/admin/categories")
        return client.post(
            f"/admin/categories/{category_id}",
            data={"_method": "DELETE", "csrf_token": token},
            headers=AJAX,
        )

    def test_category_in_use(self, admin, conn, category, make_product):
        make_product()

        response = self.delete(admin, category["id"])

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Cannot delete category with products. Move or delete products first.",
        }
        assert conn.fetch_value("SELECT COUNT(*) FROM categories") == 1

    def test_empty_category(self, admin, conn, category):
        response = self.delete(admin, category["id"])

        assert response.json() == {"success": True, "message": "Category deleted successfully"}
        assert conn.fetch_value("SELECT COUNT(*) FROM categories") == 0

    def test_unknown_category(self, admin):
        response = self.delete(admin, 9999)
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestAdminShipping:
    """Zone, method and weight bracket administration."""

    def test_zone_method_and_bracket_lifecycle(self, admin, conn):
        shipping = ShippingService(conn)
        token = csrf_token(admin, "/admin/shipping")

        created = admin.post(
            "/admin/shipping/zones",
            data={"name": "South Asia", "countries": "LK, IN", "csrf_token": token},
            follow_redirects=False,
        )
        zone_id = conn.fetch_value("SELECT id FROM shipping_zones WHERE name = 'South Asia'")
        assert created.headers["location"] == "/admin/shipping"
        assert shipping.find_zone(zone_id)["countries_list"] == ["LK", "IN"]

        admin.post(
            f"/admin/shipping/zones/{zone_id}",
            data={"name": "Sri Lanka", "countries": "lk", "csrf_token": token},
        )
        assert shipping.find_zone(zone_id)["name"] == "Sri Lanka"
        assert shipping.find_zone(zone_id)["countries_list"] == ["LK"]

        method = admin.post(
            "/admin/shipping/methods",
            data={"zone_id": zone_id, "name": "Courier", "base_cost": "4", "csrf_token": token},
            follow_redirects=False,
        )
        method_id = conn.fetch_value("SELECT id FROM shipping_methods WHERE name = 'Courier'")
        assert method.headers["location"] == f"/admin/shipping/methods/{method_id}/edit"

        bracket = admin.post(
            f"/admin/shipping/methods/{method_id}/brackets",
            data={"min_weight": "0", "max_weight": "2", "cost": "6", "csrf_token": token},
            follow_redirects=False,
        )
        assert bracket.headers["location"] == f"/admin/shipping/methods/{method_id}/edit"
        [row] = shipping.get_brackets(method_id)
        assert float(row["cost"]) == 6.0

        removed = admin.post(
            f"/admin/shipping/brackets/{row['id']}",
            data={"_method": "DELETE", "csrf_token": token},
            headers=AJAX,
        )
        assert removed.json() == {"success": True, "message": "Weight bracket deleted"}
        assert shipping.get_brackets(method_id) == []

        deleted_method = admin.delete(
            f"/admin/shipping/methods/{method_id}",
            headers={"X-CSRF-Token": token, "Accept": "application/json"},
        )
        assert deleted_method.json()["success"] is True
        assert shipping.find_method(method_id) is None

        deleted_zone = admin.post(
            f"/admin/shipping/zones/{zone_id}",
            data={"_method": "DELETE", "csrf_token": token},
            follow_redirects=False,
        )
        assert deleted_zone.headers["location"] == "/admin/shipping"
        assert shipping.find_zone(zone_id) is None

    def test_invalid_zone_rerenders(self, admin, conn):
        token = csrf_token(admin, "/admin/shipping")

        response = admin.post("/admin/shipping/zones", data={"name": "Nowhere", "countries": "XYZ", "csrf_token": token})

        assert response.status_code == 422
        assert "Invalid country code: XYZ" in response.text
        assert conn.fetch_value("SELECT COUNT(*) FROM shipping_zones") == 0

    def test_invalid_bracket_json(self, admin, conn, shipping_zone):
        token = csrf_token(admin, "/admin/shipping")

        response = admin.post(
            f"/admin/shipping/methods/{shipping_zone['standard_id']}/brackets",
            data={"min_weight": "5", "max_weight": "1", "cost": "3", "csrf_token": token},
            headers=AJAX,
        )

        assert response.status_code == 422
        assert response.json()["success"] is False


class TestAdminMedia:
    """Certificates and gallery items, with and without uploaded files."""

    def test_certificate_upload_update_and_delete(self, admin, conn, upload_settings):
        token = csrf_token(admin, "/admin/certificates/create")

        created = admin.post(
            "/admin/certificates",
            data={"title": "ISO 22000", "file_type": "pdf", "csrf_token": token},
            files={"file": ("ISO 22000.pdf", PDF, "application/pdf")},
            follow_redirects=False,
        )

        assert created.headers["location"] == "/admin/certificates"
        item = conn.fetch_one("SELECT * FROM certificates")
        assert item["file_url"].startswith("/uploads/certificates/iso_22000_")
        stored = upload_settings.upload_path / item["file_url"][len("/uploads/"):]
        assert stored.read_bytes() == PDF

        admin.post(
            f"/admin/certificates/{item['id']}",
            data={"title": "ISO 22000:2018", "file_url": item["file_url"], "file_type": "pdf", "csrf_token": token},
        )
        assert conn.fetch_value("SELECT title FROM certificates") == "ISO 22000:2018"

        deleted = admin.post(
            f"/admin/certificates/{item['id']}",
            data={"_method": "DELETE", "csrf_token": token},
            headers=AJAX,
        )
        assert deleted.json() == {"success": True, "message": "Certificate deleted successfully"}
        assert conn.fetch_value("SELECT COUNT(*) FROM certificates") == 0
        assert not stored.exists()

    def test_upload_must_match_selected_type(self, admin, conn, upload_settings):
        token = csrf_token(admin, "/admin/certificates/create")

        response = admin.post(
            "/admin/certificates",
            data={"title": "Organic", "file_type": "image", "csrf_token": token},
            files={"file": ("organic.pdf", PDF, "application/pdf")},
        )

        assert response.status_code == 422
        assert conn.fetch_value("SELECT COUNT(*) FROM certificates") == 0

    def test_gallery_item_by_url(self, admin, conn):
        token = csrf_token(admin, "/admin/gallery/create")

        response = admin.post(
            "/admin/gallery",
            data={"title": "Harvest", "file_url": "https://cdn.example/harvest.jpg", "file_type": "image", "csrf_token": token},
            follow_redirects=False,
        )

        assert response.headers["location"] == "/admin/gallery"
        assert conn.fetch_value("SELECT file_url FROM gallery_items") == "https://cdn.example/harvest.jpg"

    def test_file_or_url_is_required(self, admin, conn):
        token = csrf_token(admin, "/admin/gallery/create")

        response = admin.post("/admin/gallery", data={"title": "Empty", "file_type": "image", "csrf_token": token})

        assert response.status_code == 422
        assert "File URL is required" in response.text

    def test_unknown_item_delete(self, admin):
        token = csrf_token(admin, "/admin/gallery")
        response = admin.post("/admin/gallery/9999", data={"_method": "DELETE", "csrf_token": token}, headers=AJAX)
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestAdminOrderStatus:
    """Status changes from the order page restore stock at most once."""

    @pytest.fixture
    def placed(self, admin, conn, make_product, shipping_zone):
        product = make_product(stock_quantity=5)
        add_to_cart(admin, product["id"], 2)
        token = csrf_token(admin, "/checkout")
        admin.post("/checkout", data=checkout_form(token, shipping_zone["standard_id"]))
        return {"order_id": conn.fetch_value("SELECT id FROM orders"), "product_id": product["id"]}

    def set_status(self, client, order_id, status, **fields):
        token = csrf_token(client, f"/admin/orders/{order_id}")
        return client.post(
            f"/admin/orders/{order_id}/status",
            data={"status": status, "csrf_token": token, **fields},
            headers=AJAX,
        )

    def stock(self, conn, product_id):
        return conn.fetch_value("SELECT stock_quantity FROM products WHERE id = :id", {"id": product_id})

    def test_repeated_cancel_restores_stock_once(self, admin, conn, placed):
        assert self.stock(conn, placed["product_id"]) == 3

        first = self.set_status(admin, placed["order_id"], "cancelled")
        second = self.set_status(admin, placed["order_id"], "cancelled")

        assert first.json()["success"] is True
        assert second.json()["success"] is True
        assert self.stock(conn, placed["product_id"]) == 5

    def test_shipped_order_cannot_be_cancelled(self, admin, conn, placed):
        self.set_status(admin, placed["order_id"], "processing")
        self.set_status(admin, placed["order_id"], "shipped", tracking_number="LK123")

        response = self.set_status(admin, placed["order_id"], "cancelled")

        assert response.status_code == 409
        assert response.json()["success"] is False
        assert conn.fetch_value("SELECT status FROM orders") == "shipped"
        assert self.stock(conn, placed["product_id"]) == 3


# =============================================================================
# Wholesale
# =============================================================================

class TestWholesale:
    """Public wholesale page, inquiries, pricing API and tier admin."""

    @pytest.fixture
    def tiered_product(self, conn, make_product):
        product = make_product(name="Alba Sticks", price=12.0)
        WholesaleService(conn).create_tier(product["id"], PriceTierForm(min_quantity=10, price=9.5))
        return product

    def inquiry(self, token, **overrides):
        data = {
            "company_name": "Spice Traders Ltd",
            "contact_name": "Nimal Fernando",
            "email": "orders@spicetraders.example",
            "country": "GB",
            "csrf_token": token,
        }
        data.update(overrides)
        return data

    def test_page_lists_volume_pricing(self, client, tiered_product):
        page = client.get("/wholesale")
        assert page.status_code == 200
        assert "Alba Sticks" in page.text
        assert "10+ units" in page.text

    def test_product_page_shows_tiers(self, client, tiered_product):
        assert "10+ units" in client.get(f"/products/{tiered_product['slug']}").text

    def test_submit_inquiry(self, client, conn):
        token = csrf_token(client, "/wholesale")

        response = client.post("/wholesale", data=self.inquiry(token), follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/wholesale"
        row = conn.fetch_one("SELECT * FROM wholesale_inquiries")
        assert (row["company_name"], row["status"]) == ("Spice Traders Ltd", "pending")
        assert "Our team will contact you within 1-2 business days." in client.get("/wholesale").text

    def test_invalid_inquiry(self, client, conn):
        token = csrf_token(client, "/wholesale")

        response = client.post("/wholesale", data=self.inquiry(token, company_name=""))

        assert response.status_code == 422
        assert "Company name is required." in response.text
        assert conn.fetch_value("SELECT COUNT(*) FROM wholesale_inquiries") == 0

    def test_pricing_api(self, client, tiered_product):
        body = client.get(f"/api/wholesale/pricing/{tiered_product['id']}").json()

        assert body["success"] is True
        assert body["retail_price"] == 12.0
        assert body["minimum_quantity"] == 10
        assert body["price_tiers"] == [{"quantity": "10+ units", "price": 9.5, "discount": None}]
        assert client.get("/api/wholesale/pricing/9999").status_code == 404

    def test_admin_works_an_inquiry(self, admin, conn):
        token = csrf_token(admin, "/wholesale")
        admin.post("/wholesale", data=self.inquiry(token))
        inquiry_id = conn.fetch_value("SELECT id FROM wholesale_inquiries")

        assert "Spice Traders Ltd" in admin.get("/admin/wholesale?status=pending").text
        assert admin.get(f"/admin/wholesale/{inquiry_id}").status_code == 200

        token = csrf_token(admin, f"/admin/wholesale/{inquiry_id}")
        admin.post(f"/admin/wholesale/{inquiry_id}/status", data={"status": "approved", "csrf_token": token})
        rejected = admin.post(
            f"/admin/wholesale/{inquiry_id}/status",
            data={"status": "archived", "csrf_token": token},
            headers=AJAX,
        )

        assert conn.fetch_value("SELECT status FROM wholesale_inquiries") == "approved"
        assert rejected.status_code == 422
        assert rejected.json() == {"success": False, "error": "Invalid status"}

    def test_admin_manages_tiers(self, admin, conn, make_product):
        product = make_product()
        token = csrf_token(admin, f"/admin/products/{product['id']}/edit")

        added = admin.post(
            f"/admin/products/{product['id']}/tiers",
            data={"min_quantity": "25", "max_quantity": "", "price": "8", "is_active": "1", "csrf_token": token},
            follow_redirects=False,
        )
        assert added.headers["location"] == f"/admin/products/{product['id']}/edit"
        [tier] = WholesaleService(conn).get_product_tiers(product["id"])
        assert "25" in admin.get(f"/admin/products/{product['id']}/edit").text

        removed = admin.post(
            f"/admin/wholesale-tiers/{tier['id']}",
            data={"_method": "DELETE", "csrf_token": token},
            headers=AJAX,
        )
        assert removed.json() == {"success": True, "message": "Price tier deleted"}
        assert WholesaleService(conn).get_product_tiers(product["id"]) == []

    def test_customers_cannot_reach_inquiries(self, client, make_user):
        make_user("amara@example.com")
        login(client, "amara@example.com")
        assert client.get("/admin/wholesale").status_code == 403


# =============================================================================
# SEO
# =============================================================================

class TestSeo:
    """sitemap.xml and robots.txt."""

    def test_sitemap(self, client, make_product):
        product = make_product(name="Alba Sticks")

        response = client.get("/sitemap.xml")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert f"/products/{product['slug']}</loc>" in response.text

    def test_robots(self, client):
        response = client.get("/robots.txt")

        assert response.headers["content-type"].startswith("text/plain")
        assert "Disallow: /admin/" in response.text
        assert "/sitemap.xml" in response.text
