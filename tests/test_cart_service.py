# =============================================================================
# tests/test_cart_service.py - Session Cart Tests
# =============================================================================
# Adding, merging, updating and removing lines; stock limits; summaries that
# always use current database prices; stock validation before checkout.
#
# Run with: pytest tests/test_cart_service.py -v
# =============================================================================

import pytest

from app.auth.session import SessionManager
from app.exceptions import CartError, InsufficientStockError, NotFoundError
from core.services import CartService


@pytest.fixture
def session():
    return SessionManager()


@pytest.fixture
def cart(session, conn):
    return CartService(session, conn)


class TestAdd:
    """Tests for CartService.add."""

    def test_add_new_line(self, cart, session, make_product):
        product = make_product()

        cart.add(product["id"], 2)

        assert cart.get_quantity(product["id"]) == 2
        assert cart.count() == 2
        assert session.modified

    def test_add_merges_quantities(self, cart, make_product):
        product = make_product(stock_quantity=5)

        cart.add(product["id"], 2)
        cart.add(product["id"], 3)

        assert cart.get_quantity(product["id"]) == 5
        assert len(cart.get_items()) == 1

    def test_merged_quantity_checked_against_stock(self, cart, make_product):
        product = make_product(stock_quantity=4)
        cart.add(product["id"], 3)

        with pytest.raises(InsufficientStockError) as exc:
            cart.add(product["id"], 2)

        assert exc.value.status_code == 409
        assert cart.get_quantity(product["id"]) == 3

    def test_quantity_below_one_rejected(self, cart, make_product):
        with pytest.raises(CartError):
            cart.add(make_product()["id"], 0)

    def test_unknown_product(self, cart):
        with pytest.raises(NotFoundError):
            cart.add(999, 1)

    def test_inactive_product(self, cart, make_product):
        product = make_product(is_active=False)
        with pytest.raises(CartError):
            cart.add(product["id"], 1)


class TestUpdateRemove:
    """Tests for CartService.update, remove and clear."""

    def test_update_sets_quantity(self, cart, make_product):
        product = make_product()
        cart.add(product["id"], 1)

        cart.update(product["id"], 4)

        assert cart.get_quantity(product["id"]) == 4

    def test_update_to_zero_removes(self, cart, make_product):
        product = make_product()
        cart.add(product["id"], 1)

        cart.update(product["id"], 0)

        assert cart.is_empty()

    def test_update_negative_rejected(self, cart, make_product):
        product = make_product()
        cart.add(product["id"], 1)
        with pytest.raises(CartError):
            cart.update(product["id"], -1)

    def test_update_line_not_in_cart(self, cart, make_product):
        with pytest.raises(CartError):
            cart.update(make_product()["id"], 2)

    def test_update_beyond_stock(self, cart, make_product):
        product = make_product(stock_quantity=3)
        cart.add(product["id"], 1)
        with pytest.raises(InsufficientStockError):
            cart.update(product["id"], 10)

    def test_remove_missing_line(self, cart):
        with pytest.raises(CartError):
            cart.remove(5)

    def test_clear(self, cart, make_product):
        cart.add(make_product()["id"], 1)
        cart.add(make_product()["id"], 2)

        cart.clear()

        assert cart.is_empty()
        assert cart.count() == 0


class TestSummary:
    """Summaries read prices from the products table."""

    def test_sale_price_used(self, cart, make_product):
        product = make_product(price=20.0, sale_price=15.0)
        cart.add(product["id"], 2)

        summary = cart.get_summary()

        assert summary["items"][0]["price"] == 15.0
        assert summary["items"][0]["line_total"] == 30.0
        assert summary["subtotal"] == 30.0
        assert summary["total_quantity"] == 2

    def test_price_change_reflected(self, cart, conn, make_product):
        product = make_product(price=10.0)
        cart.add(product["id"], 1)

        conn.query("UPDATE products SET price = 12.5 WHERE id = :id", {"id": product["id"]})

        assert cart.get_summary()["subtotal"] == 12.5

    def test_deleted_product_left_out(self, cart, conn, make_product):
        kept = make_product()
        gone = make_product()
        cart.add(kept["id"], 1)
        cart.add(gone["id"], 1)

        conn.query("DELETE FROM products WHERE id = :id", {"id": gone["id"]})

        lines = cart.get_items_with_products()
        assert [line["product_id"] for line in lines] == [kept["id"]]

    def test_total_weight(self, cart, make_product):
        cart.add(make_product(weight=0.25)["id"], 2)
        cart.add(make_product(weight=1.0)["id"], 1)
        assert cart.total_weight() == 1.5

    def test_count_in_session_needs_no_database(self, session):
        session.set("cart", {"3": {"product_id": 3, "quantity": 2}, "4": {"product_id": 4, "quantity": 1}})
        assert CartService.count_in_session(session) == 3

    def test_to_order_items(self, cart, make_product):
        product = make_product(price=8.0)
        cart.add(product["id"], 3)
        assert cart.to_order_items() == [{"product_id": product["id"], "quantity": 3, "price": 8.0}]


class TestValidateStock:
    """Tests for CartService.validate_stock."""

    def test_clean_cart(self, cart, make_product):
        cart.add(make_product()["id"], 1)
        assert cart.validate_stock() == []

    def test_reports_each_problem(self, cart, conn, make_product):
        low = make_product(stock_quantity=5)
        inactive = make_product()
        gone = make_product()
        for product in (low, inactive, gone):
            cart.add(product["id"], 2)

        conn.query("UPDATE products SET stock_quantity = 1 WHERE id = :id", {"id": low["id"]})
        conn.query("UPDATE products SET is_active = 0 WHERE id = :id", {"id": inactive["id"]})
        conn.query("DELETE FROM products WHERE id = :id", {"id": gone["id"]})

        reasons = {problem["product_id"]: problem["reason"] for problem in cart.validate_stock()}
        assert reasons == {
            low["id"]: "insufficient_stock",
            inactive["id"]: "product_inactive",
            gone["id"]: "product_not_found",
        }
