# =============================================================================
# core/services/cart_service.py - Shopping Cart
# =============================================================================
# The cart lives in the visitor's session as:
#   {"<product_id>": {"product_id": int, "quantity": int, "added_at": int}}
#
# Prices are never stored in the session; they are read from the products
# table every time the cart is summarized.
# =============================================================================

import logging
import time
from typing import Any

from app.exceptions import CartError, InsufficientStockError, NotFoundError
from core.services.product_service import ProductService, effective_price
from lib.database import Connection

logger = logging.getLogger(__name__)

SESSION_KEY = "cart"


class CartService:
    """
    Session-backed cart.

    Example:
        cart = CartService(request.session, request.db)
        cart.add(product_id=3, quantity=2)
        summary = cart.get_summary()
        summary["subtotal"], summary["total_quantity"]
    """

    def __init__(self, session: Any, conn: Connection):
        self.session = session
        self.products = ProductService(conn)

    @staticmethod
    def count_in_session(session: Any) -> int:
        """Total quantity in a session's cart, without touching the database."""
        return sum(int(item.get("quantity", 0)) for item in session.get(SESSION_KEY, {}).values())

    # -------------------------------------------------------------------------
    # Raw items
    # -------------------------------------------------------------------------

    def get_items(self) -> dict[str, dict[str, Any]]:
        return {key: dict(item) for key, item in self.session.get(SESSION_KEY, {}).items()}

    def _save(self, items: dict[str, dict[str, Any]]) -> None:
        self.session.set(SESSION_KEY, items)

    def is_empty(self) -> bool:
        return not self.session.get(SESSION_KEY)

    def count(self) -> int:
        return self.count_in_session(self.session)

    def get_quantity(self, product_id: int) -> int:
        return int(self.get_items().get(str(product_id), {}).get("quantity", 0))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _available_product(self, product_id: int) -> dict[str, Any]:
        product = self.products.find(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if not product["is_active"]:
            raise CartError("This product is no longer available", {"product_id": product_id})
        return product

    def add(self, product_id: int, quantity: int = 1) -> None:
        """
        Add a product, merging with any quantity already in the cart.

        Raises:
            CartError: If the quantity is below 1 or the product is inactive
            NotFoundError: If the product doesn't exist
            InsufficientStockError: If stock can't cover the combined quantity
        """
        if quantity < 1:
            raise CartError("Quantity must be at least 1")

        product = self._available_product(product_id)
        items = self.get_items()
        key = str(product_id)
        new_quantity = quantity + int(items.get(key, {}).get("quantity", 0))

        if product["stock_quantity"] < new_quantity:
            raise InsufficientStockError(product["name"], product["stock_quantity"], new_quantity)

        if key in items:
            items[key]["quantity"] = new_quantity
        else:
            items[key] = {
                "product_id": int(product_id),
                "quantity": quantity,
                "added_at": int(time.time()),
            }
        self._save(items)
        logger.debug(f"Cart: added {quantity} x product {product_id}")

    def update(self, product_id: int, quantity: int) -> None:
        """
        Set an item's quantity; 0 removes it.

        Raises:
            CartError: If the quantity is negative or the item isn't in the cart
            InsufficientStockError: If stock can't cover the quantity
        """
        if quantity < 0:
            raise CartError("Quantity cannot be negative")
        if quantity == 0:
            self.remove(product_id)
            return

        items = self.get_items()
        key = str(product_id)
        if key not in items:
            raise CartError("Product is not in your cart", {"product_id": product_id})

        product = self._available_product(product_id)
        if product["stock_quantity"] < quantity:
            raise InsufficientStockError(product["name"], product["stock_quantity"], quantity)

        items[key]["quantity"] = quantity
        self._save(items)

    def remove(self, product_id: int) -> None:
        items = self.get_items()
        if items.pop(str(product_id), None) is None:
            raise CartError("Product is not in your cart", {"product_id": product_id})
        self._save(items)

    def clear(self) -> None:
        self.session.set(SESSION_KEY, {})

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def get_items_with_products(self) -> list[dict[str, Any]]:
        """
        Cart lines joined with current product data.

        Products that no longer exist are silently left out.
        """
        items = self.get_items()
        products = self.products.find_many([int(key) for key in items])
        lines = []
        for key, item in items.items():
            product = products.get(int(key))
            if product is None:
                continue
            unit_price = effective_price(product)
            lines.append({
                "product_id": product["id"],
                "name": product["name"],
                "slug": product["slug"],
                "sku": product["sku"],
                "image_url": product.get("image_url"),
                "weight": float(product["weight"] or 0),
                "stock_quantity": product["stock_quantity"],
                "quantity": int(item["quantity"]),
                "price": unit_price,
                "line_total": round(unit_price * int(item["quantity"]), 2),
            })
        return lines

    def get_summary(self) -> dict[str, Any]:
        lines = self.get_items_with_products()
        subtotal = round(sum(line["line_total"] for line in lines), 2)
        return {
            "items": lines,
            "item_count": len(lines),
            "total_quantity": sum(line["quantity"] for line in lines),
            "subtotal": subtotal,
            "total": subtotal,
        }

    def total_weight(self) -> float:
        return round(
            sum(line["weight"] * line["quantity"] for line in self.get_items_with_products()), 3
        )

    def validate_stock(self) -> list[dict[str, Any]]:
        """
        Check every line against current stock.

        Returns:
            Problem lines, each with product_id, reason and message. Reasons:
            product_not_found, product_inactive, insufficient_stock
        """
        items = self.get_items()
        products = self.products.find_many([int(key) for key in items])
        problems = []
        for key, item in items.items():
            product = products.get(int(key))
            if product is None:
                problems.append({
                    "product_id": int(key),
                    "reason": "product_not_found",
                    "message": "Product no longer exists",
                })
            elif not product["is_active"]:
                problems.append({
                    "product_id": int(key),
                    "reason": "product_inactive",
                    "message": "Product is no longer available",
                })
            elif product["stock_quantity"] < int(item["quantity"]):
                problems.append({
                    "product_id": int(key),
                    "reason": "insufficient_stock",
                    "message": f"Only {product['stock_quantity']} available",
                    "available": product["stock_quantity"],
                })
        return problems

    def to_order_items(self) -> list[dict[str, Any]]:
        """Lines in the shape OrderService.create_order expects."""
        return [
            {"product_id": line["product_id"], "quantity": line["quantity"], "price": line["price"]}
            for line in self.get_items_with_products()
        ]
