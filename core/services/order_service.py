# =============================================================================
# core/services/order_service.py - Order Business Logic
# =============================================================================
# Order creation, lifecycle and reporting.
#
# Atomicity:
# - create_order() inserts the order, its items and the stock decrements in
#   one transaction. Any failure (missing product, insufficient stock,
#   constraint violation) rolls back all of it.
# - cancel() restores stock and flips the status in one transaction.
#
# Stock is decremented with a conditional UPDATE (stock_quantity >= :qty)
# so two concurrent checkouts can never drive stock below zero; the loser
# gets InsufficientStockError and its transaction is rolled back.
# =============================================================================

import logging
import random
import time
from datetime import datetime
from typing import Any

from app.exceptions import (
    FormValidationError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    StorefrontException,
)
from core.models.order import (
    OrderCreate,
    OrderItemInput,
    OrderStatus,
    PaymentStatus,
    can_transition,
)
from lib.database import Connection
from lib.utils import now, page_count

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "CC"


class OrderService:
    """
    Service for order operations.

    Example:
        orders = OrderService(conn, notifier=NotificationService(settings))
        result = orders.create_order(order, items)
        orders.update_status(result["id"], OrderStatus.PROCESSING)
    """

    def __init__(self, conn: Connection, notifier: Any = None):
        self.conn = conn
        self.notifier = notifier

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def generate_order_number(self) -> str:
        """
        Unique order number: CC<year><6 random digits>.

        Falls back to a timestamp-based suffix if ten random picks collide.
        """
        year = datetime.now().year
        for _ in range(10):
            candidate = f"{ORDER_NUMBER_PREFIX}{year}{random.randint(0, 999_999):06d}"
            if self.find_by_number(candidate) is None:
                return candidate
        return f"{ORDER_NUMBER_PREFIX}{year}{int(time.time() * 1000) % 1_000_000:06d}"

    def create_order(self, order: OrderCreate, items: list[OrderItemInput]) -> dict[str, Any]:
        """
        Create an order with its items and reserve stock.

        Args:
            order: Validated order header
            items: At least one line (product_id, quantity, unit price)

        Returns:
            {"id": int, "order_number": str, "subtotal": float, "total_amount": float}

        Raises:
            FormValidationError: If there are no items
            NotFoundError: If a product doesn't exist
            InsufficientStockError: If a product can't cover its quantity
        """
        if not items:
            raise FormValidationError({"items": ["Order must have at least one item"]})

        subtotal = round(sum(item.price * item.quantity for item in items), 2)
        total = round(subtotal + order.shipping_cost + order.tax_amount - order.discount_amount, 2)
        created_at = now()

        with self.conn.transaction():
            order_number = self.generate_order_number()
            self.conn.query(
                "INSERT INTO orders (order_number, user_id, email, first_name, last_name, phone, "
                "shipping_address, billing_address, status, payment_status, payment_method, "
                "payment_reference, shipping_method, subtotal, shipping_cost, tax_amount, "
                "discount_amount, total_amount, currency, notes, created_at) VALUES "
                "(:order_number, :user_id, :email, :first_name, :last_name, :phone, "
                ":shipping_address, :billing_address, :status, :payment_status, :payment_method, "
                ":payment_reference, :shipping_method, :subtotal, :shipping_cost, :tax_amount, "
                ":discount_amount, :total_amount, :currency, :notes, :created_at)",
                {
                    **order.model_dump(mode="json"),
                    "billing_address": order.billing_address or order.shipping_address,
                    "order_number": order_number,
                    "status": OrderStatus.PENDING.value,
                    "subtotal": subtotal,
                    "total_amount": total,
                    "created_at": created_at,
                },
            )
            order_id = self.conn.last_insert_id()

            for item in items:
                product = self.conn.fetch_one(
                    "SELECT id, name, sku, stock_quantity FROM products WHERE id = :id",
                    {"id": item.product_id},
                )
                if product is None:
                    raise NotFoundError("Product", item.product_id)
                if product["stock_quantity"] < item.quantity:
                    raise InsufficientStockError(product["name"], product["stock_quantity"], item.quantity)

                self.conn.query(
                    "INSERT INTO order_items (order_id, product_id, product_name, product_sku, "
                    "quantity, unit_price, total_price, created_at) VALUES "
                    "(:order_id, :product_id, :product_name, :product_sku, :quantity, "
                    ":unit_price, :total_price, :created_at)",
                    {
                        "order_id": order_id,
                        "product_id": product["id"],
                        "product_name": product["name"],
                        "product_sku": product["sku"],
                        "quantity": item.quantity,
                        "unit_price": item.price,
                        "total_price": round(item.price * item.quantity, 2),
                        "created_at": created_at,
                    },
                )
                self.reduce_stock(product["id"], item.quantity, product_name=product["name"])

        logger.info(f"Created order {order_number} ({len(items)} items, total {total})")
        return {
            "id": order_id,
            "order_number": order_number,
            "subtotal": subtotal,
            "total_amount": total,
        }

    # -------------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------------

    def reduce_stock(self, product_id: int, quantity: int, product_name: str | None = None) -> None:
        """
        Decrement stock only if enough is left.

        Raises:
            InsufficientStockError: If no row was updated
        """
        result = self.conn.query(
            "UPDATE products SET stock_quantity = stock_quantity - :quantity "
            "WHERE id = :id AND stock_quantity >= :quantity",
            {"id": product_id, "quantity": quantity},
        )
        if result.rowcount == 0:
            available = self.conn.fetch_value(
                "SELECT stock_quantity FROM products WHERE id = :id", {"id": product_id}
            ) or 0
            raise InsufficientStockError(product_name or str(product_id), available, quantity)

    def restore_stock(self, product_id: int, quantity: int) -> None:
        self.conn.query(
            "UPDATE products SET stock_quantity = stock_quantity + :quantity WHERE id = :id",
            {"id": product_id, "quantity": quantity},
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find(self, order_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM orders WHERE id = :id", {"id": order_id})

    def get(self, order_id: int | str) -> dict[str, Any]:
        order = self.find(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def find_by_number(self, order_number: str) -> dict[str, Any] | None:
        return self.conn.fetch_one(
            "SELECT * FROM orders WHERE order_number = :order_number",
            {"order_number": order_number},
        )

    def get_items(self, order_id: int) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT oi.*, p.slug AS product_slug, p.image_url AS product_image "
            "FROM order_items oi LEFT JOIN products p ON p.id = oi.product_id "
            "WHERE oi.order_id = :order_id ORDER BY oi.id ASC",
            {"order_id": order_id},
        )

    def get_full_details(self, order_id: int | str) -> dict[str, Any]:
        order = dict(self.get(order_id))
        order["items"] = self.get_items(order["id"])
        return order

    def get_for_user(self, order_id: int | str, user_id: int) -> dict[str, Any]:
        """
        Order details, only if the order belongs to the user.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        order = self.find(order_id)
        if order is None or order["user_id"] != user_id:
            raise NotFoundError("Order", order_id)
        return self.get_full_details(order["id"])

    def track(self, order_number: str, email: str) -> dict[str, Any] | None:
        """Public tracking: the order number and checkout email must both match."""
        order = self.conn.fetch_one(
            "SELECT * FROM orders WHERE order_number = :order_number AND LOWER(email) = :email",
            {"order_number": order_number.strip().upper(), "email": email.strip().lower()},
        )
        if order is None:
            return None
        order = dict(order)
        order["items"] = self.get_items(order["id"])
        return order

    def get_by_user(self, user_id: int, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT o.*, (SELECT COUNT(*) FROM order_items oi WHERE oi.order_id = o.id) AS item_count "
            "FROM orders o WHERE o.user_id = :user_id "
            "ORDER BY o.created_at DESC, o.id DESC LIMIT :limit OFFSET :offset",
            {"user_id": user_id, "limit": limit, "offset": offset},
        )

    def count_by_user(self, user_id: int) -> int:
        return self.conn.fetch_value(
            "SELECT COUNT(*) FROM orders WHERE user_id = :user_id", {"user_id": user_id}
        ) or 0

    def get_user_stats(self, user_id: int) -> dict[str, Any]:
        row = self.conn.fetch_one(
            "SELECT COUNT(*) AS total_orders, "
            "SUM(CASE WHEN status = 'delivered' THEN 1 ELSE 0 END) AS completed_orders, "
            "SUM(CASE WHEN status IN ('pending', 'processing', 'shipped') THEN 1 ELSE 0 END) AS pending_orders, "
            "COALESCE(SUM(CASE WHEN status != 'cancelled' THEN total_amount ELSE 0 END), 0) AS total_spent "
            "FROM orders WHERE user_id = :user_id",
            {"user_id": user_id},
        ) or {}
        return {
            "total_orders": int(row.get("total_orders") or 0),
            "completed_orders": int(row.get("completed_orders") or 0),
            "pending_orders": int(row.get("pending_orders") or 0),
            "total_spent": round(float(row.get("total_spent") or 0), 2),
        }

    def get_filtered(
        self,
        filters: dict[str, Any] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Admin order listing.

        Filters: status, payment_status, date_from, date_to, search (order
        number, email or name).
        """
        filters = filters or {}
        conditions = ["1 = 1"]
        params: dict[str, Any] = {}

        if filters.get("status"):
            conditions.append("o.status = :status")
            params["status"] = filters["status"]
        if filters.get("payment_status"):
            conditions.append("o.payment_status = :payment_status")
            params["payment_status"] = filters["payment_status"]
        if filters.get("date_from"):
            conditions.append("o.created_at >= :date_from")
            params["date_from"] = f"{filters['date_from']} 00:00:00"
        if filters.get("date_to"):
            conditions.append("o.created_at <= :date_to")
            params["date_to"] = f"{filters['date_to']} 23:59:59"
        if filters.get("search"):
            conditions.append(
                "(o.order_number LIKE :search OR o.email LIKE :search "
                "OR o.first_name LIKE :search OR o.last_name LIKE :search)"
            )
            params["search"] = f"%{filters['search']}%"

        where = " AND ".join(conditions)
        total = self.conn.fetch_value(f"SELECT COUNT(*) FROM orders o WHERE {where}", params) or 0
        rows = self.conn.fetch_all(
            "SELECT o.*, u.email AS user_email FROM orders o "
            "LEFT JOIN users u ON u.id = o.user_id "
            f"WHERE {where} ORDER BY o.created_at DESC, o.id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": limit, "offset": offset},
        )
        return {
            "orders": rows,
            "total": total,
            "limit": limit,
            "offset": offset,
            "pages": page_count(total, limit),
        }

    def get_recent(self, limit: int = 10) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT * FROM orders ORDER BY created_at DESC, id DESC LIMIT :limit", {"limit": limit}
        )

    def get_dashboard_stats(self) -> dict[str, Any]:
        row = self.conn.fetch_one(
            "SELECT COUNT(*) AS total_orders, "
            "COALESCE(SUM(CASE WHEN status != 'cancelled' THEN total_amount ELSE 0 END), 0) AS revenue, "
            "SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending_orders, "
            "SUM(CASE WHEN status = 'processing' THEN 1 ELSE 0 END) AS processing_orders "
            "FROM orders"
        ) or {}
        customers = self.conn.fetch_value(
            "SELECT COUNT(*) FROM users WHERE role = 'customer'"
        ) or 0
        return {
            "total_orders": int(row.get("total_orders") or 0),
            "revenue": round(float(row.get("revenue") or 0), 2),
            "pending_orders": int(row.get("pending_orders") or 0),
            "processing_orders": int(row.get("processing_orders") or 0),
            "customers": int(customers),
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def update_status(
        self,
        order_id: int,
        status: OrderStatus | str,
        notify: bool = True,
    ) -> dict[str, Any]:
        """
        Move an order to a new status.

        Cancelling goes through cancel() so stock is restored.

        Returns:
            {"old_status": str, "new_status": str}

        Raises:
            NotFoundError: If the order doesn't exist
            InvalidStatusTransitionError: If the transition isn't allowed, or
                another request changed the status first
        """
        new_status = _parse_status(status)
        order = self.get(order_id)
        current = OrderStatus(order["status"])

        if new_status == current:
            return {"old_status": current.value, "new_status": current.value}
        if not can_transition(current, new_status):
            raise InvalidStatusTransitionError(current.value, new_status.value)

        if new_status == OrderStatus.CANCELLED:
            if not self.cancel(order_id, notify=notify):
                return {"old_status": OrderStatus.CANCELLED.value, "new_status": OrderStatus.CANCELLED.value}
            return {"old_status": current.value, "new_status": new_status.value}

        columns = {}
        if new_status == OrderStatus.SHIPPED:
            columns = {"shipped_at": now()}
        elif new_status == OrderStatus.DELIVERED:
            columns = {"delivered_at": now()}
        if not self._move(order_id, current, new_status, columns):
            latest = self._current_status(order_id)
            if latest == new_status:
                return {"old_status": latest.value, "new_status": latest.value}
            raise InvalidStatusTransitionError(latest.value, new_status.value)
        logger.info(f"Order {order['order_number']}: {current.value} -> {new_status.value}")

        if notify:
            self._notify_status(order_id, current.value)
        return {"old_status": current.value, "new_status": new_status.value}

    def mark_as_shipped(self, order_id: int, tracking_number: str | None = None, notify: bool = True) -> None:
        """Ship an order and record the carrier tracking number."""
        order = self.get(order_id)
        current = OrderStatus(order["status"])
        if not can_transition(current, OrderStatus.SHIPPED):
            raise InvalidStatusTransitionError(current.value, OrderStatus.SHIPPED.value)

        shipped = self._move(
            order_id, current, OrderStatus.SHIPPED,
            {"tracking_number": tracking_number or None, "shipped_at": now()},
        )
        if not shipped:
            raise InvalidStatusTransitionError(self._current_status(order_id).value, OrderStatus.SHIPPED.value)
        logger.info(f"Order {order['order_number']} shipped (tracking: {tracking_number or 'n/a'})")
        if notify:
            self._notify_status(order_id, current.value)

    def cancel(self, order_id: int, reason: str | None = None, notify: bool = True) -> bool:
        """
        Cancel an order and put its stock back.

        The status write is conditional on the status read here, so of two
        overlapping cancels only one restores stock.

        Returns:
            False if the order was already cancelled, True otherwise

        Raises:
            NotFoundError: If the order doesn't exist
            InvalidStatusTransitionError: If it has already shipped
        """
        order = self.get(order_id)
        current = OrderStatus(order["status"])
        if current == OrderStatus.CANCELLED:
            return False
        if not can_transition(current, OrderStatus.CANCELLED):
            raise InvalidStatusTransitionError(current.value, OrderStatus.CANCELLED.value)

        with self.conn.transaction():
            cancelled = self._move(order_id, current, OrderStatus.CANCELLED)
            if cancelled:
                for item in self.get_items(order_id):
                    self.restore_stock(item["product_id"], item["quantity"])
                if reason:
                    self.add_note(order_id, f"Cancelled: {reason}")

        if not cancelled:
            latest = self._current_status(order_id)
            if latest == OrderStatus.CANCELLED:
                logger.info(f"Order {order['order_number']} was already cancelled")
                return False
            raise InvalidStatusTransitionError(latest.value, OrderStatus.CANCELLED.value)

        logger.info(f"Order {order['order_number']} cancelled")
        if notify:
            self._notify_status(order_id, current.value)
        return True

    def _move(
        self,
        order_id: int,
        current: OrderStatus,
        new_status: OrderStatus,
        columns: dict[str, Any] | None = None,
    ) -> bool:
        """
        Write a new status only if the order still has `current`.

        Returns:
            False when another request changed the status first
        """
        columns = columns or {}
        assignments = "".join(f", {column} = :{column}" for column in columns)
        result = self.conn.query(
            f"UPDATE orders SET status = :status, updated_at = :now{assignments} "
            "WHERE id = :id AND status = :current",
            {"id": order_id, "status": new_status.value, "current": current.value, "now": now(), **columns},
        )
        return result.rowcount > 0

    def _current_status(self, order_id: int) -> OrderStatus:
        return OrderStatus(self.get(order_id)["status"])

    def update_payment_status(self, order_id: int, status: PaymentStatus | str) -> None:
        try:
            payment_status = PaymentStatus(status)
        except ValueError:
            raise StorefrontException(
                message=f"Invalid payment status: {status}",
                code="INVALID_PAYMENT_STATUS",
                status_code=400,
            )
        self.get(order_id)
        self.conn.query(
            "UPDATE orders SET payment_status = :payment_status, updated_at = :now WHERE id = :id",
            {"id": order_id, "payment_status": payment_status.value, "now": now()},
        )

    def add_note(self, order_id: int, note: str) -> None:
        """Append a timestamped line to the order's internal notes."""
        note = note.strip()
        if not note:
            return
        existing = self.conn.fetch_value("SELECT notes FROM orders WHERE id = :id", {"id": order_id})
        line = f"[{now()}] {note}"
        notes = f"{existing}\n{line}" if existing else line
        self.conn.query(
            "UPDATE orders SET notes = :notes, updated_at = :now WHERE id = :id",
            {"id": order_id, "notes": notes, "now": now()},
        )

    def _notify_status(self, order_id: int, old_status: str) -> None:
        if self.notifier is None:
            return
        self.notifier.order_status_changed(self.get_full_details(order_id), old_status)


def _parse_status(status: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise StorefrontException(
            message=f"Invalid order status: {status}",
            code="INVALID_ORDER_STATUS",
            status_code=400,
        )