# =============================================================================
# core/services/wholesale_service.py - Wholesale Inquiries & Price Tiers
# =============================================================================
# Businesses submit inquiries from the public wholesale page; admins work
# them through pending -> contacted -> approved/rejected.
#
# Each product can carry volume price tiers. The tier with the highest
# min_quantity not above the requested quantity sets the unit price.
# =============================================================================

import logging
from typing import Any

from app.exceptions import FormValidationError, NotFoundError
from core.models.wholesale import InquiryStatus, PriceTierForm, WholesaleInquiryForm
from lib.database import Connection
from lib.utils import now, page_count

logger = logging.getLogger(__name__)

INQUIRY_COLUMNS = (
    "company_name", "contact_name", "email", "phone", "country", "business_type",
    "estimated_quantity", "products_interested", "message",
)


def tier_label(tier: dict[str, Any]) -> str:
    """"10-49 units" for a bounded tier, "50+ units" for an open one."""
    if tier.get("max_quantity") is None:
        return f"{tier['min_quantity']}+ units"
    return f"{tier['min_quantity']}-{tier['max_quantity']} units"


class WholesaleService:
    """
    Wholesale inquiries and per-product volume pricing.

    Example:
        wholesale = WholesaleService(conn)
        inquiry_id = wholesale.create_inquiry(form)
        wholesale.wholesale_price(product_id=3, quantity=120)  # 9.5
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    # -------------------------------------------------------------------------
    # Inquiries
    # -------------------------------------------------------------------------

    def create_inquiry(self, form: WholesaleInquiryForm) -> int:
        data = form.model_dump()
        timestamp = now()
        self.conn.query(
            f"INSERT INTO wholesale_inquiries ({', '.join(INQUIRY_COLUMNS)}, status, created_at, updated_at) "
            f"VALUES ({', '.join(':' + c for c in INQUIRY_COLUMNS)}, :status, :now, :now)",
            {**{c: data[c] for c in INQUIRY_COLUMNS}, "status": InquiryStatus.PENDING.value, "now": timestamp},
        )
        inquiry_id = self.conn.last_insert_id()
        logger.info(f"Wholesale inquiry {inquiry_id} received from {form.company_name}")
        return inquiry_id

    def find_inquiry(self, inquiry_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM wholesale_inquiries WHERE id = :id", {"id": inquiry_id})

    def get_inquiry(self, inquiry_id: int | str) -> dict[str, Any]:
        inquiry = self.find_inquiry(inquiry_id)
        if inquiry is None:
            raise NotFoundError("Wholesale inquiry", inquiry_id)
        return inquiry

    def get_inquiries(
        self,
        filters: dict[str, Any] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Admin inquiry listing.

        Filters: status, search (company, contact name or email).
        """
        filters = filters or {}
        conditions = ["1 = 1"]
        params: dict[str, Any] = {}

        if filters.get("status"):
            conditions.append("status = :status")
            params["status"] = filters["status"]
        if filters.get("search"):
            conditions.append(
                "(company_name LIKE :search OR contact_name LIKE :search OR email LIKE :search)"
            )
            params["search"] = f"%{filters['search']}%"

        where = " AND ".join(conditions)
        total = self.conn.fetch_value(f"SELECT COUNT(*) FROM wholesale_inquiries WHERE {where}", params) or 0
        rows = self.conn.fetch_all(
            f"SELECT * FROM wholesale_inquiries WHERE {where} "
            "ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": limit, "offset": offset},
        )
        return {
            "inquiries": rows,
            "total": total,
            "limit": limit,
            "offset": offset,
            "pages": page_count(total, limit),
        }

    def update_inquiry_status(self, inquiry_id: int, status: InquiryStatus | str) -> None:
        try:
            status = InquiryStatus(status)
        except ValueError:
            raise FormValidationError({"status": ["Invalid status"]})
        self.get_inquiry(inquiry_id)
        self.conn.query(
            "UPDATE wholesale_inquiries SET status = :status, updated_at = :now WHERE id = :id",
            {"status": status.value, "now": now(), "id": inquiry_id},
        )
        logger.info(f"Wholesale inquiry {inquiry_id} marked {status.value}")

    def pending_count(self) -> int:
        return self.conn.fetch_value(
            "SELECT COUNT(*) FROM wholesale_inquiries WHERE status = :status",
            {"status": InquiryStatus.PENDING.value},
        ) or 0

    # -------------------------------------------------------------------------
    # Price tiers
    # -------------------------------------------------------------------------

    def get_product_tiers(self, product_id: int, active_only: bool = True) -> list[dict[str, Any]]:
        active = " AND is_active = 1" if active_only else ""
        return self.conn.fetch_all(
            f"SELECT * FROM wholesale_price_tiers WHERE product_id = :product_id{active} "
            "ORDER BY min_quantity ASC",
            {"product_id": product_id},
        )

    def wholesale_price(self, product_id: int, quantity: int) -> float | None:
        """Unit price for the quantity, or None when no tier covers it."""
        price = self.conn.fetch_value(
            "SELECT price FROM wholesale_price_tiers "
            "WHERE product_id = :product_id AND is_active = 1 AND min_quantity <= :quantity "
            "ORDER BY min_quantity DESC LIMIT 1",
            {"product_id": product_id, "quantity": quantity},
        )
        return float(price) if price is not None else None

    def minimum_quantity(self, product_id: int) -> int | None:
        return self.conn.fetch_value(
            "SELECT MIN(min_quantity) FROM wholesale_price_tiers "
            "WHERE product_id = :product_id AND is_active = 1",
            {"product_id": product_id},
        )

    def create_tier(self, product_id: int, form: PriceTierForm) -> int:
        timestamp = now()
        self.conn.query(
            "INSERT INTO wholesale_price_tiers "
            "(product_id, min_quantity, max_quantity, price, discount_percentage, is_active, created_at, updated_at) "
            "VALUES (:product_id, :min_quantity, :max_quantity, :price, :discount_percentage, :is_active, :now, :now)",
            {**form.model_dump(), "product_id": product_id, "now": timestamp},
        )
        tier_id = self.conn.last_insert_id()
        logger.info(f"Added wholesale tier {tier_id} to product {product_id} from {form.min_quantity} units")
        return tier_id

    def find_tier(self, tier_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM wholesale_price_tiers WHERE id = :id", {"id": tier_id})

    def delete_tier(self, tier_id: int) -> dict[str, Any]:
        tier = self.find_tier(tier_id)
        if tier is None:
            raise NotFoundError("Price tier", tier_id)
        self.conn.query("DELETE FROM wholesale_price_tiers WHERE id = :id", {"id": tier_id})
        logger.info(f"Deleted wholesale tier {tier_id}")
        return tier

    def delete_product_tiers(self, product_id: int) -> int:
        result = self.conn.query(
            "DELETE FROM wholesale_price_tiers WHERE product_id = :product_id", {"product_id": product_id}
        )
        return result.rowcount

    # -------------------------------------------------------------------------
    # Catalog views
    # -------------------------------------------------------------------------

    def get_wholesale_products(self) -> list[dict[str, Any]]:
        """Active products with at least one active tier, with their lowest tier price."""
        return self.conn.fetch_all(
            "SELECT p.id, p.name, p.slug, p.sku, p.price, p.image_url, "
            "MIN(t.price) AS wholesale_from, MIN(t.min_quantity) AS minimum_quantity "
            "FROM products p JOIN wholesale_price_tiers t ON t.product_id = p.id AND t.is_active = 1 "
            "WHERE p.is_active = 1 "
            "GROUP BY p.id, p.name, p.slug, p.sku, p.price, p.image_url "
            "ORDER BY p.name ASC"
        )

    def tier_summary(self, product_id: int) -> list[dict[str, Any]]:
        """Display rows for a product's tiers."""
        summary = []
        for tier in self.get_product_tiers(product_id):
            discount = tier.get("discount_percentage")
            summary.append({
                "quantity": tier_label(tier),
                "price": float(tier["price"]),
                "discount": f"{float(discount):g}%" if discount else None,
            })
        return summary

    def product_pricing(self, product: dict[str, Any]) -> dict[str, Any]:
        """Payload for the wholesale pricing API."""
        return {
            "product_id": product["id"],
            "product_name": product["name"],
            "retail_price": float(product["price"]),
            "minimum_quantity": self.minimum_quantity(product["id"]),
            "price_tiers": self.tier_summary(product["id"]),
        }
