# =============================================================================
# core/services/product_service.py - Product Catalog Logic
# =============================================================================
# Catalog queries (filtering, sorting, pagination) and product CRUD.
#
# Sort keys and filter names are mapped to fixed SQL fragments; user input
# only ever reaches the database as bound parameters.
# =============================================================================

import logging
from typing import Any

from app.exceptions import FormValidationError, NotFoundError
from core.models.product import ProductFilters, ProductForm
from lib.database import Connection
from lib.utils import now, page_count, slugify

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    "newest": "p.created_at DESC, p.id DESC",
    "oldest": "p.created_at ASC, p.id ASC",
    "price_low": "COALESCE(p.sale_price, p.price) ASC",
    "price_high": "COALESCE(p.sale_price, p.price) DESC",
    "name_asc": "p.name ASC",
    "name_desc": "p.name DESC",
}
DEFAULT_SORT = "newest"

PRODUCT_COLUMNS = (
    "sku", "name", "slug", "description", "short_description", "price",
    "sale_price", "weight", "dimensions", "stock_quantity", "category_id",
    "image_url", "is_organic", "origin", "tags", "meta_title",
    "meta_description", "is_featured", "is_active",
)


def effective_price(product: dict[str, Any]) -> float:
    """Sale price when set and positive, otherwise the regular price."""
    sale = product.get("sale_price")
    if sale is not None and float(sale) > 0:
        return float(sale)
    return float(product["price"])


class ProductService:
    """
    Product queries and administration.

    Example:
        products = ProductService(conn)
        page = products.get_filtered(ProductFilters(search="cinnamon"), sort="price_low")
        page["products"], page["total"], page["pages"]
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find(self, product_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one(
            "SELECT * FROM products WHERE id = :id", {"id": product_id}
        )

    def get(self, product_id: int | str) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the product doesn't exist
        """
        product = self.find(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def find_many(self, product_ids: list[int]) -> dict[int, dict[str, Any]]:
        """Products keyed by id (missing ids are simply absent)."""
        if not product_ids:
            return {}
        placeholders = ", ".join(f":id{i}" for i in range(len(product_ids)))
        params = {f"id{i}": int(pid) for i, pid in enumerate(product_ids)}
        rows = self.conn.fetch_all(
            f"SELECT * FROM products WHERE id IN ({placeholders})", params
        )
        return {row["id"]: row for row in rows}

    def find_by_slug(self, slug: str, active_only: bool = True) -> dict[str, Any] | None:
        sql = (
            "SELECT p.*, c.name AS category_name, c.slug AS category_slug "
            "FROM products p LEFT JOIN categories c ON c.id = p.category_id "
            "WHERE p.slug = :slug"
        )
        if active_only:
            sql += " AND p.is_active = 1"
        return self.conn.fetch_one(sql, {"slug": slug})

    def find_by_sku(self, sku: str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM products WHERE sku = :sku", {"sku": sku})

    def sku_exists(self, sku: str, exclude_id: int | None = None) -> bool:
        sql = "SELECT COUNT(*) FROM products WHERE sku = :sku"
        params: dict[str, Any] = {"sku": sku}
        if exclude_id is not None:
            sql += " AND id != :exclude_id"
            params["exclude_id"] = exclude_id
        return (self.conn.fetch_value(sql, params) or 0) > 0

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def get_filtered(
        self,
        filters: ProductFilters | None = None,
        sort: str | None = None,
        limit: int = 12,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Filtered, sorted, paginated product listing.

        Returns:
            {"products": [...], "total": int, "limit": int, "offset": int, "pages": int}
        """
        filters = filters or ProductFilters()
        conditions = ["p.is_active = 1"]
        params: dict[str, Any] = {}

        if filters.category_ids:
            placeholders = []
            for i, category_id in enumerate(filters.category_ids):
                params[f"cat{i}"] = category_id
                placeholders.append(f":cat{i}")
            conditions.append(f"p.category_id IN ({', '.join(placeholders)})")
        if filters.price_min is not None:
            conditions.append("COALESCE(p.sale_price, p.price) >= :price_min")
            params["price_min"] = filters.price_min
        if filters.price_max is not None:
            conditions.append("COALESCE(p.sale_price, p.price) <= :price_max")
            params["price_max"] = filters.price_max
        if filters.origin:
            conditions.append("p.origin = :origin")
            params["origin"] = filters.origin
        if filters.is_organic:
            conditions.append("p.is_organic = 1")
        if filters.in_stock:
            conditions.append("p.stock_quantity > 0")
        if filters.on_sale:
            conditions.append("p.sale_price IS NOT NULL AND p.sale_price > 0 AND p.sale_price < p.price")
        if filters.search:
            conditions.append(
                "(p.name LIKE :search OR p.description LIKE :search OR p.tags LIKE :search)"
            )
            params["search"] = f"%{filters.search}%"

        where = " AND ".join(conditions)
        order_by = SORT_OPTIONS.get(sort or DEFAULT_SORT, SORT_OPTIONS[DEFAULT_SORT])

        total = self.conn.fetch_value(
            f"SELECT COUNT(*) FROM products p WHERE {where}", params
        ) or 0

        rows = self.conn.fetch_all(
            "SELECT p.*, c.name AS category_name, c.slug AS category_slug "
            "FROM products p LEFT JOIN categories c ON c.id = p.category_id "
            f"WHERE {where} ORDER BY {order_by} LIMIT :limit OFFSET :offset",
            {**params, "limit": limit, "offset": offset},
        )

        return {
            "products": rows,
            "total": total,
            "limit": limit,
            "offset": offset,
            "pages": page_count(total, limit),
        }

    def get_featured(self, limit: int = 8) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT * FROM products WHERE is_active = 1 AND is_featured = 1 "
            "ORDER BY created_at DESC, id DESC LIMIT :limit",
            {"limit": limit},
        )

    def get_latest(self, limit: int = 8) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT * FROM products WHERE is_active = 1 "
            "ORDER BY created_at DESC, id DESC LIMIT :limit",
            {"limit": limit},
        )

    def get_related(self, product: dict[str, Any], limit: int = 4) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT * FROM products WHERE is_active = 1 AND category_id = :category_id "
            "AND id != :id ORDER BY created_at DESC LIMIT :limit",
            {"category_id": product["category_id"], "id": product["id"], "limit": limit},
        )

    def get_origins(self) -> list[str]:
        rows = self.conn.fetch_all(
            "SELECT DISTINCT origin FROM products WHERE is_active = 1 "
            "AND origin IS NOT NULL AND origin != '' ORDER BY origin ASC"
        )
        return [row["origin"] for row in rows]

    def get_all_for_admin(
        self,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        where = "1 = 1"
        params: dict[str, Any] = {}
        if search:
            where = "(p.name LIKE :search OR p.sku LIKE :search)"
            params["search"] = f"%{search}%"
        total = self.conn.fetch_value(f"SELECT COUNT(*) FROM products p WHERE {where}", params) or 0
        rows = self.conn.fetch_all(
            "SELECT p.*, c.name AS category_name FROM products p "
            "LEFT JOIN categories c ON c.id = p.category_id "
            f"WHERE {where} ORDER BY p.id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": limit, "offset": offset},
        )
        return {"products": rows, "total": total, "pages": page_count(total, limit)}

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def generate_slug(self, name: str, exclude_id: int | None = None) -> str:
        """
        Unique slug from a name; appends -1, -2, ... on collision.

        Example:
            "Cinnamon Sticks" -> "cinnamon-sticks", then "cinnamon-sticks-1"
        """
        base = slugify(name)
        candidate = base
        counter = 1
        while True:
            sql = "SELECT COUNT(*) FROM products WHERE slug = :slug"
            params: dict[str, Any] = {"slug": candidate}
            if exclude_id is not None:
                sql += " AND id != :exclude_id"
                params["exclude_id"] = exclude_id
            if not self.conn.fetch_value(sql, params):
                return candidate
            candidate = f"{base}-{counter}"
            counter += 1

    def create_product(self, form: ProductForm) -> int:
        """
        Insert a product.

        Returns:
            The new product id

        Raises:
            FormValidationError: If the SKU is taken
        """
        if self.sku_exists(form.sku):
            raise FormValidationError({"sku": ["This SKU is already in use."]}, form.model_dump())

        data = form.model_dump()
        data["slug"] = self.generate_slug(form.slug or form.name)
        data["created_at"] = now()
        columns = [c for c in PRODUCT_COLUMNS if c in data] + ["created_at"]

        self.conn.query(
            f"INSERT INTO products ({', '.join(columns)}) "
            f"VALUES ({', '.join(':' + c for c in columns)})",
            {c: data[c] for c in columns},
        )
        product_id = self.conn.last_insert_id()
        logger.info(f"Created product {product_id} ({form.sku})")
        return product_id

    def update_product(self, product_id: int, form: ProductForm) -> None:
        self.get(product_id)
        if self.sku_exists(form.sku, exclude_id=product_id):
            raise FormValidationError({"sku": ["This SKU is already in use."]}, form.model_dump())

        data = form.model_dump()
        data["slug"] = self.generate_slug(form.slug or form.name, exclude_id=product_id)
        data["updated_at"] = now()
        columns = [c for c in PRODUCT_COLUMNS if c in data] + ["updated_at"]

        self.conn.query(
            f"UPDATE products SET {', '.join(f'{c} = :{c}' for c in columns)} WHERE id = :id",
            {**{c: data[c] for c in columns}, "id": product_id},
        )
        logger.info(f"Updated product {product_id}")

    def delete_product(self, product_id: int) -> None:
        """
        Delete a product, or deactivate it if it appears on past orders.
        """
        self.get(product_id)
        ordered = self.conn.fetch_value(
            "SELECT COUNT(*) FROM order_items WHERE product_id = :id", {"id": product_id}
        )
        if ordered:
            self.conn.query(
                "UPDATE products SET is_active = 0, updated_at = :now WHERE id = :id",
                {"id": product_id, "now": now()},
            )
            logger.info(f"Deactivated product {product_id} (referenced by orders)")
            return
        self.conn.query("DELETE FROM products WHERE id = :id", {"id": product_id})
        logger.info(f"Deleted product {product_id}")

    def get_low_stock(self, threshold: int = 10, limit: int = 10) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT id, sku, name, stock_quantity FROM products "
            "WHERE is_active = 1 AND stock_quantity <= :threshold "
            "ORDER BY stock_quantity ASC LIMIT :limit",
            {"threshold": threshold, "limit": limit},
        )
