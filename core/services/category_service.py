# =============================================================================
# core/services/category_service.py - Category Business Logic
# =============================================================================
# Product categories form a shallow tree (parent_id). Deleting is refused
# while a category still has products or subcategories.
# =============================================================================

import logging
from typing import Any

from app.exceptions import NotFoundError, StorefrontException
from core.models.product import CategoryForm
from lib.database import Connection
from lib.utils import now, slugify

logger = logging.getLogger(__name__)


class CategoryInUseError(StorefrontException):
    """Raised when deleting a category that still has products or children."""

    def __init__(self, message: str):
        super().__init__(message=message, code="CATEGORY_IN_USE", status_code=400)


class CategoryService:
    """Category queries and administration."""

    def __init__(self, conn: Connection):
        self.conn = conn

    def get_all(self, active_only: bool = True) -> list[dict[str, Any]]:
        sql = "SELECT * FROM categories"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY sort_order ASC, name ASC"
        return self.conn.fetch_all(sql)

    def find(self, category_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM categories WHERE id = :id", {"id": category_id})

    def get(self, category_id: int | str) -> dict[str, Any]:
        category = self.find(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def find_by_slug(self, slug: str) -> dict[str, Any] | None:
        return self.conn.fetch_one(
            "SELECT * FROM categories WHERE slug = :slug AND is_active = 1", {"slug": slug}
        )

    def get_children(self, parent_id: int, active_only: bool = True) -> list[dict[str, Any]]:
        sql = "SELECT * FROM categories WHERE parent_id = :parent_id"
        if active_only:
            sql += " AND is_active = 1"
        return self.conn.fetch_all(sql + " ORDER BY sort_order ASC, name ASC", {"parent_id": parent_id})

    def get_tree(self, active_only: bool = True) -> list[dict[str, Any]]:
        """Top-level categories, each with a "children" list."""
        categories = self.get_all(active_only)
        by_parent: dict[Any, list[dict[str, Any]]] = {}
        for category in categories:
            by_parent.setdefault(category["parent_id"], []).append(dict(category))

        def attach(node: dict[str, Any]) -> dict[str, Any]:
            node["children"] = [attach(child) for child in by_parent.get(node["id"], [])]
            return node

        return [attach(root) for root in by_parent.get(None, [])]

    def get_descendant_ids(self, category_id: int) -> list[int]:
        """The category itself plus every category below it."""
        ids = [category_id]
        pending = [category_id]
        while pending:
            children = self.get_children(pending.pop(), active_only=False)
            for child in children:
                if child["id"] not in ids:
                    ids.append(child["id"])
                    pending.append(child["id"])
        return ids

    def get_with_product_counts(self) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            "SELECT c.*, "
            "(SELECT COUNT(*) FROM products p WHERE p.category_id = c.id AND p.is_active = 1) AS product_count "
            "FROM categories c ORDER BY c.sort_order ASC, c.name ASC"
        )

    def get_breadcrumb(self, category_id: int) -> list[dict[str, Any]]:
        trail = []
        current = self.find(category_id)
        while current is not None and len(trail) < 10:
            trail.insert(0, current)
            current = self.find(current["parent_id"]) if current["parent_id"] else None
        return trail

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def generate_slug(self, name: str, exclude_id: int | None = None) -> str:
        base = slugify(name)
        candidate, counter = base, 1
        while True:
            sql = "SELECT COUNT(*) FROM categories WHERE slug = :slug"
            params: dict[str, Any] = {"slug": candidate}
            if exclude_id is not None:
                sql += " AND id != :exclude_id"
                params["exclude_id"] = exclude_id
            if not self.conn.fetch_value(sql, params):
                return candidate
            candidate = f"{base}-{counter}"
            counter += 1

    def create(self, form: CategoryForm) -> int:
        self.conn.query(
            "INSERT INTO categories (name, slug, description, parent_id, image_url, is_active, sort_order, created_at) "
            "VALUES (:name, :slug, :description, :parent_id, :image_url, :is_active, :sort_order, :created_at)",
            {
                **form.model_dump(),
                "slug": self.generate_slug(form.slug or form.name),
                "created_at": now(),
            },
        )
        category_id = self.conn.last_insert_id()
        logger.info(f"Created category {category_id} ({form.name})")
        return category_id

    def update(self, category_id: int, form: CategoryForm) -> None:
        self.get(category_id)
        if form.parent_id == category_id:
            raise CategoryInUseError("A category cannot be its own parent.")
        self.conn.query(
            "UPDATE categories SET name = :name, slug = :slug, description = :description, "
            "parent_id = :parent_id, image_url = :image_url, is_active = :is_active, "
            "sort_order = :sort_order, updated_at = :updated_at WHERE id = :id",
            {
                **form.model_dump(),
                "slug": self.generate_slug(form.slug or form.name, exclude_id=category_id),
                "updated_at": now(),
                "id": category_id,
            },
        )
        logger.info(f"Updated category {category_id}")

    def has_products(self, category_id: int) -> bool:
        return bool(self.conn.fetch_value(
            "SELECT COUNT(*) FROM products WHERE category_id = :id", {"id": category_id}
        ))

    def has_children(self, category_id: int) -> bool:
        return bool(self.conn.fetch_value(
            "SELECT COUNT(*) FROM categories WHERE parent_id = :id", {"id": category_id}
        ))

    def delete(self, category_id: int) -> None:
        """
        Delete an empty category.

        Raises:
            NotFoundError: If the category doesn't exist
            CategoryInUseError: If it still has products or subcategories
        """
        self.get(category_id)
        if self.has_products(category_id):
            raise CategoryInUseError(
                "Cannot delete category with products. Move or delete products first."
            )
        if self.has_children(category_id):
            raise CategoryInUseError(
                "Cannot delete category with subcategories. Move or delete subcategories first."
            )
        self.conn.query("DELETE FROM categories WHERE id = :id", {"id": category_id})
        logger.info(f"Deleted category {category_id}")
