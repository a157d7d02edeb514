# =============================================================================
# core/services/blog_service.py - Blog
# =============================================================================
# Posts are visible on the storefront once status is "published" and
# published_at is empty or in the past. Slugs are unique per table.
# =============================================================================

import logging
from typing import Any

from app.exceptions import NotFoundError, StorefrontException
from core.models.content import BlogCategoryForm, BlogPostForm, PostStatus
from lib.database import Connection
from lib.utils import now, page_count, slugify

logger = logging.getLogger(__name__)

_POST_SELECT = (
    "SELECT bp.*, bc.name AS category_name, bc.slug AS category_slug, "
    "u.first_name AS author_first_name, u.last_name AS author_last_name "
    "FROM blog_posts bp "
    "LEFT JOIN blog_categories bc ON bp.category_id = bc.id "
    "LEFT JOIN users u ON bp.author_id = u.id"
)
_VISIBLE = "bp.status = 'published' AND (bp.published_at IS NULL OR bp.published_at <= :now)"


def _with_author(post: dict[str, Any]) -> dict[str, Any]:
    first = post.pop("author_first_name", None) or ""
    last = post.pop("author_last_name", None) or ""
    post["author_name"] = f"{first} {last}".strip() or None
    return post


class BlogService:
    """Blog posts and blog categories."""

    def __init__(self, conn: Connection):
        self.conn = conn

    # -------------------------------------------------------------------------
    # Storefront
    # -------------------------------------------------------------------------

    def get_published(self, limit: int = 10, offset: int = 0, category_id: int | None = None) -> dict[str, Any]:
        """
        Published posts, newest first.

        Returns:
            {"posts": [...], "total": int, "pages": int}
        """
        where = _VISIBLE
        params: dict[str, Any] = {"now": now(), "limit": limit, "offset": offset}
        if category_id is not None:
            where += " AND bp.category_id = :category_id"
            params["category_id"] = category_id

        total = self.conn.fetch_value(f"SELECT COUNT(*) FROM blog_posts bp WHERE {where}", params) or 0
        rows = self.conn.fetch_all(
            f"{_POST_SELECT} WHERE {where} "
            "ORDER BY bp.published_at DESC, bp.created_at DESC LIMIT :limit OFFSET :offset",
            params,
        )
        return {"posts": [_with_author(row) for row in rows], "total": total, "pages": page_count(total, limit)}

    def get_published_by_slug(self, slug: str) -> dict[str, Any] | None:
        row = self.conn.fetch_one(f"{_POST_SELECT} WHERE bp.slug = :slug AND {_VISIBLE}", {"slug": slug, "now": now()})
        return _with_author(row) if row else None

    def get_recent(self, limit: int = 5) -> list[dict[str, Any]]:
        return self.get_published(limit=limit)["posts"]

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def find(self, post_id: int | str) -> dict[str, Any] | None:
        row = self.conn.fetch_one(f"{_POST_SELECT} WHERE bp.id = :id", {"id": post_id})
        return _with_author(row) if row else None

    def get(self, post_id: int | str) -> dict[str, Any]:
        post = self.find(post_id)
        if post is None:
            raise NotFoundError("Post", post_id)
        return post

    def get_all_for_admin(self, filters: dict[str, Any] | None = None, limit: int = 20, offset: int = 0) -> dict[str, Any]:
        filters = filters or {}
        where, params = ["1=1"], {"limit": limit, "offset": offset}
        if filters.get("search"):
            where.append("(bp.title LIKE :search OR bp.content LIKE :search)")
            params["search"] = f"%{filters['search']}%"
        if filters.get("category_id"):
            where.append("bp.category_id = :category_id")
            params["category_id"] = filters["category_id"]
        if filters.get("status"):
            where.append("bp.status = :status")
            params["status"] = filters["status"]
        clause = " AND ".join(where)

        total = self.conn.fetch_value(f"SELECT COUNT(*) FROM blog_posts bp WHERE {clause}", params) or 0
        rows = self.conn.fetch_all(
            f"{_POST_SELECT} WHERE {clause} ORDER BY bp.created_at DESC, bp.id DESC LIMIT :limit OFFSET :offset",
            params,
        )
        return {"posts": [_with_author(row) for row in rows], "total": total, "pages": page_count(total, limit)}

    def generate_slug(self, title: str, exclude_id: int | None = None, table: str = "blog_posts") -> str:
        base = slugify(title)
        candidate, counter = base, 1
        while True:
            sql = f"SELECT COUNT(*) FROM {table} WHERE slug = :slug"
            params: dict[str, Any] = {"slug": candidate}
            if exclude_id is not None:
                sql += " AND id != :exclude_id"
                params["exclude_id"] = exclude_id
            if not self.conn.fetch_value(sql, params):
                return candidate
            candidate = f"{base}-{counter}"
            counter += 1

    def _post_params(self, form: BlogPostForm, published_at: Any) -> dict[str, Any]:
        data = form.model_dump()
        data["status"] = form.status.value
        if form.status == PostStatus.PUBLISHED and published_at is None:
            published_at = now()
        data["published_at"] = published_at
        return data

    def create_post(self, form: BlogPostForm, author_id: int | None) -> int:
        params = self._post_params(form, None)
        params.update(slug=self.generate_slug(form.slug or form.title), author_id=author_id, created_at=now())
        self.conn.query(
            "INSERT INTO blog_posts (title, slug, excerpt, content, featured_image, category_id, author_id, "
            "tags, meta_title, meta_description, status, published_at, created_at) "
            "VALUES (:title, :slug, :excerpt, :content, :featured_image, :category_id, :author_id, "
            ":tags, :meta_title, :meta_description, :status, :published_at, :created_at)",
            params,
        )
        post_id = self.conn.last_insert_id()
        logger.info(f"Created blog post {post_id} ({form.status.value})")
        return post_id

    def update_post(self, post_id: int, form: BlogPostForm) -> None:
        existing = self.get(post_id)
        params = self._post_params(form, existing["published_at"])
        params.update(
            slug=self.generate_slug(form.slug or form.title, exclude_id=post_id),
            updated_at=now(),
            id=post_id,
        )
        self.conn.query(
            "UPDATE blog_posts SET title = :title, slug = :slug, excerpt = :excerpt, content = :content, "
            "featured_image = :featured_image, category_id = :category_id, tags = :tags, "
            "meta_title = :meta_title, meta_description = :meta_description, status = :status, "
            "published_at = :published_at, updated_at = :updated_at WHERE id = :id",
            params,
        )
        logger.info(f"Updated blog post {post_id}")

    def delete_post(self, post_id: int) -> None:
        self.get(post_id)
        self.conn.query("DELETE FROM blog_posts WHERE id = :id", {"id": post_id})
        logger.info(f"Deleted blog post {post_id}")

    # -------------------------------------------------------------------------
    # Blog categories
    # -------------------------------------------------------------------------

    def get_categories(self, active_only: bool = True) -> list[dict[str, Any]]:
        sql = "SELECT * FROM blog_categories"
        if active_only:
            sql += " WHERE is_active = 1"
        return self.conn.fetch_all(sql + " ORDER BY sort_order ASC, name ASC")

    def find_category(self, category_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one("SELECT * FROM blog_categories WHERE id = :id", {"id": category_id})

    def get_category(self, category_id: int | str) -> dict[str, Any]:
        category = self.find_category(category_id)
        if category is None:
            raise NotFoundError("Blog category", category_id)
        return category

    def find_category_by_slug(self, slug: str) -> dict[str, Any] | None:
        return self.conn.fetch_one(
            "SELECT * FROM blog_categories WHERE slug = :slug AND is_active = 1", {"slug": slug}
        )

    def create_category(self, form: BlogCategoryForm) -> int:
        self.conn.query(
            "INSERT INTO blog_categories (name, slug, description, is_active, sort_order, created_at) "
            "VALUES (:name, :slug, :description, :is_active, :sort_order, :created_at)",
            {
                **form.model_dump(),
                "slug": self.generate_slug(form.slug or form.name, table="blog_categories"),
                "created_at": now(),
            },
        )
        return self.conn.last_insert_id()

    def update_category(self, category_id: int, form: BlogCategoryForm) -> None:
        self.get_category(category_id)
        self.conn.query(
            "UPDATE blog_categories SET name = :name, slug = :slug, description = :description, "
            "is_active = :is_active, sort_order = :sort_order, updated_at = :updated_at WHERE id = :id",
            {
                **form.model_dump(),
                "slug": self.generate_slug(form.slug or form.name, exclude_id=category_id, table="blog_categories"),
                "updated_at": now(),
                "id": category_id,
            },
        )

    def can_delete_category(self, category_id: int) -> bool:
        return not self.conn.fetch_value(
            "SELECT COUNT(*) FROM blog_posts WHERE category_id = :id", {"id": category_id}
        )

    def delete_category(self, category_id: int) -> None:
        self.get_category(category_id)
        if not self.can_delete_category(category_id):
            raise StorefrontException(
                message="Cannot delete category with posts. Move or delete posts first.",
                code="CATEGORY_IN_USE",
                status_code=400,
            )
        self.conn.query("DELETE FROM blog_categories WHERE id = :id", {"id": category_id})
        logger.info(f"Deleted blog category {category_id}")
