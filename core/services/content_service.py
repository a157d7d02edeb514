# =============================================================================
# core/services/content_service.py - Certificates & Gallery
# =============================================================================
# Both tables share a shape (title, file_url, file_type, thumbnail, order),
# so one service serves both through the table name.
# =============================================================================

import logging
from typing import Any

from app.exceptions import NotFoundError
from core.models.content import MediaForm
from lib.database import Connection
from lib.utils import now

logger = logging.getLogger(__name__)

CERTIFICATES = "certificates"
GALLERY = "gallery_items"
_TABLES = (CERTIFICATES, GALLERY)
_LABELS = {CERTIFICATES: "Certificate", GALLERY: "Gallery item"}


class ContentService:
    """
    Certificates and gallery items.

    Example:
        content = ContentService(conn)
        content.get_active(CERTIFICATES)
        content.get_by_type(GALLERY, "video")
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    @staticmethod
    def _table(table: str) -> str:
        if table not in _TABLES:
            raise ValueError(f"Unknown content table: {table}")
        return table

    def get_active(self, table: str) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            f"SELECT * FROM {self._table(table)} WHERE is_active = 1 ORDER BY sort_order ASC, created_at DESC"
        )

    def get_all_for_admin(self, table: str) -> list[dict[str, Any]]:
        return self.conn.fetch_all(f"SELECT * FROM {self._table(table)} ORDER BY sort_order ASC, created_at DESC")

    def get_by_type(self, table: str, file_type: str) -> list[dict[str, Any]]:
        return self.conn.fetch_all(
            f"SELECT * FROM {self._table(table)} WHERE file_type = :type AND is_active = 1 "
            "ORDER BY sort_order ASC, created_at DESC",
            {"type": file_type},
        )

    def count_by_type(self, table: str, file_type: str) -> int:
        return self.conn.fetch_value(
            f"SELECT COUNT(*) FROM {self._table(table)} WHERE file_type = :type AND is_active = 1",
            {"type": file_type},
        ) or 0

    def find(self, table: str, item_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one(f"SELECT * FROM {self._table(table)} WHERE id = :id", {"id": item_id})

    def get(self, table: str, item_id: int | str) -> dict[str, Any]:
        item = self.find(table, item_id)
        if item is None:
            raise NotFoundError(_LABELS[table], item_id)
        return item

    def create(self, table: str, form: MediaForm) -> int:
        self.conn.query(
            f"INSERT INTO {self._table(table)} "
            "(title, description, file_url, file_type, thumbnail_url, is_active, sort_order, created_at) "
            "VALUES (:title, :description, :file_url, :file_type, :thumbnail_url, :is_active, :sort_order, :created_at)",
            {**form.model_dump(), "created_at": now()},
        )
        item_id = self.conn.last_insert_id()
        logger.info(f"Created {table} row {item_id}")
        return item_id

    def update(self, table: str, item_id: int, form: MediaForm) -> None:
        self.get(table, item_id)
        self.conn.query(
            f"UPDATE {self._table(table)} SET title = :title, description = :description, "
            "file_url = :file_url, file_type = :file_type, thumbnail_url = :thumbnail_url, "
            "is_active = :is_active, sort_order = :sort_order, updated_at = :updated_at WHERE id = :id",
            {**form.model_dump(), "updated_at": now(), "id": item_id},
        )

    def delete(self, table: str, item_id: int) -> dict[str, Any]:
        item = self.get(table, item_id)
        self.conn.query(f"DELETE FROM {self._table(table)} WHERE id = :id", {"id": item_id})
        logger.info(f"Deleted {table} row {item_id}")
        return item
