# =============================================================================
# core/services/product_import_service.py - CSV Product Import
# =============================================================================
# Bulk product creation from a spreadsheet export.
#
# Required columns: sku, name, price, category (headers are normalized to
# lower_snake_case, so "Stock Quantity" works). Category may be given by
# name, slug or id. Rows that fail validation or reuse an existing SKU are
# skipped and reported; the rest are imported.
# =============================================================================

import io
import logging
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import BaseModel, Field

from app.exceptions import FormValidationError, StorefrontException
from core.models.product import ProductForm
from core.services.category_service import CategoryService
from core.services.product_service import ProductService
from lib.database import Connection
from lib.utils import checkbox_value, validate_form

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["sku", "name", "price", "category"]

OPTIONAL_COLUMNS: dict[str, Any] = {
    "description": None,
    "short_description": None,
    "sale_price": None,
    "stock_quantity": 0,
    "weight": None,
    "dimensions": None,
    "is_organic": False,
    "origin": None,
    "tags": None,
    "meta_title": None,
    "meta_description": None,
    "is_active": True,
}

TEMPLATE_SAMPLE = (
    'SAMPLE-001,Ceylon Cinnamon Sticks 100g,15.99,Cinnamon Sticks,'
    '"Premium Ceylon cinnamon sticks, hand-rolled","100g pack of premium cinnamon",'
    '12.99,50,0.1,"10x5x3",1,"Sri Lanka","premium,organic",'
    '"Ceylon Cinnamon Sticks | Premium Quality","Buy premium Ceylon cinnamon sticks",1'
)


class ImportResult(BaseModel):
    """
    Outcome of one import run.

    Example:
        {
            "success": true,
            "imported": [{"row": 2, "sku": "CIN-001", "id": 14, "name": "Alba Sticks"}],
            "skipped": [{"row": 3, "sku": "CIN-002", "errors": ["SKU already exists"]}],
            "errors": []
        }
    """

    imported: list[dict[str, Any]] = Field(default_factory=list)
    skipped: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def normalize_header(header: Any) -> str:
    return str(header).strip().replace(" ", "_").replace("-", "_").lower()


def csv_template() -> str:
    """Header row plus one sample row, offered as a download."""
    headers = REQUIRED_COLUMNS + list(OPTIONAL_COLUMNS)
    return ",".join(headers) + "\n" + TEMPLATE_SAMPLE + "\n"


def _is_number(value: str) -> bool:
    return not pd.isna(pd.to_numeric(value, errors="coerce"))


class ProductImportService:
    """
    Import products from CSV.

    Example:
        importer = ProductImportService(conn)
        result = importer.import_csv(uploaded_bytes)
        result.imported_count
    """

    def __init__(self, conn: Connection):
        self.conn = conn
        self.products = ProductService(conn)
        self._category_ids: dict[str, int] | None = None

    def _category_lookup(self) -> dict[str, int]:
        if self._category_ids is None:
            lookup: dict[str, int] = {}
            for category in CategoryService(self.conn).get_all(active_only=False):
                lookup[category["name"].strip().lower()] = category["id"]
                lookup[category["slug"].strip().lower()] = category["id"]
                lookup[str(category["id"])] = category["id"]
            self._category_ids = lookup
        return self._category_ids

    def category_id(self, value: str) -> int | None:
        return self._category_lookup().get(value.strip().lower())

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def read(self, source: str | bytes | Path) -> pd.DataFrame:
        """
        Load CSV text, uploaded bytes or a Path into a string-typed DataFrame.

        Raises:
            ValueError: If the file can't be parsed
        """
        if isinstance(source, bytes):
            source = io.StringIO(source.decode("utf-8-sig"))
        elif isinstance(source, str):
            source = io.StringIO(source)
        try:
            df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
        except pd.errors.EmptyDataError:
            raise ValueError("CSV file is empty")
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to parse CSV file: {e}")
        df.columns = [normalize_header(column) for column in df.columns]
        return df

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def import_csv(self, source: str | bytes | Path) -> ImportResult:
        result = ImportResult()
        try:
            df = self.read(source)
        except (ValueError, FileNotFoundError) as e:
            result.errors.append(str(e))
            return result

        missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            result.errors.append(f"Missing required columns: {', '.join(missing)}")
            return result

        for index, raw in df.iterrows():
            # header is row 1
            row_number = int(index) + 2
            data = {key: str(value).strip() for key, value in raw.items()}
            if not any(data.values()):
                continue
            self._import_row(data, row_number, result)

        logger.info(
            f"CSV import finished: {result.imported_count} imported, {result.skipped_count} skipped"
        )
        return result

    def _import_row(self, data: dict[str, str], row_number: int, result: ImportResult) -> None:
        sku = data.get("sku") or "N/A"
        errors = self.validate_row(data)
        if errors:
            result.skipped.append({"row": row_number, "sku": sku, "errors": errors})
            return
        if self.products.sku_exists(data["sku"]):
            result.skipped.append({"row": row_number, "sku": sku, "errors": ["SKU already exists"]})
            return

        try:
            product_id = self.products.create_product(self.to_form(data))
        except FormValidationError as e:
            messages = [message for field_errors in e.errors.values() for message in field_errors]
            result.skipped.append({"row": row_number, "sku": sku, "errors": messages})
            return
        except StorefrontException as e:
            result.skipped.append({"row": row_number, "sku": sku, "errors": [e.message]})
            return
        result.imported.append({"row": row_number, "sku": data["sku"], "id": product_id, "name": data["name"]})

    def validate_row(self, data: dict[str, str]) -> list[str]:
        errors = []
        if not data.get("sku"):
            errors.append("SKU is required")
        if not data.get("name"):
            errors.append("Name is required")

        price = data.get("price", "")
        price_ok = bool(price) and _is_number(price) and float(price) >= 0
        if not price_ok:
            errors.append("Valid price is required")

        category = data.get("category", "")
        if not category:
            errors.append("Category is required")
        elif self.category_id(category) is None:
            errors.append(f"Category '{category}' not found")

        sale_price = data.get("sale_price", "")
        if sale_price:
            if not _is_number(sale_price) or float(sale_price) < 0:
                errors.append("Sale price must be a positive number")
            elif price_ok and float(sale_price) >= float(price):
                errors.append("Sale price must be less than regular price")

        stock = data.get("stock_quantity", "")
        if stock and (not stock.lstrip("-").isdigit() or int(stock) < 0):
            errors.append("Stock quantity must be a non-negative integer")

        weight = data.get("weight", "")
        if weight and not _is_number(weight):
            errors.append("Weight must be a number")
        return errors

    def to_form(self, data: dict[str, str]) -> ProductForm:
        values: dict[str, Any] = {
            "sku": data["sku"],
            "name": data["name"],
            "price": float(data["price"]),
            "category_id": self.category_id(data["category"]),
        }
        for column, default in OPTIONAL_COLUMNS.items():
            raw = data.get(column, "")
            if raw == "":
                values[column] = default
            elif column in ("is_organic", "is_active"):
                values[column] = checkbox_value(raw)
            else:
                values[column] = raw
        return validate_form(ProductForm, values)
