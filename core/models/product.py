# =============================================================================
# core/models/product.py - Catalog Schemas
# =============================================================================
# - ProductFilters: catalog query options (from the query string)
# - ProductForm: admin create/update payload
# - CategoryForm: admin category payload
#
# HTML forms submit everything as strings; the "before" validators turn
# empty strings into None and checkbox values into booleans.
# =============================================================================

from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lib.utils import blank_to_none, checkbox_value


class ProductFilters(BaseModel):
    """
    Catalog filters.

    Example:
        ProductFilters(category_ids=[2], price_min=5, search="bark", in_stock=True)
    """

    category_ids: list[int] = Field(default_factory=list)
    price_min: float | None = Field(default=None, ge=0)
    price_max: float | None = Field(default=None, ge=0)
    origin: str | None = None
    is_organic: bool = False
    in_stock: bool = False
    on_sale: bool = False
    search: str | None = Field(default=None, max_length=100)

    @field_validator("price_min", "price_max", "origin", "search", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("is_organic", "in_stock", "on_sale", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @classmethod
    def from_query(cls, query: dict[str, Any]) -> "ProductFilters":
        """Build filters from a query string, ignoring values that don't parse."""
        data = {
            key: query.get(key)
            for key in ("price_min", "price_max", "origin", "is_organic", "in_stock", "on_sale", "search")
            if query.get(key) not in (None, "")
        }
        for key in ("price_min", "price_max"):
            try:
                if key in data:
                    data[key] = max(float(data[key]), 0.0)
            except (TypeError, ValueError):
                data.pop(key)
        return cls(**data)


class ProductForm(BaseModel):
    """Admin product payload."""

    sku: str = Field(default="", max_length=100)
    name: str = Field(default="", max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    price: float | None = None
    sale_price: float | None = None
    weight: float | None = Field(default=None, ge=0)
    dimensions: str | None = Field(default=None, max_length=100)
    stock_quantity: int = Field(default=0, ge=0)
    category_id: int | None = None
    image_url: str | None = Field(default=None, max_length=500)
    is_organic: bool = False
    origin: str | None = Field(default=None, max_length=100)
    tags: str | None = Field(default=None, max_length=500)
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=500)
    is_featured: bool = False
    is_active: bool = True

    @field_validator(
        "slug", "description", "short_description", "price", "sale_price", "weight",
        "dimensions", "category_id", "image_url", "origin", "tags", "meta_title",
        "meta_description", mode="before",
    )
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def default_stock(cls, v):
        return 0 if blank_to_none(v) is None else v

    @field_validator("is_organic", "is_featured", "is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("sku", "name", mode="before")
    @classmethod
    def required_text(cls, v, info: ValidationInfo):
        v = (v or "").strip() if isinstance(v, str) or v is None else str(v)
        if not v:
            raise ValueError(f"Field '{info.field_name}' is required")
        return v

    @field_validator("price")
    @classmethod
    def check_price(cls, v: float | None) -> float:
        if v is None:
            raise ValueError("Field 'price' is required")
        if v < 0:
            raise ValueError("Price must be a positive number")
        return v

    @field_validator("sale_price")
    @classmethod
    def check_sale_price(cls, v: float | None, info: ValidationInfo) -> float | None:
        if v is None:
            return v
        if v < 0:
            raise ValueError("Sale price must be a positive number")
        price = info.data.get("price")
        if price is not None and v >= price:
            raise ValueError("Sale price must be less than regular price")
        return v

    @field_validator("category_id")
    @classmethod
    def check_category(cls, v: int | None) -> int:
        if v is None:
            raise ValueError("Field 'category_id' is required")
        return v


class CategoryForm(BaseModel):
    """Admin category payload."""

    name: str = Field(default="", max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    parent_id: int | None = None
    image_url: str | None = Field(default=None, max_length=500)
    is_active: bool = True
    sort_order: int = 0

    @field_validator("slug", "description", "parent_id", "image_url", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("sort_order", mode="before")
    @classmethod
    def default_order(cls, v):
        return 0 if blank_to_none(v) is None else v

    @field_validator("is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Category name is required")
        return v
