# =============================================================================
# core/models/shipping.py - Shipping Schemas
# =============================================================================
# - ShippingQuote: a priced shipping option for a cart
# - ZoneForm / MethodForm / BracketForm: admin payloads
# =============================================================================

import re
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lib.utils import blank_to_none, checkbox_value


class ShippingQuote(BaseModel):
    """
    Price of one shipping method for a given weight and order amount.

    Example:
        {
            "method_id": 2,
            "method_name": "Express",
            "cost": 24.5,
            "free_shipping": false,
            "estimated_days_min": 3,
            "estimated_days_max": 5,
            "delivery_text": "3-5 business days"
        }
    """

    method_id: int
    method_name: str
    description: str | None = None
    cost: float
    free_shipping: bool = False
    estimated_days_min: int | None = None
    estimated_days_max: int | None = None
    delivery_text: str = "Delivery time varies"


def parse_countries(value: Any) -> list[str]:
    """
    Normalize a country list.

    Example:
        parse_countries("us, ca;GB")   # ["US", "CA", "GB"]
        parse_countries(["lk"])        # ["LK"]
    """
    if isinstance(value, str):
        items = re.split(r"[,;\s]+", value)
    else:
        items = list(value or [])
    seen: list[str] = []
    for item in items:
        code = str(item).strip().upper()
        if code and code not in seen:
            seen.append(code)
    return seen


class ZoneForm(BaseModel):
    name: str = Field(default="", max_length=255)
    countries: list[str] = Field(default_factory=list)
    is_active: bool = True
    sort_order: int = 0

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Zone name is required")
        return v

    @field_validator("countries", mode="before")
    @classmethod
    def split_countries(cls, v):
        codes = parse_countries(v)
        if not codes:
            raise ValueError("At least one country code is required")
        for code in codes:
            if not re.fullmatch(r"[A-Z]{2}", code):
                raise ValueError(f"Invalid country code: {code}")
        return codes

    @field_validator("is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("sort_order", mode="before")
    @classmethod
    def default_order(cls, v):
        return 0 if blank_to_none(v) is None else v


class MethodForm(BaseModel):
    zone_id: int | None = None
    name: str = Field(default="", max_length=255)
    description: str | None = None
    base_cost: float = Field(default=0.0, ge=0)
    cost_per_kg: float = Field(default=0.0, ge=0)
    min_weight: float | None = Field(default=None, ge=0)
    max_weight: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    free_shipping_threshold: float | None = Field(default=None, ge=0)
    estimated_days_min: int | None = Field(default=None, ge=0)
    estimated_days_max: int | None = Field(default=None, ge=0)
    is_active: bool = True
    sort_order: int = 0

    @field_validator(
        "zone_id", "description", "min_weight", "max_weight", "min_order_amount",
        "free_shipping_threshold", "estimated_days_min", "estimated_days_max", mode="before",
    )
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("base_cost", "cost_per_kg", "sort_order", mode="before")
    @classmethod
    def zero_default(cls, v):
        return 0 if blank_to_none(v) is None else v

    @field_validator("is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("zone_id")
    @classmethod
    def require_zone(cls, v: int | None) -> int:
        if v is None:
            raise ValueError("Shipping zone is required")
        return v

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Method name is required")
        return v

    @field_validator("max_weight")
    @classmethod
    def check_weight_range(cls, v: float | None, info: ValidationInfo) -> float | None:
        low = info.data.get("min_weight")
        if v is not None and low is not None and v < low:
            raise ValueError("Maximum weight must be greater than minimum weight")
        return v

    @field_validator("estimated_days_max")
    @classmethod
    def check_days_range(cls, v: int | None, info: ValidationInfo) -> int | None:
        low = info.data.get("estimated_days_min")
        if v is not None and low is not None and v < low:
            raise ValueError("Maximum days must be greater than minimum days")
        return v


class BracketForm(BaseModel):
    min_weight: float = Field(default=0.0, ge=0)
    max_weight: float | None = Field(default=None, ge=0)
    cost: float = Field(..., ge=0)

    @field_validator("max_weight", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("min_weight", mode="before")
    @classmethod
    def zero_default(cls, v):
        return 0 if blank_to_none(v) is None else v

    @field_validator("max_weight")
    @classmethod
    def check_range(cls, v: float | None, info: ValidationInfo) -> float | None:
        low = info.data.get("min_weight")
        if v is not None and low is not None and v <= low:
            raise ValueError("Maximum weight must be greater than minimum weight")
        return v
