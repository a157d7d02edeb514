# =============================================================================
# core/models/wholesale.py - Wholesale Schemas
# =============================================================================
# - InquiryStatus: lifecycle of a wholesale inquiry
# - WholesaleInquiryForm: public wholesale inquiry page
# - PriceTierForm: admin volume price tier for one product
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lib.utils import blank_to_none, checkbox_value, is_valid_email


class InquiryStatus(str, Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    APPROVED = "approved"
    REJECTED = "rejected"


REQUIRED_MESSAGES = {
    "company_name": "Company name is required.",
    "contact_name": "Contact name is required.",
}


class WholesaleInquiryForm(BaseModel):
    """Public wholesale inquiry."""

    company_name: str = Field(default="", max_length=255)
    contact_name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    country: str | None = Field(default=None, max_length=100)
    business_type: str | None = Field(default=None, max_length=100)
    estimated_quantity: str | None = Field(default=None, max_length=100)
    products_interested: str | None = None
    message: str | None = Field(default=None, max_length=5000)

    @field_validator("company_name", "contact_name", mode="before")
    @classmethod
    def required(cls, v, info: ValidationInfo):
        v = (v or "").strip()
        if not v:
            raise ValueError(REQUIRED_MESSAGES[info.field_name])
        return v

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Email address is required.")
        if not is_valid_email(v):
            raise ValueError("Please enter a valid email address.")
        return v.lower()

    @field_validator(
        "phone", "country", "business_type", "estimated_quantity", "products_interested", "message",
        mode="before",
    )
    @classmethod
    def blank(cls, v):
        return blank_to_none(v.strip() if isinstance(v, str) else v)


class PriceTierForm(BaseModel):
    """
    Volume price for a product.

    A tier applies from min_quantity up to max_quantity units; an empty
    max_quantity means no upper bound.
    """

    min_quantity: int = Field(default=1, ge=1)
    max_quantity: int | None = Field(default=None, ge=1)
    price: float = Field(..., ge=0)
    discount_percentage: float | None = Field(default=None, ge=0, le=100)
    is_active: bool = True

    @field_validator("max_quantity", "discount_percentage", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("min_quantity", mode="before")
    @classmethod
    def one_default(cls, v):
        return 1 if blank_to_none(v) is None else v

    @field_validator("is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("max_quantity")
    @classmethod
    def check_range(cls, v: int | None, info: ValidationInfo) -> int | None:
        low = info.data.get("min_quantity")
        if v is not None and low is not None and v < low:
            raise ValueError("Maximum quantity must not be less than minimum quantity")
        return v
