# =============================================================================
# core/models/order.py - Order Schemas
# =============================================================================
# - OrderStatus / PaymentStatus / PaymentMethod: enumerations
# - ALLOWED_TRANSITIONS: the order status state machine
# - OrderCreate / OrderItemInput: validated input for OrderService.create_order
# - CheckoutForm: the checkout page form
# - TrackOrderForm: public order tracking lookup
#
# Status flow:
#   pending -> processing -> shipped -> delivered
#      |           |            |           |
#      +-----------+--> cancelled          +--> returned
#                               +--------------> returned
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lib.utils import is_valid_email


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def _required(value, info: ValidationInfo):
    value = (value or "").strip() if isinstance(value, str) or value is None else value
    if value in ("", None):
        raise ValueError(f"Field '{info.field_name}' is required")
    return value


class OrderItemInput(BaseModel):
    """One line of a new order."""

    product_id: int
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class OrderCreate(BaseModel):
    """
    Order header for OrderService.create_order.

    Example:
        OrderCreate(
            email="amara@example.com", first_name="Amara", last_name="Perera",
            shipping_address="12 Galle Road, Colombo, 00300, LK",
            payment_method=PaymentMethod.BANK_TRANSFER,
        )
    """

    user_id: int | None = None
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    shipping_address: str
    billing_address: str | None = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_reference: str | None = None
    shipping_method: str | None = None
    shipping_cost: float = Field(default=0.0, ge=0)
    tax_amount: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    currency: str = "USD"
    notes: str | None = None

    @field_validator("email", "first_name", "last_name", "shipping_address", mode="before")
    @classmethod
    def required(cls, v, info: ValidationInfo):
        return _required(v, info)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not is_valid_email(v):
            raise ValueError("Invalid email address")
        return v.lower()


class CheckoutForm(BaseModel):
    """Checkout page submission."""

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str | None = Field(default=None, max_length=20)
    address: str = ""
    address_line2: str | None = None
    city: str = ""
    state: str | None = None
    postal_code: str = ""
    country: str = ""
    payment_method: str = ""
    shipping_method: str = ""
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator(
        "email", "first_name", "last_name", "address", "city", "postal_code",
        "country", "payment_method", "shipping_method", mode="before",
    )
    @classmethod
    def required(cls, v, info: ValidationInfo):
        v = (v or "").strip() if isinstance(v, str) or v is None else str(v)
        if not v:
            label = info.field_name.replace("_", " ").capitalize()
            raise ValueError(f"{label} is required.")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not is_valid_email(v):
            raise ValueError("Please enter a valid email address.")
        return v.lower()

    @field_validator("country")
    @classmethod
    def country_code(cls, v: str) -> str:
        return v.upper()

    @field_validator("payment_method")
    @classmethod
    def check_payment_method(cls, v: str) -> str:
        if v not in {m.value for m in PaymentMethod}:
            raise ValueError("Please select a valid payment method.")
        return v

    @field_validator("phone", "address_line2", "state", "notes", mode="before")
    @classmethod
    def blank(cls, v):
        v = (v or "").strip()
        return v or None

    @property
    def address_string(self) -> str:
        """Non-empty address parts joined with ", "."""
        parts = [self.address, self.address_line2, self.city, self.state, self.postal_code, self.country]
        return ", ".join(part for part in parts if part)


class TrackOrderForm(BaseModel):
    """Order tracking lookup: order number plus the email used at checkout."""

    order_number: str = ""
    email: str = ""

    @field_validator("order_number", mode="before")
    @classmethod
    def require_number(cls, v):
        v = (v or "").strip().upper()
        if not v:
            raise ValueError("Order number is required.")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def require_email(cls, v):
        v = (v or "").strip()
        if not is_valid_email(v):
            raise ValueError("Please enter a valid email address.")
        return v.lower()
