# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - user.py: Roles and the account forms (login, register, profile, password)
# - product.py: Catalog filters, product and category forms
# - order.py: Order/payment statuses, the status transition table, checkout
# - shipping.py: Zone, method and weight bracket forms, shipping quotes
# - content.py: Blog posts, blog categories, certificates, gallery, contact
# - wholesale.py: Wholesale inquiries and volume price tiers
#
# Submitted forms are validated into these models before any service call,
# so services never see raw request strings.
# =============================================================================

# -----------------------------------------------------------------------------
# User Models - Accounts and roles
# -----------------------------------------------------------------------------
from .user import (
    LoginForm,
    PasswordForm,
    ProfileForm,
    RegisterForm,
    Role,
)

# -----------------------------------------------------------------------------
# Product Models - Catalog
# -----------------------------------------------------------------------------
from .product import (
    CategoryForm,
    ProductFilters,
    ProductForm,
)

# -----------------------------------------------------------------------------
# Order Models - Checkout and fulfilment
# -----------------------------------------------------------------------------
from .order import (
    ALLOWED_TRANSITIONS,
    CheckoutForm,
    OrderCreate,
    OrderItemInput,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TrackOrderForm,
)

# -----------------------------------------------------------------------------
# Shipping Models - Zones, methods, rates
# -----------------------------------------------------------------------------
from .shipping import (
    BracketForm,
    MethodForm,
    ShippingQuote,
    ZoneForm,
)

# -----------------------------------------------------------------------------
# Content Models - Blog, media, contact
# -----------------------------------------------------------------------------
from .content import (
    BlogCategoryForm,
    BlogPostForm,
    CertificateForm,
    ContactForm,
    GalleryItemForm,
    MediaForm,
    PostStatus,
)

# -----------------------------------------------------------------------------
# Wholesale Models - Inquiries and price tiers
# -----------------------------------------------------------------------------
from .wholesale import (
    InquiryStatus,
    PriceTierForm,
    WholesaleInquiryForm,
)

__all__ = [
    # User
    "LoginForm",
    "PasswordForm",
    "ProfileForm",
    "RegisterForm",
    "Role",
    # Product
    "CategoryForm",
    "ProductFilters",
    "ProductForm",
    # Order
    "ALLOWED_TRANSITIONS",
    "CheckoutForm",
    "OrderCreate",
    "OrderItemInput",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "TrackOrderForm",
    # Shipping
    "BracketForm",
    "MethodForm",
    "ShippingQuote",
    "ZoneForm",
    # Content
    "BlogCategoryForm",
    "BlogPostForm",
    "CertificateForm",
    "ContactForm",
    "GalleryItemForm",
    "MediaForm",
    "PostStatus",
    # Wholesale
    "InquiryStatus",
    "PriceTierForm",
    "WholesaleInquiryForm",
]
