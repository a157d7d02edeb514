# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .blog_service import BlogService
from .cart_service import CartService
from .category_service import CategoryInUseError, CategoryService
from .content_service import ContentService
from .notification_service import NotificationService
from .order_service import OrderService
from .payment_service import PaymentResult, PaymentService
from .product_import_service import ImportResult, ProductImportService
from .product_service import ProductService
from .shipping_service import ShippingService, ShippingUnavailableError
from .sitemap_service import SitemapService
from .upload_service import UploadService
from .user_service import UserService
from .wholesale_service import WholesaleService

__all__ = [
    "BlogService",
    "CartService",
    "CategoryInUseError",
    "CategoryService",
    "ContentService",
    "NotificationService",
    "OrderService",
    "PaymentResult",
    "PaymentService",
    "ImportResult",
    "ProductImportService",
    "ProductService",
    "ShippingService",
    "ShippingUnavailableError",
    "SitemapService",
    "UploadService",
    "UserService",
    "WholesaleService",
]
