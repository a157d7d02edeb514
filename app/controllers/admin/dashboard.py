# =============================================================================
# app/controllers/admin/dashboard.py - Back-office Overview
# =============================================================================

from starlette.responses import Response

from app import views
from app.routing import RequestContext
from core.services.order_service import OrderService
from core.services.product_service import ProductService

LOW_STOCK_THRESHOLD = 10


def index(request: RequestContext) -> Response:
    orders = OrderService(request.db)
    return views.render(request, "admin/dashboard.html", {
        "stats": orders.get_dashboard_stats(),
        "recent_orders": orders.get_recent(10),
        "low_stock": ProductService(request.db).get_low_stock(LOW_STOCK_THRESHOLD),
    })
