# =============================================================================
# app/controllers/api.py - JSON API
# =============================================================================
# Read-only catalog endpoints plus the cart operations used by the storefront
# scripts. Every response carries "success"; failures add "error".
#
# GET    /api/products              ?page, ?per_page, ?sort, catalog filters
# GET    /api/products/{id}
# GET    /api/categories
# GET    /api/shipping/rates        ?country=LK
# GET    /api/cart
# POST   /api/cart/add              product_id, quantity
# POST   /api/cart/update           product_id, quantity
# DELETE /api/cart/{id}
# GET    /api/wholesale/pricing/{id}
# =============================================================================

from starlette.responses import Response

from app import views
from app.controllers import cart as cart_actions
from app.routing import RequestContext
from core.models.product import ProductFilters
from core.services.category_service import CategoryService
from core.services.product_service import SORT_OPTIONS, ProductService, effective_price
from core.services.shipping_service import ShippingService
from core.services.wholesale_service import WholesaleService
from lib.utils import page_offset, to_int

MAX_PER_PAGE = 100


def _product_json(product: dict) -> dict:
    data = dict(product)
    data["effective_price"] = effective_price(product)
    return data


def products(request: RequestContext) -> Response:
    per_page = min(max(to_int(request.query.get("per_page"), 12) or 12, 1), MAX_PER_PAGE)
    page, offset = page_offset(request.query.get("page"), per_page)
    sort = request.query.get("sort") if request.query.get("sort") in SORT_OPTIONS else None

    filters = ProductFilters.from_query(request.query)
    if request.query.get("category"):
        categories = CategoryService(request.db)
        found = categories.find_by_slug(request.query["category"])
        filters.category_ids = categories.get_descendant_ids(found["id"]) if found else [0]

    result = ProductService(request.db).get_filtered(filters, sort, per_page, offset)
    return views.json_response({
        "success": True,
        "products": [_product_json(p) for p in result["products"]],
        "pagination": {
            "total": result["total"],
            "per_page": per_page,
            "current_page": page,
            "pages": result["pages"],
        },
    })


def product(request: RequestContext, id: str) -> Response:
    product_id = to_int(id)
    found = ProductService(request.db).find(product_id) if product_id else None
    if found is None or not found["is_active"]:
        return views.json_response({"success": False, "error": "Product not found"}, status_code=404)
    return views.json_response({"success": True, "product": _product_json(found)})


def categories(request: RequestContext) -> Response:
    return views.json_response({"success": True, "categories": CategoryService(request.db).get_tree()})


def shipping_rates(request: RequestContext) -> Response:
    country = (request.query.get("country") or "").strip().upper()
    if not country:
        return views.json_response({"success": False, "error": "Country is required"}, status_code=400)
    return views.json_response({"success": True, **ShippingService(request.db).rates_display(country)})


def cart(request: RequestContext) -> Response:
    return cart_actions.data(request)


def cart_add(request: RequestContext) -> Response:
    return cart_actions.add(request)


def cart_update(request: RequestContext) -> Response:
    return cart_actions.update(request)


def cart_remove(request: RequestContext, id: str) -> Response:
    product_id = to_int(id, 0) or 0
    return cart_actions.cart_action(request, lambda c: c.remove(product_id), "Item removed from cart.")


def wholesale_pricing(request: RequestContext, id: str) -> Response:
    product_id = to_int(id)
    found = ProductService(request.db).find(product_id) if product_id else None
    if found is None or not found["is_active"]:
        return views.json_response({"success": False, "error": "Product not found"}, status_code=404)
    return views.json_response({"success": True, **WholesaleService(request.db).product_pricing(found)})
