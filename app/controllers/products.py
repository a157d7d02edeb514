# =============================================================================
# app/controllers/products.py - Catalog Pages
# =============================================================================
# GET /products, /products/{slug}, /category/{slug}
#
# Query string filters: price_min, price_max, origin, is_organic, in_stock,
# on_sale, search, sort, page (and category=<slug> on /products).
# =============================================================================

from typing import Any

from starlette.responses import Response

from app import views
from app.controllers.base import pagination
from app.routing import RequestContext
from core.models.product import ProductFilters
from core.services.category_service import CategoryService
from core.services.product_service import SORT_OPTIONS, ProductService
from core.services.wholesale_service import WholesaleService


def _listing(request: RequestContext, filters: ProductFilters, extra: dict[str, Any]) -> Response:
    page, per_page, offset = pagination(request)
    sort = request.query.get("sort") if request.query.get("sort") in SORT_OPTIONS else "newest"
    products = ProductService(request.db)
    result = products.get_filtered(filters, sort, per_page, offset)
    return views.render(request, "products/index.html", {
        **extra,
        "products": result["products"],
        "total": result["total"],
        "pages": result["pages"],
        "current_page": page,
        "filters": filters,
        "sort": sort,
        "sort_options": list(SORT_OPTIONS),
        "categories": CategoryService(request.db).get_tree(),
        "origins": products.get_origins(),
        "query": request.query,
    })


def index(request: RequestContext) -> Response:
    filters = ProductFilters.from_query(request.query)
    category = None
    slug = request.query.get("category")
    if slug:
        categories = CategoryService(request.db)
        category = categories.find_by_slug(slug)
        if category is not None:
            filters.category_ids = categories.get_descendant_ids(category["id"])
    return _listing(request, filters, {"category": category, "breadcrumb": []})


def category(request: RequestContext, slug: str) -> Response:
    categories = CategoryService(request.db)
    found = categories.find_by_slug(slug)
    if found is None:
        return views.error_page(request, 404, "Category not found.")

    filters = ProductFilters.from_query(request.query)
    filters.category_ids = categories.get_descendant_ids(found["id"])
    return _listing(request, filters, {
        "category": found,
        "breadcrumb": categories.get_breadcrumb(found["id"]),
    })


def show(request: RequestContext, slug: str) -> Response:
    products = ProductService(request.db)
    product = products.find_by_slug(slug)
    if product is None:
        return views.error_page(request, 404, "Product not found.")

    breadcrumb = CategoryService(request.db).get_breadcrumb(product["category_id"]) if product["category_id"] else []
    return views.render(request, "products/show.html", {
        "product": product,
        "related_products": products.get_related(product),
        "breadcrumb": breadcrumb,
        "wholesale_tiers": WholesaleService(request.db).tier_summary(product["id"]),
    })
