# =============================================================================
# app/controllers/admin/wholesale.py - Wholesale Administration
# =============================================================================
# GET    /admin/wholesale                  Inquiries (?status, ?search, ?page)
# GET    /admin/wholesale/{id}             Inquiry details
# POST   /admin/wholesale/{id}/status      status
# POST   /admin/products/{id}/tiers        Add a volume price tier
# DELETE /admin/wholesale-tiers/{id}       Remove a price tier
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.controllers.base import flash_redirect, form_errors, pagination
from app.exceptions import FormValidationError, NotFoundError
from app.routing import RequestContext
from core.models.wholesale import InquiryStatus, PriceTierForm
from core.services.product_service import ProductService
from core.services.wholesale_service import WholesaleService
from lib.utils import validate_form

logger = logging.getLogger(__name__)

INDEX_URL = "/admin/wholesale"
FILTER_KEYS = ("status", "search")


def index(request: RequestContext) -> Response:
    page, per_page, offset = pagination(request, 20)
    filters = {key: request.query.get(key) for key in FILTER_KEYS if request.query.get(key)}
    wholesale = WholesaleService(request.db)
    result = wholesale.get_inquiries(filters, per_page, offset)
    return views.render(request, "admin/wholesale/index.html", {
        **result,
        "filters": filters,
        "current_page": page,
        "statuses": [s.value for s in InquiryStatus],
        "pending_count": wholesale.pending_count(),
    })


def show(request: RequestContext, id: str) -> Response:
    inquiry = WholesaleService(request.db).find_inquiry(id)
    if inquiry is None:
        return views.error_page(request, 404, "Wholesale inquiry not found.")
    return views.render(request, "admin/wholesale/show.html", {
        "inquiry": inquiry,
        "statuses": [s.value for s in InquiryStatus],
    })


def update_status(request: RequestContext, id: str) -> Response:
    back_to = f"{INDEX_URL}/{id}"
    try:
        WholesaleService(request.db).update_inquiry_status(id, request.input("status") or "")
    except NotFoundError:
        if request.wants_json:
            return views.json_response({"success": False, "error": "Wholesale inquiry not found"}, status_code=404)
        return flash_redirect(request, INDEX_URL, "error", "Wholesale inquiry not found.")
    except FormValidationError as e:
        if request.wants_json:
            return views.json_response({"success": False, "error": e.first_error()}, status_code=422)
        return flash_redirect(request, back_to, "error", e.first_error())

    logger.info(f"User {request.user.id} set wholesale inquiry {id} to {request.input('status')}")
    if request.wants_json:
        return views.json_response({"success": True, "message": "Inquiry status updated"})
    return flash_redirect(request, back_to, "success", "Inquiry status updated.")


# =============================================================================
# Price tiers
# =============================================================================

def tier_store(request: RequestContext, id: str) -> Response:
    product = ProductService(request.db).find(id)
    if product is None:
        if request.wants_json:
            return views.json_response({"success": False, "error": "Product not found"}, status_code=404)
        return flash_redirect(request, "/admin/products", "error", "Product not found.")
    edit_url = f"/admin/products/{product['id']}/edit"

    try:
        form = validate_form(PriceTierForm, request.form)
    except FormValidationError as e:
        if request.wants_json:
            return form_errors(request, "admin/products/form.html", e)
        return flash_redirect(request, edit_url, "error", e.first_error())

    tier_id = WholesaleService(request.db).create_tier(product["id"], form)
    if request.wants_json:
        return views.json_response({"success": True, "message": "Price tier added", "id": tier_id})
    return flash_redirect(request, edit_url, "success", "Price tier added.")


def tier_destroy(request: RequestContext, id: str) -> Response:
    try:
        tier = WholesaleService(request.db).delete_tier(id)
    except NotFoundError:
        if request.wants_json:
            return views.json_response({"success": False, "error": "Price tier not found"}, status_code=404)
        return flash_redirect(request, "/admin/products", "error", "Price tier not found.")

    if request.wants_json:
        return views.json_response({"success": True, "message": "Price tier deleted"})
    return flash_redirect(request, f"/admin/products/{tier['product_id']}/edit", "success", "Price tier deleted.")
