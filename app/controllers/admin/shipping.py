# =============================================================================
# app/controllers/admin/shipping.py - Shipping Administration
# =============================================================================
# GET    /admin/shipping                          Zones with their methods
# GET    /admin/shipping/zones/create             POST /admin/shipping/zones
# GET    /admin/shipping/zones/{id}/edit          POST /admin/shipping/zones/{id}
# DELETE /admin/shipping/zones/{id}               Zone, methods and brackets
# GET    /admin/shipping/methods/create?zone_id=  POST /admin/shipping/methods
# GET    /admin/shipping/methods/{id}/edit        POST /admin/shipping/methods/{id}
# DELETE /admin/shipping/methods/{id}
# POST   /admin/shipping/methods/{id}/brackets    Add a weight bracket
# DELETE /admin/shipping/brackets/{id}
#
# Zone countries are submitted as one text field ("LK, IN, MV").
# =============================================================================

from starlette.responses import Response

from app import views
from app.controllers.base import flash_redirect, form_errors
from app.exceptions import FormValidationError, NotFoundError
from app.routing import RequestContext
from core.models.shipping import BracketForm, MethodForm, ZoneForm
from core.services.shipping_service import SUPPORTED_COUNTRIES, ShippingService
from lib.utils import validate_form

INDEX_URL = "/admin/shipping"


def _deleted(request: RequestContext, url: str, message: str) -> Response:
    if request.wants_json:
        return views.json_response({"success": True, "message": message})
    return flash_redirect(request, url, "success", f"{message}.")


def _missing(request: RequestContext, url: str, message: str) -> Response:
    if request.wants_json:
        return views.json_response({"success": False, "error": message}, status_code=404)
    return flash_redirect(request, url, "error", f"{message}.")


def index(request: RequestContext) -> Response:
    return views.render(request, "admin/shipping/index.html", {
        "zones": ShippingService(request.db).get_all_with_methods(),
        "countries": SUPPORTED_COUNTRIES,
    })


# =============================================================================
# Zones
# =============================================================================

def _zone_context(zone: dict | None = None) -> dict:
    return {"zone": zone, "countries": SUPPORTED_COUNTRIES}


def zone_create(request: RequestContext) -> Response:
    return views.render(request, "admin/shipping/zone_form.html", _zone_context())


def zone_store(request: RequestContext) -> Response:
    try:
        form = validate_form(ZoneForm, request.form)
        ShippingService(request.db).create_zone(form)
    except FormValidationError as e:
        return form_errors(request, "admin/shipping/zone_form.html", e, _zone_context())
    return flash_redirect(request, INDEX_URL, "success", "Shipping zone created successfully.")


def zone_edit(request: RequestContext, id: str) -> Response:
    zone = ShippingService(request.db).find_zone(id)
    if zone is None:
        return views.error_page(request, 404, "Shipping zone not found.")
    return views.render(request, "admin/shipping/zone_form.html", _zone_context(zone))


def zone_update(request: RequestContext, id: str) -> Response:
    shipping = ShippingService(request.db)
    zone = shipping.find_zone(id)
    if zone is None:
        return views.error_page(request, 404, "Shipping zone not found.")
    try:
        form = validate_form(ZoneForm, request.form)
        shipping.update_zone(zone["id"], form)
    except FormValidationError as e:
        return form_errors(request, "admin/shipping/zone_form.html", e, _zone_context(zone))
    return flash_redirect(request, INDEX_URL, "success", "Shipping zone updated successfully.")


def zone_destroy(request: RequestContext, id: str) -> Response:
    shipping = ShippingService(request.db)
    zone = shipping.find_zone(id)
    if zone is None:
        return _missing(request, INDEX_URL, "Shipping zone not found")
    shipping.delete_zone(zone["id"])
    return _deleted(request, INDEX_URL, "Shipping zone deleted successfully")


# =============================================================================
# Methods
# =============================================================================

def _method_context(request: RequestContext, method: dict | None = None) -> dict:
    return {"method": method, "zones": ShippingService(request.db).get_zones()}


def method_create(request: RequestContext) -> Response:
    context = _method_context(request)
    context["old"] = {"zone_id": request.query.get("zone_id") or ""}
    return views.render(request, "admin/shipping/method_form.html", context)


def method_store(request: RequestContext) -> Response:
    shipping = ShippingService(request.db)
    try:
        form = validate_form(MethodForm, request.form)
        method_id = shipping.create_method(form)
    except FormValidationError as e:
        return form_errors(request, "admin/shipping/method_form.html", e, _method_context(request))
    except NotFoundError:
        error = FormValidationError({"zone_id": ["Shipping zone not found"]}, dict(request.form))
        return form_errors(request, "admin/shipping/method_form.html", error, _method_context(request))
    return flash_redirect(
        request, f"/admin/shipping/methods/{method_id}/edit", "success",
        "Shipping method created. You can now add weight brackets.",
    )


def method_edit(request: RequestContext, id: str) -> Response:
    method = ShippingService(request.db).get_with_brackets(id)
    if method is None:
        return views.error_page(request, 404, "Shipping method not found.")
    return views.render(request, "admin/shipping/method_form.html", _method_context(request, method))


def method_update(request: RequestContext, id: str) -> Response:
    shipping = ShippingService(request.db)
    method = shipping.get_with_brackets(id)
    if method is None:
        return views.error_page(request, 404, "Shipping method not found.")
    try:
        form = validate_form(MethodForm, request.form)
        if shipping.find_zone(form.zone_id) is None:
            raise FormValidationError({"zone_id": ["Shipping zone not found"]}, dict(request.form))
        shipping.update_method(method["id"], form)
    except FormValidationError as e:
        return form_errors(request, "admin/shipping/method_form.html", e, _method_context(request, method))
    return flash_redirect(request, INDEX_URL, "success", "Shipping method updated successfully.")


def method_destroy(request: RequestContext, id: str) -> Response:
    shipping = ShippingService(request.db)
    method = shipping.find_method(id)
    if method is None:
        return _missing(request, INDEX_URL, "Shipping method not found")
    shipping.delete_method(method["id"])
    return _deleted(request, INDEX_URL, "Shipping method deleted successfully")


# =============================================================================
# Weight Brackets
# =============================================================================

def bracket_store(request: RequestContext, id: str) -> Response:
    shipping = ShippingService(request.db)
    method = shipping.get_with_brackets(id)
    if method is None:
        return _missing(request, INDEX_URL, "Shipping method not found")
    edit_url = f"/admin/shipping/methods/{method['id']}/edit"

    try:
        form = validate_form(BracketForm, request.form)
    except FormValidationError as e:
        if request.wants_json:
            return form_errors(request, "admin/shipping/method_form.html", e)
        return flash_redirect(request, edit_url, "error", e.first_error())

    bracket_id = shipping.add_bracket(method["id"], form)
    if request.wants_json:
        return views.json_response({"success": True, "message": "Weight bracket added", "id": bracket_id})
    return flash_redirect(request, edit_url, "success", "Weight bracket added.")


def bracket_destroy(request: RequestContext, id: str) -> Response:
    method_id = ShippingService(request.db).delete_bracket(id)
    if method_id is None:
        return _missing(request, INDEX_URL, "Weight bracket not found")
    return _deleted(request, f"/admin/shipping/methods/{method_id}/edit", "Weight bracket deleted")
