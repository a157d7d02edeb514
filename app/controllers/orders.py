# =============================================================================
# app/controllers/orders.py - Public Order Tracking
# =============================================================================
# Guests look an order up by its number plus the email used at checkout.
# =============================================================================

from starlette.responses import Response

from app import views
from app.controllers.base import form_errors
from app.exceptions import FormValidationError
from app.routing import RequestContext
from core.models.order import TrackOrderForm
from core.services.order_service import OrderService
from lib.utils import validate_form


def track_form(request: RequestContext) -> Response:
    return views.render(request, "orders/track.html", {"order": None})


def track(request: RequestContext) -> Response:
    try:
        form = validate_form(TrackOrderForm, request.form)
    except FormValidationError as e:
        return form_errors(request, "orders/track.html", e, {"order": None})

    order = OrderService(request.db).track(form.order_number, form.email)
    if order is None:
        error = FormValidationError(
            {"order_number": ["No order found with that order number and email."]}, dict(request.form)
        )
        return form_errors(request, "orders/track.html", error, {"order": None})

    if request.wants_json:
        return views.json_response({"success": True, "order": order})
    return views.render(request, "orders/track.html", {"order": order, "old": form.model_dump()})
