# =============================================================================
# app/controllers/wholesale.py - Wholesale Page
# =============================================================================
# GET  /wholesale    Volume pricing for every product that has tiers, and
#                    the inquiry form
# POST /wholesale    Submit an inquiry (emails the shop and the customer)
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.controllers.base import form_errors, notifier
from app.exceptions import FormValidationError
from app.routing import RequestContext
from core.models.wholesale import WholesaleInquiryForm
from core.services.wholesale_service import WholesaleService
from lib.utils import validate_form

logger = logging.getLogger(__name__)

TEMPLATE = "pages/wholesale.html"


def _context(request: RequestContext) -> dict:
    wholesale = WholesaleService(request.db)
    products = wholesale.get_wholesale_products()
    for product in products:
        product["tiers"] = wholesale.tier_summary(product["id"])
    return {"wholesale_products": products}


def index(request: RequestContext) -> Response:
    return views.render(request, TEMPLATE, _context(request))


def submit(request: RequestContext) -> Response:
    try:
        form = validate_form(WholesaleInquiryForm, request.form)
    except FormValidationError as e:
        return form_errors(request, TEMPLATE, e, _context(request))

    inquiry_id = WholesaleService(request.db).create_inquiry(form)
    inquiry = form.model_dump()
    mail = notifier(request)
    mail.wholesale_inquiry(inquiry_id, inquiry)
    mail.wholesale_confirmation(inquiry)

    message = "Thank you for your wholesale inquiry! Our team will contact you within 1-2 business days."
    if request.wants_json:
        return views.json_response({"success": True, "message": message, "inquiry_id": inquiry_id})
    request.session.flash("success", message)
    return views.redirect("/wholesale")
