# =============================================================================
# app/controllers/checkout.py - Checkout Flow
# =============================================================================
# GET  /checkout                   Address, shipping and payment form
# POST /checkout                   Take payment and place the order
# GET  /checkout/success           Confirmation page (one-shot)
# POST /checkout/shipping-methods  JSON quotes for a destination country
#
# Order of operations in process():
#   1. validate the form and the cart
#   2. price the chosen shipping method for this cart and country
#   3. take payment (bank transfers are left pending with a reference)
#   4. create the order, which reserves stock in one transaction
#   5. empty the cart and send the confirmation emails
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.controllers.base import app_settings, flash_redirect, form_errors, notifier, payments
from app.controllers.cart import cart_for
from app.exceptions import FormValidationError, StorefrontException
from app.routing import RequestContext
from core.models.order import (
    CheckoutForm,
    OrderCreate,
    OrderItemInput,
    PaymentMethod,
    PaymentStatus,
)
from core.services.order_service import OrderService
from core.services.shipping_service import SUPPORTED_COUNTRIES, ShippingService, ShippingUnavailableError
from lib.utils import validate_form

logger = logging.getLogger(__name__)

LAST_ORDER_NUMBER = "last_order_number"
LAST_ORDER_EMAIL = "last_order_email"
BANK_TRANSFER_DETAILS = "bank_transfer_details"


def _page_context(request: RequestContext) -> dict:
    cart = cart_for(request)
    user = request.session.user
    prefill = {}
    if user is not None:
        prefill = {"email": user.email, "first_name": user.first_name, "last_name": user.last_name}
    return {
        "cart": cart.get_summary(),
        "payment_methods": payments(request).available_methods(),
        "countries": SUPPORTED_COUNTRIES,
        "prefill": prefill,
    }


def _cart_problem(request: RequestContext) -> Response | None:
    cart = cart_for(request)
    if cart.is_empty():
        return flash_redirect(request, "/cart", "error", "Your cart is empty.")
    if cart.validate_stock():
        return flash_redirect(
            request, "/cart", "error",
            "Some items in your cart are no longer available. Please review your cart.",
        )
    return None


def index(request: RequestContext) -> Response:
    problem = _cart_problem(request)
    if problem is not None:
        return problem
    return views.render(request, "checkout/index.html", _page_context(request))


def process(request: RequestContext) -> Response:
    problem = _cart_problem(request)
    if problem is not None:
        return problem

    try:
        form = validate_form(CheckoutForm, request.form)
    except FormValidationError as e:
        return form_errors(request, "checkout/index.html", e, _page_context(request))

    cart = cart_for(request)
    summary = cart.get_summary()

    try:
        quote = ShippingService(request.db).validate_method(
            form.shipping_method, form.country, cart.total_weight(), summary["subtotal"]
        )
    except ShippingUnavailableError as e:
        error = FormValidationError({"shipping_method": [e.message]}, dict(request.form))
        return form_errors(request, "checkout/index.html", error, _page_context(request))

    total = round(summary["subtotal"] + quote.cost, 2)

    try:
        payment = payments(request).process(
            form.payment_method,
            total,
            {
                "token": request.input("stripe_token") or request.input("token"),
                "order_id": request.input("paypal_order_id"),
            },
            {"email": form.email},
        )
    except StorefrontException as e:
        logger.warning(f"Payment failed for {form.email}: {e.message}")
        error = FormValidationError({"payment_method": [e.message]}, dict(request.form))
        return form_errors(request, "checkout/index.html", error, _page_context(request))

    user = request.session.user
    order = OrderCreate(
        user_id=user.id if user else None,
        email=form.email,
        first_name=form.first_name,
        last_name=form.last_name,
        phone=form.phone,
        shipping_address=form.address_string,
        payment_method=PaymentMethod(form.payment_method),
        payment_status=payment.status,
        payment_reference=payment.transaction_id,
        shipping_method=quote.method_name,
        shipping_cost=quote.cost,
        currency=app_settings(request).CURRENCY,
        notes=form.notes,
    )
    items = [OrderItemInput(**line) for line in cart.to_order_items()]

    orders = OrderService(request.db)
    try:
        created = orders.create_order(order, items)
    except StorefrontException as e:
        logger.error(f"Order creation failed after payment {payment.transaction_id}: {e.message}")
        return flash_redirect(request, "/cart", "error", e.message)

    cart.clear()

    details = orders.get_full_details(created["id"])
    bank_details = None
    if payment.status == PaymentStatus.PENDING and payment.bank_details:
        bank_details = {
            **payment.bank_details,
            "reference": payment.transaction_id,
            "amount": created["total_amount"],
            "instructions": payment.instructions,
        }
    mail = notifier(request)
    mail.order_confirmation(details, bank_details)
    mail.admin_new_order(details)

    request.session.set(LAST_ORDER_NUMBER, created["order_number"])
    request.session.set(LAST_ORDER_EMAIL, form.email)
    if bank_details:
        request.session.set(BANK_TRANSFER_DETAILS, bank_details)

    if request.wants_json:
        return views.json_response({
            "success": True,
            "order_number": created["order_number"],
            "redirect": "/checkout/success",
        })
    return views.redirect("/checkout/success")


def success(request: RequestContext) -> Response:
    order_number = request.session.get(LAST_ORDER_NUMBER)
    if not order_number:
        return views.redirect("/")

    email = request.session.get(LAST_ORDER_EMAIL)
    bank_details = request.session.get(BANK_TRANSFER_DETAILS)
    for key in (LAST_ORDER_NUMBER, LAST_ORDER_EMAIL, BANK_TRANSFER_DETAILS):
        request.session.remove(key)

    return views.render(request, "checkout/success.html", {
        "order": OrderService(request.db).find_by_number(order_number),
        "order_number": order_number,
        "email": email,
        "bank_details": bank_details,
    })


def shipping_methods(request: RequestContext) -> Response:
    country = (request.input("country") or "").strip().upper()
    if not country:
        return views.json_response({"success": False, "error": "Country is required"}, status_code=400)

    cart = cart_for(request)
    summary = cart.get_summary()
    try:
        quotes = ShippingService(request.db).available_methods(country, cart.total_weight(), summary["subtotal"])
    except ShippingUnavailableError as e:
        return views.json_response({"success": False, "error": e.message, "methods": []})

    return views.json_response({
        "success": True,
        "methods": [quote.model_dump() for quote in quotes],
        "subtotal": summary["subtotal"],
    })
