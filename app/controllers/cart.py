# =============================================================================
# app/controllers/cart.py - Shopping Cart
# =============================================================================
# The cart page plus its form/AJAX actions. Browser form posts flash a
# message and redirect; AJAX posts get
#   {"success": true, "message": "...", "cart": {...summary...}}
# or {"success": false, "error": "..."} with the exception's status code.
# =============================================================================

import logging
from typing import Callable

from starlette.responses import Response

from app import views
from app.exceptions import StorefrontException
from app.routing import RequestContext
from core.services.cart_service import CartService
from lib.utils import to_int

logger = logging.getLogger(__name__)


def cart_for(request: RequestContext) -> CartService:
    return CartService(request.session, request.db)


def cart_payload(cart: CartService) -> dict:
    summary = cart.get_summary()
    return {**summary, "count": summary["total_quantity"]}


def cart_action(
    request: RequestContext,
    action: Callable[[CartService], None],
    message: str,
    redirect_to: str = "/cart",
) -> Response:
    cart = cart_for(request)
    try:
        action(cart)
    except StorefrontException as e:
        if request.wants_json:
            return views.json_response({"success": False, "error": e.message}, status_code=e.status_code)
        request.session.flash("error", e.message)
        return views.redirect(redirect_to)

    if request.wants_json:
        return views.json_response({"success": True, "message": message, "cart": cart_payload(cart)})
    request.session.flash("success", message)
    return views.redirect(redirect_to)


def _product_id(request: RequestContext) -> int:
    return to_int(request.input("product_id"), 0) or 0


def index(request: RequestContext) -> Response:
    cart = cart_for(request)
    return views.render(request, "cart/index.html", {
        "cart": cart.get_summary(),
        "problems": cart.validate_stock(),
    })


def add(request: RequestContext) -> Response:
    product_id = _product_id(request)
    quantity = max(to_int(request.input("quantity"), 1) or 1, 1)
    back_to = views.safe_redirect_target(request.input("redirect"), "/cart")
    return cart_action(request, lambda cart: cart.add(product_id, quantity), "Product added to cart.", back_to)


def update(request: RequestContext) -> Response:
    product_id = _product_id(request)
    quantity = to_int(request.input("quantity"), -1)
    message = "Item removed from cart." if quantity == 0 else "Cart updated."
    return cart_action(request, lambda cart: cart.update(product_id, quantity), message)


def remove(request: RequestContext) -> Response:
    product_id = _product_id(request)
    return cart_action(request, lambda cart: cart.remove(product_id), "Item removed from cart.")


def clear(request: RequestContext) -> Response:
    return cart_action(request, lambda cart: cart.clear(), "Cart cleared.")


def count(request: RequestContext) -> Response:
    cart = cart_for(request)
    summary = cart.get_summary()
    return views.json_response({
        "success": True,
        "count": summary["total_quantity"],
        "item_count": summary["item_count"],
    })


def data(request: RequestContext) -> Response:
    return views.json_response({"success": True, "cart": cart_payload(cart_for(request))})
