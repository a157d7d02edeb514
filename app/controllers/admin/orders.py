# =============================================================================
# app/controllers/admin/orders.py - Order Administration
# =============================================================================
# GET  /admin/orders               List (?status, ?payment_status, ?search,
#                                  ?date_from, ?date_to, ?page)
# GET  /admin/orders/{id}          Details with items
# POST /admin/orders/{id}/status   status (+ tracking_number when shipping),
#                                  optional payment_status
# POST /admin/orders/{id}/notes    note
#
# Status changes email the customer through NotificationService.
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.controllers.base import flash_redirect, notifier, pagination
from app.exceptions import StorefrontException
from app.routing import RequestContext
from core.models.order import ALLOWED_TRANSITIONS, OrderStatus, PaymentStatus
from core.services.order_service import OrderService

logger = logging.getLogger(__name__)

FILTER_KEYS = ("status", "payment_status", "search", "date_from", "date_to")


def index(request: RequestContext) -> Response:
    page, per_page, offset = pagination(request, 20)
    filters = {key: request.query.get(key) for key in FILTER_KEYS if request.query.get(key)}
    result = OrderService(request.db).get_filtered(filters, per_page, offset)
    return views.render(request, "admin/orders/index.html", {
        **result,
        "filters": filters,
        "current_page": page,
        "statuses": [s.value for s in OrderStatus],
        "payment_statuses": [s.value for s in PaymentStatus],
    })


def show(request: RequestContext, id: str) -> Response:
    orders = OrderService(request.db)
    if orders.find(id) is None:
        return views.error_page(request, 404, "Order not found.")
    order = orders.get_full_details(id)
    return views.render(request, "admin/orders/show.html", {
        "order": order,
        "next_statuses": sorted(s.value for s in ALLOWED_TRANSITIONS[OrderStatus(order["status"])]),
        "payment_statuses": [s.value for s in PaymentStatus],
    })


def update_status(request: RequestContext, id: str) -> Response:
    orders = OrderService(request.db, notifier=notifier(request))
    back_to = f"/admin/orders/{id}"
    status = (request.input("status") or "").strip()
    tracking = (request.input("tracking_number") or "").strip()
    payment_status = (request.input("payment_status") or "").strip()

    try:
        order = orders.get(id)
        old_status = order["status"]
        if status == OrderStatus.SHIPPED.value and tracking and old_status != status:
            orders.mark_as_shipped(order["id"], tracking)
            new_status = status
        elif status:
            new_status = orders.update_status(order["id"], status)["new_status"]
        else:
            new_status = old_status
        if payment_status:
            orders.update_payment_status(order["id"], payment_status)
    except StorefrontException as e:
        if request.wants_json:
            return views.json_response({"success": False, "error": e.message}, status_code=e.status_code)
        return flash_redirect(request, back_to, "error", e.message)

    logger.info(f"User {request.user.id} set order {order['order_number']} to {new_status}")
    message = "Order status updated successfully"
    if request.wants_json:
        return views.json_response({
            "success": True,
            "message": message,
            "old_status": old_status,
            "new_status": new_status,
        })
    return flash_redirect(request, back_to, "success", f"{message}.")


def add_note(request: RequestContext, id: str) -> Response:
    orders = OrderService(request.db)
    note = (request.input("note") or "").strip()
    back_to = f"/admin/orders/{id}"
    if not note:
        if request.wants_json:
            return views.json_response({"success": False, "error": "Note cannot be empty"}, status_code=422)
        return flash_redirect(request, back_to, "error", "Note cannot be empty.")
    if orders.find(id) is None:
        return views.error_page(request, 404, "Order not found.")

    orders.add_note(int(id), f"{request.user.full_name or request.user.email}: {note}")
    if request.wants_json:
        return views.json_response({"success": True, "message": "Note added"})
    return flash_redirect(request, back_to, "success", "Note added.")
