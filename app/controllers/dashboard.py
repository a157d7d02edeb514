# =============================================================================
# app/controllers/dashboard.py - Customer Account Area
# =============================================================================
# Every route here sits behind AuthMiddleware, so request.user is set.
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.auth.models import SessionUser
from app.auth.session import USER_KEY
from app.controllers.base import flash_redirect, form_errors, pagination
from app.exceptions import FormValidationError, NotFoundError
from app.routing import RequestContext
from core.models.user import PasswordForm, ProfileForm
from core.services.order_service import OrderService
from core.services.user_service import UserService
from lib.utils import page_count, validate_form

logger = logging.getLogger(__name__)

ORDERS_PER_PAGE = 10


def index(request: RequestContext) -> Response:
    orders = OrderService(request.db)
    user_id = request.user.id
    return views.render(request, "dashboard/index.html", {
        "stats": orders.get_user_stats(user_id),
        "recent_orders": orders.get_by_user(user_id, limit=5),
    })


def orders(request: RequestContext) -> Response:
    page, per_page, offset = pagination(request, ORDERS_PER_PAGE)
    service = OrderService(request.db)
    total = service.count_by_user(request.user.id)
    return views.render(request, "dashboard/orders.html", {
        "orders": service.get_by_user(request.user.id, per_page, offset),
        "total": total,
        "pages": page_count(total, per_page),
        "current_page": page,
    })


def order_show(request: RequestContext, id: str) -> Response:
    try:
        order = OrderService(request.db).get_for_user(id, request.user.id)
    except NotFoundError:
        return views.error_page(request, 404, "Order not found.")
    return views.render(request, "dashboard/order.html", {"order": order})


def _profile_page(request: RequestContext, error: FormValidationError, profile: dict) -> Response:
    return form_errors(request, "dashboard/profile.html", error, {"profile": profile})


def profile_form(request: RequestContext) -> Response:
    profile = UserService(request.db).get(request.user.id)
    return views.render(request, "dashboard/profile.html", {"profile": profile})


def profile_update(request: RequestContext) -> Response:
    users = UserService(request.db)
    try:
        form = validate_form(ProfileForm, request.form)
    except FormValidationError as e:
        return _profile_page(request, e, users.get(request.user.id))

    users.update_profile(request.user.id, form)
    refreshed = SessionUser.from_row(users.get(request.user.id))
    request.session.set(USER_KEY, refreshed.model_dump(mode="json"))
    return flash_redirect(request, "/dashboard/profile", "success", "Profile updated successfully.")


def password_update(request: RequestContext) -> Response:
    users = UserService(request.db)
    try:
        form = validate_form(PasswordForm, request.form)
        users.change_password(request.user.id, form.current_password, form.new_password)
    except FormValidationError as e:
        return _profile_page(request, FormValidationError(e.errors), users.get(request.user.id))

    logger.info(f"User {request.user.id} changed their password")
    return flash_redirect(request, "/dashboard/profile", "success", "Password changed successfully.")
