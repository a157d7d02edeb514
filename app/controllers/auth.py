# =============================================================================
# app/controllers/auth.py - Login, Registration, Logout
# =============================================================================
# Storefront and back-office logins share UserService.authenticate(); the
# admin login additionally requires a staff role.
#
# The cart lives in the session, so it survives login and logout.
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.auth.models import SessionUser
from app.controllers.base import form_errors
from app.exceptions import FormValidationError
from app.routing import RequestContext
from core.models.user import LoginForm, RegisterForm, Role
from core.services.user_service import UserService
from lib.utils import validate_form

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


def _login_failed(request: RequestContext, template: str, message: str, email: str = "") -> Response:
    error = FormValidationError({"email": [message]}, {"email": email, "redirect": request.form.get("redirect")})
    return form_errors(request, template, error, {"redirect": request.form.get("redirect") or ""})


# =============================================================================
# Storefront
# =============================================================================

def login_form(request: RequestContext) -> Response:
    if request.session.is_logged_in:
        return views.redirect("/dashboard")
    return views.render(request, "auth/login.html", {
        "redirect": views.safe_redirect_target(request.query.get("redirect"), ""),
    })


def login(request: RequestContext) -> Response:
    try:
        form = validate_form(LoginForm, request.form)
    except FormValidationError as e:
        return form_errors(request, "auth/login.html", e, {"redirect": request.form.get("redirect") or ""})

    user = UserService(request.db).authenticate(form.email, form.password)
    if user is None:
        return _login_failed(request, "auth/login.html", INVALID_CREDENTIALS, form.email)

    request.session.login(SessionUser.from_row(user))
    return views.redirect(views.safe_redirect_target(form.redirect, "/dashboard"))


def register_form(request: RequestContext) -> Response:
    if request.session.is_logged_in:
        return views.redirect("/dashboard")
    return views.render(request, "auth/register.html")


def register(request: RequestContext) -> Response:
    users = UserService(request.db)
    try:
        form = validate_form(RegisterForm, request.form)
        user_id = users.create_user(form)
    except FormValidationError as e:
        return form_errors(request, "auth/register.html", e)

    request.session.login(SessionUser.from_row(users.get(user_id)))
    request.session.flash("success", "Welcome! Your account has been created.")
    return views.redirect("/dashboard")


def logout(request: RequestContext) -> Response:
    request.session.logout()
    return views.redirect("/")


# =============================================================================
# Back-office
# =============================================================================

def admin_login_form(request: RequestContext) -> Response:
    user = request.session.user
    if user is not None and user.is_staff:
        return views.redirect("/admin")
    return views.render(request, "admin/login.html")


def admin_login(request: RequestContext) -> Response:
    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""
    if not email or not password:
        return _login_failed(request, "admin/login.html", "Email and password are required.", email)

    user = UserService(request.db).authenticate(email, password)
    if user is None:
        return _login_failed(request, "admin/login.html", INVALID_CREDENTIALS, email)

    session_user = SessionUser.from_row(user)
    if not session_user.has_role(Role.CONTENT_MANAGER):
        logger.warning(f"User {session_user.id} attempted back-office login without a staff role")
        return _login_failed(request, "admin/login.html", "You do not have admin access.", email)

    request.session.login(session_user)
    return views.redirect("/admin")


def admin_logout(request: RequestContext) -> Response:
    request.session.logout()
    return views.redirect("/admin/login")
