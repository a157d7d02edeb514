# =============================================================================
# app/middleware.py - Route Guards
# =============================================================================
# Guards attached to routes in app/routes.py. Each one inspects the request
# and returns MiddlewareResult.allow() or MiddlewareResult.deny(response).
#
# - AuthMiddleware: any logged-in user
# - RoleMiddleware: logged-in user whose role satisfies one of the allowed
#   roles (admin > content_manager > customer)
# - CsrfMiddleware: state-changing requests must echo the session's token
#
# Rejections render JSON for API/AJAX requests and a redirect or error page
# for browsers.
# =============================================================================

import fnmatch
import logging
from typing import Iterable
from urllib.parse import quote

from app import views
from app.routing import MiddlewareResult, RequestContext
from core.models.user import Role

logger = logging.getLogger(__name__)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _login_redirect(request: RequestContext, login_url: str) -> MiddlewareResult:
    if request.wants_json:
        return MiddlewareResult.deny(
            views.json_response(
                {"success": False, "error": "Authentication required", "redirect": login_url},
                status_code=401,
            )
        )
    return MiddlewareResult.deny(
        views.redirect(f"{login_url}?redirect={quote(request.full_path, safe='')}")
    )


class AuthMiddleware:
    """Require a logged-in user; otherwise send them to the login page."""

    def __init__(self, login_url: str = "/login"):
        self.login_url = login_url

    def handle(self, request: RequestContext) -> MiddlewareResult:
        if request.session.is_logged_in:
            return MiddlewareResult.allow()
        return _login_redirect(request, self.login_url)


class RoleMiddleware:
    """
    Require a role.

    A user passes when their role satisfies any of the allowed roles under
    the hierarchy admin > content_manager > customer.

    Example:
        RoleMiddleware.admin_only()       # admins
        RoleMiddleware.content_manager()  # content managers and admins
    """

    def __init__(self, roles: Iterable[Role], login_url: str = "/login"):
        self.roles = tuple(Role(role) for role in roles)
        if not self.roles:
            raise ValueError("RoleMiddleware needs at least one role")
        self.login_url = login_url

    @classmethod
    def admin_area(cls) -> "RoleMiddleware":
        """Back-office entry: admins and content managers."""
        return cls([Role.ADMIN, Role.CONTENT_MANAGER], login_url="/admin/login")

    @classmethod
    def admin_only(cls) -> "RoleMiddleware":
        return cls([Role.ADMIN], login_url="/admin/login")

    @classmethod
    def content_manager(cls) -> "RoleMiddleware":
        return cls([Role.CONTENT_MANAGER], login_url="/admin/login")

    @classmethod
    def customer(cls) -> "RoleMiddleware":
        return cls([Role.CUSTOMER])

    def allows(self, role: Role) -> bool:
        return any(role.satisfies(required) for required in self.roles)

    def handle(self, request: RequestContext) -> MiddlewareResult:
        user = request.session.user
        if user is None:
            return _login_redirect(request, self.login_url)

        if self.allows(user.role):
            return MiddlewareResult.allow()

        logger.warning(
            f"User {user.id} ({user.role.value}) denied access to {request.method} {request.path}"
        )
        return MiddlewareResult.deny(
            views.error_page(request, 403, "You do not have permission to access this page.")
        )


class CsrfMiddleware:
    """
    Validate the CSRF token on state-changing requests.

    The token is read from the csrf_token form field or the X-CSRF-Token
    header. Excluded patterns may end with "*" to cover a whole prefix.
    """

    def __init__(self, excluded: Iterable[str] = ()):
        self.excluded = tuple(excluded)

    def is_excluded(self, path: str) -> bool:
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self.excluded)

    def handle(self, request: RequestContext) -> MiddlewareResult:
        if request.method not in STATE_CHANGING_METHODS or self.is_excluded(request.path):
            return MiddlewareResult.allow()

        token = request.form.get("csrf_token") or request.header("x-csrf-token")
        if isinstance(request.json, dict) and not token:
            token = request.json.get("csrf_token")

        if request.session.validate_csrf(token):
            return MiddlewareResult.allow()

        logger.warning(f"Invalid CSRF token on {request.method} {request.path}")

        if request.is_ajax or request.is_api:
            return MiddlewareResult.deny(
                views.json_response(
                    {
                        "success": False,
                        "error": "Invalid security token. Please refresh the page and try again.",
                    },
                    status_code=403,
                )
            )

        request.session.flash("error", "Invalid security token. Please try again.")
        return MiddlewareResult.deny(views.back(request))
