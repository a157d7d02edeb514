# =============================================================================
# app/views.py - Response Helpers & Template Rendering
# =============================================================================
# Everything a controller returns goes through one of these helpers:
# - render(): Jinja2 template with the shared page context
# - json_response(): JSON body (Decimal/datetime safe)
# - redirect() / back(): 302 redirects
# - error_page(): JSON or HTML error depending on the request
#
# The shared page context gives every template:
#   t(key, **params), lang, languages, current_user, csrf_token,
#   csrf_field(), flashes, cart_count, app_name, currency
# =============================================================================

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from fastapi.encoders import jsonable_encoder
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from app.config import Settings
from app.routing import RequestContext
from lib.translations import Translator

logger = logging.getLogger(__name__)

ERROR_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Access Denied",
    404: "Page Not Found",
    409: "Conflict",
    422: "Invalid Input",
    500: "Server Error",
    503: "Service Unavailable",
}


def format_money(value: Any, currency: str = "USD") -> str:
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        amount = 0.0
    symbol = "$" if currency == "USD" else f"{currency} "
    return f"{symbol}{amount:,.2f}"


def format_date(value: Any, fmt: str = "%b %d, %Y") -> str:
    """Format a DATETIME column, which may come back from the driver as text."""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime(fmt)


class ViewRenderer:
    """
    Jinja2 environment plus the shared page context.

    Created once at startup; read-only afterwards.
    """

    def __init__(self, template_dir: str | Path, translator: Translator, settings: Settings):
        self.translator = translator
        self.settings = settings
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["money"] = lambda value: format_money(value, settings.CURRENCY)
        self.env.filters["date"] = format_date
        self.env.globals.update(
            app_name=settings.APP_NAME,
            currency=settings.CURRENCY,
            current_year=lambda: date.today().year,
        )

    def _shared_context(self, request: RequestContext | None) -> dict[str, Any]:
        if request is None or request.session is None:
            default = self.translator.default
            return {
                "t": lambda key, **params: self.translator.translate(default, key, params),
                "lang": default,
                "languages": [],
                "current_user": None,
                "csrf_token": "",
                "csrf_field": lambda: Markup(""),
                "flashes": {},
                "cart_count": 0,
                "request_path": "/",
                "old": {},
                "errors": {},
            }

        from core.services.cart_service import CartService

        session = request.session
        lang = request.lang
        token = session.csrf_token()
        return {
            "t": lang.t,
            "lang": lang.current,
            "languages": [
                {**entry, "url": lang.switcher_url(request.path, request.query, entry["code"])}
                for entry in lang.available()
            ],
            "current_user": session.user,
            "csrf_token": token,
            "csrf_field": lambda: Markup(
                f'<input type="hidden" name="csrf_token" value="{escape(token)}">'
            ),
            "flashes": session.pop_flashes(),
            "cart_count": CartService.count_in_session(session),
            "request_path": request.path,
            "old": {},
            "errors": {},
        }

    def render_to_string(self, template: str, context: dict[str, Any] | None = None, request: RequestContext | None = None) -> str:
        data = self._shared_context(request)
        data.update(context or {})
        return self.env.get_template(template).render(**data)

    def render(
        self,
        request: RequestContext | None,
        template: str,
        context: dict[str, Any] | None = None,
        status_code: int = 200,
    ) -> HTMLResponse:
        return HTMLResponse(self.render_to_string(template, context, request), status_code=status_code)

    def render_error(
        self,
        status_code: int,
        message: str | None = None,
        request: RequestContext | None = None,
    ) -> HTMLResponse:
        return self.render(
            request,
            "errors/error.html",
            {
                "status_code": status_code,
                "title": ERROR_TITLES.get(status_code, "Error"),
                "message": message or ERROR_TITLES.get(status_code, "Something went wrong"),
            },
            status_code=status_code,
        )


# =============================================================================
# Controller helpers
# =============================================================================

def _renderer(request: RequestContext) -> ViewRenderer:
    return request.state["views"]


def render(
    request: RequestContext,
    template: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Render a template with the shared page context."""
    return _renderer(request).render(request, template, context, status_code)


def json_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(jsonable_encoder(data), status_code=status_code)


def redirect(url: str, status_code: int = 302) -> RedirectResponse:
    return RedirectResponse(url, status_code=status_code)


def safe_redirect_target(target: str | None, default: str = "/") -> str:
    """
    Only allow same-site relative redirects.

    Browsers read "\\" as "/" and drop tabs and newlines, so any target
    holding a backslash or a control character is refused along with
    protocol-relative "//host" paths.

    Example:
        safe_redirect_target("/dashboard")            # "/dashboard"
        safe_redirect_target("https://evil.example")  # "/"
        safe_redirect_target("/\\evil.example")       # "/"
    """
    if not target or not target.startswith("/") or target.startswith("//"):
        return default
    if "\\" in target or any(ord(char) < 32 or ord(char) == 127 for char in target):
        return default
    parsed = urlparse(target)
    if parsed.scheme or parsed.netloc:
        return default
    return target


def back(request: RequestContext, fallback: str = "/") -> RedirectResponse:
    """Redirect to the referring page when it's on this site."""
    referer = request.referer
    if referer:
        parsed = urlparse(referer)
        target = parsed.path + (f"?{parsed.query}" if parsed.query else "")
        return redirect(safe_redirect_target(target, fallback))
    return redirect(fallback)


def error_page(request: RequestContext, status_code: int, message: str | None = None) -> Response:
    """JSON error for API/AJAX requests, rendered page otherwise."""
    if request.wants_json:
        return json_response(
            {"success": False, "error": message or ERROR_TITLES.get(status_code, "Error")},
            status_code=status_code,
        )
    return _renderer(request).render_error(status_code, message, request)


def not_found(request: RequestContext) -> Response:
    return error_page(request, 404, "The page you are looking for could not be found.")
