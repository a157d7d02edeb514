# =============================================================================
# app/routing.py - Route Table & Dispatcher
# =============================================================================
# Maps (HTTP method, path) to a handler, runs the route's middleware guards in
# order, then calls the handler with the parsed request and path parameters.
#
# Matching rules:
# - Patterns use {name} placeholders that match one non-empty path segment
#   ("/admin/products/{id}/edit" matches "/admin/products/42/edit", id="42")
# - The query string and a trailing slash are ignored ("/cart/" == "/cart")
# - Routes are tried in registration order and the first match wins
#
# Guards return a MiddlewareResult; the first denial is returned as the
# response and nothing after it runs.
#
# Usage:
#   router = Router()
#   router.get("/products/{slug}", products.show)
#   router.post("/admin/products/{id}", admin_products.update,
#               middleware=[RoleMiddleware.admin_only(), CsrfMiddleware()])
#   response = router.dispatch(request_context)
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol
from urllib.parse import urlencode

from starlette.responses import JSONResponse, PlainTextResponse, Response

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


# =============================================================================
# Request
# =============================================================================

@dataclass
class UploadedFile:
    """A multipart file field, read into memory before dispatch."""

    filename: str
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class RequestContext:
    """
    Framework-neutral view of one HTTP request.

    Built by the ASGI adapter in app.main; handlers and guards only ever
    see this object.
    """

    method: str
    path: str
    query: dict[str, Any] = field(default_factory=dict)
    form: dict[str, Any] = field(default_factory=dict)
    json: Any = None
    files: dict[str, UploadedFile] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    session: Any = None
    db: Any = None
    lang: Any = None
    client_ip: str | None = None
    params: dict[str, str] = field(default_factory=dict)
    # Per-request extras (the Database, the Translator, ...)
    state: dict[str, Any] = field(default_factory=dict)

    def input(self, key: str, default: Any = None) -> Any:
        """Look up a value in the JSON body, then the form, then the query string."""
        if isinstance(self.json, dict) and key in self.json:
            return self.json[key]
        if key in self.form:
            return self.form[key]
        return self.query.get(key, default)

    def all_input(self) -> dict[str, Any]:
        merged = dict(self.query)
        merged.update(self.form)
        if isinstance(self.json, dict):
            merged.update(self.json)
        return merged

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    @property
    def is_ajax(self) -> bool:
        return (self.header("x-requested-with") or "").lower() == "xmlhttprequest"

    @property
    def is_api(self) -> bool:
        return self.path.startswith("/api/")

    @property
    def wants_json(self) -> bool:
        """API paths, AJAX calls and clients asking for JSON get JSON errors."""
        return self.is_api or self.is_ajax or "application/json" in (self.header("accept") or "")

    @property
    def full_path(self) -> str:
        """Path plus query string, as originally requested."""
        if not self.query:
            return self.path
        return f"{self.path}?{urlencode(self.query)}"

    @property
    def referer(self) -> str | None:
        return self.header("referer")

    @property
    def user(self):
        return self.session.user if self.session is not None else None


# =============================================================================
# Middleware contract
# =============================================================================

@dataclass(frozen=True)
class MiddlewareResult:
    """Outcome of one guard: allow, or deny with the response to send."""

    allowed: bool
    response: Response | None = None

    @classmethod
    def allow(cls) -> "MiddlewareResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, response: Response) -> "MiddlewareResult":
        return cls(allowed=False, response=response)


class Middleware(Protocol):
    """A guard attached to a route."""

    def handle(self, request: RequestContext) -> MiddlewareResult:
        ...


Handler = Callable[..., Response]


# =============================================================================
# Routes
# =============================================================================

@dataclass(frozen=True)
class Route:
    """A (method, pattern) pair bound to a handler and its guards."""

    method: str
    pattern: str
    handler: Handler
    middleware: tuple[Middleware, ...] = ()
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "regex", compile_pattern(self.pattern))

    def match(self, method: str, path: str) -> dict[str, str] | None:
        if method != self.method and not (method == "HEAD" and self.method == "GET"):
            return None
        found = self.regex.match(path)
        return found.groupdict() if found else None


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Turn "/products/{slug}" into an anchored regex with named groups.

    Literal parts are escaped, so "." or "+" in a pattern match themselves.
    """
    parts = []
    position = 0
    for placeholder in _PLACEHOLDER.finditer(pattern):
        parts.append(re.escape(pattern[position:placeholder.start()]))
        parts.append(f"(?P<{placeholder.group(1)}>[^/]+)")
        position = placeholder.end()
    parts.append(re.escape(pattern[position:]))
    return re.compile("^" + "".join(parts) + "$")


def normalize_path(path: str) -> str:
    """Drop the query string and trailing slashes; the root stays "/"."""
    path = path.split("?", 1)[0]
    return path.rstrip("/") or "/"


# =============================================================================
# Router
# =============================================================================

class Router:
    """
    Static route table plus dispatch.

    The table is built once at startup. Dispatch keeps no state between
    requests.
    """

    def __init__(self, not_found: Callable[[RequestContext], Response] | None = None):
        self._routes: list[Route] = []
        self._not_found = not_found or default_not_found

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    def register(
        self,
        method: str,
        pattern: str,
        handler: Handler,
        middleware: Iterable[Middleware] = (),
    ) -> Route:
        """
        Add a route.

        Args:
            method: HTTP method (case-insensitive)
            pattern: Path template with {name} placeholders
            handler: Callable invoked as handler(request, **params)
            middleware: Guards run in the given order before the handler

        Returns:
            The registered Route
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        route = Route(
            method=method,
            pattern=normalize_path(pattern),
            handler=handler,
            middleware=tuple(middleware),
        )
        self._routes.append(route)
        return route

    def get(self, pattern: str, handler: Handler, middleware: Iterable[Middleware] = ()) -> Route:
        return self.register("GET", pattern, handler, middleware)

    def post(self, pattern: str, handler: Handler, middleware: Iterable[Middleware] = ()) -> Route:
        return self.register("POST", pattern, handler, middleware)

    def put(self, pattern: str, handler: Handler, middleware: Iterable[Middleware] = ()) -> Route:
        return self.register("PUT", pattern, handler, middleware)

    def patch(self, pattern: str, handler: Handler, middleware: Iterable[Middleware] = ()) -> Route:
        return self.register("PATCH", pattern, handler, middleware)

    def delete(self, pattern: str, handler: Handler, middleware: Iterable[Middleware] = ()) -> Route:
        return self.register("DELETE", pattern, handler, middleware)

    def match(self, method: str, path: str) -> tuple[Route, dict[str, str]] | None:
        """Return the first route matching method and path, with bound params."""
        method = method.upper()
        path = normalize_path(path)
        for route in self._routes:
            params = route.match(method, path)
            if params is not None:
                return route, params
        return None

    def dispatch(self, request: RequestContext) -> Response:
        """
        Route a request to its handler.

        Returns:
            The handler's response, the first denying guard's response, or
            a 404 response when nothing matches
        """
        matched = self.match(request.method, request.path)
        if matched is None:
            logger.debug(f"No route for {request.method} {request.path}")
            return self._not_found(request)

        route, params = matched
        request.params = params

        for guard in route.middleware:
            result = guard.handle(request)
            if not result.allowed:
                logger.info(
                    f"{type(guard).__name__} rejected {request.method} {request.path}"
                )
                return result.response

        return route.handler(request, **params)


def default_not_found(request: RequestContext) -> Response:
    if request.wants_json:
        return JSONResponse({"success": False, "error": "Not found", "code": "NOT_FOUND"}, status_code=404)
    return PlainTextResponse("404 Not Found", status_code=404)
