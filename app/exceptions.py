# =============================================================================
# app/exceptions.py - Custom Exceptions and Handlers
# =============================================================================
# Centralized exception types for the storefront.
#
# Every error raised by services carries an HTTP status code, a stable
# machine-readable code and a human-readable message. The handlers at the
# bottom of this module turn them into either a JSON body (API and AJAX
# requests) or a rendered error page (browser requests).
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontException(Exception):
    """
    Base exception for the storefront.

    All custom exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: str = "STOREFRONT_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a JSON response body."""
        result = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Configuration & Infrastructure
# =============================================================================

class ConfigurationError(StorefrontException):
    """Raised when a mandatory environment variable is missing or empty."""

    def __init__(self, key: str):
        super().__init__(
            message=f"Required environment variable '{key}' is not set",
            code="CONFIGURATION_ERROR",
            status_code=500,
            suggestion=f"Add {key}=... to your .env file or the process environment",
            details={"key": key},
        )


class DatabaseUnavailableError(StorefrontException):
    """
    Raised when the database cannot be reached.

    In debug mode the full driver message is exposed with a 500 status.
    Otherwise clients get a generic message and a 503.
    """

    GENERIC_MESSAGE = "Database connection failed. Please try again later."

    def __init__(self, detail: str, debug: bool = False):
        if debug:
            super().__init__(
                message=f"Database connection failed: {detail}",
                code="DATABASE_UNAVAILABLE",
                status_code=500,
            )
        else:
            super().__init__(
                message=self.GENERIC_MESSAGE,
                code="DATABASE_UNAVAILABLE",
                status_code=503,
            )


# =============================================================================
# Request Errors
# =============================================================================

class NotFoundError(StorefrontException):
    """Raised when a route or record doesn't exist."""

    def __init__(self, resource: str = "Page", identifier: Any = None):
        message = f"{resource} not found"
        details = {"identifier": str(identifier)} if identifier is not None else None
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )


class FormValidationError(StorefrontException):
    """
    Raised when submitted input fails validation.

    Carries the collected field errors and the submitted values so the
    form can be redisplayed.
    """

    def __init__(
        self,
        errors: dict[str, list[str]],
        old_input: dict[str, Any] | None = None,
    ):
        super().__init__(
            message="Please correct the errors below.",
            code="VALIDATION_ERROR",
            status_code=422,
            details={"errors": errors},
        )
        self.errors = errors
        self.old_input = old_input or {}

    def first_error(self) -> str:
        for messages in self.errors.values():
            if messages:
                return messages[0]
        return self.message


class InvalidFileTypeError(StorefrontException):
    """Raised when uploaded file type is not allowed."""

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid file type: {filename}",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Only these file types are supported: {', '.join(allowed)}",
            details={"filename": filename, "allowed_types": allowed},
        )


class FileTooLargeError(StorefrontException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
            suggestion=f"Upload a file smaller than {max_mb}MB",
            details={"size_mb": size_mb, "max_mb": max_mb},
        )


class UnsafeFileError(StorefrontException):
    """Raised when an uploaded file carries script or shell content."""

    def __init__(self, filename: str):
        super().__init__(
            message="File contains potentially malicious content",
            code="UNSAFE_FILE",
            status_code=400,
            details={"filename": filename},
        )


class AuthenticationError(StorefrontException):
    """Raised when a request requires a logged-in user."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            code="AUTHENTICATION_REQUIRED",
            status_code=401,
            suggestion="Log in and try again",
        )


class AuthorizationError(StorefrontException):
    """Raised when the logged-in user lacks the required role."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


# =============================================================================
# Domain Errors
# =============================================================================

class CartError(StorefrontException):
    """Raised when a cart operation can't be completed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="CART_ERROR",
            status_code=400,
            details=details,
        )


class InsufficientStockError(StorefrontException):
    """Raised when a product doesn't have enough stock for a request."""

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            message=f"Insufficient stock for {product_name}",
            code="INSUFFICIENT_STOCK",
            status_code=409,
            suggestion=f"Only {available} available",
            details={
                "product": product_name,
                "available": available,
                "requested": requested,
            },
        )


class InvalidStatusTransitionError(StorefrontException):
    """Raised when an order status change isn't allowed."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            message=f"Cannot change order status from {current} to {requested}",
            code="INVALID_STATUS_TRANSITION",
            status_code=409,
            details={"current": current, "requested": requested},
        )


class PaymentError(StorefrontException):
    """Raised when a payment can't be processed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="PAYMENT_FAILED",
            status_code=402,
            suggestion="Try a different payment method",
            details=details,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

def wants_json(request: Request) -> bool:
    """
    Decide whether an error should be rendered as JSON.

    True for /api/ paths, AJAX requests and clients that accept JSON.
    """
    if request.url.path.startswith("/api/"):
        return True
    if request.headers.get("x-requested-with", "").lower() == "xmlhttprequest":
        return True
    return "application/json" in request.headers.get("accept", "")


async def storefront_exception_handler(
    request: Request,
    exc: StorefrontException,
):
    """Handle StorefrontException and render JSON or an error page."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")

    if wants_json(request):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    return request.app.state.views.render_error(exc.status_code, exc.message)
