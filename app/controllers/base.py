# =============================================================================
# app/controllers/base.py - Shared Controller Helpers
# =============================================================================
# Access to app-wide objects placed on RequestContext.state by app.main, and
# the form re-render pattern used by every create/update handler.
# =============================================================================

from typing import Any

from starlette.responses import Response

from app import views
from app.config import Settings
from app.exceptions import FileTooLargeError, FormValidationError, InvalidFileTypeError, UnsafeFileError
from app.routing import RequestContext
from core.services.notification_service import NotificationService
from core.services.payment_service import PaymentService
from core.services.upload_service import UploadService
from lib.utils import page_offset


def app_settings(request: RequestContext) -> Settings:
    return request.state["settings"]


def notifier(request: RequestContext) -> NotificationService:
    return NotificationService(app_settings(request), request.state.get("views"))


def payments(request: RequestContext) -> PaymentService:
    return request.state.get("payments") or PaymentService(app_settings(request))


def uploads(request: RequestContext) -> UploadService:
    config = app_settings(request)
    return UploadService(config.upload_path, config.max_upload_size_bytes)


def store_upload(request: RequestContext, field: str, kind: str, subdirectory: str) -> str | None:
    """
    Store the file posted in `field`, if any, and return its URL.

    A rejected file is reported as a validation error on that field.
    """
    upload = request.files.get(field)
    if upload is None or not upload.size:
        return None
    try:
        return uploads(request).store(upload.filename, upload.data, kind, subdirectory)
    except (InvalidFileTypeError, FileTooLargeError, UnsafeFileError) as e:
        raise FormValidationError({field: [e.message]}, dict(request.form))


def pagination(request: RequestContext, per_page: int | None = None) -> tuple[int, int, int]:
    """Returns (page, per_page, offset) from ?page=."""
    per_page = per_page or app_settings(request).ITEMS_PER_PAGE
    page, offset = page_offset(request.query.get("page"), per_page)
    return page, per_page, offset


def form_errors(
    request: RequestContext,
    template: str,
    error: FormValidationError,
    context: dict[str, Any] | None = None,
) -> Response:
    """
    Redisplay a form with its field errors and the submitted values.

    JSON clients get {"success": false, "errors": {...}} instead.
    """
    if request.wants_json:
        return views.json_response(
            {"success": False, "error": error.first_error(), "errors": error.errors},
            status_code=422,
        )
    data = dict(context or {})
    data.update(errors=error.errors, old=error.old_input or request.form)
    return views.render(request, template, data, status_code=422)


def flash_redirect(request: RequestContext, url: str, kind: str, message: str) -> Response:
    request.session.flash(kind, message)
    return views.redirect(url)
