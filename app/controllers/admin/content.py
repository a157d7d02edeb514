# =============================================================================
# app/controllers/admin/content.py - Content Administration
# =============================================================================
# Blog posts, blog categories, certificates and gallery items. Open to
# content managers as well as admins.
#
# Certificates and gallery items share one set of handlers keyed by section;
# app.routes binds the section with functools.partial. Their forms accept an
# uploaded "file" in place of a file_url.
# =============================================================================

import logging

from pydantic import BaseModel
from starlette.responses import Response

from app import views
from app.controllers.base import flash_redirect, form_errors, pagination, store_upload, uploads
from app.exceptions import FormValidationError, NotFoundError, StorefrontException
from app.routing import RequestContext
from core.models.content import BlogCategoryForm, BlogPostForm, CertificateForm, GalleryItemForm, PostStatus
from core.services.blog_service import BlogService
from core.services.content_service import CERTIFICATES, GALLERY, ContentService
from core.services.upload_service import DOCUMENT, IMAGE, VIDEO
from lib.utils import validate_form

logger = logging.getLogger(__name__)


def _deleted(request: RequestContext, url: str, message: str) -> Response:
    if request.wants_json:
        return views.json_response({"success": True, "message": message})
    return flash_redirect(request, url, "success", f"{message}.")


def _delete_failed(request: RequestContext, url: str, error: StorefrontException) -> Response:
    if request.wants_json:
        return views.json_response({"success": False, "error": error.message}, status_code=error.status_code)
    return flash_redirect(request, url, "error", error.message)


# =============================================================================
# Blog Posts
# =============================================================================

def _post_context(request: RequestContext, post: dict | None = None) -> dict:
    return {
        "post": post,
        "blog_categories": BlogService(request.db).get_categories(active_only=False),
        "statuses": [s.value for s in PostStatus],
    }


def posts_index(request: RequestContext) -> Response:
    page, per_page, offset = pagination(request, 20)
    filters = {key: request.query.get(key) for key in ("search", "status", "category_id") if request.query.get(key)}
    blog = BlogService(request.db)
    return views.render(request, "admin/blog/index.html", {
        **blog.get_all_for_admin(filters, per_page, offset),
        "filters": filters,
        "current_page": page,
        "blog_categories": blog.get_categories(active_only=False),
    })


def post_create(request: RequestContext) -> Response:
    return views.render(request, "admin/blog/form.html", _post_context(request))


def post_store(request: RequestContext) -> Response:
    try:
        form = validate_form(BlogPostForm, request.form)
        BlogService(request.db).create_post(form, request.user.id)
    except FormValidationError as e:
        return form_errors(request, "admin/blog/form.html", e, _post_context(request))
    return flash_redirect(request, "/admin/blog", "success", "Post created successfully.")


def post_edit(request: RequestContext, id: str) -> Response:
    post = BlogService(request.db).find(id)
    if post is None:
        return views.error_page(request, 404, "Post not found.")
    return views.render(request, "admin/blog/form.html", _post_context(request, post))


def post_update(request: RequestContext, id: str) -> Response:
    blog = BlogService(request.db)
    post = blog.find(id)
    if post is None:
        return views.error_page(request, 404, "Post not found.")
    try:
        form = validate_form(BlogPostForm, request.form)
        blog.update_post(post["id"], form)
    except FormValidationError as e:
        return form_errors(request, "admin/blog/form.html", e, _post_context(request, post))
    return flash_redirect(request, "/admin/blog", "success", "Post updated successfully.")


def post_destroy(request: RequestContext, id: str) -> Response:
    try:
        BlogService(request.db).delete_post(id)
    except NotFoundError as e:
        return _delete_failed(request, "/admin/blog", e)
    return _deleted(request, "/admin/blog", "Post deleted successfully")


# =============================================================================
# Blog Categories
# =============================================================================

def blog_categories_index(request: RequestContext) -> Response:
    return views.render(request, "admin/blog/categories.html", {
        "blog_categories": BlogService(request.db).get_categories(active_only=False),
    })


def blog_category_create(request: RequestContext) -> Response:
    return views.render(request, "admin/blog/category_form.html", {"category": None})


def blog_category_store(request: RequestContext) -> Response:
    try:
        form = validate_form(BlogCategoryForm, request.form)
        BlogService(request.db).create_category(form)
    except FormValidationError as e:
        return form_errors(request, "admin/blog/category_form.html", e, {"category": None})
    return flash_redirect(request, "/admin/blog-categories", "success", "Category created successfully.")


def blog_category_edit(request: RequestContext, id: str) -> Response:
    category = BlogService(request.db).find_category(id)
    if category is None:
        return views.error_page(request, 404, "Blog category not found.")
    return views.render(request, "admin/blog/category_form.html", {"category": category})


def blog_category_update(request: RequestContext, id: str) -> Response:
    blog = BlogService(request.db)
    category = blog.find_category(id)
    if category is None:
        return views.error_page(request, 404, "Blog category not found.")
    try:
        form = validate_form(BlogCategoryForm, request.form)
        blog.update_category(category["id"], form)
    except FormValidationError as e:
        return form_errors(request, "admin/blog/category_form.html", e, {"category": category})
    return flash_redirect(request, "/admin/blog-categories", "success", "Category updated successfully.")


def blog_category_destroy(request: RequestContext, id: str) -> Response:
    try:
        BlogService(request.db).delete_category(id)
    except StorefrontException as e:
        return _delete_failed(request, "/admin/blog-categories", e)
    return _deleted(request, "/admin/blog-categories", "Category deleted successfully")


# =============================================================================
# Certificates & Gallery
# =============================================================================

MEDIA_SECTIONS: dict[str, dict] = {
    "certificates": {
        "table": CERTIFICATES,
        "form": CertificateForm,
        "label": "Certificate",
        "types": ["image", "pdf"],
    },
    "gallery": {
        "table": GALLERY,
        "form": GalleryItemForm,
        "label": "Gallery item",
        "types": ["image", "video"],
    },
}


def _media_context(section: str, item: dict | None = None) -> dict:
    config = MEDIA_SECTIONS[section]
    return {"section": section, "label": config["label"], "file_types": config["types"], "item": item}


def media_index(request: RequestContext, section: str) -> Response:
    config = MEDIA_SECTIONS[section]
    return views.render(request, "admin/media/index.html", {
        **_media_context(section),
        "items": ContentService(request.db).get_all_for_admin(config["table"]),
    })


def media_create(request: RequestContext, section: str) -> Response:
    return views.render(request, "admin/media/form.html", _media_context(section))


MEDIA_UPLOAD_KINDS = {"image": IMAGE, "pdf": DOCUMENT, "video": VIDEO}


def _media_form(section: str, request: RequestContext) -> BaseModel:
    data = dict(request.form)
    kind = MEDIA_UPLOAD_KINDS.get((data.get("file_type") or "image").strip().lower(), IMAGE)
    url = store_upload(request, "file", kind, section)
    if url:
        data["file_url"] = url
    try:
        return validate_form(MEDIA_SECTIONS[section]["form"], data)
    except FormValidationError:
        uploads(request).delete(url)
        raise


def media_store(request: RequestContext, section: str) -> Response:
    config = MEDIA_SECTIONS[section]
    try:
        ContentService(request.db).create(config["table"], _media_form(section, request))
    except FormValidationError as e:
        return form_errors(request, "admin/media/form.html", e, _media_context(section))
    return flash_redirect(request, f"/admin/{section}", "success", f"{config['label']} created successfully.")


def media_edit(request: RequestContext, section: str, id: str) -> Response:
    item = ContentService(request.db).find(MEDIA_SECTIONS[section]["table"], id)
    if item is None:
        return views.error_page(request, 404, f"{MEDIA_SECTIONS[section]['label']} not found.")
    return views.render(request, "admin/media/form.html", _media_context(section, item))


def media_update(request: RequestContext, section: str, id: str) -> Response:
    config = MEDIA_SECTIONS[section]
    content = ContentService(request.db)
    item = content.find(config["table"], id)
    if item is None:
        return views.error_page(request, 404, f"{config['label']} not found.")
    try:
        content.update(config["table"], item["id"], _media_form(section, request))
    except FormValidationError as e:
        return form_errors(request, "admin/media/form.html", e, _media_context(section, item))
    return flash_redirect(request, f"/admin/{section}", "success", f"{config['label']} updated successfully.")


def media_destroy(request: RequestContext, section: str, id: str) -> Response:
    config = MEDIA_SECTIONS[section]
    try:
        item = ContentService(request.db).delete(config["table"], id)
    except NotFoundError as e:
        return _delete_failed(request, f"/admin/{section}", e)
    uploads(request).delete(item["file_url"])
    return _deleted(request, f"/admin/{section}", f"{config['label']} deleted successfully")
