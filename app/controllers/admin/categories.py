# =============================================================================
# app/controllers/admin/categories.py - Category Administration
# =============================================================================
# Deleting is refused while a category still has products or subcategories.
# The list page deletes over AJAX and gets
#   {"success": true, "message": "Category deleted successfully"}
# =============================================================================

from starlette.responses import Response

from app import views
from app.controllers.base import flash_redirect, form_errors
from app.exceptions import FormValidationError, NotFoundError
from app.routing import RequestContext
from core.models.product import CategoryForm
from core.services.category_service import CategoryInUseError, CategoryService
from lib.utils import validate_form


def _form_context(request: RequestContext, category: dict | None = None) -> dict:
    parents = CategoryService(request.db).get_all(active_only=False)
    if category is not None:
        parents = [c for c in parents if c["id"] != category["id"]]
    return {"category": category, "parents": parents}


def index(request: RequestContext) -> Response:
    return views.render(request, "admin/categories/index.html", {
        "categories": CategoryService(request.db).get_with_product_counts(),
    })


def create(request: RequestContext) -> Response:
    return views.render(request, "admin/categories/form.html", _form_context(request))


def store(request: RequestContext) -> Response:
    try:
        form = validate_form(CategoryForm, request.form)
        CategoryService(request.db).create(form)
    except FormValidationError as e:
        return form_errors(request, "admin/categories/form.html", e, _form_context(request))
    return flash_redirect(request, "/admin/categories", "success", "Category created successfully.")


def edit(request: RequestContext, id: str) -> Response:
    category = CategoryService(request.db).find(id)
    if category is None:
        return views.error_page(request, 404, "Category not found.")
    return views.render(request, "admin/categories/form.html", _form_context(request, category))


def update(request: RequestContext, id: str) -> Response:
    categories = CategoryService(request.db)
    category = categories.find(id)
    if category is None:
        return views.error_page(request, 404, "Category not found.")

    try:
        form = validate_form(CategoryForm, request.form)
        categories.update(category["id"], form)
    except FormValidationError as e:
        return form_errors(request, "admin/categories/form.html", e, _form_context(request, category))
    except CategoryInUseError as e:
        error = FormValidationError({"parent_id": [e.message]}, dict(request.form))
        return form_errors(request, "admin/categories/form.html", error, _form_context(request, category))
    return flash_redirect(request, "/admin/categories", "success", "Category updated successfully.")


def destroy(request: RequestContext, id: str) -> Response:
    try:
        CategoryService(request.db).delete(id)
    except (NotFoundError, CategoryInUseError) as e:
        if request.wants_json:
            return views.json_response({"success": False, "error": e.message}, status_code=e.status_code)
        return flash_redirect(request, "/admin/categories", "error", e.message)

    if request.wants_json:
        return views.json_response({"success": True, "message": "Category deleted successfully"})
    return flash_redirect(request, "/admin/categories", "success", "Category deleted successfully.")
