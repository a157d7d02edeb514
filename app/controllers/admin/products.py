# =============================================================================
# app/controllers/admin/products.py - Product Administration
# =============================================================================
# GET    /admin/products                    List (?search, ?page)
# GET    /admin/products/create             New product form
# POST   /admin/products                    Store (multipart; optional "image" file)
# GET    /admin/products/import             CSV upload form
# POST   /admin/products/import             Run the import
# GET    /admin/products/import/template    Sample CSV download
# GET    /admin/products/{id}/edit          Edit form
# POST   /admin/products/{id}               Update
# DELETE /admin/products/{id}               Delete (or deactivate if ordered)
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.controllers.base import flash_redirect, form_errors, pagination, store_upload
from app.exceptions import FormValidationError, NotFoundError
from app.routing import RequestContext
from core.models.product import ProductForm
from core.services.category_service import CategoryService
from core.services.product_import_service import ProductImportService, csv_template
from core.services.product_service import ProductService
from core.services.upload_service import IMAGE
from core.services.wholesale_service import WholesaleService
from lib.utils import validate_form

logger = logging.getLogger(__name__)

MAX_IMPORT_BYTES = 5 * 1024 * 1024


def _form_context(request: RequestContext, product: dict | None = None) -> dict:
    return {
        "product": product,
        "categories": CategoryService(request.db).get_all(active_only=False),
        "tiers": WholesaleService(request.db).get_product_tiers(product["id"], active_only=False) if product else [],
    }


def index(request: RequestContext) -> Response:
    page, per_page, offset = pagination(request, 20)
    search = (request.query.get("search") or "").strip()
    result = ProductService(request.db).get_all_for_admin(search or None, per_page, offset)
    return views.render(request, "admin/products/index.html", {
        **result,
        "search": search,
        "current_page": page,
    })


def create(request: RequestContext) -> Response:
    return views.render(request, "admin/products/form.html", _form_context(request))


def store(request: RequestContext) -> Response:
    products = ProductService(request.db)
    try:
        form = validate_form(ProductForm, request.form)
        if products.sku_exists(form.sku):
            raise FormValidationError({"sku": ["SKU already exists"]}, dict(request.form))
        form.image_url = store_upload(request, "image", IMAGE, "products") or form.image_url
        product_id = products.create_product(form)
    except FormValidationError as e:
        return form_errors(request, "admin/products/form.html", e, _form_context(request))

    logger.info(f"Product {product_id} created by user {request.user.id}")
    return flash_redirect(request, "/admin/products", "success", "Product created successfully.")


def edit(request: RequestContext, id: str) -> Response:
    product = ProductService(request.db).find(id)
    if product is None:
        return views.error_page(request, 404, "Product not found.")
    return views.render(request, "admin/products/form.html", _form_context(request, product))


def update(request: RequestContext, id: str) -> Response:
    products = ProductService(request.db)
    product = products.find(id)
    if product is None:
        return views.error_page(request, 404, "Product not found.")

    try:
        form = validate_form(ProductForm, request.form)
        if products.sku_exists(form.sku, exclude_id=product["id"]):
            raise FormValidationError({"sku": ["SKU already exists"]}, dict(request.form))
        form.image_url = store_upload(request, "image", IMAGE, "products") or form.image_url
        products.update_product(product["id"], form)
    except FormValidationError as e:
        return form_errors(request, "admin/products/form.html", e, _form_context(request, product))

    return flash_redirect(request, "/admin/products", "success", "Product updated successfully.")


def destroy(request: RequestContext, id: str) -> Response:
    try:
        ProductService(request.db).delete_product(id)
    except NotFoundError:
        if request.wants_json:
            return views.json_response({"success": False, "error": "Product not found"}, status_code=404)
        return flash_redirect(request, "/admin/products", "error", "Product not found.")

    if request.wants_json:
        return views.json_response({"success": True, "message": "Product deleted successfully"})
    return flash_redirect(request, "/admin/products", "success", "Product deleted successfully.")


# =============================================================================
# CSV Import
# =============================================================================

def import_form(request: RequestContext) -> Response:
    return views.render(request, "admin/products/import.html", {"result": None})


def import_csv(request: RequestContext) -> Response:
    upload = request.files.get("csv_file")
    if upload is not None and upload.size:
        if upload.size > MAX_IMPORT_BYTES:
            return flash_redirect(request, "/admin/products/import", "error", "File is too large (max 5MB).")
        if not upload.filename.lower().endswith(".csv"):
            return flash_redirect(request, "/admin/products/import", "error", "Please upload a CSV file.")
        source: str | bytes = upload.data
    elif (request.form.get("csv_text") or "").strip():
        source = request.form["csv_text"]
    else:
        return flash_redirect(request, "/admin/products/import", "error", "Please select a CSV file to upload.")

    result = ProductImportService(request.db).import_csv(source)
    logger.info(
        f"User {request.user.id} imported products: "
        f"{result.imported_count} imported, {result.skipped_count} skipped"
    )
    if request.wants_json:
        return views.json_response({
            "success": result.success,
            "imported_count": result.imported_count,
            "skipped_count": result.skipped_count,
            **result.model_dump(),
        })
    return views.render(request, "admin/products/import.html", {"result": result})


def import_template(request: RequestContext) -> Response:
    return Response(
        csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="products_template.csv"'},
    )
