# =============================================================================
# app/controllers/storefront.py - Public Pages
# =============================================================================
# Home, about, contact, language switch, shipping information, certificates,
# gallery, sitemap.xml and robots.txt.
# =============================================================================

import logging

from starlette.responses import Response

from app import views
from app.controllers.base import app_settings, form_errors, notifier
from app.exceptions import FormValidationError
from app.routing import RequestContext
from core.models.content import ContactForm
from core.services.blog_service import BlogService
from core.services.category_service import CategoryService
from core.services.content_service import CERTIFICATES, GALLERY, ContentService
from core.services.product_service import ProductService
from core.services.shipping_service import SUPPORTED_COUNTRIES, ShippingService
from core.services.sitemap_service import SitemapService
from lib.utils import validate_form

logger = logging.getLogger(__name__)


def home(request: RequestContext) -> Response:
    products = ProductService(request.db)
    return views.render(request, "pages/home.html", {
        "featured_products": products.get_featured(8),
        "latest_products": products.get_latest(4),
        "categories": CategoryService(request.db).get_tree(),
        "recent_posts": BlogService(request.db).get_recent(3),
    })


def about(request: RequestContext) -> Response:
    return views.render(request, "pages/about.html")


def contact(request: RequestContext) -> Response:
    return views.render(request, "pages/contact.html")


def contact_submit(request: RequestContext) -> Response:
    try:
        form = validate_form(ContactForm, request.form)
    except FormValidationError as e:
        return form_errors(request, "pages/contact.html", e)

    notifier(request).contact_message(form.name, form.email, form.subject, form.message)
    logger.info(f"Contact message received from {form.email}")
    request.session.flash(
        "success", "Thank you for your message! We will get back to you within 24-48 hours."
    )
    return views.redirect("/contact")


def set_language(request: RequestContext, code: str) -> Response:
    """Switch language and go back to the page the user came from."""
    if not request.lang.set_language(code):
        request.session.flash("error", "Language not supported.")
    return views.back(request)


def shipping_info(request: RequestContext) -> Response:
    country = (request.query.get("country") or "").strip().upper()
    rates = ShippingService(request.db).rates_display(country) if country else None
    return views.render(request, "pages/shipping.html", {
        "countries": SUPPORTED_COUNTRIES,
        "country": country,
        "rates": rates,
    })


def certificates(request: RequestContext) -> Response:
    return views.render(request, "pages/certificates.html", {
        "certificates": ContentService(request.db).get_active(CERTIFICATES),
    })


def gallery(request: RequestContext) -> Response:
    content = ContentService(request.db)
    file_type = request.query.get("type")
    items = (
        content.get_by_type(GALLERY, file_type) if file_type in ("image", "video")
        else content.get_active(GALLERY)
    )
    return views.render(request, "pages/gallery.html", {
        "items": items,
        "file_type": file_type,
        "image_count": content.count_by_type(GALLERY, "image"),
        "video_count": content.count_by_type(GALLERY, "video"),
    })


def sitemap(request: RequestContext) -> Response:
    xml = SitemapService(request.db, app_settings(request).APP_URL).to_xml()
    return Response(xml, media_type="application/xml")


def robots(request: RequestContext) -> Response:
    text = SitemapService(request.db, app_settings(request).APP_URL).robots_txt()
    return Response(text, media_type="text/plain")
