# =============================================================================
# app/routes.py - Route Table
# =============================================================================
# Every URL the storefront answers, in match order. Literal segments are
# registered before {placeholder} siblings ("/admin/products/import" before
# "/admin/products/{id}") because the first match wins.
#
# Guards:
# - csrf: every state-changing browser route (the JSON API is excluded)
# - auth: customer dashboard
# - admin_area / admin_only / content: back-office, by role
# =============================================================================

from functools import partial

from app.controllers import api, auth, blog, cart, checkout, dashboard, orders, products, storefront, wholesale
from app.controllers.admin import categories as admin_categories
from app.controllers.admin import content as admin_content
from app.controllers.admin import dashboard as admin_dashboard
from app.controllers.admin import orders as admin_orders
from app.controllers.admin import products as admin_products
from app.controllers.admin import shipping as admin_shipping
from app.controllers.admin import wholesale as admin_wholesale
from app.middleware import AuthMiddleware, CsrfMiddleware, RoleMiddleware
from app.routing import Router
from app.views import not_found


def build_router() -> Router:
    """Create the application's Router with all routes registered."""
    router = Router(not_found=not_found)

    csrf = CsrfMiddleware(excluded=("/api/*",))
    auth_required = AuthMiddleware("/login")
    admin_area = RoleMiddleware.admin_area()
    admin_only = RoleMiddleware.admin_only()
    content = RoleMiddleware.content_manager()

    # -------------------------------------------------------------------------
    # Storefront
    # -------------------------------------------------------------------------
    router.get("/", storefront.home)
    router.get("/about", storefront.about)
    router.get("/contact", storefront.contact)
    router.post("/contact", storefront.contact_submit, [csrf])
    router.get("/language/{code}", storefront.set_language)
    router.get("/shipping", storefront.shipping_info)
    router.get("/certificates", storefront.certificates)
    router.get("/gallery", storefront.gallery)
    router.get("/wholesale", wholesale.index)
    router.post("/wholesale", wholesale.submit, [csrf])
    router.get("/sitemap.xml", storefront.sitemap)
    router.get("/robots.txt", storefront.robots)

    router.get("/products", products.index)
    router.get("/products/{slug}", products.show)
    router.get("/category/{slug}", products.category)

    router.get("/blog", blog.index)
    router.get("/blog/category/{slug}", blog.category)
    router.get("/blog/{slug}", blog.show)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------
    router.get("/login", auth.login_form)
    router.post("/login", auth.login, [csrf])
    router.get("/register", auth.register_form)
    router.post("/register", auth.register, [csrf])
    router.get("/logout", auth.logout)

    router.get("/dashboard", dashboard.index, [auth_required])
    router.get("/dashboard/orders", dashboard.orders, [auth_required])
    router.get("/dashboard/orders/{id}", dashboard.order_show, [auth_required])
    router.get("/dashboard/profile", dashboard.profile_form, [auth_required])
    router.post("/dashboard/profile", dashboard.profile_update, [auth_required, csrf])
    router.post("/dashboard/password", dashboard.password_update, [auth_required, csrf])

    # -------------------------------------------------------------------------
    # Cart, checkout, tracking
    # -------------------------------------------------------------------------
    router.get("/cart", cart.index)
    router.post("/cart/add", cart.add, [csrf])
    router.post("/cart/update", cart.update, [csrf])
    router.post("/cart/remove", cart.remove, [csrf])
    router.post("/cart/clear", cart.clear, [csrf])
    router.get("/cart/count", cart.count)
    router.get("/cart/data", cart.data)

    router.get("/checkout", checkout.index)
    router.post("/checkout", checkout.process, [csrf])
    router.get("/checkout/success", checkout.success)
    router.post("/checkout/shipping-methods", checkout.shipping_methods, [csrf])

    router.get("/order/track", orders.track_form)
    router.post("/order/track", orders.track, [csrf])

    # -------------------------------------------------------------------------
    # JSON API
    # -------------------------------------------------------------------------
    router.get("/api/products", api.products)
    router.get("/api/products/{id}", api.product)
    router.get("/api/categories", api.categories)
    router.get("/api/shipping/rates", api.shipping_rates)
    router.get("/api/cart", api.cart)
    router.post("/api/cart/add", api.cart_add)
    router.post("/api/cart/update", api.cart_update)
    router.delete("/api/cart/{id}", api.cart_remove)
    router.get("/api/wholesale/pricing/{id}", api.wholesale_pricing)

    # -------------------------------------------------------------------------
    # Back-office
    # -------------------------------------------------------------------------
    router.get("/admin/login", auth.admin_login_form)
    router.post("/admin/login", auth.admin_login, [csrf])
    router.get("/admin/logout", auth.admin_logout)
    router.get("/admin", admin_dashboard.index, [admin_area])

    router.get("/admin/products/import", admin_products.import_form, [admin_only])
    router.post("/admin/products/import", admin_products.import_csv, [admin_only, csrf])
    router.get("/admin/products/import/template", admin_products.import_template, [admin_only])
    router.post("/admin/products/{id}/tiers", admin_wholesale.tier_store, [admin_only, csrf])
    _resource(router, "/admin/products", admin_products, [admin_only], csrf)
    _resource(router, "/admin/categories", admin_categories, [admin_only], csrf)

    router.get("/admin/orders", admin_orders.index, [admin_only])
    router.get("/admin/orders/{id}", admin_orders.show, [admin_only])
    router.post("/admin/orders/{id}/status", admin_orders.update_status, [admin_only, csrf])
    router.post("/admin/orders/{id}/notes", admin_orders.add_note, [admin_only, csrf])

    router.get("/admin/wholesale", admin_wholesale.index, [admin_only])
    router.get("/admin/wholesale/{id}", admin_wholesale.show, [admin_only])
    router.post("/admin/wholesale/{id}/status", admin_wholesale.update_status, [admin_only, csrf])
    router.delete("/admin/wholesale-tiers/{id}", admin_wholesale.tier_destroy, [admin_only, csrf])

    router.get("/admin/shipping", admin_shipping.index, [admin_only])
    router.get("/admin/shipping/zones/create", admin_shipping.zone_create, [admin_only])
    router.post("/admin/shipping/zones", admin_shipping.zone_store, [admin_only, csrf])
    router.get("/admin/shipping/zones/{id}/edit", admin_shipping.zone_edit, [admin_only])
    router.post("/admin/shipping/zones/{id}", admin_shipping.zone_update, [admin_only, csrf])
    router.delete("/admin/shipping/zones/{id}", admin_shipping.zone_destroy, [admin_only, csrf])
    router.get("/admin/shipping/methods/create", admin_shipping.method_create, [admin_only])
    router.post("/admin/shipping/methods", admin_shipping.method_store, [admin_only, csrf])
    router.get("/admin/shipping/methods/{id}/edit", admin_shipping.method_edit, [admin_only])
    router.post("/admin/shipping/methods/{id}/brackets", admin_shipping.bracket_store, [admin_only, csrf])
    router.post("/admin/shipping/methods/{id}", admin_shipping.method_update, [admin_only, csrf])
    router.delete("/admin/shipping/methods/{id}", admin_shipping.method_destroy, [admin_only, csrf])
    router.delete("/admin/shipping/brackets/{id}", admin_shipping.bracket_destroy, [admin_only, csrf])

    router.get("/admin/blog", admin_content.posts_index, [content])
    router.get("/admin/blog/create", admin_content.post_create, [content])
    router.post("/admin/blog", admin_content.post_store, [content, csrf])
    router.get("/admin/blog/{id}/edit", admin_content.post_edit, [content])
    router.post("/admin/blog/{id}", admin_content.post_update, [content, csrf])
    router.delete("/admin/blog/{id}", admin_content.post_destroy, [content, csrf])

    router.get("/admin/blog-categories", admin_content.blog_categories_index, [content])
    router.get("/admin/blog-categories/create", admin_content.blog_category_create, [content])
    router.post("/admin/blog-categories", admin_content.blog_category_store, [content, csrf])
    router.get("/admin/blog-categories/{id}/edit", admin_content.blog_category_edit, [content])
    router.post("/admin/blog-categories/{id}", admin_content.blog_category_update, [content, csrf])
    router.delete("/admin/blog-categories/{id}", admin_content.blog_category_destroy, [content, csrf])

    for section in admin_content.MEDIA_SECTIONS:
        base = f"/admin/{section}"
        router.get(base, partial(admin_content.media_index, section=section), [content])
        router.get(f"{base}/create", partial(admin_content.media_create, section=section), [content])
        router.post(base, partial(admin_content.media_store, section=section), [content, csrf])
        router.get(f"{base}/{{id}}/edit", partial(admin_content.media_edit, section=section), [content])
        router.post(f"{base}/{{id}}", partial(admin_content.media_update, section=section), [content, csrf])
        router.delete(f"{base}/{{id}}", partial(admin_content.media_destroy, section=section), [content, csrf])

    return router


def _resource(router: Router, base: str, controller, guards: list, csrf: CsrfMiddleware) -> None:
    """Register index, create, store, edit, update and destroy for an admin controller."""
    router.get(base, controller.index, guards)
    router.get(f"{base}/create", controller.create, guards)
    router.post(base, controller.store, [*guards, csrf])
    router.get(f"{base}/{{id}}/edit", controller.edit, guards)
    router.post(f"{base}/{{id}}", controller.update, [*guards, csrf])
    router.delete(f"{base}/{{id}}", controller.destroy, [*guards, csrf])
