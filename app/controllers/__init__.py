# =============================================================================
# app/controllers/__init__.py - Request Handlers
# =============================================================================
# One module per area. Handlers take a RequestContext (plus path params) and
# return a Starlette Response; app/routes.py binds them to URLs.
#
# - storefront: home, static pages, contact, language, shipping info, media
# - products / blog: catalog and blog pages
# - auth / cart / checkout / orders / dashboard: shopper flows
# - api: JSON endpoints under /api
# - admin/: back-office
# =============================================================================
