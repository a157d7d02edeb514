# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# This package contains the web layer of the storefront:
# - main.py: App factory, request adapter, error handlers
# - config.py: Environment variable loading and settings
# - routing.py / routes.py: Route table, dispatcher and the URL map
# - middleware.py: Route guards (auth, roles, CSRF)
# - views.py: Jinja2 rendering and response helpers
# - controllers/: Page and JSON handlers, storefront and back-office
# - routers/: Plain FastAPI routes (health checks)
#
# The app layer is thin - it handles HTTP concerns and delegates
# business logic to the core/ package.
# =============================================================================
