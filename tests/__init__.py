# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the storefront:
# - test_routing.py / test_middleware.py: Route matching, dispatch and guards
# - test_env.py / test_database.py / test_translations.py: lib/ modules
# - test_views.py: Redirect filtering and input parsing helpers
# - test_wholesale_service.py, test_upload_service.py, test_sitemap_service.py:
#   wholesale pricing and inquiries, admin uploads, sitemap.xml / robots.txt
# - test_*_service.py, test_catalog.py, test_users.py: core services
# - test_app.py: Integration tests through the HTTP client
#
# Run tests with: pytest
# =============================================================================
