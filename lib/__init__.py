# =============================================================================
# lib/ - Standalone Infrastructure Modules
# =============================================================================
# This package contains reusable infrastructure:
# - env.py: .env file loader (process environment)
# - database.py: Connection manager and parameterized query execution
# - translations.py: Translation tables and per-request language detection
# - security.py: Password hashing and token helpers
# - utils.py: Shared helpers (slugs, pagination, form validation)
#
# Modules are imported directly (e.g. `from lib.database import Database`)
# so that app.config can use lib.env without pulling in the rest.
# =============================================================================
