# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for form validation and enums
# - services/: Catalog, cart, orders, shipping, payments, content, mail
# - schema.py: Table definitions and schema creation (seed data lives in
#   scripts/init_db.py)
#
# Services take a lib.database.Connection and return plain dicts, so they can
# be exercised against SQLite in tests without the web layer.
# =============================================================================
