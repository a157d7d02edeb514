# =============================================================================
# app/routers/ - Plain FastAPI Routes
# =============================================================================
# Endpoints that bypass the storefront Router (no session, no templates):
# - health.py: Health, readiness and liveness checks
#
# Mounted in main.py before the storefront catch-all.
# =============================================================================

from . import health

__all__ = [
    "health",
]
