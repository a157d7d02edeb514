# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Cookie-based sessions and the logged-in user model.
#
# Usage:
#   from app.auth import SessionManager, SessionUser
#
#   user = request.session.user
#   if user and user.is_admin:
#       ...
# =============================================================================

from app.auth.models import SessionUser
from app.auth.session import SessionManager, decode_session, encode_session

__all__ = [
    "SessionManager",
    "SessionUser",
    "decode_session",
    "encode_session",
]
