# =============================================================================
# app/auth/session.py - Signed Cookie Sessions
# =============================================================================
# Session state (logged-in user, cart, flash messages, CSRF token, language)
# lives in a single cookie holding an HS256-signed JWT.
#
# - A tampered, expired or malformed cookie decodes to an empty session
# - The token is re-issued on every response that touched the session, which
#   gives a sliding idle timeout of SESSION_LIFETIME_MINUTES
#
# Usage:
#   session = SessionManager.from_cookie(request.cookies.get(settings.SESSION_COOKIE_NAME))
#   session.flash("success", "Welcome back!")
#   response.set_cookie(settings.SESSION_COOKIE_NAME, session.to_cookie())
# =============================================================================

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.auth.models import SessionPayload, SessionUser
from app.config import settings
from core.models.user import Role
from lib.security import generate_token, tokens_match

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

USER_KEY = "user"
FLASH_KEY = "_flash"
CSRF_KEY = "csrf_token"

# Kept across logout so the visitor doesn't lose their UI language
PERSISTENT_KEYS = ("language",)


def encode_session(data: dict[str, Any], secret: str | None = None, lifetime_minutes: int | None = None) -> str:
    """Sign session data into a JWT."""
    issued = datetime.now(timezone.utc)
    lifetime = lifetime_minutes or settings.SESSION_LIFETIME_MINUTES
    claims = {
        "data": data,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=lifetime)).timestamp()),
    }
    return jwt.encode(claims, secret or settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_session(token: str | None, secret: str | None = None) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Returns an empty dict for missing, expired or tampered tokens.
    """
    if not token:
        return {}
    try:
        claims = jwt.decode(token, secret or settings.SECRET_KEY, algorithms=[ALGORITHM])
        return SessionPayload(**claims).data
    except JWTError as e:
        logger.debug(f"Discarding invalid session cookie: {e}")
        return {}
    except ValueError as e:
        logger.debug(f"Discarding malformed session payload: {e}")
        return {}


class SessionManager:
    """
    Dict-backed session for one request.

    Tracks whether anything changed so the cookie is only re-sent when
    needed.
    """

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})
        self.modified = False

    @classmethod
    def from_cookie(cls, token: str | None) -> "SessionManager":
        return cls(decode_session(token))

    def to_cookie(self) -> str:
        return encode_session(self._data)

    # -------------------------------------------------------------------------
    # Generic access
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._data.get(key) != value:
            self._data[key] = value
            self.modified = True

    def has(self, key: str) -> bool:
        return key in self._data

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.modified = True

    def all(self) -> dict[str, Any]:
        return dict(self._data)

    def clear(self) -> None:
        self._data = {}
        self.modified = True

    # -------------------------------------------------------------------------
    # Flash messages
    # -------------------------------------------------------------------------

    def flash(self, key: str, message: Any) -> None:
        """Store a message for the next page render only."""
        flashes = dict(self._data.get(FLASH_KEY, {}))
        flashes[key] = message
        self.set(FLASH_KEY, flashes)

    def get_flash(self, key: str, default: Any = None) -> Any:
        flashes = dict(self._data.get(FLASH_KEY, {}))
        if key not in flashes:
            return default
        value = flashes.pop(key)
        if flashes:
            self.set(FLASH_KEY, flashes)
        else:
            self.remove(FLASH_KEY)
        return value

    def pop_flashes(self) -> dict[str, Any]:
        flashes = self._data.get(FLASH_KEY, {})
        self.remove(FLASH_KEY)
        return dict(flashes)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def login(self, user: SessionUser) -> None:
        """Store the user and rotate the CSRF token."""
        self.set(USER_KEY, user.model_dump(mode="json"))
        self.set(CSRF_KEY, generate_token())
        logger.info(f"User {user.id} logged in ({user.role.value})")

    def logout(self) -> None:
        kept = {key: self._data[key] for key in PERSISTENT_KEYS if key in self._data}
        self._data = kept
        self.modified = True

    @property
    def user(self) -> SessionUser | None:
        raw = self._data.get(USER_KEY)
        if not raw:
            return None
        try:
            return SessionUser(**raw)
        except ValueError:
            return None

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> int | None:
        user = self.user
        return user.id if user else None

    @property
    def user_role(self) -> Role | None:
        user = self.user
        return user.role if user else None

    # -------------------------------------------------------------------------
    # CSRF
    # -------------------------------------------------------------------------

    def csrf_token(self) -> str:
        token = self._data.get(CSRF_KEY)
        if not token:
            token = generate_token()
            self.set(CSRF_KEY, token)
        return token

    def validate_csrf(self, token: str | None) -> bool:
        return tokens_match(self._data.get(CSRF_KEY), token)
