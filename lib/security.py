# =============================================================================
# lib/security.py - Password Hashing & Tokens
# =============================================================================
# bcrypt password hashing plus random/constant-time token helpers.
#
# Hashes written by PHP's password_hash() use the "$2y$" prefix; bcrypt
# treats it the same as "$2b$", so accounts migrated from the old shop keep
# working.
# =============================================================================

import hmac
import secrets

import bcrypt

BCRYPT_ROUNDS = 12

# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash a password for storage.

    Args:
        password: Plaintext password
        rounds: bcrypt cost factor (BCRYPT_ROUNDS when omitted)

    Returns:
        The bcrypt hash, salt included, as text
    """
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds or BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, encoded: str | None) -> bool:
    """Check a plaintext password against a stored hash."""
    if not encoded:
        return False
    stored = encoded.encode("utf-8")
    if stored.startswith(b"$2y$"):
        stored = b"$2b$" + stored[4:]
    try:
        return bcrypt.checkpw(_encode(password), stored)
    except ValueError:
        return False


def generate_token(nbytes: int = 32) -> str:
    """Random hex token (CSRF tokens, payment references)."""
    return secrets.token_hex(nbytes)


def tokens_match(expected: str | None, provided: str | None) -> bool:
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected, provided)
