"""
Password hashing and JWT handling.

Passwords are stored as a salted PBKDF2-HMAC-SHA512 digest.  The
parameters below are shared by every stored credential; changing any of
them invalidates every existing password.  The 512-byte key length is far
more than SHA-512 needs, but existing hashes were derived with it.

The salt is 16 random bytes, hex encoded.  The hex *string* (not the raw
bytes) is what goes into the KDF, and the digest is stored as hex.
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from conduit.config import settings
from conduit.exceptions import ConfigurationError, Unauthorized

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 10000
PBKDF2_KEY_LENGTH = 512
PBKDF2_DIGEST = "sha512"
SALT_BYTES = 16


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def derive_key(password: str, salt: str) -> str:
    """Return the hex PBKDF2 digest of *password* under *salt*."""
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
        dklen=PBKDF2_KEY_LENGTH,
    ).hex()


def set_password(user, password: str) -> None:
    """Give *user* a fresh salt and the matching hash for *password*."""
    user.salt = secrets.token_hex(SALT_BYTES)
    user.hash = derive_key(password, user.salt)


def valid_password(user, password: str) -> bool:
    if not user.salt or not user.hash:
        return False
    candidate = derive_key(password, user.salt)
    return hmac.compare_digest(candidate, user.hash)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def _signing_secret(secret: str | None) -> str:
    secret = secret if secret is not None else settings.JWT_SECRET
    if not secret:
        raise ConfigurationError("JWT_SECRET is not configured")
    return secret


def issue_token(user, secret: str | None = None) -> str:
    """
    Sign ``{id, username}`` for *user*.

    The token expires after ``settings.JWT_EXPIRE_DAYS`` days.  Raises
    ``ConfigurationError`` when no signing secret is available.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "username": user.username,
        "iat": now,
        "exp": now + timedelta(days=settings.JWT_EXPIRE_DAYS),
    }
    return jwt.encode(payload, _signing_secret(secret), algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str, secret: str | None = None) -> dict:
    """
    Decode *token* and return its payload.

    Raises ``Unauthorized`` for an expired, tampered or malformed token.
    """
    try:
        payload = jwt.decode(
            token,
            _signing_secret(secret),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("has expired")
    except jwt.PyJWTError as exc:
        logger.debug("Rejected token: %s", exc)
        raise Unauthorized("is invalid")

    if "id" not in payload:
        raise Unauthorized("is invalid")
    return payload
