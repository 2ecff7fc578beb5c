"""Password hashing, opaque token hashing and JWT creation/verification."""

import hashlib
import secrets
import uuid
from datetime import UTC, datetime
from typing import Any

import bcrypt
import jwt

from couponx.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 30
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

# Compared against on unknown emails so login timing does not reveal whether an account exists.
_DUMMY_HASH = bcrypt.hashpw(b"couponx-dummy-password", bcrypt.gensalt(rounds=4)).decode("utf-8")


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash. A missing hash still costs one bcrypt check."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        if not hashed:
            bcrypt.checkpw(pw_bytes, _DUMMY_HASH.encode("utf-8"))
            return False
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to store refresh, reset and verification tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_opaque_token() -> str:
    """Random URL-safe token for password reset and email verification links."""
    return secrets.token_hex(32)


def _encode(payload: dict[str, Any]) -> str:
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def create_access_token(sub: str | int, role: str, version: int = 0) -> str:
    """Create a JWT access token with sub (user id), role, token version and exp."""
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(sub),
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "ver": version,
        "exp": now + settings.JWT_ACCESS_EXPIRY,
        "iat": now,
    }
    return _encode(payload)


def create_refresh_token(sub: str | int) -> tuple[str, datetime]:
    """Create a JWT refresh token; returns (token, expires_at)."""
    now = datetime.now(UTC)
    expire = now + settings.JWT_REFRESH_EXPIRY
    payload: dict[str, Any] = {
        "sub": str(sub),
        "type": REFRESH_TOKEN_TYPE,
        "jti": uuid.uuid4().hex,
        "exp": expire,
        "iat": now,
    }
    return _encode(payload), expire


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, role, type, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token, or a token of another type.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp", "type"]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return payload
