"""Password hashing and bearer tokens."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from pagevault.core.config import settings

# Argon2 password hasher
ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password using Argon2."""
    return ph.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never verify."""
    try:
        return ph.verify(hashed, password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(
    user_id: uuid.UUID,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """
    Issue a signed access token for a user.

    The role claim is informational; authorization always re-reads the
    user from the database.

    Returns:
        (encoded token, expiry time)
    """
    now = datetime.now(timezone.utc)
    expires_at = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRES_MINUTES))
    claims = {"sub": str(user_id), "role": role, "iat": now, "exp": expires_at}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM), expires_at


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and verify a token. Returns None when invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None


def token_subject(token: str) -> Optional[uuid.UUID]:
    """User id carried by a valid token, or None."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    try:
        return uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        return None
