"""Staff credentials: bcrypt password hashes and shop-scoped JWT access tokens.

Customers never authenticate with these; they are identified by their
ordering session (see ``app.api.deps``).
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
import logging

import jwt
from jwt.exceptions import PyJWTError
import bcrypt

from app.core.config import settings

logger = logging.getLogger(__name__)

# Claims every staff token must carry
STAFF_CLAIMS = ("sub", "username", "role", "shop_id")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a staff password against its stored hash.

    Uses bcrypt's built-in timing-safe comparison. A malformed hash counts as
    a mismatch.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except Exception as e:
        logger.warning(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Sign ``data`` with expiry, issue time and a unique token id."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_staff_token(user_id: int, username: str, role: str, shop_id: int,
                       expires_delta: timedelta | None = None) -> str:
    """Access token scoped to the staff member's shop."""
    return create_access_token(
        {"sub": str(user_id), "username": username, "role": role, "shop_id": shop_id},
        expires_delta=expires_delta,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode a staff token. None when invalid, expired or missing a claim."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", *STAFF_CLAIMS]},
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None
    return payload
