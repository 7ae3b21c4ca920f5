"""Signed admin session tokens."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt import InvalidTokenError

from .config import settings

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


def verify_credentials(username: str, password: str) -> bool:
    """Compare against the configured admin account in constant time."""
    username_ok = secrets.compare_digest(username.encode(), settings.admin_username.encode())
    password_ok = secrets.compare_digest(password.encode(), settings.admin_password.encode())
    return username_ok and password_ok


def session_max_age() -> int:
    """Session lifetime in seconds."""
    return settings.session_ttl_hours * 3600


def create_session_token(username: str, now: Optional[datetime] = None) -> str:
    """Issue a signed token for the admin account, valid for the session TTL."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "role": ADMIN_ROLE,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=session_max_age()),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify signature and expiry of a session token.

    Raises:
        PyJWTError: If the token is malformed, tampered with or expired
    """
    payload = jwt.decode(
        token,
        settings.session_secret,
        algorithms=[ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
    if payload.get("role") != ADMIN_ROLE:
        raise InvalidTokenError("Token does not carry the admin role")
    return payload
