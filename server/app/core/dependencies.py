"""FastAPI dependencies for database sessions and admin authentication."""

from typing import Optional

from fastapi import Depends, Header, Request
from jwt import PyJWTError

from ..schemas.auth import AdminUser
from .config import settings
from .exceptions import AuthenticationError
from .security import decode_session_token


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Read the credentials of an ``Authorization: Bearer`` header."""
    if not authorization:
        return None

    try:
        scheme, credentials = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")
    return credentials


def _admin_from_token(token: str) -> AdminUser:
    try:
        payload = decode_session_token(token)
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Session is invalid or expired: {e}")

    return AdminUser(username=payload["sub"], role=payload.get("role", "admin"))


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> AdminUser:
    """
    Authentication dependency guarding the back office.

    The session cookie is tried first. When it is missing or no longer
    valid, a ``Bearer`` header sent with the same request is used instead.

    Args:
        request: Incoming request, used for the session cookie
        authorization: Optional ``Bearer`` header

    Returns:
        AdminUser: Identity from the validated token

    Raises:
        AuthenticationError: If no token is valid
    """
    cookie_token = request.cookies.get(settings.session_cookie_name)
    if cookie_token:
        try:
            return _admin_from_token(cookie_token)
        except AuthenticationError:
            if not authorization:
                raise

    token = _bearer_token(authorization)
    if not token:
        raise AuthenticationError(detail="Not authenticated")
    return _admin_from_token(token)


RequiredAdmin = Depends(require_admin)
