"""Admin login and logout."""

import logging

from fastapi import Response

from ..core.config import settings
from ..core.exceptions import AuthenticationError
from ..core.observability import metrics_collector
from ..core.security import create_session_token, session_max_age, verify_credentials
from ..schemas.auth import AdminUser, LoginRequest

logger = logging.getLogger(__name__)


class AuthService:
    """Issues and clears the admin session cookie."""

    def __init__(self, response: Response):
        self.response = response

    def login(self, request: LoginRequest) -> AdminUser:
        """
        Check credentials and set the session cookie.

        Raises:
            AuthenticationError: On wrong username or password
        """
        if not verify_credentials(request.username, request.password):
            metrics_collector.record_login("rejected")
            logger.warning("Admin login rejected", extra={"username": request.username})
            raise AuthenticationError(detail="Invalid credentials")

        token = create_session_token(request.username)
        self.response.set_cookie(
            key=settings.session_cookie_name,
            value=token,
            max_age=session_max_age(),
            path="/",
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )

        metrics_collector.record_login("accepted")
        logger.info("Admin logged in", extra={"username": request.username})
        return AdminUser(username=request.username)

    def logout(self) -> None:
        """Clear the session cookie."""
        self.response.delete_cookie(
            key=settings.session_cookie_name,
            path="/",
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )
        logger.info("Admin logged out")
