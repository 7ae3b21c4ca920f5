"""Admin session schemas."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials posted to the login endpoint."""

    username: str = Field(..., min_length=1, description="Admin username")
    password: str = Field(..., min_length=1, description="Admin password")


class AdminUser(BaseModel):
    """Identity carried by a valid session token."""

    username: str
    role: str = "admin"


class LoginResponse(BaseModel):
    """Successful login response."""

    success: bool = True
    user: AdminUser
