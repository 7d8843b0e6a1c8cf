"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional
from backend.app.models.enums import UserRole, UserStatus
from backend.app.schemas.common import CamelModel


class UserLogin(CamelModel):
    """
    Schema for user login.

    Used by POST /auth/login endpoint.
    Supports login with either username or email.
    """
    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1, description="Password")


class TokenResponse(CamelModel):
    """
    Schema for JWT token response.

    Returned by a successful login.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    nom: str = Field(..., description="Display name")
    role: UserRole = Field(..., description="User role")
    entrepot_id: Optional[int] = Field(default=None, description="Assigned warehouse, None for all")


class CurrentUserResponse(CamelModel):
    """
    Schema for the authenticated user.

    Used by GET /auth/me endpoint.
    """
    id: int
    nom: str
    email: Optional[str] = None
    username: str
    role: UserRole
    status: UserStatus
    entrepot_id: Optional[int] = None
    created_at: datetime


class LogoutResponse(CamelModel):
    success: bool
    message: str
