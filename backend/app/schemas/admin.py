"""
Admin API Schema Definitions.

Pydantic schemas for user management and the audit trail.
"""

from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.enums import UserRole, UserStatus
from backend.app.schemas.common import CamelModel


class UserCreate(CamelModel):
    """
    Schema for creating a user.

    Non-admin users without ``entrepotId`` are assigned to the first warehouse.
    """
    nom: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: Optional[EmailStr] = Field(None, description="Optional, unique when given")
    username: str = Field(..., min_length=3, max_length=100, description="Unique username")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    role: UserRole = Field(default=UserRole.OPERATOR)
    status: UserStatus = Field(default=UserStatus.ACTIF)
    entrepot_id: Optional[int] = Field(None, description="Assigned warehouse")


class UserUpdate(CamelModel):
    """Schema for a partial user update. Omitted fields are unchanged."""
    nom: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class UserWarehouseAssign(CamelModel):
    """Schema for (re)assigning a user to a warehouse. None gives access to all."""
    entrepot_id: Optional[int] = None


class UserListItem(CamelModel):
    """Schema for user in list response."""
    id: int
    nom: str
    email: Optional[str] = None
    username: str
    role: UserRole
    status: UserStatus
    entrepot_id: Optional[int] = None
    created_at: datetime


class UserListResponse(CamelModel):
    """Schema for list users response."""
    users: List[UserListItem]
    total: int


class UserDeleteResponse(CamelModel):
    success: bool
    message: str
    user_id: int


class AuditLogResponse(CamelModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime


class AuditTrailResponse(CamelModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
