"""
Admin API Endpoints.

Provides admin-only user management endpoints with audit logging.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import (
    UserCreate, UserUpdate, UserWarehouseAssign, UserListItem, UserListResponse,
    UserDeleteResponse, AuditTrailResponse, AuditLogResponse
)
from backend.app.core.guards import require_admin
from backend.app.services import user_service
from backend.app.services.audit import log_user_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None, description="Matches name, email or username"),
    role: Optional[UserRole] = Query(None),
    entrepot_id: Optional[int] = Query(None, alias="entrepotId"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List users, newest first (admin-only).
    """
    users = await user_service.list_users(db, search=search, role=role, entrepot_id=entrepot_id)
    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=len(users)
    )


@router.post("/users", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a user (admin-only).

    Usernames and emails must be unique (case-insensitive).
    """
    user = await user_service.create_user(db, user_data.model_dump())

    await log_user_action(
        db, admin, AuditAction.USER_CREATED, "user", user.id,
        metadata={"username": user.username, "role": user.role.value}
    )
    return UserListItem.model_validate(user)


@router.get("/users/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get detailed information about a specific user (admin-only).
    """
    return UserListItem.model_validate(await user_service.get_user(db, user_id))


@router.patch("/users/{user_id}", response_model=UserListItem)
async def update_user(
    user_id: int,
    changes: UserUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a user (admin-only).

    Setting the status away from "Actif" revokes the user's tokens.
    The last active admin cannot be demoted or deactivated.
    """
    fields = changes.model_dump(exclude_unset=True)
    user = await user_service.update_user(db, user_id, fields)

    await log_user_action(
        db, admin, AuditAction.USER_UPDATED, "user", user.id,
        metadata={"fields": sorted(name for name in fields if name != "password")}
    )
    return UserListItem.model_validate(user)


@router.patch("/users/{user_id}/warehouse", response_model=UserListItem)
async def assign_user_warehouse(
    user_id: int,
    assignment: UserWarehouseAssign,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign a user to a warehouse; ``entrepotId: null`` detaches them.
    """
    user = await user_service.assign_warehouse(db, user_id, assignment.entrepot_id)

    await log_user_action(
        db, admin, AuditAction.USER_WAREHOUSE_ASSIGNED, "user", user.id,
        metadata={"entrepot_id": user.entrepot_id}
    )
    return UserListItem.model_validate(user)


@router.delete("/users/{user_id}", response_model=UserDeleteResponse)
async def delete_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a user and revoke all their active tokens (admin-only).

    The last active admin cannot be deleted.
    """
    if user_id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete yourself"
        )

    user = await user_service.delete_user(db, user_id)

    await log_user_action(
        db, admin, AuditAction.USER_DELETED, "user", user_id,
        metadata={"username": user.username}
    )
    return UserDeleteResponse(
        success=True,
        message=f"User '{user.username}' has been deleted",
        user_id=user_id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    entity_type: Optional[str] = Query(None, alias="entityType", description="user, warehouse or truck"),
    entity_id: Optional[int] = Query(None, alias="entityId"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Retrieve the audit trail, most recent first (admin-only).
    """
    logs = await get_audit_trail(
        db=db, entity_type=entity_type, entity_id=entity_id, action=action, limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
