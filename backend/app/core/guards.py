"""
Security guards for role-based and warehouse-scoped access control.

Provides dependencies for protecting endpoints.
"""

from typing import List, Optional
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


# Roles allowed to register a truck at the gate
REGISTRATION_ROLES = [UserRole.ADMIN, UserRole.OPERATOR, UserRole.SECURITY]

# Roles acting as the warehouse manager in the reception workflow
MANAGER_ROLES = [UserRole.OPERATOR]


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/trucks/{truck_id}/validate")
        async def validate(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for admin-only endpoints.

    Returns:
        User payload if admin, raises 403 otherwise
    """
    if current_user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return current_user


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.ADMIN.value


def can_access_warehouse(entrepot_id: int, current_user: dict) -> bool:
    """
    Admins see every warehouse, whatever warehouse they are attached to.
    Other users only see their assigned warehouse, and nothing while unassigned.
    """
    if is_admin(current_user):
        return True
    assigned = current_user.get("entrepot_id")
    return assigned is not None and assigned == entrepot_id


class WarehouseScopeGuard:
    """
    Class-based guard restricting users to the warehouse they are assigned to.

    Usage:
        scope_guard = WarehouseScopeGuard()

        @router.get("/trucks/{truck_id}")
        async def get_truck(truck_id: int, current_user: dict = Depends(get_current_user), ...):
            truck = await repo.get(truck_id)
            scope_guard.enforce(truck.entrepot_id, current_user)
            return truck
    """

    def enforce(
        self,
        entrepot_id: int,
        current_user: dict,
        resource_name: str = "warehouse"
    ):
        """
        Raise 403 when the resource belongs to another warehouse.

        Raises:
            HTTPException 403 if the scope check fails
        """
        if not can_access_warehouse(entrepot_id, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. This {resource_name} belongs to another warehouse."
            )

    def filter_by_scope(self, current_user: dict) -> Optional[int]:
        """
        Get the warehouse id to filter database queries by.

        Returns:
            Warehouse id to filter by, or None for admins

        Raises:
            HTTPException 403 for a non-admin user without a warehouse
        """
        if is_admin(current_user):
            return None

        assigned = current_user.get("entrepot_id")
        if assigned is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. No warehouse is assigned to this account."
            )
        return assigned


scope_guard = WarehouseScopeGuard()
