"""
Warehouse API endpoints.

Every authenticated user can read the warehouses in their scope; only
admins create, edit or delete them.
"""

from fastapi import APIRouter, Depends, status
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_admin, scope_guard
from backend.app.schemas.warehouse import (
    WarehouseCreate, WarehouseUpdate, WarehouseResponse,
    WarehouseListResponse, WarehouseDeleteResponse
)
from backend.app.services.audit import log_user_action, AuditAction
from backend.app.services.warehouse_service import WarehouseRepository, get_warehouse_repository

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


@router.get("", response_model=WarehouseListResponse)
async def list_warehouses(
    current_user: dict = Depends(get_current_user),
    repo: WarehouseRepository = Depends(get_warehouse_repository)
):
    """List the warehouses visible to the caller."""
    warehouses = await repo.list()
    scope = scope_guard.filter_by_scope(current_user)
    if scope is not None:
        warehouses = [w for w in warehouses if w.id == scope]

    return WarehouseListResponse(
        warehouses=[WarehouseResponse.model_validate(w) for w in warehouses],
        total=len(warehouses)
    )


@router.post("", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
async def create_warehouse(
    warehouse_data: WarehouseCreate,
    admin: dict = Depends(require_admin),
    repo: WarehouseRepository = Depends(get_warehouse_repository)
):
    """Create a warehouse (admin-only)."""
    warehouse = await repo.create(warehouse_data.model_dump())

    await log_user_action(
        repo.db, admin, AuditAction.WAREHOUSE_CREATED, "warehouse", warehouse.id,
        metadata={"name": warehouse.name}
    )
    return WarehouseResponse.model_validate(warehouse)


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(
    warehouse_id: int,
    current_user: dict = Depends(get_current_user),
    repo: WarehouseRepository = Depends(get_warehouse_repository)
):
    """Get one warehouse."""
    warehouse = await repo.get(warehouse_id)
    scope_guard.enforce(warehouse.id, current_user)
    return WarehouseResponse.model_validate(warehouse)


@router.patch("/{warehouse_id}", response_model=WarehouseResponse)
async def update_warehouse(
    warehouse_id: int,
    changes: WarehouseUpdate,
    admin: dict = Depends(require_admin),
    repo: WarehouseRepository = Depends(get_warehouse_repository)
):
    """Update name, location or image of a warehouse (admin-only)."""
    fields = changes.model_dump(exclude_unset=True)
    warehouse = await repo.update(warehouse_id, fields)

    await log_user_action(
        repo.db, admin, AuditAction.WAREHOUSE_UPDATED, "warehouse", warehouse.id,
        metadata={"fields": sorted(fields)}
    )
    return WarehouseResponse.model_validate(warehouse)


@router.delete("/{warehouse_id}", response_model=WarehouseDeleteResponse)
async def delete_warehouse(
    warehouse_id: int,
    admin: dict = Depends(require_admin),
    repo: WarehouseRepository = Depends(get_warehouse_repository)
):
    """
    Delete a warehouse (admin-only).

    Its trucks are deleted in the same transaction and its users lose
    their assignment.
    """
    removed = await repo.delete(warehouse_id)

    await log_user_action(
        repo.db, admin, AuditAction.WAREHOUSE_DELETED, "warehouse", warehouse_id,
        metadata={"trucks_removed": removed}
    )
    return WarehouseDeleteResponse(success=True, warehouse_id=warehouse_id, trucks_removed=removed)
