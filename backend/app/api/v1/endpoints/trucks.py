"""
Truck API endpoints.

Registration at the gate, filtered warehouse views with per-tab counters,
truck detail and admin comments.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import REGISTRATION_ROLES, require_admin, require_role, scope_guard
from backend.app.db.session import get_db
from backend.app.domain.workflow.truck_filters import TAB_PREDICATES, PERIODS, count_by_tab, filter_trucks
from backend.app.models.truck_enums import TruckStatus
from backend.app.schemas.truck import (
    TruckCreate, TruckResponse, TruckListResponse, TruckCountsResponse, CommentRequest
)
from backend.app.services import truck_service
from backend.app.services.truck_repository import TruckRepository, get_truck_repository
from backend.app.services.warehouse_service import WarehouseRepository

router = APIRouter(tags=["Trucks"])

TAB_PATTERN = "^(" + "|".join(TAB_PREDICATES) + ")$"
PERIOD_PATTERN = "^(" + "|".join(PERIODS) + ")$"


async def _scoped_warehouse(db: AsyncSession, warehouse_id: int, current_user: dict) -> None:
    await WarehouseRepository(db).get(warehouse_id)
    scope_guard.enforce(warehouse_id, current_user)


@router.get("/warehouses/{warehouse_id}/trucks", response_model=TruckListResponse)
async def list_warehouse_trucks(
    warehouse_id: int,
    tab: str = Query("tous", pattern=TAB_PATTERN),
    search: Optional[str] = Query(None, max_length=200),
    period: str = Query("all", pattern=PERIOD_PATTERN),
    statut: Optional[TruckStatus] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    repo: TruckRepository = Depends(get_truck_repository)
):
    """
    Trucks of a warehouse for one tab of the warehouse view, in arrival order.
    """
    await _scoped_warehouse(repo.db, warehouse_id, current_user)

    trucks = filter_trucks(
        await repo.list(warehouse_id), tab=tab, search=search, period=period, status=statut
    )
    return TruckListResponse(
        trucks=[TruckResponse.model_validate(t) for t in trucks],
        total=len(trucks)
    )


@router.get("/warehouses/{warehouse_id}/trucks/counts", response_model=TruckCountsResponse)
async def count_warehouse_trucks(
    warehouse_id: int,
    current_user: dict = Depends(get_current_user),
    repo: TruckRepository = Depends(get_truck_repository)
):
    """Number of trucks behind each tab of the warehouse view."""
    await _scoped_warehouse(repo.db, warehouse_id, current_user)
    return TruckCountsResponse(entrepot_id=warehouse_id, counts=count_by_tab(await repo.list(warehouse_id)))


@router.post(
    "/warehouses/{warehouse_id}/trucks",
    response_model=TruckResponse,
    status_code=status.HTTP_201_CREATED
)
async def register_truck(
    warehouse_id: int,
    truck_data: TruckCreate,
    current_user: dict = Depends(require_role(REGISTRATION_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Register an arriving truck (front desk, manager or admin).

    The truck starts as "Enregistré", or "Refoulé" when
    ``receptionStatus`` is "Refouler".
    """
    truck = await truck_service.register_truck(
        db,
        warehouse_id,
        truck_data.model_dump(exclude={"reception_status"}),
        current_user,
        decision=truck_data.reception_status,
    )
    return TruckResponse.model_validate(truck)


@router.get("/trucks/{truck_id}", response_model=TruckResponse)
async def get_truck(
    truck_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Truck detail. Opening it clears the caller's unread flag.
    """
    truck = await truck_service.open_truck(db, truck_id, current_user)
    return TruckResponse.model_validate(truck)


@router.patch("/trucks/{truck_id}/comment", response_model=TruckResponse)
async def comment_truck(
    truck_id: int,
    request: CommentRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set or clear the admin comment of a truck (admin-only)."""
    truck = await truck_service.set_comment(db, truck_id, request.comment, admin)
    return TruckResponse.model_validate(truck)
