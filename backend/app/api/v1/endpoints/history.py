"""
History API endpoint.

Every truck of the caller's scope, most recent first, with the same search,
period and status filters as the warehouse view.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import scope_guard
from backend.app.domain.workflow.truck_filters import PERIODS, filter_trucks
from backend.app.models.truck_enums import TruckStatus
from backend.app.schemas.truck import TruckListResponse, TruckResponse
from backend.app.services.truck_repository import TruckRepository, get_truck_repository

router = APIRouter(prefix="/history", tags=["History"])

PERIOD_PATTERN = "^(" + "|".join(PERIODS) + ")$"


@router.get("", response_model=TruckListResponse)
async def get_history(
    warehouse_id: Optional[int] = Query(None, alias="warehouseId"),
    statut: Optional[TruckStatus] = Query(None, alias="status"),
    period: str = Query("all", pattern=PERIOD_PATTERN),
    search: Optional[str] = Query(None, max_length=200),
    current_user: dict = Depends(get_current_user),
    repo: TruckRepository = Depends(get_truck_repository)
):
    """
    Truck history, newest first.

    Users bound to a warehouse only see that warehouse, whatever
    ``warehouseId`` they ask for.
    """
    scope = scope_guard.filter_by_scope(current_user)
    if scope is not None and warehouse_id is not None:
        scope_guard.enforce(warehouse_id, current_user)

    trucks = filter_trucks(
        await repo.list_all(scope),
        search=search,
        period=period,
        status=statut,
        warehouse_id=warehouse_id,
        newest_first=True,
    )
    return TruckListResponse(
        trucks=[TruckResponse.model_validate(t) for t in trucks],
        total=len(trucks)
    )
