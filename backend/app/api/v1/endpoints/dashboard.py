"""
Dashboard API Endpoints.

Read-only KPI data. Admins see every warehouse; other users see the
warehouse they are assigned to.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import scope_guard
from backend.app.services.analytics import AnalyticsService, DASHBOARD_PERIODS
from backend.app.schemas.dashboard import DashboardStats, WarehouseCardsResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

PERIOD_PATTERN = "^(" + "|".join(DASHBOARD_PERIODS) + ")$"


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    period: str = Query("day", pattern=PERIOD_PATTERN),
    warehouse_id: Optional[int] = Query(None, alias="warehouseId"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """KPIs of the trucks created during the period."""
    scope = scope_guard.filter_by_scope(current_user)
    if warehouse_id is not None:
        scope_guard.enforce(warehouse_id, current_user)
        scope = warehouse_id
    return await AnalyticsService.get_dashboard_stats(db, period, scope)


@router.get("/warehouses", response_model=WarehouseCardsResponse)
async def get_warehouse_cards(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """One card per visible warehouse with waiting, in-progress and accepted counts."""
    cards = await AnalyticsService.get_warehouse_cards(db, scope_guard.filter_by_scope(current_user))
    return WarehouseCardsResponse(cards=cards)
