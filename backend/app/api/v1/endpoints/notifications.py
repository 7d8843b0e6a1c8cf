"""
Notification API Endpoints.

Reads the two-flag mailbox carried by each truck.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.schemas.notification import NotificationFeedResponse
from backend.app.schemas.truck import TruckResponse
from backend.app.services.notification_service import NotificationService
from backend.app.services.truck_service import open_truck

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationFeedResponse)
async def get_notifications(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Admins: trucks awaiting a decision or flagged for them.
    Other roles: trucks flagged for the manager in their warehouse.
    """
    trucks = await NotificationService.feed_for(db, current_user)
    flag = NotificationService.flag_for_role(current_user.get("role"))

    return NotificationFeedResponse(
        trucks=[TruckResponse.model_validate(t) for t in trucks],
        unread_count=sum(1 for t in trucks if getattr(t, flag))
    )


@router.patch("/trucks/{truck_id}/read", response_model=TruckResponse)
async def mark_truck_read(
    truck_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Clear the caller's unread flag on one truck. History is unchanged."""
    truck = await open_truck(db, truck_id, current_user)
    return TruckResponse.model_validate(truck)
