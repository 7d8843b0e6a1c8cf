"""
Notification Service.

Each truck carries a two-flag mailbox: ``unread_for_admin`` and
``unread_for_gerant``. Workflow transitions raise the flag of the other role
(see ``truck_workflow.TRANSITIONS``); opening the truck or marking it read
clears the caller's own flag.
"""

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.guards import scope_guard
from backend.app.domain.workflow.truck_workflow import FLAG_FIELDS, actor_for_role
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import HistoryActor, TruckStatus


class NotificationService:

    @staticmethod
    def flag_for_role(role) -> str:
        """Name of the flag read by this role."""
        return FLAG_FIELDS[actor_for_role(role)]

    @staticmethod
    def mark_seen(truck: Truck, role) -> bool:
        """
        Clear the caller's flag. History is left untouched.

        Returns:
            True if the flag was set before
        """
        name = NotificationService.flag_for_role(role)
        if not getattr(truck, name):
            return False
        setattr(truck, name, False)
        return True

    @staticmethod
    async def admin_feed(db: AsyncSession, entrepot_id: Optional[int] = None) -> List[Truck]:
        """Trucks waiting for an admin decision or flagged for the admin, newest first."""
        query = select(Truck).where(
            or_(Truck.statut == TruckStatus.EN_ATTENTE, Truck.unread_for_admin.is_(True))
        )
        if entrepot_id is not None:
            query = query.where(Truck.entrepot_id == entrepot_id)
        query = query.order_by(Truck.created_at.desc(), Truck.id.desc())

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def gerant_feed(db: AsyncSession, entrepot_id: Optional[int] = None) -> List[Truck]:
        """Trucks flagged for the warehouse manager, newest first."""
        query = select(Truck).where(Truck.unread_for_gerant.is_(True))
        if entrepot_id is not None:
            query = query.where(Truck.entrepot_id == entrepot_id)
        query = query.order_by(Truck.created_at.desc(), Truck.id.desc())

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def feed_for(db: AsyncSession, current_user: dict) -> List[Truck]:
        """Feed matching the caller's role and warehouse scope."""
        entrepot_id = scope_guard.filter_by_scope(current_user)
        if actor_for_role(current_user.get("role")) == HistoryActor.ADMIN:
            return await NotificationService.admin_feed(db, entrepot_id)
        return await NotificationService.gerant_feed(db, entrepot_id)
