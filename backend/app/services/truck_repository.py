"""
Truck persistence.

Per-record reads and writes of truck rows. Every write commits a single
record, so a failed update never leaves a history entry behind without its
status change.
"""

from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ConcurrentUpdateError, ResourceNotFoundError
from backend.app.db.session import commit_or_rollback, flush_or_rollback, get_db
from backend.app.models.truck import Truck

# Columns a caller may never overwrite through ``update``
IMMUTABLE_FIELDS = {"id", "entrepot_id", "created_at", "version"}


class TruckRepository:
    """Truck store bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, entrepot_id: int) -> List[Truck]:
        """Trucks of one warehouse, in insertion order."""
        return await self.list_all(entrepot_id)

    async def list_all(self, entrepot_id: Optional[int] = None) -> List[Truck]:
        """Every truck, optionally restricted to one warehouse."""
        query = select(Truck).order_by(Truck.id)
        if entrepot_id is not None:
            query = query.where(Truck.entrepot_id == entrepot_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, truck_id: int) -> Truck:
        """
        Raises:
            ResourceNotFoundError: no truck with this id
        """
        result = await self.db.execute(select(Truck).where(Truck.id == truck_id))
        truck = result.scalar_one_or_none()
        if truck is None:
            raise ResourceNotFoundError("Truck", truck_id)
        return truck

    async def create(self, fields: Dict[str, Any]) -> Truck:
        """Insert a truck; the store assigns its id."""
        truck = Truck(**fields)
        self.db.add(truck)
        await commit_or_rollback(self.db, "Truck")
        await self.db.refresh(truck)
        return truck

    async def stage(self, fields: Dict[str, Any]) -> Truck:
        """Insert a truck inside the current transaction. The caller commits with ``save``."""
        truck = Truck(**fields)
        self.db.add(truck)
        await flush_or_rollback(self.db, "Truck")
        return truck

    async def save(self, truck: Truck) -> Truck:
        """Commit pending changes of an already loaded truck."""
        await commit_or_rollback(self.db, "Truck", truck.id)
        await self.db.refresh(truck)
        return truck

    async def update(
        self,
        truck_id: int,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Truck:
        """
        Apply a partial update to one truck.

        Args:
            truck_id: Truck to update
            fields: Column values to set
            expected_version: Version the caller read; a mismatch fails

        Raises:
            ResourceNotFoundError: no truck with this id
            ConcurrentUpdateError: the truck changed since ``expected_version``
            ValueError: ``fields`` names an immutable column
        """
        forbidden = IMMUTABLE_FIELDS.intersection(fields)
        if forbidden:
            raise ValueError(f"Cannot update immutable fields: {', '.join(sorted(forbidden))}")

        truck = await self.get(truck_id)
        if expected_version is not None and truck.version != expected_version:
            raise ConcurrentUpdateError("Truck", truck_id)

        for name, value in fields.items():
            setattr(truck, name, value)
        return await self.save(truck)

    async def delete_for_warehouse(self, entrepot_id: int) -> int:
        """
        Delete every truck of a warehouse. The caller commits.

        Returns:
            Number of deleted trucks
        """
        result = await self.db.execute(delete(Truck).where(Truck.entrepot_id == entrepot_id))
        return result.rowcount or 0


def get_truck_repository(db: AsyncSession = Depends(get_db)) -> TruckRepository:
    """FastAPI dependency providing a request-scoped repository."""
    return TruckRepository(db)
