"""
Warehouse persistence.

Deleting a warehouse removes its trucks and unassigns its users in the same
transaction.
"""

import logging
from typing import Any, Dict, List

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.db.session import commit_or_rollback, get_db
from backend.app.models.user import User
from backend.app.models.warehouse import Warehouse
from backend.app.services.truck_repository import TruckRepository

logger = logging.getLogger("reception.warehouses")

EDITABLE_FIELDS = ("name", "location", "image_url")


class WarehouseRepository:
    """Warehouse store bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, warehouse_id: int) -> Warehouse:
        """
        Raises:
            ResourceNotFoundError: no warehouse with this id
        """
        warehouse = await self.db.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise ResourceNotFoundError("Warehouse", warehouse_id)
        return warehouse

    async def list(self) -> List[Warehouse]:
        result = await self.db.execute(select(Warehouse).order_by(Warehouse.id))
        return list(result.scalars().all())

    async def first(self):
        """Oldest warehouse, or None when there is none."""
        result = await self.db.execute(select(Warehouse).order_by(Warehouse.id).limit(1))
        return result.scalar_one_or_none()

    async def create(self, fields: Dict[str, Any]) -> Warehouse:
        warehouse = Warehouse(**{name: fields.get(name) for name in EDITABLE_FIELDS})
        self.db.add(warehouse)
        await commit_or_rollback(self.db, "Warehouse")
        await self.db.refresh(warehouse)
        return warehouse

    async def update(self, warehouse_id: int, fields: Dict[str, Any]) -> Warehouse:
        warehouse = await self.get(warehouse_id)
        for name in EDITABLE_FIELDS:
            if name in fields:
                setattr(warehouse, name, fields[name])
        await commit_or_rollback(self.db, "Warehouse", warehouse_id)
        await self.db.refresh(warehouse)
        return warehouse

    async def delete(self, warehouse_id: int) -> int:
        """
        Delete a warehouse together with its trucks.

        Users assigned to the warehouse keep their account with no
        assignment.

        Returns:
            Number of trucks removed with the warehouse

        Raises:
            ResourceNotFoundError: no warehouse with this id
        """
        warehouse = await self.get(warehouse_id)

        removed = await TruckRepository(self.db).delete_for_warehouse(warehouse_id)
        await self.db.execute(
            update(User).where(User.entrepot_id == warehouse_id).values(entrepot_id=None)
        )
        await self.db.delete(warehouse)
        await commit_or_rollback(self.db, "Warehouse", warehouse_id)

        logger.info("Warehouse %s deleted with %s trucks", warehouse_id, removed)
        return removed


def get_warehouse_repository(db: AsyncSession = Depends(get_db)) -> WarehouseRepository:
    """FastAPI dependency providing a request-scoped repository."""
    return WarehouseRepository(db)
