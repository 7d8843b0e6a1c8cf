"""
Truck reception service.

Glues the workflow engine to persistence: load one truck, plan the action,
apply it, commit the single record, then write the audit entry.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ConcurrentUpdateError
from backend.app.core.guards import scope_guard
from backend.app.domain.workflow.truck_workflow import (
    WorkflowAction,
    actor_for_role,
    apply_outcome,
    plan_transition,
    registration_fields,
)
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import ReceptionDecision
from backend.app.services.audit import AuditAction, log_user_action
from backend.app.services.notification_service import NotificationService
from backend.app.services.truck_repository import TruckRepository
from backend.app.services.warehouse_service import WarehouseRepository


async def register_truck(
    db: AsyncSession,
    entrepot_id: int,
    data: Dict[str, Any],
    current_user: dict,
    decision: ReceptionDecision = ReceptionDecision.MISE_EN_ATTENTE,
) -> Truck:
    """
    Register an arriving truck at a warehouse.

    Raises:
        ResourceNotFoundError: the warehouse does not exist
        HTTPException 403: the warehouse is outside the user's scope
        DomainValidationError: ``immatriculation`` is missing
    """
    await WarehouseRepository(db).get(entrepot_id)
    scope_guard.enforce(entrepot_id, current_user)

    fields = registration_fields(data, actor_for_role(current_user.get("role")), decision=decision)
    fields["entrepot_id"] = entrepot_id

    repo = TruckRepository(db)
    truck = await repo.stage(fields)

    await log_user_action(
        db, current_user, AuditAction.TRUCK_REGISTERED, "truck", truck.id,
        metadata={
            "entrepot_id": entrepot_id,
            "immatriculation": truck.immatriculation,
            "statut": truck.statut.value,
        },
        commit=False,
    )
    return await repo.save(truck)


async def get_scoped_truck(db: AsyncSession, truck_id: int, current_user: dict) -> Truck:
    """Load a truck and check it belongs to the caller's warehouse scope."""
    truck = await TruckRepository(db).get(truck_id)
    scope_guard.enforce(truck.entrepot_id, current_user, "truck")
    return truck


async def perform_action(
    db: AsyncSession,
    truck_id: int,
    action: WorkflowAction,
    current_user: dict,
    expected_version: Optional[int] = None,
    **payload: Any,
) -> Truck:
    """
    Run one workflow action on a truck and persist it.

    Args:
        db: Database session
        truck_id: Truck to act on
        action: Workflow action
        current_user: Authenticated user payload
        expected_version: Version the client last saw, if it sent one
        **payload: Action fields (kor/th, comment, products)

    Raises:
        InvalidTransitionError, InsufficientPermissionsError, DomainValidationError:
            raised by the engine before anything is written
        ConcurrentUpdateError: the truck changed since ``expected_version``
        PersistenceError: the write failed and was rolled back
    """
    repo = TruckRepository(db)
    truck = await get_scoped_truck(db, truck_id, current_user)

    if expected_version is not None and truck.version != expected_version:
        raise ConcurrentUpdateError("Truck", truck_id)

    outcome = plan_transition(truck, action, actor_for_role(current_user.get("role")), **payload)
    apply_outcome(truck, outcome)

    # The audit row and the truck change are committed together
    await log_user_action(
        db, current_user, AuditAction.for_workflow(action), "truck", truck.id,
        metadata={
            "statut": truck.statut.value,
            "advanced_status": truck.advanced_status.value if truck.advanced_status else None,
        },
        commit=False,
    )
    return await repo.save(truck)


async def open_truck(db: AsyncSession, truck_id: int, current_user: dict) -> Truck:
    """
    Read a truck as its detail view does: the caller's unread flag is cleared.
    """
    truck = await get_scoped_truck(db, truck_id, current_user)
    if NotificationService.mark_seen(truck, current_user.get("role")):
        truck = await TruckRepository(db).save(truck)
    return truck


async def set_comment(db: AsyncSession, truck_id: int, comment: Optional[str], current_user: dict) -> Truck:
    """Replace the admin annotation of a truck. Status and history are unchanged."""
    await get_scoped_truck(db, truck_id, current_user)
    await log_user_action(db, current_user, AuditAction.TRUCK_COMMENTED, "truck", truck_id, commit=False)
    return await TruckRepository(db).update(truck_id, {"comment": comment})
