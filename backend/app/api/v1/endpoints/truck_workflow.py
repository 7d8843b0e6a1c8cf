"""
Truck workflow API endpoints.

One endpoint per workflow action. Manager ("gérant") actions are open to
operators, decisions to admins. Preconditions on the truck's current status
are enforced by the workflow engine (409 on mismatch).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.guards import MANAGER_ROLES, require_admin, require_role
from backend.app.db.session import get_db
from backend.app.domain.workflow.truck_workflow import WorkflowAction
from backend.app.schemas.truck import (
    AnalysisRequest, RefuseRequest, ProductsRequest, VersionedRequest, TruckResponse
)
from backend.app.services.truck_service import perform_action

router = APIRouter(prefix="/trucks", tags=["Truck Workflow"])


@router.post("/{truck_id}/analysis", response_model=TruckResponse)
async def submit_analysis(
    truck_id: int,
    request: AnalysisRequest,
    current_user: dict = Depends(require_role(MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Record KOR/TH: "Enregistré" → "En attente".
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.SUBMIT_ANALYSIS, current_user,
        expected_version=request.version, kor=request.kor, th=request.th
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/validate", response_model=TruckResponse)
async def validate_truck(
    truck_id: int,
    request: VersionedRequest = VersionedRequest(),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Admin approval: "En attente" → "Validé". Notifies the manager.
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.VALIDATE, admin, expected_version=request.version
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/refuse", response_model=TruckResponse)
async def refuse_truck(
    truck_id: int,
    request: RefuseRequest = RefuseRequest(),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Admin refusal: "En attente" → "Annulé" awaiting the manager.
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.REFUSE, admin,
        expected_version=request.version, comment=request.comment
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/resend", response_model=TruckResponse)
async def resend_truck(
    truck_id: int,
    request: VersionedRequest = VersionedRequest(),
    current_user: dict = Depends(require_role(MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Manager sends a refused truck back to the admin for a second decision.
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.RESEND, current_user, expected_version=request.version
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/reintegrate", response_model=TruckResponse)
async def reintegrate_truck(
    truck_id: int,
    request: VersionedRequest = VersionedRequest(),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Admin reinstates a resent truck: back to "Validé".
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.REINTEGRATE, admin, expected_version=request.version
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/reject", response_model=TruckResponse)
async def reject_truck(
    truck_id: int,
    request: VersionedRequest = VersionedRequest(),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Admin turns a resent truck away for good: "Refoulé".
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.REJECT_FINAL, admin, expected_version=request.version
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/products", response_model=TruckResponse)
async def fill_products(
    truck_id: int,
    request: ProductsRequest,
    current_user: dict = Depends(require_role(MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Manager records lot, bags and weights: reception accepted.
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.FILL_PRODUCTS, current_user,
        expected_version=request.version, products=request.products.model_dump()
    )
    return TruckResponse.model_validate(truck)


@router.post("/{truck_id}/discharge", response_model=TruckResponse)
async def discharge_truck(
    truck_id: int,
    request: VersionedRequest = VersionedRequest(),
    current_user: dict = Depends(require_role(MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Manager closes an accepted reception once unloading is finished.
    """
    truck = await perform_action(
        db, truck_id, WorkflowAction.DISCHARGE, current_user, expected_version=request.version
    )
    return TruckResponse.model_validate(truck)
