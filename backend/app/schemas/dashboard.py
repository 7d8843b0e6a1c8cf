"""
Dashboard Pydantic schemas.

Read-only KPI models for the admin and warehouse dashboards.
"""

from pydantic import Field
from typing import Optional, List
from backend.app.schemas.common import CamelModel


class DashboardStats(CamelModel):
    """KPIs over the trucks of a scope created within a period."""
    period: str
    entrepot_id: Optional[int] = None
    total_presents: int = Field(..., description="Trucks created in the period")
    en_attente: int
    en_dechargement: int = Field(..., description="Validé and not yet accepted")
    decharges: int = Field(..., description="Reception accepted (ACCEPTE_FINAL)")
    annules: int
    attente_decision_admin: int = Field(..., description="Flagged for the admin")
    refuses_attente_gerant: int
    refuses_renvoyes: int
    reintegres: int


class WarehouseCard(CamelModel):
    """One card of the admin warehouse overview."""
    id: int
    name: str
    location: str
    image_url: Optional[str] = None
    pending: int
    active: int
    discharged: int


class WarehouseCardsResponse(CamelModel):
    cards: List[WarehouseCard]
