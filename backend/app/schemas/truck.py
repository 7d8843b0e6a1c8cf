"""
Truck Pydantic schemas.

Request bodies for registration and each workflow action, and the truck
representation returned by every truck endpoint.
"""

from pydantic import Field, field_validator, model_validator
from datetime import datetime, timezone
from typing import Optional, List, Dict
from backend.app.models.truck_enums import (
    TruckStatus, AdvancedStatus, HistoryActor, ReceptionDecision
)
from backend.app.schemas.common import CamelModel


class TruckCreate(CamelModel):
    """
    Schema for registering an arriving truck.

    ``receptionStatus = "Refouler"`` records a truck turned away at the gate.
    """
    immatriculation: str = Field(..., min_length=1, max_length=50, description="License plate")
    transporteur: str = Field(default="", max_length=200, description="Carrier")
    transfert: str = Field(default="", max_length=200)
    cooperative: str = Field(default="", max_length=200)
    heure_arrivee: Optional[datetime] = Field(None, description="Arrival time, defaults to now")
    reception_status: ReceptionDecision = Field(default=ReceptionDecision.MISE_EN_ATTENTE)

    @field_validator("immatriculation")
    @classmethod
    def strip_plate(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("immatriculation cannot be blank")
        return value

    @field_validator("heure_arrivee")
    @classmethod
    def arrival_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class VersionedRequest(CamelModel):
    """Workflow request body. ``version`` is the truck version the client last read."""
    version: Optional[int] = Field(None, ge=1)


class AnalysisRequest(VersionedRequest):
    """Schema for submitting the KOR/TH analysis."""
    kor: str = Field(..., min_length=1, max_length=100)
    th: str = Field(..., min_length=1, max_length=100)


class RefuseRequest(VersionedRequest):
    """Schema for an admin refusal."""
    comment: Optional[str] = Field(None, max_length=2000)


class ProductsPayload(CamelModel):
    """Products recorded when the reception is accepted."""
    numero_lot: str = Field(..., min_length=1, max_length=100, description="Lot number")
    nombre_sacs: int = Field(..., ge=1, description="Bag count")
    poids_brut: float = Field(..., gt=0, description="Gross weight")
    poids_net: float = Field(..., gt=0, description="Net weight")

    @model_validator(mode="after")
    def net_not_above_gross(self):
        if self.poids_net > self.poids_brut:
            raise ValueError("poidsNet cannot exceed poidsBrut")
        return self


class ProductsRequest(VersionedRequest):
    """Schema for recording products."""
    products: ProductsPayload


class CommentRequest(CamelModel):
    comment: Optional[str] = Field(None, max_length=2000)


class HistoryEntry(CamelModel):
    event: str
    by: HistoryActor
    date: str


class TruckResponse(CamelModel):
    """Schema for truck response."""
    id: int
    entrepot_id: int
    immatriculation: str
    transporteur: str
    transfert: str
    cooperative: str
    kor: str
    th: str
    statut: TruckStatus
    advanced_status: Optional[AdvancedStatus] = None
    created_at: datetime
    heure_arrivee: datetime
    analysed_at: Optional[datetime] = None
    validated_at: Optional[datetime] = None
    refused_at: Optional[datetime] = None
    renvoye_at: Optional[datetime] = None
    reintegrated_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    final_accepted_at: Optional[datetime] = None
    discharged_at: Optional[datetime] = None
    history: List[HistoryEntry] = Field(default_factory=list)
    products: Optional[ProductsPayload] = None
    unread_for_admin: bool
    unread_for_gerant: bool
    comment: Optional[str] = None
    version: int

    @field_validator("history", mode="before")
    @classmethod
    def history_as_list(cls, value):
        # Malformed stored history is shown as empty rather than failing the view
        return value if isinstance(value, list) else []


class TruckListResponse(CamelModel):
    """Schema for a filtered truck list."""
    trucks: List[TruckResponse]
    total: int


class TruckCountsResponse(CamelModel):
    """Number of trucks per tab of the warehouse view."""
    entrepot_id: int
    counts: Dict[str, int]
