"""
Truck database model.

A truck record follows the reception workflow from front-desk registration
to final acceptance. Its ``history`` column is an append-only audit trail.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum, JSON
from backend.app.db.session import Base
from backend.app.models.truck_enums import TruckStatus, AdvancedStatus


class Truck(Base):
    """
    Truck model.

    ``statut`` and ``advanced_status`` are written together by the workflow
    engine; see ``backend.app.domain.workflow.truck_workflow``.
    """
    __tablename__ = "trucks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership - immutable after creation
    entrepot_id = Column(
        Integer, ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Identification
    immatriculation = Column(String(50), nullable=False, index=True)
    transporteur = Column(String(200), nullable=False, default="")
    transfert = Column(String(200), nullable=False, default="")
    cooperative = Column(String(200), nullable=False, default="")

    # Analysis codes
    kor = Column(String(100), nullable=False, default="")
    th = Column(String(100), nullable=False, default="")

    # Status
    statut = Column(Enum(TruckStatus), default=TruckStatus.ENREGISTRE, nullable=False, index=True)
    advanced_status = Column(Enum(AdvancedStatus), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    heure_arrivee = Column(DateTime(timezone=True), nullable=False)
    analysed_at = Column(DateTime(timezone=True), nullable=True)
    validated_at = Column(DateTime(timezone=True), nullable=True)
    refused_at = Column(DateTime(timezone=True), nullable=True)
    renvoye_at = Column(DateTime(timezone=True), nullable=True)
    reintegrated_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    final_accepted_at = Column(DateTime(timezone=True), nullable=True)
    discharged_at = Column(DateTime(timezone=True), nullable=True)

    # [{"event": str, "by": "admin"|"gerant", "date": ISO-8601}, ...]
    history = Column(JSON, nullable=False, default=list)

    # {"numero_lot", "nombre_sacs", "poids_brut", "poids_net"}
    products = Column(JSON, nullable=True)

    # Cross-role notification mailbox
    unread_for_admin = Column(Boolean, default=False, nullable=False, index=True)
    unread_for_gerant = Column(Boolean, default=False, nullable=False, index=True)

    comment = Column(Text, nullable=True)

    # Optimistic concurrency: stale writes raise StaleDataError on flush
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Truck(id={self.id}, immatriculation='{self.immatriculation}', statut='{self.statut.value}')>"
