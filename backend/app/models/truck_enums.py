"""
Truck-related enumerations.
"""

import enum


class TruckStatus(str, enum.Enum):
    """
    Primary truck status.

    Status flow:
        ENREGISTRE → EN_ATTENTE → VALIDE → DECHARGE
        EN_ATTENTE → ANNULE (refused, back to the manager) → VALIDE or REFOULE
        Gate refusal creates the truck directly as REFOULE
    """
    ENREGISTRE = "Enregistré"
    EN_ATTENTE = "En attente"
    VALIDE = "Validé"
    REFOULE = "Refoulé"
    DECHARGE = "Déchargé"
    ANNULE = "Annulé"


class AdvancedStatus(str, enum.Enum):
    """Finer-grained marker, only meaningful together with a TruckStatus."""
    REFUSE_EN_ATTENTE_GERANT = "REFUSE_EN_ATTENTE_GERANT"  # Refused by admin, manager must react
    REFUSE_RENVOYE = "REFUSE_RENVOYE"  # Manager sent it back to the admin
    REFUSE_REINTEGRE = "REFUSE_REINTEGRE"  # Admin reinstated a resent truck
    ACCEPTE_FINAL = "ACCEPTE_FINAL"  # Products recorded, reception accepted


class HistoryActor(str, enum.Enum):
    """Who appears in the ``by`` field of a history entry."""
    ADMIN = "admin"
    GERANT = "gerant"


class ReceptionDecision(str, enum.Enum):
    """Front-desk decision taken when the truck is registered."""
    MISE_EN_ATTENTE = "Mise en attente"
    REFOULER = "Refouler"
