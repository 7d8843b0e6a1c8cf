"""
Truck Reception Workflow Engine.

Pure state-transition logic for a truck record. Nothing here touches the
database: ``plan_transition`` computes what an action does to a truck and
``apply_outcome`` writes that result onto the record in one step. The caller
persists the record.

Status flow:
    Enregistré --SUBMIT_ANALYSIS--> En attente
    En attente --VALIDATE--> Validé
    En attente --REFUSE--> Annulé / REFUSE_EN_ATTENTE_GERANT
    Annulé / REFUSE_EN_ATTENTE_GERANT --RESEND--> Annulé / REFUSE_RENVOYE
    Annulé / REFUSE_RENVOYE --REINTEGRATE--> Validé / REFUSE_REINTEGRE
    Annulé / REFUSE_RENVOYE --REJECT_FINAL--> Refoulé
    Validé (none or REFUSE_REINTEGRE) --FILL_PRODUCTS--> Validé / ACCEPTE_FINAL
    Validé / ACCEPTE_FINAL --DISCHARGE--> Déchargé / ACCEPTE_FINAL
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Optional, Tuple

from backend.app.core.exceptions import (
    DomainValidationError,
    InsufficientPermissionsError,
    InvalidStatusPairError,
    InvalidTransitionError,
)
from backend.app.models.enums import UserRole
from backend.app.models.truck_enums import (
    AdvancedStatus,
    HistoryActor,
    ReceptionDecision,
    TruckStatus,
)

logger = logging.getLogger("reception.workflow")


class WorkflowAction(str, enum.Enum):
    SUBMIT_ANALYSIS = "SUBMIT_ANALYSIS"
    VALIDATE = "VALIDATE"
    REFUSE = "REFUSE"
    RESEND = "RESEND"
    REINTEGRATE = "REINTEGRATE"
    REJECT_FINAL = "REJECT_FINAL"
    FILL_PRODUCTS = "FILL_PRODUCTS"
    DISCHARGE = "DISCHARGE"


StatusPair = Tuple[TruckStatus, Optional[AdvancedStatus]]

VALID_STATUS_PAIRS: Dict[TruckStatus, FrozenSet[Optional[AdvancedStatus]]] = {
    TruckStatus.ENREGISTRE: frozenset({None}),
    TruckStatus.EN_ATTENTE: frozenset({None}),
    TruckStatus.VALIDE: frozenset({None, AdvancedStatus.REFUSE_REINTEGRE, AdvancedStatus.ACCEPTE_FINAL}),
    TruckStatus.ANNULE: frozenset({AdvancedStatus.REFUSE_EN_ATTENTE_GERANT, AdvancedStatus.REFUSE_RENVOYE}),
    TruckStatus.REFOULE: frozenset({None}),
    TruckStatus.DECHARGE: frozenset({AdvancedStatus.ACCEPTE_FINAL}),
}

PRODUCT_FIELDS = ("numero_lot", "nombre_sacs", "poids_brut", "poids_net")


@dataclass(frozen=True)
class Transition:
    """One row of the transition table."""
    action: WorkflowAction
    actor: HistoryActor
    sources: FrozenSet[StatusPair]
    target: StatusPair
    timestamp_field: str
    event: str
    # Role whose unread flag is raised, None when nobody is notified
    notify: Optional[HistoryActor]


TRANSITIONS: Dict[WorkflowAction, Transition] = {
    WorkflowAction.SUBMIT_ANALYSIS: Transition(
        action=WorkflowAction.SUBMIT_ANALYSIS,
        actor=HistoryActor.GERANT,
        sources=frozenset({(TruckStatus.ENREGISTRE, None)}),
        target=(TruckStatus.EN_ATTENTE, None),
        timestamp_field="analysed_at",
        event="Analyse KOR/TH enregistrée",
        notify=None,
    ),
    WorkflowAction.VALIDATE: Transition(
        action=WorkflowAction.VALIDATE,
        actor=HistoryActor.ADMIN,
        sources=frozenset({(TruckStatus.EN_ATTENTE, None)}),
        target=(TruckStatus.VALIDE, None),
        timestamp_field="validated_at",
        event="Camion validé par l'administrateur",
        notify=HistoryActor.GERANT,
    ),
    WorkflowAction.REFUSE: Transition(
        action=WorkflowAction.REFUSE,
        actor=HistoryActor.ADMIN,
        sources=frozenset({(TruckStatus.EN_ATTENTE, None)}),
        target=(TruckStatus.ANNULE, AdvancedStatus.REFUSE_EN_ATTENTE_GERANT),
        timestamp_field="refused_at",
        event="Camion refusé par l'administrateur",
        notify=HistoryActor.GERANT,
    ),
    WorkflowAction.RESEND: Transition(
        action=WorkflowAction.RESEND,
        actor=HistoryActor.GERANT,
        sources=frozenset({(TruckStatus.ANNULE, AdvancedStatus.REFUSE_EN_ATTENTE_GERANT)}),
        target=(TruckStatus.ANNULE, AdvancedStatus.REFUSE_RENVOYE),
        timestamp_field="renvoye_at",
        event="Camion renvoyé à l'administrateur",
        notify=HistoryActor.ADMIN,
    ),
    WorkflowAction.REINTEGRATE: Transition(
        action=WorkflowAction.REINTEGRATE,
        actor=HistoryActor.ADMIN,
        sources=frozenset({(TruckStatus.ANNULE, AdvancedStatus.REFUSE_RENVOYE)}),
        target=(TruckStatus.VALIDE, AdvancedStatus.REFUSE_REINTEGRE),
        timestamp_field="reintegrated_at",
        event="Camion réintégré par l'administrateur",
        notify=HistoryActor.GERANT,
    ),
    WorkflowAction.REJECT_FINAL: Transition(
        action=WorkflowAction.REJECT_FINAL,
        actor=HistoryActor.ADMIN,
        sources=frozenset({(TruckStatus.ANNULE, AdvancedStatus.REFUSE_RENVOYE)}),
        target=(TruckStatus.REFOULE, None),
        timestamp_field="rejected_at",
        event="Camion refoulé définitivement",
        notify=HistoryActor.GERANT,
    ),
    WorkflowAction.FILL_PRODUCTS: Transition(
        action=WorkflowAction.FILL_PRODUCTS,
        actor=HistoryActor.GERANT,
        sources=frozenset({
            (TruckStatus.VALIDE, None),
            (TruckStatus.VALIDE, AdvancedStatus.REFUSE_REINTEGRE),
        }),
        target=(TruckStatus.VALIDE, AdvancedStatus.ACCEPTE_FINAL),
        timestamp_field="final_accepted_at",
        event="Produits enregistrés, réception acceptée",
        notify=HistoryActor.ADMIN,
    ),
    WorkflowAction.DISCHARGE: Transition(
        action=WorkflowAction.DISCHARGE,
        actor=HistoryActor.GERANT,
        sources=frozenset({(TruckStatus.VALIDE, AdvancedStatus.ACCEPTE_FINAL)}),
        target=(TruckStatus.DECHARGE, AdvancedStatus.ACCEPTE_FINAL),
        timestamp_field="discharged_at",
        event="Déchargement terminé",
        notify=HistoryActor.ADMIN,
    ),
}

FLAG_FIELDS = {
    HistoryActor.ADMIN: "unread_for_admin",
    HistoryActor.GERANT: "unread_for_gerant",
}


@dataclass
class TransitionOutcome:
    """Everything an action changes on a truck, computed before any write."""
    action: Optional[WorkflowAction]
    statut: TruckStatus
    advanced_status: Optional[AdvancedStatus]
    history_entry: Dict[str, str]
    timestamps: Dict[str, datetime] = field(default_factory=dict)
    field_updates: Dict[str, Any] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def actor_for_role(role) -> HistoryActor:
    """Admins sign history entries as "admin", every other role as "gerant"."""
    value = role.value if isinstance(role, UserRole) else role
    return HistoryActor.ADMIN if value == UserRole.ADMIN.value else HistoryActor.GERANT


def history_entry(event: str, actor: HistoryActor, now: datetime) -> Dict[str, str]:
    return {"event": event, "by": actor.value, "date": now.isoformat()}


def validate_status_pair(statut: TruckStatus, advanced_status: Optional[AdvancedStatus]) -> None:
    """
    Reject a (statut, advanced_status) combination outside the allowed table.

    Raises:
        InvalidStatusPairError: the pair is not allowed
    """
    allowed = VALID_STATUS_PAIRS.get(statut, frozenset())
    if advanced_status not in allowed:
        raise InvalidStatusPairError(
            statut.value,
            advanced_status.value if advanced_status else None,
        )


def _require_text(fields: Dict[str, Any], *names: str) -> Dict[str, str]:
    values = {}
    missing = []
    for name in names:
        value = fields.get(name)
        if value is None or not str(value).strip():
            missing.append(name)
        else:
            values[name] = str(value).strip()
    if missing:
        raise DomainValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )
    return values


def _require_products(products: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not products:
        raise DomainValidationError("Products are required", details={"missing": ["products"]})

    missing = [name for name in PRODUCT_FIELDS if products.get(name) in (None, "")]
    if missing:
        raise DomainValidationError(
            f"Missing product fields: {', '.join(missing)}",
            details={"missing": missing},
        )

    if int(products["nombre_sacs"]) < 1:
        raise DomainValidationError("Bag count must be at least 1")
    if float(products["poids_net"]) > float(products["poids_brut"]):
        raise DomainValidationError(
            "Net weight cannot exceed gross weight",
            details={"poids_brut": products["poids_brut"], "poids_net": products["poids_net"]},
        )

    return {name: products[name] for name in PRODUCT_FIELDS}


def plan_transition(
    truck,
    action: WorkflowAction,
    actor: HistoryActor,
    now: Optional[datetime] = None,
    **fields: Any,
) -> TransitionOutcome:
    """
    Compute the effect of ``action`` on ``truck`` without mutating it.

    Args:
        truck: Object exposing ``statut`` and ``advanced_status``
        action: Workflow action to perform
        actor: Who performs it ("admin" or "gerant")
        now: Clock reading used for the timestamp and history date
        **fields: Action payload (``kor``/``th``, ``comment``, ``products``)

    Returns:
        TransitionOutcome with the new status pair, one history entry,
        timestamp, flag and payload updates

    Raises:
        InsufficientPermissionsError: the actor does not own this action
        InvalidTransitionError: the truck is not in a source state of the action
        DomainValidationError: the payload is incomplete
    """
    transition = TRANSITIONS[action]
    now = now or utcnow()

    if actor != transition.actor:
        raise InsufficientPermissionsError(
            f"Action {action.value} is reserved to {transition.actor.value}",
            details={"action": action.value, "actor": actor.value},
        )

    current = (truck.statut, truck.advanced_status)
    if current not in transition.sources:
        raise InvalidTransitionError(
            action.value,
            truck.statut.value,
            truck.advanced_status.value if truck.advanced_status else None,
        )

    field_updates: Dict[str, Any] = {}
    if action == WorkflowAction.SUBMIT_ANALYSIS:
        field_updates.update(_require_text(fields, "kor", "th"))
    elif action == WorkflowAction.FILL_PRODUCTS:
        field_updates["products"] = _require_products(fields.get("products"))
    elif action == WorkflowAction.REFUSE and fields.get("comment"):
        field_updates["comment"] = fields["comment"]

    statut, advanced_status = transition.target
    validate_status_pair(statut, advanced_status)

    flags = {}
    if transition.notify is not None:
        flags[FLAG_FIELDS[transition.notify]] = True

    return TransitionOutcome(
        action=action,
        statut=statut,
        advanced_status=advanced_status,
        history_entry=history_entry(transition.event, actor, now),
        timestamps={transition.timestamp_field: now},
        field_updates=field_updates,
        flags=flags,
    )


def apply_outcome(truck, outcome: TransitionOutcome) -> None:
    """
    Write a planned outcome onto the truck record.

    ``history`` is reassigned to a new list so the ORM detects the change on
    the JSON column.
    """
    validate_status_pair(outcome.statut, outcome.advanced_status)

    truck.statut = outcome.statut
    truck.advanced_status = outcome.advanced_status
    for name, value in outcome.timestamps.items():
        setattr(truck, name, value)
    for name, value in outcome.field_updates.items():
        setattr(truck, name, value)
    for name, value in outcome.flags.items():
        setattr(truck, name, value)
    truck.history = [*(truck.history or []), outcome.history_entry]

    logger.info(
        "Truck %s: %s -> %s/%s",
        getattr(truck, "id", None),
        outcome.action.value if outcome.action else "REGISTER",
        outcome.statut.value,
        outcome.advanced_status.value if outcome.advanced_status else "-",
    )


def registration_fields(
    data: Dict[str, Any],
    actor: HistoryActor,
    now: Optional[datetime] = None,
    decision: ReceptionDecision = ReceptionDecision.MISE_EN_ATTENTE,
) -> Dict[str, Any]:
    """
    Build the column values of a newly registered truck.

    A truck turned away at the gate (``Refouler``) is created directly as
    ``Refoulé``; otherwise it starts as ``Enregistré``.

    Raises:
        DomainValidationError: ``immatriculation`` is missing
    """
    now = now or utcnow()
    immatriculation = _require_text(data, "immatriculation")["immatriculation"]

    if decision == ReceptionDecision.REFOULER:
        statut, event = TruckStatus.REFOULE, "Camion refoulé à l'entrée"
    else:
        statut, event = TruckStatus.ENREGISTRE, "Camion enregistré"

    return {
        "immatriculation": immatriculation,
        "transporteur": (data.get("transporteur") or "").strip(),
        "transfert": (data.get("transfert") or "").strip(),
        "cooperative": (data.get("cooperative") or "").strip(),
        "kor": "",
        "th": "",
        "statut": statut,
        "advanced_status": None,
        "created_at": now,
        "heure_arrivee": data.get("heure_arrivee") or now,
        "history": [history_entry(event, actor, now)],
        "unread_for_admin": False,
        "unread_for_gerant": False,
    }
