"""
Import of the browser ``localStorage`` dump of the original application.

The dump is a JSON object holding the keys ``warehouses``, ``trucks`` and
``users``. Each value is either the raw string stored by the browser or the
already decoded list. Malformed collections are logged and imported as empty.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.security import get_password_hash
from backend.app.db.session import commit_or_rollback
from backend.app.domain.workflow.truck_workflow import VALID_STATUS_PAIRS
from backend.app.models.enums import UserRole, UserStatus
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import AdvancedStatus, TruckStatus
from backend.app.models.user import User
from backend.app.models.warehouse import Warehouse
from backend.app.schemas.truck import ProductsPayload

logger = logging.getLogger("reception.import")

# Labels of older revisions mapped onto the current statuses
LEGACY_STATUSES = {
    "En cours de déchargement": TruckStatus.VALIDE,
}


@dataclass
class ImportReport:
    warehouses: int = 0
    trucks: int = 0
    users: int = 0
    skipped: int = 0


def parse_collection(raw: Any, key: str) -> List[Dict[str, Any]]:
    """
    Decode one stored collection.

    Returns:
        List of records, or [] when the value is missing or malformed
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Malformed JSON under '%s': %s", key, exc)
            return []
    if not isinstance(raw, list):
        logger.warning("Expected a list under '%s', got %s", key, type(raw).__name__)
        return []
    return [item for item in raw if isinstance(item, dict)]


def parse_datetime(value: Any, fallback: Optional[datetime] = None) -> Optional[datetime]:
    """ISO-8601 string (``Z`` suffix accepted) to an aware datetime."""
    if not value or not isinstance(value, str):
        return fallback
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unreadable date %r", value)
        return fallback
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_status(statut: Any, advanced: Any) -> Optional[Tuple[TruckStatus, Optional[AdvancedStatus]]]:
    """
    Map stored status labels onto a valid (statut, advanced_status) pair.

    An advanced status that does not fit the status is dropped when the
    status allows none. Returns None when the record cannot be placed.
    """
    try:
        status = LEGACY_STATUSES.get(statut) or TruckStatus(statut)
    except ValueError:
        return None

    try:
        advanced_status = AdvancedStatus(advanced) if advanced else None
    except ValueError:
        advanced_status = None

    allowed = VALID_STATUS_PAIRS[status]
    if advanced_status in allowed:
        return status, advanced_status
    if None in allowed:
        return status, None
    return None


def _products(raw: Any) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        return ProductsPayload.model_validate(raw).model_dump()
    except ValidationError as exc:
        logger.warning("Dropping invalid products %r: %s", raw, exc.errors())
        return None


def _history(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [entry for entry in raw if isinstance(entry, dict) and "event" in entry]


async def import_dump(db: AsyncSession, dump: Dict[str, Any]) -> ImportReport:
    """
    Import warehouses, then users and trucks, in a single transaction.

    Warehouses get new ids; users and trucks are re-linked through the
    old-to-new id mapping. Existing usernames are skipped.
    """
    report = ImportReport()
    now = datetime.now(timezone.utc)

    id_map: Dict[Any, int] = {}
    for record in parse_collection(dump.get("warehouses"), "warehouses"):
        if not record.get("name"):
            report.skipped += 1
            continue
        warehouse = Warehouse(
            name=record["name"],
            location=record.get("location") or "",
            image_url=record.get("imageUrl"),
        )
        db.add(warehouse)
        await db.flush()
        id_map[record.get("id")] = warehouse.id
        report.warehouses += 1

    taken = {
        name for name in (await db.execute(select(func.lower(User.username)))).scalars().all()
    }
    for record in parse_collection(dump.get("users"), "users"):
        username = (record.get("username") or "").strip()
        if not username or username.lower() in taken or not record.get("password"):
            report.skipped += 1
            continue
        try:
            role = UserRole(record.get("role"))
        except ValueError:
            role = UserRole.OPERATOR
        try:
            status = UserStatus(record.get("status"))
        except ValueError:
            status = UserStatus.ACTIF

        db.add(User(
            nom=record.get("nom") or username,
            email=(record.get("email") or "").strip().lower() or None,
            username=username,
            hashed_password=get_password_hash(record["password"]),
            role=role,
            status=status,
            entrepot_id=id_map.get(record.get("entrepotId")),
        ))
        taken.add(username.lower())
        report.users += 1

    for record in parse_collection(dump.get("trucks"), "trucks"):
        entrepot_id = id_map.get(record.get("entrepotId"))
        pair = normalize_status(record.get("statut"), record.get("advancedStatus"))
        if entrepot_id is None or pair is None or not record.get("immatriculation"):
            logger.warning("Skipping truck %s", record.get("id"))
            report.skipped += 1
            continue

        created_at = parse_datetime(record.get("createdAt"), now)
        db.add(Truck(
            entrepot_id=entrepot_id,
            immatriculation=record["immatriculation"],
            transporteur=record.get("transporteur") or "",
            transfert=record.get("transfert") or "",
            cooperative=record.get("cooperative") or "",
            kor=record.get("kor") or "",
            th=record.get("th") or "",
            statut=pair[0],
            advanced_status=pair[1],
            created_at=created_at,
            heure_arrivee=parse_datetime(record.get("heureArrivee"), created_at),
            validated_at=parse_datetime(record.get("validatedAt")),
            refused_at=parse_datetime(record.get("refusedAt")),
            renvoye_at=parse_datetime(record.get("renvoyeAt")),
            final_accepted_at=parse_datetime(record.get("finalAcceptedAt")),
            discharged_at=parse_datetime(record.get("finDechargement")),
            history=_history(record.get("history")),
            products=_products(record.get("products")),
            unread_for_admin=bool(record.get("unreadForAdmin")),
            unread_for_gerant=bool(record.get("unreadForGerant")),
            comment=record.get("comment"),
        ))
        report.trucks += 1

    await commit_or_rollback(db, "Import")
    logger.info(
        "Imported %s warehouses, %s users, %s trucks (%s skipped)",
        report.warehouses, report.users, report.trucks, report.skipped,
    )
    return report
