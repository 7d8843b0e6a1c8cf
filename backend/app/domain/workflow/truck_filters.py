"""
Tab, search and period filters over truck records.

All functions are pure: they never mutate the trucks they receive, so views
can be recomputed on every request.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from backend.app.core.config import settings
from backend.app.models.truck_enums import AdvancedStatus, TruckStatus

TAB_PREDICATES: Dict[str, Callable] = {
    "tous": lambda t: True,
    "enregistres": lambda t: t.statut == TruckStatus.ENREGISTRE,
    "en_attente": lambda t: t.statut == TruckStatus.EN_ATTENTE,
    "valides": lambda t: t.statut == TruckStatus.VALIDE and t.advanced_status != AdvancedStatus.ACCEPTE_FINAL,
    "refuses": lambda t: t.advanced_status == AdvancedStatus.REFUSE_EN_ATTENTE_GERANT,
    "renvoyes": lambda t: t.advanced_status == AdvancedStatus.REFUSE_RENVOYE,
    "acceptes": lambda t: t.advanced_status == AdvancedStatus.ACCEPTE_FINAL,
    "refoules": lambda t: t.statut == TruckStatus.REFOULE,
}

PERIODS = ("today", "7days", "30days", "all")


def as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.local_timezone)


def matches_tab(truck, tab: str) -> bool:
    try:
        predicate = TAB_PREDICATES[tab]
    except KeyError:
        raise ValueError(f"Unknown tab '{tab}'")
    return predicate(truck)


def matches_search(truck, search: Optional[str]) -> bool:
    """Case-insensitive substring match on plate, carrier, transfer and cooperative."""
    if not search or not search.strip():
        return True
    haystack = " ".join(
        (getattr(truck, name, None) or "")
        for name in ("immatriculation", "transporteur", "transfert", "cooperative")
    ).lower()
    return search.strip().lower() in haystack


def matches_period(truck, period: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Period filter on ``created_at``.

    ``today`` compares calendar days in the configured local time zone;
    ``7days`` and ``30days`` are rolling windows back from ``now``.
    """
    if not period or period == "all":
        return True
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}'")

    now = as_aware(now or datetime.now(timezone.utc))
    created = as_aware(truck.created_at)

    if period == "today":
        zone = local_zone()
        return created.astimezone(zone).date() == now.astimezone(zone).date()

    days = 7 if period == "7days" else 30
    return created >= now - timedelta(days=days)


def filter_trucks(
    trucks: Iterable,
    tab: str = "tous",
    search: Optional[str] = None,
    period: Optional[str] = "all",
    status: Optional[TruckStatus] = None,
    warehouse_id: Optional[int] = None,
    now: Optional[datetime] = None,
    newest_first: bool = False,
) -> List:
    """
    Select the trucks visible in a view.

    Args:
        trucks: Truck records (not modified)
        tab: Key of ``TAB_PREDICATES``
        search: Free-text search term
        period: "today", "7days", "30days" or "all"
        status: Exact ``statut`` to keep
        warehouse_id: Keep only trucks of this warehouse
        now: Reference time for the period filter
        newest_first: History views sort by ``created_at`` descending,
            other views keep insertion (id) order

    Returns:
        New list of matching trucks
    """
    selected = [
        truck for truck in trucks
        if matches_tab(truck, tab)
        and matches_search(truck, search)
        and matches_period(truck, period, now)
        and (status is None or truck.statut == status)
        and (warehouse_id is None or truck.entrepot_id == warehouse_id)
    ]

    if newest_first:
        return sorted(selected, key=lambda t: (as_aware(t.created_at), t.id or 0), reverse=True)
    return sorted(selected, key=lambda t: t.id or 0)


def count_by_tab(trucks: Iterable) -> Dict[str, int]:
    """Number of trucks per tab, for the warehouse view counters."""
    trucks = list(trucks)
    return {tab: sum(1 for t in trucks if predicate(t)) for tab, predicate in TAB_PREDICATES.items()}
