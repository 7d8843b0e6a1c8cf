"""
Analytics Service.

Dashboard KPIs and warehouse cards. READ-ONLY.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.domain.workflow.truck_filters import as_aware, local_zone
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import AdvancedStatus, TruckStatus
from backend.app.models.warehouse import Warehouse
from backend.app.schemas.dashboard import DashboardStats, WarehouseCard

DASHBOARD_PERIODS = ("day", "week", "month", "year")


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """
    First instant counted by a dashboard period.

    ``day`` starts at local midnight; ``week`` goes back 7 days, ``month`` one
    calendar month and ``year`` one calendar year.
    """
    if period not in DASHBOARD_PERIODS:
        raise ValueError(f"Unknown period '{period}'")

    now = as_aware(now or datetime.now(timezone.utc))

    if period == "day":
        local_now = now.astimezone(local_zone())
        return local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        return _same_day_in(now, year, month)
    return _same_day_in(now, now.year - 1, now.month)


def _same_day_in(moment: datetime, year: int, month: int) -> datetime:
    # Clamp 31st / Feb 29 onto the last day of the target month
    day = moment.day
    while True:
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def compute_stats(trucks: Iterable[Truck], period: str, entrepot_id: Optional[int] = None,
                  now: Optional[datetime] = None) -> DashboardStats:
    """KPIs over the trucks created since the start of ``period``."""
    start = period_start(period, now)
    trucks = [t for t in trucks if as_aware(t.created_at) >= start]

    def count(predicate) -> int:
        return sum(1 for t in trucks if predicate(t))

    return DashboardStats(
        period=period,
        entrepot_id=entrepot_id,
        total_presents=len(trucks),
        en_attente=count(lambda t: t.statut == TruckStatus.EN_ATTENTE),
        en_dechargement=count(
            lambda t: t.statut == TruckStatus.VALIDE and t.advanced_status != AdvancedStatus.ACCEPTE_FINAL
        ),
        decharges=count(lambda t: t.advanced_status == AdvancedStatus.ACCEPTE_FINAL),
        annules=count(lambda t: t.statut == TruckStatus.ANNULE),
        attente_decision_admin=count(lambda t: t.unread_for_admin),
        refuses_attente_gerant=count(lambda t: t.advanced_status == AdvancedStatus.REFUSE_EN_ATTENTE_GERANT),
        refuses_renvoyes=count(lambda t: t.advanced_status == AdvancedStatus.REFUSE_RENVOYE),
        reintegres=count(lambda t: t.advanced_status == AdvancedStatus.REFUSE_REINTEGRE),
    )


class AnalyticsService:

    @staticmethod
    async def get_dashboard_stats(db: AsyncSession, period: str,
                                  entrepot_id: Optional[int] = None) -> DashboardStats:
        """KPIs for one warehouse, or every warehouse when ``entrepot_id`` is None."""
        query = select(Truck)
        if entrepot_id is not None:
            query = query.where(Truck.entrepot_id == entrepot_id)
        trucks = (await db.execute(query)).scalars().all()
        return compute_stats(trucks, period, entrepot_id)

    @staticmethod
    async def get_warehouse_cards(db: AsyncSession, entrepot_id: Optional[int] = None) -> List[WarehouseCard]:
        """One card per warehouse: waiting, in progress and accepted trucks."""
        query = select(Warehouse).order_by(Warehouse.id)
        if entrepot_id is not None:
            query = query.where(Warehouse.id == entrepot_id)
        warehouses = (await db.execute(query)).scalars().all()

        trucks = (await db.execute(select(Truck))).scalars().all()

        cards = []
        for warehouse in warehouses:
            own = [t for t in trucks if t.entrepot_id == warehouse.id]
            cards.append(WarehouseCard(
                id=warehouse.id,
                name=warehouse.name,
                location=warehouse.location,
                image_url=warehouse.image_url,
                pending=sum(1 for t in own if t.statut == TruckStatus.EN_ATTENTE),
                active=sum(
                    1 for t in own
                    if t.statut == TruckStatus.VALIDE and t.advanced_status != AdvancedStatus.ACCEPTE_FINAL
                ),
                discharged=sum(1 for t in own if t.advanced_status == AdvancedStatus.ACCEPTE_FINAL),
            ))
        return cards
