"""
Tests for the browser storage import.
"""

import json

import pytest
from sqlalchemy import select

from backend.app.core.security import verify_password
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import AdvancedStatus, TruckStatus
from backend.app.models.user import User
from backend.app.models.warehouse import Warehouse
from backend.app.services.local_storage_import import (
    import_dump,
    normalize_status,
    parse_collection,
    parse_datetime,
)

DUMP = {
    "warehouses": json.dumps([
        {"id": 1712000000000, "name": "Entrepôt Port", "location": "San Pedro", "imageUrl": None},
        {"id": 1712000000001, "name": "", "location": "nowhere"},
    ]),
    "users": [
        {"username": "koffi", "password": "pw123456", "nom": "Koffi", "role": "operator",
         "status": "Actif", "entrepotId": 1712000000000},
        {"username": "ADMIN", "password": "x", "role": "admin"},
    ],
    "trucks": [
        {
            "id": 1, "entrepotId": 1712000000000, "immatriculation": "IMP-1", "transporteur": "Acme",
            "statut": "En cours de déchargement", "createdAt": "2026-02-01T08:00:00Z",
            "history": [{"event": "Camion enregistré", "by": "gerant", "date": "2026-02-01T08:00:00Z"}, "junk"],
        },
        {
            "id": 2, "entrepotId": 1712000000000, "immatriculation": "IMP-2",
            "statut": "Validé", "advancedStatus": "ACCEPTE_FINAL",
            "products": {"numeroLot": "L-9", "nombreSacs": 40, "poidsBrut": 2500, "poidsNet": 2450},
            "unreadForAdmin": True,
        },
        {"id": 3, "entrepotId": 999, "immatriculation": "IMP-3", "statut": "Enregistré"},
        {"id": 4, "entrepotId": 1712000000000, "immatriculation": "IMP-4", "statut": "Perdu"},
    ],
}


class TestParsing:

    def test_malformed_json_yields_empty_collection(self):
        assert parse_collection("{not json", "trucks") == []
        assert parse_collection('{"a": 1}', "trucks") == []
        assert parse_collection(None, "trucks") == []
        assert parse_collection('[{"id": 1}, 2]', "trucks") == [{"id": 1}]

    def test_parse_datetime(self):
        value = parse_datetime("2026-02-01T09:00:00+01:00")
        assert value.utcoffset().total_seconds() == 0
        assert value.hour == 8
        assert parse_datetime("yesterday", fallback=None) is None

    @pytest.mark.parametrize("statut, advanced, expected", [
        ("Enregistré", None, (TruckStatus.ENREGISTRE, None)),
        ("En cours de déchargement", None, (TruckStatus.VALIDE, None)),
        ("Validé", "ACCEPTE_FINAL", (TruckStatus.VALIDE, AdvancedStatus.ACCEPTE_FINAL)),
        ("En attente", "ACCEPTE_FINAL", (TruckStatus.EN_ATTENTE, None)),
        ("Annulé", None, None),
        ("Perdu", None, None),
    ])
    def test_normalize_status(self, statut, advanced, expected):
        assert normalize_status(statut, advanced) == expected


@pytest.mark.asyncio
async def test_import_dump(db_session, admin_user):
    report = await import_dump(db_session, DUMP)

    assert report.warehouses == 1
    assert report.users == 1
    assert report.trucks == 2
    # Nameless warehouse, duplicate username, unknown warehouse, unknown status
    assert report.skipped == 4

    warehouse = (await db_session.execute(select(Warehouse))).scalar_one()
    assert warehouse.name == "Entrepôt Port"

    koffi = (await db_session.execute(select(User).where(User.username == "koffi"))).scalar_one()
    assert koffi.entrepot_id == warehouse.id
    assert verify_password("pw123456", koffi.hashed_password)

    trucks = (await db_session.execute(select(Truck).order_by(Truck.immatriculation))).scalars().all()
    first, second = trucks
    assert first.entrepot_id == warehouse.id
    assert first.statut == TruckStatus.VALIDE
    assert len(first.history) == 1
    assert second.advanced_status == AdvancedStatus.ACCEPTE_FINAL
    assert second.products == {"numero_lot": "L-9", "nombre_sacs": 40, "poids_brut": 2500.0, "poids_net": 2450.0}
    assert second.unread_for_admin is True
