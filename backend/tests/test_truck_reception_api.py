"""
Integration tests for truck reception through the HTTP API.

Registration -> analysis -> admin decision -> products -> discharge, plus
role checks, warehouse scoping and the warehouse/history views.
"""

import pytest

from backend.app.models.enums import UserRole

PRODUCTS = {"numeroLot": "L-42", "nombreSacs": 120, "poidsBrut": 7300.5, "poidsNet": 7200.0}


async def register(client, warehouse_id, headers, **overrides):
    payload = {"immatriculation": "AB-123-CD", "transporteur": "Acme"}
    payload.update(overrides)
    response = await client.post(f"/v1/warehouses/{warehouse_id}/trucks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def analyse(client, truck_id, headers, kor="K1", th="T1"):
    response = await client.post(f"/v1/trucks/{truck_id}/analysis", json={"kor": kor, "th": th}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_register_analyse_refuse_scenario(client, warehouse, gerant_headers, admin_headers):
    truck = await register(client, warehouse.id, gerant_headers)
    assert truck["statut"] == "Enregistré"
    assert truck["advancedStatus"] is None
    assert truck["entrepotId"] == warehouse.id
    assert [entry["event"] for entry in truck["history"]] == ["Camion enregistré"]
    assert truck["history"][0]["by"] == "gerant"

    truck = await analyse(client, truck["id"], gerant_headers)
    assert truck["statut"] == "En attente"
    assert truck["kor"] == "K1"
    assert truck["th"] == "T1"
    assert len(truck["history"]) == 2

    response = await client.post(
        f"/v1/trucks/{truck['id']}/refuse", json={"comment": "Taux d'humidité"}, headers=admin_headers
    )
    assert response.status_code == 200, response.text
    truck = response.json()
    assert truck["statut"] == "Annulé"
    assert truck["advancedStatus"] == "REFUSE_EN_ATTENTE_GERANT"
    assert truck["unreadForGerant"] is True
    assert truck["comment"] == "Taux d'humidité"
    assert truck["refusedAt"] is not None
    assert len(truck["history"]) == 3
    assert truck["history"][-1]["by"] == "admin"


@pytest.mark.asyncio
async def test_acceptance_to_discharge(client, warehouse, gerant_headers, admin_headers):
    truck = await register(client, warehouse.id, gerant_headers)
    await analyse(client, truck["id"], gerant_headers)

    response = await client.post(f"/v1/trucks/{truck['id']}/validate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["statut"] == "Validé"
    assert response.json()["validatedAt"] is not None

    response = await client.post(
        f"/v1/trucks/{truck['id']}/products", json={"products": PRODUCTS}, headers=gerant_headers
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["advancedStatus"] == "ACCEPTE_FINAL"
    assert body["products"] == PRODUCTS
    assert body["unreadForAdmin"] is True

    response = await client.post(f"/v1/trucks/{truck['id']}/discharge", headers=gerant_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["statut"] == "Déchargé"
    assert body["advancedStatus"] == "ACCEPTE_FINAL"
    assert body["dischargedAt"] is not None
    assert len(body["history"]) == 5


@pytest.mark.asyncio
async def test_resend_then_reintegrate_or_reject(client, warehouse, gerant_headers, admin_headers):
    first = await register(client, warehouse.id, gerant_headers, immatriculation="RS-001")
    second = await register(client, warehouse.id, gerant_headers, immatriculation="RS-002")

    for truck in (first, second):
        await analyse(client, truck["id"], gerant_headers)
        assert (await client.post(f"/v1/trucks/{truck['id']}/refuse", headers=admin_headers)).status_code == 200
        response = await client.post(f"/v1/trucks/{truck['id']}/resend", headers=gerant_headers)
        assert response.status_code == 200
        assert response.json()["advancedStatus"] == "REFUSE_RENVOYE"
        assert response.json()["unreadForAdmin"] is True

    response = await client.post(f"/v1/trucks/{first['id']}/reintegrate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["statut"] == "Validé"
    assert response.json()["advancedStatus"] == "REFUSE_REINTEGRE"

    response = await client.post(f"/v1/trucks/{second['id']}/reject", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["statut"] == "Refoulé"
    assert response.json()["advancedStatus"] is None


@pytest.mark.asyncio
async def test_gate_refusal(client, warehouse, security_headers):
    truck = await register(client, warehouse.id, security_headers, receptionStatus="Refouler")
    assert truck["statut"] == "Refoulé"
    assert truck["history"][0]["event"] == "Camion refoulé à l'entrée"


@pytest.mark.asyncio
async def test_invalid_transition_returns_409(client, warehouse, gerant_headers, admin_headers):
    truck = await register(client, warehouse.id, gerant_headers)

    response = await client.post(f"/v1/trucks/{truck['id']}/validate", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_WORKFLOW_001"

    # Nothing was written
    response = await client.get(f"/v1/trucks/{truck['id']}", headers=gerant_headers)
    assert response.json()["statut"] == "Enregistré"
    assert len(response.json()["history"]) == 1


@pytest.mark.asyncio
async def test_missing_analysis_fields(client, warehouse, gerant_headers):
    truck = await register(client, warehouse.id, gerant_headers)

    response = await client.post(f"/v1/trucks/{truck['id']}/analysis", json={"kor": "K1"}, headers=gerant_headers)
    assert response.status_code == 422

    response = await client.post(
        f"/v1/trucks/{truck['id']}/analysis", json={"kor": "K1", "th": "   "}, headers=gerant_headers
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_002"


@pytest.mark.asyncio
async def test_net_weight_above_gross_is_rejected(client, warehouse, gerant_headers, admin_headers):
    truck = await register(client, warehouse.id, gerant_headers)
    await analyse(client, truck["id"], gerant_headers)
    await client.post(f"/v1/trucks/{truck['id']}/validate", headers=admin_headers)

    response = await client.post(
        f"/v1/trucks/{truck['id']}/products",
        json={"products": {**PRODUCTS, "poidsNet": 9000.0}},
        headers=gerant_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_role_checks(client, warehouse, gerant_headers, admin_headers, security_headers):
    truck = await register(client, warehouse.id, security_headers)

    # Front desk registers but does not analyse
    response = await client.post(
        f"/v1/trucks/{truck['id']}/analysis", json={"kor": "K", "th": "T"}, headers=security_headers
    )
    assert response.status_code == 403

    # Managers never decide
    await analyse(client, truck["id"], gerant_headers)
    response = await client.post(f"/v1/trucks/{truck['id']}/validate", headers=gerant_headers)
    assert response.status_code == 403

    # Admins never do the manager's steps
    await client.post(f"/v1/trucks/{truck['id']}/refuse", headers=admin_headers)
    response = await client.post(f"/v1/trucks/{truck['id']}/resend", headers=admin_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_driver_cannot_register(client, warehouse, user_factory, headers_for):
    driver = await user_factory("driver", UserRole.DRIVER, entrepot_id=warehouse.id)
    response = await client.post(
        f"/v1/warehouses/{warehouse.id}/trucks",
        json={"immatriculation": "DR-1"},
        headers=headers_for(driver),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_warehouse_scope(client, warehouse, other_warehouse, gerant_headers, admin_headers):
    response = await client.post(
        f"/v1/warehouses/{other_warehouse.id}/trucks",
        json={"immatriculation": "SC-1"},
        headers=gerant_headers,
    )
    assert response.status_code == 403

    foreign = await register(client, other_warehouse.id, admin_headers, immatriculation="SC-2")

    response = await client.get(f"/v1/trucks/{foreign['id']}", headers=gerant_headers)
    assert response.status_code == 403

    response = await client.get(f"/v1/warehouses/{other_warehouse.id}/trucks", headers=gerant_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_truck_and_warehouse(client, admin_headers):
    response = await client.get("/v1/trucks/9999", headers=admin_headers)
    assert response.status_code == 404

    response = await client.post(
        "/v1/warehouses/9999/trucks", json={"immatriculation": "NO-1"}, headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_warehouse_view_tabs_and_counts(client, warehouse, gerant_headers, admin_headers):
    waiting = await register(client, warehouse.id, gerant_headers, immatriculation="TAB-1")
    await analyse(client, waiting["id"], gerant_headers)
    await register(client, warehouse.id, gerant_headers, immatriculation="TAB-2", transporteur="Sotra")
    await register(client, warehouse.id, gerant_headers, immatriculation="TAB-3", receptionStatus="Refouler")

    response = await client.get(f"/v1/warehouses/{warehouse.id}/trucks", headers=gerant_headers)
    assert response.status_code == 200
    assert [t["immatriculation"] for t in response.json()["trucks"]] == ["TAB-1", "TAB-2", "TAB-3"]

    response = await client.get(
        f"/v1/warehouses/{warehouse.id}/trucks", params={"tab": "en_attente"}, headers=gerant_headers
    )
    assert [t["immatriculation"] for t in response.json()["trucks"]] == ["TAB-1"]

    response = await client.get(
        f"/v1/warehouses/{warehouse.id}/trucks", params={"search": "sotra"}, headers=gerant_headers
    )
    assert response.json()["total"] == 1

    response = await client.get(
        f"/v1/warehouses/{warehouse.id}/trucks", params={"tab": "nope"}, headers=gerant_headers
    )
    assert response.status_code == 422

    response = await client.get(f"/v1/warehouses/{warehouse.id}/trucks/counts", headers=admin_headers)
    counts = response.json()["counts"]
    assert counts["tous"] == 3
    assert counts["en_attente"] == 1
    assert counts["enregistres"] == 1
    assert counts["refoules"] == 1


@pytest.mark.asyncio
async def test_history_is_newest_first_and_scoped(client, warehouse, other_warehouse, gerant_headers, admin_headers):
    await register(client, warehouse.id, gerant_headers, immatriculation="H-1")
    await register(client, warehouse.id, gerant_headers, immatriculation="H-2")
    await register(client, other_warehouse.id, admin_headers, immatriculation="H-3")

    response = await client.get("/v1/history", headers=admin_headers)
    assert response.status_code == 200
    plates = [t["immatriculation"] for t in response.json()["trucks"]]
    assert set(plates) == {"H-1", "H-2", "H-3"}
    assert plates.index("H-2") < plates.index("H-1")

    response = await client.get("/v1/history", headers=gerant_headers)
    assert {t["immatriculation"] for t in response.json()["trucks"]} == {"H-1", "H-2"}

    response = await client.get(
        "/v1/history", params={"warehouseId": other_warehouse.id}, headers=gerant_headers
    )
    assert response.status_code == 403

    response = await client.get(
        "/v1/history", params={"warehouseId": other_warehouse.id, "period": "today"}, headers=admin_headers
    )
    assert [t["immatriculation"] for t in response.json()["trucks"]] == ["H-3"]


@pytest.mark.asyncio
async def test_admin_comment_keeps_status(client, warehouse, gerant_headers, admin_headers):
    truck = await register(client, warehouse.id, gerant_headers)

    response = await client.patch(
        f"/v1/trucks/{truck['id']}/comment", json={"comment": "Vérifier les sacs"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["comment"] == "Vérifier les sacs"
    assert response.json()["statut"] == "Enregistré"
    assert len(response.json()["history"]) == 1

    response = await client.patch(
        f"/v1/trucks/{truck['id']}/comment", json={"comment": "x"}, headers=gerant_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_actions_are_audited(client, warehouse, gerant_headers, admin_headers):
    truck = await register(client, warehouse.id, gerant_headers)
    await analyse(client, truck["id"], gerant_headers)

    response = await client.get(
        "/v1/admin/audit-logs", params={"entityType": "truck", "entityId": truck["id"]}, headers=admin_headers
    )
    assert response.status_code == 200
    actions = {log["action"] for log in response.json()["logs"]}
    assert {"TRUCK_REGISTERED", "TRUCK_SUBMIT_ANALYSIS"} <= actions
