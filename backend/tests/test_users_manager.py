"""
Integration tests for user administration.

Uniqueness, last-admin protection, default warehouse assignment and token
revocation on deactivation or deletion.
"""

import pytest

from backend.app.core.exceptions import ConflictError
from backend.app.core.token_revocation import are_user_tokens_revoked
from backend.app.models.enums import UserRole, UserStatus
from backend.app.services import user_service


def new_user(**overrides):
    payload = {
        "nom": "Awa Koné",
        "email": "awa@example.com",
        "username": "awa",
        "password": "secret123",
        "role": "operator",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_user_defaults_to_first_warehouse(client, admin_headers, warehouse, other_warehouse):
    response = await client.post("/v1/admin/users", json=new_user(), headers=admin_headers)
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["entrepotId"] == warehouse.id
    assert data["status"] == "Actif"
    assert "password" not in data
    assert "hashedPassword" not in data


@pytest.mark.asyncio
async def test_admin_is_created_without_warehouse(client, admin_headers, warehouse):
    response = await client.post(
        "/v1/admin/users",
        json=new_user(username="chef", email="chef@example.com", role="admin"),
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["entrepotId"] is None


@pytest.mark.asyncio
async def test_explicit_warehouse_must_exist(client, admin_headers):
    response = await client.post("/v1/admin/users", json=new_user(entrepotId=404), headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_username_and_email_are_unique_ignoring_case(client, admin_headers, warehouse):
    assert (await client.post("/v1/admin/users", json=new_user(), headers=admin_headers)).status_code == 201

    response = await client.post(
        "/v1/admin/users", json=new_user(username="AWA", email="other@example.com"), headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"

    response = await client.post(
        "/v1/admin/users", json=new_user(username="awa2", email="AWA@Example.com"), headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_users_filters(client, admin_headers, gerant_user, security_user, warehouse):
    response = await client.get("/v1/admin/users", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 3

    response = await client.get("/v1/admin/users", params={"role": "security"}, headers=admin_headers)
    assert [u["username"] for u in response.json()["users"]] == ["gate"]

    response = await client.get("/v1/admin/users", params={"search": "GER"}, headers=admin_headers)
    assert [u["username"] for u in response.json()["users"]] == ["gerant"]

    response = await client.get("/v1/admin/users", params={"entrepotId": warehouse.id}, headers=admin_headers)
    assert {u["username"] for u in response.json()["users"]} == {"gerant", "gate"}


@pytest.mark.asyncio
async def test_only_admins_manage_users(client, gerant_headers):
    assert (await client.get("/v1/admin/users", headers=gerant_headers)).status_code == 403
    response = await client.post("/v1/admin/users", json=new_user(), headers=gerant_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_last_admin_cannot_be_demoted_or_deactivated(client, admin_user, admin_headers):
    response = await client.patch(
        f"/v1/admin/users/{admin_user.id}", json={"role": "operator"}, headers=admin_headers
    )
    assert response.status_code == 409

    response = await client.patch(
        f"/v1/admin/users/{admin_user.id}", json={"status": "Inactif"}, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_last_admin_cannot_be_deleted(client, db_session, admin_user, admin_headers, user_factory):
    second = await user_factory("second", UserRole.ADMIN)

    # An admin may not delete themselves
    response = await client.delete(f"/v1/admin/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 400

    # With two admins, one can go
    response = await client.delete(f"/v1/admin/users/{second.id}", headers=admin_headers)
    assert response.status_code == 200

    # An inactive admin does not count towards keeping the last active one
    await user_factory("third", UserRole.ADMIN, status=UserStatus.INACTIF)
    with pytest.raises(ConflictError):
        await user_service.delete_user(db_session, admin_user.id)


@pytest.mark.asyncio
async def test_delete_user_revokes_tokens(client, admin_headers, gerant_user, gerant_headers):
    response = await client.delete(f"/v1/admin/users/{gerant_user.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["userId"] == gerant_user.id

    assert await are_user_tokens_revoked(gerant_user.id)
    assert (await client.get("/v1/auth/me", headers=gerant_headers)).status_code == 401


@pytest.mark.asyncio
async def test_reactivation_restores_access(client, admin_headers, gerant_user, gerant_headers):
    await client.patch(f"/v1/admin/users/{gerant_user.id}", json={"status": "Inactif"}, headers=admin_headers)
    assert await are_user_tokens_revoked(gerant_user.id)

    response = await client.patch(
        f"/v1/admin/users/{gerant_user.id}", json={"status": "Actif"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert not await are_user_tokens_revoked(gerant_user.id)
    assert (await client.get("/v1/auth/me", headers=gerant_headers)).status_code == 200


@pytest.mark.asyncio
async def test_password_change_allows_new_login(client, admin_headers, gerant_user):
    response = await client.patch(
        f"/v1/admin/users/{gerant_user.id}", json={"password": "changed-pw"}, headers=admin_headers
    )
    assert response.status_code == 200

    old = await client.post("/v1/auth/login", json={"username": "gerant", "password": "secret123"})
    new = await client.post("/v1/auth/login", json={"username": "gerant", "password": "changed-pw"})
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_assign_warehouse(client, admin_headers, gerant_user, other_warehouse):
    response = await client.patch(
        f"/v1/admin/users/{gerant_user.id}/warehouse",
        json={"entrepotId": other_warehouse.id},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["entrepotId"] == other_warehouse.id

    response = await client.patch(
        f"/v1/admin/users/{gerant_user.id}/warehouse", json={"entrepotId": None}, headers=admin_headers
    )
    assert response.json()["entrepotId"] is None
