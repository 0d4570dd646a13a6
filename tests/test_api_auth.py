"""Tests for registration, login and token handling."""

from __future__ import annotations

from soulseer.models.user import UserStatus
from soulseer.database import get_async_session_context
from soulseer.repositories.user_repository import UserRepository

REGISTER = {
    "name": "Luna",
    "email": "luna@example.com",
    "password": "securepassword123",
    "timezone": "America/New_York",
}


async def test_register_returns_tokens(api_client):
    resp = await api_client.post("/api/auth/register", json=REGISTER)
    assert resp.status_code == 201
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"

    me = await api_client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    )
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == "luna@example.com"
    assert body["role"] == "CLIENT"
    assert body["timezone"] == "America/New_York"


async def test_register_duplicate_email(api_client):
    await api_client.post("/api/auth/register", json=REGISTER)
    resp = await api_client.post("/api/auth/register", json=REGISTER)
    assert resp.status_code == 409


async def test_register_rejects_unknown_timezone(api_client):
    resp = await api_client.post("/api/auth/register", json={**REGISTER, "timezone": "Mars/Olympus"})
    assert resp.status_code == 400


async def test_register_validation_error(api_client):
    resp = await api_client.post("/api/auth/register", json={**REGISTER, "password": "short"})
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["loc"][-1] == "password"


async def test_login_and_refresh(api_client):
    await api_client.post("/api/auth/register", json=REGISTER)

    resp = await api_client.post(
        "/api/auth/login", data={"username": REGISTER["email"], "password": REGISTER["password"]}
    )
    assert resp.status_code == 200
    refresh = resp.json()["refresh_token"]

    resp = await api_client.post("/api/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    assert resp.json()["access_token"]


async def test_login_wrong_password(api_client):
    await api_client.post("/api/auth/register", json=REGISTER)
    resp = await api_client.post(
        "/api/auth/login", data={"username": REGISTER["email"], "password": "wrong-password"}
    )
    assert resp.status_code == 401


async def test_access_token_cannot_refresh(api_client):
    resp = await api_client.post("/api/auth/register", json=REGISTER)
    access = resp.json()["access_token"]
    resp = await api_client.post("/api/auth/refresh", json={"refresh_token": access})
    assert resp.status_code == 401


async def test_missing_and_garbage_tokens(api_client):
    assert (await api_client.get("/api/auth/me")).status_code == 401
    resp = await api_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_suspended_account_is_forbidden(api_client, client_account):
    async with get_async_session_context() as s:
        user = await UserRepository().get_by_id(s, client_account.id)
        user.status = UserStatus.SUSPENDED
        await s.commit()

    resp = await api_client.get("/api/auth/me", headers=client_account.headers)
    assert resp.status_code == 403


async def test_role_guard(api_client, client_account):
    resp = await api_client.get("/api/admin/users", headers=client_account.headers)
    assert resp.status_code == 403


async def test_dev_user_is_a_complete_account(api_client):
    from soulseer.main import app, dev_user
    from soulseer.utils.dependencies import get_current_user

    app.dependency_overrides[get_current_user] = dev_user
    try:
        resp = await api_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ACTIVE"
        assert resp.json()["role"] == "ADMIN"

        resp = await api_client.get("/api/admin/users/stats")
        assert resp.status_code == 200
    finally:
        app.dependency_overrides.pop(get_current_user, None)
    assert dev_user().is_active
