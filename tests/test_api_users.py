"""Tests for the user profile and admin account management."""

from __future__ import annotations

from soulseer.models.user import UserRole


async def test_get_and_update_profile(api_client, client_account):
    resp = await api_client.get("/api/users/profile", headers=client_account.headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "luna.client@example.com"

    resp = await api_client.put("/api/users/profile", headers=client_account.headers,
                                json={"name": "Luna", "timezone": "Europe/London"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Luna"
    assert resp.json()["timezone"] == "Europe/London"


async def test_profile_update_rules(api_client, client_account):
    resp = await api_client.put("/api/users/profile", headers=client_account.headers, json={})
    assert resp.status_code == 400

    resp = await api_client.put("/api/users/profile", headers=client_account.headers,
                                json={"timezone": "Mars/Olympus"})
    assert resp.status_code == 400

    assert (await api_client.get("/api/users/profile")).status_code == 401


async def test_password_change(api_client, make_user):
    user = await make_user("Pat Doe", password="first-password")
    resp = await api_client.put("/api/users/profile", headers=user.headers,
                                json={"password": "second-password"})
    assert resp.status_code == 200

    login = {"username": "pat.doe@example.com", "password": "first-password"}
    assert (await api_client.post("/api/auth/login", data=login)).status_code == 401
    login["password"] = "second-password"
    assert (await api_client.post("/api/auth/login", data=login)).status_code == 200


async def test_admin_lists_users(api_client, admin_account, client_account, reader_account):
    resp = await api_client.get("/api/admin/users", headers=admin_account.headers,
                                params={"role": "READER"})
    assert [u["user_id"] for u in resp.json()["users"]] == [reader_account.id]

    resp = await api_client.get("/api/admin/users", headers=admin_account.headers,
                                params={"search": "LUNA"})
    assert [u["name"] for u in resp.json()["users"]] == ["Luna Client"]
    assert resp.json()["pagination"]["total"] == 1

    resp = await api_client.get("/api/admin/users", headers=client_account.headers)
    assert resp.status_code == 403


async def test_user_stats(api_client, admin_account, client_account, reader_account):
    resp = await api_client.get("/api/admin/users/stats", headers=admin_account.headers)
    body = resp.json()
    assert body["total"] == 3
    assert body["by_role"] == {"CLIENT": 1, "READER": 1, "ADMIN": 1}
    assert body["by_status"]["ACTIVE"] == 3
    assert body["new_last_30_days"] == 3


async def test_suspend_and_activate(api_client, admin_account, make_user):
    user = await make_user("Trouble Maker")
    url = f"/api/admin/users/{user.id}"

    resp = await api_client.post(f"{url}/suspend", headers=admin_account.headers, json={"reason": "  "})
    assert resp.status_code == 400

    resp = await api_client.post(f"{url}/suspend", headers=admin_account.headers,
                                 json={"reason": "Chargeback abuse"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "SUSPENDED"

    # suspended accounts can no longer authenticate
    resp = await api_client.get("/api/users/profile", headers=user.headers)
    assert resp.status_code == 403

    resp = await api_client.post(f"{url}/activate", headers=admin_account.headers)
    assert resp.json()["status"] == "ACTIVE"

    resp = await api_client.get("/api/notifications", headers=user.headers)
    messages = [n["message"] for n in resp.json()["notifications"]]
    assert messages == ["Your account has been reactivated", "Your account has been suspended: Chargeback abuse"]


async def test_unknown_user(api_client, admin_account):
    resp = await api_client.get("/api/admin/users/9999", headers=admin_account.headers)
    assert resp.status_code == 404
    resp = await api_client.post("/api/admin/users/9999/activate", headers=admin_account.headers)
    assert resp.status_code == 404


async def test_admin_role_is_required(api_client, make_user):
    reader_user = await make_user("Plain Reader", UserRole.READER)
    resp = await api_client.get("/api/admin/users/stats", headers=reader_user.headers)
    assert resp.status_code == 403
