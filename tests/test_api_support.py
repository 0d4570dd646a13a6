"""Tests for support tickets and the admin support desk."""

from __future__ import annotations

import pytest


@pytest.fixture
async def ticket(api_client, client_account):
    resp = await api_client.post("/api/support/tickets", headers=client_account.headers, json={
        "subject": "Charged twice",
        "message": "My Monday session shows two charges.",
        "category": "billing",
        "priority": "HIGH",
    })
    assert resp.status_code == 201
    return resp.json()


async def test_open_ticket(api_client, client_account, ticket):
    assert ticket["status"] == "OPEN"
    assert [m["body"] for m in ticket["messages"]] == ["My Monday session shows two charges."]

    resp = await api_client.get("/api/support/tickets", headers=client_account.headers)
    assert [t["subject"] for t in resp.json()["tickets"]] == ["Charged twice"]


async def test_tickets_are_private(api_client, make_user, ticket):
    other = await make_user("Someone Else")
    resp = await api_client.get(f"/api/support/tickets/{ticket['ticket_id']}", headers=other.headers)
    assert resp.status_code == 404

    resp = await api_client.post(f"/api/support/tickets/{ticket['ticket_id']}/messages",
                                 headers=other.headers, json={"body": "me too"})
    assert resp.status_code == 404


async def test_internal_notes_are_staff_only(api_client, client_account, admin_account, ticket):
    ticket_id = ticket["ticket_id"]

    resp = await api_client.post(f"/api/support/tickets/{ticket_id}/messages", headers=client_account.headers,
                                 json={"body": "secret", "is_internal": True})
    assert resp.status_code == 403

    await api_client.post(f"/api/admin/support/tickets/{ticket_id}/messages", headers=admin_account.headers,
                          json={"body": "Looks like a duplicate capture", "is_internal": True})
    await api_client.post(f"/api/admin/support/tickets/{ticket_id}/messages", headers=admin_account.headers,
                          json={"body": "We are looking into it."})

    resp = await api_client.get(f"/api/support/tickets/{ticket_id}", headers=client_account.headers)
    body = resp.json()
    assert [m["body"] for m in body["messages"]][-1] == "We are looking into it."
    assert len(body["messages"]) == 2
    # the public reply moved the ticket along
    assert body["status"] == "IN_PROGRESS"

    resp = await api_client.get(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers)
    assert len(resp.json()["messages"]) == 3

    resp = await api_client.get("/api/notifications", headers=client_account.headers)
    assert [n["title"] for n in resp.json()["notifications"]] == ["Support replied"]


async def test_resolve_and_close(api_client, client_account, admin_account, ticket):
    ticket_id = ticket["ticket_id"]

    resp = await api_client.patch(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers,
                                  json={"status": "RESOLVED"})
    assert resp.status_code == 200
    assert resp.json()["resolved_at"] is not None

    resp = await api_client.patch(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers,
                                  json={"status": "OPEN"})
    assert resp.json()["resolved_at"] is None

    await api_client.patch(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers,
                           json={"status": "CLOSED"})
    resp = await api_client.post(f"/api/support/tickets/{ticket_id}/messages", headers=client_account.headers,
                                 json={"body": "one more thing"})
    assert resp.status_code == 409

    resp = await api_client.patch(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers,
                                  json={})
    assert resp.status_code == 400


async def test_assignment_and_agents(api_client, client_account, admin_account, ticket):
    ticket_id = ticket["ticket_id"]

    resp = await api_client.patch(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers,
                                  json={"assigned_to": client_account.id})
    assert resp.status_code == 400

    resp = await api_client.patch(f"/api/admin/support/tickets/{ticket_id}", headers=admin_account.headers,
                                  json={"assigned_to": admin_account.id})
    assert resp.json()["assigned_to"] == admin_account.id

    resp = await api_client.get("/api/admin/support/agents", headers=admin_account.headers)
    assert resp.json()["agents"] == [{
        "user_id": admin_account.id,
        "name": "Root Admin",
        "email": "root.admin@example.com",
        "open_tickets": 1,
    }]

    resp = await api_client.get("/api/admin/support/tickets", headers=admin_account.headers,
                                params={"assigned_to": admin_account.id, "priority": "HIGH"})
    assert resp.json()["pagination"]["total"] == 1


async def test_support_stats(api_client, admin_account, ticket):
    resp = await api_client.get("/api/admin/support/stats", headers=admin_account.headers)
    body = resp.json()
    assert body["total"] == 1
    assert body["by_status"] == {"OPEN": 1, "IN_PROGRESS": 0, "RESOLVED": 0, "CLOSED": 0}
    assert body["by_priority"]["HIGH"] == 1
    assert body["avg_resolution_hours"] == 0.0


async def test_support_desk_requires_admin(api_client, client_account):
    resp = await api_client.get("/api/admin/support/tickets", headers=client_account.headers)
    assert resp.status_code == 403


async def test_ticket_update_rejects_null_status(api_client, admin_account, ticket):
    url = f"/api/admin/support/tickets/{ticket['ticket_id']}"
    resp = await api_client.patch(url, headers=admin_account.headers, json={"status": None})
    assert resp.status_code == 400

    await api_client.patch(url, headers=admin_account.headers, json={"assigned_to": admin_account.id})
    resp = await api_client.patch(url, headers=admin_account.headers, json={"assigned_to": None})
    assert resp.status_code == 200
    assert resp.json()["assigned_to"] is None
    assert resp.json()["status"] == "OPEN"
