"""Tests for booking, the session lifecycle and session chat."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from soulseer.models.user import ReaderStatus


@pytest.fixture
async def open_reader(api_client, reader_account, tomorrow):
    """Reader with availability tomorrow 09:00-12:00 UTC"""
    resp = await api_client.post("/api/availability", headers=reader_account.headers, json={
        "is_recurring": False,
        "specific_date": tomorrow(0).date().isoformat(),
        "start_time": "09:00",
        "end_time": "12:00",
    })
    assert resp.status_code == 201
    return reader_account


async def book(api_client, client, reader, at: datetime, **extra):
    body = {"reader_id": reader.id, "scheduled_at": at.isoformat(), "duration_minutes": 30, **extra}
    return await api_client.post("/api/sessions/book", json=body, headers=client.headers)


async def test_book_session(api_client, client_account, open_reader, tomorrow):
    resp = await book(api_client, client_account, open_reader, tomorrow(10))
    assert resp.status_code == 201
    session = resp.json()
    assert session["status"] == "SCHEDULED"
    assert session["client_id"] == client_account.id
    assert Decimal(session["rate_per_minute"]) == Decimal("2.50")
    assert Decimal(session["estimated_cost"]) == Decimal("75.00")

    resp = await api_client.get("/api/notifications", headers=open_reader.headers)
    types = [n["type"] for n in resp.json()["notifications"]]
    assert types == ["SESSION_BOOKED"]


async def test_double_booking_is_rejected(api_client, client_account, make_user, open_reader, tomorrow):
    assert (await book(api_client, client_account, open_reader, tomorrow(10))).status_code == 201

    other = await make_user("Other Client")
    resp = await book(api_client, other, open_reader, tomorrow(10, 15))
    assert resp.status_code == 409

    # back to back is fine
    resp = await book(api_client, other, open_reader, tomorrow(10, 30))
    assert resp.status_code == 201


async def test_booking_outside_availability(api_client, client_account, open_reader, tomorrow):
    resp = await book(api_client, client_account, open_reader, tomorrow(11, 45))
    assert resp.status_code == 409
    resp = await book(api_client, client_account, open_reader, tomorrow(14))
    assert resp.status_code == 409


async def test_booking_in_the_past(api_client, client_account, open_reader):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    resp = await book(api_client, client_account, open_reader, past)
    assert resp.status_code == 400


async def test_booking_unoffered_session_type(api_client, client_account, open_reader, tomorrow):
    resp = await book(api_client, client_account, open_reader, tomorrow(10), session_type="VIDEO")
    assert resp.status_code == 400


async def test_booking_invisible_reader(api_client, client_account, make_reader, tomorrow):
    hidden = await make_reader("Hidden One", status=ReaderStatus.INVISIBLE)
    resp = await book(api_client, client_account, hidden, tomorrow(10))
    assert resp.status_code == 409


async def test_readers_cannot_book(api_client, open_reader, make_reader, tomorrow):
    other_reader = await make_reader("Bo Star")
    resp = await book(api_client, other_reader, open_reader, tomorrow(10))
    assert resp.status_code == 403


async def test_availability_check(api_client, client_account, open_reader, make_reader, tomorrow):
    resp = await api_client.get("/api/sessions/availability", headers=client_account.headers, params={
        "reader_id": open_reader.id, "date_time": tomorrow(9).isoformat(), "duration": 60,
    })
    assert resp.json() == {"available": True, "reason": None}

    resp = await api_client.get("/api/sessions/availability", headers=client_account.headers, params={
        "reader_id": open_reader.id, "date_time": tomorrow(13).isoformat(),
    })
    assert resp.json()["available"] is False

    offline = await make_reader("Sleepy Reader", status=ReaderStatus.OFFLINE)
    resp = await api_client.get("/api/sessions/availability", headers=client_account.headers,
                                params={"reader_id": offline.id})
    assert resp.json() == {"available": False, "reason": "Reader is offline"}


async def test_session_lifecycle_bills_the_client(api_client, client_account, open_reader, admin_account, tomorrow):
    session_id = (await book(api_client, client_account, open_reader, tomorrow(10))).json()["session_id"]

    resp = await api_client.post(f"/api/sessions/{session_id}/start", headers=open_reader.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "IN_PROGRESS"

    resp = await api_client.post(f"/api/sessions/{session_id}/start", headers=open_reader.headers)
    assert resp.status_code == 409

    resp = await api_client.post(f"/api/sessions/{session_id}/end", headers=client_account.headers)
    assert resp.status_code == 200
    session = resp.json()
    assert session["status"] == "COMPLETED"
    # ended right away: one billed minute
    assert Decimal(session["total_cost"]) == Decimal("2.50")

    resp = await api_client.get("/api/admin/finance/transactions", headers=admin_account.headers,
                                params={"type": "SESSION_CHARGE"})
    [tx] = resp.json()["transactions"]
    assert tx["session_id"] == session_id
    assert Decimal(tx["reader_earnings"]) == Decimal("1.75")
    assert Decimal(tx["platform_revenue"]) == Decimal("0.75")

    resp = await api_client.post(f"/api/sessions/{session_id}/cancel", headers=client_account.headers)
    assert resp.status_code == 409


async def test_cancel_notifies_the_other_party(api_client, client_account, open_reader, tomorrow):
    session_id = (await book(api_client, client_account, open_reader, tomorrow(10))).json()["session_id"]

    resp = await api_client.post(f"/api/sessions/{session_id}/cancel", headers=client_account.headers,
                                 json={"reason": "Something came up"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancelled_by"] == client_account.id

    resp = await api_client.get("/api/notifications", headers=open_reader.headers,
                                params={"type": "SESSION_CANCELLED"})
    [note] = resp.json()["notifications"]
    assert "Something came up" in note["message"]

    # the freed time can be booked again
    assert (await book(api_client, client_account, open_reader, tomorrow(10))).status_code == 201


async def test_outsiders_cannot_see_a_session(api_client, client_account, make_user, open_reader, tomorrow):
    session_id = (await book(api_client, client_account, open_reader, tomorrow(10))).json()["session_id"]
    outsider = await make_user("Nosy Person")

    resp = await api_client.get(f"/api/sessions/{session_id}", headers=outsider.headers)
    assert resp.status_code == 403
    resp = await api_client.get("/api/sessions/999", headers=outsider.headers)
    assert resp.status_code == 404


async def test_list_my_sessions(api_client, client_account, open_reader, tomorrow):
    await book(api_client, client_account, open_reader, tomorrow(9))
    await book(api_client, client_account, open_reader, tomorrow(10))

    resp = await api_client.get("/api/sessions", headers=client_account.headers)
    body = resp.json()
    assert body["pagination"]["total"] == 2
    # newest scheduled first
    assert body["sessions"][0]["scheduled_at"] > body["sessions"][1]["scheduled_at"]

    resp = await api_client.get("/api/sessions", headers=open_reader.headers, params={"status": "CANCELLED"})
    assert resp.json()["sessions"] == []


async def test_chat_messages(api_client, client_account, make_user, open_reader, tomorrow):
    session_id = (await book(api_client, client_account, open_reader, tomorrow(10))).json()["session_id"]

    for i, author in enumerate([client_account, open_reader, client_account]):
        resp = await api_client.post("/api/chat/messages", headers=author.headers,
                                     json={"session_id": session_id, "content": f"message {i}"})
        assert resp.status_code == 201

    resp = await api_client.get("/api/chat/messages", headers=open_reader.headers,
                                params={"session_id": session_id, "limit": 2})
    body = resp.json()
    assert [m["content"] for m in body["messages"]] == ["message 1", "message 2"]
    assert body["has_more"] is True

    outsider = await make_user("Nosy Person")
    resp = await api_client.post("/api/chat/messages", headers=outsider.headers,
                                 json={"session_id": session_id, "content": "hello?"})
    assert resp.status_code == 403

    resp = await api_client.get("/api/notifications", headers=open_reader.headers,
                                params={"type": "NEW_MESSAGE"})
    assert resp.json()["pagination"]["total"] == 2
