"""Tests for the notification inbox and its real-time events."""

from __future__ import annotations

import pytest

from soulseer.core.events import NotificationEvent, NotificationEventBus, get_notification_event_bus


async def send(api_client, admin, user_id, title="Hello", **extra):
    body = {"user_id": user_id, "title": title, "message": f"{title} message", **extra}
    resp = await api_client.post("/api/notifications", json=body, headers=admin.headers)
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
async def inbox(api_client, admin_account, client_account):
    """Three notifications for the client, oldest first"""
    return [
        await send(api_client, admin_account, client_account.id, title)
        for title in ("First", "Second", "Third")
    ]


async def test_list_newest_first(api_client, client_account, inbox):
    resp = await api_client.get("/api/notifications", headers=client_account.headers)
    assert resp.status_code == 200
    body = resp.json()
    assert [n["title"] for n in body["notifications"]] == ["Third", "Second", "First"]
    assert body["unread_count"] == 3
    assert body["pagination"] == {"total": 3, "limit": 20, "offset": 0, "has_more": False}


async def test_mark_read_updates_unread_count(api_client, client_account, inbox):
    resp = await api_client.post(f"/api/notifications/{inbox[0]['notification_id']}/read",
                                 headers=client_account.headers)
    assert resp.json() == {"unread_count": 2}

    resp = await api_client.get("/api/notifications", headers=client_account.headers,
                                params={"unread_only": True})
    assert [n["title"] for n in resp.json()["notifications"]] == ["Third", "Second"]

    resp = await api_client.get("/api/notifications/unread-count", headers=client_account.headers)
    assert resp.json() == {"unread_count": 2}


async def test_bulk_actions(api_client, client_account, inbox):
    ids = [n["notification_id"] for n in inbox]

    resp = await api_client.patch("/api/notifications", headers=client_account.headers,
                                  json={"notification_ids": ids, "action": "read"})
    assert resp.json() == {"updated": 3, "unread_count": 0}

    resp = await api_client.patch("/api/notifications", headers=client_account.headers,
                                  json={"notification_ids": ids[:1], "action": "unread"})
    assert resp.json() == {"updated": 1, "unread_count": 1}

    resp = await api_client.patch("/api/notifications", headers=client_account.headers,
                                  json={"notification_ids": ids[:2], "action": "delete"})
    assert resp.json() == {"updated": 2, "unread_count": 0}

    resp = await api_client.get("/api/notifications", headers=client_account.headers)
    assert [n["title"] for n in resp.json()["notifications"]] == ["Third"]


async def test_bulk_action_on_foreign_ids_changes_nothing(api_client, admin_account, client_account,
                                                          make_user, inbox):
    other = await make_user("Someone Else")
    foreign = await send(api_client, admin_account, other.id)
    ids = [inbox[0]["notification_id"], foreign["notification_id"]]

    resp = await api_client.patch("/api/notifications", headers=client_account.headers,
                                  json={"notification_ids": ids, "action": "read"})
    assert resp.status_code == 404

    resp = await api_client.get("/api/notifications/unread-count", headers=client_account.headers)
    assert resp.json() == {"unread_count": 3}


async def test_delete_and_mark_all_read(api_client, client_account, inbox):
    resp = await api_client.delete(f"/api/notifications/{inbox[1]['notification_id']}",
                                   headers=client_account.headers)
    assert resp.json() == {"unread_count": 2}

    resp = await api_client.post("/api/notifications/mark-all-read", headers=client_account.headers)
    assert resp.json() == {"updated": 2, "unread_count": 0}

    # deleting twice is a 404
    resp = await api_client.delete(f"/api/notifications/{inbox[1]['notification_id']}",
                                   headers=client_account.headers)
    assert resp.status_code == 404


async def test_create_requires_admin_and_known_user(api_client, admin_account, client_account):
    resp = await api_client.post("/api/notifications", headers=client_account.headers,
                                 json={"user_id": client_account.id, "title": "x", "message": "y"})
    assert resp.status_code == 403

    resp = await api_client.post("/api/notifications", headers=admin_account.headers,
                                 json={"user_id": 9999, "title": "x", "message": "y"})
    assert resp.status_code == 404


async def test_broadcast_by_role(api_client, admin_account, client_account, make_user, reader_account):
    await make_user("Second Client")
    resp = await api_client.post("/api/notifications/send", headers=admin_account.headers, json={
        "title": "Maintenance", "message": "Sunday night", "type": "MAINTENANCE", "role": "CLIENT",
    })
    assert resp.json() == {"sent": 2}

    resp = await api_client.get("/api/notifications/unread-count", headers=reader_account.headers)
    assert resp.json() == {"unread_count": 0}

    resp = await api_client.post("/api/notifications/send", headers=admin_account.headers,
                                 json={"title": "x", "message": "y"})
    assert resp.status_code == 400


async def test_events_are_published_after_commit(api_client, admin_account, client_account):
    bus = get_notification_event_bus()
    queue = bus.subscribe(client_account.id)
    try:
        created = await send(api_client, admin_account, client_account.id, "Live")

        event = queue.get_nowait()
        assert event.event_type == "notification"
        assert event.data["notification_id"] == created["notification_id"]

        event = queue.get_nowait()
        assert event.event_type == "unread-count-updated"
        assert event.data == {"unread_count": 1}
        assert queue.empty()
    finally:
        bus.unsubscribe(client_account.id, queue)


async def test_bus_drops_events_for_full_queues():
    bus = NotificationEventBus(max_queue_size=1)
    queue = bus.subscribe(7)
    await bus.publish(NotificationEvent(7, "notification", {"n": 1}))
    await bus.publish(NotificationEvent(7, "notification", {"n": 2}))
    await bus.publish(NotificationEvent(8, "notification", {"n": 3}))

    assert queue.qsize() == 1
    assert queue.get_nowait().data == {"n": 1}
    assert bus.get_event_count() == 3

    bus.unsubscribe(7, queue)
    assert bus.get_subscriber_count() == 0
