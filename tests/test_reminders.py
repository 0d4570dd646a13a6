"""Tests for the session reminder pass."""

from __future__ import annotations

from datetime import timedelta

from soulseer.database import get_async_session_context
from soulseer.models.session import SessionStatus, SessionType
from soulseer.services.reminder_scheduler import ReminderScheduler
from soulseer.utils.datetime import utc_now_naive


async def test_due_sessions_are_reminded_once(api_client, client_account, reader_account, make_session):
    now = utc_now_naive()
    due = await make_session(client_account, reader_account, status=SessionStatus.SCHEDULED,
                             scheduled_at=now + timedelta(minutes=10), session_type=SessionType.CALL)
    await make_session(client_account, reader_account, status=SessionStatus.SCHEDULED,
                       scheduled_at=now + timedelta(hours=3))
    await make_session(client_account, reader_account, status=SessionStatus.CANCELLED,
                       scheduled_at=now + timedelta(minutes=5))

    scheduler = ReminderScheduler(poll_seconds=1, lead_minutes=15)
    async with get_async_session_context() as db:
        assert await scheduler.send_due_reminders(db, now=now) == 1
    async with get_async_session_context() as db:
        assert await scheduler.send_due_reminders(db, now=now) == 0

    for account in (client_account, reader_account):
        resp = await api_client.get("/api/notifications", headers=account.headers,
                                    params={"type": "SESSION_REMINDER"})
        [note] = resp.json()["notifications"]
        assert note["message"] == "Your call session starts in 10 minute(s)."
        assert note["payload"]["session_id"] == due.session_id


async def test_nothing_due(db):
    scheduler = ReminderScheduler(poll_seconds=1, lead_minutes=15)
    async with get_async_session_context() as session:
        assert await scheduler.send_due_reminders(session) == 0
