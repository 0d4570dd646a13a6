"""
Session Reminder Scheduler
Polls for upcoming sessions and notifies both parties once
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.database import get_async_session_context
from soulseer.models.notification import NotificationType
from soulseer.repositories.session_repository import SessionRepository
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.datetime import utc_now_naive

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """
    Session reminder loop
    - every poll interval, find SCHEDULED sessions starting within the lead time
    - send SESSION_REMINDER to client and reader
    - flag reminder_sent so a session is reminded only once
    """

    def __init__(self, poll_seconds: Optional[float] = None, lead_minutes: Optional[int] = None):
        self.poll_seconds = poll_seconds if poll_seconds is not None else settings.REMINDER_POLL_SECONDS
        self.lead = timedelta(minutes=lead_minutes if lead_minutes is not None else settings.REMINDER_LEAD_MINUTES)
        self.session_repo = SessionRepository()
        self.notifications = NotificationService()

    async def run(self):
        """
        Background loop started from the app lifespan
        """
        logger.info(f"Reminder scheduler started (every {self.poll_seconds}s, lead {self.lead})")

        try:
            while True:
                try:
                    async with get_async_session_context() as db:
                        sent = await self.send_due_reminders(db)
                    if sent:
                        logger.info(f"Sent reminders for {sent} session(s)")
                except Exception as e:
                    logger.error(f"Reminder pass failed: {e}", exc_info=True)

                await asyncio.sleep(self.poll_seconds)

        except asyncio.CancelledError:
            logger.info("Reminder scheduler stopped")

    async def send_due_reminders(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        One pass: remind every due session and commit.

        Returns:
            number of sessions reminded
        """
        now = now or utc_now_naive()
        due = await self.session_repo.due_for_reminder(db, now, self.lead)
        if not due:
            return 0

        try:
            for session in due:
                minutes = max(1, int((session.scheduled_at - now).total_seconds() // 60))
                payload = {"session_id": session.session_id, "scheduled_at": session.scheduled_at.isoformat()}
                for user_id in (session.client_id, session.reader_id):
                    await self.notifications.notify(
                        db, user_id, NotificationType.SESSION_REMINDER,
                        "Session starting soon",
                        f"Your {session.session_type.value.lower()} session starts in {minutes} minute(s).",
                        payload,
                    )
                session.reminder_sent = True

            await db.flush()
            await commit_and_publish(db)
        except Exception:
            await db.rollback()
            raise

        return len(due)


# singleton instance
_reminder_scheduler: Optional[ReminderScheduler] = None


def get_reminder_scheduler() -> ReminderScheduler:
    """Return the ReminderScheduler singleton"""
    global _reminder_scheduler
    if _reminder_scheduler is None:
        _reminder_scheduler = ReminderScheduler()
    return _reminder_scheduler
