"""
Notification Service
In-app notifications, unread counts and real-time fan-out
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.events import NotificationEvent, get_notification_event_bus
from soulseer.models.notification import Notification, NotificationType
from soulseer.models.user import UserRole
from soulseer.repositories.notification_repository import NotificationRepository
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.notification import (NotificationAction,
                                           NotificationListResponse,
                                           NotificationResponse)
from soulseer.utils.datetime import utc_now_naive

logger = logging.getLogger(__name__)

# db.info key collecting events to publish once the transaction commits
PENDING_EVENTS_KEY = "pending_notification_events"


def _queue(db: AsyncSession, kind: str, value) -> None:
    db.info.setdefault(PENDING_EVENTS_KEY, []).append((kind, value))


async def publish_pending(db: AsyncSession) -> None:
    """
    Publish events queued on this session. Called after commit so sockets
    never see rows that were rolled back.
    """
    pending = db.info.pop(PENDING_EVENTS_KEY, [])
    if not pending:
        return

    bus = get_notification_event_bus()
    repo = NotificationRepository()
    users = []

    for kind, value in pending:
        if kind == "notification":
            data = NotificationResponse.model_validate(value).model_dump(mode="json")
            await bus.publish(NotificationEvent(user_id=value.user_id, event_type="notification", data=data))
            user_id = value.user_id
        else:
            user_id = value
        if user_id not in users:
            users.append(user_id)

    for user_id in users:
        if bus.get_subscriber_count(user_id) == 0:
            continue
        count = await repo.unread_count(db, user_id)
        await bus.publish(NotificationEvent(
            user_id=user_id,
            event_type="unread-count-updated",
            data={"unread_count": count},
        ))


async def commit_and_publish(db: AsyncSession) -> None:
    await db.commit()
    await publish_pending(db)


class NotificationService:
    """Notification service"""

    def __init__(self):
        self.repo = NotificationRepository()
        self.user_repo = UserRepository()

    # ========== producers ==========

    async def notify(
        self,
        db: AsyncSession,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """
        Add a notification to the current transaction. The socket event is
        sent by commit_and_publish.
        """
        notification = await self.repo.create(db, Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            payload=payload,
        ))
        _queue(db, "notification", notification)
        logger.debug(f"Notification queued: user={user_id} type={type.value}")
        return notification

    async def create_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        user = await self.user_repo.get_by_id(db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        notification = await self.notify(db, user_id, type, title, message, payload)
        await commit_and_publish(db)
        return notification

    async def broadcast(
        self,
        db: AsyncSession,
        type: NotificationType,
        title: str,
        message: str,
        role: Optional[UserRole] = None,
        user_ids: Optional[List[int]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> int:
        if user_ids:
            found = await self.user_repo.get_many(db, user_ids)
            missing = set(user_ids) - set(found)
            if missing:
                raise HTTPException(status_code=404, detail=f"Users not found: {sorted(missing)}")
            recipients = sorted(found)
        elif role:
            recipients = [u.user_id for u in await self.user_repo.list_by_role(db, role)]
        else:
            raise HTTPException(status_code=400, detail="Either role or user_ids is required")

        for user_id in recipients:
            await self.notify(db, user_id, type, title, message, payload)
        await commit_and_publish(db)

        logger.info(f"Broadcast '{title}' sent to {len(recipients)} user(s)")
        return len(recipients)

    # ========== readers ==========

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        type: Optional[NotificationType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> NotificationListResponse:
        rows, total = await self.repo.list_for_user(db, user_id, unread_only, type, offset, limit)
        unread = await self.repo.unread_count(db, user_id)
        return NotificationListResponse(
            notifications=[NotificationResponse.model_validate(n) for n in rows],
            pagination=Pagination.of(total, limit, offset),
            unread_count=unread,
        )

    async def unread_count(self, db: AsyncSession, user_id: int) -> int:
        return await self.repo.unread_count(db, user_id)

    # ========== state changes ==========

    async def apply_action(
        self,
        db: AsyncSession,
        user_id: int,
        notification_ids: List[int],
        action: NotificationAction,
    ) -> tuple[int, int]:
        """
        Bulk read / unread / delete.

        Every id must belong to the caller, otherwise nothing changes (404).
        The update and the unread count run in one transaction.

        Returns:
            (updated rows, unread count after the update)
        """
        ids = set(notification_ids)
        owned = await self.repo.owned_ids(db, user_id, ids)
        if owned != ids:
            logger.warning(f"User {user_id} tried to modify foreign notifications: {sorted(ids - owned)}")
            raise HTTPException(status_code=404, detail="One or more notifications not found")

        now = utc_now_naive()
        if action == NotificationAction.READ:
            values = {"is_read": True, "read_at": now}
        elif action == NotificationAction.UNREAD:
            values = {"is_read": False, "read_at": None}
        else:
            values = {"deleted_at": now, "is_deleted": True}

        try:
            updated = await self.repo.update_many(db, user_id, ids, values)
            unread = await self.repo.unread_count(db, user_id)
            _queue(db, "unread", user_id)
            await commit_and_publish(db)
        except HTTPException:
            raise
        except Exception as e:
            await db.rollback()
            logger.error(f"Notification update failed: {e}", exc_info=True)
            raise

        return updated, unread

    async def mark_read(self, db: AsyncSession, user_id: int, notification_id: int) -> int:
        _, unread = await self.apply_action(db, user_id, [notification_id], NotificationAction.READ)
        return unread

    async def delete(self, db: AsyncSession, user_id: int, notification_id: int) -> int:
        _, unread = await self.apply_action(db, user_id, [notification_id], NotificationAction.DELETE)
        return unread

    async def mark_all_read(self, db: AsyncSession, user_id: int) -> tuple[int, int]:
        updated = await self.repo.mark_all_read(db, user_id, utc_now_naive())
        unread = await self.repo.unread_count(db, user_id)
        _queue(db, "unread", user_id)
        await commit_and_publish(db)
        return updated, unread
