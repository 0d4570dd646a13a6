"""
Notification Repository
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.notification import Notification, NotificationType


class NotificationRepository:

    async def create(self, db: AsyncSession, notification: Notification) -> Notification:
        db.add(notification)
        await db.flush()
        await db.refresh(notification)
        return notification

    async def get_by_id(self, db: AsyncSession, notification_id: int) -> Optional[Notification]:
        stmt = select(Notification).where(
            Notification.notification_id == notification_id,
            Notification.deleted_at.is_(None),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        type: Optional[NotificationType] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        """Newest first, deleted rows excluded"""
        conditions = [Notification.user_id == user_id, Notification.deleted_at.is_(None)]
        if unread_only:
            conditions.append(Notification.is_read.is_(False))
        if type:
            conditions.append(Notification.type == type)

        total = (await db.execute(
            select(func.count()).select_from(Notification).where(*conditions)
        )).scalar_one()

        stmt = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.notification_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def unread_count(self, db: AsyncSession, user_id: int) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
            Notification.deleted_at.is_(None),
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    async def owned_ids(self, db: AsyncSession, user_id: int, notification_ids: Iterable[int]) -> Set[int]:
        """Subset of ids that exist, are not deleted and belong to user_id"""
        stmt = select(Notification.notification_id).where(
            Notification.notification_id.in_(set(notification_ids)),
            Notification.user_id == user_id,
            Notification.deleted_at.is_(None),
        )
        result = await db.execute(stmt)
        return set(result.scalars().all())

    async def update_many(self, db: AsyncSession, user_id: int, notification_ids: Iterable[int], values: dict) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.notification_id.in_(set(notification_ids)),
                Notification.user_id == user_id,
                Notification.deleted_at.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount or 0

    async def mark_all_read(self, db: AsyncSession, user_id: int, read_at) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
                Notification.deleted_at.is_(None),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount or 0
