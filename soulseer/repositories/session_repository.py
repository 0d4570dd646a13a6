"""
Reading Session Repository
Sessions and chat messages
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.session import (ACTIVE_SESSION_STATUSES, ChatMessage,
                                     ReadingSession, SessionStatus)

# longest bookable session; bounds the overlap query window
MAX_SESSION_SPAN = timedelta(hours=3)


class SessionRepository:
    """Reading session Repository"""

    async def create(self, db: AsyncSession, session: ReadingSession) -> ReadingSession:
        db.add(session)
        await db.flush()
        await db.refresh(session)
        return session

    async def get_by_id(self, db: AsyncSession, session_id: int) -> Optional[ReadingSession]:
        stmt = select(ReadingSession).where(
            ReadingSession.session_id == session_id,
            ReadingSession.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, db: AsyncSession, session: ReadingSession) -> ReadingSession:
        await db.flush()
        await db.refresh(session)
        return session

    async def active_overlapping(
        self,
        db: AsyncSession,
        start: datetime,
        end: datetime,
        reader_id: Optional[int] = None,
        participant_id: Optional[int] = None,
    ) -> List[ReadingSession]:
        """
        Active sessions whose [scheduled_at, scheduled_at + duration) overlaps
        [start, end). Datetimes are naive UTC.

        Args:
            reader_id: sessions where this user is the reader
            participant_id: sessions where this user is client or reader
        """
        conditions = [
            ReadingSession.is_deleted.is_(False),
            ReadingSession.status.in_(ACTIVE_SESSION_STATUSES),
            ReadingSession.scheduled_at < end,
            ReadingSession.scheduled_at > start - MAX_SESSION_SPAN,
        ]
        if reader_id is not None:
            conditions.append(ReadingSession.reader_id == reader_id)
        if participant_id is not None:
            conditions.append(or_(
                ReadingSession.client_id == participant_id,
                ReadingSession.reader_id == participant_id,
            ))

        result = await db.execute(select(ReadingSession).where(*conditions))
        candidates = list(result.scalars().all())
        # exact end check in Python; SQLite has no portable interval arithmetic
        return [
            s for s in candidates
            if s.scheduled_at + timedelta(minutes=s.duration_minutes) > start
        ]

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        status: Optional[SessionStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ReadingSession], int]:
        conditions = [
            ReadingSession.is_deleted.is_(False),
            or_(ReadingSession.client_id == user_id, ReadingSession.reader_id == user_id),
        ]
        if status:
            conditions.append(ReadingSession.status == status)
        return await self._page(db, conditions, skip, limit)

    async def list_all(
        self,
        db: AsyncSession,
        status: Optional[SessionStatus] = None,
        reader_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ReadingSession], int]:
        conditions = [ReadingSession.is_deleted.is_(False)]
        if status:
            conditions.append(ReadingSession.status == status)
        if reader_id is not None:
            conditions.append(ReadingSession.reader_id == reader_id)
        return await self._page(db, conditions, skip, limit)

    async def _page(self, db: AsyncSession, conditions, skip: int, limit: int):
        total = (await db.execute(
            select(func.count()).select_from(ReadingSession).where(*conditions)
        )).scalar_one()
        stmt = (
            select(ReadingSession)
            .where(*conditions)
            .order_by(ReadingSession.scheduled_at.desc(), ReadingSession.session_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def scheduled_for_reader(self, db: AsyncSession, reader_id: int) -> List[ReadingSession]:
        stmt = select(ReadingSession).where(
            ReadingSession.reader_id == reader_id,
            ReadingSession.status.in_((SessionStatus.PENDING, SessionStatus.SCHEDULED)),
            ReadingSession.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def due_for_reminder(self, db: AsyncSession, now: datetime, lead: timedelta) -> List[ReadingSession]:
        """SCHEDULED sessions starting within `lead` that were not reminded yet"""
        stmt = select(ReadingSession).where(
            ReadingSession.status == SessionStatus.SCHEDULED,
            ReadingSession.reminder_sent.is_(False),
            ReadingSession.is_deleted.is_(False),
            ReadingSession.scheduled_at > now,
            ReadingSession.scheduled_at <= now + lead,
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_between(
        self,
        db: AsyncSession,
        start: datetime,
        end: Optional[datetime] = None,
        status: Optional[SessionStatus] = None,
    ) -> int:
        conditions = [ReadingSession.is_deleted.is_(False), ReadingSession.created_at >= start]
        if end is not None:
            conditions.append(ReadingSession.created_at < end)
        if status:
            conditions.append(ReadingSession.status == status)
        result = await db.execute(select(func.count()).select_from(ReadingSession).where(*conditions))
        return result.scalar_one()

    async def completed_between(self, db: AsyncSession, start: datetime, end: datetime) -> List[ReadingSession]:
        stmt = select(ReadingSession).where(
            ReadingSession.status == SessionStatus.COMPLETED,
            ReadingSession.ended_at >= start,
            ReadingSession.ended_at < end,
            ReadingSession.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status_for_reader(self, db: AsyncSession, reader_id: int) -> dict:
        result = await db.execute(
            select(ReadingSession.status, func.count())
            .where(ReadingSession.reader_id == reader_id, ReadingSession.is_deleted.is_(False))
            .group_by(ReadingSession.status)
        )
        return {getattr(k, "value", k): c for k, c in result.all()}


class ChatMessageRepository:
    """Chat message Repository"""

    async def create(self, db: AsyncSession, message: ChatMessage) -> ChatMessage:
        db.add(message)
        await db.flush()
        await db.refresh(message)
        return message

    async def list_for_session(
        self,
        db: AsyncSession,
        session_id: int,
        limit: int = 50,
        before_id: Optional[int] = None,
    ) -> List[ChatMessage]:
        """Latest `limit` messages (before before_id), returned oldest first"""
        conditions = [ChatMessage.session_id == session_id, ChatMessage.is_deleted.is_(False)]
        if before_id is not None:
            conditions.append(ChatMessage.message_id < before_id)

        stmt = (
            select(ChatMessage)
            .where(*conditions)
            .order_by(ChatMessage.message_id.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(reversed(result.scalars().all()))
