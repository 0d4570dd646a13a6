"""
Session Service
Booking flow and the reading session lifecycle

    PENDING / SCHEDULED --start--> IN_PROGRESS --end--> COMPLETED
    PENDING / SCHEDULED --cancel--> CANCELLED
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.models.notification import NotificationType
from soulseer.models.session import ReadingSession, SessionStatus
from soulseer.models.transaction import (Transaction, TransactionStatus,
                                         TransactionType)
from soulseer.models.user import (ReaderProfile, ReaderStatus, User, UserRole,
                                  UserStatus)
from soulseer.repositories.reader_repository import ReaderRepository
from soulseer.repositories.session_repository import SessionRepository
from soulseer.repositories.transaction_repository import TransactionRepository
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.session import (SessionAvailabilityResponse,
                                      SessionBookRequest, SessionListResponse,
                                      SessionResponse)
from soulseer.services.availability_service import AvailabilityService
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.datetime import ensure_utc, to_naive_utc, utc_now_naive
from soulseer.utils.pricing import billed_minutes, split_revenue, to_money
from soulseer.utils.scheduling import window_covers

logger = logging.getLogger(__name__)

CANCELLABLE = (SessionStatus.PENDING, SessionStatus.SCHEDULED)


class SessionService:
    """Reading session service"""

    def __init__(self):
        self.repo = SessionRepository()
        self.reader_repo = ReaderRepository()
        self.user_repo = UserRepository()
        self.transaction_repo = TransactionRepository()
        self.availability = AvailabilityService()
        self.notifications = NotificationService()

    # ========== helpers ==========

    async def _reader(self, db: AsyncSession, reader_id: int) -> Tuple[User, ReaderProfile]:
        user = await self.user_repo.get_by_id(db, reader_id)
        profile = await self.reader_repo.get_by_user_id(db, reader_id) if user else None
        if not user or not profile or user.role != UserRole.READER:
            raise HTTPException(status_code=404, detail="Reader not found")
        return user, profile

    @staticmethod
    def _unavailable_reason(user: User, profile: ReaderProfile, require_online: bool) -> Optional[str]:
        if user.status != UserStatus.ACTIVE:
            return "Reader account is not active"
        if profile.status == ReaderStatus.INVISIBLE:
            return "Reader is not accepting sessions"
        if require_online and profile.status == ReaderStatus.OFFLINE:
            return "Reader is offline"
        return None

    async def _session_for(self, db: AsyncSession, user: User, session_id: int) -> ReadingSession:
        session = await self.repo.get_by_id(db, session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        if not session.involves(user.user_id) and user.role != UserRole.ADMIN:
            raise HTTPException(status_code=403, detail="Not a participant of this session")
        return session

    async def _overlap_reason(self, db: AsyncSession, reader_id: int, client_id: int,
                              start: datetime, end: datetime) -> Optional[str]:
        if await self.repo.active_overlapping(db, start, end, reader_id=reader_id):
            return "Reader already has a session at that time"
        if await self.repo.active_overlapping(db, start, end, participant_id=client_id):
            return "You already have a session at that time"
        return None

    # ========== booking ==========

    async def check_availability(
        self,
        db: AsyncSession,
        reader_id: int,
        date_time: Optional[datetime] = None,
        duration_minutes: int = 30,
        client_id: Optional[int] = None,
    ) -> SessionAvailabilityResponse:
        user, profile = await self._reader(db, reader_id)

        reason = self._unavailable_reason(user, profile, require_online=True)
        if reason is None and date_time is not None:
            start = ensure_utc(date_time)
            end = start + timedelta(minutes=duration_minutes)
            windows = await self.availability.windows_between(db, user, start, end)
            if not window_covers(windows, start, end):
                reason = "Outside the reader's availability"
            elif client_id is not None:
                reason = await self._overlap_reason(db, reader_id, client_id, to_naive_utc(start), to_naive_utc(end))

        return SessionAvailabilityResponse(available=reason is None, reason=reason)

    async def book(self, db: AsyncSession, client: User, data: SessionBookRequest) -> SessionResponse:
        """
        Rules, in order:
        - reader exists (404) and accepts sessions (409)
        - scheduled_at is in the future (400)
        - the reader offers the session type with a rate (400)
        - no overlapping active session for reader or client (409)
        - the interval lies inside an open availability window (409)
        """
        if data.reader_id == client.user_id:
            raise HTTPException(status_code=400, detail="Cannot book a session with yourself")

        reader, profile = await self._reader(db, data.reader_id)
        reason = self._unavailable_reason(reader, profile, require_online=False)
        if reason:
            raise HTTPException(status_code=409, detail=reason)

        start = ensure_utc(data.scheduled_at)
        end = start + timedelta(minutes=data.duration_minutes)
        naive_start, naive_end = to_naive_utc(start), to_naive_utc(end)

        if naive_start <= utc_now_naive():
            raise HTTPException(status_code=400, detail="scheduled_at must be in the future")

        session_type = data.session_type.value
        rate = profile.rate_for(session_type)
        if session_type not in (profile.session_types or []) or rate is None:
            raise HTTPException(status_code=400, detail=f"Reader does not offer {session_type} sessions")

        reason = await self._overlap_reason(db, reader.user_id, client.user_id, naive_start, naive_end)
        if reason:
            raise HTTPException(status_code=409, detail=reason)

        windows = await self.availability.windows_between(db, reader, start, end)
        if not window_covers(windows, start, end):
            raise HTTPException(status_code=409, detail="Requested time is outside the reader's availability")

        session = await self.repo.create(db, ReadingSession(
            client_id=client.user_id,
            reader_id=reader.user_id,
            session_type=data.session_type,
            status=SessionStatus.SCHEDULED,
            scheduled_at=naive_start,
            duration_minutes=data.duration_minutes,
            rate_per_minute=to_money(rate),
            estimated_cost=to_money(rate * data.duration_minutes),
            notes=data.notes,
        ))

        await self.notifications.notify(
            db,
            reader.user_id,
            NotificationType.SESSION_BOOKED,
            "New session booked",
            f"{client.name} booked a {data.duration_minutes} minute {session_type.lower()} session "
            f"for {start.strftime('%Y-%m-%d %H:%M')} UTC.",
            {"session_id": session.session_id},
        )
        await commit_and_publish(db)

        logger.info(f"Session booked: id={session.session_id} client={client.user_id} "
                    f"reader={reader.user_id} at={naive_start.isoformat()}")
        return SessionResponse.model_validate(session)

    # ========== queries ==========

    async def list_sessions(
        self,
        db: AsyncSession,
        user: User,
        status: Optional[SessionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SessionListResponse:
        rows, total = await self.repo.list_for_user(db, user.user_id, status, offset, limit)
        return SessionListResponse(
            sessions=[SessionResponse.model_validate(s) for s in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def admin_list(
        self,
        db: AsyncSession,
        status: Optional[SessionStatus] = None,
        reader_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SessionListResponse:
        rows, total = await self.repo.list_all(db, status, reader_id, offset, limit)
        return SessionListResponse(
            sessions=[SessionResponse.model_validate(s) for s in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def get_session(self, db: AsyncSession, user: User, session_id: int) -> SessionResponse:
        return SessionResponse.model_validate(await self._session_for(db, user, session_id))

    # ========== lifecycle ==========

    async def start(self, db: AsyncSession, user: User, session_id: int) -> SessionResponse:
        session = await self._session_for(db, user, session_id)
        if session.status != SessionStatus.SCHEDULED:
            raise HTTPException(status_code=409, detail=f"Cannot start a {session.status.value} session")

        session.status = SessionStatus.IN_PROGRESS
        session.started_at = utc_now_naive()
        session = await self.repo.update(db, session)

        for recipient in (session.client_id, session.reader_id):
            if recipient == user.user_id:
                continue
            await self.notifications.notify(
                db, recipient, NotificationType.SESSION_STARTED,
                "Session started", "Your reading session has started.",
                {"session_id": session.session_id},
            )
        await commit_and_publish(db)

        logger.info(f"Session started: id={session.session_id} by={user.user_id}")
        return SessionResponse.model_validate(session)

    async def end(self, db: AsyncSession, user: User, session_id: int) -> SessionResponse:
        """
        Bill the elapsed time (minutes rounded up, at least one), record the
        SESSION_CHARGE and credit the reader.
        """
        session = await self._session_for(db, user, session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise HTTPException(status_code=409, detail=f"Cannot end a {session.status.value} session")

        ended_at = utc_now_naive()
        minutes = billed_minutes(session.started_at or ended_at, ended_at)
        total = to_money(session.rate_per_minute * minutes)
        reader_earnings, platform_revenue = split_revenue(total, settings.READER_SHARE)

        session.status = SessionStatus.COMPLETED
        session.ended_at = ended_at
        session.total_cost = total
        session = await self.repo.update(db, session)

        await self.transaction_repo.create(db, Transaction(
            user_id=session.client_id,
            reader_id=session.reader_id,
            session_id=session.session_id,
            type=TransactionType.SESSION_CHARGE,
            status=TransactionStatus.COMPLETED,
            amount=total,
            currency=settings.CURRENCY,
            reader_earnings=reader_earnings,
            platform_revenue=platform_revenue,
            description=f"{minutes} min {session.session_type.value.lower()} session",
        ))

        profile = await self.reader_repo.get_by_user_id(db, session.reader_id)
        if profile:
            profile.total_sessions = (profile.total_sessions or 0) + 1
            profile.total_earnings = to_money((profile.total_earnings or 0) + reader_earnings)
            await self.reader_repo.update(db, profile)

        for recipient in (session.client_id, session.reader_id):
            await self.notifications.notify(
                db, recipient, NotificationType.SESSION_ENDED,
                "Session ended", f"Session completed: {minutes} minute(s), total {total} {settings.CURRENCY}.",
                {"session_id": session.session_id, "minutes": minutes, "total_cost": str(total)},
            )
        await commit_and_publish(db)

        logger.info(f"Session ended: id={session.session_id} minutes={minutes} total={total}")
        return SessionResponse.model_validate(session)

    async def cancel(self, db: AsyncSession, user: User, session_id: int, reason: Optional[str] = None) -> SessionResponse:
        session = await self._session_for(db, user, session_id)
        if session.status not in CANCELLABLE:
            raise HTTPException(status_code=409, detail=f"Cannot cancel a {session.status.value} session")

        session.status = SessionStatus.CANCELLED
        session.cancelled_by = user.user_id
        session = await self.repo.update(db, session)

        message = "Your reading session was cancelled."
        if reason:
            message = f"{message} Reason: {reason}"
        for recipient in (session.client_id, session.reader_id):
            if recipient == user.user_id:
                continue
            await self.notifications.notify(
                db, recipient, NotificationType.SESSION_CANCELLED, "Session cancelled", message,
                {"session_id": session.session_id},
            )
        await commit_and_publish(db)

        logger.info(f"Session cancelled: id={session.session_id} by={user.user_id}")
        return SessionResponse.model_validate(session)
