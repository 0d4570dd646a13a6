"""
Admin Services
- AdminReaderService: reader moderation and applications
- AdminAnalyticsService: dashboard KPIs and daily chart series
- AdminFinanceService: ledger, refunds and reader payouts
"""
from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.models.notification import NotificationType
from soulseer.models.product import PurchaseStatus
from soulseer.models.session import SessionStatus
from soulseer.models.transaction import (Payout, PayoutStatus, Transaction,
                                         TransactionStatus, TransactionType)
from soulseer.models.user import (ApplicationStatus, ReaderProfile,
                                  ReaderStatus, User, UserRole, UserStatus)
from soulseer.repositories.marketplace_repository import PurchaseRepository
from soulseer.repositories.reader_repository import (
    ReaderApplicationRepository, ReaderRepository)
from soulseer.repositories.review_repository import ReviewRepository
from soulseer.repositories.session_repository import SessionRepository
from soulseer.repositories.transaction_repository import (PayoutRepository,
                                                          TransactionRepository)
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.admin import (AdminReaderDetailResponse, AdminReaderItem,
                                    AdminReaderListResponse,
                                    AnalyticsStatsResponse,
                                    ApplicationListResponse,
                                    ChartDataResponse, ChartPoint,
                                    FinanceStatsResponse, PayoutListResponse,
                                    PayoutResponse, ReaderPerformanceItem,
                                    ReaderPerformanceResponse,
                                    ReaderStatsResponse,
                                    TransactionListResponse,
                                    TransactionResponse, UserMetricsResponse)
from soulseer.schemas.common import Pagination
from soulseer.schemas.reader import ReaderApplicationResponse, ReaderResponse
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.services.review_service import ReviewService
from soulseer.utils.analytics_calc import (DailySeriesCalc, growth_rate,
                                           period_bounds, period_days)
from soulseer.utils.datetime import utc_now_naive
from soulseer.utils.pricing import ZERO, to_money

logger = logging.getLogger(__name__)

# per-minute rate given to each offered session type of a newly approved reader
DEFAULT_RATE_PER_MINUTE = 1.99

REVENUE_TYPES = (TransactionType.SESSION_CHARGE, TransactionType.PURCHASE, TransactionType.GIFT_PURCHASE)
REFUNDABLE_TYPES = (TransactionType.SESSION_CHARGE, TransactionType.PURCHASE)


def _admin_reader_item(profile: ReaderProfile, user: User) -> AdminReaderItem:
    return AdminReaderItem(
        **ReaderResponse.from_profile(profile).model_dump(),
        email=user.email,
        account_status=user.status,
        total_earnings=to_money(profile.total_earnings or 0),
        joined_at=user.created_at,
    )


class AdminReaderService:
    """Reader moderation"""

    def __init__(self):
        self.reader_repo = ReaderRepository()
        self.application_repo = ReaderApplicationRepository()
        self.user_repo = UserRepository()
        self.session_repo = SessionRepository()
        self.transaction_repo = TransactionRepository()
        self.payout_repo = PayoutRepository()
        self.reviews = ReviewService()
        self.notifications = NotificationService()

    async def _reader(self, db: AsyncSession, reader_id: int):
        profile = await self.reader_repo.get_by_user_id(db, reader_id)
        user = await self.user_repo.get_by_id(db, reader_id) if profile else None
        if not profile or not user:
            raise HTTPException(status_code=404, detail="Reader not found")
        return profile, user

    async def list_readers(
        self,
        db: AsyncSession,
        status: Optional[ReaderStatus] = None,
        verified: Optional[bool] = None,
        q: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> AdminReaderListResponse:
        rows, total = await self.reader_repo.list_admin(db, status, verified, q, offset, limit)
        return AdminReaderListResponse(
            readers=[_admin_reader_item(profile, user) for profile, user in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def stats(self, db: AsyncSession) -> ReaderStatsResponse:
        by_status = await self.reader_repo.count_by_status(db)
        readers = await self.user_repo.list_by_role(db, UserRole.READER)
        _, pending = await self.application_repo.list_applications(db, ApplicationStatus.PENDING, 0, 1)
        return ReaderStatsResponse(
            total=sum(by_status.values()),
            by_status={s.value: by_status.get(s.value, 0) for s in ReaderStatus},
            verified=await self.reader_repo.count_verified(db),
            suspended=sum(1 for u in readers if u.status == UserStatus.SUSPENDED),
            pending_applications=pending,
        )

    async def details(self, db: AsyncSession, reader_id: int) -> AdminReaderDetailResponse:
        profile, user = await self._reader(db, reader_id)
        return AdminReaderDetailResponse(
            reader=_admin_reader_item(profile, user),
            reviews=await self.reviews.summary(db, reader_id),
            sessions_by_status=await self.session_repo.count_by_status_for_reader(db, reader_id),
            lifetime_earnings=to_money(await self.transaction_repo.reader_earnings(db, reader_id)),
            payouts_committed=to_money(await self.payout_repo.committed_amount(db, reader_id)),
        )

    async def performance(self, db: AsyncSession, sort_by: str = "earnings", limit: int = 10) -> ReaderPerformanceResponse:
        column = {
            "earnings": ReaderProfile.total_earnings,
            "sessions": ReaderProfile.total_sessions,
            "rating": ReaderProfile.average_rating,
        }.get(sort_by, ReaderProfile.total_earnings)
        profiles = await self.reader_repo.top_by(db, column, limit)
        return ReaderPerformanceResponse(readers=[
            ReaderPerformanceItem(
                reader_id=p.user_id,
                full_name=p.full_name,
                total_sessions=p.total_sessions,
                total_earnings=to_money(p.total_earnings or 0),
                average_rating=p.average_rating,
                review_count=p.review_count,
            )
            for p in profiles
        ])

    async def suspend(self, db: AsyncSession, admin: User, reader_id: int, reason: str) -> AdminReaderItem:
        """
        Reader goes OFFLINE, the account is SUSPENDED and every upcoming
        session is cancelled with the client notified.
        """
        reason = (reason or "").strip()
        if not reason:
            raise HTTPException(status_code=400, detail="Suspension reason is required")

        profile, user = await self._reader(db, reader_id)
        profile.status = ReaderStatus.OFFLINE
        user.status = UserStatus.SUSPENDED

        upcoming = await self.session_repo.scheduled_for_reader(db, reader_id)
        for session in upcoming:
            session.status = SessionStatus.CANCELLED
            session.cancelled_by = admin.user_id
            await self.notifications.notify(
                db, session.client_id, NotificationType.SESSION_CANCELLED,
                "Session cancelled", "Your upcoming session was cancelled because the reader is unavailable.",
                {"session_id": session.session_id},
            )

        await self.notifications.notify(
            db, reader_id, NotificationType.SYSTEM_UPDATE,
            "Account suspended", f"Your reader account has been suspended: {reason}",
            {"reason": reason},
        )
        await self.reader_repo.update(db, profile)
        await commit_and_publish(db)

        logger.warning(f"Reader {reader_id} suspended by {admin.user_id}: {reason} "
                       f"({len(upcoming)} session(s) cancelled)")
        return _admin_reader_item(profile, user)

    async def activate(self, db: AsyncSession, admin: User, reader_id: int) -> AdminReaderItem:
        profile, user = await self._reader(db, reader_id)
        user.status = UserStatus.ACTIVE
        await self.notifications.notify(
            db, reader_id, NotificationType.SYSTEM_UPDATE,
            "Account reactivated", "Your reader account is active again.",
        )
        await self.reader_repo.update(db, profile)
        await commit_and_publish(db)

        logger.info(f"Reader {reader_id} activated by {admin.user_id}")
        return _admin_reader_item(profile, user)

    # ========== applications ==========

    async def list_applications(
        self,
        db: AsyncSession,
        status: Optional[ApplicationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ApplicationListResponse:
        rows, total = await self.application_repo.list_applications(db, status, offset, limit)
        return ApplicationListResponse(
            applications=[ReaderApplicationResponse.model_validate(a) for a in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def _pending_application(self, db: AsyncSession, application_id: int):
        application = await self.application_repo.get_by_id(db, application_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        if application.status != ApplicationStatus.PENDING:
            raise HTTPException(status_code=409, detail=f"Application already {application.status.value.lower()}")
        return application

    async def approve(
        self, db: AsyncSession, admin: User, application_id: int, note: Optional[str] = None
    ) -> ReaderApplicationResponse:
        application = await self._pending_application(db, application_id)
        user = await self.user_repo.get_by_id(db, application.user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Applicant not found")

        session_types = list(application.session_types or ["CHAT"])
        profile = await self.reader_repo.get_by_user_id(db, user.user_id)
        if profile is None:
            await self.reader_repo.create(db, ReaderProfile(
                user_id=user.user_id,
                first_name=application.first_name,
                last_name=application.last_name,
                bio=application.bio,
                specialties=list(application.specialties or []),
                session_types=session_types,
                rates={t: DEFAULT_RATE_PER_MINUTE for t in session_types},
                experience_years=application.experience_years,
                is_verified=True,
            ))

        user.role = UserRole.READER
        application.status = ApplicationStatus.APPROVED
        application.review_note = note
        application.reviewed_by = admin.user_id
        application.reviewed_at = utc_now_naive()

        await self.notifications.notify(
            db, user.user_id, NotificationType.SYSTEM_UPDATE,
            "Application approved", "Welcome aboard! Your reader profile is live; set your rates and availability.",
            {"application_id": application.application_id},
        )
        await db.flush()
        await commit_and_publish(db)

        logger.info(f"Reader application {application_id} approved by {admin.user_id}")
        return ReaderApplicationResponse.model_validate(application)

    async def reject(self, db: AsyncSession, admin: User, application_id: int, note: Optional[str]) -> ReaderApplicationResponse:
        note = (note or "").strip()
        if not note:
            raise HTTPException(status_code=400, detail="A note is required when rejecting")

        application = await self._pending_application(db, application_id)
        application.status = ApplicationStatus.REJECTED
        application.review_note = note
        application.reviewed_by = admin.user_id
        application.reviewed_at = utc_now_naive()

        await self.notifications.notify(
            db, application.user_id, NotificationType.SYSTEM_UPDATE,
            "Application update", f"Your reader application was not approved: {note}",
            {"application_id": application.application_id},
        )
        await db.flush()
        await commit_and_publish(db)

        logger.info(f"Reader application {application_id} rejected by {admin.user_id}")
        return ReaderApplicationResponse.model_validate(application)


class AdminAnalyticsService:
    """Dashboard KPIs"""

    def __init__(self):
        self.user_repo = UserRepository()
        self.reader_repo = ReaderRepository()
        self.session_repo = SessionRepository()
        self.transaction_repo = TransactionRepository()
        self.review_repo = ReviewRepository()

    async def stats(self, db: AsyncSession, period: str = "30d", now: Optional[datetime] = None) -> AnalyticsStatsResponse:
        now = now or utc_now_naive()
        prev_start, start, end = period_bounds(period, now)

        new_users = await self.user_repo.count_created_between(db, start, end)
        prev_users = await self.user_repo.count_created_between(db, prev_start, start)
        sessions = await self.session_repo.count_between(db, start, end)
        prev_sessions = await self.session_repo.count_between(db, prev_start, start)
        completed = len(await self.session_repo.completed_between(db, start, end))

        current_tx = await self.transaction_repo.completed_between(db, start, end, REVENUE_TYPES)
        previous_tx = await self.transaction_repo.completed_between(db, prev_start, start, REVENUE_TYPES)
        revenue = sum((t.amount for t in current_tx), ZERO)
        prev_revenue = sum((t.amount for t in previous_tx), ZERO)
        platform = sum((t.platform_revenue or ZERO for t in current_tx), ZERO)

        readers = await self.reader_repo.count_by_status(db)

        return AnalyticsStatsResponse(
            period=period,
            total_users=await self.user_repo.count_all(db),
            new_users=new_users,
            user_growth_rate=growth_rate(new_users, prev_users),
            total_readers=sum(readers.values()),
            online_readers=readers.get(ReaderStatus.ONLINE.value, 0),
            sessions=sessions,
            session_growth_rate=growth_rate(sessions, prev_sessions),
            completed_sessions=completed,
            revenue=to_money(revenue),
            platform_revenue=to_money(platform),
            revenue_growth_rate=growth_rate(float(revenue), float(prev_revenue)),
            average_rating=await self.review_repo.average_all(db),
        )

    async def chart_data(self, db: AsyncSession, period: str = "30d", now: Optional[datetime] = None) -> ChartDataResponse:
        """
        One point per UTC day of the period, today included; days without
        activity are zero.
        """
        now = now or utc_now_naive()
        last_day = now.date()
        first_day = last_day - timedelta(days=period_days(period) - 1)
        start = datetime.combine(first_day, time.min)
        end = datetime.combine(last_day + timedelta(days=1), time.min)

        transactions = await self.transaction_repo.completed_between(db, start, end, REVENUE_TYPES)
        sessions = await self.session_repo.completed_between(db, start, end)

        calc = DailySeriesCalc(first_day, last_day)
        tx_rows = [
            {"date": t.created_at, "revenue": t.amount, "platform_revenue": t.platform_revenue or 0}
            for t in transactions
        ]
        points = calc.build({
            "revenue": calc.series(tx_rows, "revenue"),
            "platform_revenue": calc.series(tx_rows, "platform_revenue"),
            "sessions": calc.series([{"date": s.ended_at} for s in sessions]),
        })
        return ChartDataResponse(period=period, points=[ChartPoint(**p) for p in points])

    async def top_readers(self, db: AsyncSession, limit: int = 10) -> ReaderPerformanceResponse:
        return await AdminReaderService().performance(db, "earnings", limit)

    async def user_metrics(self, db: AsyncSession, now: Optional[datetime] = None) -> UserMetricsResponse:
        now = now or utc_now_naive()
        by_role = await self.user_repo.count_grouped(db, User.role)
        by_status = await self.user_repo.count_grouped(db, User.status)
        return UserMetricsResponse(
            total=sum(by_role.values()),
            by_role={r.value: by_role.get(r.value, 0) for r in UserRole},
            by_status={s.value: by_status.get(s.value, 0) for s in UserStatus},
            new_last_7_days=await self.user_repo.count_created_between(db, now - timedelta(days=7)),
            new_last_30_days=await self.user_repo.count_created_between(db, now - timedelta(days=30)),
        )


class AdminFinanceService:
    """Ledger, refunds and payouts"""

    def __init__(self):
        self.transaction_repo = TransactionRepository()
        self.payout_repo = PayoutRepository()
        self.purchase_repo = PurchaseRepository()
        self.session_repo = SessionRepository()
        self.reader_repo = ReaderRepository()
        self.notifications = NotificationService()

    async def list_transactions(
        self,
        db: AsyncSession,
        type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        user_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> TransactionListResponse:
        rows, total = await self.transaction_repo.list_transactions(db, type, status, user_id, offset, limit)
        return TransactionListResponse(
            transactions=[TransactionResponse.model_validate(t) for t in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def stats(self, db: AsyncSession) -> FinanceStatsResponse:
        by_type = await self.transaction_repo.sum_by_type(db)
        payouts = await self.payout_repo.sum_by_status(db)

        def amount(t: TransactionType) -> Decimal:
            return by_type.get(t.value, {}).get("amount", ZERO)

        return FinanceStatsResponse(
            gross_revenue=to_money(sum((amount(t) for t in REVENUE_TYPES), ZERO)),
            platform_revenue=to_money(await self.transaction_repo.sum_platform_revenue(db)),
            refunds=to_money(amount(TransactionType.REFUND)),
            deposits=to_money(amount(TransactionType.ADD_FUNDS)),
            payouts_completed=to_money(payouts.get(PayoutStatus.COMPLETED.value, ZERO)),
            payouts_pending=to_money(payouts.get(PayoutStatus.PENDING.value, ZERO)),
            amount_by_type={t.value: to_money(amount(t)) for t in TransactionType},
            count_by_type={t.value: by_type.get(t.value, {}).get("count", 0) for t in TransactionType},
            by_status=await self.transaction_repo.count_by_status(db),
        )

    async def refund(self, db: AsyncSession, admin: User, transaction_id: int, reason: Optional[str] = None) -> TransactionResponse:
        """
        Refund a COMPLETED session charge or purchase: a REFUND row is added,
        the original becomes REFUNDED, its session is cancelled and its
        purchases are marked REFUNDED.
        """
        original = await self.transaction_repo.get_by_id(db, transaction_id)
        if not original:
            raise HTTPException(status_code=404, detail="Transaction not found")
        if original.type not in REFUNDABLE_TYPES:
            raise HTTPException(status_code=400, detail=f"{original.type.value} transactions cannot be refunded")
        if original.status == TransactionStatus.REFUNDED or await self.transaction_repo.get_refund_of(db, transaction_id):
            raise HTTPException(status_code=409, detail="Transaction already refunded")
        if original.status != TransactionStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Only completed transactions can be refunded")

        refund = await self.transaction_repo.create(db, Transaction(
            user_id=original.user_id,
            reader_id=original.reader_id,
            session_id=original.session_id,
            refunded_transaction_id=original.transaction_id,
            type=TransactionType.REFUND,
            status=TransactionStatus.COMPLETED,
            amount=original.amount,
            currency=original.currency,
            description=reason or f"Refund of {original.reference}",
        ))
        original.status = TransactionStatus.REFUNDED

        if original.session_id is not None:
            session = await self.session_repo.get_by_id(db, original.session_id)
            if session:
                session.status = SessionStatus.CANCELLED
                session.cancelled_by = admin.user_id

        for purchase in await self.purchase_repo.list_for_transaction(db, original.transaction_id):
            purchase.status = PurchaseStatus.REFUNDED

        if original.reader_id is not None and original.reader_earnings:
            profile = await self.reader_repo.get_by_user_id(db, original.reader_id)
            if profile:
                profile.total_earnings = to_money((profile.total_earnings or ZERO) - original.reader_earnings)

        await self.notifications.notify(
            db, original.user_id, NotificationType.PAYMENT_RECEIVED,
            "Refund issued", f"{original.amount} {original.currency} was refunded ({original.reference}).",
            {"transaction_id": refund.transaction_id, "refunded_transaction_id": original.transaction_id},
        )
        await db.flush()
        await commit_and_publish(db)

        logger.warning(f"Transaction {transaction_id} refunded by {admin.user_id}: {original.amount}")
        return TransactionResponse.model_validate(refund)

    # ========== payouts ==========

    async def request_payout(self, db: AsyncSession, reader: User, amount: Decimal, note: Optional[str] = None) -> PayoutResponse:
        amount = to_money(amount)
        earned = await self.transaction_repo.reader_earnings(db, reader.user_id)
        committed = await self.payout_repo.committed_amount(db, reader.user_id)
        available = to_money(earned - committed)
        if amount > available:
            raise HTTPException(status_code=400, detail=f"Requested {amount} exceeds available earnings {available}")

        payout = await self.payout_repo.create(db, Payout(
            reader_id=reader.user_id,
            amount=amount,
            currency=settings.CURRENCY,
            note=note,
        ))
        await db.commit()

        logger.info(f"Payout requested: reader={reader.user_id} amount={amount}")
        return PayoutResponse.model_validate(payout)

    async def list_payouts(
        self,
        db: AsyncSession,
        status: Optional[PayoutStatus] = None,
        reader_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PayoutListResponse:
        rows, total = await self.payout_repo.list_payouts(db, status, reader_id, offset, limit)
        return PayoutListResponse(
            payouts=[PayoutResponse.model_validate(p) for p in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def _pending_payout(self, db: AsyncSession, payout_id: int) -> Payout:
        payout = await self.payout_repo.get_by_id(db, payout_id)
        if not payout:
            raise HTTPException(status_code=404, detail="Payout not found")
        if payout.status != PayoutStatus.PENDING:
            raise HTTPException(status_code=409, detail=f"Payout is {payout.status.value}")
        return payout

    async def process_payout(self, db: AsyncSession, admin: User, payout_id: int, note: Optional[str] = None) -> PayoutResponse:
        payout = await self._pending_payout(db, payout_id)
        payout.status = PayoutStatus.COMPLETED
        payout.processed_at = utc_now_naive()
        payout.processed_by = admin.user_id
        if note:
            payout.note = note

        await self.transaction_repo.create(db, Transaction(
            user_id=payout.reader_id,
            reader_id=payout.reader_id,
            type=TransactionType.PAYOUT,
            status=TransactionStatus.COMPLETED,
            amount=payout.amount,
            currency=payout.currency,
            description=f"Payout #{payout.payout_id}",
        ))
        await self.notifications.notify(
            db, payout.reader_id, NotificationType.PAYMENT_RECEIVED,
            "Payout sent", f"Your payout of {payout.amount} {payout.currency} has been processed.",
            {"payout_id": payout.payout_id},
        )
        payout = await self.payout_repo.update(db, payout)
        await commit_and_publish(db)

        logger.info(f"Payout {payout_id} processed by {admin.user_id}")
        return PayoutResponse.model_validate(payout)

    async def cancel_payout(self, db: AsyncSession, admin: User, payout_id: int, note: Optional[str] = None) -> PayoutResponse:
        payout = await self._pending_payout(db, payout_id)
        payout.status = PayoutStatus.CANCELLED
        payout.processed_at = utc_now_naive()
        payout.processed_by = admin.user_id
        if note:
            payout.note = note

        await self.notifications.notify(
            db, payout.reader_id, NotificationType.PAYMENT_FAILED,
            "Payout cancelled", f"Your payout request of {payout.amount} {payout.currency} was cancelled.",
            {"payout_id": payout.payout_id},
        )
        payout = await self.payout_repo.update(db, payout)
        await commit_and_publish(db)

        logger.info(f"Payout {payout_id} cancelled by {admin.user_id}")
        return PayoutResponse.model_validate(payout)
