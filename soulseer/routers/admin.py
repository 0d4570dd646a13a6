from typing import Annotated, Literal, Optional

from fastapi import Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.transaction import (PayoutStatus, TransactionStatus,
                                         TransactionType)
from soulseer.models.user import ApplicationStatus, ReaderStatus, User
from soulseer.schemas.admin import (AdminReaderDetailResponse, AdminReaderItem,
                                    AdminReaderListResponse,
                                    AnalyticsStatsResponse,
                                    ApplicationDecisionRequest,
                                    ApplicationListResponse, ChartDataResponse,
                                    FinanceStatsResponse, PayoutActionRequest,
                                    PayoutListResponse, PayoutRequest,
                                    PayoutResponse, Period,
                                    ReaderPerformanceResponse,
                                    ReaderStatsResponse, ReasonRequest,
                                    RefundRequest, TransactionListResponse,
                                    TransactionResponse, UserMetricsResponse)
from soulseer.schemas.reader import ReaderApplicationResponse
from soulseer.services.admin_service import (AdminAnalyticsService,
                                             AdminFinanceService,
                                             AdminReaderService)
from soulseer.utils.dependencies import (get_admin_analytics_service,
                                         get_admin_finance_service,
                                         get_admin_reader_service,
                                         require_admin, require_reader)
from soulseer.utils.router import get_router

readers_router = get_router("admin/readers", tag="admin")
analytics_router = get_router("admin/analytics", tag="admin")
finance_router = get_router("admin/finance", tag="admin")
payouts_router = get_router("payouts")

ReaderSvc = Annotated[AdminReaderService, Depends(get_admin_reader_service)]
AnalyticsSvc = Annotated[AdminAnalyticsService, Depends(get_admin_analytics_service)]
FinanceSvc = Annotated[AdminFinanceService, Depends(get_admin_finance_service)]
Db = Annotated[AsyncSession, Depends(get_session)]
Admin = Annotated[User, Depends(require_admin)]


# ----------------------------------------------------------------------
# readers (static paths before /{reader_id})
# ----------------------------------------------------------------------
@readers_router.get("", response_model=AdminReaderListResponse, summary="All readers")
async def list_readers(
    service: ReaderSvc,
    db: Db,
    _: Admin,
    status_filter: Annotated[Optional[ReaderStatus], Query(alias="status")] = None,
    verified: Optional[bool] = None,
    q: Annotated[Optional[str], Query(max_length=100)] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_readers(db, status_filter, verified, q, limit, offset)


@readers_router.get("/stats", response_model=ReaderStatsResponse, summary="Reader stats")
async def reader_stats(service: ReaderSvc, db: Db, _: Admin):
    return await service.stats(db)


@readers_router.get("/performance", response_model=ReaderPerformanceResponse, summary="Reader leaderboard")
async def reader_performance(
    service: ReaderSvc,
    db: Db,
    _: Admin,
    sort_by: Literal["earnings", "sessions", "rating"] = "earnings",
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    return await service.performance(db, sort_by, limit)


@readers_router.get("/applications", response_model=ApplicationListResponse, summary="Reader applications")
async def list_applications(
    service: ReaderSvc,
    db: Db,
    _: Admin,
    status_filter: Annotated[Optional[ApplicationStatus], Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_applications(db, status_filter, limit, offset)


@readers_router.post("/applications/{application_id}/approve", response_model=ReaderApplicationResponse,
                     summary="Approve application")
async def approve_application(
    application_id: int,
    service: ReaderSvc,
    db: Db,
    current_user: Admin,
    data: Annotated[Optional[ApplicationDecisionRequest], Body()] = None,
):
    return await service.approve(db, current_user, application_id, data.note if data else None)


@readers_router.post("/applications/{application_id}/reject", response_model=ReaderApplicationResponse,
                     summary="Reject application")
async def reject_application(
    application_id: int,
    data: ApplicationDecisionRequest,
    service: ReaderSvc,
    db: Db,
    current_user: Admin,
):
    return await service.reject(db, current_user, application_id, data.note)


@readers_router.get("/{reader_id}/details", response_model=AdminReaderDetailResponse, summary="Reader detail")
async def reader_details(reader_id: int, service: ReaderSvc, db: Db, _: Admin):
    return await service.details(db, reader_id)


@readers_router.post("/{reader_id}/suspend", response_model=AdminReaderItem, summary="Suspend reader")
async def suspend_reader(reader_id: int, data: ReasonRequest, service: ReaderSvc, db: Db, current_user: Admin):
    return await service.suspend(db, current_user, reader_id, data.reason)


@readers_router.post("/{reader_id}/activate", response_model=AdminReaderItem, summary="Reactivate reader")
async def activate_reader(reader_id: int, service: ReaderSvc, db: Db, current_user: Admin):
    return await service.activate(db, current_user, reader_id)


# ----------------------------------------------------------------------
# analytics
# ----------------------------------------------------------------------
@analytics_router.get("/stats", response_model=AnalyticsStatsResponse, summary="Dashboard KPIs")
async def analytics_stats(service: AnalyticsSvc, db: Db, _: Admin, period: Period = "30d"):
    return await service.stats(db, period)


@analytics_router.get("/chart-data", response_model=ChartDataResponse, summary="Daily revenue and sessions")
async def chart_data(service: AnalyticsSvc, db: Db, _: Admin, period: Period = "30d"):
    return await service.chart_data(db, period)


@analytics_router.get("/top-readers", response_model=ReaderPerformanceResponse, summary="Top earning readers")
async def top_readers(
    service: AnalyticsSvc,
    db: Db,
    _: Admin,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    return await service.top_readers(db, limit)


@analytics_router.get("/user-metrics", response_model=UserMetricsResponse, summary="User breakdown")
async def user_metrics(service: AnalyticsSvc, db: Db, _: Admin):
    return await service.user_metrics(db)


# ----------------------------------------------------------------------
# finance
# ----------------------------------------------------------------------
@finance_router.get("/transactions", response_model=TransactionListResponse, summary="Transaction ledger")
async def list_transactions(
    service: FinanceSvc,
    db: Db,
    _: Admin,
    type: Optional[TransactionType] = None,
    status_filter: Annotated[Optional[TransactionStatus], Query(alias="status")] = None,
    user_id: Optional[int] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_transactions(db, type, status_filter, user_id, limit, offset)


@finance_router.get("/stats", response_model=FinanceStatsResponse, summary="Finance totals")
async def finance_stats(service: FinanceSvc, db: Db, _: Admin):
    return await service.stats(db)


@finance_router.post("/transactions/{transaction_id}/refund", response_model=TransactionResponse,
                     status_code=status.HTTP_201_CREATED, summary="Refund a transaction")
async def refund_transaction(
    transaction_id: int,
    service: FinanceSvc,
    db: Db,
    current_user: Admin,
    data: Annotated[Optional[RefundRequest], Body()] = None,
):
    return await service.refund(db, current_user, transaction_id, data.reason if data else None)


@finance_router.get("/payouts", response_model=PayoutListResponse, summary="Payout requests")
async def list_payouts(
    service: FinanceSvc,
    db: Db,
    _: Admin,
    status_filter: Annotated[Optional[PayoutStatus], Query(alias="status")] = None,
    reader_id: Optional[int] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_payouts(db, status_filter, reader_id, limit, offset)


@finance_router.post("/payouts/{payout_id}/process", response_model=PayoutResponse, summary="Mark payout paid")
async def process_payout(
    payout_id: int,
    service: FinanceSvc,
    db: Db,
    current_user: Admin,
    data: Annotated[Optional[PayoutActionRequest], Body()] = None,
):
    return await service.process_payout(db, current_user, payout_id, data.note if data else None)


@finance_router.post("/payouts/{payout_id}/cancel", response_model=PayoutResponse, summary="Cancel payout")
async def cancel_payout(
    payout_id: int,
    service: FinanceSvc,
    db: Db,
    current_user: Admin,
    data: Annotated[Optional[PayoutActionRequest], Body()] = None,
):
    return await service.cancel_payout(db, current_user, payout_id, data.note if data else None)


# ----------------------------------------------------------------------
# reader payout requests
# ----------------------------------------------------------------------
@payouts_router.post("", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED,
                     summary="Request a payout")
async def request_payout(
    data: PayoutRequest,
    service: FinanceSvc,
    db: Db,
    current_user: Annotated[User, Depends(require_reader)],
):
    return await service.request_payout(db, current_user, data.amount, data.note)


@payouts_router.get("", response_model=PayoutListResponse, summary="My payouts")
async def my_payouts(
    service: FinanceSvc,
    db: Db,
    current_user: Annotated[User, Depends(require_reader)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_payouts(db, None, current_user.user_id, limit, offset)
