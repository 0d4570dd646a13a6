from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from soulseer.models.transaction import (PayoutStatus, TransactionStatus,
                                         TransactionType)
from soulseer.models.user import UserStatus
from soulseer.schemas.common import Pagination
from soulseer.schemas.reader import (ReaderApplicationResponse,
                                     ReaderResponse, ReviewSummary)

Period = Literal["7d", "30d", "90d", "1y"]


# ----------------------------------------------------------------------
# readers
# ----------------------------------------------------------------------
class AdminReaderItem(ReaderResponse):
    email: str
    account_status: UserStatus
    total_earnings: Decimal
    joined_at: Optional[datetime] = None


class AdminReaderListResponse(BaseModel):
    readers: List[AdminReaderItem]
    pagination: Pagination


class ReaderStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    verified: int
    suspended: int
    pending_applications: int


class AdminReaderDetailResponse(BaseModel):
    reader: AdminReaderItem
    reviews: ReviewSummary
    sessions_by_status: Dict[str, int]
    lifetime_earnings: Decimal
    payouts_committed: Decimal = Field(..., description="paid out or pending")


class ReaderPerformanceItem(BaseModel):
    reader_id: int
    full_name: str
    total_sessions: int
    total_earnings: Decimal
    average_rating: float
    review_count: int


class ReaderPerformanceResponse(BaseModel):
    readers: List[ReaderPerformanceItem]


class ReasonRequest(BaseModel):
    reason: str = Field("", max_length=500, description="required")


class ApplicationDecisionRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=1000, description="required when rejecting")


class ApplicationListResponse(BaseModel):
    applications: List[ReaderApplicationResponse]
    pagination: Pagination


# ----------------------------------------------------------------------
# analytics
# ----------------------------------------------------------------------
class AnalyticsStatsResponse(BaseModel):
    """
    Period totals with growth vs the previous period of equal length
    """
    period: Period
    total_users: int
    new_users: int
    user_growth_rate: float
    total_readers: int
    online_readers: int
    sessions: int
    session_growth_rate: float
    completed_sessions: int
    revenue: Decimal
    platform_revenue: Decimal
    revenue_growth_rate: float
    average_rating: float


class ChartPoint(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD (UTC)")
    revenue: float
    platform_revenue: float
    sessions: float


class ChartDataResponse(BaseModel):
    period: Period
    points: List[ChartPoint] = Field(..., description="one point per day, zero-filled")


class UserMetricsResponse(BaseModel):
    total: int
    by_role: Dict[str, int]
    by_status: Dict[str, int]
    new_last_7_days: int
    new_last_30_days: int


# ----------------------------------------------------------------------
# finance
# ----------------------------------------------------------------------
class TransactionResponse(BaseModel):
    transaction_id: int
    reference: str
    user_id: int
    reader_id: Optional[int] = None
    type: TransactionType
    status: TransactionStatus
    amount: Decimal
    currency: str
    session_id: Optional[int] = None
    refunded_transaction_id: Optional[int] = None
    reader_earnings: Optional[Decimal] = None
    platform_revenue: Optional[Decimal] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    pagination: Pagination


class FinanceStatsResponse(BaseModel):
    gross_revenue: Decimal = Field(..., description="completed charges, purchases and gifts")
    platform_revenue: Decimal
    refunds: Decimal
    deposits: Decimal
    payouts_completed: Decimal
    payouts_pending: Decimal
    amount_by_type: Dict[str, Decimal] = Field(..., description="completed transactions")
    count_by_type: Dict[str, int]
    by_status: Dict[str, int]


class RefundRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PayoutRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    note: Optional[str] = Field(None, max_length=500)


class PayoutResponse(BaseModel):
    payout_id: int
    reader_id: int
    amount: Decimal
    currency: str
    status: PayoutStatus
    processed_at: Optional[datetime] = None
    processed_by: Optional[int] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PayoutListResponse(BaseModel):
    payouts: List[PayoutResponse]
    pagination: Pagination


class PayoutActionRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=500)
