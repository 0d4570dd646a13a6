from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlalchemy.types import Numeric
from sqlmodel import Field

from soulseer.models.base import BaseModel


class TransactionType(str, Enum):
    ADD_FUNDS = "ADD_FUNDS"
    SESSION_CHARGE = "SESSION_CHARGE"
    REFUND = "REFUND"
    PAYOUT = "PAYOUT"
    PURCHASE = "PURCHASE"
    GIFT_PURCHASE = "GIFT_PURCHASE"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Transaction(BaseModel, table=True):
    """
    Money movement ledger
    - reader_earnings / platform_revenue split session charges and purchases
    - refunded_transaction_id links a REFUND row to what it refunds
    """

    __tablename__ = "transactions"

    transaction_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    reference: str = Field(
        max_length=64,
        nullable=False,
        description="external / human readable reference",
        sa_column_kwargs={"unique": True},
    )

    user_id: int = Field(foreign_key="users.user_id", nullable=False, index=True,
                         description="paying (or paid) user")

    type: TransactionType = Field(nullable=False)
    status: TransactionStatus = Field(default=TransactionStatus.PENDING)

    amount: Decimal = Field(
        sa_column=Column(Numeric(12, 2, asdecimal=True), nullable=False),
    )
    currency: str = Field(default="USD", max_length=3)

    session_id: Optional[int] = Field(default=None, foreign_key="reading_sessions.session_id")
    reader_id: Optional[int] = Field(default=None, foreign_key="users.user_id",
                                     description="reader credited by this transaction")
    refunded_transaction_id: Optional[int] = Field(default=None, foreign_key="transactions.transaction_id")

    reader_earnings: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(12, 2, asdecimal=True)),
    )
    platform_revenue: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(12, 2, asdecimal=True)),
    )

    description: Optional[str] = Field(default=None, max_length=500)


class Payout(BaseModel, table=True):
    """
    Reader earnings withdrawal
    """

    __tablename__ = "payouts"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payout_amount_positive"),
    )

    payout_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    reader_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)

    amount: Decimal = Field(
        sa_column=Column(Numeric(12, 2, asdecimal=True), nullable=False),
    )
    currency: str = Field(default="USD", max_length=3)
    status: PayoutStatus = Field(default=PayoutStatus.PENDING)

    processed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))
    processed_by: Optional[int] = Field(default=None, foreign_key="users.user_id")
    note: Optional[str] = Field(default=None, max_length=500)
