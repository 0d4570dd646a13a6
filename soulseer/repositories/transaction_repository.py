"""
Transaction / Payout Repository
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.transaction import (Payout, PayoutStatus, Transaction,
                                         TransactionStatus, TransactionType)

logger = logging.getLogger(__name__)


def new_reference(prefix: str = "TX") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:20].upper()}"


class TransactionRepository:
    """Ledger of money movements"""

    async def create(self, db: AsyncSession, transaction: Transaction) -> Transaction:
        if not transaction.reference:
            transaction.reference = new_reference()
        db.add(transaction)
        await db.flush()
        await db.refresh(transaction)
        return transaction

    async def get_by_id(self, db: AsyncSession, transaction_id: int) -> Optional[Transaction]:
        stmt = select(Transaction).where(
            Transaction.transaction_id == transaction_id,
            Transaction.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_refund_of(self, db: AsyncSession, transaction_id: int) -> Optional[Transaction]:
        stmt = select(Transaction).where(
            Transaction.refunded_transaction_id == transaction_id,
            Transaction.type == TransactionType.REFUND,
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    async def list_transactions(
        self,
        db: AsyncSession,
        type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Transaction], int]:
        conditions = [Transaction.is_deleted.is_(False)]
        if type:
            conditions.append(Transaction.type == type)
        if status:
            conditions.append(Transaction.status == status)
        if user_id is not None:
            conditions.append(Transaction.user_id == user_id)

        total = (await db.execute(
            select(func.count()).select_from(Transaction).where(*conditions)
        )).scalar_one()
        stmt = (
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.created_at.desc(), Transaction.transaction_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def completed_between(
        self,
        db: AsyncSession,
        start: datetime,
        end: datetime,
        types: Optional[Tuple[TransactionType, ...]] = None,
    ) -> List[Transaction]:
        conditions = [
            Transaction.is_deleted.is_(False),
            Transaction.status == TransactionStatus.COMPLETED,
            Transaction.created_at >= start,
            Transaction.created_at < end,
        ]
        if types:
            conditions.append(Transaction.type.in_(types))
        result = await db.execute(select(Transaction).where(*conditions))
        return list(result.scalars().all())

    async def sum_by_type(self, db: AsyncSession, status: TransactionStatus = TransactionStatus.COMPLETED) -> Dict[str, Dict]:
        """{type: {"count": n, "amount": Decimal}} for one status"""
        result = await db.execute(
            select(Transaction.type, func.count(), func.coalesce(func.sum(Transaction.amount), 0))
            .where(Transaction.status == status, Transaction.is_deleted.is_(False))
            .group_by(Transaction.type)
        )
        return {
            getattr(t, "value", t): {"count": c, "amount": Decimal(str(a))}
            for t, c, a in result.all()
        }

    async def sum_platform_revenue(self, db: AsyncSession) -> Decimal:
        result = await db.execute(
            select(func.coalesce(func.sum(Transaction.platform_revenue), 0))
            .where(Transaction.status == TransactionStatus.COMPLETED, Transaction.is_deleted.is_(False))
        )
        return Decimal(str(result.scalar_one()))

    async def count_by_status(self, db: AsyncSession) -> Dict[str, int]:
        result = await db.execute(
            select(Transaction.status, func.count())
            .where(Transaction.is_deleted.is_(False))
            .group_by(Transaction.status)
        )
        return {getattr(s, "value", s): c for s, c in result.all()}

    async def reader_earnings(self, db: AsyncSession, reader_id: int) -> Decimal:
        """Completed earnings credited to a reader (refunded charges excluded)"""
        result = await db.execute(
            select(func.coalesce(func.sum(Transaction.reader_earnings), 0))
            .where(
                Transaction.reader_id == reader_id,
                Transaction.status == TransactionStatus.COMPLETED,
                Transaction.type.in_((TransactionType.SESSION_CHARGE, TransactionType.PURCHASE)),
                Transaction.is_deleted.is_(False),
            )
        )
        return Decimal(str(result.scalar_one()))


class PayoutRepository:

    async def create(self, db: AsyncSession, payout: Payout) -> Payout:
        db.add(payout)
        await db.flush()
        await db.refresh(payout)
        return payout

    async def get_by_id(self, db: AsyncSession, payout_id: int) -> Optional[Payout]:
        stmt = select(Payout).where(Payout.payout_id == payout_id, Payout.is_deleted.is_(False))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, db: AsyncSession, payout: Payout) -> Payout:
        await db.flush()
        await db.refresh(payout)
        return payout

    async def list_payouts(
        self,
        db: AsyncSession,
        status: Optional[PayoutStatus] = None,
        reader_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Payout], int]:
        conditions = [Payout.is_deleted.is_(False)]
        if status:
            conditions.append(Payout.status == status)
        if reader_id is not None:
            conditions.append(Payout.reader_id == reader_id)

        total = (await db.execute(select(func.count()).select_from(Payout).where(*conditions))).scalar_one()
        stmt = (
            select(Payout)
            .where(*conditions)
            .order_by(Payout.created_at.desc(), Payout.payout_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def committed_amount(self, db: AsyncSession, reader_id: int) -> Decimal:
        """Paid out or still pending; not available for a new request"""
        result = await db.execute(
            select(func.coalesce(func.sum(Payout.amount), 0))
            .where(
                Payout.reader_id == reader_id,
                Payout.status.in_((PayoutStatus.PENDING, PayoutStatus.PROCESSING, PayoutStatus.COMPLETED)),
                Payout.is_deleted.is_(False),
            )
        )
        return Decimal(str(result.scalar_one()))

    async def sum_by_status(self, db: AsyncSession) -> Dict[str, Decimal]:
        result = await db.execute(
            select(Payout.status, func.coalesce(func.sum(Payout.amount), 0))
            .where(Payout.is_deleted.is_(False))
            .group_by(Payout.status)
        )
        return {getattr(s, "value", s): Decimal(str(a)) for s, a in result.all()}
