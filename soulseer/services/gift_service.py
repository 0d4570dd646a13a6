"""
Gift Service
Virtual gift catalog, coin transfers and the coin wallet
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.models.gift import VirtualGift
from soulseer.models.notification import NotificationType
from soulseer.models.transaction import (Transaction, TransactionStatus,
                                         TransactionType)
from soulseer.models.user import User
from soulseer.repositories.gift_repository import GiftRepository
from soulseer.repositories.transaction_repository import TransactionRepository
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.gift import (BalanceResponse, GiftCatalogItem,
                                   GiftCatalogResponse, GiftHistoryResponse,
                                   GiftResponse, GiftSendRequest,
                                   GiftSendResponse, WalletResponse)
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.pricing import gift_earnings, to_money

logger = logging.getLogger(__name__)

# key -> (name, emoji, coins)
GIFT_CATALOG: Dict[str, tuple] = {
    "heart": ("Heart", "\u2764\ufe0f", 10),
    "star": ("Star", "\u2b50", 25),
    "sparkles": ("Sparkles", "\u2728", 50),
    "flower": ("Flower", "\U0001f338", 75),
    "coffee": ("Coffee", "\u2615", 100),
    "gem": ("Gem", "\U0001f48e", 200),
    "crown": ("Crown", "\U0001f451", 500),
    "diamond": ("Diamond", "\U0001f4a0", 1000),
}


class GiftService:

    def __init__(self):
        self.repo = GiftRepository()
        self.user_repo = UserRepository()
        self.transaction_repo = TransactionRepository()
        self.notifications = NotificationService()

    def catalog(self) -> GiftCatalogResponse:
        return GiftCatalogResponse(gifts=[
            GiftCatalogItem(gift_id=key, name=name, emoji=emoji, value=value)
            for key, (name, emoji, value) in GIFT_CATALOG.items()
        ])

    async def balance(self, db: AsyncSession, user: User) -> BalanceResponse:
        sent, earned = await self.repo.totals_for(db, user.user_id)
        return BalanceResponse(
            user_id=user.user_id,
            coin_balance=user.coin_balance,
            coins_sent=sent,
            coins_earned=earned,
        )

    async def send_gift(self, db: AsyncSession, sender: User, data: GiftSendRequest) -> GiftSendResponse:
        """
        Sender pays value x quantity, recipient earns floor(total x GIFT_EARNINGS_RATE).
        Every check runs before any balance moves.
        """
        item = GIFT_CATALOG.get(data.gift_id.lower())
        if item is None:
            raise HTTPException(status_code=400, detail=f"Unknown gift: {data.gift_id}")
        if data.recipient_id == sender.user_id:
            raise HTTPException(status_code=400, detail="Cannot send a gift to yourself")

        recipient = await self.user_repo.get_by_id(db, data.recipient_id)
        if not recipient:
            raise HTTPException(status_code=404, detail="Recipient not found")

        name, emoji, value = item
        total_value = value * data.quantity
        earnings = gift_earnings(total_value, settings.GIFT_EARNINGS_RATE)

        if not await self.user_repo.debit_coins(db, sender.user_id, total_value):
            await db.rollback()
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient coins: {total_value} required",
            )
        await self.user_repo.credit_coins(db, recipient.user_id, earnings)

        gift = await self.repo.create(db, VirtualGift(
            gift_type=data.gift_id.lower(),
            sender_id=sender.user_id,
            receiver_id=recipient.user_id,
            quantity=data.quantity,
            total_value=total_value,
            receiver_earnings=earnings,
            message=data.message,
        ))

        amount = to_money(Decimal(total_value) / settings.COINS_PER_UNIT)
        reader_share = to_money(Decimal(earnings) / settings.COINS_PER_UNIT)
        await self.transaction_repo.create(db, Transaction(
            user_id=sender.user_id,
            reader_id=recipient.user_id,
            type=TransactionType.GIFT_PURCHASE,
            status=TransactionStatus.COMPLETED,
            amount=amount,
            currency=settings.CURRENCY,
            reader_earnings=reader_share,
            platform_revenue=amount - reader_share,
            description=f"{data.quantity} x {name} ({total_value} coins)",
        ))

        await self.notifications.notify(
            db, recipient.user_id, NotificationType.GIFT_RECEIVED,
            f"{emoji} You received a gift",
            f"{sender.name} sent you {data.quantity} x {name}" + (f": {data.message}" if data.message else ""),
            {"gift_record_id": gift.gift_record_id, "coins": earnings},
        )
        await commit_and_publish(db)
        await db.refresh(sender)

        logger.info(f"Gift sent: {sender.user_id} -> {recipient.user_id} "
                    f"{data.quantity}x{data.gift_id} ({total_value} coins, {earnings} earned)")
        return GiftSendResponse(gift=GiftResponse.model_validate(gift), balance=sender.coin_balance)

    async def history(
        self,
        db: AsyncSession,
        user: User,
        direction: str = "all",
        limit: int = 20,
        offset: int = 0,
    ) -> GiftHistoryResponse:
        rows, total = await self.repo.history(db, user.user_id, direction, offset, limit)
        return GiftHistoryResponse(
            direction=direction,
            gifts=[GiftResponse.model_validate(g) for g in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    # ========== wallet ==========

    def wallet(self, user: User, transaction_id: Optional[int] = None) -> WalletResponse:
        return WalletResponse(
            user_id=user.user_id,
            coin_balance=user.coin_balance,
            coins_per_unit=settings.COINS_PER_UNIT,
            currency=settings.CURRENCY,
            transaction_id=transaction_id,
        )

    async def add_funds(self, db: AsyncSession, user: User, amount: Decimal) -> WalletResponse:
        amount = to_money(amount)
        coins = int(amount * settings.COINS_PER_UNIT)

        transaction = await self.transaction_repo.create(db, Transaction(
            user_id=user.user_id,
            type=TransactionType.ADD_FUNDS,
            status=TransactionStatus.COMPLETED,
            amount=amount,
            currency=settings.CURRENCY,
            description=f"{coins} coins",
        ))
        await self.user_repo.credit_coins(db, user.user_id, coins)
        await self.notifications.notify(
            db, user.user_id, NotificationType.PAYMENT_RECEIVED,
            "Funds added", f"{coins} coins were added to your wallet.",
            {"transaction_id": transaction.transaction_id},
        )
        await commit_and_publish(db)
        await db.refresh(user)

        logger.info(f"Funds added: user={user.user_id} amount={amount} coins={coins}")
        return self.wallet(user, transaction.transaction_id)
