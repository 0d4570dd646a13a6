"""
Virtual Gift Repository
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.gift import VirtualGift


class GiftRepository:

    async def create(self, db: AsyncSession, gift: VirtualGift) -> VirtualGift:
        db.add(gift)
        await db.flush()
        await db.refresh(gift)
        return gift

    async def history(
        self,
        db: AsyncSession,
        user_id: int,
        direction: str = "all",
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VirtualGift], int]:
        """
        Args:
            direction: "sent", "received" or "all"
        """
        if direction == "sent":
            owner = VirtualGift.sender_id == user_id
        elif direction == "received":
            owner = VirtualGift.receiver_id == user_id
        else:
            owner = or_(VirtualGift.sender_id == user_id, VirtualGift.receiver_id == user_id)
        conditions = [owner, VirtualGift.is_deleted.is_(False)]

        total = (await db.execute(select(func.count()).select_from(VirtualGift).where(*conditions))).scalar_one()
        stmt = (
            select(VirtualGift)
            .where(*conditions)
            .order_by(VirtualGift.created_at.desc(), VirtualGift.gift_record_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def totals_for(self, db: AsyncSession, user_id: int) -> Tuple[int, int]:
        """(coins sent, coins earned) for a user"""
        sent = (await db.execute(
            select(func.coalesce(func.sum(VirtualGift.total_value), 0)).where(VirtualGift.sender_id == user_id)
        )).scalar_one()
        earned = (await db.execute(
            select(func.coalesce(func.sum(VirtualGift.receiver_earnings), 0)).where(VirtualGift.receiver_id == user_id)
        )).scalar_one()
        return int(sent), int(earned)

    async def get_by_id(self, db: AsyncSession, gift_record_id: int) -> Optional[VirtualGift]:
        result = await db.execute(select(VirtualGift).where(VirtualGift.gift_record_id == gift_record_id))
        return result.scalar_one_or_none()
