"""
Availability Repository
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.availability import AvailabilitySlot


class AvailabilityRepository:

    async def create(self, db: AsyncSession, slot: AvailabilitySlot) -> AvailabilitySlot:
        db.add(slot)
        await db.flush()
        await db.refresh(slot)
        return slot

    async def get_by_id(self, db: AsyncSession, slot_id: int) -> Optional[AvailabilitySlot]:
        stmt = select(AvailabilitySlot).where(
            AvailabilitySlot.slot_id == slot_id,
            AvailabilitySlot.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_reader(
        self,
        db: AsyncSession,
        reader_id: int,
        day_of_week: Optional[int] = None,
    ) -> List[AvailabilitySlot]:
        conditions = [
            AvailabilitySlot.reader_id == reader_id,
            AvailabilitySlot.is_deleted.is_(False),
        ]
        if day_of_week is not None:
            conditions.append(AvailabilitySlot.day_of_week == day_of_week)

        stmt = (
            select(AvailabilitySlot)
            .where(*conditions)
            .order_by(AvailabilitySlot.day_of_week, AvailabilitySlot.start_time, AvailabilitySlot.slot_id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def update(self, db: AsyncSession, slot: AvailabilitySlot) -> AvailabilitySlot:
        await db.flush()
        await db.refresh(slot)
        return slot

    async def soft_delete(self, db: AsyncSession, slot: AvailabilitySlot) -> None:
        slot.is_deleted = True
        await db.flush()
