"""
Support Ticket Repository
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.support import (SupportTicket, TicketMessage,
                                     TicketPriority, TicketStatus)


class SupportRepository:

    async def create_ticket(self, db: AsyncSession, ticket: SupportTicket) -> SupportTicket:
        db.add(ticket)
        await db.flush()
        await db.refresh(ticket)
        return ticket

    async def add_message(self, db: AsyncSession, message: TicketMessage) -> TicketMessage:
        db.add(message)
        await db.flush()
        await db.refresh(message)
        return message

    async def get_ticket(self, db: AsyncSession, ticket_id: int) -> Optional[SupportTicket]:
        stmt = select(SupportTicket).where(
            SupportTicket.ticket_id == ticket_id,
            SupportTicket.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_ticket(self, db: AsyncSession, ticket: SupportTicket) -> SupportTicket:
        await db.flush()
        await db.refresh(ticket)
        return ticket

    async def messages(self, db: AsyncSession, ticket_id: int, include_internal: bool = True) -> List[TicketMessage]:
        conditions = [TicketMessage.ticket_id == ticket_id, TicketMessage.is_deleted.is_(False)]
        if not include_internal:
            conditions.append(TicketMessage.is_internal.is_(False))
        result = await db.execute(select(TicketMessage).where(*conditions).order_by(TicketMessage.message_id))
        return list(result.scalars().all())

    async def list_tickets(
        self,
        db: AsyncSession,
        user_id: Optional[int] = None,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        assigned_to: Optional[int] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SupportTicket], int]:
        conditions = [SupportTicket.is_deleted.is_(False)]
        if user_id is not None:
            conditions.append(SupportTicket.user_id == user_id)
        if status:
            conditions.append(SupportTicket.status == status)
        if priority:
            conditions.append(SupportTicket.priority == priority)
        if assigned_to is not None:
            conditions.append(SupportTicket.assigned_to == assigned_to)

        total = (await db.execute(
            select(func.count()).select_from(SupportTicket).where(*conditions)
        )).scalar_one()
        stmt = (
            select(SupportTicket)
            .where(*conditions)
            .order_by(SupportTicket.created_at.desc(), SupportTicket.ticket_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def count_grouped(self, db: AsyncSession, column) -> Dict[str, int]:
        result = await db.execute(
            select(column, func.count())
            .where(SupportTicket.is_deleted.is_(False))
            .group_by(column)
        )
        return {getattr(k, "value", k): c for k, c in result.all()}

    async def resolved_tickets(self, db: AsyncSession) -> List[SupportTicket]:
        stmt = select(SupportTicket).where(
            SupportTicket.resolved_at.is_not(None),
            SupportTicket.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def open_counts_by_assignee(self, db: AsyncSession) -> Dict[int, int]:
        result = await db.execute(
            select(SupportTicket.assigned_to, func.count())
            .where(
                SupportTicket.assigned_to.is_not(None),
                SupportTicket.status.in_((TicketStatus.OPEN, TicketStatus.IN_PROGRESS)),
                SupportTicket.is_deleted.is_(False),
            )
            .group_by(SupportTicket.assigned_to)
        )
        return {k: c for k, c in result.all()}
