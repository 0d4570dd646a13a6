"""
Support Service
User tickets and the admin support desk
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.notification import NotificationType
from soulseer.models.support import (SupportTicket, TicketMessage,
                                     TicketPriority, TicketStatus)
from soulseer.models.user import User, UserRole
from soulseer.repositories.support_repository import SupportRepository
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.support import (SupportAgent, SupportAgentsResponse,
                                      SupportStatsResponse,
                                      TicketCreateRequest,
                                      TicketDetailResponse, TicketListResponse,
                                      TicketMessageRequest,
                                      TicketMessageResponse, TicketResponse,
                                      TicketUpdateRequest)
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.analytics_calc import average
from soulseer.utils.datetime import utc_now_naive

logger = logging.getLogger(__name__)

DONE_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class SupportService:

    def __init__(self):
        self.repo = SupportRepository()
        self.user_repo = UserRepository()
        self.notifications = NotificationService()

    async def _ticket_or_404(self, db: AsyncSession, ticket_id: int) -> SupportTicket:
        ticket = await self.repo.get_ticket(db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Ticket not found")
        return ticket

    async def _detail(self, db: AsyncSession, ticket: SupportTicket, include_internal: bool) -> TicketDetailResponse:
        messages = await self.repo.messages(db, ticket.ticket_id, include_internal)
        return TicketDetailResponse(
            **TicketResponse.model_validate(ticket).model_dump(),
            messages=[TicketMessageResponse.model_validate(m) for m in messages],
        )

    # ========== users ==========

    async def create_ticket(self, db: AsyncSession, user: User, data: TicketCreateRequest) -> TicketDetailResponse:
        ticket = await self.repo.create_ticket(db, SupportTicket(
            user_id=user.user_id,
            subject=data.subject,
            category=data.category,
            priority=data.priority,
        ))
        await self.repo.add_message(db, TicketMessage(
            ticket_id=ticket.ticket_id,
            sender_id=user.user_id,
            body=data.message,
        ))
        await db.commit()

        logger.info(f"Support ticket opened: id={ticket.ticket_id} user={user.user_id} priority={data.priority.value}")
        return await self._detail(db, ticket, include_internal=False)

    async def my_tickets(
        self,
        db: AsyncSession,
        user: User,
        status: Optional[TicketStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> TicketListResponse:
        rows, total = await self.repo.list_tickets(db, user_id=user.user_id, status=status, skip=offset, limit=limit)
        return TicketListResponse(
            tickets=[TicketResponse.model_validate(t) for t in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def get_ticket(self, db: AsyncSession, user: User, ticket_id: int) -> TicketDetailResponse:
        ticket = await self._ticket_or_404(db, ticket_id)
        is_admin = user.role == UserRole.ADMIN
        if ticket.user_id != user.user_id and not is_admin:
            raise HTTPException(status_code=404, detail="Ticket not found")
        return await self._detail(db, ticket, include_internal=is_admin)

    async def add_message(
        self, db: AsyncSession, user: User, ticket_id: int, data: TicketMessageRequest
    ) -> TicketMessageResponse:
        ticket = await self._ticket_or_404(db, ticket_id)
        is_admin = user.role == UserRole.ADMIN
        if ticket.user_id != user.user_id and not is_admin:
            raise HTTPException(status_code=404, detail="Ticket not found")
        if data.is_internal and not is_admin:
            raise HTTPException(status_code=403, detail="Only staff can post internal notes")
        if ticket.status == TicketStatus.CLOSED:
            raise HTTPException(status_code=409, detail="Ticket is closed")

        message = await self.repo.add_message(db, TicketMessage(
            ticket_id=ticket.ticket_id,
            sender_id=user.user_id,
            body=data.body,
            is_internal=data.is_internal,
        ))

        # a staff reply moves a fresh ticket along
        if is_admin and ticket.status == TicketStatus.OPEN and not data.is_internal:
            ticket.status = TicketStatus.IN_PROGRESS
            await self.repo.update_ticket(db, ticket)

        if is_admin and not data.is_internal and ticket.user_id != user.user_id:
            await self.notifications.notify(
                db, ticket.user_id, NotificationType.SYSTEM_UPDATE,
                "Support replied", f"New reply on ticket #{ticket.ticket_id}: {ticket.subject}",
                {"ticket_id": ticket.ticket_id},
            )
        await commit_and_publish(db)
        return TicketMessageResponse.model_validate(message)

    # ========== admin ==========

    async def admin_list(
        self,
        db: AsyncSession,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        assigned_to: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> TicketListResponse:
        rows, total = await self.repo.list_tickets(
            db, status=status, priority=priority, assigned_to=assigned_to, skip=offset, limit=limit
        )
        return TicketListResponse(
            tickets=[TicketResponse.model_validate(t) for t in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def update_ticket(
        self, db: AsyncSession, admin: User, ticket_id: int, data: TicketUpdateRequest
    ) -> TicketDetailResponse:
        """
        Resolving or closing stamps resolved_at, reopening clears it.
        """
        ticket = await self._ticket_or_404(db, ticket_id)
        nulls = data.null_fields()
        if nulls:
            raise HTTPException(status_code=400, detail=f"{', '.join(nulls)} cannot be null")
        changes = data.changes()
        if not changes:
            raise HTTPException(status_code=400, detail="Nothing to update")

        if changes.get("assigned_to") is not None:
            assignee = await self.user_repo.get_by_id(db, changes["assigned_to"])
            if not assignee or assignee.role != UserRole.ADMIN:
                raise HTTPException(status_code=400, detail="Tickets can only be assigned to admins")

        new_status = changes.get("status")
        if new_status is not None and new_status != ticket.status:
            if new_status in DONE_STATUSES and ticket.resolved_at is None:
                ticket.resolved_at = utc_now_naive()
            elif new_status not in DONE_STATUSES:
                ticket.resolved_at = None

            await self.notifications.notify(
                db, ticket.user_id, NotificationType.SYSTEM_UPDATE,
                "Ticket updated", f"Ticket #{ticket.ticket_id} is now {new_status.value.replace('_', ' ').lower()}.",
                {"ticket_id": ticket.ticket_id, "status": new_status.value},
            )

        for key, value in changes.items():
            setattr(ticket, key, value)
        ticket = await self.repo.update_ticket(db, ticket)
        await commit_and_publish(db)

        logger.info(f"Ticket {ticket_id} updated by {admin.user_id}: {', '.join(changes)}")
        return await self._detail(db, ticket, include_internal=True)

    async def stats(self, db: AsyncSession) -> SupportStatsResponse:
        by_status = await self.repo.count_grouped(db, SupportTicket.status)
        by_priority = await self.repo.count_grouped(db, SupportTicket.priority)
        resolved = await self.repo.resolved_tickets(db)
        hours = [(t.resolved_at - t.created_at).total_seconds() / 3600 for t in resolved]

        return SupportStatsResponse(
            total=sum(by_status.values()),
            by_status={s.value: by_status.get(s.value, 0) for s in TicketStatus},
            by_priority={p.value: by_priority.get(p.value, 0) for p in TicketPriority},
            avg_resolution_hours=average(hours),
        )

    async def agents(self, db: AsyncSession) -> SupportAgentsResponse:
        admins = await self.user_repo.list_by_role(db, UserRole.ADMIN)
        counts = await self.repo.open_counts_by_assignee(db)
        return SupportAgentsResponse(agents=[
            SupportAgent(user_id=a.user_id, name=a.name, email=a.email, open_tickets=counts.get(a.user_id, 0))
            for a in admins
        ])
