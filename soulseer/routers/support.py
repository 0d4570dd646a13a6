from typing import Annotated, Optional

from fastapi import Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.support import TicketPriority, TicketStatus
from soulseer.models.user import User
from soulseer.schemas.support import (SupportAgentsResponse,
                                      SupportStatsResponse,
                                      TicketCreateRequest,
                                      TicketDetailResponse, TicketListResponse,
                                      TicketMessageRequest,
                                      TicketMessageResponse,
                                      TicketUpdateRequest)
from soulseer.services.support_service import SupportService
from soulseer.utils.dependencies import (get_current_user, get_support_service,
                                         require_admin)
from soulseer.utils.router import get_router

router = get_router("support")
admin_router = get_router("admin/support", tag="admin")


# ----------------------------------------------------------------------
# users
# ----------------------------------------------------------------------
@router.post("/tickets", response_model=TicketDetailResponse, status_code=status.HTTP_201_CREATED,
             summary="Open a support ticket")
async def create_ticket(
    data: TicketCreateRequest,
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.create_ticket(db, current_user, data)


@router.get("/tickets", response_model=TicketListResponse, summary="My tickets")
async def my_tickets(
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    status_filter: Annotated[Optional[TicketStatus], Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.my_tickets(db, current_user, status_filter, limit, offset)


@router.get("/tickets/{ticket_id}", response_model=TicketDetailResponse, summary="My ticket")
async def my_ticket(
    ticket_id: int,
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.get_ticket(db, current_user, ticket_id)


@router.post("/tickets/{ticket_id}/messages", response_model=TicketMessageResponse,
             status_code=status.HTTP_201_CREATED, summary="Reply to my ticket")
async def reply(
    ticket_id: int,
    data: TicketMessageRequest,
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.add_message(db, current_user, ticket_id, data)


# ----------------------------------------------------------------------
# admin
# ----------------------------------------------------------------------
@admin_router.get("/tickets", response_model=TicketListResponse, summary="Support queue")
async def admin_tickets(
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
    status_filter: Annotated[Optional[TicketStatus], Query(alias="status")] = None,
    priority: Optional[TicketPriority] = None,
    assigned_to: Optional[int] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.admin_list(db, status_filter, priority, assigned_to, limit, offset)


@admin_router.get("/stats", response_model=SupportStatsResponse, summary="Support stats")
async def support_stats(
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    return await service.stats(db)


@admin_router.get("/agents", response_model=SupportAgentsResponse, summary="Support agents")
async def support_agents(
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    return await service.agents(db)


@admin_router.get("/tickets/{ticket_id}", response_model=TicketDetailResponse, summary="Ticket detail")
async def admin_ticket(
    ticket_id: int,
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_admin)],
):
    return await service.get_ticket(db, current_user, ticket_id)


@admin_router.patch("/tickets/{ticket_id}", response_model=TicketDetailResponse, summary="Update ticket")
async def update_ticket(
    ticket_id: int,
    data: TicketUpdateRequest,
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_admin)],
):
    return await service.update_ticket(db, current_user, ticket_id, data)


@admin_router.post("/tickets/{ticket_id}/messages", response_model=TicketMessageResponse,
                   status_code=status.HTTP_201_CREATED, summary="Staff reply or internal note")
async def admin_reply(
    ticket_id: int,
    data: TicketMessageRequest,
    service: Annotated[SupportService, Depends(get_support_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_admin)],
):
    return await service.add_message(db, current_user, ticket_id, data)
