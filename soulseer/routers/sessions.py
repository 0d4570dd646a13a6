from datetime import datetime
from typing import Annotated, Optional

from fastapi import Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.session import SessionStatus
from soulseer.models.user import User
from soulseer.schemas.session import (ChatMessageCreateRequest,
                                      ChatMessageListResponse,
                                      ChatMessageResponse,
                                      SessionAvailabilityResponse,
                                      SessionBookRequest, SessionCancelRequest,
                                      SessionListResponse, SessionResponse)
from soulseer.services.chat_service import ChatService
from soulseer.services.session_service import SessionService
from soulseer.utils.dependencies import (get_chat_service, get_current_user,
                                         get_session_service, require_admin,
                                         require_client)
from soulseer.utils.router import get_router

router = get_router("sessions")
chat_router = get_router("chat")
admin_router = get_router("admin/sessions", tag="admin")


# ----------------------------------------------------------------------
# sessions
# ----------------------------------------------------------------------
@router.get("/availability", response_model=SessionAvailabilityResponse, summary="Can this reader be booked")
async def check_availability(
    reader_id: int,
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    date_time: Optional[datetime] = None,
    duration: Annotated[int, Query(ge=15, le=180)] = 30,
):
    """
    Without **date_time** only the reader's state is checked (online, active).
    With it, the interval must also lie in an open availability window and
    must not collide with the caller's own sessions.
    """
    return await service.check_availability(db, reader_id, date_time, duration, current_user.user_id)


@router.post(
    "/book",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a session",
    responses={
        400: {"description": "Invalid time or session type"},
        404: {"description": "Reader not found"},
        409: {"description": "Time not available"},
    },
)
async def book_session(
    data: SessionBookRequest,
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_client)],
):
    return await service.book(db, current_user, data)


@router.get("", response_model=SessionListResponse, summary="My sessions")
async def list_my_sessions(
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    status_filter: Annotated[Optional[SessionStatus], Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_sessions(db, current_user, status_filter, limit, offset)


@router.get("/{session_id}", response_model=SessionResponse, summary="Session detail")
async def get_session_detail(
    session_id: int,
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.get_session(db, current_user, session_id)


@router.post("/{session_id}/start", response_model=SessionResponse, summary="Start session")
async def start_session(
    session_id: int,
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.start(db, current_user, session_id)


@router.post("/{session_id}/end", response_model=SessionResponse, summary="End session and bill")
async def end_session(
    session_id: int,
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.end(db, current_user, session_id)


@router.post("/{session_id}/cancel", response_model=SessionResponse, summary="Cancel session")
async def cancel_session(
    session_id: int,
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    data: Optional[SessionCancelRequest] = None,
):
    return await service.cancel(db, current_user, session_id, data.reason if data else None)


# ----------------------------------------------------------------------
# chat
# ----------------------------------------------------------------------
@chat_router.post(
    "/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post chat message",
)
async def post_message(
    data: ChatMessageCreateRequest,
    service: Annotated[ChatService, Depends(get_chat_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.send_message(db, current_user, data)


@chat_router.get("/messages", response_model=ChatMessageListResponse, summary="Chat history")
async def list_messages(
    session_id: int,
    service: Annotated[ChatService, Depends(get_chat_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    before_id: Optional[int] = None,
):
    return await service.list_messages(db, current_user, session_id, limit, before_id)


# ----------------------------------------------------------------------
# admin
# ----------------------------------------------------------------------
@admin_router.get("", response_model=SessionListResponse, summary="All sessions")
async def admin_list_sessions(
    service: Annotated[SessionService, Depends(get_session_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
    status_filter: Annotated[Optional[SessionStatus], Query(alias="status")] = None,
    reader_id: Optional[int] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.admin_list(db, status_filter, reader_id, limit, offset)
