from typing import Annotated, Optional

from fastapi import Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.notification import NotificationType
from soulseer.models.user import User
from soulseer.schemas.notification import (BroadcastResponse,
                                           NotificationBroadcastRequest,
                                           NotificationBulkRequest,
                                           NotificationBulkResponse,
                                           NotificationCreateRequest,
                                           NotificationListResponse,
                                           NotificationResponse,
                                           UnreadCountResponse)
from soulseer.services.notification_service import NotificationService
from soulseer.utils.dependencies import (get_current_user,
                                         get_notification_service,
                                         require_admin)
from soulseer.utils.router import get_router

router = get_router("notifications")


@router.get("", response_model=NotificationListResponse, summary="My notifications")
async def list_notifications(
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    unread_only: bool = False,
    type: Optional[NotificationType] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_notifications(db, current_user.user_id, unread_only, type, limit, offset)


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Unread count")
async def unread_count(
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return UnreadCountResponse(unread_count=await service.unread_count(db, current_user.user_id))


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create notification for a user",
    responses={404: {"description": "User not found"}},
)
async def create_notification(
    data: NotificationCreateRequest,
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    return await service.create_for_user(db, data.user_id, data.type, data.title, data.message, data.payload)


@router.post("/send", response_model=BroadcastResponse, summary="Broadcast notification")
async def broadcast(
    data: NotificationBroadcastRequest,
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    sent = await service.broadcast(
        db, data.type, data.title, data.message,
        role=data.role, user_ids=data.user_ids, payload=data.payload,
    )
    return BroadcastResponse(sent=sent)


@router.patch(
    "",
    response_model=NotificationBulkResponse,
    summary="Bulk read / unread / delete",
    responses={404: {"description": "An id does not belong to the caller"}},
)
async def bulk_update(
    data: NotificationBulkRequest,
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """
    Every id must belong to the caller or nothing is changed.
    **unread_count** is computed in the same transaction as the update.
    """
    updated, unread = await service.apply_action(db, current_user.user_id, data.notification_ids, data.action)
    return NotificationBulkResponse(updated=updated, unread_count=unread)


@router.post("/mark-all-read", response_model=NotificationBulkResponse, summary="Mark all as read")
async def mark_all_read(
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    updated, unread = await service.mark_all_read(db, current_user.user_id)
    return NotificationBulkResponse(updated=updated, unread_count=unread)


@router.post("/{notification_id}/read", response_model=UnreadCountResponse, summary="Mark as read")
async def mark_read(
    notification_id: int,
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return UnreadCountResponse(unread_count=await service.mark_read(db, current_user.user_id, notification_id))


@router.delete("/{notification_id}", response_model=UnreadCountResponse, summary="Delete notification")
async def delete_notification(
    notification_id: int,
    service: Annotated[NotificationService, Depends(get_notification_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return UnreadCountResponse(unread_count=await service.delete(db, current_user.user_id, notification_id))
