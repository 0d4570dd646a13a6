from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from soulseer.models.notification import NotificationType
from soulseer.models.user import UserRole
from soulseer.schemas.common import Pagination


class NotificationResponse(BaseModel):
    notification_id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    is_read: bool
    read_at: Optional[datetime] = None
    payload: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """
    Notification page plus the caller's unread count
    """
    notifications: List[NotificationResponse]
    pagination: Pagination
    unread_count: int = Field(..., description="unread, non-deleted notifications")


class NotificationCreateRequest(BaseModel):
    user_id: int = Field(..., description="recipient")
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=1000)
    type: NotificationType = Field(NotificationType.SYSTEM_UPDATE)
    payload: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 7,
                "title": "Scheduled maintenance",
                "message": "The platform will be unavailable Sunday 02:00-03:00 UTC.",
                "type": "MAINTENANCE"
            }
        }


class NotificationBroadcastRequest(BaseModel):
    """
    Broadcast to every user of a role, or to explicit user ids
    """
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=1000)
    type: NotificationType = Field(NotificationType.SYSTEM_UPDATE)
    role: Optional[UserRole] = Field(None, description="target role")
    user_ids: Optional[List[int]] = Field(None, description="explicit recipients")
    payload: Optional[Dict[str, Any]] = None


class NotificationAction(str, Enum):
    READ = "read"
    UNREAD = "unread"
    DELETE = "delete"


class NotificationBulkRequest(BaseModel):
    notification_ids: List[int] = Field(..., min_length=1, description="ids owned by the caller")
    action: NotificationAction


class UnreadCountResponse(BaseModel):
    unread_count: int


class NotificationBulkResponse(BaseModel):
    updated: int
    unread_count: int


class BroadcastResponse(BaseModel):
    sent: int
