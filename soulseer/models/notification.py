from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field

from soulseer.models.base import BaseModel, JSONType


class NotificationType(str, Enum):
    SESSION_REMINDER = "SESSION_REMINDER"
    SESSION_BOOKED = "SESSION_BOOKED"
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_ENDED = "SESSION_ENDED"
    SESSION_CANCELLED = "SESSION_CANCELLED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    REVIEW_RECEIVED = "REVIEW_RECEIVED"
    NEW_MESSAGE = "NEW_MESSAGE"
    GIFT_RECEIVED = "GIFT_RECEIVED"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"
    MAINTENANCE = "MAINTENANCE"
    PROMOTION = "PROMOTION"


class Notification(BaseModel, table=True):
    """
    In-app notification
    - deleted_at hides a notification without losing it
    """

    __tablename__ = "notifications"

    notification_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    user_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)

    title: str = Field(max_length=255, nullable=False)
    message: str = Field(max_length=1000, nullable=False)
    type: NotificationType = Field(nullable=False)

    is_read: bool = Field(default=False, nullable=False)
    read_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))

    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONType))
