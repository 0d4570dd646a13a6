from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlalchemy.types import Numeric
from sqlmodel import Field

from soulseer.models.base import BaseModel
from soulseer.models.user import SessionType


class SessionStatus(str, Enum):
    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# statuses that occupy the reader's calendar
ACTIVE_SESSION_STATUSES = (
    SessionStatus.PENDING,
    SessionStatus.SCHEDULED,
    SessionStatus.IN_PROGRESS,
)


class MessageType(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    SYSTEM = "SYSTEM"


class ReadingSession(BaseModel, table=True):
    """
    A booked chat / call / video reading
    """

    __tablename__ = "reading_sessions"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_session_duration_positive"),
    )

    session_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        description="session id",
        sa_column_kwargs={"autoincrement": True},
    )

    client_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)
    reader_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)

    session_type: SessionType = Field(default=SessionType.CHAT)
    status: SessionStatus = Field(default=SessionStatus.SCHEDULED)

    scheduled_at: datetime = Field(
        sa_column=Column(DateTime(timezone=False), nullable=False, index=True),
        description="start time (UTC)",
    )

    duration_minutes: int = Field(nullable=False, description="booked length")

    rate_per_minute: Decimal = Field(
        sa_column=Column(Numeric(10, 2, asdecimal=True), nullable=False),
    )

    estimated_cost: Decimal = Field(
        sa_column=Column(Numeric(12, 2, asdecimal=True), nullable=False),
    )

    total_cost: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(12, 2, asdecimal=True)),
    )

    started_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))
    ended_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))

    cancelled_by: Optional[int] = Field(default=None, foreign_key="users.user_id")
    notes: Optional[str] = Field(default=None, max_length=1000)
    reminder_sent: bool = Field(default=False)

    def involves(self, user_id: int) -> bool:
        return user_id in (self.client_id, self.reader_id)

    def other_party(self, user_id: int) -> int:
        return self.reader_id if user_id == self.client_id else self.client_id


class ChatMessage(BaseModel, table=True):
    """
    Message exchanged inside a reading session
    """

    __tablename__ = "chat_messages"

    message_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    session_id: int = Field(foreign_key="reading_sessions.session_id", nullable=False, index=True)
    sender_id: int = Field(foreign_key="users.user_id", nullable=False)
    content: str = Field(nullable=False)
    message_type: MessageType = Field(default=MessageType.TEXT)
