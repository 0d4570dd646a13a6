from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field

from soulseer.models.base import BaseModel


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class SupportTicket(BaseModel, table=True):
    __tablename__ = "support_tickets"

    ticket_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    user_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)
    subject: str = Field(max_length=200, nullable=False)
    category: str = Field(default="general", max_length=50)

    status: TicketStatus = Field(default=TicketStatus.OPEN)
    priority: TicketPriority = Field(default=TicketPriority.MEDIUM)
    assigned_to: Optional[int] = Field(default=None, foreign_key="users.user_id")

    resolved_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))


class TicketMessage(BaseModel, table=True):
    __tablename__ = "ticket_messages"

    message_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    ticket_id: int = Field(foreign_key="support_tickets.ticket_id", nullable=False, index=True)
    sender_id: int = Field(foreign_key="users.user_id", nullable=False)
    body: str = Field(nullable=False)
    is_internal: bool = Field(default=False, description="staff-only note")
