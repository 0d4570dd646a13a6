from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from soulseer.models.session import MessageType, SessionStatus
from soulseer.models.user import SessionType
from soulseer.schemas.common import Pagination


class SessionBookRequest(BaseModel):
    """
    Book a reading
    - scheduled_at: ISO 8601, naive values are treated as UTC
    - duration_minutes: 15..180
    """
    reader_id: int = Field(..., description="reader user id")
    session_type: SessionType = Field(SessionType.CHAT)
    scheduled_at: datetime
    duration_minutes: int = Field(30, ge=15, le=180)
    notes: Optional[str] = Field(None, max_length=1000)

    class Config:
        json_schema_extra = {
            "example": {
                "reader_id": 2,
                "session_type": "CHAT",
                "scheduled_at": "2025-03-02T15:00:00Z",
                "duration_minutes": 30
            }
        }


class SessionAvailabilityResponse(BaseModel):
    available: bool
    reason: Optional[str] = Field(None, description="why the reader cannot be booked")


class SessionResponse(BaseModel):
    session_id: int
    client_id: int
    reader_id: int
    session_type: SessionType
    status: SessionStatus
    scheduled_at: datetime
    duration_minutes: int
    rate_per_minute: Decimal
    estimated_cost: Decimal
    total_cost: Optional[Decimal] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionListResponse(BaseModel):
    sessions: List[SessionResponse]
    pagination: Pagination


class SessionCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ChatMessageCreateRequest(BaseModel):
    session_id: int
    content: str = Field(..., min_length=1, max_length=4000)
    message_type: MessageType = Field(MessageType.TEXT)


class ChatMessageResponse(BaseModel):
    message_id: int
    session_id: int
    sender_id: int
    content: str
    message_type: MessageType
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChatMessageListResponse(BaseModel):
    session_id: int
    messages: List[ChatMessageResponse]
    has_more: bool = Field(..., description="older messages exist before the first one returned")
