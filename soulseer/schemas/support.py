from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from soulseer.models.support import TicketPriority, TicketStatus
from soulseer.schemas.common import Pagination, PartialUpdateRequest


class TicketCreateRequest(BaseModel):
    subject: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)
    category: str = Field("general", max_length=50)
    priority: TicketPriority = Field(TicketPriority.MEDIUM)

    class Config:
        json_schema_extra = {
            "example": {
                "subject": "Charged twice for a session",
                "message": "My session on Monday shows two charges.",
                "category": "billing",
                "priority": "HIGH"
            }
        }


class TicketUpdateRequest(PartialUpdateRequest):
    NOT_NULL = ("status", "priority")

    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assigned_to: Optional[int] = Field(None, description="admin user id")


class TicketMessageRequest(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000)
    is_internal: bool = Field(False, description="staff-only note")


class TicketMessageResponse(BaseModel):
    message_id: int
    ticket_id: int
    sender_id: int
    body: str
    is_internal: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketResponse(BaseModel):
    ticket_id: int
    user_id: int
    subject: str
    category: str
    status: TicketStatus
    priority: TicketPriority
    assigned_to: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketDetailResponse(TicketResponse):
    messages: List[TicketMessageResponse] = []


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    pagination: Pagination


class SupportStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    avg_resolution_hours: float = Field(..., description="created -> resolved, resolved tickets only")


class SupportAgent(BaseModel):
    user_id: int
    name: str
    email: str
    open_tickets: int


class SupportAgentsResponse(BaseModel):
    agents: List[SupportAgent]
