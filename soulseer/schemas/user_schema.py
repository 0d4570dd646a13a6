from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from soulseer.models.user import UserRole, UserStatus
from soulseer.schemas.common import Pagination


class UserResponse(BaseModel):
    """
    User response schema
    """
    user_id: int = Field(..., description="user id")
    name: str = Field(..., description="display name")
    email: str = Field(..., description="email")
    role: UserRole = Field(..., description="CLIENT, READER or ADMIN")
    status: UserStatus = Field(..., description="account status")
    timezone: str = Field(..., description="IANA timezone")
    coin_balance: int = Field(0, description="virtual gift coins")
    created_at: Optional[datetime] = Field(None, description="created at")
    updated_at: Optional[datetime] = Field(None, description="updated at")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "user_id": 1,
                "name": "Luna Client",
                "email": "luna@example.com",
                "role": "CLIENT",
                "status": "ACTIVE",
                "timezone": "America/New_York",
                "coin_balance": 500,
                "created_at": "2025-12-01T10:00:00",
                "updated_at": "2025-12-01T10:00:00"
            }
        }


class UserProfileUpdateRequest(BaseModel):
    """
    Own profile update; unset fields are left alone
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="display name")
    timezone: Optional[str] = Field(None, description="IANA timezone")
    password: Optional[str] = Field(None, min_length=8, max_length=100, description="new password")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Luna",
                "timezone": "Europe/London"
            }
        }


class UserListResponse(BaseModel):
    users: List[UserResponse] = Field(..., description="users")
    pagination: Pagination


class UserStatsResponse(BaseModel):
    total: int
    by_role: Dict[str, int]
    by_status: Dict[str, int]
    new_last_30_days: int


class SuspendRequest(BaseModel):
    reason: str = Field("", max_length=500, description="required reason")
