from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from soulseer.models.user import (ApplicationStatus, ReaderProfile,
                                  ReaderStatus, SessionType)
from soulseer.schemas.common import Pagination


class ReaderResponse(BaseModel):
    """
    Public reader card
    - reader_id is the reader's user id
    """
    reader_id: int = Field(..., description="reader user id")
    first_name: str
    last_name: str
    full_name: str
    headline: Optional[str] = None
    bio: str
    avatar: Optional[str] = None
    specialties: List[str]
    languages: List[str]
    session_types: List[str]
    rates: Dict[str, float] = Field(..., description="per-minute rate by session type")
    hourly_rate: Optional[Decimal] = Field(None, description="cheapest per-minute rate x 60")
    experience_years: int
    status: ReaderStatus
    is_verified: bool
    total_sessions: int
    average_rating: float
    review_count: int

    @classmethod
    def from_profile(cls, profile: ReaderProfile) -> "ReaderResponse":
        return cls(
            reader_id=profile.user_id,
            first_name=profile.first_name,
            last_name=profile.last_name,
            full_name=profile.full_name,
            headline=profile.headline,
            bio=profile.bio,
            avatar=profile.avatar,
            specialties=list(profile.specialties or []),
            languages=list(profile.languages or []),
            session_types=list(profile.session_types or []),
            rates=dict(profile.rates or {}),
            hourly_rate=profile.hourly_rate,
            experience_years=profile.experience_years,
            status=profile.status,
            is_verified=profile.is_verified,
            total_sessions=profile.total_sessions,
            average_rating=profile.average_rating,
            review_count=profile.review_count,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "reader_id": 12,
                "first_name": "Mystic",
                "last_name": "Rose",
                "full_name": "Mystic Rose",
                "headline": "Tarot and astrology",
                "bio": "Twenty years of intuitive readings.",
                "specialties": ["Tarot", "Astrology"],
                "languages": ["English"],
                "session_types": ["CHAT", "VIDEO"],
                "rates": {"CHAT": 2.99, "VIDEO": 4.99},
                "hourly_rate": "179.40",
                "experience_years": 20,
                "status": "ONLINE",
                "is_verified": True,
                "total_sessions": 340,
                "average_rating": 4.8,
                "review_count": 120
            }
        }


class ReaderListResponse(BaseModel):
    readers: List[ReaderResponse]
    pagination: Pagination


class ReviewSummary(BaseModel):
    average_rating: float
    review_count: int
    distribution: Dict[int, int] = Field(..., description="count per star 1..5")


class ReaderDetailResponse(BaseModel):
    reader: ReaderResponse
    reviews: ReviewSummary


class ReaderProfileUpdateRequest(BaseModel):
    """
    Reader's own profile update; unset fields are left alone
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    headline: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = Field(None, max_length=5000)
    avatar: Optional[str] = Field(None, max_length=500)
    specialties: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    session_types: Optional[List[SessionType]] = None
    rates: Optional[Dict[SessionType, float]] = Field(None, description="per-minute rate by session type")
    experience_years: Optional[int] = Field(None, ge=0, le=80)
    status: Optional[ReaderStatus] = None

    @field_validator("rates")
    @classmethod
    def rates_non_negative(cls, v):
        if v is not None and any(rate < 0 for rate in v.values()):
            raise ValueError("rates must be >= 0")
        return v


class ReaderApplicationRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    bio: str = Field(..., min_length=20, max_length=5000)
    specialties: List[str] = Field(..., min_length=1)
    session_types: List[SessionType] = Field(default_factory=lambda: [SessionType.CHAT])
    experience_years: int = Field(0, ge=0, le=80)


class ReaderApplicationResponse(BaseModel):
    application_id: int
    user_id: int
    first_name: str
    last_name: str
    bio: str
    specialties: List[str]
    session_types: List[str]
    experience_years: int
    status: ApplicationStatus
    review_note: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
