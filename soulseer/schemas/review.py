from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from soulseer.models.review import ReviewStatus
from soulseer.schemas.common import Pagination


class ReviewCreateRequest(BaseModel):
    session_id: int = Field(..., description="completed session being reviewed")
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=10, max_length=1000)

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": 41,
                "rating": 5,
                "comment": "Insightful and kind, thank you!"
            }
        }


class ReviewResponse(BaseModel):
    review_id: int
    session_id: int
    client_id: int
    reader_id: int
    rating: int
    comment: str
    status: ReviewStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    pagination: Pagination


class ReviewStatusUpdateRequest(BaseModel):
    status: ReviewStatus
