from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field

from soulseer.models.base import BaseModel


class ReviewStatus(str, Enum):
    PUBLISHED = "PUBLISHED"
    HIDDEN = "HIDDEN"
    FLAGGED = "FLAGGED"


class Review(BaseModel, table=True):
    """
    Client rating of a completed session (one per session)
    """

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    review_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    session_id: int = Field(
        foreign_key="reading_sessions.session_id",
        nullable=False,
        sa_column_kwargs={"unique": True},
    )
    client_id: int = Field(foreign_key="users.user_id", nullable=False)
    reader_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)

    rating: int = Field(nullable=False)
    comment: str = Field(nullable=False)
    status: ReviewStatus = Field(default=ReviewStatus.PUBLISHED)
