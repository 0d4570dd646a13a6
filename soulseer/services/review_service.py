"""
Review Service
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.notification import NotificationType
from soulseer.models.review import Review, ReviewStatus
from soulseer.models.session import SessionStatus
from soulseer.models.user import User
from soulseer.repositories.reader_repository import ReaderRepository
from soulseer.repositories.review_repository import ReviewRepository
from soulseer.repositories.session_repository import SessionRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.reader import ReviewSummary
from soulseer.schemas.review import (ReviewCreateRequest, ReviewListResponse,
                                     ReviewResponse)
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.analytics_calc import average, rating_distribution

logger = logging.getLogger(__name__)


class ReviewService:

    def __init__(self):
        self.repo = ReviewRepository()
        self.session_repo = SessionRepository()
        self.reader_repo = ReaderRepository()
        self.notifications = NotificationService()

    async def refresh_reader_rating(self, db: AsyncSession, reader_id: int) -> None:
        """Recompute the cached average over PUBLISHED reviews"""
        profile = await self.reader_repo.get_by_user_id(db, reader_id)
        if not profile:
            return
        ratings = await self.repo.published_ratings(db, reader_id)
        profile.average_rating = average(ratings)
        profile.review_count = len(ratings)
        await self.reader_repo.update(db, profile)

    async def create_review(self, db: AsyncSession, user: User, data: ReviewCreateRequest) -> ReviewResponse:
        session = await self.session_repo.get_by_id(db, data.session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        if session.client_id != user.user_id:
            raise HTTPException(status_code=403, detail="Only the session's client can review it")
        if session.status != SessionStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Only completed sessions can be reviewed")
        if await self.repo.get_by_session(db, session.session_id):
            raise HTTPException(status_code=400, detail="Session already reviewed")

        review = await self.repo.create(db, Review(
            session_id=session.session_id,
            client_id=user.user_id,
            reader_id=session.reader_id,
            rating=data.rating,
            comment=data.comment,
        ))
        await self.refresh_reader_rating(db, session.reader_id)

        await self.notifications.notify(
            db, session.reader_id, NotificationType.REVIEW_RECEIVED,
            "New review", f"{user.name} left a {data.rating}-star review.",
            {"review_id": review.review_id, "session_id": session.session_id},
        )
        await commit_and_publish(db)

        logger.info(f"Review created: id={review.review_id} reader={session.reader_id} rating={data.rating}")
        return ReviewResponse.model_validate(review)

    async def list_reviews(
        self,
        db: AsyncSession,
        reader_id: Optional[int] = None,
        client_id: Optional[int] = None,
        min_rating: Optional[int] = None,
        status: Optional[ReviewStatus] = ReviewStatus.PUBLISHED,
        limit: int = 20,
        offset: int = 0,
    ) -> ReviewListResponse:
        rows, total = await self.repo.list_reviews(db, reader_id, client_id, min_rating, status, offset, limit)
        return ReviewListResponse(
            reviews=[ReviewResponse.model_validate(r) for r in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def summary(self, db: AsyncSession, reader_id: int) -> ReviewSummary:
        ratings = await self.repo.published_ratings(db, reader_id)
        return ReviewSummary(
            average_rating=average(ratings),
            review_count=len(ratings),
            distribution=rating_distribution(ratings),
        )

    async def set_status(self, db: AsyncSession, review_id: int, status: ReviewStatus) -> ReviewResponse:
        review = await self.repo.get_by_id(db, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")

        review.status = status
        await db.flush()
        await self.refresh_reader_rating(db, review.reader_id)
        await db.commit()
        await db.refresh(review)

        logger.info(f"Review {review_id} -> {status.value}")
        return ReviewResponse.model_validate(review)
