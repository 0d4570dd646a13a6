"""
Review Repository
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.review import Review, ReviewStatus


class ReviewRepository:

    async def create(self, db: AsyncSession, review: Review) -> Review:
        db.add(review)
        await db.flush()
        await db.refresh(review)
        return review

    async def get_by_id(self, db: AsyncSession, review_id: int) -> Optional[Review]:
        result = await db.execute(select(Review).where(Review.review_id == review_id))
        return result.scalar_one_or_none()

    async def get_by_session(self, db: AsyncSession, session_id: int) -> Optional[Review]:
        result = await db.execute(select(Review).where(Review.session_id == session_id))
        return result.scalar_one_or_none()

    async def list_reviews(
        self,
        db: AsyncSession,
        reader_id: Optional[int] = None,
        client_id: Optional[int] = None,
        min_rating: Optional[int] = None,
        status: Optional[ReviewStatus] = ReviewStatus.PUBLISHED,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Review], int]:
        conditions = [Review.is_deleted.is_(False)]
        if status:
            conditions.append(Review.status == status)
        if reader_id is not None:
            conditions.append(Review.reader_id == reader_id)
        if client_id is not None:
            conditions.append(Review.client_id == client_id)
        if min_rating is not None:
            conditions.append(Review.rating >= min_rating)

        total = (await db.execute(
            select(func.count()).select_from(Review).where(*conditions)
        )).scalar_one()

        stmt = (
            select(Review)
            .where(*conditions)
            .order_by(Review.created_at.desc(), Review.review_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def published_ratings(self, db: AsyncSession, reader_id: int) -> List[int]:
        stmt = select(Review.rating).where(
            Review.reader_id == reader_id,
            Review.status == ReviewStatus.PUBLISHED,
            Review.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def average_all(self, db: AsyncSession) -> float:
        stmt = select(func.avg(Review.rating)).where(
            Review.status == ReviewStatus.PUBLISHED,
            Review.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        value = result.scalar_one_or_none()
        return round(float(value), 2) if value is not None else 0.0
