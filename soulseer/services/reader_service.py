"""
Reader Service
Public reader directory, reader self-service profile and applications
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.user import (ReaderApplication, ReaderProfile,
                                  ReaderStatus, User, UserRole)
from soulseer.repositories.reader_repository import (
    ReaderApplicationRepository, ReaderRepository)
from soulseer.repositories.review_repository import ReviewRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.reader import (ReaderApplicationRequest,
                                     ReaderDetailResponse, ReaderListResponse,
                                     ReaderProfileUpdateRequest,
                                     ReaderResponse, ReviewSummary)
from soulseer.utils.analytics_calc import average, rating_distribution
from soulseer.utils.reader_search import (ReaderFilters, filter_readers,
                                          paginate, sort_readers)

logger = logging.getLogger(__name__)


class ReaderService:
    """Reader directory service"""

    def __init__(self):
        self.reader_repo = ReaderRepository()
        self.application_repo = ReaderApplicationRepository()
        self.review_repo = ReviewRepository()

    async def get_profile_or_404(self, db: AsyncSession, reader_id: int) -> ReaderProfile:
        profile = await self.reader_repo.get_by_user_id(db, reader_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Reader not found")
        return profile

    async def search(
        self,
        db: AsyncSession,
        filters: ReaderFilters,
        sort_by: str = "rating",
        limit: int = 20,
        offset: int = 0,
    ) -> ReaderListResponse:
        """
        Filter (AND of every set filter) -> stable sort -> paginate
        """
        profiles = await self.reader_repo.list_public(db)
        matched = sort_readers(filter_readers(profiles, filters), sort_by)
        page, total, _ = paginate(matched, limit, offset)

        logger.debug(f"Reader search matched {total} of {len(profiles)} (sort={sort_by})")
        return ReaderListResponse(
            readers=[ReaderResponse.from_profile(p) for p in page],
            pagination=Pagination.of(total, limit, offset),
        )

    async def list_available(self, db: AsyncSession, limit: int = 20, offset: int = 0) -> ReaderListResponse:
        return await self.search(db, ReaderFilters(status=ReaderStatus.ONLINE.value), "rating", limit, offset)

    async def review_summary(self, db: AsyncSession, reader_id: int) -> ReviewSummary:
        ratings = await self.review_repo.published_ratings(db, reader_id)
        return ReviewSummary(
            average_rating=average(ratings),
            review_count=len(ratings),
            distribution=rating_distribution(ratings),
        )

    async def get_reader(self, db: AsyncSession, reader_id: int) -> ReaderDetailResponse:
        profile = await self.get_profile_or_404(db, reader_id)
        return ReaderDetailResponse(
            reader=ReaderResponse.from_profile(profile),
            reviews=await self.review_summary(db, reader_id),
        )

    async def update_own_profile(
        self, db: AsyncSession, user: User, data: ReaderProfileUpdateRequest
    ) -> ReaderResponse:
        profile = await self.get_profile_or_404(db, user.user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise HTTPException(status_code=400, detail="Nothing to update")

        if "rates" in changes:
            changes["rates"] = {str(getattr(k, "value", k)): float(v) for k, v in changes["rates"].items()}
        if "session_types" in changes:
            changes["session_types"] = [str(getattr(t, "value", t)) for t in changes["session_types"]]

        session_types = changes.get("session_types", profile.session_types or [])
        rates = changes.get("rates", profile.rates or {})
        missing = [t for t in session_types if t not in rates]
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing rate for session type(s): {', '.join(missing)}")

        for key, value in changes.items():
            # JSON columns need a new object to register the change
            setattr(profile, key, list(value) if isinstance(value, list) else value)

        profile = await self.reader_repo.update(db, profile)
        await db.commit()

        logger.info(f"Reader profile updated: {user.user_id} ({', '.join(changes)})")
        return ReaderResponse.from_profile(profile)

    async def apply(self, db: AsyncSession, user: User, data: ReaderApplicationRequest) -> ReaderApplication:
        if user.role != UserRole.CLIENT:
            raise HTTPException(status_code=409, detail="Only clients can apply to become readers")

        if await self.application_repo.get_pending_for_user(db, user.user_id):
            raise HTTPException(status_code=409, detail="An application is already pending")

        application = await self.application_repo.create(db, ReaderApplication(
            user_id=user.user_id,
            first_name=data.first_name,
            last_name=data.last_name,
            bio=data.bio,
            specialties=list(data.specialties),
            session_types=[t.value for t in data.session_types],
            experience_years=data.experience_years,
        ))
        await db.commit()

        logger.info(f"Reader application submitted: user={user.user_id} id={application.application_id}")
        return application

    async def my_profile(self, db: AsyncSession, user: User) -> Optional[ReaderResponse]:
        profile = await self.get_profile_or_404(db, user.user_id)
        return ReaderResponse.from_profile(profile)
