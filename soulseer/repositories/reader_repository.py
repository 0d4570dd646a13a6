"""
Reader Repository
Reader profiles and reader applications
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.user import (ApplicationStatus, ReaderApplication,
                                  ReaderProfile, ReaderStatus, User,
                                  UserStatus)


class ReaderRepository:
    """Reader profile Repository"""

    async def get_by_user_id(self, db: AsyncSession, user_id: int) -> Optional[ReaderProfile]:
        stmt = select(ReaderProfile).where(
            ReaderProfile.user_id == user_id,
            ReaderProfile.is_deleted.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_public(self, db: AsyncSession) -> List[ReaderProfile]:
        """Profiles of active accounts in id order (the stable base order for sorting)"""
        stmt = (
            select(ReaderProfile)
            .join(User, User.user_id == ReaderProfile.user_id)
            .where(
                ReaderProfile.is_deleted.is_(False),
                User.status == UserStatus.ACTIVE,
                ReaderProfile.status != ReaderStatus.INVISIBLE,
            )
            .order_by(ReaderProfile.profile_id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_admin(
        self,
        db: AsyncSession,
        status: Optional[ReaderStatus] = None,
        verified: Optional[bool] = None,
        q: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Tuple[ReaderProfile, User]], int]:
        conditions = [ReaderProfile.is_deleted.is_(False)]
        if status:
            conditions.append(ReaderProfile.status == status)
        if verified is not None:
            conditions.append(ReaderProfile.is_verified.is_(verified))
        if q:
            pattern = f"%{q.lower()}%"
            conditions.append(or_(
                func.lower(ReaderProfile.first_name).like(pattern),
                func.lower(ReaderProfile.last_name).like(pattern),
                func.lower(User.email).like(pattern),
            ))

        base = select(ReaderProfile, User).join(User, User.user_id == ReaderProfile.user_id).where(*conditions)
        total = (await db.execute(
            select(func.count()).select_from(base.subquery())
        )).scalar_one()

        result = await db.execute(base.order_by(ReaderProfile.profile_id).offset(skip).limit(limit))
        return [(row[0], row[1]) for row in result.all()], total

    async def create(self, db: AsyncSession, profile: ReaderProfile) -> ReaderProfile:
        db.add(profile)
        await db.flush()
        await db.refresh(profile)
        return profile

    async def update(self, db: AsyncSession, profile: ReaderProfile) -> ReaderProfile:
        await db.flush()
        await db.refresh(profile)
        return profile

    async def count_by_status(self, db: AsyncSession) -> Dict[str, int]:
        result = await db.execute(
            select(ReaderProfile.status, func.count())
            .where(ReaderProfile.is_deleted.is_(False))
            .group_by(ReaderProfile.status)
        )
        return {getattr(k, "value", k): c for k, c in result.all()}

    async def count_verified(self, db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count()).select_from(ReaderProfile).where(
                ReaderProfile.is_deleted.is_(False), ReaderProfile.is_verified.is_(True)
            )
        )
        return result.scalar_one()

    async def top_by(self, db: AsyncSession, column, limit: int = 10) -> List[ReaderProfile]:
        stmt = (
            select(ReaderProfile)
            .where(ReaderProfile.is_deleted.is_(False))
            .order_by(column.desc(), ReaderProfile.profile_id)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


class ReaderApplicationRepository:
    """Reader application Repository"""

    async def create(self, db: AsyncSession, application: ReaderApplication) -> ReaderApplication:
        db.add(application)
        await db.flush()
        await db.refresh(application)
        return application

    async def get_by_id(self, db: AsyncSession, application_id: int) -> Optional[ReaderApplication]:
        stmt = select(ReaderApplication).where(ReaderApplication.application_id == application_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_for_user(self, db: AsyncSession, user_id: int) -> Optional[ReaderApplication]:
        stmt = select(ReaderApplication).where(
            ReaderApplication.user_id == user_id,
            ReaderApplication.status == ApplicationStatus.PENDING,
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    async def list_applications(
        self,
        db: AsyncSession,
        status: Optional[ApplicationStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ReaderApplication], int]:
        conditions = []
        if status:
            conditions.append(ReaderApplication.status == status)

        total = (await db.execute(
            select(func.count()).select_from(ReaderApplication).where(*conditions)
        )).scalar_one()

        stmt = (
            select(ReaderApplication)
            .where(*conditions)
            .order_by(ReaderApplication.created_at.desc(), ReaderApplication.application_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total
