import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from soulseer.models import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Database access for users
    """

    async def create(self, db: AsyncSession, user_data: dict) -> User:
        """
        Create a user.

        Args:
            db: database session
            user_data: name, email and optionally password, role, timezone,
                firebase_uid

        Returns:
            the flushed user (the caller commits)
        """
        try:
            password = user_data.get("password")
            user = User(
                name=user_data["name"],
                email=user_data["email"],
                password_hash=User.hash_password(password) if password else None,
                firebase_uid=user_data.get("firebase_uid"),
                role=user_data.get("role", UserRole.CLIENT),
                timezone=user_data.get("timezone") or "UTC",
            )

            db.add(user)
            await db.flush()
            await db.refresh(user)

            logger.info(f"User created: {user.email}")
            return user

        except Exception as e:
            await db.rollback()
            logger.error(f"User create error: {e}")
            raise

    async def get_by_id(self, db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.user_id == user_id, User.is_deleted.is_(False))
        )
        user = result.scalars().first()

        if not user:
            logger.warning(f"User id not found: {user_id}")

        return user

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.lower(), User.is_deleted.is_(False))
        )
        return result.scalars().first()

    async def get_by_firebase_uid(self, db: AsyncSession, firebase_uid: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.firebase_uid == firebase_uid, User.is_deleted.is_(False))
        )
        return result.scalars().first()

    async def get_many(self, db: AsyncSession, user_ids: List[int]) -> Dict[int, User]:
        if not user_ids:
            return {}
        result = await db.execute(select(User).where(User.user_id.in_(set(user_ids))))
        return {u.user_id: u for u in result.scalars().all()}

    async def list_users(
        self,
        db: AsyncSession,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[User], int]:
        """
        Filtered, newest-first page of users plus the total match count
        """
        conditions = [User.is_deleted.is_(False)]
        if role:
            conditions.append(User.role == role)
        if status:
            conditions.append(User.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))

        total = (await db.execute(select(func.count()).select_from(User).where(*conditions))).scalar_one()

        result = await db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.user_id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_by_role(self, db: AsyncSession, role: UserRole) -> List[User]:
        result = await db.execute(
            select(User).where(User.role == role, User.is_deleted.is_(False)).order_by(User.user_id)
        )
        return list(result.scalars().all())

    async def count_grouped(self, db: AsyncSession, column) -> Dict[str, int]:
        result = await db.execute(
            select(column, func.count()).where(User.is_deleted.is_(False)).group_by(column)
        )
        return {getattr(key, "value", key): count for key, count in result.all()}

    async def count_created_between(
        self, db: AsyncSession, start: datetime, end: Optional[datetime] = None
    ) -> int:
        conditions = [User.is_deleted.is_(False), User.created_at >= start]
        if end is not None:
            conditions.append(User.created_at < end)
        result = await db.execute(select(func.count()).select_from(User).where(*conditions))
        return result.scalar_one()

    async def count_all(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(User).where(User.is_deleted.is_(False)))
        return result.scalar_one()

    async def update(self, db: AsyncSession, user: User, update_data: dict) -> User:
        try:
            for key, value in update_data.items():
                if key == "password":
                    user.password_hash = User.hash_password(value)
                elif hasattr(user, key):
                    setattr(user, key, value)

            await db.flush()
            await db.refresh(user)
            logger.info(f"User updated: {user.user_id}")
            return user

        except Exception as e:
            await db.rollback()
            logger.error(f"User update error (user_id={user.user_id}): {e}")
            raise

    async def debit_coins(self, db: AsyncSession, user_id: int, amount: int) -> bool:
        """
        Atomically take coins from a balance. False when the balance is too low.
        """
        result = await db.execute(
            update(User)
            .where(User.user_id == user_id, User.coin_balance >= amount)
            .values(coin_balance=User.coin_balance - amount)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    async def credit_coins(self, db: AsyncSession, user_id: int, amount: int) -> None:
        await db.execute(
            update(User)
            .where(User.user_id == user_id)
            .values(coin_balance=User.coin_balance + amount)
            .execution_options(synchronize_session="fetch")
        )
