import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models import NotificationType, User, UserRole, UserStatus
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.common import ErrorResponse, Pagination
from soulseer.schemas.user_schema import (UserListResponse,
                                          UserProfileUpdateRequest,
                                          UserResponse, UserStatsResponse)
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.datetime import utc_now_naive
from soulseer.utils.scheduling import is_valid_timezone

logger = logging.getLogger(__name__)

NOT_FOUND = "User not found"


class UserService:
    """
    User profile and account administration
    """

    def __init__(
        self,
        user_repository: Optional[UserRepository] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.user_repository = user_repository or UserRepository()
        self.notification_service = notification_service or NotificationService()

    async def get_profile(self, db: AsyncSession, user_id: int) -> tuple[Optional[UserResponse], Optional[ErrorResponse]]:
        user = await self.user_repository.get_by_id(db, user_id)
        if not user:
            return None, ErrorResponse(error=NOT_FOUND, detail=f"No user with id {user_id}")
        return UserResponse.model_validate(user), None

    async def update_profile(
        self, db: AsyncSession, user_id: int, update_data: UserProfileUpdateRequest
    ) -> tuple[Optional[UserResponse], Optional[ErrorResponse]]:
        """
        Update own name / timezone / password.

        Returns:
            success: (UserResponse, None)
            failure: (None, ErrorResponse)
        """
        update_dict = update_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_dict:
            return None, ErrorResponse(
                error="Nothing to update",
                detail="At least one field must be provided",
            )

        if "timezone" in update_dict and not is_valid_timezone(update_dict["timezone"]):
            return None, ErrorResponse(
                error="Invalid timezone",
                detail=f"'{update_dict['timezone']}' is not an IANA timezone name",
            )

        user = await self.user_repository.get_by_id(db, user_id)
        if not user:
            return None, ErrorResponse(error=NOT_FOUND, detail=f"No user with id {user_id}")

        try:
            user = await self.user_repository.update(db, user, update_dict)
            await db.commit()
        except Exception as e:
            logger.error(f"Profile update failed for {user_id}: {e}", exc_info=True)
            return None, ErrorResponse(error="Profile update failed", detail=str(e))

        logger.info(f"Profile updated: {user_id}")
        return UserResponse.model_validate(user), None

    # ========== admin ==========

    async def list_users(
        self,
        db: AsyncSession,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Optional[UserListResponse], Optional[ErrorResponse]]:
        try:
            users, total = await self.user_repository.list_users(db, role, status, search, offset, limit)
        except Exception as e:
            logger.error(f"User list failed: {e}", exc_info=True)
            return None, ErrorResponse(error="User list failed", detail=str(e))

        return UserListResponse(
            users=[UserResponse.model_validate(u) for u in users],
            pagination=Pagination.of(total, limit, offset),
        ), None

    async def get_stats(self, db: AsyncSession) -> UserStatsResponse:
        by_role = await self.user_repository.count_grouped(db, User.role)
        by_status = await self.user_repository.count_grouped(db, User.status)
        new_users = await self.user_repository.count_created_between(
            db, utc_now_naive() - timedelta(days=30)
        )
        return UserStatsResponse(
            total=sum(by_role.values()),
            by_role={r.value: by_role.get(r.value, 0) for r in UserRole},
            by_status={s.value: by_status.get(s.value, 0) for s in UserStatus},
            new_last_30_days=new_users,
        )

    async def set_status(
        self,
        db: AsyncSession,
        user_id: int,
        status: UserStatus,
        reason: Optional[str] = None,
    ) -> tuple[Optional[UserResponse], Optional[ErrorResponse]]:
        """
        Suspend (reason required) or re-activate an account
        """
        if status == UserStatus.SUSPENDED and not (reason or "").strip():
            return None, ErrorResponse(error="Suspension reason is required")

        user = await self.user_repository.get_by_id(db, user_id)
        if not user:
            return None, ErrorResponse(error=NOT_FOUND, detail=f"No user with id {user_id}")

        user = await self.user_repository.update(db, user, {"status": status})

        if status == UserStatus.SUSPENDED:
            message = f"Your account has been suspended: {reason.strip()}"
        else:
            message = "Your account has been reactivated"
        await self.notification_service.notify(
            db, user.user_id, NotificationType.SYSTEM_UPDATE, "Account status changed", message,
            {"status": status.value},
        )
        await commit_and_publish(db)

        logger.info(f"User {user_id} status -> {status.value}")
        return UserResponse.model_validate(user), None
