# utils/dependencies.py
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.user import User, UserRole, UserStatus
from soulseer.repositories.user_repository import UserRepository
from soulseer.services.admin_service import (AdminAnalyticsService,
                                             AdminFinanceService,
                                             AdminReaderService)
from soulseer.services.auth_service import AuthService
from soulseer.services.availability_service import AvailabilityService
from soulseer.services.chat_service import ChatService
from soulseer.services.gift_service import GiftService
from soulseer.services.marketplace_service import MarketplaceService
from soulseer.services.notification_service import NotificationService
from soulseer.services.reader_service import ReaderService
from soulseer.services.review_service import ReviewService
from soulseer.services.session_service import SessionService
from soulseer.services.support_service import SupportService
from soulseer.services.user_service import UserService
from soulseer.utils.firebase import FirebaseAdminService
from soulseer.utils.security import ACCESS_SCOPE, decode_token

logger = logging.getLogger(__name__)

# Swagger "Authorize" only needs the token; Bearer is added automatically
auth_scheme = HTTPBearer(auto_error=False)


async def resolve_user_from_token(db: AsyncSession, token: str) -> User:
    """
    Bearer token -> User

    1. locally issued access JWT (sub = email)
    2. Firebase ID token, matched by firebase_uid then email

    401 when neither verifies, 403 for suspended / banned accounts.
    """
    repo = UserRepository()
    user: Optional[User] = None

    payload = decode_token(token, ACCESS_SCOPE)
    if payload:
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload (sub)",
            )
        user = await repo.get_by_email(db, sub)
    else:
        claims, error = await FirebaseAdminService.verify_id_token(token)
        if error:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        uid = claims.get("uid") or claims.get("sub")
        user = await repo.get_by_firebase_uid(db, uid) if uid else None
        if user is None and claims.get("email"):
            user = await repo.get_by_email(db, claims["email"])

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if user.status in (UserStatus.SUSPENDED, UserStatus.BANNED):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.status.value.lower()}",
        )

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the signed in user from the Authorization header
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await resolve_user_from_token(db, credentials.credentials)


def require_role(*roles: UserRole):
    """
    Dependency factory: the current user must hold one of the roles (403)
    """
    allowed = {UserRole(r) for r in roles}

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if UserRole(current_user.role) not in allowed:
            logger.warning(
                f"Role check failed for user {current_user.user_id}: "
                f"{current_user.role} not in {[r.value for r in allowed]}"
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return _checker


require_admin = require_role(UserRole.ADMIN)
require_reader = require_role(UserRole.READER)
require_client = require_role(UserRole.CLIENT)


async def get_auth_service(db: AsyncSession = Depends(get_session)) -> AuthService:
    return AuthService(db)


def get_user_service() -> UserService:
    return UserService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_reader_service() -> ReaderService:
    return ReaderService()


def get_availability_service() -> AvailabilityService:
    return AvailabilityService()


def get_session_service() -> SessionService:
    return SessionService()


def get_chat_service() -> ChatService:
    return ChatService()


def get_marketplace_service() -> MarketplaceService:
    return MarketplaceService()


def get_review_service() -> ReviewService:
    return ReviewService()


def get_gift_service() -> GiftService:
    return GiftService()


def get_support_service() -> SupportService:
    return SupportService()


def get_admin_reader_service() -> AdminReaderService:
    return AdminReaderService()


def get_admin_analytics_service() -> AdminAnalyticsService:
    return AdminAnalyticsService()


def get_admin_finance_service() -> AdminFinanceService:
    return AdminFinanceService()
