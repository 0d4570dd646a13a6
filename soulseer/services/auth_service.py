# services/auth_service.py
import logging

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.user import User, UserRole, UserStatus
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.auth_schema import FirebaseSyncRequest, RegisterRequest
from soulseer.utils.firebase import FirebaseAdminService
from soulseer.utils.scheduling import is_valid_timezone
from soulseer.utils.security import (REFRESH_SCOPE, create_access_token,
                                     create_refresh_token, decode_token)

logger = logging.getLogger(__name__)

BLOCKED_STATUSES = (UserStatus.SUSPENDED, UserStatus.BANNED)


def issue_tokens(user: User) -> tuple[str, str]:
    access_token = create_access_token(sub=user.email, role=user.role.value)
    refresh_token = create_refresh_token(sub=user.email)
    return access_token, refresh_token


class AuthService:
    """
    Local JWT and Firebase sign-in
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository()

    def _ensure_allowed(self, user: User) -> None:
        if user.status in BLOCKED_STATUSES:
            logger.warning(f"Blocked account tried to sign in: {user.email} ({user.status.value})")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Account is {user.status.value.lower()}",
            )

    async def register(self, data: RegisterRequest) -> tuple[User, str, str]:
        if data.timezone and not is_valid_timezone(data.timezone):
            raise HTTPException(status_code=400, detail=f"Invalid timezone: {data.timezone}")

        if await self.user_repo.get_by_email(self.db, data.email):
            logger.warning(f"Duplicate registration attempt: {data.email}")
            raise HTTPException(status_code=409, detail="Email already registered")

        user = await self.user_repo.create(self.db, {
            "name": data.name,
            "email": data.email,
            "password": data.password,
            "timezone": data.timezone,
            "role": UserRole.CLIENT,
        })
        await self.db.commit()

        logger.info(f"User registered: {user.email}")
        access, refresh = issue_tokens(user)
        return user, access, refresh

    async def login(self, email: str, password: str) -> tuple[str, str]:
        """
        Check credentials and issue a token pair
        """
        user = await self.user_repo.get_by_email(self.db, email)
        if not user:
            logger.warning(f"Login failed: user not found ({email})")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )

        if not user.verify_password(password):
            logger.warning(f"Login failed: invalid password ({email})")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )

        self._ensure_allowed(user)

        logger.info(f"User login success: {user.email}")
        return issue_tokens(user)

    async def refresh(self, refresh_token: str) -> tuple[str, str]:
        """
        Validate a refresh token and issue a new pair
        """
        payload = decode_token(refresh_token, REFRESH_SCOPE)
        if not payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token",
            )

        email = payload.get("sub")
        user = await self.user_repo.get_by_email(self.db, email) if isinstance(email, str) else None
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
            )
        self._ensure_allowed(user)

        logger.info(f"Token refreshed for {user.email}")
        return issue_tokens(user)

    async def firebase_sync(self, data: FirebaseSyncRequest) -> tuple[User, bool]:
        """
        Verify a Firebase ID token and create or link the local user.

        Lookup order: firebase_uid, then email (links the uid to an existing
        email/password account).

        Returns:
            (user, created)
        """
        claims, error = await FirebaseAdminService.verify_id_token(data.id_token)
        if error:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=error)

        uid = claims.get("uid") or claims.get("sub")
        email = claims.get("email")
        if not uid or not email:
            raise HTTPException(status_code=400, detail="Token has no uid or email claim")

        if data.timezone and not is_valid_timezone(data.timezone):
            raise HTTPException(status_code=400, detail=f"Invalid timezone: {data.timezone}")

        user = await self.user_repo.get_by_firebase_uid(self.db, uid)
        created = False

        if user is None:
            user = await self.user_repo.get_by_email(self.db, email)
            if user is not None:
                user = await self.user_repo.update(self.db, user, {"firebase_uid": uid})
                logger.info(f"Firebase uid linked to existing user {user.email}")
            else:
                user = await self.user_repo.create(self.db, {
                    "name": data.name or claims.get("name") or email.split("@")[0],
                    "email": email,
                    "firebase_uid": uid,
                    "timezone": data.timezone,
                })
                created = True
                logger.info(f"User created from Firebase sign in: {email}")

        self._ensure_allowed(user)
        await self.db.commit()
        return user, created
