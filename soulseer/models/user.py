from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.types import Numeric
from sqlmodel import Field

from soulseer.models.base import BaseModel, JSONType
from soulseer.utils.security import get_password_hash, verify_password as _verify


class UserRole(str, Enum):
    CLIENT = "CLIENT"
    READER = "READER"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"
    BANNED = "BANNED"


class ReaderStatus(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    BUSY = "BUSY"
    AWAY = "AWAY"
    INVISIBLE = "INVISIBLE"


class SessionType(str, Enum):
    CHAT = "CHAT"
    CALL = "CALL"
    VIDEO = "VIDEO"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(BaseModel, table=True):
    """
    Account row shared by clients, readers and admins
    - password_hash is empty for accounts that only sign in through Firebase
    - coin_balance funds virtual gifts
    """

    __tablename__ = "users"

    user_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        description="user id",
        sa_column_kwargs={"autoincrement": True}
    )

    name: str = Field(
        max_length=100,
        nullable=False,
        description="display name"
    )

    email: str = Field(
        max_length=255,
        nullable=False,
        description="login email",
        sa_column_kwargs={"unique": True}
    )

    password_hash: Optional[str] = Field(
        default=None,
        max_length=255,
        description="bcrypt hash, NULL for Firebase-only accounts"
    )

    firebase_uid: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Firebase Auth uid",
        sa_column_kwargs={"unique": True}
    )

    role: UserRole = Field(
        default=UserRole.CLIENT,
        description="CLIENT, READER or ADMIN"
    )

    status: UserStatus = Field(
        default=UserStatus.ACTIVE,
        description="account status"
    )

    timezone: str = Field(
        default="UTC",
        max_length=64,
        description="IANA timezone name"
    )

    coin_balance: int = Field(
        default=0,
        nullable=False,
        description="virtual gift coins"
    )

    @classmethod
    def hash_password(cls, password: str) -> str:
        return get_password_hash(password)

    def verify_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return _verify(password, self.password_hash)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<User(id={self.user_id}, email='{self.email}', role={self.role})>"


class ReaderProfile(BaseModel, table=True):
    """
    Public practitioner profile
    - rates: per-minute price for each offered session type
    """

    __tablename__ = "reader_profiles"

    profile_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        description="reader profile id",
        sa_column_kwargs={"autoincrement": True},
    )

    user_id: int = Field(
        foreign_key="users.user_id",
        nullable=False,
        description="owning user",
        sa_column_kwargs={"unique": True},
    )

    first_name: str = Field(max_length=50, nullable=False)
    last_name: str = Field(max_length=50, nullable=False)

    headline: Optional[str] = Field(default=None, max_length=200)
    bio: str = Field(default="", nullable=False)
    avatar: Optional[str] = Field(default=None, max_length=500)

    specialties: List[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    languages: List[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    session_types: List[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    rates: Dict[str, float] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
        description="per-minute rate keyed by session type",
    )

    experience_years: int = Field(default=0, nullable=False)

    status: ReaderStatus = Field(default=ReaderStatus.OFFLINE)
    is_verified: bool = Field(default=False)

    total_sessions: int = Field(default=0, nullable=False)
    total_earnings: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(12, 2, asdecimal=True), nullable=False),
    )
    average_rating: float = Field(default=0.0, nullable=False)
    review_count: int = Field(default=0, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def rate_for(self, session_type: str) -> Optional[Decimal]:
        value = (self.rates or {}).get(str(session_type))
        if value is None:
            return None
        return Decimal(str(value))

    @property
    def hourly_rate(self) -> Optional[Decimal]:
        """Cheapest offered per-minute rate expressed per hour"""
        offered = [self.rate_for(t) for t in (self.session_types or [])]
        offered = [r for r in offered if r is not None]
        if not offered:
            return None
        return min(offered) * 60


class ReaderApplication(BaseModel, table=True):
    """
    Request from a client to become a reader
    """

    __tablename__ = "reader_applications"

    application_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    user_id: int = Field(foreign_key="users.user_id", nullable=False)

    first_name: str = Field(max_length=50, nullable=False)
    last_name: str = Field(max_length=50, nullable=False)
    bio: str = Field(nullable=False)
    specialties: List[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    session_types: List[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    experience_years: int = Field(default=0, nullable=False)

    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    review_note: Optional[str] = Field(default=None)
    reviewed_by: Optional[int] = Field(default=None, foreign_key="users.user_id")
    reviewed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=False)),
    )
