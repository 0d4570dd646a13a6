"""
Service layer

Business rules sit here, between the routers and the repositories.
"""

from .auth_service import AuthService
from .availability_service import AvailabilityService
from .chat_service import ChatService
from .gift_service import GiftService
from .marketplace_service import MarketplaceService
from .notification_service import NotificationService
from .reader_service import ReaderService
from .review_service import ReviewService
from .session_service import SessionService
from .support_service import SupportService
from .user_service import UserService

__all__ = [
    "AuthService",
    "AvailabilityService",
    "ChatService",
    "GiftService",
    "MarketplaceService",
    "NotificationService",
    "ReaderService",
    "ReviewService",
    "SessionService",
    "SupportService",
    "UserService",
]
