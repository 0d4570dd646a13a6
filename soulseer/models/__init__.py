"""
Data models

SQLModel tables. Importing this package registers every table on
SQLModel.metadata.
"""
from soulseer.models.user import (ApplicationStatus, ReaderApplication,
                                  ReaderProfile, ReaderStatus, SessionType,
                                  User, UserRole, UserStatus)
from soulseer.models.availability import AvailabilitySlot, RecurrenceType
from soulseer.models.session import (ACTIVE_SESSION_STATUSES, ChatMessage,
                                     MessageType, ReadingSession,
                                     SessionStatus)
from soulseer.models.transaction import (Payout, PayoutStatus, Transaction,
                                         TransactionStatus, TransactionType)
from soulseer.models.product import (Cart, CartItem, Coupon, DiscountType,
                                     Product, ProductStatus, ProductType,
                                     Purchase, PurchaseStatus)
from soulseer.models.review import Review, ReviewStatus
from soulseer.models.notification import Notification, NotificationType
from soulseer.models.gift import VirtualGift
from soulseer.models.support import (SupportTicket, TicketMessage,
                                     TicketPriority, TicketStatus)

__all__ = [
    "User", "UserRole", "UserStatus",
    "ReaderProfile", "ReaderStatus", "SessionType",
    "ReaderApplication", "ApplicationStatus",
    "AvailabilitySlot", "RecurrenceType",
    "ReadingSession", "SessionStatus", "ACTIVE_SESSION_STATUSES",
    "ChatMessage", "MessageType",
    "Transaction", "TransactionType", "TransactionStatus",
    "Payout", "PayoutStatus",
    "Product", "ProductType", "ProductStatus",
    "Cart", "CartItem", "Coupon", "DiscountType",
    "Purchase", "PurchaseStatus",
    "Review", "ReviewStatus",
    "Notification", "NotificationType",
    "VirtualGift",
    "SupportTicket", "TicketMessage", "TicketStatus", "TicketPriority",
]
