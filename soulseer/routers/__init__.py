"""
Router module

HTTP and WebSocket endpoints.
Each router validates the request and hands it to a service.
"""

from . import websocket
from .admin import analytics_router as admin_analytics_router
from .admin import finance_router as admin_finance_router
from .admin import payouts_router
from .admin import readers_router as admin_readers_router
from .auth import router as auth_router
from .availability import router as availability_router
from .gifts import router as gift_router
from .gifts import wallet_router
from .marketplace import cart_router
from .marketplace import content_router as admin_content_router
from .marketplace import products_router, purchases_router
from .notifications import router as notification_router
from .readers import router as reader_router
from .reviews import admin_router as admin_review_router
from .reviews import router as review_router
from .sessions import admin_router as admin_session_router
from .sessions import chat_router
from .sessions import router as session_router
from .support import admin_router as admin_support_router
from .support import router as support_router
from .user import admin_router as admin_user_router
from .user import router as user_router

__all__ = [
    "auth_router",
    "user_router",
    "reader_router",
    "availability_router",
    "session_router",
    "chat_router",
    "notification_router",
    "products_router",
    "cart_router",
    "purchases_router",
    "review_router",
    "gift_router",
    "wallet_router",
    "support_router",
    "payouts_router",
    "admin_user_router",
    "admin_readers_router",
    "admin_session_router",
    "admin_review_router",
    "admin_analytics_router",
    "admin_finance_router",
    "admin_support_router",
    "admin_content_router",
    "websocket",
]
