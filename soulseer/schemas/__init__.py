"""
API schemas

Request / response models for the HTTP API.
"""

from .common import ErrorResponse, MessageResponse, Pagination
from .reader import ReaderListResponse, ReaderResponse
from .session import SessionResponse
from .user_schema import UserListResponse, UserResponse

__all__ = [
    "ErrorResponse",
    "MessageResponse",
    "Pagination",
    "ReaderResponse",
    "ReaderListResponse",
    "SessionResponse",
    "UserResponse",
    "UserListResponse",
]
