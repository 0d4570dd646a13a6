"""
DateTime Utility Module
UTC helpers shared by models, services and schemas

Datetimes are persisted as naive UTC. Anything coming from a request is
normalised with ``to_naive_utc`` before it touches the database, and anything
leaving through the API is re-tagged with ``ensure_utc``.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Current time with the UTC tzinfo attached

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, the storage format of every table"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ensure_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.
    A naive datetime is assumed to already be UTC.

    Example:
        >>> naive_dt = datetime(2025, 1, 1, 12, 0, 0)
        >>> utc_dt = ensure_utc(naive_dt)
        >>> utc_dt.tzinfo == timezone.utc
        True
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    elif dt.tzinfo != timezone.utc:
        logger.debug(f"Converting {dt.tzinfo} to UTC: {dt}")
        return dt.astimezone(timezone.utc)
    return dt


def to_naive_utc(dt: datetime) -> datetime:
    """Convert any datetime to naive UTC for storage"""
    return ensure_utc(dt).replace(tzinfo=None)


__all__ = [
    'utc_now',
    'utc_now_naive',
    'ensure_utc',
    'to_naive_utc',
]
