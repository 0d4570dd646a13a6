"""
NotificationEventBus - in-process pub/sub for notification events
asyncio.Queue based; services publish, WebSocket connections subscribe per user
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from soulseer.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """Event pushed to a user's open sockets"""
    user_id: int
    event_type: str  # "notification" | "unread-count-updated"
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """JSON payload sent over the socket"""
        return {
            "type": self.event_type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class NotificationEventBus:
    """
    Notification event bus
    - NotificationService publishes after each commit
    - /ws/notifications subscribes one queue per socket, keyed by user id
    """

    def __init__(self, max_queue_size: int = 100):
        """
        Args:
            max_queue_size: bound of each subscriber queue
        """
        self._subscribers: Dict[int, List[asyncio.Queue]] = {}
        self._max_queue_size = max_queue_size
        self._event_count = 0

    async def publish(self, event: NotificationEvent) -> None:
        """
        Deliver an event to every queue subscribed for event.user_id

        Args:
            event: NotificationEvent to publish
        """
        self._event_count += 1

        queues = self._subscribers.get(event.user_id)
        if not queues:
            logger.debug(f"No subscribers for user {event.user_id}, dropping {event.event_type}")
            return

        for queue in queues:
            try:
                # full queue means a stalled socket; drop rather than block the publisher
                if queue.full():
                    logger.warning(
                        f"Queue full (size={queue.qsize()}), "
                        f"dropping {event.event_type} for user {event.user_id}"
                    )
                    continue

                queue.put_nowait(event)

            except asyncio.QueueFull:
                logger.warning(f"Queue full, dropping {event.event_type} for user {event.user_id}")
            except Exception as e:
                logger.error(f"Event publish failed: {e}", exc_info=True)

        logger.debug(
            f"Published {event.event_type} to {len(queues)} subscriber(s) of user {event.user_id}"
        )

    def subscribe(self, user_id: int) -> asyncio.Queue[NotificationEvent]:
        """
        Register a new subscriber queue for a user

        Returns:
            Queue that receives the user's events
        """
        queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.setdefault(user_id, []).append(queue)
        logger.info(f"Subscriber added for user {user_id} (total {self.get_subscriber_count()})")
        return queue

    def unsubscribe(self, user_id: int, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues or queue not in queues:
            return

        queues.remove(queue)
        if not queues:
            del self._subscribers[user_id]
        logger.info(f"Subscriber removed for user {user_id} (remaining {self.get_subscriber_count()})")

    def get_subscriber_count(self, user_id: Optional[int] = None) -> int:
        """Subscriber count for one user, or overall"""
        if user_id is not None:
            return len(self._subscribers.get(user_id, []))
        return sum(len(q) for q in self._subscribers.values())

    def get_event_count(self) -> int:
        return self._event_count


# singleton instance
_notification_event_bus: Optional[NotificationEventBus] = None


def get_notification_event_bus() -> NotificationEventBus:
    """Return the NotificationEventBus singleton"""
    global _notification_event_bus
    if _notification_event_bus is None:
        _notification_event_bus = NotificationEventBus()
    return _notification_event_bus
