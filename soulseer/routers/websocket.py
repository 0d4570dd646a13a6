"""
FastAPI WebSocket Endpoint
Pushes a user's notification events to every socket they have open
"""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from soulseer.core.events import NotificationEvent, get_notification_event_bus
from soulseer.database import get_async_session_context
from soulseer.services.notification_service import NotificationService
from soulseer.utils.dependencies import resolve_user_from_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Bus queue -> socket until the socket breaks or the task is cancelled"""
    while True:
        event: NotificationEvent = await queue.get()
        await websocket.send_json(event.to_dict())


@router.websocket("/notifications")
async def notifications_websocket(websocket: WebSocket, token: str = Query(...)):
    """
    Real-time notification WebSocket

    Protocol:
        - Client -> Server: any text (keep-alive)
        - Server -> Client: {"type": "ping"} after 60s of client silence
        - Server -> Client:
          {"type": "notification", "data": {...}, "timestamp": "..."}
          {"type": "unread-count-updated", "data": {"unread_count": 3}, "timestamp": "..."}

    Closes with 4401 for a bad token, 4403 for a suspended account.
    """
    await websocket.accept()

    try:
        async with get_async_session_context() as db:
            user = await resolve_user_from_token(db, token)
            unread = await NotificationService().unread_count(db, user.user_id)
    except HTTPException as e:
        code = 4403 if e.status_code == status.HTTP_403_FORBIDDEN else 4401
        logger.info(f"WebSocket rejected ({e.status_code}): {e.detail}")
        await websocket.close(code=code, reason=str(e.detail))
        return

    user_id = user.user_id
    event_bus = get_notification_event_bus()
    queue = event_bus.subscribe(user_id)
    logger.info(f"WebSocket connected: user {user_id}")

    forwarder = asyncio.create_task(_forward_events(websocket, queue))
    try:
        await websocket.send_json(
            NotificationEvent(user_id, "unread-count-updated", {"unread_count": unread}).to_dict()
        )

        while not forwarder.done():
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=60.0)
                logger.debug(f"Client message from user {user_id}: {data}")

            except asyncio.TimeoutError:
                try:
                    await websocket.send_json({"type": "ping"})
                except Exception:
                    break

    except WebSocketDisconnect:
        logger.info(f"Client closed connection: user {user_id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        forwarder.cancel()
        await asyncio.gather(forwarder, return_exceptions=True)
        event_bus.unsubscribe(user_id, queue)
        logger.info(f"WebSocket disconnected: user {user_id}")
