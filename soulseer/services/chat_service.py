"""
Chat Service
Messages exchanged inside a reading session
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.notification import NotificationType
from soulseer.models.session import (ChatMessage, MessageType, ReadingSession,
                                     SessionStatus)
from soulseer.models.user import User, UserRole
from soulseer.repositories.session_repository import (ChatMessageRepository,
                                                      SessionRepository)
from soulseer.schemas.session import (ChatMessageCreateRequest,
                                      ChatMessageListResponse,
                                      ChatMessageResponse)
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80


class ChatService:

    def __init__(self):
        self.repo = ChatMessageRepository()
        self.session_repo = SessionRepository()
        self.notifications = NotificationService()

    async def _session_for(self, db: AsyncSession, user: User, session_id: int) -> ReadingSession:
        session = await self.session_repo.get_by_id(db, session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        if not session.involves(user.user_id) and user.role != UserRole.ADMIN:
            raise HTTPException(status_code=403, detail="Not a participant of this session")
        return session

    async def send_message(self, db: AsyncSession, user: User, data: ChatMessageCreateRequest) -> ChatMessageResponse:
        session = await self._session_for(db, user, data.session_id)
        if not session.involves(user.user_id):
            raise HTTPException(status_code=403, detail="Only participants can post messages")
        if session.status == SessionStatus.CANCELLED:
            raise HTTPException(status_code=409, detail="Session was cancelled")
        if data.message_type == MessageType.SYSTEM:
            raise HTTPException(status_code=400, detail="SYSTEM messages are reserved")

        message = await self.repo.create(db, ChatMessage(
            session_id=session.session_id,
            sender_id=user.user_id,
            content=data.content,
            message_type=data.message_type,
        ))

        preview = data.content if len(data.content) <= PREVIEW_LENGTH else data.content[:PREVIEW_LENGTH] + "..."
        await self.notifications.notify(
            db,
            session.other_party(user.user_id),
            NotificationType.NEW_MESSAGE,
            f"New message from {user.name}",
            preview,
            {"session_id": session.session_id, "message_id": message.message_id},
        )
        await commit_and_publish(db)

        logger.debug(f"Chat message {message.message_id} in session {session.session_id}")
        return ChatMessageResponse.model_validate(message)

    async def list_messages(
        self,
        db: AsyncSession,
        user: User,
        session_id: int,
        limit: int = 50,
        before_id: Optional[int] = None,
    ) -> ChatMessageListResponse:
        await self._session_for(db, user, session_id)
        # one extra row tells whether an older page exists
        rows = await self.repo.list_for_session(db, session_id, limit + 1, before_id)
        has_more = len(rows) > limit
        if has_more:
            rows = rows[1:]
        return ChatMessageListResponse(
            session_id=session_id,
            messages=[ChatMessageResponse.model_validate(m) for m in rows],
            has_more=has_more,
        )
