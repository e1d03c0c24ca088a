"""
Chat service: sessions scoped to a space, queries forwarded to the RAG
server, and an append-only message history per session.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.core.exceptions import ForbiddenError, LimitExceededError, NotFoundError, ValidationError
from spacehub.core.pagination import Pagination
from spacehub.core.rag_client import RAGClient
from spacehub.db.models import (
    ChatHistoryModel,
    SpaceAPIKeyModel,
    UserQueryModel,
    UserQuerySessionModel,
)
from spacehub.db.repositories import (
    ChatHistoryRepository,
    UserQueryRepository,
    UserQuerySessionRepository,
)
from spacehub.services.crud_service import CrudService
from spacehub.services.permissions import SpacePermissions
from spacehub.services.space_service import SpaceService
from spacehub.services.user_service import UserService

logger = logging.getLogger(__name__)


HUMAN_MESSAGE = "human"
AI_MESSAGE = "ai"


@dataclass
class ChatAnswer:
    """Result of one question."""

    session_id: int
    query: UserQueryModel
    answer: str


class ChatService(CrudService[UserQuerySessionModel, int]):
    """Begin sessions, ask questions, read and clear history."""

    repository: UserQuerySessionRepository

    def __init__(self, session: AsyncSession, rag_client: RAGClient):
        super().__init__(UserQuerySessionRepository(session))
        self.rag_client = rag_client
        self.queries = UserQueryRepository(session)
        self.history = ChatHistoryRepository(session)
        self.permissions = SpacePermissions(session)
        self.users = UserService(session)
        self.spaces = SpaceService(session)

    async def begin_session(self, user_id: int, space_id: int) -> UserQuerySessionModel:
        """Open a session in a space the user can read."""
        await self.permissions.require_readable(space_id, user_id)
        chat_session = await self.repository.create(
            UserQuerySessionModel(user_id=user_id, space_id=space_id)
        )
        logger.info("User %d began chat session %d in space %d", user_id, chat_session.id, space_id)
        return chat_session

    async def get_own_session(self, session_id: int, user_id: int) -> UserQuerySessionModel:
        chat_session = await self.repository.find_by_id(session_id)
        if chat_session is None:
            raise NotFoundError(f"chat session {session_id} not found", "Chat session not found.")
        if chat_session.user_id != user_id:
            raise ForbiddenError(
                f"user {user_id} does not own chat session {session_id}",
                "You can only use your own chat sessions.",
            )
        return chat_session

    async def _ask(self, chat_session: UserQuerySessionModel, query: str) -> ChatAnswer:
        query = query.strip()
        if not query:
            raise ValidationError("empty query", "The question must not be empty.")

        recorded = await self.queries.create(
            UserQueryModel(query_session_id=chat_session.id, query=query)
        )
        answer = await self.rag_client.chat(chat_session.id, chat_session.space_id, query)

        await self.history.append(chat_session.id, {"type": HUMAN_MESSAGE, "content": query})
        await self.history.append(chat_session.id, {"type": AI_MESSAGE, "content": answer})
        return ChatAnswer(session_id=chat_session.id, query=recorded, answer=answer)

    async def ask(self, session_id: int, user_id: int, query: str) -> ChatAnswer:
        """
        Ask a question in one of the user's own sessions.

        Raises:
            LimitExceededError: The user's daily query limit is used up
        """
        chat_session = await self.get_own_session(session_id, user_id)
        await self.permissions.require_readable(chat_session.space_id, user_id)
        if await self.users.is_rate_limited(user_id):
            raise LimitExceededError(
                f"user {user_id} reached the daily query limit",
                "Rate limit exceeded. Please try again later.",
            )
        return await self._ask(chat_session, query)

    async def ask_with_api_key(
        self, key: SpaceAPIKeyModel, session_id: Optional[int], query: str
    ) -> ChatAnswer:
        """
        Ask on behalf of an API key client.

        Reuses ``session_id`` when it is a key-client session of the key's
        space, otherwise opens a new one.
        """
        if await self.spaces.is_api_rate_limited(key.space_id):
            raise LimitExceededError(
                f"space {key.space_id} reached its daily API call limit",
                "API call limit reached for this space.",
            )

        chat_session = None
        if session_id is not None:
            chat_session = await self.repository.find_by_id(session_id)
            if (
                chat_session is None
                or chat_session.space_id != key.space_id
                or chat_session.user_id is not None
            ):
                raise NotFoundError(
                    f"chat session {session_id} not found for space {key.space_id}",
                    "Chat session not found.",
                )
        if chat_session is None:
            chat_session = await self.repository.create(
                UserQuerySessionModel(user_id=None, space_id=key.space_id)
            )
        return await self._ask(chat_session, query)

    async def list_sessions(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[UserQuerySessionModel], Pagination]:
        return await self.repository.get_by_user_paginated(user_id, page, page_size)

    async def count_sessions(self, user_id: int) -> int:
        return await self.repository.count_by_user(user_id)

    async def get_history(self, session_id: int, user_id: int) -> list[ChatHistoryModel]:
        """Messages of one of the user's sessions, oldest first."""
        await self.get_own_session(session_id, user_id)
        return await self.history.get_by_session(session_id)

    async def clear_history(self, session_id: int, user_id: int) -> None:
        await self.get_own_session(session_id, user_id)
        await self.history.clear(session_id)
        logger.info("User %d cleared chat session %d", user_id, session_id)
