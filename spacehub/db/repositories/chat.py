"""
Repositories for chat sessions, recorded queries and chat history.
"""

from typing import Any

from sqlalchemy import delete, func, select

from spacehub.core.pagination import Pagination
from spacehub.db.models import (
    ChatHistoryModel,
    UserQueryModel,
    UserQuerySessionModel,
)
from spacehub.db.repositories.crud import CrudRepository


class UserQuerySessionRepository(CrudRepository[UserQuerySessionModel, int]):
    model = UserQuerySessionModel

    async def get_by_user_paginated(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[UserQuerySessionModel], Pagination]:
        return await self.get_by_field_paginated("user_id", user_id, page, page_size)

    async def count_by_user(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(UserQuerySessionModel)
            .where(UserQuerySessionModel.user_id == user_id)
        )
        return result.scalar_one()


class UserQueryRepository(CrudRepository[UserQueryModel, int]):
    model = UserQueryModel

    async def get_by_session(self, session_id: int) -> list[UserQueryModel]:
        return await self.get_by_field("query_session_id", session_id)


class ChatHistoryRepository(CrudRepository[ChatHistoryModel, int]):
    model = ChatHistoryModel

    async def append(self, session_id: int, message: dict[str, Any]) -> ChatHistoryModel:
        return await self.create(ChatHistoryModel(session_id=session_id, message=message))

    async def get_by_session(self, session_id: int) -> list[ChatHistoryModel]:
        """Messages in insertion order."""
        result = await self.session.execute(
            select(ChatHistoryModel)
            .where(ChatHistoryModel.session_id == session_id)
            .order_by(ChatHistoryModel.id)
        )
        return list(result.scalars().all())

    async def clear(self, session_id: int) -> None:
        await self.session.execute(
            delete(ChatHistoryModel).where(ChatHistoryModel.session_id == session_id)
        )
        await self.session.flush()
