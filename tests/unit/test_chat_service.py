"""
Tests for chat sessions, questions and history.
"""

import json

import pytest

from spacehub.core.exceptions import (
    ForbiddenError,
    LimitExceededError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from spacehub.db.models import SpaceAPIKeyModel
from spacehub.services.chat_service import AI_MESSAGE, HUMAN_MESSAGE, ChatService


@pytest.fixture
def chat_service(db_session, rag_client) -> ChatService:
    return ChatService(db_session, rag_client)


@pytest.fixture
async def api_key(db_session, make_space, owner) -> SpaceAPIKeyModel:
    space_id = await make_space(owner.id, name="Public API", api_call_limit=2)
    key = SpaceAPIKeyModel(space_id=space_id, name="widget")
    db_session.add(key)
    await db_session.commit()
    return key


class TestSessions:
    @pytest.mark.asyncio
    async def test_begin_session_in_readable_space(self, chat_service, space_id, viewer):
        chat_session = await chat_service.begin_session(viewer.id, space_id)

        assert chat_session.user_id == viewer.id
        assert chat_session.space_id == space_id

    @pytest.mark.asyncio
    async def test_outsider_cannot_begin_in_private_space(self, chat_service, space_id, outsider):
        with pytest.raises(ForbiddenError):
            await chat_service.begin_session(outsider.id, space_id)

    @pytest.mark.asyncio
    async def test_list_and_count_own_sessions(self, chat_service, space_id, viewer, editor):
        for _ in range(3):
            await chat_service.begin_session(viewer.id, space_id)
        await chat_service.begin_session(editor.id, space_id)

        sessions, pagination = await chat_service.list_sessions(viewer.id, 1, 2)

        assert len(sessions) == 2
        assert pagination.total == 3
        assert await chat_service.count_sessions(viewer.id) == 3


class TestAsk:
    @pytest.mark.asyncio
    async def test_ask_records_query_and_history(self, chat_service, space_id, viewer, rag_server):
        chat_session = await chat_service.begin_session(viewer.id, space_id)

        answer = await chat_service.ask(chat_session.id, viewer.id, "  What is in here?  ")

        assert answer.answer == "This is the answer."
        assert answer.query.query == "What is in here?"
        sent = json.loads(rag_server.requests[0].content)
        assert sent == {"session_id": chat_session.id, "space_id": space_id, "input": "What is in here?"}

        history = await chat_service.get_history(chat_session.id, viewer.id)
        assert [entry.message for entry in history] == [
            {"type": HUMAN_MESSAGE, "content": "What is in here?"},
            {"type": AI_MESSAGE, "content": "This is the answer."},
        ]

    @pytest.mark.asyncio
    async def test_empty_query(self, chat_service, space_id, viewer, rag_server):
        chat_session = await chat_service.begin_session(viewer.id, space_id)

        with pytest.raises(ValidationError):
            await chat_service.ask(chat_session.id, viewer.id, "   ")

        assert rag_server.requests == []

    @pytest.mark.asyncio
    async def test_other_users_session(self, chat_service, space_id, viewer, editor):
        chat_session = await chat_service.begin_session(viewer.id, space_id)

        with pytest.raises(ForbiddenError):
            await chat_service.ask(chat_session.id, editor.id, "Hi")

    @pytest.mark.asyncio
    async def test_missing_session(self, chat_service, viewer):
        with pytest.raises(NotFoundError):
            await chat_service.ask(999, viewer.id, "Hi")

    @pytest.mark.asyncio
    async def test_daily_query_limit(self, chat_service, make_user, make_space, tier_id):
        user = await make_user("Limited", tier_id=tier_id)
        space_id = await make_space(user.id)
        chat_session = await chat_service.begin_session(user.id, space_id)
        for i in range(3):
            await chat_service.ask(chat_session.id, user.id, f"Question {i}")

        with pytest.raises(LimitExceededError):
            await chat_service.ask(chat_session.id, user.id, "One too many")

    @pytest.mark.asyncio
    async def test_rag_failure_skips_history(self, chat_service, space_id, viewer, rag_server):
        chat_session = await chat_service.begin_session(viewer.id, space_id)
        rag_server.fail = True

        with pytest.raises(UpstreamError):
            await chat_service.ask(chat_session.id, viewer.id, "Hi")

        assert await chat_service.get_history(chat_session.id, viewer.id) == []

    @pytest.mark.asyncio
    async def test_clear_history(self, chat_service, space_id, viewer):
        chat_session = await chat_service.begin_session(viewer.id, space_id)
        await chat_service.ask(chat_session.id, viewer.id, "Hi")

        await chat_service.clear_history(chat_session.id, viewer.id)

        assert await chat_service.get_history(chat_session.id, viewer.id) == []


class TestAskWithAPIKey:
    @pytest.mark.asyncio
    async def test_opens_then_reuses_session(self, chat_service, api_key):
        first = await chat_service.ask_with_api_key(api_key, None, "Hi")
        second = await chat_service.ask_with_api_key(api_key, first.session_id, "Again")

        assert second.session_id == first.session_id
        chat_session = await chat_service.get_by_id(first.session_id)
        assert chat_session.user_id is None
        assert chat_session.space_id == api_key.space_id

    @pytest.mark.asyncio
    async def test_user_session_cannot_be_reused(self, chat_service, api_key, owner):
        user_session = await chat_service.begin_session(owner.id, api_key.space_id)

        with pytest.raises(NotFoundError):
            await chat_service.ask_with_api_key(api_key, user_session.id, "Hi")

    @pytest.mark.asyncio
    async def test_space_api_call_limit(self, chat_service, api_key):
        await chat_service.ask_with_api_key(api_key, None, "One")
        await chat_service.ask_with_api_key(api_key, None, "Two")

        with pytest.raises(LimitExceededError):
            await chat_service.ask_with_api_key(api_key, None, "Three")
