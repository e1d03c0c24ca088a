"""
API tests for chat endpoints and the API-key chat surface.
"""

import pytest
from fastapi import status


async def open_session(test_client, space_id: int, user) -> int:
    response = await test_client.post(
        "/api/chat/sessions", json={"spaceId": space_id}, headers=user.headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["id"]


class TestChatEndpoints:
    """Tests for /api/chat/sessions."""

    @pytest.mark.asyncio
    async def test_ask_and_read_history(self, test_client, space_id, viewer, rag_server):
        rag_server.answer = "Forty-two."
        session_id = await open_session(test_client, space_id, viewer)

        response = await test_client.post(
            f"/api/chat/sessions/{session_id}/messages",
            json={"query": "What is the answer?"},
            headers=viewer.headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["sessionId"] == session_id
        assert data["answer"] == "Forty-two."

        history = await test_client.get(
            f"/api/chat/sessions/{session_id}/messages", headers=viewer.headers
        )
        assert [entry["message"] for entry in history.json()] == [
            {"type": "human", "content": "What is the answer?"},
            {"type": "ai", "content": "Forty-two."},
        ]

    @pytest.mark.asyncio
    async def test_sessions_listing_and_count(self, test_client, space_id, viewer):
        for _ in range(3):
            await open_session(test_client, space_id, viewer)

        listed = await test_client.get(
            "/api/chat/sessions", params={"page_size": 2}, headers=viewer.headers
        )
        count = await test_client.get("/api/chat/sessions/count", headers=viewer.headers)

        assert len(listed.json()["data"]) == 2
        assert listed.json()["pagination"]["totalItems"] == 3
        assert count.json() == {"count": 3}

    @pytest.mark.asyncio
    async def test_outsider_cannot_open_session(self, test_client, space_id, outsider):
        response = await test_client.post(
            "/api/chat/sessions", json={"spaceId": space_id}, headers=outsider.headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_other_users_session(self, test_client, space_id, viewer, editor):
        session_id = await open_session(test_client, space_id, viewer)

        response = await test_client.get(
            f"/api/chat/sessions/{session_id}/messages", headers=editor.headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_daily_limit(self, test_client, make_user, make_space, tier_id):
        user = await make_user("Limited", tier_id=tier_id)
        space_id = await make_space(user.id)
        session_id = await open_session(test_client, space_id, user)
        url = f"/api/chat/sessions/{session_id}/messages"
        for i in range(3):
            ok = await test_client.post(url, json={"query": f"Question {i}"}, headers=user.headers)
            assert ok.status_code == status.HTTP_200_OK

        response = await test_client.post(url, json={"query": "One more"}, headers=user.headers)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    @pytest.mark.asyncio
    async def test_rag_failure(self, test_client, space_id, viewer, rag_server):
        session_id = await open_session(test_client, space_id, viewer)
        rag_server.fail = True

        response = await test_client.post(
            f"/api/chat/sessions/{session_id}/messages",
            json={"query": "Hello?"},
            headers=viewer.headers,
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["code"] == "E_UPSTREAM"

    @pytest.mark.asyncio
    async def test_clear_history(self, test_client, space_id, viewer):
        session_id = await open_session(test_client, space_id, viewer)
        url = f"/api/chat/sessions/{session_id}/messages"
        await test_client.post(url, json={"query": "Hi"}, headers=viewer.headers)

        cleared = await test_client.delete(url, headers=viewer.headers)

        assert cleared.status_code == status.HTTP_204_NO_CONTENT
        assert (await test_client.get(url, headers=viewer.headers)).json() == []


class TestPublicChatEndpoint:
    """Tests for POST /api/public/chat."""

    @pytest.fixture
    async def api_headers(self, test_client, make_space, owner) -> dict:
        space_id = await make_space(owner.id, name="Widget space", api_call_limit=2)
        created = await test_client.post(
            f"/api/spaces/{space_id}/api-keys", json={"name": "Widget"}, headers=owner.headers
        )
        return {"Authorization": f"Bearer {created.json()['token']}"}

    @pytest.mark.asyncio
    async def test_session_is_reused(self, test_client, api_headers):
        first = await test_client.post("/api/public/chat", json={"query": "Hi"}, headers=api_headers)
        session_id = first.json()["sessionId"]

        second = await test_client.post(
            "/api/public/chat",
            json={"query": "Again", "sessionId": session_id},
            headers=api_headers,
        )

        assert first.status_code == status.HTTP_200_OK
        assert second.json()["sessionId"] == session_id

    @pytest.mark.asyncio
    async def test_space_call_limit(self, test_client, api_headers):
        for query in ("One", "Two"):
            ok = await test_client.post("/api/public/chat", json={"query": query}, headers=api_headers)
            assert ok.status_code == status.HTTP_200_OK

        response = await test_client.post(
            "/api/public/chat", json={"query": "Three"}, headers=api_headers
        )

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    @pytest.mark.asyncio
    async def test_invalid_key(self, test_client):
        response = await test_client.post(
            "/api/public/chat",
            json={"query": "Hi"},
            headers={"Authorization": "Bearer not-a-key"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
