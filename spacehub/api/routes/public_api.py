"""
Public chat API authenticated by a space API key instead of a user token.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from spacehub.api.deps import RAGClientDep, SessionDep, SpaceAPIKeyDep
from spacehub.models.schemas import ChatAnswerResponse, SpaceResponse
from spacehub.services.chat_service import ChatService
from spacehub.services.space_service import SpaceService

router = APIRouter()


class PublicQueryRequest(BaseModel):
    """Question from an API client; omit ``sessionId`` to start a new session."""

    query: str = Field(..., min_length=1, max_length=10000)
    sessionId: Optional[int] = None


@router.get("/space", response_model=SpaceResponse)
async def get_key_space(api_key: SpaceAPIKeyDep, session: SessionDep):
    """The space this key belongs to."""
    spaces = SpaceService(session)
    space = await spaces.get_by_id(api_key.space_id)
    return SpaceResponse.from_model(space, member_count=await spaces.count_members(space.id))


@router.post("/chat", response_model=ChatAnswerResponse)
async def public_chat(
    body: PublicQueryRequest,
    api_key: SpaceAPIKeyDep,
    session: SessionDep,
    rag_client: RAGClientDep,
):
    """
    Ask a question in the key's space.

    Refused once the space's daily API call limit is reached.
    """
    answer = await ChatService(session, rag_client).ask_with_api_key(
        api_key, body.sessionId, body.query
    )
    return ChatAnswerResponse(
        sessionId=answer.session_id,
        queryId=answer.query.id,
        answer=answer.answer,
    )
