"""
Chat endpoints: sessions scoped to a space and questions answered by the
RAG server.
"""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from spacehub.api.deps import CurrentUserDep, PageDep, RAGClientDep, SessionDep
from spacehub.models.schemas import (
    ChatAnswerResponse,
    ChatMessageResponse,
    ChatSessionResponse,
    PaginationInfo,
)
from spacehub.services.chat_service import ChatService

router = APIRouter()


# Request Models
class SessionCreateRequest(BaseModel):
    spaceId: int


class QueryRequest(BaseModel):
    """A question for the space's documents."""

    query: str = Field(..., min_length=1, max_length=10000)


class CountResponse(BaseModel):
    count: int


@router.post(
    "/sessions",
    response_model=ChatSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    body: SessionCreateRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    rag_client: RAGClientDep,
):
    """Open a chat session in a space the user can read."""
    chat_session = await ChatService(session, rag_client).begin_session(current_user.id, body.spaceId)
    return ChatSessionResponse.from_model(chat_session)


@router.get("/sessions")
async def list_sessions(
    page: PageDep,
    current_user: CurrentUserDep,
    session: SessionDep,
    rag_client: RAGClientDep,
):
    """The current user's chat sessions, paginated."""
    sessions, pagination = await ChatService(session, rag_client).list_sessions(
        current_user.id, page.page, page.page_size
    )
    return {
        "data": [ChatSessionResponse.from_model(chat_session) for chat_session in sessions],
        "pagination": PaginationInfo.from_pagination(pagination),
    }


@router.get("/sessions/count", response_model=CountResponse)
async def count_sessions(current_user: CurrentUserDep, session: SessionDep, rag_client: RAGClientDep):
    return CountResponse(count=await ChatService(session, rag_client).count_sessions(current_user.id))


@router.post("/sessions/{session_id}/messages", response_model=ChatAnswerResponse)
async def ask(
    session_id: int,
    body: QueryRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    rag_client: RAGClientDep,
):
    """
    Ask a question in one of your sessions.

    Refused once the daily query limit of the user's tier is reached.
    """
    answer = await ChatService(session, rag_client).ask(session_id, current_user.id, body.query)
    return ChatAnswerResponse(
        sessionId=answer.session_id,
        queryId=answer.query.id,
        answer=answer.answer,
    )


@router.get("/sessions/{session_id}/messages", response_model=list[ChatMessageResponse])
async def get_history(
    session_id: int,
    current_user: CurrentUserDep,
    session: SessionDep,
    rag_client: RAGClientDep,
):
    """Messages of the session, oldest first."""
    history = await ChatService(session, rag_client).get_history(session_id, current_user.id)
    return [ChatMessageResponse.from_model(entry) for entry in history]


@router.delete("/sessions/{session_id}/messages", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    session_id: int,
    current_user: CurrentUserDep,
    session: SessionDep,
    rag_client: RAGClientDep,
):
    await ChatService(session, rag_client).clear_history(session_id, current_user.id)
