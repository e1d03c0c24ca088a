"""
API route dependencies.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.core.auth import decode_token
from spacehub.core.blob_store import BlobStore
from spacehub.core.exceptions import UnauthorizedError
from spacehub.core.kv_store import KVStore
from spacehub.core.oauth import OAuthProvider
from spacehub.core.rag_client import RAGClient
from spacehub.db.database import get_db_session
from spacehub.db.models import SpaceAPIKeyModel, UserModel
from spacehub.services.api_key_service import SpaceAPIKeyService
from spacehub.services.auth_service import AuthService


# HTTP Bearer scheme for JWT
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """
    Dependency to get current authenticated user.

    Requires valid JWT access token.
    """
    token_data = decode_token(credentials.credentials)

    if not token_data:
        raise _unauthorized("Invalid or expired token")

    if token_data.token_type != "access":
        raise _unauthorized("Invalid token type")

    auth_service = AuthService(session)
    user = await auth_service.get_user_by_id(token_data.user_id)

    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise _unauthorized("User account is deactivated")

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    session: AsyncSession = Depends(get_db_session),
) -> Optional[UserModel]:
    """
    Optional authentication dependency.

    Returns user if authenticated, None otherwise.
    """
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if not token_data or token_data.token_type != "access":
        return None

    user = await AuthService(session).get_user_by_id(token_data.user_id)
    if not user or not user.is_active:
        return None
    return user


async def get_space_api_key(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_db_session),
) -> SpaceAPIKeyModel:
    """Resolve the space API key presented as a bearer token."""
    try:
        return await SpaceAPIKeyService(session).verify(credentials.credentials)
    except UnauthorizedError as e:
        raise _unauthorized(e.user_message) from e


# Collaborators built once in create_app()
def get_kv_store(request: Request) -> KVStore:
    return request.app.state.kv_store


def get_rag_client(request: Request) -> RAGClient:
    return request.app.state.rag_client


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_oauth_providers(request: Request) -> dict[str, OAuthProvider]:
    return request.app.state.oauth_providers


class PageParams:
    """``page`` / ``page_size`` query parameters; non-positive means default."""

    def __init__(
        self,
        page: int = Query(1, description="1-indexed page number"),
        page_size: int = Query(0, description="Items per page (default when <= 0)"),
    ):
        self.page = page
        self.page_size = page_size


# Dependency annotations
SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]
OptionalUserDep = Annotated[Optional[UserModel], Depends(get_optional_user)]
SpaceAPIKeyDep = Annotated[SpaceAPIKeyModel, Depends(get_space_api_key)]
KVStoreDep = Annotated[KVStore, Depends(get_kv_store)]
RAGClientDep = Annotated[RAGClient, Depends(get_rag_client)]
BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]
OAuthProvidersDep = Annotated[dict[str, OAuthProvider], Depends(get_oauth_providers)]
PageDep = Annotated[PageParams, Depends()]
