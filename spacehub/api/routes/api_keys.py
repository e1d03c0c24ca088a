"""
Space API key endpoints.

Keys are managed by space owners; the returned token authenticates the
public chat API for that space until the key is deleted.
"""

from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from spacehub.api.deps import CurrentUserDep, SessionDep
from spacehub.models.schemas import APIKeyResponse
from spacehub.services.api_key_service import SpaceAPIKeyService

router = APIRouter()


class APIKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


@router.post(
    "/{space_id}/api-keys",
    response_model=APIKeyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_api_key(
    space_id: int, body: APIKeyCreateRequest, current_user: CurrentUserDep, session: SessionDep
):
    """Issue a new key. Owners only."""
    key, token = await SpaceAPIKeyService(session).create_key(
        space_id, current_user.id, body.name, body.description
    )
    return APIKeyResponse.from_model(key, token)


@router.get("/{space_id}/api-keys", response_model=list[APIKeyResponse])
async def list_api_keys(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    keys = await SpaceAPIKeyService(session).list_keys(space_id, current_user.id)
    return [APIKeyResponse.from_model(key, token) for key, token in keys]


@router.get("/{space_id}/api-keys/{key_id}", response_model=APIKeyResponse)
async def get_api_key(
    space_id: int, key_id: int, current_user: CurrentUserDep, session: SessionDep
):
    key, token = await SpaceAPIKeyService(session).get_key(space_id, key_id, current_user.id)
    return APIKeyResponse.from_model(key, token)


@router.delete("/{space_id}/api-keys/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_api_key(
    space_id: int, key_id: int, current_user: CurrentUserDep, session: SessionDep
):
    """Delete a key. Its token stops working immediately. Owners only."""
    await SpaceAPIKeyService(session).delete_key(space_id, key_id, current_user.id)
