"""
User endpoints: the current user's spaces, invitations and plan usage,
plus generic CRUD over user profiles.
"""

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.api.deps import CurrentUserDep, SessionDep
from spacehub.api.routes.crud import create_crud_router
from spacehub.core.exceptions import ForbiddenError
from spacehub.db.models import UserModel
from spacehub.models.schemas import (
    InvitationResponse,
    MemberSummary,
    SpaceResponse,
    TierResponse,
    UserResponse,
)
from spacehub.services.user_service import UserService

router = APIRouter()


class UserWriteRequest(BaseModel):
    """Full replacement of a profile."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str
    email: Optional[EmailStr] = None
    is_active: bool = True


class UserPatchRequest(BaseModel):
    """Partial profile update; omitted fields are left alone."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: Optional[str] = None
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None


class CountResponse(BaseModel):
    count: int


class TierUsageResponse(BaseModel):
    """Consumption against the current tier."""

    tier: Optional[TierResponse] = None
    spaceLimit: int
    queryLimit: int
    spaceCount: int
    ownedSpaceCount: int
    documentCount: int
    totalQueries: int
    queriesToday: int
    queriesThisMonth: int
    rateLimited: bool


@router.get("/me/spaces", response_model=list[SpaceResponse])
async def get_my_spaces(current_user: CurrentUserDep, session: SessionDep):
    """Spaces the current user belongs to, with the user's role in each."""
    spaces = await UserService(session).get_spaces(current_user.id)
    return [SpaceResponse.from_model(space, role=role) for space, role in spaces]


@router.get("/me/invitations", response_model=list[InvitationResponse])
async def get_my_invitations(current_user: CurrentUserDep, session: SessionDep):
    """Pending invitations addressed to the current user."""
    invitations = await UserService(session).get_invitations(current_user.id)
    return [InvitationResponse.from_model(invitation) for invitation in invitations]


@router.get("/me/invitations/count", response_model=CountResponse)
async def count_my_invitations(current_user: CurrentUserDep, session: SessionDep):
    count = await UserService(session).count_pending_invitations(current_user.id)
    return CountResponse(count=count)


@router.get("/me/usage", response_model=TierUsageResponse)
async def get_my_usage(current_user: CurrentUserDep, session: SessionDep):
    """Tier limits and how much of them the current user has used."""
    users = UserService(session)
    usage = await users.get_tier_usage(current_user.id)
    return TierUsageResponse(
        tier=TierResponse.from_model(usage.tier) if usage.tier else None,
        spaceLimit=usage.space_limit,
        queryLimit=usage.query_limit,
        spaceCount=usage.space_count,
        ownedSpaceCount=usage.owned_space_count,
        documentCount=usage.document_count,
        totalQueries=usage.total_queries,
        queriesToday=usage.queries_today,
        queriesThisMonth=usage.queries_this_month,
        rateLimited=usage.queries_today >= usage.query_limit,
    )


@router.get("/search", response_model=list[MemberSummary])
async def search_users(
    current_user: CurrentUserDep,
    session: SessionDep,
    q: str = Query(..., min_length=1, description="Username or email fragment"),
    limit: int = Query(20, ge=1, le=100),
):
    """Find users to invite."""
    users = await UserService(session).search(q, limit)
    return [MemberSummary.from_model(user) for user in users]


async def only_self_writes(
    action: str, user: UserModel, item_id: Optional[int], session: AsyncSession
) -> None:
    if action in ("update", "patch", "delete") and item_id != user.id:
        raise ForbiddenError(
            f"user {user.id} cannot {action} user {item_id}",
            "You can only change your own account.",
        )


def user_from_request(body: UserWriteRequest) -> UserModel:
    return UserModel(username=body.username, email=body.email, is_active=body.is_active)


crud_router = create_crud_router(
    service_factory=UserService,
    serialize=UserResponse.from_model,
    response_model=UserResponse,
    write_schema=UserWriteRequest,
    patch_schema=UserPatchRequest,
    to_model=user_from_request,
    guard=only_self_writes,
    operations={"list", "get", "update", "patch", "delete"},
)
