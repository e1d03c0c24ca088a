"""
Space endpoints: creation, discovery, membership and invitation links.
"""

from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.api.deps import (
    BlobStoreDep,
    CurrentUserDep,
    OptionalUserDep,
    PageDep,
    RAGClientDep,
    SessionDep,
)
from spacehub.api.routes.crud import create_crud_router
from spacehub.core.roles import SpaceRole
from spacehub.db.models import SpaceModel, UserModel
from spacehub.models.schemas import (
    InvitationResponse,
    MemberResponse,
    PaginationInfo,
    RoleResponse,
    SpaceResponse,
)
from spacehub.services.permissions import SpacePermissions
from spacehub.services.space_service import SpaceService

router = APIRouter()


# Request/Response Models
class SpaceWriteRequest(BaseModel):
    """Space fields a client may set."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_public: bool = False


class SpacePatchRequest(BaseModel):
    """Partial space update; omitted fields are left alone."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_public: Optional[bool] = None


class RoleRequest(BaseModel):
    roleId: int


class JoinWithTokenRequest(BaseModel):
    token: str


class JoinedSpaceResponse(BaseModel):
    spaceId: int


class MyRoleResponse(BaseModel):
    roleId: int
    role: str


class InvitationLinkResponse(BaseModel):
    """Standing join link of a space."""

    spaceId: int
    roleId: int
    token: str
    url: str


class SpaceUsageResponse(BaseModel):
    spaceId: int
    apiCallsToday: int
    apiCallLimit: int
    rateLimited: bool


def space_from_request(body: SpaceWriteRequest) -> SpaceModel:
    return SpaceModel(name=body.name, description=body.description, is_public=body.is_public)


# ============ Discovery ============

@router.get("/public")
async def list_public_spaces(page: PageDep, session: SessionDep):
    """Public spaces, paginated, each with its member count."""
    rows, pagination = await SpaceService(session).get_public_spaces(page.page, page.page_size)
    return {
        "data": [SpaceResponse.from_model(space, member_count=count) for space, count in rows],
        "pagination": PaginationInfo.from_pagination(pagination),
    }


@router.get("/popular", response_model=list[SpaceResponse])
async def list_popular_spaces(session: SessionDep, limit: int = Query(10, ge=1, le=100)):
    """Public spaces with the most members first."""
    rows = await SpaceService(session).get_popular_spaces(limit)
    return [SpaceResponse.from_model(space, member_count=count) for space, count in rows]


@router.get("/roles", response_model=list[RoleResponse])
async def list_roles(session: SessionDep):
    """The fixed role catalog."""
    roles = await SpaceService(session).get_roles()
    return [RoleResponse.from_model(role) for role in roles]


# ============ Creation and joining ============

@router.post("", response_model=SpaceResponse, status_code=status.HTTP_201_CREATED)
async def create_space(body: SpaceWriteRequest, current_user: CurrentUserDep, session: SessionDep):
    """
    Create a space owned by the current user.

    Refused once the user owns as many spaces as the tier allows.
    """
    space = await SpaceService(session).create_space(space_from_request(body), current_user.id)
    return SpaceResponse.from_model(space, member_count=1, role=SpaceRole.OWNER)


@router.post("/join-with-token", response_model=JoinedSpaceResponse)
async def join_with_token(
    body: JoinWithTokenRequest, current_user: CurrentUserDep, session: SessionDep
):
    """Join through an invitation link at the link's role."""
    space_id = await SpaceService(session).join_with_token(body.token, current_user.id)
    return JoinedSpaceResponse(spaceId=space_id)


@router.post(
    "/{space_id}/join",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_public_space(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    """Join a public space as a viewer."""
    membership = await SpaceService(session).join_public_space(space_id, current_user.id)
    return MemberResponse.from_model(membership)


# ============ Space details ============

@router.get("/{space_id}", response_model=SpaceResponse)
async def get_space(space_id: int, current_user: OptionalUserDep, session: SessionDep):
    """Public spaces are readable by anyone; private ones by members only."""
    spaces = SpaceService(session)
    user_id = current_user.id if current_user else None
    space = await spaces.get_space(space_id, user_id)

    role = None
    if user_id is not None:
        role = await SpacePermissions(session).get_role(space_id, user_id)
    return SpaceResponse.from_model(
        space,
        member_count=await spaces.count_members(space_id),
        role=role,
    )


@router.get("/{space_id}/members", response_model=list[MemberResponse])
async def list_members(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    members = await SpaceService(session).get_members(space_id, current_user.id)
    return [MemberResponse.from_model(member) for member in members]


@router.get("/{space_id}/invitations", response_model=list[InvitationResponse])
async def list_space_invitations(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    """Pending invitations of the space. Members only."""
    invitations = await SpaceService(session).get_invitations(space_id, current_user.id)
    return [InvitationResponse.from_model(invitation) for invitation in invitations]


@router.get("/{space_id}/role", response_model=MyRoleResponse)
async def get_my_role(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    role = await SpaceService(session).get_user_role(space_id, current_user.id)
    return MyRoleResponse(roleId=int(role), role=role.label)


@router.get("/{space_id}/usage", response_model=SpaceUsageResponse)
async def get_space_usage(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    """Today's API-key chat calls against the space's daily limit."""
    await SpacePermissions(session).require_member(space_id, current_user.id)
    usage = await SpaceService(session).get_space_usage(space_id)
    return SpaceUsageResponse(
        spaceId=usage.space_id,
        apiCallsToday=usage.api_calls_today,
        apiCallLimit=usage.api_call_limit,
        rateLimited=usage.api_calls_today >= usage.api_call_limit,
    )


# ============ Invitation link ============

@router.post("/{space_id}/invitation-link", response_model=InvitationLinkResponse)
async def get_invitation_link(
    space_id: int, body: RoleRequest, current_user: CurrentUserDep, session: SessionDep
):
    """
    Get the space's join link for ``roleId``.

    Editors and owners only; re-scoping the role invalidates older links.
    """
    spaces = SpaceService(session)
    link, token = await spaces.get_or_create_invitation_link(
        space_id, current_user.id, body.roleId
    )
    return InvitationLinkResponse(
        spaceId=link.space_id,
        roleId=link.space_role_id,
        token=token,
        url=spaces.invitation_link_url(token),
    )


# ============ Membership changes ============

@router.put("/{space_id}/members/{member_id}", response_model=MemberResponse)
async def update_member_role(
    space_id: int,
    member_id: int,
    body: RoleRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
):
    """Change a member's role. Owners only."""
    membership = await SpaceService(session).update_member_role(
        space_id, member_id, body.roleId, current_user.id
    )
    return MemberResponse.from_model(membership)


@router.delete("/{space_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    space_id: int, member_id: int, current_user: CurrentUserDep, session: SessionDep
):
    """Remove a member, or withdraw the invitation of someone not yet joined."""
    await SpaceService(session).remove_member(space_id, member_id, current_user.id)


@router.post("/{space_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_space(space_id: int, current_user: CurrentUserDep, session: SessionDep):
    await SpaceService(session).leave_space(space_id, current_user.id)


@router.delete("/{space_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_space(
    space_id: int,
    current_user: CurrentUserDep,
    session: SessionDep,
    rag_client: RAGClientDep,
    blob_store: BlobStoreDep,
):
    """Delete the space with its documents, members and keys. Owners only."""
    spaces = SpaceService(session, rag_client=rag_client, blob_store=blob_store)
    await spaces.delete_space(space_id, current_user.id)


async def owner_writes(
    action: str, user: UserModel, item_id: Optional[int], session: AsyncSession
) -> None:
    if action in ("update", "patch"):
        await SpacePermissions(session).require_role(item_id, user.id, SpaceRole.OWNER)


router.include_router(
    create_crud_router(
        service_factory=SpaceService,
        serialize=SpaceResponse.from_model,
        response_model=SpaceResponse,
        write_schema=SpaceWriteRequest,
        patch_schema=SpacePatchRequest,
        to_model=space_from_request,
        guard=owner_writes,
        operations={"update", "patch"},
    )
)
