"""
Space invitation endpoints.
"""

from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, EmailStr, model_validator

from spacehub.api.deps import CurrentUserDep, SessionDep
from spacehub.models.schemas import InvitationResponse, MemberResponse
from spacehub.services.invitation_service import InvitationService

router = APIRouter()


class InvitationCreateRequest(BaseModel):
    """Invite a user, named by id or by email."""

    spaceId: int
    roleId: int
    invitedUserId: Optional[int] = None
    invitedEmail: Optional[EmailStr] = None

    @model_validator(mode="after")
    def require_invitee(self) -> "InvitationCreateRequest":
        if self.invitedUserId is None and self.invitedEmail is None:
            raise ValueError("invitedUserId or invitedEmail is required")
        return self


class CountResponse(BaseModel):
    count: int


@router.post("", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    body: InvitationCreateRequest, current_user: CurrentUserDep, session: SessionDep
):
    """
    Invite a user into a space.

    Editors and owners only, and never at a role above the inviter's own.
    """
    invitation = await InvitationService(session).create_invitation(
        space_id=body.spaceId,
        inviter_id=current_user.id,
        role_id=body.roleId,
        invited_user_id=body.invitedUserId,
        invited_email=body.invitedEmail,
    )
    return InvitationResponse.from_model(invitation)


@router.get("", response_model=list[InvitationResponse])
async def list_my_invitations(current_user: CurrentUserDep, session: SessionDep):
    invitations = await InvitationService(session).get_for_user(current_user.id)
    return [InvitationResponse.from_model(invitation) for invitation in invitations]


@router.get("/count", response_model=CountResponse)
async def count_my_invitations(current_user: CurrentUserDep, session: SessionDep):
    return CountResponse(count=await InvitationService(session).count_for_user(current_user.id))


@router.post("/{invitation_id}/accept", response_model=MemberResponse)
async def accept_invitation(invitation_id: int, current_user: CurrentUserDep, session: SessionDep):
    """Accept an invitation: the membership is created and the invitation removed."""
    membership = await InvitationService(session).accept(invitation_id, current_user.id)
    return MemberResponse.from_model(membership)


@router.post("/{invitation_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_invitation(invitation_id: int, current_user: CurrentUserDep, session: SessionDep):
    await InvitationService(session).reject(invitation_id, current_user.id)


@router.delete(
    "/spaces/{space_id}/users/{invited_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def cancel_invitation(
    space_id: int, invited_user_id: int, current_user: CurrentUserDep, session: SessionDep
):
    """Withdraw an invitation. Editors and owners of the space only."""
    await InvitationService(session).cancel(space_id, invited_user_id, current_user.id)
