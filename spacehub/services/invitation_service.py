"""
Space invitation lifecycle.

An invitation is pending while it exists. Accept turns it into a
membership and deletes it; reject and cancel delete it.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from spacehub.core.roles import SpaceRole, role_satisfies
from spacehub.db.models import SpaceInvitationModel, SpaceUserModel
from spacehub.db.models.invitation import INVITATION_PENDING
from spacehub.db.repositories import SpaceInvitationRepository, UserRepository
from spacehub.services.crud_service import CrudService
from spacehub.services.permissions import SpacePermissions

logger = logging.getLogger(__name__)


class InvitationService(CrudService[SpaceInvitationModel, int]):
    """Create, list, accept, reject and cancel invitations."""

    repository: SpaceInvitationRepository

    def __init__(self, session: AsyncSession):
        super().__init__(SpaceInvitationRepository(session))
        self.users = UserRepository(session)
        self.permissions = SpacePermissions(session)

    async def create_invitation(
        self,
        space_id: int,
        inviter_id: int,
        role_id: int,
        invited_user_id: Optional[int] = None,
        invited_email: Optional[str] = None,
    ) -> SpaceInvitationModel:
        """
        Invite a user (by id or email) into a space at ``role_id``.

        Raises:
            ForbiddenError: Inviter is below editor or grants a higher role
            NotFoundError: Invitee does not exist
            ConflictError: Invitee is already a member or already invited
        """
        inviter_role = await self.permissions.require_role(space_id, inviter_id, SpaceRole.EDITOR)

        role = SpaceRole.from_id(role_id)
        if role is None:
            raise ValidationError(f"unknown space role {role_id}", "Unknown space role.")
        if not role_satisfies(inviter_role, role):
            raise ForbiddenError(
                f"{inviter_role.label} cannot invite as {role.label}",
                "You cannot grant a role above your own.",
            )

        invitee = None
        if invited_user_id is not None:
            invitee = await self.users.find_by_id(invited_user_id)
        elif invited_email:
            invitee = await self.users.find_by_email(invited_email)
        else:
            raise ValidationError("no invitee given", "An invited user id or email is required.")
        if invitee is None:
            raise NotFoundError("invited user not found", "Invited user not found.")

        if await self.permissions.is_member(space_id, invitee.id):
            raise ConflictError(
                f"user {invitee.id} is already a member of space {space_id}",
                "This user is already a member of the space.",
            )
        if await self.repository.find_pending(space_id, invitee.id) is not None:
            raise ConflictError(
                f"user {invitee.id} already invited to space {space_id}",
                "This user already has a pending invitation.",
            )

        invitation = await self.repository.create(
            SpaceInvitationModel(
                space_id=space_id,
                space_role_id=int(role),
                invited_user_id=invitee.id,
                inviter_id=inviter_id,
                status=INVITATION_PENDING,
            )
        )
        logger.info(
            "User %d invited user %d to space %d as %s",
            inviter_id,
            invitee.id,
            space_id,
            role.label,
        )
        return invitation

    async def get_for_user(self, user_id: int) -> list[SpaceInvitationModel]:
        return await self.repository.get_by_invited_user(user_id)

    async def count_for_user(self, user_id: int) -> int:
        """Pending invitations addressed to the user."""
        return await self.repository.count_pending_for_user(user_id)

    async def accept(self, invitation_id: int, user_id: int) -> SpaceUserModel:
        return await self.repository.accept(invitation_id, user_id)

    async def reject(self, invitation_id: int, user_id: int) -> None:
        await self.repository.reject(invitation_id, user_id)
        logger.info("User %d rejected invitation %d", user_id, invitation_id)

    async def cancel(self, space_id: int, invited_user_id: int, acting_user_id: int) -> None:
        """Withdraw any invitation of ``invited_user_id`` to the space."""
        await self.permissions.require_role(space_id, acting_user_id, SpaceRole.EDITOR)
        removed = await self.repository.cancel(space_id, invited_user_id)
        if removed == 0:
            raise NotFoundError(
                f"no invitation for user {invited_user_id} in space {space_id}",
                "Invitation not found.",
            )
        logger.info(
            "User %d cancelled invitation of user %d to space %d",
            acting_user_id,
            invited_user_id,
            space_id,
        )
