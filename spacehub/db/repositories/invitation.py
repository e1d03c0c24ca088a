"""
Repositories for space invitations and invitation links.
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from spacehub.core.exceptions import ConflictError, NotFoundError
from spacehub.db.database import transaction
from spacehub.db.models import (
    SpaceInvitationLinkModel,
    SpaceInvitationModel,
    SpaceUserModel,
)
from spacehub.db.models.invitation import INVITATION_PENDING
from spacehub.db.repositories.crud import CrudRepository

logger = logging.getLogger(__name__)


class SpaceInvitationRepository(CrudRepository[SpaceInvitationModel, int]):
    model = SpaceInvitationModel

    async def find_addressed_to(
        self, invitation_id: int, user_id: int
    ) -> Optional[SpaceInvitationModel]:
        result = await self.session.execute(
            select(SpaceInvitationModel).where(
                SpaceInvitationModel.id == invitation_id,
                SpaceInvitationModel.invited_user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_pending(
        self, space_id: int, invited_user_id: int
    ) -> Optional[SpaceInvitationModel]:
        result = await self.session.execute(
            select(SpaceInvitationModel).where(
                SpaceInvitationModel.space_id == space_id,
                SpaceInvitationModel.invited_user_id == invited_user_id,
                SpaceInvitationModel.status == INVITATION_PENDING,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_space(self, space_id: int) -> list[SpaceInvitationModel]:
        return await self.get_by_field("space_id", space_id)

    async def get_by_invited_user(self, user_id: int) -> list[SpaceInvitationModel]:
        return await self.get_by_field("invited_user_id", user_id)

    async def count_pending_for_user(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(SpaceInvitationModel)
            .where(
                SpaceInvitationModel.invited_user_id == user_id,
                SpaceInvitationModel.status == INVITATION_PENDING,
            )
        )
        return result.scalar_one()

    async def accept(self, invitation_id: int, user_id: int) -> SpaceUserModel:
        """
        Turn an invitation into a membership.

        Lookup, membership insert and invitation delete commit together or
        not at all. Only the invited user can accept.
        """
        async with transaction(self.session):
            invitation = await self.find_addressed_to(invitation_id, user_id)
            if invitation is None:
                raise NotFoundError(
                    f"invitation {invitation_id} for user {user_id} not found",
                    "Invitation not found.",
                )

            space_id = invitation.space_id
            membership = SpaceUserModel(
                user_id=user_id,
                space_id=space_id,
                space_role_id=invitation.space_role_id,
            )
            self.session.add(membership)
            try:
                await self.session.flush()
            except IntegrityError as e:
                raise ConflictError(
                    f"user {user_id} is already a member of space {space_id}",
                    "You are already a member of this space.",
                ) from e

            await self.session.delete(invitation)
            await self.flush()

        await self.session.refresh(membership)
        logger.info(
            "User %d accepted invitation %d to space %d",
            user_id,
            invitation_id,
            space_id,
        )
        return membership

    async def reject(self, invitation_id: int, user_id: int) -> None:
        """Delete the invitation if it is addressed to ``user_id``."""
        result = await self.session.execute(
            delete(SpaceInvitationModel).where(
                SpaceInvitationModel.id == invitation_id,
                SpaceInvitationModel.invited_user_id == user_id,
            )
        )
        await self.session.flush()
        if result.rowcount == 0:
            raise NotFoundError(
                f"invitation {invitation_id} for user {user_id} not found",
                "Invitation not found.",
            )

    async def cancel(self, space_id: int, invited_user_id: int) -> int:
        """Delete any invitation for (space, user). Returns rows removed."""
        result = await self.session.execute(
            delete(SpaceInvitationModel).where(
                SpaceInvitationModel.space_id == space_id,
                SpaceInvitationModel.invited_user_id == invited_user_id,
            )
        )
        await self.session.flush()
        return result.rowcount


class SpaceInvitationLinkRepository(CrudRepository[SpaceInvitationLinkModel, int]):
    model = SpaceInvitationLinkModel

    async def find_by_space(self, space_id: int) -> Optional[SpaceInvitationLinkModel]:
        result = await self.session.execute(
            select(SpaceInvitationLinkModel).where(
                SpaceInvitationLinkModel.space_id == space_id
            )
        )
        return result.scalar_one_or_none()
