"""
Role checks for space-scoped operations.

A user's role in a space is whatever their membership row says; no row
means not a member. Each operation states its own minimum role.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.core.exceptions import ForbiddenError, NotFoundError
from spacehub.core.roles import SpaceRole, role_satisfies
from spacehub.db.models import SpaceModel, SpaceUserModel
from spacehub.db.repositories import SpaceRepository, SpaceUserRepository

logger = logging.getLogger(__name__)


class SpacePermissions:
    """Looks up memberships and enforces minimum roles."""

    def __init__(self, session: AsyncSession):
        self.members = SpaceUserRepository(session)
        self.spaces = SpaceRepository(session)

    async def get_membership(self, space_id: int, user_id: int) -> Optional[SpaceUserModel]:
        return await self.members.find_membership(space_id, user_id)

    async def get_role(self, space_id: int, user_id: int) -> Optional[SpaceRole]:
        membership = await self.get_membership(space_id, user_id)
        if membership is None:
            return None
        return SpaceRole.from_id(membership.space_role_id)

    async def is_member(self, space_id: int, user_id: int) -> bool:
        return await self.get_membership(space_id, user_id) is not None

    async def require_member(self, space_id: int, user_id: int) -> SpaceUserModel:
        membership = await self.get_membership(space_id, user_id)
        if membership is None:
            raise ForbiddenError(
                f"user {user_id} is not a member of space {space_id}",
                "You are not a member of this space.",
            )
        return membership

    async def require_role(self, space_id: int, user_id: int, minimum: SpaceRole) -> SpaceRole:
        """
        Ensure the user holds at least ``minimum`` in the space.

        Returns:
            The user's actual role
        """
        membership = await self.require_member(space_id, user_id)
        role = SpaceRole.from_id(membership.space_role_id)
        if not role_satisfies(role, minimum):
            raise ForbiddenError(
                f"user {user_id} lacks {minimum.label} role in space {space_id}",
                f"This action requires the {minimum.label} role.",
            )
        return role

    async def require_readable(self, space_id: int, user_id: Optional[int]) -> SpaceModel:
        """Public spaces are readable by anyone; private ones by members only."""
        space = await self.spaces.find_by_id(space_id)
        if space is None:
            raise NotFoundError(f"space {space_id} not found", "Space not found.")
        if space.is_public:
            return space
        if user_id is None or not await self.is_member(space_id, user_id):
            raise ForbiddenError(
                f"space {space_id} is private",
                "You do not have access to this space.",
            )
        return space
