"""
User service: profile CRUD plus membership, invitation and usage queries.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.config import settings
from spacehub.core.exceptions import ValidationError
from spacehub.core.roles import SpaceRole
from spacehub.db.models import SpaceInvitationModel, SpaceModel, TierModel, UserModel
from spacehub.db.models.base import start_of_day, start_of_month
from spacehub.db.repositories import (
    SpaceInvitationRepository,
    SpaceUserRepository,
    UserRepository,
)
from spacehub.services.crud_service import CrudService

logger = logging.getLogger(__name__)


@dataclass
class TierUsage:
    """Current consumption measured against a user's tier."""

    tier: Optional[TierModel]
    space_limit: int
    query_limit: int
    space_count: int
    owned_space_count: int
    document_count: int
    total_queries: int
    queries_today: int
    queries_this_month: int


class UserService(CrudService[UserModel, int]):
    """Users plus their spaces, invitations and limits."""

    repository: UserRepository

    def __init__(self, session: AsyncSession):
        super().__init__(UserRepository(session))
        self.invitations = SpaceInvitationRepository(session)
        self.members = SpaceUserRepository(session)

    async def delete(self, id: int) -> None:
        """
        Delete an account.

        Refused while the user is the last owner of a space; memberships
        cascade away with the user, which would leave that space ownerless.
        """
        for space, role_id in await self.repository.get_spaces(id):
            if role_id == SpaceRole.OWNER and await self.members.count_owners(space.id) <= 1:
                raise ValidationError(
                    f"user {id} is the last owner of space {space.id}",
                    "Transfer ownership or delete the spaces you solely own first.",
                )

        await self.repository.delete(id)
        logger.info("Deleted user %d", id)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        return await self.repository.find_by_email(email)

    async def search(self, query: str, limit: int = 20) -> list[UserModel]:
        query = query.strip()
        if not query:
            return []
        return await self.repository.search(query, limit)

    async def get_spaces(self, user_id: int) -> list[tuple[SpaceModel, Optional[SpaceRole]]]:
        """Spaces the user belongs to, each with the user's role there."""
        rows = await self.repository.get_spaces(user_id)
        return [(space, SpaceRole.from_id(role_id)) for space, role_id in rows]

    async def get_invitations(self, user_id: int) -> list[SpaceInvitationModel]:
        """Pending invitations addressed to the user."""
        return await self.invitations.get_by_invited_user(user_id)

    async def count_pending_invitations(self, user_id: int) -> int:
        return await self.invitations.count_pending_for_user(user_id)

    async def get_tier(self, user_id: int) -> Optional[TierModel]:
        await self.get_by_id(user_id)
        return await self.repository.find_tier(user_id)

    @staticmethod
    def space_limit_for(tier: Optional[TierModel]) -> int:
        return tier.space_limit if tier else settings.default_space_limit

    @staticmethod
    def query_limit_for(tier: Optional[TierModel]) -> int:
        return tier.query_limit if tier else settings.default_query_limit

    async def get_tier_usage(self, user_id: int) -> TierUsage:
        tier = await self.get_tier(user_id)
        return TierUsage(
            tier=tier,
            space_limit=self.space_limit_for(tier),
            query_limit=self.query_limit_for(tier),
            space_count=await self.repository.count_spaces(user_id),
            owned_space_count=await self.repository.count_owned_spaces(user_id),
            document_count=await self.repository.count_owned_documents(user_id),
            total_queries=await self.repository.count_queries(user_id),
            queries_today=await self.repository.count_queries(user_id, start_of_day()),
            queries_this_month=await self.repository.count_queries(user_id, start_of_month()),
        )

    async def is_rate_limited(self, user_id: int) -> bool:
        """Whether today's queries have reached the tier's daily limit."""
        tier = await self.get_tier(user_id)
        used = await self.repository.count_queries(user_id, start_of_day())
        return used >= self.query_limit_for(tier)
