"""
Space service: creation under plan limits, membership lifecycle,
invitation links and usage accounting.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.config import settings
from spacehub.core.auth import sign_payload, verify_payload
from spacehub.core.blob_store import BlobStore
from spacehub.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    LimitExceededError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from spacehub.core.pagination import Pagination
from spacehub.core.rag_client import RAGClient
from spacehub.core.roles import SpaceRole, role_satisfies
from spacehub.db.database import transaction
from spacehub.db.models import (
    SpaceInvitationLinkModel,
    SpaceInvitationModel,
    SpaceModel,
    SpaceRoleModel,
    SpaceUserModel,
)
from spacehub.db.models.base import start_of_day
from spacehub.db.repositories import (
    DocumentRepository,
    SpaceInvitationLinkRepository,
    SpaceInvitationRepository,
    SpaceRepository,
    SpaceRoleRepository,
    SpaceUserRepository,
    UserRepository,
)
from spacehub.services.crud_service import CrudService
from spacehub.services.permissions import SpacePermissions

logger = logging.getLogger(__name__)


INVITATION_LINK_TOKEN_TYPE = "space_invitation_link"


@dataclass
class SpaceUsage:
    """Today's chat API usage of a space."""

    space_id: int
    api_calls_today: int
    api_call_limit: int


class SpaceService(CrudService[SpaceModel, int]):
    """Spaces and their memberships."""

    repository: SpaceRepository

    def __init__(
        self,
        session: AsyncSession,
        rag_client: Optional[RAGClient] = None,
        blob_store: Optional[BlobStore] = None,
    ):
        super().__init__(SpaceRepository(session, settings.default_page_size))
        self.session = session
        self.rag_client = rag_client
        self.blob_store = blob_store
        self.members = SpaceUserRepository(session)
        self.roles = SpaceRoleRepository(session)
        self.users = UserRepository(session)
        self.invitations = SpaceInvitationRepository(session)
        self.links = SpaceInvitationLinkRepository(session)
        self.documents = DocumentRepository(session)
        self.permissions = SpacePermissions(session)

    # ============ Listings ============

    async def get_public_spaces(
        self, page: int, page_size: int
    ) -> tuple[list[tuple[SpaceModel, int]], Pagination]:
        return await self.repository.get_public_paginated(page, page_size)

    async def get_popular_spaces(self, limit: int = 10) -> list[tuple[SpaceModel, int]]:
        return await self.repository.get_popular(limit)

    async def get_space(self, space_id: int, user_id: Optional[int]) -> SpaceModel:
        return await self.permissions.require_readable(space_id, user_id)

    async def get_members(self, space_id: int, user_id: int) -> list[SpaceUserModel]:
        await self.permissions.require_readable(space_id, user_id)
        return await self.members.get_members(space_id)

    async def count_members(self, space_id: int) -> int:
        return await self.members.count_members(space_id)

    async def get_invitations(self, space_id: int, user_id: int) -> list[SpaceInvitationModel]:
        await self.permissions.require_member(space_id, user_id)
        return await self.invitations.get_by_space(space_id)

    async def get_roles(self) -> list[SpaceRoleModel]:
        return await self.roles.get_catalog()

    async def get_user_role(self, space_id: int, user_id: int) -> SpaceRole:
        membership = await self.permissions.require_member(space_id, user_id)
        role = SpaceRole.from_id(membership.space_role_id)
        if role is None:
            raise ForbiddenError(
                f"user {user_id} has no role in space {space_id}",
                "You have no role in this space.",
            )
        return role

    # ============ Creation ============

    async def check_space_creation_limit(self, user_id: int) -> None:
        await self.users.get_by_id(user_id)
        tier = await self.users.find_tier(user_id)
        space_limit = tier.space_limit if tier else settings.default_space_limit
        owned = await self.users.count_owned_spaces(user_id)
        if owned >= space_limit:
            raise LimitExceededError(
                f"space limit reached for user {user_id}: {owned}/{space_limit}",
                f"Space limit reached: you can only create {space_limit} spaces with your current tier.",
            )

    async def create_space(self, space: SpaceModel, user_id: int) -> SpaceModel:
        """Create a space with ``user_id`` as its owner, atomically."""
        await self.check_space_creation_limit(user_id)

        async with transaction(self.session):
            created = await self.repository.create(space)
            await self.members.add_member(created.id, user_id, SpaceRole.OWNER)

        logger.info("User %d created space %d", user_id, created.id)
        return created

    # ============ Joining ============

    async def join_public_space(self, space_id: int, user_id: int) -> SpaceUserModel:
        """Join a public space as a viewer."""
        space = await self.repository.find_by_id(space_id)
        if space is None:
            raise NotFoundError(f"space {space_id} not found", "Space not found.")
        if not space.is_public:
            raise ForbiddenError("space is not public", "This space is not public.")
        if await self.permissions.is_member(space_id, user_id):
            raise ConflictError(
                "user is already a member of this space",
                "You are already a member of this space.",
            )

        membership = await self.members.add_member(space_id, user_id, SpaceRole.VIEWER)
        logger.info("User %d joined public space %d", user_id, space_id)
        return membership

    def invitation_link_token(self, link: SpaceInvitationLinkModel) -> str:
        return sign_payload(
            {
                "typ": INVITATION_LINK_TOKEN_TYPE,
                "space_id": link.space_id,
                "space_role_id": link.space_role_id,
            }
        )

    def invitation_link_url(self, token: str) -> str:
        return f"{settings.web_client_url.rstrip('/')}/spaces/join?token={token}"

    async def get_or_create_invitation_link(
        self, space_id: int, user_id: int, role_id: int
    ) -> tuple[SpaceInvitationLinkModel, str]:
        """
        Return the space's standing link at ``role_id``, creating or
        re-scoping it as needed, plus its join token.

        Requires editor or owner; the link cannot grant a role above the
        caller's own.
        """
        acting_role = await self.permissions.require_role(space_id, user_id, SpaceRole.EDITOR)
        role = self._require_catalog_role(role_id)
        if not role_satisfies(acting_role, role):
            raise ForbiddenError(
                f"{acting_role.label} cannot issue {role.label} links",
                "You cannot grant a role above your own.",
            )

        link = await self.links.find_by_space(space_id)
        if link is None:
            link = await self.links.create(
                SpaceInvitationLinkModel(space_id=space_id, space_role_id=int(role))
            )
        elif link.space_role_id != int(role):
            link.space_role_id = int(role)
            await self.links.flush()

        return link, self.invitation_link_token(link)

    async def join_with_token(self, token: str, user_id: int) -> int:
        """
        Join the space named by an invitation-link token.

        The token must still match the space's current link.

        Returns:
            The joined space id
        """
        payload = verify_payload(token)
        if payload.get("typ") != INVITATION_LINK_TOKEN_TYPE:
            raise UnauthorizedError("token is not an invitation link", "Invalid invitation link.")

        try:
            space_id = int(payload["space_id"])
            role_id = int(payload["space_role_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise UnauthorizedError(f"malformed invitation link payload: {e}", "Invalid invitation link.") from e

        link = await self.links.find_by_space(space_id)
        if link is None or link.space_role_id != role_id:
            raise NotFoundError(
                f"invitation link for space {space_id} is no longer valid",
                "This invitation link is no longer valid.",
            )

        if await self.permissions.is_member(space_id, user_id):
            raise ConflictError(
                "user is already a member of this space",
                "You are already a member of this space.",
            )

        await self.members.add_member(space_id, user_id, SpaceRole(role_id))
        logger.info("User %d joined space %d through invitation link", user_id, space_id)
        return space_id

    # ============ Membership changes ============

    def _require_catalog_role(self, role_id: int) -> SpaceRole:
        role = SpaceRole.from_id(role_id)
        if role is None:
            raise ValidationError(f"unknown space role {role_id}", "Unknown space role.")
        return role

    async def update_member_role(
        self, space_id: int, member_id: int, role_id: int, acting_user_id: int
    ) -> SpaceUserModel:
        """Change a member's role. Owner only; a space keeps at least one owner."""
        await self.permissions.require_role(space_id, acting_user_id, SpaceRole.OWNER)
        new_role = self._require_catalog_role(role_id)

        membership = await self.members.find_membership(space_id, member_id)
        if membership is None:
            raise NotFoundError(
                f"user {member_id} is not a member of space {space_id}",
                "Member not found.",
            )

        demoting_owner = (
            membership.space_role_id == SpaceRole.OWNER and new_role != SpaceRole.OWNER
        )
        if demoting_owner and await self.members.count_owners(space_id) <= 1:
            raise ValidationError(
                f"space {space_id} would have no owner",
                "A space must keep at least one owner.",
            )

        membership.space_role_id = int(new_role)
        await self.members.flush()
        await self.session.refresh(membership)
        logger.info(
            "User %d set role of user %d in space %d to %s",
            acting_user_id,
            member_id,
            space_id,
            new_role.label,
        )
        return membership

    async def remove_member(self, space_id: int, member_id: int, acting_user_id: int) -> None:
        """
        Remove a member, or cancel the pending invitation of a non-member.

        Owners remove non-owner members. Editors and owners may cancel
        invitations.
        """
        acting_role = await self.permissions.require_role(space_id, acting_user_id, SpaceRole.EDITOR)
        if member_id == acting_user_id:
            raise ValidationError(
                "you cannot remove yourself from the space",
                "You cannot remove yourself from the space. Leave it instead.",
            )

        membership = await self.members.find_membership(space_id, member_id)
        if membership is None:
            removed = await self.invitations.cancel(space_id, member_id)
            if removed == 0:
                raise NotFoundError(
                    f"user {member_id} is neither member nor invitee of space {space_id}",
                    "Member not found.",
                )
            logger.info("User %d cancelled invitation of user %d to space %d", acting_user_id, member_id, space_id)
            return

        if acting_role != SpaceRole.OWNER:
            raise ForbiddenError(
                "only space owners can remove members",
                "Only space owners can remove members.",
            )
        if membership.space_role_id == SpaceRole.OWNER:
            raise ForbiddenError("cannot remove a space owner", "Cannot remove a space owner.")

        await self.members.delete(membership.id)
        logger.info("User %d removed user %d from space %d", acting_user_id, member_id, space_id)

    async def leave_space(self, space_id: int, user_id: int) -> None:
        membership = await self.permissions.require_member(space_id, user_id)
        if (
            membership.space_role_id == SpaceRole.OWNER
            and await self.members.count_owners(space_id) <= 1
        ):
            raise ValidationError(
                f"last owner of space {space_id} cannot leave",
                "The last owner cannot leave the space.",
            )

        await self.members.delete(membership.id)
        logger.info("User %d left space %d", user_id, space_id)

    # ============ Deletion ============

    async def delete_space(self, space_id: int, user_id: int) -> None:
        """
        Delete a space and everything it owns. Owner only.

        The RAG server forgets the space first so a failure there leaves the
        space intact.
        """
        await self.permissions.require_role(space_id, user_id, SpaceRole.OWNER)
        if self.rag_client is None:
            raise InternalError("space deletion needs a RAG client")

        documents = await self.documents.get_by_space(space_id)
        await self.rag_client.remove_space(space_id)

        for document in documents:
            await self.documents.delete(document.id)
        await self.repository.delete(space_id)

        if self.blob_store is not None:
            for document in documents:
                await self.blob_store.delete(document.file_url)

        logger.info("User %d deleted space %d (%d documents)", user_id, space_id, len(documents))

    # ============ Usage ============

    async def get_space_usage(self, space_id: int) -> SpaceUsage:
        space = await self.get_by_id(space_id)
        used = await self.repository.count_api_calls_since(space_id, start_of_day())
        return SpaceUsage(
            space_id=space_id,
            api_calls_today=used,
            api_call_limit=space.api_call_limit,
        )

    async def is_api_rate_limited(self, space_id: int) -> bool:
        usage = await self.get_space_usage(space_id)
        return usage.api_calls_today >= usage.api_call_limit
