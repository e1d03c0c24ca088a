"""
Space API keys.

The bearer token is a signed ``{space_id, key_id}`` payload re-derived on
demand and never stored. Deleting the key row revokes every token issued
for it, because verification looks the key up by id.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.core.auth import sign_payload, verify_payload
from spacehub.core.exceptions import NotFoundError, UnauthorizedError
from spacehub.core.roles import SpaceRole
from spacehub.db.models import SpaceAPIKeyModel
from spacehub.db.repositories import SpaceAPIKeyRepository
from spacehub.services.crud_service import CrudService
from spacehub.services.permissions import SpacePermissions

logger = logging.getLogger(__name__)


API_KEY_TOKEN_TYPE = "space_api_key"


def derive_api_key_token(key: SpaceAPIKeyModel) -> str:
    return sign_payload(
        {
            "typ": API_KEY_TOKEN_TYPE,
            "space_id": key.space_id,
            "key_id": key.id,
        }
    )


class SpaceAPIKeyService(CrudService[SpaceAPIKeyModel, int]):
    """Issue, list, look up, delete and verify space API keys."""

    repository: SpaceAPIKeyRepository

    def __init__(self, session: AsyncSession):
        super().__init__(SpaceAPIKeyRepository(session))
        self.permissions = SpacePermissions(session)

    def _key_not_found(self, space_id: int, key_id: int) -> NotFoundError:
        return NotFoundError(
            f"API key {key_id} not found in space {space_id}",
            "API key not found.",
        )

    async def create_key(
        self, space_id: int, user_id: int, name: str, description: str | None = None
    ) -> tuple[SpaceAPIKeyModel, str]:
        """Create a key (owner only) and return it with its token."""
        await self.permissions.require_role(space_id, user_id, SpaceRole.OWNER)
        key = await self.repository.create(
            SpaceAPIKeyModel(space_id=space_id, name=name, description=description)
        )
        logger.info("User %d created API key %d for space %d", user_id, key.id, space_id)
        return key, derive_api_key_token(key)

    async def _can_see_tokens(self, space_id: int, user_id: int) -> bool:
        membership = await self.permissions.require_member(space_id, user_id)
        return membership.space_role_id == SpaceRole.OWNER

    async def list_keys(
        self, space_id: int, user_id: int
    ) -> list[tuple[SpaceAPIKeyModel, Optional[str]]]:
        """
        All keys of the space.

        Owners get a freshly derived token per key; other members only see
        the key metadata.
        """
        reveal = await self._can_see_tokens(space_id, user_id)
        keys = await self.repository.get_by_space(space_id)
        return [(key, derive_api_key_token(key) if reveal else None) for key in keys]

    async def _get_in_space(self, space_id: int, key_id: int) -> SpaceAPIKeyModel:
        key = await self.repository.find_by_id(key_id)
        if key is None or key.space_id != space_id:
            raise self._key_not_found(space_id, key_id)
        return key

    async def get_key(
        self, space_id: int, key_id: int, user_id: int
    ) -> tuple[SpaceAPIKeyModel, Optional[str]]:
        """
        A key of this space; keys of other spaces are reported missing.

        The token is only derived for owners.
        """
        reveal = await self._can_see_tokens(space_id, user_id)
        key = await self._get_in_space(space_id, key_id)
        return key, derive_api_key_token(key) if reveal else None

    async def delete_key(self, space_id: int, key_id: int, user_id: int) -> None:
        """Delete a key of this space (owner only), revoking its token."""
        await self.permissions.require_role(space_id, user_id, SpaceRole.OWNER)
        key = await self._get_in_space(space_id, key_id)
        await self.repository.delete(key.id)
        logger.info("User %d deleted API key %d of space %d", user_id, key_id, space_id)

    async def verify(self, token: str) -> SpaceAPIKeyModel:
        """
        Resolve a bearer token to its key.

        Raises:
            UnauthorizedError: Bad signature, wrong token kind, deleted key
                or a key that no longer belongs to the embedded space
        """
        payload = verify_payload(token)
        if payload.get("typ") != API_KEY_TOKEN_TYPE:
            raise UnauthorizedError("token is not a space API key", "Invalid API key.")

        try:
            key_id = int(payload["key_id"])
            space_id = int(payload["space_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise UnauthorizedError(f"malformed API key payload: {e}", "Invalid API key.") from e

        key = await self.repository.find_by_id(key_id)
        if key is None or key.space_id != space_id:
            raise UnauthorizedError(f"API key {key_id} revoked or unknown", "Invalid API key.")
        return key
