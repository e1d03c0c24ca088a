"""
Space API key repository.
"""

from spacehub.db.models import SpaceAPIKeyModel
from spacehub.db.repositories.crud import CrudRepository


class SpaceAPIKeyRepository(CrudRepository[SpaceAPIKeyModel, int]):
    model = SpaceAPIKeyModel

    async def get_by_space(self, space_id: int) -> list[SpaceAPIKeyModel]:
        return await self.get_by_field("space_id", space_id)
