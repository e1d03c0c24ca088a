"""
Generic CRUD service layered over a repository.

Adds existence checks, id/created_at preservation on update, partial
patches and the create-or-update upsert policy. Entity services subclass
it and receive their concrete repository directly.
"""

import logging
from typing import Any, Generic, Mapping

from spacehub.core.exceptions import NotFoundError
from spacehub.core.pagination import Pagination
from spacehub.db.models.base import utcnow
from spacehub.db.repositories.crud import CrudRepository, IdT, ModelT

logger = logging.getLogger(__name__)


class CrudService(Generic[ModelT, IdT]):
    """Pass-through CRUD plus update/patch/upsert policy."""

    def __init__(self, repository: CrudRepository[ModelT, IdT]):
        self.repository = repository

    def _not_found(self, id: IdT) -> NotFoundError:
        name = self.repository.entity_name
        return NotFoundError(
            f"{name} entity record with id {id} not found",
            f"{name} not found.",
        )

    async def get_all(self, page: int, page_size: int) -> list[ModelT]:
        return await self.repository.get_all(page, page_size)

    async def get_paginated(self, page: int, page_size: int) -> tuple[list[ModelT], Pagination]:
        return await self.repository.get_paginated(page, page_size)

    async def get_by_id(self, id: IdT) -> ModelT:
        return await self.repository.get_by_id(id)

    async def create(self, model: ModelT) -> ModelT:
        return await self.repository.create(model)

    async def update(self, id: IdT, model: ModelT) -> ModelT:
        """
        Replace the record ``id`` with ``model``.

        The stored id and created_at always win over whatever ``model``
        carries.

        Raises:
            NotFoundError: If no record has this id
        """
        existing = await self.repository.find_by_id(id)
        if existing is None:
            raise self._not_found(id)

        if model is not existing:
            model.id = existing.id
            model.created_at = existing.created_at
        model.updated_at = utcnow()
        return await self.repository.update(model)

    async def patch(self, id: IdT, changes: Mapping[str, Any]) -> ModelT:
        """Apply only the given fields. id and created_at are never patched."""
        existing = await self.repository.find_by_id(id)
        if existing is None:
            raise self._not_found(id)

        existing.apply_changes(changes)
        existing.updated_at = utcnow()
        await self.repository.flush()
        return existing

    async def upsert(self, id: IdT, model: ModelT) -> ModelT:
        """Create when ``id`` is unknown, otherwise update it."""
        try:
            await self.repository.get_by_id(id)
        except NotFoundError:
            return await self.repository.create(model)
        return await self.update(id, model)

    async def delete(self, id: IdT) -> None:
        await self.repository.delete(id)

    async def get_by_field(self, field: str, value: Any) -> list[ModelT]:
        return await self.repository.get_by_field(field, value)

    async def delete_by_field(self, field: str, value: Any) -> None:
        await self.repository.delete_by_field(field, value)

    async def count(self) -> int:
        return await self.repository.count()
