"""
Generic repository over one ORM model.

Every call goes straight to the database; there is no caching layer.
Entity repositories subclass ``CrudRepository`` and add their own queries.
"""

import logging
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from spacehub.core.exceptions import ConflictError, NotFoundError, ValidationError
from spacehub.core.pagination import DEFAULT_PAGE_SIZE, Pagination
from spacehub.db.database import Base
from spacehub.db.models.base import utcnow

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
IdT = TypeVar("IdT")

_UNIQUE_MARKERS = ("unique", "duplicate")


def entity_name(model: type) -> str:
    """Display name of a model class, e.g. ``SpaceModel`` -> ``Space``."""
    name = model.__name__
    return name[: -len("Model")] if name.endswith("Model") else name


def translate_integrity_error(model: type, error: IntegrityError) -> ValidationError:
    """Map a constraint violation onto Conflict (unique) or Validation."""
    detail = str(error.orig)
    if any(marker in detail.lower() for marker in _UNIQUE_MARKERS):
        return ConflictError(
            f"{entity_name(model)} violates a unique constraint: {detail}",
            f"{entity_name(model)} already exists.",
        )
    return ValidationError(
        f"{entity_name(model)} violates a constraint: {detail}",
        "The request references missing or invalid data.",
    )


class CrudRepository(Generic[ModelT, IdT]):
    """Paginated list, get, create, update and delete for ``model``."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession, default_page_size: int = DEFAULT_PAGE_SIZE):
        self.session = session
        self.default_page_size = default_page_size

    @property
    def entity_name(self) -> str:
        return entity_name(self.model)

    def _column(self, field: str):
        column = self.model.__table__.columns.get(field)
        if column is None:
            raise ValidationError(f"{self.entity_name} has no field {field!r}")
        return getattr(self.model, field)

    def _base_query(self) -> Select:
        return select(self.model).order_by(self.model.id)

    async def flush(self) -> None:
        """Flush pending changes, translating constraint violations."""
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise translate_integrity_error(self.model, e) from e

    async def _paginate(self, query: Select, pagination: Pagination) -> list[ModelT]:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        pagination.total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(
            query.offset(pagination.offset).limit(pagination.page_size)
        )
        return list(result.scalars().all())

    async def get_paginated(self, page: int, page_size: int) -> tuple[list[ModelT], Pagination]:
        """
        Get one page of rows plus pagination metadata.

        Non-positive page or page size fall back to page 1 and the default
        page size.
        """
        pagination = Pagination.normalize(page, page_size, self.default_page_size)
        items = await self._paginate(self._base_query(), pagination)
        return items, pagination

    async def get_all(self, page: int, page_size: int) -> list[ModelT]:
        items, _ = await self.get_paginated(page, page_size)
        return items

    async def find_by_id(self, id: IdT) -> Optional[ModelT]:
        return await self.session.get(self.model, id)

    async def get_by_id(self, id: IdT) -> ModelT:
        """Get a row by primary key or raise NotFoundError."""
        entity = await self.find_by_id(id)
        if entity is None:
            raise NotFoundError(
                f"{self.entity_name} entity record with id {id} not found",
                f"{self.entity_name} not found.",
            )
        return entity

    async def create(self, model: ModelT) -> ModelT:
        """Insert ``model``; the store assigns its identifier."""
        self.session.add(model)
        await self.flush()
        await self.session.refresh(model)
        return model

    async def update(self, model: ModelT) -> ModelT:
        """Replace every mutable column of the row with ``model``'s values."""
        existing = await self.get_by_id(model.id)
        if existing is not model:
            existing.apply_mutable_fields(model)
        existing.updated_at = getattr(model, "updated_at", None) or utcnow()
        await self.flush()
        return existing

    async def delete(self, id: IdT) -> None:
        """Delete by primary key. Deleting a missing row is not an error."""
        await self.session.execute(delete(self.model).where(self.model.id == id))
        await self.session.flush()

    async def get_by_field(self, field: str, value: Any) -> list[ModelT]:
        result = await self.session.execute(
            self._base_query().where(self._column(field) == value)
        )
        return list(result.scalars().all())

    async def get_by_field_paginated(
        self, field: str, value: Any, page: int, page_size: int
    ) -> tuple[list[ModelT], Pagination]:
        pagination = Pagination.normalize(page, page_size, self.default_page_size)
        query = self._base_query().where(self._column(field) == value)
        items = await self._paginate(query, pagination)
        return items, pagination

    async def delete_by_field(self, field: str, value: Any) -> None:
        await self.session.execute(
            delete(self.model).where(self._column(field) == value)
        )
        await self.session.flush()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()
