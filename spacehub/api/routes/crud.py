"""
Generic CRUD endpoints over any CrudService.

``create_crud_router`` builds list/get/create/put/patch/delete routes for
one entity. An optional guard runs before every operation for per-entity
authorization.
"""

from typing import Any, Awaitable, Callable, Iterable, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.api.deps import CurrentUserDep, PageDep, SessionDep
from spacehub.db.models import UserModel
from spacehub.models.schemas import PaginationInfo
from spacehub.services.crud_service import CrudService

ALL_OPERATIONS = frozenset({"list", "get", "create", "update", "patch", "delete"})

Guard = Callable[[str, UserModel, Optional[int], AsyncSession], Awaitable[None]]


def create_crud_router(
    service_factory: Callable[[AsyncSession], CrudService],
    serialize: Callable[[Any], BaseModel],
    response_model: type[BaseModel],
    write_schema: Optional[type[BaseModel]] = None,
    patch_schema: Optional[type[BaseModel]] = None,
    to_model: Optional[Callable[[BaseModel], Any]] = None,
    guard: Optional[Guard] = None,
    operations: Iterable[str] = ALL_OPERATIONS,
) -> APIRouter:
    """
    Build a router for one entity.

    Args:
        service_factory: Builds the entity's service from a DB session
        serialize: Turns a model row into ``response_model``
        response_model: Response schema for single items
        write_schema: Body for create and full update
        patch_schema: Body for partial update; only fields the client sent
            are applied
        to_model: Builds a transient model row from ``write_schema``
        guard: ``guard(action, user, item_id, session)`` raising on denial
        operations: Subset of list/get/create/update/patch/delete to expose
    """
    operations = frozenset(operations)
    unknown = operations - ALL_OPERATIONS
    if unknown:
        raise ValueError(f"unknown CRUD operations: {sorted(unknown)}")

    router = APIRouter()

    async def check(action: str, user: UserModel, item_id: Optional[int], session: AsyncSession):
        if guard is not None:
            await guard(action, user, item_id, session)

    if "list" in operations:

        @router.get("")
        async def list_items(page: PageDep, current_user: CurrentUserDep, session: SessionDep):
            """Paginated list in store order."""
            await check("list", current_user, None, session)
            items, pagination = await service_factory(session).get_paginated(
                page.page, page.page_size
            )
            return {
                "data": [serialize(item) for item in items],
                "pagination": PaginationInfo.from_pagination(pagination),
            }

    if "get" in operations:

        @router.get("/{item_id}", response_model=response_model)
        async def get_item(item_id: int, current_user: CurrentUserDep, session: SessionDep):
            """Get one item by id."""
            await check("get", current_user, item_id, session)
            return serialize(await service_factory(session).get_by_id(item_id))

    if "create" in operations and write_schema is not None and to_model is not None:

        @router.post("", response_model=response_model, status_code=status.HTTP_201_CREATED)
        async def create_item(
            body: write_schema, current_user: CurrentUserDep, session: SessionDep
        ):
            """Create an item."""
            await check("create", current_user, None, session)
            return serialize(await service_factory(session).create(to_model(body)))

    if "update" in operations and write_schema is not None and to_model is not None:

        @router.put("/{item_id}", response_model=response_model)
        async def update_item(
            item_id: int, body: write_schema, current_user: CurrentUserDep, session: SessionDep
        ):
            """Replace every mutable field of an item."""
            await check("update", current_user, item_id, session)
            return serialize(await service_factory(session).update(item_id, to_model(body)))

    if "patch" in operations and patch_schema is not None:

        @router.patch("/{item_id}", response_model=response_model)
        async def patch_item(
            item_id: int, body: patch_schema, current_user: CurrentUserDep, session: SessionDep
        ):
            """Change only the fields present in the body."""
            await check("patch", current_user, item_id, session)
            changes = body.model_dump(exclude_unset=True)
            return serialize(await service_factory(session).patch(item_id, changes))

    if "delete" in operations:

        @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
        async def delete_item(item_id: int, current_user: CurrentUserDep, session: SessionDep):
            """Delete an item. Deleting a missing item succeeds."""
            await check("delete", current_user, item_id, session)
            await service_factory(session).delete(item_id)

    return router
