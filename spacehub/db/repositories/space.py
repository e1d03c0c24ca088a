"""
Repositories for spaces, memberships and the role catalog.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from spacehub.core.roles import SpaceRole
from spacehub.core.pagination import Pagination
from spacehub.db.models import (
    SpaceModel,
    SpaceRoleModel,
    SpaceUserModel,
    UserQueryModel,
    UserQuerySessionModel,
)
from spacehub.db.repositories.crud import CrudRepository


class SpaceRepository(CrudRepository[SpaceModel, int]):
    model = SpaceModel

    def _member_counts(self):
        return (
            select(
                SpaceUserModel.space_id.label("space_id"),
                func.count(SpaceUserModel.id).label("member_count"),
            )
            .group_by(SpaceUserModel.space_id)
            .subquery()
        )

    async def get_public_paginated(
        self, page: int, page_size: int
    ) -> tuple[list[tuple[SpaceModel, int]], Pagination]:
        """Public spaces in id order, each with its member count."""
        pagination = Pagination.normalize(page, page_size, self.default_page_size)
        pagination.total = (
            await self.session.execute(
                select(func.count()).select_from(SpaceModel).where(SpaceModel.is_public.is_(True))
            )
        ).scalar_one()

        counts = self._member_counts()
        result = await self.session.execute(
            select(SpaceModel, func.coalesce(counts.c.member_count, 0))
            .outerjoin(counts, counts.c.space_id == SpaceModel.id)
            .where(SpaceModel.is_public.is_(True))
            .order_by(SpaceModel.id)
            .offset(pagination.offset)
            .limit(pagination.page_size)
        )
        return [(space, count) for space, count in result.all()], pagination

    async def get_popular(self, limit: int = 10) -> list[tuple[SpaceModel, int]]:
        """Public spaces with the most members first."""
        counts = self._member_counts()
        member_count = func.coalesce(counts.c.member_count, 0)
        result = await self.session.execute(
            select(SpaceModel, member_count)
            .outerjoin(counts, counts.c.space_id == SpaceModel.id)
            .where(SpaceModel.is_public.is_(True))
            .order_by(member_count.desc(), SpaceModel.id)
            .limit(limit)
        )
        return [(space, count) for space, count in result.all()]

    async def count_api_calls_since(self, space_id: int, since: datetime) -> int:
        """Chat questions asked in the space's sessions since ``since``."""
        result = await self.session.execute(
            select(func.count(UserQueryModel.id))
            .join(
                UserQuerySessionModel,
                UserQuerySessionModel.id == UserQueryModel.query_session_id,
            )
            .where(
                UserQuerySessionModel.space_id == space_id,
                UserQueryModel.created_at >= since,
            )
        )
        return result.scalar_one()


class SpaceUserRepository(CrudRepository[SpaceUserModel, int]):
    model = SpaceUserModel

    async def find_membership(self, space_id: int, user_id: int) -> Optional[SpaceUserModel]:
        result = await self.session.execute(
            select(SpaceUserModel).where(
                SpaceUserModel.space_id == space_id,
                SpaceUserModel.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_members(self, space_id: int) -> list[SpaceUserModel]:
        result = await self.session.execute(
            select(SpaceUserModel)
            .where(SpaceUserModel.space_id == space_id)
            .order_by(SpaceUserModel.id)
        )
        return list(result.scalars().all())

    async def count_members(self, space_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(SpaceUserModel)
            .where(SpaceUserModel.space_id == space_id)
        )
        return result.scalar_one()

    async def count_owners(self, space_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(SpaceUserModel)
            .where(
                SpaceUserModel.space_id == space_id,
                SpaceUserModel.space_role_id == SpaceRole.OWNER,
            )
        )
        return result.scalar_one()

    async def add_member(self, space_id: int, user_id: int, role: SpaceRole) -> SpaceUserModel:
        return await self.create(
            SpaceUserModel(
                space_id=space_id,
                user_id=user_id,
                space_role_id=int(role),
            )
        )


class SpaceRoleRepository(CrudRepository[SpaceRoleModel, int]):
    model = SpaceRoleModel

    async def get_catalog(self) -> list[SpaceRoleModel]:
        result = await self.session.execute(self._base_query())
        return list(result.scalars().all())
