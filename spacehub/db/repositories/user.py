"""
Repositories for users, their credentials, MFA settings and tiers.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select

from spacehub.core.roles import SpaceRole
from spacehub.db.models import (
    DocumentModel,
    SpaceModel,
    SpaceUserModel,
    TierModel,
    UserAuthCredentialModel,
    UserMFAModel,
    UserModel,
    UserQueryModel,
    UserQuerySessionModel,
)
from spacehub.db.models.user import AUTH_TYPE_LOCAL
from spacehub.db.repositories.crud import CrudRepository


class UserRepository(CrudRepository[UserModel, int]):
    model = UserModel

    async def find_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def find_tier(self, user_id: int) -> Optional[TierModel]:
        result = await self.session.execute(
            select(TierModel)
            .join(UserModel, UserModel.tier_id == TierModel.id)
            .where(UserModel.id == user_id)
        )
        return result.scalar_one_or_none()

    async def search(self, query: str, limit: int = 20) -> list[UserModel]:
        """Case-insensitive substring match on username or email."""
        pattern = f"%{query.lower()}%"
        result = await self.session.execute(
            select(UserModel)
            .where(
                or_(
                    func.lower(UserModel.username).like(pattern),
                    func.lower(UserModel.email).like(pattern),
                )
            )
            .order_by(UserModel.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_spaces(self, user_id: int) -> list[tuple[SpaceModel, Optional[int]]]:
        """Spaces the user belongs to, with the user's role id in each."""
        result = await self.session.execute(
            select(SpaceModel, SpaceUserModel.space_role_id)
            .join(SpaceUserModel, SpaceUserModel.space_id == SpaceModel.id)
            .where(SpaceUserModel.user_id == user_id)
            .order_by(SpaceModel.id)
        )
        return [(space, role_id) for space, role_id in result.all()]

    async def count_spaces(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(SpaceUserModel)
            .where(SpaceUserModel.user_id == user_id)
        )
        return result.scalar_one()

    async def count_owned_spaces(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(SpaceUserModel)
            .where(
                SpaceUserModel.user_id == user_id,
                SpaceUserModel.space_role_id == SpaceRole.OWNER,
            )
        )
        return result.scalar_one()

    async def count_owned_documents(self, user_id: int) -> int:
        """Documents across every space the user owns."""
        result = await self.session.execute(
            select(func.count(DocumentModel.id))
            .join(SpaceUserModel, SpaceUserModel.space_id == DocumentModel.space_id)
            .where(
                SpaceUserModel.user_id == user_id,
                SpaceUserModel.space_role_id == SpaceRole.OWNER,
            )
        )
        return result.scalar_one()

    async def count_queries(self, user_id: int, since: Optional[datetime] = None) -> int:
        """Questions asked across the user's sessions, optionally since a time."""
        query = (
            select(func.count(UserQueryModel.id))
            .join(
                UserQuerySessionModel,
                UserQuerySessionModel.id == UserQueryModel.query_session_id,
            )
            .where(UserQuerySessionModel.user_id == user_id)
        )
        if since is not None:
            query = query.where(UserQueryModel.created_at >= since)
        result = await self.session.execute(query)
        return result.scalar_one()


class UserAuthCredentialRepository(CrudRepository[UserAuthCredentialModel, int]):
    model = UserAuthCredentialModel

    async def find_by_user_and_type(
        self, user_id: int, auth_type: str
    ) -> Optional[UserAuthCredentialModel]:
        result = await self.session.execute(
            select(UserAuthCredentialModel)
            .where(
                UserAuthCredentialModel.user_id == user_id,
                UserAuthCredentialModel.auth_type == auth_type,
            )
            .order_by(UserAuthCredentialModel.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_local(self, user_id: int) -> Optional[UserAuthCredentialModel]:
        return await self.find_by_user_and_type(user_id, AUTH_TYPE_LOCAL)

    async def find_by_external_id(
        self, auth_type: str, external_id: str
    ) -> Optional[UserAuthCredentialModel]:
        result = await self.session.execute(
            select(UserAuthCredentialModel).where(
                UserAuthCredentialModel.auth_type == auth_type,
                UserAuthCredentialModel.external_id == external_id,
            )
        )
        return result.scalar_one_or_none()


class UserMFARepository(CrudRepository[UserMFAModel, int]):
    model = UserMFAModel

    async def find_by_user(self, user_id: int) -> Optional[UserMFAModel]:
        result = await self.session.execute(
            select(UserMFAModel).where(UserMFAModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def delete_by_user(self, user_id: int) -> None:
        await self.session.execute(
            delete(UserMFAModel).where(UserMFAModel.user_id == user_id)
        )
        await self.session.flush()


class TierRepository(CrudRepository[TierModel, int]):
    model = TierModel
