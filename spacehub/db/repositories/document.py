"""
Document repository.
"""

from sqlalchemy import func, select

from spacehub.db.models import DocumentModel
from spacehub.db.repositories.crud import CrudRepository


class DocumentRepository(CrudRepository[DocumentModel, int]):
    model = DocumentModel

    async def get_by_space(self, space_id: int) -> list[DocumentModel]:
        return await self.get_by_field("space_id", space_id)

    async def count_by_space(self, space_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(DocumentModel)
            .where(DocumentModel.space_id == space_id)
        )
        return result.scalar_one()
