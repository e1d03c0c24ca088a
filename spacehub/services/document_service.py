"""
Document service: upload under space limits, listing and deletion.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.config import settings
from spacehub.core.blob_store import BlobStore
from spacehub.core.exceptions import LimitExceededError, NotFoundError, SpaceHubError
from spacehub.core.rag_client import RAGClient
from spacehub.core.roles import SpaceRole
from spacehub.db.database import transaction
from spacehub.db.models import DocumentModel
from spacehub.db.repositories import DocumentRepository, SpaceRepository
from spacehub.services.crud_service import CrudService
from spacehub.services.permissions import SpacePermissions

logger = logging.getLogger(__name__)


class DocumentService(CrudService[DocumentModel, int]):
    """Documents stored in the blob store and indexed by the RAG server."""

    repository: DocumentRepository

    def __init__(self, session: AsyncSession, rag_client: RAGClient, blob_store: BlobStore):
        super().__init__(DocumentRepository(session))
        self.session = session
        self.rag_client = rag_client
        self.blob_store = blob_store
        self.spaces = SpaceRepository(session)
        self.permissions = SpacePermissions(session)

    async def check_document_limits(self, space_id: int, size: int) -> None:
        """
        Enforce the space's document count and file size limits.

        Raises:
            NotFoundError: Space does not exist
            LimitExceededError: Either limit would be exceeded
        """
        space = await self.spaces.get_by_id(space_id)

        count = await self.repository.count_by_space(space_id)
        if count >= space.document_limit:
            raise LimitExceededError(
                f"document limit reached for space {space_id}: {count}/{space.document_limit}",
                f"Document limit reached: this space can only have {space.document_limit} documents.",
            )

        size_kb = size // 1024
        if size_kb > space.file_size_limit_kb:
            raise LimitExceededError(
                f"file of {size_kb} KB exceeds {space.file_size_limit_kb} KB in space {space_id}",
                f"File size exceeds the limit of {space.file_size_limit_kb} KB for this space.",
            )

    def document_view_url(self, document_id: int) -> str:
        return f"{settings.web_client_url.rstrip('/')}/documents/view?id={document_id}"

    async def upload_document(
        self,
        space_id: int,
        user_id: int,
        filename: str,
        data: bytes,
        mime_type: Optional[str],
        description: Optional[str] = None,
    ) -> DocumentModel:
        """
        Store a file, record it and send it to the RAG server.

        If ingestion fails the row and the stored blob are removed again.
        """
        await self.permissions.require_role(space_id, user_id, SpaceRole.EDITOR)
        await self.check_document_limits(space_id, len(data))

        file_url = await self.blob_store.upload(filename, data)
        try:
            async with transaction(self.session):
                document = await self.repository.create(
                    DocumentModel(
                        space_id=space_id,
                        name=filename,
                        description=description,
                        mime_type=mime_type,
                        size=len(data),
                        file_url=file_url,
                    )
                )
        except SpaceHubError:
            await self.blob_store.delete(file_url)
            raise

        document_id = document.id
        try:
            await self.rag_client.upload_document(
                space_id=space_id,
                document_id=document_id,
                filename=filename,
                data=data,
                mime_type=mime_type,
                file_path=self.document_view_url(document_id),
            )
        except SpaceHubError:
            logger.warning("Rolling back upload of document %d", document_id)
            async with transaction(self.session):
                await self.repository.delete(document_id)
            await self.blob_store.delete(file_url)
            raise

        logger.info("User %d uploaded document %d to space %d", user_id, document_id, space_id)
        return document

    async def list_by_space(self, space_id: int, user_id: Optional[int]) -> list[DocumentModel]:
        await self.permissions.require_readable(space_id, user_id)
        return await self.repository.get_by_space(space_id)

    async def get_document(self, document_id: int, user_id: Optional[int]) -> DocumentModel:
        document = await self.repository.find_by_id(document_id)
        if document is None:
            raise NotFoundError(f"document {document_id} not found", "Document not found.")
        await self.permissions.require_readable(document.space_id, user_id)
        return document

    async def delete_document(self, document_id: int, user_id: int) -> None:
        """Remove from the RAG server, the database and the blob store."""
        document = await self.repository.get_by_id(document_id)
        await self.permissions.require_role(document.space_id, user_id, SpaceRole.EDITOR)

        await self.rag_client.remove_document(document.id, document.space_id)
        file_url = document.file_url
        await self.repository.delete(document.id)
        await self.blob_store.delete(file_url)
        logger.info("User %d deleted document %d", user_id, document_id)
