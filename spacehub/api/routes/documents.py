"""
Document upload and management endpoints.
"""

from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status

from spacehub.api.deps import (
    BlobStoreDep,
    CurrentUserDep,
    OptionalUserDep,
    RAGClientDep,
    SessionDep,
)
from spacehub.config import settings
from spacehub.models.schemas import DocumentResponse
from spacehub.services.document_service import DocumentService

router = APIRouter()


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    session: SessionDep,
    current_user: CurrentUserDep,
    rag_client: RAGClientDep,
    blob_store: BlobStoreDep,
    spaceId: int = Form(...),
    description: Optional[str] = Form(None),
    file: UploadFile = File(...),
):
    """
    Upload a document into a space.

    The file is stored, recorded and sent to the RAG server for indexing.
    Editors and owners only; the space's document count and file size
    limits apply.
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A file name is required",
        )

    content = await file.read()
    if len(content) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds maximum limit of {settings.max_file_size // (1024 * 1024)}MB",
        )

    documents = DocumentService(session, rag_client, blob_store)
    document = await documents.upload_document(
        space_id=spaceId,
        user_id=current_user.id,
        filename=file.filename,
        data=content,
        mime_type=file.content_type,
        description=description,
    )
    return DocumentResponse.from_model(document)


@router.get("", response_model=list[DocumentResponse])
async def list_documents(
    session: SessionDep,
    current_user: OptionalUserDep,
    rag_client: RAGClientDep,
    blob_store: BlobStoreDep,
    spaceId: int = Query(...),
):
    """Documents of a space the caller can read."""
    user_id = current_user.id if current_user else None
    documents = await DocumentService(session, rag_client, blob_store).list_by_space(spaceId, user_id)
    return [DocumentResponse.from_model(document) for document in documents]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    session: SessionDep,
    current_user: OptionalUserDep,
    rag_client: RAGClientDep,
    blob_store: BlobStoreDep,
):
    user_id = current_user.id if current_user else None
    document = await DocumentService(session, rag_client, blob_store).get_document(document_id, user_id)
    return DocumentResponse.from_model(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
    rag_client: RAGClientDep,
    blob_store: BlobStoreDep,
):
    """Remove a document from the RAG index, the database and storage."""
    await DocumentService(session, rag_client, blob_store).delete_document(document_id, current_user.id)
