"""
HTTP client for the external retrieval-augmented-generation server.

Every call is a single attempt. Transport failures and non-200 responses
surface as UpstreamError.
"""

import logging
from typing import Any, Optional

import httpx

from spacehub.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class RAGClient:
    """Chat, ingest and removal calls against the RAG server."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        chat_path: str = "/chat",
        upload_document_path: str = "/upload",
        remove_document_path: str = "/document",
        remove_space_path: str = "/space",
    ):
        self.http = http_client
        self.base_url = base_url.rstrip("/")
        self.chat_path = chat_path
        self.upload_document_path = upload_document_path
        self.remove_document_path = remove_document_path
        self.remove_space_path = remove_space_path

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _send(self, action: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.http.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            logger.error("RAG server %s failed: %s", action, e)
            raise UpstreamError(f"failed to {action}: {e}") from e

        if response.status_code != httpx.codes.OK:
            logger.error(
                "RAG server %s returned %d: %s", action, response.status_code, response.text
            )
            raise UpstreamError(
                f"failed to {action}, status: {response.status_code}, response: {response.text}"
            )
        return response

    async def chat(self, session_id: int, space_id: int, query: str) -> str:
        """Return the generated answer for ``query`` within a session."""
        response = await self._send(
            "chat",
            "POST",
            self.chat_path,
            json={"session_id": session_id, "space_id": space_id, "input": query},
        )
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"failed to parse response: {e}, raw response: {response.text}") from e
        output = data.get("output") if isinstance(data, dict) else None
        if not isinstance(output, str):
            raise UpstreamError(f"RAG response has no output: {response.text}")
        return output

    async def upload_document(
        self,
        space_id: int,
        document_id: int,
        filename: str,
        data: bytes,
        mime_type: Optional[str],
        file_path: str,
    ) -> None:
        """Send a stored document to the RAG server for ingestion."""
        await self._send(
            "upload document",
            "POST",
            self.upload_document_path,
            files={"file": (filename, data, mime_type or "application/octet-stream")},
            data={"spaceId": str(space_id), "docId": str(document_id), "filePath": file_path},
        )
        logger.info("Sent document %d of space %d to RAG server", document_id, space_id)

    async def remove_document(self, document_id: int, space_id: int) -> None:
        await self._send(
            "remove document",
            "DELETE",
            self.remove_document_path,
            json={"docId": document_id, "spaceId": space_id},
        )

    async def remove_space(self, space_id: int) -> None:
        await self._send(
            "remove space",
            "DELETE",
            self.remove_space_path,
            json={"spaceId": space_id},
        )
