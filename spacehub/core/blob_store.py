"""
Blob storage for uploaded document files.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Uploads bytes under a derived unique key and returns a URL."""

    @abstractmethod
    async def upload(self, filename: str, data: bytes) -> str:
        ...

    @abstractmethod
    async def delete(self, url: str) -> None:
        ...


def derive_blob_key(filename: str) -> str:
    """Unique storage key that keeps the original extension."""
    _, ext = os.path.splitext(filename)
    return f"{uuid4().hex}{ext.lower()}"


class LocalBlobStore(BlobStore):
    """Stores files on the local filesystem under ``root``."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def upload(self, filename: str, data: bytes) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        key = derive_blob_key(filename)
        path = self.root / key
        with open(path, "wb") as f:
            f.write(data)
        logger.info("Stored blob %s (%d bytes)", key, len(data))
        return f"{self.base_url}/{key}"

    def path_for(self, url: str) -> Path:
        key = url.rsplit("/", 1)[-1]
        return self.root / key

    async def delete(self, url: str) -> None:
        path = self.path_for(url)
        if path.exists():
            path.unlink()
            logger.info("Deleted blob %s", path.name)
