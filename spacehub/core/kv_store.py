"""
Ephemeral keyed store for short-lived tokens.

Holds OAuth exchange-state tokens and temporary MFA tokens. Values are JSON
serialized. One store instance is built per application and shared through
``app.state``.
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KVStore(ABC):
    """Set-with-TTL / get / delete over JSON values."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None if missing or expired."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def pop(self, key: str) -> Optional[Any]:
        """Read and remove a value in one call (one-time tokens)."""
        value = await self.get(key)
        if value is not None:
            await self.delete(key)
        return value

    async def close(self) -> None:
        return None


class InMemoryKVStore(KVStore):
    """
    Process-local store guarded by a lock.

    Expired entries are dropped lazily on read. Only suitable when the API
    runs as a single worker process.
    """

    def __init__(self):
        self._data: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        encoded = json.dumps(value)
        expires_at = time.monotonic() + ttl_seconds
        with self._lock:
            self._data[key] = (encoded, expires_at)

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            encoded, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._data[key]
                return None
        return json.loads(encoded)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    async def pop(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.pop(key, None)
        if entry is None:
            return None
        encoded, expires_at = entry
        if time.monotonic() >= expires_at:
            return None
        return json.loads(encoded)


class RedisKVStore(KVStore):
    """Redis-backed store for multi-worker deployments."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client
        logger.info("Redis key-value store initialized")

    @classmethod
    def from_url(cls, url: str) -> "RedisKVStore":
        return cls(redis.from_url(url, decode_responses=True))

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.redis.setex(key, ttl_seconds, json.dumps(value))

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def pop(self, key: str) -> Optional[Any]:
        raw = await self.redis.getdel(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def close(self) -> None:
        await self.redis.aclose()


def create_kv_store(redis_url: str) -> KVStore:
    """Build the store for the configured backend."""
    if redis_url:
        return RedisKVStore.from_url(redis_url)
    logger.info("No REDIS_URL configured, using in-process key-value store")
    return InMemoryKVStore()
