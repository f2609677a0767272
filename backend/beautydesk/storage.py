"""Durable client storage for console state.

Two backends share one small async interface (get_json / set_json / delete):
  - RedisStorage   survives console restarts; used in deployed consoles
  - MemoryStorage  process-local dict; used in development and tests

Values are JSON documents. Write failures surface as StorageError so callers
can decide whether a failed write is fatal (onboarding completion) or
best-effort (reset).
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from beautydesk.config import Settings
from beautydesk.errors import StorageError

logger = logging.getLogger(__name__)


class Storage:
    """Key/value interface implemented by each backend."""

    async def get_json(self, key: str) -> Any | None:
        raise NotImplementedError

    async def set_json(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def delete(self, *keys: str) -> None:
        raise NotImplementedError

    async def ping(self) -> None:
        """Raise StorageError when the backend cannot be reached."""
        return None

    async def close(self) -> None:
        return None


class MemoryStorage(Storage):
    def __init__(self):
        self._data: dict[str, str] = {}

    async def get_json(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable value under %s", key)
            return None

    async def set_json(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, default=str)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class RedisStorage(Storage):
    def __init__(self, url: str, prefix: str = "beautydesk"):
        self._client: redis.Redis = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get_json(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable value under %s", key)
            return None

    async def set_json(self, key: str, value: Any) -> None:
        try:
            await self._client.set(self._key(key), json.dumps(value, default=str))
        except redis.RedisError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._client.delete(*(self._key(k) for k in keys))
        except redis.RedisError as e:
            raise StorageError(f"Failed to delete {', '.join(keys)}: {e}") from e

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except redis.RedisError as e:
            raise StorageError(f"Redis unreachable: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class ScopedStorage(Storage):
    """View of another backend with every key under one namespace.

    Each console session gets its own scope, the way each browser profile
    had its own local storage.
    """

    def __init__(self, inner: Storage, namespace: str):
        self._inner = inner
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get_json(self, key: str) -> Any | None:
        return await self._inner.get_json(self._key(key))

    async def set_json(self, key: str, value: Any) -> None:
        await self._inner.set_json(self._key(key), value)

    async def delete(self, *keys: str) -> None:
        await self._inner.delete(*(self._key(k) for k in keys))


def build_storage(settings: Settings) -> Storage:
    """Return the storage backend selected by configuration."""
    if settings.storage_backend == "redis":
        return RedisStorage(settings.redis_url)
    return MemoryStorage()
