"""Key-value storage adapter for client-side persistence.

Normalizes the interface between the Upstash SDK (cloud) and fakeredis (local
dev and tests). Both speak get/set/delete; they differ in what they return
(Upstash yields str, redis-py may yield bytes) and in their exception types.
StorageAdapter smooths out both and raises StorageUnavailableError for any
backend failure, so helpers have exactly one exception to tolerate.

Environment detection:
  - UPSTASH_REDIS_REST_URL set -> Upstash SDK
  - Otherwise -> fakeredis (in-process, nothing survives the process)

Usage:
    from thub_storage.client import create_storage

    storage = create_storage()
    await storage.set("thub_remembered_user", json_str)
    value = await storage.get("thub_remembered_user")
"""

from __future__ import annotations

import logging
import os
from typing import Any

from thub_shared.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class StorageAdapter:
    """Unified async key-value interface over Upstash SDK or fakeredis."""

    def __init__(self, raw_client: Any, is_upstash: bool = False) -> None:
        self._client = raw_client
        self._is_upstash = is_upstash

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except Exception as e:
            raise StorageUnavailableError(f"Storage read of '{key}' failed: {e}") from e
        if value is None or isinstance(value, str):
            return value
        return value.decode()

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except Exception as e:
            raise StorageUnavailableError(f"Storage write of '{key}' failed: {e}") from e

    async def delete(self, *keys: str) -> None:
        try:
            await self._client.delete(*keys)
        except Exception as e:
            raise StorageUnavailableError(f"Storage delete of {keys} failed: {e}") from e

    async def close(self) -> None:
        """Release the backend connection. Upstash's REST client holds an HTTP session."""
        if self._is_upstash:
            await self._client.close()
        else:
            await self._client.aclose()


def create_storage() -> StorageAdapter:
    """Build a StorageAdapter for the current environment.

    Environment detection:
      - UPSTASH_REDIS_REST_URL set -> Upstash SDK
      - Otherwise -> fakeredis (in-memory, no external dependency)
    """
    if os.environ.get("UPSTASH_REDIS_REST_URL"):
        from upstash_redis.asyncio import Redis

        logger.info("Using Upstash Redis for client storage")
        return StorageAdapter(Redis.from_env(), is_upstash=True)

    from fakeredis.aioredis import FakeRedis

    logger.info("UPSTASH_REDIS_REST_URL not set, using in-memory client storage")
    return StorageAdapter(FakeRedis(decode_responses=True), is_upstash=False)
