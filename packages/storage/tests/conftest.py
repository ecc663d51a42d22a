"""Storage test fixtures.

BrokenRedis raises on every call, the way an unreachable Upstash endpoint
does, so tests can check that helpers tolerate a dead backend.
"""

from __future__ import annotations

import pytest
from thub_storage.client import StorageAdapter


class BrokenRedis:
    async def get(self, key: str) -> str | None:
        raise ConnectionError("storage offline")

    async def set(self, key: str, value: str) -> None:
        raise ConnectionError("storage offline")

    async def delete(self, *keys: str) -> None:
        raise ConnectionError("storage offline")


class Clock:
    """Settable epoch-milliseconds clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance_days(self, days: float) -> None:
        self.now += int(days * 24 * 60 * 60 * 1000)


@pytest.fixture
def broken_storage() -> StorageAdapter:
    return StorageAdapter(BrokenRedis())


@pytest.fixture
def clock() -> Clock:
    return Clock()
