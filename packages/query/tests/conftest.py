"""Query test fixtures: a controllable clock and a recording fetcher."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from thub_query.keys import QueryKey


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingFetcher:
    """Fetcher that records every key it is called with.

    Returns `{"key": key, "call": n}`. Set `gate` to an asyncio.Event to hold
    every fetch until the test sets it; set `error` to make calls fail.
    """

    def __init__(self) -> None:
        self.calls: list[QueryKey] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def __call__(self, key: QueryKey) -> Any:
        self.calls.append(key)
        call = len(self.calls)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return {"key": key, "call": call}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> RecordingFetcher:
    return RecordingFetcher()
