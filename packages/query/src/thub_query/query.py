"""Optimized query: the cache plus optional debounce and memoize.

Memoize wraps the raw fetcher and debounce wraps the result. That way memoized
results are always keyed by the key that was actually fetched, and a memoized
key skips the network even though it still waits out the debounce window.

Debounce is last-writer-wins across keys: when a burst of calls for keys A then
B fires, the callers for A receive B's result. The cache would then hold B's
data under A, so OptimizedQuery marks A's entry stale right away; the next read
of A fetches A for real. Each fetch checks the key its own window fetched, so
a window that fetched A for A's callers leaves A's entry alone even when a
later window has already fired for B.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from thub_query.cache import Fetcher, QueryCache, QueryResult
from thub_query.keys import QueryKey
from thub_query.middleware import Debouncer, Middleware, compose, debounced, memoized


def build_fetcher(
    fetcher: Fetcher,
    debounce_ms: int | None = None,
    memoize: bool = False,
) -> Fetcher:
    middlewares: list[Middleware] = []
    if memoize:
        middlewares.append(memoized())
    if debounce_ms and debounce_ms > 0:
        middlewares.append(debounced(debounce_ms / 1000))
    return compose(fetcher, *middlewares)


class OptimizedQuery:
    """A reusable query bound to one cache and one wrapped fetcher.

    Build it once and call it for every key change: the debounce window only
    means something if successive calls go through the same wrapper. A pending
    debounce window is dropped when the cache closes, or earlier via close().
    """

    def __init__(
        self,
        cache: QueryCache,
        fetcher: Fetcher,
        debounce_ms: int | None = None,
        memoize: bool = False,
        stale_time: float | None = None,
    ) -> None:
        self.cache = cache
        self.stale_time = stale_time
        self.fetcher = build_fetcher(fetcher, debounce_ms=debounce_ms, memoize=memoize)
        self._superseded: set[QueryKey] = set()
        self._debouncer = self.fetcher if isinstance(self.fetcher, Debouncer) else None
        self._unregister: Callable[[], None] | None = None
        if self._debouncer is not None:
            self._unregister = cache.on_close(self._debouncer.cancel)

    async def _fetch_debounced(self, key: QueryKey) -> Any:
        fired_key, data = await self._debouncer.fetch_with_key(key)
        if fired_key != key:
            self._superseded.add(key)
        return data

    @property
    def _cache_fetcher(self) -> Fetcher:
        if self._debouncer is not None:
            return self._fetch_debounced
        return self.fetcher

    def _release_superseded(self, key: QueryKey) -> None:
        if key in self._superseded:
            self._superseded.discard(key)
            self.cache.invalidate_entry(key)

    async def fetch(self, key: QueryKey) -> Any:
        """Cached data for key; raises if the fetch fails."""
        try:
            return await self.cache.fetch_query(key, self._cache_fetcher, self.stale_time)
        finally:
            self._release_superseded(key)

    async def query(self, key: QueryKey) -> QueryResult:
        """Cached data for key as a QueryResult; failures land on .error."""
        result = await self.cache.query(key, self._cache_fetcher, self.stale_time)
        self._release_superseded(key)
        return result

    def close(self) -> None:
        """Drop any pending debounce window and stop listening for the cache's close."""
        if self._debouncer is not None:
            self._debouncer.cancel()
        if self._unregister is not None:
            self._unregister()
            self._unregister = None


async def optimized_query(
    cache: QueryCache,
    key: QueryKey,
    fetcher: Fetcher,
    debounce_ms: int | None = None,
    memoize: bool = False,
    stale_time: float | None = None,
) -> QueryResult:
    """One-shot form of OptimizedQuery."""
    query = OptimizedQuery(cache, fetcher, debounce_ms, memoize, stale_time)
    try:
        return await query.query(key)
    finally:
        query.close()
