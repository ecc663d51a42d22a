"""Query cache service.

One QueryCache instance is created when the application starts and closed when
it shuts down; every consumer receives it explicitly. It owns three maps:

  - entries:   key -> QueryEntry (last known data, error, staleness)
  - in-flight: key -> asyncio.Task for the fetch currently running
  - listeners: key -> callbacks notified on every entry change

Coalescing: while a fetch for a key is in flight, every other caller awaits the
same task, so N concurrent subscribers cost one request.

Superseded fetches: every fetch start and every direct write bumps the entry's
generation. A fetch only writes its result back if its generation is still
current; otherwise the result goes to the callers that awaited it and nowhere
else. This keeps a slow, older request from clobbering newer data (for example
a session probe that resolves after a login already wrote the user). A
superseded fetch is still tracked until it finishes, so close() cancels it too.

Usage:
    async with QueryCache(stale_time=300) as cache:
        data = await cache.fetch_query(exams_key(7), fetcher)
        result = await cache.query(active_alerts_key(), fetcher)
        if result.error:
            ...
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from thub_query.keys import QueryKey, matches_prefix

logger = logging.getLogger(__name__)

Fetcher = Callable[[QueryKey], Awaitable[Any]]


@dataclass
class QueryEntry:
    """State of one cached query."""

    key: QueryKey
    data: Any = None
    error: BaseException | None = None
    is_fetching: bool = False
    is_invalidated: bool = False
    updated_at: float | None = None  # last successful data write (monotonic)
    touched_at: float = 0.0  # last change of any kind (monotonic), drives GC
    generation: int = 0
    fetcher: Fetcher | None = None

    @property
    def has_data(self) -> bool:
        return self.updated_at is not None

    def is_stale(self, stale_time: float, now: float) -> bool:
        if self.updated_at is None or self.is_invalidated:
            return True
        return now - self.updated_at >= stale_time


@dataclass(frozen=True)
class QueryResult:
    """Snapshot of a query as the rendering layer consumes it."""

    data: Any = None
    error: BaseException | None = None
    is_loading: bool = False
    is_fetching: bool = False

    @property
    def is_success(self) -> bool:
        return self.error is None and not self.is_loading


Listener = Callable[[QueryEntry], None]


def _consume_exception(task: asyncio.Task) -> None:
    """Mark a finished task's exception as retrieved.

    The exception is delivered to awaiting callers and recorded on the entry;
    a fetch nobody awaited (a prefetch) must not log "exception never retrieved".
    """
    if not task.cancelled():
        task.exception()


class QueryCache:
    """Process-wide query cache with explicit start/close lifecycle."""

    def __init__(
        self,
        stale_time: float = 300.0,
        gc_time: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_time = stale_time
        self.gc_time = gc_time
        self._clock = clock
        self._entries: dict[QueryKey, QueryEntry] = {}
        self._inflight: dict[QueryKey, asyncio.Task] = {}
        self._superseded: set[asyncio.Task] = set()
        self._listeners: dict[QueryKey, list[Listener]] = defaultdict(list)
        self._close_callbacks: list[Callable[[], None]] = []
        self._gc_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background garbage collector."""
        if self._gc_task is None:
            self._gc_task = asyncio.create_task(self._gc_loop())

    async def close(self) -> None:
        """Stop the collector, cancel in-flight fetches and drop all state."""
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Query cache close callback failed")

        if self._gc_task is not None:
            self._gc_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._gc_task
            self._gc_task = None

        inflight = [*self._inflight.values(), *self._superseded]
        for task in inflight:
            task.cancel()
        if inflight:
            await asyncio.gather(*inflight, return_exceptions=True)

        self._inflight.clear()
        self._superseded.clear()
        self._entries.clear()
        self._listeners.clear()

    def on_close(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run callback when the cache closes. Returns a function that unregisters it."""
        self._close_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._close_callbacks:
                self._close_callbacks.remove(callback)

        return unregister

    async def __aenter__(self) -> QueryCache:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, key: QueryKey) -> QueryEntry | None:
        return self._entries.get(key)

    def get_query_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def get_result(self, key: QueryKey) -> QueryResult:
        """Current snapshot for a key, without fetching."""
        entry = self._entries.get(key)
        if entry is None:
            return QueryResult()
        return QueryResult(
            data=entry.data,
            error=entry.error,
            is_loading=entry.is_fetching and not entry.has_data,
            is_fetching=entry.is_fetching,
        )

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch_query(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        stale_time: float | None = None,
    ) -> Any:
        """Return fresh data for key, fetching at most once across concurrent callers.

        Raises whatever the fetcher raised; the error is also recorded on the entry.
        """
        entry = self._entry(key)
        entry.fetcher = fetcher
        stale_time = self.stale_time if stale_time is None else stale_time
        if not entry.is_stale(stale_time, self._clock()):
            return entry.data

        task = self._inflight.get(key)
        if task is None:
            task = self._start_fetch(entry, fetcher)
        # shield: one caller giving up must not cancel the fetch the others share
        return await asyncio.shield(task)

    async def query(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        stale_time: float | None = None,
    ) -> QueryResult:
        """Like fetch_query, but failures land on QueryResult.error instead of raising."""
        try:
            await self.fetch_query(key, fetcher, stale_time)
        except Exception as e:
            logger.info(f"Query {key} failed: {e}")
        return self.get_result(key)

    def prefetch_query(self, key: QueryKey, fetcher: Fetcher) -> None:
        """Start a fetch in the background if the entry is stale; don't wait for it."""
        entry = self._entry(key)
        entry.fetcher = fetcher
        if entry.is_stale(self.stale_time, self._clock()) and key not in self._inflight:
            self._start_fetch(entry, fetcher)

    async def refetch_query(self, key: QueryKey, fetcher: Fetcher | None = None) -> Any:
        """Force a new fetch, superseding any fetch already in flight for key."""
        entry = self._entry(key)
        fetcher = fetcher or entry.fetcher
        if fetcher is None:
            raise ValueError(f"No fetcher known for query {key}")
        entry.fetcher = fetcher
        return await asyncio.shield(self._start_fetch(entry, fetcher))

    def _start_fetch(self, entry: QueryEntry, fetcher: Fetcher) -> asyncio.Task:
        self._retire(entry.key)
        entry.generation += 1
        entry.is_fetching = True
        self._touch(entry)
        task = asyncio.create_task(self._run_fetch(entry.key, fetcher, entry.generation))
        task.add_done_callback(_consume_exception)
        self._inflight[entry.key] = task
        return task

    def _retire(self, key: QueryKey) -> None:
        """Stop tracking key's in-flight fetch as current; close() still cancels it."""
        task = self._inflight.pop(key, None)
        if task is not None and not task.done():
            self._superseded.add(task)
            task.add_done_callback(self._superseded.discard)

    async def _run_fetch(self, key: QueryKey, fetcher: Fetcher, generation: int) -> Any:
        try:
            data = await fetcher(key)
        except asyncio.CancelledError:
            self._settle(key, generation, cancelled=True)
            raise
        except Exception as e:
            self._settle(key, generation, error=e)
            raise
        self._settle(key, generation, data=data)
        return data

    def _settle(
        self,
        key: QueryKey,
        generation: int,
        data: Any = None,
        error: BaseException | None = None,
        cancelled: bool = False,
    ) -> None:
        entry = self._entries.get(key)
        if entry is None or entry.generation != generation:
            logger.debug(f"Discarding superseded result for {key} (generation {generation})")
            return

        self._inflight.pop(key, None)
        entry.is_fetching = False
        if cancelled:
            pass
        elif error is not None:
            entry.error = error
        else:
            entry.data = data
            entry.error = None
            entry.is_invalidated = False
            entry.updated_at = self._clock()
        self._touch(entry)

    # ------------------------------------------------------------------
    # Writes and invalidation
    # ------------------------------------------------------------------

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        """Write data directly, superseding any fetch in flight for key."""
        entry = self._entry(key)
        entry.generation += 1
        self._retire(key)
        entry.is_fetching = False
        entry.data = data
        entry.error = None
        entry.is_invalidated = False
        entry.updated_at = self._clock()
        self._touch(entry)

    def invalidate_entry(self, key: QueryKey) -> None:
        """Mark one entry stale without refetching it."""
        entry = self._entries.get(key)
        if entry is not None and not entry.is_invalidated:
            entry.is_invalidated = True
            self._touch(entry)

    async def invalidate_queries(self, prefix: QueryKey) -> None:
        """Mark matching entries stale and refetch the ones somebody subscribes to.

        Refetch failures are recorded on their entries; this never raises them.
        """
        refetches = []
        for key, entry in list(self._entries.items()):
            if not matches_prefix(key, prefix):
                continue
            entry.is_invalidated = True
            self._touch(entry)
            if self._listeners.get(key) and entry.fetcher is not None:
                refetches.append(self._start_fetch(entry, entry.fetcher))

        if refetches:
            await asyncio.gather(*refetches, return_exceptions=True)

    def remove_queries(self, prefix: QueryKey) -> int:
        """Drop matching entries. In-flight fetches finish but write nothing back."""
        removed = [key for key in self._entries if matches_prefix(key, prefix)]
        for key in removed:
            del self._entries[key]
            self._retire(key)
        return len(removed)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, key: QueryKey, listener: Listener) -> Callable[[], None]:
        """Call listener with the entry on every change. Returns an unsubscribe function."""
        self._listeners[key].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners and listener in listeners:
                listeners.remove(listener)
                if not listeners:
                    del self._listeners[key]

        return unsubscribe

    def _entry(self, key: QueryKey) -> QueryEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryEntry(key=key, touched_at=self._clock())
            self._entries[key] = entry
        return entry

    def _touch(self, entry: QueryEntry) -> None:
        entry.touched_at = self._clock()
        for listener in list(self._listeners.get(entry.key, ())):
            try:
                listener(entry)
            except Exception:
                logger.exception(f"Query listener for {entry.key} failed")

    # ------------------------------------------------------------------
    # Garbage collection
    # ------------------------------------------------------------------

    def collect_garbage(self) -> int:
        """Drop idle entries: no subscribers, nothing in flight, untouched for gc_time."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if not self._listeners.get(key)
            and key not in self._inflight
            and now - entry.touched_at >= self.gc_time
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Collected {len(expired)} idle query entries")
        return len(expired)

    async def _gc_loop(self) -> None:
        interval = max(self.gc_time / 2, 1.0)
        while True:
            await asyncio.sleep(interval)
            self.collect_garbage()
