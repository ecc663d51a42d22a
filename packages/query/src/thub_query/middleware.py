"""Composable fetcher middleware.

Every fetcher has the same shape, `async (key) -> data`, so behaviours can be
layered as plain wrappers and tested one at a time:

    fetcher = compose(raw_fetcher, memoized(), debounced(0.3))

  debounce  collapses a burst of calls into one fetch once the caller has been
            quiet for `delay` seconds. The fetch uses the last key of the
            burst and every caller in the burst receives its result.
  memoize   remembers successful results per key for the wrapper's lifetime;
            identical keys skip the network entirely.

Neither wrapper cancels work in flight on its own. A burst that fires while an
earlier burst's fetch is still running starts its own fetch; each burst's
callers get their own burst's result. Debouncer.cancel() stops everything at
shutdown. Keeping stale results out of the cache is the QueryCache's job
(generation counter), not the middleware's.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from thub_query.keys import QueryKey

logger = logging.getLogger(__name__)

Fetcher = Callable[[QueryKey], Awaitable[Any]]
Middleware = Callable[[Fetcher], Fetcher]


def _resolve_waiters(waiters: list[asyncio.Future], task: asyncio.Task) -> None:
    """Fan a finished fetch out to every caller of its debounce window."""
    if task.cancelled():
        for waiter in waiters:
            waiter.cancel()
        return
    error = task.exception()
    for waiter in waiters:
        if waiter.done():
            continue
        if error is not None:
            waiter.set_exception(error)
        else:
            waiter.set_result(task.result())


@dataclass
class DebounceWindow:
    """One burst of calls. `key` is the latest key asked for; once fired, the key fetched."""

    key: QueryKey
    waiters: list[asyncio.Future] = field(default_factory=list)
    timer: asyncio.TimerHandle | None = None


class Debouncer:
    """Debounced fetcher. Use through `debounce()` or `debounced()`."""

    def __init__(self, fetcher: Fetcher, delay: float) -> None:
        if delay < 0:
            raise ValueError(f"Debounce delay must be non-negative, got {delay}")
        self._fetcher = fetcher
        self.delay = delay
        self.generation = 0
        self._window: DebounceWindow | None = None
        self._tasks: set[asyncio.Task] = set()

    async def __call__(self, key: QueryKey) -> Any:
        _, data = await self.fetch_with_key(key)
        return data

    async def fetch_with_key(self, key: QueryKey) -> tuple[QueryKey, Any]:
        """Like calling the debouncer, but also return the key its window fetched."""
        loop = asyncio.get_running_loop()
        window = self._window
        if window is None:
            window = self._window = DebounceWindow(key=key)
        window.key = key
        waiter = loop.create_future()
        window.waiters.append(waiter)
        if window.timer is not None:
            window.timer.cancel()
        window.timer = loop.call_later(self.delay, self._fire, window)
        data = await waiter
        return window.key, data

    def _fire(self, window: DebounceWindow) -> None:
        if self._window is window:
            self._window = None
        window.timer = None
        if all(waiter.done() for waiter in window.waiters):
            logger.debug(f"Debounce window for {window.key} dropped, no caller is waiting")
            return

        self.generation += 1
        logger.debug(
            f"Debounce window {self.generation} fired for {window.key} "
            f"({len(window.waiters)} callers)"
        )
        task = asyncio.ensure_future(self._fetcher(window.key))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(functools.partial(_resolve_waiters, window.waiters))

    def cancel(self) -> None:
        """Drop the pending window and cancel fired fetches. Their callers get CancelledError."""
        window, self._window = self._window, None
        if window is not None:
            if window.timer is not None:
                window.timer.cancel()
            for waiter in window.waiters:
                waiter.cancel()
        for task in list(self._tasks):
            task.cancel()


def debounce(fetcher: Fetcher, delay: float) -> Debouncer:
    """Wrap fetcher so bursts of calls within `delay` seconds make one fetch."""
    return Debouncer(fetcher, delay)


def memoize(fetcher: Fetcher) -> Fetcher:
    """Wrap fetcher so each key is fetched once per wrapper lifetime.

    Concurrent calls for the same key share one fetch. Failures are not
    remembered: the next call for that key tries again.
    """
    results: dict[QueryKey, Any] = {}
    pending: dict[QueryKey, asyncio.Task] = {}

    def _store(key: QueryKey, task: asyncio.Task) -> None:
        pending.pop(key, None)
        if task.cancelled() or task.exception() is not None:
            return
        results[key] = task.result()

    @functools.wraps(fetcher)
    async def wrapper(key: QueryKey) -> Any:
        if key in results:
            return results[key]
        task = pending.get(key)
        if task is None:
            task = asyncio.ensure_future(fetcher(key))
            task.add_done_callback(functools.partial(_store, key))
            pending[key] = task
        return await asyncio.shield(task)

    wrapper.cache_clear = results.clear  # type: ignore[attr-defined]
    return wrapper


def debounced(delay: float) -> Middleware:
    return functools.partial(debounce, delay=delay)


def memoized() -> Middleware:
    return memoize


def compose(fetcher: Fetcher, *middlewares: Middleware) -> Fetcher:
    """Apply middlewares in order; the last one listed is the outermost wrapper."""
    for middleware in middlewares:
        fetcher = middleware(fetcher)
    return fetcher
