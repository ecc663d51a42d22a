"""Session store: get / set / subscribe over the cached session user.

The session lives in the shared query cache under user_key(), so a login that
writes the user and a later probe of GET /api/user agree on one value.
Subscribers hear about changes of the user itself, not about every fetch flag
flipping on the cache entry.
"""

from __future__ import annotations

from collections.abc import Callable

from thub_query.cache import QueryCache, QueryEntry
from thub_query.keys import user_key
from thub_shared.auth_models import SessionUser

SessionListener = Callable[[SessionUser | None], None]

_UNSET = object()


class SessionStore:
    def __init__(self, cache: QueryCache) -> None:
        self._cache = cache

    def get(self) -> SessionUser | None:
        return self._cache.get_query_data(user_key())

    def set(self, session: SessionUser | None) -> None:
        self._cache.set_query_data(user_key(), session)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call listener with the new user whenever it changes (None on logout)."""
        last: object = _UNSET

        def on_entry(entry: QueryEntry) -> None:
            nonlocal last
            if not entry.has_data or entry.data == last:
                return
            last = entry.data
            listener(entry.data)

        return self._cache.subscribe(user_key(), on_entry)
