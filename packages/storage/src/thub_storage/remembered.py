"""Remember-me persistence for the login form.

Stores only the email address (never the password) with the time it was saved.
Entries older than 30 days are treated as absent and deleted by the read that
finds them; nothing sweeps them proactively.

Storage is best-effort: a failing backend is logged and otherwise ignored, so
remember-me can never break a login or logout.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from pydantic import BaseModel, ValidationError

from thub_shared.errors import StorageUnavailableError
from thub_storage.client import StorageAdapter
from thub_storage.keys import REMEMBERED_USER_KEY

logger = logging.getLogger(__name__)

# 30 days in milliseconds
EXPIRATION_MS = 30 * 24 * 60 * 60 * 1000


class RememberedCredentials(BaseModel):
    email: str
    timestamp: int  # epoch milliseconds


def _now_ms() -> int:
    return int(time.time() * 1000)


class RememberedUserStore:
    """save / read / clear for the remembered login email."""

    def __init__(
        self,
        storage: StorageAdapter,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._storage = storage
        self._clock = clock

    async def save(self, email: str) -> None:
        record = RememberedCredentials(email=email, timestamp=self._clock())
        try:
            await self._storage.set(REMEMBERED_USER_KEY, record.model_dump_json())
        except StorageUnavailableError as e:
            logger.warning(f"Failed to save remembered user: {e}")

    async def read(self) -> str | None:
        """Return the remembered email, or None if absent, expired or unreadable."""
        try:
            raw = await self._storage.get(REMEMBERED_USER_KEY)
        except StorageUnavailableError as e:
            logger.warning(f"Failed to retrieve remembered user: {e}")
            return None
        if not raw:
            return None

        try:
            record = RememberedCredentials.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring malformed remembered user record: {e}")
            return None

        if self._clock() - record.timestamp > EXPIRATION_MS:
            await self.clear()
            return None
        return record.email

    async def clear(self) -> None:
        try:
            await self._storage.delete(REMEMBERED_USER_KEY)
        except StorageUnavailableError as e:
            logger.warning(f"Failed to clear remembered user: {e}")
