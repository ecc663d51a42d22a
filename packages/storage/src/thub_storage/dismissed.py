"""Dismissed alert banners, persisted so a dismissal survives restarts."""

from __future__ import annotations

import json
import logging

from thub_shared.errors import StorageUnavailableError
from thub_storage.client import StorageAdapter
from thub_storage.keys import DISMISSED_ALERTS_KEY

logger = logging.getLogger(__name__)


class DismissedAlerts:
    def __init__(self, storage: StorageAdapter) -> None:
        self._storage = storage

    async def read(self) -> list[int]:
        try:
            raw = await self._storage.get(DISMISSED_ALERTS_KEY)
        except StorageUnavailableError as e:
            logger.warning(f"Failed to read dismissed alerts: {e}")
            return []
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed dismissed alerts record")
            return []
        return [int(i) for i in ids] if isinstance(ids, list) else []

    async def dismiss(self, alert_id: int) -> list[int]:
        """Add an alert id to the dismissed list and return the updated list."""
        ids = await self.read()
        if alert_id not in ids:
            ids.append(alert_id)
        try:
            await self._storage.set(DISMISSED_ALERTS_KEY, json.dumps(ids))
        except StorageUnavailableError as e:
            logger.warning(f"Failed to save dismissed alerts: {e}")
        return ids

    async def clear(self) -> None:
        try:
            await self._storage.delete(DISMISSED_ALERTS_KEY)
        except StorageUnavailableError as e:
            logger.warning(f"Failed to clear dismissed alerts: {e}")
