"""User-facing notifications (the portal's toasts)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Variant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    title: str
    description: str
    variant: Variant = Variant.DEFAULT
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


NotificationListener = Callable[[Notification], None]


class NotificationCenter:
    """Fan-out of notifications to whoever renders them, plus a history."""

    def __init__(self, history_size: int = 50) -> None:
        self.history_size = history_size
        self.history: list[Notification] = []
        self._listeners: list[NotificationListener] = []

    def notify(
        self,
        title: str,
        description: str,
        variant: Variant = Variant.DEFAULT,
    ) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self.history.append(notification)
        del self.history[: -self.history_size]
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception(f"Notification listener failed for '{title}'")
        return notification

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def latest(self) -> Notification | None:
        return self.history[-1] if self.history else None
