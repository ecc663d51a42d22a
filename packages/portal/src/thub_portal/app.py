"""Composition root.

Portal creates every shared service exactly once and hands them to the pieces
that need them; nothing reaches for a module-level singleton. `async with
Portal() as portal:` starts the cache's garbage collector and, on exit, tears
down the cache, the HTTP session and the storage connection in that order.
"""

from __future__ import annotations

import logging

import httpx
from thub_api.client import ApiClient
from thub_auth.controller import AuthController
from thub_auth.notifications import NotificationCenter
from thub_query.cache import QueryCache
from thub_shared.settings import ClientSettings, load_settings
from thub_storage.client import StorageAdapter, create_storage
from thub_storage.dismissed import DismissedAlerts
from thub_storage.remembered import RememberedUserStore

from thub_portal.alerts import AlertBanner
from thub_portal.certificates import CertificateVerifier
from thub_portal.exam_selector import ExamSelector

logger = logging.getLogger(__name__)


class Portal:
    def __init__(
        self,
        settings: ClientSettings | None = None,
        storage: StorageAdapter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.cache = QueryCache(stale_time=self.settings.stale_time, gc_time=self.settings.gc_time)
        self.storage = storage or create_storage()
        self.api = ApiClient.from_settings(self.settings, transport=transport)
        self.notifications = NotificationCenter()
        self.remembered = RememberedUserStore(self.storage)
        self.dismissed_alerts = DismissedAlerts(self.storage)
        self.auth = AuthController(self.api, self.cache, self.remembered, self.notifications)

    async def start(self) -> None:
        logger.info(f"Starting portal client for {self.settings.api_base_url}")
        await self.cache.start()

    async def close(self) -> None:
        await self.cache.close()
        await self.api.close()
        await self.storage.close()
        logger.info("Portal client closed")

    async def __aenter__(self) -> Portal:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def exam_selector(
        self,
        course_id: int,
        show_only_course_exams: bool = False,
    ) -> ExamSelector:
        return ExamSelector(
            self.cache,
            self.api,
            course_id,
            show_only_course_exams=show_only_course_exams,
            debounce_ms=self.settings.debounce_ms,
        )

    def alert_banner(self) -> AlertBanner:
        return AlertBanner(self.cache, self.api, self.dismissed_alerts)

    def certificate_verifier(self) -> CertificateVerifier:
        return CertificateVerifier(self.api, self.notifications)
