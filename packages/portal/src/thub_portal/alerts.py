"""Site-wide alert banner.

Shows the highest-priority active alert the user hasn't dismissed. While the
alert list is loading, or if it failed to load, the banner shows nothing.
"""

from __future__ import annotations

import logging

from thub_api.client import ApiClient
from thub_api.resources import alerts_fetcher
from thub_query.cache import QueryCache
from thub_query.keys import active_alerts_key
from thub_shared.catalog_models import Alert
from thub_storage.dismissed import DismissedAlerts

logger = logging.getLogger(__name__)


class AlertBanner:
    def __init__(self, cache: QueryCache, api: ApiClient, dismissed: DismissedAlerts) -> None:
        self._cache = cache
        self._fetcher = alerts_fetcher(api)
        self._dismissed = dismissed

    async def visible_alerts(self) -> list[Alert]:
        """Active, undismissed alerts, highest priority first."""
        result = await self._cache.query(active_alerts_key(), self._fetcher)
        if result.error is not None:
            logger.warning(f"Failed to fetch alerts: {result.error}")
            return []
        dismissed = set(await self._dismissed.read())
        alerts = [a for a in result.data or [] if a.id not in dismissed]
        return sorted(alerts, key=lambda a: a.priority, reverse=True)

    async def current(self) -> Alert | None:
        alerts = await self.visible_alerts()
        return alerts[0] if alerts else None

    async def dismiss(self, alert_id: int) -> Alert | None:
        """Dismiss an alert and return the one that takes its place, if any."""
        alert = next((a for a in self._cached_alerts() if a.id == alert_id), None)
        if alert is not None and not alert.dismissable:
            raise ValueError(f"Alert {alert_id} can't be dismissed")
        await self._dismissed.dismiss(alert_id)
        logger.info(f"Dismissed alert {alert_id}")
        return await self.current()

    def _cached_alerts(self) -> list[Alert]:
        return self._cache.get_query_data(active_alerts_key()) or []
