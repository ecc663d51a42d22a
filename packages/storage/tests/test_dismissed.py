"""Tests for the dismissed-alerts store."""

from __future__ import annotations

from thub_storage.dismissed import DismissedAlerts
from thub_storage.keys import DISMISSED_ALERTS_KEY


async def test_dismiss_accumulates_without_duplicates(storage):
    dismissed = DismissedAlerts(storage)
    assert await dismissed.read() == []

    assert await dismissed.dismiss(11) == [11]
    assert await dismissed.dismiss(10) == [11, 10]
    assert await dismissed.dismiss(11) == [11, 10]
    assert await storage.get(DISMISSED_ALERTS_KEY) == "[11, 10]"


async def test_dismissals_survive_a_new_store(storage):
    await DismissedAlerts(storage).dismiss(4)
    assert await DismissedAlerts(storage).read() == [4]


async def test_clear(storage):
    dismissed = DismissedAlerts(storage)
    await dismissed.dismiss(4)
    await dismissed.clear()
    assert await dismissed.read() == []


async def test_malformed_record_reads_as_empty(storage):
    await storage.set(DISMISSED_ALERTS_KEY, "oops")
    assert await DismissedAlerts(storage).read() == []
    await storage.set(DISMISSED_ALERTS_KEY, '{"id": 3}')
    assert await DismissedAlerts(storage).read() == []


async def test_broken_storage_is_tolerated(broken_storage, caplog):
    dismissed = DismissedAlerts(broken_storage)
    assert await dismissed.read() == []
    assert await dismissed.dismiss(7) == [7]
    await dismissed.clear()
    assert "Failed to save dismissed alerts" in caplog.text
