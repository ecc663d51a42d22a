"""Auth test fixtures: an AuthController wired to the in-memory THub server."""

from __future__ import annotations

import pytest
from thub_auth.controller import AuthController
from thub_auth.notifications import NotificationCenter
from thub_storage.remembered import RememberedUserStore


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def remembered(storage) -> RememberedUserStore:
    return RememberedUserStore(storage)


@pytest.fixture
def auth(api, cache, remembered, notifier) -> AuthController:
    return AuthController(api, cache, remembered, notifier)
