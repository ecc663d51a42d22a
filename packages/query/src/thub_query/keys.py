"""Query key functions for the THub API.

A query key is a tuple whose first element is the endpoint path. When the
query has parameters, the second element is a tuple of (name, value) pairs
sorted by name, with None values dropped, so the same logical query always
hashes to the same key no matter how its parameters were spelled. Parameter
names are the API's own (camelCase) query-string names.

Key functions are pure: they compute key names and never touch the cache. The
default fetcher turns a key back into a GET request, so the key is also the
request description.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

QueryKey = tuple[Hashable, ...]


def make_key(endpoint: str, **params: Any) -> QueryKey:
    """Build a normalized key for an endpoint and its query parameters."""
    present = tuple(sorted((name, value) for name, value in params.items() if value is not None))
    if not present:
        return (endpoint,)
    return (endpoint, present)


def key_endpoint(key: QueryKey) -> str:
    return str(key[0])


def key_params(key: QueryKey) -> dict[str, Any]:
    """Query parameters encoded in a key, as a dict ready for httpx."""
    if len(key) < 2:
        return {}
    return dict(key[1])  # type: ignore[arg-type]


def matches_prefix(key: QueryKey, prefix: QueryKey) -> bool:
    """True if key starts with prefix. ("/api/admin/exams",) matches every exams query."""
    return key[: len(prefix)] == prefix


# ============================================================================
# Session
# ============================================================================


def user_key() -> QueryKey:
    """The current session user."""
    return make_key("/api/user")


# ============================================================================
# Catalog
# ============================================================================


def exams_key(course_id: int | None = None) -> QueryKey:
    """Admin exam list, optionally narrowed to one course."""
    return make_key("/api/admin/exams", courseId=course_id)


def active_alerts_key() -> QueryKey:
    """Alerts currently live on the site banner."""
    return make_key("/api/alerts/active")


def alerts_key() -> QueryKey:
    """Every alert, including inactive ones (admin view)."""
    return make_key("/api/alerts")


def events_key(upcoming: bool | None = True, active: bool | None = True) -> QueryKey:
    return make_key("/api/events", upcoming=upcoming, active=active)


def products_key(active: bool | None = True) -> QueryKey:
    return make_key("/api/products", active=active)


def certificate_key(certificate_id: str) -> QueryKey:
    """Public verification result for one certificate id."""
    return make_key(f"/api/certificates/verify/{certificate_id}")
