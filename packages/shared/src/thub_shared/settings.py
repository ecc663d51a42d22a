"""Client settings read from the environment.

Every value has a local-dev default, so a bare checkout talks to the dev
server on localhost:5000 with the same cache timings the production portal
uses.

Environment variables:
  THUB_API_BASE_URL     Base URL of the THub server (default http://localhost:5000)
  THUB_REQUEST_TIMEOUT  Per-request timeout in seconds (default 30)
  THUB_STALE_TIME       Seconds a cached query stays fresh (default 300)
  THUB_GC_TIME          Seconds an unused cache entry is kept (default 600)
  THUB_DEBOUNCE_MS      Debounce window for search-driven queries (default 300)
"""

from __future__ import annotations

import os

from pydantic import BaseModel


class ClientSettings(BaseModel):
    api_base_url: str = "http://localhost:5000"
    request_timeout: float = 30.0
    stale_time: float = 300.0
    gc_time: float = 600.0
    debounce_ms: int = 300


_ENV_FIELDS = {
    "THUB_API_BASE_URL": "api_base_url",
    "THUB_REQUEST_TIMEOUT": "request_timeout",
    "THUB_STALE_TIME": "stale_time",
    "THUB_GC_TIME": "gc_time",
    "THUB_DEBOUNCE_MS": "debounce_ms",
}


def load_settings(**overrides: object) -> ClientSettings:
    """Build ClientSettings from THUB_* environment variables.

    Explicit keyword overrides win over the environment. Pydantic coerces the
    string values and raises ValidationError on malformed numbers.
    """
    values: dict[str, object] = {}
    for env_var, field_name in _ENV_FIELDS.items():
        raw = os.environ.get(env_var)
        if raw:
            values[field_name] = raw
    values.update(overrides)
    return ClientSettings(**values)
