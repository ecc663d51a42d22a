"""Async REST client for the THub server.

One ApiClient per application. The httpx client is created lazily on first use
and keeps the session cookie the server sets at login, the way the browser
portal sends `credentials: "include"` on every request.

Failure mapping:
  - transport errors and timeouts -> NetworkError
  - non-2xx responses             -> ApiError(status, message)
  - a body that isn't valid JSON  -> ThubError

ApiError.message is the server's own message when it answered with a JSON body
carrying `message` (or `error`); plain-text bodies like Express's "Unauthorized"
leave it empty so callers can fall back to their own wording.

Nothing is retried here: every retry in the portal is user-initiated.
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from typing import Any

import httpx
from thub_query.keys import QueryKey, key_endpoint, key_params
from thub_query.middleware import Fetcher
from thub_shared.errors import ApiError, NetworkError, ThubError
from thub_shared.settings import ClientSettings

logger = logging.getLogger(__name__)

VALID_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


class UnauthorizedBehavior(StrEnum):
    """What a query fetcher does with a 401."""

    RETURN_NONE = "return_none"
    RAISE = "raise"


def _error_message(response: httpx.Response) -> str:
    """Pull the server's message out of an error response, or ''."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return ""
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str):
            return message
    return ""


class ApiClient:
    """THub REST client.

    Pass `transport` to route requests somewhere other than the network
    (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.request_count: int = 0

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ApiClient:
        return cls(settings.api_base_url, timeout=settings.request_timeout, transport=transport)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None for an empty body).

        Raises:
            ValueError: method is not an HTTP method.
            NetworkError: no response (connection failure, timeout).
            ApiError: non-2xx response.
            ThubError: 2xx response whose body isn't JSON.
        """
        method = method.upper()
        if method not in VALID_METHODS:
            raise ValueError(f"'{method}' is not a valid HTTP method.")

        headers = {"Cache-Control": "max-age=3600" if method == "GET" else "no-cache"}
        client = self._get_client()
        self.request_count += 1
        logger.debug(f"{method} {path} params={params}")
        try:
            response = await client.request(
                method, path, json=json_body, params=params, headers=headers
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.info(f"{method} {path} -> {response.status_code} {message or response.reason_phrase}")
            raise ApiError(response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ThubError(f"{method} {path} returned a non-JSON body") from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_body: Any = None) -> Any:
        return await self.request("POST", path, json_body=json_body)

    def query_fn(
        self,
        on_unauthorized: UnauthorizedBehavior = UnauthorizedBehavior.RAISE,
    ) -> Fetcher:
        """Default fetcher for the query cache: GET the key's endpoint with its params.

        With RETURN_NONE a 401 resolves to None instead of failing; the session
        probe uses this so "not logged in" is an answer, not an error.
        """

        async def fetch(key: QueryKey) -> Any:
            try:
                return await self.get(key_endpoint(key), params=key_params(key) or None)
            except ApiError as e:
                if e.is_unauthorized and on_unauthorized is UnauthorizedBehavior.RETURN_NONE:
                    return None
                raise

        return fetch
