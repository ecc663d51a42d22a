"""Typed fetchers for the catalog endpoints.

Each `*_fetcher(api)` returns a cache-ready fetcher that GETs the key's
endpoint and validates the payload into models. The `list_*` / `verify_*`
helpers are one-shot conveniences that build the key and call the fetcher.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from thub_query.keys import (
    QueryKey,
    active_alerts_key,
    certificate_key,
    events_key,
    exams_key,
    products_key,
)
from thub_query.middleware import Fetcher
from thub_shared.catalog_models import Alert, CertificateVerification, Event, Exam, Product
from thub_shared.errors import ApiError, ValidationError
from thub_shared.formatting import is_valid_certificate_id

from thub_api.client import ApiClient

_exams = TypeAdapter(list[Exam])
_alerts = TypeAdapter(list[Alert])
_events = TypeAdapter(list[Event])
_products = TypeAdapter(list[Product])


def _typed_fetcher(api: ApiClient, adapter: TypeAdapter[Any]) -> Fetcher:
    raw = api.query_fn()

    async def fetch(key: QueryKey) -> Any:
        return adapter.validate_python(await raw(key) or [])

    return fetch


def exams_fetcher(api: ApiClient) -> Fetcher:
    return _typed_fetcher(api, _exams)


def alerts_fetcher(api: ApiClient) -> Fetcher:
    return _typed_fetcher(api, _alerts)


def events_fetcher(api: ApiClient) -> Fetcher:
    return _typed_fetcher(api, _events)


def products_fetcher(api: ApiClient) -> Fetcher:
    return _typed_fetcher(api, _products)


def certificate_fetcher(api: ApiClient) -> Fetcher:
    """Verification fetcher. An unknown certificate (404) is a result, not an error."""

    async def fetch(key: QueryKey) -> CertificateVerification:
        try:
            payload = await api.get(str(key[0]))
        except ApiError as e:
            if e.status == 404:
                return CertificateVerification(
                    verified=False, message=e.message or "Certificate not found"
                )
            raise
        return CertificateVerification.model_validate(payload)

    return fetch


async def list_exams(api: ApiClient, course_id: int | None = None) -> list[Exam]:
    return await exams_fetcher(api)(exams_key(course_id))


async def list_active_alerts(api: ApiClient) -> list[Alert]:
    return await alerts_fetcher(api)(active_alerts_key())


async def list_events(api: ApiClient, upcoming: bool = True, active: bool = True) -> list[Event]:
    return await events_fetcher(api)(events_key(upcoming=upcoming, active=active))


async def list_products(api: ApiClient, active: bool = True) -> list[Product]:
    return await products_fetcher(api)(products_key(active=active))


async def verify_certificate(api: ApiClient, certificate_id: str) -> CertificateVerification:
    """Check a certificate id against the server.

    Raises:
        ValidationError: the id isn't in THB-YYYY-NNNNN form (no request is sent).
        ApiError / NetworkError: the server failed for any reason other than "not found".
    """
    certificate_id = certificate_id.strip()
    if not is_valid_certificate_id(certificate_id):
        raise ValidationError("Invalid certificate format (e.g., THB-2023-12345)")
    return await certificate_fetcher(api)(certificate_key(certificate_id))
