"""Certificate verification as the public verification form performs it."""

from __future__ import annotations

import logging

import pydantic
from thub_api.client import ApiClient
from thub_api.resources import verify_certificate
from thub_auth.notifications import NotificationCenter, Variant
from thub_shared.catalog_models import CertificateVerification
from thub_shared.errors import ApiError, ThubError, ValidationError

logger = logging.getLogger(__name__)


class CertificateVerifier:
    """Verifies certificate ids and reports the outcome as a notification.

    verify() returns the server's answer, or None when no answer was obtained
    (bad id format, server error, network failure, unreadable reply).
    """

    def __init__(self, api: ApiClient, notifier: NotificationCenter) -> None:
        self._api = api
        self._notifier = notifier
        self.last_result: CertificateVerification | None = None

    async def verify(self, certificate_id: str) -> CertificateVerification | None:
        self.last_result = None
        try:
            result = await verify_certificate(self._api, certificate_id)
        except ValidationError as e:
            self._notifier.notify("Invalid certificate ID", str(e), Variant.DESTRUCTIVE)
            return None
        except ApiError as e:
            logger.warning(f"Certificate verification failed: {e}")
            self._notifier.notify(
                "Verification Failed",
                e.message or "Failed to verify certificate. Please try again.",
                Variant.DESTRUCTIVE,
            )
            return None
        except (ThubError, pydantic.ValidationError) as e:
            logger.error(f"Certificate verification error: {e}")
            self._notifier.notify(
                "Verification Error",
                "An error occurred during verification. Please try again later.",
                Variant.DESTRUCTIVE,
            )
            return None

        self.last_result = result
        if result.verified:
            self._notifier.notify("Certificate Verified", "The certificate is valid and authentic.")
        else:
            self._notifier.notify(
                "Certificate Not Found",
                "We couldn't verify this certificate. Please check the ID and try again.",
                Variant.DESTRUCTIVE,
            )
        return result
