"""THub API verification script.

Points a Portal client at a running THub server and walks the public read
paths plus the session probe, checking that every payload parses into the
client models and that the query cache coalesces repeated reads.

Login is only attempted when THUB_VERIFY_EMAIL and THUB_VERIFY_PASSWORD are
set, so the script is safe to run against production.

Prerequisites:
  - A THub server reachable at THUB_API_BASE_URL (default http://localhost:5000)
  - Dependencies installed: `pip install -e .`

Usage:
  python scripts/verify_api.py
"""

import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from thub_api.resources import list_events, list_products, verify_certificate
from thub_portal.app import Portal
from thub_shared.auth_models import AuthState

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main() -> None:
    """Run the full verification against the configured server."""
    async with Portal() as portal:
        logger.info(f"Verifying THub API at {portal.settings.api_base_url}")

        await portal.auth.load_session()
        assert portal.auth.state in (
            AuthState.UNAUTHENTICATED,
            AuthState.AUTHENTICATED_VERIFIED,
            AuthState.AUTHENTICATED_UNVERIFIED,
        ), f"Session probe failed: {portal.auth.error}"
        logger.info(f"Session probe OK ({portal.auth.state})")

        banner = portal.alert_banner()
        before = portal.api.request_count
        alerts = await banner.visible_alerts()
        await banner.visible_alerts()
        assert portal.api.request_count - before == 1, "Alert reads were not coalesced"
        logger.info(f"Alerts OK ({len(alerts)} visible)")

        events = await list_events(portal.api)
        products = await list_products(portal.api)
        logger.info(f"Events OK ({len(events)}), products OK ({len(products)})")

        result = await verify_certificate(portal.api, "THB-1999-00000")
        assert not result.verified, "Sentinel certificate unexpectedly verified"
        logger.info("Certificate verification OK (unknown id reported as not found)")

        email = os.environ.get("THUB_VERIFY_EMAIL")
        password = os.environ.get("THUB_VERIFY_PASSWORD")
        if email and password:
            login = await portal.auth.login(email, password)
            assert login.success, f"Login failed: {login.message}"
            logger.info(f"Login OK ({portal.auth.state})")
            logout = await portal.auth.logout()
            assert logout.success, f"Logout failed: {logout.message}"
            logger.info("Logout OK")
        else:
            logger.info("THUB_VERIFY_EMAIL/THUB_VERIFY_PASSWORD not set, skipping login")

        logger.info("VERIFICATION PASSED")


if __name__ == "__main__":
    asyncio.run(main())
