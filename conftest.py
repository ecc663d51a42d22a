"""Shared test fixtures for every package.

Provides FakeThubServer, an in-memory stand-in for the THub Express server
served through httpx.MockTransport. It keeps users, a cookie session and the
catalog tables in plain dicts and lists so tests can seed data and assert on
what was requested. Its responses copy the real server's shapes, including the
plain-text "Unauthorized" that passport sends on a 401.

Fixtures:
  - fake_server: a seeded FakeThubServer
  - api:         ApiClient routed to fake_server
  - cache:       QueryCache, closed after the test
  - storage:     StorageAdapter over fakeredis
  - portal:      Portal wired to all of the above
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import pytest
from fakeredis.aioredis import FakeRedis
from thub_api.client import ApiClient
from thub_portal.app import Portal
from thub_query.cache import QueryCache
from thub_shared.settings import ClientSettings
from thub_storage.client import StorageAdapter

BASE_URL = "http://thub.test"
SESSION_COOKIE = "connect.sid"
VERIFICATION_CODE = "123456"
RESET_LINK_MESSAGE = "If your email exists in our system, you will receive a password reset link."

_CERTIFICATE_PATH = re.compile(r"^/api/certificates/verify/(?P<id>[^/]+)$")
_RESET_TOKEN_PATH = re.compile(
    r"^/api/(?P<action>verify-reset-token|reset-password)/(?P<token>[^/]+)$"
)


def _session_id(request: httpx.Request) -> str | None:
    for pair in request.headers.get("cookie", "").split(";"):
        name, _, value = pair.strip().partition("=")
        if name == SESSION_COOKIE and value:
            return value
    return None


class FakeThubServer:
    """In-memory THub server. Call it with an httpx.Request to get a response."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.sessions: dict[str, int] = {}
        self.verification_codes: dict[int, str] = {}
        self.reset_tokens: dict[str, str] = {}
        self.reset_requests: dict[str, int] = {}
        self.exams: list[dict[str, Any]] = []
        self.alerts: list[dict[str, Any]] = []
        self.events: list[dict[str, Any]] = []
        self.products: list[dict[str, Any]] = []
        self.certificates: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], httpx.Response | Exception] = {}
        self.resend_count = 0
        self._next_user_id = 1
        self._next_sid = 1

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def add_user(
        self,
        email: str,
        password: str,
        name: str = "Test User",
        role: str = "student",
        is_verified: bool = True,
    ) -> dict[str, Any]:
        user = {
            "id": self._next_user_id,
            "name": name,
            "email": email,
            "password": password,
            "role": role,
            "isVerified": is_verified,
        }
        self._next_user_id += 1
        self.users[email] = user
        return user

    def fail(
        self,
        method: str,
        path: str,
        status: int = 500,
        body: Any = None,
        text: str | None = None,
    ) -> None:
        """Make method+path answer with an error until cleared."""
        if text is not None:
            response = httpx.Response(status, text=text)
        else:
            response = httpx.Response(status, json=body if body is not None else {})
        self.failures[(method, path)] = response

    def break_network(self, method: str, path: str) -> None:
        """Make method+path raise a transport error until cleared."""
        self.failures[(method, path)] = httpx.ConnectError("Connection refused")

    def clear_failures(self) -> None:
        self.failures.clear()

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        failure = self.failures.get((request.method, path))
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return httpx.Response(
                failure.status_code, content=failure.content, headers=failure.headers
            )

        routes = {
            ("GET", "/api/user"): self._get_user,
            ("POST", "/api/login"): self._login,
            ("POST", "/api/register"): self._register,
            ("POST", "/api/logout"): self._logout,
            ("POST", "/api/verify-email"): self._verify_email,
            ("POST", "/api/resend-verification"): self._resend_verification,
            ("POST", "/api/forgot-password"): self._forgot_password,
            ("GET", "/api/admin/exams"): self._list_exams,
            ("GET", "/api/alerts/active"): self._active_alerts,
            ("GET", "/api/events"): self._list_events,
            ("GET", "/api/products"): self._list_products,
        }
        handler = routes.get((request.method, path))
        if handler is not None:
            return handler(request)

        match = _CERTIFICATE_PATH.match(path)
        if request.method == "GET" and match:
            return self._verify_certificate(match["id"])
        match = _RESET_TOKEN_PATH.match(path)
        if match and (request.method, match["action"]) == ("GET", "verify-reset-token"):
            return self._verify_reset_token(match["token"])
        if match and (request.method, match["action"]) == ("POST", "reset-password"):
            return self._reset_password(match["token"], request)
        return httpx.Response(404, text=f"Cannot {request.method} {path}")

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def _session_user(self, request: httpx.Request) -> dict[str, Any] | None:
        sid = _session_id(request)
        user_id = self.sessions.get(sid) if sid else None
        if user_id is None:
            return None
        return next((u for u in self.users.values() if u["id"] == user_id), None)

    def _start_session(self, user: dict[str, Any], status: int) -> httpx.Response:
        sid = f"s{self._next_sid}"
        self._next_sid += 1
        self.sessions[sid] = user["id"]
        return httpx.Response(
            status,
            json=self._public(user),
            headers={"Set-Cookie": f"{SESSION_COOKIE}={sid}; Path=/; HttpOnly"},
        )

    @staticmethod
    def _public(user: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": user["id"],
            "name": user["name"],
            "email": user["email"],
            "role": user["role"],
            "isVerified": user["isVerified"],
            "requiresVerification": not user["isVerified"],
        }

    def _get_user(self, request: httpx.Request) -> httpx.Response:
        user = self._session_user(request)
        if user is None:
            return httpx.Response(401, text="Unauthorized")
        return httpx.Response(200, json=self._public(user))

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        user = self.users.get(body.get("email", ""))
        if user is None or user["password"] != body.get("password"):
            return httpx.Response(401, text="Unauthorized")
        return self._start_session(user, 200)

    def _register(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["email"] in self.users:
            return httpx.Response(400, json={"message": "Email already exists"})
        user = self.add_user(
            body["email"],
            body["password"],
            name=body["name"],
            role=body.get("role", "student"),
            is_verified=False,
        )
        self.verification_codes[user["id"]] = VERIFICATION_CODE
        return self._start_session(user, 201)

    def _logout(self, request: httpx.Request) -> httpx.Response:
        sid = _session_id(request)
        if sid:
            self.sessions.pop(sid, None)
        return httpx.Response(
            200,
            json={"success": True},
            headers={"Set-Cookie": f"{SESSION_COOKIE}=; Path=/; Max-Age=0"},
        )

    def _verify_email(self, request: httpx.Request) -> httpx.Response:
        user = self._session_user(request)
        if user is None:
            return httpx.Response(401, json={"message": "Unauthorized"})
        code = json.loads(request.content).get("code")
        if not code:
            return httpx.Response(400, json={"message": "Verification code is required"})
        if self.verification_codes.get(user["id"]) != code:
            return httpx.Response(400, json={"message": "Invalid or expired verification code"})
        user["isVerified"] = True
        del self.verification_codes[user["id"]]
        return httpx.Response(
            200, json={"success": True, "message": "Email successfully verified"}
        )

    def _resend_verification(self, request: httpx.Request) -> httpx.Response:
        user = self._session_user(request)
        if user is None:
            return httpx.Response(401, json={"message": "Unauthorized"})
        self.resend_count += 1
        if self.resend_count > 1:
            return httpx.Response(
                429,
                json={
                    "message": "Please wait 60 seconds before requesting another "
                    "verification code."
                },
            )
        self.verification_codes[user["id"]] = "654321"
        return httpx.Response(
            200, json={"success": True, "message": "Verification code sent successfully"}
        )

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def _forgot_password(self, request: httpx.Request) -> httpx.Response:
        email = json.loads(request.content).get("email")
        if not email:
            return httpx.Response(400, json={"message": "Email is required"})
        self.reset_requests[email] = self.reset_requests.get(email, 0) + 1
        if self.reset_requests[email] > 1:
            return httpx.Response(
                429,
                json={"message": "Please wait 1 minute before requesting another reset link."},
            )
        user = self.users.get(email)
        if user is not None:
            self.reset_tokens[f"reset-{user['id']}"] = email
        return httpx.Response(200, json={"message": RESET_LINK_MESSAGE})

    def _verify_reset_token(self, token: str) -> httpx.Response:
        if token not in self.reset_tokens:
            return httpx.Response(400, json={"message": "Invalid or expired reset token"})
        return httpx.Response(200, json={"valid": True, "message": "Token is valid"})

    def _reset_password(self, token: str, request: httpx.Request) -> httpx.Response:
        password = json.loads(request.content).get("password")
        if not password:
            return httpx.Response(400, json={"message": "New password is required"})
        if len(password) < 8:
            return httpx.Response(
                400, json={"message": "Password must be at least 8 characters long"}
            )
        email = self.reset_tokens.pop(token, None)
        if email is None:
            return httpx.Response(
                400,
                json={"message": "Password reset failed. Token may be invalid or expired."},
            )
        self.users[email]["password"] = password
        return httpx.Response(
            200, json={"success": True, "message": "Password has been reset successfully"}
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def _list_exams(self, request: httpx.Request) -> httpx.Response:
        course_id = request.url.params.get("courseId")
        exams = self.exams
        if course_id is not None:
            exams = [e for e in exams if str(e["courseId"]) == course_id]
        return httpx.Response(200, json=exams)

    def _active_alerts(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[a for a in self.alerts if a.get("isActive", True)])

    def _list_events(self, request: httpx.Request) -> httpx.Response:
        events = self.events
        if request.url.params.get("active") == "true":
            events = [e for e in events if e.get("isActive", True)]
        return httpx.Response(200, json=events)

    def _list_products(self, request: httpx.Request) -> httpx.Response:
        products = self.products
        if request.url.params.get("active") == "true":
            products = [p for p in products if p.get("isActive", True)]
        return httpx.Response(200, json=products)

    def _verify_certificate(self, certificate_id: str) -> httpx.Response:
        certificate = self.certificates.get(certificate_id)
        if certificate is None:
            return httpx.Response(
                404, json={"verified": False, "message": "Certificate not found"}
            )
        return httpx.Response(200, json={"verified": True, "certificate": certificate})


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_server() -> FakeThubServer:
    """A FakeThubServer seeded with one verified student and a small catalog."""
    server = FakeThubServer()
    server.add_user("amara@example.com", "s3cret!", name="Amara Okafor")
    server.exams = [
        {
            "id": 1,
            "title": "Photoshop Fundamentals",
            "description": "Layers, masks and selections",
            "type": "midterm",
            "courseId": 7,
        },
        {
            "id": 2,
            "title": "Illustrator Final",
            "description": "Vector branding project",
            "type": "final",
            "courseId": 7,
        },
        {
            "id": 3,
            "title": "Bookkeeping Basics",
            "description": "Double-entry ledgers",
            "type": "quiz",
            "courseId": 9,
        },
    ]
    server.alerts = [
        {
            "id": 10,
            "type": "info",
            "title": "Welcome",
            "content": "New term starts Monday",
            "priority": 1,
        },
        {
            "id": 11,
            "type": "discount",
            "title": "Early bird",
            "content": "20% off multimedia",
            "priority": 5,
            "buttonText": "Enroll",
            "buttonLink": "/courses",
        },
        {
            "id": 12,
            "type": "announcement",
            "title": "Retired",
            "content": "Old notice",
            "isActive": False,
        },
    ]
    server.events = [
        {"id": 1, "title": "Open Day", "date": "2024-03-05T10:00:00", "isActive": True},
        {"id": 2, "title": "Archived Meetup", "isActive": False},
    ]
    server.products = [
        {"id": 1, "name": "Design Toolkit", "price": 1800, "isActive": True},
        {"id": 2, "name": "Old Ebook", "price": 15.5, "isActive": False},
    ]
    server.certificates = {
        "THB-2023-12345": {
            "id": "THB-2023-12345",
            "issueDate": "2023-06-30T00:00:00",
            "studentName": "Amara Okafor",
            "courseName": "Multimedia Specialist",
        }
    }
    return server


@pytest.fixture
def transport(fake_server: FakeThubServer) -> httpx.MockTransport:
    return httpx.MockTransport(fake_server)


@pytest.fixture
async def api(transport: httpx.MockTransport):
    client = ApiClient(BASE_URL, transport=transport)
    yield client
    await client.close()


@pytest.fixture
async def cache():
    query_cache = QueryCache(stale_time=300, gc_time=600)
    yield query_cache
    await query_cache.close()


@pytest.fixture
def storage() -> StorageAdapter:
    return StorageAdapter(FakeRedis(decode_responses=True))


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(api_base_url=BASE_URL, debounce_ms=0)


@pytest.fixture
async def portal(settings: ClientSettings, storage: StorageAdapter, transport):
    async with Portal(settings=settings, storage=storage, transport=transport) as p:
        yield p
