"""Auth session controller.

State machine:

    loading ──probe: 401──────────────────▶ unauthenticated
    loading ──probe: user─────────────────▶ authenticated-(un)verified
    unauthenticated ──login / register────▶ authenticated-(un)verified
    authenticated-unverified ──verify─────▶ authenticated-verified  (by re-fetching the user)
    authenticated-* ──logout──────────────▶ unauthenticated          (+ forget remembered email)
    any ──mutation failure────────────────▶ error                    (until the next operation)

Mutations never raise. Each one returns a MutationResult and publishes a
notification: success messages in the default variant, failures in the
destructive variant with the server's message when it sent one and a
per-operation fallback otherwise. A failed mutation leaves the session as it
was. Only ThubError and payload validation errors count as mutation failures;
anything else is a bug and propagates.

Login and registration write the returned user straight into the cache, so
nothing re-fetches GET /api/user after them.

Password reset (forgot_password, verify_reset_token, reset_password) works
without a session and never changes it.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import pydantic
from thub_api.client import ApiClient, UnauthorizedBehavior
from thub_query.cache import QueryCache
from thub_query.keys import QueryKey, user_key
from thub_shared.auth_models import (
    AuthState,
    ForgotPasswordRequest,
    LoginCredentials,
    Registration,
    ResetPasswordRequest,
    SessionUser,
    UserRole,
    VerifyEmailRequest,
    password_problem,
)
from thub_shared.errors import ApiError, ThubError, ValidationError
from thub_shared.models import MutationResult
from thub_storage.remembered import RememberedUserStore

from thub_auth.notifications import NotificationCenter, Variant
from thub_auth.session_store import SessionStore

logger = logging.getLogger(__name__)

MutationError = ThubError | pydantic.ValidationError

INVALID_CODE_MESSAGE = "Please enter the 6-digit verification code."
INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
RESET_LINK_SENT_MESSAGE = (
    "If your email exists in our system, you will receive a password reset link."
)


class AuthController:
    """Holds the session and runs the auth mutations."""

    def __init__(
        self,
        api: ApiClient,
        cache: QueryCache,
        remembered: RememberedUserStore,
        notifier: NotificationCenter,
    ) -> None:
        self._api = api
        self._cache = cache
        self._remembered = remembered
        self._notifier = notifier
        self.session = SessionStore(cache)
        self._probe = api.query_fn(on_unauthorized=UnauthorizedBehavior.RETURN_NONE)
        self._error: MutationError | None = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def user(self) -> SessionUser | None:
        return self.session.get()

    @property
    def error(self) -> BaseException | None:
        """The last mutation failure, else the session probe's failure."""
        if self._error is not None:
            return self._error
        return self._cache.get_result(user_key()).error

    @property
    def is_loading(self) -> bool:
        """True until the session probe (or a login) has settled the user."""
        entry = self._cache.get_entry(user_key())
        return entry is None or (not entry.has_data and entry.error is None)

    @property
    def requires_verification(self) -> bool:
        user = self.user
        return user is not None and not user.is_verified

    @property
    def state(self) -> AuthState:
        if self._error is not None:
            return AuthState.ERROR
        if self.is_loading:
            return AuthState.LOADING
        user = self.user
        if user is None:
            if self._cache.get_result(user_key()).error is not None:
                return AuthState.ERROR
            return AuthState.UNAUTHENTICATED
        if user.is_verified:
            return AuthState.AUTHENTICATED_VERIFIED
        return AuthState.AUTHENTICATED_UNVERIFIED

    def has_role(self, *roles: UserRole | str) -> bool:
        user = self.user
        return user is not None and user.role in roles

    def clear_error(self) -> None:
        self._error = None

    # ------------------------------------------------------------------
    # Session probe
    # ------------------------------------------------------------------

    async def _fetch_user(self, key: QueryKey) -> SessionUser | None:
        payload = await self._probe(key)
        if payload is None:
            return None
        return SessionUser.model_validate(payload)

    async def load_session(self) -> SessionUser | None:
        """Probe GET /api/user. "No session" (401) resolves to None, not an error."""
        result = await self._cache.query(user_key(), self._fetch_user)
        if result.error is not None:
            logger.warning(f"Session probe failed: {result.error}")
        return result.data

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str, remember_me: bool = False) -> MutationResult:
        self._error = None
        credentials = LoginCredentials(email=email, password=password, remember_me=remember_me)
        try:
            payload = await self._api.post(
                "/api/login", json_body=credentials.model_dump(mode="json", by_alias=True)
            )
            user = SessionUser.model_validate(payload)
        except (ThubError, pydantic.ValidationError) as e:
            return self._fail("Login failed", "Invalid email or password", e)

        self.session.set(user)
        if remember_me:
            await self._remembered.save(email)
        else:
            await self._remembered.clear()
        logger.info(f"User {user.id} logged in (verified={user.is_verified})")
        return self._succeed(
            "Login successful",
            f"Welcome back, {user.name}!",
            {"user_id": user.id, "requires_verification": not user.is_verified},
        )

    async def register(self, registration: Registration) -> MutationResult:
        self._error = None
        try:
            payload = await self._api.post(
                "/api/register",
                json_body=registration.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
            user = SessionUser.model_validate(payload)
        except (ThubError, pydantic.ValidationError) as e:
            return self._fail("Registration failed", "Could not create account", e)

        self.session.set(user)
        logger.info(f"User {user.id} registered")
        return self._succeed(
            "Registration successful",
            f"Welcome to THub, {user.name}!",
            {"user_id": user.id, "requires_verification": not user.is_verified},
        )

    async def logout(self) -> MutationResult:
        self._error = None
        try:
            await self._api.post("/api/logout")
        except ThubError as e:
            return self._fail("Logout failed", "Could not log you out", e)

        await self._remembered.clear()
        self.session.set(None)
        logger.info("User logged out")
        return self._succeed("Logged out", "You have been successfully logged out")

    async def verify_email(self, code: str) -> MutationResult:
        """Submit the emailed code, then re-fetch the user to pick up the verified flag."""
        self._error = None
        try:
            request = VerifyEmailRequest(code=code.strip())
        except pydantic.ValidationError:
            return self._fail(
                "Invalid code", INVALID_CODE_MESSAGE, ValidationError(INVALID_CODE_MESSAGE)
            )

        try:
            await self._api.post(
                "/api/verify-email", json_body=request.model_dump(mode="json", by_alias=True)
            )
        except ThubError as e:
            return self._fail(
                "Verification failed", "Invalid verification code. Please try again.", e
            )

        await self._cache.invalidate_queries(user_key())
        await self.load_session()
        return self._succeed("Email verified", "Your email has been successfully verified.")

    async def resend_verification(self) -> MutationResult:
        self._error = None
        try:
            await self._api.post("/api/resend-verification")
        except ThubError as e:
            return self._fail(
                "Failed to resend code",
                "Could not send verification code. Please try again later.",
                e,
            )
        return self._succeed(
            "Verification code sent", "A new verification code has been sent to your email."
        )

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> MutationResult:
        """Ask for a reset link. The server answers the same way for unknown emails."""
        self._error = None
        try:
            request = ForgotPasswordRequest(email=email.strip())
        except pydantic.ValidationError:
            return self._fail(
                "Invalid email", INVALID_EMAIL_MESSAGE, ValidationError(INVALID_EMAIL_MESSAGE)
            )

        try:
            payload = await self._api.post(
                "/api/forgot-password", json_body=request.model_dump(mode="json", by_alias=True)
            )
        except ThubError as e:
            return self._fail(
                "Error", "Failed to send password reset email. Please try again later.", e
            )

        message = RESET_LINK_SENT_MESSAGE
        if isinstance(payload, dict) and payload.get("message"):
            message = payload["message"]
        logger.info("Password reset link requested")
        return self._succeed("Check your email", message)

    async def verify_reset_token(self, token: str) -> bool:
        """True if the reset link's token is still valid. Never notifies."""
        token = token.strip()
        if not token:
            return False
        try:
            payload = await self._api.get(f"/api/verify-reset-token/{quote(token, safe='')}")
        except ThubError as e:
            logger.info(f"Reset token rejected: {e}")
            return False
        return isinstance(payload, dict) and bool(payload.get("valid"))

    async def reset_password(
        self,
        token: str,
        password: str,
        confirm_password: str | None = None,
    ) -> MutationResult:
        """Set a new password with the token from the reset email.

        The password must pass the strength rules (length, lower, upper, digit)
        and match confirm_password when one is given; nothing is sent otherwise.
        """
        self._error = None
        token = token.strip()
        if not token:
            message = "Invalid reset link. No token provided."
            return self._fail("Password reset failed", message, ValidationError(message))
        problem = password_problem(password)
        if problem is None and confirm_password is not None and confirm_password != password:
            problem = "Passwords don't match"
        if problem is not None:
            return self._fail("Invalid password", problem, ValidationError(problem))

        request = ResetPasswordRequest(password=password)
        try:
            await self._api.post(
                f"/api/reset-password/{quote(token, safe='')}",
                json_body=request.model_dump(mode="json", by_alias=True),
            )
        except ThubError as e:
            return self._fail(
                "Password reset failed", "Failed to reset password. Please try again.", e
            )

        logger.info("Password reset completed")
        return self._succeed("Password reset", "Your password has been reset successfully.")


    # ------------------------------------------------------------------

    def _succeed(
        self,
        title: str,
        description: str,
        data: dict[str, str | int | float | bool | None] | None = None,
    ) -> MutationResult:
        self._notifier.notify(title, description)
        return MutationResult(success=True, message=description, data=data)

    def _fail(self, title: str, fallback: str, error: MutationError) -> MutationResult:
        self._error = error
        description = fallback
        if isinstance(error, ApiError) and error.message:
            description = error.message
        elif isinstance(error, ValidationError):
            description = str(error)
        logger.info(f"{title}: {error}")
        self._notifier.notify(title, description, Variant.DESTRUCTIVE)
        return MutationResult(success=False, message=description)
