"""Auth domain models: the session user and the payloads of the auth endpoints."""

from enum import StrEnum

from pydantic import Field

from thub_shared.models import ApiModel


class UserRole(StrEnum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class AuthState(StrEnum):
    """Observable states of the auth session controller."""

    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_UNVERIFIED = "authenticated-unverified"
    AUTHENTICATED_VERIFIED = "authenticated-verified"
    ERROR = "error"


class SessionUser(ApiModel):
    """The authenticated user as returned by /api/user, /api/login and /api/register."""

    id: int
    name: str
    email: str
    role: UserRole = UserRole.STUDENT
    is_verified: bool = False


class LoginCredentials(ApiModel):
    """Body of POST /api/login. The server stretches the session cookie to 30 days on rememberMe."""

    email: str
    password: str
    remember_me: bool = False


class Registration(ApiModel):
    """Body of POST /api/register."""

    name: str
    email: str
    password: str
    role: UserRole = UserRole.STUDENT
    phone: str | None = None
    preferred_course: str | None = None


class VerifyEmailRequest(ApiModel):
    code: str = Field(pattern=r"^\d{6}$")


# ============================================================================
# Password reset
# ============================================================================

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MIN_PASSWORD_LENGTH = 8


class ForgotPasswordRequest(ApiModel):
    """Body of POST /api/forgot-password."""

    email: str = Field(pattern=EMAIL_PATTERN)


class ResetPasswordRequest(ApiModel):
    """Body of POST /api/reset-password/{token}."""

    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


def password_problem(password: str) -> str | None:
    """First strength rule the password breaks, or None when it passes them all."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter"
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter"
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one number"
    return None
