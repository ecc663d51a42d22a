"""Error taxonomy for the THub client.

Four failure families, each with its own handling policy:

  NetworkError             transport failure or timeout; no response at all
  ApiError                 the server answered with a non-2xx status
  ValidationError          input rejected client-side before any request
  StorageUnavailableError  the key-value store backing client persistence failed

Mutations turn these into user-facing notifications; queries surface them on
QueryResult.error; storage helpers log and swallow StorageUnavailableError.
Nothing is retried automatically.
"""

from __future__ import annotations


class ThubError(Exception):
    """Base class for every error raised by the THub client packages."""


class NetworkError(ThubError):
    """The request never produced an HTTP response."""


class ApiError(ThubError):
    """Non-2xx response. `message` is the server's message when it sent one."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}" if message else f"HTTP {status}")
        self.status = status
        self.message = message

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class ValidationError(ThubError):
    """Input failed a client-side check (verification code, certificate id, ...)."""


class StorageUnavailableError(ThubError):
    """The client-side key-value store could not be reached."""
