"""
Dependency Errors
=================
Tagged error variants produced by transport adapters.

Retry classification matches on these types instead of inspecting
status codes or message strings at the call site.
"""

from typing import Optional, Any


class DependencyError(Exception):
    """Base exception for all failures of an outbound dependency call."""
    def __init__(
        self,
        message: str,
        service: str = "unknown",
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.message = message
        self.service = service
        self.status_code = status_code
        self.details = details
        super().__init__(f"[{service}] {message} (Status: {status_code})")


class RateLimitedError(DependencyError):
    """The dependency answered with a rate-limit response (HTTP 429)."""
    def __init__(
        self,
        message: str,
        service: str = "unknown",
        status_code: Optional[int] = 429,
        details: Any = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, service=service, status_code=status_code, details=details)
        self.retry_after = retry_after


class ServerError(DependencyError):
    """The dependency failed on its side (HTTP 5xx)."""
    pass


class DependencyTimeoutError(DependencyError):
    """The request did not complete in time."""
    pass


class ConnectionFailedError(DependencyError):
    """Connection refused, reset or otherwise broken at the transport level."""
    pass


class TransientOverloadError(DependencyError):
    """The provider reported a temporary overload (e.g. HTTP 529)."""
    pass


class PermanentError(DependencyError):
    """A failure that will not go away by retrying."""
    pass


class AuthenticationError(PermanentError):
    """Credentials were rejected (401/403)."""
    pass


class ValidationError(PermanentError):
    """The request was malformed or rejected by validation (400/422)."""
    pass


class NotFoundError(PermanentError):
    """The requested resource does not exist (404)."""
    pass


TRANSIENT_ERRORS = (
    RateLimitedError,
    ServerError,
    DependencyTimeoutError,
    ConnectionFailedError,
    TransientOverloadError,
)
