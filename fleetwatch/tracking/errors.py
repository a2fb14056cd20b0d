"""
FleetWatch Error Types

Source-level errors are returned as values inside fetch results so a failing
source never aborts the fallback chain. They are still exceptions, so the
auth layer can raise them where a caller has to react.
"""

from typing import Optional


class FleetWatchError(Exception):
    """Base class for all FleetWatch errors."""


class FetchError(FleetWatchError):
    """A telemetry source could not deliver data."""

    kind = "fetch_error"

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class TransportError(FetchError):
    """Network failure or timeout."""

    kind = "network_error"


class AuthError(FetchError):
    """OAuth2 token acquisition failed."""

    kind = "auth_error"

    def __init__(self, message: str, source: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, source)
        self.status_code = status_code


class RateLimited(FetchError):
    """The source answered HTTP 429. Try again in a later poll cycle."""

    kind = "rate_limit"

    def __init__(self, retry_after: Optional[int] = None, source: Optional[str] = None):
        if retry_after is not None:
            message = f"rate limited, retry after {retry_after}s"
        else:
            message = "rate limited"
        super().__init__(message, source)
        self.retry_after = retry_after


class UpstreamError(FetchError):
    """Non-2xx (other than 429) response or an unreadable body."""

    kind = "api_error"

    def __init__(self, message: str, source: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, source)
        self.status_code = status_code


class DataError(FleetWatchError):
    """A single record is unusable (e.g. no position). Drop the record."""
