"""Exception hierarchy for calendarsync_lite.

Only conditions that end a run are exceptions. Malformed calendar objects,
unparseable timestamps and filtered events are reported as diagnostics.
"""

from typing import Optional


class CalendarSyncError(Exception):
    """Base exception for calendarsync_lite errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FeedFetchError(CalendarSyncError):
    """Exception raised when the feed cannot be retrieved."""


class FeedAuthError(FeedFetchError):
    """Exception raised when the feed server rejects the request (401/403)."""


class FeedNetworkError(FeedFetchError):
    """Exception raised for connection-level failures."""


class FeedTimeoutError(FeedFetchError):
    """Exception raised when the feed request times out."""


class FeedContentTooLargeError(CalendarSyncError):
    """Exception raised when feed content exceeds the size limit."""


class ConfigError(CalendarSyncError):
    """Exception raised for invalid configuration."""
