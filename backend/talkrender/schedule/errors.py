"""
Schedule-specific errors.
"""

from typing import Optional


class ScheduleError(Exception):
    """Base exception for schedule cache operations."""

    pass


class FetchError(ScheduleError):
    """
    Remote schedule could not be fetched.

    Raised on transport failures, non-success HTTP status,
    or a response body that is not a usable catalog.
    """

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        message = f"Failed to fetch schedule from {url}: {reason}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        super().__init__(message)


class ScheduleFormatError(ScheduleError):
    """Catalog document does not have the expected day/room/event shape."""

    pass
