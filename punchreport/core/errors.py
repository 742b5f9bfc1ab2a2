"""
Exception types shared by the PunchReport core.
"""

from typing import Any, List, Optional


class PunchReportError(Exception):
    """Base class for all PunchReport errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(PunchReportError):
    """Required configuration is missing or unusable."""


class FetchError(PunchReportError):
    """
    A single outbound call failed.

    ``status`` is the HTTP status code, or None for network failures and
    timeouts.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    @property
    def retryable(self) -> bool:
        """Client errors (< 500) will not change on a retry."""
        return self.status is None or self.status >= 500


class DiscoveryError(PunchReportError):
    """No base URL answered the people request."""

    def __init__(self, message: str, details: str, tried_base_urls: List[str]):
        super().__init__(message)
        self.details = details
        self.tried_base_urls = list(tried_base_urls)

    def to_dict(self) -> dict:
        return {
            'message': self.message,
            'details': self.details,
            'triedBaseUrls': self.tried_base_urls,
        }
