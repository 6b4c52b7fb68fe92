"""
Error Taxonomy

Every failure raised by the data layer derives from NSEDataError so callers
can catch the whole family at once, while still distinguishing:

    InvalidRangeError - from-date after to-date, or window over a hard cap
    NoExpiryError     - upstream returned no option expiries for a symbol
    HttpError         - non-2xx response (401 gets one re-prime + retry first)
    DownloadError     - downloaded file missing or empty
    ArchiveError      - ZIP/GZIP extraction failed

An incomplete symbol lookup is not an error: the parser returns None.
"""

from typing import Optional


class NSEDataError(Exception):
    """Base class for all data-layer errors."""


class InvalidRangeError(NSEDataError, ValueError):
    """Raised when a date range is reversed or exceeds the allowed window."""


class NoExpiryError(NSEDataError):
    """Raised when no expiry dates are available for a symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No expiry dates found for symbol: {symbol}")


class HttpError(NSEDataError):
    """
    Raised for a non-2xx upstream response.

    Attributes:
        status: HTTP status code returned by the server
        url: Requested URL
    """

    def __init__(self, status: int, url: str, message: Optional[str] = None):
        self.status = status
        self.url = url
        super().__init__(message or f"HTTP {status} for {url}")


class DownloadError(NSEDataError):
    """Raised when a download produced no usable file."""

    def __init__(self, path, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Failed to download file: {path}")


class ArchiveError(NSEDataError):
    """Raised when a downloaded archive cannot be extracted."""
