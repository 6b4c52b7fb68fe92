"""
Date Utilities

NSE endpoints are picky about date formats, and each family of endpoints
wants a different one:

- JSON historical endpoints: "DD-MM-YYYY"      (e.g., "05-01-2024")
- Option expiries:           "DD-Mon-YYYY"     (e.g., "09-Dec-2025")
- Pre-UDiFF bhavcopy names:  "DDMONYYYY"       (e.g., "05JAN2024")
- UDiFF / F&O bhavcopies:    "YYYYMMDD"        (e.g., "20240105")
- Report archives:           "DDMMYYYY" / "DDMMYY"

All helpers accept either a date or a datetime (the time part is ignored).
"""

from datetime import date, datetime
from typing import Union


DateLike = Union[date, datetime]

EXPIRY_FORMAT = "%d-%b-%Y"


def to_date(value: DateLike) -> date:
    """
    Reduce a date or datetime to a plain date.

    Raises:
        TypeError: If value is neither a date nor a datetime
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def format_date_dmy(value: DateLike) -> str:
    """
    Format as DD-MM-YYYY.

    Example:
        >>> format_date_dmy(date(2024, 1, 5))
        '05-01-2024'
    """
    return to_date(value).strftime("%d-%m-%Y")


def format_date_expiry(value: DateLike) -> str:
    """
    Format as DD-Mon-YYYY, the format used for option expiries.

    Example:
        >>> format_date_expiry(date(2025, 12, 9))
        '09-Dec-2025'
    """
    return to_date(value).strftime(EXPIRY_FORMAT)


def format_date_archive(value: DateLike) -> str:
    """
    Format as DDMONYYYY (upper-case month), used by pre-UDiFF bhavcopy names.

    Example:
        >>> format_date_archive(date(2024, 1, 5))
        '05JAN2024'
    """
    return to_date(value).strftime("%d%b%Y").upper()


def format_date_ymd(value: DateLike) -> str:
    """Format as YYYYMMDD."""
    return to_date(value).strftime("%Y%m%d")


def format_date_ddmmyyyy(value: DateLike) -> str:
    """Format as DDMMYYYY."""
    return to_date(value).strftime("%d%m%Y")


def format_date_ddmmyy(value: DateLike) -> str:
    """Format as DDMMYY."""
    return to_date(value).strftime("%d%m%y")


def parse_expiry_date(value: str) -> date:
    """
    Parse an expiry string such as "09-Dec-2025" (month name matched case-insensitively).

    Raises:
        ValueError: If the string is not in DD-Mon-YYYY format
    """
    return datetime.strptime(value.strip().title(), EXPIRY_FORMAT).date()


def today() -> date:
    """Current local calendar date."""
    return date.today()
