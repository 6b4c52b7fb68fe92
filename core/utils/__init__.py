"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Date formatting and expiry parsing for NSE endpoints
    - date_range: Date range validation and chunking
    - archive: ZIP/GZIP extraction for downloaded reports
"""

from core.utils.date_range import split_date_range, validate_date_range
from core.utils.time import format_date_dmy, format_date_expiry, parse_expiry_date

__all__ = [
    "split_date_range",
    "validate_date_range",
    "format_date_dmy",
    "format_date_expiry",
    "parse_expiry_date",
]
