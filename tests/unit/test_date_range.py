"""
Unit Tests for Date Range Chunking and Date Formatting

These tests verify that:
- Ranges are split into contiguous, inclusive, non-overlapping chunks
- The number of chunks matches ceil(inclusive_days / chunk_days)
- Reversed ranges and over-long windows are rejected
- NSE date formats are produced correctly

Run with:
    pytest tests/unit/test_date_range.py -v
"""

from datetime import date, datetime, timedelta

import pytest

from core.errors import InvalidRangeError
from core.schemas import DateChunk
from core.utils.date_range import split_date_range, validate_date_range
from core.utils.time import (
    format_date_archive,
    format_date_ddmmyy,
    format_date_ddmmyyyy,
    format_date_dmy,
    format_date_expiry,
    format_date_ymd,
    parse_expiry_date,
)


# ============================================
# Tests for split_date_range
# ============================================

class TestSplitDateRange:
    """Tests for split_date_range"""

    def test_january_in_ten_day_chunks(self):
        """Verify a 31-day range splits into 4 chunks"""
        chunks = split_date_range(date(2023, 1, 1), date(2023, 1, 31), 10)

        assert chunks == [
            DateChunk(date(2023, 1, 1), date(2023, 1, 10)),
            DateChunk(date(2023, 1, 11), date(2023, 1, 20)),
            DateChunk(date(2023, 1, 21), date(2023, 1, 30)),
            DateChunk(date(2023, 1, 31), date(2023, 1, 31)),
        ]

    def test_single_day_is_one_chunk(self):
        """Verify from == to yields exactly one chunk regardless of chunk size"""
        day = date(2024, 2, 29)
        for chunk_days in (1, 7, 365):
            assert split_date_range(day, day, chunk_days) == [DateChunk(day, day)]

    def test_exact_multiple(self):
        """Verify a range that divides evenly has no trailing stub"""
        chunks = split_date_range(date(2024, 1, 1), date(2024, 1, 20), 10)

        assert len(chunks) == 2
        assert chunks[-1] == DateChunk(date(2024, 1, 11), date(2024, 1, 20))

    @pytest.mark.parametrize("days,chunk_days", [(1, 1), (99, 100), (100, 100), (101, 100), (730, 365), (1000, 7)])
    def test_chunks_cover_range_exactly(self, days, chunk_days):
        """Verify coverage, contiguity and chunk count"""
        start = date(2020, 3, 15)
        end = start + timedelta(days=days - 1)

        chunks = split_date_range(start, end, chunk_days)

        assert chunks[0].start == start
        assert chunks[-1].end == end
        assert len(chunks) == -(-days // chunk_days)
        for prev, nxt in zip(chunks, chunks[1:]):
            assert nxt.start == prev.end + timedelta(days=1)
        for chunk in chunks:
            assert chunk.start <= chunk.end
            assert (chunk.end - chunk.start).days + 1 <= chunk_days

    def test_datetimes_are_reduced_to_dates(self):
        """Verify datetime inputs behave like their dates"""
        chunks = split_date_range(datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 3, 0, 1), 2)

        assert chunks == [
            DateChunk(date(2024, 1, 1), date(2024, 1, 2)),
            DateChunk(date(2024, 1, 3), date(2024, 1, 3)),
        ]

    def test_reversed_range_raises(self):
        """Verify from_date after to_date is rejected"""
        with pytest.raises(InvalidRangeError):
            split_date_range(date(2024, 1, 2), date(2024, 1, 1), 10)

    def test_non_positive_chunk_days_raises(self):
        """Verify chunk_days must be positive"""
        with pytest.raises(ValueError):
            split_date_range(date(2024, 1, 1), date(2024, 1, 2), 0)


# ============================================
# Tests for validate_date_range
# ============================================

class TestValidateDateRange:
    """Tests for validate_date_range"""

    def test_valid_range_passes(self):
        validate_date_range(date(2024, 1, 1), date(2024, 1, 1))

    def test_reversed_range_raises(self):
        with pytest.raises(InvalidRangeError, match="cannot be after"):
            validate_date_range(date(2024, 1, 2), date(2024, 1, 1))

    def test_max_days_boundary(self):
        """Verify exactly max_days passes and one more fails"""
        validate_date_range(date(2023, 1, 1), date(2024, 1, 1), max_days=365)

        with pytest.raises(InvalidRangeError, match="365"):
            validate_date_range(date(2023, 1, 1), date(2024, 1, 2), max_days=365)

    def test_invalid_range_is_value_error(self):
        """Verify InvalidRangeError can be caught as ValueError"""
        with pytest.raises(ValueError):
            validate_date_range(date(2024, 1, 2), date(2024, 1, 1))


# ============================================
# Tests for date formatting
# ============================================

class TestDateFormats:
    """Tests for NSE date formats"""

    def test_formats(self):
        day = date(2024, 1, 5)

        assert format_date_dmy(day) == "05-01-2024"
        assert format_date_expiry(day) == "05-Jan-2024"
        assert format_date_archive(day) == "05JAN2024"
        assert format_date_ymd(day) == "20240105"
        assert format_date_ddmmyyyy(day) == "05012024"
        assert format_date_ddmmyy(day) == "050124"

    def test_parse_expiry_date_is_case_insensitive(self):
        assert parse_expiry_date("09-DEC-2025") == date(2025, 12, 9)
        assert parse_expiry_date(" 09-Dec-2025 ") == date(2025, 12, 9)

    def test_parse_expiry_date_rejects_other_formats(self):
        with pytest.raises(ValueError):
            parse_expiry_date("2025-12-09")
