"""
Date Range Chunking

NSE historical endpoints reject windows wider than a per-endpoint quota
(100 days for equity, 365 for most others). Callers still want to ask for an
arbitrary [from, to] range, so the range is split into ordered, inclusive,
contiguous chunks that each fit under the quota.

Guarantees for split_date_range(from_date, to_date, chunk_days):
    - chunks[0].start == from_date and chunks[-1].end == to_date
    - chunks[i + 1].start == chunks[i].end + 1 day (no gaps, no overlaps)
    - len(chunks) == ceil(inclusive_days / chunk_days)
    - from_date == to_date yields exactly one chunk
"""

import math
from datetime import timedelta
from typing import List, Optional

from core.errors import InvalidRangeError
from core.schemas import DateChunk
from core.utils.time import DateLike, to_date as as_date


def validate_date_range(
    from_date: DateLike,
    to_date: DateLike,
    max_days: Optional[int] = None
) -> None:
    """
    Guard used by every date-accepting endpoint.

    Args:
        from_date: Start of the range (inclusive)
        to_date: End of the range (inclusive)
        max_days: Optional cap on (to_date - from_date) in days

    Raises:
        InvalidRangeError: If from_date is after to_date, or the window exceeds max_days
    """
    start = as_date(from_date)
    end = as_date(to_date)

    if start > end:
        raise InvalidRangeError(
            f"from_date ({start.isoformat()}) cannot be after to_date ({end.isoformat()})"
        )

    if max_days is not None and (end - start).days > max_days:
        raise InvalidRangeError(
            f"The date range cannot exceed {max_days} days "
            f"({start.isoformat()} to {end.isoformat()})"
        )


def split_date_range(
    from_date: DateLike,
    to_date: DateLike,
    chunk_days: int = 365
) -> List[DateChunk]:
    """
    Split [from_date, to_date] into inclusive chunks of at most chunk_days days.

    Args:
        from_date: Start of the range (inclusive)
        to_date: End of the range (inclusive)
        chunk_days: Maximum number of days per chunk

    Returns:
        List of DateChunk in ascending order

    Raises:
        InvalidRangeError: If from_date is after to_date
        ValueError: If chunk_days is not positive

    Example:
        >>> split_date_range(date(2023, 1, 1), date(2023, 1, 31), 10)
        [DateChunk(start=2023-01-01, end=2023-01-10), ..., DateChunk(start=2023-01-31, end=2023-01-31)]
    """
    if chunk_days <= 0:
        raise ValueError(f"chunk_days must be positive, got {chunk_days}")

    validate_date_range(from_date, to_date)

    start = as_date(from_date)
    end = as_date(to_date)

    total_days = (end - start).days + 1
    num_chunks = math.ceil(total_days / chunk_days)

    chunks = []
    for i in range(num_chunks):
        chunk_start = start + timedelta(days=i * chunk_days)
        chunk_end = min(start + timedelta(days=(i + 1) * chunk_days - 1), end)
        chunks.append(DateChunk(chunk_start, chunk_end))

    return chunks
