"""
Request Throttle

NSE blocks clients that call it too quickly. RateThrottle enforces a minimum
spacing between outbound calls, tracked separately per call class:

    - "lookup":  search/autocomplete calls (higher throughput, ~15 req/s)
    - "default": everything else (~8 req/s)

Each client owns its own RateThrottle; state is never module-global. Calls of
the same class are serialized behind an asyncio.Lock, so two tasks arriving
together cannot both pass the spacing check, and are released in the order
they called check().

Usage:
    throttle = RateThrottle.from_rps({"lookup": 15, "default": 8})
    await throttle.check("default")   # suspends until the slot is free
"""

import asyncio
import math
import time
from typing import Dict, Mapping

from core.logging import get_logger

LOOKUP = "lookup"
DEFAULT = "default"

_LOOKUP_MARKERS = ("/search/", "autocomplete")


def classify(url: str) -> str:
    """
    Pick the throttle class for a URL.

    Example:
        >>> classify("https://www.nseindia.com/api/search/autocomplete?q=INFY")
        'lookup'
        >>> classify("https://www.nseindia.com/api/marketStatus")
        'default'
    """
    lowered = url.lower()
    return LOOKUP if any(marker in lowered for marker in _LOOKUP_MARKERS) else DEFAULT


class RateThrottle:
    """
    Per-class minimum inter-call spacing.

    Attributes:
        intervals_ms: Minimum interval between calls for each class, in milliseconds

    Notes:
        - check() never raises; at worst it adds latency
        - The call is recorded *after* the wait completes, so back-to-back calls
          are spaced by at least the interval rather than sharing a slot
        - Unknown classes use the "default" interval
    """

    def __init__(self, intervals_ms: Mapping[str, int]):
        if DEFAULT not in intervals_ms:
            raise ValueError("Throttle configuration must define a 'default' class")

        self.intervals_ms: Dict[str, int] = dict(intervals_ms)
        self._last_call: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = get_logger(__name__)

    @classmethod
    def from_rps(cls, rps: Mapping[str, float]) -> "RateThrottle":
        """
        Build a throttle from requests-per-second ceilings.

        interval = ceil(1000 / rps)

        Example:
            >>> RateThrottle.from_rps({"lookup": 15, "default": 8}).intervals_ms
            {'lookup': 67, 'default': 125}
        """
        return cls({name: math.ceil(1000 / value) for name, value in rps.items()})

    def interval_for(self, kind: str) -> int:
        """Interval in milliseconds for a class."""
        return self.intervals_ms.get(kind, self.intervals_ms[DEFAULT])

    async def check(self, kind: str = DEFAULT) -> None:
        """
        Wait until a call of this class may be issued, then record it as issued now.

        Args:
            kind: Throttle class ("lookup" or "default")
        """
        lock = self._locks.setdefault(kind, asyncio.Lock())

        async with lock:
            interval = self.interval_for(kind) / 1000.0
            last = self._last_call.get(kind)

            if last is not None:
                wait = interval - (time.monotonic() - last)
                if wait > 0:
                    self.logger.debug(f"Throttling '{kind}' call for {wait * 1000:.0f}ms")
                    await asyncio.sleep(wait)

            self._last_call[kind] = time.monotonic()
