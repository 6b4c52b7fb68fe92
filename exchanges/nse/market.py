"""
NSE Market-Wide Endpoints

Market status, symbol search, block/bulk deals, the holiday calendar and the
daily reports index.
"""

from typing import Any, Dict, List, Literal, Optional

from core.config import settings
from core.logging import get_logger
from core.utils.date_range import validate_date_range
from core.utils.time import DateLike, format_date_dmy
from exchanges.nse.session import SessionManager

logger = get_logger(__name__)

BULK_DEALS_MAX_DAYS = 365

HolidayType = Literal["trading", "clearing"]
DailyReportSegment = Literal["CM", "INDEX", "SLBS", "SME", "FO", "COM", "CD", "NBF", "WDM", "CBM", "TRI-PARTY"]


class MarketApi:
    """
    Market-wide endpoints.

    Attributes:
        session: Shared SessionManager of the owning client
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.base_url = settings.nse_base_url

    async def get_status(self) -> List[Dict[str, Any]]:
        """Open/closed state of each market segment."""
        res = await self.session.request_json(f"{self.base_url}/marketStatus")
        return res.get("marketState") or []

    async def lookup(self, query: str) -> Dict[str, Any]:
        """
        Symbol search (autocomplete).

        Spaced under the faster "lookup" throttle class.
        """
        return await self.session.request_json(f"{self.base_url}/search/autocomplete", {"q": query})

    async def get_block_deals(self) -> Dict[str, Any]:
        return await self.session.request_json(f"{self.base_url}/block-deal")

    async def get_bulk_deals(self, from_date: DateLike, to_date: DateLike) -> List[Dict[str, Any]]:
        """
        Bulk deals between two dates (inclusive).

        Raises:
            InvalidRangeError: If the range is reversed or longer than one year
            ValueError: If NSE has no bulk deals for the range
        """
        validate_date_range(from_date, to_date, max_days=BULK_DEALS_MAX_DAYS)

        res = await self.session.request_json(f"{self.base_url}/historical/bulk-deals", {
            "from": format_date_dmy(from_date),
            "to": format_date_dmy(to_date),
        })

        data = res.get("data") or []
        if not data:
            raise ValueError("No bulk deals data available for the specified date range.")
        return data

    async def get_holidays(self, type: HolidayType = "trading") -> Dict[str, Any]:
        """Holiday calendar per segment."""
        return await self.session.request_json(f"{self.base_url}/holiday-master", {"type": type})

    async def get_daily_reports_file_metadata(
        self,
        segment: Optional[DailyReportSegment] = "CM"
    ) -> Dict[str, Any]:
        """File names and links of today's and the previous day's reports."""
        return await self.session.request_json(f"{self.base_url}/daily-reports", {"key": segment})
