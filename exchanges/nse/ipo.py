"""
NSE IPO Endpoints
"""

from datetime import timedelta
from typing import Any, Optional

from core.config import settings
from core.utils.date_range import validate_date_range
from core.utils.time import DateLike, format_date_dmy, to_date as as_date, today
from exchanges.nse.session import SessionManager

PAST_IPO_WINDOW_DAYS = 90


class IpoApi:
    """
    Current, upcoming and past public issues.

    Attributes:
        session: Shared SessionManager of the owning client
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.base_url = settings.nse_base_url

    async def list_current_ipo(self) -> Any:
        return await self.session.request_json(f"{self.base_url}/ipo-current-issue")

    async def list_upcoming_ipo(self) -> Any:
        return await self.session.request_json(f"{self.base_url}/all-upcoming-issues", {"category": "ipo"})

    async def get_ipo_details(self, symbol: str, series: str = "EQ") -> Any:
        """Issue details (price band, lot size, bid dates) for one IPO."""
        return await self.session.request_json(
            f"{self.base_url}/ipo-detail", {"symbol": symbol.upper(), "series": series}
        )

    async def list_past_ipo(
        self,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> Any:
        """
        Past issues, by default from the last 90 days.

        Raises:
            InvalidRangeError: If from_date is after to_date
        """
        end = to_date if to_date is not None else today()
        start = from_date if from_date is not None else as_date(end) - timedelta(days=PAST_IPO_WINDOW_DAYS)
        validate_date_range(start, end)

        return await self.session.request_json(f"{self.base_url}/public-past-issues", {
            "from_date": format_date_dmy(start),
            "to_date": format_date_dmy(end),
        })
