"""
NSE Corporate Filings Endpoints

Corporate actions, announcements, board meetings, annual reports and
exchange circulars. Date filters are only sent when both ends are given,
except for circulars which default to the last 7 days.
"""

from datetime import timedelta
from typing import Any, Dict, Literal, Optional

from core.config import settings
from core.logging import get_logger
from core.utils.date_range import validate_date_range
from core.utils.time import DateLike, format_date_dmy, to_date as as_date, today
from exchanges.nse.session import SessionManager

logger = get_logger(__name__)

CIRCULAR_WINDOW_DAYS = 7

Segment = Literal["equities", "sme", "debt", "mf"]


def _date_filter(from_date: Optional[DateLike], to_date: Optional[DateLike]) -> Dict[str, str]:
    if from_date is None or to_date is None:
        return {}

    validate_date_range(from_date, to_date)
    return {
        "from_date": format_date_dmy(from_date),
        "to_date": format_date_dmy(to_date),
    }


class CorporateApi:
    """
    Corporate filings endpoints.

    Attributes:
        session: Shared SessionManager of the owning client
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.base_url = settings.nse_base_url

    async def get_actions(
        self,
        segment: Segment = "equities",
        symbol: Optional[str] = None,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> Any:
        """Dividends, splits, bonuses and other corporate actions."""
        query: Dict[str, Any] = {"index": segment, "symbol": symbol}
        query.update(_date_filter(from_date, to_date))
        return await self.session.request_json(f"{self.base_url}/corporates-corporateActions", query)

    async def get_announcements(
        self,
        index: Segment = "equities",
        symbol: Optional[str] = None,
        fno: bool = False,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> Any:
        """Corporate announcements, optionally restricted to F&O securities."""
        query: Dict[str, Any] = {"index": index, "symbol": symbol}
        if fno:
            query["fo_sec"] = True
        query.update(_date_filter(from_date, to_date))
        return await self.session.request_json(f"{self.base_url}/corporate-announcements", query)

    async def get_board_meetings(
        self,
        index: Segment = "equities",
        symbol: Optional[str] = None,
        fno: bool = False,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> Any:
        """Scheduled and past board meetings."""
        query: Dict[str, Any] = {"index": index, "symbol": symbol}
        if fno:
            query["fo_sec"] = True
        query.update(_date_filter(from_date, to_date))
        return await self.session.request_json(f"{self.base_url}/corporate-board-meetings", query)

    async def get_annual_reports(self, symbol: str, segment: Literal["equities", "sme"] = "equities") -> Any:
        return await self.session.request_json(
            f"{self.base_url}/annual-reports", {"index": segment, "symbol": symbol}
        )

    async def get_circulars(
        self,
        subject: Optional[str] = None,
        dept_code: Optional[str] = None,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> Any:
        """
        Exchange circulars, by default from the last 7 days.

        Raises:
            InvalidRangeError: If from_date is after to_date
        """
        end = to_date if to_date is not None else today()
        start = from_date if from_date is not None else as_date(end) - timedelta(days=CIRCULAR_WINDOW_DAYS)
        validate_date_range(start, end)

        query: Dict[str, Any] = {
            "from_date": format_date_dmy(start),
            "to_date": format_date_dmy(end),
            "sub": subject,
            "dept": dept_code.upper() if dept_code else None,
        }
        return await self.session.request_json(f"{self.base_url}/circulars", query)
