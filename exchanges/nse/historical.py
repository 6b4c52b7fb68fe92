"""
NSE Historical Data Endpoints

Every historical endpoint caps the window it will serve per call, so requests
are split with split_date_range() and issued chunk by chunk, in order.

Chunk quotas:
    /historical/cm/equity     - 100 days
    /historical/vixhistory    - 365 days
    /historical/foCPV         - 365 days
    /historical/indicesHistory - 365 days

Defaults:
    to_date defaults to today; from_date defaults to to_date - 30 days.

Failure Semantics:
    A failing chunk aborts the whole call. Rows gathered from earlier chunks
    are discarded and the error propagates to the caller.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.config import settings
from core.logging import get_logger
from core.schemas import IndexHistory
from core.utils.date_range import split_date_range, validate_date_range
from core.utils.time import DateLike, format_date_dmy, format_date_expiry, to_date as as_date, today
from exchanges.nse.session import SessionManager

logger = get_logger(__name__)

EQUITY_CHUNK_DAYS = 100
DEFAULT_CHUNK_DAYS = 365
DEFAULT_WINDOW_DAYS = 30

OPTION_INSTRUMENTS = ("OPTIDX", "OPTSTK")


def resolve_window(
    from_date: Optional[DateLike] = None,
    to_date: Optional[DateLike] = None
) -> Tuple[DateLike, DateLike]:
    """
    Apply the default 30-day window and validate the ordering.

    Raises:
        InvalidRangeError: If from_date is after to_date
    """
    end = to_date if to_date is not None else today()
    start = from_date if from_date is not None else as_date(end) - timedelta(days=DEFAULT_WINDOW_DAYS)
    validate_date_range(start, end)
    return start, end


class HistoricalApi:
    """
    Chunked historical series for equities, VIX, F&O contracts and indices.

    Attributes:
        session: Shared SessionManager of the owning client
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.base_url = settings.nse_base_url

    async def fetch_equity_historical_data(
        self,
        symbol: str,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None,
        series: Sequence[str] = ("EQ",)
    ) -> List[Dict[str, Any]]:
        """
        Daily equity history, oldest first.

        NSE returns each chunk newest first, so every chunk is reversed before
        being appended. Without dates and with the plain ["EQ"] series a single
        unchunked call is made.

        Args:
            symbol: Trading symbol (e.g., "RELIANCE")
            from_date: Start date (inclusive)
            to_date: End date (inclusive)
            series: Series codes to include

        Returns:
            List of daily records

        Raises:
            InvalidRangeError: If from_date is after to_date
            HttpError: If any chunk fails
        """
        url = f"{self.base_url}/historical/cm/equity"

        if from_date is None and to_date is None and list(series) == ["EQ"]:
            res = await self.session.request_json(url, {"symbol": symbol})
            return list(reversed(res.get("data") or []))

        start, end = resolve_window(from_date, to_date)
        series_param = "[" + ",".join(f'"{s}"' for s in series) + "]"

        results: List[Dict[str, Any]] = []
        for chunk in split_date_range(start, end, EQUITY_CHUNK_DAYS):
            res = await self.session.request_json(url, {
                "symbol": symbol,
                "series": series_param,
                "from": format_date_dmy(chunk.start),
                "to": format_date_dmy(chunk.end),
            })
            results.extend(reversed(res.get("data") or []))

        logger.debug(f"Fetched {len(results)} equity rows for {symbol}")
        return results

    async def fetch_historical_vix_data(
        self,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> List[Dict[str, Any]]:
        """India VIX daily history."""
        start, end = resolve_window(from_date, to_date)

        results: List[Dict[str, Any]] = []
        for chunk in split_date_range(start, end, DEFAULT_CHUNK_DAYS):
            res = await self.session.request_json(f"{self.base_url}/historical/vixhistory", {
                "from": format_date_dmy(chunk.start),
                "to": format_date_dmy(chunk.end),
            })
            results.extend(res.get("data") or [])
        return results

    async def fetch_historical_fno_data(
        self,
        symbol: str,
        instrument: str = "FUTIDX",
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None,
        expiry: Optional[DateLike] = None,
        option_type: Optional[str] = None,
        strike_price: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        """
        Daily contract history for futures and options.

        Args:
            symbol: Underlying symbol
            instrument: FUTIDX, FUTSTK, OPTIDX or OPTSTK
            from_date: Start date (inclusive)
            to_date: End date (inclusive)
            expiry: Contract expiry; also sets the `year` parameter
            option_type: "CE" or "PE"; required for option instruments
            strike_price: Optional strike filter for options

        Raises:
            ValueError: If an option instrument is requested without option_type
            InvalidRangeError: If from_date is after to_date
        """
        instrument = instrument.upper()
        start, end = resolve_window(from_date, to_date)

        query: Dict[str, Any] = {
            "instrumentType": instrument,
            "symbol": symbol.upper(),
        }

        if expiry is not None:
            query["expiryDate"] = format_date_expiry(expiry)
            query["year"] = as_date(expiry).year

        if instrument in OPTION_INSTRUMENTS:
            if not option_type:
                raise ValueError("`option_type` param is required for Stock or Index options.")
            query["optionType"] = option_type
            if strike_price is not None:
                query["strikePrice"] = strike_price

        results: List[Dict[str, Any]] = []
        for chunk in split_date_range(start, end, DEFAULT_CHUNK_DAYS):
            res = await self.session.request_json(f"{self.base_url}/historical/foCPV", {
                **query,
                "from": format_date_dmy(chunk.start),
                "to": format_date_dmy(chunk.end),
            })
            results.extend(res.get("data") or [])
        return results

    async def fetch_historical_index_data(
        self,
        index: str,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None
    ) -> IndexHistory:
        """
        Index close and turnover history.

        Returns:
            IndexHistory with `price` (indexCloseOnlineRecords) and
            `turnover` (indexTurnoverRecords), both in chunk order
        """
        start, end = resolve_window(from_date, to_date)

        price: List[Dict[str, Any]] = []
        turnover: List[Dict[str, Any]] = []
        for chunk in split_date_range(start, end, DEFAULT_CHUNK_DAYS):
            res = await self.session.request_json(f"{self.base_url}/historical/indicesHistory", {
                "indexType": index.upper(),
                "from": format_date_dmy(chunk.start),
                "to": format_date_dmy(chunk.end),
            })
            data = res.get("data") or {}
            price.extend(data.get("indexCloseOnlineRecords") or [])
            turnover.extend(data.get("indexTurnoverRecords") or [])

        return IndexHistory(price=price, turnover=turnover)

    async def fetch_fno_underlying(self) -> Dict[str, Any]:
        """Underlyings available for F&O trading (index and stock lists)."""
        res = await self.session.request_json(f"{self.base_url}/underlying-information")
        return res.get("data") or {}

    async def fetch_index_names(self) -> Dict[str, Any]:
        """Index display names and their API identifiers."""
        return await self.session.request_json(f"{self.base_url}/index-names")
