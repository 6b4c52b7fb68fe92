"""
NSE Equity Endpoints

Quotes, metadata and index/ETF/SME listings for cash-market securities, plus
the gainers/losers filters applied to index constituent lists.

NSE Endpoints:
    GET /equity-meta-info?symbol=
    GET /quote-equity?symbol=[&section=trade_info]
    GET /quote-derivative?symbol=
    GET /equity-stockIndices?index=
    GET /allIndices, /etf, /live-analysis-emerge, /sovereign-gold-bonds
"""

from typing import Any, Dict, List, Literal, Mapping, Optional

from core.config import settings
from core.logging import get_logger
from core.schemas import EquityQuote
from exchanges.nse.session import SessionManager

logger = get_logger(__name__)


# ============================================
# Gainers / Losers
# ============================================

def _rows(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, Mapping):
        return list(data.get("data") or [])
    return list(data or [])


def top_gainers(data: Any, count: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Rows with a positive pChange, best first.

    Args:
        data: Market data ({"data": [...]}) or a plain list of rows
        count: Keep at most this many rows (None keeps all)

    Example:
        >>> rows = [{"symbol": "A", "pChange": -1}, {"symbol": "B", "pChange": 2},
        ...         {"symbol": "C", "pChange": 5}, {"symbol": "D", "pChange": 3}]
        >>> [r["symbol"] for r in top_gainers({"data": rows}, 2)]
        ['C', 'D']
    """
    gainers = [row for row in _rows(data) if (row.get("pChange") or 0) > 0]
    gainers.sort(key=lambda row: row["pChange"], reverse=True)
    return gainers if count is None else gainers[:count]


def top_losers(data: Any, count: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Rows with a negative pChange, most negative first.

    Example:
        >>> [r["symbol"] for r in top_losers({"data": rows}, 2)]
        ['A']
    """
    losers = [row for row in _rows(data) if (row.get("pChange") or 0) < 0]
    losers.sort(key=lambda row: row["pChange"])
    return losers if count is None else losers[:count]


# ============================================
# Equity API
# ============================================

class EquityApi:
    """
    Equity quote and listing endpoints.

    Attributes:
        session: Shared SessionManager of the owning client
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.base_url = settings.nse_base_url

    async def get_equity_meta_info(self, symbol: str) -> Dict[str, Any]:
        """Company metadata (industry, listing status, ...)."""
        return await self.session.request_json(
            f"{self.base_url}/equity-meta-info", {"symbol": symbol.upper()}
        )

    async def get_quote(
        self,
        symbol: str,
        type: Literal["equity", "fno"] = "equity",
        section: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Full quote for an equity or derivative.

        Args:
            symbol: Trading symbol (e.g., "INFY")
            type: "equity" for /quote-equity, "fno" for /quote-derivative
            section: Optional, must be "trade_info" when given

        Raises:
            ValueError: If section is anything other than "trade_info"
        """
        url = f"{self.base_url}/quote-equity" if type == "equity" else f"{self.base_url}/quote-derivative"
        query: Dict[str, Any] = {"symbol": symbol.upper()}

        if section:
            if section != "trade_info":
                raise ValueError("'section' if specified must be 'trade_info'")
            query["section"] = section

        return await self.session.request_json(url, query)

    async def get_equity_quote(self, symbol: str) -> EquityQuote:
        """
        OHLC plus traded volume, assembled from the quote and trade_info sections.

        Close falls back to the last traded price while the market is open.
        """
        quote = await self.get_quote(symbol, "equity")
        trade_info = await self.get_quote(symbol, "equity", section="trade_info")

        price_info = quote.get("priceInfo") or {}
        high_low = price_info.get("intraDayHighLow") or {}
        close = price_info.get("close")

        return EquityQuote(
            date=(quote.get("metadata") or {}).get("lastUpdateTime"),
            open=price_info.get("open"),
            high=high_low.get("max"),
            low=high_low.get("min"),
            close=close if close else price_info.get("lastPrice"),
            volume=(trade_info.get("securityWiseDP") or {}).get("quantityTraded"),
        )

    async def list_equity_stocks_by_index(self, index: str = "NIFTY 50") -> Dict[str, Any]:
        """Constituents of an index with their day's change (feed for top_gainers/top_losers)."""
        return await self.session.request_json(f"{self.base_url}/equity-stockIndices", {"index": index})

    async def list_indices(self) -> Dict[str, Any]:
        return await self.session.request_json(f"{self.base_url}/allIndices")

    async def list_etf(self) -> Dict[str, Any]:
        return await self.session.request_json(f"{self.base_url}/etf")

    async def list_sme(self) -> Dict[str, Any]:
        return await self.session.request_json(f"{self.base_url}/live-analysis-emerge")

    async def list_sgb(self) -> Dict[str, Any]:
        return await self.session.request_json(f"{self.base_url}/sovereign-gold-bonds")
