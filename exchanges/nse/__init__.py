"""
NSE (National Stock Exchange of India) Connector

This package talks to the undocumented JSON API behind nseindia.com and the
report archives on nsearchives.nseindia.com.

Structure:
    exchanges/nse/
    ├── __init__.py     # This file (NSEClient)
    ├── throttle.py     # Per-class request spacing
    ├── session.py      # Cookie priming, 401 retry, downloads
    ├── equity.py       # Quotes, index constituents, gainers/losers
    ├── options.py      # Option chains, expiries, lot sizes
    ├── historical.py   # Chunked historical series
    ├── market.py       # Market status, lookup, deals, holidays
    ├── corporate.py    # Corporate actions and filings
    ├── ipo.py          # Public issues
    └── download.py     # Archive reports (bhavcopies, ...)

Example:
    >>> async with NSEClient() as nse:
    ...     compiled = await nse.options.compile_option_chain("NIFTY")
    ...     print(compiled.atm, compiled.maxpain, compiled.pcr)
"""

from typing import Optional

from core.config import settings
from core.logging import get_logger
from exchanges.nse.corporate import CorporateApi
from exchanges.nse.download import DownloadApi
from exchanges.nse.equity import EquityApi
from exchanges.nse.historical import HistoricalApi
from exchanges.nse.ipo import IpoApi
from exchanges.nse.market import MarketApi
from exchanges.nse.options import OptionsApi
from exchanges.nse.session import SessionManager
from exchanges.nse.throttle import RateThrottle

logger = get_logger(__name__)


class NSEClient:
    """
    Entry point for every NSE endpoint.

    One RateThrottle and one SessionManager are created per client and
    shared by all endpoint modules, so every call made through this client
    is spaced and cookie-primed together.

    Attributes:
        throttle: RateThrottle shared by all endpoint modules
        session: SessionManager shared by all endpoint modules
        equity, options, historical, market, corporate, ipo, download: Endpoint modules

    Notes:
        - Network connections are opened in initialize(), not in __init__
        - shutdown() persists the cookie jar so the next process can skip priming
    """

    name = "nse"

    def __init__(
        self,
        download_dir: Optional[str] = None,
        throttle: Optional[RateThrottle] = None
    ):
        """
        Initialize the NSE client.

        Args:
            download_dir: Folder for downloads and the cookie file (defaults to settings)
            throttle: Custom throttle (defaults to the configured per-class rates)
        """
        self.throttle = throttle or RateThrottle(settings.throttle_intervals_ms)
        self.session = SessionManager(self.throttle, download_dir=download_dir)

        self.equity = EquityApi(self.session)
        self.options = OptionsApi(self.session)
        self.historical = HistoricalApi(self.session)
        self.market = MarketApi(self.session)
        self.corporate = CorporateApi(self.session)
        self.ipo = IpoApi(self.session)
        self.download = DownloadApi(self.session)

        logger.debug(f"NSEClient created (download_dir={self.session.download_dir})")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    async def initialize(self) -> None:
        """Open the HTTP session and load persisted cookies."""
        logger.info("Initializing NSE client...")
        await self.session.start()
        logger.info("✓ NSE client initialized")

    async def shutdown(self) -> None:
        """Persist cookies and close the HTTP session."""
        logger.info("Shutting down NSE client...")
        await self.session.close()
        logger.info("✓ NSE client shut down")


__all__ = ["NSEClient", "RateThrottle", "SessionManager"]
