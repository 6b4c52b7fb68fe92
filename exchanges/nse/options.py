"""
NSE Options & Futures Endpoints

Fetches option chains, expiries and lot sizes, and hands chains to the
analytics in services.option_chain.

NSE Endpoints:
    GET /option-chain-contract-info?symbol=         - authoritative expiry list
    GET /option-chain-v3?type=&symbol=&expiry=      - chain for one expiry
    GET /liveEquity-derivatives?index=              - futures expiries
    GET {archive}/content/fo/fo_mktlots.csv         - F&O lot sizes

Expiry Handling:
    The v3 chain endpoint requires an expiry. When none is supplied the
    contract info is fetched first and the earliest expiry is used;
    NoExpiryError is raised if NSE lists none.
"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional, Union

from core.config import settings
from core.logging import get_logger
from core.schemas import CompiledChain, FilteredChain, OptionChain
from core.utils.time import parse_expiry_date
from exchanges.nse.session import SessionManager
from services.option_chain import (
    compile_chain,
    expiry_key,
    filter_chain,
    nearest_expiry,
    normalize_chain,
    sort_expiry_dates,
)

logger = get_logger(__name__)

FNO_BANK = "banknifty"
FNO_NIFTY = "nifty"
FNO_FINNIFTY = "finnifty"
FNO_IT = "niftyit"

OPTION_INDICES = (FNO_BANK, FNO_NIFTY, FNO_FINNIFTY, FNO_IT)

FUTURES_INDEX_KEYS = {
    FNO_BANK: "nifty_bank_fut",
    FNO_FINNIFTY: "finnifty_fut",
    FNO_NIFTY: "nse50_fut",
    FNO_IT: "niftyit_fut",
}


def parse_lot_sizes(csv_text: str) -> Dict[str, int]:
    """
    Parse the F&O market lots CSV into {symbol: lot size}.

    The symbol is read from the 2nd column and the lot from the 4th; header
    rows and rows without a numeric lot are skipped.
    """
    lots: Dict[str, int] = {}
    for line in csv_text.strip().splitlines():
        parts = line.split(",")
        if len(parts) < 4:
            continue

        symbol = parts[1].strip()
        lot = parts[3].strip()
        if not symbol or not lot.isdigit():
            continue
        lots[symbol] = int(lot)
    return lots


class OptionsApi:
    """
    Option chain, expiry and lot size endpoints.

    Attributes:
        session: Shared SessionManager of the owning client
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.base_url = settings.nse_base_url
        self.archive_url = settings.nse_archive_url

    # ============================================
    # Reference Data
    # ============================================

    async def get_fno_lots(self) -> Dict[str, int]:
        """Lot size per F&O symbol."""
        csv_text = await self.session.request_text(f"{self.archive_url}/content/fo/fo_mktlots.csv")
        return parse_lot_sizes(csv_text)

    async def get_contract_info(self, symbol: str) -> Dict[str, Any]:
        """Contract info (expiry dates, strikes) for a symbol."""
        return await self.session.request_json(
            f"{self.base_url}/option-chain-contract-info", {"symbol": symbol.upper()}
        )

    async def get_expiry_dates(self, symbol: str) -> List[str]:
        """
        Available expiries, earliest first, in "DD-Mon-YYYY" format.

        Falls back to `records.expiryDates` (as listed) for older response shapes.
        """
        info = await self.get_contract_info(symbol)

        expiries = info.get("expiryDates") if isinstance(info, dict) else None
        if isinstance(expiries, list):
            return sort_expiry_dates(expiries)

        records = info.get("records") if isinstance(info, dict) else None
        if isinstance(records, dict) and records.get("expiryDates"):
            return list(records["expiryDates"])

        return []

    async def get_futures_expiry(self, index: str = FNO_NIFTY) -> List[str]:
        """Futures expiries of an index, earliest first."""
        key = FUTURES_INDEX_KEYS.get(index.lower(), "nse50_fut")
        res = await self.session.request_json(f"{self.base_url}/liveEquity-derivatives", {"index": key})
        return sorted((item["expiryDate"] for item in res.get("data") or []), key=parse_expiry_date)

    # ============================================
    # Option Chains
    # ============================================

    async def get_option_chain_raw(
        self,
        symbol: str,
        type: Optional[Literal["Indices", "Equity"]] = None,
        expiry: Optional[Union[str, date]] = None
    ) -> Dict[str, Any]:
        """
        Raw v3 chain for one expiry (nearest expiry when omitted).

        Args:
            symbol: Index or stock symbol (e.g., "NIFTY", "RELIANCE")
            type: "Indices" or "Equity"; inferred from the symbol when omitted
            expiry: Expiry date or "DD-Mon-YYYY" string

        Raises:
            NoExpiryError: If no expiry was given and NSE lists none
        """
        if type is None:
            type = "Indices" if symbol.lower() in OPTION_INDICES else "Equity"

        if expiry is None:
            expiry = nearest_expiry(await self.get_expiry_dates(symbol), symbol)

        return await self.session.request_json(
            f"{self.base_url}/option-chain-v3",
            {"type": type, "symbol": symbol.upper(), "expiry": expiry_key(expiry)}
        )

    async def get_option_chain(
        self,
        symbol: str,
        type: Optional[Literal["Indices", "Equity"]] = None,
        expiry: Optional[Union[str, date]] = None
    ) -> OptionChain:
        """Normalized chain for one expiry (nearest expiry when omitted)."""
        return normalize_chain(await self.get_option_chain_raw(symbol, type, expiry))

    async def get_filtered_option_chain(
        self,
        symbol: str,
        expiry: Optional[Union[str, date]] = None,
        strike_range: int = 10
    ) -> FilteredChain:
        """
        Essential view: `strike_range` strikes either side of the listed ATM strike.
        """
        chain = await self.get_option_chain(symbol, expiry=expiry)
        return filter_chain(chain, symbol, strike_range)

    async def compile_option_chain(
        self,
        symbol: str,
        expiry: Optional[Union[str, date]] = None
    ) -> CompiledChain:
        """
        ATM, max pain, OI totals and PCR for one expiry (nearest when omitted).

        Raises:
            NoExpiryError: If no expiry was given and NSE lists none
        """
        if expiry is None:
            expiry = nearest_expiry(await self.get_expiry_dates(symbol), symbol)

        chain = await self.get_option_chain(symbol, expiry=expiry)
        compiled = compile_chain(chain, expiry)
        logger.info(
            f"Compiled option chain {symbol.upper()} {compiled.expiry}: "
            f"atm={compiled.atm} maxpain={compiled.maxpain} pcr={compiled.pcr}"
        )
        return compiled
