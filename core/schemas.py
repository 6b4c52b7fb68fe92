"""
Normalized Data Schemas

This module defines Pydantic models for the data this backend reshapes.

Key Principle:
    NSE serves option chains in two incompatible shapes ("legacy", where every
    row carries `expiryDate`, and "v3", where rows carry `expiryDates`). Both are
    normalized into OptionChain immediately after fetch so the analytics only
    ever see one canonical structure.

Models:
    - OptionLeg: One side (call or put) of a strike
    - OptionChainRow: A strike for one expiry with optional CE/PE legs
    - OptionChain: Canonical chain for one underlying
    - CompiledChain: Derived ATM / max pain / PCR view
    - FilteredChain: Essential view around the ATM strike
    - SymbolRecord: Company lookup result
    - EquityQuote: Simplified OHLCV quote
    - IndexHistory: Price and turnover records for an index
    - DateChunk: Inclusive date sub-interval
"""

from datetime import date
from typing import Any, Dict, List, Literal, NamedTuple, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


ChainVariant = Literal["legacy", "v3"]


# ============================================
# Option Chain Input Schemas
# ============================================

class OptionLeg(BaseModel):
    """
    One side (call or put) of a strike, as snapshotted from upstream.

    Upstream field names are accepted through aliases, so a raw NSE leg
    dictionary can be validated directly:

    Example:
        >>> OptionLeg.model_validate({"openInterest": 1200, "lastPrice": 45.5})
        OptionLeg(open_interest=1200.0, ..., last_price=45.5, ...)

    Notes:
        - NSE sends null or omits numbers for illiquid strikes; those become 0
        - `pchange` is spelled `pchange` in v3 payloads and `pChange` in legacy ones
    """

    open_interest: float = Field(
        default=0.0,
        validation_alias=AliasChoices("openInterest", "open_interest"),
        description="Outstanding contracts"
    )

    change_in_open_interest: float = Field(
        default=0.0,
        validation_alias=AliasChoices("changeinOpenInterest", "changeInOpenInterest", "change_in_open_interest"),
        description="Change in open interest since previous close"
    )

    last_price: float = Field(
        default=0.0,
        validation_alias=AliasChoices("lastPrice", "last_price")
    )

    change: float = Field(default=0.0)

    pchange: float = Field(
        default=0.0,
        validation_alias=AliasChoices("pchange", "pChange")
    )

    implied_volatility: float = Field(
        default=0.0,
        validation_alias=AliasChoices("impliedVolatility", "implied_volatility")
    )

    total_traded_volume: float = Field(
        default=0.0,
        validation_alias=AliasChoices("totalTradedVolume", "total_traded_volume")
    )

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        """Treat missing numeric values as zero"""
        if v is None or v == "" or v == "-":
            return 0.0
        return v


class OptionChainRow(BaseModel):
    """
    A single strike for one expiry.

    A row may carry one leg, both legs or (degenerate) neither.
    """

    strike_price: float
    expiry: str
    ce: Optional[OptionLeg] = None
    pe: Optional[OptionLeg] = None

    model_config = ConfigDict(frozen=True)


class OptionChain(BaseModel):
    """
    Canonical option chain produced by the normalization step.

    Attributes:
        variant: Upstream schema the chain was parsed from
        underlying_value: Live spot price of the underlying
        timestamp: Upstream snapshot time (as sent, e.g. "09-Dec-2025 15:30:00")
        rows: Strike rows in upstream order
        interval_strikes: Legacy only - strikes of the upstream "filtered" block,
            in upstream order (used for strike interval inference)
        expiry_dates: Expiries listed alongside a legacy payload, if any
    """

    variant: ChainVariant
    underlying_value: float = 0.0
    timestamp: Optional[str] = None
    rows: List[OptionChainRow] = Field(default_factory=list)
    interval_strikes: List[float] = Field(default_factory=list)
    expiry_dates: List[str] = Field(default_factory=list)

    def strikes(self) -> List[float]:
        """Distinct strike prices in first-seen order."""
        return list(dict.fromkeys(row.strike_price for row in self.rows))


# ============================================
# Compiled Option Chain Schemas
# ============================================

class LegSummary(BaseModel):
    """Per-strike leg snapshot in the compiled view."""

    last: float = 0.0
    oi: float = 0.0
    chg: float = 0.0
    iv: float = 0.0


class StrikeSummary(BaseModel):
    """
    Call and put summary for one strike.

    `pcr` is None whenever either leg's open interest is zero.
    """

    ce: LegSummary = Field(default_factory=LegSummary)
    pe: LegSummary = Field(default_factory=LegSummary)
    pcr: Optional[float] = None


class CompiledChain(BaseModel):
    """
    Derived, read-only analytics over one chain and expiry.

    Attributes:
        expiry: Expiry in "DD-Mon-YYYY" format
        timestamp: Upstream snapshot time
        underlying: Spot price
        atm: Nearest multiple of the strike interval to the spot price
        maxpain: Strike minimizing aggregate option-writer payout
        max_coi: Strike with the largest call open interest
        max_poi: Strike with the largest put open interest
        coi_total: Aggregate call open interest
        poi_total: Aggregate put open interest
        pcr: poi_total / coi_total rounded to 2 decimals (0 if coi_total is 0)
        chain: Per-strike summaries keyed by strike
    """

    expiry: str
    timestamp: Optional[str] = None
    underlying: float
    atm: float
    maxpain: float
    max_coi: float
    max_poi: float
    coi_total: float
    poi_total: float
    pcr: float
    chain: Dict[str, StrikeSummary]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "expiry": "09-Dec-2025",
                "timestamp": "05-Dec-2025 15:30:00",
                "underlying": 26186.45,
                "atm": 26200.0,
                "maxpain": 26100.0,
                "max_coi": 26500.0,
                "max_poi": 26000.0,
                "coi_total": 1523400.0,
                "poi_total": 1398750.0,
                "pcr": 0.92,
                "chain": {
                    "26200": {
                        "ce": {"last": 112.5, "oi": 52000.0, "chg": -8.2, "iv": 11.4},
                        "pe": {"last": 98.0, "oi": 61000.0, "chg": 5.1, "iv": 12.0},
                        "pcr": 1.17
                    }
                }
            }
        }
    )


class EssentialLeg(BaseModel):
    """Reduced leg payload of the filtered view."""

    last_price: float
    change: float
    pchange: float
    open_interest: float
    change_in_open_interest: float
    implied_volatility: float
    total_traded_volume: float


class EssentialRow(BaseModel):
    strike_price: float
    expiry_date: str
    ce: Optional[EssentialLeg] = None
    pe: Optional[EssentialLeg] = None


class FilteredChain(BaseModel):
    """
    Bounded neighbourhood of strikes around the listed ATM strike.

    Shrinks a full chain (hundreds of strikes) to `2 * strike_range + 1`
    strikes at most, keeping only the fields needed for a quick read.
    """

    symbol: str
    underlying_value: float
    atm_strike: float
    timestamp: Optional[str] = None
    strike_range: str
    total_strikes: int
    data: List[EssentialRow]


# ============================================
# Equity / Lookup Schemas
# ============================================

class SymbolRecord(BaseModel):
    """
    Company lookup result.

    Fields are filled incrementally by the symbol parser in the fixed order
    company_name, symbol, isin, bse_code.
    """

    company_name: Optional[str] = None
    symbol: Optional[str] = None
    isin: Optional[str] = None
    bse_code: Optional[str] = None


class EquityQuote(BaseModel):
    """Simplified equity quote built from the quote and trade_info sections."""

    date: Optional[str] = None
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    volume: Optional[float] = None


class IndexHistory(BaseModel):
    """Index closing prices and turnover accumulated across date chunks."""

    price: List[Dict[str, Any]] = Field(default_factory=list)
    turnover: List[Dict[str, Any]] = Field(default_factory=list)


class DateChunk(NamedTuple):
    """Inclusive [start, end] sub-interval of a date range."""

    start: date
    end: date
