"""
Option Chain Analytics

Turns a raw NSE option-chain payload into derived metrics:

    - ATM strike (nearest multiple of the strike interval to the spot price)
    - Max pain (strike where option writers pay out the least at expiry)
    - Per-strike call/put summaries and put-call ratios
    - Chain-level open interest totals and PCR
    - An "essential" view: a bounded window of strikes around the ATM

NSE serves two incompatible chain shapes:

    legacy: {"records": {"data": [{"expiryDate": ..., "strikePrice": ..., "CE": {...}, "PE": {...}}],
                         "expiryDates": [...], "underlyingValue": ..., "timestamp": ...},
             "filtered": {"data": [{"strikePrice": ...}, ...]}}

    v3:     {"records": {"data": [{"expiryDates": ..., "strikePrice": ..., "CE": {...}, "PE": {...}}],
                         "underlyingValue": ..., "timestamp": ...}}

normalize_chain() maps either shape onto core.schemas.OptionChain right after
fetch; every function below works on that canonical shape only.

All functions are pure and safe to call from any task.
"""

import math
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from core.errors import NoExpiryError
from core.logging import get_logger
from core.schemas import (
    CompiledChain,
    EssentialLeg,
    EssentialRow,
    FilteredChain,
    LegSummary,
    OptionChain,
    OptionChainRow,
    OptionLeg,
    StrikeSummary,
)
from core.utils.time import format_date_expiry, parse_expiry_date

logger = get_logger(__name__)

FALLBACK_STRIKE_INTERVAL = 50.0

ExpiryLike = Union[str, date]


# ============================================
# Normalization
# ============================================

def detect_variant(payload: Mapping[str, Any]) -> str:
    """
    Identify the schema of a raw chain payload.

    Rows carrying `expiryDates` are v3, rows carrying `expiryDate` are legacy.
    With no rows to inspect, a top-level "filtered" block marks a legacy payload.
    """
    rows = (payload.get("records") or {}).get("data") or []
    for row in rows:
        if "expiryDates" in row:
            return "v3"
        if "expiryDate" in row:
            return "legacy"
    return "legacy" if "filtered" in payload else "v3"


def normalize_chain(payload: Union[OptionChain, Mapping[str, Any]]) -> OptionChain:
    """
    Convert a raw legacy or v3 payload into the canonical OptionChain.

    Args:
        payload: Raw JSON body from an option chain endpoint (an OptionChain is returned as-is)

    Returns:
        OptionChain with rows in upstream order
    """
    if isinstance(payload, OptionChain):
        return payload

    variant = detect_variant(payload)
    records = payload.get("records") or {}

    rows = []
    for item in records.get("data") or []:
        expiry = item.get("expiryDates") if variant == "v3" else item.get("expiryDate")
        rows.append(
            OptionChainRow(
                strike_price=float(item["strikePrice"]),
                expiry=expiry or "",
                ce=OptionLeg.model_validate(item["CE"]) if item.get("CE") else None,
                pe=OptionLeg.model_validate(item["PE"]) if item.get("PE") else None,
            )
        )

    interval_strikes = []
    if variant == "legacy":
        filtered = (payload.get("filtered") or {}).get("data") or []
        interval_strikes = [float(item["strikePrice"]) for item in filtered if "strikePrice" in item]

    chain = OptionChain(
        variant=variant,
        underlying_value=float(records.get("underlyingValue") or 0.0),
        timestamp=records.get("timestamp"),
        rows=rows,
        interval_strikes=interval_strikes,
        expiry_dates=list(records.get("expiryDates") or []),
    )

    logger.debug(
        f"Normalized {variant} chain: {len(rows)} rows, "
        f"{len(chain.strikes())} strikes, underlying={chain.underlying_value}"
    )
    return chain


# ============================================
# Expiries
# ============================================

def sort_expiry_dates(dates: Iterable[str]) -> List[str]:
    """
    Sort "DD-Mon-YYYY" expiry strings by calendar date, earliest first.

    Example:
        >>> sort_expiry_dates(["30-Dec-2025", "09-Dec-2025", "27-Jan-2026"])
        ['09-Dec-2025', '30-Dec-2025', '27-Jan-2026']
    """
    return sorted(dates, key=parse_expiry_date)


def nearest_expiry(dates: Iterable[str], symbol: str) -> str:
    """
    Earliest expiry of a list.

    Raises:
        NoExpiryError: If the list is empty
    """
    ordered = sort_expiry_dates(dates)
    if not ordered:
        raise NoExpiryError(symbol)
    return ordered[0]


def expiry_key(expiry: ExpiryLike) -> str:
    """
    Canonical "DD-Mon-YYYY" form of an expiry given as a date or string.

    Example:
        >>> expiry_key("9-dec-2025")
        '09-Dec-2025'

    Raises:
        ValueError: If a string expiry is not in DD-Mon-YYYY format
    """
    if isinstance(expiry, date):
        return format_date_expiry(expiry)
    return format_date_expiry(parse_expiry_date(expiry))


def _rows_for_expiry(chain: OptionChain, expiry: ExpiryLike) -> List[OptionChainRow]:
    key = expiry_key(expiry).lower()
    return [row for row in chain.rows if row.expiry.strip().lower() == key]


# ============================================
# Strike Interval & ATM
# ============================================

def infer_strike_interval(chain: OptionChain) -> float:
    """
    Spacing between adjacent strikes.

    v3 chains use the two lowest distinct strikes. Legacy chains use the first
    two strikes of the upstream "filtered" block as returned, unsorted; when that
    block has fewer than two strikes the sorted distinct strikes are used.
    Falls back to 50 when fewer than two strikes exist.
    """
    if chain.variant == "legacy" and len(chain.interval_strikes) >= 2:
        return chain.interval_strikes[1] - chain.interval_strikes[0]

    strikes = sorted(set(chain.strikes()))
    if len(strikes) >= 2:
        return strikes[1] - strikes[0]
    return FALLBACK_STRIKE_INTERVAL


def resolve_atm(underlying: float, interval: float) -> float:
    """
    Nearest multiple of `interval` to `underlying`, halves rounded up.

    Example:
        >>> resolve_atm(26186.45, 50)
        26200.0
    """
    if not interval:
        return underlying
    return interval * math.floor(underlying / interval + 0.5)


def nearest_listed_strike(chain: OptionChain) -> Optional[float]:
    """
    The listed strike closest to the spot price (first listed wins on ties).

    Unlike resolve_atm() the result is always a strike present in the chain.
    Returns None for an empty chain.
    """
    best = None
    for strike in chain.strikes():
        if best is None or abs(strike - chain.underlying_value) < abs(best - chain.underlying_value):
            best = strike
    return best


# ============================================
# Max Pain
# ============================================

def pain_by_strike(chain: OptionChain, expiry: ExpiryLike) -> Dict[float, float]:
    """
    Aggregate writer cost at each candidate expiry price.

    For every strike K of the expiry:
        pain(K) = sum over S < K of -(K - S) * callOI(S)
                + sum over S > K of  (K - S) * putOI(S)

    Both terms are non-positive; the closer to zero, the less writers pay.
    """
    rows = _rows_for_expiry(chain, expiry)
    pain: Dict[float, float] = {}

    for candidate in rows:
        k = candidate.strike_price
        total = 0.0
        for row in rows:
            diff = k - row.strike_price
            if diff > 0 and row.ce is not None:
                total += -diff * row.ce.open_interest
            if diff < 0 and row.pe is not None:
                total += diff * row.pe.open_interest
        pain[k] = total

    return pain


def calculate_max_pain(chain: Union[OptionChain, Mapping[str, Any]], expiry: ExpiryLike) -> float:
    """
    Max pain strike for one expiry.

    Args:
        chain: Normalized chain or raw legacy/v3 payload
        expiry: Expiry as a date or "DD-Mon-YYYY" string

    Returns:
        Strike with the highest (least negative) pain; ties go to the strike
        listed first. 0 if the expiry has no rows.

    Example:
        strikes 100/110/120, call OI 10/5/0, put OI 0/5/15 -> 110
    """
    pain = pain_by_strike(normalize_chain(chain), expiry)
    if not pain:
        return 0.0

    # sorted() is stable, so equal pains keep listing order
    ranked = sorted(pain, key=lambda strike: pain[strike], reverse=True)
    return ranked[0]


# ============================================
# Compiled Chain
# ============================================

def _ratio(numerator: float, denominator: float) -> Optional[float]:
    if not numerator or not denominator:
        return None
    return round(numerator / denominator, 2)


def _strike_key(strike: float) -> str:
    return str(int(strike)) if float(strike).is_integer() else str(strike)


def _leg_summary(leg: Optional[OptionLeg]) -> LegSummary:
    if leg is None:
        return LegSummary()
    return LegSummary(
        last=leg.last_price,
        oi=leg.open_interest,
        chg=leg.change,
        iv=leg.implied_volatility,
    )


def compile_chain(chain: Union[OptionChain, Mapping[str, Any]], expiry: ExpiryLike) -> CompiledChain:
    """
    Build the compiled analytics view for one expiry.

    Args:
        chain: Normalized chain or raw legacy/v3 payload
        expiry: Expiry as a date or "DD-Mon-YYYY" string

    Returns:
        CompiledChain. Re-derived on every call; nothing is cached.

    Notes:
        - max_coi / max_poi are the strikes with the single largest call / put OI,
          the first one seen wins ties (0 when every OI is zero)
        - Per-strike pcr is None when either leg's OI is zero
        - Chain pcr is 0 when total call OI is zero
    """
    chain = normalize_chain(chain)
    key = expiry_key(expiry)
    rows = _rows_for_expiry(chain, key)

    interval = infer_strike_interval(chain)
    underlying = chain.underlying_value

    per_strike: Dict[str, StrikeSummary] = {}
    coi_total = 0.0
    poi_total = 0.0
    max_coi = max_poi = 0.0
    max_coi_strike = max_poi_strike = 0.0

    for row in rows:
        coi = row.ce.open_interest if row.ce else 0.0
        poi = row.pe.open_interest if row.pe else 0.0

        coi_total += coi
        poi_total += poi

        if coi > max_coi:
            max_coi, max_coi_strike = coi, row.strike_price
        if poi > max_poi:
            max_poi, max_poi_strike = poi, row.strike_price

        per_strike[_strike_key(row.strike_price)] = StrikeSummary(
            ce=_leg_summary(row.ce),
            pe=_leg_summary(row.pe),
            pcr=_ratio(poi, coi),
        )

    compiled = CompiledChain(
        expiry=key,
        timestamp=chain.timestamp,
        underlying=underlying,
        atm=resolve_atm(underlying, interval),
        maxpain=calculate_max_pain(chain, key),
        max_coi=max_coi_strike,
        max_poi=max_poi_strike,
        coi_total=coi_total,
        poi_total=poi_total,
        pcr=round(poi_total / coi_total, 2) if coi_total > 0 else 0.0,
        chain=per_strike,
    )

    logger.debug(
        f"Compiled {key}: atm={compiled.atm} maxpain={compiled.maxpain} "
        f"pcr={compiled.pcr} strikes={len(per_strike)}"
    )
    return compiled


# ============================================
# Essential (Filtered) View
# ============================================

def _essential_leg(leg: Optional[OptionLeg]) -> Optional[EssentialLeg]:
    if leg is None:
        return None
    return EssentialLeg(
        last_price=leg.last_price,
        change=leg.change,
        pchange=leg.pchange,
        open_interest=leg.open_interest,
        change_in_open_interest=leg.change_in_open_interest,
        implied_volatility=leg.implied_volatility,
        total_traded_volume=leg.total_traded_volume,
    )


def filter_chain(
    chain: Union[OptionChain, Mapping[str, Any]],
    symbol: str,
    strike_range: int = 10,
    expiry: Optional[ExpiryLike] = None
) -> FilteredChain:
    """
    Keep only strikes within `strike_range` intervals of the nearest listed strike.

    Args:
        chain: Normalized chain or raw payload
        symbol: Underlying symbol (echoed upper-case in the result)
        strike_range: Number of strikes to keep on each side of the ATM
        expiry: Optionally restrict to one expiry first

    Returns:
        FilteredChain whose rows carry only the essential leg fields
    """
    chain = normalize_chain(chain)
    if expiry is not None:
        chain = chain.model_copy(update={"rows": _rows_for_expiry(chain, expiry)})

    atm_strike = nearest_listed_strike(chain)
    if atm_strike is None:
        return FilteredChain(
            symbol=symbol.upper(),
            underlying_value=chain.underlying_value,
            atm_strike=0.0,
            timestamp=chain.timestamp,
            strike_range="0-0",
            total_strikes=0,
            data=[],
        )

    strikes = sorted(set(chain.strikes()))
    interval = strikes[1] - strikes[0] if len(strikes) > 1 else FALLBACK_STRIKE_INTERVAL

    min_strike = atm_strike - strike_range * interval
    max_strike = atm_strike + strike_range * interval

    data = [
        EssentialRow(
            strike_price=row.strike_price,
            expiry_date=row.expiry,
            ce=_essential_leg(row.ce),
            pe=_essential_leg(row.pe),
        )
        for row in chain.rows
        if min_strike <= row.strike_price <= max_strike
    ]

    return FilteredChain(
        symbol=symbol.upper(),
        underlying_value=chain.underlying_value,
        atm_strike=atm_strike,
        timestamp=chain.timestamp,
        strike_range=f"{_strike_key(min_strike)}-{_strike_key(max_strike)}",
        total_strikes=len(data),
        data=data,
    )
