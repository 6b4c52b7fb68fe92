"""
FastAPI Application - NSE Market Data API

Provides REST access to NSE market data and derived option chain analytics.

Features:
    - Option chains: expiries, compiled metrics (ATM, max pain, PCR), essential view
    - Equity quotes and index gainers/losers
    - Chunked historical series for equities and indices
    - Market status and symbol lookup

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings, validate_configuration
from core.errors import (
    ArchiveError,
    DownloadError,
    HttpError,
    InvalidRangeError,
    NoExpiryError,
    NSEDataError,
)
from core.logging import logger
from core.schemas import CompiledChain, EquityQuote, FilteredChain, IndexHistory
from exchanges.nse import NSEClient
from exchanges.nse.equity import top_gainers, top_losers


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await client.initialize()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await client.shutdown()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="NSE Market Data API",
    description=(
        "REST API over NSE's public data endpoints.\n\n"
        "## REST Endpoints\n"
        "- `GET /status` - Market status per segment\n"
        "- `GET /lookup?q=` - Symbol search\n"
        "- `GET /options/{symbol}/expiries` - Option expiries (earliest first)\n"
        "- `GET /options/{symbol}/compiled` - ATM, max pain, OI totals and PCR\n"
        "- `GET /options/{symbol}/filtered` - Strikes around the ATM strike\n"
        "- `GET /equity/{symbol}/quote` - OHLC + volume\n"
        "- `GET /movers` - Top gainers and losers of an index\n"
        "- `GET /historical/equity/{symbol}` - Daily equity history\n"
        "- `GET /historical/index/{index}` - Index close and turnover history\n"
        "- `GET /health` - Health check"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

client = NSEClient()  # Global NSE client


def _http_exception(e: NSEDataError) -> HTTPException:
    """Map a data-layer error to the HTTP status reported to API clients."""
    if isinstance(e, InvalidRangeError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NoExpiryError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, HttpError):
        return HTTPException(status_code=502, detail=f"NSE returned HTTP {e.status}")
    if isinstance(e, (DownloadError, ArchiveError)):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information."""
    return {
        "name": "NSE Market Data API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "exchange": client.name
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Health check - reports whether the NSE session is open and primed."""
    session = client.session
    return {
        "status": "healthy" if session.session is not None else "degraded",
        "session_open": session.session is not None,
        "primed": session.primed
    }


# ============================================
# Market Endpoints
# ============================================

@app.get("/status", tags=["Market"])
async def market_status():
    """Open/closed state of each NSE market segment."""
    try:
        return await client.market.get_status()
    except NSEDataError as e:
        logger.error(f"Market status error: {e}")
        raise _http_exception(e)


@app.get("/lookup", tags=["Market"])
async def lookup(q: str = Query(..., min_length=1, description="Search text (symbol or company name)")):
    """Symbol search."""
    try:
        return await client.market.lookup(q)
    except NSEDataError as e:
        logger.error(f"Lookup error for '{q}': {e}")
        raise _http_exception(e)


@app.get("/movers", tags=["Market"])
async def movers(
    index: str = Query(default="NIFTY 50", description="Index name (e.g., NIFTY 50, NIFTY BANK)"),
    count: Optional[int] = Query(default=5, ge=1, le=50, description="Rows per side")
):
    """Top gainers and losers among the constituents of an index."""
    try:
        data = await client.equity.list_equity_stocks_by_index(index)
    except NSEDataError as e:
        logger.error(f"Movers error for {index}: {e}")
        raise _http_exception(e)

    return {
        "index": index,
        "gainers": top_gainers(data, count),
        "losers": top_losers(data, count)
    }


# ============================================
# Option Chain Endpoints
# ============================================

@app.get("/options/{symbol}/expiries", response_model=List[str], tags=["Options"])
async def option_expiries(symbol: str):
    """Option expiries of a symbol, earliest first."""
    try:
        return await client.options.get_expiry_dates(symbol)
    except NSEDataError as e:
        logger.error(f"Expiry error for {symbol}: {e}")
        raise _http_exception(e)


@app.get("/options/{symbol}/compiled", response_model=CompiledChain, tags=["Options"])
async def compiled_option_chain(
    symbol: str,
    expiry: Optional[str] = Query(default=None, description="Expiry as DD-Mon-YYYY (nearest when omitted)")
):
    """ATM strike, max pain, OI totals and PCR for one expiry."""
    try:
        return await client.options.compile_option_chain(symbol, expiry)
    except NSEDataError as e:
        logger.error(f"Compile error for {symbol} {expiry}: {e}")
        raise _http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/options/{symbol}/filtered", response_model=FilteredChain, tags=["Options"])
async def filtered_option_chain(
    symbol: str,
    expiry: Optional[str] = Query(default=None, description="Expiry as DD-Mon-YYYY (nearest when omitted)"),
    strike_range: int = Query(default=10, ge=1, le=100, description="Strikes either side of ATM")
):
    """Essential option chain view around the ATM strike."""
    try:
        return await client.options.get_filtered_option_chain(symbol, expiry, strike_range)
    except NSEDataError as e:
        logger.error(f"Filtered chain error for {symbol} {expiry}: {e}")
        raise _http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================================
# Equity Endpoints
# ============================================

@app.get("/equity/{symbol}/quote", response_model=EquityQuote, tags=["Equity"])
async def equity_quote(symbol: str):
    """Simplified OHLC + volume quote."""
    try:
        return await client.equity.get_equity_quote(symbol)
    except NSEDataError as e:
        logger.error(f"Quote error for {symbol}: {e}")
        raise _http_exception(e)


# ============================================
# Historical Endpoints
# ============================================

@app.get("/historical/equity/{symbol}", tags=["Historical"])
async def equity_history(
    symbol: str,
    from_date: Optional[date] = Query(default=None, description="Start date (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(default=None, description="End date (YYYY-MM-DD)")
):
    """Daily equity history, oldest first (last 30 days by default)."""
    try:
        return await client.historical.fetch_equity_historical_data(symbol, from_date, to_date)
    except NSEDataError as e:
        logger.error(f"Equity history error for {symbol}: {e}")
        raise _http_exception(e)


@app.get("/historical/index/{index}", response_model=IndexHistory, tags=["Historical"])
async def index_history(
    index: str,
    from_date: Optional[date] = Query(default=None, description="Start date (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(default=None, description="End date (YYYY-MM-DD)")
):
    """Index close and turnover history (last 30 days by default)."""
    try:
        return await client.historical.fetch_historical_index_data(index, from_date, to_date)
    except NSEDataError as e:
        logger.error(f"Index history error for {index}: {e}")
        raise _http_exception(e)
