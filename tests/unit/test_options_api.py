"""
Unit Tests for OptionsApi

Run with:
    pytest tests/unit/test_options_api.py -v
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.errors import NoExpiryError
from exchanges.nse.options import OptionsApi, parse_lot_sizes

CHAIN = {
    "records": {
        "underlyingValue": 112.0,
        "timestamp": "05-Dec-2025 15:30:00",
        "data": [
            {"strikePrice": 100, "expiryDates": "09-Dec-2025", "CE": {"openInterest": 10}, "PE": {"openInterest": 0}},
            {"strikePrice": 110, "expiryDates": "09-Dec-2025", "CE": {"openInterest": 5}, "PE": {"openInterest": 5}},
            {"strikePrice": 120, "expiryDates": "09-Dec-2025", "CE": {"openInterest": 0}, "PE": {"openInterest": 15}},
        ],
    }
}


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def session():
    """Stand-in SessionManager with async request helpers"""
    mock = MagicMock()
    mock.request_json = AsyncMock()
    mock.request_text = AsyncMock()
    return mock


def routed(responses):
    """request_json side effect answering by URL suffix"""
    async def request_json(url, query=None):
        for suffix, body in responses.items():
            if url.endswith(suffix):
                return body
        raise AssertionError(f"Unexpected URL {url}")
    return request_json


# ============================================
# Tests for lot sizes
# ============================================

class TestLotSizes:
    """Tests for parse_lot_sizes / get_fno_lots"""

    def test_parse_lot_sizes(self):
        csv_text = (
            "UNDERLYING,SYMBOL,DEC-25,JAN-26\n"
            "NIFTY 50,NIFTY,75,75\n"
            "Derivatives on Individual Securities,,,\n"
            "INFOSYS LIMITED,INFY,400,400\n"
            "SHORT,ROW\n"
        )
        assert parse_lot_sizes(csv_text) == {"NIFTY": 75, "INFY": 400}

    @pytest.mark.asyncio
    async def test_get_fno_lots(self, session):
        session.request_text.return_value = "U,S,M1,M2\nX,BANKNIFTY, 35 ,35\n"

        lots = await OptionsApi(session).get_fno_lots()

        assert lots == {"BANKNIFTY": 35}
        assert session.request_text.call_args.args[0].endswith("/content/fo/fo_mktlots.csv")


# ============================================
# Tests for expiries
# ============================================

class TestExpiries:
    """Tests for get_expiry_dates / get_futures_expiry"""

    @pytest.mark.asyncio
    async def test_expiries_sorted(self, session):
        session.request_json.return_value = {"expiryDates": ["30-Dec-2025", "09-Dec-2025", "27-Jan-2026"]}

        assert await OptionsApi(session).get_expiry_dates("nifty") == ["09-Dec-2025", "30-Dec-2025", "27-Jan-2026"]
        assert session.request_json.call_args.args[1] == {"symbol": "NIFTY"}

    @pytest.mark.asyncio
    async def test_expiries_fallback_to_records(self, session):
        session.request_json.return_value = {"records": {"expiryDates": ["30-Dec-2025", "09-Dec-2025"]}}

        assert await OptionsApi(session).get_expiry_dates("NIFTY") == ["30-Dec-2025", "09-Dec-2025"]

    @pytest.mark.asyncio
    async def test_no_expiries(self, session):
        session.request_json.return_value = {}
        assert await OptionsApi(session).get_expiry_dates("NIFTY") == []

    @pytest.mark.asyncio
    async def test_futures_expiry(self, session):
        session.request_json.return_value = {"data": [{"expiryDate": "27-Jan-2026"}, {"expiryDate": "30-Dec-2025"}]}

        assert await OptionsApi(session).get_futures_expiry("banknifty") == ["30-Dec-2025", "27-Jan-2026"]
        assert session.request_json.call_args.args[1] == {"index": "nifty_bank_fut"}


# ============================================
# Tests for option chains
# ============================================

class TestOptionChains:
    """Tests for get_option_chain / compile_option_chain / get_filtered_option_chain"""

    @pytest.mark.asyncio
    async def test_type_inferred_and_nearest_expiry_used(self, session):
        session.request_json.side_effect = routed({
            "/option-chain-contract-info": {"expiryDates": ["30-Dec-2025", "09-Dec-2025"]},
            "/option-chain-v3": CHAIN,
        })

        chain = await OptionsApi(session).get_option_chain("nifty")

        assert chain.variant == "v3"
        url, query = session.request_json.call_args.args
        assert url.endswith("/option-chain-v3")
        assert query == {"type": "Indices", "symbol": "NIFTY", "expiry": "09-Dec-2025"}

    @pytest.mark.asyncio
    async def test_equity_type_and_date_expiry(self, session):
        session.request_json.return_value = CHAIN

        await OptionsApi(session).get_option_chain("reliance", expiry=date(2025, 12, 30))

        assert session.request_json.call_args.args[1] == {
            "type": "Equity", "symbol": "RELIANCE", "expiry": "30-Dec-2025"
        }

    @pytest.mark.asyncio
    async def test_no_expiry_raises(self, session):
        session.request_json.return_value = {"expiryDates": []}

        with pytest.raises(NoExpiryError):
            await OptionsApi(session).compile_option_chain("NIFTY")

    @pytest.mark.asyncio
    async def test_compile_option_chain(self, session):
        session.request_json.side_effect = routed({
            "/option-chain-contract-info": {"expiryDates": ["09-Dec-2025"]},
            "/option-chain-v3": CHAIN,
        })

        compiled = await OptionsApi(session).compile_option_chain("NIFTY")

        assert compiled.expiry == "09-Dec-2025"
        assert compiled.atm == 110.0
        assert compiled.maxpain == 110.0
        assert compiled.pcr == 1.33

    @pytest.mark.asyncio
    async def test_compile_with_date_expiry(self, session):
        session.request_json.return_value = CHAIN

        compiled = await OptionsApi(session).compile_option_chain("NIFTY", date(2025, 12, 9))

        assert compiled.expiry == "09-Dec-2025"
        assert compiled.coi_total == 15.0

    @pytest.mark.asyncio
    async def test_filtered_option_chain(self, session):
        session.request_json.return_value = CHAIN

        filtered = await OptionsApi(session).get_filtered_option_chain("nifty", "09-Dec-2025", strike_range=1)

        assert filtered.symbol == "NIFTY"
        assert filtered.atm_strike == 110.0
        assert filtered.total_strikes == 3
