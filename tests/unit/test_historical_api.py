"""
Unit Tests for HistoricalApi

These tests verify that:
- Date ranges are split per endpoint quota and fetched in order
- Equity chunks are reversed into chronological order
- A failing chunk aborts the whole call
- Default windows and parameter validation behave as documented

Run with:
    pytest tests/unit/test_historical_api.py -v
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.errors import HttpError, InvalidRangeError
from core.schemas import IndexHistory
from exchanges.nse import historical
from exchanges.nse.historical import HistoricalApi


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def session():
    """Stand-in SessionManager with an async request_json"""
    mock = MagicMock()
    mock.request_json = AsyncMock()
    return mock


def queries(session):
    return [call.args[1] for call in session.request_json.call_args_list]


# ============================================
# Tests for equity history
# ============================================

class TestEquityHistory:
    """Tests for fetch_equity_historical_data"""

    @pytest.mark.asyncio
    async def test_fast_path_without_dates(self, session):
        session.request_json.return_value = {"data": [{"d": 3}, {"d": 2}, {"d": 1}]}

        rows = await HistoricalApi(session).fetch_equity_historical_data("INFY")

        assert rows == [{"d": 1}, {"d": 2}, {"d": 3}]
        assert queries(session) == [{"symbol": "INFY"}]

    @pytest.mark.asyncio
    async def test_chunks_of_100_days(self, session):
        session.request_json.side_effect = [
            {"data": [{"d": 2}, {"d": 1}]},
            {"data": [{"d": 4}, {"d": 3}]},
            {"data": [{"d": 5}]},
        ]

        rows = await HistoricalApi(session).fetch_equity_historical_data(
            "INFY", date(2023, 1, 1), date(2023, 8, 1)
        )

        assert [r["d"] for r in rows] == [1, 2, 3, 4, 5]
        assert [(q["from"], q["to"]) for q in queries(session)] == [
            ("01-01-2023", "10-04-2023"),
            ("11-04-2023", "19-07-2023"),
            ("20-07-2023", "01-08-2023"),
        ]
        assert queries(session)[0]["series"] == '["EQ"]'

    @pytest.mark.asyncio
    async def test_chunk_failure_aborts(self, session):
        session.request_json.side_effect = [
            {"data": [{"d": 1}]},
            HttpError(503, "https://www.nseindia.com/api/historical/cm/equity"),
            {"data": [{"d": 3}]},
        ]

        with pytest.raises(HttpError):
            await HistoricalApi(session).fetch_equity_historical_data(
                "INFY", date(2023, 1, 1), date(2023, 8, 1)
            )

        assert session.request_json.await_count == 2

    @pytest.mark.asyncio
    async def test_reversed_range_raises_before_any_request(self, session):
        with pytest.raises(InvalidRangeError):
            await HistoricalApi(session).fetch_equity_historical_data(
                "INFY", date(2023, 2, 1), date(2023, 1, 1)
            )

        session.request_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_default_window(self, session, monkeypatch):
        monkeypatch.setattr(historical, "today", lambda: date(2024, 3, 31))
        session.request_json.return_value = {"data": []}

        await HistoricalApi(session).fetch_equity_historical_data("INFY", series=["EQ", "BE"])

        query = queries(session)[0]
        assert (query["from"], query["to"]) == ("01-03-2024", "31-03-2024")
        assert query["series"] == '["EQ","BE"]'


# ============================================
# Tests for VIX / F&O / index history
# ============================================

class TestOtherHistory:
    """Tests for VIX, F&O and index history"""

    @pytest.mark.asyncio
    async def test_vix_uses_365_day_chunks(self, session):
        session.request_json.return_value = {"data": [{"v": 1}]}
        start = date(2022, 1, 1)

        rows = await HistoricalApi(session).fetch_historical_vix_data(start, start + timedelta(days=400))

        assert len(rows) == 2
        assert session.request_json.await_count == 2

    @pytest.mark.asyncio
    async def test_option_instrument_requires_option_type(self, session):
        with pytest.raises(ValueError, match="option_type"):
            await HistoricalApi(session).fetch_historical_fno_data("NIFTY", instrument="optidx")

        session.request_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_fno_query(self, session):
        session.request_json.return_value = {"data": []}

        await HistoricalApi(session).fetch_historical_fno_data(
            "nifty",
            instrument="OPTIDX",
            from_date=date(2025, 12, 1),
            to_date=date(2025, 12, 5),
            expiry=date(2025, 12, 30),
            option_type="CE",
            strike_price=26000,
        )

        assert queries(session)[0] == {
            "instrumentType": "OPTIDX",
            "symbol": "NIFTY",
            "expiryDate": "30-Dec-2025",
            "year": 2025,
            "optionType": "CE",
            "strikePrice": 26000,
            "from": "01-12-2025",
            "to": "05-12-2025",
        }

    @pytest.mark.asyncio
    async def test_index_history_accumulates_both_series(self, session):
        session.request_json.side_effect = [
            {"data": {"indexCloseOnlineRecords": [{"p": 1}], "indexTurnoverRecords": [{"t": 1}]}},
            {"data": {"indexCloseOnlineRecords": [{"p": 2}], "indexTurnoverRecords": []}},
        ]

        result = await HistoricalApi(session).fetch_historical_index_data(
            "nifty 50", date(2022, 1, 1), date(2023, 1, 10)
        )

        assert isinstance(result, IndexHistory)
        assert result.price == [{"p": 1}, {"p": 2}]
        assert result.turnover == [{"t": 1}]
        assert queries(session)[0]["indexType"] == "NIFTY 50"
