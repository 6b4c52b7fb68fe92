"""
Unit Tests for the Symbol Lookup Parser

These tests verify that SymbolTextParser:
- Fills company_name, symbol, isin, bse_code in order
- Splits whitespace-joined fragments only after the company name is known
- Reports incomplete lookups as None instead of raising
- Resets cleanly between lookups

Run with:
    pytest tests/unit/test_symbol_parser.py -v
"""

from core.schemas import SymbolRecord
from services.symbol_parser import (
    SymbolTextParser,
    extract_anchor_text,
    parse_symbol_html,
    split_fragment,
)


class TestSplitFragment:
    """Tests for split_fragment"""

    def test_company_name_is_not_split(self):
        assert split_fragment("HDFC Bank Ltd", company_seen=False) == ["HDFC Bank Ltd"]

    def test_split_after_company(self):
        assert split_fragment("HDFCBANK  INE040A01034", company_seen=True) == ["HDFCBANK", "INE040A01034"]

    def test_blank_fragment_is_dropped(self):
        assert split_fragment("   ", company_seen=True) == []

    def test_fragment_is_trimmed(self):
        assert split_fragment("  500180 ", company_seen=True) == ["500180"]


class TestSymbolTextParser:
    """Tests for SymbolTextParser"""

    def test_four_fragments(self):
        parser = SymbolTextParser()
        parser.feed(["HDFC Bank Ltd", "HDFCBANK", "INE040A01034", "500180"])

        assert parser.get_result() == SymbolRecord(
            company_name="HDFC Bank Ltd",
            symbol="HDFCBANK",
            isin="INE040A01034",
            bse_code="500180",
        )

    def test_joined_fragment(self):
        parser = SymbolTextParser()
        parser.feed(["HDFC Bank Ltd", "HDFCBANK  INE040A01034", "500180"])

        record = parser.get_result()
        assert record.symbol == "HDFCBANK"
        assert record.isin == "INE040A01034"
        assert record.bse_code == "500180"

    def test_states(self):
        parser = SymbolTextParser()
        assert parser.state == "empty"

        parser.feed(["HDFC Bank Ltd"])
        assert parser.state == "accumulating"
        assert parser.get_result() is None

        parser.feed(["HDFCBANK"])
        assert parser.state == "resolved"

    def test_partial_record_is_returned_once_symbol_known(self):
        parser = SymbolTextParser()
        parser.feed(["Reliance Industries Ltd", "RELIANCE"])

        record = parser.get_result()
        assert record.symbol == "RELIANCE"
        assert record.isin is None
        assert record.bse_code is None

    def test_incremental_feeds(self):
        parser = SymbolTextParser()
        for fragment in ["Infosys Ltd", "INFY", "INE009A01021", "500209"]:
            parser.feed([fragment])

        assert parser.get_result().bse_code == "500209"

    def test_extra_fragments_are_ignored(self):
        parser = SymbolTextParser()
        parser.feed(["Infosys Ltd", "INFY", "INE009A01021", "500209", "EXTRA"])

        assert parser.get_result().bse_code == "500209"

    def test_reset_data(self):
        parser = SymbolTextParser()
        parser.feed(["HDFC Bank Ltd", "HDFCBANK"])
        parser.reset_data()

        assert parser.state == "empty"
        assert parser.get_result() is None

        parser.feed(["Infosys Ltd", "INFY"])
        assert parser.get_result().company_name == "Infosys Ltd"


class TestHtmlLookup:
    """Tests for anchor extraction and the HTML shortcut"""

    HTML = (
        '<li><a href="#">HDFC Bank Ltd</a>'
        '<a href="#"><strong>HDFCBANK</strong>  INE040A01034</a>'
        '<a href="#">500180</a></li>'
    )

    def test_extract_anchor_text(self):
        assert extract_anchor_text(self.HTML) == ["HDFC Bank Ltd", "HDFCBANK  INE040A01034", "500180"]

    def test_extract_anchor_text_skips_non_anchor_markup(self):
        html = "<div>Results<span>3</span></div><a>RELIANCE</a>"

        assert extract_anchor_text(html) == ["RELIANCE"]
        assert extract_anchor_text("") == []

    def test_parse_symbol_html(self):
        record = parse_symbol_html(self.HTML)

        assert record.company_name == "HDFC Bank Ltd"
        assert record.symbol == "HDFCBANK"
        assert record.isin == "INE040A01034"
        assert record.bse_code == "500180"

    def test_no_anchors(self):
        assert parse_symbol_html("<p>No results</p>") is None
        assert parse_symbol_html("") is None
