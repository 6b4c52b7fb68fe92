"""
Symbol Lookup Parser

The exchange's smart-search endpoint answers with an HTML snippet whose anchor
texts always appear in the same order:

    <a>HDFC Bank Ltd</a><a>HDFCBANK</a><a>INE040A01034</a><a>500180</a>

SymbolTextParser rebuilds a SymbolRecord (company_name, symbol, isin, bse_code)
from those text fragments. The markup is brittle: sometimes two fields are
rendered inside one anchor separated by spaces ("HDFCBANK  INE040A01034").
Once the company name is known, any fragment containing whitespace is split
and its parts are dispatched to the following fields in order. The company
name itself is never split.

States:
    empty        - nothing fed yet
    accumulating - some fields filled, symbol still missing
    resolved     - symbol filled; get_result() returns the record

Usage:
    parser = SymbolTextParser()
    parser.feed(["HDFC Bank Ltd", "HDFCBANK", "INE040A01034", "500180"])
    record = parser.get_result()
"""

from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from core.schemas import SymbolRecord

FIELDS = ("company_name", "symbol", "isin", "bse_code")


def split_fragment(fragment: str, company_seen: bool) -> List[str]:
    """
    Tokens a fragment contributes to the record.

    Example:
        >>> split_fragment("HDFCBANK  INE040A01034", company_seen=True)
        ['HDFCBANK', 'INE040A01034']
        >>> split_fragment("HDFC Bank Ltd", company_seen=False)
        ['HDFC Bank Ltd']
    """
    text = fragment.strip()
    if not text:
        return []
    if company_seen and any(ch.isspace() for ch in text):
        return text.split()
    return [text]


class SymbolTextParser:
    """
    Incremental builder of a SymbolRecord from ordered text fragments.
    """

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    @property
    def state(self) -> str:
        if not self._values:
            return "empty"
        if "symbol" in self._values:
            return "resolved"
        return "accumulating"

    def reset_data(self) -> None:
        """Discard all partial state."""
        self._values = {}

    def feed(self, fragments: Iterable[str]) -> None:
        """
        Dispatch fragments to the next unfilled fields, in order.

        Fragments beyond the fourth field are ignored.
        """
        for fragment in fragments:
            for token in split_fragment(fragment, "company_name" in self._values):
                self._dispatch(token)

    def get_result(self) -> Optional[SymbolRecord]:
        """
        The record once `symbol` is known, otherwise None.

        isin and bse_code may still be missing on a returned record.
        """
        if "symbol" not in self._values:
            return None
        return SymbolRecord(**self._values)

    def _dispatch(self, token: str) -> None:
        for field in FIELDS:
            if field not in self._values:
                self._values[field] = token
                return


def extract_anchor_text(html: str) -> List[str]:
    """
    Text of each <a> element in document order.

    Example:
        >>> extract_anchor_text("<a>HDFC Bank Ltd</a><a>HDFCBANK</a>")
        ['HDFC Bank Ltd', 'HDFCBANK']
    """
    soup = BeautifulSoup(html or "", "html.parser")
    return [a.get_text() for a in soup.find_all("a")]


def parse_symbol_html(html: str) -> Optional[SymbolRecord]:
    """
    Parse a smart-search HTML snippet into a SymbolRecord (None if incomplete).
    """
    parser = SymbolTextParser()
    parser.feed(extract_anchor_text(html))
    return parser.get_result()
