"""
Static quote provider.

Serves a fixed quote list, either built in memory or read from a bundled
JSON quote file of the form::

    [{"symbol": "AAPL", "name": "Apple Inc.", "price": 185.5,
      "dailyChange": 2.3, "category": "equity"}, ...]
"""

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from stockfolio.models import AssetCategory, Quote
from stockfolio.data.providers.base import QuoteProvider, QuoteUnavailableError


class StaticQuoteProvider(QuoteProvider):
    """Quote provider backed by a fixed list of quotes."""

    def __init__(self, quotes: Optional[list[Quote]] = None, source: str = "memory"):
        """
        Initialize static provider.

        Args:
            quotes: Quotes to serve (later duplicates of a symbol win)
            source: Label used in the provider name
        """
        self._quotes: dict[str, Quote] = {}
        for quote in quotes or []:
            self._quotes[quote.symbol] = quote
        self._source = source

    @classmethod
    def from_file(cls, file_path: str | Path) -> "StaticQuoteProvider":
        """
        Load quotes from a JSON quote file.

        Raises:
            QuoteUnavailableError: If the file is missing or malformed
        """
        file_path = Path(file_path)
        try:
            raw = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise QuoteUnavailableError(f"Cannot read quote file {file_path}: {e}")

        if not isinstance(raw, list):
            raise QuoteUnavailableError(f"Quote file {file_path} must contain a JSON array")

        quotes = []
        for record in raw:
            try:
                quotes.append(_quote_from_record(record))
            except (KeyError, TypeError, InvalidOperation) as e:
                raise QuoteUnavailableError(f"Invalid quote record in {file_path}: {e!r}")

        return cls(quotes, source=file_path.name)

    @property
    def name(self) -> str:
        return f"Static({self._source})"

    def get_all(self) -> list[Quote]:
        return list(self._quotes.values())

    def get_by_symbol(self, symbol: str) -> Optional[Quote]:
        return self._quotes.get(symbol.strip().upper())


def _quote_from_record(record: dict) -> Quote:
    symbol = str(record["symbol"]).strip().upper()
    price = Decimal(str(record["price"]))
    if price <= Decimal("0"):
        raise InvalidOperation(f"non-positive price for {symbol}")
    daily_change = record.get("daily_change", record.get("dailyChange", 0))
    return Quote(
        symbol=symbol,
        display_name=str(record.get("name") or symbol),
        price=price,
        daily_change=Decimal(str(daily_change or 0)),
        category=AssetCategory.parse(record.get("category")),
    )
