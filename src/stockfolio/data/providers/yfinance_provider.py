"""
Yahoo Finance quote provider implementation.

Uses the yfinance library to fetch last price and previous close for a
tracked set of symbols.
"""

import logging
import math
import time
from decimal import Decimal
from typing import Optional

from stockfolio.models import AssetCategory, Quote
from stockfolio.data.providers.base import QuoteProvider, QuoteUnavailableError

logger = logging.getLogger(__name__)

# Yahoo quoteType -> asset category
QUOTE_TYPE_CATEGORIES = {
    "EQUITY": AssetCategory.EQUITY,
    "ETF": AssetCategory.HYBRID,
    "MUTUALFUND": AssetCategory.HYBRID,
}


class YFinanceQuoteProvider(QuoteProvider):
    """
    Quote provider using Yahoo Finance.

    Features:
    - Uses fast_info last price and previous close per ticker
    - Derives daily change from the previous close
    - Maps Yahoo quote types onto asset categories
    - Retries each ticker before skipping it
    """

    def __init__(
        self,
        symbols: Optional[list[str]] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize Yahoo Finance provider.

        Args:
            symbols: Symbols returned by get_all (can be extended with track())
            max_retries: Maximum retries per ticker
            retry_delay: Delay between retries (seconds)
        """
        self._symbols: list[str] = []
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self.track(symbols or [])

        # Import yfinance here to allow graceful failure if not installed
        try:
            import yfinance as yf
            self._yf = yf
        except ImportError:
            raise QuoteUnavailableError(
                "yfinance is required for YFinanceQuoteProvider. "
                "Install with: pip install yfinance"
            )

    @property
    def name(self) -> str:
        return "YahooFinance"

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    def track(self, symbols: list[str]) -> None:
        """Add symbols to the tracked universe."""
        for symbol in symbols:
            symbol = symbol.strip().upper()
            if symbol and symbol not in self._symbols:
                self._symbols.append(symbol)

    def get_all(self) -> list[Quote]:
        """
        Fetch quotes for every tracked symbol.

        Symbols that cannot be priced are skipped.

        Raises:
            QuoteUnavailableError: If symbols are tracked but none could be priced
        """
        quotes = []
        for symbol in self._symbols:
            quote = self._fetch_quote(symbol)
            if quote is not None:
                quotes.append(quote)

        if self._symbols and not quotes:
            raise QuoteUnavailableError(
                f"No quotes returned for {len(self._symbols)} symbols"
            )

        return quotes

    def get_by_symbol(self, symbol: str) -> Optional[Quote]:
        return self._fetch_quote(symbol.strip().upper())

    def _fetch_quote(self, symbol: str) -> Optional[Quote]:
        """Fetch a single quote, retrying transient failures."""
        for attempt in range(self._max_retries):
            try:
                info = self._yf.Ticker(symbol).fast_info
                last_price = getattr(info, "last_price", None)
                previous_close = getattr(info, "previous_close", None)
                quote_type = getattr(info, "quote_type", None)
            except Exception as e:
                if attempt < self._max_retries - 1:
                    time.sleep(self._retry_delay * (attempt + 1))
                    continue
                logger.warning(f"Failed to fetch quote for {symbol}: {e}")
                return None

            if last_price is None or not math.isfinite(last_price) or last_price <= 0:
                logger.warning(f"No usable price for {symbol}")
                return None

            price = Decimal(str(last_price))
            if previous_close is not None and math.isfinite(previous_close):
                daily_change = price - Decimal(str(previous_close))
            else:
                daily_change = Decimal("0")

            return Quote(
                symbol=symbol,
                display_name=symbol,
                price=price,
                daily_change=daily_change,
                category=QUOTE_TYPE_CATEGORIES.get(
                    str(quote_type).upper(), AssetCategory.OTHER
                ) if quote_type else None,
            )

        return None
