"""
Caching layer for quote providers.

Keeps the last successful quote list so that a flaky upstream source
degrades to slightly stale prices instead of cost-basis valuation.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from stockfolio.models import Quote
from stockfolio.data.providers.base import QuoteProvider, QuoteProviderError

logger = logging.getLogger(__name__)


class CachedQuoteProvider(QuoteProvider):
    """
    Wrapper that adds last-good caching to any QuoteProvider.

    Calls the underlying provider first, and serves the cached quotes
    when it fails.
    """

    def __init__(self, provider: QuoteProvider):
        """
        Initialize cached provider.

        Args:
            provider: Underlying quote provider
        """
        self._provider = provider
        self._quotes: dict[str, Quote] = {}
        self._fetched_at: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return f"Cached({self._provider.name})"

    @property
    def fetched_at(self) -> Optional[datetime]:
        """When the cached quotes were last refreshed."""
        return self._fetched_at

    def track(self, symbols: list[str]) -> None:
        self._provider.track(symbols)

    def get_all(self) -> list[Quote]:
        """
        Get quotes, falling back to the cache on provider failure.

        Raises:
            QuoteProviderError: If the provider fails and nothing is cached
        """
        try:
            quotes = self._provider.get_all()
        except QuoteProviderError as e:
            with self._lock:
                if not self._quotes:
                    raise
                logger.warning(
                    f"{self._provider.name} failed ({e}); serving "
                    f"{len(self._quotes)} cached quotes from {self._fetched_at}"
                )
                return list(self._quotes.values())

        with self._lock:
            self._quotes.update({q.symbol: q for q in quotes})
            self._fetched_at = datetime.now()

        return quotes

    def get_by_symbol(self, symbol: str) -> Optional[Quote]:
        symbol = symbol.strip().upper()
        try:
            quote = self._provider.get_by_symbol(symbol)
        except QuoteProviderError:
            with self._lock:
                if symbol not in self._quotes:
                    raise
                return self._quotes[symbol]

        if quote is not None:
            with self._lock:
                self._quotes[symbol] = quote
        return quote

    def clear(self) -> None:
        """Clear all cached quotes."""
        with self._lock:
            self._quotes.clear()
            self._fetched_at = None
