"""
Abstract base class for quote providers.

Defines the interface that all quote sources must implement, enabling
pluggable market data for valuation, trading and price alerts.
"""

from abc import ABC, abstractmethod
from typing import Optional

from stockfolio.models import Quote


class QuoteProviderError(Exception):
    """Raised when a quote provider encounters an error."""
    pass


class QuoteUnavailableError(QuoteProviderError):
    """Raised when the quote source cannot be reached or returns nothing."""
    pass


class QuoteTimeoutError(QuoteProviderError):
    """Raised when the quote source does not answer in time."""
    pass


class QuoteProvider(ABC):
    """
    Abstract base class for market quote providers.

    Implementations must provide:
    - The full current quote list
    - A single-symbol lookup
    """

    @abstractmethod
    def get_all(self) -> list[Quote]:
        """
        Fetch the current quote list.

        Returns:
            List of Quote objects, at most one per symbol

        Raises:
            QuoteProviderError: If quotes cannot be fetched
        """
        pass

    def get_by_symbol(self, symbol: str) -> Optional[Quote]:
        """
        Look up the quote for one symbol.

        Args:
            symbol: Ticker symbol (case-insensitive)

        Returns:
            Quote, or None if the symbol is unknown

        Raises:
            QuoteProviderError: If quotes cannot be fetched
        """
        # Default implementation - subclasses may override
        symbol = symbol.strip().upper()
        for quote in self.get_all():
            if quote.symbol == symbol:
                return quote
        return None

    def track(self, symbols: list[str]) -> None:
        """
        Tell the provider which symbols callers care about.

        Providers that serve a fixed universe ignore this; providers that
        query per symbol add them to what get_all returns.
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this quote provider."""
        pass
