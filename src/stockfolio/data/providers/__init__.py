"""
Quote providers for current market prices.

Provides a pluggable interface for fetching quotes, a last-good cache
wrapper, and a bounded fetch helper used by the analytics service.
"""

from stockfolio.data.providers.base import (
    QuoteProvider,
    QuoteProviderError,
    QuoteTimeoutError,
    QuoteUnavailableError,
)
from stockfolio.data.providers.cache import CachedQuoteProvider
from stockfolio.data.providers.fetch import fetch_quotes
from stockfolio.data.providers.static_provider import StaticQuoteProvider
from stockfolio.data.providers.yfinance_provider import YFinanceQuoteProvider

__all__ = [
    "QuoteProvider",
    "QuoteProviderError",
    "QuoteTimeoutError",
    "QuoteUnavailableError",
    "CachedQuoteProvider",
    "fetch_quotes",
    "StaticQuoteProvider",
    "YFinanceQuoteProvider",
]
