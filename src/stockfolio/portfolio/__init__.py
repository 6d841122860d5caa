"""
Portfolio management module for the portfolio analytics engine.

Provides the thread-safe holdings ledger, holdings helpers and
mark-to-market valuation.
"""

from stockfolio.portfolio.ledger import HoldingsLedger, normalize_symbol
from stockfolio.portfolio.holdings import (
    calculate_position_weights,
    get_valuation_for_symbol,
)
from stockfolio.portfolio.valuation import (
    missing_quote_symbols,
    summarize_valuation,
    value_positions,
)

__all__ = [
    "HoldingsLedger",
    "normalize_symbol",
    "calculate_position_weights",
    "get_valuation_for_symbol",
    "missing_quote_symbols",
    "summarize_valuation",
    "value_positions",
]
