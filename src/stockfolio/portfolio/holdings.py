"""
Holdings helpers for the portfolio analytics engine.

Provides lookups and weight calculations over valued positions.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional

from stockfolio.models import ValuedPosition


def calculate_position_weights(
    valuations: list[ValuedPosition],
    total_portfolio_value: Optional[Decimal] = None,
) -> dict[str, Decimal]:
    """
    Calculate current portfolio weights by symbol.

    Args:
        valuations: List of valued positions
        total_portfolio_value: Optional pre-calculated total value

    Returns:
        Dictionary mapping symbol to weight (0-1); empty if total is zero
    """
    if total_portfolio_value is None:
        total_portfolio_value = sum((v.market_value for v in valuations), Decimal("0"))

    if total_portfolio_value == Decimal("0"):
        return {}

    symbol_values: dict[str, Decimal] = defaultdict(Decimal)
    for val in valuations:
        symbol_values[val.symbol] += val.market_value

    return {
        symbol: value / total_portfolio_value
        for symbol, value in symbol_values.items()
    }


def get_valuation_for_symbol(
    valuations: list[ValuedPosition],
    symbol: str,
) -> Optional[ValuedPosition]:
    """Find the valuation of one symbol, if held."""
    symbol = symbol.strip().upper()
    for val in valuations:
        if val.symbol == symbol:
            return val
    return None
