"""
Portfolio valuation and mark-to-market calculations.

This module joins positions with current quotes, calculating gain/loss per
position and portfolio totals. A missing quote never fails valuation: the
position is carried at its average cost instead.
"""

import logging
from decimal import Decimal

from stockfolio.models import (
    PortfolioMetrics,
    Position,
    Quote,
    ValuedPosition,
)

logger = logging.getLogger(__name__)


def value_positions(
    positions: list[Position],
    quotes: dict[str, Quote],
) -> list[ValuedPosition]:
    """
    Value a list of positions at current quotes.

    Args:
        positions: Positions to value
        quotes: Current quotes by symbol

    Returns:
        List of ValuedPosition objects in position order
    """
    valuations = []
    missing = []

    for position in positions:
        quote = quotes.get(position.symbol)
        if quote is None:
            missing.append(position.symbol)
        valuations.append(ValuedPosition.from_position(position, quote))

    if missing:
        logger.warning(f"No quote for {len(missing)} symbols, valued at cost: {missing}")

    return valuations


def summarize_valuation(
    valuations: list[ValuedPosition],
    risk_score: float = 0.0,
    diversification_score: float = 0.0,
) -> PortfolioMetrics:
    """
    Aggregate valued positions into portfolio metrics.

    Args:
        valuations: Valued positions
        risk_score: Pre-computed risk score (0-10)
        diversification_score: Pre-computed diversification score (0-10)

    Returns:
        PortfolioMetrics with totals and scores
    """
    total_invested = sum((v.cost_basis for v in valuations), Decimal("0"))
    current_value = sum((v.market_value for v in valuations), Decimal("0"))
    total_gain_loss = current_value - total_invested

    if total_invested > Decimal("0"):
        total_gain_loss_pct = total_gain_loss / total_invested * Decimal("100")
    else:
        total_gain_loss_pct = Decimal("0")

    return PortfolioMetrics(
        total_invested=total_invested,
        current_value=current_value,
        total_gain_loss=total_gain_loss,
        total_gain_loss_pct=total_gain_loss_pct,
        risk_score=risk_score,
        diversification_score=diversification_score,
        position_count=len(valuations),
    )


def calculate_portfolio_return(metrics: PortfolioMetrics) -> Decimal:
    """
    Calculate simple portfolio return.

    Args:
        metrics: Portfolio metrics

    Returns:
        Return as decimal (e.g., 0.05 for 5%)
    """
    if metrics.total_invested == Decimal("0"):
        return Decimal("0")

    return metrics.total_gain_loss / metrics.total_invested


def get_gainers_and_losers(
    valuations: list[ValuedPosition],
    top_n: int = 5,
) -> tuple[list[ValuedPosition], list[ValuedPosition]]:
    """
    Get top gainers and losers by gain/loss percentage.

    Args:
        valuations: Valued positions
        top_n: Number of top/bottom positions to return

    Returns:
        Tuple of (top_gainers, top_losers); gainers best first, losers worst first
    """
    sorted_by_pct = sorted(
        valuations,
        key=lambda v: v.gain_loss_pct,
        reverse=True,
    )

    top_gainers = [v for v in sorted_by_pct if v.gain_loss > Decimal("0")][:top_n]
    top_losers = [v for v in reversed(sorted_by_pct) if v.gain_loss < Decimal("0")][:top_n]

    return top_gainers, top_losers


def missing_quote_symbols(valuations: list[ValuedPosition]) -> list[str]:
    """Symbols that were valued at cost for lack of a quote."""
    return [v.symbol for v in valuations if not v.has_quote]
