"""
Risk and diversification scoring.

Scores are heuristic floats on a 0-10 scale:
- Risk combines average absolute daily move with a concentration penalty
- Diversification rewards category coverage and position count
- Health blends performance, risk and diversification
"""

import numpy as np

from stockfolio.models import (
    DIVERSIFICATION_LEVELS,
    RISK_LEVELS,
    TOTAL_DEFINED_CATEGORIES,
    PortfolioMetrics,
    ValuedPosition,
    score_band,
)

MAX_SCORE = 10.0

# Fewer positions than this counts as concentrated
CONCENTRATION_POSITION_THRESHOLD = 5
CONCENTRATED_RISK = 8.0
SPREAD_RISK = 4.0
VOLATILITY_WEIGHT = 2.0

CATEGORY_SCORE_WEIGHT = 6.0
POSITION_SCORE_PER_HOLDING = 0.5
POSITION_SCORE_CAP = 4.0


def risk_score(valuations: list[ValuedPosition]) -> float:
    """
    Calculate the portfolio risk score.

    Average volatility is the mean absolute daily change percentage over
    positions with a quote (0 when none have one).

    Args:
        valuations: Valued positions

    Returns:
        Risk score in [0, 10]; 0 for an empty portfolio
    """
    if not valuations:
        return 0.0

    volatilities = [
        abs(float(v.daily_change_pct))
        for v in valuations
        if v.has_quote and v.daily_change_pct is not None
    ]
    average_volatility = float(np.mean(volatilities)) if volatilities else 0.0

    if len(valuations) < CONCENTRATION_POSITION_THRESHOLD:
        concentration = CONCENTRATED_RISK
    else:
        concentration = SPREAD_RISK

    return min(MAX_SCORE, average_volatility * VOLATILITY_WEIGHT + concentration)


def diversification_score(valuations: list[ValuedPosition]) -> float:
    """
    Calculate the portfolio diversification score.

    Args:
        valuations: Valued positions

    Returns:
        Diversification score in [0, 10]; 0 for an empty portfolio
    """
    if not valuations:
        return 0.0

    categories = {v.category for v in valuations if v.category is not None}
    category_score = len(categories) / TOTAL_DEFINED_CATEGORIES * CATEGORY_SCORE_WEIGHT
    position_score = min(POSITION_SCORE_CAP, len(valuations) * POSITION_SCORE_PER_HOLDING)

    return min(MAX_SCORE, category_score + position_score)


def risk_level(score: float) -> str:
    """Low [0,3), Medium [3,6), High [6,8), Very High [8,10]."""
    return score_band(score, RISK_LEVELS)


def diversification_level(score: float) -> str:
    """Poor [0,3), Fair [3,6), Good [6,8), Excellent [8,10]."""
    return score_band(score, DIVERSIFICATION_LEVELS)


def portfolio_health_score(metrics: PortfolioMetrics) -> float:
    """
    Blend performance, risk and diversification into one 0-10 score.

    Components:
    - Performance: -20% maps to 0, +20% or better to 4
    - Risk: 4 at zero risk, falling to 0 at risk 10
    - Diversification: score / 2.5 (0-4)

    Args:
        metrics: Portfolio metrics

    Returns:
        Health score in [0, 10]
    """
    gain_pct = float(metrics.total_gain_loss_pct)
    performance = min(4.0, max(0.0, (gain_pct + 20.0) / 10.0))
    risk = max(0.0, 4.0 - metrics.risk_score / 2.5)
    diversification = metrics.diversification_score / 2.5

    return min(MAX_SCORE, performance + risk + diversification)


def health_level(score: float) -> str:
    """Health bands reuse the diversification labels."""
    return score_band(score, DIVERSIFICATION_LEVELS)
