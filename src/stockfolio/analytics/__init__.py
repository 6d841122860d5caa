"""
Analytics module for the portfolio analytics engine.

Provides risk and diversification scoring, category distribution,
rule-based insights, price alerts and mock performance history.
"""

from stockfolio.analytics.risk import (
    diversification_level,
    diversification_score,
    health_level,
    portfolio_health_score,
    risk_level,
    risk_score,
)
from stockfolio.analytics.distribution import (
    bottom_category,
    category_value,
    distribute,
    top_category,
)
from stockfolio.analytics.insights import (
    deduplicate_insights,
    generate_insights,
    sort_insights,
)
from stockfolio.analytics.alerts import check_alerts, create_alert
from stockfolio.analytics.performance import generate_performance_history

__all__ = [
    "diversification_level",
    "diversification_score",
    "health_level",
    "portfolio_health_score",
    "risk_level",
    "risk_score",
    "bottom_category",
    "category_value",
    "distribute",
    "top_category",
    "deduplicate_insights",
    "generate_insights",
    "sort_insights",
    "check_alerts",
    "create_alert",
    "generate_performance_history",
]
