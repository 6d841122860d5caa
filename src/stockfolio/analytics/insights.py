"""
Rule-based insight generation.

Each rule is evaluated independently against the valued portfolio and its
metrics, producing human-readable findings with a priority. Generation is a
stateless scan; callers own the accumulated insight list.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from stockfolio.models import (
    AssetCategory,
    Insight,
    InsightKind,
    InsightPriority,
    PortfolioMetrics,
    ValuedPosition,
)

# Rule thresholds (percentages unless noted)
EQUITY_HEAVY_PCT = Decimal("80")
MIN_POSITION_COUNT = 5
CONCENTRATION_PCT = Decimal("30")
STRONG_PERFORMANCE_PCT = Decimal("10")
UNDERPERFORMANCE_PCT = Decimal("-10")
HIGH_VOLATILITY_PCT = Decimal("5")
MIN_CATEGORY_COUNT = 3


def generate_insights(
    valuations: list[ValuedPosition],
    metrics: PortfolioMetrics,
    now: Optional[datetime] = None,
) -> list[Insight]:
    """
    Scan the portfolio and produce a batch of new insights.

    Args:
        valuations: Valued positions
        metrics: Metrics computed from the same valuations
        now: Creation timestamp for the batch (default: current time)

    Returns:
        Insights in rule order (unsorted). An empty portfolio still trips
        the position-count and category-coverage rules.
    """
    now = now or datetime.now()
    insights: list[Insight] = []
    insights.extend(_check_equity_heavy(valuations, metrics, now))
    insights.extend(_check_concentration(valuations, metrics, now))
    insights.extend(_check_performance(valuations, metrics, now))
    insights.extend(_check_volatility(valuations, now))
    insights.extend(_check_category_coverage(valuations, now))
    return insights


def _check_equity_heavy(
    valuations: list[ValuedPosition],
    metrics: PortfolioMetrics,
    now: datetime,
) -> list[Insight]:
    total = metrics.current_value
    if total <= Decimal("0"):
        return []

    equity = [v for v in valuations if v.category == AssetCategory.EQUITY]
    equity_value = sum((v.market_value for v in equity), Decimal("0"))
    equity_pct = equity_value / total * Decimal("100")

    if equity_pct <= EQUITY_HEAVY_PCT:
        return []

    return [Insight.create(
        kind=InsightKind.RECOMMENDATION,
        priority=InsightPriority.MEDIUM,
        title="Diversification Opportunity",
        description=(
            f"Your portfolio is {equity_pct:.1f}% invested in equity stocks. "
            "Consider diversifying into other asset classes."
        ),
        recommendation_text=(
            "Add bonds, REITs, or commodities to balance your portfolio and reduce risk."
        ),
        related_symbols=[v.symbol for v in equity],
        created_at=now,
    )]


def _check_concentration(
    valuations: list[ValuedPosition],
    metrics: PortfolioMetrics,
    now: datetime,
) -> list[Insight]:
    insights = []

    if len(valuations) < MIN_POSITION_COUNT:
        insights.append(Insight.create(
            kind=InsightKind.RISK,
            priority=InsightPriority.HIGH,
            title="Low Diversification",
            description=(
                f"Your portfolio contains only {len(valuations)} stocks. "
                "This creates concentration risk."
            ),
            recommendation_text=(
                "Consider adding more stocks from different sectors to improve diversification."
            ),
            related_symbols=[v.symbol for v in valuations],
            created_at=now,
        ))

    total = metrics.current_value
    if total <= Decimal("0"):
        return insights

    # One insight per oversized position
    for val in valuations:
        weight_pct = val.market_value / total * Decimal("100")
        if weight_pct > CONCENTRATION_PCT:
            insights.append(Insight.create(
                kind=InsightKind.WARNING,
                priority=InsightPriority.HIGH,
                title="High Concentration Risk",
                description=(
                    f"{val.symbol} represents {weight_pct:.1f}% of your portfolio. "
                    "This creates significant concentration risk."
                ),
                recommendation_text=(
                    f"Consider reducing your position in {val.symbol} "
                    "and diversifying into other stocks."
                ),
                related_symbols=[val.symbol],
                created_at=now,
            ))

    return insights


def _check_performance(
    valuations: list[ValuedPosition],
    metrics: PortfolioMetrics,
    now: datetime,
) -> list[Insight]:
    if metrics.total_invested <= Decimal("0"):
        return []

    gain_pct = metrics.total_gain_loss_pct
    symbols = [v.symbol for v in valuations]

    if gain_pct > STRONG_PERFORMANCE_PCT:
        return [Insight.create(
            kind=InsightKind.PERFORMANCE,
            priority=InsightPriority.LOW,
            title="Strong Performance",
            description=(
                f"Your portfolio has gained {gain_pct:.1f}% since purchase. Excellent work!"
            ),
            recommendation_text="Consider taking some profits and rebalancing your portfolio.",
            related_symbols=symbols,
            created_at=now,
        )]

    if gain_pct < UNDERPERFORMANCE_PCT:
        return [Insight.create(
            kind=InsightKind.WARNING,
            priority=InsightPriority.MEDIUM,
            title="Portfolio Underperformance",
            description=(
                f"Your portfolio has declined {abs(gain_pct):.1f}% since purchase. "
                "Review your holdings."
            ),
            recommendation_text=(
                "Consider reviewing your investment strategy and potentially "
                "rebalancing your portfolio."
            ),
            related_symbols=symbols,
            created_at=now,
        )]

    return []


def _check_volatility(valuations: list[ValuedPosition], now: datetime) -> list[Insight]:
    volatile = [
        v.symbol for v in valuations
        if v.daily_change_pct is not None and abs(v.daily_change_pct) > HIGH_VOLATILITY_PCT
    ]
    if not volatile:
        return []

    return [Insight.create(
        kind=InsightKind.RISK,
        priority=InsightPriority.MEDIUM,
        title="High Volatility Detected",
        description=(
            "Some stocks in your portfolio are showing high volatility, "
            "which increases risk."
        ),
        recommendation_text=(
            "Consider adding more stable assets or reducing position sizes in volatile stocks."
        ),
        related_symbols=volatile,
        created_at=now,
    )]


def _check_category_coverage(valuations: list[ValuedPosition], now: datetime) -> list[Insight]:
    categories = {v.category for v in valuations if v.category is not None}
    if len(categories) >= MIN_CATEGORY_COUNT:
        return []

    return [Insight.create(
        kind=InsightKind.OPPORTUNITY,
        priority=InsightPriority.MEDIUM,
        title="Sector Diversification Opportunity",
        description=(
            f"Your portfolio is concentrated in {len(categories)} sectors. "
            "Consider diversifying across more sectors."
        ),
        recommendation_text=(
            "Research and add stocks from underrepresented sectors like "
            "healthcare, finance, or energy."
        ),
        related_symbols=[],
        created_at=now,
    )]


def sort_insights(insights: list[Insight]) -> list[Insight]:
    """
    Order insights for display.

    Priority descending, then created_at descending (newest first). Both
    passes are stable, so full ties keep insertion order.

    Args:
        insights: Insights in insertion order

    Returns:
        New sorted list
    """
    ordered = sorted(insights, key=lambda i: i.created_at, reverse=True)
    ordered.sort(key=lambda i: i.priority.rank, reverse=True)
    return ordered


def deduplicate_insights(
    existing: list[Insight],
    new: list[Insight],
    cooldown: timedelta,
    now: Optional[datetime] = None,
) -> list[Insight]:
    """
    Drop new insights that repeat a recent one.

    An insight repeats another when kind, title and related symbols match.
    Only existing insights created within the cooldown window count.

    Args:
        existing: Insights already held by the caller
        new: Freshly generated insights
        cooldown: Suppression window; zero or negative disables deduplication
        now: Reference time (default: current time)

    Returns:
        The new insights that should be kept, in their original order
    """
    if cooldown <= timedelta(0):
        return list(new)

    now = now or datetime.now()
    recent_keys = {
        insight.dedup_key
        for insight in existing
        if now - insight.created_at < cooldown
    }

    kept = []
    for insight in new:
        if insight.dedup_key in recent_keys:
            continue
        recent_keys.add(insight.dedup_key)
        kept.append(insight)
    return kept


def count_high_priority(insights: list[Insight]) -> int:
    return sum(1 for i in insights if i.is_high_priority)


def count_unread(insights: list[Insight]) -> int:
    return sum(1 for i in insights if not i.is_read)
