"""
Mock performance history.

No historical valuations are stored, so the history chart is simulated
around the current metrics: each day's value varies by up to +/-5% and the
invested amount by a tenth of that. The random generator is seeded from a
hash of a caller-supplied key, so the same portfolio always draws the same
curve.
"""

import hashlib
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import numpy as np

from stockfolio.models import PerformancePoint, PortfolioMetrics

MAX_VALUE_VARIATION = 0.05
INVESTED_VARIATION_RATIO = 0.1


def _seed_for(seed_key: str) -> int:
    digest = hashlib.sha256(seed_key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def generate_performance_history(
    metrics: PortfolioMetrics,
    days: int = 30,
    seed_key: str = "portfolio",
    end: Optional[date] = None,
) -> list[PerformancePoint]:
    """
    Generate a reproducible daily performance series.

    Args:
        metrics: Current portfolio metrics
        days: Number of daily points (ending on `end`)
        seed_key: Key hashed into the random seed
        end: Last date of the series (default: today)

    Returns:
        List of PerformancePoint, oldest first; empty if days <= 0
    """
    if days <= 0:
        return []

    end = end or date.today()
    rng = np.random.default_rng(_seed_for(seed_key))
    variations = rng.uniform(-MAX_VALUE_VARIATION, MAX_VALUE_VARIATION, size=days)

    points = []
    for offset, variation in enumerate(variations):
        variation = Decimal(str(round(float(variation), 6)))
        value = metrics.current_value * (Decimal("1") + variation)
        invested = metrics.total_invested * (
            Decimal("1") + variation * Decimal(str(INVESTED_VARIATION_RATIO))
        )
        gain_loss = value - invested
        if invested > Decimal("0"):
            gain_loss_pct = gain_loss / invested * Decimal("100")
        else:
            gain_loss_pct = Decimal("0")

        points.append(
            PerformancePoint(
                date=end - timedelta(days=offset),
                value=value,
                invested=invested,
                gain_loss=gain_loss,
                gain_loss_pct=gain_loss_pct,
            )
        )

    points.sort(key=lambda p: p.date)
    return points
