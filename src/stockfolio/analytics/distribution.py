"""
Category distribution of portfolio value.

Buckets valued positions by asset category. Positions without a known
category are counted as "other", so bucket values always add up to the
portfolio's current value.
"""

from decimal import Decimal
from typing import Optional

from stockfolio.models import AssetCategory, CategoryBucket, ValuedPosition


def distribute(valuations: list[ValuedPosition]) -> list[CategoryBucket]:
    """
    Aggregate market value and position count per asset category.

    Args:
        valuations: Valued positions

    Returns:
        Non-empty buckets sorted by value descending (ties keep the order in
        which categories were first seen); empty list for an empty portfolio
    """
    if not valuations:
        return []

    values: dict[AssetCategory, Decimal] = {}
    counts: dict[AssetCategory, int] = {}
    for val in valuations:
        category = val.category or AssetCategory.OTHER
        values[category] = values.get(category, Decimal("0")) + val.market_value
        counts[category] = counts.get(category, 0) + 1

    total = sum(values.values(), Decimal("0"))

    buckets = []
    for category, value in values.items():
        if total > Decimal("0"):
            percentage = value / total * Decimal("100")
        else:
            percentage = Decimal("0")
        buckets.append(
            CategoryBucket(
                category=category,
                value=value,
                percentage_of_total=percentage,
                position_count=counts[category],
            )
        )

    # sort() is stable, so equal values stay in first-encounter order
    buckets.sort(key=lambda b: b.value, reverse=True)

    return buckets


def top_category(buckets: list[CategoryBucket]) -> Optional[CategoryBucket]:
    """Largest bucket, or None for an empty distribution."""
    return buckets[0] if buckets else None


def bottom_category(buckets: list[CategoryBucket]) -> Optional[CategoryBucket]:
    """Smallest bucket, or None for an empty distribution."""
    return buckets[-1] if buckets else None


def category_value(buckets: list[CategoryBucket], category: AssetCategory) -> Decimal:
    """Value held in one category (0 if absent)."""
    for bucket in buckets:
        if bucket.category == category:
            return bucket.value
    return Decimal("0")
