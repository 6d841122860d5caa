"""
Portfolio export.

Writes an ExportData bundle either as one CSV file per section or as a
single JSON document, and narrows transaction history to a date range.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from stockfolio.models import DateRange, ExportData, ExportFormat, Transaction
from stockfolio.data.loaders import (
    save_holdings,
    save_insights,
    save_transactions,
    save_valuations,
    save_watchlist,
)
from stockfolio.data.serialization import encode_export

logger = logging.getLogger(__name__)

EXPORT_JSON_NAME = "portfolio.json"

# Calendar offsets, so "last month" from Mar 31 starts on the last day of Feb
_RANGE_OFFSETS = {
    DateRange.LAST_WEEK: pd.DateOffset(weeks=1),
    DateRange.LAST_MONTH: pd.DateOffset(months=1),
    DateRange.LAST_YEAR: pd.DateOffset(years=1),
}


def range_start(date_range: DateRange, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest timestamp inside the range; None for all time."""
    offset = _RANGE_OFFSETS.get(date_range)
    if offset is None:
        return None
    now = now or datetime.now()
    return (pd.Timestamp(now) - offset).to_pydatetime()


def filter_transactions_by_range(
    transactions: list[Transaction],
    date_range: DateRange,
    now: Optional[datetime] = None,
) -> list[Transaction]:
    """
    Keep transactions at or after the start of the range.

    Args:
        transactions: Transaction history in any order
        date_range: Window to keep
        now: Reference time (default: current time)

    Returns:
        Matching transactions, in their original order
    """
    start = range_start(date_range, now)
    if start is None:
        return list(transactions)
    return [t for t in transactions if t.timestamp >= start]


def write_export(
    export: ExportData,
    output_dir: str | Path,
    export_format: ExportFormat = ExportFormat.CSV,
) -> list[Path]:
    """
    Write an export bundle to a directory.

    CSV writes holdings, valuations and insights, plus transactions and the
    watchlist when they are included. JSON writes everything into
    portfolio.json.

    Args:
        export: Bundle to write
        output_dir: Output directory (created if missing)
        export_format: CSV or JSON

    Returns:
        Paths of the written files
    """
    output_dir = Path(output_dir)

    if export_format == ExportFormat.JSON:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / EXPORT_JSON_NAME
        path.write_bytes(encode_export(export))
        paths = [path]
    else:
        paths = [
            save_holdings(export.positions, output_dir / "holdings.csv"),
            save_valuations(export.valuations, output_dir / "valuations.csv"),
            save_insights(export.insights, output_dir / "insights.csv"),
        ]
        if export.transactions is not None:
            paths.append(save_transactions(export.transactions, output_dir / "transactions.csv"))
        if export.watchlist is not None:
            paths.append(save_watchlist(export.watchlist, output_dir / "watchlist.csv"))

    logger.info(
        f"Exported {len(export.positions)} positions as {export_format.value} "
        f"({export.date_range.value}) to {output_dir}"
    )
    return paths
