"""
Tests for date-range filtering and multi-format export.
"""

import json
from datetime import datetime
from decimal import Decimal

import pandas as pd
import pytest

from stockfolio.models import (
    DateRange,
    ExportData,
    ExportFormat,
    Transaction,
    TransactionSide,
    WatchlistEntry,
)
from stockfolio.data.export import (
    filter_transactions_by_range,
    range_start,
    write_export,
)
from stockfolio.data.schemas import WATCHLIST_SCHEMA


NOW = datetime(2024, 3, 31, 12, 0)


def _transaction(symbol: str, timestamp: datetime) -> Transaction:
    return Transaction(
        transaction_id=f"t-{symbol}",
        symbol=symbol,
        quantity=1,
        price=Decimal("100"),
        side=TransactionSide.BUY,
        timestamp=timestamp,
    )


@pytest.fixture
def export_data(scenario_positions, scenario_valuations) -> ExportData:
    return ExportData(
        positions=scenario_positions,
        valuations=scenario_valuations,
        insights=[],
        transactions=[_transaction("AAPL", datetime(2024, 3, 30))],
        watchlist=[
            WatchlistEntry("NVDA", "NVIDIA Corporation", Decimal("456.78"), Decimal("9.12"), Decimal("2.04")),
            WatchlistEntry("ZZZZ", "ZZZZ"),
        ],
        date_range=DateRange.LAST_MONTH,
        exported_at=NOW,
    )


class TestRangeStart:
    """Tests for calendar range boundaries."""

    def test_all_time_is_unbounded(self):
        assert range_start(DateRange.ALL, NOW) is None

    @pytest.mark.parametrize(
        "date_range,expected",
        [
            (DateRange.LAST_WEEK, datetime(2024, 3, 24, 12, 0)),
            (DateRange.LAST_MONTH, datetime(2024, 2, 29, 12, 0)),
            (DateRange.LAST_YEAR, datetime(2023, 3, 31, 12, 0)),
        ],
    )
    def test_calendar_offsets(self, date_range, expected):
        """Test that a month back from Mar 31 clamps to the end of February."""
        assert range_start(date_range, NOW) == expected

    def test_filter_keeps_boundary_and_order(self):
        """Test that the start instant itself is inside the range."""
        transactions = [
            _transaction("OLD", datetime(2024, 2, 29, 11, 59)),
            _transaction("EDGE", datetime(2024, 2, 29, 12, 0)),
            _transaction("NEW", datetime(2024, 3, 30)),
        ]

        kept = filter_transactions_by_range(transactions, DateRange.LAST_MONTH, NOW)

        assert [t.symbol for t in kept] == ["EDGE", "NEW"]
        assert filter_transactions_by_range(transactions, DateRange.ALL, NOW) == transactions


class TestWriteExport:
    """Tests for writing export bundles."""

    def test_csv_files(self, export_data, tmp_path):
        """Test one file per section, including the watchlist."""
        paths = write_export(export_data, tmp_path / "out", ExportFormat.CSV)

        assert [p.name for p in paths] == [
            "holdings.csv",
            "valuations.csv",
            "insights.csv",
            "transactions.csv",
            "watchlist.csv",
        ]
        df = pd.read_csv(tmp_path / "out" / "watchlist.csv")
        is_valid, missing = WATCHLIST_SCHEMA.validate_columns(df.columns.tolist())
        assert is_valid, missing
        assert df["symbol"].tolist() == ["NVDA", "ZZZZ"]
        assert df.loc[0, "price"] == pytest.approx(456.78)
        assert pd.isna(df.loc[1, "price"])

    def test_csv_skips_left_out_sections(self, export_data, tmp_path):
        export_data.transactions = None
        export_data.watchlist = None

        paths = write_export(export_data, tmp_path, ExportFormat.CSV)

        assert {p.name for p in paths} == {"holdings.csv", "valuations.csv", "insights.csv"}
        assert not (tmp_path / "watchlist.csv").exists()

    def test_json_document(self, export_data, tmp_path):
        """Test that every section lands in one document with exact decimals."""
        (path,) = write_export(export_data, tmp_path, ExportFormat.JSON)

        assert path.name == "portfolio.json"
        document = json.loads(path.read_text())
        assert document["date_range"] == "last_month"
        assert document["exported_at"] == "2024-03-31T12:00:00"
        assert [h["symbol"] for h in document["holdings"]] == ["AAPL", "TSLA"]
        assert document["valuations"][0]["market_value"] == "348.52"
        assert document["insights"] == []
        assert document["transactions"][0]["symbol"] == "AAPL"
        assert document["watchlist"][1] == {
            "symbol": "ZZZZ",
            "display_name": "ZZZZ",
            "price": None,
            "daily_change": None,
            "daily_change_pct": None,
        }

    def test_json_omits_left_out_sections(self, export_data, tmp_path):
        export_data.transactions = None
        export_data.watchlist = None

        (path,) = write_export(export_data, tmp_path, ExportFormat.JSON)

        document = json.loads(path.read_text())
        assert "transactions" not in document
        assert "watchlist" not in document
