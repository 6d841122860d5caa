"""
Tests for blob persistence and entity serialization.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from stockfolio.models import (
    AlertCondition,
    AlertStatus,
    Insight,
    InsightKind,
    InsightPriority,
    Position,
    PriceAlert,
    Transaction,
    TransactionSide,
)
from stockfolio.data.serialization import (
    SerializationError,
    decode_alerts,
    decode_insights,
    decode_positions,
    decode_transactions,
    decode_watchlist,
    encode_alerts,
    encode_insights,
    encode_positions,
    encode_transactions,
    encode_watchlist,
)
from stockfolio.data.store import (
    POSITIONS_KEY,
    JsonFileStore,
    MemoryStore,
    PersistenceError,
)


class TestSerialization:
    """Tests for encoding entity lists as blobs."""

    def test_positions_keep_exact_decimals(self):
        """Test that average cost survives without float rounding."""
        positions = [
            Position(
                symbol="AAPL",
                quantity=3,
                average_cost=Decimal("146.3333333333333333333333333"),
                opened_at=datetime(2024, 1, 2, 9, 30, 15, 123456),
            )
        ]

        assert decode_positions(encode_positions(positions)) == positions

    def test_insight_fields(self):
        """Test that every insight field is restored."""
        insight = Insight(
            insight_id="abc",
            kind=InsightKind.WARNING,
            priority=InsightPriority.CRITICAL,
            title="High Concentration Risk",
            description="AAPL represents 57.4% of your portfolio.",
            recommendation_text=None,
            related_symbols=("AAPL",),
            created_at=datetime(2024, 6, 1, 12, 0),
            is_read=True,
        )

        (restored,) = decode_insights(encode_insights([insight]))

        assert restored == insight
        assert isinstance(restored.related_symbols, tuple)

    def test_transactions(self):
        """Test transaction history encoding."""
        txn = Transaction(
            transaction_id="t1",
            symbol="TSLA",
            quantity=2,
            price=Decimal("258.14"),
            side=TransactionSide.SELL,
            timestamp=datetime(2024, 6, 1, 10, 0),
        )

        assert decode_transactions(encode_transactions([txn])) == [txn]

    def test_alerts_with_trigger_time(self):
        """Test triggered alerts keep their trigger time."""
        alert = PriceAlert(
            alert_id="a1",
            symbol="AAPL",
            display_name="Apple Inc.",
            target_price=Decimal("170"),
            condition=AlertCondition.BELOW,
            status=AlertStatus.TRIGGERED,
            created_at=datetime(2024, 6, 1, 9, 0),
            triggered_at=datetime(2024, 6, 1, 15, 0),
            is_enabled=False,
            notification_enabled=False,
        )

        assert decode_alerts(encode_alerts([alert])) == [alert]

    def test_empty_list(self):
        """Test an empty list round trip."""
        assert decode_positions(encode_positions([])) == []

    @pytest.mark.parametrize(
        "blob",
        [
            b"not json",
            b"{\"symbol\": \"AAPL\"}",
            b"[{\"symbol\": \"AAPL\"}]",
            b"[{\"symbol\": \"AAPL\", \"quantity\": 0, \"average_cost\": \"1\", \"opened_at\": \"2024-01-01T00:00:00\"}]",
            b"[{\"symbol\": \"AAPL\", \"quantity\": 1, \"average_cost\": \"abc\", \"opened_at\": \"2024-01-01T00:00:00\"}]",
            b"\xff\xfe",
        ],
    )
    def test_corrupt_blobs_raise(self, blob):
        """Test that unreadable or invalid blobs raise SerializationError."""
        with pytest.raises(SerializationError):
            decode_positions(blob)

    def test_watchlist_keeps_order(self):
        assert decode_watchlist(encode_watchlist(["TSLA", "AAPL"])) == ["TSLA", "AAPL"]

    def test_watchlist_symbols_normalized(self):
        assert decode_watchlist(b"[\" tsla \"]") == ["TSLA"]

    @pytest.mark.parametrize(
        "blob",
        [b"not json", b"{\"TSLA\": 1}", b"[1, 2]", b"[\"TSLA\", \"  \"]"],
    )
    def test_corrupt_watchlist_raises(self, blob):
        """Test that anything but an array of symbols is rejected."""
        with pytest.raises(SerializationError):
            decode_watchlist(blob)


class TestMemoryStore:
    """Tests for the in-memory store."""

    def test_missing_key_is_none(self):
        """Test loading an unknown key."""
        assert MemoryStore().load(POSITIONS_KEY) is None

    def test_save_replaces(self):
        """Test that save overwrites the previous blob."""
        store = MemoryStore()
        store.save("k", b"one")
        store.save("k", b"two")

        assert store.load("k") == b"two"
        assert store.keys() == ["k"]


class TestJsonFileStore:
    """Tests for the file-backed store."""

    def test_save_and_load(self, tmp_path):
        """Test writing and reading a blob."""
        store = JsonFileStore(tmp_path / "state")

        store.save(POSITIONS_KEY, b"[]")

        assert store.load(POSITIONS_KEY) == b"[]"
        assert (tmp_path / "state" / "positions.json").read_bytes() == b"[]"

    def test_missing_file_is_none(self, tmp_path):
        """Test loading before anything is saved."""
        assert JsonFileStore(tmp_path).load(POSITIONS_KEY) is None

    def test_no_temp_file_left(self, tmp_path):
        """Test that the atomic write cleans up after itself."""
        store = JsonFileStore(tmp_path)
        store.save("insights", b"[]")
        store.save("insights", b"[1]")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["insights.json"]

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
    def test_invalid_key_rejected(self, tmp_path, key):
        """Test that keys cannot escape the data directory."""
        store = JsonFileStore(tmp_path)

        with pytest.raises(PersistenceError):
            store.save(key, b"[]")

    def test_unwritable_directory(self, tmp_path):
        """Test that a write failure becomes PersistenceError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker / "state")

        with pytest.raises(PersistenceError):
            store.save(POSITIONS_KEY, b"[]")
