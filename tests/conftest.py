"""
Pytest fixtures for the portfolio analytics engine tests.

Provides common test data and utilities used across test modules.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest

from stockfolio.models import (
    AssetCategory,
    Position,
    Quote,
    ValuedPosition,
)
from stockfolio.data.providers import (
    QuoteProvider,
    QuoteUnavailableError,
    StaticQuoteProvider,
)
from stockfolio.data.store import MemoryStore, PersistenceError, PersistenceStore
from stockfolio.logging import DecisionLogger
from stockfolio.portfolio import HoldingsLedger, value_positions
from stockfolio.service import PortfolioService


OPENED = datetime(2024, 1, 2, 9, 30)


class FailingStore(PersistenceStore):
    """Store whose writes always fail; reads return what was preloaded."""

    def __init__(self, blobs: Optional[dict[str, bytes]] = None):
        self.blobs = dict(blobs or {})
        self.save_attempts = 0

    def load(self, key: str) -> Optional[bytes]:
        return self.blobs.get(key)

    def save(self, key: str, data: bytes) -> None:
        self.save_attempts += 1
        raise PersistenceError("disk full")


class BrokenQuoteProvider(QuoteProvider):
    """Provider that always raises."""

    @property
    def name(self) -> str:
        return "Broken"

    def get_all(self) -> list[Quote]:
        raise QuoteUnavailableError("network down")


@pytest.fixture
def scenario_positions() -> list[Position]:
    """Two equity positions: AAPL 2 @ 150, TSLA 1 @ 200."""
    return [
        Position(symbol="AAPL", quantity=2, average_cost=Decimal("150"), opened_at=OPENED),
        Position(symbol="TSLA", quantity=1, average_cost=Decimal("200"), opened_at=OPENED),
    ]


@pytest.fixture
def scenario_quotes() -> dict[str, Quote]:
    """Quotes for the two-position scenario (no daily movement)."""
    return {
        "AAPL": Quote(
            symbol="AAPL",
            display_name="Apple Inc.",
            price=Decimal("174.26"),
            category=AssetCategory.EQUITY,
        ),
        "TSLA": Quote(
            symbol="TSLA",
            display_name="Tesla Inc.",
            price=Decimal("258.14"),
            category=AssetCategory.EQUITY,
        ),
    }


@pytest.fixture
def scenario_valuations(scenario_positions, scenario_quotes) -> list[ValuedPosition]:
    return value_positions(scenario_positions, scenario_quotes)


@pytest.fixture
def diversified_positions() -> list[Position]:
    """Six positions spread across all four categories."""
    return [
        Position(symbol="AAPL", quantity=10, average_cost=Decimal("150"), opened_at=OPENED),
        Position(symbol="MSFT", quantity=5, average_cost=Decimal("300"), opened_at=OPENED),
        Position(symbol="BND", quantity=20, average_cost=Decimal("70"), opened_at=OPENED),
        Position(symbol="AGG", quantity=10, average_cost=Decimal("100"), opened_at=OPENED),
        Position(symbol="AOR", quantity=15, average_cost=Decimal("50"), opened_at=OPENED),
        Position(symbol="GLD", quantity=5, average_cost=Decimal("180"), opened_at=OPENED),
    ]


@pytest.fixture
def diversified_quotes() -> dict[str, Quote]:
    """Quotes for the diversified portfolio; every daily move is under 2%."""
    def quote(symbol, price, change, category):
        return Quote(
            symbol=symbol,
            display_name=symbol,
            price=Decimal(price),
            daily_change=Decimal(change),
            category=category,
        )

    return {
        "AAPL": quote("AAPL", "160", "2", AssetCategory.EQUITY),
        "MSFT": quote("MSFT", "330", "-3", AssetCategory.EQUITY),
        "BND": quote("BND", "72", "0.1", AssetCategory.DEBT),
        "AGG": quote("AGG", "98", "-0.2", AssetCategory.DEBT),
        "AOR": quote("AOR", "52", "0.3", AssetCategory.HYBRID),
        "GLD": quote("GLD", "181", "1", AssetCategory.OTHER),
    }


@pytest.fixture
def diversified_valuations(diversified_positions, diversified_quotes) -> list[ValuedPosition]:
    return value_positions(diversified_positions, diversified_quotes)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def decision_logger(tmp_path) -> DecisionLogger:
    return DecisionLogger(tmp_path / "logs" / "decisions.jsonl", portfolio_id="TEST001")


@pytest.fixture
def ledger(memory_store, decision_logger) -> HoldingsLedger:
    return HoldingsLedger(store=memory_store, decision_logger=decision_logger)


@pytest.fixture
def quote_provider(scenario_quotes) -> StaticQuoteProvider:
    return StaticQuoteProvider(list(scenario_quotes.values()))


@pytest.fixture
def service(ledger, quote_provider, memory_store, decision_logger) -> PortfolioService:
    """Service over an in-memory store with the scenario quotes."""
    return PortfolioService(
        ledger=ledger,
        quote_provider=quote_provider,
        store=memory_store,
        decision_logger=decision_logger,
        quote_timeout=2.0,
        portfolio_id="TEST001",
    )
