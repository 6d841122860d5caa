"""
Holdings ledger.

Owns the set of positions, applies buy/sell mutations under a lock and
persists the position list after every successful change.
"""

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from stockfolio.models import Position, TradeError, TradeResult
from stockfolio.data.serialization import (
    SerializationError,
    decode_positions,
    encode_positions,
)
from stockfolio.data.store import POSITIONS_KEY, PersistenceError, PersistenceStore
from stockfolio.logging.decision_log import DecisionLogger

logger = logging.getLogger(__name__)

LedgerListener = Callable[[list[Position]], None]


def normalize_symbol(symbol: str) -> str:
    """Canonical form of a ticker symbol."""
    return str(symbol).strip().upper()


def is_valid_quantity(quantity) -> bool:
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0


def _to_decimal(value) -> Optional[Decimal]:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class HoldingsLedger:
    """
    Thread-safe collection of positions keyed by symbol.

    Mutations are serialized by a re-entrant lock. Reads return copies, so
    callers never observe a half-applied trade. Expected failures are
    returned as TradeResult values and leave the ledger unchanged.
    """

    def __init__(
        self,
        store: Optional[PersistenceStore] = None,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        """
        Initialize an empty ledger.

        Args:
            store: Persistence store for the position list (None = in-memory only)
            decision_logger: Audit log for persistence problems
        """
        self._positions: dict[str, Position] = {}
        self._lock = threading.RLock()
        self._listeners: list[LedgerListener] = []
        self._store = store
        self._decision_logger = decision_logger

    def __len__(self) -> int:
        with self._lock:
            return len(self._positions)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return normalize_symbol(symbol) in self._positions

    def get(self, symbol: str) -> Optional[Position]:
        with self._lock:
            return self._positions.get(normalize_symbol(symbol))

    def symbols(self) -> list[str]:
        with self._lock:
            return list(self._positions)

    def snapshot(self) -> list[Position]:
        """Return a consistent copy of all positions in insertion order."""
        with self._lock:
            return list(self._positions.values())

    def on_change(self, callback: LedgerListener) -> Callable[[], None]:
        """
        Register a listener called with the new snapshot after each mutation.

        Returns:
            Callable that unsubscribes the listener
        """
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def apply_buy(self, symbol: str, quantity: int, price) -> TradeResult:
        """
        Add shares, recomputing the weighted average cost.

        Args:
            symbol: Ticker symbol
            quantity: Whole number of shares (> 0)
            price: Execution price per share (>= 0)

        Returns:
            TradeResult with the resulting position
        """
        symbol = normalize_symbol(symbol)
        if not is_valid_quantity(quantity):
            return TradeResult.failure(
                symbol, TradeError.INVALID_QUANTITY,
                f"Quantity must be a positive whole number, got {quantity!r}",
            )

        price = _to_decimal(price)
        if price is None or not price.is_finite() or price < Decimal("0"):
            return TradeResult.failure(
                symbol, TradeError.INVALID_PRICE,
                f"Price must be a non-negative number for {symbol}",
            )

        with self._lock:
            existing = self._positions.get(symbol)
            if existing is None:
                position = Position(symbol=symbol, quantity=quantity, average_cost=price)
            else:
                new_quantity = existing.quantity + quantity
                new_average = (
                    existing.average_cost * existing.quantity + price * quantity
                ) / new_quantity
                position = Position(
                    symbol=symbol,
                    quantity=new_quantity,
                    average_cost=new_average,
                    opened_at=existing.opened_at,
                )

            self._positions[symbol] = position
            persisted = self._persist()
            snapshot = list(self._positions.values())

        logger.info(f"BUY {quantity} {symbol} @ {price}: now {position.quantity} shares")
        self._notify(snapshot)
        return TradeResult.success(symbol, position, persisted=persisted)

    def apply_sell(self, symbol: str, quantity: int) -> TradeResult:
        """
        Remove shares; the average cost of the remainder is unchanged.

        Args:
            symbol: Ticker symbol
            quantity: Whole number of shares (> 0, <= held)

        Returns:
            TradeResult with the remaining position (None when fully sold)
        """
        symbol = normalize_symbol(symbol)
        if not is_valid_quantity(quantity):
            return TradeResult.failure(
                symbol, TradeError.INVALID_QUANTITY,
                f"Quantity must be a positive whole number, got {quantity!r}",
            )

        with self._lock:
            existing = self._positions.get(symbol)
            held = existing.quantity if existing else 0
            if quantity > held:
                return TradeResult.failure(
                    symbol, TradeError.INSUFFICIENT_SHARES,
                    f"Cannot sell {quantity} {symbol}: only {held} held",
                )

            remaining = held - quantity
            if remaining == 0:
                del self._positions[symbol]
                position = None
            else:
                position = Position(
                    symbol=symbol,
                    quantity=remaining,
                    average_cost=existing.average_cost,
                    opened_at=existing.opened_at,
                )
                self._positions[symbol] = position

            persisted = self._persist()
            snapshot = list(self._positions.values())

        logger.info(f"SELL {quantity} {symbol}: {remaining} shares remain")
        self._notify(snapshot)
        return TradeResult.success(symbol, position, persisted=persisted)

    def replace_all(self, positions: list[Position]) -> bool:
        """
        Swap in a full holdings set (e.g. from a CSV import).

        Returns:
            Whether the new holdings were persisted
        """
        with self._lock:
            self._positions = {normalize_symbol(p.symbol): p for p in positions}
            persisted = self._persist()
            snapshot = list(self._positions.values())

        self._notify(snapshot)
        return persisted

    def load(self) -> None:
        """
        Restore positions from the store.

        A missing blob leaves the ledger empty; an unreadable one is logged
        and the ledger starts empty rather than guessing.
        """
        if self._store is None:
            return

        try:
            data = self._store.load(POSITIONS_KEY)
        except PersistenceError as e:
            logger.error(f"Cannot read persisted positions: {e}; starting empty")
            if self._decision_logger:
                self._decision_logger.log_state_corrupted(POSITIONS_KEY, e)
            data = None

        positions: list[Position] = []
        if data is not None:
            try:
                positions = decode_positions(data)
            except SerializationError as e:
                logger.error(f"Persisted positions are corrupt: {e}; starting empty")
                if self._decision_logger:
                    self._decision_logger.log_state_corrupted(POSITIONS_KEY, e)
                positions = []

        with self._lock:
            self._positions = {p.symbol: p for p in positions}

        logger.info(f"Loaded {len(positions)} positions")

    def _persist(self) -> bool:
        """Save positions; caller must hold the lock."""
        if self._store is None:
            return True

        try:
            self._store.save(POSITIONS_KEY, encode_positions(list(self._positions.values())))
        except PersistenceError as e:
            logger.warning(f"Failed to persist positions: {e}")
            if self._decision_logger:
                self._decision_logger.log_persistence_failed(POSITIONS_KEY, e)
            return False
        return True

    def _notify(self, snapshot: list[Position]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)


