"""
Portfolio service: the API consumed by the CLI and any UI layer.

Wires the holdings ledger, quote provider, persistence store and decision
log together. Analytics are recomputed on demand from a consistent ledger
snapshot and a best-effort quote map; callers that want push updates
register with on_ledger_changed().
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional

from stockfolio.models import (
    AlertCondition,
    AppConfig,
    CategoryBucket,
    DateRange,
    ExportData,
    Insight,
    PerformancePoint,
    PortfolioMetrics,
    Position,
    PriceAlert,
    Quote,
    TradeError,
    TradeResult,
    Transaction,
    TransactionSide,
    ValuedPosition,
    WatchlistEntry,
)
from stockfolio.analytics import alerts as alert_rules
from stockfolio.analytics.distribution import distribute
from stockfolio.analytics.insights import (
    count_high_priority,
    count_unread,
    deduplicate_insights,
    generate_insights,
    sort_insights,
)
from stockfolio.analytics.performance import generate_performance_history
from stockfolio.analytics.risk import (
    diversification_score,
    portfolio_health_score,
    risk_score,
)
from stockfolio.data.export import filter_transactions_by_range
from stockfolio.data.providers import (
    CachedQuoteProvider,
    QuoteProvider,
    StaticQuoteProvider,
    YFinanceQuoteProvider,
    fetch_quotes,
)
from stockfolio.data.serialization import (
    SerializationError,
    decode_alerts,
    decode_insights,
    decode_transactions,
    decode_watchlist,
    encode_alerts,
    encode_insights,
    encode_transactions,
    encode_watchlist,
)
from stockfolio.data.store import (
    ALERTS_KEY,
    INSIGHTS_KEY,
    TRANSACTIONS_KEY,
    TRIGGERED_ALERTS_KEY,
    WATCHLIST_KEY,
    JsonFileStore,
    PersistenceError,
    PersistenceStore,
)
from stockfolio.logging.decision_log import DecisionLogger
from stockfolio.portfolio.ledger import HoldingsLedger, is_valid_quantity, normalize_symbol
from stockfolio.portfolio.valuation import summarize_valuation, value_positions

logger = logging.getLogger(__name__)

BUNDLED_QUOTE_FILE = Path(__file__).parent / "data" / "stocks.json"
DECISION_LOG_NAME = "decisions.jsonl"


@dataclass
class AnalyticsSnapshot:
    """Everything derived from one ledger snapshot and quote map."""
    valuations: list[ValuedPosition]
    metrics: PortfolioMetrics
    distribution: list[CategoryBucket]
    health_score: float
    quotes: dict[str, Quote] = field(default_factory=dict)
    computed_at: datetime = field(default_factory=datetime.now)

    @property
    def missing_quotes(self) -> list[str]:
        return [v.symbol for v in self.valuations if not v.has_quote]


class PortfolioService:
    """
    Facade over the analytics engine.

    Holds the insight list, transaction history, price alerts and watchlist
    in memory, persisting each after every change. Persistence failures are
    logged and never interrupt the caller.
    """

    def __init__(
        self,
        ledger: HoldingsLedger,
        quote_provider: QuoteProvider,
        store: Optional[PersistenceStore] = None,
        decision_logger: Optional[DecisionLogger] = None,
        quote_timeout: float = 5.0,
        insight_cooldown: timedelta = timedelta(0),
        portfolio_id: str = "default",
    ):
        """
        Initialize the service.

        Args:
            ledger: Holdings ledger (shares the same store for positions)
            quote_provider: Source of current quotes
            store: Persistence store for insights, transactions and alerts
            decision_logger: Audit log
            quote_timeout: Seconds to wait for quotes before valuing at cost
            insight_cooldown: Window for suppressing repeated insights
            portfolio_id: Seeds the mock performance history
        """
        self.ledger = ledger
        self.quote_provider = quote_provider
        self._store = store
        self._decision_logger = decision_logger
        self.quote_timeout = quote_timeout
        self.insight_cooldown = insight_cooldown
        self.portfolio_id = portfolio_id

        self._lock = threading.RLock()
        self._quotes: dict[str, Quote] = {}
        self._insights: list[Insight] = []
        self._transactions: list[Transaction] = []
        self._alerts: list[PriceAlert] = []
        self._triggered_alerts: list[PriceAlert] = []
        self._watchlist: list[str] = []
        self._snapshot: Optional[AnalyticsSnapshot] = None

    # ------------------------------------------------------------------
    # State loading and persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Restore ledger, insights, transactions, alerts and watchlist from the store."""
        self.ledger.load()
        with self._lock:
            self._insights = sort_insights(self._load_list(INSIGHTS_KEY, decode_insights))
            self._transactions = self._load_list(TRANSACTIONS_KEY, decode_transactions)
            self._alerts = self._load_list(ALERTS_KEY, decode_alerts)
            self._triggered_alerts = self._load_list(TRIGGERED_ALERTS_KEY, decode_alerts)
            self._watchlist = self._load_list(WATCHLIST_KEY, decode_watchlist)

    def _load_list(self, key: str, decoder: Callable[[bytes], list]) -> list:
        if self._store is None:
            return []

        try:
            data = self._store.load(key)
            return decoder(data) if data is not None else []
        except (PersistenceError, SerializationError) as e:
            logger.error(f"Persisted {key} are unreadable: {e}; starting empty")
            if self._decision_logger:
                self._decision_logger.log_state_corrupted(key, e)
            return []

    def _save(self, key: str, data: bytes) -> bool:
        if self._store is None:
            return True

        try:
            self._store.save(key, data)
        except PersistenceError as e:
            logger.warning(f"Failed to persist {key}: {e}")
            if self._decision_logger:
                self._decision_logger.log_persistence_failed(key, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Quotes and analytics
    # ------------------------------------------------------------------

    def refresh_quotes(self) -> dict[str, Quote]:
        """
        Fetch quotes for held and watched symbols.

        Returns:
            Quote map (empty when the provider failed or timed out)
        """
        symbols = set(self.ledger.symbols())
        with self._lock:
            symbols.update(a.symbol for a in self._alerts)
            symbols.update(self._watchlist)

        quotes = fetch_quotes(self.quote_provider, sorted(symbols), timeout=self.quote_timeout)
        with self._lock:
            self._quotes = quotes
        return dict(quotes)

    def recompute(self, refresh: bool = True) -> AnalyticsSnapshot:
        """
        Recompute all analytics from a fresh ledger snapshot.

        Args:
            refresh: Fetch new quotes first (otherwise reuse the last map)

        Returns:
            AnalyticsSnapshot
        """
        positions = self.ledger.snapshot()
        if refresh:
            quotes = self.refresh_quotes()
        else:
            quotes = self._last_quotes()

        valuations = value_positions(positions, quotes)
        metrics = summarize_valuation(
            valuations,
            risk_score=risk_score(valuations),
            diversification_score=diversification_score(valuations),
        )
        snapshot = AnalyticsSnapshot(
            valuations=valuations,
            metrics=metrics,
            distribution=distribute(valuations),
            health_score=portfolio_health_score(metrics),
            quotes=quotes,
        )

        if self._decision_logger:
            self._decision_logger.log_metrics_calculated(metrics)

        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def _last_quotes(self) -> dict[str, Quote]:
        with self._lock:
            return dict(self._quotes)

    @property
    def last_snapshot(self) -> Optional[AnalyticsSnapshot]:
        """Most recent recompute() result, if any."""
        with self._lock:
            return self._snapshot

    def get_portfolio_metrics(self) -> PortfolioMetrics:
        return self.recompute().metrics

    def get_category_distribution(self) -> list[CategoryBucket]:
        return self.recompute().distribution

    def get_valuations(self) -> list[ValuedPosition]:
        return self.recompute().valuations

    def health_score(self) -> float:
        return self.recompute().health_score

    def performance_history(self, days: int = 30) -> list[PerformancePoint]:
        """Mock daily history around the current metrics, oldest first."""
        metrics = self.recompute().metrics
        return generate_performance_history(metrics, days=days, seed_key=self.portfolio_id)

    def on_ledger_changed(self, callback: Callable[[list[Position]], None]) -> Callable[[], None]:
        """Register for ledger snapshots after every mutation; returns unsubscribe."""
        return self.ledger.on_change(callback)

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def _current_price(self, symbol: str) -> Optional[Decimal]:
        quote = fetch_quotes(self.quote_provider, [symbol], timeout=self.quote_timeout).get(symbol)
        return quote.price if quote is not None else None

    def buy(self, symbol: str, quantity: int, price=None) -> TradeResult:
        """
        Buy shares at the given price, or at the current quote.

        Returns:
            TradeResult; an invalid quantity is rejected before any quote
            lookup, and INVALID_PRICE means no price was given and no quote
            exists
        """
        symbol = normalize_symbol(symbol)
        if price is None and is_valid_quantity(quantity):
            price = self._current_price(symbol)
            if price is None:
                result = TradeResult.failure(
                    symbol, TradeError.INVALID_PRICE,
                    f"No price given and no quote available for {symbol}",
                )
                self._record_trade(TransactionSide.BUY, quantity, None, result)
                return result

        result = self.ledger.apply_buy(symbol, quantity, price)
        self._record_trade(TransactionSide.BUY, quantity, price, result)
        return result

    def sell(self, symbol: str, quantity: int) -> TradeResult:
        """
        Sell shares; the transaction is recorded at the current quote, or at
        average cost when no quote is available.
        """
        symbol = normalize_symbol(symbol)
        held = self.ledger.get(symbol)
        price = None
        if held is not None and is_valid_quantity(quantity) and quantity <= held.quantity:
            price = self._current_price(symbol)
            if price is None:
                price = held.average_cost

        result = self.ledger.apply_sell(symbol, quantity)
        self._record_trade(TransactionSide.SELL, quantity, price, result)
        return result

    def _record_trade(
        self,
        side: TransactionSide,
        quantity: int,
        price,
        result: TradeResult,
    ) -> None:
        if self._decision_logger:
            self._decision_logger.log_trade(side, quantity, price, result)

        if not result.ok:
            logger.info(f"{side.value} {quantity} {result.symbol} rejected: {result.message}")
            return

        transaction = Transaction.create(
            symbol=result.symbol,
            quantity=quantity,
            price=Decimal(str(price)),
            side=side,
        )
        with self._lock:
            self._transactions.append(transaction)
            self._save(TRANSACTIONS_KEY, encode_transactions(self._transactions))

    def get_transactions(
        self,
        date_range: DateRange = DateRange.ALL,
        now: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Transaction history within the date range, newest first."""
        with self._lock:
            transactions = list(self._transactions)
        transactions = filter_transactions_by_range(transactions, date_range, now=now)
        return sorted(transactions, key=lambda t: t.timestamp, reverse=True)

    def import_positions(self, positions: list[Position]) -> bool:
        """Replace all holdings (e.g. from a CSV file); returns persisted flag."""
        logger.info(f"Importing {len(positions)} positions")
        return self.ledger.replace_all(positions)

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def generate_insights(self, now: Optional[datetime] = None) -> list[Insight]:
        """
        Run a fresh insight scan and append the results.

        Returns:
            Newly added insights (after cooldown deduplication)
        """
        now = now or datetime.now()
        snapshot = self.recompute()
        generated = generate_insights(snapshot.valuations, snapshot.metrics, now=now)

        with self._lock:
            added = deduplicate_insights(
                self._insights, generated, self.insight_cooldown, now=now
            )
            self._insights = sort_insights(self._insights + added)
            self._save(INSIGHTS_KEY, encode_insights(self._insights))

        logger.info(f"Insight scan produced {len(generated)} insights, {len(added)} added")
        if self._decision_logger:
            self._decision_logger.log_insights_generated(generated, added)
        return added

    def get_insights(self, include_read: bool = True) -> list[Insight]:
        """Current insights in display order."""
        with self._lock:
            if include_read:
                return list(self._insights)
            return [i for i in self._insights if not i.is_read]

    def mark_insight_read(self, insight_id: str) -> bool:
        """Flag an insight as read; returns False if it does not exist."""
        with self._lock:
            for index, insight in enumerate(self._insights):
                if insight.insight_id == insight_id:
                    self._insights[index] = dataclasses.replace(insight, is_read=True)
                    self._save(INSIGHTS_KEY, encode_insights(self._insights))
                    return True
        return False

    def dismiss_insight(self, insight_id: str) -> bool:
        """Remove an insight; returns False if it does not exist."""
        with self._lock:
            remaining = [i for i in self._insights if i.insight_id != insight_id]
            if len(remaining) == len(self._insights):
                return False
            self._insights = remaining
            self._save(INSIGHTS_KEY, encode_insights(self._insights))
        return True

    def clear_insights(self) -> None:
        with self._lock:
            self._insights = []
            self._save(INSIGHTS_KEY, encode_insights(self._insights))

    def unread_count(self) -> int:
        with self._lock:
            return count_unread(self._insights)

    def high_priority_count(self) -> int:
        with self._lock:
            return count_high_priority(self._insights)

    # ------------------------------------------------------------------
    # Price alerts
    # ------------------------------------------------------------------

    def create_alert(
        self,
        symbol: str,
        target_price,
        condition: AlertCondition = AlertCondition.ABOVE,
        notification_enabled: bool = True,
    ) -> PriceAlert:
        """
        Create and store an active price alert.

        Raises:
            ValueError: If the target price is not positive
        """
        symbol = normalize_symbol(symbol)
        with self._lock:
            quote = self._quotes.get(symbol)
        alert = alert_rules.create_alert(
            symbol,
            target_price,
            condition=condition,
            display_name=quote.display_name if quote else None,
            notification_enabled=notification_enabled,
        )

        with self._lock:
            self._alerts.append(alert)
            self._save(ALERTS_KEY, encode_alerts(self._alerts))

        logger.info(f"Created alert {alert.description}")
        return alert

    def delete_alert(self, alert_id: str) -> bool:
        with self._lock:
            remaining = [a for a in self._alerts if a.alert_id != alert_id]
            if len(remaining) == len(self._alerts):
                return False
            self._alerts = remaining
            self._save(ALERTS_KEY, encode_alerts(self._alerts))
        return True

    def toggle_alert(self, alert_id: str) -> Optional[PriceAlert]:
        """Flip an alert's enabled flag; returns the updated alert."""
        with self._lock:
            for index, alert in enumerate(self._alerts):
                if alert.alert_id == alert_id:
                    updated = alert_rules.toggle_alert(alert)
                    self._alerts[index] = updated
                    self._save(ALERTS_KEY, encode_alerts(self._alerts))
                    return updated
        return None

    def check_alerts(self, now: Optional[datetime] = None) -> list[PriceAlert]:
        """
        Evaluate active alerts against fresh quotes.

        Returns:
            Alerts triggered by this check
        """
        with self._lock:
            symbols = sorted({a.symbol for a in self._alerts if a.is_active})
        if not symbols:
            return []

        quotes = fetch_quotes(self.quote_provider, symbols, timeout=self.quote_timeout)

        with self._lock:
            remaining, triggered = alert_rules.check_alerts(self._alerts, quotes, now=now)
            if triggered:
                self._alerts = remaining
                self._triggered_alerts.extend(triggered)
                self._save(ALERTS_KEY, encode_alerts(self._alerts))
                self._save(TRIGGERED_ALERTS_KEY, encode_alerts(self._triggered_alerts))

        for alert in triggered:
            price = quotes[alert.symbol].price
            logger.info(f"Alert triggered: {alert.description} (price {price})")
            if self._decision_logger:
                self._decision_logger.log_alert_triggered(alert, price)

        return triggered

    def get_alerts(self) -> list[PriceAlert]:
        with self._lock:
            return list(self._alerts)

    def get_triggered_alerts(self) -> list[PriceAlert]:
        with self._lock:
            return list(self._triggered_alerts)

    def clear_triggered_alerts(self) -> None:
        with self._lock:
            self._triggered_alerts = []
            self._save(TRIGGERED_ALERTS_KEY, encode_alerts(self._triggered_alerts))


    # ------------------------------------------------------------------
    # Watchlist
    # ------------------------------------------------------------------

    def add_to_watchlist(self, symbol: str) -> bool:
        """
        Watch a symbol; returns False if it is already watched.

        Raises:
            ValueError: If the symbol is blank
        """
        symbol = normalize_symbol(symbol)
        if not symbol:
            raise ValueError("Symbol must not be blank")
        with self._lock:
            if symbol in self._watchlist:
                return False
            self._watchlist.append(symbol)
            self._save(WATCHLIST_KEY, encode_watchlist(self._watchlist))
        logger.info(f"Watching {symbol}")
        return True

    def remove_from_watchlist(self, symbol: str) -> bool:
        """Stop watching a symbol; returns False if it was not watched."""
        symbol = normalize_symbol(symbol)
        with self._lock:
            if symbol not in self._watchlist:
                return False
            self._watchlist.remove(symbol)
            self._save(WATCHLIST_KEY, encode_watchlist(self._watchlist))
        return True

    def is_in_watchlist(self, symbol: str) -> bool:
        with self._lock:
            return normalize_symbol(symbol) in self._watchlist

    def get_watchlist(self) -> list[str]:
        """Watched symbols in the order they were added."""
        with self._lock:
            return list(self._watchlist)

    def get_watchlist_entries(self, refresh: bool = True) -> list[WatchlistEntry]:
        """
        Watched symbols with their latest quotes.

        Args:
            refresh: Fetch new quotes first (otherwise reuse the last map)
        """
        quotes = self.refresh_quotes() if refresh else self._last_quotes()
        return [WatchlistEntry.from_quote(s, quotes.get(s)) for s in self.get_watchlist()]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def build_export(
        self,
        date_range: DateRange = DateRange.ALL,
        include_transactions: bool = True,
        include_watchlist: bool = True,
        now: Optional[datetime] = None,
    ) -> ExportData:
        """
        Collect holdings, analytics, history and the watchlist for export.

        Args:
            date_range: Transaction window to include
            include_transactions: Leave transactions out when False
            include_watchlist: Leave the watchlist out when False
            now: Reference time for the date range (default: current time)

        Returns:
            ExportData built from one recompute
        """
        now = now or datetime.now()
        snapshot = self.recompute()
        quotes = snapshot.quotes

        return ExportData(
            positions=self.ledger.snapshot(),
            valuations=snapshot.valuations,
            insights=self.get_insights(),
            transactions=(
                self.get_transactions(date_range, now=now) if include_transactions else None
            ),
            watchlist=(
                [WatchlistEntry.from_quote(s, quotes.get(s)) for s in self.get_watchlist()]
                if include_watchlist else None
            ),
            date_range=date_range,
            exported_at=now,
        )


def build_quote_provider(config: AppConfig) -> QuoteProvider:
    """
    Create the quote provider selected by configuration.

    The static source reads config.quote_file, or the bundled sample quotes.
    The yfinance source is wrapped in a last-good cache.
    """
    if config.quote_source == "yfinance":
        return CachedQuoteProvider(YFinanceQuoteProvider())

    quote_file = Path(config.quote_file) if config.quote_file else BUNDLED_QUOTE_FILE
    return StaticQuoteProvider.from_file(quote_file)


def create_service(
    config: AppConfig,
    quote_provider: Optional[QuoteProvider] = None,
    config_path: Optional[str] = None,
) -> PortfolioService:
    """
    Build a fully wired, loaded service from configuration.

    Args:
        config: Application configuration
        quote_provider: Override the configured quote source
        config_path: Configuration file recorded in the decision log

    Returns:
        PortfolioService with state restored from config.data_dir
    """
    store = JsonFileStore(config.data_dir)
    decision_logger = DecisionLogger(
        Path(config.log_dir) / DECISION_LOG_NAME,
        portfolio_id=config.portfolio_id,
    )
    decision_logger.log_config_loaded(config, config_path)
    ledger = HoldingsLedger(store=store, decision_logger=decision_logger)

    service = PortfolioService(
        ledger=ledger,
        quote_provider=quote_provider or build_quote_provider(config),
        store=store,
        decision_logger=decision_logger,
        quote_timeout=config.quote_timeout_seconds,
        insight_cooldown=timedelta(minutes=config.insight_cooldown_minutes),
        portfolio_id=config.portfolio_id,
    )
    service.load()
    return service
