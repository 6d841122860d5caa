"""
Core data models for the portfolio analytics engine.

This module defines the fundamental data structures used throughout the system,
including positions, quotes, valued positions, portfolio metrics, category
buckets, insights, transactions, price alerts, watchlist entries and export
bundles. All monetary amounts use
Decimal for precision; scores are plain floats on a 0-10 scale.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid


class AssetCategory(Enum):
    """Asset classification used for diversification scoring."""
    EQUITY = "equity"
    DEBT = "debt"
    HYBRID = "hybrid"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["AssetCategory"]:
        """Parse a category name or common alias; unknown values give None."""
        if value is None:
            return None
        text = str(value).strip().lower()
        return _CATEGORY_ALIASES.get(text)


TOTAL_DEFINED_CATEGORIES = len(AssetCategory)

_CATEGORY_ALIASES = {
    "equity": AssetCategory.EQUITY,
    "stock": AssetCategory.EQUITY,
    "stocks": AssetCategory.EQUITY,
    "debt": AssetCategory.DEBT,
    "bond": AssetCategory.DEBT,
    "bonds": AssetCategory.DEBT,
    "fixed income": AssetCategory.DEBT,
    "hybrid": AssetCategory.HYBRID,
    "balanced": AssetCategory.HYBRID,
    "other": AssetCategory.OTHER,
}


class InsightKind(Enum):
    """What sort of finding an insight represents."""
    RECOMMENDATION = "recommendation"
    WARNING = "warning"
    OPPORTUNITY = "opportunity"
    RISK = "risk"
    PERFORMANCE = "performance"


class InsightPriority(Enum):
    """Insight urgency, ordered low < medium < high < critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    InsightPriority.LOW: 0,
    InsightPriority.MEDIUM: 1,
    InsightPriority.HIGH: 2,
    InsightPriority.CRITICAL: 3,
}


class TransactionSide(Enum):
    """Trade direction indicator."""
    BUY = "BUY"
    SELL = "SELL"


class TradeError(Enum):
    """Expected trade failures, reported as values rather than raised."""
    INSUFFICIENT_SHARES = "INSUFFICIENT_SHARES"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_PRICE = "INVALID_PRICE"


class AlertCondition(Enum):
    """Price comparison used by a price alert."""
    ABOVE = "above"
    BELOW = "below"
    EQUALS = "equals"

    @property
    def operator(self) -> str:
        return {"above": ">", "below": "<", "equals": "="}[self.value]


class AlertStatus(Enum):
    """Lifecycle state of a price alert."""
    ACTIVE = "active"
    TRIGGERED = "triggered"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ExportFormat(Enum):
    """File format for a portfolio export."""
    CSV = "csv"
    JSON = "json"


class DateRange(Enum):
    """Window of transaction history included in an export."""
    ALL = "all"
    LAST_WEEK = "last_week"
    LAST_MONTH = "last_month"
    LAST_YEAR = "last_year"

    @property
    def display_name(self) -> str:
        return {
            "all": "All Time",
            "last_week": "Last Week",
            "last_month": "Last Month",
            "last_year": "Last Year",
        }[self.value]


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    CONFIG_LOADED = "CONFIG_LOADED"
    TRADE_EXECUTED = "TRADE_EXECUTED"
    TRADE_REJECTED = "TRADE_REJECTED"
    METRICS_CALCULATED = "METRICS_CALCULATED"
    INSIGHTS_GENERATED = "INSIGHTS_GENERATED"
    ALERT_TRIGGERED = "ALERT_TRIGGERED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    STATE_CORRUPTED = "STATE_CORRUPTED"


# Score bands share the same cut points: [0,3), [3,6), [6,8), [8,10]
SCORE_BAND_EDGES = (3.0, 6.0, 8.0)
RISK_LEVELS = ("Low", "Medium", "High", "Very High")
DIVERSIFICATION_LEVELS = ("Poor", "Fair", "Good", "Excellent")


def score_band(score: float, labels: tuple[str, ...]) -> str:
    """Map a 0-10 score onto one of four band labels."""
    for edge, label in zip(SCORE_BAND_EDGES, labels):
        if score < edge:
            return label
    return labels[-1]


@dataclass(frozen=True)
class Position:
    """
    A held quantity of one symbol with its weighted-average cost.

    Attributes:
        symbol: Ticker symbol (unique within a ledger)
        quantity: Whole number of shares held (> 0)
        average_cost: Weighted average acquisition price per share
        opened_at: When the symbol was first acquired
    """
    symbol: str
    quantity: int
    average_cost: Decimal
    opened_at: datetime = field(default_factory=datetime.now)

    @property
    def cost_basis(self) -> Decimal:
        """Total cost basis (quantity * average_cost)."""
        return self.average_cost * self.quantity


@dataclass(frozen=True)
class Quote:
    """
    Read-only market snapshot for a symbol.

    Attributes:
        symbol: Ticker symbol
        display_name: Company or fund name
        price: Current price per share
        daily_change: Signed absolute price change since previous close
        category: Asset category, if known
    """
    symbol: str
    display_name: str
    price: Decimal
    daily_change: Decimal = Decimal("0")
    category: Optional[AssetCategory] = None

    @property
    def daily_change_pct(self) -> Decimal:
        """Daily change as a percentage of the previous price."""
        previous = self.price - self.daily_change
        if self.price <= Decimal("0") or previous == Decimal("0"):
            return Decimal("0")
        return self.daily_change / previous * Decimal("100")


@dataclass
class ValuedPosition:
    """
    Mark-to-market valuation of a single position.

    Recomputed every analytics cycle and never persisted. When no quote is
    available, current_price falls back to the average cost.
    """
    symbol: str
    quantity: int
    average_cost: Decimal
    current_price: Decimal
    cost_basis: Decimal
    market_value: Decimal
    gain_loss: Decimal
    gain_loss_pct: Decimal
    category: Optional[AssetCategory] = None
    daily_change_pct: Optional[Decimal] = None
    has_quote: bool = True
    display_name: str = ""

    @classmethod
    def from_position(
        cls,
        position: Position,
        quote: Optional[Quote],
    ) -> "ValuedPosition":
        """Join a position with its quote (or the cost fallback)."""
        current_price = quote.price if quote is not None else position.average_cost
        cost_basis = position.cost_basis
        market_value = current_price * position.quantity
        gain_loss = market_value - cost_basis

        # Avoid division by zero
        if cost_basis > Decimal("0"):
            gain_loss_pct = gain_loss / cost_basis * Decimal("100")
        else:
            gain_loss_pct = Decimal("0")

        return cls(
            symbol=position.symbol,
            quantity=position.quantity,
            average_cost=position.average_cost,
            current_price=current_price,
            cost_basis=cost_basis,
            market_value=market_value,
            gain_loss=gain_loss,
            gain_loss_pct=gain_loss_pct,
            category=quote.category if quote is not None else None,
            daily_change_pct=quote.daily_change_pct if quote is not None else None,
            has_quote=quote is not None,
            display_name=quote.display_name if quote is not None else position.symbol,
        )


@dataclass
class PortfolioMetrics:
    """
    Aggregate portfolio snapshot.

    Attributes:
        total_invested: Sum of position cost bases
        current_value: Sum of position market values
        total_gain_loss: current_value - total_invested
        total_gain_loss_pct: Gain/loss as percentage of total_invested
        risk_score: Risk score (0-10)
        diversification_score: Diversification score (0-10)
        position_count: Number of positions valued
    """
    total_invested: Decimal
    current_value: Decimal
    total_gain_loss: Decimal
    total_gain_loss_pct: Decimal
    risk_score: float
    diversification_score: float
    position_count: int = 0

    @property
    def is_positive(self) -> bool:
        return self.total_gain_loss >= Decimal("0")

    @property
    def risk_level(self) -> str:
        return score_band(self.risk_score, RISK_LEVELS)

    @property
    def diversification_level(self) -> str:
        return score_band(self.diversification_score, DIVERSIFICATION_LEVELS)


@dataclass
class CategoryBucket:
    """Value held in one asset category."""
    category: AssetCategory
    value: Decimal
    percentage_of_total: Decimal
    position_count: int


@dataclass(frozen=True)
class Insight:
    """
    Generated, prioritized finding about the portfolio.

    Insights are immutable; marking one read produces a replaced copy.

    Attributes:
        insight_id: Unique identifier
        kind: Finding type
        priority: Urgency
        title: Short headline
        description: Human-readable explanation
        recommendation_text: Suggested action, if any
        related_symbols: Symbols the finding refers to (ordered)
        created_at: When the insight was generated
        is_read: Whether the user has seen it
    """
    insight_id: str
    kind: InsightKind
    priority: InsightPriority
    title: str
    description: str
    recommendation_text: Optional[str] = None
    related_symbols: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=datetime.now)
    is_read: bool = False

    @classmethod
    def create(
        cls,
        kind: InsightKind,
        priority: InsightPriority,
        title: str,
        description: str,
        recommendation_text: Optional[str] = None,
        related_symbols: Optional[list[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> "Insight":
        """Factory method to create an insight with auto-generated ID."""
        return cls(
            insight_id=str(uuid.uuid4()),
            kind=kind,
            priority=priority,
            title=title,
            description=description,
            recommendation_text=recommendation_text,
            related_symbols=tuple(related_symbols or ()),
            created_at=created_at or datetime.now(),
        )

    @property
    def is_high_priority(self) -> bool:
        return self.priority in (InsightPriority.HIGH, InsightPriority.CRITICAL)

    @property
    def has_recommendation(self) -> bool:
        return bool(self.recommendation_text)

    @property
    def dedup_key(self) -> tuple:
        return (self.kind, self.title, self.related_symbols)


@dataclass(frozen=True)
class Transaction:
    """A recorded buy or sell."""
    transaction_id: str
    symbol: str
    quantity: int
    price: Decimal
    side: TransactionSide
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        symbol: str,
        quantity: int,
        price: Decimal,
        side: TransactionSide,
    ) -> "Transaction":
        """Factory method with auto-generated ID and timestamp."""
        return cls(
            transaction_id=str(uuid.uuid4()),
            symbol=symbol,
            quantity=quantity,
            price=price,
            side=side,
        )

    @property
    def total_value(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class PriceAlert:
    """
    User-defined price alert.

    Attributes:
        alert_id: Unique identifier
        symbol: Ticker symbol being watched
        display_name: Name shown to the user
        target_price: Price threshold
        condition: Comparison against the target
        status: Lifecycle state
        created_at: Creation time
        triggered_at: When the alert fired, if it has
        is_enabled: User toggle
        notification_enabled: Whether a notification should be sent on trigger
    """
    alert_id: str
    symbol: str
    display_name: str
    target_price: Decimal
    condition: AlertCondition
    status: AlertStatus = AlertStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.now)
    triggered_at: Optional[datetime] = None
    is_enabled: bool = True
    notification_enabled: bool = True

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE and self.is_enabled

    @property
    def description(self) -> str:
        return f"{self.symbol} {self.condition.operator} ${self.target_price:,.2f}"

    def check_trigger(self, current_price: Decimal) -> bool:
        """Whether the alert should fire at the given price."""
        if not self.is_active:
            return False

        if self.condition == AlertCondition.ABOVE:
            return current_price >= self.target_price
        if self.condition == AlertCondition.BELOW:
            return current_price <= self.target_price
        return abs(current_price - self.target_price) < Decimal("0.01")


@dataclass
class PerformancePoint:
    """One day of (simulated) portfolio performance history."""
    date: date
    value: Decimal
    invested: Decimal
    gain_loss: Decimal
    gain_loss_pct: Decimal


@dataclass(frozen=True)
class WatchlistEntry:
    """
    A watched symbol with its latest quote, if one was available.

    Attributes:
        symbol: Ticker symbol
        display_name: Quote name, or the symbol without a quote
        price: Current price (None without a quote)
        daily_change: Signed absolute change (None without a quote)
        daily_change_pct: Daily change percentage (None without a quote)
    """
    symbol: str
    display_name: str
    price: Optional[Decimal] = None
    daily_change: Optional[Decimal] = None
    daily_change_pct: Optional[Decimal] = None

    @classmethod
    def from_quote(cls, symbol: str, quote: Optional[Quote]) -> "WatchlistEntry":
        if quote is None:
            return cls(symbol=symbol, display_name=symbol)
        return cls(
            symbol=symbol,
            display_name=quote.display_name,
            price=quote.price,
            daily_change=quote.daily_change,
            daily_change_pct=quote.daily_change_pct,
        )

    @property
    def has_quote(self) -> bool:
        return self.price is not None


@dataclass
class ExportData:
    """Everything written by one portfolio export."""
    positions: list[Position]
    valuations: list[ValuedPosition]
    insights: list[Insight]
    transactions: Optional[list[Transaction]]
    watchlist: Optional[list[WatchlistEntry]]
    date_range: DateRange = DateRange.ALL
    exported_at: datetime = field(default_factory=datetime.now)


@dataclass
class TradeResult:
    """
    Outcome of a ledger mutation.

    Attributes:
        ok: Whether the mutation was applied
        symbol: Normalized symbol
        error: Failure reason when not ok
        message: Human-readable explanation
        position: Resulting position (None when removed or rejected)
        persisted: Whether the post-mutation save succeeded
    """
    ok: bool
    symbol: str
    error: Optional[TradeError] = None
    message: str = ""
    position: Optional[Position] = None
    persisted: bool = True

    @classmethod
    def success(
        cls,
        symbol: str,
        position: Optional[Position],
        persisted: bool = True,
    ) -> "TradeResult":
        return cls(ok=True, symbol=symbol, position=position, persisted=persisted)

    @classmethod
    def failure(cls, symbol: str, error: TradeError, message: str) -> "TradeResult":
        return cls(ok=False, symbol=symbol, error=error, message=message)


@dataclass
class AppConfig:
    """
    Application configuration loaded from YAML, .env and environment.

    Attributes:
        data_dir: Directory backing the JSON persistence store
        log_dir: Directory for the operational log and decision log
        quote_source: "static" or "yfinance"
        quote_file: JSON quote file for the static provider
        quote_timeout_seconds: How long to wait for quotes before proceeding
        insight_cooldown_minutes: Dedup window for repeated insights (0 = off)
        log_level: Operational logging level
        portfolio_id: Identifier recorded in the decision log
    """
    data_dir: str = "data"
    log_dir: str = "logs"
    quote_source: str = "static"
    quote_file: Optional[str] = None
    quote_timeout_seconds: float = 5.0
    insight_cooldown_minutes: int = 0
    log_level: str = "INFO"
    portfolio_id: str = "default"


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        portfolio_id: Portfolio involved (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    portfolio_id: Optional[str]
    details: dict

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        portfolio_id: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            portfolio_id=portfolio_id,
            details=details,
        )
