"""
Append-only decision logging for the portfolio analytics engine.

Trades, rejected trades, insight scans, triggered alerts and persistence
problems are logged with timestamps to support auditability.
"""

import json
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from stockfolio.models import (
    ActionType,
    AppConfig,
    DecisionLogEntry,
    Insight,
    PortfolioMetrics,
    PriceAlert,
    TradeResult,
    TransactionSide,
)


class DecisionLogger:
    """
    Append-only decision logger.

    Writes all decisions to a JSONL file for audit purposes.
    Each line is a complete JSON object representing one action.
    """

    def __init__(self, log_path: str | Path, portfolio_id: Optional[str] = None):
        """
        Initialize the decision logger.

        Args:
            log_path: Path to the log file (will be created if not exists)
            portfolio_id: Portfolio identifier stamped on every entry
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.portfolio_id = portfolio_id

    def log(self, entry: DecisionLogEntry) -> None:
        """
        Write a decision log entry.

        Args:
            entry: DecisionLogEntry to write
        """
        record = {
            "timestamp": entry.timestamp.isoformat(),
            "action_type": entry.action_type.value,
            "portfolio_id": entry.portfolio_id,
            "details": entry.details,
        }

        with open(self.log_path, "a") as f:
            f.write(json.dumps(record, cls=DecimalEncoder) + "\n")

    def _log_action(self, action_type: ActionType, details: dict) -> None:
        self.log(
            DecisionLogEntry.create(
                action_type=action_type,
                portfolio_id=self.portfolio_id,
                details=details,
            )
        )

    def log_config_loaded(self, config: AppConfig, config_path: Optional[str]) -> None:
        """
        Log configuration loading.

        Args:
            config: Loaded configuration
            config_path: Path to configuration file (None for defaults)
        """
        self._log_action(
            ActionType.CONFIG_LOADED,
            {
                "config_path": config_path,
                "data_dir": config.data_dir,
                "quote_source": config.quote_source,
                "quote_timeout_seconds": config.quote_timeout_seconds,
                "insight_cooldown_minutes": config.insight_cooldown_minutes,
            },
        )

    def log_trade(
        self,
        side: TransactionSide,
        quantity: int,
        price: Optional[Decimal],
        result: TradeResult,
    ) -> None:
        """
        Log an executed or rejected trade.

        Args:
            side: BUY or SELL
            quantity: Requested quantity
            price: Execution price (None if unknown)
            result: Ledger outcome
        """
        details = {
            "symbol": result.symbol,
            "side": side.value,
            "quantity": quantity,
            "price": price,
            "persisted": result.persisted,
        }

        if result.ok:
            position = result.position
            details["resulting_quantity"] = position.quantity if position else 0
            details["average_cost"] = position.average_cost if position else None
            self._log_action(ActionType.TRADE_EXECUTED, details)
        else:
            details["error"] = result.error.value if result.error else None
            details["message"] = result.message
            self._log_action(ActionType.TRADE_REJECTED, details)

    def log_metrics_calculated(self, metrics: PortfolioMetrics) -> None:
        """
        Log a portfolio metrics calculation.

        Args:
            metrics: Computed metrics
        """
        self._log_action(
            ActionType.METRICS_CALCULATED,
            {
                "total_invested": metrics.total_invested,
                "current_value": metrics.current_value,
                "total_gain_loss": metrics.total_gain_loss,
                "total_gain_loss_pct": metrics.total_gain_loss_pct,
                "risk_score": metrics.risk_score,
                "diversification_score": metrics.diversification_score,
                "position_count": metrics.position_count,
            },
        )

    def log_insights_generated(
        self,
        generated: list[Insight],
        added: list[Insight],
    ) -> None:
        """
        Log an insight scan.

        Args:
            generated: Insights produced by the scan
            added: Insights kept after deduplication
        """
        self._log_action(
            ActionType.INSIGHTS_GENERATED,
            {
                "generated_count": len(generated),
                "added_count": len(added),
                "suppressed_count": len(generated) - len(added),
                "titles": [i.title for i in added],
                "insight_ids": [i.insight_id for i in added],
            },
        )

    def log_alert_triggered(self, alert: PriceAlert, current_price: Decimal) -> None:
        """
        Log a triggered price alert.

        Args:
            alert: The alert after triggering
            current_price: Price that fired it
        """
        self._log_action(
            ActionType.ALERT_TRIGGERED,
            {
                "alert_id": alert.alert_id,
                "symbol": alert.symbol,
                "condition": alert.condition.value,
                "target_price": alert.target_price,
                "current_price": current_price,
                "notification_enabled": alert.notification_enabled,
            },
        )

    def log_persistence_failed(self, key: str, error: Exception) -> None:
        """
        Log a failed persistence write.

        Args:
            key: Store key being written
            error: The failure
        """
        self._log_action(
            ActionType.PERSISTENCE_FAILED,
            {"key": key, "error": str(error)},
        )

    def log_state_corrupted(self, key: str, error: Exception) -> None:
        """
        Log unreadable persisted state.

        Args:
            key: Store key being read
            error: The decoding failure
        """
        self._log_action(
            ActionType.STATE_CORRUPTED,
            {"key": key, "error": str(error)},
        )

    def read_log(self) -> list[DecisionLogEntry]:
        """
        Read all entries from the log file.

        Returns:
            List of DecisionLogEntry objects
        """
        if not self.log_path.exists():
            return []

        entries = []
        with open(self.log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                entries.append(
                    DecisionLogEntry(
                        timestamp=datetime.fromisoformat(record["timestamp"]),
                        action_type=ActionType(record["action_type"]),
                        portfolio_id=record.get("portfolio_id"),
                        details=record.get("details", {}),
                    )
                )

        return entries

    def filter_by_action_type(
        self,
        action_type: ActionType,
    ) -> list[DecisionLogEntry]:
        """
        Get log entries of a specific action type.

        Args:
            action_type: Action type to filter by

        Returns:
            Filtered list of entries
        """
        return [e for e in self.read_log() if e.action_type == action_type]


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal, date and Enum types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)
