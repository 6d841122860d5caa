"""
Blob encoding for persisted entity lists.

Positions, insights, transactions, price alerts and watched symbols are
stored as UTF-8 JSON arrays. Decimals are written as strings and timestamps
as ISO-8601 so that every field round-trips exactly. A portfolio export is
one JSON document built from the same record encoders.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, TypeVar

from stockfolio.models import (
    AlertCondition,
    AlertStatus,
    ExportData,
    Insight,
    InsightKind,
    InsightPriority,
    Position,
    PriceAlert,
    Transaction,
    TransactionSide,
    ValuedPosition,
    WatchlistEntry,
)


T = TypeVar("T")


class SerializationError(Exception):
    """Raised when a persisted blob cannot be decoded."""
    pass


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def position_to_dict(position: Position) -> dict[str, Any]:
    return {
        "symbol": position.symbol,
        "quantity": position.quantity,
        "average_cost": str(position.average_cost),
        "opened_at": position.opened_at.isoformat(),
    }


def position_from_dict(data: dict[str, Any]) -> Position:
    quantity = int(data["quantity"])
    average_cost = Decimal(data["average_cost"])
    if quantity <= 0 or average_cost < Decimal("0"):
        raise SerializationError(
            f"Invalid position for {data.get('symbol')}: "
            f"quantity={quantity}, average_cost={average_cost}"
        )
    return Position(
        symbol=str(data["symbol"]),
        quantity=quantity,
        average_cost=average_cost,
        opened_at=datetime.fromisoformat(data["opened_at"]),
    )


def insight_to_dict(insight: Insight) -> dict[str, Any]:
    return {
        "insight_id": insight.insight_id,
        "kind": insight.kind.value,
        "priority": insight.priority.value,
        "title": insight.title,
        "description": insight.description,
        "recommendation_text": insight.recommendation_text,
        "related_symbols": list(insight.related_symbols),
        "created_at": insight.created_at.isoformat(),
        "is_read": insight.is_read,
    }


def insight_from_dict(data: dict[str, Any]) -> Insight:
    return Insight(
        insight_id=str(data["insight_id"]),
        kind=InsightKind(data["kind"]),
        priority=InsightPriority(data["priority"]),
        title=str(data["title"]),
        description=str(data["description"]),
        recommendation_text=data.get("recommendation_text"),
        related_symbols=tuple(data.get("related_symbols", [])),
        created_at=datetime.fromisoformat(data["created_at"]),
        is_read=bool(data.get("is_read", False)),
    )


def transaction_to_dict(transaction: Transaction) -> dict[str, Any]:
    return {
        "transaction_id": transaction.transaction_id,
        "symbol": transaction.symbol,
        "quantity": transaction.quantity,
        "price": str(transaction.price),
        "side": transaction.side.value,
        "timestamp": transaction.timestamp.isoformat(),
    }


def transaction_from_dict(data: dict[str, Any]) -> Transaction:
    return Transaction(
        transaction_id=str(data["transaction_id"]),
        symbol=str(data["symbol"]),
        quantity=int(data["quantity"]),
        price=Decimal(data["price"]),
        side=TransactionSide(data["side"]),
        timestamp=datetime.fromisoformat(data["timestamp"]),
    )


def alert_to_dict(alert: PriceAlert) -> dict[str, Any]:
    return {
        "alert_id": alert.alert_id,
        "symbol": alert.symbol,
        "display_name": alert.display_name,
        "target_price": str(alert.target_price),
        "condition": alert.condition.value,
        "status": alert.status.value,
        "created_at": alert.created_at.isoformat(),
        "triggered_at": alert.triggered_at.isoformat() if alert.triggered_at else None,
        "is_enabled": alert.is_enabled,
        "notification_enabled": alert.notification_enabled,
    }


def alert_from_dict(data: dict[str, Any]) -> PriceAlert:
    return PriceAlert(
        alert_id=str(data["alert_id"]),
        symbol=str(data["symbol"]),
        display_name=str(data.get("display_name", data["symbol"])),
        target_price=Decimal(data["target_price"]),
        condition=AlertCondition(data["condition"]),
        status=AlertStatus(data.get("status", AlertStatus.ACTIVE.value)),
        created_at=datetime.fromisoformat(data["created_at"]),
        triggered_at=_optional_datetime(data.get("triggered_at")),
        is_enabled=bool(data.get("is_enabled", True)),
        notification_enabled=bool(data.get("notification_enabled", True)),
    )


def encode_list(items: list[T], to_dict: Callable[[T], dict[str, Any]]) -> bytes:
    """Encode entities as a UTF-8 JSON array."""
    return json.dumps([to_dict(item) for item in items], indent=2).encode("utf-8")


def decode_list(data: bytes, from_dict: Callable[[dict[str, Any]], T]) -> list[T]:
    """
    Decode a UTF-8 JSON array of entities.

    Raises:
        SerializationError: If the blob is not a JSON array of valid records
    """
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationError(f"Unreadable blob: {e}")

    if not isinstance(raw, list):
        raise SerializationError("Expected a JSON array")

    try:
        return [from_dict(record) for record in raw]
    except SerializationError:
        raise
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise SerializationError(f"Invalid record: {e!r}")


def encode_positions(positions: list[Position]) -> bytes:
    return encode_list(positions, position_to_dict)


def decode_positions(data: bytes) -> list[Position]:
    return decode_list(data, position_from_dict)


def encode_insights(insights: list[Insight]) -> bytes:
    return encode_list(insights, insight_to_dict)


def decode_insights(data: bytes) -> list[Insight]:
    return decode_list(data, insight_from_dict)


def encode_transactions(transactions: list[Transaction]) -> bytes:
    return encode_list(transactions, transaction_to_dict)


def decode_transactions(data: bytes) -> list[Transaction]:
    return decode_list(data, transaction_from_dict)


def encode_alerts(alerts: list[PriceAlert]) -> bytes:
    return encode_list(alerts, alert_to_dict)


def decode_alerts(data: bytes) -> list[PriceAlert]:
    return decode_list(data, alert_from_dict)


def encode_watchlist(symbols: list[str]) -> bytes:
    return json.dumps(list(symbols), indent=2).encode("utf-8")


def decode_watchlist(data: bytes) -> list[str]:
    """
    Decode a JSON array of watched symbols.

    Raises:
        SerializationError: If the blob is not a JSON array of strings
    """
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationError(f"Unreadable blob: {e}")

    if not isinstance(raw, list) or not all(isinstance(s, str) and s.strip() for s in raw):
        raise SerializationError("Expected a JSON array of symbols")
    return [s.strip().upper() for s in raw]


def _optional_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def valuation_to_dict(valuation: ValuedPosition) -> dict[str, Any]:
    return {
        "symbol": valuation.symbol,
        "display_name": valuation.display_name,
        "quantity": valuation.quantity,
        "average_cost": str(valuation.average_cost),
        "current_price": str(valuation.current_price),
        "cost_basis": str(valuation.cost_basis),
        "market_value": str(valuation.market_value),
        "gain_loss": str(valuation.gain_loss),
        "gain_loss_pct": str(valuation.gain_loss_pct),
        "category": valuation.category.value if valuation.category else None,
        "has_quote": valuation.has_quote,
    }


def watchlist_entry_to_dict(entry: WatchlistEntry) -> dict[str, Any]:
    return {
        "symbol": entry.symbol,
        "display_name": entry.display_name,
        "price": _optional_str(entry.price),
        "daily_change": _optional_str(entry.daily_change),
        "daily_change_pct": _optional_str(entry.daily_change_pct),
    }


def encode_export(export: ExportData) -> bytes:
    """
    Encode a full portfolio export as one JSON document.

    Sections left out of the export (None) are omitted from the document.
    """
    document: dict[str, Any] = {
        "exported_at": export.exported_at.isoformat(),
        "date_range": export.date_range.value,
        "holdings": [position_to_dict(p) for p in export.positions],
        "valuations": [valuation_to_dict(v) for v in export.valuations],
        "insights": [insight_to_dict(i) for i in export.insights],
    }
    if export.transactions is not None:
        document["transactions"] = [transaction_to_dict(t) for t in export.transactions]
    if export.watchlist is not None:
        document["watchlist"] = [watchlist_entry_to_dict(w) for w in export.watchlist]
    return json.dumps(document, indent=2).encode("utf-8")
