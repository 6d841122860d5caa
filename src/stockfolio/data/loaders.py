"""
Data loading and saving functions for CSV files.

Handles import of quote snapshots and holdings, as well as export of
valuations, insights, transactions, holdings and the watchlist.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import pandas as pd

from stockfolio.models import (
    AssetCategory,
    Insight,
    Position,
    Quote,
    Transaction,
    ValuedPosition,
    WatchlistEntry,
)
from stockfolio.data.schemas import (
    FileSchema,
    HOLDINGS_SCHEMA,
    QUOTES_SCHEMA,
)


class DataLoadError(Exception):
    """Raised when data cannot be loaded or is invalid."""
    pass


def load_quotes(file_path: str | Path) -> dict[str, Quote]:
    """
    Load a quote snapshot from CSV file.

    Args:
        file_path: Path to CSV file with columns: symbol, price and optionally
                   name, daily_change, category

    Returns:
        Dictionary mapping symbol -> Quote

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    file_path = Path(file_path)
    df = _load_csv(file_path, QUOTES_SCHEMA)
    df["symbol"] = df["symbol"].astype(str).str.upper().str.strip()

    quotes = {}
    for _, row in df.iterrows():
        symbol = str(row["symbol"])
        try:
            price = Decimal(str(row["price"]))
        except InvalidOperation:
            raise DataLoadError(f"Invalid price for {symbol} in {file_path}: {row['price']!r}")
        if not price.is_finite() or price <= Decimal("0"):
            raise DataLoadError(f"Price must be positive for {symbol} in {file_path}")

        name = row.get("name")
        daily_change = row.get("daily_change")
        category = row.get("category")

        quotes[symbol] = Quote(
            symbol=symbol,
            display_name=symbol if pd.isna(name) else str(name),
            price=price,
            daily_change=Decimal("0") if pd.isna(daily_change) else Decimal(str(daily_change)),
            category=None if pd.isna(category) else AssetCategory.parse(category),
        )

    return quotes


def load_holdings(file_path: str | Path) -> list[Position]:
    """
    Load holdings (positions) from CSV file.

    Rows for the same symbol are combined with weighted-average cost.

    Args:
        file_path: Path to CSV file with columns: symbol, quantity, average_cost

    Returns:
        List of Position objects

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    file_path = Path(file_path)
    df = _load_csv(file_path, HOLDINGS_SCHEMA)
    df["symbol"] = df["symbol"].astype(str).str.upper().str.strip()

    positions: dict[str, Position] = {}
    for _, row in df.iterrows():
        symbol = str(row["symbol"])
        opened_raw = row.get("opened_at")
        try:
            quantity = _parse_quantity(row["quantity"])
            average_cost = Decimal(str(row["average_cost"]))
            opened_at = (
                datetime.now() if pd.isna(opened_raw)
                else pd.to_datetime(opened_raw).to_pydatetime()
            )
        except (TypeError, ValueError, InvalidOperation) as e:
            raise DataLoadError(f"Invalid holding row for {symbol}: {e}")

        if quantity <= 0 or not average_cost.is_finite() or average_cost < Decimal("0"):
            raise DataLoadError(
                f"Invalid holding for {symbol}: quantity={quantity}, "
                f"average_cost={average_cost}"
            )

        existing = positions.get(symbol)
        if existing is None:
            positions[symbol] = Position(
                symbol=symbol,
                quantity=quantity,
                average_cost=average_cost,
                opened_at=opened_at,
            )
        else:
            new_quantity = existing.quantity + quantity
            positions[symbol] = Position(
                symbol=symbol,
                quantity=new_quantity,
                average_cost=(existing.cost_basis + average_cost * quantity) / new_quantity,
                opened_at=min(existing.opened_at, opened_at),
            )

    return list(positions.values())


def _parse_quantity(value) -> int:
    """Whole share count; fractional or blank values are rejected."""
    quantity = float(value)
    if not quantity.is_integer():
        raise ValueError(f"quantity must be a whole number, got {value!r}")
    return int(quantity)


def save_holdings(
    positions: list[Position],
    output_path: str | Path,
) -> Path:
    """
    Save holdings to CSV file.

    Args:
        positions: List of Position objects to save
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    records = []
    for position in positions:
        records.append({
            "symbol": position.symbol,
            "quantity": position.quantity,
            "average_cost": float(position.average_cost),
            "opened_at": position.opened_at.isoformat(),
        })

    return _write_csv(records, ["symbol", "quantity", "average_cost", "opened_at"], output_path)


def save_valuations(
    valuations: list[ValuedPosition],
    output_path: str | Path,
) -> Path:
    """
    Save position valuations to CSV file.

    Args:
        valuations: List of ValuedPosition objects
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    records = []
    for val in valuations:
        records.append({
            "symbol": val.symbol,
            "quantity": val.quantity,
            "average_cost": float(val.average_cost),
            "current_price": float(val.current_price),
            "cost_basis": float(val.cost_basis),
            "market_value": float(val.market_value),
            "gain_loss": float(val.gain_loss),
            "gain_loss_pct": float(val.gain_loss_pct),
            "category": val.category.value if val.category else "",
            "has_quote": val.has_quote,
        })

    columns = [
        "symbol", "quantity", "average_cost", "current_price", "cost_basis",
        "market_value", "gain_loss", "gain_loss_pct", "category", "has_quote",
    ]
    return _write_csv(records, columns, output_path)


def save_insights(
    insights: list[Insight],
    output_path: str | Path,
) -> Path:
    """
    Save insights to CSV file.

    Args:
        insights: List of Insight objects (already sorted)
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    records = []
    for insight in insights:
        records.append({
            "insight_id": insight.insight_id,
            "kind": insight.kind.value,
            "priority": insight.priority.value,
            "title": insight.title,
            "description": insight.description,
            "recommendation_text": insight.recommendation_text or "",
            "related_symbols": " ".join(insight.related_symbols),
            "created_at": insight.created_at.isoformat(),
            "is_read": insight.is_read,
        })

    columns = [
        "insight_id", "kind", "priority", "title", "description",
        "recommendation_text", "related_symbols", "created_at", "is_read",
    ]
    return _write_csv(records, columns, output_path)


def save_transactions(
    transactions: list[Transaction],
    output_path: str | Path,
) -> Path:
    """
    Save transaction history to CSV file.

    Args:
        transactions: List of Transaction objects
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    records = []
    for txn in transactions:
        records.append({
            "transaction_id": txn.transaction_id,
            "timestamp": txn.timestamp.isoformat(),
            "side": txn.side.value,
            "symbol": txn.symbol,
            "quantity": txn.quantity,
            "price": float(txn.price),
            "total_value": float(txn.total_value),
        })

    columns = ["transaction_id", "timestamp", "side", "symbol", "quantity", "price", "total_value"]
    return _write_csv(records, columns, output_path)


def save_watchlist(
    entries: list[WatchlistEntry],
    output_path: str | Path,
) -> Path:
    """
    Save watched symbols and their quotes to CSV file.

    Args:
        entries: Watchlist entries; unquoted symbols get empty price cells
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    records = []
    for entry in entries:
        records.append({
            "symbol": entry.symbol,
            "name": entry.display_name,
            "price": _optional_float(entry.price),
            "daily_change": _optional_float(entry.daily_change),
            "daily_change_pct": _optional_float(entry.daily_change_pct),
        })

    columns = ["symbol", "name", "price", "daily_change", "daily_change_pct"]
    return _write_csv(records, columns, output_path)


def _optional_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _write_csv(records: list[dict], columns: list[str], output_path: str | Path) -> Path:
    """Write records to CSV, keeping the header even when empty."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame(records, columns=columns)
    df.to_csv(output_path, index=False)

    return output_path


def _load_csv(file_path: Path, schema: FileSchema) -> pd.DataFrame:
    """
    Load a CSV file and validate against schema.

    Args:
        file_path: Path to CSV file
        schema: Expected file schema

    Returns:
        Loaded DataFrame

    Raises:
        DataLoadError: If file cannot be loaded or has missing columns
    """
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        df = pd.read_csv(file_path)
    except Exception as e:
        raise DataLoadError(f"Failed to load CSV file {file_path}: {e}")

    # Validate columns
    is_valid, missing = schema.validate_columns(df.columns.tolist())
    if not is_valid:
        raise DataLoadError(
            f"File {file_path} is missing required columns: {missing}"
        )

    return df
