"""
Price alert creation and evaluation.

Active alerts are checked against current quotes; an alert that fires is
moved out of the active list as a disabled, triggered copy.
"""

import dataclasses
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from stockfolio.models import AlertCondition, AlertStatus, PriceAlert, Quote


def create_alert(
    symbol: str,
    target_price,
    condition: AlertCondition = AlertCondition.ABOVE,
    display_name: Optional[str] = None,
    notification_enabled: bool = True,
) -> PriceAlert:
    """
    Create a new active price alert.

    Args:
        symbol: Ticker symbol to watch
        target_price: Price threshold (> 0)
        condition: Comparison against the target
        display_name: Name shown to the user (default: symbol)
        notification_enabled: Whether triggering should notify

    Returns:
        New PriceAlert

    Raises:
        ValueError: If the target price is not a positive number
    """
    symbol = symbol.strip().upper()
    try:
        target = Decimal(str(target_price))
    except InvalidOperation:
        raise ValueError(f"Invalid target price: {target_price!r}")

    if not target.is_finite() or target <= Decimal("0"):
        raise ValueError(f"Target price must be positive, got {target_price}")

    return PriceAlert(
        alert_id=str(uuid.uuid4()),
        symbol=symbol,
        display_name=display_name or symbol,
        target_price=target,
        condition=condition,
        notification_enabled=notification_enabled,
    )


def toggle_alert(alert: PriceAlert) -> PriceAlert:
    """Flip the user enable switch."""
    return dataclasses.replace(alert, is_enabled=not alert.is_enabled)


def check_alerts(
    alerts: list[PriceAlert],
    quotes: dict[str, Quote],
    now: Optional[datetime] = None,
) -> tuple[list[PriceAlert], list[PriceAlert]]:
    """
    Evaluate alerts against current quotes.

    Alerts that are inactive or have no quote are left untouched.

    Args:
        alerts: Alerts to evaluate
        quotes: Current quotes by symbol
        now: Trigger timestamp (default: current time)

    Returns:
        Tuple of (remaining alerts, newly triggered alerts)
    """
    now = now or datetime.now()
    remaining = []
    triggered = []

    for alert in alerts:
        quote = quotes.get(alert.symbol)
        if quote is not None and alert.check_trigger(quote.price):
            triggered.append(dataclasses.replace(
                alert,
                status=AlertStatus.TRIGGERED,
                triggered_at=now,
                is_enabled=False,
            ))
        else:
            remaining.append(alert)

    return remaining, triggered
