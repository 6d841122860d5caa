"""
Command-line interface for the portfolio analytics engine.

Provides commands for:
- buy / sell: Trade mock shares at a given price or the current quote
- holdings / metrics / distribution: View valuation, weights and scores
- insights / read / dismiss: Generate and manage insights
- alert-add / alerts: Manage price alerts
- history: Mock performance history
- watch / unwatch / watchlist: Manage watched symbols
- export / import-holdings: CSV or JSON export and holdings import
"""

import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click

from stockfolio import __version__
from stockfolio.config import ConfigurationError, load_app_config
from stockfolio.data import DataLoadError, load_holdings, write_export
from stockfolio.data.providers import QuoteProviderError
from stockfolio.logging import configure_logging
from stockfolio.models import AlertCondition, DateRange, ExportFormat, Insight
from stockfolio.portfolio import calculate_position_weights, get_valuation_for_symbol
from stockfolio.service import PortfolioService, create_service


def _get_service(ctx: click.Context) -> PortfolioService:
    """Build the service on first use."""
    state = ctx.obj
    if state.get("service") is None:
        config = state["config"]
        try:
            state["service"] = create_service(config, config_path=state["config_path"])
        except QuoteProviderError as e:
            click.echo(f"Error creating quote provider: {e}", err=True)
            sys.exit(1)
    return state["service"]


def _parse_price(value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        click.echo(f"Invalid price: {value}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="stockfolio")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to configuration YAML file",
)
@click.option(
    "--data-dir", "-d",
    type=click.Path(),
    default=None,
    help="Directory for persisted portfolio state (overrides config)",
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], data_dir: Optional[str]):
    """
    Stockfolio portfolio analytics.

    Track mock holdings, value them against current quotes, and generate
    risk, diversification and performance insights.
    """
    try:
        config = load_app_config(config_path)
    except ConfigurationError as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)

    if data_dir:
        config.data_dir = data_dir

    configure_logging(config.log_level, config.log_dir)
    ctx.obj = {"config": config, "config_path": config_path, "service": None}


@main.command()
@click.argument("symbol")
@click.argument("quantity", type=int)
@click.option(
    "--price", "-p",
    type=str,
    default=None,
    help="Price per share (defaults to the current quote)",
)
@click.pass_context
def buy(ctx: click.Context, symbol: str, quantity: int, price: Optional[str]):
    """Buy QUANTITY shares of SYMBOL."""
    service = _get_service(ctx)
    result = service.buy(symbol, quantity, _parse_price(price))

    if not result.ok:
        click.echo(f"Buy rejected ({result.error.value}): {result.message}", err=True)
        sys.exit(1)

    position = result.position
    click.echo(f"Bought {quantity} {result.symbol}")
    click.echo(f"  Position: {position.quantity} shares @ ${position.average_cost:,.2f} avg")
    if not result.persisted:
        click.echo("  Warning: holdings could not be saved", err=True)


@main.command()
@click.argument("symbol")
@click.argument("quantity", type=int)
@click.pass_context
def sell(ctx: click.Context, symbol: str, quantity: int):
    """Sell QUANTITY shares of SYMBOL."""
    service = _get_service(ctx)
    result = service.sell(symbol, quantity)

    if not result.ok:
        click.echo(f"Sell rejected ({result.error.value}): {result.message}", err=True)
        sys.exit(1)

    click.echo(f"Sold {quantity} {result.symbol}")
    if result.position is None:
        click.echo("  Position closed")
    else:
        click.echo(f"  Remaining: {result.position.quantity} shares")
    if not result.persisted:
        click.echo("  Warning: holdings could not be saved", err=True)


@main.command()
@click.argument("symbol", required=False)
@click.pass_context
def holdings(ctx: click.Context, symbol: Optional[str]):
    """Show holdings valued at current quotes, or one SYMBOL in detail."""
    service = _get_service(ctx)
    snapshot = service.recompute()

    if symbol:
        val = get_valuation_for_symbol(snapshot.valuations, symbol)
        if val is None:
            click.echo(f"Not held: {symbol.strip().upper()}", err=True)
            sys.exit(1)
        weight = calculate_position_weights(snapshot.valuations).get(val.symbol, Decimal("0"))
        click.echo(f"{val.symbol} - {val.display_name}")
        click.echo(f"  Quantity:     {val.quantity}")
        click.echo(f"  Average Cost: ${val.average_cost:,.2f}")
        click.echo(f"  Price:        ${val.current_price:,.2f}" + ("" if val.has_quote else " (no quote)"))
        click.echo(f"  Value:        ${val.market_value:,.2f}")
        click.echo(f"  Gain/Loss:    ${val.gain_loss:,.2f} ({val.gain_loss_pct:.2f}%)")
        click.echo(f"  Weight:       {weight * 100:.1f}%")
        return

    if not snapshot.valuations:
        click.echo("No holdings.")
        return

    weights = calculate_position_weights(snapshot.valuations, snapshot.metrics.current_value)

    click.echo(
        f"{'Symbol':<8} {'Qty':>6} {'Avg Cost':>12} {'Price':>12} {'Value':>14} "
        f"{'Gain/Loss':>14} {'%':>8} {'Weight':>7}"
    )
    click.echo("-" * 88)
    for val in snapshot.valuations:
        marker = "" if val.has_quote else " *"
        weight = weights.get(val.symbol, Decimal("0")) * 100
        click.echo(
            f"{val.symbol:<8} {val.quantity:>6} {val.average_cost:>12,.2f} "
            f"{val.current_price:>12,.2f} {val.market_value:>14,.2f} "
            f"{val.gain_loss:>14,.2f} {val.gain_loss_pct:>7.2f}% {weight:>6.1f}%{marker}"
        )

    if snapshot.missing_quotes:
        click.echo()
        click.echo("* No quote available; valued at average cost")


@main.command()
@click.pass_context
def metrics(ctx: click.Context):
    """Show portfolio totals, risk and diversification scores."""
    service = _get_service(ctx)
    snapshot = service.recompute()
    m = snapshot.metrics

    click.echo("Portfolio Metrics:")
    click.echo(f"  Total Invested:  ${m.total_invested:,.2f}")
    click.echo(f"  Current Value:   ${m.current_value:,.2f}")
    click.echo(f"  Gain/Loss:       ${m.total_gain_loss:,.2f} ({m.total_gain_loss_pct:.2f}%)")
    click.echo(f"  Positions:       {m.position_count}")
    click.echo(f"  Risk:            {m.risk_score:.1f}/10 ({m.risk_level})")
    click.echo(f"  Diversification: {m.diversification_score:.1f}/10 ({m.diversification_level})")
    click.echo(f"  Health:          {snapshot.health_score:.1f}/10")


@main.command()
@click.pass_context
def distribution(ctx: click.Context):
    """Show value by asset category."""
    service = _get_service(ctx)
    buckets = service.get_category_distribution()

    if not buckets:
        click.echo("No holdings.")
        return

    click.echo(f"{'Category':<10} {'Value':>14} {'Share':>8} {'Positions':>10}")
    click.echo("-" * 46)
    for bucket in buckets:
        click.echo(
            f"{bucket.category.display_name:<10} {bucket.value:>14,.2f} "
            f"{bucket.percentage_of_total:>7.1f}% {bucket.position_count:>10}"
        )


def _echo_insight(insight: Insight) -> None:
    status = " " if insight.is_read else "*"
    click.echo(f"{status} [{insight.priority.value.upper()}] {insight.title}  ({insight.insight_id})")
    click.echo(f"    {insight.description}")
    if insight.has_recommendation:
        click.echo(f"    -> {insight.recommendation_text}")
    if insight.related_symbols:
        click.echo(f"    Symbols: {', '.join(insight.related_symbols)}")


@main.command()
@click.option(
    "--generate", "-g",
    is_flag=True,
    default=False,
    help="Run a fresh insight scan first",
)
@click.option(
    "--unread", "-u",
    is_flag=True,
    default=False,
    help="Only show unread insights",
)
@click.pass_context
def insights(ctx: click.Context, generate: bool, unread: bool):
    """List insights in priority order."""
    service = _get_service(ctx)

    if generate:
        added = service.generate_insights()
        click.echo(f"Generated {len(added)} new insights.")
        click.echo()

    items = service.get_insights(include_read=not unread)
    if not items:
        click.echo("No insights.")
        return

    for insight in items:
        _echo_insight(insight)

    click.echo()
    click.echo(
        f"{service.unread_count()} unread, "
        f"{service.high_priority_count()} high priority"
    )


@main.command()
@click.argument("insight_id")
@click.pass_context
def read(ctx: click.Context, insight_id: str):
    """Mark an insight as read."""
    service = _get_service(ctx)
    if not service.mark_insight_read(insight_id):
        click.echo(f"No insight with id {insight_id}", err=True)
        sys.exit(1)
    click.echo("Marked as read.")


@main.command()
@click.argument("insight_id")
@click.pass_context
def dismiss(ctx: click.Context, insight_id: str):
    """Dismiss (remove) an insight."""
    service = _get_service(ctx)
    if not service.dismiss_insight(insight_id):
        click.echo(f"No insight with id {insight_id}", err=True)
        sys.exit(1)
    click.echo("Dismissed.")


@main.command("alert-add")
@click.argument("symbol")
@click.argument("target_price", type=str)
@click.option(
    "--condition",
    type=click.Choice([c.value for c in AlertCondition]),
    default=AlertCondition.ABOVE.value,
    help="Trigger when the price is above, below or equal to the target",
)
@click.option(
    "--notify/--no-notify",
    default=True,
    help="Send a notification when triggered",
)
@click.pass_context
def alert_add(ctx: click.Context, symbol: str, target_price: str, condition: str, notify: bool):
    """Create a price alert for SYMBOL at TARGET_PRICE."""
    service = _get_service(ctx)
    try:
        alert = service.create_alert(
            symbol,
            target_price,
            condition=AlertCondition(condition),
            notification_enabled=notify,
        )
    except ValueError as e:
        click.echo(f"Error creating alert: {e}", err=True)
        sys.exit(1)

    click.echo(f"Alert created: {alert.description} ({alert.alert_id})")


@main.command()
@click.option(
    "--check",
    is_flag=True,
    default=False,
    help="Evaluate active alerts against current quotes first",
)
@click.pass_context
def alerts(ctx: click.Context, check: bool):
    """List active and triggered price alerts."""
    service = _get_service(ctx)

    if check:
        triggered = service.check_alerts()
        for alert in triggered:
            click.echo(f"TRIGGERED: {alert.description}")
        if triggered:
            click.echo()

    active = service.get_alerts()
    click.echo(f"Active alerts ({len(active)}):")
    for alert in active:
        state = "on" if alert.is_enabled else "off"
        click.echo(f"  {alert.description:<28} [{state}]  ({alert.alert_id})")

    fired = service.get_triggered_alerts()
    click.echo(f"Triggered alerts ({len(fired)}):")
    for alert in fired:
        when = alert.triggered_at.strftime("%Y-%m-%d %H:%M") if alert.triggered_at else "-"
        click.echo(f"  {alert.description:<28} at {when}")


@main.command()
@click.option(
    "--days", "-n",
    type=int,
    default=30,
    help="Number of days of history (default: 30)",
)
@click.pass_context
def history(ctx: click.Context, days: int):
    """Show (simulated) daily performance history."""
    service = _get_service(ctx)
    points = service.performance_history(days)

    if not points:
        click.echo("No history.")
        return

    click.echo(f"{'Date':<12} {'Value':>14} {'Invested':>14} {'Gain/Loss':>14} {'%':>8}")
    click.echo("-" * 66)
    for point in points:
        click.echo(
            f"{point.date.isoformat():<12} {point.value:>14,.2f} {point.invested:>14,.2f} "
            f"{point.gain_loss:>14,.2f} {point.gain_loss_pct:>7.2f}%"
        )


@main.command()
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default="output",
    help="Output directory",
)
@click.option(
    "--format", "-f",
    "export_format",
    type=click.Choice([f.value for f in ExportFormat]),
    default=ExportFormat.CSV.value,
    help="CSV files per section, or one JSON document",
)
@click.option(
    "--range", "-r",
    "date_range",
    type=click.Choice([r.value for r in DateRange]),
    default=DateRange.ALL.value,
    help="Transaction history window",
)
@click.option(
    "--transactions/--no-transactions",
    default=True,
    help="Include transaction history",
)
@click.option(
    "--watchlist/--no-watchlist",
    "include_watchlist",
    default=True,
    help="Include watched symbols",
)
@click.pass_context
def export(
    ctx: click.Context,
    output_dir: str,
    export_format: str,
    date_range: str,
    transactions: bool,
    include_watchlist: bool,
):
    """Export holdings, valuations, insights, transactions and the watchlist."""
    service = _get_service(ctx)
    data = service.build_export(
        date_range=DateRange(date_range),
        include_transactions=transactions,
        include_watchlist=include_watchlist,
    )

    try:
        paths = write_export(data, output_dir, ExportFormat(export_format))
    except OSError as e:
        click.echo(f"Error writing export: {e}", err=True)
        sys.exit(1)

    click.echo(f"Exported ({DateRange(date_range).display_name}):")
    for path in paths:
        click.echo(f"  Saved: {path}")


@main.command()
@click.argument("symbol")
@click.pass_context
def watch(ctx: click.Context, symbol: str):
    """Add SYMBOL to the watchlist."""
    service = _get_service(ctx)
    try:
        added = service.add_to_watchlist(symbol)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    symbol = symbol.strip().upper()
    click.echo(f"Watching {symbol}." if added else f"{symbol} is already watched.")


@main.command()
@click.argument("symbol")
@click.pass_context
def unwatch(ctx: click.Context, symbol: str):
    """Remove SYMBOL from the watchlist."""
    service = _get_service(ctx)
    if not service.remove_from_watchlist(symbol):
        click.echo(f"Not watched: {symbol.strip().upper()}", err=True)
        sys.exit(1)
    click.echo(f"Removed {symbol.strip().upper()}.")


@main.command()
@click.pass_context
def watchlist(ctx: click.Context):
    """Show watched symbols with their current quotes."""
    service = _get_service(ctx)
    entries = service.get_watchlist_entries()

    if not entries:
        click.echo("Watchlist is empty.")
        return

    click.echo(f"{'Symbol':<8} {'Name':<28} {'Price':>12} {'Change':>10} {'%':>8}")
    click.echo("-" * 70)
    for entry in entries:
        if not entry.has_quote:
            click.echo(f"{entry.symbol:<8} {entry.display_name:<28} {'-':>12} {'-':>10} {'-':>8}")
            continue
        click.echo(
            f"{entry.symbol:<8} {entry.display_name[:28]:<28} {entry.price:>12,.2f} "
            f"{entry.daily_change:>+10,.2f} {entry.daily_change_pct:>+7.2f}%"
        )

    quoted = [e for e in entries if e.has_quote]
    if quoted:
        average = sum(e.daily_change_pct for e in quoted) / len(quoted)
        gainers = sum(1 for e in quoted if e.daily_change > 0)
        losers = sum(1 for e in quoted if e.daily_change < 0)
        click.echo()
        click.echo(f"Average change {average:+.2f}%, {gainers} up, {losers} down")



@main.command("import-holdings")
@click.argument("holdings_file", type=click.Path(exists=True))
@click.pass_context
def import_holdings(ctx: click.Context, holdings_file: str):
    """Replace all holdings with the contents of a CSV file."""
    service = _get_service(ctx)
    try:
        positions = load_holdings(holdings_file)
    except DataLoadError as e:
        click.echo(f"Error loading holdings: {e}", err=True)
        sys.exit(1)

    persisted = service.import_positions(positions)
    click.echo(f"Imported {len(positions)} positions from {holdings_file}")
    if not persisted:
        click.echo("  Warning: holdings could not be saved", err=True)


if __name__ == "__main__":
    main()
