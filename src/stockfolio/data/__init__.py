"""
Data layer for the portfolio analytics engine.

Provides blob persistence for positions, insights, transactions and alerts,
plus CSV import of holdings and quotes and CSV or JSON export of holdings,
analytics results, transactions and the watchlist.
"""

from stockfolio.data.loaders import (
    DataLoadError,
    load_holdings,
    load_quotes,
    save_holdings,
    save_insights,
    save_transactions,
    save_valuations,
    save_watchlist,
)
from stockfolio.data.export import (
    filter_transactions_by_range,
    write_export,
)
from stockfolio.data.schemas import (
    HOLDINGS_SCHEMA,
    INSIGHTS_SCHEMA,
    QUOTES_SCHEMA,
    TRANSACTIONS_SCHEMA,
    VALUATION_SCHEMA,
    WATCHLIST_SCHEMA,
)
from stockfolio.data.store import (
    JsonFileStore,
    MemoryStore,
    PersistenceError,
    PersistenceStore,
)

__all__ = [
    "DataLoadError",
    "load_holdings",
    "load_quotes",
    "save_holdings",
    "save_insights",
    "save_transactions",
    "save_valuations",
    "save_watchlist",
    "filter_transactions_by_range",
    "write_export",
    "HOLDINGS_SCHEMA",
    "INSIGHTS_SCHEMA",
    "QUOTES_SCHEMA",
    "TRANSACTIONS_SCHEMA",
    "VALUATION_SCHEMA",
    "WATCHLIST_SCHEMA",
    "JsonFileStore",
    "MemoryStore",
    "PersistenceError",
    "PersistenceStore",
]
