"""
Data schemas for CSV file validation.

Defines expected columns and data types for imported and exported files.
"""

from dataclasses import dataclass


@dataclass
class ColumnSchema:
    """Schema definition for a single column."""
    name: str
    dtype: str  # pandas dtype string
    required: bool = True
    nullable: bool = False


@dataclass
class FileSchema:
    """Schema definition for a file."""
    name: str
    columns: list[ColumnSchema]
    description: str

    @property
    def required_columns(self) -> list[str]:
        """Get list of required column names."""
        return [c.name for c in self.columns if c.required]

    @property
    def all_columns(self) -> list[str]:
        """Get list of all column names."""
        return [c.name for c in self.columns]

    def validate_columns(self, df_columns: list[str]) -> tuple[bool, list[str]]:
        """
        Validate that a dataframe has the required columns.

        Args:
            df_columns: List of column names from the dataframe

        Returns:
            Tuple of (is_valid, list of missing columns)
        """
        missing = [col for col in self.required_columns if col not in df_columns]
        return len(missing) == 0, missing


# Quote Snapshot Schema (input)
QUOTES_SCHEMA = FileSchema(
    name="quotes",
    description="Current market quote per symbol",
    columns=[
        ColumnSchema(name="symbol", dtype="str", required=True),
        ColumnSchema(name="price", dtype="float64", required=True),
        ColumnSchema(name="name", dtype="str", required=False, nullable=True),
        ColumnSchema(name="daily_change", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="category", dtype="str", required=False, nullable=True),
    ],
)

# Holdings Schema (input/output)
HOLDINGS_SCHEMA = FileSchema(
    name="holdings",
    description="Positions with weighted-average cost",
    columns=[
        ColumnSchema(name="symbol", dtype="str", required=True),
        ColumnSchema(name="quantity", dtype="int64", required=True),
        ColumnSchema(name="average_cost", dtype="float64", required=True),
        ColumnSchema(name="opened_at", dtype="datetime64[ns]", required=False, nullable=True),
    ],
)

# Valuation Output Schema
VALUATION_SCHEMA = FileSchema(
    name="valuation",
    description="Mark-to-market valuation with gain/loss",
    columns=[
        ColumnSchema(name="symbol", dtype="str", required=True),
        ColumnSchema(name="quantity", dtype="int64", required=True),
        ColumnSchema(name="average_cost", dtype="float64", required=True),
        ColumnSchema(name="current_price", dtype="float64", required=True),
        ColumnSchema(name="cost_basis", dtype="float64", required=True),
        ColumnSchema(name="market_value", dtype="float64", required=True),
        ColumnSchema(name="gain_loss", dtype="float64", required=True),
        ColumnSchema(name="gain_loss_pct", dtype="float64", required=True),
        ColumnSchema(name="category", dtype="str", required=False, nullable=True),
        ColumnSchema(name="has_quote", dtype="bool", required=True),
    ],
)

# Insights Schema (output)
INSIGHTS_SCHEMA = FileSchema(
    name="insights",
    description="Generated insights in display order",
    columns=[
        ColumnSchema(name="insight_id", dtype="str", required=True),
        ColumnSchema(name="kind", dtype="str", required=True),
        ColumnSchema(name="priority", dtype="str", required=True),
        ColumnSchema(name="title", dtype="str", required=True),
        ColumnSchema(name="description", dtype="str", required=True),
        ColumnSchema(name="recommendation_text", dtype="str", required=False, nullable=True),
        ColumnSchema(name="related_symbols", dtype="str", required=True),
        ColumnSchema(name="created_at", dtype="datetime64[ns]", required=True),
        ColumnSchema(name="is_read", dtype="bool", required=True),
    ],
)

# Transactions Schema (output)
TRANSACTIONS_SCHEMA = FileSchema(
    name="transactions",
    description="Executed buy and sell transactions",
    columns=[
        ColumnSchema(name="transaction_id", dtype="str", required=True),
        ColumnSchema(name="timestamp", dtype="datetime64[ns]", required=True),
        ColumnSchema(name="side", dtype="str", required=True),
        ColumnSchema(name="symbol", dtype="str", required=True),
        ColumnSchema(name="quantity", dtype="int64", required=True),
        ColumnSchema(name="price", dtype="float64", required=True),
        ColumnSchema(name="total_value", dtype="float64", required=True),
    ],
)

# Watchlist Schema (output)
WATCHLIST_SCHEMA = FileSchema(
    name="watchlist",
    description="Watched symbols with their latest quote",
    columns=[
        ColumnSchema(name="symbol", dtype="str", required=True),
        ColumnSchema(name="name", dtype="str", required=True),
        ColumnSchema(name="price", dtype="float64", required=True, nullable=True),
        ColumnSchema(name="daily_change", dtype="float64", required=True, nullable=True),
        ColumnSchema(name="daily_change_pct", dtype="float64", required=True, nullable=True),
    ],
)
