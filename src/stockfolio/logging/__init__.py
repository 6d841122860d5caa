"""
Logging module for the portfolio analytics engine.

Provides append-only decision logging for audit and the operational
logging setup used by the CLI.
"""

from stockfolio.logging.decision_log import (
    DecisionLogger,
    DecimalEncoder,
)
from stockfolio.logging.setup import configure_logging

__all__ = [
    "DecisionLogger",
    "DecimalEncoder",
    "configure_logging",
]
