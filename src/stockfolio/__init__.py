"""
Stock Portfolio Analytics & Insights Engine (stockfolio)

A mock-trading portfolio core: tracks holdings with weighted-average cost,
values them against market quotes, scores risk and diversification, buckets
value by asset category and generates prioritized, rule-based insights.

No real brokerage integration. All trades are simulated.
"""

__version__ = "0.1.0"
__author__ = "Stockfolio Team"
