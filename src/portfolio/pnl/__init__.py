"""P&L layer -- ledger/price reconciliation and presentation aggregation."""

from portfolio.pnl.aggregator import PortfolioAggregator
from portfolio.pnl.reconciliation import (
    ReconciliationEngine,
    date_to_timestamp_ms,
    nearest_price_point,
)

__all__ = [
    "PortfolioAggregator",
    "ReconciliationEngine",
    "date_to_timestamp_ms",
    "nearest_price_point",
]
