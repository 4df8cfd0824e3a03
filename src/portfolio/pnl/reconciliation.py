"""Reconciliation of the local ledger against remote price data.

Two derivations, both pure:

- P&L of each transaction at the current spot price.
  pnl_value   = amount * spot - amount * unit_price
  pnl_percent = (spot - unit_price) / unit_price * 100
  is_gain     = pnl_percent >= 0   (break-even counts as a gain)

- Projection of each purchase onto the asset's price curve: the sample
  nearest in time to the purchase date (UTC midnight). When two samples
  are equally near, the earlier one wins.

The price series must be sorted ascending by timestamp. It is not re-sorted here.
"""

import datetime
from bisect import bisect_left
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from portfolio.logging import get_logger
from portfolio.models import PnLResult, PricePoint, ProjectedPurchasePoint, Transaction

logger = get_logger(__name__)

_HUNDRED = Decimal("100")


def date_to_timestamp_ms(day: datetime.date) -> int:
    """Return epoch milliseconds for the start of ``day`` in UTC."""
    start = datetime.datetime(day.year, day.month, day.day, tzinfo=datetime.timezone.utc)
    return int(start.timestamp()) * 1000


def nearest_price_point(
    series: Sequence[PricePoint], timestamp_ms: int
) -> PricePoint | None:
    """Return the point of an ascending series nearest to ``timestamp_ms``.

    Equivalent to a linear scan keeping the first point with the smallest
    absolute distance, i.e. ties (including duplicate timestamps) resolve to
    the earliest point. Returns None for an empty series.
    """
    if not series:
        return None

    timestamps = [point.timestamp_ms for point in series]
    index = bisect_left(timestamps, timestamp_ms)

    if index == 0:
        best = 0
    elif index == len(series):
        best = index - 1
    else:
        before = timestamp_ms - timestamps[index - 1]
        after = timestamps[index] - timestamp_ms
        best = index - 1 if before <= after else index

    # First occurrence of the winning timestamp
    best = bisect_left(timestamps, timestamps[best])
    return series[best]


class ReconciliationEngine:
    """Derives per-transaction P&L and purchase projections. Holds no state."""

    def compute_pnl(
        self, transaction: Transaction, spot_price: Decimal | None
    ) -> PnLResult | None:
        """Compute P&L of one transaction at ``spot_price``.

        Returns None when the spot price is unknown, so callers can render a
        pending state instead of a zero.
        """
        if spot_price is None:
            return None

        current_value = transaction.amount * spot_price
        pnl_value = current_value - transaction.amount * transaction.unit_price
        pnl_percent = (spot_price - transaction.unit_price) / transaction.unit_price * _HUNDRED
        return PnLResult(
            current_price=spot_price,
            current_value=current_value,
            pnl_value=pnl_value,
            pnl_percent=pnl_percent,
            is_gain=pnl_percent >= 0,
        )

    def reconcile(
        self,
        transactions: Iterable[Transaction],
        spot_prices: Mapping[str, Decimal],
    ) -> list[tuple[Transaction, PnLResult | None]]:
        """Pair every transaction with its P&L (None where the price is unknown)."""
        pairs = [
            (transaction, self.compute_pnl(transaction, spot_prices.get(transaction.asset_id)))
            for transaction in transactions
        ]
        pending = sum(1 for _, pnl in pairs if pnl is None)
        logger.debug("reconciled", transactions=len(pairs), pending=pending)
        return pairs

    def project_purchase_points(
        self,
        transactions: Iterable[Transaction],
        asset_id: str,
        price_series: Sequence[PricePoint],
    ) -> list[ProjectedPurchasePoint]:
        """Mark each purchase of ``asset_id`` on its price curve.

        Transactions of other assets are skipped. An empty series yields no
        points.
        """
        projected: list[ProjectedPurchasePoint] = []
        for transaction in transactions:
            if transaction.asset_id != asset_id:
                continue
            point = nearest_price_point(price_series, date_to_timestamp_ms(transaction.date))
            if point is None:
                continue
            projected.append(
                ProjectedPurchasePoint(
                    transaction_id=transaction.id,
                    timestamp_ms=point.timestamp_ms,
                    price=point.price,
                )
            )
        return projected
