"""Presentation shapes for balances, positions, and price charts.

Pure functions of their inputs: no state, no I/O. Decimals are rendered as
strings so the JSON layer never rounds through float.
"""

from collections.abc import Sequence
from decimal import Decimal

from portfolio.models import Balance, PnLResult, PricePoint, ProjectedPurchasePoint, Transaction

_HUNDRED = Decimal("100")


def _str_or_none(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


class PortfolioAggregator:
    """Maps domain objects into the dict shapes served to the dashboard."""

    def balances_view(self, balances: Sequence[Balance]) -> list[dict]:
        """Balances as ``{symbol, free, locked, total}``, largest holdings first."""
        ordered = sorted(balances, key=lambda b: (-b.total, b.asset))
        return [
            {
                "symbol": balance.asset,
                "free": str(balance.free),
                "locked": str(balance.locked),
                "total": str(balance.total),
            }
            for balance in ordered
        ]

    def positions_view(
        self, pairs: Sequence[tuple[Transaction, PnLResult | None]]
    ) -> list[dict]:
        """One row per transaction, newest first. Unpriced rows are marked pending."""
        rows = []
        for transaction, pnl in reversed(pairs):
            row = {
                "id": transaction.id,
                "asset_id": transaction.asset_id,
                "amount": str(transaction.amount),
                "unit_price": str(transaction.unit_price),
                "date": transaction.date.isoformat(),
                "invested": str(transaction.invested),
            }
            if pnl is None:
                row["status"] = "pending"
            else:
                row.update({
                    "status": "priced",
                    "current_price": str(pnl.current_price),
                    "current_value": str(pnl.current_value),
                    "pnl_value": str(pnl.pnl_value),
                    "pnl_percent": str(pnl.pnl_percent),
                    "is_gain": pnl.is_gain,
                })
            rows.append(row)
        return rows

    def summary(self, pairs: Sequence[tuple[Transaction, PnLResult | None]]) -> dict:
        """Totals over priced positions. Pending positions are only counted."""
        invested = Decimal("0")
        current_value = Decimal("0")
        priced = 0
        for transaction, pnl in pairs:
            if pnl is None:
                continue
            invested += transaction.invested
            current_value += pnl.current_value
            priced += 1

        pnl_value = current_value - invested
        pnl_percent = pnl_value / invested * _HUNDRED if invested > 0 else None
        return {
            "invested": str(invested),
            "current_value": str(current_value),
            "pnl_value": str(pnl_value),
            "pnl_percent": _str_or_none(pnl_percent),
            "is_gain": pnl_value >= 0,
            "priced_count": priced,
            "pending_count": len(pairs) - priced,
        }

    def chart_view(
        self,
        series: Sequence[PricePoint],
        projected: Sequence[ProjectedPurchasePoint],
    ) -> dict:
        """Price curve plus purchase markers."""
        return {
            "prices": [[point.timestamp_ms, str(point.price)] for point in series],
            "purchases": [
                {
                    "transaction_id": point.transaction_id,
                    "timestamp": point.timestamp_ms,
                    "price": str(point.price),
                }
                for point in projected
            ],
        }
