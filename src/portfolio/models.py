"""Shared data models for the portfolio tracker.

CRITICAL: All monetary values use Decimal. Never use float for prices, amounts, or P&L.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class Credential:
    """Exchange API credentials. Held in process memory only, never logged."""

    api_key: str = field(repr=False)
    secret_key: str = field(repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key) and bool(self.secret_key)


@dataclass(frozen=True)
class SignedRequest:
    """An authenticated request, immutable once signed.

    The signature covers the exact ``query_string`` bytes; ``url`` appends it
    without touching the signed part.
    """

    base_url: str
    path: str
    query_string: str
    signature: str = field(repr=False)
    header_name: str
    api_key: str = field(repr=False)

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.path}?{self.query_string}&signature={self.signature}"

    @property
    def headers(self) -> dict[str, str]:
        return {self.header_name: self.api_key}


@dataclass(frozen=True)
class Balance:
    """Exchange balance for a single asset. ``total`` is always derived locally."""

    asset: str
    free: Decimal
    locked: Decimal

    @property
    def total(self) -> Decimal:
        return self.free + self.locked


@dataclass(frozen=True)
class Transaction:
    """A user-entered buy event. Never mutated; only added or removed."""

    id: str
    asset_id: str
    amount: Decimal
    unit_price: Decimal  # fiat per unit
    date: date

    @property
    def invested(self) -> Decimal:
        return self.amount * self.unit_price

    def to_dict(self) -> dict[str, str]:
        """Serialize to a JSON-safe dict (Decimal as string, ISO date)."""
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "amount": str(self.amount),
            "unit_price": str(self.unit_price),
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        """Restore a transaction from its persisted form.

        Also accepts the camelCase keys written by the first version of the
        tracker (``assetId``, ``unitPrice`` or ``price``) and numeric values.
        """
        asset_id = data.get("asset_id", data.get("assetId"))
        if asset_id is None:
            raise KeyError("asset_id")
        unit_price = data.get("unit_price", data.get("unitPrice", data.get("price")))
        return cls(
            id=str(data["id"]),
            asset_id=str(asset_id),
            amount=Decimal(str(data["amount"])),
            unit_price=Decimal(str(unit_price)),
            date=date.fromisoformat(str(data["date"])[:10]),
        )


@dataclass(frozen=True)
class PricePoint:
    """A single sample of an asset's price series."""

    timestamp_ms: int
    price: Decimal


@dataclass(frozen=True)
class PnLResult:
    """Profit/loss of one transaction at the current spot price. Never stored."""

    current_price: Decimal
    current_value: Decimal
    pnl_value: Decimal
    pnl_percent: Decimal
    is_gain: bool


@dataclass(frozen=True)
class ProjectedPurchasePoint:
    """The price-series point nearest in time to a transaction's date."""

    transaction_id: str
    timestamp_ms: int
    price: Decimal
