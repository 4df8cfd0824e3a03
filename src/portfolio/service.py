"""Portfolio service: one reconciliation pass over the ledger.

Wires the price client, ledger, and reconciliation engine together.
Spot and history fetches have no data dependency, so they run
concurrently; both finish before the engine runs. Every remote call is
bounded by a timeout that surfaces as UpstreamError.

No retries happen here. Callers decide whether to retry or show stale data.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TypeVar

from portfolio.config import ServiceSettings
from portfolio.exceptions import UpstreamError
from portfolio.exchange.binance_client import BinanceClient
from portfolio.ledger.ledger import TransactionLedger
from portfolio.logging import get_logger
from portfolio.market_data.coingecko import CoinGeckoClient
from portfolio.market_data.spot_cache import SpotPriceCache
from portfolio.models import (
    Balance,
    PnLResult,
    PricePoint,
    ProjectedPurchasePoint,
    Transaction,
)
from portfolio.pnl.reconciliation import ReconciliationEngine

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class ReconciliationReport:
    """Result of one reconciliation pass."""

    pairs: list[tuple[Transaction, PnLResult | None]]
    spot_prices: dict[str, Decimal]
    stale: bool = False  # spot prices came from the cache after a failed fetch
    asset_id: str | None = None
    series: list[PricePoint] = field(default_factory=list)
    projected: list[ProjectedPurchasePoint] = field(default_factory=list)


class PortfolioService:
    """Runs reconciliation passes and balance snapshots.

    Args:
        ledger: The user's transaction ledger.
        prices: CoinGecko client for spot and history.
        exchange: Binance client for balances.
        engine: P&L and projection logic.
        spot_cache: Last-known spot prices used when the price API fails.
        settings: Timeout and cache-age settings.
        history_days: Default span for history fetches.
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        prices: CoinGeckoClient,
        exchange: BinanceClient,
        engine: ReconciliationEngine,
        spot_cache: SpotPriceCache,
        settings: ServiceSettings,
        history_days: int = 30,
    ) -> None:
        self._ledger = ledger
        self._prices = prices
        self._exchange = exchange
        self._engine = engine
        self._spot_cache = spot_cache
        self._settings = settings
        self._history_days = history_days

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    async def _bounded(self, awaitable: Awaitable[T], what: str) -> T:
        """Await with the configured timeout, mapping expiry to UpstreamError."""
        timeout = self._settings.request_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("upstream_timeout", call=what, timeout_seconds=timeout)
            raise UpstreamError(f"{what} timed out after {timeout:g}s") from e

    async def balances(self) -> list[Balance]:
        """Fetch the exchange balance snapshot.

        Raises:
            ConfigurationError: API keys are not configured (no network call made).
            UpstreamError: The exchange call failed or timed out.
        """
        return await self._bounded(self._exchange.fetch_balances(), "balance fetch")

    async def _spot_with_fallback(
        self, asset_ids: set[str]
    ) -> tuple[dict[str, Decimal], bool]:
        try:
            prices = await self._bounded(self._prices.fetch_spot(asset_ids), "spot fetch")
        except UpstreamError as e:
            cached = await self._spot_cache.get_many(
                asset_ids, max_age_seconds=self._settings.spot_max_age_seconds
            )
            logger.warning(
                "spot_fetch_failed_using_cache",
                error=str(e),
                cached=len(cached),
                requested=len(asset_ids),
            )
            return cached, True

        await self._spot_cache.update(prices)
        return prices, False

    async def reconcile(
        self, asset_id: str | None = None, span_days: int | None = None
    ) -> ReconciliationReport:
        """Run one pass: fetch spot (and optionally history), then reconcile.

        Args:
            asset_id: When given, also fetch this asset's history and project
                its purchases onto the curve.
            span_days: History span; defaults to the configured history_days.

        Raises:
            UpstreamError: The history fetch failed or timed out. A failed spot
                fetch falls back to cached prices instead.
        """
        transactions = self._ledger.list()
        asset_ids = self._ledger.asset_ids()
        if asset_id is not None:
            asset_id = asset_id.strip().lower()

        if asset_id is None:
            spot_prices, stale = await self._spot_with_fallback(asset_ids)
            series: list[PricePoint] = []
        else:
            (spot_prices, stale), series = await asyncio.gather(
                self._spot_with_fallback(asset_ids),
                self._bounded(
                    self._prices.fetch_history(
                        asset_id,
                        span_days if span_days is not None else self._history_days,
                    ),
                    "history fetch",
                ),
            )

        pairs = self._engine.reconcile(transactions, spot_prices)
        projected = (
            self._engine.project_purchase_points(transactions, asset_id, series)
            if asset_id is not None
            else []
        )
        logger.info(
            "reconciliation_complete",
            transactions=len(transactions),
            priced=len(spot_prices),
            stale=stale,
            asset_id=asset_id,
            history_points=len(series),
        )
        return ReconciliationReport(
            pairs=pairs,
            spot_prices=spot_prices,
            stale=stale,
            asset_id=asset_id,
            series=series,
            projected=projected,
        )
