"""Last-known spot price cache.

PortfolioService writes every fresh spot quote here and falls back to it
when the price API is unavailable, so the view can show stale prices
instead of nothing.
"""

import asyncio
import time
from collections.abc import Callable, Iterable
from decimal import Decimal

from portfolio.logging import get_logger

logger = get_logger(__name__)


class SpotPriceCache:
    """In-memory spot price cache with staleness detection.

    Stores the latest price and update time for each asset id.
    Uses asyncio.Lock for safe concurrent reads/writes from multiple coroutines.

    Args:
        clock: Returns the current Unix time in seconds; defaults to time.time.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._prices: dict[str, tuple[Decimal, float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or time.time

    async def update(self, prices: dict[str, Decimal]) -> None:
        """Store a batch of fresh quotes, stamped with the current time."""
        now = self._clock()
        async with self._lock:
            for asset_id, price in prices.items():
                self._prices[asset_id] = (price, now)

    async def get(self, asset_id: str) -> Decimal | None:
        """Return the cached price for an asset, or None if never seen."""
        async with self._lock:
            entry = self._prices.get(asset_id)
            return entry[0] if entry is not None else None

    async def get_many(
        self, asset_ids: Iterable[str], max_age_seconds: float | None = None
    ) -> dict[str, Decimal]:
        """Return cached prices for the given ids, skipping entries older than max_age_seconds."""
        now = self._clock()
        result: dict[str, Decimal] = {}
        async with self._lock:
            for asset_id in asset_ids:
                entry = self._prices.get(asset_id)
                if entry is None:
                    continue
                price, updated_at = entry
                if max_age_seconds is not None and now - updated_at > max_age_seconds:
                    continue
                result[asset_id] = price
        return result

    async def age(self, asset_id: str) -> float | None:
        """Return seconds since the last update for an asset, or None if absent."""
        async with self._lock:
            entry = self._prices.get(asset_id)
            if entry is None:
                return None
            return self._clock() - entry[1]

    async def is_stale(self, asset_id: str, max_age_seconds: float = 60.0) -> bool:
        """True if the asset has no cached price or it is older than max_age_seconds."""
        age = await self.age(asset_id)
        if age is None:
            return True
        return age > max_age_seconds
