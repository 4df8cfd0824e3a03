"""CoinGecko price client for spot quotes and daily history.

Spot prices for every tracked asset are fetched in one batched request.
An asset missing from the response means "price unknown", not an error:
it is simply absent from the returned mapping.

History is returned in ascending timestamp order; reconciliation relies on
that ordering and does not re-sort.
"""

import re
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

import httpx
import pydantic

from portfolio.config import PriceSettings
from portfolio.exceptions import UpstreamError, ValidationError
from portfolio.logging import get_logger
from portfolio.market_data.schemas import MarketChartResponse, SimplePriceResponse
from portfolio.models import PricePoint

logger = get_logger(__name__)

# CoinGecko coin ids: lowercase letters, digits and hyphens
_ASSET_ID_RE = re.compile(r"[a-z0-9-]+")


class CoinGeckoClient:
    """Fetches spot prices and daily price history from the CoinGecko API.

    Args:
        settings: Price API settings (base URL, fiat currency, optional demo key).
        http_client: Optional pre-built httpx client (tests inject a MockTransport).
    """

    def __init__(
        self,
        settings: PriceSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    @property
    def vs_currency(self) -> str:
        return self._settings.vs_currency

    async def close(self) -> None:
        """Release the underlying HTTP connection pool if we created it."""
        if self._owns_client:
            await self._client.aclose()
            logger.info("coingecko_client_closed")

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        headers = {"Accept": "application/json"}
        api_key = self._settings.api_key.get_secret_value()
        if api_key:
            headers["x-cg-demo-api-key"] = api_key

        try:
            response = await self._client.get(
                f"{self._base_url}{path}", params=params, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning("coingecko_timeout", path=path)
            raise UpstreamError("Price API request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("coingecko_fetch_error", path=path, error=str(e))
            raise UpstreamError("Price API request failed") from e

        if not response.is_success:
            logger.warning(
                "coingecko_bad_status",
                path=path,
                status_code=response.status_code,
            )
            raise UpstreamError(
                "Price API returned an error",
                status_code=response.status_code,
                body=response.text[:500],
            )

        try:
            # Prices arrive as JSON floats; parse them straight to Decimal
            return response.json(parse_float=Decimal)
        except ValueError as e:
            raise UpstreamError(
                "Price API returned invalid JSON", status_code=response.status_code
            ) from e

    async def fetch_spot(self, asset_ids: Iterable[str]) -> dict[str, Decimal]:
        """Fetch current prices for all asset ids in a single request.

        Returns:
            Mapping asset id -> price in the configured fiat currency.
            Ids the API does not know are omitted.
        """
        ids = sorted(set(asset_ids))
        if not ids:
            return {}

        payload = await self._get_json(
            "/simple/price",
            {"ids": ",".join(ids), "vs_currencies": self.vs_currency},
        )
        try:
            quotes = SimplePriceResponse.model_validate(payload).root
        except pydantic.ValidationError as e:
            raise UpstreamError("Price API returned an unexpected spot payload") from e

        prices: dict[str, Decimal] = {}
        for asset_id in ids:
            price = quotes.get(asset_id, {}).get(self.vs_currency)
            if price is not None:
                prices[asset_id] = price

        missing = [asset_id for asset_id in ids if asset_id not in prices]
        if missing:
            logger.info("spot_prices_missing", missing=missing)
        logger.debug("spot_prices_fetched", count=len(prices))
        return prices

    async def fetch_history(self, asset_id: str, span_days: int) -> list[PricePoint]:
        """Fetch the daily price series for one asset, ascending by timestamp.

        Raises:
            ValidationError: span_days is less than 1, or asset_id is empty or
                not a CoinGecko coin id.
            UpstreamError: The API failed or returned an unexpected shape.
        """
        if not asset_id:
            raise ValidationError("asset_id is required")
        # The id becomes a URL path segment
        if not _ASSET_ID_RE.fullmatch(asset_id):
            raise ValidationError(f"Invalid asset id: {asset_id!r}")
        if span_days < 1:
            raise ValidationError("span_days must be at least 1")

        payload = await self._get_json(
            f"/coins/{asset_id}/market_chart",
            {
                "vs_currency": self.vs_currency,
                "days": str(span_days),
                "interval": "daily",
            },
        )
        try:
            chart = MarketChartResponse.model_validate(payload)
        except pydantic.ValidationError as e:
            raise UpstreamError("Price API returned an unexpected history payload") from e

        series = sorted(
            (PricePoint(timestamp_ms=ts, price=price) for ts, price in chart.prices),
            key=lambda point: point.timestamp_ms,
        )
        logger.debug("price_history_fetched", asset_id=asset_id, points=len(series))
        return series
