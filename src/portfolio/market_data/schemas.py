"""Response schemas for the CoinGecko price endpoints."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, RootModel


class MarketChartResponse(BaseModel):
    """``GET /coins/{id}/market_chart`` -- only the price series is read."""

    model_config = ConfigDict(extra="ignore")

    prices: list[tuple[int, Decimal]]


class SimplePriceResponse(RootModel[dict[str, dict[str, Decimal | None]]]):
    """``GET /simple/price`` -- asset id -> {currency: price}."""
