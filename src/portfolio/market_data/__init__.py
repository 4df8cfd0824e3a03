"""Market data layer -- CoinGecko spot prices, daily history, and the spot price cache."""

from portfolio.market_data.coingecko import CoinGeckoClient
from portfolio.market_data.spot_cache import SpotPriceCache

__all__ = ["CoinGeckoClient", "SpotPriceCache"]
