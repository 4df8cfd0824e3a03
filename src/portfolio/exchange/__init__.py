"""Exchange client layer -- signed Binance account API integration via httpx."""

from portfolio.exchange.binance_client import BinanceClient
from portfolio.exchange.signing import SignedRequestBuilder, canonical_query_string, sign

__all__ = ["BinanceClient", "SignedRequestBuilder", "canonical_query_string", "sign"]
