"""Tests for CoinGeckoClient spot and history fetching.

All tests use an httpx MockTransport to avoid real API calls.
"""

from decimal import Decimal

import httpx
import pytest

from portfolio.config import PriceSettings
from portfolio.exceptions import UpstreamError, ValidationError
from portfolio.market_data.coingecko import CoinGeckoClient
from portfolio.models import PricePoint

MOCK_SPOT = {
    "bitcoin": {"usd": 43250.12},
    "ethereum": {"usd": 2280.5},
}

MOCK_CHART = {
    "prices": [
        [1704153600000, 44900.5],
        [1704067200000, 42200.0],
        [1704240000000, 45100.25],
    ],
    "market_caps": [],
    "total_volumes": [],
}


@pytest.fixture
def price_settings() -> PriceSettings:
    return PriceSettings(base_url="https://api.coingecko.test/api/v3", vs_currency="usd")


def _client(
    settings: PriceSettings, handler, calls: list[httpx.Request]
) -> CoinGeckoClient:
    def _record(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    return CoinGeckoClient(
        settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(_record))
    )


class TestFetchSpot:
    @pytest.mark.asyncio
    async def test_batches_all_ids_in_one_request(self, price_settings: PriceSettings) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_SPOT), calls)

        await client.fetch_spot({"ethereum", "bitcoin", "solana"})

        assert len(calls) == 1
        assert calls[0].url.path == "/api/v3/simple/price"
        assert calls[0].url.params["ids"] == "bitcoin,ethereum,solana"
        assert calls[0].url.params["vs_currencies"] == "usd"

    @pytest.mark.asyncio
    async def test_missing_id_is_absent_not_error(self, price_settings: PriceSettings) -> None:
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_SPOT), [])

        prices = await client.fetch_spot(["bitcoin", "ethereum", "solana"])

        assert prices == {
            "bitcoin": Decimal("43250.12"),
            "ethereum": Decimal("2280.5"),
        }
        assert "solana" not in prices

    @pytest.mark.asyncio
    async def test_id_without_currency_is_absent(self, price_settings: PriceSettings) -> None:
        payload = {"bitcoin": {"eur": 40000}, "ethereum": {"usd": None}}
        client = _client(price_settings, lambda r: httpx.Response(200, json=payload), [])

        assert await client.fetch_spot(["bitcoin", "ethereum"]) == {}

    @pytest.mark.asyncio
    async def test_empty_ids_skip_network(self, price_settings: PriceSettings) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json={}), calls)

        assert await client.fetch_spot(set()) == {}
        assert calls == []

    @pytest.mark.asyncio
    async def test_demo_key_sent_as_header(self) -> None:
        settings = PriceSettings(
            base_url="https://api.coingecko.test/api/v3",
            api_key="cg-demo",  # type: ignore[arg-type]
        )
        calls: list[httpx.Request] = []
        client = _client(settings, lambda r: httpx.Response(200, json=MOCK_SPOT), calls)

        await client.fetch_spot(["bitcoin"])

        assert calls[0].headers["x-cg-demo-api-key"] == "cg-demo"
        assert "cg-demo" not in str(calls[0].url)

    @pytest.mark.asyncio
    async def test_rate_limited_raises_upstream_error(self, price_settings: PriceSettings) -> None:
        client = _client(price_settings, lambda r: httpx.Response(429, text="slow down"), [])

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_spot(["bitcoin"])

        assert exc_info.value.status_code == 429
        assert exc_info.value.is_transient

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises_upstream_error(
        self, price_settings: PriceSettings
    ) -> None:
        client = _client(price_settings, lambda r: httpx.Response(200, json=["bitcoin"]), [])

        with pytest.raises(UpstreamError):
            await client.fetch_spot(["bitcoin"])


class TestFetchHistory:
    @pytest.mark.asyncio
    async def test_returns_ascending_points(self, price_settings: PriceSettings) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_CHART), calls)

        series = await client.fetch_history("bitcoin", 3)

        assert series == [
            PricePoint(timestamp_ms=1704067200000, price=Decimal("42200.0")),
            PricePoint(timestamp_ms=1704153600000, price=Decimal("44900.5")),
            PricePoint(timestamp_ms=1704240000000, price=Decimal("45100.25")),
        ]

    @pytest.mark.asyncio
    async def test_request_parameters(self, price_settings: PriceSettings) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_CHART), calls)

        await client.fetch_history("bitcoin", 90)

        params = calls[0].url.params
        assert calls[0].url.path == "/api/v3/coins/bitcoin/market_chart"
        assert params["vs_currency"] == "usd"
        assert params["days"] == "90"
        assert params["interval"] == "daily"

    @pytest.mark.asyncio
    async def test_empty_series(self, price_settings: PriceSettings) -> None:
        client = _client(price_settings, lambda r: httpx.Response(200, json={"prices": []}), [])

        assert await client.fetch_history("bitcoin", 30) == []

    @pytest.mark.asyncio
    async def test_unknown_coin_raises_upstream_error(self, price_settings: PriceSettings) -> None:
        client = _client(
            price_settings,
            lambda r: httpx.Response(404, json={"error": "coin not found"}),
            [],
        )

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_history("not-a-coin", 30)

        assert exc_info.value.status_code == 404
        assert not exc_info.value.is_transient

    @pytest.mark.asyncio
    async def test_missing_prices_key_raises_upstream_error(
        self, price_settings: PriceSettings
    ) -> None:
        client = _client(price_settings, lambda r: httpx.Response(200, json={"status": "ok"}), [])

        with pytest.raises(UpstreamError):
            await client.fetch_history("bitcoin", 30)

    @pytest.mark.asyncio
    async def test_network_failure_raises_upstream_error(
        self, price_settings: PriceSettings
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("dns failure", request=request)

        client = _client(price_settings, handler, [])

        with pytest.raises(UpstreamError):
            await client.fetch_history("bitcoin", 30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "asset_id",
        ["../../evil", "bitcoin?vs_currency=eur&x=", "bit/coin", "bitcoin#", "Bitcoin", "bitcoin\n"],
    )
    async def test_asset_id_outside_coin_id_charset_rejected(
        self, price_settings: PriceSettings, asset_id: str
    ) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_CHART), calls)

        with pytest.raises(ValidationError):
            await client.fetch_history(asset_id, 30)

        assert calls == []

    @pytest.mark.asyncio
    async def test_hyphenated_asset_id_accepted(self, price_settings: PriceSettings) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_CHART), calls)

        await client.fetch_history("wrapped-bitcoin", 30)

        assert calls[0].url.path == "/api/v3/coins/wrapped-bitcoin/market_chart"

    @pytest.mark.asyncio
    async def test_invalid_span_rejected_without_request(
        self, price_settings: PriceSettings
    ) -> None:
        calls: list[httpx.Request] = []
        client = _client(price_settings, lambda r: httpx.Response(200, json=MOCK_CHART), calls)

        with pytest.raises(ValidationError):
            await client.fetch_history("bitcoin", 0)

        assert calls == []
