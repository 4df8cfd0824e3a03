"""Tests for the HTML dashboard page."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from portfolio.config import ServiceSettings
from portfolio.dashboard.app import _format_money, create_dashboard_app
from portfolio.exceptions import UpstreamError
from portfolio.exchange.binance_client import BinanceClient
from portfolio.ledger.ledger import TransactionLedger
from portfolio.market_data.coingecko import CoinGeckoClient
from portfolio.market_data.spot_cache import SpotPriceCache
from portfolio.pnl.aggregator import PortfolioAggregator
from portfolio.pnl.reconciliation import ReconciliationEngine
from portfolio.service import PortfolioService


@pytest.fixture
def prices() -> AsyncMock:
    client = AsyncMock(spec=CoinGeckoClient)
    client.fetch_spot.return_value = {"bitcoin": Decimal("150")}
    return client


@pytest.fixture
def client(ledger: TransactionLedger, prices: AsyncMock) -> TestClient:
    service = PortfolioService(
        ledger=ledger,
        prices=prices,
        exchange=AsyncMock(spec=BinanceClient),
        engine=ReconciliationEngine(),
        spot_cache=SpotPriceCache(),
        settings=ServiceSettings(request_timeout_seconds=1.0),
    )
    app = create_dashboard_app()
    app.state.service = service
    app.state.aggregator = PortfolioAggregator()
    app.state.vs_currency = "usd"
    return TestClient(app)


def test_empty_ledger_renders(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert "No transactions yet" in response.text


def test_renders_priced_and_pending_rows(client: TestClient, ledger: TransactionLedger) -> None:
    ledger.add("bitcoin", "2", "100", "2024-01-01")
    ledger.add("solana", "10", "20", "2024-01-02")

    response = client.get("/")

    assert response.status_code == 200
    assert "bitcoin" in response.text
    assert "100.00 (50.00%)" in response.text
    assert "price pending" in response.text


def test_price_outage_renders_banner(
    client: TestClient, ledger: TransactionLedger, prices: AsyncMock
) -> None:
    ledger.add("bitcoin", "2", "100", "2024-01-01")
    prices.fetch_spot.side_effect = UpstreamError("Price API returned an error", status_code=503)

    response = client.get("/")

    assert response.status_code == 200
    assert "Showing cached prices" in response.text
    assert "price pending" in response.text


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1234.5", "1,234.50"), (Decimal("0.004"), "0.00"), (None, "-"), ("n/a", "n/a")],
)
def test_format_money(value, expected: str) -> None:
    assert _format_money(value) == expected
