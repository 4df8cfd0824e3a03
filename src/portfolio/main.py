"""Entry point for the crypto portfolio tracker.

Wires all components together and serves the FastAPI dashboard via
uvicorn's programmatic API. Components are created once and shared by
every request through ``app.state``.

Component wiring order (in build_components):
1. AppSettings (configuration)
2. Logging setup
3. TransactionLedger (file-backed, atomic writes)
4. CoinGeckoClient (spot prices and history)
5. BinanceClient (signed balance snapshot)
6. SpotPriceCache (fallback for price API outages)
7. ReconciliationEngine + PortfolioAggregator
8. PortfolioService (one reconciliation pass per request)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from portfolio.config import AppSettings
from portfolio.exchange.binance_client import BinanceClient
from portfolio.ledger.ledger import TransactionLedger
from portfolio.ledger.storage import FileStorage
from portfolio.logging import get_logger, setup_logging
from portfolio.market_data.coingecko import CoinGeckoClient
from portfolio.market_data.spot_cache import SpotPriceCache
from portfolio.pnl.aggregator import PortfolioAggregator
from portfolio.pnl.reconciliation import ReconciliationEngine
from portfolio.service import PortfolioService


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Missing exchange keys are not fatal: the balance endpoint answers with a
    configuration error instead.

    Returns:
        Dict mapping component names to instances.
    """
    logger = get_logger("portfolio.main")

    if not settings.exchange.credential().is_complete:
        logger.warning(
            "no_api_keys_configured",
            note="Ledger and price endpoints work. The balance endpoint will "
            "return a configuration error until BINANCE_API_KEY and "
            "BINANCE_SECRET_KEY are set.",
        )

    ledger = TransactionLedger(FileStorage(settings.ledger.path))
    prices = CoinGeckoClient(settings.prices)
    exchange = BinanceClient(settings.exchange)
    spot_cache = SpotPriceCache()
    engine = ReconciliationEngine()
    aggregator = PortfolioAggregator()

    service = PortfolioService(
        ledger=ledger,
        prices=prices,
        exchange=exchange,
        engine=engine,
        spot_cache=spot_cache,
        settings=settings.service,
        history_days=settings.prices.history_days,
    )

    return {
        "ledger": ledger,
        "prices": prices,
        "exchange": exchange,
        "spot_cache": spot_cache,
        "engine": engine,
        "aggregator": aggregator,
        "service": service,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Expose components on app.state; close HTTP clients on shutdown."""
    logger = get_logger("portfolio.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    app.state.service = components["service"]
    app.state.aggregator = components["aggregator"]
    app.state.vs_currency = settings.prices.vs_currency

    logger.info(
        "lifespan_started",
        transactions=len(components["ledger"]),
        ledger_path=settings.ledger.path,
    )

    yield

    await components["prices"].close()
    await components["exchange"].close()
    logger.info("portfolio_tracker_stopped")


async def run() -> None:
    """Run the dashboard server until interrupted."""
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("portfolio.main")

    # 3-8. Build all components
    components = build_components(settings)

    from portfolio.dashboard.app import create_dashboard_app

    app = create_dashboard_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = components

    logger.info(
        "starting_dashboard",
        host=settings.dashboard.host,
        port=settings.dashboard.port,
    )

    config = uvicorn.Config(
        app,
        host=settings.dashboard.host,
        port=settings.dashboard.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
