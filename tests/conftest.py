"""Shared test fixtures for the portfolio tracker."""

import pytest

from portfolio.config import AppSettings, ExchangeSettings, PriceSettings, ServiceSettings
from portfolio.ledger.ledger import TransactionLedger
from portfolio.ledger.storage import MemoryStorage
from portfolio.models import Credential


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (dummy API keys, short timeouts)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(
            api_key="test-api-key",  # type: ignore[arg-type]
            secret_key="test-secret-key",  # type: ignore[arg-type]
            base_url="https://api.binance.test",
        ),
        prices=PriceSettings(
            base_url="https://api.coingecko.test/api/v3",
            vs_currency="usd",
        ),
        service=ServiceSettings(request_timeout_seconds=1.0),
    )


@pytest.fixture
def credential() -> Credential:
    return Credential(api_key="test-api-key", secret_key="test-secret-key")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def ledger(storage: MemoryStorage) -> TransactionLedger:
    """Empty ledger with a fixed clock (ids start at 1700000000000)."""
    return TransactionLedger(storage, clock=lambda: 1_700_000_000_000)
