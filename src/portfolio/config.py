"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from portfolio.models import Credential


class ExchangeSettings(BaseSettings):
    """Binance account API settings. Keys are absent by default."""

    model_config = SettingsConfigDict(env_prefix="BINANCE_")

    api_key: SecretStr = SecretStr("")
    secret_key: SecretStr = SecretStr("")
    base_url: str = "https://api.binance.com"
    recv_window: int = 5000  # ms the server tolerates between timestamp and receipt
    timeout_seconds: float = 10.0

    def credential(self) -> Credential:
        """Return the configured credential (possibly incomplete)."""
        return Credential(
            api_key=self.api_key.get_secret_value(),
            secret_key=self.secret_key.get_secret_value(),
        )


class PriceSettings(BaseSettings):
    """CoinGecko price API settings."""

    model_config = SettingsConfigDict(env_prefix="COINGECKO_")

    base_url: str = "https://api.coingecko.com/api/v3"
    vs_currency: str = "usd"
    history_days: int = 30
    api_key: SecretStr = SecretStr("")  # optional demo key for higher rate limits
    timeout_seconds: float = 10.0


class LedgerSettings(BaseSettings):
    """Transaction ledger persistence settings."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    path: str = "data/transactions.json"


class ServiceSettings(BaseSettings):
    """Reconciliation pass settings."""

    model_config = SettingsConfigDict(env_prefix="SERVICE_")

    request_timeout_seconds: float = 10.0  # bound on every awaited remote call
    spot_max_age_seconds: float = 300.0  # cached spot prices older than this are dropped


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 3000


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    prices: PriceSettings = PriceSettings()
    ledger: LedgerSettings = LedgerSettings()
    service: ServiceSettings = ServiceSettings()
    dashboard: DashboardSettings = DashboardSettings()
