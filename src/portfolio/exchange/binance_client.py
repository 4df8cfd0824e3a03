"""Binance account balance client via httpx async.

Issues the single signed ``GET /api/v3/account`` call, validates the
response, and returns only assets with a non-zero balance. Read-only:
no retries, no server-side state mutation.
"""

import time
from collections.abc import Callable

import httpx
import pydantic

from portfolio.config import ExchangeSettings
from portfolio.exceptions import UpstreamError
from portfolio.exchange.schemas import AccountResponse
from portfolio.exchange.signing import SignedRequestBuilder
from portfolio.logging import get_logger
from portfolio.models import Balance, Credential

logger = get_logger(__name__)

_MAX_ERROR_BODY = 500


def _now_ms() -> int:
    return int(time.time() * 1000)


def _error_body(response: httpx.Response) -> object:
    """Return the remote error payload: parsed JSON when possible, else truncated text."""
    try:
        return response.json()
    except ValueError:
        return response.text[:_MAX_ERROR_BODY]


class BinanceClient:
    """Fetches a read-only snapshot of exchange balances.

    Args:
        settings: Exchange settings (base URL, recv window, credentials).
        http_client: Optional pre-built httpx client (tests inject a MockTransport).
        clock: Returns the current epoch milliseconds; defaults to wall time.
    """

    def __init__(
        self,
        settings: ExchangeSettings,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._settings = settings
        self._builder = SignedRequestBuilder(settings.base_url)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._clock = clock or _now_ms

    async def close(self) -> None:
        """Release the underlying HTTP connection pool if we created it."""
        if self._owns_client:
            await self._client.aclose()
            logger.info("binance_client_closed")

    async def fetch_balances(self, credential: Credential | None = None) -> list[Balance]:
        """Fetch all assets with a positive free or locked balance.

        Args:
            credential: Overrides the credential from settings.

        Raises:
            ConfigurationError: Keys are missing (raised before any network call).
            UpstreamError: Network failure, non-2xx status, or malformed response.
        """
        credential = credential or self._settings.credential()
        params = {
            "timestamp": self._clock(),
            "recvWindow": self._settings.recv_window,
        }
        request = self._builder.build(params, credential)

        try:
            response = await self._client.get(request.url, headers=request.headers)
        except httpx.TimeoutException as e:
            logger.warning("binance_request_timeout", error=type(e).__name__)
            raise UpstreamError("Exchange request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("binance_request_failed", error=type(e).__name__)
            raise UpstreamError("Exchange request failed") from e

        if not response.is_success:
            body = _error_body(response)
            logger.error(
                "binance_account_error",
                status_code=response.status_code,
                body=body,
            )
            raise UpstreamError(
                "Exchange rejected the balance request",
                status_code=response.status_code,
                body=body,
            )

        try:
            account = AccountResponse.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as e:
            logger.error("binance_account_malformed", error=str(e)[:_MAX_ERROR_BODY])
            raise UpstreamError(
                "Exchange returned an unexpected account payload",
                status_code=response.status_code,
            ) from e

        balances = [
            Balance(asset=raw.asset, free=raw.free, locked=raw.locked)
            for raw in account.balances
            if raw.free > 0 or raw.locked > 0
        ]
        logger.info(
            "balances_fetched",
            assets=len(balances),
            total_entries=len(account.balances),
        )
        return balances
