"""HMAC-SHA256 request signing for the Binance account API.

The exchange verifies the signature against the query string exactly as
received, so parameters are serialized in insertion order and never sorted.
Signing is pure CPU work: no clock reads, no I/O.
"""

import hashlib
import hmac
from collections.abc import Mapping
from urllib.parse import urlencode

from portfolio.exceptions import ConfigurationError
from portfolio.models import Credential, SignedRequest

ACCOUNT_PATH = "/api/v3/account"
API_KEY_HEADER = "X-MBX-APIKEY"


def canonical_query_string(params: Mapping[str, str | int]) -> str:
    """Serialize params as ``key=value`` pairs joined by ``&``, in insertion order."""
    return urlencode([(key, str(value)) for key, value in params.items()])


def sign(query_string: str, secret_key: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``query_string`` keyed by ``secret_key``."""
    return hmac.new(
        secret_key.encode("utf-8"),
        query_string.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class SignedRequestBuilder:
    """Builds signed, replay-resistant requests for one endpoint.

    Args:
        base_url: Exchange REST root, e.g. "https://api.binance.com".
        path: Endpoint path appended to base_url.
        header_name: Header that carries the API key.
    """

    def __init__(
        self,
        base_url: str,
        path: str = ACCOUNT_PATH,
        header_name: str = API_KEY_HEADER,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._path = path
        self._header_name = header_name

    def build(
        self, params: Mapping[str, str | int], credential: Credential
    ) -> SignedRequest:
        """Sign ``params`` with the credential's secret.

        Args:
            params: Ordered request parameters. Must contain ``timestamp``
                (epoch milliseconds); may contain ``recvWindow``.
            credential: API key and secret.

        Returns:
            The immutable SignedRequest.

        Raises:
            ConfigurationError: If the API key or secret is missing.
            ValueError: If ``timestamp`` is absent from params.
        """
        if not credential.is_complete:
            raise ConfigurationError("Exchange API keys are not configured")
        if "timestamp" not in params:
            raise ValueError("params must include a 'timestamp' freshness marker")

        query_string = canonical_query_string(params)
        return SignedRequest(
            base_url=self._base_url,
            path=self._path,
            query_string=query_string,
            signature=sign(query_string, credential.secret_key),
            header_name=self._header_name,
            api_key=credential.api_key,
        )
