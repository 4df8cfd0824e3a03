"""Custom exceptions for the portfolio tracker.

All fetcher, ledger, and service exceptions live here
to avoid circular imports between modules.
"""

from typing import Any

# Binance error codes that mean the key/signature was rejected
_AUTH_ERROR_CODES = {-1022, -2014, -2015}


class PortfolioError(Exception):
    """Base exception for all portfolio tracker errors."""


class ConfigurationError(PortfolioError):
    """Raised when local setup is missing or invalid (e.g. no API keys).

    Never retryable. Raised before any network I/O is attempted.
    """


class ValidationError(PortfolioError):
    """Raised when user input is rejected. The ledger is left untouched."""


class PersistenceError(PortfolioError):
    """Raised when the ledger store cannot be read or written.

    A failed write leaves the previously persisted state intact.
    """


class UpstreamError(PortfolioError):
    """Raised when a remote API call fails or returns a non-success status.

    Args:
        message: Human-readable description (never contains credentials).
        status_code: HTTP status of the remote response, None for network failures.
        body: Parsed remote error payload (dict) or truncated text, when available.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body

    @property
    def is_auth_failure(self) -> bool:
        """True when the remote side rejected our key or signature."""
        if self.status_code in (401, 403):
            return True
        if isinstance(self.body, dict):
            return self.body.get("code") in _AUTH_ERROR_CODES
        return False

    @property
    def is_transient(self) -> bool:
        """True for network failures, rate limiting, and 5xx responses."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status={self.status_code})"
