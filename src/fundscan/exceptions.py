"""Custom exceptions for the opportunity scanner.

Adapter, cache and persistence exceptions live here to avoid circular
imports between the exchange layer and the refresh scheduler.
"""


class ScannerError(Exception):
    """Base exception for all scanner errors."""


class ExchangeError(ScannerError):
    """Base exception for exchange adapter failures."""

    def __init__(self, exchange: str, message: str) -> None:
        super().__init__(f"{exchange}: {message}")
        self.exchange = exchange


class TokenNotListedError(ExchangeError):
    """Raised when a token is not tradable on the venue."""

    def __init__(self, exchange: str, token: str) -> None:
        super().__init__(exchange, f"token {token} not listed")
        self.token = token


class ExchangeRequestError(ExchangeError):
    """Raised on a transient HTTP or network failure talking to a venue."""

    def __init__(
        self, exchange: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(exchange, message)
        self.status_code = status_code


class PersistenceError(ScannerError):
    """Raised when a cache snapshot cannot be written to disk."""
