"""Shared httpx plumbing for REST-based exchange adapters.

Wraps an httpx.AsyncClient with JSON decoding and error translation so
that every adapter raises ExchangeRequestError on transport failures and
non-2xx responses. Also provides the Decimal parsing helpers used to
normalise vendor payloads.
"""

from abc import abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from fundscan.exceptions import ExchangeError, ExchangeRequestError
from fundscan.exchange.client import ExchangeAdapter
from fundscan.logging import get_logger

logger = get_logger(__name__)


def to_decimal(raw: Any, default: Decimal | None = None) -> Decimal | None:
    """Parse a vendor numeric field (string or number) into Decimal.

    Returns default when the value is missing or unparseable.
    """
    if raw is None or raw == "":
        return default
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return default
    if not value.is_finite():
        return default
    return value


def positive_or_none(raw: Any) -> Decimal | None:
    """Parse a quote price, mapping missing, zero or negative values to None."""
    value = to_decimal(raw)
    if value is None or value <= 0:
        return None
    return value


def mid_price(
    bid: Decimal | None, ask: Decimal | None, fallback: Decimal | None
) -> Decimal:
    """Midpoint of the book when both sides are quoted, else the fallback.

    A missing fallback yields Decimal("0"), which callers treat as a
    degenerate price (USD conversions become zero).
    """
    if bid is not None and ask is not None:
        return (bid + ask) / 2
    if fallback is not None and fallback > 0:
        return fallback
    return Decimal("0")


class RestExchangeAdapter(ExchangeAdapter):
    """Base class for adapters talking to a JSON REST API over httpx.

    Args:
        base_url: API root, without trailing slash.
        timeout: Request timeout in seconds.
        client: Optional pre-built client (tests inject a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._tokens: list[str] | None = None

    async def close(self) -> None:
        """Close the underlying HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()
        logger.debug("exchange_adapter_closed", exchange=self.name)

    async def list_tokens(self) -> list[str]:
        """Return the venue's tokens, cached after the first success."""
        if self._tokens is not None:
            return list(self._tokens)
        try:
            tokens = await self._fetch_tokens()
        except (ExchangeError, KeyError, TypeError, AttributeError, ValueError):
            # Malformed listings count as a failed discovery
            logger.warning("list_tokens_failed", exchange=self.name, exc_info=True)
            return []
        self._tokens = tokens
        logger.info("tokens_listed", exchange=self.name, count=len(tokens))
        return list(tokens)

    @abstractmethod
    async def _fetch_tokens(self) -> list[str]:
        """Query the venue for its listed tokens."""
        ...

    async def _get_json(self, path: str, params: dict | None = None) -> Any:
        """GET base_url + path and decode the JSON body."""
        return await self._request("GET", path, params=params)

    async def _post_json(self, path: str, body: dict) -> Any:
        """POST a JSON body to base_url + path and decode the JSON response."""
        return await self._request("POST", path, json=body)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ExchangeRequestError(
                self.name, f"{method} {path} failed: {e!r}"
            ) from e

        if response.status_code >= 400:
            raise ExchangeRequestError(
                self.name,
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExchangeRequestError(
                self.name, f"{method} {path} returned invalid JSON"
            ) from e
