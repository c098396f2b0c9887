"""Aster perpetuals adapter (Binance-style futures REST API).

ASTER CONVENTION: premiumIndex reports lastFundingRate as a raw fraction
per funding interval. The interval is not published, so it is inferred
from the distance between successive nextFundingTime values (8h until two
distinct values have been observed).
"""

import asyncio
import time
from decimal import Decimal

import httpx

from fundscan.exceptions import ExchangeRequestError, TokenNotListedError
from fundscan.exchange.history import summarize_funding_history
from fundscan.exchange.rest import (
    RestExchangeAdapter,
    mid_price,
    positive_or_none,
    to_decimal,
)
from fundscan.logging import get_logger
from fundscan.models import FundingHistorySummary, TokenSnapshot

logger = get_logger(__name__)

_DEFAULT_INTERVAL_HOURS = Decimal("8")
_MS_PER_HOUR = Decimal("3600000")


class AsterAdapter(RestExchangeAdapter):
    """Snapshot and funding-history adapter for Aster."""

    name = "Aster"

    def __init__(
        self,
        base_url: str,
        quote_asset: str = "USDT",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, client=client)
        self._quote = quote_asset
        self._last_next_funding: dict[str, int] = {}
        self._interval_hours: dict[str, Decimal] = {}

    def _symbol(self, token: str) -> str:
        return f"{token}{self._quote}"

    async def _fetch_tokens(self) -> list[str]:
        tickers = await self._get_json("/ticker/24hr")
        return [
            t["symbol"][: -len(self._quote)]
            for t in tickers
            if t.get("symbol", "").endswith(self._quote)
            and len(t["symbol"]) > len(self._quote)
        ]

    def _infer_interval(self, token: str, next_funding_time: int | None) -> Decimal:
        """Track nextFundingTime per token and return the funding interval in hours."""
        if next_funding_time:
            previous = self._last_next_funding.get(token)
            if previous and next_funding_time > previous:
                self._interval_hours[token] = (
                    Decimal(next_funding_time - previous) / _MS_PER_HOUR
                )
            self._last_next_funding[token] = next_funding_time
        return self._interval_hours.get(token, _DEFAULT_INTERVAL_HOURS)

    async def get_snapshot(self, token: str) -> TokenSnapshot:
        symbol = self._symbol(token)
        try:
            premium = await self._get_json("/premiumIndex", params={"symbol": symbol})
        except ExchangeRequestError as e:
            # Unknown symbols are rejected with HTTP 400
            if e.status_code == 400:
                raise TokenNotListedError(self.name, token) from e
            raise

        raw_rate = to_decimal(premium.get("lastFundingRate"), Decimal("0"))
        next_funding = premium.get("nextFundingTime")
        interval = self._infer_interval(token, int(next_funding) if next_funding else None)
        funding_rate = raw_rate / interval * 100

        oi, ticker, book = await asyncio.gather(
            self._get_json("/openInterest", params={"symbol": symbol}),
            self._get_json("/ticker/24hr", params={"symbol": symbol}),
            self._get_json("/ticker/bookTicker", params={"symbol": symbol}),
        )

        bid = positive_or_none(book.get("bidPrice"))
        ask = positive_or_none(book.get("askPrice"))
        mid = mid_price(bid, ask, to_decimal(ticker.get("lastPrice")))

        open_interest = to_decimal(oi.get("openInterest"), Decimal("0"))
        volume = to_decimal(ticker.get("volume"), Decimal("0"))

        logger.debug(
            "aster_snapshot",
            token=token,
            funding_rate=str(funding_rate),
            interval_hours=str(interval),
        )

        return TokenSnapshot(
            exchange=self.name,
            token=token,
            funding_rate=funding_rate,
            open_interest_usd=open_interest * mid,
            volume_usd=volume * mid,
            bid=bid,
            ask=ask,
            mid_price=mid,
        )

    async def get_funding_history(
        self, token: str, window_hours: int
    ) -> FundingHistorySummary | None:
        start_ms = int(time.time() * 1000) - window_hours * 3_600_000
        try:
            records = await self._get_json(
                "/fundingRate",
                params={
                    "symbol": self._symbol(token),
                    "startTime": start_ms,
                    "limit": 1000,
                },
            )
        except ExchangeRequestError as e:
            if e.status_code == 400:
                return None
            raise

        if not isinstance(records, list):
            return None
        return summarize_funding_history(
            records, rate_key="fundingRate", time_key="fundingTime"
        )
