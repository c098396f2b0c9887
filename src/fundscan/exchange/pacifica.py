"""Pacifica perpetuals adapter.

Pacifica funds hourly; the rate is a raw fraction scaled here to percent.
24h volume is already USD notional, open interest is in base units.
"""

from decimal import Decimal

from fundscan.exceptions import TokenNotListedError
from fundscan.exchange.rest import (
    RestExchangeAdapter,
    mid_price,
    positive_or_none,
    to_decimal,
)
from fundscan.models import TokenSnapshot


class PacificaAdapter(RestExchangeAdapter):
    """Snapshot adapter for Pacifica."""

    name = "Pacifica"

    async def _fetch_tokens(self) -> list[str]:
        payload = await self._get_json("/info")
        return [d["symbol"] for d in payload.get("data") or [] if d.get("symbol")]

    async def get_snapshot(self, token: str) -> TokenSnapshot:
        prices = await self._get_json("/info/prices")
        info = next(
            (d for d in prices.get("data") or [] if d.get("symbol") == token), None
        )
        if info is None:
            raise TokenNotListedError(self.name, token)

        book = await self._get_json("/book", params={"symbol": token})
        levels = (book.get("data") or {}).get("l") or [[], []]
        bids = levels[0] if len(levels) > 0 else []
        asks = levels[1] if len(levels) > 1 else []
        bid = positive_or_none(bids[0].get("p")) if bids else None
        ask = positive_or_none(asks[0].get("p")) if asks else None

        fallback = to_decimal(info.get("mid")) or to_decimal(info.get("mark"))
        mid = mid_price(bid, ask, fallback)

        open_interest = to_decimal(info.get("open_interest"), Decimal("0"))

        return TokenSnapshot(
            exchange=self.name,
            token=token,
            funding_rate=to_decimal(info.get("funding"), Decimal("0")) * 100,
            open_interest_usd=open_interest * mid,
            volume_usd=to_decimal(info.get("volume_24h"), Decimal("0")),
            bid=bid,
            ask=ask,
            mid_price=mid,
        )
