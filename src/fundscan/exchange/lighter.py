"""Lighter perpetuals adapter.

Markets are addressed by numeric market_id, resolved from the symbol via
orderBookDetails on every snapshot. The funding rate is the most recent
hourly record from the fundings endpoint, reported as a percentage.
"""

import time
from decimal import Decimal

from fundscan.exceptions import TokenNotListedError
from fundscan.exchange.rest import (
    RestExchangeAdapter,
    mid_price,
    positive_or_none,
    to_decimal,
)
from fundscan.models import TokenSnapshot


class LighterAdapter(RestExchangeAdapter):
    """Snapshot adapter for Lighter."""

    name = "Lighter"

    async def _order_book_details(self) -> list[dict]:
        payload = await self._get_json("/orderBookDetails")
        return payload.get("order_book_details") or []

    async def _fetch_tokens(self) -> list[str]:
        return [d["symbol"] for d in await self._order_book_details() if d.get("symbol")]

    async def _latest_funding(self, market_id: int) -> Decimal:
        now = int(time.time())
        payload = await self._get_json(
            "/fundings",
            params={
                "market_id": market_id,
                "resolution": "1h",
                "start_timestamp": now - 3600,
                "end_timestamp": now,
                "count_back": 10,
            },
        )
        fundings = payload.get("fundings") or []
        if not fundings:
            return Decimal("0")
        latest = max(fundings, key=lambda f: f.get("timestamp", 0))
        return to_decimal(latest.get("rate"), Decimal("0"))

    async def get_snapshot(self, token: str) -> TokenSnapshot:
        market = next(
            (d for d in await self._order_book_details() if d.get("symbol") == token),
            None,
        )
        if market is None:
            raise TokenNotListedError(self.name, token)

        market_id = market["market_id"]
        funding_rate = await self._latest_funding(market_id)

        orders = await self._get_json(
            "/orderBookOrders", params={"market_id": market_id, "limit": 1}
        )
        asks = orders.get("asks") or []
        bids = orders.get("bids") or []
        ask = positive_or_none(asks[0].get("price")) if asks else None
        bid = positive_or_none(bids[0].get("price")) if bids else None
        mid = mid_price(bid, ask, to_decimal(market.get("last_trade_price")))

        open_interest = to_decimal(market.get("open_interest"), Decimal("0"))

        return TokenSnapshot(
            exchange=self.name,
            token=token,
            funding_rate=funding_rate,
            open_interest_usd=open_interest * mid,
            volume_usd=to_decimal(market.get("daily_quote_token_volume"), Decimal("0")),
            bid=bid,
            ask=ask,
            mid_price=mid,
        )
