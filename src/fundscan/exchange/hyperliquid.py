"""Hyperliquid perpetuals adapter.

All reads go through the single POST /info endpoint. metaAndAssetCtxs
returns [meta, asset_ctxs] where asset_ctxs[i] describes meta.universe[i].
Hyperliquid funds hourly, so the reported rate only needs scaling to percent.
"""

import time
from decimal import Decimal

from fundscan.exceptions import TokenNotListedError
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


class HyperliquidAdapter(RestExchangeAdapter):
    """Snapshot and funding-history adapter for Hyperliquid."""

    name = "Hyperliquid"

    async def _meta_and_asset_ctxs(self) -> tuple[list[dict], list[dict]]:
        payload = await self._post_json("", {"type": "metaAndAssetCtxs"})
        if not isinstance(payload, list) or len(payload) < 2:
            return [], []
        universe = (payload[0] or {}).get("universe", [])
        return universe, payload[1] or []

    async def _fetch_tokens(self) -> list[str]:
        universe, _ = await self._meta_and_asset_ctxs()
        return [a["name"] for a in universe if not a.get("isDelisted")]

    async def get_snapshot(self, token: str) -> TokenSnapshot:
        universe, ctxs = await self._meta_and_asset_ctxs()

        idx = next(
            (i for i, asset in enumerate(universe) if asset.get("name") == token),
            None,
        )
        if idx is None or idx >= len(ctxs):
            raise TokenNotListedError(self.name, token)

        ctx = ctxs[idx]
        impact = ctx.get("impactPxs") or []
        bid = positive_or_none(impact[0]) if len(impact) > 0 else None
        ask = positive_or_none(impact[1]) if len(impact) > 1 else None
        mid = mid_price(bid, ask, to_decimal(ctx.get("oraclePx")))

        funding_rate = to_decimal(ctx.get("funding"), Decimal("0")) * 100
        open_interest = to_decimal(ctx.get("openInterest"), Decimal("0"))

        return TokenSnapshot(
            exchange=self.name,
            token=token,
            funding_rate=funding_rate,
            open_interest_usd=open_interest * mid,
            volume_usd=to_decimal(ctx.get("dayNtlVlm"), Decimal("0")),
            bid=bid,
            ask=ask,
            mid_price=mid,
        )

    async def get_funding_history(
        self, token: str, window_hours: int
    ) -> FundingHistorySummary | None:
        start_ms = int(time.time() * 1000) - window_hours * 3_600_000
        records = await self._post_json(
            "", {"type": "fundingHistory", "coin": token, "startTime": start_ms}
        )
        if not isinstance(records, list) or not records:
            logger.debug(
                "no_funding_history", token=token, window_hours=window_hours
            )
            return None
        return summarize_funding_history(
            records, rate_key="fundingRate", time_key="time"
        )
