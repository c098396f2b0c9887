"""Async-safe cache of funding-history summaries.

Layout (mirrors the persisted document):
  token -> exchange -> {"lastUpdate": epoch_ms, <window label>: {"fundingRate", "apr"}}
"""

import asyncio
import copy
import time
from typing import Any

from fundscan.market_data.opportunity_cache import utc_now_iso
from fundscan.models import FundingHistorySummary


class FundingHistoryCache:
    """Nested per-token, per-exchange, per-window funding summaries."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._last_update: str | None = None
        self._lock = asyncio.Lock()

    @property
    def last_update(self) -> str | None:
        return self._last_update

    async def put(
        self,
        token: str,
        exchange: str,
        window: str,
        summary: FundingHistorySummary,
    ) -> None:
        """Store the summary for one (token, exchange, window)."""
        async with self._lock:
            entry = self._data.setdefault(token, {}).setdefault(exchange, {})
            entry[window] = {
                "fundingRate": summary.avg_funding_rate,
                "apr": summary.apr,
            }
            entry["lastUpdate"] = int(time.time() * 1000)
            self._last_update = utc_now_iso()

    async def get(self, token: str, exchange: str, window: str) -> dict | None:
        async with self._lock:
            entry = self._data.get(token, {}).get(exchange, {}).get(window)
            return dict(entry) if entry is not None else None

    async def snapshot_all(self) -> tuple[str | None, dict[str, dict[str, dict[str, Any]]]]:
        """Return (last_update, deep copy of the whole mapping)."""
        async with self._lock:
            return self._last_update, copy.deepcopy(self._data)

    async def load(
        self, last_update: str | None, data: dict[str, dict[str, dict[str, Any]]]
    ) -> None:
        """Replace the whole cache from a persisted document."""
        async with self._lock:
            self._data = copy.deepcopy(data)
            self._last_update = last_update
