"""Tests for fetch_snapshots -- concurrent per-token fan-out.

Verifies:
- Successful snapshots are returned in adapter order
- A failing adapter never fails the group
- Unlisted tokens and None results are dropped
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from fundscan.exceptions import ExchangeRequestError, TokenNotListedError
from fundscan.market_data.fan_out import fetch_snapshots
from fundscan.models import TokenSnapshot


def _make_adapter(name: str, result=None, error: Exception | None = None) -> MagicMock:
    adapter = MagicMock()
    adapter.name = name
    if error is not None:
        adapter.get_snapshot = AsyncMock(side_effect=error)
    else:
        adapter.get_snapshot = AsyncMock(return_value=result)
    return adapter


def _snap(exchange: str) -> TokenSnapshot:
    return TokenSnapshot(exchange=exchange, token="BTC", funding_rate=Decimal("0.01"))


class TestFetchSnapshots:
    @pytest.mark.asyncio
    async def test_all_succeed_in_order(self) -> None:
        adapters = [
            _make_adapter("Aster", _snap("Aster")),
            _make_adapter("Hyperliquid", _snap("Hyperliquid")),
        ]

        result = await fetch_snapshots(adapters, "BTC")

        assert [s.exchange for s in result] == ["Aster", "Hyperliquid"]
        for adapter in adapters:
            adapter.get_snapshot.assert_awaited_once_with("BTC")

    @pytest.mark.asyncio
    async def test_failure_isolated(self) -> None:
        adapters = [
            _make_adapter("Aster", error=ExchangeRequestError("Aster", "timeout")),
            _make_adapter("Hyperliquid", _snap("Hyperliquid")),
            _make_adapter("Lighter", error=RuntimeError("bad payload")),
        ]

        result = await fetch_snapshots(adapters, "BTC")

        assert [s.exchange for s in result] == ["Hyperliquid"]

    @pytest.mark.asyncio
    async def test_unlisted_and_none_dropped(self) -> None:
        adapters = [
            _make_adapter("Aster", error=TokenNotListedError("Aster", "BTC")),
            _make_adapter("Hyperliquid", None),
            _make_adapter("Lighter", _snap("Lighter")),
        ]

        result = await fetch_snapshots(adapters, "BTC")

        assert [s.exchange for s in result] == ["Lighter"]

    @pytest.mark.asyncio
    async def test_no_adapters(self) -> None:
        assert await fetch_snapshots([], "BTC") == []
