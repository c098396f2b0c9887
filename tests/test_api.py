"""Tests for the query API routes.

Requests go through httpx.AsyncClient over ASGITransport; the caches and
scheduler are placed on app.state directly, as the lifespan does at startup.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest

from fundscan.api import create_app
from fundscan.api.routes import parse_exchange_ids
from fundscan.market_data.funding_history import FundingHistoryCache
from fundscan.market_data.opportunity_cache import OpportunityCache
from fundscan.models import FundingHistorySummary, Opportunity


def _make_opportunity(buy: int, sell: int, token: str = "BTC") -> Opportunity:
    return Opportunity(
        token=token,
        buy_exchange=buy,
        sell_exchange=sell,
        avg_funding_buy=Decimal("-0.01"),
        avg_funding_sell=Decimal("0.01"),
        apr=Decimal("175.2"),
        spread=Decimal("0.001"),
    )


async def _make_app(scheduler=None):
    cache = OpportunityCache()
    await cache.replace_for_token(
        "BTC",
        [_make_opportunity(1, 4), _make_opportunity(4, 6), _make_opportunity(6, 7)],
    )
    history = FundingHistoryCache()
    await history.put(
        "BTC",
        "Hyperliquid",
        "1h",
        FundingHistorySummary(avg_funding_rate=Decimal("0.00125"), apr=Decimal("10.95")),
    )

    app = create_app()
    app.state.opportunity_cache = cache
    app.state.funding_history_cache = history
    if scheduler is not None:
        app.state.scheduler = scheduler
    return app


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestParseExchangeIds:
    def test_valid(self) -> None:
        assert parse_exchange_ids("1,4, 6") == [1, 4, 6]

    def test_garbage_skipped(self) -> None:
        assert parse_exchange_ids("1,x,,7") == [1, 7]

    def test_empty(self) -> None:
        assert parse_exchange_ids("") == []


class TestOpportunityEndpoint:
    @pytest.mark.asyncio
    async def test_all_without_filter(self) -> None:
        app = await _make_app()
        async with _client(app) as client:
            resp = await client.get("/api/opportunity")

        assert resp.status_code == 200
        body = resp.json()
        assert body["lastUpdate"] is not None
        assert len(body["opportunities"]) == 3
        first = body["opportunities"][0]
        assert first["buyExchange"] == 1
        assert first["sellExchange"] == 4
        assert first["apr"] == pytest.approx(175.2)
        assert first["spread"] == pytest.approx(0.001)
        assert first["buyBid"] is None

    @pytest.mark.asyncio
    async def test_filter_requires_both_legs(self) -> None:
        app = await _make_app()
        async with _client(app) as client:
            resp = await client.get("/api/opportunity", params={"exchanges": "1,4,6"})

        pairs = {(o["buyExchange"], o["sellExchange"]) for o in resp.json()["opportunities"]}
        assert pairs == {(1, 4), (4, 6)}

    @pytest.mark.asyncio
    async def test_empty_selection(self) -> None:
        app = await _make_app()
        async with _client(app) as client:
            resp = await client.get("/api/opportunity", params={"exchanges": ""})

        assert resp.status_code == 200
        assert resp.json()["opportunities"] == []

    @pytest.mark.asyncio
    async def test_cors_header(self) -> None:
        app = await _make_app()
        async with _client(app) as client:
            resp = await client.get(
                "/api/opportunity", headers={"Origin": "http://localhost:3000"}
            )

        assert resp.headers["access-control-allow-origin"] == "*"


class TestFundingHistoryEndpoint:
    @pytest.mark.asyncio
    async def test_document(self) -> None:
        app = await _make_app()
        async with _client(app) as client:
            resp = await client.get("/api/funding-history")

        body = resp.json()
        entry = body["fundingByTokenAndExchange"]["BTC"]["Hyperliquid"]
        assert entry["1h"] == {"fundingRate": 0.00125, "apr": 10.95}
        assert body["lastUpdate"] is not None


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_with_scheduler(self) -> None:
        scheduler = MagicMock()
        scheduler.get_status.return_value = {"running": True, "universe_size": 3}
        app = await _make_app(scheduler)
        async with _client(app) as client:
            resp = await client.get("/api/health")

        assert resp.status_code == 200
        assert resp.json() == {"running": True, "universe_size": 3}

    @pytest.mark.asyncio
    async def test_without_scheduler(self) -> None:
        app = await _make_app()
        async with _client(app) as client:
            resp = await client.get("/api/health")

        assert resp.status_code == 503
        assert resp.json() == {"running": False}
