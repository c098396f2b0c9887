"""Tests for OpportunityCache -- token-scoped replacement and exchange-set queries.

Verifies:
- replace_for_token drops stale entries of the token only
- Other tokens are untouched by a replacement
- update_existing never adds or removes keys
- query_by_exchange_set requires both legs to be selected
- Empty/absent selections yield nothing
- load() warm-starts the cache
"""

from decimal import Decimal

import pytest

from fundscan.market_data.opportunity_cache import OpportunityCache, utc_now_iso
from fundscan.models import Opportunity


def _make_opportunity(
    token: str = "BTC",
    buy: int = 1,
    sell: int = 4,
    apr: str = "10",
) -> Opportunity:
    return Opportunity(
        token=token,
        buy_exchange=buy,
        sell_exchange=sell,
        avg_funding_buy=Decimal("-0.01"),
        avg_funding_sell=Decimal("0.01"),
        apr=Decimal(apr),
        spread=None,
    )


class TestUtcNowIso:
    def test_format(self) -> None:
        stamp = utc_now_iso()
        assert stamp.endswith("Z")
        assert "T" in stamp
        # Millisecond precision: HH:MM:SS.mmm
        assert len(stamp.split(".")[-1]) == 4


class TestReplaceForToken:
    """Token-scoped atomic replacement."""

    @pytest.mark.asyncio
    async def test_insert_and_timestamp(self) -> None:
        cache = OpportunityCache()
        assert cache.last_update is None

        await cache.replace_for_token("BTC", [_make_opportunity()])

        assert len(cache) == 1
        assert cache.last_update is not None

    @pytest.mark.asyncio
    async def test_stale_entries_removed(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token(
            "BTC", [_make_opportunity(buy=1, sell=4), _make_opportunity(buy=4, sell=6)]
        )

        await cache.replace_for_token("BTC", [_make_opportunity(buy=6, sell=1)])

        _, entries = await cache.snapshot_all()
        assert [o.key for o in entries] == [("BTC", 6, 1)]

    @pytest.mark.asyncio
    async def test_empty_replacement_clears_token(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity()])

        await cache.replace_for_token("BTC", [])

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_other_tokens_untouched(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity("BTC")])
        await cache.replace_for_token("ETH", [_make_opportunity("ETH")])

        await cache.replace_for_token("BTC", [])

        _, entries = await cache.snapshot_all()
        assert [o.token for o in entries] == ["ETH"]

    @pytest.mark.asyncio
    async def test_same_key_overwritten(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity(apr="10")])
        await cache.replace_for_token("BTC", [_make_opportunity(apr="20")])

        _, entries = await cache.snapshot_all()
        assert len(entries) == 1
        assert entries[0].apr == Decimal("20")

    @pytest.mark.asyncio
    async def test_foreign_token_rejected(self) -> None:
        cache = OpportunityCache()
        with pytest.raises(ValueError):
            await cache.replace_for_token("BTC", [_make_opportunity("ETH")])
        assert len(cache) == 0


class TestUpdateExisting:
    """Fast-refresh updates of already-known keys."""

    @pytest.mark.asyncio
    async def test_only_known_keys_updated(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity(buy=1, sell=4, apr="10")])

        updated = await cache.update_existing(
            "BTC",
            [
                _make_opportunity(buy=1, sell=4, apr="30"),
                _make_opportunity(buy=4, sell=6, apr="50"),
            ],
        )

        assert updated == 1
        _, entries = await cache.snapshot_all()
        assert [(o.key, o.apr) for o in entries] == [(("BTC", 1, 4), Decimal("30"))]

    @pytest.mark.asyncio
    async def test_missing_keys_not_removed(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token(
            "BTC", [_make_opportunity(buy=1, sell=4), _make_opportunity(buy=4, sell=1)]
        )

        updated = await cache.update_existing("BTC", [])

        assert updated == 0
        assert len(cache) == 2


class TestQueryByExchangeSet:
    """Filtering by the set of selected venues."""

    @pytest.mark.asyncio
    async def test_both_legs_must_match(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token(
            "BTC",
            [
                _make_opportunity(buy=1, sell=4),
                _make_opportunity(buy=4, sell=6),
                _make_opportunity(buy=6, sell=7),
            ],
        )

        result = await cache.query_by_exchange_set({1, 4, 6})

        assert {(o.buy_exchange, o.sell_exchange) for o in result} == {(1, 4), (4, 6)}

    @pytest.mark.asyncio
    async def test_single_exchange_matches_nothing(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity(buy=1, sell=4)])

        assert await cache.query_by_exchange_set([1]) == []

    @pytest.mark.asyncio
    async def test_empty_selection(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity()])

        assert await cache.query_by_exchange_set([]) == []
        assert await cache.query_by_exchange_set(None) == []


class TestActiveTokensAndLoad:
    @pytest.mark.asyncio
    async def test_active_tokens_deduplicated(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token(
            "BTC", [_make_opportunity("BTC", 1, 4), _make_opportunity("BTC", 4, 1)]
        )
        await cache.replace_for_token("SOL", [_make_opportunity("SOL")])

        assert await cache.active_tokens() == ["BTC", "SOL"]

    @pytest.mark.asyncio
    async def test_load_replaces_everything(self) -> None:
        cache = OpportunityCache()
        await cache.replace_for_token("BTC", [_make_opportunity("BTC")])

        await cache.load("2024-01-01T00:00:00.000Z", [_make_opportunity("ETH")])

        last_update, entries = await cache.snapshot_all()
        assert last_update == "2024-01-01T00:00:00.000Z"
        assert [o.token for o in entries] == ["ETH"]
