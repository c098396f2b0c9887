"""Tests for component wiring in main."""

from unittest.mock import AsyncMock

import pytest

from fundscan.config import AppSettings, ExchangeSettings, PersistenceSettings
from fundscan.data.snapshot_store import SnapshotStore
from fundscan.main import _build_components, _shutdown
from fundscan.scheduler import RefreshScheduler


@pytest.fixture
def settings(persistence_settings: PersistenceSettings) -> AppSettings:
    return AppSettings(
        exchange=ExchangeSettings(enabled=["Hyperliquid", "Lighter"]),
        persistence=persistence_settings,
    )


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_wiring(self, settings: AppSettings) -> None:
        components = _build_components(settings)
        try:
            assert [a.name for a in components["adapters"]] == ["Hyperliquid", "Lighter"]
            assert isinstance(components["store"], SnapshotStore)
            assert isinstance(components["scheduler"], RefreshScheduler)
            assert components["scheduler"].running is False
        finally:
            for adapter in components["adapters"]:
                await adapter.close()

    @pytest.mark.asyncio
    async def test_shutdown_closes_adapters(self, settings: AppSettings) -> None:
        components = _build_components(settings)
        for adapter in components["adapters"]:
            await adapter.close()
        failing = AsyncMock()
        failing.name = "Broken"
        failing.close.side_effect = RuntimeError("already closed")
        healthy = AsyncMock()
        healthy.name = "Healthy"
        components["adapters"] = [failing, healthy]

        await _shutdown(components)

        failing.close.assert_awaited_once()
        healthy.close.assert_awaited_once()
