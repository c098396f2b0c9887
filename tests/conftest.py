"""Shared test fixtures for the opportunity scanner."""

from decimal import Decimal

import pytest

from fundscan.config import (
    HistorySettings,
    OpportunitySettings,
    PersistenceSettings,
    SchedulerSettings,
)

EXCHANGE_IDS = {"Hyperliquid": 1, "Aster": 4, "Lighter": 6, "Pacifica": 7}


@pytest.fixture
def exchange_ids() -> dict[str, int]:
    """Venue name to numeric id mapping used across tests."""
    return dict(EXCHANGE_IDS)


@pytest.fixture
def opportunity_settings() -> OpportunitySettings:
    """Default qualification policy: 1%/year APR cutoff, independent directions."""
    return OpportunitySettings(
        min_apr=Decimal("1"),
        hours_per_year=Decimal("8760"),
        mirror_policy="independent",
    )


@pytest.fixture
def scheduler_settings() -> SchedulerSettings:
    """Scheduler settings with no pacing delays."""
    return SchedulerSettings(
        token_delay=0.0,
        cycle_delay=0.0,
        fast_refresh_enabled=False,
        fast_refresh_interval=0.0,
        static_tokens=[],
    )


@pytest.fixture
def history_settings() -> HistorySettings:
    """History settings with two windows and no pacing delays."""
    return HistorySettings(
        enabled=True,
        exchange="Hyperliquid",
        windows={"1h": 1, "1d": 24},
        max_attempts=3,
        retry_delay=0.0,
        window_delay=0.0,
        token_delay=0.0,
    )


@pytest.fixture
def persistence_settings(tmp_path) -> PersistenceSettings:
    """Persistence rooted in a per-test temporary directory."""
    return PersistenceSettings(data_dir=str(tmp_path / "data"))

