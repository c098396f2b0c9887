"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Exchange adapter selection, identifiers and endpoints."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    enabled: list[str] = ["Aster", "Hyperliquid", "Lighter", "Pacifica"]
    # Numeric ids shared with the frontend
    ids: dict[str, int] = {
        "Hyperliquid": 1,
        "Aster": 4,
        "Lighter": 6,
        "Pacifica": 7,
    }
    quote_asset: str = "USDT"
    request_timeout: float = 10.0

    aster_base_url: str = "https://fapi.asterdex.com/fapi/v1"
    hyperliquid_base_url: str = "https://api.hyperliquid.xyz/info"
    lighter_base_url: str = "https://mainnet.zklighter.elliot.ai/api/v1"
    pacifica_base_url: str = "https://api.pacifica.fi/api/v1"


class OpportunitySettings(BaseSettings):
    """Opportunity qualification policy."""

    model_config = SettingsConfigDict(env_prefix="OPPORTUNITY_")

    min_apr: Decimal = Decimal("1")  # percent per year
    hours_per_year: Decimal = Decimal("8760")  # 365 * 24
    mirror_policy: Literal["independent", "first_wins"] = "independent"


class SchedulerSettings(BaseSettings):
    """Refresh loop pacing.

    The fixed delays are the only throttling applied to upstream APIs.
    All fields configurable via SCHEDULER_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    token_delay: float = 1.0  # seconds between tokens in the full refresh
    cycle_delay: float = 5.0  # seconds between full refresh cycles
    fast_refresh_enabled: bool = False
    fast_refresh_interval: float = 15.0
    # Overrides list_tokens() discovery when non-empty
    static_tokens: list[str] = []


class HistorySettings(BaseSettings):
    """Funding-history refresh configuration.

    Controls which venue's history is tracked, the lookback windows,
    retry behaviour for transient failures and pacing between requests.
    All fields configurable via HISTORY_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="HISTORY_")

    enabled: bool = True
    exchange: str = "Hyperliquid"
    windows: dict[str, int] = {
        "1h": 1,
        "8h": 8,
        "1d": 24,
        "7d": 24 * 7,
        "14d": 24 * 14,
        "31d": 24 * 31,
    }
    max_attempts: int = 3
    retry_delay: float = 2.0  # fixed backoff between attempts
    window_delay: float = 1.0
    token_delay: float = 1.0


class PersistenceSettings(BaseSettings):
    """Snapshot file locations."""

    model_config = SettingsConfigDict(env_prefix="PERSISTENCE_")

    data_dir: str = "data"
    opportunities_file: str = "opportunities.json"
    funding_history_file: str = "funding_history.json"
    load_on_startup: bool = True


class ApiSettings(BaseSettings):
    """Query API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 4000


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    opportunity: OpportunitySettings = OpportunitySettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    history: HistorySettings = HistorySettings()
    persistence: PersistenceSettings = PersistenceSettings()
    api: ApiSettings = ApiSettings()
