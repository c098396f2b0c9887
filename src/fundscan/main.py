"""Entry point for the opportunity scanner.

Wires all components together, optionally embeds the FastAPI query API,
and starts the refresh scheduler. When the API is enabled (default), the
scheduler and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. Exchange adapters (one per enabled venue)
2. OpportunityBuilder (qualification policy)
3. OpportunityCache and FundingHistoryCache (shared state)
4. SnapshotStore (JSON persistence)
5. RefreshScheduler (refresh loops)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from fundscan.config import AppSettings
from fundscan.data.snapshot_store import SnapshotStore
from fundscan.exchange.registry import build_adapters
from fundscan.logging import get_logger, setup_logging
from fundscan.market_data.funding_history import FundingHistoryCache
from fundscan.market_data.opportunity_builder import OpportunityBuilder
from fundscan.market_data.opportunity_cache import OpportunityCache
from fundscan.scheduler import RefreshScheduler


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all scanner components from settings.

    Does NOT perform any network I/O -- token discovery and the first
    refresh happen when the scheduler starts.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    adapters = build_adapters(settings.exchange)
    builder = OpportunityBuilder(settings.opportunity, settings.exchange.ids)
    opportunity_cache = OpportunityCache()
    funding_history_cache = FundingHistoryCache()
    store = SnapshotStore(settings.persistence)

    scheduler = RefreshScheduler(
        adapters=adapters,
        builder=builder,
        cache=opportunity_cache,
        history_cache=funding_history_cache,
        store=store,
        settings=settings.scheduler,
        history_settings=settings.history,
    )

    return {
        "adapters": adapters,
        "builder": builder,
        "opportunity_cache": opportunity_cache,
        "funding_history_cache": funding_history_cache,
        "store": store,
        "scheduler": scheduler,
    }


async def _start(settings: AppSettings, components: dict[str, Any]) -> None:
    """Warm-load persisted snapshots, then start the refresh loops."""
    if settings.persistence.load_on_startup:
        store: SnapshotStore = components["store"]
        await store.load_opportunities(components["opportunity_cache"])
        await store.load_funding_history(components["funding_history_cache"])
    await components["scheduler"].start()


async def _shutdown(components: dict[str, Any]) -> None:
    """Stop the loops, flush pending writes and close adapter clients."""
    logger = get_logger("fundscan.main")
    await components["scheduler"].stop()
    for adapter in components["adapters"]:
        try:
            await adapter.close()
        except Exception:
            logger.warning("adapter_close_failed", exchange=adapter.name, exc_info=True)
    logger.info("opportunity_scanner_stopped")


def _setup_signal_handlers(stop: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set the stop event.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("fundscan.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage scanner component lifecycle within the FastAPI application.

    On startup: exposes the caches and scheduler on app.state, warm-loads
    snapshots and starts the refresh loops.

    On shutdown: stops the loops, waits for snapshot writes, closes adapters.
    """
    logger = get_logger("fundscan.main")
    settings = app.state.settings
    components = app.state.components

    app.state.opportunity_cache = components["opportunity_cache"]
    app.state.funding_history_cache = components["funding_history_cache"]
    app.state.scheduler = components["scheduler"]

    await _start(settings, components)
    logger.info("lifespan_started", exchanges=settings.exchange.enabled)

    yield

    await _shutdown(components)


async def run() -> None:
    """Run the opportunity scanner.

    When the API is enabled (API_ENABLED=true, the default) uvicorn serves
    the query API and the lifespan manages the scheduler; uvicorn installs
    its own signal handling. Otherwise the scheduler runs until SIGINT/SIGTERM.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("fundscan.main")

    components = _build_components(settings)

    if settings.api.enabled:
        from fundscan.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop = asyncio.Event()
        _setup_signal_handlers(stop)

        logger.info("starting_without_api", exchanges=settings.exchange.enabled)

        try:
            await _start(settings, components)
            await stop.wait()
        finally:
            await _shutdown(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
