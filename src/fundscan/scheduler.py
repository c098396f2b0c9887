"""Refresh scheduler -- drives the independent, indefinitely repeating loops.

Loops (each an asyncio.Task owned by the scheduler):
  1. FULL REFRESH: walk the token universe captured at startup in a fixed
     order; per token fan out to all venues, build opportunities, replace
     the token's cache entries and persist. Fixed delay between tokens,
     fixed delay between cycles.
  2. FAST REFRESH (optional): re-fetch only tokens already in the cache on
     a shorter period, updating matching entries in place. Tokens that
     fail to refresh keep their entries.
  3. FUNDING HISTORY: per token and lookback window, fetch the venue's
     funding history with fixed-delay retries, store it in the history
     cache and persist after each token.

A failing iteration is logged and the loop carries on after its delay.
The only way out is stop(), which cancels the loops at their next
suspension point and waits for in-flight snapshot writes.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from fundscan.config import HistorySettings, SchedulerSettings
from fundscan.data.snapshot_store import SnapshotStore
from fundscan.exchange.client import ExchangeAdapter
from fundscan.logging import bind_loop_context, get_logger
from fundscan.market_data.fan_out import fetch_snapshots
from fundscan.market_data.funding_history import FundingHistoryCache
from fundscan.market_data.opportunity_builder import OpportunityBuilder
from fundscan.market_data.opportunity_cache import OpportunityCache
from fundscan.models import FundingHistorySummary, Opportunity

logger = get_logger(__name__)


class RefreshScheduler:
    """Owns the refresh loops and the caches they write to.

    Args:
        adapters: Configured exchange adapters, in fan-out order.
        builder: Opportunity builder.
        cache: Opportunity cache shared with the query surface.
        history_cache: Funding-history cache shared with the query surface.
        store: Snapshot persistence.
        settings: Loop pacing for the opportunity loops.
        history_settings: Funding-history loop configuration.
    """

    def __init__(
        self,
        adapters: list[ExchangeAdapter],
        builder: OpportunityBuilder,
        cache: OpportunityCache,
        history_cache: FundingHistoryCache,
        store: SnapshotStore,
        settings: SchedulerSettings,
        history_settings: HistorySettings,
    ) -> None:
        self._adapters = adapters
        self._builder = builder
        self._cache = cache
        self._history_cache = history_cache
        self._store = store
        self._settings = settings
        self._history_settings = history_settings

        self._universe: list[str] = []
        self._history_tokens: list[str] = []
        self._running = False
        self._tasks: dict[str, asyncio.Task] = {}  # type: ignore[type-arg]
        self._pending_writes: set[asyncio.Task] = set()  # type: ignore[type-arg]

        self._full_cycles = 0
        self._tokens_refreshed = 0
        self._fast_passes = 0
        self._history_tokens_processed = 0
        self._last_error_at: float | None = None

    @property
    def universe(self) -> list[str]:
        return list(self._universe)

    @property
    def running(self) -> bool:
        return self._running

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def discover_universe(self) -> list[str]:
        """Capture the token universe once: union of every venue's tokens.

        Order is deterministic: adapter order, then each venue's listing
        order, first occurrence wins. SCHEDULER_STATIC_TOKENS overrides
        discovery when set.
        """
        if self._settings.static_tokens:
            self._universe = list(dict.fromkeys(self._settings.static_tokens))
        else:
            listings = await asyncio.gather(
                *(adapter.list_tokens() for adapter in self._adapters)
            )
            self._universe = list(
                dict.fromkeys(token for tokens in listings for token in tokens)
            )

        history_adapter = self._history_adapter()
        if history_adapter is not None and not self._settings.static_tokens:
            listed = set(await history_adapter.list_tokens())
            self._history_tokens = [t for t in self._universe if t in listed]
        else:
            self._history_tokens = list(self._universe)

        if not self._universe:
            logger.warning("empty_token_universe")
        logger.info(
            "token_universe_discovered",
            tokens=len(self._universe),
            history_tokens=len(self._history_tokens),
        )
        return list(self._universe)

    async def start(self) -> None:
        """Discover the universe (if not done yet) and launch the loops."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        if not self._universe:
            await self.discover_universe()

        self._running = True
        self._tasks["full_refresh"] = asyncio.create_task(
            self._full_refresh_loop(), name="full_refresh"
        )
        if self._settings.fast_refresh_enabled:
            self._tasks["fast_refresh"] = asyncio.create_task(
                self._fast_refresh_loop(), name="fast_refresh"
            )
        if self._history_settings.enabled and self._history_adapter() is not None:
            self._tasks["funding_history"] = asyncio.create_task(
                self._funding_history_loop(), name="funding_history"
            )

        logger.info("scheduler_started", loops=sorted(self._tasks))

    async def stop(self) -> None:
        """Cancel all loops and wait for in-flight snapshot writes to finish."""
        self._running = False
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

        await self.flush_writes()
        logger.info("scheduler_stopped")

    async def flush_writes(self) -> None:
        """Wait for every scheduled snapshot write to complete."""
        while self._pending_writes:
            logger.info("waiting_for_snapshot_writes", pending=len(self._pending_writes))
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def wait(self) -> None:
        """Block until every loop has finished (i.e. until stop() is called)."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    # ──────────────────────────────────────────────
    # Full refresh
    # ──────────────────────────────────────────────

    async def refresh_token(self, token: str) -> list[Opportunity]:
        """Fan out, build and replace the cache entries of one token.

        A token with fewer than two snapshots gets an empty replacement,
        dropping its stale entries.
        """
        snapshots = await fetch_snapshots(self._adapters, token)
        opportunities = self._builder.build(token, snapshots)
        await self._cache.replace_for_token(token, opportunities)
        self._tokens_refreshed += 1
        logger.debug(
            "token_refreshed",
            token=token,
            venues=len(snapshots),
            opportunities=len(opportunities),
        )
        return opportunities

    async def run_full_cycle(self) -> int:
        """One pass over the universe. Returns the number of tokens refreshed."""
        refreshed = 0
        for i, token in enumerate(self._universe):
            if i > 0:
                await asyncio.sleep(self._settings.token_delay)
            try:
                await self.refresh_token(token)
            except asyncio.CancelledError:
                raise
            except Exception:
                self._last_error_at = time.time()
                logger.warning("token_refresh_failed", token=token, exc_info=True)
                continue
            refreshed += 1
            self._schedule_write("opportunities", self._store.save_opportunities(self._cache))

        self._full_cycles += 1
        logger.info(
            "full_refresh_cycle_complete",
            cycle=self._full_cycles,
            tokens=refreshed,
            opportunities=len(self._cache),
        )
        return refreshed

    async def _full_refresh_loop(self) -> None:
        await self._repeat("full_refresh", self.run_full_cycle, self._settings.cycle_delay)

    # ──────────────────────────────────────────────
    # Fast refresh
    # ──────────────────────────────────────────────

    async def run_fast_refresh(self) -> int:
        """Refresh tokens already in the cache in place. Returns entries updated."""
        updated = 0
        for i, token in enumerate(await self._cache.active_tokens()):
            if i > 0:
                await asyncio.sleep(self._settings.token_delay)
            try:
                snapshots = await fetch_snapshots(self._adapters, token)
            except asyncio.CancelledError:
                raise
            except Exception:
                self._last_error_at = time.time()
                logger.warning("fast_refresh_token_failed", token=token, exc_info=True)
                continue
            if len(snapshots) < 2:
                continue
            opportunities = self._builder.build(token, snapshots)
            updated += await self._cache.update_existing(token, opportunities)

        self._fast_passes += 1
        if updated:
            self._schedule_write("opportunities", self._store.save_opportunities(self._cache))
        logger.debug("fast_refresh_complete", updated=updated)
        return updated

    async def _fast_refresh_loop(self) -> None:
        await self._repeat(
            "fast_refresh", self.run_fast_refresh, self._settings.fast_refresh_interval
        )

    # ──────────────────────────────────────────────
    # Funding history
    # ──────────────────────────────────────────────

    def _history_adapter(self) -> ExchangeAdapter | None:
        return next(
            (a for a in self._adapters if a.name == self._history_settings.exchange),
            None,
        )

    async def _fetch_history_with_retry(
        self, adapter: ExchangeAdapter, token: str, window: str, hours: int
    ) -> FundingHistorySummary | None:
        """Fetch one window with a bounded number of fixed-delay retries.

        Returns None when the venue has no data or every attempt failed.
        """
        max_attempts = self._history_settings.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                return await adapter.get_funding_history(token, hours)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt == max_attempts:
                    self._last_error_at = time.time()
                    logger.error(
                        "funding_history_failed_permanently",
                        token=token,
                        window=window,
                        attempts=max_attempts,
                        error=str(e),
                    )
                    return None
                logger.warning(
                    "funding_history_retry",
                    token=token,
                    window=window,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=str(e),
                )
                await asyncio.sleep(self._history_settings.retry_delay)
        return None

    async def refresh_funding_history_token(self, token: str) -> int:
        """Fetch every lookback window for one token. Returns windows stored."""
        adapter = self._history_adapter()
        if adapter is None:
            return 0

        stored = 0
        for i, (window, hours) in enumerate(self._history_settings.windows.items()):
            if i > 0:
                await asyncio.sleep(self._history_settings.window_delay)
            summary = await self._fetch_history_with_retry(adapter, token, window, hours)
            if summary is None:
                continue
            await self._history_cache.put(token, adapter.name, window, summary)
            stored += 1

        self._history_tokens_processed += 1
        self._schedule_write(
            "funding_history", self._store.save_funding_history(self._history_cache)
        )
        return stored

    async def run_history_cycle(self) -> int:
        """One pass over the history token list. Returns tokens processed."""
        processed = 0
        for i, token in enumerate(self._history_tokens):
            if i > 0:
                await asyncio.sleep(self._history_settings.token_delay)
            await self.refresh_funding_history_token(token)
            processed += 1
        logger.info("funding_history_cycle_complete", tokens=processed)
        return processed

    async def _funding_history_loop(self) -> None:
        await self._repeat(
            "funding_history", self.run_history_cycle, self._history_settings.token_delay
        )

    # ──────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────

    async def _repeat(
        self, name: str, work: Callable[[], Awaitable[int]], delay: float
    ) -> None:
        """Run `work` forever, sleeping `delay` after every iteration."""
        bind_loop_context(name)
        while self._running:
            try:
                await work()
            except asyncio.CancelledError:
                raise
            except Exception:
                self._last_error_at = time.time()
                logger.warning("refresh_loop_error", exc_info=True)
            if self._running:
                await asyncio.sleep(delay)

    def _schedule_write(self, kind: str, write: Awaitable[int]) -> None:
        """Fire-and-forget a snapshot write, keeping a handle for shutdown."""
        task = asyncio.ensure_future(write)
        self._pending_writes.add(task)

        def _done(t: asyncio.Task) -> None:  # type: ignore[type-arg]
            self._pending_writes.discard(t)
            if t.cancelled():
                return
            error = t.exception()
            if error is not None:
                self._last_error_at = time.time()
                logger.warning("snapshot_write_failed", kind=kind, error=str(error))

        task.add_done_callback(_done)

    def get_status(self) -> dict:
        """Return current scheduler status for the health endpoint."""
        return {
            "running": self._running,
            "loops": sorted(name for name, t in self._tasks.items() if not t.done()),
            "universe_size": len(self._universe),
            "history_tokens": len(self._history_tokens),
            "full_cycles": self._full_cycles,
            "tokens_refreshed": self._tokens_refreshed,
            "fast_refresh_passes": self._fast_passes,
            "history_tokens_processed": self._history_tokens_processed,
            "cached_opportunities": len(self._cache),
            "last_error_at": self._last_error_at,
        }
