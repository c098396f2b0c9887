"""Authoritative in-memory store of current opportunities.

Entries are keyed by (token, buy_exchange, sell_exchange). All mutation
goes through per-token operations executed under a single asyncio.Lock,
so readers never observe a token with its old entries removed and the
new ones not yet inserted.
"""

import asyncio
from collections.abc import Iterable
from datetime import datetime, timezone

from fundscan.logging import get_logger
from fundscan.models import Opportunity

logger = get_logger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and Z suffix."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class OpportunityCache:
    """Async-safe opportunity cache with token-scoped replacement."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, int, int], Opportunity] = {}
        self._last_update: str | None = None
        self._lock = asyncio.Lock()

    @property
    def last_update(self) -> str | None:
        """ISO-8601 timestamp of the last mutation, or None if never updated."""
        return self._last_update

    def __len__(self) -> int:
        return len(self._entries)

    async def replace_for_token(
        self, token: str, opportunities: Iterable[Opportunity]
    ) -> None:
        """Atomically drop every entry for `token` and insert `opportunities`.

        Raises:
            ValueError: If an opportunity belongs to a different token.
        """
        new_entries = list(opportunities)
        for opportunity in new_entries:
            if opportunity.token != token:
                raise ValueError(
                    f"Opportunity for {opportunity.token} passed to replace_for_token({token})"
                )

        async with self._lock:
            stale = [key for key in self._entries if key[0] == token]
            for key in stale:
                del self._entries[key]
            for opportunity in new_entries:
                self._entries[opportunity.key] = opportunity
            self._last_update = utc_now_iso()

        logger.debug(
            "cache_token_replaced",
            token=token,
            removed=len(stale),
            inserted=len(new_entries),
        )

    async def update_existing(
        self, token: str, opportunities: Iterable[Opportunity]
    ) -> int:
        """Overwrite entries of `token` whose key is already cached.

        Opportunities with unknown keys are ignored and no entry is removed.
        Returns the number of entries updated.
        """
        updated = 0
        async with self._lock:
            for opportunity in opportunities:
                if opportunity.token == token and opportunity.key in self._entries:
                    self._entries[opportunity.key] = opportunity
                    updated += 1
            if updated:
                self._last_update = utc_now_iso()
        return updated

    async def query_by_exchange_set(
        self, selected: Iterable[int] | None
    ) -> list[Opportunity]:
        """Return entries whose buy and sell venues are both in `selected`.

        An empty or absent selection returns an empty list.
        """
        if selected is None:
            return []
        wanted = set(selected)
        if not wanted:
            return []
        async with self._lock:
            return [
                o
                for o in self._entries.values()
                if o.buy_exchange in wanted and o.sell_exchange in wanted
            ]

    async def snapshot_all(self) -> tuple[str | None, list[Opportunity]]:
        """Return (last_update, all opportunities) as a consistent copy."""
        async with self._lock:
            return self._last_update, list(self._entries.values())

    async def active_tokens(self) -> list[str]:
        """Tokens that currently have at least one cached opportunity."""
        async with self._lock:
            return list(dict.fromkeys(key[0] for key in self._entries))

    async def load(
        self, last_update: str | None, opportunities: Iterable[Opportunity]
    ) -> None:
        """Replace the whole cache, used to warm-start from a persisted snapshot."""
        async with self._lock:
            self._entries = {o.key: o for o in opportunities}
            self._last_update = last_update
