"""Concurrent per-token snapshot fetch across all configured venues.

A failing venue never fails the group: failures are logged and dropped,
and only successful non-null snapshots are returned.
"""

import asyncio

from fundscan.exceptions import TokenNotListedError
from fundscan.exchange.client import ExchangeAdapter
from fundscan.logging import get_logger
from fundscan.models import TokenSnapshot

logger = get_logger(__name__)


async def fetch_snapshots(
    adapters: list[ExchangeAdapter], token: str
) -> list[TokenSnapshot]:
    """Query every adapter for `token` concurrently.

    Returns the successful snapshots in adapter order.
    """
    results = await asyncio.gather(
        *(adapter.get_snapshot(token) for adapter in adapters),
        return_exceptions=True,
    )

    snapshots: list[TokenSnapshot] = []
    for adapter, result in zip(adapters, results):
        if isinstance(result, TokenNotListedError):
            logger.debug("token_not_listed", token=token, exchange=adapter.name)
        elif isinstance(result, Exception):
            logger.warning(
                "snapshot_fetch_failed",
                token=token,
                exchange=adapter.name,
                error=str(result),
            )
        elif isinstance(result, BaseException):
            raise result
        elif result is not None:
            snapshots.append(result)

    return snapshots
