"""JSON endpoints for opportunities, funding history and scheduler health."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fundscan.data.snapshot_store import funding_history_document
from fundscan.models import opportunity_to_dict

log = structlog.get_logger(__name__)

router = APIRouter()


def parse_exchange_ids(raw: str) -> list[int]:
    """Parse a comma-separated id list, skipping entries that are not integers."""
    selected = []
    for part in raw.split(","):
        part = part.strip()
        try:
            selected.append(int(part))
        except ValueError:
            continue
    return selected


@router.get("/opportunity")
async def get_opportunities(
    request: Request, exchanges: str | None = None
) -> JSONResponse:
    """Cached opportunities, optionally restricted to a set of exchange ids.

    No `exchanges` parameter returns everything. An empty or unparseable
    selection returns no opportunities. Otherwise both legs must be selected.
    """
    cache = request.app.state.opportunity_cache

    if exchanges is None:
        last_update, opportunities = await cache.snapshot_all()
    else:
        selected = parse_exchange_ids(exchanges)
        opportunities = await cache.query_by_exchange_set(selected)
        last_update = cache.last_update

    return JSONResponse(
        content={
            "lastUpdate": last_update,
            "opportunities": [opportunity_to_dict(o) for o in opportunities],
        }
    )


@router.get("/funding-history")
async def get_funding_history(request: Request) -> JSONResponse:
    """Averaged funding rate and APR per token, exchange and lookback window."""
    history_cache = request.app.state.funding_history_cache
    last_update, data = await history_cache.snapshot_all()
    return JSONResponse(content=funding_history_document(last_update, data))


@router.get("/health")
async def get_health(request: Request) -> JSONResponse:
    """Scheduler status: running loops, universe size and progress counters."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        log.debug("health_without_scheduler")
        return JSONResponse(content={"running": False}, status_code=503)
    return JSONResponse(content=scheduler.get_status())
