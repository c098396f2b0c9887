"""FastAPI application factory for the query API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fundscan.api import routes


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the query API application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the refresh scheduler.

    Returns:
        FastAPI application. Route handlers read the caches and scheduler
        from app.state (opportunity_cache, funding_history_cache, scheduler).
    """
    app = FastAPI(
        title="Funding Arbitrage Opportunity Scanner",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(routes.router, prefix="/api")

    return app
