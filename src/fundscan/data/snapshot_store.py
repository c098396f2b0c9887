"""JSON snapshot persistence for the opportunity and funding-history caches.

Each document is overwritten wholesale on every write. Writes go to a
temporary file in the target directory followed by os.replace, so a crash
mid-write leaves the previous snapshot intact. File I/O runs in a worker
thread to keep the event loop responsive.

Documents:
  opportunities.json    {"lastUpdate": ISO-8601, "opportunities": [...]}
  funding_history.json  {"lastUpdate": ISO-8601,
                         "fundingByTokenAndExchange": {token: {exchange: {...}}}}
"""

import asyncio
import json
import os
import tempfile
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from fundscan.config import PersistenceSettings
from fundscan.exceptions import PersistenceError
from fundscan.logging import get_logger
from fundscan.market_data.funding_history import FundingHistoryCache
from fundscan.market_data.opportunity_cache import OpportunityCache
from fundscan.models import opportunity_from_dict, opportunity_to_dict

logger = get_logger(__name__)


def _decimal_to_float(obj: Any) -> Any:
    """Recursively convert Decimal values to floats for JSON serialization."""
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_float(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_float(item) for item in obj]
    return obj


def funding_history_document(
    last_update: str | None, data: dict[str, dict[str, dict[str, Any]]]
) -> dict[str, Any]:
    """Build the JSON-ready funding-history document."""
    return {
        "lastUpdate": last_update,
        "fundingByTokenAndExchange": _decimal_to_float(data),
    }


def _history_from_json(raw: dict[str, Any]) -> dict[str, dict[str, dict[str, Any]]]:
    """Restore Decimal precision for fundingRate/apr values of a loaded document."""
    restored: dict[str, dict[str, dict[str, Any]]] = {}
    for token, by_exchange in raw.items():
        for exchange, entry in by_exchange.items():
            target = restored.setdefault(token, {}).setdefault(exchange, {})
            for label, value in entry.items():
                if isinstance(value, dict):
                    target[label] = {
                        k: Decimal(str(v)) if v is not None else None
                        for k, v in value.items()
                    }
                else:
                    target[label] = value
    return restored


class SnapshotStore:
    """Reads and writes cache snapshots under a data directory.

    Usage:
        store = SnapshotStore(settings.persistence)
        await store.load_opportunities(cache)
        await store.save_opportunities(cache)
    """

    def __init__(self, settings: PersistenceSettings) -> None:
        data_dir = Path(settings.data_dir)
        self._opportunities_path = data_dir / settings.opportunities_file
        self._history_path = data_dir / settings.funding_history_file
        # One writer per file so a later snapshot is never overwritten by an older one
        self._opportunities_lock = asyncio.Lock()
        self._history_lock = asyncio.Lock()

    @property
    def opportunities_path(self) -> Path:
        return self._opportunities_path

    @property
    def funding_history_path(self) -> Path:
        return self._history_path

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def save_opportunities(self, cache: OpportunityCache) -> int:
        """Write the current opportunity cache. Returns the number of entries.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        async with self._opportunities_lock:
            last_update, opportunities = await cache.snapshot_all()
            document = {
                "lastUpdate": last_update,
                "opportunities": [opportunity_to_dict(o) for o in opportunities],
            }
            await asyncio.to_thread(_write_json, self._opportunities_path, document)
        logger.debug(
            "opportunities_snapshot_written",
            path=str(self._opportunities_path),
            count=len(opportunities),
        )
        return len(opportunities)

    async def save_funding_history(self, cache: FundingHistoryCache) -> int:
        """Write the funding-history cache. Returns the number of tokens.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        async with self._history_lock:
            last_update, data = await cache.snapshot_all()
            document = funding_history_document(last_update, data)
            await asyncio.to_thread(_write_json, self._history_path, document)
        logger.debug(
            "funding_history_snapshot_written",
            path=str(self._history_path),
            tokens=len(data),
        )
        return len(data)

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def load_opportunities(self, cache: OpportunityCache) -> int:
        """Warm-start the opportunity cache from disk.

        Missing or unreadable snapshots are logged and leave the cache
        untouched. Returns the number of opportunities loaded.
        """
        document = await asyncio.to_thread(_read_json, self._opportunities_path)
        if document is None:
            return 0
        try:
            opportunities = [
                opportunity_from_dict(raw) for raw in document.get("opportunities") or []
            ]
        except (KeyError, TypeError, ValueError, InvalidOperation):
            logger.warning(
                "opportunities_snapshot_invalid",
                path=str(self._opportunities_path),
                exc_info=True,
            )
            return 0

        await cache.load(document.get("lastUpdate"), opportunities)
        logger.info(
            "opportunities_snapshot_loaded",
            path=str(self._opportunities_path),
            count=len(opportunities),
        )
        return len(opportunities)

    async def load_funding_history(self, cache: FundingHistoryCache) -> int:
        """Warm-start the funding-history cache from disk. Returns tokens loaded."""
        document = await asyncio.to_thread(_read_json, self._history_path)
        if document is None:
            return 0
        try:
            data = _history_from_json(document.get("fundingByTokenAndExchange") or {})
        except (AttributeError, TypeError, ValueError, InvalidOperation):
            logger.warning(
                "funding_history_snapshot_invalid",
                path=str(self._history_path),
                exc_info=True,
            )
            return 0

        await cache.load(document.get("lastUpdate"), data)
        logger.info(
            "funding_history_snapshot_loaded",
            path=str(self._history_path),
            tokens=len(data),
        )
        return len(data)


def _write_json(path: Path, document: dict[str, Any]) -> None:
    """Atomically replace `path` with the JSON encoding of `document`."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PersistenceError(f"Failed to write snapshot {path}: {e}") from e


def _read_json(path: Path) -> dict[str, Any] | None:
    """Read a JSON document, returning None if it is missing or corrupt."""
    if not path.exists():
        return None
    try:
        with path.open(encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, ValueError):
        logger.warning("snapshot_unreadable", path=str(path), exc_info=True)
        return None
    if not isinstance(document, dict):
        logger.warning("snapshot_unreadable", path=str(path), reason="not an object")
        return None
    return document
