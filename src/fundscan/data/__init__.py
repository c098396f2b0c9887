"""Persistence layer -- JSON snapshots of the in-memory caches."""

from fundscan.data.snapshot_store import SnapshotStore

__all__ = ["SnapshotStore"]
