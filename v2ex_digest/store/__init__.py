"""Ranked, periodized topic store.

This module provides:
- Item and scoring models shared across the pipeline
- The in-memory ranked store with ratchet upserts, publish and skip markers
- Snapshot persistence with schema versioning
- The per-day raw fetch cache used by one-shot generation
"""

from v2ex_digest.store.daily_cache import DailyCache
from v2ex_digest.store.errors import (
    SnapshotLoadError,
    SnapshotWriteError,
    StoreError,
)
from v2ex_digest.store.models import (
    SNAPSHOT_SCHEMA_VERSION,
    Item,
    ScoredItem,
    Snapshot,
    SummarizedItem,
)
from v2ex_digest.store.store import (
    PERIOD_RETENTION_DAYS,
    SNAPSHOT_FILENAME,
    GcResult,
    RankedStore,
    period_for,
    utc_now,
)


__all__ = [
    # Errors
    "SnapshotLoadError",
    "SnapshotWriteError",
    "StoreError",
    # Models
    "SNAPSHOT_SCHEMA_VERSION",
    "Item",
    "ScoredItem",
    "Snapshot",
    "SummarizedItem",
    # Store
    "PERIOD_RETENTION_DAYS",
    "SNAPSHOT_FILENAME",
    "DailyCache",
    "GcResult",
    "RankedStore",
    "period_for",
    "utc_now",
]
