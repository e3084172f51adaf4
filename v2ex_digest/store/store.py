"""In-memory ranked store with JSON snapshot persistence."""

import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog
from pydantic import ValidationError

from v2ex_digest.store.errors import SnapshotLoadError, SnapshotWriteError
from v2ex_digest.store.models import (
    Item,
    ScoredItem,
    Snapshot,
    composite_key,
    split_composite_key,
)


logger = structlog.get_logger()

SNAPSHOT_FILENAME = "_store.json"
PERIOD_RETENTION_DAYS = 7

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


def period_for(moment: datetime) -> str:
    """Return the period key (UTC calendar day, ``YYYY-MM-DD``) of a moment."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime("%Y-%m-%d")


@dataclass(frozen=True)
class GcResult:
    """What a garbage collection pass removed."""

    skips_removed: int
    periods_removed: int
    items_removed: int


class RankedStore:
    """Periodized ranking cache shared by the collector and the builder.

    Holds four structures:

    - items: latest copy of every topic, keyed by id
    - period scores: per period, item id -> best score seen (ratchet)
    - published: (channel, period) pairs already emitted
    - skipped: (channel, item id) -> expiry timestamp

    Every public method runs under one re-entrant lock, so a reader never
    observes a half-applied update. ``transaction()`` exposes the same lock
    for callers that need check-then-act sequences.

    Within a period, equal scores keep the order in which ids were first
    added to that period.
    """

    def __init__(
        self,
        data_dir: Path | str,
        clock: Clock | None = None,
        snapshot_name: str = SNAPSHOT_FILENAME,
    ) -> None:
        """Initialize an empty store.

        Args:
            data_dir: Directory holding the snapshot file.
            clock: Time source, defaults to the UTC wall clock.
            snapshot_name: Snapshot file name inside ``data_dir``.
        """
        self._data_dir = Path(data_dir)
        self._snapshot_path = self._data_dir / snapshot_name
        self._clock = clock or utc_now
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()

        self._items: dict[str, Item] = {}
        self._period_scores: dict[str, dict[str, float]] = {}
        self._published: set[tuple[str, str]] = set()
        self._skipped: dict[tuple[str, str], float] = {}

        self._log = logger.bind(
            component="store",
            snapshot_path=str(self._snapshot_path),
        )

    @property
    def snapshot_path(self) -> Path:
        """Get the snapshot file path."""
        return self._snapshot_path

    def now(self) -> datetime:
        """Current time according to the store clock."""
        return self._clock()

    def current_period(self) -> str:
        """Period key for the current time."""
        return period_for(self._clock())

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Hold the store lock across several calls."""
        with self._lock:
            yield

    # ===== Ranking =====

    def upsert(self, period: str, item: Item, score: float) -> bool:
        """Store an item and raise its score for a period.

        The item content is always replaced. The period score only ever
        increases: a lower score than the stored one is ignored.

        Args:
            period: Period key.
            item: Freshly fetched item.
            score: Score computed for the item.

        Returns:
            True if the stored score changed.
        """
        with self._lock:
            self._items[item.id] = item
            scores = self._period_scores.setdefault(period, {})
            existing = scores.get(item.id)
            if existing is None or score > existing:
                scores[item.id] = score
                return True
            return False

    def score_of(self, period: str, item_id: str) -> float | None:
        """Stored score of an item in a period, or None."""
        with self._lock:
            return self._period_scores.get(period, {}).get(item_id)

    def top_n(self, period: str, n: int) -> list[ScoredItem]:
        """Return up to ``n`` items of a period, best score first.

        Args:
            period: Period key.
            n: Maximum number of entries.

        Returns:
            Scored items sorted by descending score; empty for an unknown period.
        """
        if n <= 0:
            return []
        with self._lock:
            scores = self._period_scores.get(period)
            if not scores:
                return []
            ranked = sorted(scores.items(), key=lambda entry: entry[1], reverse=True)
            result: list[ScoredItem] = []
            for item_id, score in ranked:
                item = self._items.get(item_id)
                if item is None:
                    continue
                result.append(ScoredItem(item=item, score=score))
                if len(result) >= n:
                    break
            return result

    # ===== Publish markers =====

    def is_published(self, channel: str, period: str) -> bool:
        """Check whether a digest was already emitted for a period."""
        with self._lock:
            return (channel, period) in self._published

    def mark_published(self, channel: str, period: str) -> None:
        """Record that a digest was emitted for a period (idempotent)."""
        with self._lock:
            self._published.add((channel, period))

    # ===== Skip markers =====

    def is_skipped(self, channel: str, item_id: str) -> bool:
        """Check whether an item is suppressed on a channel.

        An expired marker is evicted and reported as absent.
        """
        key = (channel, item_id)
        with self._lock:
            expiry = self._skipped.get(key)
            if expiry is None:
                return False
            if self._clock().timestamp() >= expiry:
                del self._skipped[key]
                return False
            return True

    def mark_skipped(self, channel: str, item_id: str, ttl: timedelta) -> None:
        """Suppress an item on a channel until now + ttl."""
        with self._lock:
            self._skipped[(channel, item_id)] = (self._clock() + ttl).timestamp()

    # ===== Maintenance =====

    def gc(self) -> GcResult:
        """Drop expired skip markers and periods older than the retention window.

        Period keys are zero-padded ISO dates, so string comparison against
        the cutoff date orders them correctly. Items no longer referenced by
        any remaining period are dropped with them.
        """
        with self._lock:
            now = self._clock()
            now_ts = now.timestamp()
            expired = [key for key, expiry in self._skipped.items() if now_ts >= expiry]
            for key in expired:
                del self._skipped[key]

            cutoff = period_for(now - timedelta(days=PERIOD_RETENTION_DAYS))
            old_periods = [period for period in self._period_scores if period < cutoff]
            for period in old_periods:
                del self._period_scores[period]

            referenced = {
                item_id for scores in self._period_scores.values() for item_id in scores
            }
            orphans = [item_id for item_id in self._items if item_id not in referenced]
            for item_id in orphans:
                del self._items[item_id]

        result = GcResult(
            skips_removed=len(expired),
            periods_removed=len(old_periods),
            items_removed=len(orphans),
        )
        self._log.info(
            "store_gc_complete",
            cutoff=cutoff,
            skips_removed=result.skips_removed,
            periods_removed=result.periods_removed,
            items_removed=result.items_removed,
        )
        return result

    def stats(self) -> dict[str, int]:
        """Sizes of the four structures."""
        with self._lock:
            return {
                "items": len(self._items),
                "periods": len(self._period_scores),
                "published": len(self._published),
                "skipped": len(self._skipped),
            }

    # ===== Persistence =====

    def snapshot(self) -> Snapshot:
        """Build a self-contained image of the current state."""
        with self._lock:
            return Snapshot(
                saved_at=self._clock(),
                items=dict(self._items),
                period_scores={
                    period: dict(scores)
                    for period, scores in self._period_scores.items()
                },
                published=sorted(
                    composite_key(channel, period)
                    for channel, period in self._published
                ),
                skipped={
                    composite_key(channel, item_id): expiry
                    for (channel, item_id), expiry in self._skipped.items()
                },
            )

    def persist(self) -> None:
        """Write the full snapshot, replacing the previous file atomically.

        Must not be called inside ``transaction()``.

        Raises:
            SnapshotWriteError: If the file cannot be written.
        """
        temp_path = self._snapshot_path.with_suffix(self._snapshot_path.suffix + ".tmp")

        # Snapshot and write under one lock: the last file written is the newest.
        with self._write_lock:
            payload = self.snapshot().model_dump_json()
            try:
                self._data_dir.mkdir(parents=True, exist_ok=True)
                temp_path.write_text(payload, encoding="utf-8")
                temp_path.replace(self._snapshot_path)
            except OSError as e:
                self._log.error("store_persist_failed", error=str(e))
                raise SnapshotWriteError(self._snapshot_path, str(e)) from e

        self._log.debug("store_persisted", bytes=len(payload), **self.stats())

    def load(self) -> bool:
        """Replace the in-memory state with the snapshot on disk.

        A missing snapshot leaves the store empty. An unreadable one also
        leaves the store empty and is renamed to ``<name>.corrupt`` so the
        next persist does not overwrite it.

        Returns:
            True if a snapshot was loaded.
        """
        if not self._snapshot_path.exists():
            self._log.info("store_snapshot_missing")
            return False

        try:
            snapshot = self._read_snapshot()
            self._restore(snapshot)
        except SnapshotLoadError as e:
            self._reset()
            quarantined = self._quarantine()
            self._log.warning(
                "store_snapshot_corrupt",
                reason=e.reason,
                quarantined_to=str(quarantined) if quarantined else None,
            )
            return False

        self._log.info("store_loaded", **self.stats())
        return True

    def _read_snapshot(self) -> Snapshot:
        try:
            raw = self._snapshot_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotLoadError(self._snapshot_path, str(e)) from e
        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as e:
            raise SnapshotLoadError(
                self._snapshot_path, f"{e.error_count()} validation errors"
            ) from e

    def _restore(self, snapshot: Snapshot) -> None:
        try:
            published = {split_composite_key(key) for key in snapshot.published}
            skipped = {
                split_composite_key(key): expiry
                for key, expiry in snapshot.skipped.items()
            }
        except ValueError as e:
            raise SnapshotLoadError(self._snapshot_path, str(e)) from e

        with self._lock:
            self._items = dict(snapshot.items)
            self._period_scores = {
                period: dict(scores)
                for period, scores in snapshot.period_scores.items()
            }
            self._published = published
            self._skipped = skipped

    def _reset(self) -> None:
        with self._lock:
            self._items = {}
            self._period_scores = {}
            self._published = set()
            self._skipped = {}

    def _quarantine(self) -> Path | None:
        path = self._snapshot_path
        target = path.with_suffix(path.suffix + ".corrupt")
        try:
            path.replace(target)
        except OSError as e:
            self._log.warning("store_quarantine_failed", error=str(e))
            return None
        return target
