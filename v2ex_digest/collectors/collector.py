"""Collector: polls the configured sources and feeds scored items into the store."""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

import structlog

from v2ex_digest.collectors.errors import ErrorRecord
from v2ex_digest.collectors.metrics import CollectorMetrics
from v2ex_digest.ranker.scorer import compute_score
from v2ex_digest.store.errors import SnapshotWriteError
from v2ex_digest.store.models import Item
from v2ex_digest.store.store import RankedStore, period_for


logger = structlog.get_logger()


@runtime_checkable
class TopicSource(Protocol):
    """Anything that can fetch the topics of a configured source."""

    def fetch_by_source(self, source: str) -> list[Item]:
        """Fetch topics for a source.

        Raises:
            FetchError: If the source cannot be fetched.
        """
        ...


@dataclass(frozen=True)
class CollectorOptions:
    """Plain configuration values for the collector.

    Attributes:
        sources: Sources polled on every tick, in order.
        interval_seconds: Time between tick starts.
    """

    sources: tuple[str, ...]
    interval_seconds: float = 600.0


@dataclass
class SourceTickResult:
    """Outcome of one source within a tick."""

    source: str
    fetched: int = 0
    stored: int = 0
    error: ErrorRecord | None = None

    @property
    def success(self) -> bool:
        """Check if the source was fetched."""
        return self.error is None


@dataclass
class CollectorTickResult:
    """Outcome of a full collector tick."""

    period: str
    started_at: datetime
    sources: list[SourceTickResult] = field(default_factory=list)
    persisted: bool = False

    @property
    def items_stored(self) -> int:
        """Items upserted across all sources."""
        return sum(s.stored for s in self.sources)

    @property
    def sources_failed(self) -> int:
        """Number of sources that failed."""
        return sum(1 for s in self.sources if not s.success)


class Collector:
    """Fetches every configured source, scores the topics and upserts them.

    Provides:
    - Failure isolation (one source failing doesn't stop others)
    - Exactly one snapshot write per tick, after all sources
    - Structured logging and metrics
    """

    def __init__(
        self,
        store: RankedStore,
        source: TopicSource,
        options: CollectorOptions,
        metrics: CollectorMetrics | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            store: Shared ranked store.
            source: Fetch collaborator.
            options: Sources and interval.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._source = source
        self._options = options
        self._metrics = metrics or CollectorMetrics.get_instance()
        self._log = logger.bind(component="collector")

    @property
    def options(self) -> CollectorOptions:
        """Get the collector options."""
        return self._options

    def run_once(self, now: datetime | None = None) -> CollectorTickResult:
        """Run a single collection tick for the current period.

        Args:
            now: Tick reference time (defaults to the store clock).

        Returns:
            CollectorTickResult with per-source outcomes.
        """
        now = now or self._store.now()
        period = period_for(now)
        start_ns = time.perf_counter_ns()
        result = CollectorTickResult(period=period, started_at=now)

        self._log.info(
            "collector_tick_started",
            period=period,
            source_count=len(self._options.sources),
        )

        for source in self._options.sources:
            result.sources.append(self._collect_source(source, period, now))

        try:
            self._store.persist()
            result.persisted = True
        except SnapshotWriteError as e:
            self._metrics.record_persist_failure()
            self._log.error("store_persist_failed", period=period, error=e.reason)

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tick(duration_ms)
        self._log.info(
            "collector_tick_complete",
            period=period,
            items_stored=result.items_stored,
            sources_failed=result.sources_failed,
            persisted=result.persisted,
            duration_ms=round(duration_ms, 2),
        )
        return result

    def _collect_source(
        self, source: str, period: str, now: datetime
    ) -> SourceTickResult:
        log = self._log.bind(source=source, period=period)

        try:
            items = self._source.fetch_by_source(source)
        except Exception as e:  # noqa: BLE001
            error = ErrorRecord.from_exception(source, e)
            self._metrics.record_failure(source, error.error_class.value)
            log.warning(
                "source_failed",
                error_class=error.error_class.value,
                error=error.message,
            )
            return SourceTickResult(source=source, error=error)

        stored = 0
        for item in items:
            score = compute_score(item, now)
            if score <= 0:
                continue
            self._store.upsert(period, item, score)
            stored += 1

        self._metrics.record_items(source, len(items), stored)
        log.info("source_complete", items_fetched=len(items), items_stored=stored)
        return SourceTickResult(source=source, fetched=len(items), stored=stored)
