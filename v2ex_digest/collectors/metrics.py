"""Metrics collection for the collector."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class CollectorMetrics:
    """Counters for collector ticks.

    Attributes:
        ticks_total: Completed ticks.
        items_fetched: Items fetched per source.
        items_stored: Items upserted per source.
        failures: Failures per source.
        failures_by_class: Failures per error class.
        persist_failures_total: Snapshot writes that failed.
        last_tick_duration_ms: Duration of the most recent tick.
    """

    ticks_total: int = 0
    items_fetched: dict[str, int] = field(default_factory=dict)
    items_stored: dict[str, int] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    failures_by_class: dict[str, int] = field(default_factory=dict)
    persist_failures_total: int = 0
    last_tick_duration_ms: float = 0.0

    _instance: ClassVar["CollectorMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "CollectorMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_items(self, source: str, fetched: int, stored: int) -> None:
        """Record fetched and stored counts for a source."""
        self.items_fetched[source] = self.items_fetched.get(source, 0) + fetched
        self.items_stored[source] = self.items_stored.get(source, 0) + stored

    def record_failure(self, source: str, error_class: str) -> None:
        """Record a failed fetch."""
        self.failures[source] = self.failures.get(source, 0) + 1
        self.failures_by_class[error_class] = (
            self.failures_by_class.get(error_class, 0) + 1
        )

    def record_persist_failure(self) -> None:
        """Record a failed snapshot write."""
        self.persist_failures_total += 1

    def record_tick(self, duration_ms: float) -> None:
        """Record a completed tick."""
        self.ticks_total += 1
        self.last_tick_duration_ms = duration_ms

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary."""
        return {
            "ticks_total": self.ticks_total,
            "items_fetched": dict(self.items_fetched),
            "items_stored": dict(self.items_stored),
            "failures": dict(self.failures),
            "failures_by_class": dict(self.failures_by_class),
            "persist_failures_total": self.persist_failures_total,
            "last_tick_duration_ms": self.last_tick_duration_ms,
        }
