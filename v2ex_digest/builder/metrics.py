"""Metrics collection for the builder."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class BuilderMetrics:
    """Counters for builder ticks.

    Attributes:
        ticks_total: Completed ticks.
        pending_total: Ticks that stayed pending (threshold not met).
        already_published_total: Ticks that found the period published.
        published_total: Digests published.
        items_published_total: Items included across all digests.
        persist_failures_total: Snapshot writes that failed.
    """

    ticks_total: int = 0
    pending_total: int = 0
    already_published_total: int = 0
    published_total: int = 0
    items_published_total: int = 0
    persist_failures_total: int = 0

    _instance: ClassVar["BuilderMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "BuilderMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_pending(self) -> None:
        """Record a tick that did not meet the threshold."""
        self.ticks_total += 1
        self.pending_total += 1

    def record_already_published(self) -> None:
        """Record a tick that found the period published."""
        self.ticks_total += 1
        self.already_published_total += 1

    def record_published(self, items: int) -> None:
        """Record a published digest."""
        self.ticks_total += 1
        self.published_total += 1
        self.items_published_total += items

    def record_persist_failure(self) -> None:
        """Record a failed snapshot write."""
        self.persist_failures_total += 1

    def to_dict(self) -> dict[str, int]:
        """Convert metrics to dictionary."""
        return {
            "ticks_total": self.ticks_total,
            "pending_total": self.pending_total,
            "already_published_total": self.already_published_total,
            "published_total": self.published_total,
            "items_published_total": self.items_published_total,
            "persist_failures_total": self.persist_failures_total,
        }
