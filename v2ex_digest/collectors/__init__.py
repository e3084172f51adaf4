"""Periodic collection of scored topics into the ranked store."""

from v2ex_digest.collectors.collector import (
    Collector,
    CollectorOptions,
    CollectorTickResult,
    SourceTickResult,
    TopicSource,
)
from v2ex_digest.collectors.errors import ErrorRecord
from v2ex_digest.collectors.metrics import CollectorMetrics


__all__ = [
    "Collector",
    "CollectorMetrics",
    "CollectorOptions",
    "CollectorTickResult",
    "ErrorRecord",
    "SourceTickResult",
    "TopicSource",
]
