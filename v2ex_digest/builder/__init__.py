"""Digest building: selection, summarization, publishing and suppression."""

from v2ex_digest.builder.builder import (
    DEFAULT_CHANNEL,
    Builder,
    BuilderOptions,
    BuildResult,
)
from v2ex_digest.builder.compose import compose_digest, digest_filename
from v2ex_digest.builder.metrics import BuilderMetrics
from v2ex_digest.builder.state_machine import (
    BuildStateError,
    DigestState,
    DigestStateMachine,
)


__all__ = [
    "DEFAULT_CHANNEL",
    "BuildResult",
    "BuildStateError",
    "Builder",
    "BuilderMetrics",
    "BuilderOptions",
    "DigestState",
    "DigestStateMachine",
    "compose_digest",
    "digest_filename",
]
