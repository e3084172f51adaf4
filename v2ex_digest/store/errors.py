"""Exceptions for the ranked store and its snapshot."""

from pathlib import Path


class StoreError(Exception):
    """Base exception for all store errors."""


class SnapshotLoadError(StoreError):
    """Raised when a snapshot exists but cannot be used.

    Covers malformed JSON, schema validation failures and unknown schema
    versions.
    """

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize the error.

        Args:
            path: Snapshot file that failed to load.
            reason: Why it was rejected.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load snapshot {path}: {reason}")


class SnapshotWriteError(StoreError):
    """Raised when the snapshot cannot be written to disk."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize the error.

        Args:
            path: Snapshot file that failed to write.
            reason: Underlying I/O failure.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write snapshot {path}: {reason}")
