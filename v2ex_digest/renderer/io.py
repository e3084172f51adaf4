"""Atomic file writing for rendered digests."""

import hashlib
from dataclasses import dataclass
from pathlib import Path

import structlog

from v2ex_digest.renderer.models import GeneratedFile


logger = structlog.get_logger()


@dataclass(frozen=True)
class StagedFile:
    """Content written to a temporary sibling, not yet visible at ``path``."""

    path: Path
    temp_path: Path
    bytes_written: int
    sha256: str


class AtomicWriter:
    """Writes files through a temporary sibling and a rename.

    Readers see either the complete old file or the complete new file,
    never a partial write. ``stage`` and ``commit`` split the two steps so
    callers can do the slow write first and the rename later.
    """

    def __init__(self, base_dir: Path) -> None:
        """Initialize the writer.

        Args:
            base_dir: Directory files are written into (created on demand).
        """
        self._base_dir = Path(base_dir)
        self._log = logger.bind(component="atomic_writer")

    @property
    def base_dir(self) -> Path:
        """Get the output directory."""
        return self._base_dir

    def write(self, name: str, content: str) -> GeneratedFile:
        """Write content to ``base_dir/name``.

        Args:
            name: File name relative to the base directory.
            content: Text content (UTF-8).

        Returns:
            GeneratedFile with path, size and checksum.
        """
        return self.commit(self.stage(name, content))

    def stage(self, name: str, content: str) -> StagedFile:
        """Write content to a temporary sibling of ``base_dir/name``.

        Args:
            name: File name relative to the base directory.
            content: Text content (UTF-8).

        Returns:
            StagedFile to pass to ``commit`` or ``discard``.

        Raises:
            OSError: If the directory or temporary file cannot be written.
        """
        self._base_dir.mkdir(parents=True, exist_ok=True)
        path = self._base_dir / name
        content_bytes = content.encode("utf-8")

        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_bytes(content_bytes)
        return StagedFile(
            path=path,
            temp_path=temp_path,
            bytes_written=len(content_bytes),
            sha256=hashlib.sha256(content_bytes).hexdigest(),
        )

    def commit(self, staged: StagedFile) -> GeneratedFile:
        """Move a staged file into place."""
        staged.temp_path.replace(staged.path)
        self._log.debug(
            "file_written",
            path=str(staged.path),
            bytes=staged.bytes_written,
            sha256=staged.sha256[:12],
        )
        return GeneratedFile(
            path=str(staged.path.resolve()),
            bytes_written=staged.bytes_written,
            sha256=staged.sha256,
        )

    def discard(self, staged: StagedFile) -> None:
        """Remove a staged file without touching ``path``."""
        staged.temp_path.unlink(missing_ok=True)
        self._log.debug("file_discarded", path=str(staged.path))
