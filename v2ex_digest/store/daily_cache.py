"""Per-day cache of raw fetches used by the one-shot generate path.

Each day's fetch is stored in ``<data_dir>/YYYY-MM-DD.json``::

    {"date": "2026-10-19", "fetched_at": "...", "items": [...]}
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

import structlog
from pydantic import ValidationError

from v2ex_digest.store.models import Item, items_to_json
from v2ex_digest.store.store import SNAPSHOT_FILENAME, utc_now


logger = structlog.get_logger()


class DailyCache:
    """Raw fetch history, one JSON file per calendar date."""

    def __init__(
        self,
        data_dir: Path | str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            data_dir: Directory holding the day files.
            clock: Time source, defaults to the UTC wall clock.
        """
        self._data_dir = Path(data_dir)
        self._clock = clock or utc_now
        self._log = logger.bind(component="daily_cache", data_dir=str(self._data_dir))

    def _file_path(self, date: str) -> Path:
        return self._data_dir / f"{date}.json"

    def save(self, date: str, items: list[Item]) -> Path:
        """Save the items fetched on a date, replacing any earlier file.

        Returns:
            Path of the written file.
        """
        self._data_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "date": date,
            "fetched_at": self._clock().isoformat(),
            "items": items_to_json(items),
        }
        path = self._file_path(date)
        payload = json.dumps(data, ensure_ascii=False, indent=2)
        path.write_text(payload, encoding="utf-8")
        self._log.info("daily_cache_saved", date=date, items=len(items))
        return path

    def load(self, date: str) -> list[Item]:
        """Load the items saved for a date ([] if none)."""
        path = self._file_path(date)
        if not path.exists():
            return []
        data = json.loads(path.read_text(encoding="utf-8"))
        return [Item.model_validate(raw) for raw in data.get("items", [])]

    def recent_ids(self, hours: float) -> set[str]:
        """Ids of items in every day file fetched within the last ``hours``.

        Unreadable files are skipped.
        """
        ids: set[str] = set()
        if not self._data_dir.exists():
            return ids

        cutoff = self._clock() - timedelta(hours=hours)
        for path in sorted(self._data_dir.glob("*.json")):
            if path.name == SNAPSHOT_FILENAME:
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                fetched_at = datetime.fromisoformat(data["fetched_at"])
                if fetched_at < cutoff:
                    continue
                ids.update(str(raw["id"]) for raw in data.get("items", []))
            except (OSError, ValueError, KeyError, TypeError, ValidationError) as e:
                self._log.debug(
                    "daily_cache_file_skipped", file=path.name, error=str(e)
                )
        return ids
