"""Unit tests for the Builder."""

import threading
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from tests.helpers.items import make_item
from tests.helpers.time import FIXED_NOW, FIXED_PERIOD, FakeClock
from v2ex_digest.builder.builder import Builder, BuilderOptions
from v2ex_digest.builder.metrics import BuilderMetrics
from v2ex_digest.builder.state_machine import DigestState
from v2ex_digest.llm.summarizer import Summarizer
from v2ex_digest.renderer.io import AtomicWriter
from v2ex_digest.store.errors import SnapshotWriteError
from v2ex_digest.store.store import RankedStore


CHANNEL = "v2ex-digest"


def _make_builder(
    tmp_path: Path,
    summarizer: Summarizer | None = None,
    **option_overrides: object,
) -> tuple[Builder, RankedStore, BuilderMetrics, FakeClock]:
    """Create a builder with a real store and writer under tmp_path."""
    clock = FakeClock()
    store = RankedStore(tmp_path / "data", clock=clock)
    options = BuilderOptions(
        channel=CHANNEL,
        top_n=5,
        min_items=5,
        exclude_nodes=("promotions",),
        **option_overrides,  # type: ignore[arg-type]
    )
    metrics = BuilderMetrics()
    builder = Builder(
        store, AtomicWriter(tmp_path / "out"), options, summarizer, metrics
    )
    return builder, store, metrics, clock


def _seed(
    store: RankedStore,
    count: int,
    prefix: str = "id",
    replies: int = 10,
    node_name: str = "python",
) -> list[str]:
    """Upsert ``count`` items with descending scores; return their ids."""
    ids = []
    for i in range(count):
        item = make_item(f"{prefix}{i}", replies=replies, node_name=node_name)
        store.upsert(FIXED_PERIOD, item, 10.0 - i)
        ids.append(item.id)
    return ids


def _output_path(tmp_path: Path) -> Path:
    return tmp_path / "out" / f"daily-{FIXED_PERIOD}.md"


class TestBuilderThreshold:
    """Tests for the minimum-items threshold."""

    def test_pending_below_threshold(self, tmp_path: Path) -> None:
        """Should stay pending with fewer qualifying items than min_items."""
        builder, store, metrics, _ = _make_builder(tmp_path)
        _seed(store, 4)
        before = store.snapshot().model_dump(exclude={"saved_at"})

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PENDING
        assert result.qualifying == 4
        assert result.output is None
        assert not store.is_published(CHANNEL, FIXED_PERIOD)
        assert not _output_path(tmp_path).exists()
        assert metrics.pending_total == 1
        assert store.snapshot().model_dump(exclude={"saved_at"}) == before
        assert not store.snapshot_path.exists()

    def test_publishes_at_threshold(self, tmp_path: Path) -> None:
        """Should publish once min_items candidates qualify."""
        builder, store, _, _ = _make_builder(tmp_path)
        _seed(store, 5)

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PUBLISHED
        assert _output_path(tmp_path).exists()

    def test_empty_period(self, tmp_path: Path) -> None:
        """Should stay pending when the period has no items."""
        builder, _, _, _ = _make_builder(tmp_path)
        result = builder.run_once(FIXED_NOW)
        assert result.state == DigestState.PENDING
        assert result.pool_size == 0


class TestBuilderPublish:
    """Tests for publishing a digest."""

    def test_publishes_top_n(self, tmp_path: Path) -> None:
        """Should publish the best top_n and suppress exactly those."""
        builder, store, metrics, _ = _make_builder(tmp_path)
        ids = _seed(store, 6)

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PUBLISHED
        assert result.published_now
        assert [s.item.id for s in result.selected] == ids[:5]
        assert store.is_published(CHANNEL, FIXED_PERIOD)
        for item_id in ids[:5]:
            assert store.is_skipped(CHANNEL, item_id)
        assert not store.is_skipped(CHANNEL, ids[5])
        assert metrics.published_total == 1
        assert metrics.items_published_total == 5

        content = _output_path(tmp_path).read_text(encoding="utf-8")
        assert content.count("\n## [") == 5
        assert "Topic id0" in content
        assert "Topic id5" not in content
        assert f'title: "V2EX 日报 {FIXED_PERIOD}"' in content

    def test_second_tick_is_noop(self, tmp_path: Path) -> None:
        """Should not publish twice for the same period."""
        builder, store, metrics, _ = _make_builder(tmp_path)
        _seed(store, 6)
        builder.run_once(FIXED_NOW)
        written = _output_path(tmp_path).stat().st_mtime_ns
        skipped_before = store.snapshot().skipped
        stats_before = store.stats()

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PUBLISHED
        assert result.output is None
        assert _output_path(tmp_path).stat().st_mtime_ns == written
        assert store.snapshot().skipped == skipped_before
        assert store.stats() == stats_before
        assert metrics.already_published_total == 1
        assert metrics.published_total == 1

    def test_skip_ttl_matches_options(self, tmp_path: Path) -> None:
        """Should suppress published items for skip_hours."""
        builder, store, _, clock = _make_builder(tmp_path, skip_hours=72)
        ids = _seed(store, 5)
        builder.run_once(FIXED_NOW)

        clock.advance(hours=71)
        assert store.is_skipped(CHANNEL, ids[0])
        clock.advance(hours=1)
        assert not store.is_skipped(CHANNEL, ids[0])

    def test_persists_after_publish(self, tmp_path: Path) -> None:
        """Should write the snapshot after publishing."""
        builder, store, _, _ = _make_builder(tmp_path)
        _seed(store, 5)

        result = builder.run_once(FIXED_NOW)

        assert result.persisted
        assert store.snapshot_path.exists()

    def test_persist_failure_keeps_publication(self, tmp_path: Path) -> None:
        """Should keep the digest and markers when the snapshot write fails."""
        builder, store, metrics, _ = _make_builder(tmp_path)
        _seed(store, 5)

        with patch.object(
            store,
            "persist",
            side_effect=SnapshotWriteError(store.snapshot_path, "disk full"),
        ):
            result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PUBLISHED
        assert not result.persisted
        assert store.is_published(CHANNEL, FIXED_PERIOD)
        assert metrics.persist_failures_total == 1

    def test_concurrent_publish_detected(self, tmp_path: Path) -> None:
        """Should not write when the period was published during the build."""
        builder, store, _, _ = _make_builder(tmp_path)
        _seed(store, 5)

        with patch.object(store, "is_published", side_effect=[False, True]):
            result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PUBLISHED
        assert result.output is None
        assert not _output_path(tmp_path).exists()
        assert not (tmp_path / "out" / f"daily-{FIXED_PERIOD}.md.tmp").exists()
        assert not store.is_skipped(CHANNEL, "id0")

    def test_file_staged_without_store_lock(self, tmp_path: Path) -> None:
        """Should let other threads update the store while the file is written."""
        builder, store, _, _ = _make_builder(tmp_path)
        _seed(store, 5)
        stage = AtomicWriter.stage
        upserted = threading.Event()

        def upsert_late() -> None:
            store.upsert(FIXED_PERIOD, make_item("late"), 0.5)
            upserted.set()

        def stage_with_concurrent_upsert(
            writer: AtomicWriter, name: str, content: str
        ) -> object:
            other = threading.Thread(target=upsert_late)
            other.start()
            other.join(2)
            return stage(writer, name, content)

        with patch.object(
            AtomicWriter,
            "stage",
            autospec=True,
            side_effect=stage_with_concurrent_upsert,
        ):
            result = builder.run_once(FIXED_NOW)

        assert upserted.is_set()
        assert result.published_now
        assert store.score_of(FIXED_PERIOD, "late") == 0.5

    def test_write_failure_leaves_period_unpublished(self, tmp_path: Path) -> None:
        """Should raise and record nothing when the output dir is unusable."""
        builder, store, _, _ = _make_builder(tmp_path)
        ids = _seed(store, 5)
        (tmp_path / "out").write_text("not a directory", encoding="utf-8")

        with pytest.raises(OSError):
            builder.run_once(FIXED_NOW)

        assert not store.is_published(CHANNEL, FIXED_PERIOD)
        assert not store.is_skipped(CHANNEL, ids[0])

    def test_gc_after_publish(self, tmp_path: Path) -> None:
        """Should drop periods past retention after publishing."""
        builder, store, _, _ = _make_builder(tmp_path)
        store.upsert("2026-03-01", make_item("ancient"), 1.0)
        _seed(store, 5)

        builder.run_once(FIXED_NOW)

        assert store.top_n("2026-03-01", 5) == []


class TestBuilderFiltering:
    """Tests for candidate filtering."""

    def test_excluded_nodes_do_not_count(self, tmp_path: Path) -> None:
        """Should ignore items from excluded nodes, case-insensitively."""
        builder, store, _, _ = _make_builder(tmp_path)
        _seed(store, 4)
        _seed(store, 3, prefix="ad", node_name="Promotions")

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PENDING
        assert result.qualifying == 4

    def test_skipped_items_do_not_count(self, tmp_path: Path) -> None:
        """Should ignore items still suppressed from an earlier digest."""
        builder, store, _, _ = _make_builder(tmp_path)
        ids = _seed(store, 5)
        store.mark_skipped(CHANNEL, ids[0], timedelta(hours=72))

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PENDING
        assert result.qualifying == 4

    def test_zero_reply_items_do_not_count(self, tmp_path: Path) -> None:
        """Should ignore items without replies."""
        builder, store, _, _ = _make_builder(tmp_path)
        _seed(store, 4)
        _seed(store, 2, prefix="quiet", replies=0)

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PENDING

    def test_overfetch_fills_after_filtering(self, tmp_path: Path) -> None:
        """Should fill top_n from deeper candidates when the best are filtered."""
        builder, store, _, _ = _make_builder(tmp_path)
        excluded = [make_item(f"ad{i}", node_name="promotions") for i in range(5)]
        for i, item in enumerate(excluded):
            store.upsert(FIXED_PERIOD, item, 100.0 - i)
        ids = _seed(store, 5)

        result = builder.run_once(FIXED_NOW)

        assert [s.item.id for s in result.selected] == ids


class TestBuilderSummaries:
    """Tests for summarization during publishing."""

    def test_descriptions_rendered(self, tmp_path: Path) -> None:
        """Should include item descriptions and the overall summary."""
        summarizer = MagicMock(spec=Summarizer)
        summarizer.summarize_item.return_value = "Item description."
        summarizer.summarize_overall.return_value = "Overall summary."
        builder, store, _, _ = _make_builder(tmp_path, summarizer=summarizer)
        _seed(store, 5)

        builder.run_once(FIXED_NOW)

        content = _output_path(tmp_path).read_text(encoding="utf-8")
        assert content.count("Item description.") == 5
        assert "Overall summary." in content
        summarizer.summarize_zen.assert_not_called()

    def test_failed_summaries_still_publish(self, tmp_path: Path) -> None:
        """Should publish with blank descriptions when summaries are empty."""
        summarizer = MagicMock(spec=Summarizer)
        summarizer.summarize_item.return_value = ""
        summarizer.summarize_overall.return_value = ""
        builder, store, _, _ = _make_builder(tmp_path, summarizer=summarizer)
        _seed(store, 5)

        result = builder.run_once(FIXED_NOW)

        assert result.state == DigestState.PUBLISHED
        assert "summary:" not in _output_path(tmp_path).read_text(encoding="utf-8")
