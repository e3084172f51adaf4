"""Builder: publishes the period digest once enough topics qualify."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from v2ex_digest.builder.compose import compose_digest, digest_filename
from v2ex_digest.builder.metrics import BuilderMetrics
from v2ex_digest.builder.state_machine import DigestState, DigestStateMachine
from v2ex_digest.llm.summarizer import Summarizer
from v2ex_digest.ranker.ranker import normalize_nodes
from v2ex_digest.renderer.io import AtomicWriter
from v2ex_digest.renderer.markdown import render_markdown
from v2ex_digest.renderer.models import GeneratedFile
from v2ex_digest.store.errors import SnapshotWriteError
from v2ex_digest.store.models import ScoredItem
from v2ex_digest.store.store import RankedStore, period_for


logger = structlog.get_logger()

DEFAULT_CHANNEL = "v2ex-digest"


@dataclass(frozen=True)
class BuilderOptions:
    """Plain configuration values for the builder.

    Attributes:
        channel: Publication channel.
        top_n: Items per digest.
        min_items: Qualifying candidates required to publish.
        overfetch_factor: Candidate pool is ``top_n * overfetch_factor``.
        skip_hours: Suppression window for published items.
        exclude_nodes: Nodes never published.
        title_template: Digest title, ``{date}`` expands to the period.
        language: Summary language.
        zen_summary: Request the short reflective summary.
        interval_seconds: Time between tick starts.
    """

    channel: str = DEFAULT_CHANNEL
    top_n: int = 20
    min_items: int = 5
    overfetch_factor: int = 5
    skip_hours: float = 72
    exclude_nodes: tuple[str, ...] = ()
    title_template: str = "V2EX 日报 {date}"
    language: str = "Chinese"
    zen_summary: bool = False
    interval_seconds: float = 1800.0


@dataclass
class BuildResult:
    """Outcome of one builder tick."""

    period: str
    state: DigestState
    pool_size: int = 0
    qualifying: int = 0
    selected: list[ScoredItem] = field(default_factory=list)
    output: GeneratedFile | None = None
    persisted: bool = False

    @property
    def published_now(self) -> bool:
        """Whether this tick emitted the digest."""
        return self.output is not None


class Builder:
    """Selects the period's best topics and publishes them once.

    Per tick:
        1. Stop if (channel, period) is already published.
        2. Read ``top_n * overfetch_factor`` candidates from the store.
        3. Drop excluded nodes, skipped items and non-positive replies/scores.
        4. Stay pending while fewer than ``min_items`` remain.
        5. Otherwise summarize and render the first ``top_n``, write the
           file, mark the period published and the items skipped, then
           garbage-collect and persist the store.
    """

    def __init__(
        self,
        store: RankedStore,
        writer: AtomicWriter,
        options: BuilderOptions,
        summarizer: Summarizer | None = None,
        metrics: BuilderMetrics | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            store: Shared ranked store.
            writer: Output writer for digest files.
            options: Builder options.
            summarizer: Optional summarizer; descriptions stay blank without it.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._writer = writer
        self._options = options
        self._summarizer = summarizer
        self._metrics = metrics or BuilderMetrics.get_instance()
        self._excluded = normalize_nodes(options.exclude_nodes)
        self._log = logger.bind(component="builder", channel=options.channel)

    @property
    def options(self) -> BuilderOptions:
        """Get the builder options."""
        return self._options

    def run_once(self, now: datetime | None = None) -> BuildResult:
        """Run a single builder tick for the current period.

        Args:
            now: Tick reference time (defaults to the store clock).

        Returns:
            BuildResult describing the outcome.
        """
        now = now or self._store.now()
        period = period_for(now)
        channel = self._options.channel
        log = self._log.bind(period=period)

        initial = (
            DigestState.PUBLISHED
            if self._store.is_published(channel, period)
            else DigestState.PENDING
        )
        machine = DigestStateMachine(channel, period, initial=initial)
        if machine.is_terminal():
            self._metrics.record_already_published()
            log.info("digest_already_published")
            return BuildResult(period=period, state=machine.state)

        pool_size = self._options.top_n * self._options.overfetch_factor
        pool = self._store.top_n(period, pool_size)
        candidates = self._filter_candidates(pool)

        if len(candidates) < self._options.min_items:
            self._metrics.record_pending()
            log.info(
                "digest_pending",
                pool_size=len(pool),
                qualifying=len(candidates),
                min_items=self._options.min_items,
            )
            return BuildResult(
                period=period,
                state=machine.state,
                pool_size=len(pool),
                qualifying=len(candidates),
            )

        machine.transition(DigestState.READY)
        selected = candidates[: self._options.top_n]
        log.info("digest_building", pool_size=len(pool), selected=len(selected))

        render_data = compose_digest(
            period,
            selected,
            self._options.title_template,
            summarizer=self._summarizer,
            language=self._options.language,
            zen_summary=self._options.zen_summary,
        )
        content = render_markdown(render_data)

        result = BuildResult(
            period=period,
            state=machine.state,
            pool_size=len(pool),
            qualifying=len(candidates),
            selected=selected,
        )

        ttl = timedelta(hours=self._options.skip_hours)
        staged = self._writer.stage(digest_filename(period), content)
        output: GeneratedFile | None = None
        try:
            with self._store.transaction():
                if not self._store.is_published(channel, period):
                    output = self._writer.commit(staged)
                    self._store.mark_published(channel, period)
                    for entry in selected:
                        self._store.mark_skipped(channel, entry.item.id, ttl)
        except OSError:
            self._writer.discard(staged)
            raise

        if output is None:
            self._writer.discard(staged)
            self._metrics.record_already_published()
            log.warning("digest_published_concurrently")
            result.state = DigestState.PUBLISHED
            result.selected = []
            return result

        result.output = output
        machine.transition(DigestState.PUBLISHED)
        result.state = machine.state
        self._metrics.record_published(len(selected))
        log.info(
            "digest_published",
            path=output.path,
            items=len(selected),
            bytes=output.bytes_written,
        )

        self._store.gc()
        try:
            self._store.persist()
            result.persisted = True
        except SnapshotWriteError as e:
            self._metrics.record_persist_failure()
            log.error("store_persist_failed", error=e.reason)

        return result

    def _filter_candidates(self, pool: list[ScoredItem]) -> list[ScoredItem]:
        channel = self._options.channel
        return [
            c
            for c in pool
            if c.item.node_name.lower() not in self._excluded
            and not self._store.is_skipped(channel, c.item.id)
            and c.item.replies > 0
            and c.score > 0
        ]
