"""CLI commands for the V2EX digest."""

import logging
import signal
import sys
import threading
import uuid
from pathlib import Path
from types import FrameType
from typing import Any

import click
import structlog
import yaml

from v2ex_digest import __version__
from v2ex_digest.builder import (
    Builder,
    BuilderMetrics,
    BuilderOptions,
    compose_digest,
    digest_filename,
)
from v2ex_digest.collectors import (
    Collector,
    CollectorMetrics,
    CollectorOptions,
    TopicSource,
)
from v2ex_digest.config import AppConfig, ConfigValidationError, load_config
from v2ex_digest.fetch import FetchError, V2exClient
from v2ex_digest.llm import LlmConfigError, Summarizer, create_llm_client
from v2ex_digest.observability.logging import bind_run_context, configure_logging
from v2ex_digest.ranker import rank_top
from v2ex_digest.renderer import AtomicWriter, render_markdown
from v2ex_digest.scheduler import PeriodicTask, run_guarded
from v2ex_digest.store import (
    DailyCache,
    Item,
    RankedStore,
    SnapshotWriteError,
    period_for,
    utc_now,
)


logger = structlog.get_logger()

COMPONENT_CLI = "cli"
SECONDS_PER_MINUTE = 60


def _setup_logging(
    command: str, json_logs: bool, verbose: bool
) -> structlog.typing.FilteringBoundLogger:
    """Configure logging and return a logger bound to a fresh run id.

    Args:
        command: CLI command name.
        json_logs: Emit JSON lines instead of console output.
        verbose: Enable DEBUG level.

    Returns:
        Bound logger with run context.
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, json_format=json_logs)
    run_id = str(uuid.uuid4())
    bind_run_context(run_id)
    log = logger.bind(component=COMPONENT_CLI, command=command)
    return log  # type: ignore[no-any-return]


def _load_config_or_exit(
    config_path: Path | None,
    overrides: dict[str, Any] | None,
    log: structlog.typing.FilteringBoundLogger,
) -> AppConfig:
    """Load the configuration, printing validation errors and exiting on failure."""
    try:
        return load_config(config_path, overrides)
    except ConfigValidationError as e:
        log.warning("config_load_failed", file_path=e.file_path, errors=len(e.errors))
        click.echo(f"Configuration validation failed ({e.file_path}):", err=True)
        for error in e.errors:
            location = error["loc"] or "<root>"
            click.echo(f"  - {location}: {error['msg']}", err=True)
        sys.exit(1)


def _build_summarizer(
    config: AppConfig, log: structlog.typing.FilteringBoundLogger
) -> Summarizer | None:
    """Create a summarizer, or None when AI is not configured."""
    if not config.ai_enabled:
        log.warning("ai_not_configured", reason="no_api_key")
        return None
    try:
        client = create_llm_client(
            provider=config.ai.provider,
            api_key=config.ai.api_key,
            model=config.ai.model,
            base_url=config.ai.base_url,
        )
    except LlmConfigError as e:
        log.warning("ai_client_unavailable", error=str(e))
        return None
    return Summarizer(client)


def _fetch_all(
    client: V2exClient,
    sources: list[str],
    log: structlog.typing.FilteringBoundLogger,
) -> list[Item]:
    """Fetch every source, logging and skipping the ones that fail."""
    items: list[Item] = []
    for source in sources:
        try:
            fetched = client.fetch_by_source(source)
        except FetchError as e:
            log.warning(
                "source_fetch_failed",
                source=source,
                error_class=e.error_class.value,
                error=e.message,
            )
            continue
        log.info("source_fetched", source=source, items=len(fetched))
        items.extend(fetched)
    return items


def _generate_overrides(  # noqa: PLR0913
    nodes: tuple[str, ...],
    top_n: int | None,
    language: str | None,
    token: str | None,
    ai_provider: str | None,
    ai_model: str | None,
    ai_base_url: str | None,
    ai_api_key: str | None,
    exclude_nodes: tuple[str, ...],
) -> dict[str, Any]:
    """Nested config overrides from generate options; unset values stay None."""
    return {
        "v2ex": {"token": token},
        "ai": {
            "provider": ai_provider,
            "model": ai_model,
            "base_url": ai_base_url,
            "api_key": ai_api_key,
            "language": language,
        },
        "generate": {
            "nodes": list(nodes) or None,
            "top_n": top_n,
            "exclude_nodes": list(exclude_nodes) or None,
        },
    }


@click.group()
@click.version_option(version=__version__, prog_name="v2ex-digest")
def cli() -> None:
    """V2EX daily digest: collect, rank, summarize and publish Markdown."""


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config.yaml",
)
@click.option("--nodes", "-n", multiple=True, help="Source to fetch (repeatable)")
@click.option("--top-n", "-t", type=int, default=None, help="Number of topics")
@click.option("--language", "-l", default=None, help="Summary language")
@click.option("--ai/--no-ai", default=True, help="Enable AI summaries")
@click.option("--token", default=None, help="V2EX API token")
@click.option(
    "--ai-provider",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="AI provider",
)
@click.option("--ai-model", default=None, help="AI model name")
@click.option("--ai-base-url", default=None, help="AI API base URL")
@click.option("--ai-api-key", default=None, help="AI API key")
@click.option("--exclude-nodes", multiple=True, help="Node to exclude (repeatable)")
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Output logs in JSON format",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def generate(  # noqa: PLR0913
    config_path: Path | None,
    nodes: tuple[str, ...],
    top_n: int | None,
    language: str | None,
    ai: bool,
    token: str | None,
    ai_provider: str | None,
    ai_model: str | None,
    ai_base_url: str | None,
    ai_api_key: str | None,
    exclude_nodes: tuple[str, ...],
    json_logs: bool,
    verbose: bool,
) -> None:
    """Generate today's digest in one shot."""
    log = _setup_logging("generate", json_logs, verbose)
    overrides = _generate_overrides(
        nodes, top_n, language, token, ai_provider, ai_model, ai_base_url,
        ai_api_key, exclude_nodes,
    )
    config = _load_config_or_exit(config_path, overrides, log)

    now = utc_now()
    today = period_for(now)
    gen = config.generate
    log = log.bind(period=today)
    log.info(
        "generate_started",
        nodes=gen.nodes,
        exclude_nodes=gen.exclude_nodes,
        top_n=gen.top_n,
        ai=f"{config.ai.provider.value}/{config.ai.model}" if ai else "disabled",
    )

    client = V2exClient(token=config.v2ex.token)
    items = _fetch_all(client, gen.nodes, log)
    if not items:
        log.error("no_topics_fetched")
        click.echo("Error: no topics fetched", err=True)
        sys.exit(1)

    cache = DailyCache(config.paths.data_dir)
    skip_ids = cache.recent_ids(gen.skip_hours)
    ranked = rank_top(
        items, gen.top_n, now, skip_ids=skip_ids, exclude_nodes=gen.exclude_nodes
    )
    log.info(
        "topics_ranked",
        fetched=len(items),
        selected=len(ranked),
        skipped=len(skip_ids),
    )
    if not ranked:
        log.error("no_topics_selected")
        click.echo("Error: no topics passed the filter", err=True)
        sys.exit(1)

    summarizer = _build_summarizer(config, log) if ai else None
    render_data = compose_digest(
        today,
        ranked,
        config.template.title,
        summarizer=summarizer,
        language=config.ai.language,
        zen_summary=config.ai.zen_summary,
    )
    output = AtomicWriter(config.paths.output_dir).write(
        digest_filename(today), render_markdown(render_data)
    )
    cache_path = cache.save(today, items)

    log.info(
        "generate_complete",
        path=output.path,
        items=len(ranked),
        bytes=output.bytes_written,
        cache_path=str(cache_path),
    )
    click.echo(f"Daily digest written to: {output.path}")


def run_service(
    config: AppConfig,
    shutdown: threading.Event,
    build_now: bool = False,
    source: TopicSource | None = None,
) -> bool:
    """Run the collector and builder loops until ``shutdown`` is set.

    Args:
        config: Effective configuration.
        shutdown: Shared stop signal for both loops.
        build_now: Collect once and build once before starting the loops.
        source: Topic fetcher (defaults to a client built from the config).

    Returns:
        True if the final store persist succeeded.
    """
    log = logger.bind(component=COMPONENT_CLI, command="serve")
    gen = config.generate

    store = RankedStore(config.paths.data_dir)
    store.load()

    collector = Collector(
        store,
        source or V2exClient(token=config.v2ex.token),
        CollectorOptions(
            sources=tuple(gen.nodes),
            interval_seconds=gen.fetch_interval_min * SECONDS_PER_MINUTE,
        ),
    )
    builder = Builder(
        store,
        AtomicWriter(config.paths.output_dir),
        BuilderOptions(
            top_n=gen.top_n,
            min_items=gen.min_items,
            skip_hours=gen.skip_hours,
            exclude_nodes=tuple(gen.exclude_nodes),
            title_template=config.template.title,
            language=config.ai.language,
            zen_summary=config.ai.zen_summary,
            interval_seconds=gen.build_interval_min * SECONDS_PER_MINUTE,
        ),
        summarizer=_build_summarizer(config, log),
    )

    log.info(
        "serve_started",
        nodes=gen.nodes,
        exclude_nodes=gen.exclude_nodes,
        fetch_interval_min=gen.fetch_interval_min,
        build_interval_min=gen.build_interval_min,
        top_n=gen.top_n,
        min_items=gen.min_items,
        ai_enabled=config.ai_enabled,
    )

    if build_now:
        log.info("serve_build_now")
        run_guarded(collector.run_once, log.bind(task="collector"))
        run_guarded(builder.run_once, log.bind(task="builder"))

    tasks = [
        PeriodicTask(
            "collector",
            collector.options.interval_seconds,
            collector.run_once,
            shutdown,
            run_immediately=not build_now,
        ),
        PeriodicTask(
            "builder",
            builder.options.interval_seconds,
            builder.run_once,
            shutdown,
        ),
    ]
    for task in tasks:
        task.start()
    for task in tasks:
        task.join()

    persisted = True
    try:
        store.persist()
    except SnapshotWriteError as e:
        log.error("final_persist_failed", error=e.reason)
        persisted = False

    log.info(
        "serve_stopped",
        persisted=persisted,
        collector_metrics=CollectorMetrics.get_instance().to_dict(),
        builder_metrics=BuilderMetrics.get_instance().to_dict(),
        store=store.stats(),
    )
    return persisted


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config.yaml",
)
@click.option(
    "--now",
    "build_now",
    is_flag=True,
    help="Collect once and build once before starting the loops",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Output logs in JSON format",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def serve(
    config_path: Path | None,
    build_now: bool,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Run continuously: collect topics, accumulate scores, publish daily."""
    log = _setup_logging("serve", json_logs, verbose)
    config = _load_config_or_exit(config_path, None, log)

    shutdown = threading.Event()

    def _request_shutdown(signum: int, _frame: FrameType | None) -> None:
        log.info("shutdown_requested", signal=signal.Signals(signum).name)
        shutdown.set()

    previous = {
        sig: signal.signal(sig, _request_shutdown)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        persisted = run_service(config, shutdown, build_now=build_now)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if not persisted:
        click.echo("Error: failed to persist store on shutdown", err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config.yaml",
)
def validate(config_path: Path | None) -> None:
    """Validate the configuration and print the effective values."""
    configure_logging(level=logging.WARNING, json_format=False)
    log = logger.bind(component=COMPONENT_CLI, command="validate")
    config = _load_config_or_exit(config_path, None, log)
    click.echo(
        yaml.safe_dump(config.redacted(), allow_unicode=True, sort_keys=False)
    )
    click.echo("Configuration is valid.")


if __name__ == "__main__":
    cli()
