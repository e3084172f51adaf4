"""Integration tests for the v2ex-digest CLI."""

import threading
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from tests.helpers.items import make_item
from v2ex_digest.builder import BuilderMetrics
from v2ex_digest.cli.digest import cli, run_service
from v2ex_digest.collectors import CollectorMetrics, TopicSource
from v2ex_digest.config import AppConfig
from v2ex_digest.fetch import FetchError, FetchErrorClass
from v2ex_digest.store import RankedStore, period_for


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    CollectorMetrics.reset()
    BuilderMetrics.reset()


def _write_config(tmp_path: Path, extra: str = "") -> Path:
    """Write a config pointing data and output under tmp_path."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "paths:\n"
        f"  data_dir: {tmp_path / 'data'}\n"
        f"  output_dir: {tmp_path / 'out'}\n"
        "generate:\n"
        "  nodes: [hot, python]\n"
        "  top_n: 3\n"
        f"{extra}",
        encoding="utf-8",
    )
    return path


def _fresh_items(count: int, node_name: str = "python") -> list:
    """Items posted an hour before the real current time."""
    now = datetime.now(UTC)
    return [
        make_item(f"t{i}", replies=10 + i, node_name=node_name, now=now)
        for i in range(count)
    ]


def _mock_client(responses: dict[str, object]) -> MagicMock:
    """Mock V2exClient class whose instance fetches by source."""

    def fetch(source: str) -> object:
        result = responses.get(source, [])
        if isinstance(result, Exception):
            raise result
        return result

    client_cls = MagicMock()
    client_cls.return_value.fetch_by_source.side_effect = fetch
    return client_cls


class TestVersionAndHelp:
    """Tests for top-level options."""

    def test_version(self) -> None:
        """Should print the version."""
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_commands_listed(self) -> None:
        """Should list every command."""
        result = CliRunner().invoke(cli, ["--help"])
        for command in ("generate", "serve", "validate"):
            assert command in result.output


class TestValidateCommand:
    """Tests for the validate command."""

    def test_valid_config(self, tmp_path: Path) -> None:
        """Should print effective values with secrets redacted."""
        path = _write_config(tmp_path, "ai:\n  api_key: sk-secret\n")

        result = CliRunner().invoke(cli, ["validate", "-c", str(path)])

        assert result.exit_code == 0
        assert "Configuration is valid." in result.output
        assert "sk-secret" not in result.output
        assert "'***'" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Should exit 1 and list the failing fields."""
        path = _write_config(tmp_path, "  min_items: 0\n")

        result = CliRunner().invoke(cli, ["validate", "-c", str(path)])

        assert result.exit_code == 1
        assert "generate.min_items" in result.output


class TestGenerateCommand:
    """Tests for the generate command."""

    def test_writes_digest_and_cache(self, tmp_path: Path) -> None:
        """Should write the digest and the day cache."""
        path = _write_config(tmp_path)
        client_cls = _mock_client({"hot": _fresh_items(5)})
        today = period_for(datetime.now(UTC))

        with patch("v2ex_digest.cli.digest.V2exClient", client_cls):
            result = CliRunner().invoke(cli, ["generate", "-c", str(path), "--no-ai"])

        assert result.exit_code == 0, result.output
        digest = tmp_path / "out" / f"daily-{today}.md"
        content = digest.read_text(encoding="utf-8")
        assert content.count("\n## [") == 3
        assert (tmp_path / "data" / f"{today}.json").exists()

    def test_cli_overrides(self, tmp_path: Path) -> None:
        """Should apply --nodes and --top-n over the file."""
        path = _write_config(tmp_path)
        client_cls = _mock_client({"go": _fresh_items(5, node_name="go")})
        today = period_for(datetime.now(UTC))

        with patch("v2ex_digest.cli.digest.V2exClient", client_cls):
            result = CliRunner().invoke(
                cli,
                ["generate", "-c", str(path), "--no-ai", "-n", "go", "-t", "2"],
            )

        assert result.exit_code == 0, result.output
        calls = client_cls.return_value.fetch_by_source.call_args_list
        fetched = [c[0][0] for c in calls]
        assert fetched == ["go"]
        content = (tmp_path / "out" / f"daily-{today}.md").read_text(encoding="utf-8")
        assert content.count("\n## [") == 2

    def test_partial_fetch_failure(self, tmp_path: Path) -> None:
        """Should continue when one source fails."""
        path = _write_config(tmp_path)
        client_cls = _mock_client(
            {
                "hot": FetchError(FetchErrorClass.HTTP_5XX, "HTTP 502"),
                "python": _fresh_items(3),
            }
        )

        with patch("v2ex_digest.cli.digest.V2exClient", client_cls):
            result = CliRunner().invoke(cli, ["generate", "-c", str(path), "--no-ai"])

        assert result.exit_code == 0, result.output

    def test_no_items_fetched(self, tmp_path: Path) -> None:
        """Should exit 1 when every source fails."""
        path = _write_config(tmp_path)
        error = FetchError(FetchErrorClass.NETWORK_TIMEOUT, "timeout")
        client_cls = _mock_client({"hot": error, "python": error})

        with patch("v2ex_digest.cli.digest.V2exClient", client_cls):
            result = CliRunner().invoke(cli, ["generate", "-c", str(path), "--no-ai"])

        assert result.exit_code == 1
        assert "no topics fetched" in result.output

    def test_everything_filtered(self, tmp_path: Path) -> None:
        """Should exit 1 when no topic survives filtering."""
        path = _write_config(tmp_path)
        client_cls = _mock_client({"hot": _fresh_items(3, node_name="promotions")})

        with patch("v2ex_digest.cli.digest.V2exClient", client_cls):
            result = CliRunner().invoke(cli, ["generate", "-c", str(path), "--no-ai"])

        assert result.exit_code == 1
        assert "no topics passed the filter" in result.output

    def test_recent_topics_skipped_next_run(self, tmp_path: Path) -> None:
        """Should skip topics saved by a recent run."""
        path = _write_config(tmp_path)
        client_cls = _mock_client({"hot": _fresh_items(3)})

        with patch("v2ex_digest.cli.digest.V2exClient", client_cls):
            first = CliRunner().invoke(cli, ["generate", "-c", str(path), "--no-ai"])
            second = CliRunner().invoke(cli, ["generate", "-c", str(path), "--no-ai"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 1


class TestServeCommand:
    """Tests for the serve command and service loop."""

    def test_run_service_build_now(self, tmp_path: Path) -> None:
        """Should collect, publish and persist when built immediately."""
        config = AppConfig.model_validate(
            {
                "paths": {
                    "data_dir": str(tmp_path / "data"),
                    "output_dir": str(tmp_path / "out"),
                },
                "generate": {"nodes": ["hot"], "top_n": 5, "min_items": 5},
            }
        )
        source = MagicMock(spec=TopicSource)
        source.fetch_by_source.return_value = _fresh_items(6)
        shutdown = threading.Event()
        shutdown.set()
        period = period_for(datetime.now(UTC))

        persisted = run_service(config, shutdown, build_now=True, source=source)

        assert persisted
        assert (tmp_path / "out" / f"daily-{period}.md").exists()
        store = RankedStore(tmp_path / "data")
        assert store.load()
        assert store.is_published("v2ex-digest", period)
        assert BuilderMetrics.get_instance().published_total == 1

    def test_run_service_restart_does_not_republish(self, tmp_path: Path) -> None:
        """Should remember the publication across restarts."""
        config = AppConfig.model_validate(
            {
                "paths": {
                    "data_dir": str(tmp_path / "data"),
                    "output_dir": str(tmp_path / "out"),
                },
                "generate": {"nodes": ["hot"], "top_n": 5, "min_items": 5},
            }
        )
        source = MagicMock(spec=TopicSource)
        source.fetch_by_source.return_value = _fresh_items(6)
        shutdown = threading.Event()
        shutdown.set()

        run_service(config, shutdown, build_now=True, source=source)
        run_service(config, shutdown, build_now=True, source=source)

        metrics = BuilderMetrics.get_instance()
        assert metrics.published_total == 1
        assert metrics.already_published_total == 1

    def test_run_service_build_now_survives_write_failure(
        self, tmp_path: Path
    ) -> None:
        """Should log a failed immediate build and still shut down cleanly."""
        (tmp_path / "out").write_text("not a directory", encoding="utf-8")
        config = AppConfig.model_validate(
            {
                "paths": {
                    "data_dir": str(tmp_path / "data"),
                    "output_dir": str(tmp_path / "out"),
                },
                "generate": {"nodes": ["hot"], "top_n": 5, "min_items": 5},
            }
        )
        source = MagicMock(spec=TopicSource)
        source.fetch_by_source.return_value = _fresh_items(6)
        shutdown = threading.Event()
        shutdown.set()
        period = period_for(datetime.now(UTC))

        persisted = run_service(config, shutdown, build_now=True, source=source)

        assert persisted
        store = RankedStore(tmp_path / "data")
        assert store.load()
        assert len(store.top_n(period, 10)) == 6
        assert not store.is_published("v2ex-digest", period)
        assert BuilderMetrics.get_instance().published_total == 0

    def test_serve_exit_code_on_persist_failure(self, tmp_path: Path) -> None:
        """Should exit 1 when the final persist fails."""
        path = _write_config(tmp_path)

        with patch("v2ex_digest.cli.digest.run_service", return_value=False):
            result = CliRunner().invoke(cli, ["serve", "-c", str(path)])

        assert result.exit_code == 1
        assert "failed to persist" in result.output

    def test_serve_clean_exit(self, tmp_path: Path) -> None:
        """Should exit 0 and pass --now through."""
        path = _write_config(tmp_path)

        with patch("v2ex_digest.cli.digest.run_service", return_value=True) as mock_run:
            result = CliRunner().invoke(cli, ["serve", "-c", str(path), "--now"])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args[1]["build_now"] is True

    def test_serve_invalid_config(self, tmp_path: Path) -> None:
        """Should exit 1 on an invalid config."""
        path = _write_config(tmp_path, "  top_n: -1\n")
        result = CliRunner().invoke(cli, ["serve", "-c", str(path)])
        assert result.exit_code == 1
