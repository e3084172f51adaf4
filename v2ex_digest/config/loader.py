"""Configuration loader: defaults <- YAML file <- CLI overrides <- env fallbacks."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from v2ex_digest.config.schemas import AppConfig
from v2ex_digest.settings import AppSettings, get_settings


logger = structlog.get_logger()

DEFAULT_CONFIG_NAMES: tuple[str, ...] = ("config.yaml", "config.yml")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


def find_config_file(config_path: Path | None = None) -> Path | None:
    """Locate the configuration file.

    An explicit path is returned only if it exists; otherwise ``config.yaml``
    then ``config.yml`` in the working directory are tried.
    """
    if config_path:
        candidates = [config_path]
    else:
        candidates = [Path(name) for name in DEFAULT_CONFIG_NAMES]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``.

    Nested mappings merge; every other value, lists included, replaces the
    base value. ``None`` in the override means "not given" and is ignored.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _format_errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {
            "loc": ".".join(str(part) for part in err["loc"]),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def load_config(
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    settings: AppSettings | None = None,
) -> AppConfig:
    """Load the effective configuration.

    Args:
        config_path: Explicit YAML path; ``config.yaml``/``config.yml`` otherwise.
        overrides: Nested CLI overrides, same shape as the YAML file.
        settings: Environment settings used to fill empty secrets.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigValidationError: If the merged configuration is invalid.
    """
    log = logger.bind(component="config")
    path = find_config_file(config_path)
    source = str(path) if path else "<defaults>"

    file_data: dict[str, Any] = {}
    if path is not None:
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                [{"loc": "", "msg": f"Invalid YAML: {e}", "type": "yaml_error"}],
                source,
            ) from e
        if not isinstance(loaded, dict):
            raise ConfigValidationError(
                [
                    {
                        "loc": "",
                        "msg": "Top level must be a mapping",
                        "type": "type_error",
                    }
                ],
                source,
            )
        file_data = loaded
        log.info("config_file_loaded", file_path=source)
    elif config_path is not None:
        log.warning("config_file_not_found", file_path=str(config_path))

    data = deep_merge(file_data, overrides or {})

    settings = settings or get_settings()
    v2ex = dict(data.get("v2ex") or {})
    if not v2ex.get("token") and settings.v2ex_token:
        v2ex["token"] = settings.v2ex_token
        data["v2ex"] = v2ex

    ai = dict(data.get("ai") or {})
    if not ai.get("api_key"):
        provider = str(ai.get("provider") or "openai")
        api_key = settings.api_key_for_provider(provider)
        if api_key:
            ai["api_key"] = api_key
            data["ai"] = ai

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        errors = _format_errors(e)
        log.warning("config_validation_failed", file_path=source, errors=len(errors))
        raise ConfigValidationError(errors, source) from e

    log.debug("config_ready", file_path=source)
    return config
