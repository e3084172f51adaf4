"""Configuration schema and YAML loading."""

from v2ex_digest.config.loader import (
    ConfigValidationError,
    find_config_file,
    load_config,
)
from v2ex_digest.config.schemas import (
    AiConfig,
    AiProvider,
    AppConfig,
    GenerateConfig,
    PathsConfig,
    TemplateConfig,
    V2exConfig,
)


__all__ = [
    "AiConfig",
    "AiProvider",
    "AppConfig",
    "ConfigValidationError",
    "GenerateConfig",
    "PathsConfig",
    "TemplateConfig",
    "V2exConfig",
    "find_config_file",
    "load_config",
]
