"""Application configuration schema.

Mirrors the snake_case layout of ``config.yaml``::

    v2ex:
      token: ""
    ai:
      provider: openai
      model: gpt-4o-mini
    generate:
      nodes: [hot]
      top_n: 20
    template:
      title: "V2EX 日报 {date}"
"""

from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator

from v2ex_digest.data_model import StrictBaseModel


class AiProvider(str, Enum):
    """Supported chat completion protocols."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class V2exConfig(StrictBaseModel):
    """V2EX API access.

    Attributes:
        token: Personal access token, sent as a bearer token when set.
    """

    token: str = ""


class AiConfig(StrictBaseModel):
    """AI summarization settings.

    Attributes:
        provider: Chat protocol to speak.
        api_key: Provider API key (falls back to the environment).
        model: Model identifier.
        base_url: Optional API base URL for compatible gateways.
        language: Language the summaries are written in.
        zen_summary: Generate a short reflective summary for the frontmatter.
    """

    provider: AiProvider = AiProvider.OPENAI
    api_key: str = ""
    model: Annotated[str, Field(min_length=1)] = "gpt-4o-mini"
    base_url: str = ""
    language: Annotated[str, Field(min_length=1)] = "Chinese"
    zen_summary: bool = False


class GenerateConfig(StrictBaseModel):
    """Collection, ranking and publishing settings.

    Attributes:
        nodes: Sources to poll: ``hot``, ``latest`` or a node name.
        exclude_nodes: Node names never included in a digest.
        top_n: Number of topics per digest.
        skip_hours: How long a published topic is suppressed from later digests.
        fetch_interval_min: Collector interval in minutes.
        build_interval_min: Builder interval in minutes.
        min_items: Qualifying topics required before a digest is published.
    """

    nodes: Annotated[list[str], Field(min_length=1)] = Field(
        default_factory=lambda: ["hot"]
    )
    exclude_nodes: list[str] = Field(
        default_factory=lambda: ["promotions", "deals", "cv", "exchange"]
    )
    top_n: Annotated[int, Field(ge=1, le=200)] = 20
    skip_hours: Annotated[float, Field(ge=0)] = 72
    fetch_interval_min: Annotated[float, Field(gt=0)] = 10
    build_interval_min: Annotated[float, Field(gt=0)] = 30
    min_items: Annotated[int, Field(ge=1)] = 5

    @field_validator("nodes", "exclude_nodes")
    @classmethod
    def strip_node_names(cls, v: list[str]) -> list[str]:
        """Drop blank entries and surrounding whitespace."""
        return [node.strip() for node in v if node.strip()]


class TemplateConfig(StrictBaseModel):
    """Digest presentation.

    Attributes:
        title: Digest title; ``{date}`` expands to the period.
    """

    title: Annotated[str, Field(min_length=1)] = "V2EX 日报 {date}"


class PathsConfig(StrictBaseModel):
    """Filesystem locations.

    Attributes:
        data_dir: Store snapshot and per-day raw caches.
        output_dir: Rendered digests.
    """

    data_dir: Path = Path("data")
    output_dir: Path = Path("out")


class AppConfig(StrictBaseModel):
    """Effective application configuration."""

    v2ex: V2exConfig = Field(default_factory=V2exConfig)
    ai: AiConfig = Field(default_factory=AiConfig)
    generate: GenerateConfig = Field(default_factory=GenerateConfig)
    template: TemplateConfig = Field(default_factory=TemplateConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    @property
    def ai_enabled(self) -> bool:
        """Whether summaries can be requested at all."""
        return bool(self.ai.api_key)

    def redacted(self) -> dict[str, object]:
        """Dump the config with secrets masked, for display."""
        data = self.model_dump(mode="json")
        if data["v2ex"]["token"]:
            data["v2ex"]["token"] = "***"
        if data["ai"]["api_key"]:
            data["ai"]["api_key"] = "***"
        return data
