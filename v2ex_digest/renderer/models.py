"""Data models for digest rendering."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from v2ex_digest.store.models import SummarizedItem


@dataclass(frozen=True)
class RenderData:
    """Everything a digest document is rendered from.

    Attributes:
        title: Expanded digest title.
        date: Period key.
        summary: Overall summary ("" when unavailable).
        items: Ranked items with their descriptions.
        frontmatter_summary: Preferred frontmatter summary (zen summary).
    """

    title: str
    date: str
    summary: str = ""
    items: list[SummarizedItem] = field(default_factory=list)
    frontmatter_summary: str = ""


class GeneratedFile(BaseModel):
    """Information about a written file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(description="Absolute path of the file")
    bytes_written: int = Field(ge=0, description="Size in bytes")
    sha256: str = Field(description="SHA-256 checksum of the content")
