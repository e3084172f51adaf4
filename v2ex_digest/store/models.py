"""Data models shared by the store, ranker, collector and builder."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import Field, field_validator

from v2ex_digest.data_model import StrictBaseModel


SNAPSHOT_SCHEMA_VERSION = 1


class Item(StrictBaseModel):
    """A fetched topic.

    Immutable once fetched. Re-fetching the same id produces a new value
    that replaces the stored copy.
    """

    id: Annotated[str, Field(min_length=1, description="Stable topic identifier")]
    title: str = Field(description="Topic title")
    url: str = Field(default="", description="Topic URL")
    content: str = Field(default="", description="Body text")
    node_name: str = Field(default="", description="Origin node identifier")
    node_title: str = Field(default="", description="Origin node display name")
    author: str = Field(default="", description="Author username")
    replies: Annotated[int, Field(ge=0, description="Reply count")] = 0
    created_at: datetime = Field(description="Creation timestamp (UTC)")

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)


@dataclass(frozen=True)
class ScoredItem:
    """An item paired with its popularity score."""

    item: Item
    score: float


@dataclass(frozen=True)
class SummarizedItem:
    """A ranked item with its AI description ("" when unavailable)."""

    item: Item
    score: float
    description: str = ""


class Snapshot(StrictBaseModel):
    """Serialized image of the whole store.

    Composite keys are ``"<channel>:<period>"`` for ``published`` and
    ``"<channel>:<item id>"`` for ``skipped``; skip expiries are Unix
    timestamps in seconds.
    """

    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    saved_at: datetime | None = None
    items: dict[str, Item] = Field(default_factory=dict)
    period_scores: dict[str, dict[str, float]] = Field(default_factory=dict)
    published: list[str] = Field(default_factory=list)
    skipped: dict[str, float] = Field(default_factory=dict)

    @field_validator("schema_version")
    @classmethod
    def check_version(cls, v: int) -> int:
        """Reject snapshots written by an unknown schema."""
        if v != SNAPSHOT_SCHEMA_VERSION:
            msg = (
                f"Unsupported snapshot schema_version {v} "
                f"(expected {SNAPSHOT_SCHEMA_VERSION})"
            )
            raise ValueError(msg)
        return v


def composite_key(channel: str, key: str) -> str:
    """Join a channel and a period or item id into a snapshot key."""
    return f"{channel}:{key}"


def split_composite_key(value: str) -> tuple[str, str]:
    """Split a snapshot key at its last colon.

    Periods and V2EX ids never contain a colon, so the channel may.
    """
    channel, sep, key = value.rpartition(":")
    if not sep or not channel or not key:
        msg = f"Malformed composite key: {value!r}"
        raise ValueError(msg)
    return channel, key


def items_to_json(items: list[Item]) -> list[dict[str, Any]]:
    """Dump items in their JSON form."""
    return [item.model_dump(mode="json") for item in items]
