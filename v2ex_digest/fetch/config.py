"""Configuration for the HTTP fetch layer."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from v2ex_digest.fetch.models import RetryPolicy


class FetchConfig(BaseModel):
    """Timeouts, identification and retry policy for V2EX requests."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        "v2ex-digest/1.0"
    )
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = 30.0
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
