"""Error and retry models for the fetch layer."""

import random
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class FetchErrorClass(str, Enum):
    """Classification of fetch errors for metrics and retry decisions.

    - NETWORK_TIMEOUT: Request timed out
    - CONNECTION_ERROR: Could not establish connection
    - HTTP_4XX: Non-retryable 4xx client error (except 429)
    - HTTP_5XX: Retryable 5xx server error
    - RATE_LIMITED: 429 Too Many Requests
    - PARSE: Body was not the expected JSON shape
    - UNKNOWN: Unclassified error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    RATE_LIMITED = "RATE_LIMITED"
    PARSE = "PARSE"
    UNKNOWN = "UNKNOWN"


class FetchError(Exception):
    """Raised when topics for a source could not be fetched."""

    def __init__(
        self,
        error_class: FetchErrorClass,
        message: str,
        source: str | None = None,
        status_code: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        """Initialize the fetch error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            source: Source (node or keyword) being fetched.
            status_code: HTTP status code if a response arrived.
            retry_after: Retry-After seconds (for 429).
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.source = source
        self.status_code = status_code
        self.retry_after = retry_after


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Uses exponential backoff: delay = base_delay_ms * (exponential_base ^ attempt)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 2
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 1000
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 30000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1

    def should_retry(self, error: FetchError, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            error: The error that occurred.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False

        retryable_classes = {
            FetchErrorClass.NETWORK_TIMEOUT,
            FetchErrorClass.CONNECTION_ERROR,
            FetchErrorClass.HTTP_5XX,
            FetchErrorClass.RATE_LIMITED,
        }
        return error.error_class in retryable_classes

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay_ms)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)
