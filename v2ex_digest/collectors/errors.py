"""Error records for collector ticks."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from v2ex_digest.fetch.models import FetchError, FetchErrorClass


class ErrorRecord(BaseModel):
    """Serializable record of a failed source fetch."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass = Field(description="Error classification")
    message: Annotated[str, Field(min_length=1, description="Error message")]
    source: str = Field(description="Source that failed")
    status_code: int | None = Field(default=None, description="HTTP status code")

    @classmethod
    def from_exception(cls, source: str, error: Exception) -> "ErrorRecord":
        """Create an ErrorRecord from any exception raised by a fetch.

        Args:
            source: Source being fetched.
            error: The raised exception.

        Returns:
            ErrorRecord instance.
        """
        if isinstance(error, FetchError):
            return cls(
                error_class=error.error_class,
                message=error.message or error.error_class.value,
                source=source,
                status_code=error.status_code,
            )
        return cls(
            error_class=FetchErrorClass.UNKNOWN,
            message=str(error) or type(error).__name__,
            source=source,
        )
