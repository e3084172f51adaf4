"""V2EX API client with retries and typed failures."""

from v2ex_digest.fetch.client import V2EX_BASE_URL, V2exClient, normalize_topic
from v2ex_digest.fetch.config import FetchConfig
from v2ex_digest.fetch.models import FetchError, FetchErrorClass, RetryPolicy


__all__ = [
    "V2EX_BASE_URL",
    "FetchConfig",
    "FetchError",
    "FetchErrorClass",
    "RetryPolicy",
    "V2exClient",
    "normalize_topic",
]
