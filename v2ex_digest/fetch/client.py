"""HTTP client for the V2EX public API."""

import time
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from v2ex_digest.fetch.config import FetchConfig
from v2ex_digest.fetch.constants import (
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    MAX_RETRY_AFTER_SECONDS,
)
from v2ex_digest.fetch.models import FetchError, FetchErrorClass
from v2ex_digest.store.models import Item


logger = structlog.get_logger()

V2EX_BASE_URL = "https://www.v2ex.com"

_HOT_PATH = "/api/topics/hot.json"
_LATEST_PATH = "/api/topics/latest.json"
_NODE_PATH = "/api/topics/show.json"


def normalize_topic(topic: dict[str, Any]) -> Item:
    """Convert a raw V2EX topic payload into an Item.

    Args:
        topic: One element of a V2EX topics response.

    Returns:
        Normalized Item.
    """
    topic_id = topic["id"]
    node = topic.get("node") or {}
    member = topic.get("member") or {}
    return Item(
        id=str(topic_id),
        title=topic.get("title") or "",
        url=topic.get("url") or f"{V2EX_BASE_URL}/t/{topic_id}",
        content=topic.get("content") or "",
        node_name=node.get("name") or "",
        node_title=node.get("title") or "",
        author=member.get("username") or "",
        replies=topic.get("replies") or 0,
        created_at=datetime.fromtimestamp(topic.get("created") or 0, tz=UTC),
    )


class V2exClient:
    """Fetches topics from V2EX and normalizes them into Items.

    Provides:
    - Hot, latest and per-node topic listings
    - Bearer token authentication when a token is configured
    - Retries with exponential backoff on timeouts, 5xx and 429
    - Typed FetchError on every failure
    """

    def __init__(
        self,
        token: str = "",
        config: FetchConfig | None = None,
        base_url: str = V2EX_BASE_URL,
    ) -> None:
        """Initialize the client.

        Args:
            token: Optional V2EX personal access token.
            config: Fetch configuration (timeouts, retries).
            base_url: API base URL.
        """
        self._token = token
        self._config = config or FetchConfig()
        self._base_url = base_url.rstrip("/")
        self._log = logger.bind(component="fetch")

    def fetch_hot(self) -> list[Item]:
        """Fetch the hot topics from the homepage."""
        return self._fetch_topics("hot", _HOT_PATH)

    def fetch_latest(self) -> list[Item]:
        """Fetch the latest topics."""
        return self._fetch_topics("latest", _LATEST_PATH)

    def fetch_by_node(self, node_name: str) -> list[Item]:
        """Fetch topics of a single node."""
        return self._fetch_topics(node_name, _NODE_PATH, {"node_name": node_name})

    def fetch_by_source(self, source: str) -> list[Item]:
        """Fetch topics for a configured source.

        ``hot`` and ``latest`` (case-insensitive) select the site-wide
        listings; anything else is treated as a node name.

        Raises:
            FetchError: If the request fails or the body cannot be parsed.
        """
        keyword = source.lower()
        if keyword == "hot":
            return self.fetch_hot()
        if keyword == "latest":
            return self.fetch_latest()
        return self.fetch_by_node(source)

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": self._config.user_agent,
            "Accept": "application/json",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _fetch_topics(
        self,
        source: str,
        path: str,
        params: dict[str, str] | None = None,
    ) -> list[Item]:
        log = self._log.bind(source=source, path=path)
        start_ns = time.perf_counter_ns()

        payload = self._get_with_retry(source, path, params, log)
        if not isinstance(payload, list):
            raise FetchError(
                FetchErrorClass.PARSE,
                f"Expected a JSON list of topics, got {type(payload).__name__}",
                source=source,
            )

        items: list[Item] = []
        for index, topic in enumerate(payload):
            try:
                items.append(normalize_topic(topic))
            except (
                AttributeError,
                KeyError,
                TypeError,
                ValueError,
                OverflowError,
                OSError,
            ) as e:
                log.warning("topic_malformed", index=index, error=str(e))

        log.debug(
            "fetch_complete",
            items=len(items),
            skipped=len(payload) - len(items),
            duration_ms=round((time.perf_counter_ns() - start_ns) / 1_000_000, 2),
        )
        return items

    def _get_with_retry(
        self,
        source: str,
        path: str,
        params: dict[str, str] | None,
        log: structlog.stdlib.BoundLogger,
    ) -> Any:
        policy = self._config.retry_policy
        attempt = 0
        while True:
            try:
                return self._get_once(source, path, params)
            except FetchError as e:
                if not policy.should_retry(e, attempt):
                    raise
                delay_s = policy.get_delay_ms(attempt) / 1000.0
                if e.error_class == FetchErrorClass.RATE_LIMITED and e.retry_after:
                    delay_s = max(delay_s, min(e.retry_after, MAX_RETRY_AFTER_SECONDS))
                log.info(
                    "retry_attempt",
                    attempt=attempt + 1,
                    error_class=e.error_class.value,
                    delay_s=round(delay_s, 2),
                )
                time.sleep(delay_s)
                attempt += 1

    def _get_once(
        self,
        source: str,
        path: str,
        params: dict[str, str] | None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = httpx.get(
                url,
                params=params,
                headers=self._build_headers(),
                timeout=self._config.timeout_seconds,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            raise FetchError(
                FetchErrorClass.NETWORK_TIMEOUT,
                f"Request timed out: {e}",
                source=source,
            ) from e
        except httpx.ConnectError as e:
            raise FetchError(
                FetchErrorClass.CONNECTION_ERROR,
                f"Connection failed: {e}",
                source=source,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(
                FetchErrorClass.UNKNOWN, f"Request failed: {e}", source=source
            ) from e

        status = response.status_code
        if not HTTP_STATUS_OK_MIN <= status < HTTP_STATUS_OK_MAX:
            raise self._classify_http_error(source, url, response)

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                FetchErrorClass.PARSE,
                f"Response is not valid JSON: {e}",
                source=source,
                status_code=status,
            ) from e

    def _classify_http_error(
        self, source: str, url: str, response: httpx.Response
    ) -> FetchError:
        status = response.status_code
        message = f"V2EX API error: {status} {response.reason_phrase} for {url}"

        if status == HTTP_STATUS_TOO_MANY_REQUESTS:
            retry_after: int | None = None
            header = response.headers.get("retry-after")
            if header and header.isdigit():
                retry_after = int(header)
            return FetchError(
                FetchErrorClass.RATE_LIMITED,
                message,
                source=source,
                status_code=status,
                retry_after=retry_after,
            )
        if status >= HTTP_STATUS_SERVER_ERROR_MIN:
            return FetchError(
                FetchErrorClass.HTTP_5XX, message, source=source, status_code=status
            )
        return FetchError(
            FetchErrorClass.HTTP_4XX, message, source=source, status_code=status
        )
