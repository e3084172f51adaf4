"""Shared HTTP plumbing for chat API clients."""

import random
import time
from http import HTTPStatus

import httpx
import structlog

from v2ex_digest.llm.errors import LlmApiError


MAX_RETRIES = 3
RETRY_BASE_DELAY = 2.0  # seconds
REQUEST_TIMEOUT = 60.0  # seconds
RETRYABLE_STATUS_CODES = {
    HTTPStatus.TOO_MANY_REQUESTS,
    HTTPStatus.SERVICE_UNAVAILABLE,
}


def post_with_retry(
    url: str,
    headers: dict[str, str],
    body: dict[str, object],
    log: structlog.stdlib.BoundLogger,
    provider: str,
) -> httpx.Response:
    """POST a JSON body, retrying 429/503 with exponential backoff.

    Args:
        url: Endpoint URL.
        headers: Request headers.
        body: JSON request body.
        log: Bound logger.
        provider: Provider name for messages.

    Returns:
        The 200 response.

    Raises:
        LlmApiError: On network errors, non-retryable statuses, or when
            retries are exhausted.
    """
    for attempt in range(MAX_RETRIES + 1):
        try:
            response = httpx.post(
                url, headers=headers, json=body, timeout=REQUEST_TIMEOUT
            )
        except httpx.HTTPError as exc:
            msg = f"{provider} request failed: {exc}"
            raise LlmApiError(msg) from exc

        if response.status_code == HTTPStatus.OK:
            return response

        if response.status_code in RETRYABLE_STATUS_CODES and attempt < MAX_RETRIES:
            delay = RETRY_BASE_DELAY * (2**attempt) + random.uniform(0, 1)  # noqa: S311
            log.warning(
                "llm_retryable_error",
                status=response.status_code,
                attempt=attempt + 1,
                retry_delay=round(delay, 1),
            )
            time.sleep(delay)
            continue

        msg = f"{provider} API returned {response.status_code}: {response.text[:200]}"
        raise LlmApiError(msg, status_code=response.status_code)

    msg = f"{provider} API retries exhausted"
    raise LlmApiError(msg)
