"""Anthropic Messages API client."""

import structlog

from v2ex_digest.llm.errors import LlmApiError
from v2ex_digest.llm.http import post_with_retry


logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1024


class AnthropicClient:
    """Client for ``/v1/messages``."""

    def __init__(self, api_key: str, model: str, base_url: str = "") -> None:
        """Initialize the client.

        Args:
            api_key: Anthropic API key.
            model: Model identifier.
            base_url: API base URL, defaults to Anthropic.
        """
        self._api_key = api_key
        self.model = model
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._log = logger.bind(component="llm", subcomponent="anthropic")

    def chat(self, system_prompt: str, user_prompt: str) -> str:
        """Send a messages request.

        Raises:
            LlmApiError: If the call fails or the response has no text block.
        """
        response = post_with_retry(
            f"{self._base_url}/v1/messages",
            headers={
                "Content-Type": "application/json",
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body={
                "model": self.model,
                "max_tokens": MAX_TOKENS,
                "system": system_prompt,
                "messages": [{"role": "user", "content": user_prompt}],
            },
            log=self._log,
            provider="Anthropic",
        )

        data = response.json()
        for block in data.get("content") or []:
            if block.get("type") == "text":
                return str(block.get("text") or "").strip()
        msg = "No text block in Anthropic response"
        raise LlmApiError(msg)
