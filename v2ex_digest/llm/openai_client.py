"""OpenAI-compatible chat completions client."""

import structlog

from v2ex_digest.llm.errors import LlmApiError
from v2ex_digest.llm.http import post_with_retry


logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.openai.com/v1"
TEMPERATURE = 0.4


class OpenAiClient:
    """Client for ``/chat/completions`` on OpenAI or any compatible gateway."""

    def __init__(self, api_key: str, model: str, base_url: str = "") -> None:
        """Initialize the client.

        Args:
            api_key: Bearer API key.
            model: Model identifier.
            base_url: API base URL, defaults to OpenAI.
        """
        self._api_key = api_key
        self.model = model
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._log = logger.bind(component="llm", subcomponent="openai")

    def chat(self, system_prompt: str, user_prompt: str) -> str:
        """Send a chat completion request.

        Raises:
            LlmApiError: If the call fails or the response has no content.
        """
        response = post_with_retry(
            f"{self._base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            body={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": TEMPERATURE,
            },
            log=self._log,
            provider="OpenAI",
        )

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            msg = "No choices in OpenAI response"
            raise LlmApiError(msg)
        content = (choices[0].get("message") or {}).get("content") or ""
        return str(content).strip()
