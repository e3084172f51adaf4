"""Topic and digest summarization on top of an LlmClient."""

from collections.abc import Sequence

import structlog

from v2ex_digest.llm import prompts
from v2ex_digest.llm.protocols import LlmClient
from v2ex_digest.store.models import Item


logger = structlog.get_logger()


class Summarizer:
    """Produces summaries for topics and whole digests.

    Every method returns "" when the model call fails; a missing summary
    never blocks a digest.
    """

    def __init__(self, client: LlmClient) -> None:
        """Initialize the summarizer.

        Args:
            client: Chat client to use.
        """
        self._client = client
        self._log = logger.bind(component="llm", subcomponent="summarizer")

    def summarize_item(self, title: str, body: str, language: str) -> str:
        """Summarize one topic in 1-3 sentences."""
        return self._chat(
            "item",
            prompts.item_system_prompt(language),
            prompts.item_user_prompt(title, body),
        )

    def summarize_overall(self, items: Sequence[Item], language: str) -> str:
        """Summarize the day's highlights in 3-5 sentences."""
        if not items:
            return ""
        return self._chat(
            "overall",
            prompts.overall_system_prompt(language),
            prompts.overall_user_prompt(items),
        )

    def summarize_zen(self, items: Sequence[Item], language: str) -> str:
        """Short reflective summary of the day, for previews."""
        if not items:
            return ""
        return self._chat(
            "zen",
            prompts.zen_system_prompt(language),
            prompts.zen_user_prompt(items),
        )

    def _chat(self, kind: str, system_prompt: str, user_prompt: str) -> str:
        try:
            return self._client.chat(system_prompt, user_prompt)
        except Exception as e:  # noqa: BLE001
            self._log.warning(
                "summary_failed",
                kind=kind,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ""
