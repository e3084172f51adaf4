"""Protocol interface for LLM clients."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LlmClient(Protocol):
    """Protocol for chat completion clients.

    Any client that implements ``chat`` with the matching signature can be
    used by the summarizer, regardless of the wire protocol behind it.
    """

    def chat(self, system_prompt: str, user_prompt: str) -> str:
        """Run one system + user exchange.

        Args:
            system_prompt: System-level instruction.
            user_prompt: User message.

        Returns:
            Generated text, stripped.

        Raises:
            LlmApiError: If the API call fails.
        """
        ...
