"""LLM clients and summarization."""

from v2ex_digest.llm.anthropic_client import AnthropicClient
from v2ex_digest.llm.errors import LlmApiError, LlmConfigError
from v2ex_digest.llm.factory import create_llm_client
from v2ex_digest.llm.openai_client import OpenAiClient
from v2ex_digest.llm.protocols import LlmClient
from v2ex_digest.llm.summarizer import Summarizer


__all__ = [
    "AnthropicClient",
    "LlmApiError",
    "LlmClient",
    "LlmConfigError",
    "OpenAiClient",
    "Summarizer",
    "create_llm_client",
]
