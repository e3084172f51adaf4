"""Factory for creating chat clients by provider."""

import structlog

from v2ex_digest.config.schemas import AiProvider
from v2ex_digest.llm.anthropic_client import AnthropicClient
from v2ex_digest.llm.errors import LlmConfigError
from v2ex_digest.llm.openai_client import OpenAiClient
from v2ex_digest.llm.protocols import LlmClient


logger = structlog.get_logger()


def create_llm_client(
    *,
    provider: AiProvider | str,
    api_key: str,
    model: str,
    base_url: str = "",
) -> LlmClient:
    """Create a chat client for the configured provider.

    Args:
        provider: ``openai`` or ``anthropic``.
        api_key: Provider API key.
        model: Model identifier.
        base_url: Optional base URL override.

    Returns:
        An LlmClient implementation ready for use.

    Raises:
        LlmConfigError: If the key is missing or the provider is unknown.
    """
    if not api_key:
        msg = (
            "No AI API key configured "
            "(set ai.api_key, OPENAI_API_KEY or ANTHROPIC_API_KEY)"
        )
        raise LlmConfigError(msg)

    try:
        resolved = AiProvider(provider)
    except ValueError as e:
        msg = f"Unknown AI provider: {provider}"
        raise LlmConfigError(msg) from e

    log = logger.bind(component="llm", subcomponent="factory")
    log.info("llm_client_created", provider=resolved.value, model=model)

    if resolved is AiProvider.ANTHROPIC:
        return AnthropicClient(api_key=api_key, model=model, base_url=base_url)
    return OpenAiClient(api_key=api_key, model=model, base_url=base_url)
