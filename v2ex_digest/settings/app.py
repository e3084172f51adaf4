"""Application settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Secrets read from the environment (or a local .env file)."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    v2ex_token: str | None = Field(default=None, validation_alias="V2EX_TOKEN")
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    anthropic_api_key: str | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )

    def api_key_for_provider(self, provider: str) -> str | None:
        """Return the API key for an AI provider, falling back to any key set.

        The matching provider's key wins; otherwise OpenAI's key is preferred
        over Anthropic's.
        """
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }
        return keys.get(provider) or self.openai_api_key or self.anthropic_api_key


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
