"""
OpenAI client configuration.

Settings for the generative classifier with environment variable support.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class OpenAISettings(BaseSettings):
    """OpenAI client configuration from environment variables."""

    api_key: str = Field(default="", alias="OPENAI_API_KEY")
    default_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")

    # Sampling
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, alias="OPENAI_TEMPERATURE")

    # Circuit breaker configuration
    circuit_breaker_threshold: int = Field(default=5, alias="OPENAI_CB_THRESHOLD")
    circuit_breaker_timeout: int = Field(default=60, alias="OPENAI_CB_TIMEOUT")

    # Connection configuration
    client_ttl_hours: int = Field(default=1, alias="OPENAI_CLIENT_TTL_HOURS")
    max_connections: int = Field(default=20, alias="OPENAI_MAX_CONNECTIONS")

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @property
    def client_ttl(self) -> timedelta:
        """Get client TTL as timedelta."""
        return timedelta(hours=self.client_ttl_hours)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@lru_cache(maxsize=1)
def get_settings() -> OpenAISettings:
    """Get cached OpenAI settings instance."""
    return OpenAISettings()


def is_reasoning_model(model: str) -> bool:
    """Check if model is a GPT-5/o-series reasoning model."""
    return any(model.startswith(prefix) for prefix in ("gpt-5", "o1", "o3"))
