"""
Text completion against the OpenAI chat API.

complete() is the single generative entry point used by the classifiers. It
returns raw text; parsing happens in the caller against a strict schema.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

from openai import APIError

from kronos.core.exceptions import GenerationError
from kronos.core.logging import get_logger
from kronos.services.openai.client import OpenAIClientManager, get_client_manager
from kronos.services.openai.config import is_reasoning_model

logger = get_logger("openai.generate")

DEFAULT_SYSTEM_PROMPT = (
    "You are a financial analyst. Respond with a single JSON object and nothing else."
)


class GenerativeClient(Protocol):
    """Prompt-in, text-out generative backend."""

    def is_available(self) -> bool:
        """True when a call has a chance of succeeding."""
        ...

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Return the completion text; raises GenerationError on failure."""
        ...


class OpenAICompletionClient:
    """GenerativeClient backed by the OpenAI chat completions API in JSON mode."""

    def __init__(
        self,
        manager: OpenAIClientManager | None = None,
        model: str | None = None,
        default_max_tokens: int = 1000,
    ):
        self._manager = manager or get_client_manager()
        self.model = model or self._manager.settings.default_model
        self.default_max_tokens = default_max_tokens

    def is_available(self) -> bool:
        return self._manager.is_configured and not self._manager.is_circuit_open()

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        client = await self._manager.get_client()
        if client is None:
            raise GenerationError("OpenAI client not configured - check OPENAI_API_KEY")

        params: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
        }
        tokens = max_tokens or self.default_max_tokens
        if is_reasoning_model(self.model):
            params["max_completion_tokens"] = tokens
        else:
            params["max_tokens"] = tokens
            params["temperature"] = (
                temperature if temperature is not None else self._manager.settings.temperature
            )

        start = time.monotonic()
        try:
            response = await client.chat.completions.create(**params)
        except APIError as e:
            self._manager.record_failure(e)
            raise GenerationError(f"OpenAI request failed: {e}") from e

        latency_ms = (time.monotonic() - start) * 1000

        if not response.choices:
            self._manager.record_failure()
            raise GenerationError("No response choices from OpenAI")

        choice = response.choices[0]
        refusal = getattr(choice.message, "refusal", None)
        if refusal:
            raise GenerationError(f"Model refused: {refusal}")

        content = choice.message.content or ""
        if not content.strip():
            self._manager.record_failure()
            raise GenerationError("Empty output from OpenAI")

        self._manager.record_success()
        tokens_used = response.usage.total_tokens if response.usage else 0
        logger.info(
            f"Completion {self.model}: {tokens_used} tokens, {latency_ms:.0f}ms, "
            f"finish={choice.finish_reason}"
        )
        return content


_default_client: OpenAICompletionClient | None = None


def get_generative_client() -> OpenAICompletionClient:
    """Process-wide default generative client."""
    global _default_client
    if _default_client is None:
        _default_client = OpenAICompletionClient()
    return _default_client


def set_generative_client(client: OpenAICompletionClient | None) -> None:
    """Override the default client (for testing)."""
    global _default_client
    _default_client = client
