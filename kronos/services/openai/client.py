"""
OpenAI async client manager with connection pooling and circuit breaker.

Provides a robust client with:
- Connection pooling via httpx
- Circuit breaker so a failing provider is skipped quickly
- Automatic client refresh on TTL expiry
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import httpx
from openai import AsyncOpenAI

from kronos.core.logging import get_logger
from kronos.services.data_providers.resilience import CircuitBreaker
from kronos.services.openai.config import OpenAISettings, get_settings

logger = get_logger("openai.client")


class OpenAIClientManager:
    """
    Manages OpenAI client lifecycle with connection pooling and circuit breaker.

    Usage:
        manager = OpenAIClientManager()
        client = await manager.get_client()
        if client:
            response = await client.chat.completions.create(...)
    """

    def __init__(self, settings: OpenAISettings | None = None):
        self._settings = settings or get_settings()
        self._client: AsyncOpenAI | None = None
        self._created_at: datetime | None = None
        self._lock = asyncio.Lock()
        self._http_client: httpx.AsyncClient | None = None
        self._breaker = CircuitBreaker(
            failure_threshold=self._settings.circuit_breaker_threshold,
            recovery_timeout=float(self._settings.circuit_breaker_timeout),
            name="openai",
        )

    @property
    def settings(self) -> OpenAISettings:
        return self._settings

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _is_client_expired(self) -> bool:
        if not self._created_at:
            return True
        return datetime.now(UTC) - self._created_at > self._settings.client_ttl

    async def get_client(self) -> AsyncOpenAI | None:
        """
        Get or create an OpenAI client.

        Returns None if the API key is not configured or the circuit is open.
        """
        if not self._breaker.allows_request():
            logger.warning("Circuit breaker open, rejecting request")
            return None

        if not self._settings.api_key:
            return None

        async with self._lock:
            if self._client is not None and not self._is_client_expired():
                return self._client

            await self._close_client()

            self._http_client = httpx.AsyncClient(
                limits=httpx.Limits(
                    max_connections=self._settings.max_connections,
                    max_keepalive_connections=max(1, self._settings.max_connections // 2),
                ),
                timeout=httpx.Timeout(60.0, connect=10.0),
            )
            self._client = AsyncOpenAI(
                api_key=self._settings.api_key,
                base_url=self._settings.base_url,
                http_client=self._http_client,
                max_retries=0,
            )
            self._created_at = datetime.now(UTC)

            logger.debug("Created new OpenAI client")
            return self._client

    async def _close_client(self) -> None:
        if self._http_client:
            try:
                await self._http_client.aclose()
            except httpx.HTTPError as e:
                logger.debug(f"Error closing HTTP client: {e}")
            self._http_client = None

        self._client = None
        self._created_at = None

    def record_success(self) -> None:
        self._breaker.record_success()

    def record_failure(self, error: BaseException | None = None) -> None:
        self._breaker.record_failure(error)

    def is_circuit_open(self) -> bool:
        return self._breaker.is_open

    async def close(self) -> None:
        """Close the client manager and release resources."""
        async with self._lock:
            await self._close_client()


# Global client manager instance
_manager: OpenAIClientManager | None = None


def get_client_manager() -> OpenAIClientManager:
    """Get or create the global client manager."""
    global _manager
    if _manager is None:
        _manager = OpenAIClientManager()
    return _manager


async def close_client_manager() -> None:
    global _manager
    if _manager is not None:
        await _manager.close()
        _manager = None
