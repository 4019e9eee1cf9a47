"""
Fallible generative calls.

attempt_structured() sends one prompt, bounds it with a timeout and parses
the reply into a pydantic model. Expected failures (no client, timeout,
provider error, unparseable reply) come back as Err values so callers pick
their own fallback instead of catching exceptions.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from pydantic import BaseModel

from kronos.core.exceptions import GenerationError
from kronos.core.logging import get_logger
from kronos.services.openai.generate import GenerativeClient
from kronos.services.openai.validation import OutputParseError, parse_model

logger = get_logger("scoring.generative")

M = TypeVar("M", bound=BaseModel)


class FailureKind(str, Enum):
    """Why a generative attempt produced no usable value."""

    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class GenerationFailure:
    """Typed failure of one generative attempt."""

    kind: FailureKind
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}" if self.detail else self.kind.value


@dataclass(frozen=True)
class Ok(Generic[M]):
    value: M


@dataclass(frozen=True)
class Err:
    failure: GenerationFailure


Attempt = Union[Ok[M], Err]


def client_available(client: GenerativeClient | None) -> bool:
    return client is not None and client.is_available()


async def attempt_structured(
    client: GenerativeClient | None,
    prompt: str,
    model: type[M],
    *,
    system: str | None = None,
    timeout: float = 20.0,
    max_tokens: int | None = None,
    label: str = "generation",
) -> Attempt[M]:
    """Run one bounded generative call and parse it into ``model``."""
    if not client_available(client):
        return Err(GenerationFailure(FailureKind.UNAVAILABLE, "no generative client configured"))

    try:
        text = await asyncio.wait_for(
            client.complete(prompt, system=system, max_tokens=max_tokens),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(f"[{label}] generative call timed out after {timeout}s")
        return Err(GenerationFailure(FailureKind.TIMEOUT, f"{timeout}s"))
    except GenerationError as e:
        logger.warning(f"[{label}] generative call failed: {e.message}")
        return Err(GenerationFailure(FailureKind.PROVIDER_ERROR, e.message))
    except Exception as e:
        logger.warning(f"[{label}] generative client raised {type(e).__name__}: {e}")
        return Err(GenerationFailure(FailureKind.PROVIDER_ERROR, f"{type(e).__name__}: {e}"))

    try:
        return Ok(parse_model(text, model))
    except OutputParseError as e:
        logger.warning(f"[{label}] unusable generative reply: {e}")
        return Err(GenerationFailure(FailureKind.MALFORMED, str(e)))
