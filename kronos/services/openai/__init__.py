"""
OpenAI package - generative backend for scenario, analog and ticker classification.

Usage:
    from kronos.services.openai import get_generative_client, parse_model

    client = get_generative_client()
    if client.is_available():
        text = await client.complete(prompt)
        result = parse_model(text, MyOutput)
"""

from kronos.services.openai.client import (
    OpenAIClientManager,
    close_client_manager,
    get_client_manager,
)
from kronos.services.openai.config import OpenAISettings, get_settings
from kronos.services.openai.generate import (
    GenerativeClient,
    OpenAICompletionClient,
    get_generative_client,
    set_generative_client,
)
from kronos.services.openai.validation import (
    OutputParseError,
    extract_json_object,
    parse_model,
)


__all__ = [
    "GenerativeClient",
    "OpenAIClientManager",
    "OpenAICompletionClient",
    "OpenAISettings",
    "OutputParseError",
    "close_client_manager",
    "extract_json_object",
    "get_client_manager",
    "get_generative_client",
    "get_settings",
    "parse_model",
    "set_generative_client",
]
