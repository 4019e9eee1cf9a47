"""
Output validation for generative responses.

Models are asked for JSON, but replies can arrive fenced in markdown, wrapped
in prose, truncated, or with trailing commas. Everything is parsed into a
strict pydantic model at this boundary; anything that does not fit is a
parse failure.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from kronos.core.logging import get_logger

logger = get_logger("openai.validation")

M = TypeVar("M", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")


class OutputParseError(ValueError):
    """Response text could not be parsed into the expected schema."""


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_PATTERN.search(text)
    return match.group(1).strip() if match else text.strip()


def find_json_object(text: str) -> str | None:
    """Return the first balanced {...} span, skipping braces inside strings."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_PATTERN.sub(r"\1", text)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull a JSON object out of a model reply.

    Raises:
        OutputParseError: no complete object, invalid JSON, or not an object
    """
    if not text or not text.strip():
        raise OutputParseError("Empty response")

    body = strip_code_fences(text)
    candidate = find_json_object(body)
    if candidate is None:
        raise OutputParseError("No complete JSON object in response")

    try:
        data = json.loads(remove_trailing_commas(candidate))
    except json.JSONDecodeError as e:
        raise OutputParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise OutputParseError("JSON root is not an object")
    return data


def parse_model(text: str, model: type[M]) -> M:
    """
    Parse a reply into a pydantic model.

    Raises:
        OutputParseError: the text is not JSON or does not match the schema
    """
    data = extract_json_object(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        logger.debug(f"{model.__name__} validation failed: {errors}")
        raise OutputParseError(f"{model.__name__} schema mismatch: {'; '.join(errors)}") from e
