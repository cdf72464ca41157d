"""
JSON Recovery for AI Responses

Generative models are asked for JSON but do not always return clean JSON.
Typical deviations:
- Markdown code fences around the payload
- Explanatory prose before or after the object
- Trailing commas before a closing brace or bracket

Recovery is staged and conservative:
1. Reject empty text
2. Strip code fences and surrounding whitespace
3. Parse directly
4. Otherwise cut from the first "{" to the last "}"
5. Drop trailing commas and parse again

CRITICAL: Recovery never invents values. If the text cannot be parsed
after these steps the call fails; a partial or empty object is never
returned in its place.
"""

import json
import re
from typing import Any, Optional

import structlog

from smartspend.services.ai.errors import (
    EmptyResponseError,
    MalformedDataError,
    NoDataFoundError,
)

logger = structlog.get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")

# Keep raw model output out of logs beyond a short preview
_PREVIEW_CHARS = 200


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers and surrounding whitespace."""
    return _FENCE_PATTERN.sub("", text).strip()


def remove_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing brace or bracket."""
    return _TRAILING_COMMA_PATTERN.sub(r"\1", text)


def _preview(text: str) -> str:
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[:_PREVIEW_CHARS] + "..."


def recover_json(text: Optional[str]) -> Any:
    """
    Best-effort parse of an AI response into a JSON value.

    Args:
        text: Raw response text from the model

    Returns:
        The parsed JSON value

    Raises:
        EmptyResponseError: If text is empty or whitespace only
        MalformedDataError: If an object span was found but cannot be parsed
        NoDataFoundError: If no object span exists in the text
    """
    if text is None or not text.strip():
        raise EmptyResponseError("AI returned an empty response")

    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start == -1 or end == -1 or end <= start:
        logger.warning("json_recovery_no_object", preview=_preview(text))
        raise NoDataFoundError("No JSON object found in AI response")

    candidate = remove_trailing_commas(cleaned[start:end + 1])

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(
            "json_recovery_failed",
            error=str(e),
            preview=_preview(text),
        )
        raise MalformedDataError(f"AI returned unparseable JSON: {e.msg}") from e


def recover_json_object(text: Optional[str]) -> dict[str, Any]:
    """
    Like recover_json, but the value must be a JSON object.

    Raises:
        MalformedDataError: If the parsed value is not an object
    """
    value = recover_json(text)
    if not isinstance(value, dict):
        raise MalformedDataError(
            f"Expected a JSON object from AI, got {type(value).__name__}"
        )
    return value
