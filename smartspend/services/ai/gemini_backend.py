"""
Generative Backend (Gemini)

The only module that talks to the Gemini SDK.

DESIGN DECISION: The SDK is hidden behind a small interface:
    invoke(prompt, schema=None) -> text or None
so the AI client can be tested with a scripted fake, and SDK
exceptions are translated into our own error types at this boundary:
- quota / HTTP 429            -> RateLimitedError (retried upstream)
- missing or invalid API key  -> ApiKeyMissingError (never retried)
- anything else from Google   -> BackendError
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from smartspend.config.settings import GeminiSettings
from smartspend.services.ai.errors import (
    ApiKeyMissingError,
    BackendError,
    RateLimitedError,
)
from smartspend.services.ai.retry import is_rate_limit_error

logger = structlog.get_logger(__name__)

JSON_MIME_TYPE = "application/json"


class GenerativeBackend(ABC):
    """
    Abstract interface for a generative-text service.

    Implementations return the response text (None when the service
    produced no text) or raise one of the AI service errors.
    """

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        schema: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Send one prompt and return the raw response text.

        Args:
            prompt: Full instruction text
            schema: Optional response schema the output must follow

        Raises:
            RateLimitedError: Quota or rate limit hit
            ApiKeyMissingError: Credential rejected
            BackendError: Any other backend failure
        """
        pass


def _is_invalid_key(exc: Exception) -> bool:
    message = str(exc).lower()
    return "api key" in message or "api_key" in message


class GeminiBackend(GenerativeBackend):
    """
    Gemini implementation of the generative backend.

    Always requests JSON output; a schema, when given, is passed
    as the response schema.
    """

    def __init__(self, api_key: str, settings: GeminiSettings):
        self._settings = settings
        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model_name=settings.model_name)

    def _generation_config(self, schema: Optional[dict[str, Any]]) -> dict[str, Any]:
        config: dict[str, Any] = {
            "temperature": self._settings.temperature,
            "max_output_tokens": self._settings.max_output_tokens,
            "response_mime_type": JSON_MIME_TYPE,
        }
        if schema is not None:
            config["response_schema"] = schema
        return config

    async def invoke(
        self,
        prompt: str,
        schema: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        try:
            response = await self._model.generate_content_async(
                prompt,
                generation_config=self._generation_config(schema),
            )
        except google_exceptions.ResourceExhausted as e:
            raise RateLimitedError(f"Gemini quota exhausted: {e}") from e
        except (
            google_exceptions.Unauthenticated,
            google_exceptions.PermissionDenied,
        ) as e:
            raise ApiKeyMissingError(f"Gemini rejected the API key: {e}") from e
        except google_exceptions.InvalidArgument as e:
            if _is_invalid_key(e):
                raise ApiKeyMissingError(f"Gemini rejected the API key: {e}") from e
            raise BackendError(f"Gemini rejected the request: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            if is_rate_limit_error(e):
                raise RateLimitedError(f"Gemini rate limited: {e}") from e
            raise BackendError(f"Gemini API error: {e}") from e

        return _response_text(response)


def _response_text(response) -> Optional[str]:
    """
    Text of a Gemini response, or None if it has none.

    The SDK's `.text` raises ValueError when the response was blocked
    or has no candidate parts; that is reported as an absent response.
    """
    try:
        return response.text
    except ValueError as e:
        logger.warning("gemini_response_without_text", reason=str(e))
        return None
