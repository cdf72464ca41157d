"""AI service package: backend boundary, retry policy and JSON recovery."""

from smartspend.services.ai.errors import (
    AIServiceError,
    ApiKeyMissingError,
    BackendError,
    EmptyResponseError,
    InvalidRequestError,
    MalformedDataError,
    NoDataFoundError,
    RateLimitedError,
    RecoveryError,
)
from smartspend.services.ai.gemini_backend import GeminiBackend, GenerativeBackend
from smartspend.services.ai.json_recovery import recover_json, recover_json_object
from smartspend.services.ai.retry import is_rate_limit_error, retry_with_backoff

__all__ = [
    # Errors
    "AIServiceError",
    "ApiKeyMissingError",
    "BackendError",
    "EmptyResponseError",
    "InvalidRequestError",
    "MalformedDataError",
    "NoDataFoundError",
    "RateLimitedError",
    "RecoveryError",
    # Backend
    "GeminiBackend",
    "GenerativeBackend",
    # Recovery and retry
    "is_rate_limit_error",
    "recover_json",
    "recover_json_object",
    "retry_with_backoff",
]
