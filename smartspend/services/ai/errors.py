"""
AI Service Errors

Every failure of an AI call is classified into one of these types.
Callers decide what to tell the user from the type alone; the core
never renders messages.

Only RateLimitedError is transient. Everything else is surfaced
immediately and unchanged.
"""


class AIServiceError(Exception):
    """Base exception for AI service errors."""

    code = "AI_FAILURE"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)


class RecoveryError(AIServiceError):
    """The AI response could not be turned into a JSON value."""

    code = "RECOVERY_FAILED"


class EmptyResponseError(RecoveryError):
    """The AI returned no text at all."""

    code = "EMPTY_RESPONSE"


class MalformedDataError(RecoveryError):
    """A JSON-looking payload was found but could not be parsed or has the wrong shape."""

    code = "MALFORMED_DATA"


class NoDataFoundError(RecoveryError):
    """No JSON object could be located in the response."""

    code = "NO_DATA_FOUND"


class ApiKeyMissingError(AIServiceError):
    """
    No usable API key is configured.

    Detected before any network call and never retried.
    """

    code = "API_KEY_MISSING"


class RateLimitedError(AIServiceError):
    """The backend refused the call because of quota or rate limits (HTTP 429)."""

    code = "RATE_LIMITED"
    status_code = 429


class InvalidRequestError(AIServiceError):
    """The caller's input cannot be sent (blank text, no categories, empty ledger)."""

    code = "INVALID_REQUEST"


class BackendError(AIServiceError):
    """Any other failure reported by the generative backend."""

    code = "BACKEND_FAILURE"
