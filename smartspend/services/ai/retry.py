"""
Backoff Retry for AI Calls

DESIGN DECISION: Only rate limiting is treated as transient.
A rate-limited call is retried after a delay that doubles every time.
Any other failure (bad request, missing key, malformed output) is
surfaced on the first occurrence, since retrying cannot fix it.

Each call builds its own tenacity controller, so concurrent retries of
independent operations never share counters or delays.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from smartspend.services.ai.errors import AIServiceError, RateLimitedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429
RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED")


def is_rate_limit_error(exc: BaseException) -> bool:
    """
    Does this exception signal rate limiting?

    Recognises our own RateLimitedError, any exception carrying a 429
    status in `code` or `status_code`, and messages that mention 429
    or RESOURCE_EXHAUSTED. Our other error types are never transient.
    """
    if isinstance(exc, RateLimitedError):
        return True
    if isinstance(exc, AIServiceError):
        return False

    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if value is None:
            continue
        if value == RATE_LIMIT_STATUS or str(value).upper() in RATE_LIMIT_MARKERS:
            return True

    message = str(exc).upper()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def _log_backoff(max_attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "rate_limited_retrying",
            delay_seconds=delay,
            attempt=retry_state.attempt_number,
            attempts_left=max_attempts + 1 - retry_state.attempt_number,
            error=str(error),
        )
    return before_sleep


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying on rate limits with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        max_attempts: Retries allowed after the first attempt (0 = single attempt)
        initial_delay: Seconds to wait before the first retry; doubled each time
        sleep: Async sleep function (injected by tests)

    Returns:
        Whatever the operation returns on its first successful attempt

    Raises:
        The operation's exception, unchanged, if it is not a rate limit
        or if every attempt was rate limited
    """
    if max_attempts < 0:
        raise ValueError("max_attempts cannot be negative")
    if initial_delay < 0:
        raise ValueError("initial_delay cannot be negative")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts + 1),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2, min=0),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=_log_backoff(max_attempts),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)
