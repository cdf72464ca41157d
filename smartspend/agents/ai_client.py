"""
AI Invocation Client for Smart Spend AI

Two operations, one shape:
1. Build an instruction that embeds the caller's data
2. Send it through the backoff retry policy
3. Recover JSON from the raw response text
4. Validate the recovered object against our models

CRITICAL BOUNDARIES:

1. EXTRACTION (smart import):
   - CAN: Read a bank alert and propose amount, description, category, date
   - CANNOT: Add anything to the ledger (the user confirms a draft)
   - CANNOT: Fill in fields the text does not contain

2. ANALYSIS (deep analysis):
   - CAN: Summarise the ledger it is given
   - CANNOT: See anything but the transactions we embed
   - MUST: Return the full AnalysisResult shape or the call fails

Every response is untrusted input. A missing or malformed field fails
the call; it is never patched with a default.

The API key is passed in through settings and checked BEFORE any
network call, so a missing key is never mistaken for a transient error.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence

import structlog
from pydantic import ValidationError

from smartspend.config import GeminiSettings, RetrySettings, get_settings
from smartspend.models.ledger import (
    AnalysisResult,
    ExtractionResult,
    FinanceMode,
    Transaction,
)
from smartspend.services.ai.errors import (
    AIServiceError,
    ApiKeyMissingError,
    BackendError,
    EmptyResponseError,
    InvalidRequestError,
    MalformedDataError,
    RateLimitedError,
)
from smartspend.services.ai.gemini_backend import GeminiBackend, GenerativeBackend
from smartspend.services.ai.json_recovery import recover_json_object
from smartspend.services.ai.retry import is_rate_limit_error, retry_with_backoff

logger = structlog.get_logger(__name__)

PLACEHOLDER_API_KEYS = frozenset({
    "your_gemini_api_key_here",
    "your_api_key_here",
})


class CredentialStatus(str, Enum):
    """Outcome of the pre-flight credential check."""
    MISSING = "missing"
    PRESENT = "present"


def credential_status(api_key: Optional[str]) -> CredentialStatus:
    """Missing, blank and placeholder keys all count as MISSING."""
    if api_key is None:
        return CredentialStatus.MISSING
    key = api_key.strip()
    if not key or key.lower() in PLACEHOLDER_API_KEYS:
        return CredentialStatus.MISSING
    return CredentialStatus.PRESENT


# Response schema for extraction; all four fields are required
EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "amount": {"type": "NUMBER"},
        "description": {"type": "STRING"},
        "category": {"type": "STRING"},
        "date": {"type": "STRING"},
    },
    "required": ["amount", "description", "category", "date"],
}


def build_analysis_prompt(
    mode: FinanceMode,
    transactions: Sequence[Transaction],
    currency_code: Optional[str] = None,
    total_count: Optional[int] = None,
) -> str:
    """Auditor instruction embedding the transactions as JSON."""
    data = json.dumps(
        [tx.model_dump(mode="json") for tx in transactions],
        ensure_ascii=False,
    )
    mode_label = FinanceMode(mode).value

    context_lines = []
    if currency_code:
        context_lines.append(f"All amounts are in {currency_code}.")
    if total_count is not None and total_count > len(transactions):
        context_lines.append(
            f"Only the {len(transactions)} most recent of {total_count} transactions are shown."
        )
    context = "\n".join(context_lines)

    return f"""Act as a financial auditor. Analyze these {mode_label} transactions.
{context}
Data: {data}

Respond with ONLY a JSON object with exactly these fields:
1. summary: string, a short behavioral overview.
2. healthScore: number from 0 to 100.
3. anomalies: array of {{"category": string, "amount": number, "reason": string, "severity": "low" | "medium" | "high"}}.
4. categoryBreakdown: array of {{"name": string, "value": number}}, one entry per category.
5. trendAnalysis: array of {{"date": "YYYY-MM-DD", "amount": number}} in date order.

Use ONLY the transactions above. Do not invent transactions or amounts."""


def build_extraction_prompt(
    text: str,
    mode: FinanceMode,
    allowed_categories: Sequence[str],
) -> str:
    """Bank-notification parser instruction for one free-text alert."""
    mode_label = FinanceMode(mode).value

    return f"""You are a bank notification parser for a personal finance app.
Extract the financial transaction described in the text below.

Context: {mode_label} profile
Allowed Categories: [{', '.join(allowed_categories)}]
Text: "{text}"

JSON Fields:
- amount (number): the PRIMARY transaction amount that was debited, credited, paid or received.
  Write it as a plain number without currency symbols or thousands separators.
  NEVER use an "Available Balance", "Avl Bal", "Bal" or outstanding balance figure.
- description (string): the merchant, payer or source of the transaction.
- category (string): exactly one of the allowed categories.
- date (string): the transaction date in YYYY-MM-DD format."""


def _as_service_error(exc: Exception) -> AIServiceError:
    """Classify anything the backend raised into our error types."""
    if isinstance(exc, AIServiceError):
        return exc
    if is_rate_limit_error(exc):
        return RateLimitedError(str(exc))
    return BackendError(str(exc) or type(exc).__name__)


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors()[:5]:
        location = ".".join(str(part) for part in item["loc"]) or "response"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class FinanceAIClient:
    """
    Client for the two AI operations: extraction and analysis.

    RESPONSIBILITIES:
    - Credential pre-flight check
    - Prompt construction
    - Retry on rate limits, JSON recovery, shape validation

    BOUNDARIES:
    - NEVER changes a ledger
    - NEVER returns a partially validated result
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        backend: Optional[GenerativeBackend] = None,
        retry_settings: Optional[RetrySettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transaction_limit: Optional[int] = None,
    ):
        """
        Args:
            settings: Gemini settings; defaults to the environment
            backend: Generative backend; a GeminiBackend is created lazily if None
            retry_settings: Backoff policy; defaults to the environment
            sleep: Async sleep used between retries
            transaction_limit: Max transactions embedded in an analysis prompt
        """
        self._settings = settings or get_settings().gemini
        self._retry = retry_settings or get_settings().retry
        self._backend = backend
        self._sleep = sleep
        if transaction_limit is None:
            transaction_limit = get_settings().app.prompt_transaction_limit
        if transaction_limit < 1:
            raise ValueError(f"transaction_limit must be at least 1, got {transaction_limit}")
        self._transaction_limit = transaction_limit

    def _require_credential(self) -> str:
        if credential_status(self._settings.api_key) is CredentialStatus.MISSING:
            raise ApiKeyMissingError(
                "Gemini API key is not configured. Set GEMINI_API_KEY in your environment or .env file."
            )
        return self._settings.api_key.strip()

    def _get_backend(self, api_key: str) -> GenerativeBackend:
        """Get or create the generative backend."""
        if self._backend is None:
            self._backend = GeminiBackend(api_key=api_key, settings=self._settings)
        return self._backend

    async def _invoke(
        self,
        prompt: str,
        schema: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """Credential check, then one backend call under the retry policy."""
        backend = self._get_backend(self._require_credential())

        async def attempt() -> Optional[str]:
            try:
                return await backend.invoke(prompt, schema)
            except AIServiceError:
                raise
            except Exception as e:
                raise _as_service_error(e) from e

        return await retry_with_backoff(
            attempt,
            max_attempts=self._retry.max_attempts,
            initial_delay=self._retry.initial_delay_seconds,
            sleep=self._sleep,
        )

    async def analyze(
        self,
        mode: FinanceMode,
        transactions: Sequence[Transaction],
        currency_code: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Produce a financial analysis of the given transactions.

        The caller is responsible for not sending an empty ledger.

        Raises:
            ApiKeyMissingError: No usable key (before any network call)
            RateLimitedError: Still rate limited after all retries
            EmptyResponseError / NoDataFoundError / MalformedDataError:
                The response could not be recovered or has the wrong shape
            BackendError: Any other backend failure
        """
        selected = list(transactions)
        if len(selected) > self._transaction_limit:
            selected = sorted(selected, key=lambda tx: tx.date)[-self._transaction_limit:]
            logger.warning(
                "analysis_prompt_truncated",
                sent=len(selected),
                total=len(transactions),
            )

        prompt = build_analysis_prompt(
            mode,
            selected,
            currency_code=currency_code,
            total_count=len(transactions),
        )

        text = await self._invoke(prompt)
        data = recover_json_object(text)

        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise MalformedDataError(
                f"Analysis response has an invalid shape: {_describe_validation_error(e)}"
            ) from e

        logger.info(
            "analysis_received",
            mode=FinanceMode(mode).value,
            transaction_count=len(selected),
            health_score=result.health_score,
            anomaly_count=len(result.anomalies),
        )
        return result

    async def extract_transaction(
        self,
        text: str,
        mode: FinanceMode,
        allowed_categories: Sequence[str],
    ) -> ExtractionResult:
        """
        Extract one transaction from a free-text bank alert.

        The caller is responsible for rejecting blank text.

        Raises:
            ApiKeyMissingError: No usable key (before any network call)
            InvalidRequestError: No allowed categories were given
            RateLimitedError: Still rate limited after all retries
            EmptyResponseError: The model returned no text
            NoDataFoundError / MalformedDataError: Unrecoverable response
            BackendError: Any other backend failure
        """
        self._require_credential()
        if not allowed_categories:
            raise InvalidRequestError("At least one allowed category is required for extraction")

        prompt = build_extraction_prompt(text, mode, allowed_categories)

        response_text = await self._invoke(prompt, EXTRACTION_SCHEMA)
        if not response_text:
            raise EmptyResponseError("AI returned no text for the extraction request")
        data = recover_json_object(response_text)

        try:
            result = ExtractionResult.model_validate(data)
        except ValidationError as e:
            raise MalformedDataError(
                f"Extraction response has an invalid shape: {_describe_validation_error(e)}"
            ) from e

        logger.info(
            "extraction_received",
            mode=FinanceMode(mode).value,
            extraction_id=str(result.extraction_id),
            has_amount=result.amount is not None,
        )
        return result
