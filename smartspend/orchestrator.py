"""
Main Orchestrator for Smart Spend AI

This module ties together all the components and defines the
end-to-end flows for:
1. Smart Import (alert text → extract → resolve category → validate → draft)
2. Deep Analysis (ledger → analyze → result bound to that ledger state)
3. Profile session changes (add/remove/replace, mode, currency rebase)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger without the user confirming a draft
- An analysis is only ever shown for the ledger it was computed from
- A currency change converts every amount or none of them
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from enum import Enum
from typing import Mapping, Optional, Sequence, Union
from uuid import UUID

from pydantic import ValidationError

from smartspend.agents import FinanceAIClient, resolve_category
from smartspend.audit import AuditLogger, create_correlation_id
from smartspend.config import Settings, get_settings
from smartspend.models.audit import AuditEventBuilder
from smartspend.models.ledger import (
    AnalysisResult,
    Currency,
    FinanceMode,
    Ledger,
    Transaction,
    TransactionDraft,
    UserProfile,
    get_currency,
)
from smartspend.services.ai.errors import (
    AIServiceError,
    ApiKeyMissingError,
    BackendError,
    InvalidRequestError,
    MalformedDataError,
    RateLimitedError,
)
from smartspend.services.ai.gemini_backend import GenerativeBackend
from smartspend.services.currency import RateUnavailableError, conversion_factor, rebase
from smartspend.validation import TransactionValidator, parse_iso_date


class FailureKind(str, Enum):
    """What the user is told when an operation fails."""
    RATE_LIMITED = "rate_limited"
    API_KEY_MISSING = "api_key_missing"
    RATE_UNAVAILABLE = "rate_unavailable"
    INVALID_INPUT = "invalid_input"
    AI_FAILURE = "ai_failure"


_USER_MESSAGES = {
    FailureKind.RATE_LIMITED: "API quota limit reached. Please wait a few seconds and try again.",
    FailureKind.API_KEY_MISSING: "API key is missing or invalid. Check your GEMINI_API_KEY configuration.",
    FailureKind.RATE_UNAVAILABLE: "Exchange rates for that currency are unavailable right now. Nothing was converted.",
    FailureKind.INVALID_INPUT: "Nothing to process. Please check your input and try again.",
    FailureKind.AI_FAILURE: "AI processing failed. Please retry or try a simpler text format.",
}


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an exception raised by a flow onto a user-facing failure kind."""
    if isinstance(exc, RateLimitedError):
        return FailureKind.RATE_LIMITED
    if isinstance(exc, ApiKeyMissingError):
        return FailureKind.API_KEY_MISSING
    if isinstance(exc, RateUnavailableError):
        return FailureKind.RATE_UNAVAILABLE
    if isinstance(exc, (InvalidRequestError, ValidationError)):
        return FailureKind.INVALID_INPUT
    return FailureKind.AI_FAILURE


def user_message(kind: FailureKind) -> str:
    return _USER_MESSAGES[FailureKind(kind)]


class ProfileSession:
    """
    One user's working state: the profile and at most one analysis.

    The analysis is stored together with the fingerprint of the ledger it
    was computed from. Any later change to the ledger's currency or
    contents makes `analysis` return None, so a stale result is never
    shown next to different numbers.

    All ledger changes publish a NEW Ledger; the previous one is never
    mutated in place.
    """

    def __init__(
        self,
        profile: UserProfile,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._profile = profile
        self._audit_logger = audit_logger
        self._analysis: Optional[AnalysisResult] = None
        self._analysis_fingerprint: Optional[str] = None

    @classmethod
    def start(
        cls,
        username: str,
        mode: FinanceMode = FinanceMode.INDIVIDUAL,
        currency_code: Optional[str] = None,
        transactions: Optional[Sequence[Transaction]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "ProfileSession":
        """Open a session with a fresh profile in the given (or default) currency."""
        currency = get_currency(currency_code or get_settings().app.default_currency)
        profile = UserProfile(
            username=username,
            mode=mode,
            ledger=Ledger(currency=currency, transactions=list(transactions or [])),
        )
        return cls(profile, audit_logger=audit_logger)

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def ledger(self) -> Ledger:
        return self._profile.ledger

    @property
    def categories(self) -> list[str]:
        return self._profile.categories

    @property
    def analysis(self) -> Optional[AnalysisResult]:
        """The stored analysis, or None if the ledger changed since."""
        if self._analysis is None:
            return None
        if self._analysis_fingerprint != self.ledger.fingerprint():
            return None
        return self._analysis

    def store_analysis(self, result: AnalysisResult, fingerprint: str) -> None:
        """Keep an analysis for the ledger state identified by fingerprint."""
        self._analysis = result
        self._analysis_fingerprint = fingerprint

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _discard_analysis(self, reason: str) -> None:
        if self._analysis is None:
            return
        self._analysis = None
        self._analysis_fingerprint = None
        await self._audit(AuditEventBuilder.analysis_invalidated(reason))

    async def _publish(self, ledger: Ledger, reason: str) -> None:
        self._profile = self._profile.model_copy(update={"ledger": ledger})
        await self._discard_analysis(reason)

    async def add_transaction(self, transaction: Transaction) -> Ledger:
        """
        Append a confirmed transaction (amount in the ledger's currency).

        Raises:
            ValidationError: If the id is already in the ledger
        """
        ledger = Ledger(
            currency=self.ledger.currency,
            transactions=[*self.ledger.transactions, transaction],
        )
        await self._publish(ledger, "transaction added")
        await self._audit(AuditEventBuilder.transaction_added(
            transaction_id=transaction.id,
            category=transaction.category,
            amount=transaction.amount,
            currency=ledger.currency.code,
        ))
        return ledger

    async def remove_transaction(self, transaction_id: str) -> bool:
        """Remove a transaction by id. Unknown ids change nothing."""
        remaining = [tx for tx in self.ledger.transactions if tx.id != transaction_id]
        if len(remaining) == len(self.ledger.transactions):
            return False

        await self._publish(
            Ledger(currency=self.ledger.currency, transactions=remaining),
            "transaction removed",
        )
        await self._audit(AuditEventBuilder.transaction_removed(transaction_id))
        return True

    async def replace_transactions(self, transactions: Sequence[Transaction]) -> Ledger:
        """Replace the whole ledger contents, e.g. with demo data."""
        ledger = Ledger(currency=self.ledger.currency, transactions=list(transactions))
        await self._publish(ledger, "ledger replaced")
        await self._audit(AuditEventBuilder.ledger_replaced(len(ledger.transactions)))
        return ledger

    async def change_mode(self, mode: FinanceMode) -> None:
        """Switch profile mode. Existing transactions are kept."""
        mode = FinanceMode(mode)
        old_mode = self._profile.mode
        if mode == old_mode:
            return

        self._profile = self._profile.model_copy(update={"mode": mode})
        await self._discard_analysis("mode changed")
        await self._audit(AuditEventBuilder.mode_changed(old_mode.value, mode.value))

    async def change_currency(
        self,
        new_currency: Union[Currency, str],
        rates: Mapping[str, float],
    ) -> Ledger:
        """
        Rebase every amount into a new currency.

        The new ledger is published and the analysis discarded in one step.

        Raises:
            RateUnavailableError: A rate is missing or unusable; the
                session is left exactly as it was
            KeyError: The currency code is not in the catalog
        """
        if isinstance(new_currency, str):
            new_currency = get_currency(new_currency)
        old_ledger = self.ledger

        try:
            factor = conversion_factor(rates, old_ledger.currency.code, new_currency.code)
            new_ledger = rebase(old_ledger, new_currency, rates)
        except RateUnavailableError as e:
            await self._audit(AuditEventBuilder.currency_change_failed(
                old_currency=old_ledger.currency.code,
                new_currency=new_currency.code,
                error_message=str(e),
            ))
            raise

        await self._publish(new_ledger, "currency changed")
        await self._audit(AuditEventBuilder.currency_changed(
            old_currency=old_ledger.currency.code,
            new_currency=new_currency.code,
            factor=factor,
            transaction_count=len(new_ledger.transactions),
        ))
        return new_ledger


class SmartImportFlow:
    """
    Orchestrates the smart import flow.

    Flow:
    1. Reject blank text
    2. Extract → AI proposes amount, description, category, date
    3. Resolve → map the AI category onto the profile's list
    4. Validate → two-stage validation against the source text
    5. Draft → returned to the user for review

    The draft is NEVER added to the ledger here.
    The user confirms it through ProfileSession.add_transaction.
    """

    def __init__(
        self,
        ai_client: Optional[FinanceAIClient] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ai_client = ai_client or FinanceAIClient()
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def _audit_failure(self, error: AIServiceError, correlation_id: UUID) -> None:
        if not self._audit_logger:
            return
        await self._audit_logger.log(AuditEventBuilder.operation_failed(
            operation="extraction",
            error_code=error.code,
            error_message=str(error),
            correlation_id=correlation_id,
        ))
        if isinstance(error, BackendError):
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def import_from_text(
        self,
        text: str,
        mode: FinanceMode,
        allowed_categories: Sequence[str],
        current_category: str,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionDraft:
        """
        Turn a bank alert into a draft transaction.

        Args:
            text: Free-text alert (SMS, email, banking notification)
            mode: Profile mode
            allowed_categories: The profile's categories, in display order
            current_category: Category to keep if the AI's is unresolvable
            correlation_id: Optional ID tying the audit events together

        Returns:
            TransactionDraft with the validation result attached

        Raises:
            InvalidRequestError: Blank text or no allowed categories
            MalformedDataError: The AI response had no amount
            AIServiceError: Any other AI failure (rate limit, key, recovery)
        """
        correlation_id = correlation_id or create_correlation_id()
        text = (text or "").strip()

        try:
            if not text:
                raise InvalidRequestError("Paste the text of a bank alert to import it")

            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.extraction_requested(
                    mode=FinanceMode(mode).value,
                    text_length=len(text),
                    correlation_id=correlation_id,
                ))

            extracted = await self._ai_client.extract_transaction(text, mode, allowed_categories)
            if extracted.amount is None:
                raise MalformedDataError("Missing data fields in AI response: amount")
        except AIServiceError as e:
            await self._audit_failure(e, correlation_id)
            raise
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": "extraction"},
                    correlation_id=correlation_id,
                )
            raise

        resolved = resolve_category(extracted.category, allowed_categories)
        category = resolved or current_category

        # Validate what the user will actually see, not the raw AI category
        checked = extracted.model_copy(update={"category": category})
        validation = self._validator.validate(checked, allowed_categories, source_text=text)

        draft = TransactionDraft(
            extraction_id=extracted.extraction_id,
            amount=extracted.amount,
            description=extracted.description or "",
            category=category,
            category_resolved=resolved is not None,
            date=parse_iso_date(extracted.date) or date.today(),
            validation=validation,
        )

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.extraction_completed(
                extraction_id=draft.extraction_id,
                amount=draft.amount,
                category=draft.category,
                category_resolved=draft.category_resolved,
                correlation_id=correlation_id,
            ))
            if validation.issues:
                await self._audit_logger.log(AuditEventBuilder.validation_failed(
                    extraction_id=draft.extraction_id,
                    issues=[issue.model_dump() for issue in validation.issues],
                    correlation_id=correlation_id,
                ))

        return draft

    def get_validation_summary(self, draft: TransactionDraft) -> str:
        return self._validator.get_user_friendly_summary(draft.validation)


class DeepAnalysisFlow:
    """
    Orchestrates the deep analysis flow.

    The result is stored on the session bound to the fingerprint of the
    ledger that was sent. If the ledger changes while the call is in
    flight, the stored result is already stale and the session reports
    no analysis.
    """

    def __init__(
        self,
        ai_client: Optional[FinanceAIClient] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ai_client = ai_client or FinanceAIClient()
        self._audit_logger = audit_logger

    async def analyze(
        self,
        session: ProfileSession,
        correlation_id: Optional[UUID] = None,
    ) -> AnalysisResult:
        """
        Analyze the session's current ledger.

        Raises:
            InvalidRequestError: The ledger is empty
            AIServiceError: The AI call failed
        """
        correlation_id = correlation_id or create_correlation_id()
        ledger = session.ledger
        mode = session.profile.mode

        try:
            if not ledger.transactions:
                raise InvalidRequestError("Add at least one transaction before running an analysis")

            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.analysis_requested(
                    mode=mode.value,
                    currency=ledger.currency.code,
                    transaction_count=len(ledger.transactions),
                    correlation_id=correlation_id,
                ))

            fingerprint = ledger.fingerprint()
            result = await self._ai_client.analyze(
                mode,
                ledger.transactions,
                currency_code=ledger.currency.code,
            )
        except AIServiceError as e:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.operation_failed(
                    operation="analysis",
                    error_code=e.code,
                    error_message=str(e),
                    correlation_id=correlation_id,
                ))
                if isinstance(e, BackendError):
                    await self._audit_logger.log_external_service_error(
                        service="gemini",
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
            raise
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": "analysis"},
                    correlation_id=correlation_id,
                )
            raise

        session.store_analysis(result, fingerprint)

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.analysis_completed(
                health_score=result.health_score,
                anomaly_count=len(result.anomalies),
                fingerprint=fingerprint,
                correlation_id=correlation_id,
            ))

        return result


def create_app_components(
    settings: Optional[Settings] = None,
    backend: Optional[GenerativeBackend] = None,
) -> tuple[SmartImportFlow, DeepAnalysisFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings container; defaults to the environment
        backend: Generative backend; pass a fake for tests.
                 A GeminiBackend is created on first use if None.

    Returns:
        (smart_import_flow, deep_analysis_flow, audit_logger)
    """
    settings = settings or get_settings()
    audit_logger = AuditLogger()

    ai_client = FinanceAIClient(
        settings=settings.gemini,
        backend=backend,
        retry_settings=settings.retry,
        transaction_limit=settings.app.prompt_transaction_limit,
    )
    validator = TransactionValidator(settings.app)

    smart_import_flow = SmartImportFlow(
        ai_client=ai_client,
        validator=validator,
        audit_logger=audit_logger,
    )
    deep_analysis_flow = DeepAnalysisFlow(
        ai_client=ai_client,
        audit_logger=audit_logger,
    )

    return smart_import_flow, deep_analysis_flow, audit_logger

