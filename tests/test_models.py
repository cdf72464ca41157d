"""
Tests for Smart Spend AI

Test strategy:
1. Unit tests for individual components (models, validators, engines)
2. Integration tests for flows (with a scripted AI backend)
3. No real API calls in tests (use fakes)
"""

import asyncio
import math
from datetime import date
from uuid import uuid4

import pytest

from smartspend.audit import AuditLogger
from smartspend.models.ledger import (
    CURRENCIES,
    MODE_CATEGORIES,
    AnalysisResult,
    ExtractionResult,
    FinanceMode,
    Ledger,
    Transaction,
    TransactionDraft,
    UserProfile,
    ValidationIssue,
    ValidationResult,
    categories_for,
    get_currency,
)
from smartspend.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestCatalogs:
    """Tests for modes, categories and currencies."""

    def test_every_mode_has_seven_categories(self):
        """Each mode offers seven distinct categories."""
        assert set(MODE_CATEGORIES) == set(FinanceMode)
        for categories in MODE_CATEGORIES.values():
            assert len(categories) == 7
            assert len(set(categories)) == 7

    def test_categories_for_keeps_order(self):
        """categories_for returns the list in display order."""
        assert categories_for(FinanceMode.INDIVIDUAL)[:2] == ["Income/Salary", "Food"]
        assert categories_for("Trip/Travel")[0] == "Refunds/Credits"

    def test_currency_catalog(self):
        """Eight currencies with unique codes."""
        codes = [currency.code for currency in CURRENCIES]
        assert len(codes) == 8
        assert len(set(codes)) == 8
        assert "INR" in codes

    def test_get_currency_is_case_insensitive(self):
        """Lookup ignores case and whitespace."""
        assert get_currency(" eur ").symbol == "€"

    def test_get_currency_unknown(self):
        """Unknown codes raise KeyError."""
        with pytest.raises(KeyError):
            get_currency("XYZ")

    def test_currency_format(self):
        """Amounts are shown with symbol and two decimals."""
        assert get_currency("USD").format(1234.5) == "$1,234.50"


class TestLedgerModels:
    """Tests for Transaction, Ledger and UserProfile."""

    def test_transaction_defaults(self):
        """Ids are generated and whitespace is stripped."""
        tx = Transaction(category="  Food ", amount=12.0, date=date(2024, 1, 1))
        assert tx.id
        assert tx.category == "Food"
        assert tx.description == ""

    def test_transaction_is_immutable(self):
        """Transactions cannot be edited in place."""
        tx = Transaction(category="Food", amount=12.0, date=date(2024, 1, 1))
        with pytest.raises(ValueError):
            tx.amount = 20.0

    def test_transaction_rejects_nan(self):
        """Non-finite amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(category="Food", amount=math.nan, date=date(2024, 1, 1))

    def test_ledger_rejects_duplicate_ids(self):
        """Transaction ids are unique within a ledger."""
        tx = Transaction(id="dup", category="Food", amount=1.0, date=date(2024, 1, 1))
        with pytest.raises(ValueError):
            Ledger(currency=get_currency("USD"), transactions=[tx, tx])

    def test_ledger_totals(self, sample_transactions):
        """Totals overall and per category."""
        ledger = Ledger(currency=get_currency("USD"), transactions=sample_transactions)
        assert ledger.total() == pytest.approx(1335.5)
        assert ledger.by_category() == {"Food": 100.0, "Rent": 1200.0, "Transport": 35.5}

    def test_fingerprint_tracks_contents_and_currency(self, sample_transactions):
        """Equal ledgers share a fingerprint; any change alters it."""
        usd = Ledger(currency=get_currency("USD"), transactions=sample_transactions)
        same = Ledger(currency=get_currency("USD"), transactions=list(sample_transactions))
        eur = Ledger(currency=get_currency("EUR"), transactions=sample_transactions)
        shorter = Ledger(currency=get_currency("USD"), transactions=sample_transactions[:2])

        assert usd.fingerprint() == same.fingerprint()
        assert usd.fingerprint() != eur.fingerprint()
        assert usd.fingerprint() != shorter.fingerprint()

    def test_empty_ledger_is_truthy(self):
        """An empty ledger is still a ledger."""
        assert Ledger(currency=get_currency("USD"))

    def test_profile_categories_follow_mode(self):
        """A profile offers its mode's categories."""
        profile = UserProfile(
            username="asha",
            mode=FinanceMode.FAMILY,
            ledger=Ledger(currency=get_currency("INR")),
        )
        assert "Groceries" in profile.categories


class TestAIOutputModels:
    """Tests for ExtractionResult and AnalysisResult."""

    def test_extraction_ignores_extra_fields(self):
        """Unknown fields in the AI output are dropped."""
        result = ExtractionResult.model_validate({"amount": 5, "merchant_code": "X1"})
        assert result.amount == 5
        assert result.extraction_id

    def test_analysis_accepts_camel_case(self):
        """The camelCase names the model is asked for are accepted."""
        result = AnalysisResult.model_validate({
            "summary": "ok",
            "healthScore": 55,
            "categoryBreakdown": [{"name": "Food", "value": 10}],
            "trendAnalysis": [{"date": "2024-01-01", "amount": 10}],
            "anomalies": [{"category": "Food", "amount": 10, "reason": "spike", "severity": "HIGH"}],
        })
        assert result.health_score == 55
        assert result.category_breakdown[0].name == "Food"
        assert result.anomalies[0].severity.value == "high"

    def test_analysis_rejects_empty_summary(self):
        """A blank summary is not a valid analysis."""
        with pytest.raises(ValueError):
            AnalysisResult.model_validate({"summary": "", "healthScore": 50, "anomalies": [], "categoryBreakdown": [], "trendAnalysis": []})

    def test_analysis_requires_every_list(self):
        """Empty lists are fine, absent lists are not."""
        with pytest.raises(ValueError):
            AnalysisResult.model_validate({"summary": "ok", "healthScore": 50})

        result = AnalysisResult.model_validate({
            "summary": "ok",
            "healthScore": 50,
            "anomalies": [],
            "categoryBreakdown": [],
            "trendAnalysis": [],
        })
        assert result.anomalies == []

    def test_analysis_rejects_unknown_severity(self):
        """Severities outside low/medium/high are rejected."""
        with pytest.raises(ValueError):
            AnalysisResult.model_validate({
                "summary": "ok",
                "healthScore": 50,
                "anomalies": [{"category": "Food", "amount": 1, "reason": "r", "severity": "extreme"}],
                "categoryBreakdown": [],
                "trendAnalysis": [],
            })


class TestValidationResult:
    """Tests for ValidationResult and TransactionDraft."""

    def test_validation_result_has_errors(self):
        """Error-level issues are counted."""
        result = ValidationResult(
            extraction_id=uuid4(),
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            can_proceed_with_review=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
                ValidationIssue(
                    field="date",
                    issue_type="missing",
                    message="No date",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1

    def test_draft_to_transaction_applies_edits(self):
        """User edits override the drafted values."""
        draft = TransactionDraft(
            extraction_id=uuid4(),
            amount=18000.0,
            description="Salary",
            category="Income/Salary",
            category_resolved=True,
            date=date(2024, 5, 1),
            validation=ValidationResult(
                extraction_id=uuid4(),
                schema_valid=True,
                semantic_valid=True,
                is_valid=True,
                can_proceed_with_review=True,
            ),
        )

        tx = draft.to_transaction(description="May salary")

        assert tx.amount == 18000.0
        assert tx.description == "May salary"
        assert tx.category == "Income/Salary"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Transaction added",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.currency_changed("USD", "EUR", 0.9, 3)
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "currency_changed"
        assert log_dict["details"]["factor"] == 0.9
        assert log_dict["correlation_id"] is None

    def test_operation_failed_picks_event_type(self):
        """Extraction and analysis failures are distinct events."""
        correlation_id = uuid4()
        extraction = AuditEventBuilder.operation_failed("extraction", "RATE_LIMITED", "quota", correlation_id)
        analysis = AuditEventBuilder.operation_failed("analysis", "MALFORMED_DATA", "bad", correlation_id)

        assert extraction.event_type == AuditEventType.EXTRACTION_FAILED
        assert analysis.event_type == AuditEventType.ANALYSIS_FAILED
        assert extraction.severity == AuditSeverity.ERROR
        assert analysis.error_code == "MALFORMED_DATA"

    def test_currency_change_failed_is_warning(self):
        """A refused conversion is recorded with its code."""
        event = AuditEventBuilder.currency_change_failed("USD", "EUR", "No exchange rate available for EUR")
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "RATE_UNAVAILABLE"


class TestAuditLogger:
    """Tests for the in-memory audit history."""

    def test_history_keeps_logged_events(self):
        """Logged events are kept in order."""
        audit_logger = AuditLogger()
        first = AuditEventBuilder.ledger_replaced(3)
        second = AuditEventBuilder.mode_changed("Individual", "Business")

        assert asyncio.run(audit_logger.log(first))
        asyncio.run(audit_logger.log(second))

        assert [event.event_type for event in audit_logger.history] == [
            AuditEventType.LEDGER_REPLACED,
            AuditEventType.MODE_CHANGED,
        ]

    def test_history_is_bounded(self):
        """Only the most recent events are kept."""
        audit_logger = AuditLogger(max_history=2)
        for count in range(5):
            asyncio.run(audit_logger.log(AuditEventBuilder.ledger_replaced(count)))

        assert [event.details["transaction_count"] for event in audit_logger.history] == [3, 4]

    def test_history_can_be_disabled(self):
        """With keep_history=False events are only logged."""
        audit_logger = AuditLogger(keep_history=False)
        asyncio.run(audit_logger.log(AuditEventBuilder.ledger_replaced(1)))
        assert audit_logger.history == []
