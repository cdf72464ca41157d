"""
Core Data Models for Smart Spend AI

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep AI output separate from trusted ledger data
3. Be serializable for prompts and logging
4. Support the audit trail

DESIGN DECISION: A Transaction amount is ALWAYS expressed in the currency of
the Ledger that holds it. There is no per-transaction currency field, so a
mixed-currency ledger cannot be represented.
"""

import datetime as dt
import hashlib
import json
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS AND CATALOGS - Finite set of valid values
# =============================================================================

class FinanceMode(str, Enum):
    """
    Profile type a ledger is kept under.

    The mode decides which categories are offered and how the AI
    is asked to read the data.
    """
    INDIVIDUAL = "Individual"
    BUSINESS = "Business"
    FAMILY = "Family"
    TRIP = "Trip/Travel"


MODE_CATEGORIES: dict[FinanceMode, tuple[str, ...]] = {
    FinanceMode.INDIVIDUAL: (
        "Income/Salary", "Food", "Transport", "Rent",
        "Subscription", "Entertainment", "Investments",
    ),
    FinanceMode.BUSINESS: (
        "Revenue/Sales", "Operational Expenses", "Salaries", "Utilities",
        "Vendor Payments", "Tax Payments", "Inventory",
    ),
    FinanceMode.TRIP: (
        "Refunds/Credits", "Mode of Transportation", "Accommodations", "Food",
        "Local Transport", "Activities", "Shopping",
    ),
    FinanceMode.FAMILY: (
        "Income/Allowances", "Groceries", "School/College Fees", "Healthcare",
        "Insurance", "Utilities", "Maintenance",
    ),
}


def categories_for(mode: FinanceMode) -> list[str]:
    """Ordered category list for a profile mode."""
    return list(MODE_CATEGORIES[FinanceMode(mode)])


class Severity(str, Enum):
    """Severity of an anomaly reported by the analysis."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Currency(BaseModel):
    """A display currency from the fixed catalog."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=3, max_length=3)
    symbol: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    def format(self, amount: float) -> str:
        return f"{self.symbol}{amount:,.2f}"


CURRENCIES: tuple[Currency, ...] = (
    Currency(code="USD", symbol="$", name="US Dollar"),
    Currency(code="EUR", symbol="€", name="Euro"),
    Currency(code="GBP", symbol="£", name="British Pound"),
    Currency(code="INR", symbol="₹", name="Indian Rupee"),
    Currency(code="JPY", symbol="¥", name="Japanese Yen"),
    Currency(code="AUD", symbol="A$", name="Australian Dollar"),
    Currency(code="CAD", symbol="C$", name="Canadian Dollar"),
    Currency(code="AED", symbol="د.إ", name="UAE Dirham"),
)

_CURRENCY_BY_CODE = {currency.code: currency for currency in CURRENCIES}


def get_currency(code: str) -> Currency:
    """
    Look up a catalog currency by ISO code (case-insensitive).

    Raises:
        KeyError: If the code is not in the catalog
    """
    try:
        return _CURRENCY_BY_CODE[code.strip().upper()]
    except KeyError:
        raise KeyError(f"Unsupported currency: {code}") from None


# =============================================================================
# LEDGER MODELS
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry.

    Immutable: edits (including currency rebasing) produce new instances.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )

    id: str = Field(
        default_factory=lambda: uuid4().hex,
        min_length=1,
        description="Unique within a ledger"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="One of the profile's categories"
    )
    amount: float = Field(
        ...,
        description="Amount in the ledger's current currency"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Merchant, source or note"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )


class Ledger(BaseModel):
    """
    Ordered transactions of one profile, all in one currency.

    Insertion order is kept for display; it carries no meaning
    for totals or conversion.
    """

    currency: Currency
    transactions: list[Transaction] = Field(default_factory=list)

    @field_validator('transactions')
    @classmethod
    def ids_must_be_unique(cls, v: list[Transaction]) -> list[Transaction]:
        seen: set[str] = set()
        for tx in v:
            if tx.id in seen:
                raise ValueError(f"Duplicate transaction id: {tx.id}")
            seen.add(tx.id)
        return v

    def total(self) -> float:
        return sum(tx.amount for tx in self.transactions)

    def by_category(self) -> dict[str, float]:
        """Totals per category, in first-seen order."""
        totals: dict[str, float] = {}
        for tx in self.transactions:
            totals[tx.category] = totals.get(tx.category, 0.0) + tx.amount
        return totals

    def fingerprint(self) -> str:
        """
        Stable digest of currency and contents.

        Two ledgers share a fingerprint only if they hold the same
        transactions, in the same order, in the same currency.
        """
        payload = {
            "currency": self.currency.code,
            "transactions": [tx.model_dump(mode="json") for tx in self.transactions],
        }
        raw = json.dumps(payload, sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class UserProfile(BaseModel):
    """A user's profile: who, which mode, which ledger."""

    username: str = Field(..., min_length=1, max_length=100)
    mode: FinanceMode = FinanceMode.INDIVIDUAL
    ledger: Ledger

    @property
    def categories(self) -> list[str]:
        return categories_for(self.mode)


# =============================================================================
# AI OUTPUT MODELS
# =============================================================================

class ExtractionResult(BaseModel):
    """
    The AI's guess at a transaction found in free text.

    CRITICAL: This is PROPOSED data, NOT verified.
    Every field is optional and nothing here is guaranteed to be valid;
    the date stays a raw string until validation.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        allow_inf_nan=False,
        extra="ignore",
    )

    extraction_id: UUID = Field(
        default_factory=uuid4,
        description="Unique ID for this extraction attempt"
    )
    amount: Optional[float] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None


class Anomaly(BaseModel):
    """A transaction pattern the analysis flagged."""
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    category: str
    amount: float
    reason: str
    severity: Severity

    @field_validator('severity', mode='before')
    @classmethod
    def lowercase_severity(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class CategoryShare(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    name: str
    value: float


class TrendPoint(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    date: str
    amount: float


class AnalysisResult(BaseModel):
    """
    AI-generated financial analysis of a ledger.

    Accepts the camelCase field names the model is asked to produce.
    Immutable once returned; only meaningful for the ledger state
    it was computed from.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )

    summary: str = Field(..., min_length=1)
    health_score: float = Field(..., alias="healthScore", ge=0, le=100)
    anomalies: list[Anomaly] = Field(...)
    category_breakdown: list[CategoryShare] = Field(
        ...,
        alias="categoryBreakdown"
    )
    trend_analysis: list[TrendPoint] = Field(
        ...,
        alias="trendAnalysis"
    )
    generated_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (presence, formats)
    Stage 2: Semantic validation (plausibility checks)
    """

    extraction_id: UUID
    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    can_proceed_with_review: bool = Field(
        ...,
        description="Can we show this to user for review?"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


class TransactionDraft(BaseModel):
    """
    A candidate transaction produced by smart import.

    CRITICAL: Drafts are never added to a ledger automatically.
    The user reviews (and may edit) the draft, then confirms it.
    """

    extraction_id: UUID
    amount: float = Field(..., allow_inf_nan=False)
    description: str = ""
    category: str
    category_resolved: bool = Field(
        ...,
        description="False when the AI category matched nothing and the previous category was kept"
    )
    date: dt.date
    validation: ValidationResult

    def to_transaction(self, **overrides) -> Transaction:
        """Build the confirmed transaction, applying any user edits."""
        data = {
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
            "date": self.date,
        }
        data.update(overrides)
        return Transaction(**data)
