"""
Data Models Package

This package contains all Pydantic models used in Smart Spend AI.
All data flowing through the system must conform to these schemas.
"""

from smartspend.models.ledger import (
    CURRENCIES,
    MODE_CATEGORIES,
    AnalysisResult,
    Anomaly,
    CategoryShare,
    Currency,
    ExtractionResult,
    FinanceMode,
    Ledger,
    Severity,
    Transaction,
    TransactionDraft,
    TrendPoint,
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

__all__ = [
    # Ledger models
    "CURRENCIES",
    "MODE_CATEGORIES",
    "AnalysisResult",
    "Anomaly",
    "CategoryShare",
    "Currency",
    "ExtractionResult",
    "FinanceMode",
    "Ledger",
    "Severity",
    "Transaction",
    "TransactionDraft",
    "TrendPoint",
    "UserProfile",
    "ValidationIssue",
    "ValidationResult",
    "categories_for",
    "get_currency",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
