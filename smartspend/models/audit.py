"""
Audit Models for Smart Spend AI

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every AI call and ledger change
2. Debugging information when the AI misbehaves
3. A history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each user-facing action has its own start/finish/failure events.
    """
    # Smart import
    EXTRACTION_REQUESTED = "extraction_requested"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    VALIDATION_FAILED = "validation_failed"

    # Deep analysis
    ANALYSIS_REQUESTED = "analysis_requested"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"
    ANALYSIS_INVALIDATED = "analysis_invalidated"

    # Ledger changes
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_REMOVED = "transaction_removed"
    LEDGER_REPLACED = "ledger_replaced"
    MODE_CHANGED = "mode_changed"
    CURRENCY_CHANGED = "currency_changed"
    CURRENCY_CHANGE_FAILED = "currency_change_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'extraction', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.extraction_requested(mode, text_length, correlation_id)
        event = AuditEventBuilder.currency_changed("USD", "EUR", 0.9, 12, correlation_id)
    """

    @staticmethod
    def extraction_requested(
        mode: str,
        text_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_REQUESTED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Smart import requested ({mode})",
            details={
                "mode": mode,
                "text_length": text_length,
            },
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        extraction_id: UUID,
        amount: Optional[float],
        category: str,
        category_resolved: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            entity_id=str(extraction_id),
            correlation_id=correlation_id,
            description=f"Transaction extracted into category: {category}",
            details={
                "amount": amount,
                "category": category,
                "category_resolved": category_resolved,
            },
        )

    @staticmethod
    def validation_failed(
        extraction_id: UUID,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            entity_id=str(extraction_id),
            correlation_id=correlation_id,
            description=f"Extraction validation reported {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def analysis_requested(
        mode: str,
        currency: str,
        transaction_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_REQUESTED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Deep analysis requested for {transaction_count} transactions",
            details={
                "mode": mode,
                "currency": currency,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def analysis_completed(
        health_score: float,
        anomaly_count: int,
        fingerprint: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            entity_type="ledger",
            entity_id=fingerprint[:16],
            correlation_id=correlation_id,
            description=f"Analysis completed with health score {health_score:.0f}",
            details={
                "health_score": health_score,
                "anomaly_count": anomaly_count,
            },
        )

    @staticmethod
    def analysis_invalidated(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_INVALIDATED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Stored analysis discarded: {reason}",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def operation_failed(
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        event_type = (
            AuditEventType.EXTRACTION_FAILED
            if operation == "extraction"
            else AuditEventType.ANALYSIS_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            entity_type=operation,
            correlation_id=correlation_id,
            description=f"{operation.capitalize()} failed: {error_code}",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        category: str,
        amount: float,
        currency: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {category} - {amount:,.2f} {currency}",
            details={
                "category": category,
                "amount": amount,
                "currency": currency,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(
        transaction_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction removed",
            is_user_action=True,
        )

    @staticmethod
    def ledger_replaced(
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_REPLACED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger replaced with {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def mode_changed(
        old_mode: str,
        new_mode: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MODE_CHANGED,
            entity_type="profile",
            correlation_id=correlation_id,
            description=f"Profile mode changed: {old_mode} -> {new_mode}",
            details={
                "old_mode": old_mode,
                "new_mode": new_mode,
            },
            is_user_action=True,
        )

    @staticmethod
    def currency_changed(
        old_currency: str,
        new_currency: str,
        factor: float,
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_CHANGED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger rebased: {old_currency} -> {new_currency}",
            details={
                "old_currency": old_currency,
                "new_currency": new_currency,
                "factor": factor,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def currency_change_failed(
        old_currency: str,
        new_currency: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_CHANGE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Currency change refused: {old_currency} -> {new_currency}",
            error_code="RATE_UNAVAILABLE",
            error_message=error_message,
            details={
                "old_currency": old_currency,
                "new_currency": new_currency,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
