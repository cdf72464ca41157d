"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of AI calls and ledger changes
2. Debugging capability when the AI returns something odd
3. A history the user can look back on

The audit logger:
- Is async so flows can await it uniformly
- Never crashes a flow if logging fails
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from smartspend.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and, optionally,
    keeps them in memory as the session's visible history.
    """

    def __init__(self, keep_history: bool = True, max_history: int = 500):
        """
        Initialize audit logger.

        Args:
            keep_history: Keep events in memory for display.
            max_history: Oldest events are dropped beyond this many.
        """
        self._keep_history = keep_history
        self._max_history = max_history
        self._history: list[AuditEvent] = []
        self._logger = structlog.get_logger("smartspend.audit")

    @property
    def history(self) -> list[AuditEvent]:
        return list(self._history)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was recorded.
        """
        try:
            log_dict = event.to_log_dict()

            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except (TypeError, ValueError) as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

        if self._keep_history:
            self._history.append(event)
            if len(self._history) > self._max_history:
                del self._history[: len(self._history) - self._max_history]

        return True

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a smart import).
    Pass it through all subsequent operations.
    """
    return uuid4()
