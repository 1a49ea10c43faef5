"""
Audit Logger

DESIGN DECISION: Every write to the books is logged.
This provides:
1. Traceability of who changed what
2. Debugging capability when the backend rejects a write
3. A history of edits per user

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from ledgerboard.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledgerboard.services.storage import AuditStorageInterface


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


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledgerboard.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_created(
        self,
        user_id: str,
        transaction_type: str,
        transaction_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_created(
            user_id=user_id,
            transaction_type=transaction_type,
            transaction_id=transaction_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        user_id: str,
        transaction_type: str,
        transaction_id: str,
        changed_fields: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            user_id=user_id,
            transaction_type=transaction_type,
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        user_id: str,
        transaction_type: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_type=transaction_type,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_rejected(
        self,
        user_id: str,
        transaction_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(
            user_id=user_id,
            transaction_type=transaction_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_storage_failure(
        self,
        user_id: str,
        operation: str,
        transaction_type: str,
        error_message: str,
        transaction_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_operation_failed(
            user_id=user_id,
            operation=operation,
            transaction_type=transaction_type,
            error_message=error_message,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving an edit).
    Pass it through all subsequent operations.
    """
    return uuid4()
