"""
Audit Models for Ledgerboard

Every write to the books is logged for audit purposes.
This provides:
1. Traceability of who changed which transaction and when
2. Debugging information when a write is rejected by the backend
3. A history of edits a user can review

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledgerboard.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED = "transaction_rejected"
    STORAGE_OPERATION_FAILED = "storage_operation_failed"

    # System events
    SYSTEM_ERROR = "system_error"


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
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - whose data and which entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the data the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'sale', 'expense')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
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
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(user_id, "sale", doc_id, "100.00")
        event = AuditEventBuilder.transaction_deleted(user_id, "expense", doc_id)
    """

    @staticmethod
    def transaction_created(
        user_id: str,
        transaction_type: str,
        transaction_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            user_id=user_id,
            entity_type=transaction_type,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {transaction_type} of {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        user_id: str,
        transaction_type: str,
        transaction_id: str,
        changed_fields: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            user_id=user_id,
            entity_type=transaction_type,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Edited {transaction_type} ({', '.join(sorted(changed_fields))})",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_type: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type=transaction_type,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Deleted {transaction_type}",
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        user_id: str,
        transaction_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=transaction_type,
            correlation_id=correlation_id,
            description=f"New {transaction_type} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def storage_operation_failed(
        user_id: str,
        operation: str,
        transaction_type: str,
        error_message: str,
        transaction_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_OPERATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type=transaction_type,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Storage {operation} failed for {transaction_type}",
            details={"operation": operation},
            error_message=error_message,
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
