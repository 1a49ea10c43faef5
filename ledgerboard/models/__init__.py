"""
Data Models Package

This package contains all Pydantic models used in Ledgerboard.
All data flowing through the system must conform to these schemas.
"""

from ledgerboard.models.transaction import (
    CoercionIssue,
    Expense,
    ExpenseCategory,
    Sale,
    StoredDocument,
    Transaction,
    TransactionDraft,
    TransactionRecord,
    TransactionType,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
)
from ledgerboard.models.analytics import (
    CategoryBucket,
    DashboardSnapshot,
    MonthComparison,
    MonthSummary,
    Totals,
    WeeklyBucket,
)
from ledgerboard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "CoercionIssue",
    "Expense",
    "ExpenseCategory",
    "Sale",
    "StoredDocument",
    "Transaction",
    "TransactionDraft",
    "TransactionRecord",
    "TransactionType",
    "TransactionUpdate",
    "ValidationIssue",
    "ValidationResult",
    # Analytics models
    "CategoryBucket",
    "DashboardSnapshot",
    "MonthComparison",
    "MonthSummary",
    "Totals",
    "WeeklyBucket",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
