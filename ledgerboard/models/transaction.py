"""
Core Data Models for Ledgerboard

These models define the schemas for all transaction data flowing through
the system. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep the lenient read path separate from the strict write path

DESIGN DECISION: Records read back from storage are built only by the
normalizer (see ledgerboard.validation.normalizer), which has already
coerced every field. Form input goes through TransactionDraft, which is
strict and rejects bad values instead of fixing them.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Discriminates sales from expenses."""
    SALE = "sale"
    EXPENSE = "expense"

    @property
    def collection_name(self) -> str:
        """Name of the per-user collection holding this type."""
        return "sales_log" if self is TransactionType.SALE else "expenses_log"

    @property
    def label(self) -> str:
        return "sale" if self is TransactionType.SALE else "expense"


class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent grouping in the expense breakdown. Anything unrecognized
    read back from storage is filed under OTHER.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    UTILITIES = "Utilities"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    RENT = "Rent"
    PAYROLL = "Payroll"
    SUPPLIES = "Supplies"
    MARKETING = "Marketing"
    OTHER = "Other"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# STORED RECORDS (read path)
# =============================================================================

class TransactionRecord(BaseModel):
    """
    Fields shared by sales and expenses.

    `created_at` is assigned by the storage backend and is only used for
    ordering the transaction log.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Backend document ID, unique per owning user"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Transaction amount"
    )
    transaction_date: date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    user_id: str = Field(
        ...,
        description="ID of the user who owns this record"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="Server-assigned ordering timestamp"
    )


class Sale(TransactionRecord):
    """A recorded sale."""

    transaction_type: Literal[TransactionType.SALE] = TransactionType.SALE


class Expense(TransactionRecord):
    """A recorded expense with its category."""

    transaction_type: Literal[TransactionType.EXPENSE] = TransactionType.EXPENSE
    category: ExpenseCategory = Field(
        default=ExpenseCategory.OTHER,
        description="Expense category"
    )


Transaction = Union[Sale, Expense]


class StoredDocument(BaseModel):
    """
    A raw document as the storage backend returns it.

    CRITICAL: `data` is untrusted. Legacy rows may hold strings where
    numbers are expected, missing dates, or categories that no longer
    exist. It must pass through the normalizer before use.
    """

    id: str
    data: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# WRITE PATH
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A new transaction as submitted from the form.

    Stricter than TransactionRecord: the amount must be positive and an
    expense must name its category.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    transaction_type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount entered by the user"
    )
    transaction_date: date = Field(
        default_factory=date.today,
        description="Date of the transaction"
    )
    category: Optional[ExpenseCategory] = Field(
        default=None,
        description="Required for expenses, ignored for sales"
    )

    @model_validator(mode='after')
    def validate_category(self) -> 'TransactionDraft':
        if self.transaction_type is TransactionType.EXPENSE:
            if self.category is None:
                raise ValueError("Expense category is required")
        else:
            self.category = None
        return self

    def to_document_fields(self, user_id: str) -> dict[str, Any]:
        """Fields written to storage (the backend adds id and timestamp)."""
        fields: dict[str, Any] = {
            "type": self.transaction_type.value,
            "amount": str(self.amount),
            "date": self.transaction_date.isoformat(),
            "userId": user_id,
        }
        if self.category is not None:
            fields["category"] = self.category.value
        return fields


class TransactionUpdate(BaseModel):
    """Partial edit of an existing transaction."""

    amount: Optional[Decimal] = Field(default=None, gt=0)
    transaction_date: Optional[date] = None
    category: Optional[ExpenseCategory] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.amount is None
            and self.transaction_date is None
            and self.category is None
        )

    def to_document_fields(self) -> dict[str, Any]:
        """Only the fields that were actually changed."""
        fields: dict[str, Any] = {}
        if self.amount is not None:
            fields["amount"] = str(self.amount)
        if self.transaction_date is not None:
            fields["date"] = self.transaction_date.isoformat()
        if self.category is not None:
            fields["category"] = self.category.value
        return fields


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class CoercionIssue(BaseModel):
    """
    One field the normalizer had to replace with a safe default.

    Kept so that the lenient read policy can be audited: nothing is
    fixed silently, it is fixed and reported.
    """

    document_id: str
    field: str
    raw_value: Optional[str] = Field(
        default=None,
        description="repr() of the value found in storage"
    )
    replacement: str = Field(
        ...,
        description="Value substituted in its place"
    )


class ValidationIssue(BaseModel):
    """A single validation issue found in form input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'future_date', 'suspicious_value')"
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
    Result of the two-stage draft validation.

    Stage 1: Schema validation (types, required fields)
    Stage 2: Semantic validation (plausibility checks)
    """

    validated_at: datetime = Field(
        default_factory=utc_now
    )
    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
