"""
Two-Stage Validation of New Transactions

DESIGN DECISION: Form input is checked in two distinct stages before it
is written:

STAGE 1 - SCHEMA VALIDATION:
- Amount parses and is greater than zero
- Expenses name a known category
- Date is a real calendar date

STAGE 2 - SEMANTIC VALIDATION:
- Unusually large amounts
- Dates far in the future
- Dates from long ago (likely a typo in the year)

Stage 2 only raises warnings: the user may well have had a record month.
Only stage 1 errors block the save.

This is the opposite of the read path (see normalizer.py): stored data
is repaired, new data is rejected.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from ledgerboard.config import get_settings
from ledgerboard.config.settings import AppSettings
from ledgerboard.models.transaction import (
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class TransactionValidator:
    """
    Validates form input for new transactions.

    Stage 1: Schema validation (building the TransactionDraft)
    Stage 2: Semantic validation (plausibility warnings)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        transaction_type: TransactionType,
        amount: Any,
        transaction_date: Any,
        category: Any,
    ) -> tuple[Optional[TransactionDraft], list[ValidationIssue]]:
        """
        Stage 1: Build the draft, translating pydantic errors into issues.

        Returns: (draft_or_none, list_of_issues)
        """
        fields: dict[str, Any] = {
            "transaction_type": transaction_type,
            "amount": amount,
            "category": category,
        }
        if transaction_date is not None:
            fields["transaction_date"] = transaction_date

        try:
            return TransactionDraft(**fields), []
        except ValidationError as e:
            issues = []
            for error in e.errors():
                field = str(error["loc"][0]) if error["loc"] else "category"
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=self._friendly_message(field, error["msg"]),
                    severity="error",
                ))
            return None, issues

    @staticmethod
    def _friendly_message(field: str, pydantic_message: str) -> str:
        if field == "amount":
            return "Amount must be a number greater than zero"
        if field == "transaction_date":
            return "Date must be a valid calendar date"
        if field == "category":
            return "Please choose an expense category"
        # Model-level errors arrive as "Value error, <message>"
        return pydantic_message.removeprefix("Value error, ")

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        today: date,
    ) -> list[ValidationIssue]:
        """Stage 2: Plausibility checks. Warnings only."""
        issues = []

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if draft.transaction_date > max_future_date:
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="future_date",
                message=f"Date ({draft.transaction_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        min_reasonable_date = today - timedelta(days=365 * 5)
        if draft.transaction_date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="suspicious_date",
                message=f"Date ({draft.transaction_date}) seems unusually old",
                severity="warning",
                suggested_fix="Please check the year",
            ))

        return issues

    def validate(
        self,
        transaction_type: TransactionType,
        amount: Any,
        transaction_date: Any = None,
        category: Any = None,
        today: Optional[date] = None,
    ) -> tuple[Optional[TransactionDraft], ValidationResult]:
        """
        Run the full two-stage validation on raw form values.

        Args:
            transaction_type: Sale or expense
            amount: Amount as entered
            transaction_date: Date as entered (defaults to today)
            category: Category as entered (expenses only)
            today: Reference date for the date checks

        Returns:
            (draft, result). draft is None when stage 1 failed.
        """
        today = today or date.today()

        draft, issues = self._validate_schema(
            transaction_type, amount, transaction_date, category
        )
        schema_valid = draft is not None

        semantic_valid = False
        if draft is not None:
            semantic_issues = self._validate_semantic(draft, today)
            issues.extend(semantic_issues)
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        return draft, ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Summary shown under the form."""
        if result.is_valid and not result.warnings:
            return "✅ Looks good!"

        lines = []
        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
