"""
Tests for Ledgerboard

Test strategy:
1. Unit tests for individual components (models, normalizer, validator, engine)
2. Integration tests for flows (with in-memory or fake storage)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from ledgerboard.models.transaction import (
    Expense,
    ExpenseCategory,
    Sale,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
)
from ledgerboard.models.analytics import (
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


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_sale_creation(self):
        """Test Sale model creation."""
        sale = Sale(
            id="s1",
            amount=Decimal("100.00"),
            transaction_date=date(2024, 1, 5),
            user_id="u1",
        )
        assert sale.transaction_type == TransactionType.SALE
        assert sale.amount == Decimal("100.00")

    def test_expense_defaults_to_other(self):
        """Test that an expense without category is filed under Other."""
        expense = Expense(
            id="e1",
            amount=Decimal("20"),
            transaction_date=date(2024, 1, 5),
            user_id="u1",
        )
        assert expense.category == ExpenseCategory.OTHER

    def test_record_rejects_negative_amount(self):
        """Test that stored records cannot hold negative amounts."""
        with pytest.raises(ValueError):
            Sale(
                id="s1",
                amount=Decimal("-1"),
                transaction_date=date(2024, 1, 5),
                user_id="u1",
            )

    def test_record_requires_id(self):
        with pytest.raises(ValueError):
            Sale(id="", amount=Decimal("1"), transaction_date=date(2024, 1, 5), user_id="u1")

    def test_collection_names(self):
        assert TransactionType.SALE.collection_name == "sales_log"
        assert TransactionType.EXPENSE.collection_name == "expenses_log"


class TestTransactionDraft:
    """Tests for the strict write-path model."""

    def test_expense_requires_category(self):
        """Test that an expense draft without a category is rejected."""
        with pytest.raises(ValueError, match="Expense category is required"):
            TransactionDraft(
                transaction_type=TransactionType.EXPENSE,
                amount=Decimal("10"),
            )

    def test_sale_drops_category(self):
        """Test that a category given for a sale is ignored."""
        draft = TransactionDraft(
            transaction_type=TransactionType.SALE,
            amount=Decimal("10"),
            category=ExpenseCategory.FOOD,
        )
        assert draft.category is None

    def test_zero_amount_rejected(self):
        with pytest.raises(ValueError):
            TransactionDraft(transaction_type=TransactionType.SALE, amount=Decimal("0"))

    def test_date_defaults_to_today(self):
        draft = TransactionDraft(transaction_type=TransactionType.SALE, amount="5")
        assert draft.transaction_date == date.today()

    def test_document_fields(self):
        """Test the field names written to storage."""
        draft = TransactionDraft(
            transaction_type=TransactionType.EXPENSE,
            amount=Decimal("12.50"),
            transaction_date=date(2024, 3, 1),
            category=ExpenseCategory.RENT,
        )
        assert draft.to_document_fields("u1") == {
            "type": "expense",
            "amount": "12.50",
            "date": "2024-03-01",
            "userId": "u1",
            "category": "Rent",
        }


class TestTransactionUpdate:
    """Tests for partial edits."""

    def test_empty_update(self):
        assert TransactionUpdate().is_empty is True

    def test_only_changed_fields_are_written(self):
        update = TransactionUpdate(amount=Decimal("7"))
        assert update.is_empty is False
        assert update.to_document_fields() == {"amount": "7"}

    def test_update_rejects_zero_amount(self):
        with pytest.raises(ValueError):
            TransactionUpdate(amount=Decimal("0"))


class TestAnalyticsModels:
    """Tests for derived analytics models."""

    def test_totals_net_income(self):
        totals = Totals(total_sales=Decimal("300"), total_expenses=Decimal("120"))
        assert totals.net_income == Decimal("180")

    def test_weekly_bucket_key_format(self):
        """Test that week keys must be YYYY-WW."""
        bucket = WeeklyBucket(week_key="2024-03", amount=Decimal("10"))
        assert bucket.year == 2024
        assert bucket.week == 3
        with pytest.raises(ValueError):
            WeeklyBucket(week_key="2024-W3")

    def test_month_summary_properties(self):
        summary = MonthSummary(
            year=2024,
            month=1,
            sales_total=Decimal("200"),
            expenses_total=Decimal("50"),
        )
        assert summary.month_key == "2024-01"
        assert summary.label == "January 2024"
        assert summary.net_income == Decimal("150")
        assert summary.profit_margin == pytest.approx(75.0)

    def test_profit_margin_without_sales(self):
        summary = MonthSummary(year=2024, month=2, expenses_total=Decimal("50"))
        assert summary.profit_margin == 0.0

    def test_month_bounds(self):
        with pytest.raises(ValueError):
            MonthSummary(year=2024, month=13)

    def test_dump_includes_derived_figures(self):
        """Net income and month keys are part of the serialized dashboard."""
        january = MonthSummary(
            year=2024,
            month=1,
            sales_total=Decimal("200"),
            expenses_total=Decimal("80"),
        )
        snapshot = DashboardSnapshot(
            totals=Totals(total_sales=Decimal("200"), total_expenses=Decimal("80")),
            month_comparison=MonthComparison(
                months=[january], best_month=january, worst_month=january
            ),
        )

        dumped = snapshot.model_dump()

        assert dumped["totals"]["net_income"] == Decimal("120")
        best = dumped["month_comparison"]["best_month"]
        assert best["net_income"] == Decimal("120")
        assert best["month_key"] == "2024-01"
        assert best["label"] == "January 2024"
        assert best["profit_margin"] == pytest.approx(60.0)

    def test_empty_comparison(self):
        comparison = MonthComparison()
        assert comparison.has_data is False
        assert comparison.best_month is None
        assert comparison.worst_month is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Recorded sale",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            description="Deleted expense",
            details={"amount": "10"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_deleted"
        assert log_dict["details"]["amount"] == "10"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            user_id="u1",
            description="Edited sale",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "transaction_updated"  # event_type
        assert row[4] == "u1"  # user_id
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_transaction_created(self):
        """Test builder for transaction created event."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_created(
            user_id="u1",
            transaction_type="sale",
            transaction_id="doc-1",
            amount="99.00",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == "doc-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_storage_failure(self):
        event = AuditEventBuilder.storage_operation_failed(
            user_id="u1",
            operation="save",
            transaction_type="expense",
            error_message="quota exceeded",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota exceeded"
        assert event.is_user_action is False


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be a number greater than zero",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message="Amount seems unusually high",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.warnings == ["Amount seems unusually high"]


class TestExpenseCategories:
    """Tests for expense categories."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        for cat in ["Food", "Transport", "Utilities", "Shopping", "Entertainment", "Other"]:
            assert ExpenseCategory(cat) is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
