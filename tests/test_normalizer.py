"""
Tests for the lenient read path.

Stored documents may be legacy or hand-edited; every malformed field must
be replaced with its fallback and reported, never raised.
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from ledgerboard.models.transaction import (
    Expense,
    ExpenseCategory,
    Sale,
    StoredDocument,
    TransactionType,
)
from ledgerboard.validation import (
    TransactionNormalizer,
    parse_amount,
    parse_category,
    parse_date,
    parse_timestamp,
)


TODAY = date(2024, 6, 15)
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def normalizer():
    return TransactionNormalizer(owner_id="owner", today=TODAY, now=NOW)


class TestParseAmount:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("raw,expected", [
        (100, Decimal("100")),
        (12.5, Decimal("12.5")),
        (0.1, Decimal("0.1")),
        (Decimal("3.33"), Decimal("3.33")),
        ("42.10", Decimal("42.10")),
        (" 1,250.00 ", Decimal("1250.00")),
        (0, Decimal("0")),
    ])
    def test_valid_amounts(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [
        None, "", "abc", True, float("nan"), float("inf"), "NaN", -5, "-1", [], {},
    ])
    def test_invalid_amounts(self, raw):
        assert parse_amount(raw) is None

    @pytest.mark.parametrize("raw", ["9e999999", "1e27", Decimal("1E+16"), 1e20])
    def test_absurdly_large_amounts(self, raw):
        assert parse_amount(raw) is None

    def test_largest_accepted_amount(self):
        assert parse_amount("9999999999999999.99") == Decimal("9999999999999999.99")


class TestParseDate:
    """Tests for date parsing."""

    def test_iso_string(self):
        assert parse_date("2024-01-03") == date(2024, 1, 3)

    def test_iso_datetime_string(self):
        assert parse_date("2024-01-03T10:15:00Z") == date(2024, 1, 3)

    def test_datetime_and_date(self):
        assert parse_date(datetime(2024, 2, 1, 9, 30)) == date(2024, 2, 1)
        assert parse_date(date(2024, 2, 1)) == date(2024, 2, 1)

    @pytest.mark.parametrize("raw", [None, "", "yesterday", "2024-02-30", 20240101])
    def test_invalid_dates(self, raw):
        assert parse_date(raw) is None


class TestParseCategory:
    """Tests for category parsing."""

    def test_case_insensitive(self):
        assert parse_category("food") == ExpenseCategory.FOOD
        assert parse_category("  RENT ") == ExpenseCategory.RENT

    def test_unknown(self):
        assert parse_category("Gadgets") is None
        assert parse_category(None) is None
        assert parse_category(3) is None


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_naive_is_utc(self):
        parsed = parse_timestamp("2024-01-03T10:00:00")
        assert parsed.tzinfo == timezone.utc

    def test_aware_kept(self):
        original = datetime(2024, 1, 3, 10, tzinfo=timezone.utc)
        assert parse_timestamp(original) == original

    def test_garbage(self):
        assert parse_timestamp("soon") is None
        assert parse_timestamp(None) is None


class TestTransactionNormalizer:
    """Tests for turning raw documents into records."""

    def test_clean_sale(self, normalizer):
        """Test that a well-formed document produces no issues."""
        document = StoredDocument(id="s1", data={
            "amount": 100,
            "date": "2024-01-03",
            "userId": "owner",
            "timestamp": "2024-01-03T10:00:00+00:00",
        })

        sale, issues = normalizer.normalize_sale(document)

        assert isinstance(sale, Sale)
        assert sale.amount == Decimal("100")
        assert sale.transaction_date == date(2024, 1, 3)
        assert sale.created_at == datetime(2024, 1, 3, 10, tzinfo=timezone.utc)
        assert issues == []

    def test_bad_amount_becomes_zero(self, normalizer):
        document = StoredDocument(id="s1", data={
            "amount": "twelve", "date": "2024-01-03", "userId": "owner",
        })

        sale, issues = normalizer.normalize_sale(document)

        assert sale.amount == Decimal("0")
        assert [(i.field, i.replacement) for i in issues] == [("amount", "0")]
        assert issues[0].raw_value == "'twelve'"

    def test_bad_date_becomes_today(self, normalizer):
        document = StoredDocument(id="s1", data={"amount": 5, "userId": "owner"})

        sale, issues = normalizer.normalize_sale(document)

        assert sale.transaction_date == TODAY
        assert issues[0].field == "date"
        assert issues[0].raw_value is None
        assert issues[0].replacement == "2024-06-15"

    def test_missing_user_falls_back_to_owner(self, normalizer):
        document = StoredDocument(id="s1", data={"amount": 5, "date": "2024-01-03"})

        sale, issues = normalizer.normalize_sale(document)

        assert sale.user_id == "owner"
        assert [i.field for i in issues] == ["userId"]

    def test_missing_timestamp_is_not_reported(self, normalizer):
        document = StoredDocument(id="s1", data={
            "amount": 5, "date": "2024-01-03", "userId": "owner",
        })

        sale, issues = normalizer.normalize_sale(document)

        assert sale.created_at == NOW
        assert issues == []

    def test_expense_unknown_category(self, normalizer):
        document = StoredDocument(id="e1", data={
            "amount": "30", "date": "2024-01-03", "userId": "owner", "category": "Gadgets",
        })

        expense, issues = normalizer.normalize_expense(document)

        assert isinstance(expense, Expense)
        assert expense.category == ExpenseCategory.OTHER
        assert [(i.field, i.replacement) for i in issues] == [("category", "Other")]

    def test_huge_amount_becomes_zero(self, normalizer):
        """An amount too large to sum is replaced and reported."""
        document = StoredDocument(id="s1", data={
            "amount": "9e999999", "date": "2024-01-03", "userId": "owner",
        })

        sale, issues = normalizer.normalize_sale(document)

        assert sale.amount == Decimal("0")
        assert [(i.field, i.raw_value) for i in issues] == [("amount", "'9e999999'")]

    def test_completely_broken_document(self, normalizer):
        """Test that even an empty document yields a usable record."""
        expense, issues = normalizer.normalize_expense(StoredDocument(id="e1"))

        assert expense.amount == Decimal("0")
        assert expense.transaction_date == TODAY
        assert expense.category == ExpenseCategory.OTHER
        assert {i.field for i in issues} == {"amount", "date", "userId", "category"}

    def test_snapshot_keeps_order_and_every_document(self, normalizer):
        documents = [
            StoredDocument(id="a", data={"amount": 1, "date": "2024-01-01", "userId": "owner"}),
            StoredDocument(id="b", data={"amount": None}),
            StoredDocument(id="c", data={"amount": 3, "date": "2024-01-03", "userId": "owner"}),
        ]

        records, issues = normalizer.normalize_snapshot(TransactionType.SALE, documents)

        assert [r.id for r in records] == ["a", "b", "c"]
        assert {i.document_id for i in issues} == {"b"}

    def test_dispatch_by_type(self, normalizer):
        document = StoredDocument(id="x", data={"amount": 1, "date": "2024-01-01"})

        sale, _ = normalizer.normalize(TransactionType.SALE, document)
        expense, _ = normalizer.normalize(TransactionType.EXPENSE, document)

        assert isinstance(sale, Sale)
        assert isinstance(expense, Expense)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
