"""
Record Normalizer

DESIGN DECISION: The read path is LENIENT. Documents coming back from the
backend may be legacy rows, hand-edited spreadsheet cells, or the product
of an older client. A corrupt record must never take the dashboard down,
so every field is parsed with a fallback:

- amount:     anything that is not a finite, non-negative number -> 0
- date:       anything that is not a calendar date -> today
- category:   anything not in ExpenseCategory -> "Other"
- userId:     anything that is not a string -> the subscribed user
- timestamp:  anything that is not a datetime -> now

IMPORTANT: Nothing is fixed silently. Every substitution is returned as a
CoercionIssue so callers can log it, and the policy lives here rather
than inside the aggregation code.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ledgerboard.models.transaction import (
    CoercionIssue,
    Expense,
    ExpenseCategory,
    Sale,
    StoredDocument,
    Transaction,
    TransactionType,
    utc_now,
)


ZERO = Decimal("0")

# Amounts of 10^16 or more are not real ledger entries and overflow the
# 28-digit decimal context once summed and quantized
MAX_AMOUNT_EXPONENT = 15

# Document field names as written by the storage backends
AMOUNT_FIELD = "amount"
DATE_FIELD = "date"
CATEGORY_FIELD = "category"
USER_FIELD = "userId"
TIMESTAMP_FIELD = "timestamp"

_CATEGORY_LOOKUP = {category.value.lower(): category for category in ExpenseCategory}


def _raw(value: Any) -> Optional[str]:
    return None if value is None else repr(value)


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a stored amount.

    Accepts int, float, Decimal and numeric strings. Returns None for
    booleans, non-numeric values, NaN/infinity, negative numbers and
    amounts too large to add up safely.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        # str() keeps the float's shortest repr instead of its binary expansion
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip().replace(",", ""))
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite() or amount < 0:
        return None
    if amount and amount.adjusted() > MAX_AMOUNT_EXPONENT:
        return None
    return amount


def parse_date(value: Any) -> Optional[date]:
    """Parse a stored date (date, datetime or 'YYYY-MM-DD' string)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def parse_category(value: Any) -> Optional[ExpenseCategory]:
    """Parse a stored category name, ignoring case and surrounding spaces."""
    if isinstance(value, ExpenseCategory):
        return value
    if isinstance(value, str):
        return _CATEGORY_LOOKUP.get(value.strip().lower())
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp; naive values are taken to be UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TransactionNormalizer:
    """
    Turns raw StoredDocuments into Sale / Expense records.

    Usage:
        normalizer = TransactionNormalizer(owner_id="user-1")
        sales, issues = normalizer.normalize_snapshot(TransactionType.SALE, documents)
    """

    def __init__(
        self,
        owner_id: str,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ):
        """
        Args:
            owner_id: User whose collection is being read; used when a
                      document lacks a valid userId
            today: Fallback for unparseable dates (defaults to date.today())
            now: Fallback for missing timestamps (defaults to current UTC time)
        """
        self._owner_id = owner_id
        self._today = today
        self._now = now

    def _common_fields(
        self,
        document: StoredDocument,
        issues: list[CoercionIssue],
    ) -> dict[str, Any]:
        data = document.data

        raw_amount = data.get(AMOUNT_FIELD)
        amount = parse_amount(raw_amount)
        if amount is None:
            amount = ZERO
            issues.append(CoercionIssue(
                document_id=document.id,
                field=AMOUNT_FIELD,
                raw_value=_raw(raw_amount),
                replacement="0",
            ))

        raw_date = data.get(DATE_FIELD)
        transaction_date = parse_date(raw_date)
        if transaction_date is None:
            transaction_date = self._today or date.today()
            issues.append(CoercionIssue(
                document_id=document.id,
                field=DATE_FIELD,
                raw_value=_raw(raw_date),
                replacement=transaction_date.isoformat(),
            ))

        raw_user = data.get(USER_FIELD)
        if isinstance(raw_user, str) and raw_user:
            user_id = raw_user
        else:
            user_id = self._owner_id
            issues.append(CoercionIssue(
                document_id=document.id,
                field=USER_FIELD,
                raw_value=_raw(raw_user),
                replacement=self._owner_id,
            ))

        # Missing timestamps are routine (pending server writes), so not reported
        created_at = parse_timestamp(data.get(TIMESTAMP_FIELD)) or self._now or utc_now()

        return {
            "id": document.id,
            "amount": amount,
            "transaction_date": transaction_date,
            "user_id": user_id,
            "created_at": created_at,
        }

    def normalize_sale(
        self,
        document: StoredDocument,
    ) -> tuple[Sale, list[CoercionIssue]]:
        issues: list[CoercionIssue] = []
        sale = Sale(**self._common_fields(document, issues))
        return sale, issues

    def normalize_expense(
        self,
        document: StoredDocument,
    ) -> tuple[Expense, list[CoercionIssue]]:
        issues: list[CoercionIssue] = []
        fields = self._common_fields(document, issues)

        raw_category = document.data.get(CATEGORY_FIELD)
        category = parse_category(raw_category)
        if category is None:
            category = ExpenseCategory.OTHER
            issues.append(CoercionIssue(
                document_id=document.id,
                field=CATEGORY_FIELD,
                raw_value=_raw(raw_category),
                replacement=category.value,
            ))

        return Expense(category=category, **fields), issues

    def normalize(
        self,
        transaction_type: TransactionType,
        document: StoredDocument,
    ) -> tuple[Transaction, list[CoercionIssue]]:
        if transaction_type is TransactionType.SALE:
            return self.normalize_sale(document)
        return self.normalize_expense(document)

    def normalize_snapshot(
        self,
        transaction_type: TransactionType,
        documents: Iterable[StoredDocument],
    ) -> tuple[list[Transaction], list[CoercionIssue]]:
        """
        Normalize every document of one collection snapshot.

        Order is preserved; no document is ever dropped.
        """
        records: list[Transaction] = []
        issues: list[CoercionIssue] = []
        for document in documents:
            record, record_issues = self.normalize(transaction_type, document)
            records.append(record)
            issues.extend(record_issues)
        return records, issues
