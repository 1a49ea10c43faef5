"""
Aggregation Engine

DESIGN DECISION: Analytics are a PURE function of the current sales and
expenses. Nothing here touches storage, keeps state between calls, or
raises on odd data: records have already been normalized on the way in.
The dashboard simply recomputes everything whenever a new snapshot
arrives, which is cheap at the scale of a small business ledger.

Amounts are summed as Decimal so that bucket sums match the totals exactly.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerboard.models.analytics import (
    CategoryBucket,
    DashboardSnapshot,
    MonthComparison,
    MonthSummary,
    Totals,
    WeeklyBucket,
)
from ledgerboard.models.transaction import (
    Expense,
    ExpenseCategory,
    Sale,
    Transaction,
)


ZERO = Decimal("0")


def _sum_amounts(records: Iterable[Transaction]) -> Decimal:
    return sum((record.amount for record in records), ZERO)


# =============================================================================
# TOTALS
# =============================================================================

def compute_totals(sales: Sequence[Sale], expenses: Sequence[Expense]) -> Totals:
    """Total sales, total expenses and (via the model) net income."""
    return Totals(
        total_sales=_sum_amounts(sales),
        total_expenses=_sum_amounts(expenses),
    )


# =============================================================================
# WEEKLY BUCKETS
# =============================================================================

def week_key(day: date) -> str:
    """
    Approximate week key for a date: zero-based day of year // 7.

    1-7 January fall in week 00, 8-14 January in week 01, and so on.
    This is NOT ISO-8601 numbering; the last days of December land in
    week 52 of their own year and are never merged with week 00 of the
    next one.
    """
    day_of_year = day.timetuple().tm_yday - 1
    return f"{day.year:04d}-{day_of_year // 7:02d}"


def bucket_sales_by_week(sales: Sequence[Sale]) -> list[WeeklyBucket]:
    """
    Sum sale amounts per week key, ordered by key.

    Keys are year-prefixed and zero-padded, so plain string ordering is
    chronological.
    """
    totals: dict[str, Decimal] = {}
    for sale in sales:
        key = week_key(sale.transaction_date)
        totals[key] = totals.get(key, ZERO) + sale.amount

    return [
        WeeklyBucket(week_key=key, amount=totals[key])
        for key in sorted(totals)
    ]


# =============================================================================
# CATEGORY BUCKETS
# =============================================================================

def bucket_expenses_by_category(expenses: Sequence[Expense]) -> list[CategoryBucket]:
    """
    Sum expense amounts per category with each category's share.

    Buckets keep the order in which categories were first seen. The
    percentage is 0 for every bucket when total expenses are 0.
    """
    totals: dict[ExpenseCategory, Decimal] = {}
    for expense in expenses:
        category = expense.category or ExpenseCategory.OTHER
        totals[category] = totals.get(category, ZERO) + expense.amount

    grand_total = sum(totals.values(), ZERO)

    buckets = []
    for category, amount in totals.items():
        if grand_total > 0:
            percentage = float(amount / grand_total * 100)
        else:
            percentage = 0.0
        buckets.append(CategoryBucket(
            category=category,
            amount=amount,
            percentage=percentage,
        ))
    return buckets


# =============================================================================
# MONTH COMPARISON
# =============================================================================

def summarize_months(
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
) -> list[MonthSummary]:
    """Per-month totals and counts over both sequences, oldest month first."""
    months: dict[tuple[int, int], MonthSummary] = {}

    def summary_for(day: date) -> MonthSummary:
        key = (day.year, day.month)
        if key not in months:
            months[key] = MonthSummary(year=day.year, month=day.month)
        return months[key]

    for sale in sales:
        summary = summary_for(sale.transaction_date)
        summary.sales_total += sale.amount
        summary.sales_count += 1

    for expense in expenses:
        summary = summary_for(expense.transaction_date)
        summary.expenses_total += expense.amount
        summary.expenses_count += 1

    return [months[key] for key in sorted(months)]


def pick_best_and_worst(
    months: Sequence[MonthSummary],
) -> tuple[Optional[MonthSummary], Optional[MonthSummary]]:
    """
    Month with the highest and the lowest net income.

    Ties go to the earliest month on both sides, regardless of the order
    the summaries were passed in.
    """
    if not months:
        return None, None

    ordered = sorted(months, key=lambda m: (m.year, m.month))
    best = ordered[0]
    worst = ordered[0]
    for summary in ordered[1:]:
        if summary.net_income > best.net_income:
            best = summary
        if summary.net_income < worst.net_income:
            worst = summary
    return best, worst


def compare_months(
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
) -> MonthComparison:
    months = summarize_months(sales, expenses)
    best, worst = pick_best_and_worst(months)
    return MonthComparison(months=months, best_month=best, worst_month=worst)


# =============================================================================
# DASHBOARD
# =============================================================================

def build_dashboard(
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
) -> DashboardSnapshot:
    """
    Compute every derived view for one snapshot of a user's data.

    Args:
        sales: The user's sales, already normalized
        expenses: The user's expenses, already normalized

    Returns:
        DashboardSnapshot with totals, weekly sales, expense breakdown
        and month comparison
    """
    return DashboardSnapshot(
        totals=compute_totals(sales, expenses),
        weekly_sales=bucket_sales_by_week(sales),
        expense_categories=bucket_expenses_by_category(expenses),
        month_comparison=compare_months(sales, expenses),
        sales_count=len(sales),
        expenses_count=len(expenses),
    )


def newest_first(records: Iterable[Transaction]) -> list[Transaction]:
    """Order records for the transaction log, most recently saved first."""
    return sorted(records, key=lambda record: record.created_at, reverse=True)
