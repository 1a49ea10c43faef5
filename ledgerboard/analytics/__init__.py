"""Analytics package."""

from ledgerboard.analytics.engine import (
    bucket_expenses_by_category,
    bucket_sales_by_week,
    build_dashboard,
    compare_months,
    compute_totals,
    newest_first,
    pick_best_and_worst,
    summarize_months,
    week_key,
)

__all__ = [
    "bucket_expenses_by_category",
    "bucket_sales_by_week",
    "build_dashboard",
    "compare_months",
    "compute_totals",
    "newest_first",
    "pick_best_and_worst",
    "summarize_months",
    "week_key",
]
