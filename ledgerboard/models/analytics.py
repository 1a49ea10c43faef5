"""
Analytics Models for Ledgerboard

Derived views produced by the aggregation engine. None of these are ever
persisted: they have no identity of their own and are rebuilt from the
current transactions every time the data changes.
"""

import calendar
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from ledgerboard.models.transaction import ExpenseCategory


ZERO = Decimal("0")


class Totals(BaseModel):
    """Headline figures for the stats cards."""

    total_sales: Decimal = ZERO
    total_expenses: Decimal = ZERO

    @computed_field
    @property
    def net_income(self) -> Decimal:
        return self.total_sales - self.total_expenses


class WeeklyBucket(BaseModel):
    """Sum of sale amounts falling in one approximate week of a year."""

    week_key: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Year and zero-based week number, e.g. '2024-03'"
    )
    amount: Decimal = ZERO

    @property
    def year(self) -> int:
        return int(self.week_key.split("-")[0])

    @property
    def week(self) -> int:
        return int(self.week_key.split("-")[1])


class CategoryBucket(BaseModel):
    """Sum of expense amounts in one category and its share of the total."""

    category: ExpenseCategory
    amount: Decimal = ZERO
    percentage: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Share of total expenses, 0-100"
    )


class MonthSummary(BaseModel):
    """Sales and expenses accumulated over one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    sales_total: Decimal = ZERO
    expenses_total: Decimal = ZERO
    sales_count: int = Field(default=0, ge=0)
    expenses_count: int = Field(default=0, ge=0)

    @computed_field
    @property
    def month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @computed_field
    @property
    def label(self) -> str:
        """e.g. 'January 2024'"""
        return f"{calendar.month_name[self.month]} {self.year}"

    @computed_field
    @property
    def net_income(self) -> Decimal:
        return self.sales_total - self.expenses_total

    @computed_field
    @property
    def profit_margin(self) -> float:
        """Net income as a percentage of sales (0 when there were no sales)."""
        if self.sales_total <= 0:
            return 0.0
        return float(self.net_income / self.sales_total * 100)


class MonthComparison(BaseModel):
    """
    Every month that has data, oldest first, plus the best and worst.

    Both best_month and worst_month are None when there is no data; the
    UI shows an empty state in that case.
    """

    months: list[MonthSummary] = Field(default_factory=list)
    best_month: Optional[MonthSummary] = None
    worst_month: Optional[MonthSummary] = None

    @property
    def has_data(self) -> bool:
        return bool(self.months)


class DashboardSnapshot(BaseModel):
    """Everything the dashboard renders for one pair of sales/expenses."""

    totals: Totals = Field(default_factory=Totals)
    weekly_sales: list[WeeklyBucket] = Field(default_factory=list)
    expense_categories: list[CategoryBucket] = Field(default_factory=list)
    month_comparison: MonthComparison = Field(default_factory=MonthComparison)
    sales_count: int = 0
    expenses_count: int = 0
